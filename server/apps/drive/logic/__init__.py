"""Business logic layer for drive app.

This package contains all business logic for the entry tree:
- Folder creation, file upload, listing, starring and downloads
- Tree invariants and virtual paths
- Depth-first traversal shared by deletion and archive export
- Trash lifecycle, archive export and public sharing

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
