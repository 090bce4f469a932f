"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- Blob store adapter over django-storages (S3/MinIO/R2)
- Entry name validation, MIME detection and blob key layout

Keep infrastructure concerns separate from business logic.
"""
