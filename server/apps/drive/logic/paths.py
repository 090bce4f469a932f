"""Virtual path resolution for new entries."""

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from server.apps.drive.models import Entry

_PATH_SEPARATOR: Final = '/'


def resolve_virtual_path(parent: 'Entry | None', name: str) -> str:
    """Build the virtual path of an entry about to be created.

    Paths are computed once and stored. Moving or renaming an entry
    would require rewriting this field for the entry and, for a folder,
    its whole subtree.

    Args:
        parent: Parent folder, None for root level.
        name: Validated entry name.

    Returns:
        Path like '/Documents/report.pdf'.
    """
    if parent is None:
        return _PATH_SEPARATOR + name
    return parent.virtual_path + _PATH_SEPARATOR + name


def join_relative_path(prefix: str, name: str) -> str:
    """Join a path relative to a traversal root.

    Args:
        prefix: Relative path of the containing folder ('' at the root).
        name: Entry name.

    Returns:
        Relative path like 'Reports/2024/summary.pdf'.
    """
    if not prefix:
        return name
    return prefix + _PATH_SEPARATOR + name
