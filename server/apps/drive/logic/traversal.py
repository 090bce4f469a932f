"""Depth-first traversal of a folder's subtree.

Permanent deletion and archive export both walk a subtree through
``iter_subtree``. The walk keeps an explicit stack instead of
recursing, so tree depth does not bound the Python stack.

The walk is not a snapshot: entries added or removed while it runs
may or may not be seen.
"""

import enum
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol, final

from server.apps.drive.logic.paths import join_relative_path
from server.apps.drive.models import Entry, EntryKind

logger = logging.getLogger(__name__)


class StepEvent(enum.Enum):
    """What a traversal step reports."""

    ENTER_FOLDER = 'enter_folder'
    EXIT_FOLDER = 'exit_folder'
    FILE = 'file'


@final
@dataclass(frozen=True, slots=True)
class TraversalStep:
    """One event of a subtree walk.

    ``relative_path`` is the entry's path below the walk's root,
    e.g. 'Reports/2024/summary.pdf'.
    """

    event: StepEvent
    entry: Entry
    relative_path: str


class TreeVisitor(Protocol):
    """Callbacks invoked by ``walk``."""

    def enter_folder(self, entry: Entry, relative_path: str) -> None:
        """Called before the children of a folder are visited."""

    def exit_folder(self, entry: Entry, relative_path: str) -> None:
        """Called after every child of a folder has been visited."""

    def visit_file(self, entry: Entry, relative_path: str) -> None:
        """Called for each file."""


@dataclass(slots=True)
class _Frame:
    folder: Entry | None
    relative_path: str
    children: Iterator[Entry]


def _fetch_children(
    folder_id: int,
    owner_id: int,
    *,
    include_deleted: bool,
) -> Iterator[Entry]:
    children = Entry.objects.filter(parent_id=folder_id, owner_id=owner_id)
    if not include_deleted:
        children = children.alive()
    return iter(list(children.order_by('id')))


def iter_subtree(
    root_id: int,
    owner_id: int,
    *,
    include_deleted: bool,
) -> Iterator[TraversalStep]:
    """Walk the subtree below a folder, depth first.

    Folders produce ``ENTER_FOLDER`` before their children and
    ``EXIT_FOLDER`` after them, files produce ``FILE``. The root folder
    itself produces no step. Children of a folder are fetched when the
    walk enters it, in ID order.

    Args:
        root_id: ID of the folder to walk.
        owner_id: Only entries of this owner are visited.
        include_deleted: Whether soft-deleted entries are visited.

    Yields:
        Traversal steps.
    """
    visited = {root_id}
    stack = [
        _Frame(
            folder=None,
            relative_path='',
            children=_fetch_children(
                root_id,
                owner_id,
                include_deleted=include_deleted,
            ),
        ),
    ]

    while stack:
        frame = stack[-1]
        child = next(frame.children, None)

        if child is None:
            stack.pop()
            if frame.folder is not None:
                yield TraversalStep(
                    StepEvent.EXIT_FOLDER,
                    frame.folder,
                    frame.relative_path,
                )
            continue

        if child.id in visited:
            logger.error(
                'Entry %d reached twice below folder %d, skipping',
                child.id,
                root_id,
            )
            continue
        visited.add(child.id)

        relative_path = join_relative_path(frame.relative_path, child.name)
        if child.kind == EntryKind.FOLDER:
            yield TraversalStep(StepEvent.ENTER_FOLDER, child, relative_path)
            stack.append(
                _Frame(
                    folder=child,
                    relative_path=relative_path,
                    children=_fetch_children(
                        child.id,
                        owner_id,
                        include_deleted=include_deleted,
                    ),
                ),
            )
        else:
            yield TraversalStep(StepEvent.FILE, child, relative_path)


def walk(
    root_id: int,
    owner_id: int,
    visitor: TreeVisitor,
    *,
    include_deleted: bool = True,
) -> None:
    """Walk a subtree and dispatch every step to a visitor.

    Args:
        root_id: ID of the folder to walk.
        owner_id: Only entries of this owner are visited.
        visitor: Receives the folder and file callbacks.
        include_deleted: Whether soft-deleted entries are visited.
    """
    steps = iter_subtree(root_id, owner_id, include_deleted=include_deleted)
    for step in steps:
        if step.event is StepEvent.ENTER_FOLDER:
            visitor.enter_folder(step.entry, step.relative_path)
        elif step.event is StepEvent.EXIT_FOLDER:
            visitor.exit_folder(step.entry, step.relative_path)
        else:
            visitor.visit_file(step.entry, step.relative_path)


def collect_subtree_ids(
    root_id: int,
    owner_id: int,
    *,
    include_deleted: bool = True,
) -> list[int]:
    """Collect the IDs of every entry below a folder.

    Args:
        root_id: ID of the folder to walk.
        owner_id: Only entries of this owner are collected.
        include_deleted: Whether soft-deleted entries are collected.

    Returns:
        Descendant IDs in traversal order, the root excluded.
    """
    return [
        step.entry.id
        for step in iter_subtree(
            root_id,
            owner_id,
            include_deleted=include_deleted,
        )
        if step.event is not StepEvent.EXIT_FOLDER
    ]
