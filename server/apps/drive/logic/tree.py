"""Nested folder tree assembly."""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import TypedDict
from uuid import UUID

from server.apps.drive.models import Folder


class FolderNode(TypedDict):
    """One folder of the tree with its nested children."""

    id: str
    name: str
    color: str
    parent_id: str | None
    is_public: bool
    children: list['FolderNode']


def build_folder_tree(folders: Iterable[Folder]) -> list[FolderNode]:
    """Build nested tree from a flat list of folders.

    The list is partitioned by parent in a single pass, then nodes are
    assembled from the partition, so the cost is linear in the number of
    folders. Folders whose parent is not in the list are left out.

    Args:
        folders: Active folders of one owner.

    Returns:
        Root nodes (folders without parent), siblings ordered by name.
    """
    children_by_parent: defaultdict[UUID | None, list[Folder]] = defaultdict(
        list,
    )
    for folder in folders:
        children_by_parent[folder.parent_id].append(folder)

    return _build_nodes(None, children_by_parent, visited=set())


def _build_nodes(
    parent_id: UUID | None,
    children_by_parent: Mapping[UUID | None, list[Folder]],
    visited: set[UUID],
) -> list[FolderNode]:
    nodes: list[FolderNode] = []
    siblings = sorted(
        children_by_parent.get(parent_id, ()),
        key=lambda folder: folder.name,
    )
    for folder in siblings:
        # A corrupt parent chain must not expand the same node twice
        if folder.id in visited:
            continue
        visited.add(folder.id)
        nodes.append({
            'id': str(folder.id),
            'name': folder.name,
            'color': folder.color,
            'parent_id': str(folder.parent_id) if folder.parent_id else None,
            'is_public': folder.is_public,
            'children': _build_nodes(folder.id, children_by_parent, visited),
        })
    return nodes
