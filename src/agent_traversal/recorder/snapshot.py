"""Build hierarchical filesystem snapshots from flat listings."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from agent_traversal.executor import CommandExecutor, ListingEntry
from agent_traversal.recorder.models import FileNode
from agent_traversal.recorder.paths import normalize_path

logger = logging.getLogger(__name__)


def _depth(path: str) -> int:
    return path.count("/")


def _sort_key(node: FileNode) -> tuple[int, str]:
    return (0 if node.is_directory else 1, node.name)


def sort_tree(node: FileNode) -> None:
    """Sort children recursively: directories first, then by name."""
    if node.children is None:
        return
    node.children.sort(key=_sort_key)
    for child in node.children:
        sort_tree(child)


def build_tree(
    listing: Iterable[ListingEntry | Sequence[str]],
    root_path: str,
) -> FileNode:
    """Turn a flat ``(type, path)`` listing into a :class:`FileNode` tree.

    Entries are processed shallowest first so parents exist before their
    children. An entry whose parent is unknown is dropped.
    """
    root_path = normalize_path(root_path)
    root = FileNode.empty_root(root_path)
    nodes: dict[str, FileNode] = {root_path: root}

    entries = []
    for item in listing:
        kind, path = item[0], normalize_path(item[1])
        if path and path != root_path:
            entries.append((kind, path))
    entries.sort(key=lambda e: _depth(e[1]))

    for kind, path in entries:
        if path in nodes:
            continue
        parent_path, _, name = path.rpartition("/")
        parent = nodes.get(parent_path or "/")
        if parent is None or parent.children is None:
            continue
        node = FileNode.directory(path, name) if kind == "d" else FileNode.file(path, name)
        parent.children.append(node)
        nodes[path] = node

    sort_tree(root)
    return root


def parse_find_output(output: str) -> list[ListingEntry]:
    """Parse ``find -printf '%y %p\\n'`` output into listing entries.

    Lines that are not ``<type> <path>`` are skipped.
    """
    listing = []
    for line in output.splitlines():
        if len(line) < 3 or line[1] != " ":
            continue
        listing.append(ListingEntry(line[0], line[2:]))
    return listing


def capture_filesystem_snapshot(
    executor: CommandExecutor,
    root_path: str,
    *,
    max_depth: int = 10,
    exclude: Iterable[str] = (),
) -> FileNode:
    """List the sandbox filesystem and build a snapshot.

    A failing listing degrades to an empty root so the session stays usable.
    """
    try:
        listing = executor.list_filesystem(root_path, max_depth=max_depth, exclude=exclude)
    except Exception as e:
        logger.warning("Failed to capture filesystem snapshot of %s: %s", root_path, e)
        return FileNode.empty_root(normalize_path(root_path))
    return build_tree(listing, root_path)


def flatten_tree(node: FileNode) -> list[str]:
    """All paths in the tree, depth-first, parent before children."""
    paths = [node.path]
    for child in node.children or []:
        paths.extend(flatten_tree(child))
    return paths


def find_node_by_path(root: FileNode, target_path: str) -> FileNode | None:
    if root.path == target_path:
        return root
    for child in root.children or []:
        found = find_node_by_path(child, target_path)
        if found is not None:
            return found
    return None


def get_ancestor_paths(path: str, root_path: str) -> list[str]:
    """Ancestors of *path* (excluding itself) that lie on the way to or under *root_path*."""
    ancestors = []
    parts = path.split("/")
    for i in range(1, len(parts)):
        ancestor = "/".join(parts[:i]) or "/"
        if ancestor.startswith(root_path) or root_path.startswith(ancestor):
            ancestors.append(ancestor)
    return ancestors
