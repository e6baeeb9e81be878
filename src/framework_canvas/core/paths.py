"""path resolution over a framework tree.

a path is the slash-joined chain of node names from the root. it is the
only identity a node has, so every lookup re-walks the tree it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from .models import PATH_SEPARATOR, FrameworkNode

SEPARATOR = PATH_SEPARATOR


@dataclass(frozen=True)
class Resolution:
    """a resolved node, its parent (None for the root) and sibling index."""

    node: FrameworkNode
    parent: Optional[FrameworkNode]
    index: int


def split_path(path: str) -> list[str]:
    return path.split(SEPARATOR)


def join_path(parent: Optional[str], name: str) -> str:
    return f"{parent}{SEPARATOR}{name}" if parent else name


def parent_path(path: str) -> Optional[str]:
    """path of the parent, or None for a single-segment path."""
    head, sep, _ = path.rpartition(SEPARATOR)
    return head if sep else None


def is_descendant_path(path: str, ancestor: str) -> bool:
    """True if path lies strictly under ancestor."""
    return path.startswith(ancestor + SEPARATOR)


def resolve(root: FrameworkNode, path: str) -> Optional[Resolution]:
    """find the node at path. returns None if any segment is missing.

    siblings sharing a name are ambiguous; the first one wins.
    """
    if root is None:
        raise ValueError("cannot resolve a path against an empty tree")

    parts = split_path(path)
    if parts[0] != root.name:
        return None
    if len(parts) == 1:
        return Resolution(node=root, parent=None, index=0)

    parent = root
    node = root
    index = 0
    for segment in parts[1:]:
        if not node.children:
            return None
        for i, child in enumerate(node.children):
            if child.name == segment:
                parent, node, index = node, child, i
                break
        else:
            return None
    return Resolution(node=node, parent=parent, index=index)


def iter_paths(root: FrameworkNode, prefix: Optional[str] = None) -> Iterator[tuple[str, FrameworkNode]]:
    """yield (path, node) pairs in pre-order."""
    path = join_path(prefix, root.name)
    yield path, root
    for child in root.children or ():
        yield from iter_paths(child, path)
