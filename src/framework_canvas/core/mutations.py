"""pure structural edits on a framework tree.

every function deep-copies its input and returns the edited copy. when the
edit cannot apply (unknown path, root deletion, cycle) the original object
is returned untouched, and callers detect the no-op with `is`.
"""

from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Any, Mapping

from .models import NODE_FIELDS, FrameworkNode, check_name
from .paths import is_descendant_path, resolve

logger = logging.getLogger(__name__)


class MovePosition(Enum):
    BEFORE = "before"
    AFTER = "after"
    INSIDE = "inside"


def update_node(tree: FrameworkNode, path: str, updates: Mapping[str, Any]) -> FrameworkNode:
    """merge updates into the node at path. children are not touched unless named."""
    unknown = set(updates) - NODE_FIELDS
    if unknown:
        raise ValueError(f"unknown node fields: {sorted(unknown)}")
    if "name" in updates:
        check_name(updates["name"])

    new_tree = copy.deepcopy(tree)
    found = resolve(new_tree, path)
    if found is None:
        logger.debug("update_node: no node at %s", path)
        return tree

    for key, value in updates.items():
        setattr(found.node, key, copy.deepcopy(value))
    return new_tree


def add_child(tree: FrameworkNode, parent_path: str, new_node: FrameworkNode) -> FrameworkNode:
    """append new_node to the children of the node at parent_path."""
    new_tree = copy.deepcopy(tree)
    found = resolve(new_tree, parent_path)
    if found is None:
        logger.debug("add_child: no node at %s", parent_path)
        return tree

    if found.node.children is None:
        found.node.children = []
    found.node.children.append(copy.deepcopy(new_node))
    return new_tree


def add_sibling(tree: FrameworkNode, path: str, new_node: FrameworkNode) -> FrameworkNode:
    """insert new_node right after the node at path. the root has no siblings."""
    new_tree = copy.deepcopy(tree)
    found = resolve(new_tree, path)
    if found is None or found.parent is None:
        logger.debug("add_sibling: no sibling slot at %s", path)
        return tree

    found.parent.children.insert(found.index + 1, copy.deepcopy(new_node))
    return new_tree


def delete_subtree(tree: FrameworkNode, path: str) -> FrameworkNode:
    """remove the node at path and everything under it. the root stays."""
    new_tree = copy.deepcopy(tree)
    found = resolve(new_tree, path)
    if found is None or found.parent is None:
        logger.debug("delete_subtree: cannot delete %s", path)
        return tree

    del found.parent.children[found.index]
    return new_tree


def move_subtree(
    tree: FrameworkNode,
    source_path: str,
    target_path: str,
    position: MovePosition | str,
) -> FrameworkNode:
    """detach the subtree at source_path and reinsert it relative to target_path.

    "inside" appends to the target's children; "before"/"after" make it the
    target's sibling. moving the root, onto itself, or into its own subtree
    is a no-op, as is placing a sibling next to the root.
    """
    position = MovePosition(position)
    if source_path == target_path or is_descendant_path(target_path, source_path):
        logger.debug("move_subtree: %s -> %s would create a cycle", source_path, target_path)
        return tree

    new_tree = copy.deepcopy(tree)
    source = resolve(new_tree, source_path)
    if source is None or source.parent is None or resolve(new_tree, target_path) is None:
        logger.debug("move_subtree: cannot move %s -> %s", source_path, target_path)
        return tree

    del source.parent.children[source.index]

    # indices shift once the source is gone, so look the target up again
    target = resolve(new_tree, target_path)
    if target is None:
        return tree
    if position is MovePosition.INSIDE:
        if target.node.children is None:
            target.node.children = []
        target.node.children.append(source.node)
    elif target.parent is None:
        logger.debug("move_subtree: root %s has no siblings", target_path)
        return tree
    else:
        offset = 0 if position is MovePosition.BEFORE else 1
        target.parent.children.insert(target.index + offset, source.node)
    return new_tree
