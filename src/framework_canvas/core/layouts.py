"""tree -> canvas layout strategies.

each strategy is a pure function of the tree: same input, same positions.
node ids are paths, so the output lines up with anything keyed by path.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .models import CanvasConnection, CanvasNode, FrameworkNode
from .paths import join_path


# --- configuration ---

NODE_WIDTH = 240
NODE_HEIGHT = 80
H_SPACING = 320
V_SPACING = 100
MARGIN = 100

ORG_LEAF_WIDTH = NODE_WIDTH + 60
ORG_MIN_WIDTH = NODE_WIDTH + 100

MIND_MAP_CENTER = (600, 400)
RADIAL_CENTER = (800, 500)
RADIAL_RADIUS = 300


class LayoutType(Enum):
    TREE = "tree"
    ORG_CHART = "org-chart"
    MIND_MAP = "mind-map"
    RADIAL = "radial"

    @classmethod
    def coerce(cls, value: Optional[LayoutType | str]) -> LayoutType:
        """map a stored setting to a layout, falling back to tree."""
        if isinstance(value, LayoutType):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.TREE


@dataclass
class LayoutResult:
    nodes: list[CanvasNode] = field(default_factory=list)
    connections: list[CanvasConnection] = field(default_factory=list)

    def positions(self) -> dict[str, tuple[float, float]]:
        return {n.id: (n.x, n.y) for n in self.nodes}


def _has_children(node: FrameworkNode) -> bool:
    return bool(node.children)


def _place(
    result: LayoutResult,
    node: FrameworkNode,
    node_id: str,
    parent_id: Optional[str],
    x: float,
    y: float,
) -> None:
    result.nodes.append(CanvasNode(
        id=node_id,
        node=node,
        x=x,
        y=y,
        width=NODE_WIDTH,
        height=NODE_HEIGHT,
        parent_id=parent_id,
    ))
    if parent_id is not None:
        result.connections.append(CanvasConnection(parent_id, node_id))


def _dedupe(connections: list[CanvasConnection]) -> list[CanvasConnection]:
    seen: set[tuple[str, str]] = set()
    unique = []
    for conn in connections:
        key = (conn.from_id, conn.to_id)
        if key not in seen:
            seen.add(key)
            unique.append(conn)
    return unique


# --- tree: left to right, parents centered on their children ---

def tree_layout(root: FrameworkNode) -> LayoutResult:
    result = LayoutResult()
    cursor = [float(MARGIN)]  # next free y for a leaf

    def process(node: FrameworkNode, parent_id: Optional[str], level: int) -> None:
        node_id = join_path(parent_id, node.name)
        x = MARGIN + level * H_SPACING

        if not _has_children(node):
            _place(result, node, node_id, parent_id, x, cursor[0])
            cursor[0] += NODE_HEIGHT + V_SPACING
            return

        child_ys = []
        for child in node.children:
            child_ys.append(cursor[0])
            process(child, node_id, level + 1)

        y = (child_ys[0] + child_ys[-1]) / 2
        _place(result, node, node_id, parent_id, x, y)
        for child in node.children:
            result.connections.append(CanvasConnection(node_id, join_path(node_id, child.name)))

    process(root, None, 0)
    result.connections = _dedupe(result.connections)
    return result


# --- org chart: top to bottom, each subtree gets a horizontal span ---

def _org_width(node: FrameworkNode) -> float:
    if not _has_children(node):
        return ORG_LEAF_WIDTH
    return max(ORG_LEAF_WIDTH, sum(_org_width(c) for c in node.children))


def org_chart_layout(root: FrameworkNode) -> LayoutResult:
    result = LayoutResult()

    def process(
        node: FrameworkNode,
        parent_id: Optional[str],
        level: int,
        x_offset: float,
        span: float,
    ) -> None:
        node_id = join_path(parent_id, node.name)
        x = x_offset + span / 2 - NODE_WIDTH / 2
        y = MARGIN + level * (NODE_HEIGHT + V_SPACING)
        _place(result, node, node_id, parent_id, x, y)

        if not _has_children(node):
            return

        widths = [_org_width(c) for c in node.children]
        child_x = x_offset + (span - sum(widths)) / 2
        for child, width in zip(node.children, widths):
            process(child, node_id, level + 1, child_x, width)
            child_x += width

    process(root, None, 0, MARGIN, max(_org_width(root), ORG_MIN_WIDTH))
    return result


# --- mind map: root in the middle, halves branching left and right ---

def _subtree_height(node: FrameworkNode) -> float:
    if not _has_children(node):
        return NODE_HEIGHT + V_SPACING
    return sum(_subtree_height(c) for c in node.children)


def mind_map_layout(root: FrameworkNode) -> LayoutResult:
    result = LayoutResult()
    cx, cy = MIND_MAP_CENTER
    _place(result, root, root.name, None, cx - NODE_WIDTH / 2, cy - NODE_HEIGHT / 2)

    if not _has_children(root):
        return result

    def column_x(direction: int, depth: int) -> float:
        if direction < 0:
            return cx - NODE_WIDTH / 2 - H_SPACING * depth
        return cx + NODE_WIDTH / 2 + H_SPACING * depth - NODE_WIDTH

    def process(children: list[FrameworkNode], parent_id: str, direction: int, top: float, depth: int) -> None:
        y = top
        for child in children:
            child_id = join_path(parent_id, child.name)
            height = _subtree_height(child)
            _place(result, child, child_id, parent_id, column_x(direction, depth), y + height / 2 - NODE_HEIGHT / 2)
            if _has_children(child):
                process(child.children, child_id, direction, y, depth + 1)
            y += height

    split = math.ceil(len(root.children) / 2)
    left, right = root.children[:split], root.children[split:]
    left_height = sum(_subtree_height(c) for c in left)
    right_height = sum(_subtree_height(c) for c in right)

    process(left, root.name, -1, cy - left_height / 2, 1)
    process(right, root.name, 1, cy - right_height / 2, 1)
    return result


# --- radial: concentric rings, each node owning a slice of its parent's arc ---

def radial_layout(root: FrameworkNode) -> LayoutResult:
    result = LayoutResult()
    cx, cy = RADIAL_CENTER
    _place(result, root, root.name, None, cx - NODE_WIDTH / 2, cy - NODE_HEIGHT / 2)

    def process(children: list[FrameworkNode], parent_id: str, level: int, start: float, end: float) -> None:
        radius = RADIAL_RADIUS * level
        step = (end - start) / len(children)
        for idx, child in enumerate(children):
            angle = start + step * (idx + 0.5)
            child_id = join_path(parent_id, child.name)
            x = cx + math.cos(angle) * radius - NODE_WIDTH / 2
            y = cy + math.sin(angle) * radius - NODE_HEIGHT / 2
            _place(result, child, child_id, parent_id, x, y)
            if _has_children(child):
                process(child.children, child_id, level + 1, start + step * idx, start + step * (idx + 1))

    if _has_children(root):
        process(root.children, root.name, 1, 0.0, 2 * math.pi)
    return result


LAYOUTS = {
    LayoutType.TREE: tree_layout,
    LayoutType.ORG_CHART: org_chart_layout,
    LayoutType.MIND_MAP: mind_map_layout,
    LayoutType.RADIAL: radial_layout,
}


def apply_layout(root: FrameworkNode, layout_type: LayoutType | str = LayoutType.TREE) -> LayoutResult:
    """lay out the whole tree with the given strategy."""
    if root is None:
        raise ValueError("cannot lay out an empty tree")
    return LAYOUTS[LayoutType.coerce(layout_type)](root)
