"""live canvas state kept in step with the framework tree.

positions the user dragged survive edits elsewhere in the tree: after a
relayout, any node whose path was already on the canvas keeps its old x/y.
switching layout strategy starts from fresh positions.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from .layouts import LayoutType, apply_layout
from .models import (
    ArrowType,
    CanvasConnection,
    CanvasNode,
    FrameworkNode,
    LineStyle,
    Relationship,
)

logger = logging.getLogger(__name__)


# --- configuration ---

MIN_ZOOM = 0.2
MAX_ZOOM = 2.0
ZOOM_STEP = 0.1

Positions = Mapping[str, Mapping[str, float]]

_RELATIONSHIP_FIELDS = {"from_node_id", "to_node_id", "label", "line_style", "line_color", "arrow_type"}


def clamp_zoom(value: float) -> float:
    # rounded so repeated 0.1 steps land on the bounds exactly
    return round(min(MAX_ZOOM, max(MIN_ZOOM, value)), 2)


class CanvasStateController:
    """positioned nodes, connections, relationships, zoom/pan and selection."""

    def __init__(
        self,
        tree: FrameworkNode,
        layout_type: LayoutType | str = LayoutType.TREE,
        saved_positions: Optional[Positions] = None,
        relationships: Optional[list[Relationship]] = None,
    ):
        if tree is None:
            raise ValueError("canvas needs a tree")
        self.layout_type = LayoutType.coerce(layout_type)
        self.saved_positions: dict[str, dict[str, float]] = {
            k: {"x": v["x"], "y": v["y"]} for k, v in (saved_positions or {}).items()
        }
        self.relationships: list[Relationship] = list(relationships or [])
        self.nodes: tuple[CanvasNode, ...] = ()
        self.connections: tuple[CanvasConnection, ...] = ()
        self.zoom = 1.0
        self.pan = (0.0, 0.0)
        self.selected_node: Optional[str] = None
        self._tree = tree
        self._render(tree, preserve=True)

    @property
    def tree(self) -> FrameworkNode:
        return self._tree

    # --- layout sync ---

    def sync(self, tree: FrameworkNode, layout_type: Optional[LayoutType | str] = None) -> bool:
        """bring the canvas up to date with tree. returns True if it relaid out.

        trees are compared by value, so an equal copy does not trigger work.
        """
        new_layout = self.layout_type if layout_type is None else LayoutType.coerce(layout_type)
        layout_changed = new_layout is not self.layout_type
        if not layout_changed and tree == self._tree:
            self._tree = tree
            return False

        if layout_changed:
            # stored positions belong to the previous strategy
            self.saved_positions = {}
        self.layout_type = new_layout
        self._tree = tree
        self._render(tree, preserve=not layout_changed)
        return True

    def set_layout(self, layout_type: LayoutType | str) -> bool:
        return self.sync(self._tree, layout_type)

    def re_layout(self) -> None:
        """auto-arrange: throw away every position and use the strategy's."""
        self.saved_positions = {}
        self._render(self._tree, preserve=False)

    def _render(self, tree: FrameworkNode, preserve: bool) -> None:
        result = apply_layout(tree, self.layout_type)
        if preserve:
            previous = {n.id: n for n in self.nodes}
            merged = []
            for node in result.nodes:
                if node.id in previous:
                    old = previous[node.id]
                    node = replace(node, x=old.x, y=old.y)
                elif node.id in self.saved_positions:
                    saved = self.saved_positions[node.id]
                    node = replace(node, x=saved["x"], y=saved["y"])
                merged.append(node)
            self.nodes = tuple(merged)
        else:
            self.nodes = tuple(result.nodes)
        self.connections = tuple(result.connections)
        if self.selected_node and self.get_node(self.selected_node) is None:
            self.selected_node = None
        logger.debug("rendered %d nodes with %s layout", len(self.nodes), self.layout_type.value)

    # --- positions ---

    def get_node(self, node_id: str) -> Optional[CanvasNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def update_node_position(self, node_id: str, x: float, y: float) -> bool:
        """move a node on the canvas. not part of tree undo history."""
        if self.get_node(node_id) is None:
            return False
        self.nodes = tuple(replace(n, x=x, y=y) if n.id == node_id else n for n in self.nodes)
        return True

    def get_positions(self) -> dict[str, dict[str, float]]:
        return {n.id: {"x": n.x, "y": n.y} for n in self.nodes}

    # --- view ---

    def select(self, node_id: Optional[str]) -> None:
        self.selected_node = node_id

    def zoom_in(self) -> float:
        self.zoom = clamp_zoom(self.zoom + ZOOM_STEP)
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom = clamp_zoom(self.zoom - ZOOM_STEP)
        return self.zoom

    def set_zoom(self, value: float) -> float:
        self.zoom = clamp_zoom(value)
        return self.zoom

    def set_pan(self, x: float, y: float) -> None:
        self.pan = (x, y)

    def reset_view(self) -> None:
        self.zoom = 1.0
        self.pan = (0.0, 0.0)

    # --- relationships ---

    def add_relationship(
        self,
        from_node_id: str,
        to_node_id: str,
        label: Optional[str] = None,
        line_style: LineStyle | str = LineStyle.SOLID,
        arrow_type: ArrowType | str = ArrowType.END,
        line_color: Optional[str] = None,
    ) -> Relationship:
        rel = Relationship.create(
            from_node_id,
            to_node_id,
            label=label,
            line_style=line_style,
            arrow_type=arrow_type,
            line_color=line_color,
        )
        self.relationships = [*self.relationships, rel]
        return rel

    def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        for rel in self.relationships:
            if rel.id == relationship_id:
                return rel
        return None

    def update_relationship(self, relationship_id: str, **updates: Any) -> bool:
        unknown = set(updates) - _RELATIONSHIP_FIELDS
        if unknown:
            raise ValueError(f"unknown relationship fields: {sorted(unknown)}")
        if "line_style" in updates:
            updates["line_style"] = LineStyle(updates["line_style"])
        if "arrow_type" in updates:
            updates["arrow_type"] = ArrowType(updates["arrow_type"])

        if self.get_relationship(relationship_id) is None:
            return False
        self.relationships = [
            replace(r, **updates) if r.id == relationship_id else r for r in self.relationships
        ]
        return True

    def delete_relationship(self, relationship_id: str) -> bool:
        remaining = [r for r in self.relationships if r.id != relationship_id]
        if len(remaining) == len(self.relationships):
            return False
        self.relationships = remaining
        return True

    def visible_relationships(self) -> list[Relationship]:
        """relationships whose endpoints are both on the canvas."""
        ids = {n.id for n in self.nodes}
        return [r for r in self.relationships if r.from_node_id in ids and r.to_node_id in ids]

    def prune_relationships(self) -> int:
        """delete relationships pointing at paths no longer on the canvas."""
        visible = self.visible_relationships()
        removed = len(self.relationships) - len(visible)
        self.relationships = visible
        if removed:
            logger.debug("pruned %d dangling relationships", removed)
        return removed

    # --- persistence ---

    def settings(self) -> dict:
        return {
            "layoutType": self.layout_type.value,
            "relationships": [r.to_dict() for r in self.relationships],
        }
