"""tests for canvas layout strategies."""

import math

import pytest

from framework_canvas.core.layouts import (
    NODE_HEIGHT,
    NODE_WIDTH,
    LayoutType,
    apply_layout,
    mind_map_layout,
    org_chart_layout,
    radial_layout,
    tree_layout,
)
from framework_canvas.core.models import FrameworkNode


def leaf(name):
    return FrameworkNode(name=name)


def node(name, *children):
    return FrameworkNode(name=name, children=list(children))


class TestTreeLayout:
    """tests for the left-to-right tree layout."""

    def test_leaves_stack_and_parent_centers(self, flat_tree):
        pos = tree_layout(flat_tree).positions()
        assert pos["Root/A"] == (420, 100)
        assert pos["Root/B"] == (420, 280)
        assert pos["Root"] == (100, 190)

    def test_single_node(self):
        result = tree_layout(leaf("Solo"))
        assert result.positions() == {"Solo": (100, 100)}
        assert result.connections == []

    def test_connections_unique(self, sample_tree):
        result = tree_layout(sample_tree)
        pairs = [(c.from_id, c.to_id) for c in result.connections]
        assert len(pairs) == len(set(pairs))
        assert ("Root", "Root/My Node") in pairs
        assert ("Root/My Node", "Root/My Node/subnode") in pairs

    def test_empty_container_is_a_leaf(self):
        tree = node("R", node("empty"), leaf("b"))
        pos = tree_layout(tree).positions()
        assert pos["R/empty"] == (420, 100)
        assert pos["R/b"] == (420, 280)

    def test_sizes_and_parent_ids(self, sample_tree):
        nodes = {n.id: n for n in tree_layout(sample_tree).nodes}
        assert nodes["Root"].parent_id is None
        assert nodes["Root/My Node/subnode"].parent_id == "Root/My Node"
        assert all(n.width == NODE_WIDTH and n.height == NODE_HEIGHT for n in nodes.values())


class TestOrgChartLayout:
    """tests for the top-down org chart."""

    def test_levels_and_centering(self, flat_tree):
        pos = org_chart_layout(flat_tree).positions()
        # two leaves of width 300 give a 600 span starting at 100
        assert pos["Root"] == (100 + 300 - 120, 100)
        assert pos["Root/A"] == (100 + 150 - 120, 280)
        assert pos["Root/B"] == (400 + 150 - 120, 280)

    def test_single_node_uses_min_width(self):
        pos = org_chart_layout(leaf("Solo")).positions()
        assert pos["Solo"] == (100 + 170 - 120, 100)

    def test_single_child_centered_under_parent(self):
        pos = org_chart_layout(node("R", leaf("only"))).positions()
        assert pos["R"][0] == pos["R/only"][0]


class TestMindMapLayout:
    """tests for the two-sided mind map."""

    def test_root_centered(self, flat_tree):
        pos = mind_map_layout(flat_tree).positions()
        assert pos["Root"] == (600 - 120, 400 - 40)

    def test_split_left_then_right(self):
        tree = node("R", leaf("a"), leaf("b"), leaf("c"))
        pos = mind_map_layout(tree).positions()
        # ceil(3/2) = 2 children on the left
        assert pos["R/a"][0] == 600 - 120 - 320
        assert pos["R/b"][0] == 600 - 120 - 320
        assert pos["R/c"][0] == 600 + 120 + 320 - 240

    def test_bands_stack_from_center(self):
        tree = node("R", leaf("a"), leaf("b"), leaf("c"))
        pos = mind_map_layout(tree).positions()
        # left side holds two 180 bands starting at 400 - 180
        assert pos["R/a"][1] == 220 + 90 - 40
        assert pos["R/b"][1] == 400 + 90 - 40
        assert pos["R/c"][1] == 310 + 90 - 40

    def test_grandchildren_next_column(self):
        tree = node("R", node("a", leaf("x")))
        pos = mind_map_layout(tree).positions()
        assert pos["R/a/x"][0] == 600 - 120 - 640


class TestRadialLayout:
    """tests for the radial layout."""

    def test_root_centered(self, flat_tree):
        assert radial_layout(flat_tree).positions()["Root"] == (800 - 120, 500 - 40)

    def test_children_on_first_ring(self):
        tree = node("R", leaf("a"), leaf("b"))
        pos = radial_layout(tree).positions()
        for name, angle in (("a", math.pi / 2), ("b", 3 * math.pi / 2)):
            x, y = pos[f"R/{name}"]
            assert x == pytest.approx(800 + 300 * math.cos(angle) - 120)
            assert y == pytest.approx(500 + 300 * math.sin(angle) - 40)

    def test_grandchildren_on_second_ring_within_slice(self):
        tree = node("R", node("a", leaf("x")), leaf("b"))
        x, y = radial_layout(tree).positions()["R/a/x"]
        cx, cy = x + 120 - 800, y + 40 - 500
        assert math.hypot(cx, cy) == pytest.approx(600)
        assert 0 <= math.atan2(cy, cx) <= math.pi


class TestApplyLayout:
    """tests for apply_layout()."""

    @pytest.mark.parametrize("layout", list(LayoutType))
    def test_deterministic(self, sample_tree, layout):
        first = apply_layout(sample_tree, layout)
        second = apply_layout(sample_tree, layout)
        assert first.positions() == second.positions()
        assert first.connections == second.connections

    @pytest.mark.parametrize("layout", list(LayoutType))
    def test_every_node_placed(self, sample_tree, layout):
        ids = {n.id for n in apply_layout(sample_tree, layout).nodes}
        assert ids == {"Root", "Root/My Node", "Root/My Node/subnode", "Root/Other", "Root/Ideas"}

    def test_string_and_unknown_types(self, flat_tree):
        assert apply_layout(flat_tree, "org-chart").positions() == org_chart_layout(flat_tree).positions()
        assert apply_layout(flat_tree, "spiral").positions() == tree_layout(flat_tree).positions()

    def test_none_tree_raises(self):
        with pytest.raises(ValueError):
            apply_layout(None)
