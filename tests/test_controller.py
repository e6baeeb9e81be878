"""tests for the tree editing session."""

import pytest

from framework_canvas.core.controller import TreeDataController
from framework_canvas.core.models import FrameworkNode, NodeType


def names(node):
    return [c.name for c in node.children]


@pytest.fixture
def saves():
    return []


@pytest.fixture
def controller(sample_tree, clock, saves):
    def on_autosave(tree):
        saves.append(tree)
        return True

    return TreeDataController(
        sample_tree,
        document_id="doc1",
        on_autosave=on_autosave,
        autosave_delay=2.0,
        call_later=clock.call_later,
    )


class TestEdits:
    """tests for controller edit operations."""

    def test_update_marks_dirty_and_records_history(self, controller):
        assert controller.update_node("Root/Other", {"color": "blue"})
        assert controller.find("Root/Other").color == "blue"
        assert controller.has_unsaved_changes
        assert controller.history.history_length == 1

    def test_noop_edit_leaves_state_alone(self, controller, clock):
        """missing paths and no-change edits do not dirty or arm autosave."""
        assert not controller.update_node("Root/Nope", {"color": "blue"})
        assert not controller.update_node("Root/Other", {"url": "https://example.com"})
        assert not controller.delete_node("Root")
        assert not controller.has_unsaved_changes
        assert not controller.can_undo
        assert clock.pending == []

    def test_type_change_clears_irrelevant_fields(self, controller):
        controller.update_node("Root/Other", {"type": "task"})
        node = controller.find("Root/Other")
        assert node.type == NodeType.TASK
        assert node.url is None

    def test_type_change_with_rename(self, controller):
        controller.update_node("Root/Other", {"type": NodeType.NOTE, "name": "Note", "description": "d"})
        node = controller.find("Root/Note")
        assert node.url is None
        assert node.description == "d"

    def test_unknown_field_raises(self, controller):
        with pytest.raises(ValueError):
            controller.update_node("Root", {"bogus": 1})

    def test_type_change_rename_onto_duplicate_name(self, clock):
        """fields are cleared on the edited node, not on an earlier sibling with the new name."""
        tree = FrameworkNode.create("R", NodeType.FOLDER, children=[
            FrameworkNode.create("dup", NodeType.TEXT, content="c1"),
            FrameworkNode.create("x", NodeType.TEXT, content="c2"),
        ])
        controller = TreeDataController(tree, call_later=clock.call_later)
        assert controller.update_node("R/x", {"name": "dup", "type": "task"})
        first, edited = controller.tree.children
        assert edited.type == NodeType.TASK
        assert edited.content is None
        assert first.type == NodeType.TEXT
        assert first.content == "c1"

    def test_delete_clears_selection_under_path(self, controller):
        controller.select("Root/My Node/subnode")
        controller.start_editing("Root/My Node")
        assert controller.delete_node("Root/My Node")
        assert controller.selected_path is None
        assert controller.editing_path is None

    def test_delete_keeps_unrelated_selection(self, controller):
        controller.select("Root/Other")
        controller.delete_node("Root/My Node")
        assert controller.selected_path == "Root/Other"
        assert controller.selected_node.name == "Other"

    def test_undo_redo(self, controller, sample_tree):
        controller.add_child("Root", FrameworkNode(name="New"))
        assert controller.undo()
        assert controller.tree == sample_tree
        assert controller.can_redo
        assert controller.redo()
        assert names(controller.tree)[-1] == "New"
        assert not controller.redo()

    def test_listeners_see_new_tree(self, controller):
        seen = []
        controller.subscribe(seen.append)
        controller.add_child("Root/Ideas", FrameworkNode(name="x"))
        assert seen == [controller.tree]
        controller.unsubscribe(seen.append)
        controller.undo()
        assert len(seen) == 1

    def test_none_tree_rejected(self):
        with pytest.raises(ValueError):
            TreeDataController(None)


class TestEndToEnd:
    """add, add sibling, move and delete in one session."""

    def test_scenario(self, clock):
        tree = FrameworkNode.create("Root", NodeType.FOLDER)
        controller = TreeDataController(tree, call_later=clock.call_later)

        assert not controller.has_unsaved_changes
        assert controller.history.history_length == 0

        assert controller.add_child("Root", FrameworkNode(name="A"))
        assert names(controller.tree) == ["A"]
        assert controller.has_unsaved_changes
        assert controller.history.history_length == 1

        assert controller.add_sibling("Root/A", FrameworkNode(name="B"))
        assert names(controller.tree) == ["A", "B"]
        assert controller.has_unsaved_changes
        assert controller.history.history_length == 2

        assert controller.move_node("Root/B", "Root/A", "before")
        assert names(controller.tree) == ["B", "A"]
        assert controller.has_unsaved_changes
        assert controller.history.history_length == 3

        assert controller.delete_node("Root/A")
        assert names(controller.tree) == ["B"]
        assert controller.has_unsaved_changes
        assert controller.history.history_length == 4

        for _ in range(4):
            controller.undo()
        assert controller.tree == tree


class TestAutosave:
    """tests for the debounced autosave."""

    def test_fires_once_after_quiet_period(self, controller, clock, saves):
        controller.update_node("Root/Other", {"color": "a"})
        clock.advance(1.0)
        controller.update_node("Root/Other", {"color": "b"})
        clock.advance(1.9)
        assert saves == []
        clock.advance(0.1)
        assert len(saves) == 1
        assert saves[0].children[1].color == "b"
        assert not controller.has_unsaved_changes

    def test_failed_save_stays_dirty(self, sample_tree, clock):
        controller = TreeDataController(
            sample_tree, document_id="doc1", on_autosave=lambda tree: False, call_later=clock.call_later,
        )
        controller.update_node("Root", {"color": "x"})
        clock.advance(5)
        assert controller.has_unsaved_changes

    def test_raising_save_stays_dirty(self, sample_tree, clock):
        def boom(tree):
            raise OSError("disk full")

        controller = TreeDataController(sample_tree, document_id="doc1", on_autosave=boom, call_later=clock.call_later)
        controller.update_node("Root", {"color": "x"})
        clock.advance(5)
        assert controller.has_unsaved_changes

    def test_no_document_id_no_autosave(self, sample_tree, clock, saves):
        controller = TreeDataController(sample_tree, on_autosave=saves.append, call_later=clock.call_later)
        controller.update_node("Root", {"color": "x"})
        assert not controller.autosave_pending
        assert clock.pending == []

    def test_load_document_cancels_pending(self, controller, clock, saves):
        controller.update_node("Root", {"color": "x"})
        controller.load_document(FrameworkNode(name="Other doc"), "doc2")
        clock.advance(5)
        assert saves == []
        assert not controller.has_unsaved_changes
        assert not controller.can_undo
        assert controller.document_id == "doc2"

    def test_flush(self, controller, saves):
        controller.update_node("Root", {"color": "x"})
        assert controller.flush_autosave()
        assert len(saves) == 1
        assert not controller.autosave_pending

    def test_mark_saved_and_seal(self, controller):
        controller.update_node("Root", {"color": "x"})
        controller.mark_saved()
        controller.seal_history()
        assert not controller.has_unsaved_changes
        assert not controller.can_undo
        assert controller.tree.color == "x"
