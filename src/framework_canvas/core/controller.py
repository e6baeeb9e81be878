"""stateful editing session over one framework document.

combines path resolution, the pure mutators and the history store, and
tracks dirty state, selection and the autosave debounce.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from . import mutations
from .debounce import CallLater, Debouncer
from .history import MAX_UNDO_HISTORY, HistoryStore
from .models import FrameworkNode, NodeType, clear_irrelevant_fields
from .mutations import MovePosition
from .paths import is_descendant_path, parent_path, resolve

logger = logging.getLogger(__name__)


# --- configuration ---

DEFAULT_AUTOSAVE_DELAY = 2.0  # seconds

TreeListener = Callable[[FrameworkNode], None]
AutosaveCallback = Callable[[FrameworkNode], Optional[bool]]


class TreeDataController:
    """editing session: current tree, undo history, dirty flag, selection.

    edits return True when they changed the tree and False when they were
    no-ops (missing path, root deletion, cycle). only real changes are
    recorded in history, mark the document dirty and re-arm autosave.

    the autosave callback receives the current tree and reports success by
    returning True; anything else (including an exception) leaves the
    document dirty so the next edit or a manual save tries again.
    """

    def __init__(
        self,
        tree: FrameworkNode,
        document_id: Optional[str] = None,
        on_autosave: Optional[AutosaveCallback] = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
        max_history: int = MAX_UNDO_HISTORY,
        call_later: Optional[CallLater] = None,
    ):
        if tree is None:
            raise ValueError("controller needs a tree")
        self._history: HistoryStore[FrameworkNode] = HistoryStore(tree, max_history=max_history)
        self.document_id = document_id
        self.has_unsaved_changes = False
        self.selected_path: Optional[str] = None
        self.editing_path: Optional[str] = None
        self.on_autosave = on_autosave
        self._autosave = Debouncer(autosave_delay, self._run_autosave, call_later=call_later)
        self._listeners: list[TreeListener] = []

    # --- state ---

    @property
    def tree(self) -> FrameworkNode:
        return self._history.present

    @property
    def history(self) -> HistoryStore[FrameworkNode]:
        return self._history

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    def find(self, path: str) -> Optional[FrameworkNode]:
        found = resolve(self.tree, path)
        return found.node if found else None

    @property
    def selected_node(self) -> Optional[FrameworkNode]:
        if not self.selected_path:
            return None
        return self.find(self.selected_path)

    def select(self, path: Optional[str]) -> None:
        self.selected_path = path

    def start_editing(self, path: Optional[str]) -> None:
        self.editing_path = path

    def stop_editing(self) -> None:
        self.editing_path = None

    def subscribe(self, listener: TreeListener) -> None:
        """call listener with the new tree after every change."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: TreeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- edits ---

    def update_node(self, path: str, updates: Mapping[str, Any]) -> bool:
        """merge fields into a node. a type change clears fields the new type doesn't use."""
        updates = dict(updates)
        if isinstance(updates.get("type"), str):
            updates["type"] = NodeType(updates["type"])

        def produce(tree: FrameworkNode) -> FrameworkNode:
            new_tree = mutations.update_node(tree, path, updates)
            if new_tree is not tree and "type" in updates:
                # locate by position: a rename may now collide with an earlier sibling
                found = resolve(tree, path)
                if found.parent is None:
                    node = new_tree
                else:
                    node = resolve(new_tree, parent_path(path)).node.children[found.index]
                clear_irrelevant_fields(node)
            return new_tree

        return self._commit(produce, f"update {path}")

    def add_child(self, parent_path: str, node: FrameworkNode) -> bool:
        return self._commit(lambda t: mutations.add_child(t, parent_path, node), f"add child to {parent_path}")

    def add_sibling(self, path: str, node: FrameworkNode) -> bool:
        return self._commit(lambda t: mutations.add_sibling(t, path, node), f"add sibling after {path}")

    def delete_node(self, path: str) -> bool:
        if not self._commit(lambda t: mutations.delete_subtree(t, path), f"delete {path}"):
            return False
        if self.selected_path and (self.selected_path == path or is_descendant_path(self.selected_path, path)):
            self.selected_path = None
        if self.editing_path and (self.editing_path == path or is_descendant_path(self.editing_path, path)):
            self.editing_path = None
        return True

    def move_node(self, source_path: str, target_path: str, position: MovePosition | str) -> bool:
        return self._commit(
            lambda t: mutations.move_subtree(t, source_path, target_path, position),
            f"move {source_path} {MovePosition(position).value} {target_path}",
        )

    def undo(self) -> bool:
        if not self._history.undo():
            return False
        self._changed("undo")
        return True

    def redo(self) -> bool:
        if not self._history.redo():
            return False
        self._changed("redo")
        return True

    # --- document lifecycle ---

    def load_document(self, tree: FrameworkNode, document_id: Optional[str] = None) -> None:
        """swap in another document. not undoable."""
        if tree is None:
            raise ValueError("cannot load an empty tree")
        self._autosave.cancel()
        self._history.reset(tree)
        self.document_id = document_id
        self.has_unsaved_changes = False
        self.selected_path = None
        self.editing_path = None
        logger.debug("loaded document %s", document_id)
        self._notify()

    def mark_saved(self) -> None:
        """record that the current tree reached the store."""
        self.has_unsaved_changes = False

    def seal_history(self) -> None:
        """drop undo/redo steps but keep the current tree."""
        self._history.clear()

    def flush_autosave(self) -> bool:
        """run a pending autosave now (shutdown, document switch)."""
        return self._autosave.flush()

    def cancel_autosave(self) -> None:
        self._autosave.cancel()

    # --- internals ---

    def _commit(self, producer: Callable[[FrameworkNode], FrameworkNode], description: str) -> bool:
        if not self._history.push(producer):
            logger.debug("no-op: %s", description)
            return False
        self._changed(description)
        return True

    def _changed(self, description: str) -> None:
        logger.debug("tree changed: %s", description)
        self.has_unsaved_changes = True
        if self.document_id is not None and self.on_autosave is not None:
            self._autosave.schedule()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.tree)

    def _run_autosave(self) -> None:
        if not self.has_unsaved_changes or self.on_autosave is None:
            return
        try:
            saved = self.on_autosave(self.tree)
        except Exception:
            logger.warning("autosave of %s failed", self.document_id, exc_info=True)
            return
        if saved:
            self.has_unsaved_changes = False
        else:
            logger.warning("autosave of %s reported failure", self.document_id)
