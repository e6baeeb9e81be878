"""fastapi server for framework canvas.

exposes the tree editing session and canvas state as REST endpoints for
the web frontend. node paths contain slashes, so they travel as query
parameters or in request bodies, never in the url path.
"""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import BaseModel

from ..core.canvas_state import CanvasStateController
from ..core.controller import DEFAULT_AUTOSAVE_DELAY, TreeDataController
from ..core.io import (
    InvalidFrameworkError,
    export_document,
    export_markdown,
    export_mermaid,
    export_outline,
    parse_import,
    tree_statistics,
    validate_framework_node,
)
from ..core.layouts import LayoutType
from ..core.link_preview import LinkPreviewError, LinkPreviewFetcher
from ..core.models import (
    CONTAINER_TYPES,
    CanvasNode,
    FrameworkNode,
    NodeType,
    Relationship,
    parse_node_fields,
)
from ..core.search import all_paths, search
from ..core.store import Document, DocumentStore, ImageStore, JsonFileStore, StoreError

logger = logging.getLogger(__name__)


# --- pydantic models for api ---

class DocumentCreate(BaseModel):
    """request to create a new document."""
    name: str
    description: Optional[str] = None
    root_name: Optional[str] = None  # defaults to the document name
    root_type: str = "folder"


class ImportRequest(BaseModel):
    """request to import a json framework (bare node or export envelope)."""
    document: Any
    name: Optional[str] = None


class NodeUpdate(BaseModel):
    """partial node fields; null clears a field."""
    path: str
    fields: dict[str, Any]


class NodeInsert(BaseModel):
    """request to add a child or sibling."""
    path: str
    node: dict[str, Any]


class NodeMove(BaseModel):
    """request to move a subtree."""
    source_path: str
    target_path: str
    position: str = "inside"


class PathRequest(BaseModel):
    path: Optional[str] = None


class LayoutRequest(BaseModel):
    layout_type: str


class PositionUpdate(BaseModel):
    id: str
    x: float
    y: float


class PanRequest(BaseModel):
    x: float
    y: float


class RelationshipCreate(BaseModel):
    from_node_id: str
    to_node_id: str
    label: Optional[str] = None
    line_style: str = "solid"
    arrow_type: str = "end"
    line_color: Optional[str] = None


class RelationshipUpdate(BaseModel):
    from_node_id: Optional[str] = None
    to_node_id: Optional[str] = None
    label: Optional[str] = None
    line_style: Optional[str] = None
    arrow_type: Optional[str] = None
    line_color: Optional[str] = None


class LinkPreviewRequest(BaseModel):
    """fetch a preview; with a path, also store it on that link node."""
    url: str
    path: Optional[str] = None


class TreeResponse(BaseModel):
    """tree editing state in api response."""
    document_id: Optional[str]
    name: Optional[str]
    data: dict
    can_undo: bool
    can_redo: bool
    is_dirty: bool
    selected_path: Optional[str] = None
    editing_path: Optional[str] = None
    last_saved_at: Optional[str] = None


class CanvasNodeResponse(BaseModel):
    id: str
    name: str
    type: Optional[str]
    x: float
    y: float
    width: float
    height: float
    parent_id: Optional[str]

    @classmethod
    def from_node(cls, node: CanvasNode) -> "CanvasNodeResponse":
        return cls(
            id=node.id,
            name=node.node.name,
            type=node.node.type.value if node.node.type else None,
            x=node.x,
            y=node.y,
            width=node.width,
            height=node.height,
            parent_id=node.parent_id,
        )


class RelationshipResponse(BaseModel):
    id: str
    from_node_id: str
    to_node_id: str
    label: Optional[str]
    line_style: str
    arrow_type: str
    line_color: Optional[str]

    @classmethod
    def from_relationship(cls, rel: Relationship) -> "RelationshipResponse":
        return cls(
            id=rel.id,
            from_node_id=rel.from_node_id,
            to_node_id=rel.to_node_id,
            label=rel.label,
            line_style=rel.line_style.value,
            arrow_type=rel.arrow_type.value,
            line_color=rel.line_color,
        )


class CanvasResponse(BaseModel):
    """canvas state in api response."""
    layout_type: str
    nodes: list[CanvasNodeResponse]
    connections: list[dict[str, str]]
    relationships: list[RelationshipResponse]
    zoom: float
    pan: dict[str, float]
    selected_node: Optional[str]


class SearchResponse(BaseModel):
    query: str
    matches: list[str]
    expand: list[str]
    count: int


class DocumentListItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: str
    updated_at: str


# --- app state ---

class AppState:
    """the open document, its editing session and canvas, plus collaborators."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        image_store: Optional[ImageStore] = None,
        preview_fetcher: Optional[LinkPreviewFetcher] = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ):
        self.store: DocumentStore = store if store is not None else JsonFileStore()
        self.image_store = image_store if image_store is not None else ImageStore()
        self.preview_fetcher = preview_fetcher if preview_fetcher is not None else LinkPreviewFetcher()
        self.autosave_delay = autosave_delay

        self.document: Optional[Document] = None
        self.controller: Optional[TreeDataController] = None
        self.canvas: Optional[CanvasStateController] = None
        self._canvas_dirty = False
        self._last_saved_at: Optional[str] = None

    @property
    def is_dirty(self) -> bool:
        """check if document has unsaved tree or canvas changes."""
        if self.controller is None:
            return False
        return self.controller.has_unsaved_changes or self._canvas_dirty

    def mark_canvas_dirty(self) -> None:
        self._canvas_dirty = True

    def open_document(self, document: Document) -> None:
        """make document the active one, wiring controller and canvas together."""
        if self.controller is not None:
            self.controller.cancel_autosave()

        settings = document.canvas_settings or {}
        self.document = document
        self.canvas = CanvasStateController(
            document.data,
            layout_type=settings.get("layoutType", "tree"),
            saved_positions=document.canvas_positions,
            relationships=[Relationship.from_dict(r) for r in settings.get("relationships", [])],
        )
        self.controller = TreeDataController(
            document.data,
            document_id=document.id,
            on_autosave=self._autosave if self.autosave_delay > 0 else None,
            autosave_delay=self.autosave_delay,
        )
        self.controller.subscribe(self.canvas.sync)
        self._canvas_dirty = False
        logger.info("opened document %s (%s)", document.id, document.name)

    def save(self) -> bool:
        """write tree, positions and settings to the store. returns True if saved."""
        if self.document is None or self.controller is None or self.canvas is None:
            return False
        self.document.data = self.controller.tree
        self.document.canvas_positions = self.canvas.get_positions()
        self.document.canvas_settings = self.canvas.settings()
        try:
            self.store.save(self.document)
        except StoreError as e:
            logger.warning("save of %s failed: %s", self.document.id, e)
            return False
        self.controller.mark_saved()
        self.controller.cancel_autosave()
        self._canvas_dirty = False
        self._last_saved_at = datetime.now().isoformat()
        return True

    def save_if_dirty(self) -> bool:
        if not self.is_dirty:
            return False
        return self.save()

    def _autosave(self, tree: FrameworkNode) -> bool:
        logger.debug("autosaving %s", self.document.id if self.document else None)
        return self.save()


state = AppState()


def _require_session() -> tuple[TreeDataController, CanvasStateController]:
    if state.controller is None or state.canvas is None:
        raise HTTPException(status_code=404, detail="no document loaded")
    return state.controller, state.canvas


def _tree_response() -> TreeResponse:
    controller, _ = _require_session()
    return TreeResponse(
        document_id=state.document.id if state.document else None,
        name=state.document.name if state.document else None,
        data=controller.tree.to_dict(),
        can_undo=controller.can_undo,
        can_redo=controller.can_redo,
        is_dirty=state.is_dirty,
        selected_path=controller.selected_path,
        editing_path=controller.editing_path,
        last_saved_at=state._last_saved_at,
    )


def _canvas_response() -> CanvasResponse:
    _, canvas = _require_session()
    return CanvasResponse(
        layout_type=canvas.layout_type.value,
        nodes=[CanvasNodeResponse.from_node(n) for n in canvas.nodes],
        connections=[c.to_dict() for c in canvas.connections],
        relationships=[RelationshipResponse.from_relationship(r) for r in canvas.visible_relationships()],
        zoom=canvas.zoom,
        pan={"x": canvas.pan[0], "y": canvas.pan[1]},
        selected_node=canvas.selected_node,
    )


def _node_from_payload(payload: dict) -> FrameworkNode:
    try:
        validate_framework_node(payload)
        node = FrameworkNode.from_dict(payload)
    except (InvalidFrameworkError, ValueError, TypeError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    if node.type in CONTAINER_TYPES and node.children is None:
        node.children = []
    return node


def _edit_or_400(applied: bool, detail: str) -> TreeResponse:
    if not applied:
        raise HTTPException(status_code=400, detail=detail)
    return _tree_response()


# --- lifespan ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # shutdown: save any pending changes
    if state.controller is not None:
        state.controller.cancel_autosave()
    state.save_if_dirty()


# --- app ---

app = FastAPI(
    title="framework canvas api",
    description="REST API for editing framework trees and their canvas",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- endpoints ---

@app.get("/health")
async def health():
    """health check."""
    return {"status": "ok"}


@app.get("/status")
async def status():
    """current document, dirty state and autosave info."""
    return {
        "has_document": state.document is not None,
        "document_id": state.document.id if state.document else None,
        "document_name": state.document.name if state.document else None,
        "is_dirty": state.is_dirty,
        "autosave_pending": state.controller.autosave_pending if state.controller else False,
        "autosave_delay": state.autosave_delay,
        "last_saved_at": state._last_saved_at,
    }


# --- documents ---

@app.get("/documents", response_model=list[DocumentListItem])
async def list_documents():
    """list stored documents, most recent first."""
    return [DocumentListItem(**d) for d in state.store.list_documents()]


@app.post("/documents", response_model=TreeResponse)
async def create_document(req: DocumentCreate):
    """create and open a new document with a single root node."""
    try:
        root = FrameworkNode.create(req.root_name or req.name, NodeType(req.root_type))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    state.save_if_dirty()
    state.open_document(Document.create(req.name, root, req.description))
    state.mark_canvas_dirty()
    return _tree_response()


@app.post("/documents/{document_id}/load", response_model=TreeResponse)
async def load_document(document_id: str):
    """open a stored document."""
    state.save_if_dirty()
    try:
        document = state.store.load(document_id)
    except StoreError as e:
        raise HTTPException(status_code=404, detail=str(e))
    state.open_document(document)
    return _tree_response()


@app.delete("/documents/{document_id}")
async def delete_document(document_id: str):
    """delete a stored document. the open one is closed first."""
    try:
        state.store.delete(document_id)
    except StoreError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if state.document is not None and state.document.id == document_id:
        state.controller.cancel_autosave()
        state.document = None
        state.controller = None
        state.canvas = None
    return {"deleted": document_id}


@app.post("/document/save")
async def save_document():
    """save the open document now."""
    _require_session()
    if not state.save():
        raise HTTPException(status_code=500, detail="save failed")
    return {"saved": state.document.id, "is_dirty": False, "last_saved_at": state._last_saved_at}


@app.post("/document/import", response_model=TreeResponse)
async def import_document(req: ImportRequest):
    """import a json framework as a new document and open it."""
    try:
        imported = parse_import(req.document, fallback_name=req.name or "Imported framework")
    except InvalidFrameworkError as e:
        raise HTTPException(status_code=422, detail=str(e))
    state.save_if_dirty()
    state.open_document(Document.create(req.name or imported.name, imported.data, imported.description))
    state.mark_canvas_dirty()
    return _tree_response()


@app.get("/document/export/json")
async def export_json():
    """export envelope for the open document."""
    controller, _ = _require_session()
    return export_document(state.document.name, controller.tree, state.document.description)


@app.get("/document/export/outline", response_class=PlainTextResponse)
async def export_outline_text():
    controller, _ = _require_session()
    return export_outline(controller.tree)


@app.get("/document/export/markdown", response_class=PlainTextResponse)
async def export_markdown_text():
    controller, _ = _require_session()
    return export_markdown(controller.tree)


@app.get("/document/export/mermaid", response_class=PlainTextResponse)
async def export_mermaid_text():
    controller, _ = _require_session()
    return export_mermaid(controller.tree)


@app.get("/document/statistics")
async def statistics():
    controller, _ = _require_session()
    return tree_statistics(controller.tree)


# --- tree editing ---

@app.get("/tree", response_model=TreeResponse)
async def get_tree():
    """current tree and editing state."""
    return _tree_response()


@app.get("/node")
async def get_node(path: str = Query(...)):
    """a single node by path."""
    controller, _ = _require_session()
    node = controller.find(path)
    if node is None:
        raise HTTPException(status_code=404, detail=f"node not found: {path}")
    return node.to_dict()


@app.patch("/node", response_model=TreeResponse)
async def update_node(req: NodeUpdate):
    """merge fields into a node."""
    controller, _ = _require_session()
    try:
        fields = parse_node_fields(req.fields)
    except (ValueError, KeyError, TypeError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    if "name" in fields and not fields["name"].strip():
        raise HTTPException(status_code=422, detail="name cannot be empty")
    return _edit_or_400(controller.update_node(req.path, fields), f"nothing to update at {req.path}")


@app.post("/node/child", response_model=TreeResponse)
async def add_child(req: NodeInsert):
    controller, _ = _require_session()
    node = _node_from_payload(req.node)
    return _edit_or_400(controller.add_child(req.path, node), f"node not found: {req.path}")


@app.post("/node/sibling", response_model=TreeResponse)
async def add_sibling(req: NodeInsert):
    controller, _ = _require_session()
    node = _node_from_payload(req.node)
    return _edit_or_400(controller.add_sibling(req.path, node), f"cannot add a sibling to {req.path}")


@app.delete("/node", response_model=TreeResponse)
async def delete_node(path: str = Query(...)):
    """delete a node and its subtree. the root cannot be deleted."""
    controller, _ = _require_session()
    return _edit_or_400(controller.delete_node(path), f"cannot delete {path}")


@app.post("/node/move", response_model=TreeResponse)
async def move_node(req: NodeMove):
    controller, _ = _require_session()
    if req.position not in ("before", "after", "inside"):
        raise HTTPException(status_code=422, detail=f"invalid position: {req.position}")
    return _edit_or_400(
        controller.move_node(req.source_path, req.target_path, req.position),
        f"cannot move {req.source_path} {req.position} {req.target_path}",
    )


@app.post("/tree/undo", response_model=TreeResponse)
async def undo():
    """undo last tree edit."""
    controller, _ = _require_session()
    return _edit_or_400(controller.undo(), "nothing to undo")


@app.post("/tree/redo", response_model=TreeResponse)
async def redo():
    """redo last undone tree edit."""
    controller, _ = _require_session()
    return _edit_or_400(controller.redo(), "nothing to redo")


@app.post("/tree/select", response_model=TreeResponse)
async def select_node(req: PathRequest):
    controller, canvas = _require_session()
    controller.select(req.path)
    canvas.select(req.path)
    return _tree_response()


@app.post("/tree/edit", response_model=TreeResponse)
async def set_editing(req: PathRequest):
    controller, _ = _require_session()
    controller.start_editing(req.path)
    return _tree_response()


@app.get("/search", response_model=SearchResponse)
async def search_tree(q: str = Query("")):
    """paths matching q, plus the paths to expand so they are visible."""
    controller, _ = _require_session()
    result = search(controller.tree, q)
    return SearchResponse(query=q, matches=result.matches, expand=sorted(result.expand), count=result.count)


@app.get("/tree/paths")
async def list_paths():
    """every node path, for expand-all."""
    controller, _ = _require_session()
    return all_paths(controller.tree)


# --- canvas ---

@app.get("/canvas", response_model=CanvasResponse)
async def get_canvas():
    return _canvas_response()


@app.post("/canvas/layout", response_model=CanvasResponse)
async def set_layout(req: LayoutRequest):
    """switch layout strategy. positions are recomputed from scratch."""
    _, canvas = _require_session()
    try:
        layout = LayoutType(req.layout_type)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"unknown layout: {req.layout_type}")
    if canvas.set_layout(layout):
        state.mark_canvas_dirty()
    return _canvas_response()


@app.post("/canvas/relayout", response_model=CanvasResponse)
async def relayout():
    """auto-arrange with the current strategy."""
    _, canvas = _require_session()
    canvas.re_layout()
    state.mark_canvas_dirty()
    return _canvas_response()


@app.put("/canvas/position", response_model=CanvasNodeResponse)
async def update_position(req: PositionUpdate):
    """record a dragged node's position."""
    _, canvas = _require_session()
    if not canvas.update_node_position(req.id, req.x, req.y):
        raise HTTPException(status_code=404, detail=f"canvas node not found: {req.id}")
    state.mark_canvas_dirty()
    return CanvasNodeResponse.from_node(canvas.get_node(req.id))


@app.get("/canvas/positions")
async def get_positions():
    _, canvas = _require_session()
    return canvas.get_positions()


@app.post("/canvas/zoom-in")
async def zoom_in():
    _, canvas = _require_session()
    return {"zoom": canvas.zoom_in()}


@app.post("/canvas/zoom-out")
async def zoom_out():
    _, canvas = _require_session()
    return {"zoom": canvas.zoom_out()}


@app.post("/canvas/pan")
async def pan(req: PanRequest):
    _, canvas = _require_session()
    canvas.set_pan(req.x, req.y)
    return {"pan": {"x": req.x, "y": req.y}}


@app.post("/canvas/reset-view")
async def reset_view():
    _, canvas = _require_session()
    canvas.reset_view()
    return {"zoom": canvas.zoom, "pan": {"x": 0.0, "y": 0.0}}


@app.post("/canvas/relationships", response_model=RelationshipResponse)
async def add_relationship(req: RelationshipCreate):
    _, canvas = _require_session()
    try:
        rel = canvas.add_relationship(
            req.from_node_id,
            req.to_node_id,
            label=req.label,
            line_style=req.line_style,
            arrow_type=req.arrow_type,
            line_color=req.line_color,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    state.mark_canvas_dirty()
    return RelationshipResponse.from_relationship(rel)


@app.patch("/canvas/relationships/{relationship_id}", response_model=RelationshipResponse)
async def update_relationship(relationship_id: str, req: RelationshipUpdate):
    _, canvas = _require_session()
    updates = req.model_dump(exclude_unset=True)
    try:
        updated = canvas.update_relationship(relationship_id, **updates)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail=f"relationship not found: {relationship_id}")
    state.mark_canvas_dirty()
    return RelationshipResponse.from_relationship(canvas.get_relationship(relationship_id))


@app.delete("/canvas/relationships/{relationship_id}")
async def delete_relationship(relationship_id: str):
    _, canvas = _require_session()
    if not canvas.delete_relationship(relationship_id):
        raise HTTPException(status_code=404, detail=f"relationship not found: {relationship_id}")
    state.mark_canvas_dirty()
    return {"deleted": relationship_id}


@app.post("/canvas/relationships/prune")
async def prune_relationships():
    """drop relationships whose endpoints no longer exist."""
    _, canvas = _require_session()
    removed = canvas.prune_relationships()
    if removed:
        state.mark_canvas_dirty()
    return {"removed": removed}


# --- link previews and images ---

@app.post("/link-preview")
async def link_preview(req: LinkPreviewRequest):
    """fetch a page preview; with a path, also store it on that node."""
    try:
        preview = await state.preview_fetcher.fetch(req.url)
    except LinkPreviewError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if req.path is not None:
        controller, _ = _require_session()
        if not controller.update_node(req.path, {"url": req.url, "link_preview": preview}):
            if controller.find(req.path) is None:
                raise HTTPException(status_code=404, detail=f"node not found: {req.path}")
    return preview.to_dict()


@app.post("/images")
async def upload_image(file: UploadFile = File(...)):
    """store an uploaded image and return the url to put in imageData.url."""
    data = await file.read()
    try:
        url = state.image_store.upload(file.filename or "", data)
    except StoreError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"url": url}


@app.get("/images/{name}")
async def get_image(name: str):
    path = state.image_store.path_for(name)
    if path is None:
        raise HTTPException(status_code=404, detail=f"image not found: {name}")
    return FileResponse(path)


# --- cli entrypoint ---

def main():
    """run the api server."""
    import uvicorn

    parser = argparse.ArgumentParser(description="framework canvas api server")
    parser.add_argument("--host", default="127.0.0.1", help="host to bind")
    parser.add_argument("--port", "-p", type=int, default=8000, help="port to bind")
    parser.add_argument("--data-dir", "-d", help="document storage directory (default: ~/.framework-canvas)")
    parser.add_argument("--reload", action="store_true", help="enable auto-reload")
    parser.add_argument(
        "--autosave-delay",
        type=float,
        default=DEFAULT_AUTOSAVE_DELAY,
        help=f"seconds of inactivity before auto-save (default: {DEFAULT_AUTOSAVE_DELAY})",
    )
    parser.add_argument("--no-autosave", action="store_true", help="disable auto-save")
    parser.add_argument("--log-level", default="info", help="logging level")

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # configure state
    global state
    data_dir = Path(args.data_dir).expanduser() if args.data_dir else None
    state = AppState(
        store=JsonFileStore(data_dir) if data_dir else None,
        image_store=ImageStore(data_dir / "images") if data_dir else None,
        autosave_delay=0 if args.no_autosave else args.autosave_delay,
    )

    uvicorn.run(
        "framework_canvas.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
