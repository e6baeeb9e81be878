"""core primitives shared between frontends."""

from .models import (
    FrameworkNode,
    NodeType,
    NodeStyle,
    ImageData,
    LinkPreview,
    CanvasNode,
    CanvasConnection,
    Relationship,
    LineStyle,
    ArrowType,
    clear_irrelevant_fields,
    parse_node_fields,
)
from .paths import Resolution, resolve, iter_paths
from .mutations import MovePosition
from .history import HistoryStore, HistoryState, MAX_UNDO_HISTORY
from .debounce import Debouncer
from .controller import TreeDataController, DEFAULT_AUTOSAVE_DELAY
from .layouts import LayoutType, LayoutResult, apply_layout
from .canvas_state import CanvasStateController
from .search import SearchResult, search, find_matches, ancestors_of, all_paths
from .io import (
    InvalidFrameworkError,
    ImportedFramework,
    parse_import,
    export_document,
    export_outline,
    export_markdown,
    export_mermaid,
    tree_statistics,
)
from .store import Document, DocumentStore, JsonFileStore, ImageStore, StoreError
from .link_preview import LinkPreviewFetcher, LinkPreviewError, PreviewCache

__all__ = [
    # models
    "FrameworkNode",
    "NodeType",
    "NodeStyle",
    "ImageData",
    "LinkPreview",
    "CanvasNode",
    "CanvasConnection",
    "Relationship",
    "LineStyle",
    "ArrowType",
    "clear_irrelevant_fields",
    "parse_node_fields",
    # tree editing
    "Resolution",
    "resolve",
    "iter_paths",
    "MovePosition",
    "HistoryStore",
    "HistoryState",
    "MAX_UNDO_HISTORY",
    "Debouncer",
    "TreeDataController",
    "DEFAULT_AUTOSAVE_DELAY",
    # canvas
    "LayoutType",
    "LayoutResult",
    "apply_layout",
    "CanvasStateController",
    # search
    "SearchResult",
    "search",
    "find_matches",
    "ancestors_of",
    "all_paths",
    # io
    "InvalidFrameworkError",
    "ImportedFramework",
    "parse_import",
    "export_document",
    "export_outline",
    "export_markdown",
    "export_mermaid",
    "tree_statistics",
    "Document",
    "DocumentStore",
    "JsonFileStore",
    "ImageStore",
    "StoreError",
    "LinkPreviewFetcher",
    "LinkPreviewError",
    "PreviewCache",
]
