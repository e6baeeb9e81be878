"""core data model for framework canvas.

a framework is a tree of typed nodes addressed by slash-joined names.
canvas nodes, connections and relationships are the 2d projection of it.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, fields, asdict
from enum import Enum
from typing import Any, Optional


PATH_SEPARATOR = "/"


class NodeType(Enum):
    TOPIC = "topic"        # main section
    SUBTOPIC = "subtopic"  # sub-section
    FOLDER = "folder"      # group items
    LINK = "link"          # external url
    IMAGE = "image"        # image card
    TEXT = "text"          # text content
    NOTE = "note"          # quick note
    TASK = "task"          # to-do item


CONTAINER_TYPES = frozenset({NodeType.TOPIC, NodeType.SUBTOPIC, NodeType.FOLDER})

# payload field -> node types it is meaningful for. color and style apply to all.
FIELD_RELEVANCE: dict[str, frozenset[NodeType]] = {
    "description": frozenset({NodeType.NOTE, NodeType.TASK, NodeType.TOPIC, NodeType.SUBTOPIC}),
    "url": frozenset({NodeType.LINK}),
    "link_preview": frozenset({NodeType.LINK}),
    "completed": frozenset({NodeType.TASK}),
    "image_data": frozenset({NodeType.IMAGE}),
    "content": frozenset({NodeType.TEXT}),
}


class LineStyle(Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class ArrowType(Enum):
    NONE = "none"
    START = "start"
    END = "end"
    BOTH = "both"


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


def _object(value: Any, key: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be an object")
    return value


def check_name(name: Any) -> str:
    """a node name is a string without the path separator."""
    if not isinstance(name, str):
        raise ValueError(f"node name must be a string, got {type(name).__name__}")
    if PATH_SEPARATOR in name:
        raise ValueError(f"node name cannot contain '{PATH_SEPARATOR}': {name!r}")
    return name


@dataclass
class NodeStyle:
    """visual overrides for a single node."""

    text_color: Optional[str] = None
    background_color: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[str] = None
    font_weight: Optional[str] = None
    node_shape: Optional[str] = None  # rectangle, rounded, pill
    border_style: Optional[str] = None  # none, solid, dashed
    icon: Optional[str] = None

    _KEYS = {
        "text_color": "textColor",
        "background_color": "backgroundColor",
        "font_family": "fontFamily",
        "font_size": "fontSize",
        "font_weight": "fontWeight",
        "node_shape": "nodeShape",
        "border_style": "borderStyle",
        "icon": "icon",
    }

    def to_dict(self) -> dict:
        return _drop_none({self._KEYS[k]: v for k, v in asdict(self).items()})

    @classmethod
    def from_dict(cls, d: dict) -> NodeStyle:
        return cls(**{k: d.get(key) for k, key in cls._KEYS.items()})


@dataclass
class ImageData:
    """image card payload. url comes from the image store."""

    url: str
    caption: Optional[str] = None
    alt: Optional[str] = None
    width: Optional[int] = None

    def to_dict(self) -> dict:
        return _drop_none(asdict(self))

    @classmethod
    def from_dict(cls, d: dict) -> ImageData:
        return cls(
            url=d.get("url", ""),
            caption=d.get("caption"),
            alt=d.get("alt"),
            width=d.get("width"),
        )


@dataclass
class LinkPreview:
    """metadata scraped from a link target, stored verbatim on the node."""

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    favicon: Optional[str] = None
    site_name: Optional[str] = None
    fetched_at: Optional[str] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["siteName"] = d.pop("site_name")
        d["fetchedAt"] = d.pop("fetched_at")
        return _drop_none(d)

    @classmethod
    def from_dict(cls, d: dict) -> LinkPreview:
        return cls(
            title=d.get("title"),
            description=d.get("description"),
            image=d.get("image"),
            favicon=d.get("favicon"),
            site_name=d.get("siteName"),
            fetched_at=d.get("fetchedAt"),
        )


@dataclass
class FrameworkNode:
    """single node in the framework tree.

    `children is None` means leaf; a list (possibly empty) means container.
    the node's name doubles as its path segment.
    """

    name: str
    type: Optional[NodeType] = None
    children: Optional[list[FrameworkNode]] = None
    description: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    color: Optional[str] = None
    style: Optional[NodeStyle] = None
    link_preview: Optional[LinkPreview] = None
    image_data: Optional[ImageData] = None
    completed: Optional[bool] = None

    def __post_init__(self):
        check_name(self.name)

    @property
    def is_container(self) -> bool:
        return self.children is not None

    @classmethod
    def create(
        cls,
        name: str,
        type: Optional[NodeType | str] = None,
        **payload: Any,
    ) -> FrameworkNode:
        """create a node, giving container types an empty children list."""
        node_type = NodeType(type) if isinstance(type, str) else type
        node = cls(name=name, type=node_type, **payload)
        if node_type in CONTAINER_TYPES and node.children is None:
            node.children = []
        return node

    def to_dict(self) -> dict:
        """serialize to the document json shape."""
        d: dict[str, Any] = {"name": self.name}
        if self.type is not None:
            d["type"] = self.type.value
        for key in ("description", "content", "url", "color", "completed"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        if self.style is not None:
            d["style"] = self.style.to_dict()
        if self.link_preview is not None:
            d["linkPreview"] = self.link_preview.to_dict()
        if self.image_data is not None:
            d["imageData"] = self.image_data.to_dict()
        if self.children is not None:
            d["children"] = [c.to_dict() for c in self.children]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> FrameworkNode:
        """deserialize from the document json shape. unknown keys are ignored.

        malformed input (non-object payloads, bad type, bad name) raises ValueError.
        """
        _object(d, "node")
        children = d.get("children")
        if children is not None and not isinstance(children, list):
            raise ValueError("children must be an array")
        return cls(
            name=check_name(d.get("name")),
            type=NodeType(d["type"]) if d.get("type") else None,
            children=[cls.from_dict(c) for c in children] if children is not None else None,
            description=d.get("description"),
            content=d.get("content"),
            url=d.get("url"),
            color=d.get("color"),
            style=NodeStyle.from_dict(_object(d["style"], "style")) if d.get("style") else None,
            link_preview=(
                LinkPreview.from_dict(_object(d["linkPreview"], "linkPreview")) if d.get("linkPreview") else None
            ),
            image_data=ImageData.from_dict(_object(d["imageData"], "imageData")) if d.get("imageData") else None,
            completed=d.get("completed"),
        )


NODE_FIELDS = frozenset(f.name for f in fields(FrameworkNode))

_JSON_FIELDS = {"linkPreview": "link_preview", "imageData": "image_data"}


def parse_node_fields(d: dict) -> dict[str, Any]:
    """turn a partial json node into update_node fields. null clears a field.

    unknown keys and malformed values raise ValueError.
    """
    parsed: dict[str, Any] = {}
    for key, value in d.items():
        name = _JSON_FIELDS.get(key, key)
        if name not in NODE_FIELDS:
            raise ValueError(f"unknown node field: {key}")
        if name == "name":
            parsed[name] = check_name(value)
        elif value is None:
            parsed[name] = None
        elif name == "type":
            parsed[name] = NodeType(value)
        elif name == "children":
            if not isinstance(value, list):
                raise ValueError("children must be an array")
            parsed[name] = [FrameworkNode.from_dict(c) for c in value]
        elif name == "style":
            parsed[name] = NodeStyle.from_dict(_object(value, key))
        elif name == "link_preview":
            parsed[name] = LinkPreview.from_dict(_object(value, key))
        elif name == "image_data":
            parsed[name] = ImageData.from_dict(_object(value, key))
        else:
            parsed[name] = value
    return parsed


def clear_irrelevant_fields(node: FrameworkNode) -> None:
    """drop payload fields that do not apply to node.type (in place).

    untyped nodes keep whatever they carry.
    """
    if node.type is None:
        return
    for name, types in FIELD_RELEVANCE.items():
        if node.type not in types:
            setattr(node, name, None)
    if node.type in CONTAINER_TYPES and node.children is None:
        node.children = []


# --- canvas entities ---

@dataclass(frozen=True)
class CanvasNode:
    """positioned projection of a tree node. id is the node's path."""

    id: str
    node: FrameworkNode
    x: float
    y: float
    width: float
    height: float
    parent_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "node": self.node.to_dict(),
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "parentId": self.parent_id,
        }


@dataclass(frozen=True)
class CanvasConnection:
    """parent -> child edge implied by the tree."""

    from_id: str
    to_id: str

    def to_dict(self) -> dict:
        return {"from": self.from_id, "to": self.to_id}


@dataclass
class Relationship:
    """user-authored edge between two canvas nodes, outside the hierarchy."""

    id: str
    from_node_id: str
    to_node_id: str
    label: Optional[str] = None
    line_style: LineStyle = LineStyle.SOLID
    line_color: Optional[str] = None
    arrow_type: ArrowType = ArrowType.END

    @classmethod
    def create(
        cls,
        from_node_id: str,
        to_node_id: str,
        label: Optional[str] = None,
        line_style: LineStyle | str = LineStyle.SOLID,
        arrow_type: ArrowType | str = ArrowType.END,
        line_color: Optional[str] = None,
    ) -> Relationship:
        return cls(
            id=_generate_id(),
            from_node_id=from_node_id,
            to_node_id=to_node_id,
            label=label,
            line_style=LineStyle(line_style),
            line_color=line_color,
            arrow_type=ArrowType(arrow_type),
        )

    def to_dict(self) -> dict:
        return _drop_none({
            "id": self.id,
            "fromNodeId": self.from_node_id,
            "toNodeId": self.to_node_id,
            "label": self.label,
            "lineStyle": self.line_style.value,
            "lineColor": self.line_color,
            "arrowType": self.arrow_type.value,
        })

    @classmethod
    def from_dict(cls, d: dict) -> Relationship:
        return cls(
            id=d.get("id") or _generate_id(),
            from_node_id=d["fromNodeId"],
            to_node_id=d["toNodeId"],
            label=d.get("label"),
            line_style=LineStyle(d.get("lineStyle", "solid")),
            line_color=d.get("lineColor"),
            arrow_type=ArrowType(d.get("arrowType", "end")),
        )


def _generate_id() -> str:
    """generate a short unique id."""
    return uuid.uuid4().hex[:8]
