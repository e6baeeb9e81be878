"""import/export of framework documents.

json import accepts either a bare node or the export envelope
`{name, description, data}`. anything that doesn't validate is rejected
here, before it can reach the editing session.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from .models import PATH_SEPARATOR, FrameworkNode, NodeType
from .paths import iter_paths


class InvalidFrameworkError(ValueError):
    """raised when imported data is not a framework tree."""


_NODE_TYPES = {t.value for t in NodeType}
_PAYLOAD_OBJECTS = ("style", "linkPreview", "imageData")


@dataclass
class ImportedFramework:
    name: str
    data: FrameworkNode
    description: Optional[str] = None


def validate_framework_node(data: Any, path: str = "") -> None:
    """check the shape recursively before anything is built from it.

    name must be a string without a slash, type (if set) a known node type,
    payload objects must be objects and children list-or-absent.
    """
    where = path or "root"
    if not isinstance(data, dict):
        raise InvalidFrameworkError(f"{where}: expected an object")
    name = data.get("name")
    if not isinstance(name, str):
        raise InvalidFrameworkError(f"{where}: name must be a string")
    if PATH_SEPARATOR in name:
        raise InvalidFrameworkError(f"{where}: name cannot contain '{PATH_SEPARATOR}': {name!r}")
    here = f"{path}/{name}" if path else name
    node_type = data.get("type")
    if node_type and (not isinstance(node_type, str) or node_type not in _NODE_TYPES):
        raise InvalidFrameworkError(f"{here}: unknown node type {node_type!r}")
    for key in _PAYLOAD_OBJECTS:
        if data.get(key) and not isinstance(data[key], dict):
            raise InvalidFrameworkError(f"{here}: {key} must be an object")
    children = data.get("children")
    if children is None:
        return
    if not isinstance(children, list):
        raise InvalidFrameworkError(f"{here}: children must be an array")
    for child in children:
        validate_framework_node(child, here)


def _build(data: dict) -> FrameworkNode:
    try:
        return FrameworkNode.from_dict(data)
    except (ValueError, TypeError, KeyError) as e:
        raise InvalidFrameworkError(str(e)) from e


def parse_import(raw: str | bytes | dict, fallback_name: str = "Imported framework") -> ImportedFramework:
    """parse an uploaded document into a validated tree."""
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidFrameworkError(f"not valid json: {e}") from e
    else:
        parsed = raw

    if not isinstance(parsed, dict):
        raise InvalidFrameworkError("expected a json object")

    envelope = parsed.get("data")
    if isinstance(envelope, dict):
        validate_framework_node(envelope)
        tree = _build(envelope)
        name = parsed.get("name")
        return ImportedFramework(
            name=name if isinstance(name, str) and name else fallback_name,
            data=tree,
            description=parsed.get("description"),
        )

    validate_framework_node(parsed)
    tree = _build(parsed)
    return ImportedFramework(name=tree.name or fallback_name, data=tree)


def export_document(name: str, tree: FrameworkNode, description: Optional[str] = None) -> dict:
    """the export envelope, re-importable with parse_import."""
    return {"name": name, "description": description, "data": tree.to_dict()}


def export_outline(tree: FrameworkNode) -> str:
    """plain text outline, four spaces per level."""
    lines = []

    def render(node: FrameworkNode, indent: int) -> None:
        bullet = f"{indent + 1}." if indent == 0 else "-"
        label = f"[{node.type.value}] " if node.type else ""
        lines.append(f"{'    ' * indent}{bullet} {label}{node.name}")
        for child in node.children or ():
            render(child, indent + 1)

    render(tree, 0)
    return "\n".join(lines)


def export_markdown(tree: FrameworkNode) -> str:
    """markdown outline with links, task boxes and descriptions."""
    lines = [f"# {tree.name}"]
    if tree.description:
        lines.append(f"> {tree.description}")

    def render(node: FrameworkNode, indent: int) -> None:
        prefix = "  " * indent
        text = node.name
        if node.url:
            text = f"[{node.name}]({node.url})"
        if node.completed is not None:
            text = f"[{'x' if node.completed else ' '}] {text}"
        lines.append(f"{prefix}- {text}")
        if node.description:
            lines.append(f"{prefix}  > {node.description}")
        for child in node.children or ():
            render(child, indent + 1)

    for child in tree.children or ():
        render(child, 0)
    return "\n".join(lines)


def export_mermaid(tree: FrameworkNode) -> str:
    """mermaid flowchart. node ids are positional since names aren't safe ids."""

    def sanitize(text: str) -> str:
        # escape quotes and limit length
        return text[:30].replace('"', "'").replace("\n", " ")

    lines = ["flowchart TD"]
    ids: dict[str, str] = {}
    for i, (path, node) in enumerate(iter_paths(tree)):
        ids[path] = f"n{i}"
        lines.append(f'  n{i}["{sanitize(node.name)}"]')
    for path, node in iter_paths(tree):
        for child in node.children or ():
            lines.append(f"  {ids[path]} --> {ids[path + '/' + child.name]}")
    return "\n".join(lines)


def tree_statistics(tree: FrameworkNode) -> dict:
    """node counts, depth and per-type breakdown."""
    type_counts: dict[str, int] = {}
    leaf_count = 0
    branch_count = 0
    task_total = 0
    task_done = 0

    for _, node in iter_paths(tree):
        t = node.type.value if node.type else "untyped"
        type_counts[t] = type_counts.get(t, 0) + 1
        if not node.children:
            leaf_count += 1
        elif len(node.children) > 1:
            branch_count += 1
        if node.completed is not None:
            task_total += 1
            task_done += int(node.completed)

    def depth(node: FrameworkNode) -> int:
        if not node.children:
            return 0
        return 1 + max(depth(c) for c in node.children)

    return {
        "total_nodes": sum(type_counts.values()),
        "max_depth": depth(tree),
        "branch_count": branch_count,
        "leaf_count": leaf_count,
        "node_types": type_counts,
        "tasks_total": task_total,
        "tasks_completed": task_done,
    }
