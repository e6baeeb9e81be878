"""document persistence and image storage.

the editing core only sees `load(id) -> Document` and `save(Document)`;
JsonFileStore is the local implementation of that contract.
"""

from __future__ import annotations

import json
import logging
import os
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .models import FrameworkNode

logger = logging.getLogger(__name__)


# --- configuration ---

DATA_DIR_ENV = "FRAMEWORK_CANVAS_DIR"
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


class StoreError(Exception):
    """a load, save or upload did not go through."""


@dataclass
class Document:
    """a stored framework with its canvas state."""

    id: str
    name: str
    data: FrameworkNode
    description: Optional[str] = None
    canvas_positions: Optional[dict[str, dict[str, float]]] = None
    canvas_settings: Optional[dict] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def create(cls, name: str, data: FrameworkNode, description: Optional[str] = None) -> Document:
        return cls(id=uuid.uuid4().hex[:8], name=name, data=data, description=description)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "data": self.data.to_dict(),
            "canvas_positions": self.canvas_positions,
            "canvas_settings": self.canvas_settings,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Document:
        return cls(
            id=d["id"],
            name=d["name"],
            data=FrameworkNode.from_dict(d["data"]),
            description=d.get("description"),
            canvas_positions=d.get("canvas_positions"),
            canvas_settings=d.get("canvas_settings"),
            created_at=d.get("created_at", datetime.now().isoformat()),
            updated_at=d.get("updated_at", datetime.now().isoformat()),
        )


@runtime_checkable
class DocumentStore(Protocol):
    """what the application needs from a backend."""

    def load(self, document_id: str) -> Document: ...

    def save(self, document: Document) -> None: ...

    def list_documents(self) -> list[dict]: ...

    def delete(self, document_id: str) -> None: ...


def get_data_dir() -> Path:
    """default storage directory, overridable with $FRAMEWORK_CANVAS_DIR."""
    env_path = os.environ.get(DATA_DIR_ENV)
    data_dir = Path(env_path).expanduser() if env_path else Path.home() / ".framework-canvas"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def _safe_id(document_id: str) -> str:
    if not re.fullmatch(r"[A-Za-z0-9_-]+", document_id):
        raise StoreError(f"invalid document id: {document_id!r}")
    return document_id


class JsonFileStore:
    """one `<id>.json` file per document."""

    def __init__(self, root_dir: Optional[Path] = None):
        self.root_dir = Path(root_dir) if root_dir else get_data_dir()

    def path_for(self, document_id: str) -> Path:
        return self.root_dir / f"{_safe_id(document_id)}.json"

    def load(self, document_id: str) -> Document:
        path = self.path_for(document_id)
        if not path.exists():
            raise StoreError(f"document not found: {document_id}")
        try:
            with open(path) as f:
                return Document.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            raise StoreError(f"could not read {path.name}: {e}") from e

    def save(self, document: Document) -> None:
        path = self.path_for(document.id)
        document.updated_at = datetime.now().isoformat()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(document.to_dict(), f, indent=2)
        except OSError as e:
            raise StoreError(f"could not write {path.name}: {e}") from e
        logger.debug("saved %s to %s", document.id, path)

    def list_documents(self) -> list[dict]:
        """summaries of stored documents, most recently updated first."""
        documents = []
        for path in self.root_dir.glob("*.json"):
            if path.name.startswith("."):
                continue
            try:
                with open(path) as f:
                    data = json.load(f)
                documents.append({
                    "id": data["id"],
                    "name": data.get("name", path.stem),
                    "description": data.get("description"),
                    "created_at": data.get("created_at", ""),
                    "updated_at": data.get("updated_at", ""),
                })
            except (json.JSONDecodeError, KeyError, OSError):
                logger.warning("skipping unreadable document %s", path)
                continue

        documents.sort(key=lambda x: x["updated_at"], reverse=True)
        return documents

    def delete(self, document_id: str) -> None:
        path = self.path_for(document_id)
        if not path.exists():
            raise StoreError(f"document not found: {document_id}")
        path.unlink()


class ImageStore:
    """keeps uploaded images on disk and hands back the url to store on the node."""

    def __init__(self, root_dir: Optional[Path] = None, url_prefix: str = "/images"):
        self.root_dir = Path(root_dir) if root_dir else get_data_dir() / "images"
        self.url_prefix = url_prefix.rstrip("/")

    def upload(self, filename: str, data: bytes) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in IMAGE_EXTENSIONS:
            raise StoreError(f"not an image: {filename}")
        if not data:
            raise StoreError("empty upload")
        if len(data) > MAX_IMAGE_BYTES:
            raise StoreError(f"image larger than {MAX_IMAGE_BYTES} bytes")

        name = f"{uuid.uuid4().hex}{ext}"
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            (self.root_dir / name).write_bytes(data)
        except OSError as e:
            raise StoreError(f"could not store image: {e}") from e
        return f"{self.url_prefix}/{name}"

    def path_for(self, name: str) -> Optional[Path]:
        """file behind an uploaded image name, or None."""
        if "/" in name or "\\" in name or name.startswith("."):
            return None
        path = self.root_dir / name
        return path if path.exists() else None
