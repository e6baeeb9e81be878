"""tests for document and image storage."""

import json

import pytest

from framework_canvas.core.store import (
    DATA_DIR_ENV,
    Document,
    DocumentStore,
    ImageStore,
    JsonFileStore,
    StoreError,
    get_data_dir,
)


class TestJsonFileStore:
    """tests for JsonFileStore."""

    def test_save_load_roundtrip(self, temp_dir, sample_tree):
        store = JsonFileStore(temp_dir)
        doc = Document.create("Plan", sample_tree, "desc")
        doc.canvas_positions = {"Root": {"x": 1.0, "y": 2.0}}
        doc.canvas_settings = {"layoutType": "radial", "relationships": []}
        store.save(doc)

        loaded = store.load(doc.id)
        assert loaded.data == sample_tree
        assert loaded.name == "Plan"
        assert loaded.canvas_positions == {"Root": {"x": 1.0, "y": 2.0}}
        assert loaded.canvas_settings["layoutType"] == "radial"

    def test_implements_protocol(self, temp_dir):
        assert isinstance(JsonFileStore(temp_dir), DocumentStore)

    def test_missing_document(self, temp_dir):
        with pytest.raises(StoreError, match="not found"):
            JsonFileStore(temp_dir).load("nope")

    def test_malformed_file(self, temp_dir):
        (temp_dir / "broken.json").write_text("{oops")
        with pytest.raises(StoreError):
            JsonFileStore(temp_dir).load("broken")

    def test_unsafe_id_rejected(self, temp_dir):
        with pytest.raises(StoreError, match="invalid"):
            JsonFileStore(temp_dir).load("../etc/passwd")

    def test_list_sorted_and_skips_junk(self, temp_dir, sample_tree):
        store = JsonFileStore(temp_dir)
        first = Document.create("first", sample_tree)
        second = Document.create("second", sample_tree)
        store.save(first)
        store.save(second)
        (temp_dir / "junk.json").write_text("not json")

        docs = store.list_documents()
        assert [d["name"] for d in docs] == ["second", "first"]

    def test_delete(self, temp_dir, sample_tree):
        store = JsonFileStore(temp_dir)
        doc = Document.create("x", sample_tree)
        store.save(doc)
        store.delete(doc.id)
        assert store.list_documents() == []
        with pytest.raises(StoreError):
            store.delete(doc.id)

    def test_file_layout(self, temp_dir, sample_tree):
        doc = Document.create("x", sample_tree)
        JsonFileStore(temp_dir).save(doc)
        data = json.loads((temp_dir / f"{doc.id}.json").read_text())
        assert data["data"]["name"] == "Root"


class TestDataDir:
    def test_env_override(self, temp_dir, monkeypatch):
        target = temp_dir / "nested"
        monkeypatch.setenv(DATA_DIR_ENV, str(target))
        assert get_data_dir() == target
        assert target.is_dir()


class TestImageStore:
    """tests for ImageStore."""

    def test_upload_returns_url(self, temp_dir):
        store = ImageStore(temp_dir)
        url = store.upload("photo.PNG", b"\x89PNG")
        assert url.startswith("/images/")
        assert url.endswith(".png")
        name = url.rsplit("/", 1)[1]
        assert store.path_for(name).read_bytes() == b"\x89PNG"

    def test_rejects_non_image(self, temp_dir):
        with pytest.raises(StoreError, match="not an image"):
            ImageStore(temp_dir).upload("notes.txt", b"hello")

    def test_rejects_empty(self, temp_dir):
        with pytest.raises(StoreError):
            ImageStore(temp_dir).upload("a.png", b"")

    def test_path_for_rejects_traversal(self, temp_dir):
        store = ImageStore(temp_dir)
        assert store.path_for("../secret.png") is None
        assert store.path_for("missing.png") is None
