"""
Local Store Test Suite
"""

import json

from mufattish.session.store import JsonFileStore, MemoryStore, atomic_write_text


class TestMemoryStore:
    def test_get_default(self):
        assert MemoryStore().get("missing", []) == []

    def test_values_are_copies(self):
        store = MemoryStore()
        value = {"teachers": [1, 2]}
        store.set("k", value)
        value["teachers"].append(3)
        assert store.get("k") == {"teachers": [1, 2]}
        store.get("k")["teachers"].append(4)
        assert store.get("k") == {"teachers": [1, 2]}

    def test_initial_values(self):
        store = MemoryStore({"a": 1, "b": "x"})
        assert sorted(store.keys()) == ["a", "b"]
        assert store.get("b") == "x"


class TestJsonFileStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStore(path).set("mufattish_teachers", [{"fullName": "أحمد"}])
        assert JsonFileStore(path).get("mufattish_teachers") == [{"fullName": "أحمد"}]

    def test_file_is_readable_json(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStore(path).set("k", "قيمة")
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "قيمة"}
        assert "قيمة" in path.read_text(encoding="utf-8")

    def test_missing_file_starts_empty(self, tmp_path):
        assert JsonFileStore(tmp_path / "none.json").get("k") is None

    def test_corrupt_file_moved_aside(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)
        assert store.get("k") is None
        assert not path.exists()
        assert (tmp_path / "store.json.corrupt").read_text(encoding="utf-8") == "{not json"

    def test_non_object_ignored(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert JsonFileStore(path).get("k", "d") == "d"


class TestAtomicWrite:
    def test_creates_parents_and_leaves_no_temp(self, tmp_path):
        path = tmp_path / "nested" / "out.json"
        atomic_write_text(path, "{}")
        assert path.read_text(encoding="utf-8") == "{}"
        assert list(path.parent.iterdir()) == [path]
