"""Unit tests for the collection store - temporary files only."""

import json

import pytest

from xcommunity.config import UpdatePolicy
from xcommunity.core.store import CollectionStore
from xcommunity.exceptions import StorageError
from xcommunity.models.profile import Profile


def profile(handle: str, **fields) -> Profile:
    return Profile(handle=handle, name=fields.pop("name", handle.title()), **fields)


@pytest.fixture
def store(tmp_path):
    """Create an empty store backed by a temporary file."""
    s = CollectionStore(tmp_path / "universe.json")
    s.load()
    return s


class TestCollectionStoreLoad:
    """Test loading from disk."""

    def test_missing_file_is_empty(self, tmp_path):
        s = CollectionStore(tmp_path / "nope" / "universe.json")
        collected, processed = s.load()
        assert collected == {}
        assert processed == set()
        assert s.size() == 0

    def test_load_derives_processed_set(self, tmp_path):
        path = tmp_path / "universe.json"
        path.write_text(json.dumps([
            {"handle": "a", "name": "A", "bio": "", "followers": 5, "pfp_url": ""},
            {"handle": "b", "name": "B", "bio": "hi", "followers": None, "pfp_url": "u"},
        ]), encoding="utf-8")

        s = CollectionStore(path)
        collected, processed = s.load()

        assert list(collected) == ["a", "b"]
        assert processed == {"a", "b"}
        assert s.has("a") and s.has("b")
        assert collected["b"].followers is None

    def test_duplicate_handles_in_file_keep_first(self, tmp_path):
        path = tmp_path / "universe.json"
        path.write_text(json.dumps([
            {"handle": "a", "name": "first"},
            {"handle": "a", "name": "second"},
        ]), encoding="utf-8")

        s = CollectionStore(path)
        s.load()

        assert s.size() == 1
        assert s.get("a").name == "first"

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "universe.json"
        path.write_text("[{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            CollectionStore(path).load()


class TestCollectionStoreUpsert:
    """Test dedup and ordering."""

    def test_upsert_new_handle(self, store):
        assert store.upsert(profile("alice")) is True
        assert store.has("alice")
        assert len(store) == 1

    def test_upsert_existing_handle_is_noop(self, store):
        store.upsert(profile("alice", bio="old", followers=10))
        changed = store.upsert(profile("alice", bio="new", followers=99))

        assert changed is False
        assert store.size() == 1
        assert store.get("alice").bio == "old"
        assert store.get("alice").followers == 10

    def test_insertion_order_is_preserved(self, store):
        for handle in ["zed", "amy", "mo"]:
            store.upsert(profile(handle))
        store.upsert(profile("amy"))

        assert store.handles() == ["zed", "amy", "mo"]

    def test_replace_policy_refreshes_in_place(self, tmp_path):
        s = CollectionStore(tmp_path / "u.json", update_policy=UpdatePolicy.REPLACE)
        s.upsert(profile("a", followers=1))
        s.upsert(profile("b"))

        assert s.upsert(profile("a", followers=2)) is True
        assert s.upsert(profile("a", followers=2)) is False
        assert s.handles() == ["a", "b"]
        assert s.get("a").followers == 2

    def test_handles_are_case_sensitive(self, store):
        store.upsert(profile("Alice"))
        store.upsert(profile("alice"))
        assert store.size() == 2


class TestCollectionStoreCheckpoint:
    """Test durable writes."""

    def test_checkpoint_round_trip(self, tmp_path, store):
        store.upsert(profile("a", bio="rockets 🚀", followers=12300, pfp_url="https://x/a.jpg"))
        store.upsert(profile("b"))
        store.checkpoint()

        reloaded = CollectionStore(store.path)
        collected, processed = reloaded.load()

        assert processed == {"a", "b"}
        assert collected["a"] == store.get("a")

    def test_checkpoint_format(self, store):
        store.upsert(profile("a", bio="rockets 🚀", followers=3))
        store.checkpoint()

        text = store.path.read_text(encoding="utf-8")
        assert text.startswith("[\n  {\n")
        assert "🚀" in text
        assert list(json.loads(text)[0]) == ["handle", "name", "bio", "followers", "pfp_url"]

    def test_repeated_checkpoints_leave_no_temp_files(self, store):
        for i in range(5):
            store.upsert(profile(f"u{i}"))
            store.checkpoint()

        assert [p.name for p in store.path.parent.iterdir()] == ["universe.json"]
        assert len(json.loads(store.path.read_text(encoding="utf-8"))) == 5

    def test_checkpoint_to_override_path(self, tmp_path, store):
        store.upsert(profile("a"))
        written = store.checkpoint(tmp_path / "export" / "copy.json")
        assert written.exists()
        assert not store.path.exists()

    def test_unwritable_destination_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        s = CollectionStore(blocker / "universe.json")
        s.upsert(profile("a"))

        with pytest.raises(StorageError):
            s.checkpoint()
