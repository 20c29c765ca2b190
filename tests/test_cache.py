"""
Local store and gallery snapshot tests.
"""
import json

from portfolio.client.cache import (
    GALLERY_DATA_KEY,
    GALLERY_TIMESTAMP_KEY,
    GalleryCache,
    JsonFileStore,
    MemoryStore,
)
from portfolio.schemas import GalleryData, GalleryImage


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _gallery() -> GalleryData:
    return GalleryData(
        finished=[GalleryImage(id="a", src="https://cdn/a.webp", alt="A", category="finished", year=2025)],
        wip=[GalleryImage(id="w", src="https://cdn/w.webp", alt="W", category="wip", year=2025, width=2)],
    )


class TestGalleryCache:

    def test_fresh_snapshot_is_served(self):
        clock = FakeClock()
        cache = GalleryCache(MemoryStore(), clock=clock)
        cache.save(_gallery())

        clock.now += 5 * 60 - 1

        assert cache.load() == _gallery()

    def test_expired_snapshot_is_removed_on_read(self):
        clock = FakeClock()
        store = MemoryStore()
        cache = GalleryCache(store, clock=clock)
        cache.save(_gallery())

        clock.now += 5 * 60

        assert cache.load() is None
        assert GALLERY_DATA_KEY not in store
        assert GALLERY_TIMESTAMP_KEY not in store

    def test_corrupt_snapshot_is_removed(self):
        store = MemoryStore({GALLERY_DATA_KEY: "{not json", GALLERY_TIMESTAMP_KEY: "1000000.0"})
        cache = GalleryCache(store, clock=FakeClock())

        assert cache.load() is None
        assert GALLERY_DATA_KEY not in store

    def test_bad_timestamp_is_removed(self):
        store = MemoryStore({GALLERY_DATA_KEY: "{}", GALLERY_TIMESTAMP_KEY: "yesterday"})
        cache = GalleryCache(store, clock=FakeClock())

        assert cache.load() is None
        assert GALLERY_TIMESTAMP_KEY not in store

    def test_missing_snapshot(self):
        assert GalleryCache(MemoryStore()).load() is None

    def test_snapshot_uses_wire_format(self):
        store = MemoryStore()
        GalleryCache(store, clock=FakeClock()).save(_gallery())

        stored = json.loads(store.get(GALLERY_DATA_KEY))

        assert stored["finished"][0]["createdAt"] is None
        assert float(store.get(GALLERY_TIMESTAMP_KEY)) == FakeClock().now


class TestJsonFileStore:

    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "cache.json"
        JsonFileStore(path).set("admin_token", "s3cret")

        assert JsonFileStore(path).get("admin_token") == "s3cret"

    def test_remove(self, tmp_path):
        path = tmp_path / "cache.json"
        store = JsonFileStore(path)
        store.set("k", "v")
        store.remove("k")

        assert JsonFileStore(path).get("k") is None

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("[1, 2, 3]")

        store = JsonFileStore(path)

        assert store.get("anything") is None
        store.set("k", "v")
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_gallery_snapshot_survives_restart(self, tmp_path):
        path = tmp_path / "nested" / "cache.json"
        clock = FakeClock()
        GalleryCache(JsonFileStore(path), clock=clock).save(_gallery())

        assert GalleryCache(JsonFileStore(path), clock=clock).load() == _gallery()

    def test_write_failure_keeps_data_in_memory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JsonFileStore(blocker / "cache.json")

        store.set("admin_token", "s3cret")

        assert store.get("admin_token") == "s3cret"
        assert not (blocker / "cache.json").exists()

    def test_cache_save_survives_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        cache = GalleryCache(JsonFileStore(blocker / "cache.json"), clock=FakeClock())

        cache.save(_gallery())

        assert cache.load() == _gallery()
