"""
Client and server together: the synchronizer talks to the real FastAPI app
in-process over httpx.ASGITransport, with storage calls faked.
"""
import httpx
import pytest
import pytest_asyncio

from portfolio.client.api import GalleryApiClient
from portfolio.client.cache import GalleryCache, MemoryStore
from portfolio.client.synchronizer import GallerySynchronizer, ImageUpload, SyncState
from portfolio.main import app
from portfolio.schemas import GalleryImage, ImagePatch

from tests.conftest import ADMIN_SECRET, cloudinary_url


def draft(image_id: str, name: str, category: str = "finished") -> GalleryImage:
    return GalleryImage(
        id=image_id,
        src=cloudinary_url(name),
        alt=name.title(),
        description="30x30cm, Öl auf Leinwand",
        category=category,
        year=2024,
    )


@pytest_asyncio.fixture
async def api(reset_db, fake_storage):
    store = MemoryStore()
    client = GalleryApiClient(
        base_url="http://testserver/api",
        store=store,
        timeout=5,
        transport=httpx.ASGITransport(app=app),
    )
    yield client
    await client.aclose()


@pytest.fixture
def sync(api):
    return GallerySynchronizer(api, GalleryCache(api.store))


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_mutations_require_login(self, sync, api):
        await sync.get_gallery()

        assert await sync.add_image(draft("tmp-1", "sunrise")) is None
        assert sync.gallery.finished == []

        assert await api.login(ADMIN_SECRET)
        created = await sync.add_image(draft("tmp-1", "sunrise"))

        assert created is not None
        assert created.id != "tmp-1"
        assert [img.id for img in sync.gallery.finished] == [created.id]

    @pytest.mark.asyncio
    async def test_local_state_matches_server_after_mutations(self, sync, api, png_bytes):
        assert await api.login(ADMIN_SECRET)
        await sync.get_gallery()
        assert sync.state is SyncState.READY

        first = await sync.add_image(draft("tmp-1", "first"))
        second = await sync.add_image(draft("tmp-2", "second"))
        sketch = await sync.add_image(
            draft("tmp-3", "sketch", category="wip"),
            ImageUpload(content=png_bytes, filename="sketch.png", content_type="image/png"),
        )
        assert (first.order, second.order, sketch.order) == (0, 1, 0)

        assert await sync.update_image(first.id, ImagePatch(width=4, alt="First light"))

        assert sync.reorder_images([second, first])
        await api.reorder_images([second.id, first.id])

        await sync.refresh_gallery()

        assert [img.id for img in sync.gallery.finished] == [second.id, first.id]
        assert [img.order for img in sync.gallery.finished] == [0, 1]
        assert [img.id for img in sync.gallery.wip] == [sketch.id]
        updated = sync.gallery.find(first.id)
        assert (updated.width, updated.alt) == (4, "First light")

        assert await sync.delete_image(sketch.id)
        server_view = await api.get_gallery()
        assert server_view.wip == []
        assert [img.id for img in server_view.finished] == [second.id, first.id]
