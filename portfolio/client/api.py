"""
Async HTTP client for the portfolio API.

Every protected call carries the admin secret from the local store as a bearer
token. Non-2xx responses raise httpx.HTTPStatusError; network problems raise
other httpx.HTTPError subclasses.
"""
import logging
from typing import Any, List, Optional, Sequence, Union

import httpx

from portfolio.client.cache import ADMIN_TOKEN_KEY, KeyValueStore, MemoryStore
from portfolio.config import ClientSettings
from portfolio.schemas import (
    Category,
    ExistingImageCreate,
    GalleryData,
    GalleryImage,
    ImagePatch,
    Link,
)

logger = logging.getLogger(__name__)


def _payload(response: httpx.Response) -> Any:
    response.raise_for_status()
    return response.json()


class GalleryApiClient:
    """Client for the /gallery, /links and /auth endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        store: Optional[KeyValueStore] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if base_url is None or timeout is None:
            client_settings = ClientSettings()
            base_url = base_url or client_settings.API_URL
            timeout = timeout if timeout is not None else client_settings.REQUEST_TIMEOUT

        self.store = store if store is not None else MemoryStore()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [self._authorize]},
        )

    async def _authorize(self, request: httpx.Request) -> None:
        token = self.store.get(ADMIN_TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GalleryApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # Gallery

    async def get_gallery(self) -> GalleryData:
        response = await self._client.get("/gallery")
        return GalleryData.model_validate(_payload(response))

    async def upload_image(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        alt: str,
        description: str,
        category: Category,
        year: int,
        width: int = 1,
    ) -> GalleryImage:
        """Upload image bytes with their metadata (multipart)."""
        response = await self._client.post(
            "/gallery",
            files={"image": (filename, content, content_type)},
            data={
                "alt": alt,
                "description": description,
                "category": category,
                "year": str(year),
                "width": str(width),
            },
        )
        try:
            return GalleryImage.model_validate(_payload(response))
        except httpx.HTTPStatusError as e:
            logger.error(f"Upload of {filename} failed: {e.response.status_code} {e.response.text}")
            raise

    async def register_existing_image(self, image: ExistingImageCreate) -> GalleryImage:
        """Create a record for an image that is already in storage."""
        response = await self._client.post(
            "/gallery/existing", json=image.model_dump(mode="json", by_alias=True)
        )
        return GalleryImage.model_validate(_payload(response))

    async def update_image(self, image_id: str, patch: ImagePatch) -> GalleryImage:
        response = await self._client.put(f"/gallery/{image_id}", json=patch.changes())
        return GalleryImage.model_validate(_payload(response))

    async def delete_image(self, image_id: str) -> None:
        _payload(await self._client.delete(f"/gallery/{image_id}"))

    async def reorder_images(self, image_ids: Sequence[str]) -> None:
        """Persist a full ordered id list in one request."""
        response = await self._client.put("/gallery/reorder", json={"imageIds": list(image_ids)})
        _payload(response)

    # Links

    async def get_links(self) -> List[Link]:
        response = await self._client.get("/links")
        return [Link.model_validate(item) for item in _payload(response)]

    async def create_link(self, text: str, url: str) -> Link:
        response = await self._client.post("/links", json={"text": text, "url": url})
        return Link.model_validate(_payload(response))

    async def update_link(self, link_id: int, text: str, url: str) -> Link:
        response = await self._client.put(f"/links/{link_id}", json={"text": text, "url": url})
        return Link.model_validate(_payload(response))

    async def delete_link(self, link_id: int) -> None:
        _payload(await self._client.delete(f"/links/{link_id}"))

    async def reorder_links(self, links: Sequence[Union[Link, int]]) -> None:
        """Persist link order; `links` is given in the desired order."""
        ids = [link.id if isinstance(link, Link) else link for link in links]
        response = await self._client.put("/links/reorder", json={"links": [{"id": i} for i in ids]})
        _payload(response)

    # Auth

    async def login(self, password: str) -> bool:
        """
        Check the admin password and keep it as the bearer token on success.
        Any failure, including network errors, reads as a rejected login.
        """
        try:
            response = await self._client.post("/auth", json={"password": password})
            success = bool(_payload(response).get("success"))
        except httpx.HTTPStatusError as e:
            logger.info(f"Login rejected: {e.response.status_code}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"Login request failed: {str(e)}")
            return False

        if success:
            self.store.set(ADMIN_TOKEN_KEY, password)
        return success

    def logout(self) -> None:
        self.store.remove(ADMIN_TOKEN_KEY)

    def is_logged_in(self) -> bool:
        return bool(self.store.get(ADMIN_TOKEN_KEY))
