"""
Gallery synchronizer: the client's single view of gallery state.

One instance is shared by every consumer of the page (admin list, public grid,
lightbox). It serves a fresh local snapshot immediately and revalidates it in
the background, collapses concurrent reads into one request, and applies
mutations optimistically. A rejected mutation is rolled back exactly, or,
when other writes landed while it was pending, only its own change is undone.

Every local write bumps `revision`. A fetch whose result was requested at an
older revision is dropped so a slow read can't undo a newer local change.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import httpx

from portfolio.client.api import GalleryApiClient
from portfolio.client.cache import GalleryCache, JsonFileStore
from portfolio.config import ClientSettings
from portfolio.schemas import ExistingImageCreate, GalleryData, GalleryImage, ImagePatch

logger = logging.getLogger(__name__)

# pydantic.ValidationError and JSON decode errors are ValueErrors
REMOTE_ERRORS = (httpx.HTTPError, ValueError)

OFFLINE_NOTICE = "Using offline data"
LOAD_FAILED = "Failed to load gallery"
REFRESH_FAILED = "Failed to refresh gallery"
UPDATE_FAILED = "Failed to update image. Please try again."
DELETE_FAILED = "Failed to delete image. Please try again."
ADD_FAILED = "Failed to add image. Please try again."
REORDER_FAILED = "Failed to reorder images. Please try again."

Listener = Callable[[GalleryData], None]
Undo = Callable[[GalleryData], GalleryData]

_FAILED = object()


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING_FROM_CACHE = "loading_from_cache"
    BACKGROUND_REFRESHING = "background_refreshing"
    READY = "ready"
    ERROR_WITH_STALE_DATA = "error_with_stale_data"
    ERROR_NO_DATA = "error_no_data"


class _FetchMode(str, Enum):
    INITIAL = "initial"
    BACKGROUND = "background"
    REFRESH = "refresh"


@dataclass(frozen=True)
class ImageUpload:
    """Binary payload for add_image when the image is not in storage yet."""
    content: bytes
    filename: str
    content_type: str


def _ids(images: Sequence[GalleryImage]) -> List[str]:
    return [image.id for image in images]


def _without(images: Sequence[GalleryImage], image_id: str) -> List[GalleryImage]:
    return [image for image in images if image.id != image_id]


def _position(data: GalleryData, image_id: str) -> int:
    """Index of the image within its category list."""
    for collection in (data.finished, data.wip):
        for index, image in enumerate(collection):
            if image.id == image_id:
                return index
    return -1


def _restore(data: GalleryData, record: GalleryImage, index: int) -> GalleryData:
    """Put `record` back at `index` of its category, dropping any other copy of its id."""
    finished = _without(data.finished, record.id)
    wip = _without(data.wip, record.id)
    target = finished if record.category == "finished" else wip
    target.insert(min(index, len(target)), record)
    return GalleryData(finished=finished, wip=wip)


def _place(data: GalleryData, image_id: str, record: GalleryImage) -> GalleryData:
    """
    Put `record` where `image_id` is now, or at the end of its category when
    the category changed. Keeps every image in the list of its own category.
    """
    finished, wip = list(data.finished), list(data.wip)
    for collection, category in ((finished, "finished"), (wip, "wip")):
        for index, image in enumerate(collection):
            if image.id != image_id:
                continue
            if record.category == category:
                collection[index] = record
            else:
                del collection[index]
                (finished if record.category == "finished" else wip).append(record)
            return GalleryData(finished=finished, wip=wip)
    return data


class GallerySynchronizer:
    """Shared, cache-backed, optimistically updated gallery state."""

    def __init__(self, api: GalleryApiClient, cache: GalleryCache):
        self.api = api
        self.cache = cache
        self._data = GalleryData()
        self._state = SyncState.UNINITIALIZED
        self._error: Optional[str] = None
        self._loading = False
        self._initialized = False
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_mode: Optional[_FetchMode] = None
        self._revision = 0
        self._pending_mutations = 0
        self._listeners: List[Listener] = []

    # State

    @property
    def gallery(self) -> GalleryData:
        return self._data

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def initialized(self) -> bool:
        return self._initialized

    def dismiss_error(self) -> None:
        self._error = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the new data whenever the gallery changes by value."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_data(self, data: GalleryData) -> bool:
        if data == self._data:
            return False
        self._data = data
        for listener in list(self._listeners):
            listener(data)
        return True

    def _commit(self, data: GalleryData) -> None:
        """Apply a local write: new revision, new state, new snapshot."""
        self._revision += 1
        self._set_data(data)
        self.cache.save(self._data)

    def _rollback(self, previous: GalleryData, undo: Undo, revision: int, message: str) -> None:
        """
        Revert a failed optimistic write. If nothing else was written since it,
        `previous` is restored exactly; otherwise only this write is undone so
        later writes survive.
        """
        if revision == self._revision:
            self._commit(previous)
        else:
            logger.info(f"Gallery changed since revision {revision}, undoing only the failed write")
            self._commit(undo(self._data))
        self._error = message

    # Reads

    async def get_gallery(self, force: bool = False) -> GalleryData:
        """
        Return the gallery, loading it on first use.

        The first call serves a fresh cached snapshot right away and
        revalidates it in the background, or fetches directly when there is
        none. Later calls reuse the loaded data; calls made while the first
        fetch is pending wait for that same request. `force` always refetches.
        """
        if force:
            await self.refresh_gallery()
            return self._data

        if self._initialized:
            if self._fetch_pending() and self._inflight_mode is _FetchMode.INITIAL:
                await asyncio.shield(self._inflight)
            return self._data

        self._initialized = True
        cached = self.cache.load()
        if cached is not None:
            logger.info("Serving gallery from local cache, revalidating in background")
            self._set_data(cached)
            self._state = SyncState.BACKGROUND_REFRESHING
            self._start_fetch(_FetchMode.BACKGROUND)
            return self._data

        self._state = SyncState.LOADING_FROM_CACHE
        await asyncio.shield(self._start_fetch(_FetchMode.INITIAL))
        return self._data

    async def refresh_gallery(self) -> None:
        """Fetch from the server regardless of cache; on failure keep the current state."""
        self._initialized = True
        while self._fetch_pending():
            await asyncio.shield(self._inflight)
        await asyncio.shield(self._start_fetch(_FetchMode.REFRESH))

    async def wait_idle(self) -> None:
        """Wait for a pending fetch (e.g. the background revalidation) to settle."""
        while self._fetch_pending():
            await asyncio.shield(self._inflight)

    def _fetch_pending(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def _start_fetch(self, mode: _FetchMode) -> asyncio.Task:
        task = asyncio.create_task(self._fetch(mode, self._revision))
        self._inflight = task
        self._inflight_mode = mode
        return task

    async def _fetch(self, mode: _FetchMode, revision: int) -> None:
        self._loading = mode is not _FetchMode.BACKGROUND
        try:
            fresh = await self.api.get_gallery()
        except REMOTE_ERRORS as e:
            logger.warning(f"Gallery fetch ({mode.value}) failed: {str(e)}")
            self._on_fetch_failed(mode)
            return
        finally:
            self._loading = False
            if self._inflight is asyncio.current_task():
                self._inflight = None
                self._inflight_mode = None

        # The server may not have applied a pending mutation yet
        if revision != self._revision or self._pending_mutations:
            logger.info(
                f"Dropping gallery fetched at revision {revision}, local state is at {self._revision}"
            )
            self._state = SyncState.READY
            return

        self.cache.save(fresh)
        if self._set_data(fresh):
            logger.info(f"Gallery updated: {len(fresh.finished)} finished, {len(fresh.wip)} wip")
        else:
            logger.debug("Fetched gallery matches current state")
        self._state = SyncState.READY
        self._error = None

    def _on_fetch_failed(self, mode: _FetchMode) -> None:
        if mode is _FetchMode.REFRESH:
            self._error = REFRESH_FAILED
        elif mode is _FetchMode.BACKGROUND:
            self._state = SyncState.ERROR_WITH_STALE_DATA
            self._error = OFFLINE_NOTICE
        else:
            self._set_data(GalleryData())
            self._state = SyncState.ERROR_NO_DATA
            self._error = LOAD_FAILED

    # Mutations

    async def _send(
        self, request: Awaitable[Any], previous: GalleryData, undo: Undo, message: str, action: str
    ) -> Any:
        """
        Await the remote half of an optimistic write that was just committed.
        On failure roll it back (see _rollback) and surface `message`.
        """
        revision = self._revision
        self._pending_mutations += 1
        try:
            result = await request
        except REMOTE_ERRORS as e:
            logger.warning(f"{action} failed, rolling back: {str(e)}")
            self._rollback(previous, undo, revision, message)
            return _FAILED
        finally:
            self._pending_mutations -= 1
        # a fetch issued while the request was pending may predate it
        self._revision += 1
        return result

    async def update_image(self, image_id: str, patch: ImagePatch) -> bool:
        """
        Merge `patch` into the image locally, then send it to the server.
        Unknown ids are ignored. Returns True once the server accepted the change.
        """
        current = self._data.find(image_id)
        if current is None:
            logger.debug(f"update_image: {image_id} is not in the local gallery")
            return False

        previous = self._data
        index = _position(previous, image_id)
        self._commit(_place(previous, image_id, current.model_copy(update=patch.changes())))

        def undo(data: GalleryData) -> GalleryData:
            # deleted meanwhile: leave it deleted
            if data.find(image_id) is None:
                return data
            return _restore(data, current, index)

        result = await self._send(
            self.api.update_image(image_id, patch), previous, undo, UPDATE_FAILED, f"Update of image {image_id}"
        )
        return result is not _FAILED

    async def delete_image(self, image_id: str) -> bool:
        """Remove the image locally, then on the server. Unknown ids are ignored."""
        current = self._data.find(image_id)
        if current is None:
            logger.debug(f"delete_image: {image_id} is not in the local gallery")
            return False

        previous = self._data
        index = _position(previous, image_id)
        self._commit(GalleryData(
            finished=_without(previous.finished, image_id),
            wip=_without(previous.wip, image_id),
        ))

        result = await self._send(
            self.api.delete_image(image_id),
            previous,
            lambda data: _restore(data, current, index),
            DELETE_FAILED,
            f"Delete of image {image_id}",
        )
        return result is not _FAILED

    async def add_image(
        self, image: GalleryImage, upload: Optional[ImageUpload] = None
    ) -> Optional[GalleryImage]:
        """
        Append `image` to its category, then create it on the server.

        With `upload` the bytes are uploaded; without it `image.src` must point
        at an object already in storage. On success the optimistic record is
        replaced by the server's (which carries the real id and order) and
        that record is returned.
        """
        if self._data.find(image.id) is not None:
            logger.warning(f"add_image: id {image.id} is already in the gallery")
            self._error = ADD_FAILED
            return None

        if upload is not None:
            request = self.api.upload_image(
                upload.content,
                upload.filename,
                upload.content_type,
                alt=image.alt,
                description=image.description,
                category=image.category,
                year=image.year,
                width=image.width,
            )
        else:
            try:
                existing = ExistingImageCreate(
                    src=image.src,
                    alt=image.alt,
                    description=image.description,
                    category=image.category,
                    year=image.year,
                    width=image.width,
                )
            except ValueError as e:
                logger.warning(f"add_image: rejected invalid image {image.id}: {str(e)}")
                self._error = ADD_FAILED
                return None
            request = self.api.register_existing_image(existing)

        previous = self._data
        if image.category == "finished":
            optimistic = GalleryData(finished=[*previous.finished, image], wip=previous.wip)
        else:
            optimistic = GalleryData(finished=previous.finished, wip=[*previous.wip, image])
        self._commit(optimistic)

        created = await self._send(
            request,
            previous,
            lambda data: GalleryData(
                finished=_without(data.finished, image.id), wip=_without(data.wip, image.id)
            ),
            ADD_FAILED,
            f"Create of image {image.id}",
        )
        if created is _FAILED:
            return None

        if self._data.find(image.id) is not None:
            self._commit(_place(self._data, image.id, created))
        return created

    def reorder_images(self, images: Sequence[GalleryImage]) -> bool:
        """
        Replace local order with the order of `images` (categories may be mixed).

        For every category that appears in `images` the list must hold exactly
        the images currently in that category, each once; anything else is
        rejected with an error and leaves the state alone. A category that does
        not appear is kept as it is. Nothing changes when every category
        already has the same id sequence. This only updates local state;
        persisting the order is the caller's job (see GalleryApiClient.reorder_images).
        """
        ids = _ids(images)
        if len(ids) != len(set(ids)):
            logger.warning(f"reorder_images: duplicate ids in {ids}")
            self._error = REORDER_FAILED
            return False

        finished = [image for image in images if image.category == "finished"]
        wip = [image for image in images if image.category == "wip"]
        for given, current, category in ((finished, self._data.finished, "finished"), (wip, self._data.wip, "wip")):
            if given and set(_ids(given)) != set(_ids(current)):
                logger.warning(
                    f"reorder_images: {category} ids {_ids(given)} do not match current {_ids(current)}"
                )
                self._error = REORDER_FAILED
                return False
        if not finished:
            finished = self._data.finished
        if not wip:
            wip = self._data.wip

        if _ids(finished) == _ids(self._data.finished) and _ids(wip) == _ids(self._data.wip):
            return False

        self._commit(GalleryData(
            finished=[image.model_copy(update={"order": i}) for i, image in enumerate(finished)],
            wip=[image.model_copy(update={"order": i}) for i, image in enumerate(wip)],
        ))
        return True


def create_synchronizer(client_settings: Optional[ClientSettings] = None) -> GallerySynchronizer:
    """
    Build the shared synchronizer from PORTFOLIO_* settings.
    The API client and the snapshot share one store, so the admin token and
    the cached gallery live in the same file.
    """
    client_settings = client_settings or ClientSettings()
    store = JsonFileStore(client_settings.CACHE_PATH)
    api = GalleryApiClient(
        base_url=client_settings.API_URL,
        store=store,
        timeout=client_settings.REQUEST_TIMEOUT,
    )
    cache = GalleryCache(store, ttl=client_settings.CACHE_TTL_SECONDS)
    return GallerySynchronizer(api, cache)
