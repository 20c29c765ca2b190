"""
Local key-value storage for the gallery client and the time-boxed gallery snapshot kept in it.
"""
import json
import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Union

from pydantic import ValidationError

from portfolio.schemas import GalleryData

logger = logging.getLogger(__name__)

GALLERY_DATA_KEY = "gallery_data"
GALLERY_TIMESTAMP_KEY = "gallery_timestamp"
ADMIN_TOKEN_KEY = "admin_token"

DEFAULT_TTL_SECONDS = 5 * 60


class KeyValueStore(Protocol):
    """String key-value store, the client-side equivalent of browser local storage."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Non-persistent store, useful for tests and short-lived scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore:
    """
    Store persisted as one JSON object in a file.

    The file is read once and rewritten on every write. A missing or corrupt
    file starts the store empty. A failed write is logged and the store keeps
    serving from memory.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.path}: {str(e)}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache file {self.path}: expected a JSON object")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self) -> None:
        """Persist the current data. On failure the in-memory data stays authoritative."""
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(self._data, f)
            tmp.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to write cache file {self.path}: {str(e)}")

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._write()


class GalleryCache:
    """
    Cached snapshot of GalleryData plus its write timestamp.

    A snapshot is served while `now - timestamp < ttl`. Expired or unreadable
    entries are removed as soon as they are read.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock

    def load(self) -> Optional[GalleryData]:
        raw_data = self.store.get(GALLERY_DATA_KEY)
        raw_timestamp = self.store.get(GALLERY_TIMESTAMP_KEY)
        if raw_data is None or raw_timestamp is None:
            return None

        try:
            timestamp = float(raw_timestamp)
        except ValueError:
            logger.warning(f"Discarding gallery cache with bad timestamp: {raw_timestamp!r}")
            self.clear()
            return None

        age = self.clock() - timestamp
        if age >= self.ttl:
            logger.debug(f"Gallery cache expired ({age:.0f}s old), removing")
            self.clear()
            return None

        try:
            return GalleryData.model_validate_json(raw_data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable gallery cache: {str(e)}")
            self.clear()
            return None

    def save(self, data: GalleryData) -> None:
        self.store.set(GALLERY_DATA_KEY, data.model_dump_json(by_alias=True))
        self.store.set(GALLERY_TIMESTAMP_KEY, repr(self.clock()))

    def clear(self) -> None:
        self.store.remove(GALLERY_DATA_KEY)
        self.store.remove(GALLERY_TIMESTAMP_KEY)
