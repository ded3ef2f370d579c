"""
Pluggable storage backend factory.

Creates the durable store and the image store based on configuration.
The local backend uses two SQLite files in the store directory; the
memory backend keeps everything in-process. External backends register
via the ``daypage.backends`` entry point group.

External backend packages provide a factory function::

    def create_stores(config: StoreConfig) -> StoreBundle:
        ...

and register it in their pyproject.toml::

    [project.entry-points."daypage.backends"]
    my-backend = "my_package.backend:create_stores"
"""

import copy
import json
import logging
from typing import Any, NamedTuple, Optional

from .config import StoreConfig
from .protocol import BlobStoreProtocol, DurableStoreProtocol

logger = logging.getLogger(__name__)

ENTRIES_DB = "journal.db"
IMAGES_DB = "images.db"


class StoreBundle(NamedTuple):
    """Collection of storage backends returned by the factory."""
    durable_store: Optional[DurableStoreProtocol]
    blob_store: Optional[BlobStoreProtocol]
    is_local: bool  # True for filesystem-backed stores


class MemoryStore:
    """In-process durable store. Values round-trip through JSON like the real one."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        self.save_calls = 0
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    def load(self, key: str) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt value under %s, treating as empty", key)
            return None

    def save(self, key: str, value: Any) -> bool:
        self.save_calls += 1
        try:
            self._data[key] = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Cannot serialize %s: %s", key, e)
            return False
        return True

    def set_raw(self, key: str, raw: str) -> None:
        """Store raw text under a key (lets tests plant corrupt data)."""
        self._data[key] = raw

    def close(self) -> None:
        pass


class MemoryBlobStore:
    """In-process image store."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    async def put(self, id: str, data: bytes) -> bool:
        self._blobs[id] = bytes(data)
        return True

    async def get(self, id: str) -> Optional[bytes]:
        return self._blobs.get(id)

    async def delete(self, id: str) -> bool:
        return self._blobs.pop(id, None) is not None

    async def ids(self) -> list[str]:
        return sorted(self._blobs)

    def snapshot(self) -> dict[str, bytes]:
        return copy.deepcopy(self._blobs)

    def close(self) -> None:
        pass


def create_stores(
    config: StoreConfig,
    *,
    durable: bool = True,
    blobs: bool = True,
) -> StoreBundle:
    """
    Create storage backends from configuration.

    ``backend = "local"`` (default) creates SQLite stores in the store
    directory, ``"memory"`` creates in-process stores. Other values are
    looked up in the ``daypage.backends`` entry point group.

    ``durable=False`` or ``blobs=False`` leaves that member ``None`` (the
    caller supplies its own); an external backend's extra store is closed.
    """
    if config.backend == "local":
        return _create_local_stores(config, durable=durable, blobs=blobs)
    if config.backend == "memory":
        return StoreBundle(
            MemoryStore() if durable else None,
            MemoryBlobStore() if blobs else None,
            is_local=False,
        )
    bundle = _load_backend(config.backend, config)
    if not durable:
        bundle.durable_store.close()
    if not blobs:
        bundle.blob_store.close()
    return StoreBundle(
        bundle.durable_store if durable else None,
        bundle.blob_store if blobs else None,
        is_local=bundle.is_local,
    )


def _create_local_stores(config: StoreConfig, *, durable: bool, blobs: bool) -> StoreBundle:
    """Create the default local storage backends."""
    from .blob_store import ImageStore
    from .document_store import DocumentStore

    store_path = config.path
    return StoreBundle(
        durable_store=DocumentStore(store_path / ENTRIES_DB) if durable else None,
        blob_store=ImageStore(store_path / IMAGES_DB) if blobs else None,
        is_local=True,
    )


def _load_backend(name: str, config: StoreConfig) -> StoreBundle:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="daypage.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: {available}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. No backends registered. "
        f"Use 'local' or 'memory'."
    )
