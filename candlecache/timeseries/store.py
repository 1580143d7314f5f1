"""Cache store abstraction and the JSON file implementation."""
import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Protocol

from candlecache.timeseries.errors import ArgumentError
from candlecache.timeseries.models import CacheDocument
from candlecache.timeseries.schemas import (
    CacheDocumentSchema,
    document_to_schema,
    schema_to_document,
)

logger = logging.getLogger(__name__)

# Characters not allowed in file names on common filesystems.
_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class CacheStore(Protocol):
    """Durable key -> CacheDocument persistence, keyed by symbol."""

    async def get(self, key: str) -> Optional[CacheDocument]:
        """Return the stored document, or None if nothing is stored under key."""
        ...

    async def save(self, key: str, document: CacheDocument) -> None:
        """Store document under key, replacing any previous one."""
        ...


def sanitize_key(key: str) -> str:
    """Replace filesystem-unsafe characters with underscores ('XAU/USD' -> 'XAU_USD')."""
    return _UNSAFE_FILENAME_CHARS.sub("_", key)


class JsonFileCacheStore:
    """One pretty-printed JSON file per key under ``base_dir``."""

    def __init__(self, base_dir) -> None:
        if base_dir is None or not str(base_dir).strip():
            raise ArgumentError("Base directory is required.")
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.base_dir / f"{sanitize_key(key)}.json"

    async def get(self, key: str) -> Optional[CacheDocument]:
        path = self.path_for(key)

        def _read() -> Optional[str]:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

        raw = await asyncio.to_thread(_read)
        if raw is None:
            logger.debug("No cache file for %s at %s", key, path)
            return None
        return schema_to_document(CacheDocumentSchema.model_validate_json(raw))

    async def save(self, key: str, document: CacheDocument) -> None:
        path = self.path_for(key)
        payload = document_to_schema(document).model_dump_json(indent=2)
        await asyncio.to_thread(path.write_text, payload, encoding="utf-8")
        logger.debug("Saved cache document for %s to %s", key, path)
