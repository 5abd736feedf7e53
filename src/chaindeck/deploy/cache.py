"""Persistent key-value cache backing the deployment orchestrator.

One JSON document is kept per network. Keys are dotted paths into that
document, so ``"token.address"`` and ``"token.txHash"`` live under the same
top-level ``"token"`` entry.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from chaindeck.lib.errors import CacheUnavailableError
from chaindeck.lib.logging_config import get_logger

logger = get_logger(__name__)

CACHE_FILE_PREFIX = ".cache-"


def cache_path_for(cache_dir: Path, chain_id: int) -> Path:
    """Return the cache document path for a chain id."""
    return Path(cache_dir) / f"{CACHE_FILE_PREFIX}{chain_id}.json"


def _split_key(key: str) -> list[str]:
    parts = key.split(".")
    if not key or any(not part for part in parts):
        raise ValueError(f"Invalid cache key: {key!r}")
    return parts


class PersistentCache:
    """Durable dictionary stored as a single JSON document.

    ``set`` and ``delete`` rewrite the whole document atomically (temp file,
    fsync, rename) before returning, so an acknowledged write survives a
    crash. Reads always go to disk so another process's writes are seen.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the cache for a storage location.

        Args:
            path: JSON document path; the file is created on first write
        """
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        """Return the document path."""
        return self._path

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value at a dotted key, or ``default`` if missing."""
        parts = _split_key(key)
        document = await asyncio.to_thread(self._read)
        node: Any = document
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                logger.debug(f"Cache miss: {key}")
                return default
            node = node[part]
        logger.debug(f"Cache hit: {key}")
        return copy.deepcopy(node)

    async def has(self, key: str) -> bool:
        """Return True if a value is stored at the dotted key."""
        sentinel = object()
        return await self.get(key, sentinel) is not sentinel

    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value at a dotted key and persist it."""
        parts = _split_key(key)
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            node = document
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = value
            await asyncio.to_thread(self._write, document)
        logger.debug(f"Cache set: {key}")

    async def delete(self, key: str) -> bool:
        """Remove the value at a dotted key.

        Parent entries left empty by the removal are pruned.

        Returns:
            True if a value existed and was removed
        """
        parts = _split_key(key)
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            trail: list[tuple[dict[str, Any], str]] = []
            node: Any = document
            for part in parts:
                if not isinstance(node, dict) or part not in node:
                    return False
                trail.append((node, part))
                node = node[part]

            parent, last = trail.pop()
            del parent[last]
            while trail and not parent:
                parent, last = trail.pop()
                del parent[last]

            await asyncio.to_thread(self._write, document)
        logger.debug(f"Cache delete: {key}")
        return True

    async def snapshot(self) -> dict[str, Any]:
        """Return a copy of the whole document."""
        return await asyncio.to_thread(self._read)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}

        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CacheUnavailableError(
                str(self._path), f"Failed to read deployment cache: {exc}"
            ) from exc

        if not content.strip():
            return {}

        try:
            document = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CacheUnavailableError(
                str(self._path), f"Invalid deployment cache format: {exc}"
            ) from exc

        if not isinstance(document, dict):
            raise CacheUnavailableError(
                str(self._path),
                "Invalid deployment cache format: top level must be an object",
            )
        return document

    def _write(self, document: dict[str, Any]) -> None:
        try:
            payload = json.dumps(document, indent=2, sort_keys=True)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise CacheUnavailableError(
                str(self._path), f"Failed to write deployment cache: {exc}"
            ) from exc


async def open_cache(cache_dir: Path, chain_id: int) -> PersistentCache:
    """Open the cache for a network, failing fast if it is unusable.

    Args:
        cache_dir: Directory that holds per-network cache documents
        chain_id: Network identifier the cache is scoped to

    Returns:
        A ready ``PersistentCache``

    Raises:
        CacheUnavailableError: If the directory or document cannot be used
    """
    path = cache_path_for(cache_dir, chain_id)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CacheUnavailableError(
            str(path), f"Failed to create cache directory: {exc}"
        ) from exc

    cache = PersistentCache(path)
    await cache.snapshot()
    logger.debug(f"Opened deployment cache {path} for chain {chain_id}")
    return cache
