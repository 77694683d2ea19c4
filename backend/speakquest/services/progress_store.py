"""Key-value stores for the progress map.

The ledger only needs to load and save one JSON object (word -> progress).
Backends raise ProgressStoreError subclasses and never swallow failures; the
ledger decides how to degrade.
"""

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from speakquest.config import Settings
from speakquest.core.exceptions import (
    ProgressCorruptError,
    ProgressReadError,
    ProgressWriteError,
)

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    async def load(self) -> dict[str, Any]: ...

    async def save(self, progress: dict[str, Any]) -> None: ...

    async def clear(self) -> None: ...


def decode_progress(raw: str | bytes) -> dict[str, Any]:
    """Parse a stored payload, rejecting anything that is not a JSON object."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProgressCorruptError(f"Stored progress is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProgressCorruptError(
            f"Stored progress must be a JSON object, got {type(data).__name__}"
        )
    return data


def encode_progress(progress: dict[str, Any]) -> str:
    try:
        return json.dumps(progress, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ProgressWriteError(f"Progress is not JSON serializable: {e}") from e


class InMemoryProgressStore:
    """Process-local store. Used by tests and the ``memory`` backend."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def load(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    async def save(self, progress: dict[str, Any]) -> None:
        # Round-trip through JSON so the memory backend rejects what the others would
        self._data = json.loads(encode_progress(progress))

    async def clear(self) -> None:
        self._data = {}


class JsonFileProgressStore:
    """Progress map kept as a human-readable JSON file.

    Writes go to a temporary file that replaces the target, so a crash mid-write
    leaves the previous version intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read)

    async def save(self, progress: dict[str, Any]) -> None:
        payload = encode_progress(progress)
        await asyncio.to_thread(self._write, payload)

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self.path.unlink, missing_ok=True)
        except OSError as e:
            raise ProgressWriteError(f"Could not remove {self.path}: {e}") from e

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise ProgressReadError(f"Could not read {self.path}: {e}") from e
        return decode_progress(raw)

    def _write(self, payload: str) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise ProgressWriteError(f"Could not write {self.path}: {e}") from e


async def create_progress_store(config: Settings) -> ProgressStore:
    """Factory: select the progress backend from PROGRESS_BACKEND."""
    backend = config.progress_backend.lower()
    if backend == "redis":
        from speakquest.services.redis_client import RedisProgressStore, get_redis

        logger.info("Using Redis progress store (key %s)", config.progress_key)
        return RedisProgressStore(await get_redis(), config.progress_key)
    if backend == "file":
        logger.info("Using file progress store at %s", config.progress_file)
        return JsonFileProgressStore(config.progress_file)
    logger.info("Using in-memory progress store")
    return InMemoryProgressStore()
