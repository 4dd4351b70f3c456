"""
Registry document storage. JSON files OR in-process key/value store.
Controlled by FF_USE_FILE_STORAGE flag.

Every collection is one JSON object keyed by id. Reads return the whole map,
writes replace the whole map. Callers do read-modify-write per operation.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config import get_settings
from .errors import StorageError
from .flags import get_flags

logger = logging.getLogger(__name__)

USERS = "users"
AGENTS = "agents"
COLLECTIONS = (USERS, AGENTS)


class CollectionStore(ABC):
    @abstractmethod
    async def read(self, collection: str) -> dict:
        """Return the full collection. Empty dict if it was never written."""
        ...

    @abstractmethod
    async def write(self, collection: str, data: dict) -> None:
        """Replace the full collection."""
        ...


class JsonFileStore(CollectionStore):
    """One pretty-printed JSON document per collection."""

    def __init__(self, base_path: str = ".", filenames: Optional[dict[str, str]] = None):
        self.base_path = Path(base_path)
        self.filenames = filenames or {USERS: "users.json", AGENTS: "agents.json"}

    def path_for(self, collection: str) -> Path:
        if collection not in self.filenames:
            raise KeyError(f"Unknown collection: {collection}")
        return self.base_path / self.filenames[collection]

    async def read(self, collection: str) -> dict:
        path = self.path_for(collection)
        if not path.exists():
            return {}

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to read %s: %s", path, e)
            raise StorageError(str(e)) from e

        if not isinstance(data, dict):
            raise StorageError(f"{path.name} does not contain a JSON object")
        return data

    async def write(self, collection: str, data: dict) -> None:
        path = self.path_for(collection)
        content = json.dumps(data, indent=2) + "\n"

        # Temp file in the same directory so os.replace stays on one filesystem
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            raise StorageError(str(e)) from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug("Wrote %s (%d entries)", path, len(data))


# Fixed keys used by the client-side store
STORAGE_KEYS = {
    USERS: "BBF_MOCK_USERS",
    AGENTS: "BBF_MOCK_AGENTS",
}


class LocalStorageStore(CollectionStore):
    """
    Client-side key/value store holding JSON text under fixed keys.

    Mirrors browser localStorage: values are strings, so each read hands out
    a fresh copy and callers cannot mutate stored state by accident.
    """

    def __init__(self, items: Optional[dict[str, str]] = None):
        self.items: dict[str, str] = items if items is not None else {}

    def init_storage(self) -> None:
        for key in STORAGE_KEYS.values():
            if key not in self.items:
                self.items[key] = json.dumps({})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    async def read(self, collection: str) -> dict:
        self.init_storage()
        key = STORAGE_KEYS[collection]
        raw = self.get_item(key) or "{}"
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StorageError(str(e)) from e

        if not isinstance(data, dict):
            raise StorageError(f"{key} does not contain a JSON object")
        return data

    async def write(self, collection: str, data: dict) -> None:
        self.set_item(STORAGE_KEYS[collection], json.dumps(data))


def get_store() -> CollectionStore:
    """Return the active server-side store based on feature flags."""
    flags = get_flags()
    if flags.use_file_storage:
        settings = get_settings()
        return JsonFileStore(
            settings.data_dir,
            {USERS: settings.users_file, AGENTS: settings.agents_file},
        )
    logger.info("File storage disabled, registry kept in memory")
    return LocalStorageStore()
