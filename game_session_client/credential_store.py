"""
Persisted credential storage.

The store is a small durable key-value map holding the bearer token and
username under two independent keys. Reads are served from memory; writes
are flushed with ``save()``.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Union

import aiofiles
import aiofiles.os

from .exceptions import CredentialStoreError


TOKEN_KEY = "AuthToken"
USERNAME_KEY = "Username"


class CredentialStore(ABC):
    """Interface for the durable key-value store backing the credential."""

    @abstractmethod
    def get(self, key: str, default: str = "") -> str:
        """Return the stored value for ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Stage ``value`` under ``key``. Takes effect durably on save()."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    async def save(self) -> None:
        """
        Flush staged changes to durable storage.

        Raises:
            CredentialStoreError: If the write fails.
        """


class MemoryCredentialStore(CredentialStore):
    """Process-local store. Nothing survives a restart."""

    def __init__(self, initial: Dict[str, str] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.save_count = 0

    def get(self, key: str, default: str = "") -> str:
        return self.data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def save(self) -> None:
        self.save_count += 1


class JsonFileCredentialStore(CredentialStore):
    """
    Store backed by a JSON object on disk.

    The file is read once at construction; a missing or unreadable file
    yields an empty store. Saves write a temporary sibling file and rename
    it over the target so a crash never leaves a half-written file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self.logger = logging.getLogger(__name__)
        self.data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable credential file {self.path}: {e}")
            return {}

        if not isinstance(raw, dict):
            self.logger.warning(f"Ignoring credential file {self.path}: not a JSON object")
            return {}

        return {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)}

    def get(self, key: str, default: str = "") -> str:
        return self.data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def save(self) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(self.data, indent=2))
            await aiofiles.os.replace(tmp_path, self.path)
        except OSError as e:
            raise CredentialStoreError(
                f"Failed to write credentials to {self.path}", str(e)
            ) from e
        finally:
            if await aiofiles.os.path.exists(tmp_path):
                try:
                    await aiofiles.os.remove(tmp_path)
                except OSError as cleanup_error:
                    self.logger.warning(f"Could not remove {tmp_path}: {cleanup_error}")
