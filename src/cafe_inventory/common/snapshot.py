"""Local snapshot store: a synchronous get/set byte store namespaced by key.

The application state store mirrors every collection into it after each
mutation and reads it back on cold start; the tombstone ledger keeps its
deleted-id lists here too. It is a cache, never the source of truth while the
process runs.
"""

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")


class SnapshotStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...


def _check_key(key: str) -> str:
    if not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid snapshot key: {key!r}")
    return key


class MemorySnapshotStore:
    """Dict-backed store, used by tests and as a throwaway cache."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(_check_key(key))

    def set(self, key: str, value: bytes) -> None:
        self._data[_check_key(key)] = bytes(value)

    def keys(self):
        return sorted(self._data)


class FileSnapshotStore:
    """One file per key inside a directory.

    Writes go to a temporary file that is then renamed over the target, so a
    crash mid-write leaves the previous value in place. An entry written just
    before a crash may still be lost; callers treat the store as best-effort.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_check_key(key)}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_bytes(value)
        os.replace(tmp_path, path)
        logger.debug("Wrote snapshot key '%s' (%d bytes)", key, len(value))
