"""Content-addressed cache for downloaded bytes and built artifacts."""

import contextlib
import hashlib
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def canonical_json(obj: Any) -> str:
    # Stable encoding for hashes/digests. `default=str` keeps paths and other
    # non-JSON values deterministic.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def sha256_hex(payload: str | bytes) -> str:
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically (temp file + rename).

    Readers never observe a partially written file. Concurrent writers of the
    same content are harmless: the last rename wins with identical bytes.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    tmp_file = Path(tmp_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_file.replace(path)
    finally:
        with contextlib.suppress(FileNotFoundError):
            tmp_file.unlink()


class ContentCache:
    """Byte cache keyed by arbitrary strings (typically URLs).

    Each key maps to its own directory ``<root>/<sha256(key)>``; the raw
    payload lives in ``content`` and materialized files can be placed next to
    it with :meth:`path_for`.
    """

    _CONTENT = "content"

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def entry_dir(self, key: str) -> Path:
        return self._root / sha256_hex(key)

    def path_for(self, key: str, name: str) -> Path:
        """Location of a named file belonging to the entry for *key*."""
        return self.entry_dir(key) / name

    def get(self, key: str) -> bytes | None:
        path = self.entry_dir(key) / self._CONTENT
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        logger.debug("Cache hit: %s", key)
        return data

    def put(self, key: str, data: bytes) -> Path:
        path = self.entry_dir(key) / self._CONTENT
        atomic_write_bytes(path, data)
        logger.debug("Cached %d bytes for %s", len(data), key)
        return path

    def materialize(self, key: str, name: str, data: bytes) -> Path:
        """Store *data* as file *name* in the entry for *key* and return its path."""
        path = self.path_for(key, name)
        with contextlib.suppress(FileNotFoundError):
            if path.read_bytes() == data:
                return path
        atomic_write_bytes(path, data)
        return path

    def clear(self) -> None:
        if self._root.exists():
            shutil.rmtree(self._root)
            logger.debug("Cleared cache %s", self._root)
