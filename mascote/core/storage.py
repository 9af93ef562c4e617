"""
Flat-file storage primitives

Atomic whole-file writes, a keyed lock registry for per-client and per-order
critical sections, and path segment checks for identifiers that end up in
directory names.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import json
import os
import re
import tempfile
import threading

from mascote.core.errors import StorageError

_SAFE_SEGMENT = re.compile(r"^[\w\-+.@]+$")


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing"""
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_safe_segment(value: str) -> bool:
    """Check that a value can be used as a single path component"""
    return bool(value) and value not in (".", "..") and bool(_SAFE_SEGMENT.match(value))


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write to a sibling temp file, fsync, then replace the target"""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


def atomic_write_json(path: Path, payload: dict) -> None:
    atomic_write_text(path, json.dumps(payload, indent=2, ensure_ascii=False))


def read_json(path: Path) -> dict:
    """Read a JSON object, raising StorageError when missing or corrupt"""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Cannot read {path.name}: {e}") from e
    try:
        data = json.loads(raw or "{}")
    except ValueError as e:
        raise StorageError(f"Corrupt {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise StorageError(f"Corrupt {path.name}: expected an object")
    return data


class KeyedLock:
    """Registry of one threading.Lock per key"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.get(key)
        with lock:
            yield
