"""
Key-value storage for the plan snapshot.

The plan is saved as one JSON string under one key. Writes and removals are
best-effort: a failing store never blocks editing; the plan simply stays in
memory until the next successful write.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """In-process store (tests and throwaway sessions)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


_SAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]")


class FileStorage:
    """
    One UTF-8 file per key under a directory.

    Args:
        root: Directory holding the files. Created on first write.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{_SAFE_KEY_RE.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        self.root.mkdir(parents=True, exist_ok=True)
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def safe_set(storage: KeyValueStorage, key: str, value: str) -> bool:
    """Write, swallowing storage errors. Returns True on success."""
    try:
        storage.set(key, value)
    except Exception as e:
        logger.debug(f"Storage write failed for {key!r}: {e}")
        return False
    return True


def safe_remove(storage: KeyValueStorage, key: str) -> bool:
    """Remove, swallowing storage errors. Returns True on success."""
    try:
        storage.remove(key)
    except Exception as e:
        logger.debug(f"Storage remove failed for {key!r}: {e}")
        return False
    return True
