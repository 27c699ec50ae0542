from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import orjson
from filelock import FileLock

from domain.ports.storage import KeyValueStore

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileSystemKeyValueStore(KeyValueStore):
    """One pretty-printed JSON document per key under ``directory``.

    A document that cannot be decoded loads as missing, so the caller falls
    back to its defaults for that key.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key) or key.startswith("."):
            msg = f"Invalid storage key: {key!r}"
            raise ValueError(msg)
        return self.directory / f"{key}.json"

    def load(self, key: str) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        with FileLock(str(_lock_path(path))):
            if not path.exists():
                return None
            raw = path.read_bytes()
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable %s: %s", path, exc)
            return None

    def save(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = orjson.dumps(value, option=orjson.OPT_INDENT_2)
        with FileLock(str(_lock_path(path))):
            tmp_path = path.with_suffix(f"{path.suffix}.tmp")
            tmp_path.write_bytes(payload)
            tmp_path.replace(path)


def _lock_path(path: Path) -> Path:
    return path.with_suffix(f"{path.suffix}.lock")
