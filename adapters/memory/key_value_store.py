from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from domain.ports.storage import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self.save_count = 0

    def load(self, key: str) -> Any | None:
        return copy.deepcopy(self._values.get(key))

    def save(self, key: str, value: Any) -> None:
        self._values[key] = copy.deepcopy(value)
        self.save_count += 1

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)
