from __future__ import annotations

from typing import Any, Protocol


class KeyValueStore(Protocol):
    def load(self, key: str) -> Any | None: ...

    def save(self, key: str, value: Any) -> None: ...
