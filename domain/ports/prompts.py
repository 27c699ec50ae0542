from __future__ import annotations

from typing import Protocol


class ConfirmPrompt(Protocol):
    def __call__(self, message: str) -> bool: ...
