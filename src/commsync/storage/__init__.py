"""Local persistence for the message cache and loader state."""

from typing import Protocol

from .repository import StateRepository


class KeyValueState(Protocol):
    """Minimal key/value interface the incremental loader persists through."""

    def get_value(self, key: str) -> str | None: ...

    def set_value(self, key: str, value: str) -> None: ...


class MemoryState:
    """In-process :class:`KeyValueState`; lost when the process exits."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get_value(self, key: str) -> str | None:
        return self._values.get(key)

    def set_value(self, key: str, value: str) -> None:
        self._values[key] = value


__all__ = ["KeyValueState", "MemoryState", "StateRepository"]
