"""Durable local snapshot slots shared by the domain stores."""

import copy
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from dinnerhelp_sync.domain.snapshots import SyncField

PushHook = Callable[[SyncField], None]


class SnapshotStorage(Protocol):
    """Key-value slots holding each store's serialized state."""

    def load(self, key: str) -> dict[str, object] | None:
        """Return the stored payload for a key, if present."""

    def save(self, key: str, payload: dict[str, object]) -> None:
        """Replace the stored payload for a key."""

    def delete(self, key: str) -> None:
        """Remove a stored payload."""


@dataclass
class InMemorySnapshotStorage(SnapshotStorage):
    """In-memory slots, used when no durable directory is configured."""

    _slots: dict[str, dict[str, object]]

    def __init__(self) -> None:
        self._slots = {}

    def load(self, key: str) -> dict[str, object] | None:
        """Return a copy of the stored payload."""
        payload = self._slots.get(key)
        return copy.deepcopy(payload) if payload is not None else None

    def save(self, key: str, payload: dict[str, object]) -> None:
        """Store a copy of the payload."""
        self._slots[key] = copy.deepcopy(payload)

    def delete(self, key: str) -> None:
        """Drop the payload for a key."""
        self._slots.pop(key, None)
