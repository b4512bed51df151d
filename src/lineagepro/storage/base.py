from __future__ import annotations

"""Key-value text store protocol used for persistence."""

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """Protocol for stores holding text values under string keys."""

    def get(self, key: str) -> Optional[str]:
        """Return the value under ``key``, or None if absent."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it existed."""

    def close(self) -> None:
        """Release underlying resources."""
