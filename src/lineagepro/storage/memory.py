from __future__ import annotations

"""In-process key-value store (tests, throwaway sessions)."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .base import KeyValueStore


@dataclass(slots=True)
class InMemoryStore(KeyValueStore):
    """Keep values in a dict; nothing survives the process."""

    data: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    def close(self) -> None:
        pass
