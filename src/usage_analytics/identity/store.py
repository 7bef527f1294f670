"""Key-value stores backing persistent and session-scoped identity."""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal string key-value storage."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


@dataclass
class InMemoryStore(KeyValueStore):
    """Process-lifetime store; the natural backing for session ids."""
    _data: dict[str, str] = field(default_factory=dict, init=False)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


@dataclass
class JsonFileStore(KeyValueStore):
    """
    Store persisted as a flat JSON object on disk.

    Survives process restarts, so it is the natural backing for the
    durable user id. An unreadable file is treated as empty.
    """
    path: str

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def _load(self) -> dict[str, str]:
        p = Path(self.path)
        if not p.exists():
            return {}
        try:
            with open(p, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable identity store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            p = Path(self.path)
            p.parent.mkdir(parents=True, exist_ok=True)
            with open(p, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
