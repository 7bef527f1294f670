"""Connectivity checks consulted before each network attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class Connectivity(Protocol):
    def is_online(self) -> bool:
        ...


class AlwaysOnline:
    """Default: assume the network is reachable and let the transport fail."""

    def is_online(self) -> bool:
        return True


@dataclass
class StaticConnectivity:
    """Connectivity flag toggled by the host application (or tests)."""
    online: bool = True

    def is_online(self) -> bool:
        return self.online
