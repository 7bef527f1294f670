"""Base transport interface."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status and raw body of a completed HTTP exchange."""
    status_code: int
    text: str = ""

    def json(self) -> Any:
        return json.loads(self.text)


class Transport(ABC):
    """
    Abstract base class for HTTP transports.

    A transport either completes an exchange and returns its status, or
    raises. Interpreting the status (success, terminal, retryable) is the
    caller's business.
    """

    @abstractmethod
    async def post(self, url: str, body: str, headers: dict[str, str] | None = None) -> TransportResponse:
        """POST `body` to `url`."""
        ...

    @abstractmethod
    async def get(self, url: str, params: dict[str, str] | None = None) -> TransportResponse:
        """GET `url` with query `params`."""
        ...

    async def close(self) -> None:
        """Release connections (called on session close)."""
        pass
