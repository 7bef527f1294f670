"""Transports and connectivity collaborators."""

from .base import Transport, TransportResponse
from .connectivity import AlwaysOnline, Connectivity, StaticConnectivity
from .http import HttpTransport

__all__ = [
    "Transport",
    "TransportResponse",
    "HttpTransport",
    "Connectivity",
    "AlwaysOnline",
    "StaticConnectivity",
]
