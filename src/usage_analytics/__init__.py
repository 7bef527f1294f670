"""
Usage Analytics Client Library

Aggregates usage events in memory and periodically delivers a compact
summary to an analytics collector.

Usage:
    from usage_analytics import AnalyticsSession

    session = AnalyticsSession()
    session.init("my-account", "my-app")

    session.record("editor", "file", "open")
    session.record("build", "duration", "ms", count=1, value=420)

    snapshot = session.current_snapshot()
    print(snapshot.total_event_count)
"""

from .config import AnalyticsConfig
from .errors import (
    ConfigurationError,
    DeliveryFailure,
    NotInitializedError,
    RemoteConfigFailure,
    UsageAnalyticsError,
    ValidationError,
)
from .identity import IdentityProvider, InMemoryStore, JsonFileStore, KeyValueStore
from .session import AnalyticsSession
from .telemetry.events import Bucket, Histogram, Scalar, SessionRecord

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "AnalyticsSession",
    "AnalyticsConfig",
    # Record types
    "SessionRecord",
    "Bucket",
    "Scalar",
    "Histogram",
    # Identity
    "IdentityProvider",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    # Exceptions
    "UsageAnalyticsError",
    "ConfigurationError",
    "ValidationError",
    "NotInitializedError",
    "DeliveryFailure",
    "RemoteConfigFailure",
]
