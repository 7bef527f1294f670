"""Telemetry core - aggregation, quantized time, delivery and remote config."""

from .aggregate import AggregateStore, validate_event
from .clock import QuantizedClock
from .delivery import DeliveryEngine, DeliveryState, DeliveryTask
from .events import Bucket, Histogram, Scalar, SessionRecord
from .remote_config import RemoteConfig, RemoteConfigResolver, ResolvedSettings, resolve_settings

__all__ = [
    "AggregateStore",
    "validate_event",
    "QuantizedClock",
    "DeliveryEngine",
    "DeliveryState",
    "DeliveryTask",
    "Bucket",
    "Histogram",
    "Scalar",
    "SessionRecord",
    "RemoteConfig",
    "RemoteConfigResolver",
    "ResolvedSettings",
    "resolve_settings",
]
