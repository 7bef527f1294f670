"""Delivery engine - periodic hand-off of session records with linear backoff retry."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..config import AnalyticsConfig, strip_trailing_slash
from ..errors import DeliveryFailure
from ..transport.base import Transport
from ..transport.connectivity import AlwaysOnline, Connectivity
from .events import Number, SessionRecord


logger = logging.getLogger(__name__)

INGEST_PATH = "/ingest"
JSON_HEADERS = {"Content-Type": "application/json"}


class DeliveryState(str, Enum):
    """Where a detached record is in its retry chain."""
    PENDING = "pending"
    SENT = "sent"
    REJECTED = "rejected"   # 400 - client/library defect, never retried
    DROPPED = "dropped"     # disabled, closed or out of attempts


@dataclass
class DeliveryTask:
    """
    Retry state for one detached record.

    The body is serialized once, so every attempt sends identical bytes.
    """
    record: SessionRecord
    body: str
    attempt: int = 1
    state: DeliveryState = DeliveryState.PENDING
    last_failure: DeliveryFailure | None = None

    @classmethod
    def for_record(cls, record: SessionRecord) -> DeliveryTask:
        return cls(record=record, body=json.dumps(record.to_dict(), separators=(",", ":"), allow_nan=False))

    @property
    def size_bytes(self) -> int:
        return len(self.body.encode("utf-8"))


@dataclass
class DeliveryEngine:
    """
    Detaches the live session record on an interval and ships it.

    flush() is synchronous: the record swap happens before any suspension
    point, so events recorded after a flush starts always land in the new
    record. Network I/O runs in one asyncio task per detached record.

    Outcome per attempt:
    - 200: delivered, record discarded
    - 400: rejected, record discarded, logged as an error
    - anything else, transport error, or offline: wait
      retry_base_seconds * attempt, then try again
    """
    transport: Transport
    config: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    connectivity: Connectivity = field(default_factory=AlwaysOnline)

    # Swaps in a fresh record and returns the old one
    detach: Callable[[], SessionRecord] | None = None
    # Disabled gate owned by the session controller
    is_disabled: Callable[[], bool] = lambda: False

    base_url: str = field(default="", init=False)
    post_interval_seconds: Number = field(default=0, init=False)

    _flush_task: asyncio.Task | None = field(default=None, init=False)
    _deliveries: dict[asyncio.Task, DeliveryTask] = field(default_factory=dict, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self.base_url = self.config.base_url
        self.post_interval_seconds = self.config.post_interval_seconds
        self._stats = {
            "flushes": 0,
            "sent": 0,
            "retries": 0,
            "rejected": 0,
            "dropped": 0,
            "errors": 0,
        }

    @property
    def ingest_url(self) -> str:
        return f"{self.base_url}{INGEST_PATH}"

    def flush(self) -> DeliveryTask | None:
        """
        Detach the current record and start delivering it.

        Returns the delivery task, or None when disabled or when the
        detached record held no events (no network call is made).
        """
        if self.is_disabled():
            return None
        if self.detach is None:
            raise RuntimeError("Delivery engine has no record source")

        record = self.detach()
        self._stats["flushes"] += 1
        if record.is_empty:
            return None
        return self.submit(record)

    def submit(self, record: SessionRecord) -> DeliveryTask:
        """Start a retry chain for an already detached record."""
        delivery = DeliveryTask.for_record(record)
        if delivery.size_bytes > self.config.large_payload_threshold_bytes:
            logger.warning(
                f"Analytics payload is very large ({delivery.size_bytes}B). "
                f"This usually means too many distinct event values are being recorded."
            )
        task = asyncio.get_running_loop().create_task(self._deliver(delivery))
        self._deliveries[task] = delivery
        task.add_done_callback(self._deliveries.pop)
        return delivery

    async def _deliver(self, delivery: DeliveryTask) -> None:
        try:
            await self._retry_loop(delivery)
        except Exception as e:
            logger.error(f"Analytics delivery error: {e}")
            self._stats["errors"] += 1
            self._finish(delivery, DeliveryState.DROPPED)

    async def _retry_loop(self, delivery: DeliveryTask) -> None:
        max_attempts = self.config.max_retry_attempts
        while True:
            if self.is_disabled():
                self._finish(delivery, DeliveryState.DROPPED)
                return

            failure = await self._attempt(delivery)
            if failure is None:
                self._finish(delivery, DeliveryState.SENT)
                return

            delivery.last_failure = failure
            if failure.status_code == 400:
                logger.error(
                    "Analytics collector rejected the payload (400 Bad Request). "
                    "This is most likely a client library problem, update to the latest version."
                )
                self._finish(delivery, DeliveryState.REJECTED)
                return

            if max_attempts is not None and delivery.attempt >= max_attempts:
                logger.warning(f"Giving up on analytics payload after {delivery.attempt} attempts: {failure}")
                self._finish(delivery, DeliveryState.DROPPED)
                return

            delay = self.config.retry_base_seconds * delivery.attempt
            logger.warning(f"Failed to send analytics payload ({failure}). Will retry in {delay}s")
            self._stats["retries"] += 1
            await asyncio.sleep(delay)
            delivery.attempt += 1

    async def _attempt(self, delivery: DeliveryTask) -> DeliveryFailure | None:
        """One POST; returns None on success."""
        if not self.connectivity.is_online():
            return DeliveryFailure("offline")

        try:
            response = await self.transport.post(self.ingest_url, delivery.body, headers=JSON_HEADERS)
        except Exception as e:
            self._stats["errors"] += 1
            return DeliveryFailure(f"transport error: {e}")

        if response.status_code == 200:
            return None
        return DeliveryFailure(f"collector returned {response.status_code}", response.status_code)

    def _finish(self, delivery: DeliveryTask, state: DeliveryState) -> None:
        delivery.state = state
        self._stats[state.value] += 1

    def start(self) -> None:
        """Start the periodic flush task (requires a running loop)."""
        self.stop()
        self._flush_task = asyncio.get_running_loop().create_task(self._flush_loop())

    def stop(self) -> None:
        """Stop periodic flushing. In-flight deliveries keep retrying."""
        if self._flush_task is not None:
            self._flush_task.cancel()
            self._flush_task = None

    def reconfigure(self, post_interval_seconds: Number | None = None, base_url: str | None = None) -> None:
        """Point the engine at new timing and/or routing."""
        if base_url:
            self.base_url = strip_trailing_slash(base_url)
        if post_interval_seconds:
            self.post_interval_seconds = post_interval_seconds
            if self.running:
                self.start()
        logger.info(f"Delivery engine set to {self.ingest_url} every {self.post_interval_seconds}s")

    async def close(self) -> None:
        """Stop flushing and cancel in-flight deliveries."""
        self.stop()
        pending = dict(self._deliveries)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for delivery in pending.values():
            if delivery.state is DeliveryState.PENDING:
                self._finish(delivery, DeliveryState.DROPPED)
        logger.info(f"Delivery engine stopped. Stats: {self.stats}")

    async def wait_for_deliveries(self, timeout: float | None = None) -> None:
        """Wait until every in-flight delivery has finished."""
        pending = list(self._deliveries)
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    async def _flush_loop(self) -> None:
        logger.info(f"Analytics flush timer started (interval={self.post_interval_seconds}s)")
        while True:
            await asyncio.sleep(self.post_interval_seconds)
            try:
                self.flush()
            except Exception as e:
                logger.error(f"Analytics flush error: {e}")
                self._stats["errors"] += 1

    @property
    def running(self) -> bool:
        return self._flush_task is not None and not self._flush_task.done()

    @property
    def in_flight(self) -> int:
        return len(self._deliveries)

    @property
    def stats(self) -> dict:
        """Get delivery statistics."""
        return {
            **self._stats,
            "in_flight": self.in_flight,
        }
