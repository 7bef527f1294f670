"""Analytics session - the public entry point tying all components together."""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from .config import AnalyticsConfig, strip_trailing_slash
from .errors import ConfigurationError, NotInitializedError
from .identity.provider import IdentityProvider
from .telemetry.aggregate import AggregateStore
from .telemetry.clock import QuantizedClock
from .telemetry.delivery import DeliveryEngine, DeliveryTask
from .telemetry.events import Number, SessionRecord
from .telemetry.remote_config import RemoteConfig, RemoteConfigResolver, ResolvedSettings, resolve_settings
from .transport.base import Transport
from .transport.connectivity import AlwaysOnline, Connectivity
from .transport.http import HttpTransport


logger = logging.getLogger(__name__)


@dataclass
class AnalyticsSession:
    """
    Client-side usage analytics session.

    Usage:
        session = AnalyticsSession()
        session.init("my-account", "my-app")
        session.record("editor", "file", "open")
        session.record("build", "duration", "ms", count=1, value=420)

        # On shutdown
        await session.close(flush=True)

    Must be initialised from inside a running asyncio event loop: the
    tick, flush and remote-config work all run as tasks on that loop.
    record() never blocks and never touches the network.
    """
    config: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    identity: IdentityProvider = field(default_factory=IdentityProvider)
    transport: Transport | None = None
    connectivity: Connectivity = field(default_factory=AlwaysOnline)

    # Internal state
    _record: SessionRecord | None = field(default=None, init=False)
    _account_id: str = field(default="", init=False)
    _app_name: str = field(default="", init=False)
    _user_id: str = field(default="", init=False)
    _session_id: str = field(default="", init=False)
    _init_overrides: dict[str, Any] = field(default_factory=dict, init=False)
    _settings: ResolvedSettings | None = field(default=None, init=False)
    _server_config: dict[str, Any] = field(default_factory=dict, init=False)
    _disabled: bool = field(default=False, init=False)
    _owns_transport: bool = field(default=False, init=False)
    _remote_task: asyncio.Task | None = field(default=None, init=False)
    _errors: int = field(default=0, init=False)

    def __post_init__(self):
        if self.transport is None:
            self.transport = HttpTransport(timeout=self.config.timeout_seconds)
            self._owns_transport = True

        self._store = AggregateStore()
        self._clock = QuantizedClock(self.config.granularity_seconds)
        self._delivery = DeliveryEngine(
            transport=self.transport,
            config=self.config,
            connectivity=self.connectivity,
            detach=self._detach,
            is_disabled=lambda: self._disabled,
        )
        self._resolver = RemoteConfigResolver(self.transport, self.connectivity)

    def init(
        self,
        account_id: str,
        app_name: str,
        base_url: str | None = None,
        post_interval_seconds: Number | None = None,
        granularity_seconds: Number | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            account_id: Analytics account id as configured on the collector
            app_name: App name to log the events against
            base_url: Optional self-hosted collector address. The collector's
                remote config may still redirect to another URL.
            post_interval_seconds: Optional interval between deliveries
                (default 10 minutes)
            granularity_seconds: Optional smallest distinguishable time period.
                Events within one period are aggregated and their order is lost
                (default 3 seconds).

        Raises:
            ConfigurationError: account_id or app_name is empty
        """
        if not account_id or not app_name:
            raise ConfigurationError("account_id and app_name must exist for init")

        if self._disabled:
            # Disabled by the collector: stays off until process restart
            logger.info("Analytics disabled by remote config, ignoring init")
            return

        self._teardown()

        self._account_id = account_id
        self._app_name = app_name
        self._init_overrides = {
            "post_interval_seconds": post_interval_seconds,
            "granularity_seconds": granularity_seconds,
            "base_url": strip_trailing_slash(base_url) if base_url else None,
        }
        self._server_config = {}

        self._user_id = self.identity.get_or_create_persistent_id()
        self._session_id = self.identity.get_or_create_session_id()
        self._record = self._new_record()

        self._apply_settings(resolve_settings(RemoteConfig(), self.config, **self._init_overrides))
        self._clock.reset()
        self._clock.start()
        self._delivery.start()

        self._remote_task = asyncio.get_running_loop().create_task(
            self._init_from_remote_config(self._settings.base_url)
        )

    def record(
        self,
        event_type: str,
        category: str,
        subcategory: str,
        count: Number = 1,
        value: Number = 0,
    ) -> None:
        """
        Register an analytics event.

        Events are aggregated in memory and delivered periodically.

        Args:
            event_type: Required, non-empty
            category: Required, non-empty
            subcategory: Required, non-empty
            count: Non-negative number of times the event (or the event with
                `value`) happened. Defaults to 1.
            value: Number associated with the event. Defaults to 0 (no value).

        Raises:
            NotInitializedError: called before init()
            ValidationError: malformed arguments; nothing is recorded
        """
        record = self._require_record()
        if self._disabled:
            return
        self._store.record(record, self._clock.current(), event_type, category, subcategory, count, value)

    def current_snapshot(self) -> SessionRecord:
        """Independent deep copy of the live session record."""
        return copy.deepcopy(self._require_record())

    def get_config(self) -> dict[str, Any]:
        """Effective configuration, including the raw server response."""
        settings = self._settings
        return {
            "account_id": self._account_id,
            "app_name": self._app_name,
            "disabled": self._disabled,
            "user_id": self._user_id,
            "session_id": self._session_id,
            "post_interval_seconds": settings.post_interval_seconds if settings else None,
            "granularity_seconds": settings.granularity_seconds if settings else None,
            "base_url": settings.base_url if settings else None,
            "server_config": dict(self._server_config),
        }

    def flush(self) -> DeliveryTask | None:
        """Detach the current record and deliver it now."""
        self._require_record()
        return self._delivery.flush()

    async def close(self, flush: bool = False, timeout: float | None = 5.0) -> None:
        """
        Stop timers and cancel background work.

        With flush=True the current record is delivered first, waiting at
        most `timeout` seconds for in-flight deliveries.
        """
        if flush and self._record is not None:
            self.flush()
            await self._delivery.wait_for_deliveries(timeout=timeout)

        self._teardown()
        if self._remote_task is not None:
            await asyncio.gather(self._remote_task, return_exceptions=True)
            self._remote_task = None
        await self._delivery.close()
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self) -> AnalyticsSession:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def initialized(self) -> bool:
        return self._record is not None

    @property
    def disabled(self) -> bool:
        return self._disabled

    @property
    def clock(self) -> QuantizedClock:
        return self._clock

    @property
    def delivery(self) -> DeliveryEngine:
        return self._delivery

    @property
    def stats(self) -> dict:
        """Session statistics."""
        return {
            "initialized": self.initialized,
            "disabled": self._disabled,
            "total_event_count": self._record.total_event_count if self._record else 0,
            "quantized_time": self._clock.current(),
            "errors": self._errors,
            "delivery": self._delivery.stats,
        }

    def _require_record(self) -> SessionRecord:
        if self._record is None:
            raise NotInitializedError()
        return self._record

    def _new_record(self) -> SessionRecord:
        return SessionRecord.create(self._account_id, self._app_name, self._user_id, self._session_id)

    def _detach(self) -> SessionRecord:
        """Swap in a fresh record; no suspension point between read and write."""
        detached = self._require_record()
        self._record = self._new_record()
        self._clock.reset()
        return detached

    def _teardown(self) -> None:
        """Stop timers and a pending remote-config fetch."""
        self._clock.stop()
        self._delivery.stop()
        if self._remote_task is not None and not self._remote_task.done():
            self._remote_task.cancel()

    def _apply_settings(self, settings: ResolvedSettings) -> None:
        self._settings = settings
        self._clock.reconfigure(settings.granularity_seconds)
        self._delivery.reconfigure(
            post_interval_seconds=settings.post_interval_seconds,
            base_url=settings.base_url,
        )

    async def _init_from_remote_config(self, base_url: str) -> None:
        try:
            await self._apply_remote_config(base_url)
        except Exception as e:
            logger.error(f"Error applying remote analytics config: {e}")
            self._errors += 1

    async def _apply_remote_config(self, base_url: str) -> None:
        remote = await self._resolver.resolve(self._account_id, self._app_name, base_url)
        self._server_config = remote.raw()
        settings = resolve_settings(remote, self.config, **self._init_overrides)

        if settings.disabled:
            self._settings = settings
            self._disabled = True
            self._clock.stop()
            self._delivery.stop()
            logger.info(f"Analytics disabled by remote config for {self._account_id}/{self._app_name}")
            return

        self._apply_settings(settings)
        logger.info(
            f"Init analytics config from remote. URL: {settings.base_url}, "
            f"post_interval_seconds: {settings.post_interval_seconds}, "
            f"granularity_seconds: {settings.granularity_seconds}"
        )
