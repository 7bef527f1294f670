"""Remote configuration - server-supplied overrides fetched once per session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError as PydanticValidationError

from ..config import AnalyticsConfig, strip_trailing_slash
from ..errors import RemoteConfigFailure
from ..transport.base import Transport
from ..transport.connectivity import AlwaysOnline, Connectivity
from .events import Number


logger = logging.getLogger(__name__)


class RemoteConfig(BaseModel):
    """
    Overrides returned by GET /getAppConfig.

    Every field is optional. Unknown keys are kept so they show up in
    AnalyticsSession.get_config() for diagnostics.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    post_interval_seconds: float | None = Field(default=None, alias="postIntervalSecondsInit")
    granularity_seconds: float | None = Field(default=None, alias="granularitySecInit")
    base_url: str | None = Field(default=None, alias="analyticsURLInit")
    # Kept untyped: only a literal JSON true disables the session
    disabled: Any = None

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_response(cls, body: dict[str, Any]) -> RemoteConfig:
        config = cls.model_validate(body)
        config._raw = dict(body)
        return config

    def raw(self) -> dict[str, Any]:
        """The server response as received (empty when there were no overrides)."""
        return dict(self._raw)


@dataclass
class ResolvedSettings:
    """Effective timing, routing and enablement after applying precedence."""
    post_interval_seconds: Number
    granularity_seconds: Number
    base_url: str
    disabled: bool = False


def _positive(value: Any) -> Number | None:
    # None, 0 and negatives all count as "not supplied"
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return value
    return None


def resolve_settings(
    remote: RemoteConfig,
    defaults: AnalyticsConfig,
    post_interval_seconds: Number | None = None,
    granularity_seconds: Number | None = None,
    base_url: str | None = None,
) -> ResolvedSettings:
    """
    Reconcile caller-supplied init values, server overrides and defaults.

    Timing: init value, else server value, else default.
    Routing: server value, else init value, else default; the server is
    authoritative for where data goes.
    """
    post_interval = (
        _positive(post_interval_seconds)
        or _positive(remote.post_interval_seconds)
        or defaults.post_interval_seconds
    )
    granularity = (
        _positive(granularity_seconds)
        or _positive(remote.granularity_seconds)
        or defaults.granularity_seconds
    )
    url = remote.base_url or base_url or defaults.base_url
    return ResolvedSettings(
        post_interval_seconds=post_interval,
        granularity_seconds=granularity,
        base_url=strip_trailing_slash(url),
        disabled=remote.disabled is True,
    )


@dataclass
class RemoteConfigResolver:
    """
    Fetches remote overrides, best-effort.

    resolve() never raises: any failure (offline, non-200, bad body,
    transport error) is logged and yields an empty RemoteConfig.
    """
    transport: Transport
    connectivity: Connectivity = field(default_factory=AlwaysOnline)

    async def resolve(self, account_id: str, app_name: str, base_url: str) -> RemoteConfig:
        try:
            return await self._fetch(account_id, app_name, base_url)
        except RemoteConfigFailure as e:
            logger.warning(f"Could not update from remote config, continuing with defaults: {e}")
        except Exception as e:
            logger.warning(f"Remote config request failed, continuing with defaults: {e}")
        return RemoteConfig()

    async def _fetch(self, account_id: str, app_name: str, base_url: str) -> RemoteConfig:
        if not self.connectivity.is_online():
            raise RemoteConfigFailure("offline")

        url = f"{strip_trailing_slash(base_url)}/getAppConfig"
        response = await self.transport.get(url, params={"accountID": account_id, "appName": app_name})

        if response.status_code == 400:
            raise RemoteConfigFailure("bad request, check library version compatibility", 400)
        if response.status_code != 200:
            raise RemoteConfigFailure(f"unexpected status {response.status_code}", response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteConfigFailure(f"malformed body: {e}", 200) from e
        if not isinstance(body, dict):
            raise RemoteConfigFailure("malformed body: expected a JSON object", 200)

        try:
            return RemoteConfig.from_response(body)
        except PydanticValidationError as e:
            raise RemoteConfigFailure(f"malformed body: {e.error_count()} invalid field(s)", 200) from e
