"""Shared test fixtures for the analytics client tests."""

import pytest

from usage_analytics.config import AnalyticsConfig
from usage_analytics.identity import IdentityProvider, InMemoryStore
from usage_analytics.session import AnalyticsSession
from usage_analytics.telemetry.events import SessionRecord
from usage_analytics.transport.connectivity import StaticConnectivity

from tests.mocks.transport import ScriptedTransport


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def config() -> AnalyticsConfig:
    """Fast, environment-independent configuration."""
    return AnalyticsConfig(
        base_url="https://collector.test",
        post_interval_seconds=600,
        granularity_seconds=3,
        retry_base_seconds=0.01,
        max_retry_attempts=None,
        large_payload_threshold_bytes=10000,
        timeout_seconds=5,
    )


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def transport() -> ScriptedTransport:
    """Collector stand-in: every POST succeeds, remote config is empty."""
    return ScriptedTransport()


@pytest.fixture
def connectivity() -> StaticConnectivity:
    return StaticConnectivity(online=True)


@pytest.fixture
def identity() -> IdentityProvider:
    return IdentityProvider(persistent_store=InMemoryStore(), session_store=InMemoryStore())


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture
def session(config, transport, connectivity, identity) -> AnalyticsSession:
    """Uninitialised session wired to the scripted transport."""
    return AnalyticsSession(
        config=config,
        identity=identity,
        transport=transport,
        connectivity=connectivity,
    )


@pytest.fixture
def record() -> SessionRecord:
    return SessionRecord.create("acc1", "app1", "user-1", "session-1")
