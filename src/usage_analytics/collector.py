"""Reference collector - minimal FastAPI implementation of the collector endpoints.

Accepts session records on POST /ingest and serves per-app overrides on
GET /getAppConfig. Intended for self-hosted development setups and for
exercising the client end to end; it keeps everything in memory.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .telemetry.events import SCHEMA_VERSION


logger = logging.getLogger(__name__)


class BucketPayload(BaseModel):
    time: list[float]
    valueCount: list[float | dict[str, float]]


class IngestPayload(BaseModel):
    """Wire envelope of one session record."""
    schemaVersion: int
    accountID: str = Field(min_length=1)
    appName: str = Field(min_length=1)
    uuid: str
    sessionID: str
    unixTimestampUTC: int
    numEventsTotal: int = Field(ge=0)
    events: dict[str, dict[str, dict[str, BucketPayload]]]


class IngestResponse(BaseModel):
    status: str
    numEventsTotal: int


def create_app(app_config: dict[str, Any] | None = None) -> FastAPI:
    """
    Build a collector app.

    Args:
        app_config: JSON object returned verbatim by /getAppConfig
            (e.g. {"disabled": True} or {"postIntervalSecondsInit": 60})
    """
    app = FastAPI(title="Usage Analytics Collector")
    app.state.app_config = dict(app_config or {})
    app.state.received = []

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        # Malformed payloads are a client defect: 400, never retried
        return JSONResponse(status_code=400, content={"error": "Bad Request", "detail": str(exc)})

    @app.post("/ingest", response_model=IngestResponse)
    async def ingest(payload: IngestPayload):
        if payload.schemaVersion != SCHEMA_VERSION:
            return JSONResponse(
                status_code=400,
                content={"error": "Bad Request", "detail": f"unsupported schemaVersion {payload.schemaVersion}"},
            )
        app.state.received.append(payload.model_dump())
        logger.info(
            f"Ingested {payload.numEventsTotal} events from {payload.accountID}/{payload.appName}"
        )
        return IngestResponse(status="ok", numEventsTotal=payload.numEventsTotal)

    @app.get("/getAppConfig")
    async def get_app_config(
        account_id: str | None = Query(default=None, alias="accountID"),
        app_name: str | None = Query(default=None, alias="appName"),
    ):
        if not account_id or not app_name:
            return JSONResponse(
                status_code=400,
                content={"error": "Bad Request", "detail": "accountID and appName are required"},
            )
        return app.state.app_config

    return app
