"""FastAPI application exposing the ingestion surface and the sync run log.

Run with ``uvicorn propsync.app.api:app``.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from propsync import __version__
from propsync.app.dependencies import (
    IngestionServiceDep,
    RateLimiterDep,
    SettingsDep,
    SyncRunRepositoryDep,
)
from propsync.infrastructure.http.client import ProviderConfigurationError, ProviderError
from propsync.infrastructure.observability import configure_logging, get_logger
from propsync.infrastructure.observability.metrics import format_prometheus
from propsync.services.dto import IngestRequest, SyncRunDTO, error_payload
from propsync.services.rate_limiter import client_ip, ip_key, retry_after_seconds
from propsync.services.sync import SyncValidationError

logger = get_logger(__name__)

INGEST_FUNCTION = "ingest"


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="propsync API", version=__version__, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_payload("Invalid request", details=jsonable_errors(exc)),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


@app.get("/")
async def root():
    """API root endpoint with name, version and links."""
    return {
        "name": "propsync API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "ingest": "/ingest",
            "sync_runs": "/sync-runs",
            "metrics": "/metrics",
        },
    }


@app.post("/ingest")
async def ingest(
    payload: IngestRequest,
    request: Request,
    settings: SettingsDep,
    limiter: RateLimiterDep,
    service: IngestionServiceDep,
):
    result = await asyncio.to_thread(
        limiter.check,
        ip_key(INGEST_FUNCTION, client_ip(request.headers)),
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
    )
    if not result.allowed:
        retry_after = retry_after_seconds(result)
        return JSONResponse(
            status_code=429,
            content=error_payload("Rate limit exceeded", retryAfter=retry_after),
            headers={"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"},
        )
    headers = {"X-RateLimit-Remaining": str(result.remaining)}

    try:
        body = await asyncio.to_thread(service.handle, payload)
    except ProviderConfigurationError as exc:
        logger.error(f"Provider not configured: {exc}")
        return JSONResponse(status_code=500, content=error_payload(str(exc)), headers=headers)
    except SyncValidationError as exc:
        return JSONResponse(status_code=400, content=error_payload(str(exc)), headers=headers)
    except ProviderError as exc:
        return JSONResponse(
            status_code=502,
            content=error_payload(
                str(exc),
                upstreamStatus=exc.status,
                details=(exc.body or "")[:1000] or None,
            ),
            headers=headers,
        )

    status_code = 400 if payload.action == "test" and not body.get("success") else 200
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.get("/sync-runs", response_model=list[SyncRunDTO])
async def list_sync_runs(
    repository: SyncRunRepositoryDep,
    limit: int = Query(20, ge=1, le=200),
    sync_type: str | None = Query(None),
) -> list[SyncRunDTO]:
    rows = repository.list_recent(limit=limit, sync_type=sync_type)
    return [SyncRunDTO.from_row(row) for row in rows]


@app.get("/sync-runs/{run_id}", response_model=SyncRunDTO)
async def get_sync_run(run_id: int, repository: SyncRunRepositoryDep) -> SyncRunDTO:
    row = repository.get(run_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Sync run {run_id} not found")
    return SyncRunDTO.from_row(row)


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> str:
    return format_prometheus() + "\n"
