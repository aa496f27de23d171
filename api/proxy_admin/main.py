# api/proxy_admin/main.py

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from proxy_admin.core.config import settings
from proxy_admin.database import AsyncSessionLocal
from proxy_admin.routers import access_lists, groups, hosts, redirections, settings as settings_router, streams, system
from proxy_admin.services.config_pipeline import config_pipeline
from proxy_admin.services.config_sync_manager import ConfigSyncError, FullResyncSynchronizer

_logger = logging.getLogger("proxy_admin.requests")
logger = logging.getLogger(__name__)


REQUEST_LOG_SLOW_MS = 1000.0


def _log_response(request: Request, status_code: int, elapsed_ms: float) -> None:
    client = request.client.host if request.client else "unknown"
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400 or elapsed_ms >= REQUEST_LOG_SLOW_MS:
        level = logging.WARNING
    else:
        level = logging.DEBUG
    _logger.log(
        level,
        "%s %s -> %d client=%s elapsed_ms=%.1f",
        request.method,
        request.url.path,
        status_code,
        client,
        elapsed_ms,
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request at a level chosen by status code and latency."""

    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            _logger.exception(
                "%s %s raised after %.1fms",
                request.method,
                request.url.path,
                (time.monotonic() - start) * 1000,
            )
            raise

        _log_response(request, response.status_code, (time.monotonic() - start) * 1000)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Points the config pipeline at the configured directory and rebuilds it once,
    so a restarted admin API never leaves the proxy on a stale directory.
    """
    config_pipeline.synchronizer = FullResyncSynchronizer(settings.CONFIGS_DIR)

    if settings.RESYNC_ON_STARTUP:
        try:
            async with AsyncSessionLocal() as session:
                await config_pipeline.apply(session, reason="startup")
        except ConfigSyncError as exc:
            logger.error("Startup config resync failed: %s", exc.detail, extra={"diagnostics": exc.diagnostics})
        except Exception:
            # Store or signaler trouble at boot; the next mutation or /system/resync retries.
            logger.exception("Startup config resync failed; serving with the existing config directory")

    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="Admin API for the reverse proxy: hosts, access lists and generated proxy configuration",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Hosts", "description": "Manage virtual hosts, their locations and stream ports."},
        {"name": "Redirections", "description": "Hosts that only redirect to another domain."},
        {"name": "Streams", "description": "Raw TCP/UDP forwards."},
        {"name": "Groups", "description": "Host groups."},
        {"name": "Access Lists", "description": "IP rules and basic-auth policies for locations."},
        {"name": "Settings", "description": "Global settings."},
        {"name": "System", "description": "Health and manual config resync."},
    ],
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

# Include all the routers
app.include_router(hosts.router, prefix=settings.API_V1_STR)
app.include_router(redirections.router, prefix=settings.API_V1_STR)
app.include_router(streams.router, prefix=settings.API_V1_STR)
app.include_router(groups.router, prefix=settings.API_V1_STR)
app.include_router(access_lists.router, prefix=settings.API_V1_STR)
app.include_router(settings_router.router, prefix=settings.API_V1_STR)
app.include_router(system.router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    uvicorn.run("proxy_admin.main:app", host="0.0.0.0", port=settings.port, workers=1)
