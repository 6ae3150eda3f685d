"""
FastAPI application for the Market Gateway.
The lifespan owns the GatewayService: backing-store clients, core services and
the asset directory refresh loop.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import time

from market_gateway.core.config import settings
from market_gateway.core.exceptions import ErrorCode, GatewayError, UpstreamFailureError
from market_gateway.core.logging_config import setup_logging, create_logger
from market_gateway.api.endpoints import router as api_router
from market_gateway.api.schemas import ErrorResponse
from market_gateway.services.gateway import GatewayService

setup_logging()
logger = create_logger(__name__)

started_at = datetime.utcnow()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the gateway service before serving and stop it afterwards."""
    global started_at

    logger.info("Market Gateway starting", extra={
        "version": settings.app_version,
        "debug": settings.debug
    })

    gateway = GatewayService()

    try:
        await gateway.initialize()
        await gateway.start_background_tasks()
    except Exception as e:
        logger.error("Market Gateway failed to start", extra={"error": str(e)})
        raise

    app.state.gateway = gateway
    started_at = datetime.utcnow()
    logger.info("Market Gateway ready")

    yield

    logger.info("Market Gateway stopping")
    try:
        await gateway.shutdown()
    except Exception as e:
        logger.error("Market Gateway did not stop cleanly", extra={"error": str(e)})


app = FastAPI(
    title=settings.app_name,
    description="Public market data gateway: rates, rate history, candles and order books",
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

if settings.get_allowed_hosts_list() != ["*"]:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.get_allowed_hosts_list())


def _error_response(status_code: int, code: ErrorCode, message: str, details: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ErrorResponse(code=code, message=message, details=details))
    )


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Access log with timing; unexpected failures become InternalError bodies."""
    started = time.time()
    context = {
        "method": request.method,
        "url": str(request.url),
        "client_ip": _client_ip(request)
    }

    logger.info("Request received", extra={**context, "user_agent": request.headers.get("user-agent")})

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("Request failed", extra={
            **context,
            "error": str(e),
            "process_time": round(time.time() - started, 4)
        })
        return _error_response(500, ErrorCode.INTERNAL_ERROR, "Internal server error")

    elapsed = time.time() - started
    logger.info("Request completed", extra={
        **context,
        "status_code": response.status_code,
        "process_time": round(elapsed, 4)
    })
    response.headers["X-Process-Time"] = str(elapsed)
    return response


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Map gateway errors to their status code and error body."""
    if isinstance(exc, UpstreamFailureError):
        logger.error("Backing service failure", extra={
            "path": request.url.path,
            "method": request.method,
            "source": exc.source,
            "key": exc.key,
            "error": exc.message
        })
        return _error_response(exc.status_code, exc.code, "Internal server error")

    if exc.status_code >= 500:
        logger.error("Request failed with gateway error", extra={
            "path": request.url.path,
            "method": request.method,
            "error": exc.message
        })
        return _error_response(exc.status_code, exc.code, "Internal server error")

    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as invalid input."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    return _error_response(400, ErrorCode.INVALID_INPUT, message or "Invalid request")


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return _error_response(
        404,
        ErrorCode.NOT_FOUND,
        "Endpoint not found",
        details={"path": request.url.path, "method": request.method}
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    logger.error("Unhandled server error", extra={
        "path": request.url.path,
        "method": request.method,
        "error": str(exc)
    })
    return _error_response(500, ErrorCode.INTERNAL_ERROR, "Internal server error")


app.include_router(api_router, tags=["Market Gateway API"])


def _gateway(request: Request) -> Optional[GatewayService]:
    return getattr(request.app.state, "gateway", None)


async def _probe(gateway: GatewayService) -> Dict[str, Any]:
    last_refresh = gateway.get_last_update_times().get('asset_list_update')
    return {
        "redis": await gateway.cache.health_check(),
        "tasks": gateway.are_background_tasks_running(),
        # Reference data is needed to validate requests
        "directory_fresh": (
            last_refresh is not None
            and (datetime.utcnow() - last_refresh).total_seconds() < settings.assets_cache_ttl * 2
        )
    }


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs_url": "/docs" if settings.debug else "disabled",
        "timestamp": datetime.utcnow()
    }


@app.get("/healthz", include_in_schema=False)
async def healthz(request: Request):
    """Liveness probe: Redis reachable and refresh loop alive."""
    gateway = _gateway(request)
    if gateway is None:
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": "not started"})

    probe = await _probe(gateway)
    if probe["redis"] and probe["tasks"]:
        return {"status": "healthy"}

    return JSONResponse(status_code=503, content={"status": "unhealthy", **probe})


@app.get("/ready", include_in_schema=False)
async def ready(request: Request):
    """Readiness probe: liveness plus a recently refreshed asset directory."""
    gateway = _gateway(request)
    if gateway is None:
        return JSONResponse(status_code=503, content={"status": "not_ready", "error": "not started"})

    probe = await _probe(gateway)
    if all(probe.values()):
        return {"status": "ready"}

    return JSONResponse(status_code=503, content={"status": "not_ready", **probe})


@app.get("/info", include_in_schema=False)
async def info(request: Request):
    """Service metadata, backing service status and refresh times."""
    gateway = _gateway(request)

    return jsonable_encoder({
        "service": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
            "uptime_seconds": (datetime.utcnow() - started_at).total_seconds(),
            "started_at": started_at
        },
        "providers": await gateway.get_provider_health_status() if gateway else {},
        "background_tasks": {
            "running": gateway.are_background_tasks_running() if gateway else False,
            "last_updates": gateway.get_last_update_times() if gateway else {}
        },
        "reference_data": {
            "assets_ttl": settings.assets_cache_ttl,
            "refresh_interval": settings.asset_list_update_interval,
            "strict_candle_alignment": settings.strict_candle_alignment
        },
        "timestamp": datetime.utcnow()
    })


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "market_gateway.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True
    )
