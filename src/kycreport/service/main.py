"""
kycreport FastAPI Service

REST API for flow lookups and verification report export.

Endpoints:
    GET  /health         - Liveness probe
    GET  /flows          - Flow catalog (name -> required steps)
    GET  /flows/{name}   - Resolved steps and field visibility for a flow
    POST /report/pdf     - Compile a verification report, returns a PDF attachment
"""

import json
import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..config import KR_HOST, KR_LOG_LEVEL, KR_PORT
from ..exceptions import FlowCatalogError
from ..flows import default_resolver
from .routers import flows, report

# =============================================================================
# Logging Setup (Structured JSON)
# =============================================================================

class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Add extra fields if present
        if hasattr(record, "request_id"):
            log_entry["request_id"] = record.request_id
        if hasattr(record, "duration_ms"):
            log_entry["duration_ms"] = record.duration_ms
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


# Configure logging
logger = logging.getLogger("kycreport")
logger.setLevel(getattr(logging, KR_LOG_LEVEL.upper(), logging.INFO))
if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="kycreport",
    description="Flow-aware KYC verification report export",
    version=__version__,
)

app.include_router(flows.router)
app.include_router(report.router)


class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    version: str


# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests and log the request duration."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id
    start_time = time.time()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    logger.debug(
        "%s %s -> %d", request.method, request.url.path, response.status_code,
        extra={"request_id": request_id, "duration_ms": round((time.time() - start_time) * 1000, 1)},
    )
    return response


@app.exception_handler(FlowCatalogError)
async def catalog_error_handler(request: Request, exc: FlowCatalogError):
    exc.request_id = getattr(request.state, "request_id", None)
    return JSONResponse(status_code=500, content=exc.to_dict())


# =============================================================================
# Health Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Liveness probe - checks if process is alive."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
    )


@app.on_event("startup")
async def startup():
    resolver = default_resolver()
    logger.info("kycreport starting (v%s)", __version__)
    logger.info("Flows loaded: %s", ", ".join(resolver.catalog.names))


@app.on_event("shutdown")
async def shutdown_event():
    """Log shutdown."""
    logger.info("kycreport shutting down")


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "kycreport.service.main:app",
        host=KR_HOST,
        port=KR_PORT,
        log_level=KR_LOG_LEVEL.lower(),
    )
