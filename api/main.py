"""FastAPI service for auction shift staff.

Run with: uvicorn api.main:app --reload --port 8000

Endpoints:
- /api/auth - Shift password login and session status
- /api/auctions - Bidder lookup, edits, invoice link, raw rows
- /api/shipments - Outstanding shipments, diagnostics, shipping toggles
- /api/health - Health check

Every JSON response carries "success"; failures are
{"success": false, "error": "..."} with a matching HTTP status.
"""
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from api.routes import auctions, auth_routes, health, shipments
from core.config import ConfigurationError, get_config
from core.logging_config import LogContext, generate_request_id, setup_logging
from core.secrets import check_production_readiness
from services import AuctionToolError

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.

    - Uses the client's X-Request-ID or generates a short one
    - Sets it in the logging context for the request lifecycle
    - Adds X-Request-ID header to responses
    """
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        request.state.request_id = request_id

        with LogContext(request_id=request_id):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response


def error_response(status_code: int, message: str, details=None, headers=None) -> JSONResponse:
    """The failure envelope shared by every error handler."""
    content = {"success": False, "error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


app = FastAPI(
    title="Auction Shift Tools",
    description="Bidder lookup, payment/shipping status and outstanding shipments over Google Sheets",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Request ID middleware - add first so it runs for all requests
app.add_middleware(RequestIDMiddleware)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],  # Allow frontend to read request ID
)

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(auth_routes.router)
app.include_router(auctions.router)
app.include_router(shipments.router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(AuctionToolError)
async def auction_tool_error_handler(request: Request, exc: AuctionToolError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.details)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return error_response(exc.status_code, str(exc))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query"))
        problems.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return error_response(400, "; ".join(problems) or "Invalid request")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, str(exc) or exc.__class__.__name__)


@app.on_event("startup")
async def startup():
    config = get_config()
    setup_logging(config.log_level, config.log_format)
    for warning in check_production_readiness(
        config.auth.session_secret, config.auth.shift_password
    ):
        logger.warning(warning)
    logger.info(f"Starting with {config!r}")
