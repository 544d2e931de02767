"""Main FastAPI application."""

import logging

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from medbox import __version__
from medbox.api.api import api_router
from medbox.config import settings
from medbox.database import SessionLocal
from medbox.dependencies import build_token_authority, build_user_store
from medbox.errors import MedboxError, UpstreamUnavailable

# Custom TRACE level
logging.TRACE = 5
logging.addLevelName(logging.TRACE, "TRACE")


def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(logging.TRACE):
        self._log(logging.TRACE, msg, args, **kwargs)


logging.Logger.trace = trace_method

# Configure root logger early
log_level_str = settings.log_level.upper()
log_level = logging.TRACE if log_level_str == "TRACE" else getattr(logging, log_level_str, logging.INFO)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )

    root = logging.getLogger()

    # VERBOSE = DEBUG everywhere plus SQL statements
    if log_level_str == "VERBOSE":
        root_level = logging.DEBUG
        sql_level = logging.INFO
        root.info("VERBOSE mode enabled: SQL statements are logged.")
    elif log_level_str == "TRACE":
        root_level = logging.TRACE
        sql_level = logging.INFO
    else:
        root_level = log_level
        sql_level = logging.WARNING

    root.setLevel(root_level)
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("passlib").setLevel(logging.WARNING)

    root.trace("Trace logging enabled at startup (verbose details).") if log_level_str == "TRACE" else root.debug("Debug logging enabled at startup.")

log = logging.getLogger(__name__)

app = FastAPI(
    title="Medication Box Inventory",
    description="Inventory tracking for medication boxes with PIN login and audit trail",
    version=__version__
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)

# Composition root: one store and one token authority per process
app.state.user_store = build_user_store(SessionLocal)
app.state.token_authority = build_token_authority(settings)


@app.exception_handler(MedboxError)
async def medbox_error_handler(request: Request, exc: MedboxError):
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": errors}
    )


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
async def database_unavailable_handler(request: Request, exc: Exception):
    log.error(f"Database unavailable during {request.method} {request.url.path}: {exc}")
    unavailable = UpstreamUnavailable()
    return JSONResponse(
        status_code=unavailable.status_code,
        content={"detail": unavailable.message},
        headers=unavailable.headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


@app.get(f"{settings.api_prefix}/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/")
async def root():
    """Root endpoint - points to docs."""
    return {
        "message": "Medication Box Inventory API",
        "version": __version__,
        "docs": "/docs"
    }


app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080, log_level="debug" if logging.getLogger().level <= logging.DEBUG else "info")
