# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.errors import GatewayError
from core.log_config import configure_logging
from core.providers import init_providers
from core.settings import get_settings

# Routers
from benchmark.router import router as benchmark_router
from gateway.router import router as gateway_router
from health.router import router as health_router

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Lifespan: providers are built once and live for the whole process
# ---------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests may pre-attach fake providers
    if getattr(app.state, "providers", None) is None:
        init_providers(app)
    s = app.state.providers.settings
    log.info(
        "Storage gateway ready (endpoint=%s default_bucket=%s tls=%s)",
        s.storage.endpoint, s.storage.bucket, s.storage.secure,
    )
    yield


# ---------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------

configure_logging()

app = FastAPI(
    title="Object Storage Gateway",
    description="S3-compatible file operations plus an FTP vs object store benchmark.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    else:
        log.info("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)

    content = {"error": type(exc).__name__, "detail": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "UnexpectedError", "detail": f"Unexpected error: {exc}"},
    )


# ---------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------

app.include_router(health_router)
app.include_router(gateway_router)
app.include_router(benchmark_router)


# ---------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------

@app.get("/")
async def root():
    return {"status": "ok", "message": "Object storage gateway running"}


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )
