"""FastAPI server for the TeacherMada advisor agent.

Run with:
    uvicorn advisor_agent.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from advisor_agent.agent import create_orchestrator
from advisor_agent.api.routes import router
from advisor_agent.config import cors_origins, load_settings
from advisor_agent.services.metrics import metrics
from advisor_agent.services.request_log import RequestLog

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the orchestrator once and store it in app state.

    A :class:`~advisor_agent.errors.ConfigurationError` (e.g. no API
    keys) propagates and aborts start-up: the server refuses to run
    without a way to reach the provider.
    """
    settings = load_settings()
    logger.info("Building advisor orchestrator (%d credential(s))…", len(settings.api_keys))
    application.state.orchestrator = create_orchestrator(settings)
    application.state.request_log = RequestLog(settings.request_log_size)
    logger.info("Agent ready.")
    yield
    metrics.flush()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="TeacherMada Advisor Agent",
    description=(
        "Commercial advisor agent for TeacherMada. Answers prospects in "
        "their language and classifies intent and next action."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (needed for the web simulator) ──────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "TeacherMada Advisor Agent",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
        "chat": "/api/agent/chat",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    _settings = load_settings()
    logger.info("Starting advisor API server on %s:%d", _settings.server_host, _settings.server_port)
    uvicorn.run(
        "advisor_agent.server:app",
        host=_settings.server_host,
        port=_settings.server_port,
        reload=True,
    )
