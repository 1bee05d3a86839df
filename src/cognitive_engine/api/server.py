"""FastAPI application — analysis endpoints, haptic table and live sessions.

This module wires together:
- CORS, request logging and error-handling middleware
- Bio-cognitive analysis (classification, history, trend)
- Static haptic pattern table
- Live tracking sessions over ``/ws/session``
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cognitive_engine.api.middleware import setup_middleware
from cognitive_engine.api.routes.analysis import router as analysis_router
from cognitive_engine.api.routes.haptics import router as haptics_router
from cognitive_engine.api.websocket import LiveSession
from cognitive_engine.cognitive.analysis import CognitiveAnalyser
from cognitive_engine.config import get_settings
from cognitive_engine.errors import CognitiveEngineError, InvalidSample

__version__ = "0.1.0"

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_analyser: CognitiveAnalyser | None = None
_live_sessions: dict[str, LiveSession] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _analyser

    settings = get_settings()
    _analyser = CognitiveAnalyser.from_settings(settings)
    logger.info(
        "server.started",
        port=settings.api_port,
        forwarding=bool(settings.forward_url),
    )

    yield  # ← application runs

    for live in list(_live_sessions.values()):
        await live.controller.close()
    _live_sessions.clear()
    _analyser = None
    logger.info("server.stopped")


app = FastAPI(
    title="Cognitive State Engine API",
    description="Real-time attention, cognitive-load and haptic feedback engine for adaptive learning.",
    version=__version__,
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────

setup_middleware(app)

# ── Error mapping ─────────────────────────────────────────────


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(e.get("type") == "missing" for e in errors):
        message = "Missing required fields"
    elif any(e.get("type") == "json_invalid" for e in errors):
        message = "Request body is not valid JSON"
    else:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid field '{loc}': {first.get('msg')}" if loc else "Request body must be a JSON object"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(InvalidSample)
async def _invalid_sample(request: Request, exc: InvalidSample):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(CognitiveEngineError)
async def _engine_error(request: Request, exc: CognitiveEngineError):
    return JSONResponse(status_code=500, content={"error": str(exc)})


# ── Routers ───────────────────────────────────────────────────

app.include_router(analysis_router)
app.include_router(haptics_router)


# ── Health ────────────────────────────────────────────────────


@app.get("/health", tags=["system"])
async def health():
    return {
        "status": "ok",
        "version": __version__,
        "live_sessions": len(_live_sessions),
        "tracked_users": _analyser.history.user_count if _analyser else 0,
    }


# ── WebSocket (live tracking session) ─────────────────────────


@app.websocket("/ws/session")
async def ws_session(ws: WebSocket):
    """One tracking session per connection; disconnect tears it down."""
    await ws.accept()
    live = LiveSession(ws, get_settings())
    _live_sessions[live.session_id] = live
    logger.info("ws.client_connected", session=live.session_id, total=len(_live_sessions))
    try:
        await live.serve()
    finally:
        _live_sessions.pop(live.session_id, None)
        logger.info("ws.client_disconnected", session=live.session_id, total=len(_live_sessions))
