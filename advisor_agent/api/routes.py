"""FastAPI route definitions for the TeacherMada advisor agent API."""

from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from advisor_agent.agent import AgentOrchestrator
from advisor_agent.api.schemas import (
    ChatRequest,
    HealthResponse,
    MessengerMeta,
    MessengerResponse,
)
from advisor_agent.errors import BadRequest
from advisor_agent.schemas import StructuredReply
from advisor_agent.services.request_log import LogEntry, RequestLog

logger = logging.getLogger(__name__)

router = APIRouter()

MESSENGER_ERROR_TEXT = "Erreur système."


def _get_orchestrator(request: Request) -> AgentOrchestrator:
    """Retrieve the orchestrator from app state (set in the lifespan)."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return orchestrator


def _get_request_log(request: Request) -> RequestLog | None:
    return getattr(request.app.state, "request_log", None)


async def _run(
    http_request: Request,
    session_id: str,
    message: str,
    payload: dict,
    context=None,
) -> StructuredReply:
    """Call the orchestrator off the event loop and log the exchange.

    ``process_message`` is blocking (it talks to the provider), so it is
    offloaded with ``asyncio.to_thread``.
    """
    orchestrator = _get_orchestrator(http_request)
    request_log = _get_request_log(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    if request_log is not None:
        request_log.record("request", payload)

    try:
        reply = await asyncio.to_thread(
            orchestrator.process_message, session_id, message, context,
        )
    except BadRequest as e:
        logger.info("[%s] Rejected request: %s", request_id, e)
        if request_log is not None:
            request_log.record("error", {"message": str(e)})
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        # Full traceback server-side only; never leak it to the client.
        logger.exception("[%s] Error processing chat request", request_id)
        if request_log is not None:
            request_log.record("error", {"message": "internal error", "type": type(e).__name__})
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    if request_log is not None:
        request_log.record("response", reply.model_dump())
    logger.info(
        "[%s] session=%s intent=%s next_action=%s",
        request_id, session_id, reply.intent, reply.next_action,
    )
    return reply


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/agent/chat", response_model=StructuredReply)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the advisor and get a structured reply.

    ``userId`` keys the conversation history; the optional ``context``
    (language, stage) only decorates this one message.
    """
    payload = request.model_dump(by_alias=True)
    return await _run(http_request, request.session_id, request.message, payload, request.context)


@router.get("/agent/chat", response_model=MessengerResponse)
async def messenger_chat(
    http_request: Request,
    prompt: str | None = Query(None, max_length=2000),
    id: str | None = Query(None, max_length=100),
    agent: str | None = Query(None),
):
    """Messenger-bot flavoured endpoint: ``?prompt=...&id=...``.

    Without an ``id`` each call gets its own throwaway session.
    """
    if not prompt or not prompt.strip():
        return JSONResponse(status_code=400, content={"error": "Missing 'prompt' parameter"})

    session_id = id or f"anonymous-{uuid.uuid4()}"
    payload = {"prompt": prompt, "id": id, "agent": agent}
    try:
        reply = await _run(http_request, session_id, prompt, payload)
    except HTTPException as e:
        # The bot reads errors in its own format, not FastAPI's {"detail": ...}.
        if e.status_code == 400:
            return JSONResponse(status_code=400, content={"error": e.detail})
        if e.status_code == 500:
            error = MessengerResponse(success=False, response=MESSENGER_ERROR_TEXT, context_id=id)
            return JSONResponse(
                status_code=500,
                content=error.model_dump(by_alias=True, exclude_none=True),
            )
        raise

    return MessengerResponse(
        response=reply.reply,
        context_id=id,
        meta=MessengerMeta(
            intent=reply.intent,
            lang=reply.detected_language,
            next_action=reply.next_action,
        ),
    )


@router.get("/logs", response_model=list[LogEntry])
async def recent_logs(http_request: Request, limit: int = Query(50, ge=1, le=500)):
    """Newest-first view of recent requests, replies and errors."""
    request_log = _get_request_log(http_request)
    if request_log is None:
        return []
    return request_log.recent(limit)
