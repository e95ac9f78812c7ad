"""Structured reply contract between the provider and the orchestrator.

The provider is asked for a single JSON object with exactly four keys.
``intent`` and ``next_action`` are closed sets: an unknown value is a
validation failure, never passed through.
"""

from __future__ import annotations

import json
from typing import Literal, get_args

import pydantic
from pydantic import BaseModel, ConfigDict

from advisor_agent.errors import ValidationError

Intent = Literal["greeting", "info", "learning", "pricing", "signup", "unknown"]
NextAction = Literal["ask_question", "present_offer", "redirect_human", "send_link", "none"]

INTENTS: tuple[str, ...] = get_args(Intent)
NEXT_ACTIONS: tuple[str, ...] = get_args(NextAction)

FALLBACK_REPLY_TEXT = (
    "Désolé, je rencontre un petit souci technique pour le moment. "
    "Merci de réessayer dans quelques instants."
)


class StructuredReply(BaseModel):
    """What the agent answers for every processed message."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    reply: str
    detected_language: str
    intent: Intent
    next_action: NextAction


def validate_reply(raw: str) -> StructuredReply:
    """Parse and validate raw provider text.

    Raises :class:`~advisor_agent.errors.ValidationError` on invalid JSON, a
    non-object payload, missing or extra keys, wrong types, or an
    out-of-set ``intent`` / ``next_action``.
    """
    if not raw or not raw.strip():
        raise ValidationError("Empty provider output")
    try:
        return StructuredReply.model_validate_json(raw, strict=True)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(f"Provider output rejected: {problems}") from exc


def fallback_reply() -> StructuredReply:
    """Deterministic reply used once every credential has failed."""
    return StructuredReply(
        reply=FALLBACK_REPLY_TEXT,
        detected_language="fr",
        intent="unknown",
        next_action="none",
    )


def reply_json_schema() -> str:
    """JSON schema of :class:`StructuredReply`, for the output instruction."""
    return json.dumps(StructuredReply.model_json_schema(), ensure_ascii=False)


class ChatContext(BaseModel):
    """Per-request metadata; only ever rendered into the user turn's text."""

    language: str | None = None
    stage: str | None = None

    def annotate(self, message: str) -> str:
        """Prefix *message* with an inline ``[System Context: ...]`` tag."""
        parts = []
        if self.language:
            parts.append(f"Lang={self.language}")
        if self.stage:
            parts.append(f"Stage={self.stage}")
        if not parts:
            return message
        return f"[System Context: {', '.join(parts)}] {message}"
