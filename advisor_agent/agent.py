"""LangGraph-based orchestrator for the TeacherMada advisor agent.

Architecture:
  Each call to :meth:`AgentOrchestrator.process_message` runs a small
  LangGraph StateGraph:

    1. **compact**:       if the session reached ``history_limit`` turns,
                          summarise the oldest ones (at most once per call)
    2. **build_context**: annotate the user message with the optional
                          chat context and append it to the history
    3. **attempt**:       one provider call with the pool's current
                          credential, validated against the reply schema
    4. **commit**:        store the user turn + raw agent reply
    5. **fallback**:      every credential failed, fixed apology reply

  Routing:
    compact → build_context → attempt → (ok?)        → commit   → END
                                      → (retry?)     → attempt (next credential)
                                      → (exhausted?) → fallback → END

  Memory:
    History lives in a :class:`~advisor_agent.history.HistoryStore` and is
    only written in **commit**.  A call that ends in **fallback** leaves
    the stored history exactly as it found it, compaction included.

  Concurrency:
    The session lock is held for the whole graph run, so two messages for
    the same session never interleave; other sessions are not blocked.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Literal

from langchain_core.messages import BaseMessage
from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from advisor_agent.config import Settings
from advisor_agent.credentials import CredentialPool
from advisor_agent.errors import BadRequest, ProviderError, TransportError
from advisor_agent.history import CompactionPolicy, HistoryStore, InMemoryHistoryStore, Turn
from advisor_agent.prompts import get_system_prompt
from advisor_agent.schemas import ChatContext, StructuredReply, fallback_reply, validate_reply
from advisor_agent.services.metrics import metrics
from advisor_agent.services.provider import AnthropicProvider, ChatProvider
from advisor_agent.summarizer import Summarizer, compact_history

logger = logging.getLogger(__name__)

Outcome = Literal["success", "retry", "exhausted"]


@dataclass(frozen=True)
class AttemptError:
    """Why one attempt failed.  ``kind`` is ``transport`` or ``validation``."""

    credential_index: int
    kind: str
    message: str


@dataclass
class AgentResult:
    """Full outcome of one processed message, for logging and debugging."""

    reply: StructuredReply
    outcome: Literal["success", "exhausted"]
    attempts: int
    raw_text: str | None = None
    compacted: bool = False
    errors: list[AttemptError] = field(default_factory=list)


# ── State schema ─────────────────────────────────────────────────────


class OrchestratorState(TypedDict, total=False):
    """The state that flows through the graph for one message.

    ``history`` is the (possibly compacted) copy of the stored turns;
    nothing in the state is written back to the store before **commit**.
    """

    session_id: str
    message: str
    context: ChatContext | None
    history: list[Turn]
    compacted: bool
    user_turn: Turn
    messages: list[BaseMessage]
    attempt: int
    outcome: Outcome
    raw_text: str
    reply: StructuredReply
    errors: list[AttemptError]


class AgentOrchestrator:
    """Façade: one validated :class:`StructuredReply` per user message."""

    def __init__(
        self,
        provider: ChatProvider,
        pool: CredentialPool,
        store: HistoryStore | None = None,
        policy: CompactionPolicy | None = None,
        system_instruction: str | None = None,
    ) -> None:
        self._provider = provider
        self._pool = pool
        self._store = store if store is not None else InMemoryHistoryStore()
        self._policy = policy or CompactionPolicy()
        self._system_instruction = system_instruction or get_system_prompt()
        self._summarizer = Summarizer(provider, pool)
        if not self._policy.enabled:
            logger.warning(
                "Compaction disabled: history_limit=%d <= retain_count=%d",
                self._policy.history_limit, self._policy.retain_count,
            )
        self._graph = self._build_graph()

    @property
    def pool(self) -> CredentialPool:
        return self._pool

    @property
    def store(self) -> HistoryStore:
        return self._store

    # ── Public API ────────────────────────────────────────────────────

    def process_message(
        self,
        session_id: str,
        message: str,
        context: ChatContext | None = None,
    ) -> StructuredReply:
        """Answer *message* for *session_id*.

        Raises :class:`BadRequest` for an empty message or session id.
        Provider failures never raise: they end in the fallback reply.
        """
        return self.process_message_detailed(session_id, message, context).reply

    def process_message_detailed(
        self,
        session_id: str,
        message: str,
        context: ChatContext | None = None,
    ) -> AgentResult:
        """Like :meth:`process_message`, but also report how it went."""
        if not session_id or not session_id.strip():
            raise BadRequest("A session id is required.")
        if not message or not message.strip():
            raise BadRequest("Message must not be empty.")

        initial: OrchestratorState = {
            "session_id": session_id,
            "message": message,
            "context": context,
        }
        # compact + build_context + one node per credential + commit/fallback
        config = {"recursion_limit": self._pool.size() + 10}

        with self._store.session_lock(session_id):
            final = self._graph.invoke(initial, config=config)

        outcome = "success" if final.get("outcome") == "success" else "exhausted"
        return AgentResult(
            reply=final["reply"],
            outcome=outcome,
            attempts=final.get("attempt", 0) + (1 if outcome == "success" else 0),
            raw_text=final.get("raw_text"),
            compacted=final.get("compacted", False),
            errors=list(final.get("errors", [])),
        )

    # ── Nodes ─────────────────────────────────────────────────────────

    def _compact_node(self, state: OrchestratorState) -> dict:
        """Read the session history and compact it if it is too long."""
        history = self._store.get(state["session_id"])
        history, compacted = compact_history(history, self._policy, self._summarizer)
        return {"history": history, "compacted": compacted}

    def _build_context_node(self, state: OrchestratorState) -> dict:
        """Form the ordered message sequence for this call."""
        context = state.get("context")
        text = context.annotate(state["message"]) if context else state["message"]
        user_turn = Turn.user(text)
        messages = [turn.to_message() for turn in state["history"]]
        messages.append(user_turn.to_message())
        return {"user_turn": user_turn, "messages": messages, "attempt": 0, "errors": []}

    def _attempt_node(self, state: OrchestratorState) -> dict:
        """Try the current credential once; rotate on any failure."""
        attempt = state["attempt"]
        index, credential = self._pool.snapshot()
        t0 = time.perf_counter()
        try:
            raw_text = self._provider.generate_structured(
                credential, self._system_instruction, state["messages"],
            )
            reply = validate_reply(raw_text)
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            if not isinstance(exc, ProviderError):
                exc = TransportError(f"{type(exc).__name__}: {exc}", error_type=type(exc).__name__)
            metrics.record_failure(
                "structured_invoke", error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.warning(
                "Attempt %d/%d with credential #%d (%s) failed [%s]: %s",
                attempt + 1, self._pool.size(), index, self._pool.describe(index),
                exc.kind, exc,
            )
            self._pool.rotate()
            metrics.record_event("Agent/Rotation")

            errors = [*state["errors"], AttemptError(index, exc.kind, str(exc))]
            attempt += 1
            outcome: Outcome = "exhausted" if attempt >= self._pool.size() else "retry"
            return {"attempt": attempt, "errors": errors, "outcome": outcome}

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("structured_invoke", latency_ms=elapsed)
        logger.debug(
            "Attempt %d succeeded with credential #%d in %.0fms (intent=%s)",
            attempt + 1, index, elapsed, reply.intent,
        )
        return {"raw_text": raw_text, "reply": reply, "outcome": "success"}

    def _commit_node(self, state: OrchestratorState) -> dict:
        """Persist the exchange (and the compaction, if any)."""
        exchange = [state["user_turn"], Turn.agent(state["raw_text"])]
        session_id = state["session_id"]
        if state.get("compacted"):
            self._store.replace(session_id, [*state["history"], *exchange])
        else:
            self._store.extend(session_id, exchange)
        return {"outcome": "success"}

    def _fallback_node(self, state: OrchestratorState) -> dict:
        logger.error(
            "All %d credential(s) failed for session %s; returning fallback reply",
            self._pool.size(), state["session_id"],
        )
        metrics.record_event("Agent/Fallback")
        return {"reply": fallback_reply()}

    # ── Conditional edge ─────────────────────────────────────────────

    @staticmethod
    def route_attempt(state: OrchestratorState) -> str:
        """Map the attempt outcome to the next node."""
        outcome = state.get("outcome")
        if outcome == "success":
            return "commit"
        if outcome == "retry":
            return "attempt"
        return "fallback"

    # ── Graph assembly ───────────────────────────────────────────────

    def _build_graph(self):
        graph = StateGraph(OrchestratorState)

        graph.add_node("compact", self._compact_node)
        graph.add_node("build_context", self._build_context_node)
        graph.add_node("attempt", self._attempt_node)
        graph.add_node("commit", self._commit_node)
        graph.add_node("fallback", self._fallback_node)

        graph.set_entry_point("compact")
        graph.add_edge("compact", "build_context")
        graph.add_edge("build_context", "attempt")
        graph.add_conditional_edges(
            "attempt",
            self.route_attempt,
            {"commit": "commit", "attempt": "attempt", "fallback": "fallback"},
        )
        graph.add_edge("commit", END)
        graph.add_edge("fallback", END)

        return graph.compile()


def create_orchestrator(
    settings: Settings,
    *,
    provider: ChatProvider | None = None,
    store: HistoryStore | None = None,
) -> AgentOrchestrator:
    """Build an orchestrator from :class:`Settings`.

    Raises :class:`~advisor_agent.errors.ConfigurationError` when the
    settings carry no credentials.
    """
    pool = CredentialPool(settings.api_keys)
    if provider is None:
        provider = AnthropicProvider(
            settings.model_name,
            summary_model_name=settings.summary_model_name,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
    if store is None:
        store = InMemoryHistoryStore(max_sessions=settings.max_sessions)
    orchestrator = AgentOrchestrator(
        provider,
        pool,
        store=store,
        policy=CompactionPolicy(settings.history_limit, settings.retain_count),
    )
    logger.debug(
        "Advisor orchestrator ready: model: %s, credentials: %d, history_limit: %d",
        settings.model_name, pool.size(), settings.history_limit,
    )
    return orchestrator
