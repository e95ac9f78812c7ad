"""History compaction by summarization.

The oldest turns of a session are collapsed into a synthetic pair:

    user:  "[SYSTEM: Previous Conversation Summary]: <summary>"
    agent: "Acknowledged."

followed by the most recent ``retain_count`` turns verbatim.  If the
summary call fails, the history is left exactly as it was; compaction is
simply retried on the next message.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from advisor_agent.credentials import CredentialPool
from advisor_agent.errors import SummarizationError
from advisor_agent.history import CompactionPolicy, Turn
from advisor_agent.prompts import SUMMARY_ACKNOWLEDGEMENT, SUMMARY_MARKER, SUMMARY_PROMPT
from advisor_agent.services.metrics import metrics
from advisor_agent.services.provider import ChatProvider

logger = logging.getLogger(__name__)


def build_transcript(turns: Sequence[Turn]) -> str:
    """One ``ROLE: text`` line per turn, in original order."""
    return "\n".join(f"{turn.role.upper()}: {turn.text}" for turn in turns)


class Summarizer:
    """Asks the provider for a compact summary of a run of turns."""

    def __init__(self, provider: ChatProvider, pool: CredentialPool) -> None:
        self._provider = provider
        self._pool = pool

    def summarize(self, turns: Sequence[Turn]) -> tuple[Turn, Turn]:
        """Return the synthetic ``(user, agent)`` summary pair.

        Raises :class:`SummarizationError` if the provider fails or
        returns nothing.  Uses the pool's current credential once; no
        rotation happens here.
        """
        prompt = SUMMARY_PROMPT.format(transcript=build_transcript(turns))
        t0 = time.perf_counter()
        try:
            summary = self._provider.generate_text(self._pool.current(), prompt)
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure("summary_invoke", error_type=type(exc).__name__, latency_ms=elapsed)
            raise SummarizationError(f"Summary call failed: {exc}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if not summary or not summary.strip():
            metrics.record_failure("summary_invoke", error_type="EmptySummary", latency_ms=elapsed)
            raise SummarizationError("Provider returned an empty summary")

        metrics.record_success("summary_invoke", latency_ms=elapsed)
        return (
            Turn.user(f"{SUMMARY_MARKER}{summary.strip()}"),
            Turn.agent(SUMMARY_ACKNOWLEDGEMENT),
        )


def compact_history(
    turns: Sequence[Turn],
    policy: CompactionPolicy,
    summarizer: Summarizer,
) -> tuple[list[Turn], bool]:
    """Apply *policy* to *turns* once.

    Returns ``(turns, compacted)``.  On a summary failure the original
    turns come back unchanged with ``compacted=False``.
    """
    if not policy.needs_compaction(turns):
        return list(turns), False

    window, retained = policy.split(turns)
    logger.info(
        "Compacting history: summarizing %d turn(s), keeping %d", len(window), len(retained),
    )
    try:
        summary_pair = summarizer.summarize(window)
    except SummarizationError as exc:
        logger.warning("History compaction skipped, keeping %d turns: %s", len(turns), exc)
        metrics.record_event("Agent/CompactionSkipped")
        return list(turns), False

    metrics.record_event("Agent/Compaction")
    return [*summary_pair, *retained], True
