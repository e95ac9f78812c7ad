"""Tests for summarization-based history compaction."""

from __future__ import annotations

import pytest
from fakes import FakeProvider

from advisor_agent.credentials import CredentialPool
from advisor_agent.errors import SummarizationError, TransportError
from advisor_agent.history import CompactionPolicy, Turn
from advisor_agent.summarizer import Summarizer, build_transcript, compact_history


def _turns(n: int) -> list[Turn]:
    return [Turn.user(f"u{i}") if i % 2 == 0 else Turn.agent(f"a{i}") for i in range(n)]


class TestBuildTranscript:
    def test_one_line_per_turn_in_order(self):
        transcript = build_transcript([Turn.user("Hello"), Turn.agent("Hi there")])
        assert transcript == "USER: Hello\nAGENT: Hi there"

    def test_empty(self):
        assert build_transcript([]) == ""


class TestSummarizer:
    def test_returns_marker_and_acknowledgement(self):
        provider = FakeProvider(summary="  The user wants the Web App.  ")
        summarizer = Summarizer(provider, CredentialPool(["k1"]))

        user, agent = summarizer.summarize(_turns(4))

        assert user == Turn.user("[SYSTEM: Previous Conversation Summary]: The user wants the Web App.")
        assert agent == Turn.agent("Acknowledged.")

    def test_uses_current_credential_once(self):
        provider = FakeProvider()
        pool = CredentialPool(["k1", "k2"], start=1)
        Summarizer(provider, pool).summarize(_turns(2))

        assert [c for c, _ in provider.summary_calls] == ["k2"]
        assert pool.current() == "k2"

    def test_provider_failure_raises_summarization_error(self):
        provider = FakeProvider(summary=TransportError("503 overloaded", status_code=503))
        summarizer = Summarizer(provider, CredentialPool(["k1"]))

        with pytest.raises(SummarizationError):
            summarizer.summarize(_turns(2))

    def test_blank_summary_is_a_failure(self):
        provider = FakeProvider(summary="   ")
        summarizer = Summarizer(provider, CredentialPool(["k1"]))

        with pytest.raises(SummarizationError):
            summarizer.summarize(_turns(2))


class TestCompactHistory:
    def test_compacted_length_is_retain_plus_two(self):
        original = _turns(11)
        summarizer = Summarizer(FakeProvider(), CredentialPool(["k1"]))

        turns, compacted = compact_history(original, CompactionPolicy(10, 4), summarizer)

        assert compacted is True
        assert len(turns) == 4 + 2
        assert turns[-4:] == original[-4:]

    def test_failure_returns_original_unchanged(self):
        original = _turns(10)
        provider = FakeProvider(summary=RuntimeError("network down"))
        summarizer = Summarizer(provider, CredentialPool(["k1"]))

        turns, compacted = compact_history(original, CompactionPolicy(10, 4), summarizer)

        assert compacted is False
        assert turns == original

    def test_below_limit_is_a_no_op(self):
        original = _turns(5)
        provider = FakeProvider()
        summarizer = Summarizer(provider, CredentialPool(["k1"]))

        turns, compacted = compact_history(original, CompactionPolicy(10, 4), summarizer)

        assert compacted is False
        assert turns == original
        assert provider.summary_calls == []

    def test_retain_zero_summarizes_everything(self):
        original = _turns(6)
        summarizer = Summarizer(FakeProvider(), CredentialPool(["k1"]))

        turns, compacted = compact_history(original, CompactionPolicy(6, 0), summarizer)

        assert compacted is True
        assert len(turns) == 2
