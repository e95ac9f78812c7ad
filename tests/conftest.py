"""Shared test fixtures for the TeacherMada advisor agent test suite."""

from __future__ import annotations

import os

import pytest
from fakes import FakeProvider

from advisor_agent.agent import AgentOrchestrator
from advisor_agent.credentials import CredentialPool
from advisor_agent.history import CompactionPolicy, InMemoryHistoryStore


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts."""
    os.environ.setdefault("API_KEYS", "test-key-1,test-key-2")
    os.environ.setdefault("METRICS_ENABLED", "false")


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def make_orchestrator():
    """Factory: orchestrator over a fake provider with in-memory history."""

    def _make(
        provider: FakeProvider | None = None,
        keys: list[str] | None = None,
        history_limit: int = 10,
        retain_count: int = 4,
        store: InMemoryHistoryStore | None = None,
    ) -> AgentOrchestrator:
        return AgentOrchestrator(
            provider or FakeProvider(),
            CredentialPool(keys or ["k1", "k2"]),
            store=store if store is not None else InMemoryHistoryStore(),
            policy=CompactionPolicy(history_limit, retain_count),
            system_instruction="You are Tsanta.",
        )

    return _make
