"""Tests for the CLI chat loop."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from fakes import FakeProvider

from advisor_agent import main as cli


def _run_cli(orchestrator, inputs: list[str]) -> None:
    with patch.object(cli, "create_orchestrator", return_value=orchestrator), patch.object(
        cli, "load_settings",
    ), patch("sys.argv", ["teachermada-agent"]), patch(
        "builtins.input", side_effect=inputs,
    ):
        cli.main()


class TestChatLoop:
    def test_replies_then_quits(self, make_orchestrator, capsys):
        provider = FakeProvider()
        _run_cli(make_orchestrator(provider), ["Bonjour", "quit"])
        out = capsys.readouterr().out
        assert "Tsanta: Bonjour" in out
        assert "greeting" in out
        assert len(provider.calls) == 1

    def test_unexpected_error_keeps_loop_alive(self, capsys):
        orchestrator = MagicMock()
        orchestrator.process_message.side_effect = [RuntimeError("boom"), MagicMock(
            reply="Re-bonjour", intent="greeting", next_action="none", detected_language="fr",
        )]
        _run_cli(orchestrator, ["first", "second", "quit"])
        out = capsys.readouterr().out
        assert "something went wrong: boom" in out
        assert "Tsanta: Re-bonjour" in out
        assert orchestrator.process_message.call_count == 2

    def test_end_of_input_exits(self, make_orchestrator, capsys):
        _run_cli(make_orchestrator(), [EOFError()])
        assert "Veloma" in capsys.readouterr().out
