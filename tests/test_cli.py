"""Tests for the command-line interface."""
import pytest
from conftest import FakeGateway
from typer.testing import CliRunner

from codechat.chat import ModelCallFailed
from codechat.cli.app import app

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary SQLite database."""
    monkeypatch.setenv("CODECHAT_BACKEND", "sqlite")
    monkeypatch.setenv("CODECHAT_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("CODECHAT_USER_ID", "tester")
    return tmp_path


def use_gateway(monkeypatch, gateway: FakeGateway) -> FakeGateway:
    monkeypatch.setattr("codechat.cli.app.get_gateway", lambda console=None: gateway)
    return gateway


def create_chat(title: str = "New Chat") -> str:
    result = runner.invoke(app, ["new", "--title", title])
    assert result.exit_code == 0, result.output
    return result.output.split()[-1]


class TestSessionCommands:
    """Tests for session management commands."""

    def test_new_and_list(self, cli_env):
        create_chat("Pandas tips")

        result = runner.invoke(app, ["sessions"])

        assert result.exit_code == 0
        assert "Pandas tips" in result.output

    def test_empty_list(self, cli_env):
        result = runner.invoke(app, ["sessions"])

        assert result.exit_code == 0
        assert "No chats yet" in result.output

    def test_rename(self, cli_env):
        session_id = create_chat()

        result = runner.invoke(app, ["rename", session_id, "Regex help"])

        assert result.exit_code == 0
        assert "Regex help" in runner.invoke(app, ["sessions"]).output

    def test_delete(self, cli_env):
        session_id = create_chat("Doomed")

        result = runner.invoke(app, ["delete", session_id, "--yes"])
        assert result.exit_code == 0

        missing = runner.invoke(app, ["show", session_id])
        assert missing.exit_code == 1
        assert "not found" in missing.output

    def test_delete_aborted(self, cli_env):
        session_id = create_chat("Keep me")

        result = runner.invoke(app, ["delete", session_id], input="n\n")

        assert "Aborted" in result.output
        assert "Keep me" in runner.invoke(app, ["sessions"]).output

    def test_unknown_log_level(self, cli_env):
        result = runner.invoke(app, ["--log-level", "loud", "sessions"])

        assert result.exit_code == 1


class TestAsk:
    """Tests for one-shot questions."""

    def test_ask_prints_reply_and_stores_turn(self, cli_env, monkeypatch):
        gateway = use_gateway(monkeypatch, FakeGateway())
        session_id = create_chat()

        result = runner.invoke(app, ["ask", "How do I reverse a list?", "--session", session_id])

        assert result.exit_code == 0, result.output
        assert "items[::-1]" in result.output
        assert gateway.closed

        shown = runner.invoke(app, ["show", session_id])
        assert "How do I reverse a list?" in shown.output
        assert "items.reverse()" in shown.output

    def test_ask_starts_chat_when_no_session(self, cli_env, monkeypatch):
        use_gateway(monkeypatch, FakeGateway(reply="Use sorted()."))

        result = runner.invoke(app, ["ask", "Sort a list"])

        assert result.exit_code == 0, result.output
        assert "Sort a list" in runner.invoke(app, ["sessions"]).output

    def test_model_failure_exits_with_error(self, cli_env, monkeypatch):
        use_gateway(monkeypatch, FakeGateway(error=ModelCallFailed("upstream is down")))

        result = runner.invoke(app, ["ask", "hello"])

        assert result.exit_code == 1
        assert "upstream is down" in result.output

    def test_missing_api_key(self, cli_env, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "together")
        monkeypatch.delenv("TOGETHER_API_KEY", raising=False)

        result = runner.invoke(app, ["ask", "hello"])

        assert result.exit_code == 1
        assert "TOGETHER_API_KEY not set" in result.output


class TestExamples:
    """Tests for the examples command."""

    def test_prints_code_blocks(self, cli_env, monkeypatch):
        gateway = use_gateway(monkeypatch, FakeGateway())

        result = runner.invoke(app, ["examples"])

        assert result.exit_code == 0, result.output
        assert "items.reverse()" in result.output
        assert gateway.calls[0][0] == "examples"
