"""Tests for the chatsync CLI."""
import json

import pytest
from click.testing import CliRunner

from chatsync.cli import runtime
from chatsync.cli.main import cli
from conftest import FakeBackend, make_message


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temp store and a fake backend."""
    monkeypatch.setenv("CHATSYNC_STORE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("CHATSYNC_USER_ID", "u1")
    backend = FakeBackend(pages={"r1": [make_message("m1", 10), make_message("m2", 20)]})
    monkeypatch.setattr(runtime, "open_backend", lambda config: backend)
    return backend


class TestOutboxCommands:
    """outbox status / list / drain / clear."""

    def test_status_empty(self, cli_env):
        result = CliRunner().invoke(cli, ["outbox", "status"])
        assert result.exit_code == 0
        assert '"total": 0' in result.output

    def test_list_empty(self, cli_env):
        result = CliRunner().invoke(cli, ["outbox", "list"])
        assert result.exit_code == 0
        assert "Outbox is empty" in result.output

    def test_failed_send_then_drain(self, cli_env):
        runner = CliRunner()
        cli_env.fail = True

        sent = runner.invoke(cli, ["send", "r1", "--text", "hello"])
        assert sent.exit_code == 1
        assert "kept in outbox" in sent.output

        listed = runner.invoke(cli, ["outbox", "list"])
        assert "failed" in listed.output

        cli_env.fail = False
        drained = runner.invoke(cli, ["outbox", "drain"])
        assert drained.exit_code == 0
        assert "Delivered 1 messages" in drained.output

        status = runner.invoke(cli, ["outbox", "status"])
        assert '"total": 0' in status.output
        assert cli_env.closed

    def test_clear(self, cli_env):
        runner = CliRunner()
        cli_env.fail = True
        runner.invoke(cli, ["send", "r1", "--text", "hello"])

        result = runner.invoke(cli, ["outbox", "clear", "--yes"])
        assert "Outbox cleared (1 dropped)" in result.output
        assert "Outbox already empty" in runner.invoke(cli, ["outbox", "clear"]).output

    def test_clear_drops_cached_sends(self, cli_env):
        runner = CliRunner()
        cli_env.fail = True
        runner.invoke(cli, ["send", "r1", "--text", "hello"])
        assert "Failed" in runner.invoke(cli, ["room", "show", "r1"]).output

        runner.invoke(cli, ["outbox", "clear", "--yes"])

        assert "No cached messages" in runner.invoke(cli, ["room", "show", "r1"]).output


class TestSendCommand:
    """send."""

    def test_send_success(self, cli_env):
        result = CliRunner().invoke(cli, ["send", "r1", "--text", "hello"])
        assert result.exit_code == 0
        assert "Sent m1" in result.output

    def test_invalid_payload(self, cli_env):
        result = CliRunner().invoke(cli, ["send", "r1", "--text", "  "])
        assert result.exit_code == 2
        assert "Invalid message" in result.output

    def test_requires_sender(self, cli_env, monkeypatch):
        monkeypatch.delenv("CHATSYNC_USER_ID")
        result = CliRunner().invoke(cli, ["send", "r1", "--text", "hi"])
        assert result.exit_code == 2


class TestRoomCommands:
    """room show / refresh / older / list."""

    def test_refresh_then_show(self, cli_env):
        runner = CliRunner()
        assert "2 cached messages" in runner.invoke(cli, ["room", "refresh", "r1"]).output

        result = runner.invoke(cli, ["room", "show", "r1", "--json"])
        start = result.output.index("[\n")
        entries = json.loads(result.output[start:])
        assert [e["_id"] for e in entries] == ["m1", "m2"]

    def test_show_empty(self, cli_env):
        assert "No cached messages" in CliRunner().invoke(cli, ["room", "show", "r9"]).output

    def test_older_needs_cutoff(self, cli_env):
        result = CliRunner().invoke(cli, ["room", "older", "r9"])
        assert "pass --before" in result.output

    def test_older_with_before(self, cli_env):
        result = CliRunner().invoke(cli, ["room", "older", "r1", "--before", "20"])
        assert result.exit_code == 0
        assert "msg m1" in result.output

    def test_older_shows_status_labels(self, cli_env):
        runner = CliRunner()
        cli_env.fail = True
        runner.invoke(cli, ["send", "r1", "--text", "hello"])

        result = runner.invoke(cli, ["room", "older", "r1"])

        assert result.exit_code == 0
        assert "hello" in result.output
        assert "Failed" in result.output

    def test_list_rooms_empty(self, cli_env):
        assert "No cached rooms" in CliRunner().invoke(cli, ["room", "list"]).output


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
