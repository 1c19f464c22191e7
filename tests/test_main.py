"""Tests for the command line interface."""

import pytest
from click.testing import CliRunner

import deskwatch.main
from deskwatch.main import cli


@pytest.fixture
def runner(monkeypatch, tmp_path):
    for var in ("LINEAR_API_KEY", "DESKWATCH_CONFIG", "MONITORED_TAGS"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    # keep the root logger away from CliRunner's temporary streams
    monkeypatch.setattr(deskwatch.main, "setup_logging", lambda **kwargs: None)
    return CliRunner()


class TestCli:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "tickets", "check"):
            assert command in result.output

    def test_tickets_without_api_key_fails_cleanly(self, runner):
        result = runner.invoke(cli, ["tickets"])
        assert result.exit_code == 1
        assert "LINEAR_API_KEY" in result.output

    def test_check_without_api_key_fails(self, runner):
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 1
        assert "Monitored tags: #sd, #service-desk, #servicedesk" in result.output
        assert "Could not connect to Linear" in result.output
