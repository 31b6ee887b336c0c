"""CLI tests for the root app wiring."""
from typer.testing import CliRunner

from wealthify.main import app

runner = CliRunner()


def test_help_lists_command_groups():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "auth" in result.stdout
    assert "api" in result.stdout


def test_auth_group_commands():
    result = runner.invoke(app, ["auth", "--help"])
    assert result.exit_code == 0
    for command in ("login", "logout", "status", "refresh"):
        assert command in result.stdout
