"""Tests for the mcpanel CLI."""

from unittest.mock import AsyncMock, patch

import pytest
import typer
from typer.testing import CliRunner

from mcpanel.cli import MODE_CHOICES, app, parse_mode
from mcpanel.console.server import ConsoleMode

runner = CliRunner()


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "run" in result.output
    assert "sessions" in result.output


@pytest.mark.parametrize("value,mode", [
    ("tmux", ConsoleMode.PTY_TMUX),
    (" Screen ", ConsoleMode.PTY_SCREEN),
    ("log-tail", ConsoleMode.LOG_TAIL),
])
def test_parse_mode(value, mode):
    assert parse_mode(value) is mode


def test_parse_mode_rejects_unknown():
    with pytest.raises(typer.BadParameter):
        parse_mode("telnet")
    assert len(MODE_CHOICES) == len(ConsoleMode)


def test_run_builds_server():
    with patch("mcpanel.console.app.MCPanelApp") as app_cls:
        result = runner.invoke(app, [
            "run", "--name", "Survival", "--mode", "tmux",
            "--tmux-session", "survival", "--path", "/srv/mc", "--port", "2222",
        ])

    assert result.exit_code == 0, result.output
    (servers,), _ = app_cls.call_args
    server = servers[0]
    assert server.name == "Survival"
    assert server.console_mode is ConsoleMode.PTY_TMUX
    assert server.tmux_session == "survival"
    assert server.screen_session is None
    assert server.server_path == "/srv/mc"
    assert server.ssh_port == 2222
    app_cls.return_value.run.assert_called_once_with()


def test_run_reads_environment(tmp_path):
    with patch("mcpanel.console.app.MCPanelApp") as app_cls:
        result = runner.invoke(
            app, ["run"], env={"MCPANEL_MODE": "screen", "MCPANEL_PATH": str(tmp_path)}
        )

    assert result.exit_code == 0, result.output
    server = app_cls.call_args.args[0][0]
    assert server.console_mode is ConsoleMode.PTY_SCREEN
    assert server.server_path == str(tmp_path)


def test_run_rejects_bad_mode():
    with patch("mcpanel.console.app.MCPanelApp") as app_cls:
        result = runner.invoke(app, ["run", "--mode", "telnet"])

    assert result.exit_code != 0
    app_cls.assert_not_called()


def test_sessions_lists_found():
    tmux_out = "survival|1700000000|1\n"
    screen_out = (
        "There are screens on:\n"
        "\t12345.creative\t(01/02/2024 10:00:00 AM)\t(Detached)\n"
        "1 Socket in /run/screen/S-mc.\n"
    )
    with patch("mcpanel.cli.run_listing", AsyncMock(side_effect=[tmux_out, screen_out])):
        result = runner.invoke(app, ["sessions"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith("tmux")
    assert "survival  (attached)" in lines[0]
    assert lines[1].startswith("GNU Screen")
    assert "12345.creative  (detached)" in lines[1]


def test_sessions_empty():
    with patch("mcpanel.cli.run_listing", AsyncMock(return_value="")):
        result = runner.invoke(app, ["sessions"])

    assert result.exit_code == 0
    assert "No tmux or screen sessions found" in result.output
