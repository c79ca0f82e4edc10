"""CLI for the mcpanel command."""

import asyncio
import os
from typing import List, Optional

import typer

from .console.server import ConsoleMode, DetectedSession, Server
from .console.server_registry import run_listing
from .console.sessions import (
    SCREEN_LIST_COMMAND,
    TMUX_LIST_COMMAND,
    parse_screen_sessions,
    parse_tmux_sessions,
)


app = typer.Typer(
    help="Game server console panel",
    add_completion=False,
    no_args_is_help=True,
)

MODE_CHOICES = {
    "log-tail": ConsoleMode.LOG_TAIL,
    "direct": ConsoleMode.PTY_DIRECT,
    "tmux": ConsoleMode.PTY_TMUX,
    "screen": ConsoleMode.PTY_SCREEN,
    "mcwrap": ConsoleMode.PTY_MCWRAP,
}


def parse_mode(value: str) -> ConsoleMode:
    try:
        return MODE_CHOICES[value.strip().lower()]
    except KeyError:
        raise typer.BadParameter(
            f"'{value}' is not one of: {', '.join(MODE_CHOICES)}"
        ) from None


@app.command()
def run(
    name: str = typer.Option("Local server", "--name", "-n", envvar="MCPANEL_NAME", help="Server display name"),
    mode: str = typer.Option("log-tail", "--mode", "-m", envvar="MCPANEL_MODE", help=f"Console mode: {', '.join(MODE_CHOICES)}"),
    tmux_session: Optional[str] = typer.Option(None, "--tmux-session", envvar="MCPANEL_TMUX_SESSION", help="tmux session to attach"),
    screen_session: Optional[str] = typer.Option(None, "--screen-session", envvar="MCPANEL_SCREEN_SESSION", help="screen session to attach"),
    path: Optional[str] = typer.Option(None, "--path", "-p", envvar="MCPANEL_PATH", help="Server directory (default: current directory)"),
    host: str = typer.Option("localhost", "--host", envvar="MCPANEL_HOST", help="Server host"),
    port: int = typer.Option(22, "--port", envvar="MCPANEL_PORT", help="SSH port"),
):
    """
    Open the panel with one server configured from the options.

    Examples:
        # Tail logs/latest.log of the server in the current directory
        mcpanel run

        # Attach the tmux session running the server
        mcpanel run --mode tmux --tmux-session minecraft --path /srv/mc
    """
    from .console.app import MCPanelApp

    server = Server(
        name=name,
        host=host,
        server_path=path or os.getcwd(),
        ssh_port=port,
        console_mode=parse_mode(mode),
        tmux_session=tmux_session or None,
        screen_session=screen_session or None,
    )
    MCPanelApp([server]).run()


async def _detect_local() -> List[DetectedSession]:
    found = parse_tmux_sessions(await run_listing(TMUX_LIST_COMMAND))
    found.extend(parse_screen_sessions(await run_listing(SCREEN_LIST_COMMAND)))
    return found


@app.command()
def sessions():
    """List tmux and screen sessions on this machine."""
    found = asyncio.run(_detect_local())
    if not found:
        typer.echo("No tmux or screen sessions found")
        return
    for session in found:
        state = "attached" if session.attached else "detached"
        created = f"  created {session.created:%Y-%m-%d %H:%M}" if session.created else ""
        typer.echo(f"{session.type.display_name:<8} {session.name}  ({state}){created}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
