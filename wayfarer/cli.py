"""
Wayfarer CLI - text client for the MUD wire protocol.

Usage:
    wayfarer connect [URL]     Connect and stream narrative lines
    wayfarer replay FILE       Feed captured frames through a session offline
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import AsyncIterator, List, Optional

import click
from websockets.exceptions import WebSocketException

from wayfarer import __version__
from wayfarer.config import ClientConfig, load_config
from wayfarer.engine.lines import (
    COLOR_CHAT,
    COLOR_COMBAT,
    COLOR_DIAGNOSTIC,
    COLOR_ERROR,
    COLOR_WARNING,
    LogLine,
)
from wayfarer.errors import ConfigError
from wayfarer.session import ClientSession
from wayfarer.transport import WebSocketTransport, run_session

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

LINE_STYLES = {
    COLOR_ERROR: {"fg": "red"},
    COLOR_WARNING: {"fg": "yellow"},
    COLOR_DIAGNOSTIC: {"fg": "bright_black"},
    COLOR_CHAT: {"fg": "cyan"},
    COLOR_COMBAT: {"fg": "magenta"},
}

QUIT_COMMANDS = ("/quit", "/exit")


def configure_logging(level: str) -> None:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    logging.basicConfig(level=resolved, format=LOG_FORMAT, stream=sys.stderr, force=True)


def echo_lines(lines: List[LogLine]) -> None:
    for log_line in lines:
        style = LINE_STYLES.get(log_line.color_key or "")
        text = click.style(log_line.text, **style) if style else log_line.text
        click.echo(text)


def _load(config_path: Optional[str], diagnostics: bool) -> ClientConfig:
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if diagnostics:
        config.include_diagnostics = True
    configure_logging(config.log_level)
    return config


async def _stdin_lines(first: Optional[str] = None) -> AsyncIterator[str]:
    if first:
        yield first
    loop = asyncio.get_running_loop()
    while True:
        text = await loop.run_in_executor(None, sys.stdin.readline)
        if not text:
            return
        text = text.strip()
        if text.lower() in QUIT_COMMANDS:
            return
        yield text


@click.group()
@click.version_option(version=__version__, prog_name="wayfarer")
def main():
    """Wayfarer - a text client for real-time MUD servers."""
    pass


@main.command()
@click.argument("url", required=False)
@click.option("--config", "-c", "config_path", envvar="WAYFARER_CONFIG", default=None,
              type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--diagnostics", "-d", is_flag=True, help="Show unknown messages and roster summaries")
@click.option("--guest", "-g", default=None, help="Authenticate as a guest with this name")
def connect(url: Optional[str], config_path: Optional[str], diagnostics: bool, guest: Optional[str]):
    """Connect to a server and stream narrative lines.

    URL defaults to server_url from the config. Lines typed on stdin are
    sent as input; /quit or end of input disconnects.

    Examples:
        wayfarer connect ws://localhost:3000
        wayfarer connect --guest Aria --diagnostics
    """
    config = _load(config_path, diagnostics)
    target = url or config.server_url
    session = ClientSession(config)
    first = f"/auth guest {guest}" if guest else None

    click.echo(f"⏳ Connecting to {target}...")
    try:
        asyncio.run(run_session(
            session,
            WebSocketTransport(),
            target,
            echo_lines,
            inputs=_stdin_lines(first),
            close_when_inputs_end=True,
        ))
    except (OSError, WebSocketException) as e:
        raise click.ClickException(f"Connection to {target} failed: {e}") from e
    except KeyboardInterrupt:
        click.echo("Interrupted.")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "-c", "config_path", envvar="WAYFARER_CONFIG", default=None,
              type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--diagnostics", "-d", is_flag=True, help="Show unknown messages and roster summaries")
def replay(file: Path, config_path: Optional[str], diagnostics: bool):
    """Replay a captured session offline.

    FILE holds one raw frame per line. Every frame goes through the same
    router a live connection uses, then a short state summary is printed.
    """
    config = _load(config_path, diagnostics)
    session = ClientSession(config)

    frames = 0
    with open(file, encoding="utf-8") as f:
        for raw in f:
            raw = raw.rstrip("\r\n")
            if not raw.strip():
                continue
            frames += 1
            echo_lines(session.handle_frame(raw))

    click.echo(f"--- Replayed {frames} frames ---")
    echo_lines(session.summary_lines())


if __name__ == "__main__":
    main()
