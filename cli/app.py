from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_entry, render_snapshot, render_status


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the IMU sensor relay.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _parse_channels(values: List[str]) -> Dict[str, float]:
    channels: Dict[str, float] = {}
    for item in values:
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"Expected CHANNEL=VALUE, got {item!r}.")
        try:
            channels[name] = float(raw)
        except ValueError as exc:
            raise typer.BadParameter(f"Channel {name!r} has a non-numeric value {raw!r}.") from exc
    return channels


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Relay API base URL (defaults to API_BASE_URL env or http://localhost:4000).",
    ),
    tcp_host: Optional[str] = typer.Option(
        None,
        "--tcp-host",
        help="Relay TCP ingestion host (defaults to RELAY_TCP_HOST env or localhost).",
    ),
    tcp_port: Optional[int] = typer.Option(
        None,
        "--tcp-port",
        help="Relay TCP ingestion port (defaults to RELAY_TCP_PORT env or 3000).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, tcp_host=tcp_host, tcp_port=tcp_port)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show relay liveness, history fill and per-source counters."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("snapshot")
def snapshot_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Only show the most recent N entries.",
    ),
) -> None:
    """Print the relay's current history, oldest first."""
    state = _get_state(ctx)
    render_snapshot(state.client.get_snapshot(), limit=limit)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between snapshot polls.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Stop watching after this many seconds.",
    ),
) -> None:
    """Poll the history and print entries as they arrive."""
    state = _get_state(ctx)
    interval = poll_interval if poll_interval is not None else state.config.poll_interval
    watch_timeout = timeout if timeout is not None else state.config.poll_timeout
    typer.echo(f"Watching {state.config.base_url} (interval={interval}s, timeout={watch_timeout}s)...")
    for entry in state.client.watch(interval=interval, timeout=watch_timeout):
        render_entry(entry)


@app.command("send")
def send_command(
    ctx: typer.Context,
    channels: List[str] = typer.Argument(..., help="Sensor channels as CHANNEL=VALUE, e.g. gx=0.5."),
    timestamp: Optional[int] = typer.Option(
        None,
        "--timestamp",
        help="Producer timestamp in epoch milliseconds (relay assigns one if omitted).",
    ),
) -> None:
    """Send one reading to the relay's TCP ingestion port."""
    state = _get_state(ctx)
    sensor = _parse_channels(channels)
    state.client.send_reading(sensor, timestamp=timestamp)
    typer.secho(
        f"Sent reading to {state.config.tcp_host}:{state.config.tcp_port}",
        fg=typer.colors.GREEN,
    )
