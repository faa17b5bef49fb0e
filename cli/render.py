from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_timestamp(value: Any) -> str:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return str(value)
    seconds, millis = divmod(int(value), 1000)
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    except (OverflowError, OSError, ValueError):
        return str(value)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_sensor(sensor: Any) -> str:
    if isinstance(sensor, dict):
        return " ".join(f"{name}={value}" for name, value in sensor.items())
    return str(sensor)


def render_entry(entry: Dict[str, Any]) -> None:
    source = entry.get("source") or "-"
    typer.echo(
        f"{format_timestamp(entry.get('timestamp'))} [{source}] {format_sensor(entry.get('sensor'))}"
    )


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Relay Status")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("message", payload.get("message")),
            ("history", f"{payload.get('history_size')}/{payload.get('history_capacity')}"),
            ("connected_clients", payload.get("connected_clients")),
        ]
    )

    sources = payload.get("sources") or {}
    accepted = sources.get("accepted") or {}
    rejected = sources.get("rejected") or {}
    typer.echo()
    echo_heading("Sources")
    names = sorted(set(accepted) | set(rejected))
    if names:
        for name in names:
            typer.echo(f"  - {name}: accepted={accepted.get(name, 0)} rejected={rejected.get(name, 0)}")
    else:
        typer.echo("No readings received yet.")


def render_snapshot(entries: List[Dict[str, Any]], limit: int | None = None) -> None:
    echo_heading(f"Sensor Data ({len(entries)} entries)")
    shown = entries[-limit:] if limit else entries
    if not shown:
        typer.echo("History is empty.")
        return
    for entry in shown:
        render_entry(entry)
