from __future__ import annotations

import json
import socket
import time
from typing import Any, Dict, Iterator, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal client for the relay's REST endpoints and TCP ingestion port."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def get_status(self) -> Dict[str, Any]:
        return self._get_json("/")

    def get_snapshot(self) -> List[Dict[str, Any]]:
        payload = self._get_json("/sensor-data")
        if not isinstance(payload, list):
            raise typer.BadParameter("Unexpected response payload for sensor data.")
        return payload

    def watch(self, interval: float, timeout: float) -> Iterator[Dict[str, Any]]:
        """Poll the snapshot and yield entries not seen in the previous poll."""
        deadline = time.monotonic() + timeout
        last_seen: Optional[Dict[str, Any]] = None
        while time.monotonic() <= deadline:
            entries = self.get_snapshot()
            for entry in _entries_after(entries, last_seen):
                yield entry
            if entries:
                last_seen = entries[-1]
            time.sleep(interval)

    def send_reading(
        self,
        sensor: Dict[str, float],
        timestamp: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"sensor": sensor}
        if timestamp is not None:
            payload["timestamp"] = timestamp
        data = json.dumps(payload).encode("utf-8")
        address = (self._config.tcp_host, self._config.tcp_port)
        try:
            with socket.create_connection(address, timeout=5.0) as conn:
                conn.sendall(data)
        except OSError as exc:
            typer.secho(
                f"Could not reach relay TCP port {address[0]}:{address[1]}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return payload

    def _get_json(self, path: str) -> Any:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach relay at {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _entries_after(
    entries: List[Dict[str, Any]], last_seen: Optional[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    if last_seen is None:
        return entries
    for index in range(len(entries) - 1, -1, -1):
        if entries[index] == last_seen:
            return entries[index + 1 :]
    # The last seen entry was evicted; everything in the buffer is new.
    return entries
