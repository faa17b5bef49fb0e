from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:4000"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TIMEOUT = 60.0
DEFAULT_TCP_HOST = "localhost"
DEFAULT_TCP_PORT = 3000

_BASE_URL_ENV = "API_BASE_URL"
_POLL_INTERVAL_ENV = "CLI_POLL_INTERVAL"
_TIMEOUT_ENV = "CLI_POLL_TIMEOUT"
_TCP_HOST_ENV = "RELAY_TCP_HOST"
_TCP_PORT_ENV = "RELAY_TCP_PORT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_TIMEOUT
    tcp_host: str = DEFAULT_TCP_HOST
    tcp_port: int = DEFAULT_TCP_PORT


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_port(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if 0 < parsed <= 65535 else default


def _read_host(value: Optional[str], default: str) -> str:
    candidate = (value or "").strip()
    # The server-side bind-all address is not a connectable target.
    if not candidate or candidate == "0.0.0.0":
        return default
    return candidate


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
    poll_timeout: Optional[float] = None,
    tcp_host: Optional[str] = None,
    tcp_port: Optional[int] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if poll_interval is None:
        poll_interval = _read_float(os.getenv(_POLL_INTERVAL_ENV), DEFAULT_POLL_INTERVAL)
    if poll_timeout is None:
        poll_timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    if tcp_host is None:
        tcp_host = _read_host(os.getenv(_TCP_HOST_ENV), DEFAULT_TCP_HOST)
    if tcp_port is None:
        tcp_port = _read_port(os.getenv(_TCP_PORT_ENV), DEFAULT_TCP_PORT)
    return CLIConfig(
        base_url=url.rstrip("/"),
        poll_interval=poll_interval,
        poll_timeout=poll_timeout,
        tcp_host=tcp_host,
        tcp_port=tcp_port,
    )
