from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.relay",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Rejected sensor payload",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extras_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    line = formatter.format(_record(reason="missing sensor field", source="tcp", unrelated="x"))

    assert line == "INFO Rejected sensor payload | source=tcp reason=missing sensor field"


def test_formatter_skips_none_values() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["peer", "client_id"])

    assert formatter.format(_record(peer=None)) == "Rejected sensor payload"
