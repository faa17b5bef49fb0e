"""Brace-matching framing for JSON objects carried over a byte stream."""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, Iterator

logger = logging.getLogger(__name__)

DEFAULT_MAX_BUFFER = 1024 * 1024


class FrameDecoder:
    """Reassemble complete JSON objects from arbitrarily chunked input.

    A chunk may hold a partial object, exactly one, or several back to back.
    Each call to :meth:`feed` yields every object completed so far and keeps
    the unterminated tail for the next chunk.

    The default scan is structural: braces inside string literals count
    toward nesting depth. Pass ``string_aware=True`` to skip over quoted
    strings (honouring backslash escapes) while counting.
    """

    def __init__(self, string_aware: bool = False, max_buffer: int = DEFAULT_MAX_BUFFER) -> None:
        self.string_aware = string_aware
        self.max_buffer = max_buffer
        self._buffer = ""
        self._text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        """Unconsumed text waiting for more input."""
        return self._buffer

    def feed(self, chunk: bytes | str) -> Iterator[Any]:
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._text_decoder.decode(bytes(chunk))
        self._buffer += chunk
        return self._drain()

    def _drain(self) -> Iterator[Any]:
        while True:
            start = self._buffer.find("{")
            if start == -1:
                self._buffer = ""
                return

            end = self._match_closing(start)
            if end == -1:
                self._buffer = self._buffer[start:]
                self._enforce_limit()
                return

            candidate = self._buffer[start : end + 1]
            self._buffer = self._buffer[end + 1 :]
            try:
                value = json.loads(candidate)
            except (ValueError, RecursionError) as exc:
                # ValueError covers JSONDecodeError and oversized int literals.
                logger.warning(
                    "Discarding malformed JSON frame",
                    extra={"reason": str(exc), "dropped_chars": len(candidate)},
                )
                continue
            yield value

    def _match_closing(self, start: int) -> int:
        depth = 0
        in_string = False
        escaped = False
        buffer = self._buffer
        for index in range(start, len(buffer)):
            char = buffer[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"' and self.string_aware:
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return index
        return -1

    def _enforce_limit(self) -> None:
        if len(self._buffer) <= self.max_buffer:
            return
        logger.warning(
            "Dropping unterminated frame that exceeded the buffer limit",
            extra={"dropped_chars": len(self._buffer)},
        )
        self._buffer = ""
