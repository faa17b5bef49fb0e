from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from services.adapters.base import IngestionAdapter
from services.framing import FrameDecoder
from services.relay import SensorRelay

logger = logging.getLogger(__name__)

_READ_SIZE = 4096


class TcpAdapter(IngestionAdapter):
    """Accepts producers that stream concatenated JSON objects over TCP.

    Nothing is written back to the producer.
    """

    source = "tcp"

    def __init__(
        self,
        relay: SensorRelay,
        host: str = "0.0.0.0",
        port: int = 3000,
        string_aware: bool = False,
    ) -> None:
        super().__init__(relay)
        self.host = host
        self.string_aware = string_aware
        self._requested_port = port
        self._server: Optional[asyncio.Server] = None
        self._connections: Set[asyncio.Task] = set()

    @property
    def port(self) -> int:
        """Bound port once started, otherwise the configured one."""
        if self._server and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._requested_port

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_connection, self.host, self._requested_port
        )
        logger.info(
            "TCP ingestion listening on %s:%s", self.host, self.port, extra={"source": self.source}
        )

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        for task in list(self._connections):
            task.cancel()
        if self._connections:
            await asyncio.gather(*self._connections, return_exceptions=True)
        await self._server.wait_closed()
        self._server = None
        logger.info("TCP ingestion stopped", extra={"source": self.source})

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._connections.add(task)
        peername = writer.get_extra_info("peername")
        peer = f"{peername[0]}:{peername[1]}" if peername else "unknown"
        decoder = FrameDecoder(string_aware=self.string_aware)
        logger.info("TCP producer connected", extra={"peer": peer})

        try:
            while True:
                chunk = await reader.read(_READ_SIZE)
                if not chunk:
                    break
                for payload in decoder.feed(chunk):
                    self.submit(payload)
        except (ConnectionError, OSError) as exc:
            logger.warning("TCP socket error", extra={"peer": peer, "reason": str(exc)})
        finally:
            if task is not None:
                self._connections.discard(task)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            logger.info("TCP producer disconnected", extra={"peer": peer})
