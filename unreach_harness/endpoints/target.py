"""
Target Endpoint.

============================================================
PURPOSE
============================================================
Simulated backend instance with a behavior fixed at setup:

1. REFUSE    - port bound but not listening; the kernel
               answers every connection attempt with a reset
2. RESPOND   - read the request, answer a minimal 200 after
               a short delay, close gracefully
3. RESET     - read the request, wait, then abort with RST
               (pod whose TCP stack is shutting down)
4. SILENT    - read the request and never answer

============================================================
"""

import asyncio
import logging
import socket
import struct
from typing import Optional, Set

from ..exceptions import EndpointError
from ..models import TargetConfig


logger = logging.getLogger(__name__)


RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Content-Length: 2\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"OK"
)

# l_onoff=1, l_linger=0: close() sends RST instead of FIN
_LINGER_RESET = struct.pack("ii", 1, 0)


class TargetEndpoint:
    """
    Configurable listening service simulating a backend.
    """

    ROLE = "target"

    def __init__(
        self,
        config: TargetConfig,
        host: str = "127.0.0.1",
        port: int = 8081,
    ):
        self.config = config
        self.host = host
        self._requested_port = port
        self._port: Optional[int] = None

        self._server: Optional[asyncio.AbstractServer] = None
        self._refusing_socket: Optional[socket.socket] = None
        self._writers: Set[asyncio.StreamWriter] = set()
        self._handlers: Set[asyncio.Task] = set()

        self.connections_accepted = 0
        self.requests_received = 0
        self.resets_sent = 0

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def port(self) -> int:
        """Bound port (resolved if 0 was requested)."""
        return self._port if self._port is not None else self._requested_port

    @property
    def is_bound(self) -> bool:
        return self._server is not None or self._refusing_socket is not None

    @property
    def behavior(self) -> str:
        if not self.config.accept_connections:
            return "refuse"
        if self.config.respond_to_requests:
            return "respond"
        if self.config.delay_before_reset > 0:
            return "reset"
        return "silent"

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def start(self) -> None:
        """Bind the target port. Returns once the socket is bound."""
        if self.is_bound:
            raise EndpointError("Target already started", role=self.ROLE, port=self.port)

        try:
            if self.config.accept_connections:
                self._server = await asyncio.start_server(
                    self._handle_connection,
                    self.host,
                    self._requested_port,
                    reuse_address=True,
                )
                bound = self._server.sockets[0].getsockname()
            else:
                self._refusing_socket = self._bind_without_listening()
                bound = self._refusing_socket.getsockname()
        except OSError as e:
            raise EndpointError(
                f"Target failed to bind {self.host}:{self._requested_port}",
                role=self.ROLE,
                host=self.host,
                port=self._requested_port,
                original_error=e,
            )

        self._port = bound[1]
        logger.info(f"  Target listening on {self.host}:{self.port} ({self.behavior})")

    def _bind_without_listening(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self._requested_port))
        except OSError:
            sock.close()
            raise
        return sock

    async def stop(self) -> None:
        """Stop accepting and release the port. Returns once released."""
        if self._refusing_socket is not None:
            self._refusing_socket.close()
            self._refusing_socket = None
            logger.info("  Target closed")
            return

        if self._server is None:
            return

        server = self._server
        self._server = None
        server.close()

        for writer in list(self._writers):
            writer.transport.abort()
        for task in list(self._handlers):
            task.cancel()
        if self._handlers:
            await asyncio.gather(*self._handlers, return_exceptions=True)

        await server.wait_closed()
        logger.info("  Target closed")

    async def __aenter__(self) -> "TargetEndpoint":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # --------------------------------------------------------
    # CONNECTION HANDLING
    # --------------------------------------------------------

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._handlers.add(task)
        self._writers.add(writer)
        self.connections_accepted += 1
        logger.info("  Target received connection")

        try:
            data = await reader.read(65536)
            if not data:
                return

            self.requests_received += 1
            first_line = data.split(b"\r\n", 1)[0].decode("latin-1", "replace")
            logger.info(f"  Target received data: {first_line}")

            if self.config.respond_to_requests:
                await asyncio.sleep(self.config.response_delay)
                writer.write(RESPONSE)
                await writer.drain()
            elif self.config.delay_before_reset > 0:
                await asyncio.sleep(self.config.delay_before_reset)
                logger.info("  Target resetting connection after delay")
                self._reset(writer)
            else:
                # Hold the connection open without answering
                while await reader.read(65536):
                    pass
        except ConnectionError as e:
            logger.debug(f"  Target connection dropped: {e}")
        finally:
            self._writers.discard(writer)
            if task is not None:
                self._handlers.discard(task)
            writer.close()

    def _reset(self, writer: asyncio.StreamWriter) -> None:
        sock = writer.get_extra_info("socket")
        if sock is not None:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, _LINGER_RESET)
        writer.transport.abort()
        self.resets_sent += 1
