"""
Proxy Endpoint.

============================================================
PURPOSE
============================================================
Simulated load balancer / reverse proxy.

Every inbound HTTP request is either dropped with a 503 or
forwarded to the effective destination:

- configured target host/port, or
- configured host with a stale, unused port

An outbound failure is classified and surfaced as a plain
status/body. A raw connection error never reaches the caller.

============================================================
"""

import asyncio
import logging
from typing import Dict, Mapping, Optional

import aiohttp
from aiohttp import web

from ..classification import (
    DROP_MESSAGE,
    DROP_STATUS,
    ErrorClassification,
    classify_failure,
    errno_name,
    error_message,
    failure_kind_from_exception,
)
from ..exceptions import EndpointError
from ..models import FailureKind, ProxyConfig


logger = logging.getLogger(__name__)


# Not forwarded in either direction
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "content-encoding",
})


def _filter_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {
        name: value
        for name, value in headers.items()
        if name.lower() not in HOP_BY_HOP_HEADERS
    }


class ProxyEndpoint:
    """
    Configurable HTTP forwarding service simulating a load balancer.
    """

    ROLE = "proxy"

    def __init__(
        self,
        config: ProxyConfig,
        host: str = "127.0.0.1",
        port: int = 8080,
    ):
        self.config = config
        self.host = host
        self._requested_port = port
        self._port: Optional[int] = None

        self._runner: Optional[web.AppRunner] = None
        self._session: Optional[aiohttp.ClientSession] = None

        self.requests_received = 0
        self.outbound_attempts = 0
        self.last_failure_kind: Optional[FailureKind] = None
        self.last_failure_code: Optional[str] = None

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def port(self) -> int:
        """Bound port (resolved if 0 was requested)."""
        return self._port if self._port is not None else self._requested_port

    @property
    def is_bound(self) -> bool:
        return self._runner is not None

    @property
    def destination(self) -> str:
        return f"{self.config.target_host}:{self.config.effective_port}"

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self.handle)
        return app

    async def start(self) -> None:
        """Bind the proxy port. Returns once the site is listening."""
        if self.is_bound:
            raise EndpointError("Proxy already started", role=self.ROLE, port=self.port)

        runner = web.AppRunner(self.create_app(), access_log=None)
        await runner.setup()

        site = web.TCPSite(runner, self.host, self._requested_port, reuse_address=True)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            raise EndpointError(
                f"Proxy failed to bind {self.host}:{self._requested_port}",
                role=self.ROLE,
                host=self.host,
                port=self._requested_port,
                original_error=e,
            )

        self._runner = runner
        self._port = runner.addresses[0][1]
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.config.upstream_timeout),
            auto_decompress=False,
        )
        logger.info(f"  Proxy listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop accepting and release the port."""
        if self._session is not None:
            await self._session.close()
            self._session = None

        if self._runner is not None:
            runner = self._runner
            self._runner = None
            await runner.cleanup()
            logger.info("  Proxy closed")

    async def __aenter__(self) -> "ProxyEndpoint":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # --------------------------------------------------------
    # REQUEST HANDLING
    # --------------------------------------------------------

    async def handle(self, request: web.Request) -> web.StreamResponse:
        """Handle one inbound request."""
        self.requests_received += 1
        logger.info(f"  Proxy received request: {request.method} {request.path_qs}")

        if not self.config.forward_traffic:
            logger.info("  Proxy configured to drop traffic")
            return web.Response(status=DROP_STATUS, text=DROP_MESSAGE)

        if self.config.simulate_stale_endpoint:
            logger.info("  Proxy forwarding to stale endpoint (non-existent port)")

        return await self.forward(request)

    async def forward(self, request: web.Request) -> web.Response:
        """Forward a request to the effective destination."""
        url = f"http://{self.destination}{request.path_qs}"
        logger.info(f"  Proxy forwarding to {self.destination}")

        body = await request.read()
        self.outbound_attempts += 1

        try:
            async with self._session.request(
                request.method,
                url,
                headers=_filter_headers(request.headers),
                data=body or None,
                allow_redirects=False,
            ) as upstream:
                payload = await upstream.read()
                return web.Response(
                    status=upstream.status,
                    headers=_filter_headers(upstream.headers),
                    body=payload,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            return self._failure_response(e)

    def _failure_response(self, exc: BaseException) -> web.Response:
        kind = failure_kind_from_exception(exc)
        code = errno_name(exc)
        # Unmapped errnos keep their raw code in the 500 message
        classification: ErrorClassification = classify_failure(
            code if kind is FailureKind.OTHER else kind
        )

        self.last_failure_kind = kind
        self.last_failure_code = code
        logger.info(f"  Proxy error: {code} - {error_message(exc)}")
        logger.info(f"  Proxy responding {classification}")

        return web.Response(status=classification.status, text=classification.message)
