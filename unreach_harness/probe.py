"""
Client Probe.

============================================================
PURPOSE
============================================================
Issues a single outbound attempt and reports how it settled:

- connect(): raw TCP connect
- request(): HTTP request

Each call resolves exactly once into a ProbeOutcome
(success, failure or timeout). The timeout window starts at
initiation; on expiry the attempt is cancelled and the socket
released. Connection errors are never raised to the caller.

============================================================
"""

import asyncio
import logging
import time
from typing import Optional

import aiohttp

from .classification import errno_name, error_message, failure_kind_from_exception
from .models import FailureKind, ProbeMode, ProbeOutcome, ProbeStatus


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 5.0


class ClientProbe:
    """
    Single-shot connection / request prober.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    # ========================================================
    # RAW SOCKET
    # ========================================================

    async def connect(self, host: str, port: int) -> ProbeOutcome:
        """
        Attempt a raw TCP connection.

        On success the connection is closed immediately.
        """
        logger.info(f"  Connecting to {host}:{port}...")
        started = time.monotonic()
        writer: Optional[asyncio.StreamWriter] = None

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            # Kernel-level ETIMEDOUT is a TimeoutError too; only errno-less ones mean window expiry
            if getattr(e, "errno", None) is None:
                return self._timeout(ProbeMode.CONNECT, host, port, started)
            return self._failure(ProbeMode.CONNECT, host, port, started, e, syscall="connect")
        except OSError as e:
            return self._failure(ProbeMode.CONNECT, host, port, started, e, syscall="connect")
        finally:
            if writer is not None:
                writer.close()

        return ProbeOutcome(
            status=ProbeStatus.SUCCESS,
            mode=ProbeMode.CONNECT,
            host=host,
            port=port,
            elapsed=time.monotonic() - started,
        )

    # ========================================================
    # HTTP
    # ========================================================

    async def request(
        self,
        host: str,
        port: int,
        path: str = "/",
        method: str = "GET",
    ) -> ProbeOutcome:
        """Issue one HTTP request and capture status and body."""
        url = f"http://{host}:{port}{path}"
        logger.info(f"  Making HTTP request: {method} {url}")
        started = time.monotonic()

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, allow_redirects=False) as response:
                    body = await response.text(errors="replace")
                    status = response.status
        except asyncio.TimeoutError as e:
            if getattr(e, "errno", None) is None:
                return self._timeout(ProbeMode.REQUEST, host, port, started)
            return self._failure(ProbeMode.REQUEST, host, port, started, e, syscall="connect")
        except aiohttp.ClientConnectorError as e:
            return self._failure(ProbeMode.REQUEST, host, port, started, e, syscall="connect")
        except (aiohttp.ClientError, OSError) as e:
            return self._failure(ProbeMode.REQUEST, host, port, started, e)

        return ProbeOutcome(
            status=ProbeStatus.SUCCESS,
            mode=ProbeMode.REQUEST,
            host=host,
            port=port,
            http_status=status,
            body=body,
            elapsed=time.monotonic() - started,
        )

    # ========================================================
    # OUTCOME BUILDERS
    # ========================================================

    def _timeout(
        self,
        mode: ProbeMode,
        host: str,
        port: int,
        started: float,
    ) -> ProbeOutcome:
        return ProbeOutcome(
            status=ProbeStatus.TIMEOUT,
            mode=mode,
            host=host,
            port=port,
            kind=FailureKind.TIMED_OUT,
            code="ETIMEDOUT",
            message=f"No response within {self.timeout}s",
            elapsed=time.monotonic() - started,
        )

    def _failure(
        self,
        mode: ProbeMode,
        host: str,
        port: int,
        started: float,
        exc: BaseException,
        syscall: Optional[str] = None,
    ) -> ProbeOutcome:
        return ProbeOutcome(
            status=ProbeStatus.FAILURE,
            mode=mode,
            host=host,
            port=port,
            kind=failure_kind_from_exception(exc),
            code=errno_name(exc),
            message=error_message(exc),
            syscall=syscall,
            elapsed=time.monotonic() - started,
        )
