"""
Tests for the Client Probe.

============================================================
TEST COVERAGE
============================================================
1. Raw connect: success, refused, unreachable, timeout
2. HTTP request: success, refused, timeout
3. Outcome serialization
============================================================
"""

import asyncio
import errno
from unittest.mock import AsyncMock, patch

import pytest
from aiohttp import web

from unreach_harness import (
    ClientProbe,
    FailureKind,
    ProbeStatus,
    TargetConfig,
    TargetEndpoint,
)
from unreach_harness.models import ProbeMode


# ============================================================
# RAW CONNECT TESTS
# ============================================================

class TestConnect:
    """Test ClientProbe.connect."""

    @pytest.mark.asyncio
    async def test_success(self, unused_tcp_port):
        """Test a listening port yields success."""
        async with TargetEndpoint(TargetConfig(), port=unused_tcp_port):
            outcome = await ClientProbe(timeout=2.0).connect("127.0.0.1", unused_tcp_port)

        assert outcome.status == ProbeStatus.SUCCESS
        assert outcome.mode == ProbeMode.CONNECT
        assert outcome.kind is None

    @pytest.mark.asyncio
    async def test_refused(self, unused_tcp_port):
        """Test a closed port yields ECONNREFUSED."""
        outcome = await ClientProbe(timeout=2.0).connect("127.0.0.1", unused_tcp_port)

        assert outcome.failed
        assert outcome.kind == FailureKind.CONNECTION_REFUSED
        assert outcome.code == "ECONNREFUSED"
        assert outcome.syscall == "connect"
        assert outcome.host == "127.0.0.1"
        assert outcome.port == unused_tcp_port

    @pytest.mark.asyncio
    async def test_host_unreachable(self):
        """Test a rejected destination yields EHOSTUNREACH."""
        unreachable = OSError(errno.EHOSTUNREACH, "No route to host")
        with patch("asyncio.open_connection", AsyncMock(side_effect=unreachable)):
            outcome = await ClientProbe(timeout=2.0).connect("192.0.2.5", 12345)

        assert outcome.failed
        assert outcome.kind == FailureKind.HOST_UNREACHABLE
        assert outcome.code == "EHOSTUNREACH"
        assert outcome.message == "No route to host"
        assert outcome.host == "192.0.2.5"
        assert outcome.port == 12345

    @pytest.mark.asyncio
    async def test_network_unreachable(self):
        """Test an unroutable destination yields ENETUNREACH."""
        unreachable = OSError(errno.ENETUNREACH, "Network is unreachable")
        with patch("asyncio.open_connection", AsyncMock(side_effect=unreachable)):
            outcome = await ClientProbe(timeout=2.0).connect("240.0.0.1", 12345)

        assert outcome.kind == FailureKind.NETWORK_UNREACHABLE
        assert outcome.code == "ENETUNREACH"

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test a silently dropped connect settles as a timeout."""
        async def never_connects(host, port):
            await asyncio.sleep(10)

        with patch("asyncio.open_connection", never_connects):
            outcome = await ClientProbe(timeout=0.1).connect("203.0.113.1", 80)

        assert outcome.timed_out
        assert outcome.kind == FailureKind.TIMED_OUT
        assert outcome.code == "ETIMEDOUT"
        assert outcome.elapsed < 2.0

    @pytest.mark.asyncio
    async def test_kernel_timeout_is_a_failure(self):
        """Test an ETIMEDOUT from connect() is a failure, not window expiry."""
        timed_out = OSError(errno.ETIMEDOUT, "Connection timed out")
        with patch("asyncio.open_connection", AsyncMock(side_effect=timed_out)):
            outcome = await ClientProbe(timeout=5.0).connect("203.0.113.1", 80)

        assert outcome.status == ProbeStatus.FAILURE
        assert outcome.kind == FailureKind.TIMED_OUT
        assert outcome.code == "ETIMEDOUT"
        assert outcome.message == "Connection timed out"
        assert outcome.syscall == "connect"


# ============================================================
# HTTP REQUEST TESTS
# ============================================================

class TestRequest:
    """Test ClientProbe.request."""

    @pytest.mark.asyncio
    async def test_success(self, unused_tcp_port):
        """Test status and body are captured."""
        async with TargetEndpoint(TargetConfig(response_delay=0.01), port=unused_tcp_port):
            outcome = await ClientProbe(timeout=2.0).request("127.0.0.1", unused_tcp_port)

        assert outcome.succeeded
        assert outcome.mode == ProbeMode.REQUEST
        assert outcome.http_status == 200
        assert outcome.body == "OK"

    @pytest.mark.asyncio
    async def test_refused(self, unused_tcp_port):
        """Test a refused request is a failure, never an exception."""
        outcome = await ClientProbe(timeout=2.0).request("127.0.0.1", unused_tcp_port)

        assert outcome.failed
        assert outcome.kind == FailureKind.CONNECTION_REFUSED
        assert outcome.syscall == "connect"

    @pytest.mark.asyncio
    async def test_timeout(self, unused_tcp_port):
        """Test an unanswered request settles as a timeout."""
        silent = TargetConfig(respond_to_requests=False)
        async with TargetEndpoint(silent, port=unused_tcp_port):
            outcome = await ClientProbe(timeout=0.3).request("127.0.0.1", unused_tcp_port)

        assert outcome.status == ProbeStatus.TIMEOUT
        assert outcome.message == "No response within 0.3s"

    @pytest.mark.asyncio
    async def test_binary_body(self, unused_tcp_port):
        """Test a body that is not valid UTF-8 is still captured."""
        async def binary(request: web.Request) -> web.Response:
            return web.Response(body=b"\xff\xfe\xfa", content_type="text/plain", charset="utf-8")

        app = web.Application()
        app.router.add_get("/", binary)
        runner = web.AppRunner(app)
        await runner.setup()
        await web.TCPSite(runner, "127.0.0.1", unused_tcp_port).start()
        try:
            outcome = await ClientProbe(timeout=2.0).request("127.0.0.1", unused_tcp_port)
        finally:
            await runner.cleanup()

        assert outcome.succeeded
        assert outcome.http_status == 200
        assert outcome.body == "\ufffd" * 3


# ============================================================
# SERIALIZATION TESTS
# ============================================================

class TestProbeOutcome:
    """Test ProbeOutcome.to_dict."""

    @pytest.mark.asyncio
    async def test_to_dict(self, unused_tcp_port):
        outcome = await ClientProbe(timeout=2.0).connect("127.0.0.1", unused_tcp_port)
        data = outcome.to_dict()

        assert data["status"] == "failure"
        assert data["mode"] == "connect"
        assert data["kind"] == "ECONNREFUSED"
        assert data["port"] == unused_tcp_port
