"""
Error Classification.

============================================================
PURPOSE
============================================================
Maps low-level connection failures to a failure kind, and
failure kinds to the status a reverse proxy surfaces:

    EHOSTUNREACH  -> 502 Host Unreachable
    ECONNREFUSED  -> 502 Connection Refused
    ETIMEDOUT     -> 504 Gateway Timeout
    anything else -> 500 Error: <kind>

Pure functions over read-only tables. Never raises.

============================================================
"""

import asyncio
import errno
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import aiohttp

from .models import FailureKind


logger = logging.getLogger(__name__)


# ============================================================
# CLASSIFICATION RESULT
# ============================================================

@dataclass(frozen=True)
class ErrorClassification:
    """Status and canonical message surfaced to the caller."""
    status: int
    message: str

    def __str__(self) -> str:
        return f"{self.status} {self.message}"


# ============================================================
# TABLES
# ============================================================

# errno value to failure kind
ERRNO_KINDS: Dict[int, FailureKind] = {
    errno.EHOSTUNREACH: FailureKind.HOST_UNREACHABLE,
    errno.ENETUNREACH: FailureKind.NETWORK_UNREACHABLE,
    errno.ECONNREFUSED: FailureKind.CONNECTION_REFUSED,
    errno.ETIMEDOUT: FailureKind.TIMED_OUT,
    errno.ECONNRESET: FailureKind.CONNECTION_RESET,
}

# Failure kind to surfaced status
CLASSIFICATIONS: Dict[FailureKind, ErrorClassification] = {
    FailureKind.HOST_UNREACHABLE: ErrorClassification(502, "Host Unreachable"),
    FailureKind.CONNECTION_REFUSED: ErrorClassification(502, "Connection Refused"),
    FailureKind.TIMED_OUT: ErrorClassification(504, "Gateway Timeout"),
}

# Status the proxy uses when configured to drop traffic
DROP_STATUS = 503
DROP_MESSAGE = "Proxy dropping traffic"


# ============================================================
# CLASSIFIER
# ============================================================

def _coerce_kind(kind: Union[FailureKind, str, None]) -> Optional[FailureKind]:
    if isinstance(kind, FailureKind):
        return kind
    try:
        return FailureKind(kind)
    except ValueError:
        return None


def classify_failure(kind: Union[FailureKind, str, None]) -> ErrorClassification:
    """
    Classify a raw failure kind.

    Accepts a FailureKind or its raw code string (e.g. "ECONNREFUSED").
    Unrecognized kinds fall into the 500 default branch.
    """
    known = _coerce_kind(kind)
    if known is not None and known in CLASSIFICATIONS:
        return CLASSIFICATIONS[known]

    raw = known.value if known is not None else str(kind)
    return ErrorClassification(500, f"Error: {raw}")


def failure_kind_from_exception(exc: BaseException) -> FailureKind:
    """
    Extract the failure kind from a raised exception.

    Timeouts are checked before OSError since TimeoutError is itself
    an OSError without an errno.
    """
    if isinstance(exc, asyncio.TimeoutError):
        return FailureKind.TIMED_OUT

    if isinstance(exc, aiohttp.ServerDisconnectedError):
        return FailureKind.CONNECTION_RESET

    if isinstance(exc, OSError) and exc.errno in ERRNO_KINDS:
        return ERRNO_KINDS[exc.errno]

    return FailureKind.OTHER


def errno_name(exc: BaseException) -> str:
    """Raw code of an exception, e.g. "EHOSTUNREACH"."""
    if isinstance(exc, asyncio.TimeoutError):
        return "ETIMEDOUT"
    if isinstance(exc, OSError) and exc.errno in errno.errorcode:
        return errno.errorcode[exc.errno]
    return exc.__class__.__name__


def error_message(exc: BaseException) -> str:
    """Human-readable message of an exception."""
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    text = str(exc)
    return text or exc.__class__.__name__
