"""
Harness Exceptions.

============================================================
EXCEPTION HIERARCHY
============================================================
HarnessError (base)
├── ConfigurationError
├── EndpointError
│   └── SlotOccupiedError
└── ScenarioError
    └── ScenarioStateError

Connection-level failures are never raised out of the probe or the
proxy; they are reported as outcomes. These exceptions cover the
harness itself.

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class HarnessError(Exception):
    """Base exception for all harness errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class ConfigurationError(HarnessError):
    """Invalid harness configuration."""
    pass


class EndpointError(HarnessError):
    """Simulated endpoint could not be started or stopped."""

    def __init__(
        self,
        message: str,
        role: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            original_error=original_error,
            context={"role": role, "host": host, "port": port},
        )
        self.role = role
        self.host = host
        self.port = port


class SlotOccupiedError(EndpointError):
    """An endpoint of the same role is still live in the context."""

    def __init__(self, role: str, port: Optional[int] = None) -> None:
        super().__init__(
            f"{role} endpoint is still bound; tear it down first",
            role=role,
            port=port,
        )


class ScenarioError(HarnessError):
    """Error attributed to a scenario."""

    def __init__(
        self,
        message: str,
        scenario_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            original_error=original_error,
            context={"scenario_id": scenario_id},
        )
        self.scenario_id = scenario_id


class ScenarioStateError(ScenarioError):
    """Illegal scenario phase transition."""
    pass
