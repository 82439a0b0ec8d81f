"""
Scenario Execution Context.

============================================================
PURPOSE
============================================================
Holds the live endpoints owned by the scenario currently
executing. One slot per role:

- target: at most one TargetEndpoint
- proxy:  at most one ProxyEndpoint

Starting an endpoint into an occupied slot is refused, so a
scenario can never bind over a listener left by another.
release() empties both slots and returns only once the
ports are unbound.

============================================================
"""

import logging
from typing import Any, Dict, Optional

from .config import HarnessConfig
from .endpoints import ProxyEndpoint, TargetEndpoint
from .exceptions import SlotOccupiedError
from .models import ProxyConfig, TargetConfig
from .probe import ClientProbe


logger = logging.getLogger(__name__)


class ScenarioContext:
    """Context for one scenario execution."""

    def __init__(self, config: HarnessConfig, scenario_id: str = ""):
        self.config = config
        self.scenario_id = scenario_id
        self.probe = ClientProbe(timeout=config.probe_timeout)
        self.target: Optional[TargetEndpoint] = None
        self.proxy: Optional[ProxyEndpoint] = None

    @property
    def has_live_endpoints(self) -> bool:
        return self.target is not None or self.proxy is not None

    # --------------------------------------------------------
    # ENDPOINT SLOTS
    # --------------------------------------------------------

    async def start_target(self, target_config: TargetConfig) -> TargetEndpoint:
        """Start a target endpoint in the target slot."""
        if self.target is not None:
            raise SlotOccupiedError(TargetEndpoint.ROLE, self.target.port)

        target = TargetEndpoint(
            target_config,
            host=self.config.target_host,
            port=self.config.target_port,
        )
        await target.start()
        self.target = target
        return target

    async def start_proxy(self, proxy_config: ProxyConfig) -> ProxyEndpoint:
        """Start a proxy endpoint in the proxy slot."""
        if self.proxy is not None:
            raise SlotOccupiedError(ProxyEndpoint.ROLE, self.proxy.port)

        proxy = ProxyEndpoint(
            proxy_config,
            host=self.config.proxy_host,
            port=self.config.proxy_port,
        )
        await proxy.start()
        self.proxy = proxy
        return proxy

    def proxy_config(self, **overrides: Any) -> ProxyConfig:
        """
        Fresh proxy config pointing at the live target (if any).

        Keyword overrides replace individual fields.
        """
        target_port = self.target.port if self.target is not None else self.config.target_port
        values: Dict[str, Any] = {
            "target_host": self.config.target_host,
            "target_port": target_port,
            "stale_port": self.config.stale_port,
            "upstream_timeout": self.config.upstream_timeout,
        }
        values.update(overrides)
        return ProxyConfig(**values)

    async def release(self) -> None:
        """Stop every live endpoint and empty the slots."""
        proxy, self.proxy = self.proxy, None
        target, self.target = self.target, None

        # Proxy first so nothing is forwarded into a closing target
        try:
            if proxy is not None:
                await proxy.stop()
        finally:
            if target is not None:
                await target.stop()

