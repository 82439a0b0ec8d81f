"""
Simulated Network Endpoints.

- TargetEndpoint: backend instance (refuse / respond / reset / silent)
- ProxyEndpoint: load balancer (drop / forward / stale forward)
"""

from .target import TargetEndpoint
from .proxy import ProxyEndpoint


__all__ = [
    "TargetEndpoint",
    "ProxyEndpoint",
]
