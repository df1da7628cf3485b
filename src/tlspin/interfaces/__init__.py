"""Protocol interfaces for tlspin components."""

from tlspin.interfaces.trust import TrustHandle, TrustHook, TrustStrategy
from tlspin.interfaces.executor import RequestExecutor

__all__ = [
    "TrustHandle", "TrustHook", "TrustStrategy",
    "RequestExecutor",
]
