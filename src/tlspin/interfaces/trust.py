"""Trust protocols - the handshake trust-decision contract."""

from __future__ import annotations

from typing import Callable, Protocol

from tlspin.models.pins import CertificateChain, Decision

# Synchronous handshake hook: (hostname, chain) -> Decision.
# Runs inside the TLS handshake step and must not block.
TrustHook = Callable[[str, CertificateChain], Decision]


class TrustHandle(Protocol):
    """Anything that can decide trust for a host's chain."""

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        ...


class TrustStrategy(Protocol):
    """Selects how a request decides trust during the handshake."""

    requires_tls: bool

    @property
    def label(self) -> str:
        """Short human-readable description for listings."""
        ...

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        """Decide trust for a chain that already passed standard validation."""
        ...
