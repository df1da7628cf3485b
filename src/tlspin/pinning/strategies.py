"""Trust strategies selectable per request."""

from __future__ import annotations

from dataclasses import dataclass, field

from tlspin.interfaces.trust import TrustHandle
from tlspin.models.pins import CertificateChain, PinConfiguration
from tlspin.pinning.registry import shared_registry
from tlspin.pinning.validator import Decision, PinValidator


@dataclass(frozen=True)
class NoPinning:
    """Platform trust evaluation only; no handshake hook is installed."""

    requires_tls = False

    @property
    def label(self) -> str:
        return "none"

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        return Decision.ACCEPT


@dataclass(frozen=True)
class PinByHash:
    """Per-request SPKI pins checked by PinValidator."""

    config: PinConfiguration
    validator: PinValidator = field(default_factory=PinValidator, compare=False)

    requires_tls = True

    @property
    def label(self) -> str:
        return f"hash ({len(self.config.pinned_key_hashes)} pins)"

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        return self.validator.evaluate(chain, self.config)


@dataclass(frozen=True)
class ExternalLibraryDelegate:
    """Hands the decision to an external pinning facility.

    Without an explicit ``handle`` the process-wide PinRegistry is used,
    looked up on each check so it must be initialized before the handshake.
    """

    handle: TrustHandle | None = None

    requires_tls = True

    @property
    def label(self) -> str:
        if self.handle is None:
            return "delegate (shared registry)"
        return f"delegate ({type(self.handle).__name__})"

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        handle = self.handle if self.handle is not None else shared_registry()
        return handle.check(hostname, chain)


def strategy_for(pin_config: PinConfiguration | None):
    """Default strategy for a RequestDefinition's own pin configuration.

    An empty pin set disables pinning, same as no configuration at all.
    """
    if pin_config is None or not pin_config.enabled:
        return NoPinning()
    return PinByHash(pin_config)
