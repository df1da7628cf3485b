"""Process-wide pin registry keyed by hostname.

Alternate callers pin globally per host instead of per request. The
registry is initialized once, deliberately, by the application:

    initialize_registry(cfg.pinned_domains)
    ...
    reset_registry()  # teardown, e.g. between tests or on reconfiguration
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from tlspin.errors import RegistryAlreadyInitializedError, RegistryNotInitializedError
from tlspin.models.config import PinnedDomainSpec
from tlspin.models.pins import CertificateChain, PinConfiguration
from tlspin.pinning.validator import Decision, PinValidator

log = logging.getLogger(__name__)

MIN_PINS_PER_DOMAIN = 2  # primary + backup


@dataclass(frozen=True)
class DomainPins:
    hostname: str
    config: PinConfiguration
    include_subdomains: bool = False
    enforce: bool = True


class PinRegistry:
    """Resolves the PinConfiguration for a host and checks chains against it."""

    def __init__(
        self,
        domains: Iterable[PinnedDomainSpec],
        validator: PinValidator | None = None,
    ) -> None:
        self._validator = validator or PinValidator()
        self._domains: dict[str, DomainPins] = {}
        for spec in domains:
            host = spec.hostname.lower().rstrip(".")
            if len(set(spec.public_key_hashes)) < MIN_PINS_PER_DOMAIN:
                raise ValueError(
                    f"{host}: at least {MIN_PINS_PER_DOMAIN} distinct pins required "
                    f"(configure a backup pin)"
                )
            self._domains[host] = DomainPins(
                hostname=host,
                config=PinConfiguration.of(spec.public_key_hashes),
                include_subdomains=spec.include_subdomains,
                enforce=spec.enforce,
            )

    @property
    def hostnames(self) -> list[str]:
        return sorted(self._domains)

    def lookup(self, hostname: str) -> DomainPins | None:
        """Exact host first, then the nearest parent with include_subdomains."""
        host = hostname.lower().rstrip(".")
        if entry := self._domains.get(host):
            return entry
        labels = host.split(".")
        for i in range(1, len(labels) - 1):
            parent = ".".join(labels[i:])
            entry = self._domains.get(parent)
            if entry is not None and entry.include_subdomains:
                return entry
        return None

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        entry = self.lookup(hostname)
        if entry is None:
            log.warning("No registry pins for %s, rejecting", hostname)
            return Decision.REJECT

        decision = self._validator.evaluate(chain, entry.config)
        if decision is Decision.REJECT and not entry.enforce:
            log.warning("Pin mismatch for %s (report-only, accepting)", hostname)
            return Decision.ACCEPT
        return decision


_shared: PinRegistry | None = None
_shared_lock = threading.Lock()


def initialize_registry(
    domains: Iterable[PinnedDomainSpec],
    validator: PinValidator | None = None,
) -> PinRegistry:
    """Build the process-wide registry. Raises if already initialized."""
    global _shared
    with _shared_lock:
        if _shared is not None:
            raise RegistryAlreadyInitializedError(
                "pin registry already initialized; call reset_registry() first"
            )
        _shared = PinRegistry(domains, validator)
        log.info("Pin registry initialized for %s", ", ".join(_shared.hostnames) or "(none)")
        return _shared


def shared_registry() -> PinRegistry:
    with _shared_lock:
        if _shared is None:
            raise RegistryNotInitializedError("call initialize_registry() first")
        return _shared


def is_registry_initialized() -> bool:
    with _shared_lock:
        return _shared is not None


def reset_registry() -> None:
    global _shared
    with _shared_lock:
        _shared = None
