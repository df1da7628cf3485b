"""Configuration models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StrategyName(str, Enum):
    """How a catalog entry decides trust during the handshake."""

    NONE = "none"  # platform trust only
    HASH = "hash"  # per-request SPKI pins
    REGISTRY = "registry"  # hostname-keyed process-wide pin registry


@dataclass
class RequestSpec:
    """One catalog entry as read from configuration."""

    name: str
    url: str
    strategy: StrategyName = StrategyName.NONE
    pins: list[str] = field(default_factory=list)


@dataclass
class PinnedDomainSpec:
    """Registry pins for one hostname."""

    hostname: str
    public_key_hashes: list[str] = field(default_factory=list)
    include_subdomains: bool = False
    enforce: bool = True  # False = report mismatches, accept anyway


@dataclass
class AppConfig:
    """Complete application configuration."""

    # Client
    timeout: float = 10.0  # seconds
    ca_bundle: str = ""  # empty = certifi bundle
    log_level: str = "info"

    requests: list[RequestSpec] = field(default_factory=list)
    pinned_domains: list[PinnedDomainSpec] = field(default_factory=list)
