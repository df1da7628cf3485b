"""Request catalog - turns configured request specs into runnable entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tlspin.errors import ConfigError
from tlspin.interfaces.trust import TrustStrategy
from tlspin.models.config import AppConfig, RequestSpec, StrategyName
from tlspin.models.pins import PinConfiguration, RequestDefinition
from tlspin.models.state import RequestState
from tlspin.pinning.registry import PinRegistry, shared_registry
from tlspin.pinning.strategies import ExternalLibraryDelegate, NoPinning, PinByHash

log = logging.getLogger(__name__)


@dataclass
class CatalogEntry:
    """A request definition, its trust strategy, and its observable state."""

    definition: RequestDefinition
    strategy: TrustStrategy
    state: RequestState = field(default_factory=RequestState)

    @property
    def name(self) -> str:
        return self.definition.name


def build_entry(spec: RequestSpec, registry: PinRegistry | None = None) -> CatalogEntry:
    """Build one entry. Registry-backed specs need an initialized registry."""
    if spec.strategy is StrategyName.HASH:
        try:
            pin_config = PinConfiguration.of(spec.pins)
        except ValueError as exc:
            raise ConfigError(f"{spec.name}: {exc}") from exc
        definition = RequestDefinition(spec.name, spec.url, pin_config)
        strategy: TrustStrategy = PinByHash(pin_config)
    elif spec.strategy is StrategyName.REGISTRY:
        definition = RequestDefinition(spec.name, spec.url)
        strategy = ExternalLibraryDelegate(registry or shared_registry())
    else:
        definition = RequestDefinition(spec.name, spec.url)
        strategy = NoPinning()
    return CatalogEntry(definition=definition, strategy=strategy)


def build_catalog(cfg: AppConfig, registry: PinRegistry | None = None) -> list[CatalogEntry]:
    entries = [build_entry(spec, registry) for spec in cfg.requests]
    log.debug("Catalog has %d entries", len(entries))
    return entries


def select(entries: list[CatalogEntry], names: tuple[str, ...]) -> list[CatalogEntry]:
    """Entries whose name is in ``names`` (all entries if ``names`` is empty)."""
    if not names:
        return entries
    by_name = {e.name: e for e in entries}
    missing = [n for n in names if n not in by_name]
    if missing:
        raise ConfigError(f"unknown request(s): {', '.join(missing)}")
    return [by_name[n] for n in names]
