"""Pin validation, trust strategies and the hostname pin registry."""

from tlspin.pinning.validator import Decision, PinValidator, spki_pin
from tlspin.pinning.strategies import ExternalLibraryDelegate, NoPinning, PinByHash, strategy_for
from tlspin.pinning.registry import (
    PinRegistry,
    initialize_registry,
    is_registry_initialized,
    reset_registry,
    shared_registry,
)

__all__ = [
    "Decision", "PinValidator", "spki_pin",
    "ExternalLibraryDelegate", "NoPinning", "PinByHash", "strategy_for",
    "PinRegistry", "initialize_registry", "is_registry_initialized",
    "reset_registry", "shared_registry",
]
