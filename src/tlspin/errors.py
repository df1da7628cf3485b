"""Exception types raised by tlspin components."""

from __future__ import annotations


class TlsPinError(Exception):
    """Base class for all tlspin errors."""


class MalformedURLError(TlsPinError):
    """The request URL cannot be parsed into an http(s) URL with a host."""


class TrustRejectedError(TlsPinError):
    """The pinning check rejected the certificate chain presented by the peer."""

    def __init__(self, hostname: str, reason: str = "no pinned key in chain") -> None:
        super().__init__(f"pinning rejected {hostname}: {reason}")
        self.hostname = hostname
        self.reason = reason


class InvalidTransitionError(TlsPinError):
    """A RequestState was asked to make a transition its state machine forbids."""


class ConfigError(TlsPinError):
    """Configuration file or environment contains an invalid value."""


class RegistryAlreadyInitializedError(TlsPinError):
    """initialize_registry() called twice without reset_registry()."""


class RegistryNotInitializedError(TlsPinError):
    """shared_registry() used before initialize_registry()."""
