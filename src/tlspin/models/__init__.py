"""Data models for tlspin."""

from tlspin.models.pins import CertificateChain, Decision, PinConfiguration, RequestDefinition
from tlspin.models.state import (
    ErrorInfo,
    ErrorKind,
    RequestPhase,
    RequestResult,
    RequestState,
    StateSnapshot,
)
from tlspin.models.config import AppConfig, PinnedDomainSpec, RequestSpec, StrategyName

__all__ = [
    "CertificateChain", "Decision", "PinConfiguration", "RequestDefinition",
    "ErrorInfo", "ErrorKind", "RequestPhase", "RequestResult", "RequestState",
    "StateSnapshot",
    "AppConfig", "PinnedDomainSpec", "RequestSpec", "StrategyName",
]
