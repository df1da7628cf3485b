"""Pin configuration, certificate chain and request definition models."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

SHA256_DIGEST_SIZE = 32


class Decision(str, Enum):
    """Outcome of a handshake trust check."""

    ACCEPT = "accept"
    REJECT = "reject"


def _check_pin(pin: str) -> str:
    """Raise ValueError unless ``pin`` is a Base64-encoded SHA-256 digest."""
    try:
        raw = base64.b64decode(pin, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"pin is not valid Base64: {pin!r}") from exc
    if len(raw) != SHA256_DIGEST_SIZE:
        raise ValueError(
            f"pin must decode to {SHA256_DIGEST_SIZE} bytes, got {len(raw)}: {pin!r}"
        )
    return pin


@dataclass(frozen=True)
class PinConfiguration:
    """Acceptable SPKI SHA-256 digests, Base64-encoded.

    An empty set disables pinning. Matching is exact and case-sensitive
    over the encoded string.
    """

    pinned_key_hashes: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        hashes = frozenset(self.pinned_key_hashes)
        for pin in hashes:
            _check_pin(pin)
        object.__setattr__(self, "pinned_key_hashes", hashes)

    @classmethod
    def of(cls, pins: Iterable[str]) -> PinConfiguration:
        return cls(frozenset(pins))

    @property
    def enabled(self) -> bool:
        return bool(self.pinned_key_hashes)

    def matches(self, digest: str) -> bool:
        return digest in self.pinned_key_hashes


@dataclass(frozen=True)
class CertificateChain:
    """DER-encoded certificates as presented by the peer, leaf first."""

    certificates: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "certificates", tuple(self.certificates))

    def __iter__(self):
        return iter(self.certificates)

    def __len__(self) -> int:
        return len(self.certificates)

    @property
    def leaf(self) -> bytes | None:
        return self.certificates[0] if self.certificates else None


@dataclass(frozen=True)
class RequestDefinition:
    """A named request to run, optionally pinned per-request."""

    name: str
    url: str
    pin_config: PinConfiguration | None = None
