"""SPKI pin validator - decides trust for a presented certificate chain."""

from __future__ import annotations

import base64
import hashlib
import logging

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from tlspin.models.pins import CertificateChain, Decision, PinConfiguration

log = logging.getLogger(__name__)


def spki_pin(cert_der: bytes) -> str:
    """Base64 SHA-256 of a certificate's DER SubjectPublicKeyInfo.

    Hashes the full SPKI (algorithm identifier and parameters included),
    not the bare key bits, so pins match the HPKP / TrustKit format.
    Raises ValueError if the certificate or its key cannot be decoded.
    """
    try:
        cert = x509.load_der_x509_certificate(cert_der)
        spki = cert.public_key().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    except UnsupportedAlgorithm as exc:
        raise ValueError(f"unsupported public key: {exc}") from exc
    digest = hashlib.sha256(spki).digest()
    return base64.b64encode(digest).decode("ascii")


class PinValidator:
    """Checks a chain against a PinConfiguration.

    This is an extra constraint on top of the TLS stack's own chain and
    hostname validation, never a replacement for it:

    1. Standard validation failed -> REJECT
    2. No pins configured -> ACCEPT
    3. Walk the chain leaf first; the first certificate whose SPKI pin is
       configured -> ACCEPT
    4. Nothing matched -> REJECT

    Certificates that fail to decode are skipped with a warning.
    """

    def evaluate(
        self,
        chain: CertificateChain,
        config: PinConfiguration,
        standard_validation_passed: bool = True,
    ) -> Decision:
        if not standard_validation_passed:
            log.debug("Standard validation failed, rejecting before pin check")
            return Decision.REJECT

        if not config.enabled:
            return Decision.ACCEPT

        for depth, cert_der in enumerate(chain):
            try:
                pin = spki_pin(cert_der)
            except ValueError as exc:
                log.warning("Skipping certificate at depth %d: %s", depth, exc)
                continue
            if config.matches(pin):
                log.debug("Pin matched at depth %d: %s", depth, pin)
                return Decision.ACCEPT

        log.warning(
            "No pinned key found in %d-certificate chain (%d pins configured)",
            len(chain), len(config.pinned_key_hashes),
        )
        return Decision.REJECT
