"""Shared fixtures for tlspin tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from tlspin.client.executor import PinnedRequestExecutor
from tlspin.models.config import AppConfig, PinnedDomainSpec, RequestSpec, StrategyName
from tlspin.models.pins import PinConfiguration, RequestDefinition
from tlspin.models.state import RequestState
from tlspin.pinning.registry import reset_registry

from tests.factories import ServerChain, make_chain
from tests.mocks import FakeTLSBackend, PhaseRecorder, TransportFactory

TEST_HOST = "pinned.example.test"
TEST_URL = f"https://{TEST_HOST}/"

# Well-formed SPKI pin that matches no generated key
FABRICATED_PIN = "ABCABCABCABCABCABCABCABCABCABCABCABCABCABCA="


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add environment info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Offline host"] = TEST_HOST
    meta["Tier 2 server"] = "https://127.0.0.1:9443 (generated CA)"


def pytest_html_results_summary(prefix, summary, postfix):
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Pinning test chains</strong><br/>"
        "Root CA -&gt; intermediate CA -&gt; leaf, EC P-256, generated per session"
        "</div>"
    )


def make_test_config(**overrides) -> AppConfig:
    """Build an AppConfig suitable for testing."""
    defaults = dict(
        timeout=2.0,
        ca_bundle="",
        log_level="debug",
        requests=[
            RequestSpec("Unpinned", TEST_URL),
            RequestSpec("Pinned", TEST_URL, strategy=StrategyName.HASH, pins=[FABRICATED_PIN]),
        ],
        pinned_domains=[],
    )
    defaults.update(overrides)
    return AppConfig(**defaults)


def pinned_definition(*pins: str, url: str = TEST_URL, name: str = "pinned") -> RequestDefinition:
    return RequestDefinition(name=name, url=url, pin_config=PinConfiguration.of(pins))


@pytest.fixture(autouse=True)
def clean_registry():
    """No test leaks the process-wide pin registry into another."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture(scope="session")
def server_chain() -> ServerChain:
    return make_chain(hostnames=(TEST_HOST, "localhost"))


@pytest.fixture(scope="session")
def other_chain() -> ServerChain:
    """An unrelated chain: none of its keys appear in server_chain."""
    return make_chain(hostnames=("other.example.test",), ips=())


@pytest.fixture
def fake_backend(server_chain):
    return FakeTLSBackend(server_chain.chain, status=200)


@pytest.fixture
def transports(fake_backend):
    return TransportFactory(fake_backend)


@pytest.fixture
def executor(transports):
    return PinnedRequestExecutor(timeout=2.0, transport_factory=transports)


@pytest.fixture
def state():
    return RequestState()


@pytest.fixture
def recorder(state):
    rec = PhaseRecorder()
    state.subscribe(rec)
    return rec


@pytest.fixture
def registry_domains(server_chain):
    return [
        PinnedDomainSpec(
            hostname=TEST_HOST,
            public_key_hashes=[server_chain.root.pin, FABRICATED_PIN],
        ),
    ]
