"""Tier 2 fixtures: local aiohttp HTTPS server behind a generated CA."""

from __future__ import annotations

import ssl

import pytest
from aiohttp import web

from tlspin.client.executor import PinnedRequestExecutor

from tests.factories import ServerChain, make_chain

SERVER_HOST = "127.0.0.1"
SERVER_PORT = 9443
BASE_URL = f"https://{SERVER_HOST}:{SERVER_PORT}"


@pytest.fixture(scope="session")
def tls_chain() -> ServerChain:
    return make_chain(hostnames=("localhost",), ips=(SERVER_HOST,))


@pytest.fixture(scope="session")
def tls_files(tls_chain, tmp_path_factory):
    """Write server chain, server key and CA bundle to disk."""
    d = tmp_path_factory.mktemp("tls")
    chain_path = d / "server-chain.pem"
    key_path = d / "server-key.pem"
    ca_path = d / "ca.pem"
    chain_path.write_bytes(tls_chain.server_chain_pem)
    key_path.write_bytes(tls_chain.leaf.key_pem)
    ca_path.write_bytes(tls_chain.root.pem)
    return chain_path, key_path, ca_path


@pytest.fixture
async def https_server(tls_files):
    """HTTPS server: / answers 200, /unavailable answers 503.

    Yields the list of request paths the server actually handled.
    """
    chain_path, key_path, _ = tls_files
    hits: list[str] = []

    async def ok(request):
        hits.append(request.path)
        return web.Response(text="ok")

    async def unavailable(request):
        hits.append(request.path)
        return web.Response(status=503, text="down")

    app = web.Application()
    app.router.add_get("/", ok)
    app.router.add_get("/unavailable", unavailable)

    server_ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    server_ctx.load_cert_chain(certfile=str(chain_path), keyfile=str(key_path))

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, SERVER_HOST, SERVER_PORT, ssl_context=server_ctx)
    await site.start()
    yield hits
    await runner.cleanup()


@pytest.fixture
def tls_executor(tls_files):
    """Executor that trusts only the generated root CA."""
    _, _, ca_path = tls_files
    return PinnedRequestExecutor(timeout=5.0, ca_bundle=str(ca_path))
