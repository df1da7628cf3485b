"""httpx transport that runs a pinning hook inside the TLS handshake.

httpx exposes no verify callback, so the hook sits one layer down: a
wrapping httpcore network backend whose streams call the hook right after
``start_tls`` returns. At that point the stdlib has finished its own chain
and hostname validation and no HTTP bytes have been written yet.
"""

from __future__ import annotations

import _ssl
import logging
import ssl
from typing import Any, Iterable

import certifi
import httpcore
import httpx

from tlspin.errors import TrustRejectedError
from tlspin.interfaces.trust import TrustHook
from tlspin.models.pins import CertificateChain
from tlspin.pinning.validator import Decision

log = logging.getLogger(__name__)


def create_ssl_context(ca_bundle: str = "") -> ssl.SSLContext:
    """Platform-default TLS context: CERT_REQUIRED with hostname checking."""
    return ssl.create_default_context(cafile=ca_bundle or certifi.where())


def peer_chain(stream: httpcore.AsyncNetworkStream) -> CertificateChain:
    """Certificates presented by the peer on a TLS stream, leaf first."""
    ssl_object = stream.get_extra_info("ssl_object")
    if ssl_object is None:
        return CertificateChain()
    get_chain = getattr(ssl_object, "get_verified_chain", None)
    if get_chain is not None:
        return CertificateChain(tuple(bytes(c) for c in get_chain()))
    # Python 3.10-3.12: the accessor exists only on the private _SSLSocket
    sslobj = getattr(ssl_object, "_sslobj", None)
    if sslobj is not None and hasattr(sslobj, "get_verified_chain"):
        certs = sslobj.get_verified_chain() or []
        return CertificateChain(tuple(c.public_bytes(_ssl.ENCODING_DER) for c in certs))
    leaf = ssl_object.getpeercert(binary_form=True)
    log.debug("Verified chain unavailable, checking leaf certificate only")
    return CertificateChain((leaf,) if leaf else ())


class PinningStream(httpcore.AsyncNetworkStream):
    """Delegates I/O to the wrapped stream and checks pins on start_tls."""

    def __init__(self, stream: httpcore.AsyncNetworkStream, hook: TrustHook) -> None:
        self._stream = stream
        self._hook = hook

    async def read(self, max_bytes: int, timeout: float | None = None) -> bytes:
        return await self._stream.read(max_bytes, timeout)

    async def write(self, buffer: bytes, timeout: float | None = None) -> None:
        await self._stream.write(buffer, timeout)

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: str | None = None,
        timeout: float | None = None,
    ) -> httpcore.AsyncNetworkStream:
        tls_stream = await self._stream.start_tls(ssl_context, server_hostname, timeout)
        hostname = server_hostname or ""
        chain = peer_chain(tls_stream)
        try:
            decision = self._hook(hostname, chain)
        except Exception:
            await tls_stream.aclose()
            raise
        if decision is not Decision.ACCEPT:
            log.warning("Handshake with %s aborted by pinning hook", hostname)
            await tls_stream.aclose()
            raise TrustRejectedError(hostname)
        log.debug("Handshake with %s accepted (%d certificates)", hostname, len(chain))
        return PinningStream(tls_stream, self._hook)

    def get_extra_info(self, info: str) -> Any:
        return self._stream.get_extra_info(info)


class PinningNetworkBackend(httpcore.AsyncNetworkBackend):
    """Wraps another backend so every stream it opens is a PinningStream."""

    def __init__(
        self,
        hook: TrustHook,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ) -> None:
        self._hook = hook
        self._backend = backend or httpcore.AnyIOBackend()

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        stream = await self._backend.connect_tcp(
            host, port, timeout=timeout, local_address=local_address,
            socket_options=socket_options,
        )
        return PinningStream(stream, self._hook)

    async def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable[Any] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        stream = await self._backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options,
        )
        return PinningStream(stream, self._hook)

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)


class PinningTransport(httpx.AsyncHTTPTransport):
    """AsyncHTTPTransport whose connections run ``hook`` during the handshake.

    HTTP/1.1 only, no keep-alive pooling across clients: callers build one
    transport per request so every request performs a full handshake.
    """

    def __init__(
        self,
        hook: TrustHook,
        ssl_context: ssl.SSLContext,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ) -> None:
        # httpx has no public network_backend option. AsyncHTTPTransport.__init__
        # only builds self._pool, so build ours in its place instead of calling it
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=ssl_context,
            max_connections=1,
            http1=True,
            http2=False,
            network_backend=PinningNetworkBackend(hook, backend),
        )
