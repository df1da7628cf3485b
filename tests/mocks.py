"""Fake transports, TLS streams and observers for offline tests."""

from __future__ import annotations

import ssl
from http import HTTPStatus

import httpcore
import httpx

from tlspin.client.transport import PinningTransport
from tlspin.interfaces.trust import TrustStrategy
from tlspin.models.pins import CertificateChain
from tlspin.models.state import RequestPhase, StateSnapshot
from tlspin.pinning.validator import Decision


def http_response_bytes(status: int, body: bytes = b"ok") -> list[bytes]:
    reason = HTTPStatus(status).phrase.encode("ascii")
    return [
        b"HTTP/1.1 %d %s\r\n" % (status, reason),
        b"Content-Type: text/plain\r\n",
        b"Content-Length: %d\r\n" % len(body),
        b"\r\n",
        body,
    ]


class FakeSSLObject:
    """Just enough of ssl.SSLObject for httpcore and the pinning stream."""

    def __init__(self, chain: CertificateChain) -> None:
        self._chain = chain

    def get_verified_chain(self) -> list[bytes]:
        return list(self._chain.certificates)

    def selected_alpn_protocol(self) -> str | None:
        return "http/1.1"


class FakeTLSStream(httpcore.AsyncNetworkStream):
    """Replays a canned HTTP response; start_tls "succeeds" with a fixed chain."""

    def __init__(self, backend: FakeTLSBackend, buffer: list[bytes]) -> None:
        self._backend = backend
        self._buffer = list(buffer)
        self._tls = False

    async def read(self, max_bytes: int, timeout: float | None = None) -> bytes:
        return self._buffer.pop(0) if self._buffer else b""

    async def write(self, buffer: bytes, timeout: float | None = None) -> None:
        self._backend.written.append(buffer)

    async def aclose(self) -> None:
        self._backend.closed += 1

    async def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: str | None = None,
        timeout: float | None = None,
    ) -> httpcore.AsyncNetworkStream:
        self._backend.handshakes.append(server_hostname)
        self._tls = True
        return self

    def get_extra_info(self, info: str):
        if info == "ssl_object" and self._tls:
            return FakeSSLObject(self._backend.chain)
        return None


class FakeTLSBackend(httpcore.AsyncNetworkBackend):
    """Network backend that never touches the network.

    Records handshakes and every byte written so tests can assert that a
    rejected handshake sent no request.
    """

    def __init__(
        self,
        chain: CertificateChain,
        status: int = 200,
        connect_error: Exception | None = None,
    ) -> None:
        self.chain = chain
        self.status = status
        self.connect_error = connect_error
        self.connects = 0
        self.closed = 0
        self.handshakes: list[str | None] = []
        self.written: list[bytes] = []

    async def connect_tcp(
        self, host, port, timeout=None, local_address=None, socket_options=None,
    ) -> httpcore.AsyncNetworkStream:
        self.connects += 1
        if self.connect_error is not None:
            raise self.connect_error
        return FakeTLSStream(self, http_response_bytes(self.status))

    async def connect_unix_socket(self, path, timeout=None, socket_options=None):
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:
        return None


class TransportFactory:
    """Executor transport factory that keeps everything offline.

    Pinning strategies get a real PinningTransport over a FakeTLSBackend;
    NoPinning gets an httpx.MockTransport answering ``plain_status``.
    """

    def __init__(self, backend: FakeTLSBackend, plain_status: int = 200) -> None:
        self.backend = backend
        self.plain_status = plain_status
        self.calls: list[TrustStrategy] = []
        self.plain_requests: list[httpx.Request] = []

    def _plain(self, request: httpx.Request) -> httpx.Response:
        self.plain_requests.append(request)
        return httpx.Response(self.plain_status, text="ok")

    def __call__(self, strategy: TrustStrategy) -> httpx.AsyncBaseTransport:
        self.calls.append(strategy)
        if strategy.requires_tls:
            return PinningTransport(
                strategy.check, ssl.create_default_context(), backend=self.backend,
            )
        return httpx.MockTransport(self._plain)


class CountingHandle:
    """Trust handle that answers a fixed decision and counts calls."""

    def __init__(self, decision: Decision = Decision.ACCEPT) -> None:
        self.decision = decision
        self.calls: list[tuple[str, CertificateChain]] = []

    def check(self, hostname: str, chain: CertificateChain) -> Decision:
        self.calls.append((hostname, chain))
        return self.decision


class PhaseRecorder:
    """State observer that records every published snapshot."""

    def __init__(self) -> None:
        self.snapshots: list[StateSnapshot] = []

    def __call__(self, snap: StateSnapshot) -> None:
        self.snapshots.append(snap)

    @property
    def phases(self) -> list[RequestPhase]:
        return [s.phase for s in self.snapshots]
