"""Pinned request executor - runs one request and drives its RequestState."""

from __future__ import annotations

import asyncio
import logging
import ssl
import time
from typing import Callable, Iterable

import httpx

from tlspin.errors import MalformedURLError, TrustRejectedError
from tlspin.client.transport import PinningTransport, create_ssl_context
from tlspin.interfaces.trust import TrustStrategy
from tlspin.models.pins import RequestDefinition
from tlspin.models.state import ErrorInfo, ErrorKind, RequestResult, RequestState
from tlspin.pinning.strategies import strategy_for

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}

TransportFactory = Callable[[TrustStrategy], httpx.AsyncBaseTransport]


def parse_url(raw: str) -> httpx.URL:
    """Parse an http(s) URL with a host, or raise MalformedURLError."""
    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError) as exc:
        raise MalformedURLError(f"invalid URL {raw!r}: {exc}") from exc
    if url.scheme not in ("http", "https"):
        raise MalformedURLError(f"invalid URL {raw!r}: scheme must be http or https")
    if not url.host:
        raise MalformedURLError(f"invalid URL {raw!r}: missing host")
    return url


class PinnedRequestExecutor:
    """Runs a RequestDefinition once and publishes its lifecycle.

    Each call:
    1. Rejects a malformed URL up front (FAILED, no LOADING, no I/O)
    2. Publishes LOADING before any network I/O
    3. Builds a fresh client and transport, so nothing is pooled or cached
       and every call performs a full handshake
    4. Installs the strategy's trust hook into the handshake (pinned only)
    5. Classifies the outcome: 200 -> SUCCEEDED, anything else -> FAILED

    execute() never raises; errors end up in the RequestResult and the state.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        ssl_context: ssl.SSLContext | None = None,
        ca_bundle: str = "",
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._timeout = timeout
        self._ssl_context = ssl_context
        self._ca_bundle = ca_bundle
        self._transport_factory = transport_factory or self._build_transport

    @property
    def timeout(self) -> float:
        return self._timeout

    def _get_ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = create_ssl_context(self._ca_bundle)
        return self._ssl_context

    def _build_transport(self, strategy: TrustStrategy) -> httpx.AsyncBaseTransport:
        ctx = self._get_ssl_context()
        if not strategy.requires_tls:
            return httpx.AsyncHTTPTransport(verify=ctx, trust_env=False)
        return PinningTransport(strategy.check, ctx)

    async def execute(
        self,
        definition: RequestDefinition,
        state: RequestState,
        strategy: TrustStrategy | None = None,
    ) -> RequestResult:
        """Execute ``definition`` once, mutating ``state`` for observers.

        ``strategy`` defaults to NoPinning, or PinByHash when the definition
        carries a non-empty pin configuration.
        """
        strategy = strategy or strategy_for(definition.pin_config)

        if state.in_flight:
            # Caller broke the one-run-at-a-time contract; leave the live run alone
            log.warning("%s: already in flight, not starting another run", definition.name)
            return RequestResult(
                ok=False,
                error=ErrorInfo(
                    kind=ErrorKind.ALREADY_IN_FLIGHT, message="request already in flight",
                ),
            )

        try:
            url = parse_url(definition.url)
        except MalformedURLError as exc:
            log.error("%s: %s", definition.name, exc)
            error = ErrorInfo(kind=ErrorKind.MALFORMED_URL, message=str(exc))
            state._reject(error)
            return RequestResult(ok=False, error=error)

        log.info("%s: requesting %s (pinning: %s)", definition.name, url, strategy.label)
        start = time.monotonic()
        state._begin()

        result: RequestResult | None = None
        try:
            result = await self._send(url, strategy, start)
        except Exception as exc:
            log.exception("%s: unexpected error", definition.name)
            result = _failure(ErrorKind.TRANSPORT_ERROR, f"unexpected error: {exc!r}", start)
        finally:
            if result is None:
                # cancelled mid-flight; the exception keeps propagating
                result = _failure(ErrorKind.TRANSPORT_ERROR, "request interrupted", start)
            _publish(state, result)

        if result.ok:
            log.info("%s: HTTP %d in %dms", definition.name, result.status_code, result.duration_ms)
        else:
            log.error("%s: %s", definition.name, result.error.message)
        return result

    async def _send(
        self, url: httpx.URL, strategy: TrustStrategy, start: float,
    ) -> RequestResult:
        if strategy.requires_tls and url.scheme != "https":
            return _failure(
                ErrorKind.TRUST_REJECTED,
                f"pinning requires https, refusing {url.scheme}://{url.host}",
                start,
            )

        transport = self._transport_factory(strategy)
        try:
            async with httpx.AsyncClient(
                transport=transport,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=False,
                headers=NO_CACHE_HEADERS,
            ) as client:
                resp = await client.get(url)
        except TrustRejectedError as exc:
            return _failure(ErrorKind.TRUST_REJECTED, str(exc), start)
        except httpx.TimeoutException:
            return _failure(
                ErrorKind.TRANSPORT_ERROR, f"timed out after {self._timeout:g}s", start,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            return _failure(ErrorKind.MALFORMED_URL, str(exc), start)
        except httpx.TransportError as exc:
            return _failure(
                ErrorKind.TRANSPORT_ERROR, str(exc) or type(exc).__name__, start,
            )

        if resp.status_code != 200:
            return _failure(
                ErrorKind.UNEXPECTED_STATUS,
                f"unexpected HTTP status {resp.status_code}",
                start,
                status_code=resp.status_code,
            )
        return RequestResult(ok=True, status_code=200, duration_ms=_elapsed_ms(start))

    async def execute_all(
        self,
        runs: Iterable[tuple[RequestDefinition, RequestState, TrustStrategy | None]],
    ) -> list[RequestResult]:
        """Run several definitions concurrently. Results keep input order."""
        return list(await asyncio.gather(
            *(self.execute(definition, state, strategy) for definition, state, strategy in runs)
        ))


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _failure(
    kind: ErrorKind, message: str, start: float, status_code: int | None = None,
) -> RequestResult:
    return RequestResult(
        ok=False,
        status_code=status_code,
        error=ErrorInfo(kind=kind, message=message, status_code=status_code),
        duration_ms=_elapsed_ms(start),
    )


def _publish(state: RequestState, result: RequestResult) -> None:
    if result.ok:
        state._succeed(result.status_code or 200, result.duration_ms)
    else:
        state._fail(result.error, result.duration_ms, status=result.status_code)
