"""RequestExecutor protocol - runs request definitions and drives their state."""

from __future__ import annotations

from typing import Iterable, Protocol

from tlspin.interfaces.trust import TrustStrategy
from tlspin.models.pins import RequestDefinition
from tlspin.models.state import RequestResult, RequestState


class RequestExecutor(Protocol):
    """Executes requests and publishes their lifecycle on RequestStates."""

    async def execute(
        self,
        definition: RequestDefinition,
        state: RequestState,
        strategy: TrustStrategy | None = None,
    ) -> RequestResult:
        """Run the request once. Never raises; failures land in the result and state."""
        ...

    async def execute_all(
        self,
        runs: Iterable[tuple[RequestDefinition, RequestState, TrustStrategy | None]],
    ) -> list[RequestResult]:
        """Run several requests concurrently, results in input order."""
        ...
