"""Request lifecycle state machine and execution results."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from tlspin.errors import InvalidTransitionError

log = logging.getLogger(__name__)


class RequestPhase(str, Enum):
    """Lifecycle phase of a single request definition."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RequestPhase.SUCCEEDED, RequestPhase.FAILED)


class ErrorKind(str, Enum):
    """Why a request ended in FAILED."""

    MALFORMED_URL = "malformed_url"
    TRUST_REJECTED = "trust_rejected"
    TRANSPORT_ERROR = "transport_error"
    UNEXPECTED_STATUS = "unexpected_status"
    ALREADY_IN_FLIGHT = "already_in_flight"  # refused, state untouched


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    message: str
    status_code: int | None = None  # only for UNEXPECTED_STATUS


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable view of a RequestState handed to observers."""

    phase: RequestPhase
    last_error: ErrorInfo | None = None
    last_status: int | None = None
    last_duration_ms: int = 0


@dataclass
class RequestResult:
    """Outcome of one execute() call."""

    ok: bool
    status_code: int | None = None
    error: ErrorInfo | None = None
    duration_ms: int = 0


StateObserver = Callable[[StateSnapshot], None]

# phase -> phases it may move to
_TRANSITIONS: dict[RequestPhase, frozenset[RequestPhase]] = {
    RequestPhase.IDLE: frozenset({RequestPhase.LOADING}),
    RequestPhase.LOADING: frozenset({RequestPhase.SUCCEEDED, RequestPhase.FAILED}),
    RequestPhase.SUCCEEDED: frozenset({RequestPhase.LOADING}),
    RequestPhase.FAILED: frozenset({RequestPhase.LOADING}),
}

# phases from which a run refused before any I/O may go straight to FAILED
_REJECT_FROM = frozenset({RequestPhase.IDLE, RequestPhase.SUCCEEDED, RequestPhase.FAILED})


class RequestState:
    """Observable per-definition request state.

    Starts IDLE and is reused across invocations. Only the executor drives
    transitions (the underscore methods). Observers are notified for every
    transition, in order, while the state lock is held, so a transition made
    on a handshake or I/O thread is seen consistently from any other thread.

    The executor does not lock against concurrent execute() calls on the same
    state. Callers must not start a new run while ``in_flight`` is true.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._phase = RequestPhase.IDLE
        self._last_error: ErrorInfo | None = None
        self._last_status: int | None = None
        self._last_duration_ms = 0
        self._observers: list[StateObserver] = []

    @property
    def phase(self) -> RequestPhase:
        with self._lock:
            return self._phase

    @property
    def last_error(self) -> ErrorInfo | None:
        with self._lock:
            return self._last_error

    @property
    def last_status(self) -> int | None:
        with self._lock:
            return self._last_status

    @property
    def in_flight(self) -> bool:
        return self.phase is RequestPhase.LOADING

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                phase=self._phase,
                last_error=self._last_error,
                last_status=self._last_status,
                last_duration_ms=self._last_duration_ms,
            )

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register an observer. Returns a callable that unsubscribes it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # ── Transitions (executor only) ──────────────────────────

    def _begin(self) -> None:
        self._transition(RequestPhase.LOADING, error=None, status=None, duration_ms=0)

    def _succeed(self, status: int, duration_ms: int) -> None:
        self._transition(
            RequestPhase.SUCCEEDED, error=None, status=status, duration_ms=duration_ms,
        )

    def _fail(self, error: ErrorInfo, duration_ms: int, status: int | None = None) -> None:
        self._transition(
            RequestPhase.FAILED, error=error, status=status, duration_ms=duration_ms,
        )

    def _reject(self, error: ErrorInfo) -> None:
        """Fail an invocation refused before any network attempt (skips LOADING)."""
        self._transition(
            RequestPhase.FAILED, error=error, status=None, duration_ms=0, early=True,
        )

    def _transition(
        self,
        phase: RequestPhase,
        *,
        error: ErrorInfo | None,
        status: int | None,
        duration_ms: int,
        early: bool = False,
    ) -> None:
        with self._lock:
            if early:
                allowed = self._phase in _REJECT_FROM
            else:
                allowed = phase in _TRANSITIONS[self._phase]
            if not allowed:
                raise InvalidTransitionError(
                    f"cannot move from {self._phase.value} to {phase.value}"
                )
            self._phase = phase
            self._last_error = error
            self._last_status = status
            self._last_duration_ms = duration_ms
            snap = self.snapshot()
            for observer in list(self._observers):
                try:
                    observer(snap)
                except Exception:
                    log.exception("State observer %r failed", observer)
