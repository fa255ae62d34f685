from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Tuple, TypeVar

from serving_conformance.core.config import ConformanceSettings
from serving_conformance.core.errors import ConvergenceTimeout, StateCheckFailed, TransientAccessError
from serving_conformance.core.observability.metrics import inc_poll_attempt, inc_poll_outcome

log = logging.getLogger("conformance.poller")

T = TypeVar("T")

# (satisfied, fatal error). A non-None error aborts the wait immediately.
PredicateResult = Tuple[bool, Optional[BaseException]]
Predicate = Callable[[T], PredicateResult]
Fetch = Callable[[str], T]


class ConvergencePoller:
    """Blocking poll loop: fetch, evaluate, sleep, repeat.

    - satisfied on the first fetch returns without sleeping
    - a fatal predicate error (returned or raised) propagates immediately
    - TransientAccessError from fetch is retried inside the budget; any other
      fetch error propagates
    - the budget is min(timeout, deadline); cancel aborts the wait early

    deadline is absolute, on the same clock as `clock` (time.monotonic by default).
    """

    def __init__(
        self,
        *,
        interval: float = 1.0,
        timeout: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.interval = interval
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: ConformanceSettings) -> "ConvergencePoller":
        return cls(interval=settings.poll_interval_seconds, timeout=settings.poll_timeout_seconds)

    def wait_for_state(
        self,
        fetch: Fetch,
        name: str,
        predicate: Predicate,
        desc: str,
        *,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ):
        start = self._clock()
        budget_end = start + self.timeout
        if deadline is not None:
            budget_end = min(budget_end, deadline)

        attempts = 0
        last = None
        last_error: Optional[BaseException] = None

        while True:
            if cancel is not None and cancel.is_set():
                raise self._timeout(desc, name, last, attempts, start, last_error, reason="canceled")

            attempts += 1
            inc_poll_attempt(desc)
            try:
                snapshot = fetch(name)
            except TransientAccessError as e:
                last_error = e
                log.debug("%s: transient error fetching %s (attempt %d): %s", desc, name, attempts, e)
            else:
                last = snapshot
                last_error = None
                try:
                    done, fatal = predicate(snapshot)
                except Exception:
                    inc_poll_outcome(desc, "fatal")
                    raise
                if fatal is not None:
                    inc_poll_outcome(desc, "fatal")
                    log.warning("%s: fatal error on %s: %s", desc, name, fatal)
                    raise fatal
                if done:
                    inc_poll_outcome(desc, "satisfied")
                    log.info(
                        "%s satisfied for %s after %d attempt(s) in %.2fs",
                        desc,
                        name,
                        attempts,
                        self._clock() - start,
                    )
                    return snapshot
                log.debug("%s: not yet satisfied for %s (attempt %d)", desc, name, attempts)

            remaining = budget_end - self._clock()
            if remaining <= 0:
                raise self._timeout(desc, name, last, attempts, start, last_error)

            delay = min(self.interval, remaining)
            if cancel is not None:
                if cancel.wait(delay):
                    raise self._timeout(desc, name, last, attempts, start, last_error, reason="canceled")
            else:
                self._sleep(delay)

    def _timeout(self, desc, name, last, attempts, start, last_error, *, reason: str = "timeout") -> ConvergenceTimeout:
        outcome = "canceled" if reason == "canceled" else "timeout"
        inc_poll_outcome(desc, outcome)
        err = ConvergenceTimeout(
            desc,
            name,
            last_snapshot=last,
            attempts=attempts,
            elapsed_seconds=self._clock() - start,
            last_error=last_error,
            reason=reason,
        )
        log.warning("%s", err)
        return err


def check_state(fetch: Fetch, name: str, predicate: Predicate, desc: str):
    """Fetch once and evaluate once. Raises StateCheckFailed if unsatisfied."""
    snapshot = fetch(name)
    done, fatal = predicate(snapshot)
    if fatal is not None:
        raise fatal
    if not done:
        raise StateCheckFailed(
            f"{desc} not satisfied for {name}",
            resource=name,
            snapshot=snapshot,
            details={"condition": desc},
        )
    return snapshot
