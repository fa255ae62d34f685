from __future__ import annotations

from collections import Counter
from typing import Dict, Optional

from prometheus_client import Counter as PromCounter

# Poll / scenario counters (in-process, for snapshots and tests)
_POLLS = Counter()

# Named counters (custom)
_NAMED = Counter()

_PROM_POLL_ATTEMPTS = PromCounter(
    "conformance_poll_attempts_total",
    "Resource fetches made while waiting for a condition",
    ["condition"],
)

_PROM_POLL_OUTCOMES = PromCounter(
    "conformance_poll_outcomes_total",
    "Convergence waits by outcome",
    ["condition", "outcome"],
)

_PROM_SCENARIOS = PromCounter(
    "conformance_scenarios_total",
    "Conformance scenarios by outcome",
    ["scenario", "outcome"],
)


def reset_metrics() -> None:
    """
    Test helper: clears in-process counters to avoid cross-test leakage.
    Prometheus collectors are process-wide and are left alone.
    """
    _POLLS.clear()
    _NAMED.clear()


def inc_poll_attempt(condition: str) -> None:
    c = condition or "unknown"
    _POLLS["poll_attempts_total"] += 1
    _POLLS[f"attempts_{c}"] += 1
    _PROM_POLL_ATTEMPTS.labels(condition=c).inc()


def inc_poll_outcome(condition: str, outcome: str) -> None:
    """outcome: satisfied | fatal | timeout | canceled"""
    c = condition or "unknown"
    _POLLS[f"outcome_{outcome}"] += 1
    _POLLS[f"outcome_{c}|{outcome}"] += 1
    _PROM_POLL_OUTCOMES.labels(condition=c, outcome=outcome).inc()


def inc_scenario(scenario: str, outcome: str) -> None:
    _NAMED[f"scenario_{scenario}|{outcome}"] += 1
    _NAMED[f"scenarios_{outcome}"] += 1
    _PROM_SCENARIOS.labels(scenario=scenario, outcome=outcome).inc()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def snapshot_polls() -> Dict[str, int]:
    return dict(_POLLS)


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)


def poll_attempts(condition: Optional[str] = None) -> int:
    if condition is None:
        return _POLLS["poll_attempts_total"]
    return _POLLS[f"attempts_{condition}"]
