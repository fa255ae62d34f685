from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from serving_conformance.core.errors import ConformanceError


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ScenarioState(str, Enum):
    CREATED = "CREATED"
    READY = "READY"
    LABELS_MUTATED = "LABELS_MUTATED"
    LABELS_CONVERGED = "LABELS_CONVERGED"
    ANNOTATIONS_MUTATED = "ANNOTATIONS_MUTATED"
    ANNOTATIONS_CONVERGED = "ANNOTATIONS_CONVERGED"
    LISTED = "LISTED"
    DONE = "DONE"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass
class ScenarioEvent:
    ts: str
    state: ScenarioState
    message: str = ""


@dataclass
class ScenarioFailure:
    kind: str
    message: str
    resource: Optional[str] = None
    expected: Any = None
    actual: Any = None
    details: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_error(err: ConformanceError) -> "ScenarioFailure":
        return ScenarioFailure(
            kind=err.kind,
            message=str(err),
            resource=err.resource,
            details=dict(err.details),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "resource": self.resource,
            "expected": self.expected,
            "actual": self.actual,
            "details": self.details,
        }


@dataclass
class Baseline:
    generation: int
    latest_created_revision_name: Optional[str]
    latest_ready_revision_name: Optional[str]

    @property
    def revision(self) -> Optional[str]:
        return self.latest_created_revision_name or self.latest_ready_revision_name


@dataclass
class ScenarioReport:
    scenario: str
    resource: str
    state: ScenarioState
    started_ts: str = field(default_factory=_utc_now_iso)
    finished_ts: Optional[str] = None
    baseline: Optional[Baseline] = None
    skip_reason: Optional[str] = None
    failures: List[ScenarioFailure] = field(default_factory=list)
    events: List[ScenarioEvent] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.state == ScenarioState.DONE and not self.failures

    @property
    def outcome(self) -> str:
        if self.state == ScenarioState.SKIPPED:
            return "skipped"
        return "passed" if self.passed else "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario,
            "resource": self.resource,
            "state": self.state.value,
            "outcome": self.outcome,
            "started_ts": self.started_ts,
            "finished_ts": self.finished_ts,
            "baseline": (
                {
                    "generation": self.baseline.generation,
                    "latest_created_revision_name": self.baseline.latest_created_revision_name,
                    "latest_ready_revision_name": self.baseline.latest_ready_revision_name,
                }
                if self.baseline
                else None
            ),
            "skip_reason": self.skip_reason,
            "failures": [f.to_dict() for f in self.failures],
            "events": [
                {
                    "ts": e.ts,
                    "state": e.state.value,
                    "message": e.message,
                }
                for e in self.events
            ],
        }
