from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Type

from serving_conformance.core.accessor.base import ResourceAccessor
from serving_conformance.core.config import ConformanceSettings
from serving_conformance.core.naming import ResourceNames, object_name_for_test
from serving_conformance.core.observability.metrics import inc_scenario
from serving_conformance.core.setup import ensure_teardown

from .base import Scenario
from .models import ScenarioFailure, ScenarioReport, ScenarioState, _utc_now_iso

log = logging.getLogger("conformance.runner")

AccessorFactory = Callable[[], ResourceAccessor]


def run_scenario(
    scenario_cls: Type[Scenario],
    accessor: ResourceAccessor,
    settings: ConformanceSettings,
    *,
    deadline: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
) -> ScenarioReport:
    """One scenario instance with its own unique names; always torn down."""
    names = ResourceNames(config=object_name_for_test(scenario_cls.test_name), image=settings.test_image)
    scenario: Optional[Scenario] = None
    try:
        with ensure_teardown(accessor, names):
            scenario = scenario_cls(accessor, names, settings=settings, deadline=deadline, cancel=cancel)
            return scenario.run()
    except Exception as e:
        log.exception("%s[%s] crashed", scenario_cls.name, names.config)
        if scenario is not None:
            return scenario.crash(e)
        report = ScenarioReport(scenario=scenario_cls.name, resource=names.config, state=ScenarioState.FAILED)
        report.failures.append(
            ScenarioFailure(kind="internal_error", message=f"{type(e).__name__}: {e}", resource=names.config)
        )
        report.finished_ts = _utc_now_iso()
        inc_scenario(scenario_cls.name, report.outcome)
        return report


def run_scenarios(
    accessor_factory: AccessorFactory,
    scenarios: Sequence[Type[Scenario]],
    settings: ConformanceSettings,
    *,
    total_timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
) -> List[ScenarioReport]:
    """Run independent scenarios concurrently; reports come back in input order."""
    deadline = time.monotonic() + total_timeout if total_timeout is not None else None
    with ThreadPoolExecutor(max_workers=settings.parallelism, thread_name_prefix="scenario") as pool:
        futures = [
            pool.submit(run_scenario, cls, accessor_factory(), settings, deadline=deadline, cancel=cancel)
            for cls in scenarios
        ]
        return [f.result() for f in futures]


def summarize(reports: Sequence[ScenarioReport]) -> Dict[str, int]:
    out = {"passed": 0, "failed": 0, "skipped": 0}
    for r in reports:
        out[r.outcome] += 1
    return out
