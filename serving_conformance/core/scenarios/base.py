from __future__ import annotations

import logging
import threading
from typing import Optional

from serving_conformance.core.accessor.base import ResourceAccessor
from serving_conformance.core.config import ConformanceSettings
from serving_conformance.core.convergence.conditions import CONFIGURATION_IS_READY, is_configuration_ready
from serving_conformance.core.convergence.generation import track_generation
from serving_conformance.core.convergence.poller import ConvergencePoller
from serving_conformance.core.errors import (
    AccessorError,
    ConformanceError,
    ConvergenceTimeout,
    ScenarioCanceled,
    SetupFailure,
)
from serving_conformance.core.naming import ResourceNames
from serving_conformance.core.observability.metrics import inc_scenario
from serving_conformance.core.resources.models import Configuration
from serving_conformance.core.setup import create_configuration

from .models import Baseline, ScenarioEvent, ScenarioFailure, ScenarioReport, ScenarioState, _utc_now_iso
from .state_machine import ensure_transition, is_terminal

log = logging.getLogger("conformance.scenario")


class Scenario:
    """Shared plumbing: report bookkeeping, create-and-wait-ready, baseline capture.

    Subclasses implement `_steps()`; conformance errors raised from it move the
    scenario to FAILED, everything recorded via `_record()` keeps it going.
    """

    name: str = "scenario"
    test_name: str = "TestScenario"
    optional_api: bool = False

    def __init__(
        self,
        accessor: ResourceAccessor,
        names: ResourceNames,
        *,
        settings: ConformanceSettings,
        poller: Optional[ConvergencePoller] = None,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.accessor = accessor
        self.names = names
        self.settings = settings
        self.poller = poller or ConvergencePoller.from_settings(settings)
        self.deadline = deadline
        self.cancel = cancel
        self.report = ScenarioReport(scenario=self.name, resource=names.config, state=ScenarioState.CREATED)

    # ------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------
    def run(self) -> ScenarioReport:
        if self.optional_api and self.settings.disable_optional_api:
            self.report.skip_reason = (
                "Configuration create/patch/replace APIs are not required by the serving API specification"
            )
            self._transition(ScenarioState.SKIPPED, self.report.skip_reason)
            return self._finish()

        try:
            self._steps()
        except ConformanceError as e:
            self._abort(e)
        except AccessorError as e:
            self._abort(
                ConformanceError(
                    f"{type(e).__name__} on {e.resource or self.names.config}: {e}",
                    resource=e.resource or self.names.config,
                    details={"status_code": e.status_code},
                )
            )
        return self._finish()

    def _steps(self) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------
    def _setup(self) -> Configuration:
        name = self.names.config
        try:
            create_configuration(self.accessor, self.names)
        except AccessorError as e:
            raise SetupFailure(f"Failed to create configuration {name}: {e}", resource=name) from e

        # Wait for the configuration to actually be ready to not race the updates that follow.
        try:
            cfg = self.wait_for_configuration(is_configuration_ready, CONFIGURATION_IS_READY)
        except SetupFailure:
            raise
        except ConvergenceTimeout as e:
            raise SetupFailure(
                f"Configuration {name} did not become ready: {e}", resource=name, details=e.details
            ) from e
        except AccessorError as e:
            raise SetupFailure(f"Configuration {name} did not become ready: {e}", resource=name) from e

        self.report.baseline = Baseline(
            generation=track_generation(cfg).generation,
            latest_created_revision_name=cfg.status.latest_created_revision_name,
            latest_ready_revision_name=cfg.status.latest_ready_revision_name,
        )
        self.names.revision = self.report.baseline.revision
        self._transition(ScenarioState.READY, f"baseline revision {self.report.baseline.revision}")
        return cfg

    def _ensure_not_canceled(self, step: str) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise ScenarioCanceled(f"Canceled before {step}", resource=self.names.config)

    def wait_for_configuration(self, predicate, desc: str) -> Configuration:
        return self.poller.wait_for_state(
            self.accessor.get_configuration,
            self.names.config,
            predicate,
            desc,
            deadline=self.deadline,
            cancel=self.cancel,
        )

    # ------------------------------------------------------------
    # Report bookkeeping
    # ------------------------------------------------------------
    def _transition(self, dst: ScenarioState, message: str = "") -> None:
        ensure_transition(self.report.state, dst)
        self.report.state = dst
        self.report.events.append(ScenarioEvent(ts=_utc_now_iso(), state=dst, message=message))
        log.debug("%s[%s] -> %s %s", self.name, self.names.config, dst.value, message)

    def _record(self, failure: ScenarioFailure) -> None:
        self.report.failures.append(failure)
        log.error("%s[%s] %s: %s", self.name, self.names.config, failure.kind, failure.message)

    def _abort(self, err: ConformanceError) -> None:
        self._record(ScenarioFailure.from_error(err))
        self._transition(ScenarioState.FAILED, str(err))

    def crash(self, exc: BaseException) -> ScenarioReport:
        """Fold an unexpected exception into this report, keeping what was recorded so far."""
        self._record(
            ScenarioFailure(kind="internal_error", message=f"{type(exc).__name__}: {exc}", resource=self.names.config)
        )
        if not is_terminal(self.report.state):
            self._transition(ScenarioState.FAILED, str(exc))
        else:
            self.report.state = ScenarioState.FAILED
        return self._finish()

    def _finish(self) -> ScenarioReport:
        self.report.finished_ts = _utc_now_iso()
        inc_scenario(self.name, self.report.outcome)
        log.info(
            "%s[%s] finished: %s (%d failure(s))",
            self.name,
            self.names.config,
            self.report.outcome,
            len(self.report.failures),
        )
        return self.report
