from __future__ import annotations

import logging

from .base import Scenario
from .models import ScenarioFailure, ScenarioState

log = logging.getLogger("conformance.scenario")


class GetAndListScenario(Scenario):
    """Get and List are required APIs: a created Configuration must show up in both.

    Does not validate the data plane.
    """

    name = "get-and-list"
    test_name = "TestConfigurationGetAndList"

    def _steps(self) -> None:
        self._setup()
        name = self.names.config

        cfg = self.accessor.get_configuration(name)
        items = self.accessor.list_configurations()

        if not items:
            self._record(
                ScenarioFailure(
                    kind="list_failure",
                    message="Listing should return at least one Configuration",
                    resource=name,
                    expected=">= 1",
                    actual=0,
                )
            )
        found = False
        for item in items:
            log.info("Configuration Returned: %s", item.name)
            if item.name == cfg.name:
                found = True
        if items and not found:
            self._record(
                ScenarioFailure(
                    kind="list_failure",
                    message=(
                        f"The Configuration {name} that was previously created was not found by listing all Configurations."
                    ),
                    resource=name,
                    expected=name,
                    actual=sorted(i.name for i in items),
                )
            )

        self._transition(ScenarioState.LISTED, f"{len(items)} configuration(s) listed")
        self._transition(ScenarioState.DONE)
