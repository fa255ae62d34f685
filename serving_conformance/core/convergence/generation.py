from __future__ import annotations

from dataclasses import dataclass

from serving_conformance.core.resources.models import Configuration


@dataclass(frozen=True)
class GenerationStatus:
    generation: int
    observed_generation: int

    @property
    def settled(self) -> bool:
        """The controller has processed the latest desired generation."""
        return self.generation == self.observed_generation


def track_generation(cfg: Configuration) -> GenerationStatus:
    return GenerationStatus(
        generation=cfg.metadata.generation,
        observed_generation=cfg.status.observed_generation,
    )


def is_settled(cfg: Configuration) -> bool:
    return track_generation(cfg).settled
