"""Scenario lookup backed by a static scenario source."""

from dataclasses import dataclass
from typing import Protocol

from treasure_hunt.domain.errors import ScenarioNotFoundError
from treasure_hunt.domain.scenarios import Scenario


class ScenarioRepository(Protocol):
    """Read-only source of scenario definitions."""

    def get_scenario(self, scenario_id: str) -> Scenario | None:
        """Return a scenario by id, if present."""

    def list_scenarios(self) -> list[Scenario]:
        """Return every known scenario."""


@dataclass
class ScenarioService:
    """Application service for resolving scenarios."""

    repository: ScenarioRepository

    def get_scenario(self, scenario_id: str) -> Scenario:
        """Return the scenario or raise ScenarioNotFoundError."""
        scenario = self.repository.get_scenario(scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(scenario_id)
        return scenario

    def list_scenarios(self) -> list[Scenario]:
        """Return every known scenario."""
        return self.repository.list_scenarios()
