"""Scenario repository backed by a static JSON file."""

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from treasure_hunt.domain.scenarios import Location, Scenario
from treasure_hunt.services.scenarios import ScenarioRepository

BUNDLED_SCENARIOS_PATH = Path(__file__).parent / "data" / "scenarios.json"


class LocationPayload(BaseModel):
    """Location entry in a scenario file."""

    name: str
    address: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    description: str | None = None


class ScenarioPayload(BaseModel):
    """Scenario entry in a scenario file."""

    id: str
    title: str
    description: str | None = None
    locations: list[LocationPayload] = Field(min_length=1)


class ScenarioFile(BaseModel):
    """Top-level scenario file payload."""

    scenarios: list[ScenarioPayload]


@dataclass
class JsonScenarioRepository(ScenarioRepository):
    """Read-only scenarios loaded once from a JSON document."""

    scenarios: dict[str, Scenario]

    @classmethod
    def from_path(cls, path: Path | str | None = None) -> "JsonScenarioRepository":
        """Load scenarios from path, or from the bundled sample file."""
        source = Path(path) if path else BUNDLED_SCENARIOS_PATH
        payload = ScenarioFile.model_validate_json(source.read_text(encoding="utf-8"))
        return cls.from_payload(payload)

    @classmethod
    def from_payload(cls, payload: ScenarioFile) -> "JsonScenarioRepository":
        """Build the repository from a validated payload."""
        scenarios = {}
        for item in payload.scenarios:
            if item.id in scenarios:
                raise ValueError(f"Duplicate scenario id {item.id!r}")
            scenarios[item.id] = _to_scenario(item)
        return cls(scenarios=scenarios)

    def get_scenario(self, scenario_id: str) -> Scenario | None:
        """Return a scenario by id, if present."""
        return self.scenarios.get(scenario_id)

    def list_scenarios(self) -> list[Scenario]:
        """Return scenarios in file order."""
        return list(self.scenarios.values())


def _to_scenario(item: ScenarioPayload) -> Scenario:
    return Scenario(
        id=item.id,
        title=item.title,
        description=item.description,
        locations=tuple(
            Location(
                name=location.name,
                address=location.address,
                latitude=location.latitude,
                longitude=location.longitude,
                description=location.description,
            )
            for location in item.locations
        ),
    )
