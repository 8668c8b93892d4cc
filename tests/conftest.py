"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from treasure_hunt.adapters.in_memory_session_store import InMemorySessionStore
from treasure_hunt.adapters.json_scenario_repository import JsonScenarioRepository
from treasure_hunt.config import Settings
from treasure_hunt.containers import AppContainer
from treasure_hunt.domain.scenarios import Location, Scenario
from treasure_hunt.services.queries import SessionQuery
from treasure_hunt.services.scenarios import ScenarioService
from treasure_hunt.services.sessions import GameSessionEngine

TIMES_SQUARE = Location(
    name="Times Square",
    address="1 Matheson Street, Causeway Bay",
    latitude=22.2783,
    longitude=114.1827,
)
HYSAN_PLACE = Location(
    name="Hysan Place",
    address="500 Hennessy Road, Causeway Bay",
    latitude=22.2778,
    longitude=114.1833,
)
LEE_GARDENS = Location(
    name="Lee Gardens",
    address="33 Hysan Avenue, Causeway Bay",
    latitude=22.2776,
    longitude=114.1850,
)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 4, 5, 10, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now = self.now + timedelta(minutes=minutes)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        session_backend="memory",
    )


@pytest.fixture
def two_stop_scenario() -> Scenario:
    return Scenario(
        id="causeway-bay",
        title="Causeway Bay",
        locations=(TIMES_SQUARE, HYSAN_PLACE),
    )


@pytest.fixture
def three_stop_scenario() -> Scenario:
    return Scenario(
        id="causeway-bay-long",
        title="Causeway Bay (long)",
        locations=(TIMES_SQUARE, HYSAN_PLACE, LEE_GARDENS),
    )


@pytest.fixture
def scenario_service(
    two_stop_scenario: Scenario, three_stop_scenario: Scenario
) -> ScenarioService:
    return ScenarioService(
        JsonScenarioRepository(
            scenarios={
                two_stop_scenario.id: two_stop_scenario,
                three_stop_scenario.id: three_stop_scenario,
            }
        )
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def engine(
    store: InMemorySessionStore,
    scenario_service: ScenarioService,
    clock: FakeClock,
) -> GameSessionEngine:
    return GameSessionEngine(
        store=store,
        scenarios=scenario_service,
        query=SessionQuery(store),
        clock=clock,
    )


@pytest.fixture
def container(
    settings: Settings,
    scenario_service: ScenarioService,
    engine: GameSessionEngine,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        scenario_service=scenario_service,
        session_query=engine.query,
        engine=engine,
    )
