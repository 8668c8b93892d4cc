"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from treasure_hunt.adapters.in_memory_session_store import InMemorySessionStore
from treasure_hunt.adapters.json_scenario_repository import JsonScenarioRepository
from treasure_hunt.adapters.supabase_session_repository import SupabaseSessionStore
from treasure_hunt.config import Settings
from treasure_hunt.services.queries import SessionQuery
from treasure_hunt.services.scenarios import ScenarioService
from treasure_hunt.services.sessions import GameSessionEngine, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    scenario_service: ScenarioService
    session_query: SessionQuery
    engine: GameSessionEngine


def build_session_store(settings: Settings) -> SessionStore:
    """Create the session store selected by settings."""
    if settings.session_backend == "memory":
        return InMemorySessionStore()
    if settings.session_backend != "supabase":
        raise ValueError(f"Unknown session backend {settings.session_backend!r}")
    supabase_client = create_client(
        settings.supabase_url, settings.supabase_service_key
    )
    return SupabaseSessionStore(supabase_client, table_name=settings.sessions_table)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = build_session_store(resolved_settings)
    scenario_service = ScenarioService(
        JsonScenarioRepository.from_path(resolved_settings.scenarios_path)
    )
    session_query = SessionQuery(store)
    engine = GameSessionEngine(
        store=store,
        scenarios=scenario_service,
        query=session_query,
        max_distance_meters=resolved_settings.max_distance_meters,
        max_update_attempts=resolved_settings.max_update_attempts,
        base_score=resolved_settings.base_score,
        hint_penalty=resolved_settings.hint_penalty,
    )
    return AppContainer(
        settings=resolved_settings,
        scenario_service=scenario_service,
        session_query=session_query,
        engine=engine,
    )
