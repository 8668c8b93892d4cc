"""FastAPI application factory."""

import logging
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from treasure_hunt.api.models import CompleteTaskRequest, LocationReading
from treasure_hunt.app_logging import configure_logging
from treasure_hunt.containers import AppContainer
from treasure_hunt.domain.errors import (
    ConcurrencyExhaustedError,
    ConflictError,
    GameSessionError,
    LocationUnavailableError,
    NotSessionOwnerError,
    PreconditionError,
    ScenarioNotFoundError,
    SessionIntegrityError,
    SessionNotFoundError,
    UnknownTaskError,
)
from treasure_hunt.domain.geo import GeoPoint
from treasure_hunt.domain.scenarios import Scenario
from treasure_hunt.domain.sessions import GameSession, Task

_ERROR_STATUS: list[tuple[type[GameSessionError], int]] = [
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (ScenarioNotFoundError, status.HTTP_404_NOT_FOUND),
    (UnknownTaskError, status.HTTP_404_NOT_FOUND),
    (NotSessionOwnerError, status.HTTP_403_FORBIDDEN),
    (PreconditionError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (LocationUnavailableError, 422),
    (ConcurrencyExhaustedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (SessionIntegrityError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


async def require_user(x_user_id: str | None = Header(default=None)) -> str:
    """Return the authenticated user id supplied by the identity provider."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return x_user_id


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    @app.exception_handler(GameSessionError)
    async def game_error_handler(
        request: Request, exc: GameSessionError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/scenarios")
    async def list_scenarios(request: Request) -> dict[str, object]:
        """Return the scenario catalogue."""
        state_container: AppContainer = request.app.state.container
        scenarios = state_container.scenario_service.list_scenarios()
        return {"scenarios": [_format_scenario(scenario) for scenario in scenarios]}

    @app.get("/scenarios/{scenario_id}/session")
    async def active_session(
        scenario_id: str, request: Request, user_id: str = Depends(require_user)
    ) -> dict[str, object]:
        """Return the caller's in-progress session for a scenario."""
        state_container: AppContainer = request.app.state.container
        state_container.scenario_service.get_scenario(scenario_id)
        query = state_container.session_query
        session = query.find_in_progress(user_id, scenario_id)
        completed_count = query.count_completed(user_id, scenario_id)
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"completed_count": completed_count},
            )
        tasks = state_container.engine.list_tasks(session)
        return {
            "session": _format_session(session, tasks),
            "completed_count": completed_count,
        }

    @app.post("/scenarios/{scenario_id}/sessions", status_code=201)
    async def create_session(
        scenario_id: str, request: Request, user_id: str = Depends(require_user)
    ) -> dict[str, object]:
        """Start a new run of a scenario."""
        state_container: AppContainer = request.app.state.container
        engine = state_container.engine
        session = engine.create_session(user_id, scenario_id)
        return {"session": _format_session(session, engine.list_tasks(session))}

    @app.get("/sessions")
    async def session_history(
        request: Request,
        scenario_id: str | None = None,
        user_id: str = Depends(require_user),
    ) -> dict[str, object]:
        """Return the caller's sessions, newest first."""
        state_container: AppContainer = request.app.state.container
        sessions = state_container.session_query.list_history(
            user_id, scenario_id=scenario_id
        )
        return {"sessions": [_format_session(session) for session in sessions]}

    @app.get("/sessions/{session_id}")
    async def get_session(
        session_id: UUID, request: Request, user_id: str = Depends(require_user)
    ) -> dict[str, object]:
        """Return a session with its tasks."""
        state_container: AppContainer = request.app.state.container
        engine = state_container.engine
        session = _owned_session(engine.get_session(session_id), user_id)
        return {"session": _format_session(session, engine.list_tasks(session))}

    @app.post("/sessions/{session_id}/tasks/{task_id}/click")
    async def click_task(
        session_id: UUID,
        task_id: str,
        reading: LocationReading,
        request: Request,
        user_id: str = Depends(require_user),
    ) -> dict[str, object]:
        """Check whether a task can start the photo flow from here."""
        state_container: AppContainer = request.app.state.container
        engine = state_container.engine
        session = _owned_session(engine.get_session(session_id), user_id)
        task = _find_task(engine.list_tasks(session), task_id)
        location = (
            GeoPoint(lat=reading.lat, lng=reading.lng)
            if reading.lat is not None and reading.lng is not None
            else None
        )
        outcome = engine.evaluate_task_click(session, task, location)
        return {
            "task_id": task.id,
            "result": outcome.result.value,
            "eligible": outcome.eligible,
            "distance_meters": outcome.distance_meters,
        }

    @app.post("/sessions/{session_id}/tasks/{task_id}/complete")
    async def complete_task(
        session_id: UUID,
        task_id: str,
        body: CompleteTaskRequest,
        request: Request,
        user_id: str = Depends(require_user),
    ) -> dict[str, object]:
        """Submit photo proof for a task."""
        state_container: AppContainer = request.app.state.container
        engine = state_container.engine
        session = engine.complete_task(session_id, task_id, body.photo, user_id=user_id)
        return {"session": _format_session(session, engine.list_tasks(session))}

    @app.post("/sessions/{session_id}/hints")
    async def record_hint(
        session_id: UUID, request: Request, user_id: str = Depends(require_user)
    ) -> dict[str, object]:
        """Count a hint against the session score."""
        state_container: AppContainer = request.app.state.container
        session = state_container.engine.record_hint(session_id, user_id=user_id)
        return {"session": _format_session(session)}

    return app


def _status_for(exc: GameSessionError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _owned_session(session: GameSession, user_id: str) -> GameSession:
    if session.user_id != user_id:
        raise NotSessionOwnerError(session.id, user_id)
    return session


def _find_task(tasks: list[Task], task_id: str) -> Task:
    for task in tasks:
        if task.id == task_id:
            return task
    raise UnknownTaskError(task_id)


def _format_scenario(scenario: Scenario) -> dict[str, object]:
    return {
        "id": scenario.id,
        "title": scenario.title,
        "description": scenario.description,
        "task_count": scenario.task_count,
    }


def _format_session(
    session: GameSession, tasks: list[Task] | None = None
) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": str(session.id),
        "user_id": session.user_id,
        "scenario_id": session.scenario_id,
        "status": session.status.value,
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat() if session.end_time else None,
        "last_updated": session.last_updated.isoformat(),
        "current_task_index": session.current_task_index,
        "score": session.score,
        "play_count": session.play_count,
        "hints_used": session.hints_used,
        "duration_minutes": session.duration_minutes(),
    }
    if tasks is not None:
        payload["tasks"] = [_format_task(task) for task in tasks]
    return payload


def _format_task(task: Task) -> dict[str, object]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "photo": task.photo,
        "completed_at": task.completed_at.isoformat() if task.completed_at else None,
        "location": {
            "name": task.location.name,
            "address": task.location.address,
            "lat": task.location.latitude,
            "lng": task.location.longitude,
        },
    }
