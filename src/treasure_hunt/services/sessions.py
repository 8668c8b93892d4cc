"""Game session state machine for location-gated scavenger hunts."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol
from uuid import UUID, uuid4

from treasure_hunt.domain.errors import (
    ConcurrencyExhaustedError,
    ConflictError,
    LocationUnavailableError,
    NotSessionOwnerError,
    OutOfOrderError,
    SessionAlreadyCompletedError,
    SessionAlreadyExistsError,
    SessionNotFoundError,
    UnknownTaskError,
)
from treasure_hunt.domain.geo import (
    DEFAULT_MAX_DISTANCE_METERS,
    GeoPoint,
    distance_between,
)
from treasure_hunt.domain.sessions import (
    GameSession,
    SessionStatus,
    Task,
    TaskState,
    TaskStatus,
)
from treasure_hunt.services.tasks import (
    derive_initial_tasks,
    materialize_tasks,
    normalize_tasks,
    task_id_for,
    task_index,
)

if TYPE_CHECKING:
    from treasure_hunt.domain.scenarios import Scenario
    from treasure_hunt.services.queries import SessionQuery
    from treasure_hunt.services.scenarios import ScenarioService

logger = logging.getLogger(__name__)

BASE_SCORE = 1000
HINT_PENALTY = 50
MAX_UPDATE_ATTEMPTS = 3

SessionMutator = Callable[[GameSession], GameSession]


class SessionStore(Protocol):
    """Durable storage for sessions with optimistic read-modify-write."""

    def get(self, session_id: UUID) -> GameSession | None:
        """Return a session by id, if present."""

    def find_active(self, user_id: str, scenario_id: str) -> GameSession | None:
        """Return the single in-progress session for a user and scenario.

        Raises SessionIntegrityError when more than one is stored.
        """

    def create(self, session: GameSession) -> GameSession:
        """Persist a new session.

        Raises SessionAlreadyExistsError when an in-progress session for the
        same user and scenario already exists.
        """

    def atomic_update(self, session_id: UUID, mutator: SessionMutator) -> GameSession:
        """Apply mutator to the latest snapshot and commit if unchanged.

        Raises ConflictError when the record changed after it was read and
        SessionNotFoundError when it no longer exists. Returning the snapshot
        itself from the mutator skips the write.
        """

    def list_sessions(
        self,
        user_id: str,
        scenario_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[GameSession]:
        """Return a user's sessions, newest first."""

    def count_sessions(
        self, user_id: str, scenario_id: str, status: SessionStatus
    ) -> int:
        """Return how many sessions match the user, scenario and status."""


class ClickResult(StrEnum):
    """Outcome of tapping a task before starting photo capture."""

    LOCKED = "locked"
    ELIGIBLE = "eligible"
    TOO_FAR = "too_far"
    ALREADY_COMPLETED = "already_completed"


@dataclass(frozen=True)
class ClickOutcome:
    """Discriminated result of evaluate_task_click."""

    result: ClickResult
    distance_meters: float | None = None

    @property
    def eligible(self) -> bool:
        return self.result == ClickResult.ELIGIBLE


def compute_score(
    session: GameSession,
    base_score: int = BASE_SCORE,
    hint_penalty: int = HINT_PENALTY,
) -> int:
    """Return the final score for a finished session.

    One bonus point per whole minute played, minus a fixed penalty per hint,
    never below zero.
    """
    if session.end_time is None:
        raise ValueError(f"Session {session.id} has no end time")
    minutes = math.floor((session.end_time - session.start_time).total_seconds() / 60)
    penalty = hint_penalty * session.hints_used
    return max(0, base_score + minutes - penalty)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class GameSessionEngine:
    """Creates sessions, gates task clicks and applies task completion."""

    store: SessionStore
    scenarios: ScenarioService
    query: SessionQuery
    max_distance_meters: float = DEFAULT_MAX_DISTANCE_METERS
    max_update_attempts: int = MAX_UPDATE_ATTEMPTS
    base_score: int = BASE_SCORE
    hint_penalty: int = HINT_PENALTY
    clock: Callable[[], datetime] = field(default=_utcnow)

    def create_session(self, user_id: str, scenario_id: str) -> GameSession:
        """Start a new run of a scenario for a user."""
        scenario = self.scenarios.get_scenario(scenario_id)
        if self.query.find_in_progress(user_id, scenario_id) is not None:
            raise SessionAlreadyExistsError(user_id, scenario_id)

        play_count = self.query.count_completed(user_id, scenario_id) + 1
        now = self.clock()
        session = GameSession(
            id=uuid4(),
            user_id=user_id,
            scenario_id=scenario_id,
            status=SessionStatus.IN_PROGRESS,
            start_time=now,
            last_updated=now,
            current_task_index=0,
            tasks=derive_initial_tasks(scenario),
            play_count=play_count,
        )
        created = self.store.create(session)
        logger.info(
            "Created session %s for user %s on scenario %s (play %d)",
            created.id,
            user_id,
            scenario_id,
            play_count,
        )
        return created

    def get_session(self, session_id: UUID) -> GameSession:
        """Return a session or raise SessionNotFoundError."""
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_tasks(self, session: GameSession) -> list[Task]:
        """Return the session's tasks joined with scenario locations."""
        scenario = self.scenarios.get_scenario(session.scenario_id)
        return materialize_tasks(scenario, session.tasks)

    def evaluate_task_click(
        self,
        session: GameSession,
        task: Task,
        current_location: GeoPoint | None,
    ) -> ClickOutcome:
        """Decide whether a task may start the photo flow from here."""
        scenario = self.scenarios.get_scenario(session.scenario_id)
        state = normalize_tasks(scenario, session.tasks).get(task.id)
        if state is None:
            raise UnknownTaskError(task.id)
        status = state.status
        if status == TaskStatus.LOCKED:
            return ClickOutcome(ClickResult.LOCKED)
        if status == TaskStatus.COMPLETED:
            return ClickOutcome(ClickResult.ALREADY_COMPLETED)

        if current_location is None or not current_location.is_valid():
            raise LocationUnavailableError()
        distance = distance_between(current_location, task.location.point)
        if distance > self.max_distance_meters:
            return ClickOutcome(ClickResult.TOO_FAR, distance_meters=distance)
        return ClickOutcome(ClickResult.ELIGIBLE, distance_meters=distance)

    def complete_task(
        self,
        session_id: UUID,
        task_id: str,
        photo: str | None,
        user_id: str | None = None,
    ) -> GameSession:
        """Mark an unlocked task completed and advance the frontier.

        Repeating the call for a task that is already completed returns the
        stored session unchanged.
        """
        index = task_index(task_id)
        current = self.get_session(session_id)
        scenario = self.scenarios.get_scenario(current.scenario_id)
        if self._check_can_complete(
            _with_scenario_tasks(current, scenario), task_id, user_id
        ):
            return current

        def mutate(snapshot: GameSession) -> GameSession:
            normalized = _with_scenario_tasks(snapshot, scenario)
            if self._check_can_complete(normalized, task_id, user_id):
                return snapshot
            return self._apply_completion(normalized, task_id, index, photo)

        updated = self._update_with_retry(session_id, mutate)
        if updated.is_completed:
            logger.info(
                "Session %s completed with score %d", session_id, updated.score
            )
        else:
            logger.info("Session %s completed %s", session_id, task_id)
        return updated

    def record_hint(self, session_id: UUID, user_id: str | None = None) -> GameSession:
        """Count one hint against an in-progress session."""

        def mutate(snapshot: GameSession) -> GameSession:
            _check_owner(snapshot, user_id)
            if snapshot.is_completed:
                raise SessionAlreadyCompletedError(snapshot.id)
            return replace(
                snapshot,
                hints_used=snapshot.hints_used + 1,
                last_updated=self.clock(),
            )

        return self._update_with_retry(session_id, mutate)

    def compute_score(self, session: GameSession) -> int:
        """Return the final score using the configured scoring constants."""
        return compute_score(
            session, base_score=self.base_score, hint_penalty=self.hint_penalty
        )

    def _check_can_complete(
        self, session: GameSession, task_id: str, user_id: str | None
    ) -> bool:
        """Raise on invalid completion; return True if it is already done."""
        _check_owner(session, user_id)
        if session.is_completed:
            raise SessionAlreadyCompletedError(session.id)
        state = session.tasks.get(task_id)
        if state is None:
            raise UnknownTaskError(task_id)
        if state.status == TaskStatus.COMPLETED:
            return True
        if state.status == TaskStatus.LOCKED:
            raise OutOfOrderError(task_id)
        return False

    def _apply_completion(
        self, session: GameSession, task_id: str, index: int, photo: str | None
    ) -> GameSession:
        now = self.clock()
        tasks = dict(session.tasks)
        tasks[task_id] = TaskState(
            status=TaskStatus.COMPLETED, completed_at=now, photo=photo
        )
        next_id = task_id_for(index + 1)
        next_state = tasks.get(next_id)
        if next_state is not None and next_state.status == TaskStatus.LOCKED:
            tasks[next_id] = replace(next_state, status=TaskStatus.UNLOCKED)

        updated = replace(
            session,
            tasks=tasks,
            current_task_index=max(session.current_task_index, index),
            last_updated=now,
        )
        if not updated.all_tasks_completed():
            return updated
        finished = replace(updated, status=SessionStatus.COMPLETED, end_time=now)
        return replace(finished, score=self.compute_score(finished))

    def _update_with_retry(
        self, session_id: UUID, mutator: SessionMutator
    ) -> GameSession:
        for attempt in range(1, self.max_update_attempts + 1):
            try:
                return self.store.atomic_update(session_id, mutator)
            except ConflictError:
                logger.warning(
                    "Conflict updating session %s (attempt %d of %d)",
                    session_id,
                    attempt,
                    self.max_update_attempts,
                )
        logger.warning(
            "Retries exhausted for session %s after %d attempts",
            session_id,
            self.max_update_attempts,
        )
        raise ConcurrencyExhaustedError(session_id, self.max_update_attempts)


def _check_owner(session: GameSession, user_id: str | None) -> None:
    if user_id is not None and session.user_id != user_id:
        raise NotSessionOwnerError(session.id, user_id)


def _with_scenario_tasks(session: GameSession, scenario: Scenario) -> GameSession:
    tasks = normalize_tasks(scenario, session.tasks)
    if tasks == session.tasks:
        return session
    return replace(session, tasks=tasks)
