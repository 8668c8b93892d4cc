"""Supabase-backed game session store.

Rows carry a ``version`` column; updates are conditional on the version that
was read, which gives optimistic concurrency without database locks. A partial
unique index on ``(user_id, scenario_id) where status = 'in_progress'`` makes
session creation atomic.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from postgrest.exceptions import APIError
from postgrest.types import CountMethod
from supabase import Client

from treasure_hunt.domain.errors import (
    ConflictError,
    SessionAlreadyExistsError,
    SessionIntegrityError,
    SessionNotFoundError,
)
from treasure_hunt.domain.sessions import (
    GameSession,
    SessionStatus,
    TaskState,
    TaskStatus,
)
from treasure_hunt.services.sessions import SessionMutator, SessionStore

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"

_LEGACY_STATUSES = {
    "completed": TaskStatus.COMPLETED,
    "in_progress": TaskStatus.UNLOCKED,
    "unlocked": TaskStatus.UNLOCKED,
}


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation for game sessions."""

    client: Client
    table_name: str = "game_sessions"

    def get(self, session_id: UUID) -> GameSession | None:
        """Return a session by id, if present."""
        row = self._fetch_row(session_id)
        if row is None:
            return None
        session, _version = _parse_row(row)
        return session

    def find_active(self, user_id: str, scenario_id: str) -> GameSession | None:
        """Return the in-progress session for a user and scenario."""
        response = (
            self.client.table(self.table_name)
            .select("*")
            .eq("user_id", user_id)
            .eq("scenario_id", scenario_id)
            .eq("status", SessionStatus.IN_PROGRESS.value)
            .limit(2)
            .execute()
        )
        rows = response.data or []
        if len(rows) > 1:
            logger.error(
                "Multiple in-progress sessions for user %s and scenario %s",
                user_id,
                scenario_id,
            )
            raise SessionIntegrityError(user_id, scenario_id, len(rows))
        if not rows:
            return None
        session, _version = _parse_row(rows[0])
        return session

    def create(self, session: GameSession) -> GameSession:
        """Insert a session row and return the stored session."""
        payload = _to_row(session)
        payload["version"] = 1
        try:
            response = self.client.table(self.table_name).insert(payload).execute()
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise SessionAlreadyExistsError(
                    session.user_id, session.scenario_id
                ) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create game session")
        created, _version = _parse_row(response.data[0])
        return created

    def atomic_update(self, session_id: UUID, mutator: SessionMutator) -> GameSession:
        """Apply mutator to the latest row and write it back if unchanged."""
        row = self._fetch_row(session_id)
        if row is None:
            raise SessionNotFoundError(session_id)
        snapshot, version = _parse_row(row)

        updated = mutator(snapshot)
        if updated is snapshot:
            return snapshot

        payload = _to_row(updated)
        payload["version"] = version + 1
        response = (
            self.client.table(self.table_name)
            .update(payload)
            .eq("id", str(session_id))
            .eq("version", version)
            .execute()
        )
        if response.data:
            return updated
        if self._fetch_row(session_id) is None:
            raise SessionNotFoundError(session_id)
        raise ConflictError(session_id)

    def list_sessions(
        self,
        user_id: str,
        scenario_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[GameSession]:
        """Return matching sessions, newest first."""
        query = self.client.table(self.table_name).select("*").eq("user_id", user_id)
        if scenario_id is not None:
            query = query.eq("scenario_id", scenario_id)
        if status is not None:
            query = query.eq("status", status.value)
        response = query.order("start_time", desc=True).execute()
        return [_parse_row(row)[0] for row in response.data or []]

    def count_sessions(
        self, user_id: str, scenario_id: str, status: SessionStatus
    ) -> int:
        """Return how many sessions match the user, scenario and status."""
        response = (
            self.client.table(self.table_name)
            .select("id", count=CountMethod.exact)
            .eq("user_id", user_id)
            .eq("scenario_id", scenario_id)
            .eq("status", status.value)
            .limit(1)
            .execute()
        )
        return response.count or 0

    def _fetch_row(self, session_id: UUID) -> dict[str, object] | None:
        response = (
            self.client.table(self.table_name)
            .select("*")
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]


def _to_row(session: GameSession) -> dict[str, object]:
    return {
        "id": str(session.id),
        "user_id": session.user_id,
        "scenario_id": session.scenario_id,
        "status": session.status.value,
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat() if session.end_time else None,
        "last_updated": session.last_updated.isoformat(),
        "current_task_index": session.current_task_index,
        "tasks_json": {
            task_id: {
                "status": state.status.value,
                "completed_at": (
                    state.completed_at.isoformat() if state.completed_at else None
                ),
                "photo": state.photo,
            }
            for task_id, state in session.tasks.items()
        },
        "score": session.score,
        "play_count": session.play_count,
        "hints_used": session.hints_used,
    }


def _parse_row(row: dict[str, object]) -> tuple[GameSession, int]:
    session = GameSession(
        id=UUID(str(row["id"])),
        user_id=str(row["user_id"]),
        scenario_id=str(row["scenario_id"]),
        status=SessionStatus(row["status"]),
        start_time=_parse_datetime(row["start_time"]),
        end_time=_parse_datetime(row.get("end_time")),
        last_updated=_parse_datetime(row.get("last_updated") or row["start_time"]),
        current_task_index=int(row.get("current_task_index") or 0),
        tasks=_parse_tasks(row),
        score=int(row.get("score") or 0),
        play_count=int(row.get("play_count") or 1),
        hints_used=int(row.get("hints_used") or 0),
    )
    return session, int(row.get("version") or 1)


def _parse_tasks(row: dict[str, object]) -> dict[str, TaskState]:
    raw_tasks = row.get("tasks_json")
    if isinstance(raw_tasks, dict) and raw_tasks:
        return {
            task_id: TaskState(
                status=TaskStatus(raw["status"]),
                completed_at=_parse_datetime(raw.get("completed_at")),
                photo=raw.get("photo"),
            )
            for task_id, raw in raw_tasks.items()
        }
    legacy = row.get("task_status")
    if isinstance(legacy, dict):
        return {
            task_id: TaskState(
                status=_LEGACY_STATUSES.get(str(value), TaskStatus.LOCKED)
            )
            for task_id, value in legacy.items()
        }
    return {}


def _parse_datetime(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
