"""Process-local session store using compare-and-swap on a version counter."""

import threading
from dataclasses import dataclass, field
from uuid import UUID

from treasure_hunt.domain.errors import (
    ConflictError,
    SessionAlreadyExistsError,
    SessionIntegrityError,
    SessionNotFoundError,
)
from treasure_hunt.domain.sessions import GameSession, SessionStatus
from treasure_hunt.services.sessions import SessionMutator, SessionStore


@dataclass
class _Record:
    version: int
    session: GameSession


@dataclass
class InMemorySessionStore(SessionStore):
    """In-memory implementation for local runs and tests.

    The lock only guards the read and the commit; mutators run outside it so
    concurrent writers can still conflict.
    """

    _records: dict[UUID, _Record] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, session_id: UUID) -> GameSession | None:
        """Return a session by id, if present."""
        with self._lock:
            record = self._records.get(session_id)
        return record.session if record else None

    def find_active(self, user_id: str, scenario_id: str) -> GameSession | None:
        """Return the in-progress session for a user and scenario."""
        with self._lock:
            return self._find_active_locked(user_id, scenario_id)

    def create(self, session: GameSession) -> GameSession:
        """Store a new session unless one is already in progress."""
        with self._lock:
            active = self._find_active_locked(session.user_id, session.scenario_id)
            if active and session.status == SessionStatus.IN_PROGRESS:
                raise SessionAlreadyExistsError(session.user_id, session.scenario_id)
            self._records[session.id] = _Record(version=1, session=session)
        return session

    def atomic_update(self, session_id: UUID, mutator: SessionMutator) -> GameSession:
        """Apply mutator to the latest snapshot and commit if unchanged."""
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                raise SessionNotFoundError(session_id)
            read_version, snapshot = record.version, record.session

        updated = mutator(snapshot)
        if updated is snapshot:
            return snapshot

        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                raise SessionNotFoundError(session_id)
            if record.version != read_version:
                raise ConflictError(session_id)
            self._records[session_id] = _Record(
                version=read_version + 1, session=updated
            )
        return updated

    def list_sessions(
        self,
        user_id: str,
        scenario_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[GameSession]:
        """Return matching sessions, newest first."""
        with self._lock:
            sessions = [record.session for record in self._records.values()]
        matches = [
            session
            for session in sessions
            if session.user_id == user_id
            and (scenario_id is None or session.scenario_id == scenario_id)
            and (status is None or session.status == status)
        ]
        return sorted(matches, key=lambda session: session.start_time, reverse=True)

    def count_sessions(
        self, user_id: str, scenario_id: str, status: SessionStatus
    ) -> int:
        """Return how many sessions match the user, scenario and status."""
        return len(self.list_sessions(user_id, scenario_id=scenario_id, status=status))

    def _find_active_locked(
        self, user_id: str, scenario_id: str
    ) -> GameSession | None:
        active = [
            record.session
            for record in self._records.values()
            if record.session.user_id == user_id
            and record.session.scenario_id == scenario_id
            and record.session.status == SessionStatus.IN_PROGRESS
        ]
        if len(active) > 1:
            raise SessionIntegrityError(user_id, scenario_id, len(active))
        return active[0] if active else None
