"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from treasure_hunt.adapters.supabase_session_repository import SupabaseSessionStore
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


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None
    count: int | None = None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": []}
    )
    insert_error: Exception | None = None
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)
    last_count: object | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args: str, count: object = None) -> "FakeTable":
        self._action = "select"
        self.last_filters = []
        self.last_count = count
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        self.last_filters = []
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        self.actions.append(action)
        if action == "insert" and self.insert_error is not None:
            raise self.insert_error
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        if action == "select" and self.last_count is not None:
            return FakeResponse(data=data[:1], count=len(data))
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


START = datetime(2024, 4, 5, 10, 0, tzinfo=UTC)


def _row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "user_id": "user-1",
        "scenario_id": "causeway-bay",
        "status": "in_progress",
        "start_time": START.isoformat(),
        "end_time": None,
        "last_updated": START.isoformat(),
        "current_task_index": 0,
        "tasks_json": {
            "task-1": {"status": "unlocked", "completed_at": None, "photo": None},
            "task-2": {"status": "locked", "completed_at": None, "photo": None},
        },
        "score": 0,
        "play_count": 1,
        "hints_used": 0,
        "version": 1,
    }
    row.update(overrides)
    return row


def _session() -> GameSession:
    return GameSession(
        id=uuid4(),
        user_id="user-1",
        scenario_id="causeway-bay",
        status=SessionStatus.IN_PROGRESS,
        start_time=START,
        last_updated=START,
        current_task_index=0,
        tasks={
            "task-1": TaskState(status=TaskStatus.UNLOCKED),
            "task-2": TaskState(status=TaskStatus.LOCKED),
        },
        play_count=1,
    )


def test_supabase_session_store_create_roundtrip() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    session = _session()
    table.queue("insert", [_row(id=str(session.id))])

    created = SupabaseSessionStore(client).create(session)

    assert created == session
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["version"] == 1
    assert table.last_payload["tasks_json"]["task-1"]["status"] == "unlocked"


def test_supabase_session_store_create_maps_unique_violation() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    table.insert_error = APIError(
        {"code": "23505", "message": "duplicate key", "details": "", "hint": ""}
    )

    with pytest.raises(SessionAlreadyExistsError):
        SupabaseSessionStore(client).create(_session())


def test_supabase_session_store_get() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    completed_at = datetime(2024, 4, 5, 10, 20, tzinfo=UTC)
    row = _row(
        status="completed",
        end_time=completed_at.isoformat(),
        tasks_json={
            "task-1": {
                "status": "completed",
                "completed_at": completed_at.isoformat(),
                "photo": "https://storage.example/photo.jpg",
            }
        },
        score=1020,
    )
    table.queue("select", [row])
    store = SupabaseSessionStore(client)

    fetched = store.get(uuid4())
    missing = store.get(uuid4())

    assert fetched is not None
    assert fetched.status == SessionStatus.COMPLETED
    assert fetched.end_time == completed_at
    assert fetched.tasks["task-1"].completed_at == completed_at
    assert fetched.tasks["task-1"].photo == "https://storage.example/photo.jpg"
    assert fetched.score == 1020
    assert missing is None


def test_supabase_session_store_reads_legacy_task_status() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    table.queue(
        "select",
        [
            _row(
                tasks_json=None,
                task_status={"task-1": "completed", "task-2": "in_progress"},
            )
        ],
    )

    fetched = SupabaseSessionStore(client).get(uuid4())

    assert fetched is not None
    assert fetched.tasks == {
        "task-1": TaskState(status=TaskStatus.COMPLETED),
        "task-2": TaskState(status=TaskStatus.UNLOCKED),
    }


def test_supabase_session_store_find_active() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    table.queue("select", [_row()])
    table.queue("select", [])
    store = SupabaseSessionStore(client)

    found = store.find_active("user-1", "causeway-bay")
    not_found = store.find_active("user-1", "causeway-bay")

    assert found is not None
    assert found.user_id == "user-1"
    assert not_found is None


def test_supabase_session_store_find_active_integrity_fault() -> None:
    client = FakeSupabaseClient()
    client.table("game_sessions").queue("select", [_row(), _row()])

    with pytest.raises(SessionIntegrityError):
        SupabaseSessionStore(client).find_active("user-1", "causeway-bay")


def test_supabase_session_store_atomic_update_is_conditional() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    row = _row(version=3)
    table.queue("select", [row])
    table.queue("update", [_row(id=row["id"], version=4, hints_used=1)])

    updated = SupabaseSessionStore(client).atomic_update(
        uuid4(), lambda snapshot: replace(snapshot, hints_used=1)
    )

    assert updated.hints_used == 1
    assert table.last_payload["version"] == 4
    assert ("version", 3) in table.last_filters


def test_supabase_session_store_atomic_update_conflict() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    row = _row()
    table.queue("select", [row])
    table.queue("update", [])
    table.queue("select", [_row(id=row["id"], version=2)])

    with pytest.raises(ConflictError):
        SupabaseSessionStore(client).atomic_update(
            uuid4(), lambda snapshot: replace(snapshot, hints_used=1)
        )


def test_supabase_session_store_atomic_update_missing() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    store = SupabaseSessionStore(client)

    with pytest.raises(SessionNotFoundError):
        store.atomic_update(uuid4(), lambda snapshot: snapshot)

    table.queue("select", [_row()])
    table.queue("update", [])
    with pytest.raises(SessionNotFoundError):
        store.atomic_update(uuid4(), lambda snapshot: replace(snapshot, score=1))


def test_supabase_session_store_atomic_update_skips_noop() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    table.queue("select", [_row()])

    SupabaseSessionStore(client).atomic_update(uuid4(), lambda snapshot: snapshot)

    assert "update" not in table.actions


def test_supabase_session_store_history_and_counts() -> None:
    client = FakeSupabaseClient()
    table = client.table("game_sessions")
    table.queue("select", [_row(status="completed"), _row()])
    table.queue("select", [{"id": str(uuid4())}, {"id": str(uuid4())}])
    store = SupabaseSessionStore(client, table_name="game_sessions")

    history = store.list_sessions("user-1", scenario_id="causeway-bay")
    count = store.count_sessions(
        "user-1", "causeway-bay", status=SessionStatus.COMPLETED
    )

    assert [session.status for session in history] == [
        SessionStatus.COMPLETED,
        SessionStatus.IN_PROGRESS,
    ]
    assert count == 2
    assert table.last_count == "exact"
    assert ("status", "completed") in table.last_filters
