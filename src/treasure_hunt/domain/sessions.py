"""Domain models for game sessions and their tasks."""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from treasure_hunt.domain.scenarios import Location


class TaskStatus(StrEnum):
    """Per-task progress; only ever moves forward."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


class SessionStatus(StrEnum):
    """Session lifecycle; completed is terminal."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TaskState:
    """Mutable per-task progress stored on a session."""

    status: TaskStatus
    completed_at: datetime | None = None
    photo: str | None = None


@dataclass(frozen=True)
class GameSession:
    """One user's attempt at a scenario.

    Instances are snapshots: changes are made with ``dataclasses.replace`` and
    committed through a session store.
    """

    id: UUID
    user_id: str
    scenario_id: str
    status: SessionStatus
    start_time: datetime
    last_updated: datetime
    current_task_index: int
    tasks: dict[str, TaskState]
    play_count: int
    score: int = 0
    end_time: datetime | None = None
    hints_used: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def all_tasks_completed(self) -> bool:
        """Return True when every task has reached the completed status."""
        return bool(self.tasks) and all(
            state.status == TaskStatus.COMPLETED for state in self.tasks.values()
        )

    def duration_minutes(self) -> int | None:
        """Return whole minutes played, or None while still in progress."""
        if self.end_time is None:
            return None
        return math.floor((self.end_time - self.start_time).total_seconds() / 60)


@dataclass(frozen=True)
class Task:
    """A task joined with its static location data, in scenario order."""

    id: str
    title: str
    description: str
    location: Location
    status: TaskStatus
    photo: str | None = None
    completed_at: datetime | None = None
