"""Derivation of ordered tasks from scenario locations."""

from collections.abc import Mapping
from dataclasses import replace

from treasure_hunt.domain.errors import UnknownTaskError
from treasure_hunt.domain.scenarios import Scenario
from treasure_hunt.domain.sessions import Task, TaskState, TaskStatus

_TASK_PREFIX = "task-"


def task_id_for(index: int) -> str:
    """Return the task id for a 0-based position."""
    return f"{_TASK_PREFIX}{index + 1}"


def task_index(task_id: str) -> int:
    """Return the 0-based position encoded in a task id."""
    suffix = task_id.removeprefix(_TASK_PREFIX)
    if suffix == task_id or not suffix.isdigit() or int(suffix) < 1:
        raise UnknownTaskError(task_id)
    return int(suffix) - 1


def derive_initial_tasks(scenario: Scenario) -> dict[str, TaskState]:
    """Build the starting task map: the first task unlocked, the rest locked."""
    return {
        task_id_for(index): TaskState(
            status=TaskStatus.UNLOCKED if index == 0 else TaskStatus.LOCKED
        )
        for index in range(scenario.task_count)
    }


def normalize_tasks(
    scenario: Scenario, task_states: Mapping[str, TaskState]
) -> dict[str, TaskState]:
    """Return exactly one state per scenario location.

    Stored rows may hold a partial map. Missing entries fall back to the
    initial layout, ids outside the scenario are dropped, and the task after
    each completed one is unlocked so progress can always advance.
    """
    tasks = derive_initial_tasks(scenario)
    for task_id in tasks:
        state = task_states.get(task_id)
        if state is not None:
            tasks[task_id] = state

    for index in range(scenario.task_count):
        task_id = task_id_for(index)
        state = tasks[task_id]
        if state.status != TaskStatus.LOCKED:
            continue
        previous = tasks[task_id_for(index - 1)] if index else None
        if previous is None or previous.status == TaskStatus.COMPLETED:
            tasks[task_id] = replace(state, status=TaskStatus.UNLOCKED)
    return tasks


def materialize_tasks(
    scenario: Scenario, task_states: Mapping[str, TaskState]
) -> list[Task]:
    """Join scenario locations with session progress, in scenario order."""
    states = normalize_tasks(scenario, task_states)
    tasks = []
    for index, location in enumerate(scenario.locations):
        task_id = task_id_for(index)
        state = states[task_id]
        tasks.append(
            Task(
                id=task_id,
                title=f"Task {index + 1}",
                description=(
                    location.description
                    or f"Go to {location.name} and complete the task"
                ),
                location=location,
                status=state.status,
                photo=state.photo,
                completed_at=state.completed_at,
            )
        )
    return tasks
