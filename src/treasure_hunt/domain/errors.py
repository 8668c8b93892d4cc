"""Error types raised by the game session engine."""

from uuid import UUID


class GameSessionError(Exception):
    """Base class for game session failures."""


class SessionNotFoundError(GameSessionError):
    """Raised when a session id does not resolve to a stored session."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class ScenarioNotFoundError(GameSessionError):
    """Raised when a scenario id is unknown to the scenario source."""

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Scenario {scenario_id} not found")
        self.scenario_id = scenario_id


class UnknownTaskError(GameSessionError):
    """Raised when a task id is malformed or not part of the session."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Unknown task {task_id!r}")
        self.task_id = task_id


class PreconditionError(GameSessionError):
    """A request that is invalid for the current session state."""


class OutOfOrderError(PreconditionError):
    """Raised when completing a task that has not been unlocked yet."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} is locked")
        self.task_id = task_id


class SessionAlreadyCompletedError(PreconditionError):
    """Raised when mutating a session that has already finished."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} is already completed")
        self.session_id = session_id


class SessionAlreadyExistsError(PreconditionError):
    """Raised when a user already has an in-progress session for a scenario."""

    def __init__(self, user_id: str, scenario_id: str) -> None:
        super().__init__(
            f"User {user_id} already has an active session for {scenario_id}"
        )
        self.user_id = user_id
        self.scenario_id = scenario_id


class NotSessionOwnerError(PreconditionError):
    """Raised when a user tries to change another user's session."""

    def __init__(self, session_id: UUID, user_id: str) -> None:
        super().__init__(f"User {user_id} does not own session {session_id}")
        self.session_id = session_id
        self.user_id = user_id


class ConflictError(GameSessionError):
    """Raised by a store when a record changed between read and commit."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} was modified concurrently")
        self.session_id = session_id


class ConcurrencyExhaustedError(GameSessionError):
    """Raised when conflicting writes persist past the retry budget."""

    def __init__(self, session_id: UUID, attempts: int) -> None:
        super().__init__(
            f"Gave up updating session {session_id} after {attempts} attempts"
        )
        self.session_id = session_id
        self.attempts = attempts


class LocationUnavailableError(GameSessionError):
    """Raised when no usable location reading was supplied."""

    def __init__(self) -> None:
        super().__init__("Current location is unavailable")


class SessionIntegrityError(GameSessionError):
    """Raised when storage holds more than one active session for a pair."""

    def __init__(self, user_id: str, scenario_id: str, count: int) -> None:
        super().__init__(
            f"Found {count} in-progress sessions for user {user_id} "
            f"and scenario {scenario_id}"
        )
        self.user_id = user_id
        self.scenario_id = scenario_id
        self.count = count
