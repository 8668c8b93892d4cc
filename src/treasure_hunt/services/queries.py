"""Read-only projections over stored game sessions."""

from dataclasses import dataclass

from treasure_hunt.domain.sessions import GameSession, SessionStatus
from treasure_hunt.services.sessions import SessionStore


@dataclass
class SessionQuery:
    """Lookups used to decide whether to resume or start a scenario."""

    store: SessionStore

    def find_in_progress(self, user_id: str, scenario_id: str) -> GameSession | None:
        """Return the user's in-progress session for a scenario, if any."""
        return self.store.find_active(user_id, scenario_id)

    def count_completed(self, user_id: str, scenario_id: str) -> int:
        """Return how many times the user has finished the scenario."""
        return self.store.count_sessions(
            user_id, scenario_id, status=SessionStatus.COMPLETED
        )

    def list_history(
        self, user_id: str, scenario_id: str | None = None
    ) -> list[GameSession]:
        """Return the user's sessions, newest first."""
        return self.store.list_sessions(user_id, scenario_id=scenario_id)
