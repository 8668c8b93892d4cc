"""Domain models for treasure-hunt scenarios."""

from dataclasses import dataclass

from treasure_hunt.domain.geo import GeoPoint


@dataclass(frozen=True)
class Location:
    """A real-world stop on a scenario route."""

    name: str
    address: str
    latitude: float
    longitude: float
    description: str | None = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lng=self.longitude)


@dataclass(frozen=True)
class Scenario:
    """Static definition of a route: ordered locations plus metadata."""

    id: str
    title: str
    locations: tuple[Location, ...]
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.locations:
            raise ValueError(f"Scenario {self.id} has no locations")

    @property
    def task_count(self) -> int:
        return len(self.locations)
