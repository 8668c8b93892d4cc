"""Pydantic models for game API payloads."""

from pydantic import BaseModel


class LocationReading(BaseModel):
    """Current device location; omitted fields mean it is unavailable."""

    lat: float | None = None
    lng: float | None = None


class CompleteTaskRequest(BaseModel):
    """Photo proof submitted for a task."""

    photo: str | None = None
