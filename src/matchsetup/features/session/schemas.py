from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "ErrorPayload",
    "MapPayload",
    "MatchConfigPayload",
    "ResolvedMapPayload",
    "SessionPayload",
    "SideChoiceRequest",
    "StartSetupRequest",
    "StepPayload",
    "StepRequest",
    "TeamPayload",
    "TranscriptPayload",
]


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TeamPayload(_APIModel):
    id: str
    name: str
    role: str | None = None


class MapPayload(_APIModel):
    id: str
    name: str


class StepPayload(_APIModel):
    index: int
    kind: str
    actor: str
    team: str
    map: MapPayload | None = None


class ResolvedMapPayload(_APIModel):
    sequence_position: int
    map: MapPayload
    picked_by: str
    picked_by_team: str
    start_side_team_one: str | None = None
    start_side_team_two: str | None = None


class SessionPayload(_APIModel):
    series_id: str
    series_type: str
    state: str
    team_one: TeamPayload
    team_two: TeamPayload
    cursor: int
    current_kind: str | None = None
    current_actor: TeamPayload | None = None
    steps: list[StepPayload]
    remaining_maps: list[MapPayload]
    resolved_maps: list[ResolvedMapPayload]
    pending_side_choices: list[str]
    transcript: list[str]
    created_at: datetime
    deadline: datetime | None = None
    completed_at: datetime | None = None


class MatchConfigPayload(_APIModel):
    series_id: str
    maps: list[ResolvedMapPayload]
    completed_at: datetime
    transcript: list[str]


class TranscriptPayload(_APIModel):
    series_id: str
    lines: list[str]
    text: str


class ErrorPayload(_APIModel):
    code: str
    category: str
    message: str


class StartSetupRequest(BaseModel):
    series_id: str = Field(min_length=1)
    team_one: TeamPayload
    team_two: TeamPayload
    series_type: Literal["bo1", "bo3", "bo5"]
    maps: list[MapPayload] | None = None
    ttl: float | None = Field(default=None, ge=0)

    @field_validator("series_type", mode="before")
    @classmethod
    def _lower(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class StepRequest(BaseModel):
    actor: str
    map: str
    kind: Literal["veto", "pick"] | None = None


class SideChoiceRequest(BaseModel):
    actor: str
    map: str
    side: Literal["ct", "t"]

    @field_validator("side", mode="before")
    @classmethod
    def _lower(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value
