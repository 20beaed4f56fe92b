"""Setup session feature: registry, stores, reaper, schemas and API router."""

from .reaper import SessionReaper
from .router import create_setup_router
from .schemas import (
    MapPayload,
    MatchConfigPayload,
    ResolvedMapPayload,
    SessionPayload,
    SideChoiceRequest,
    StartSetupRequest,
    StepPayload,
    StepRequest,
    TeamPayload,
)
from .service import SessionRegistry, match_config_payload, session_payload
from .store import InMemorySessionStore, JsonFileSessionStore

__all__ = [
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "MapPayload",
    "MatchConfigPayload",
    "ResolvedMapPayload",
    "SessionPayload",
    "SessionReaper",
    "SessionRegistry",
    "SideChoiceRequest",
    "StartSetupRequest",
    "StepPayload",
    "StepRequest",
    "TeamPayload",
    "create_setup_router",
    "match_config_payload",
    "session_payload",
]
