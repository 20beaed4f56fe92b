"""Typed failures raised by the setup orchestrator.

Every rejected action maps to exactly one class below.  Validation failures
never touch session state, so callers can surface ``str(exc)`` to the acting
user and carry on.  ``code`` is stable and safe to expose over the wire;
``category`` groups codes for transport layers that only care about the kind
of failure (authorization, protocol state or configuration).
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "DuplicateMap",
    "IncompleteSetup",
    "InsufficientMapPool",
    "InvalidActor",
    "InvalidTeams",
    "MapAlreadyConsumed",
    "NotYourTurn",
    "PersistenceError",
    "ProtocolStateError",
    "SeriesAlreadyCompleted",
    "SeriesExpired",
    "SessionNotFound",
    "SetupAlreadyRunning",
    "SetupError",
    "SideAlreadyChosen",
    "UnknownMap",
    "UnknownTeam",
    "WrongStepType",
]


class SetupError(Exception):
    code = "setup_error"
    category = "setup"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "category": self.category, "message": self.message}


class AuthorizationError(SetupError):
    category = "authorization"


class ProtocolStateError(SetupError):
    category = "protocol"


class ConfigurationError(SetupError):
    category = "configuration"


class InvalidActor(AuthorizationError):
    code = "invalid_actor"


class NotYourTurn(AuthorizationError):
    code = "not_your_turn"


class WrongStepType(ProtocolStateError):
    code = "wrong_step_type"


class MapAlreadyConsumed(ProtocolStateError):
    code = "map_already_consumed"


class SideAlreadyChosen(ProtocolStateError):
    code = "side_already_chosen"


class SeriesAlreadyCompleted(ProtocolStateError):
    code = "series_already_completed"


class SeriesExpired(ProtocolStateError):
    code = "series_expired"


class IncompleteSetup(ProtocolStateError):
    code = "incomplete_setup"


class SetupAlreadyRunning(ProtocolStateError):
    code = "setup_already_running"


class InsufficientMapPool(ConfigurationError):
    code = "insufficient_map_pool"


class UnknownMap(ConfigurationError):
    code = "unknown_map"


class DuplicateMap(ConfigurationError):
    code = "duplicate_map"


class InvalidTeams(ConfigurationError):
    code = "invalid_teams"


class UnknownTeam(ConfigurationError):
    code = "unknown_team"


class SessionNotFound(KeyError):
    def __init__(self, series_id: str) -> None:
        super().__init__(f"setup for series '{series_id}' not found")
        self.series_id = series_id

    def __str__(self) -> str:
        return str(self.args[0])


class PersistenceError(RuntimeError):
    """Saving a snapshot failed after the in-memory transition was applied.

    ``session`` is the already-updated snapshot; retry the save with
    :meth:`SessionRegistry.persist` rather than replaying the action.
    """

    def __init__(self, series_id: str, session: Any, cause: BaseException) -> None:
        super().__init__(f"failed to persist setup for series '{series_id}': {cause}")
        self.series_id = series_id
        self.session = session
        self.__cause__ = cause
