"""Validated veto/pick transitions and finalization."""

from .finalizer import finalize
from .session import SetupSession
from .validator import validate_side_choice, validate_step

__all__ = ["SetupSession", "finalize", "validate_side_choice", "validate_step"]
