from __future__ import annotations

import logging

from ..core.errors import IncompleteSetup
from ..core.models import MatchConfig, SetupState
from ..core.formatting import transcript_lines
from .session import SetupSession

__all__ = ["finalize"]

logger = logging.getLogger(__name__)


def finalize(session: SetupSession) -> MatchConfig:
    """Freeze a completed session into the config handed to provisioning.

    The result is cached on the session; later calls return the cached object
    instead of re-deriving it.
    """

    if session.state is not SetupState.COMPLETED or session.completed_at is None:
        raise IncompleteSetup(
            f"setup for series '{session.series_id}' is {session.state.value}, not completed",
            series_id=session.series_id,
        )
    if session.match_config is not None:
        return session.match_config

    config = MatchConfig(
        series_id=session.series_id,
        maps=tuple(session.resolved_maps),
        completed_at=session.completed_at,
        transcript=tuple(transcript_lines(session)),
    )
    session.match_config = config
    logger.info(
        "Finalized setup with %d map(s)",
        len(config.maps),
        extra={"series_id": session.series_id},
    )
    return config
