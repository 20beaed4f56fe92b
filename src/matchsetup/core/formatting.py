"""Plain-text renderings of a setup shared by every front end."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import MatchConfig, ResolvedMap, Side, StepKind, TeamSlot

if TYPE_CHECKING:
    from ..veto.session import SetupSession

__all__ = ["completion_summary", "opening_message", "transcript_block", "transcript_lines"]

NO_VETO_INFO = "This match has no veto info yet"


def opening_message(session: SetupSession) -> str:
    first = session.template[0]
    verb = "bans" if first.kind is StepKind.VETO else "picks"
    return (
        f"Best of {session.series_type.best_of} option selected. "
        f"Starting map veto. {session.team(first.actor).name} {verb} first."
    )


def transcript_lines(session: SetupSession) -> list[str]:
    lines: list[str] = []
    for record in session.history:
        team = session.team(record.actor).name
        if record.kind is StepKind.VETO:
            lines.append(f"- {team} banned {record.map.name}")
        else:
            lines.append(f"+ {team} picked {record.map.name}")
    return lines


def transcript_block(session: SetupSession) -> str:
    lines = transcript_lines(session)
    if not lines:
        return NO_VETO_INFO
    return "```diff\n" + "\n".join(lines) + "\n```"


def completion_summary(config: MatchConfig, session: SetupSession) -> str:
    parts = ["Setup is completed. GLHF!", ""]
    for resolved in config.maps:
        ct_team = _team_starting(session, resolved, Side.CT)
        t_team = _team_starting(session, resolved, Side.T)
        parts.append(
            f"{resolved.sequence_position}. {resolved.map.name} - picked by: {session.team(resolved.picked_by).name}"
        )
        parts.append(f"    CT start: {ct_team}")
        parts.append(f"    T start: {t_team}")
    return "\n".join(parts)


def _team_starting(session: SetupSession, resolved: ResolvedMap, side: Side) -> str:
    for slot in (TeamSlot.ONE, TeamSlot.TWO):
        if resolved.start_side_for(slot) is side:
            return session.team(slot).name
    return "?"
