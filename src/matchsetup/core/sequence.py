"""Fixed veto/pick templates for each series length.

The tables are data, not derived from the pool size: a pool that is too small
for a template is rejected when the session is created.  Bo1 ends with an
explicit pick by team one rather than auto-selecting the last map, and Bo3
consumes six maps so a seven-map pool leaves one untouched.
"""

from __future__ import annotations

from .models import SeriesType, StepKind, StepTemplateEntry, TeamSlot

__all__ = ["generate", "pick_count", "step_count"]

_V = StepKind.VETO
_P = StepKind.PICK
_ONE = TeamSlot.ONE
_TWO = TeamSlot.TWO

_TEMPLATES: dict[SeriesType, tuple[StepTemplateEntry, ...]] = {
    SeriesType.BO1: tuple(
        StepTemplateEntry(kind, actor)
        for kind, actor in ((_V, _TWO), (_V, _ONE), (_V, _TWO), (_V, _ONE), (_V, _TWO), (_P, _ONE))
    ),
    SeriesType.BO3: tuple(
        StepTemplateEntry(kind, actor)
        for kind, actor in ((_V, _ONE), (_V, _TWO), (_P, _ONE), (_P, _TWO), (_V, _TWO), (_P, _ONE))
    ),
    SeriesType.BO5: tuple(
        StepTemplateEntry(kind, actor)
        for kind, actor in (
            (_V, _ONE),
            (_V, _TWO),
            (_P, _ONE),
            (_P, _TWO),
            (_P, _ONE),
            (_P, _TWO),
            (_P, _ONE),
        )
    ),
}


def generate(series_type: SeriesType) -> tuple[StepTemplateEntry, ...]:
    return _TEMPLATES[SeriesType.parse(series_type)]


def step_count(series_type: SeriesType) -> int:
    return len(generate(series_type))


def pick_count(series_type: SeriesType) -> int:
    """Number of maps that end up being played."""

    return sum(1 for entry in generate(series_type) if entry.kind is StepKind.PICK)
