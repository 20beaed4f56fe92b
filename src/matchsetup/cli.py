from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core.config import configure_logging, load_settings
from .core.errors import SetupError
from .core.formatting import completion_summary, opening_message, transcript_block
from .core.models import MapPoolEntry, SeriesType, Team
from .core.sequence import generate, pick_count
from .data.catalog import JsonMapCatalog, MapCatalogConfig
from .features.session import SessionRegistry


def _console(no_color: bool) -> Console:
    if no_color:
        return Console(force_terminal=False, color_system=None)
    return Console(force_terminal=True, color_system="auto")


def _cmd_templates(args: argparse.Namespace, console: Console) -> int:
    table = Table(title="Veto / pick templates", box=box.SIMPLE_HEAVY)
    table.add_column("Series", style="bold cyan")
    table.add_column("Maps played", justify="right")
    table.add_column("Steps")
    for series in SeriesType:
        steps = ", ".join(f"{entry.kind.value}:{entry.actor.value}" for entry in generate(series))
        table.add_row(series.value, str(pick_count(series)), steps)
    console.print(table)
    return 0


def _team(raw: dict[str, Any]) -> Team:
    role = raw.get("role")
    return Team(id=str(raw["id"]), name=str(raw.get("name") or raw["id"]), role=None if role is None else str(role))


def replay(script: dict[str, Any], registry: SessionRegistry, catalog: JsonMapCatalog) -> str:
    """Run a recorded setup and return the rendered transcript and summary.

    ``script`` holds ``series_id``, ``series_type``, ``team_one``, ``team_two``,
    an optional ``maps`` list and ``actions``; an action with a ``side`` key is
    a side choice, anything else a veto or pick.
    """

    series_id = str(script.get("series_id") or "replay")
    if script.get("maps"):
        pool = [MapPoolEntry(id=str(item["id"]), name=str(item["name"])) for item in script["maps"]]
    else:
        pool = catalog.active_maps()
    session = registry.start_setup(
        series_id,
        _team(script["team_one"]),
        _team(script["team_two"]),
        script.get("series_type", "bo1"),
        pool,
    )
    lines = [opening_message(session)]
    for action in script.get("actions", []):
        if "side" in action:
            registry.submit_side_choice(series_id, str(action["actor"]), str(action["map"]), action["side"])
        else:
            registry.submit_step(series_id, str(action["actor"]), str(action["map"]), action.get("kind"))
    session = registry.get(series_id)
    lines.append(transcript_block(session))
    if session.is_terminal:
        config = registry.finalize(series_id)
        lines.append(completion_summary(config, session))
    else:
        actor = session.current_actor()
        waiting = actor.name if actor else ", ".join(session.pending_side_choices)
        lines.append(f"Setup is {session.state.value}; waiting on {waiting}.")
    return "\n\n".join(lines)


def _cmd_replay(args: argparse.Namespace, console: Console) -> int:
    settings = load_settings()
    pool_path = args.maps or settings.map_pool
    catalog = JsonMapCatalog(MapCatalogConfig(resource=Path(pool_path))) if pool_path else JsonMapCatalog()
    try:
        with Path(args.script).open("r", encoding="utf-8") as fh:
            script = json.load(fh)
        output = replay(script, SessionRegistry(), catalog)
    except SetupError as exc:
        console.print(f"[bold red]{exc.code}[/]: {escape(exc.message)}")
        return 1
    except KeyError as exc:
        console.print(f"[bold red]invalid_script[/]: missing field {escape(repr(exc.args[0]))}")
        return 1
    except ValueError as exc:
        console.print(f"[bold red]invalid_script[/]: {escape(str(exc))}")
        return 1
    console.print(Panel(output, title="Match setup", border_style="green", expand=False))
    return 0


def _cmd_serve(args: argparse.Namespace, console: Console) -> int:  # pragma: no cover - runner
    from .web.app import main as serve

    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="matchsetup", description="Best-of-N map veto orchestrator")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    sub = parser.add_subparsers(dest="command", required=True)

    templates = sub.add_parser("templates", help="Show the veto/pick order for each series type")
    templates.set_defaults(handler=_cmd_templates)

    replay_cmd = sub.add_parser("replay", help="Replay a recorded setup from a JSON script")
    replay_cmd.add_argument("script", help="Path to the JSON script")
    replay_cmd.add_argument("--maps", default=None, help="JSON map catalog used when the script has no maps")
    replay_cmd.set_defaults(handler=_cmd_replay)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.set_defaults(handler=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(load_settings())
    return args.handler(args, _console(args.no_color))


if __name__ == "__main__":
    raise SystemExit(main())
