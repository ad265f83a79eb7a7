# ==============================================================================
# Analytics Commands
# ==============================================================================
"""
Journey analytics commands for the CLI.

Every command builds the same raw query-string mapping a web client would
send and runs it through the API handlers, so the CLI and the HTTP surface
validate and answer identically.
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from journeys.cli.shared import C, I, exit_on_error, journey_service, print_json

# ==============================================================================
# Shared Options
# ==============================================================================

StartOption = Annotated[
    Optional[str], typer.Option("--start", help="Range start (ISO datetime, inclusive)")
]
EndOption = Annotated[
    Optional[str], typer.Option("--end", help="Range end (ISO datetime, exclusive)")
]
FiltersOption = Annotated[
    Optional[str],
    typer.Option("--filters", help='JSON list of {"parameter", "type", "value"} filters'),
]
EventsFileOption = Annotated[
    Optional[Path],
    typer.Option("--events-file", help="Read events from a JSON lines file instead of PostgreSQL"),
]
TraitsFileOption = Annotated[
    Optional[Path],
    typer.Option("--traits-file", help="User traits JSON object (with --events-file)"),
]
NoEventsOption = Annotated[
    bool, typer.Option("--no-events", help="Build paths from pageviews only")
]
ExcludeOption = Annotated[
    Optional[list[str]],
    typer.Option("--exclude", "-x", help="Interaction event name to leave out (repeatable)"),
]
JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]


# ==============================================================================
# Helper Functions
# ==============================================================================


def _base_params(
    start: Optional[str],
    end: Optional[str],
    filters: Optional[str],
) -> dict[str, str]:
    params = {}
    if start:
        params["startDate"] = start
    if end:
        params["endDate"] = end
    if filters:
        params["filters"] = filters
    return params


def _path_params(no_events: bool, exclude: Optional[list[str]]) -> dict[str, str]:
    params = {"includeEvents": "false" if no_events else "true"}
    if exclude:
        params["excludeEventNames"] = json.dumps(exclude)
    return params


def _parse_step_filters(values: Optional[list[str]]) -> dict[str, str]:
    """Parse repeated POSITION=PATTERN options.

    Raises:
        typer.BadParameter: If an option is not POSITION=PATTERN
    """
    step_filters = {}
    for value in values or []:
        position, sep, pattern = value.partition("=")
        if not sep or not position.strip().isdigit():
            raise typer.BadParameter(
                f"Invalid step filter: '{value}'. Use POSITION=PATTERN (e.g., 1=/blog/*)",
                param_hint="--step-filter",
            )
        step_filters[position.strip()] = pattern
    return step_filters


def _format_duration(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s" if minutes else f"{secs}s"


# ==============================================================================
# Commands
# ==============================================================================


def journeys_show(
    site: Annotated[str, typer.Argument(help="Site id")],
    steps: Annotated[int, typer.Option("--steps", "-s", help="Journey length (2-10)")] = 3,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Journeys to return (1-500)")] = 100,
    step_filter: Annotated[
        Optional[list[str]],
        typer.Option("--step-filter", "-f", help="POSITION=PATTERN, 0-based (repeatable)"),
    ] = None,
    no_events: NoEventsOption = False,
    exclude: ExcludeOption = None,
    start: StartOption = None,
    end: EndOption = None,
    filters: FiltersOption = None,
    events_file: EventsFileOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the most common journeys through a site.

    Each session's path is collapsed (consecutive repeats merged) and
    truncated to --steps labels; identical paths are counted together.

    Examples:
        journeys journeys 42
        journeys journeys 42 --steps 4 -f 1=/blog/*
        journeys journeys 42 --no-events --events-file events.jsonl --json
    """
    params = _base_params(start, end, filters)
    params.update(_path_params(no_events, exclude))
    params["steps"] = str(steps)
    params["limit"] = str(limit)
    step_filters = _parse_step_filters(step_filter)
    if step_filters:
        params["stepFilters"] = json.dumps(step_filters)

    with journey_service(site, events_file) as service:
        status, body = service.get_journeys(site, params)
    exit_on_error(status, body, json_output)

    if json_output:
        print_json(body)
        return

    journeys = body["journeys"]
    if not journeys:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No journeys found for site {site}{C.RESET}\n")
        return

    console = Console()
    table = Table(title=f"Top Journeys — site {site}", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Path", justify="left")
    table.add_column("Sessions", justify="right")
    table.add_column("%", justify="right")

    for rank, journey in enumerate(journeys, start=1):
        table.add_row(
            str(rank),
            f" {I.ARROW} ".join(journey["path"]),
            f"{journey['count']:,}",
            f"{journey['percentage']:.1f}",
        )

    print()
    console.print(table)
    print()


def transitions_show(
    site: Annotated[str, typer.Argument(help="Site id")],
    source: Annotated[str, typer.Argument(help="Step label the session leaves")],
    target: Annotated[str, typer.Argument(help="Step label the session reaches later")],
    source_step: Annotated[
        Optional[int], typer.Option("--source-step", help="Required 0-based position of source")
    ] = None,
    target_step: Annotated[
        Optional[int], typer.Option("--target-step", help="Required 0-based position of target")
    ] = None,
    page: Annotated[int, typer.Option("--page", "-p", help="Page number (1-based)")] = 1,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Sessions per page (1-200)")] = 50,
    no_events: NoEventsOption = False,
    exclude: ExcludeOption = None,
    start: StartOption = None,
    end: EndOption = None,
    filters: FiltersOption = None,
    events_file: EventsFileOption = None,
    traits_file: TraitsFileOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show sessions that move from SOURCE to TARGET.

    Sessions are listed newest transition first, with their session summary
    and, where the user is identified, profile traits.

    Examples:
        journeys transitions 42 /pricing /signup
        journeys transitions 42 /pricing /signup --source-step 0 --page 2
    """
    params = _base_params(start, end, filters)
    params.update(_path_params(no_events, exclude))
    params.update(source=source, target=target, page=str(page), limit=str(limit))
    if source_step is not None:
        params["sourceStep"] = str(source_step)
    if target_step is not None:
        params["targetStep"] = str(target_step)

    with journey_service(site, events_file, traits_file) as service:
        status, body = service.get_journey_transition_sessions(site, params)
    exit_on_error(status, body, json_output)

    if json_output:
        print_json(body)
        return

    pagination = body["pagination"]
    console = Console()
    table = Table(
        title=f"{source} {I.ARROW} {target} — site {site}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Session", justify="left")
    table.add_column("Transition", justify="left")
    table.add_column("Steps", justify="right")
    table.add_column("User", justify="left")
    table.add_column("Country", justify="left")
    table.add_column("Device", justify="left")
    table.add_column("Entry", justify="left")
    table.add_column("Exit", justify="left")
    table.add_column("Pageviews", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Traits", justify="left")

    for session in body["data"]:
        traits = session.get("traits") or {}
        table.add_row(
            session["session_id"],
            session["transition_timestamp"] or "—",
            f"{session['source_index']} {I.ARROW} {session['target_index']}",
            session["identified_user_id"] or session["user_id"] or "—",
            session["country"] or "—",
            session["device_type"] or "—",
            session["entry_page"] or "—",
            session["exit_page"] or "—",
            f"{session['pageviews']:,}",
            _format_duration(session["session_duration"]),
            ", ".join(f"{k}={v}" for k, v in sorted(traits.items())) or "—",
        )

    print()
    console.print(table)
    print(
        f"  {C.BOLD}Sessions:{C.RESET}  {pagination['total']:,}   "
        f"{C.DIM}page {pagination['page']} of {pagination['totalPages']}{C.RESET}"
    )
    print()


def step_details_show(
    site: Annotated[str, typer.Argument(help="Site id")],
    step_label: Annotated[str, typer.Argument(help="Step label to drill into")],
    step_index: Annotated[
        Optional[int], typer.Option("--step-index", "-i", help="0-based position of the step")
    ] = None,
    start: StartOption = None,
    end: EndOption = None,
    filters: FiltersOption = None,
    events_file: EventsFileOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show property values and recent events behind one step.

    Examples:
        journeys step-details 42 "event:button_click:signup"
        journeys step-details 42 /blog --step-index 1 --json
    """
    params = _base_params(start, end, filters)
    params["stepLabel"] = step_label
    if step_index is not None:
        params["stepIndex"] = str(step_index)

    with journey_service(site, events_file) as service:
        status, body = service.get_journey_step_event_details(site, params)
    exit_on_error(status, body, json_output)

    if json_output:
        print_json(body)
        return

    console = Console()
    print()
    if body["properties"]:
        props = Table(title=f"Properties — {step_label}", show_header=True, header_style="bold")
        props.add_column("Key", justify="left")
        props.add_column("Value", justify="left")
        props.add_column("Count", justify="right")
        for key, values in body["properties"].items():
            for i, entry in enumerate(values):
                props.add_row(key if i == 0 else "", entry["value"], f"{entry['count']:,}")
        console.print(props)
    else:
        print(f"  {C.DIM}No event properties recorded for this step.{C.RESET}")

    events = Table(title=f"Recent Events — {step_label}", show_header=True, header_style="bold")
    events.add_column("Time", justify="left")
    events.add_column("Session", justify="left")
    events.add_column("User", justify="left")
    for event in body["events"]:
        events.add_row(
            event["timestamp"],
            event["session_id"],
            event["identified_user_id"] or event["user_id"] or "—",
        )
    console.print(events)
    print(f"  {C.BOLD}Events shown:{C.RESET}  {len(body['events'])}")
    print()
