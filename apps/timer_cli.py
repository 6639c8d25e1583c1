from __future__ import annotations

import logging
import signal
from pathlib import Path
from typing import List, Optional

import typer

from apps.live_view import LiveFrame, LiveTicker, SwitchFlash, flash_from_journal, render_live
from config.paths import get_paths
from core.events import FinishActive, RecordLap, StartAll, StartAthlete, SwitchAthlete, now_ts_ms
from core.results import ResultRecord, plain_number
from core.session import SessionError, StartMode, active_record, all_started, unfinished_names
from core.timing.splits import compute_total_time, format_duration, format_optional_duration
from sdk.config import START_MODE_LABELS, load_app_config
from sdk.runtime import CommandOutcome, RaceController
from storage.export import write_csv
from storage.history import distinct_values, filter_results
from storage.json_store import read_jsonl

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Lap timing for coaches.")
athletes_app = typer.Typer(no_args_is_help=True, help="Manage the athlete roster.")
setup_app = typer.Typer(no_args_is_help=True, help="Choose sport, event, distance and start mode.")
race_app = typer.Typer(no_args_is_help=True, help="Run a race.")
history_app = typer.Typer(no_args_is_help=True, help="Browse saved results.")
app.add_typer(athletes_app, name="athletes")
app.add_typer(setup_app, name="setup")
app.add_typer(race_app, name="race")
app.add_typer(history_app, name="history")

PREFIX = "[coachtimer]"


def _configure_logging(verbose: bool, logs_root: Path) -> None:
    logs_root.mkdir(parents=True, exist_ok=True)
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    file_handler = logging.FileHandler(logs_root / "coachtimer.log", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt))
    file_handler.setLevel(logging.INFO)
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(f"{PREFIX} %(levelname)s %(name)s: %(message)s"))
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[console, file_handler],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details to stderr"),
) -> None:
    """Resolve paths and load the current race before any command runs."""

    try:
        paths = get_paths(force_refresh=True)
        paths.verify_writeable()
    except OSError as exc:
        _fail(f"cannot use data directory: {exc}")
    _configure_logging(verbose, paths.logs_root)
    ctx.obj = RaceController.load(paths, load_app_config())


def _fail(message: str) -> None:
    typer.echo(f"{PREFIX} {message}", err=True)
    raise typer.Exit(code=1)


def _ctl(ctx: typer.Context) -> RaceController:
    return ctx.obj


def _require_session(ctx: typer.Context) -> RaceController:
    ctl = _ctl(ctx)
    if ctl.session is None:
        _fail("no race in progress; run `race new` first")
    return ctl


# ----------------------------------------------------------------------
# athletes
# ----------------------------------------------------------------------


@athletes_app.command("list")
def athletes_list(ctx: typer.Context) -> None:
    ctl = _ctl(ctx)
    names = ctl.roster.load()
    if not names:
        typer.echo("Add athletes to begin.")
        return
    selected = set(ctl.setup_store.load().selected_athletes)
    for name in names:
        typer.echo(f"[{'x' if name in selected else ' '}] {name}")


@athletes_app.command("add")
def athletes_add(ctx: typer.Context, name: str = typer.Argument(..., help="Athlete name")) -> None:
    stored = _ctl(ctx).roster.add(name)
    if stored is None:
        _fail(f"not added: {name!r} is empty or already on the roster")
    typer.echo(f"{PREFIX} added {stored}")


@athletes_app.command("rename")
def athletes_rename(ctx: typer.Context, old: str, new: str) -> None:
    if not _ctl(ctx).roster.rename(old, new):
        _fail(f"cannot rename {old!r} to {new!r} (unknown name or name already exists)")
    typer.echo(f"{PREFIX} renamed {old} -> {new}")


@athletes_app.command("remove")
def athletes_remove(
    ctx: typer.Context,
    name: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    if not yes and not typer.confirm(f"Remove {name} from the athlete list?"):
        raise typer.Exit()
    if not _ctl(ctx).roster.remove(name):
        _fail(f"unknown athlete {name!r}")
    typer.echo(f"{PREFIX} removed {name}")


@athletes_app.command("select")
def athletes_select(
    ctx: typer.Context,
    names: List[str] = typer.Argument(..., help="Athletes to (de)select for the next race"),
    off: bool = typer.Option(False, "--off", help="Deselect instead"),
) -> None:
    roster = _ctl(ctx).roster
    for name in names:
        if not roster.set_selected(name, not off):
            _fail(f"unknown athlete {name!r}")
    typer.echo(f"{PREFIX} {'deselected' if off else 'selected'} {', '.join(names)}")


# ----------------------------------------------------------------------
# setup
# ----------------------------------------------------------------------


@setup_app.command("show")
def setup_show(ctx: typer.Context) -> None:
    ctl = _ctl(ctx)
    setup = ctl.setup_store.load()
    distance = ctl.cfg.find_distance(setup.distance_id)
    typer.echo(f"Sport:      {ctl.cfg.sport_label(setup.sport)}")
    typer.echo(f"Event:      {setup.event_type}")
    typer.echo(f"Distance:   {distance.label}")
    typer.echo(f"Start mode: {START_MODE_LABELS[setup.start_mode]}")
    typer.echo(f"Athletes:   {', '.join(setup.selected_athletes) or '(none selected)'}")
    typer.echo("")
    for sport_id, sport in ctl.cfg.sports.items():
        typer.echo(f"{sport_id}: {', '.join(f'{d.id} ({d.label})' for d in sport.distances)}")


@setup_app.command("set")
def setup_set(
    ctx: typer.Context,
    sport: Optional[str] = typer.Option(None, help="Sport id, e.g. cycling or sup"),
    event: Optional[str] = typer.Option(None, help="Event type, e.g. Practice"),
    distance: Optional[str] = typer.Option(None, help="Distance id, e.g. cycling-10k"),
    mode: Optional[StartMode] = typer.Option(None, help="mass or staggered"),
) -> None:
    ctl = _ctl(ctx)
    setup = ctl.setup_store.load()
    update = {}
    if sport is not None:
        if sport not in ctl.cfg.sports:
            _fail(f"unknown sport {sport!r}")
        update["sport"] = sport
        update["distance_id"] = ctl.cfg.distances_for(sport)[0].id
    if event is not None:
        if event not in ctl.cfg.event_types:
            _fail(f"unknown event type {event!r}")
        update["event_type"] = event
    if distance is not None:
        if distance not in {d.id for d in ctl.cfg.distances_for(update.get("sport", setup.sport))}:
            _fail(f"unknown distance {distance!r} for this sport")
        update["distance_id"] = distance
    if mode is not None:
        update["start_mode"] = mode
    ctl.setup_store.save(setup.model_copy(update=update).normalized(ctl.cfg))
    setup_show(ctx)


# ----------------------------------------------------------------------
# race
# ----------------------------------------------------------------------


def _confirm_discard(ctl: RaceController, yes: bool, question: str) -> None:
    if ctl.has_unsaved_results and not yes and not typer.confirm(question):
        raise typer.Exit()


@race_app.command("new")
def race_new(
    ctx: typer.Context,
    laps: Optional[float] = typer.Option(None, help="Custom total laps instead of the chosen distance"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Discard unsaved results without asking"),
) -> None:
    ctl = _ctl(ctx)
    _confirm_discard(ctl, yes, "Start a new race without saving results?")
    try:
        session = ctl.new_session(custom_laps=laps)
    except SessionError as exc:
        _fail(str(exc))
    typer.echo(f"{PREFIX} {session.sport} · {session.event_type} · {session.distance}")
    if session.start_mode is StartMode.MASS:
        typer.echo("Mass start: run `race start` to start everybody.")
    else:
        typer.echo("Staggered start: run `race start NAME` for each athlete.")


def _check(outcome: CommandOutcome, rejected: str) -> None:
    if not outcome.accepted:
        _fail(rejected)


def _announce(ctl: RaceController, outcome: CommandOutcome) -> None:
    if outcome.switched_to:
        flash = SwitchFlash(ctl.cfg.switch_flash_seconds)
        flash.show(outcome.switched_to, now_ts_ms())
        typer.echo(flash.text)
    if outcome.completed:
        typer.echo(f"{PREFIX} all athletes finished")
        _print_results(ctl.draft.records)


@race_app.command("start")
def race_start(ctx: typer.Context, name: Optional[str] = typer.Argument(None, help="Athlete (staggered)")) -> None:
    ctl = _require_session(ctx)
    command = StartAthlete(name=name) if name else StartAll()
    outcome = ctl.dispatch(command)
    _check(outcome, "start rejected (already started, wrong start mode or unknown athlete)")
    if all_started(ctl.session):
        typer.echo(f"{PREFIX} race in progress; timing {ctl.session.active_name}")
    else:
        waiting = [n for n in ctl.session.participants if ctl.session.athlete_timings[n].start_time is None]
        typer.echo(f"{PREFIX} started {name}; waiting for {', '.join(waiting)}")


@race_app.command("lap")
def race_lap(ctx: typer.Context) -> None:
    ctl = _require_session(ctx)
    athlete = active_record(ctl.session)
    outcome = ctl.dispatch(RecordLap())
    _check(outcome, f"lap rejected: {athlete.athlete_name} is {athlete.state.value}")
    split = athlete.last_split_ms or 0
    typer.echo(f"{athlete.athlete_name} lap {athlete.laps_completed}: {format_duration(split)}")
    _announce(ctl, outcome)


@race_app.command("finish")
def race_finish(ctx: typer.Context) -> None:
    ctl = _require_session(ctx)
    athlete = active_record(ctl.session)
    outcome = ctl.dispatch(FinishActive())
    _check(outcome, f"finish rejected for {athlete.athlete_name} ({athlete.laps_completed} laps recorded)")
    total = compute_total_time(athlete.start_time, athlete.finish_time)
    typer.echo(f"{athlete.athlete_name} finished: {format_optional_duration(total)}")
    if not outcome.completed:
        typer.echo(f"Still racing: {', '.join(unfinished_names(ctl.session))}")
    _announce(ctl, outcome)


@race_app.command("next")
def race_next(ctx: typer.Context) -> None:
    ctl = _require_session(ctx)
    outcome = ctl.dispatch(SwitchAthlete(direction=1))
    _check(outcome, "switch rejected")
    _announce(ctl, outcome)


@race_app.command("prev")
def race_prev(ctx: typer.Context) -> None:
    ctl = _require_session(ctx)
    outcome = ctl.dispatch(SwitchAthlete(direction=-1))
    _check(outcome, "switch rejected")
    _announce(ctl, outcome)


@race_app.command("status")
def race_status(ctx: typer.Context) -> None:
    ctl = _require_session(ctx)
    session = ctl.session
    now = now_ts_ms()
    typer.echo(f"{session.sport} · {session.event_type} · {session.distance} · {session.state.value}")
    for name in session.participants:
        record = session.athlete_timings[name]
        marker = "*" if name == session.active_name else " "
        elapsed = record.elapsed_ms(now)
        typer.echo(
            f"{marker} {name:<20} {record.state.value:<12} "
            f"laps {record.laps_completed}/{plain_number(record.total_laps)}  "
            f"{format_duration(elapsed) if elapsed is not None else '--:--.---'}"
        )


def live_frame(ctl: RaceController, now: int) -> Optional[LiveFrame]:
    """Frame for the live view, with the switch notice rebuilt from the journal."""

    session = ctl.session
    if session is None:
        return None
    entries = read_jsonl(ctl.paths.race_journal(session.session_id))
    flash = flash_from_journal(entries, session.participants[0], ctl.cfg.switch_flash_seconds)
    return render_live(session, now, flash)


@race_app.command("watch")
def race_watch(ctx: typer.Context) -> None:
    """Refresh the live timer for the active athlete until Ctrl+C."""

    ctl = _require_session(ctx)
    paths, cfg = ctl.paths, ctl.cfg

    def _render() -> None:
        # re-read the stored race so taps from another terminal show up
        frame = live_frame(RaceController.load(paths, cfg), now_ts_ms())
        if frame is None:
            return
        typer.clear()
        for line in frame.lines():
            typer.echo(line)

    ticker = LiveTicker(_render, hz=cfg.tick_hz)

    def _stop(*_object: object) -> None:
        ticker.stop()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    ticker.start()
    try:
        while ticker.running:
            ticker.wait(0.25)
    finally:
        ticker.stop()


def _print_results(records) -> None:
    if not records:
        typer.echo("No results yet.")
        return
    for result in records:
        typer.echo(result.athlete_name)
        typer.echo(f"  Total: {format_optional_duration(result.total_time_ms)}")
        typer.echo(f"  Average Lap: {format_optional_duration(result.average_lap_ms)}")
        if not result.lap_splits_ms:
            typer.echo("  No lap splits recorded.")
        for idx, split in enumerate(result.lap_splits_ms, start=1):
            typer.echo(f"  Lap {idx}: {format_duration(split)}")
        if result.notes:
            typer.echo(f"  Notes: {result.notes}")


@race_app.command("results")
def race_results(ctx: typer.Context) -> None:
    ctl = _ctl(ctx)
    _print_results(ctl.draft.records if ctl.draft is not None else [])


@race_app.command("notes")
def race_notes(ctx: typer.Context, name: str, text: str) -> None:
    if not _ctl(ctx).set_notes(name, text):
        _fail(f"no unsaved result for {name!r}")
    typer.echo(f"{PREFIX} notes saved for {name}")


@race_app.command("save")
def race_save(ctx: typer.Context) -> None:
    saved = _ctl(ctx).save_results()
    if not saved:
        _fail("nothing to save")
    typer.echo(f"{PREFIX} saved {len(saved)} results to history")


@race_app.command("export")
def race_export(
    ctx: typer.Context,
    out: Path = typer.Option(Path("race-results.csv"), "--out", "-o", help="CSV file to write"),
) -> None:
    ctl = _ctl(ctx)
    if ctl.draft is None or len(ctl.draft) == 0:
        _fail("no results to export")
    typer.echo(f"{PREFIX} wrote {write_csv(ctl.draft.records, out)}")


@race_app.command("log")
def race_log(ctx: typer.Context) -> None:
    """Print the command journal of the current race."""

    ctl = _require_session(ctx)
    for entry in read_jsonl(ctl.paths.race_journal(ctl.session.session_id)):
        cmd = entry.get("command") if isinstance(entry, dict) else None
        if not isinstance(cmd, dict):
            continue
        status = "ok" if entry.get("accepted") else "rejected"
        kind = cmd.get("kind", "?")
        typer.echo(f"{cmd.get('ts_ms', '?')} {kind:<9} {status:<8} active={entry.get('active')}")


@race_app.command("reset")
def race_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Discard unsaved results without asking"),
) -> None:
    ctl = _ctl(ctx)
    _confirm_discard(ctl, yes, "Discard the race without saving results?")
    ctl.reset()
    typer.echo(f"{PREFIX} race cleared")


# ----------------------------------------------------------------------
# history
# ----------------------------------------------------------------------


def _filtered_history(ctl: RaceController, athlete, sport, event) -> List[ResultRecord]:
    return filter_results(ctl.history.load(), athlete=athlete, sport=sport, event_type=event)


@history_app.command("list")
def history_list(
    ctx: typer.Context,
    athlete: Optional[str] = typer.Option(None, help="Only this athlete"),
    sport: Optional[str] = typer.Option(None, help="Only this sport label"),
    event: Optional[str] = typer.Option(None, help="Only this event type"),
) -> None:
    ctl = _ctl(ctx)
    records = _filtered_history(ctl, athlete, sport, event)
    if not records:
        typer.echo("No saved results yet.")
        all_records = ctl.history.load()
        if all_records:
            typer.echo(f"Athletes: {', '.join(distinct_values(all_records, 'athlete_name'))}")
        return
    for r in records:
        typer.echo(
            f"{r.id}  {r.athlete_name} · {r.sport} · {r.event_type} · {r.distance}  "
            f"Total: {format_optional_duration(r.total_time_ms)}"
        )


@history_app.command("delete")
def history_delete(
    ctx: typer.Context,
    result_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    if not yes and not typer.confirm(f"Delete result {result_id}?"):
        raise typer.Exit()
    if not _ctl(ctx).history.delete(result_id):
        _fail(f"no saved result {result_id!r}")
    typer.echo(f"{PREFIX} deleted {result_id}")


@history_app.command("export")
def history_export(
    ctx: typer.Context,
    out: Path = typer.Option(Path("all-results.csv"), "--out", "-o", help="CSV file to write"),
    athlete: Optional[str] = typer.Option(None),
    sport: Optional[str] = typer.Option(None),
    event: Optional[str] = typer.Option(None),
) -> None:
    records = _filtered_history(_ctl(ctx), athlete, sport, event)
    if not records:
        _fail("no saved results to export")
    typer.echo(f"{PREFIX} wrote {write_csv(records, out)}")


if __name__ == "__main__":
    app()
