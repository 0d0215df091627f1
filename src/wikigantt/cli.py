"""wikigantt CLI: convert GanttProject files and edit jsGantt task lists.

Installed as ``wikigantt`` console_script via pipx / pip.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click

from rich.markup import escape

from wikigantt import __version__
from wikigantt.config import CAPTION_TYPES, DEFAULT_OUTPUT, ORPHAN_POLICIES, Config
from wikigantt.errors import PositioningInvariantViolation, WikiGanttError
from wikigantt.io_utils import read_text, write_text

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

# Exit code for a broken task layout (a bug, not bad input)
EXIT_INTERNAL = 3

_existing_file = click.Path(exists=True, dir_okay=False, path_type=Path)


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn domain errors into a logged message and an exit code."""
    from wikigantt import log as glog

    try:
        yield
    except PositioningInvariantViolation as exc:
        glog.error(f"Internal consistency error, nothing was written: {exc}")
        sys.exit(EXIT_INTERNAL)
    except WikiGanttError as exc:
        glog.error(str(exc))
        sys.exit(1)
    except OSError as exc:
        glog.error(f"{exc.filename or 'file'}: {exc.strerror or exc}")
        sys.exit(1)


def _make_config(**kwargs: object) -> Config:
    from wikigantt import log as glog

    try:
        return Config(verbose=glog.is_verbose(), **kwargs)
    except ValueError as exc:
        glog.error(str(exc))
        sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="wikigantt")
def main(verbose: bool) -> None:
    """wikigantt: flat-tree task lists for jsGantt charts.

    Converts GanttProject save files to the jsGantt XML task format and
    edits such task lists while keeping every group followed by its
    children.

    \b
    EXAMPLES:
      wikigantt convert plan.gan                 # -> wikiGantt.xml, view copied from GanttProject
      wikigantt convert -a plan.gan out.xml      # all columns, Resource caption
      wikigantt convert -se --caption None plan.gan
      wikigantt show wikiGantt.xml
      wikigantt add wikiGantt.xml --name Review --start 2024-03-04 --duration 2 --parent 3
      wikigantt edit wikiGantt.xml 5 --parent 8  # moves task 5 and its children under 8
      wikigantt delete wikiGantt.xml 3 --orphans cascade
    """
    from wikigantt import log as glog

    glog.set_verbose(verbose)


# ── Subcommand: convert ──────────────────────────────────────────


@main.command()
@click.argument("input_file", metavar="INPUT", type=_existing_file)
@click.argument("output_file", metavar="[OUTPUT]", required=False, default=DEFAULT_OUTPUT,
                type=click.Path(dir_okay=False, path_type=Path))
@click.option("-a", "--all", "show_all", is_flag=True, help="Display all columns")
@click.option("-r", "--resource", is_flag=True, help='Show "Resource" column')
@click.option("-d", "--duration", is_flag=True, help='Show "Duration" column')
@click.option("-c", "--completion", is_flag=True, help='Show "% Complete" column')
@click.option("-s", "--start", is_flag=True, help='Show "Start Date" column')
@click.option("-e", "--end", is_flag=True, help='Show "End Date" column')
@click.option("--caption", type=click.Choice(CAPTION_TYPES), default=None,
              help="Caption right of each bar (default: Resource)")
@click.option("--skip-declaration/--no-skip-declaration", default=False,
              help="Leave out the XML declaration (also disables pretty printing)")
@click.option("--adjust-duration/--no-adjust-duration", default=True,
              help="Stretch durations over weekends and holidays")
@click.option("-y", "--yes", is_flag=True, help="Replace OUTPUT without asking")
def convert(
    input_file: Path,
    output_file: Path,
    show_all: bool,
    resource: bool,
    duration: bool,
    completion: bool,
    start: bool,
    end: bool,
    caption: str | None,
    skip_declaration: bool,
    adjust_duration: bool,
    yes: bool,
) -> None:
    """Convert a GanttProject savefile to jsGantt XML.

    Without any column or caption option the chart shows the same columns
    and right-side caption as the GanttProject view. Giving any of them
    switches to exactly the columns asked for.

    \b
    --adjust-duration (default): a 2-day task starting on Friday becomes a
    4-day task ending on Monday, so end dates match GanttProject.
    """
    from wikigantt import log as glog
    from wikigantt.codec import encode_document
    from wikigantt.ganttproject import DisplayOptions, convert_project, load_project

    cfg = _make_config(adjust_duration=adjust_duration, skip_declaration=skip_declaration)

    display = None
    if any((show_all, resource, duration, completion, start, end)) or caption is not None:
        display = DisplayOptions(
            show_responsible=resource or show_all,
            show_duration=duration or show_all,
            show_percent_complete=completion or show_all,
            show_start_date=start or show_all,
            show_end_date=end or show_all,
            caption_type=caption or "Resource",
        )

    with _reported_errors():
        chart = convert_project(load_project(input_file), cfg, display)

    if output_file.exists() and not yes:
        if not click.confirm(f"{output_file} already exists. Replace?", default=False):
            glog.error("Aborting; please try running again with a different filename")
            sys.exit(1)

    text = encode_document(chart, declaration=not cfg.skip_declaration, pretty=not cfg.skip_declaration)
    glog.info(f"Writing to {output_file}")
    with _reported_errors():
        write_text(output_file, text)
    glog.success(f"Converted {len(chart.tasks)} task(s)")


# ── Subcommands: show / check ────────────────────────────────────


def _load_chart(path: Path, cfg: Config):
    from wikigantt import log as glog
    from wikigantt.codec import decode

    glog.debug(f"Reading {path}")
    return decode(read_text(path), default_color=cfg.default_color)


@main.command()
@click.argument("file", type=_existing_file)
def show(file: Path) -> None:
    """Print the task list as an indented table."""
    from rich.table import Table

    from wikigantt import log as glog
    from wikigantt.calendar import format_date
    from wikigantt.tasks.tree import depth_map

    cfg = _make_config()
    with _reported_errors():
        chart = _load_chart(file, cfg)

    depths = depth_map(chart.tasks)
    table = Table(title=f"{file.name} (default color #{chart.prefs.default_color})")
    for column in ("ID", "Name", "Kind", "Start", "End", "Days", "%", "Depends", "Resources", "Color"):
        table.add_column(column, justify="right" if column in ("ID", "Days", "%") else "left")

    for t in chart.tasks:
        table.add_row(
            str(t.id),
            "  " * depths[t.id] + escape(t.name),
            t.kind,
            format_date(t.start) if t.start else "",
            format_date(t.end) if t.end else "",
            str(t.duration or ""),
            "" if t.percent_complete is None else str(t.percent_complete),
            ", ".join(map(str, t.depends_on)),
            escape(t.resources or ""),
            t.effective_color(chart.prefs.default_color),
        )
    glog.console.print(table)


@main.command()
@click.argument("file", type=_existing_file)
def check(file: Path) -> None:
    """Validate a task list; exit 1 when problems are found."""
    from wikigantt.tasks.validate import validate_and_report

    cfg = _make_config()
    with _reported_errors():
        chart = _load_chart(file, cfg)
    if not validate_and_report(chart):
        sys.exit(1)


# ── Subcommands: add / edit / delete ─────────────────────────────


def _task_options(func):
    """Field options shared by ``add`` and ``edit``."""
    options = [
        click.option("--name", default=None, help="Task name"),
        click.option("--start", default=None, help="Start date (YYYY-MM-DD)"),
        click.option("--duration", default=None, help="Duration in working days"),
        click.option("--complete", default=None, help="Percent complete (0-100)"),
        click.option("--color", default=None, help="Bar color as hex (e.g. 8CB6CE)"),
        click.option("--resources", default=None, help="Comma-separated names"),
        click.option("--parent", default=None, help="Id of the parent group"),
        click.option("--depends", default=None, help="Id of the predecessor task"),
        click.option("--group/--no-group", default=None, help="Task is a group"),
        click.option("--milestone/--no-milestone", default=None, help="Task is a milestone"),
        click.option("--set-default-color", is_flag=True, help="Also make --color the chart default"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _draft_changes(fields: dict[str, object]) -> dict[str, object]:
    """Map CLI option values onto :class:`TaskDraft` fields, skipping unset ones."""
    names = {
        "name": "name",
        "start": "start",
        "duration": "duration",
        "complete": "percent_complete",
        "color": "color",
        "resources": "resources",
        "parent": "parent_id",
        "depends": "depends_on",
        "group": "is_group",
        "milestone": "is_milestone",
    }
    return {names[k]: v for k, v in fields.items() if k in names and v is not None}


def _load_plan(file: Path):
    from wikigantt.tasks.plan import TaskPlan

    cfg = _make_config()
    return TaskPlan.from_chart(_load_chart(file, cfg), cfg)


def _save_plan(plan, file: Path) -> None:
    from wikigantt import log as glog
    from wikigantt.codec import encode_chart

    write_text(file, encode_chart(plan.to_chart()))
    glog.debug(f"Wrote {len(plan)} task(s) to {file}")


@main.command()
@click.argument("file", type=_existing_file)
@_task_options
def add(file: Path, set_default_color: bool, **fields: object) -> None:
    """Add a task after the last child of its parent."""
    from wikigantt import log as glog
    from wikigantt.tasks.validate import TaskDraft

    with _reported_errors():
        plan = _load_plan(file)
        task = plan.add(TaskDraft(**_draft_changes(fields)), set_default_color=set_default_color)
        _save_plan(plan, file)
    glog.success(f"Added task {task.id}: {escape(task.name)}")


@main.command()
@click.argument("file", type=_existing_file)
@click.argument("task_id", metavar="ID", type=int)
@_task_options
@click.option("--no-parent", is_flag=True, help="Move the task to the top level")
@click.option("--no-depends", is_flag=True, help="Clear the predecessor")
def edit(
    file: Path,
    task_id: int,
    set_default_color: bool,
    no_parent: bool,
    no_depends: bool,
    **fields: object,
) -> None:
    """Change a task; a new parent moves it together with its children."""
    from dataclasses import replace

    from wikigantt import log as glog
    from wikigantt.tasks.validate import TaskDraft

    if no_parent and fields.get("parent") is not None:
        raise click.UsageError("Cannot combine --parent with --no-parent.")
    if no_depends and fields.get("depends") is not None:
        raise click.UsageError("Cannot combine --depends with --no-depends.")

    with _reported_errors():
        plan = _load_plan(file)
        draft = replace(TaskDraft.from_task(plan.get(task_id)), **_draft_changes(fields))
        if no_parent:
            draft.parent_id = None
        if no_depends:
            draft.depends_on = None
        task = plan.edit(task_id, draft, set_default_color=set_default_color)
        _save_plan(plan, file)
    glog.success(f"Updated task {task.id}: {escape(task.name)}")


@main.command()
@click.argument("file", type=_existing_file)
@click.argument("task_id", metavar="ID", type=int)
@click.option("--orphans", type=click.Choice(ORPHAN_POLICIES), default=None,
              help="What to do with the task's children (default: adopt)")
def delete(file: Path, task_id: int, orphans: str | None) -> None:
    """Delete one task."""
    from wikigantt import log as glog

    with _reported_errors():
        plan = _load_plan(file)
        task = plan.delete(task_id, orphans)
        _save_plan(plan, file)
    glog.success(f"Deleted task {task.id}: {escape(task.name)}")
