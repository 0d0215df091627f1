"""Validation of task drafts, task references and whole charts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Sequence, Union

from wikigantt import log
from wikigantt.calendar import OffDayCalendar, add_business_days, parse_date
from wikigantt.config import is_hex_color, normalize_color
from wikigantt.errors import UnknownReferenceError, ValidationError
from wikigantt.tasks.model import Chart, Task
from wikigantt.tasks.tree import check_flat_invariant, compute_subtree_span, descendant_ids

_DATE_RE = re.compile(r"^(19|20|21)\d{2}-(0[1-9]|1[0-2])-(0[1-9]|1\d|2\d|3[01])$")

IdInput = Union[int, str, Sequence[int], None]


@dataclass
class TaskDraft:
    """Unvalidated task input, as typed into a form or passed on the command line."""

    name: str = ""
    start: str | date | None = None
    duration: int | str | None = 1
    percent_complete: int | str | None = 0
    color: str | None = None
    resources: str | None = None
    is_group: bool = False
    is_milestone: bool = False
    parent_id: int | str | None = None
    depends_on: IdInput = None

    @classmethod
    def from_task(cls, task: Task) -> TaskDraft:
        return cls(
            name=task.name,
            start=task.start,
            duration=task.duration,
            percent_complete=task.percent_complete,
            color=task.color,
            resources=task.resources,
            is_group=task.is_group,
            is_milestone=task.is_milestone,
            parent_id=task.parent_id,
            depends_on=task.depends_on,
        )


def _to_int(value: int | str | None, message: str, field: str) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValidationError(message, field=field) from None


def _to_ids(value: IdInput, field: str) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, int) and not isinstance(value, bool):
        items: list[int | str] = [value]
    elif isinstance(value, str):
        items = [p for p in value.split(",") if p.strip()]
    else:
        items = list(value)
    ids = [_to_int(item, f"{field.capitalize()} must be a task id", field) for item in items]
    return tuple(i for i in ids if i)


def _to_start(value: str | date | None) -> date:
    message = "Please enter the date in 'YYYY-MM-DD' format and make sure it's within bounds"
    if isinstance(value, date):
        if not 1900 <= value.year <= 2199:
            raise ValidationError(message, field="start")
        return value
    text = (value or "").strip()
    if not _DATE_RE.match(text):
        raise ValidationError(message, field="start")
    try:
        return parse_date(text)
    except ValueError:
        raise ValidationError(message, field="start") from None


def prepare_task(
    draft: TaskDraft,
    task_id: int,
    calendar: OffDayCalendar | None = None,
    default_color: str | None = None,
) -> Task:
    """Check *draft* and turn it into a :class:`Task` with id *task_id*.

    Raises :class:`ValidationError` on the first problem found. The end date
    of a plain task is derived from its start and duration in working days.
    """
    name = (draft.name or "").strip()
    if not name:
        raise ValidationError("Task must have a name", field="name")

    is_group = bool(draft.is_group) and not draft.is_milestone
    is_milestone = bool(draft.is_milestone)
    scheduled = not is_group
    plain = not is_group and not is_milestone

    start = _to_start(draft.start) if scheduled else None

    duration = _to_int(draft.duration, "Duration must be a positive integer", "duration") if plain else None
    if plain and (duration is None or duration < 1):
        raise ValidationError("Duration must be a positive integer", field="duration")

    complete = None
    if plain:
        complete = _to_int(
            draft.percent_complete,
            "Percent complete must be an integer between 0 and 100",
            "percent_complete",
        )
    if plain and complete is not None and not 0 <= complete <= 100:
        raise ValidationError(
            "Percent complete must be an integer between 0 and 100", field="percent_complete"
        )

    color = normalize_color(draft.color) or default_color
    if color and not is_hex_color(color):
        raise ValidationError(f"Color must be a 6-digit hex value, got {color!r}", field="color")

    parent_id = _to_int(draft.parent_id, "Parent must be a task id", "parent") or None
    depends_on = _to_ids(draft.depends_on, "dependency")

    end = None
    if plain and start is not None and duration:
        cal = calendar or OffDayCalendar()
        end = add_business_days(start, duration - 1, cal.is_off_day)

    return Task(
        id=task_id,
        name=name,
        start=start,
        end=end,
        duration=duration,
        color=color,
        percent_complete=complete,
        is_group=is_group,
        is_milestone=is_milestone,
        parent_id=parent_id,
        depends_on=depends_on,
        resources=(draft.resources or "").strip() or None,
    )


def _block_ids(task: Task, tasks: Sequence[Task]) -> set[int]:
    """Ids positioned inside *task*'s block, dangling-parent tasks included."""
    index = next((i for i, t in enumerate(tasks) if t.id == task.id), None)
    if index is None or not task.is_group:
        return set()
    first, last = compute_subtree_span(tasks, index)
    return {t.id for t in tasks[first + 1 : last + 1]}


def check_references(task: Task, tasks: Sequence[Task], *, strict: bool = True) -> None:
    """Refuse parent/dependency links that would break the list.

    *tasks* is the current list; *task* may or may not already be in it.
    With *strict* off, unknown ids are only logged.
    """
    by_id = {t.id: t for t in tasks}

    if task.parent_id is not None:
        if task.parent_id == task.id:
            raise ValidationError("A task cannot be its own parent", field="parent")
        parent = by_id.get(task.parent_id)
        if parent is None:
            if strict:
                raise UnknownReferenceError("parent", task.parent_id)
            log.warn(f"Task {task.id}: parent {task.parent_id} not found, placing it at top level")
        elif not parent.is_group:
            raise ValidationError(f"Parent task {parent.id} is not a group", field="parent")
        elif parent.id in descendant_ids(tasks, task.id):
            raise ValidationError(
                f"Task {task.id} cannot be moved under its own descendant {parent.id}", field="parent"
            )
        elif parent.id in _block_ids(task, tasks):
            raise ValidationError(
                f"Task {task.id} cannot be moved under task {parent.id}, which sits inside its block",
                field="parent",
            )

    for dep in task.depends_on:
        if dep == task.id:
            raise ValidationError("A task cannot depend on itself", field="dependency")
        if dep not in by_id:
            if strict:
                raise UnknownReferenceError("dependency", dep)
            log.warn(f"Task {task.id}: dependency {dep} not found")

    if not task.is_group and any(t.parent_id == task.id for t in tasks if t.id != task.id):
        raise ValidationError(
            f"Task {task.id} still has child tasks and must stay a group", field="is_group"
        )


def validate_chart(chart: Chart) -> list[str]:
    """Return every problem found in *chart* (empty when valid)."""
    errors = check_flat_invariant(chart.tasks)
    by_id = {t.id: t for t in chart.tasks}

    for t in chart.tasks:
        label = f"Task {t.id}"
        if t.id < 1:
            errors.append(f"{label}: id must be positive")
        if t.parent_id is not None and t.parent_id != t.id:
            parent = by_id.get(t.parent_id)
            if parent is None:
                errors.append(f"{label}: parent {t.parent_id} does not exist")
            elif not parent.is_group:
                errors.append(f"{label}: parent {t.parent_id} is not a group")
        for dep in t.depends_on:
            if dep not in by_id:
                errors.append(f"{label}: dependency {dep} does not exist")
            elif dep == t.id:
                errors.append(f"{label}: depends on itself")
        if t.percent_complete is not None and not 0 <= t.percent_complete <= 100:
            errors.append(f"{label}: completion {t.percent_complete} is outside 0-100")
        if t.duration is not None and t.duration < 1:
            errors.append(f"{label}: duration must be positive")
        if t.start and t.end and t.end < t.start:
            errors.append(f"{label}: ends before it starts")
        if t.color and not is_hex_color(t.color):
            errors.append(f"{label}: color {t.color!r} is not a hex value")
    return errors


def validate_and_report(chart: Chart) -> bool:
    """Validate and print problems. Returns ``True`` if the chart is valid."""
    errors = validate_chart(chart)
    if errors:
        log.error("Task list validation failed:")
        for err in errors:
            log.console.print(f"  - {err}")
        return False
    log.success(f"Task list is valid ({len(chart.tasks)} tasks)")
    return True
