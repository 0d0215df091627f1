"""GanttProject ``.gan`` save file -> jsGantt task list.

GanttProject nests tasks, stores successors instead of predecessors and
counts durations in working days. The conversion flattens the nesting in
document order, inverts the dependency links and stretches every duration
over the project's weekends and holidays so end dates match the original
chart. Ids are shifted up by one because jsGantt cannot handle ``pID=0``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from xml.etree.ElementTree import Element, ParseError, parse

from wikigantt import log
from wikigantt.calendar import WEEKDAY_NAMES, OffDayCalendar, adjust_duration, end_date, parse_date
from wikigantt.config import CAPTION_TYPES, Config, normalize_color
from wikigantt.errors import MalformedTaskError
from wikigantt.tasks.model import Chart, Prefs, Task

# taskLabelRight values of the GanttProject view
CAPTIONS = {
    "taskDates": "Duration",
    "length": "Duration",
    "advancement": "Complete",
    "resources": "Resource",
}

_QUOTES = re.compile(r"['\"]")
_NEWLINES = re.compile(r"\r?\n")


# ── display options ──────────────────────────────────────────────────


@dataclass
class DisplayOptions:
    """Columns and caption of the generated chart."""

    show_responsible: bool = False
    show_duration: bool = False
    show_percent_complete: bool = False
    show_start_date: bool = False
    show_end_date: bool = False
    caption_type: str = "Resource"

    def __post_init__(self) -> None:
        if self.caption_type not in CAPTION_TYPES:
            raise ValueError(
                f"Invalid caption type: {self.caption_type}. "
                f"Available options: {', '.join(CAPTION_TYPES)}"
            )

    @classmethod
    def showing_all(cls, caption_type: str = "Resource") -> DisplayOptions:
        return cls(True, True, True, True, True, caption_type)

    def to_attributes(self) -> dict[str, str]:
        """``<jsgantt>`` root attributes (the plugin spells "precent")."""

        def flag(value: bool) -> str:
            return "1" if value else "0"

        return {
            "option-show-responsible": flag(self.show_responsible),
            "option-show-duration": flag(self.show_duration),
            "option-show-precent-complete": flag(self.show_percent_complete),
            "option-show-start-date": flag(self.show_start_date),
            "option-show-end-date": flag(self.show_end_date),
            "option-caption-type": self.caption_type,
            "autolink": "0",
        }


def display_options_from_view(root: Element) -> DisplayOptions:
    """Copy the visible columns and the right-hand caption of the project view."""
    fields = {f.get("name") for f in root.findall(".//view/field")}
    caption = "None"
    for opt in root.findall(".//view/option"):
        if opt.get("id") == "taskLabelRight":
            caption = CAPTIONS.get(opt.get("value", ""), "None")
            break
    return DisplayOptions(
        show_responsible="Resources" in fields,
        show_duration="Duration" in fields,
        show_percent_complete="Completion" in fields,
        show_start_date="Begin date" in fields,
        show_end_date="End date" in fields,
        caption_type=caption,
    )


# ── project calendar ─────────────────────────────────────────────────


def project_calendar(root: Element) -> OffDayCalendar:
    """Off-days of the project: ``default-week`` flags plus ``calendars/date`` holidays.

    A holiday with an empty ``year`` repeats every year.
    """
    week = root.find(".//default-week")
    if week is None:
        off_weekdays = frozenset({5, 6})
    else:
        off_weekdays = frozenset(
            i for i, name in enumerate(WEEKDAY_NAMES) if week.get(name, "0").strip() not in ("", "0")
        )
        if len(off_weekdays) == len(WEEKDAY_NAMES):
            log.warn("Project marks every weekday as off; using Saturday and Sunday instead")
            off_weekdays = frozenset({5, 6})

    holidays: set[date] = set()
    yearly: set[tuple[int, int]] = set()
    for el in root.findall(".//calendars/date"):
        year = (el.get("year") or "").strip()
        try:
            month = int(el.get("month", ""))
            day = int(el.get("date", ""))
            if year:
                holidays.add(date(int(year), month, day))
            else:
                date(2000, month, day)  # leap year, so Feb 29 passes
                yearly.add((month, day))
        except ValueError:
            log.warn(f"Ignoring holiday with bad date: {dict(el.attrib)}")

    log.debug(
        f"Project calendar: off weekdays {sorted(off_weekdays)}, "
        f"{len(holidays)} holiday(s), {len(yearly)} yearly holiday(s)"
    )
    return OffDayCalendar(off_weekdays=off_weekdays, holidays=frozenset(holidays), yearly_holidays=frozenset(yearly))


# ── task conversion ──────────────────────────────────────────────────


def _clean_name(outline: str, el: Element) -> str:
    name = f"{outline}  {el.get('name', '')}"
    note = el.findtext("notes")
    if note and note.strip():
        name += f"  [Note: {note.strip()}]"
    name = _QUOTES.sub("", name)
    return _NEWLINES.sub(" ", name)


def _int_attr(el: Element, attr: str, task_id: str) -> int:
    raw = (el.get(attr) or "").strip()
    try:
        return int(raw)
    except ValueError:
        raise MalformedTaskError(f"task {task_id} has a bad {attr!r} value: {raw!r}") from None


@dataclass
class _Converter:
    cfg: Config
    calendar: OffDayCalendar
    default_color: str
    # ids are shifted by one; dependencies and resources are filled in later
    tasks: list[Task] = field(default_factory=list)
    seen: set[int] = field(default_factory=set)
    # successor id -> predecessor ids, in encounter order (file ids)
    predecessors: dict[int, list[int]] = field(default_factory=dict)

    def walk(self, elements: list[Element], parent_id: int | None, outline: str) -> None:
        for number, el in enumerate(elements, start=1):
            raw_id = el.get("id")
            if raw_id is None:
                raise MalformedTaskError("task without an id attribute")
            task_id = _int_attr(el, "id", raw_id)
            if task_id in self.seen:
                raise MalformedTaskError(f"duplicate task id {task_id}")
            self.seen.add(task_id)
            num = f"{outline}.{number}" if outline else str(number)
            children = el.findall("task")

            raw_start = (el.get("start") or "").strip()
            try:
                start = parse_date(raw_start)
            except ValueError:
                raise MalformedTaskError(f"task {task_id} has a bad start date: {raw_start!r}") from None

            duration = _int_attr(el, "duration", raw_id)
            if self.cfg.adjust_duration:
                adjusted = adjust_duration(start, duration, self.calendar.is_off_day)
                if adjusted != duration:
                    log.debug(f"Task {task_id}: duration {duration} -> {adjusted} calendar day(s)")
                duration = adjusted

            complete = (el.get("complete") or "").strip()

            self.tasks.append(
                Task(
                    id=task_id + 1,
                    name=_clean_name(num, el),
                    start=start,
                    end=end_date(start, duration),
                    duration=duration,
                    color=normalize_color(el.get("color")) or self.default_color,
                    percent_complete=int(complete) if complete.isdigit() else None,
                    is_group=bool(children),
                    is_milestone=el.get("meeting") == "true",
                    parent_id=None if parent_id is None else parent_id + 1,
                )
            )

            for dep in el.findall("depend"):
                successor = _int_attr(dep, "id", raw_id)
                self.predecessors.setdefault(successor, []).append(task_id)

            if children:
                self.walk(children, task_id, num)


def _resources_by_task(root: Element) -> dict[int, list[str]]:
    names = {r.get("id"): r.get("name", "") for r in root.iter("resource")}
    by_task: dict[int, list[str]] = {}
    for alloc in root.findall(".//allocations/allocation"):
        resource_id = alloc.get("resource-id")
        try:
            task_id = int(alloc.get("task-id", ""))
        except ValueError:
            log.warn(f"Ignoring allocation with bad task id: {dict(alloc.attrib)}")
            continue
        if resource_id not in names:
            log.warn(f"Allocation for task {task_id} names unknown resource {resource_id}")
            continue
        by_task.setdefault(task_id, []).append(names[resource_id])
    return by_task


def load_project(path: Path | str) -> Element:
    """Parse a ``.gan`` file and return its root element."""
    try:
        return parse(str(path)).getroot()
    except ParseError as exc:
        raise MalformedTaskError(f"{path} is not a well-formed GanttProject file ({exc})") from None


def convert_project(
    root: Element,
    cfg: Config | None = None,
    display: DisplayOptions | None = None,
) -> Chart:
    """Build the jsGantt chart for a parsed GanttProject file.

    *display* of ``None`` copies the columns and caption from the project view.
    """
    cfg = cfg or Config()
    tasks_el = root.find("tasks")
    if tasks_el is None:
        tasks_el = root.find(".//tasks")
    top = tasks_el.findall("task") if tasks_el is not None else []

    conv = _Converter(cfg, project_calendar(root), cfg.default_color)
    conv.walk(top, None, "")

    resources = _resources_by_task(root)
    for task_id in set(conv.predecessors) - conv.seen:
        log.warn(f"Dependency on unknown task {task_id} ignored")
    for task_id in set(resources) - conv.seen:
        log.warn(f"Resource allocation for unknown task {task_id} ignored")

    tasks = [
        replace(
            t,
            depends_on=tuple(p + 1 for p in conv.predecessors.get(t.id - 1, ())),
            resources=", ".join(resources.get(t.id - 1, ())) or None,
        )
        for t in conv.tasks
    ]

    display = display or display_options_from_view(root)
    log.debug(f"Converted {len(tasks)} task(s)")
    return Chart(tasks=tasks, prefs=Prefs(cfg.default_color), options=display.to_attributes())
