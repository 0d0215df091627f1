"""Flat XML task-list codec (jsGantt ``<task>`` records plus ``<prefs>``)."""

from __future__ import annotations

import re
from typing import Iterable
from xml.etree.ElementTree import Element, ParseError, SubElement, fromstring, indent, tostring

from wikigantt import log
from wikigantt.calendar import format_date, parse_date
from wikigantt.config import DEFAULT_COLOR, is_hex_color, normalize_color
from wikigantt.errors import MalformedTaskError
from wikigantt.tasks.model import Chart, Prefs, Task

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")


# ── decoding ─────────────────────────────────────────────────────────


def _text(el: Element, tag: str) -> str | None:
    value = el.findtext(tag)
    if value is None:
        return None
    return value.strip()


def _opt_int(el: Element, tag: str, task_id: int) -> int | None:
    raw = _text(el, tag)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        log.warn(f"Task {task_id}: ignoring <{tag}> value {raw!r} (not an integer)")
        return None


def _opt_date(el: Element, tag: str, task_id: int):
    raw = _text(el, tag)
    if not raw:
        return None
    try:
        return parse_date(raw)
    except ValueError:
        log.warn(f"Task {task_id}: ignoring <{tag}> value {raw!r} (not a YYYY-MM-DD date)")
        return None


def _opt_ids(el: Element, tag: str, task_id: int) -> tuple[int, ...]:
    raw = _text(el, tag)
    if not raw:
        return ()
    ids: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            log.warn(f"Task {task_id}: ignoring <{tag}> entry {part!r} (not an integer)")
            continue
        if value:
            ids.append(value)
    return tuple(ids)


def _decode_task(el: Element, position: int) -> Task:
    raw_id = _text(el, "pID")
    if raw_id is None:
        raise MalformedTaskError("missing <pID>", position=position)
    try:
        task_id = int(raw_id)
    except ValueError:
        raise MalformedTaskError(f"<pID> {raw_id!r} is not an integer", position=position) from None

    name = _text(el, "pName")
    if not name:
        raise MalformedTaskError(f"task {task_id} has no <pName>", position=position)

    return Task(
        id=task_id,
        name=name,
        start=_opt_date(el, "pStart", task_id),
        end=_opt_date(el, "pEnd", task_id),
        duration=_opt_int(el, "pDur", task_id) or None,
        color=_text(el, "pColor"),
        percent_complete=_opt_int(el, "pComp", task_id),
        is_group=el.find("pGroup") is not None,
        is_milestone=bool(_opt_int(el, "pMile", task_id)),
        parent_id=_opt_int(el, "pParent", task_id) or None,
        depends_on=_opt_ids(el, "pDepend", task_id),
        resources=_text(el, "pRes") or None,
    )


def _parse(text: str) -> Element:
    body = _DECLARATION_RE.sub("", text, count=1)
    try:
        return fromstring(f"<root>{body}</root>")
    except ParseError as exc:
        raise MalformedTaskError(f"task list is not well-formed XML ({exc})") from None


def decode(text: str, default_color: str = DEFAULT_COLOR) -> Chart:
    """Parse a task list in document order.

    Accepts a bare run of ``<task>`` records or a whole ``<jsgantt>``
    document. Any record without a usable id or name rejects the whole
    input with :class:`MalformedTaskError`.
    """
    root = _parse(text)

    tasks: list[Task] = []
    seen: set[int] = set()
    for position, el in enumerate(root.iter("task"), start=1):
        task = _decode_task(el, position)
        if task.id in seen:
            raise MalformedTaskError(f"duplicate <pID> {task.id}", position=position)
        seen.add(task.id)
        tasks.append(task)

    prefs = Prefs(default_color=default_color)
    defcolor = normalize_color(root.findtext(".//prefs/defcolor"))
    if defcolor:
        if is_hex_color(defcolor):
            prefs.default_color = defcolor
        else:
            log.warn(f"Ignoring default color {defcolor!r} (not a 6-digit hex value)")

    gantt = root.find("jsgantt")
    options = dict(gantt.attrib) if gantt is not None else None

    log.debug(f"Decoded {len(tasks)} task(s)")
    return Chart(tasks=tasks, prefs=prefs, options=options)


# ── encoding ─────────────────────────────────────────────────────────


def _put(parent: Element, tag: str, value: object) -> None:
    SubElement(parent, tag).text = str(value)


def task_element(task: Task) -> Element:
    """One ``<task>`` record; absent fields are left out."""
    el = Element("task")
    _put(el, "pID", task.id)
    _put(el, "pName", task.name)
    if task.color:
        _put(el, "pColor", task.color)
    if task.start:
        _put(el, "pStart", format_date(task.start))
    if task.end:
        _put(el, "pEnd", format_date(task.end))
    if task.resources:
        _put(el, "pRes", task.resources)
    if task.percent_complete is not None:
        _put(el, "pComp", task.percent_complete)
    if task.is_group:
        _put(el, "pGroup", 1)
    if task.parent_id is not None:
        _put(el, "pParent", task.parent_id)
    if task.depends_on:
        _put(el, "pDepend", ", ".join(str(d) for d in task.depends_on))
    if task.is_milestone:
        _put(el, "pMile", 1)
    if task.duration:
        _put(el, "pDur", task.duration)
    return el


def prefs_element(prefs: Prefs) -> Element:
    el = Element("prefs")
    _put(el, "defcolor", prefs.default_color)
    return el


def _elements(tasks: Iterable[Task], prefs: Prefs) -> list[Element]:
    return [*(task_element(t) for t in tasks), prefs_element(prefs)]


def encode(tasks: Iterable[Task], prefs: Prefs | None = None) -> str:
    """Serialize *tasks* in their current order, followed by the prefs record."""
    parts = []
    for el in _elements(tasks, prefs or Prefs()):
        indent(el, space="\t")
        parts.append(tostring(el, encoding="unicode"))
    return "\n".join(parts) + "\n"


def encode_document(chart: Chart, *, declaration: bool = True, pretty: bool = True) -> str:
    """Serialize *chart* as a ``<jsgantt>`` document carrying ``chart.options``."""
    root = Element("jsgantt", {k: str(v) for k, v in (chart.options or {}).items()})
    root.extend(_elements(chart.tasks, chart.prefs))
    if pretty:
        indent(root, space="  ")
    body = tostring(root, encoding="unicode")
    if declaration:
        return f"{XML_DECLARATION}\n{body}\n"
    return f"{body}\n"


def encode_chart(chart: Chart, **kwargs: bool) -> str:
    """Serialize *chart* in the shape it was read: document or bare fragment."""
    if chart.options is None:
        return encode(chart.tasks, chart.prefs)
    return encode_document(chart, **kwargs)
