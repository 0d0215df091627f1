"""Task, Prefs and Chart data models shared by the codec, the engine and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from wikigantt.config import DEFAULT_COLOR, normalize_color


@dataclass(frozen=True)
class Task:
    """One node of the plan, as an immutable snapshot.

    Field presence depends on the task kind and is settled here:

    * milestone -- ``end == start``, ``duration == 1``, no resources, no
      completion, never a group (milestone wins over group);
    * group -- no ``start``/``end``/``duration``/``percent_complete``;
    * plain -- ``percent_complete`` defaults to 0.
    """

    id: int
    name: str
    start: date | None = None
    end: date | None = None
    duration: int | None = None
    color: str | None = None
    percent_complete: int | None = None
    is_group: bool = False
    is_milestone: bool = False
    parent_id: int | None = None
    depends_on: tuple[int, ...] = ()
    resources: str | None = None

    def __post_init__(self) -> None:
        def put(name: str, value: object) -> None:
            object.__setattr__(self, name, value)

        name = (self.name or "").strip()
        if not name:
            raise ValueError(f"Task {self.id} must have a name")
        put("name", name)
        put("color", normalize_color(self.color))
        put("depends_on", tuple(self.depends_on))
        put("resources", (self.resources or "").strip() or None)

        if self.is_milestone:
            put("is_group", False)
            put("end", self.start)
            put("duration", 1)
            put("resources", None)
            put("percent_complete", None)
        elif self.is_group:
            put("start", None)
            put("end", None)
            put("duration", None)
            put("percent_complete", None)
        elif self.percent_complete is None:
            put("percent_complete", 0)

    @property
    def kind(self) -> str:
        if self.is_milestone:
            return "milestone"
        if self.is_group:
            return "group"
        return "task"

    @property
    def depends_on_id(self) -> int | None:
        """The single predecessor shown and edited by the UI (first of the list)."""
        return self.depends_on[0] if self.depends_on else None

    def effective_color(self, default_color: str) -> str:
        return self.color or default_color


@dataclass
class Prefs:
    """Chart-wide preferences stored after the task records."""

    default_color: str = DEFAULT_COLOR


@dataclass
class Chart:
    """A decoded task list.

    ``options`` holds the ``<jsgantt>`` root attributes when the source was a
    full document and is ``None`` for a bare fragment of records.
    """

    tasks: list[Task] = field(default_factory=list)
    prefs: Prefs = field(default_factory=Prefs)
    options: dict[str, str] | None = None

    def ids(self) -> list[int]:
        return [t.id for t in self.tasks]

    def get_task(self, task_id: int) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def next_id(self) -> int:
        """One past the highest id in the list (1 for an empty list)."""
        return max(self.ids(), default=0) + 1
