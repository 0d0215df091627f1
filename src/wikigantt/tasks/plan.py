"""TaskPlan: one editing session over a flat task list."""

from __future__ import annotations

import threading
from dataclasses import replace
from enum import Enum
from typing import Iterable

from wikigantt import log
from wikigantt.config import Config
from wikigantt.errors import PositioningInvariantViolation, ValidationError
from wikigantt.tasks.model import Chart, Prefs, Task
from wikigantt.tasks.tree import (
    apply_placement,
    check_flat_invariant,
    compute_subtree_span,
    insert_at_correct_position,
    iter_children,
)
from wikigantt.tasks.validate import TaskDraft, check_references, prepare_task


class OrphanPolicy(str, Enum):
    """What happens to the children of a deleted task."""

    KEEP = "keep"  # children stay put, pointing at the missing id
    ADOPT = "adopt"  # children take over the deleted task's parent
    PROMOTE = "promote"  # children become top-level tasks at the end
    CASCADE = "cascade"  # the whole subtree goes


class TaskPlan:
    """Stateful owner of the task sequence, its prefs and the id counter.

    Usage::

        plan = TaskPlan.from_chart(chart, cfg)
        task = plan.add(TaskDraft(name="Design", start="2024-03-04", duration=3))
        plan.reparent(task.id, 7)     # moves the task and its children under 7
        plan.delete(task.id)          # orphans handled per cfg.orphan_policy
        chart = plan.to_chart()

    Every change is computed on a copy, checked for the flat pre-order
    layout and only then committed; a refused change leaves the plan as it
    was. Mutations are serialized by one lock.
    """

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        cfg: Config | None = None,
        prefs: Prefs | None = None,
        options: dict[str, str] | None = None,
    ) -> None:
        self.cfg = cfg or Config()
        self._lock = threading.RLock()
        self._tasks: list[Task] = []
        self.prefs = Prefs(self.cfg.default_color)
        self.options: dict[str, str] | None = None
        self._next_id = 1
        self.reset(tasks, prefs, options)

    @classmethod
    def from_chart(cls, chart: Chart, cfg: Config | None = None) -> TaskPlan:
        return cls(chart.tasks, cfg, chart.prefs, chart.options)

    def reset(
        self,
        tasks: Iterable[Task] = (),
        prefs: Prefs | None = None,
        options: dict[str, str] | None = None,
    ) -> None:
        """Replace the whole session state; the id counter is reseeded."""
        with self._lock:
            self._tasks = list(tasks)
            self.prefs = prefs or Prefs(self.cfg.default_color)
            self.options = options
            self._next_id = max((t.id for t in self._tasks), default=0) + 1

    # ── queries ──────────────────────────────────────────────────

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._tasks)

    def index_of(self, task_id: int) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        raise ValidationError(f"No task with id {task_id}", field="id")

    def get(self, task_id: int) -> Task:
        return self._tasks[self.index_of(task_id)]

    def children(self, task_id: int | None) -> list[Task]:
        return list(iter_children(self._tasks, task_id))

    def span(self, task_id: int) -> tuple[int, int]:
        """Inclusive index range of the task and all its descendants."""
        return compute_subtree_span(self._tasks, self.index_of(task_id))

    def to_chart(self) -> Chart:
        return Chart(tasks=list(self._tasks), prefs=Prefs(self.prefs.default_color), options=self.options)

    # ── transactions ─────────────────────────────────────────────

    def _commit(self, working: list[Task], action: str) -> None:
        problems = check_flat_invariant(working)
        if problems:
            raise PositioningInvariantViolation(f"{action} would break the task layout: {'; '.join(problems)}")
        self._tasks = working

    def _prepare(self, draft: TaskDraft, task_id: int) -> Task:
        task = prepare_task(
            draft,
            task_id,
            calendar=self.cfg.calendar(),
            default_color=self.prefs.default_color,
        )
        check_references(task, self._tasks, strict=self.cfg.strict_references)
        return task

    def _set_default_color(self, task: Task, enabled: bool) -> None:
        if enabled and task.color:
            self.prefs.default_color = task.color
            log.debug(f"Default color set to {task.color}")

    # ── operations ───────────────────────────────────────────────

    def add(self, draft: TaskDraft, *, set_default_color: bool = False) -> Task:
        """Validate *draft* and append it after the last sibling under its parent."""
        with self._lock:
            task = self._prepare(draft, self._next_id)
            placement = insert_at_correct_position(self._tasks, task)
            self._commit(apply_placement(placement), f"Adding task {task.id}")
            self._next_id += 1
            self._set_default_color(task, set_default_color)
            log.debug(f"Added task {task.id} at position {placement.index}")
            return task

    def edit(self, task_id: int, draft: TaskDraft, *, set_default_color: bool = False) -> Task:
        """Replace a task in place, or move it with its children when its parent changes."""
        with self._lock:
            index = self.index_of(task_id)
            old = self._tasks[index]
            task = self._prepare(draft, task_id)
            self._replace_at(index, old, task)
            self._set_default_color(task, set_default_color)
            return task

    def update(self, task_id: int, **changes: object) -> Task:
        """Edit with only some draft fields changed."""
        with self._lock:
            draft = replace(TaskDraft.from_task(self.get(task_id)), **changes)
            return self.edit(task_id, draft)

    def reparent(self, task_id: int, parent_id: int | None) -> Task:
        """Move a task (and its subtree) under *parent_id*, or to top level with ``None``."""
        with self._lock:
            index = self.index_of(task_id)
            old = self._tasks[index]
            if old.parent_id == parent_id:
                return old
            task = replace(old, parent_id=parent_id)
            check_references(task, self._tasks, strict=self.cfg.strict_references)
            self._replace_at(index, old, task)
            return task

    def _replace_at(self, index: int, old: Task, task: Task) -> None:
        working = list(self._tasks)
        del working[index]
        placement = insert_at_correct_position(working, task, index, old.parent_id)
        self._commit(apply_placement(placement), f"Editing task {task.id}")
        if placement.move is not None:
            log.debug(
                f"Task {task.id} moved from {index} to {placement.index} "
                f"with {placement.move.end - placement.move.start + 1} descendant(s)"
            )

    def delete(self, task_id: int, policy: OrphanPolicy | str | None = None) -> Task:
        """Remove one task; its children are handled per *policy*."""
        try:
            policy = OrphanPolicy(policy or self.cfg.orphan_policy)
        except ValueError:
            raise ValidationError(f"Unknown orphan policy: {policy}", field="orphans") from None
        with self._lock:
            index = self.index_of(task_id)
            task = self._tasks[index]

            if policy is OrphanPolicy.CASCADE:
                first, last = compute_subtree_span(self._tasks, index)
                working = self._tasks[:first] + self._tasks[last + 1 :]
                self._commit(working, f"Deleting task {task_id}")
                log.debug(f"Deleted task {task_id} with {last - first} descendant(s)")
                return task

            working = self._tasks[:index] + self._tasks[index + 1 :]
            if policy is OrphanPolicy.ADOPT:
                working = [
                    replace(t, parent_id=task.parent_id) if t.parent_id == task_id else t
                    for t in working
                ]
            elif policy is OrphanPolicy.PROMOTE:
                working = self._promote_children(working, task)
            self._commit(working, f"Deleting task {task_id}")
            log.debug(f"Deleted task {task_id} (orphans: {policy.value})")
            return task

    @staticmethod
    def _promote_children(working: list[Task], deleted: Task) -> list[Task]:
        orphan_ids = [t.id for t in working if t.parent_id == deleted.id]
        if deleted.parent_id is None:
            return [replace(t, parent_id=None) if t.id in orphan_ids else t for t in working]

        for tid in orphan_ids:
            index = next(i for i, t in enumerate(working) if t.id == tid)
            old = working[index]
            rest = working[:index] + working[index + 1 :]
            placement = insert_at_correct_position(rest, replace(old, parent_id=None), index, deleted.id)
            working = apply_placement(placement)
        return working
