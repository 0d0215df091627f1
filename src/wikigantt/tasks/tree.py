"""Flat-tree positional engine.

The task list is kept as one flat sequence in pre-order: every group is
followed immediately by the contiguous run of its children and their
descendants. Nothing here builds a real tree. Subtree boundaries are found
with a forward scan that keeps a stack of the group ids currently open::

    [A(g)] [B(g) <A] [x <B] [y <B] [C <A] [D]
      push A  push B   ...    close B  close A

A run closes when a task does not directly follow its own parent; the scan
then pops until the top of the stack is that task's parent again. Every
function takes a sequence and returns a new list, so callers can commit or
throw away the result as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from wikigantt import log
from wikigantt.errors import PositioningInvariantViolation
from wikigantt.tasks.model import Task


@dataclass(frozen=True)
class ChildBlockMove:
    """A child block left behind by a re-parented task.

    ``start``/``end`` are the (inclusive) indices of the old child block and
    ``parent_index`` the new position of the task it belongs to, all in the
    coordinates of the sequence *after* the task was inserted.
    """

    start: int
    end: int
    parent_index: int


@dataclass
class Placement:
    """Result of :func:`insert_at_correct_position`."""

    tasks: list[Task]
    index: int
    move: ChildBlockMove | None = None


def _neighbours(tasks: Sequence[Task], i: int) -> tuple[Task | None, Task | None]:
    prev = tasks[i - 1] if i > 0 else None
    nxt = tasks[i + 1] if i + 1 < len(tasks) else None
    return prev, nxt


def _is_dangling(task: Task, known: set[int | None]) -> bool:
    """True when *task* names a parent that is not in the list.

    Such a task closes nothing: it belongs to whatever block is open where
    it sits, as :func:`check_flat_invariant` reads it.
    """
    return task.parent_id is not None and task.parent_id not in known


def find_subtree_end(tasks: Sequence[Task], start_index: int | None, parent_id: int | None) -> int | None:
    """Return the index of the last task in *parent_id*'s subtree.

    *start_index* must point at a child of *parent_id* (normally its first
    child) or at a task with a dangling parent; otherwise ``None`` is
    returned.
    """
    n = len(tasks)
    if start_index is None or not 0 <= start_index < n:
        return None
    known: set[int | None] = {t.id for t in tasks}
    known.add(parent_id)
    first = tasks[start_index]
    if first.parent_id != parent_id and not _is_dangling(first, known):
        return None

    stack: list[int | None] = [parent_id]
    for i in range(start_index, n):
        cur = tasks[i]
        prev, nxt = _neighbours(tasks, i)

        if _is_dangling(cur, known):
            if nxt is None:
                return i
        elif nxt is None or (prev is not None and prev.id != cur.parent_id):
            while stack and stack[-1] != cur.parent_id:
                item = stack.pop()
                if item == parent_id:
                    if i > 0 and tasks[i - 1].id != parent_id:
                        return i - 1
                    return None
            if nxt is None:
                return i

        if cur.is_group:
            stack.append(cur.id)
    return None


def compute_subtree_span(tasks: Sequence[Task], index: int) -> tuple[int, int]:
    """Inclusive ``(first, last)`` indices of the task at *index* and its descendants."""
    task = tasks[index]
    if not task.is_group:
        return index, index
    end = find_subtree_end(tasks, index + 1, task.id)
    return index, index if end is None else end


def _scan_insertion_point(
    tasks: Sequence[Task],
    parent_id: int | None,
    skip: range = range(0),
) -> int:
    """Index right after the last existing child of *parent_id*.

    Positions in *skip* are ignored by the scan (a child block that is about
    to follow its re-parented owner). Top-level tasks and unknown parents go
    to the end of the list.
    """
    view = [(k, t) for k, t in enumerate(tasks) if k not in skip]
    known: set[int | None] = {t.id for _, t in view}
    stack: list[int] = []
    for i, (k, cur) in enumerate(view):
        prev = view[i - 1][1] if i > 0 else None
        nxt = view[i + 1][1] if i + 1 < len(view) else None

        if _is_dangling(cur, known):
            if nxt is None:
                return len(tasks)
        elif nxt is None or (prev is not None and prev.id != cur.parent_id):
            while stack and stack[-1] != cur.parent_id:
                item = stack.pop()
                if item == parent_id:
                    return k
            if nxt is None:
                return len(tasks)

        if cur.is_group:
            stack.append(cur.id)
    return len(tasks)


def insert_at_correct_position(
    tasks: Sequence[Task],
    task: Task,
    index: int | None = None,
    previous_parent_id: int | None = None,
) -> Placement:
    """Insert *task* so the sequence stays in flat pre-order.

    Without a parent change the task goes to *index* (the position it was
    removed from) or is appended. When the parent changed, the task is
    placed after the last child of its new parent and the returned
    :class:`ChildBlockMove` describes the old child block still sitting at
    *index*; pass it to :func:`relocate_child_block` to bring the children
    along.
    """
    seq = list(tasks)

    if not seq or task.parent_id == previous_parent_id:
        if index is None:
            seq.append(task)
            at = len(seq) - 1
        else:
            at = min(max(index, 0), len(seq))
            seq.insert(at, task)
        return Placement(seq, at)

    if task.parent_id is not None:
        parent = next((t for t in seq if t.id == task.parent_id), None)
        if parent is not None and not parent.is_group:
            raise PositioningInvariantViolation(
                f"Task {task.id} cannot be placed under task {parent.id}: it is not a group"
            )

    # only groups carry a child block
    last_child = find_subtree_end(seq, index, task.id) if task.is_group else None
    block = range(index, last_child + 1) if index is not None and last_child is not None else range(0)

    at = _scan_insertion_point(seq, task.parent_id, skip=block)
    seq.insert(at, task)
    log.debug(f"Task {task.id}: parent {previous_parent_id} -> {task.parent_id}, placed at {at}")

    if not block:
        return Placement(seq, at)

    start, end = block.start, block.stop - 1
    if at <= start:
        start += 1
        end += 1
    return Placement(seq, at, ChildBlockMove(start=start, end=end, parent_index=at))


def relocate_child_block(
    tasks: Sequence[Task],
    start: int,
    end: int,
    destination_after_index: int,
) -> list[Task]:
    """Move the run ``tasks[start:end + 1]`` to just after *destination_after_index*."""
    n = len(tasks)
    if not 0 <= start <= end < n:
        raise PositioningInvariantViolation(f"Child block [{start}, {end}] is outside a list of {n} tasks")
    if not -1 <= destination_after_index < n:
        raise PositioningInvariantViolation(f"Destination {destination_after_index} is outside a list of {n} tasks")
    if start <= destination_after_index <= end:
        raise PositioningInvariantViolation(
            f"Cannot move child block [{start}, {end}] after one of its own tasks ({destination_after_index})"
        )

    seq = list(tasks)
    block = seq[start : end + 1]
    del seq[start : end + 1]

    dest = destination_after_index
    if dest > start:
        dest -= len(block)
    seq[dest + 1 : dest + 1] = block
    log.debug(f"Moved {len(block)} task(s) from [{start}, {end}] to follow index {dest}")
    return seq


def apply_placement(placement: Placement) -> list[Task]:
    """Insert result with its child block (if any) moved after the task."""
    if placement.move is None:
        return placement.tasks
    mv = placement.move
    return relocate_child_block(placement.tasks, mv.start, mv.end, mv.parent_index)


# ── read helpers ─────────────────────────────────────────────────────


def iter_children(tasks: Iterable[Task], parent_id: int | None) -> Iterator[Task]:
    """Direct children of *parent_id* in list order (top level for ``None``)."""
    return (t for t in tasks if t.parent_id == parent_id)


def descendant_ids(tasks: Iterable[Task], task_id: int) -> set[int]:
    """Ids reachable from *task_id* through parent links (order independent)."""
    children: dict[int | None, list[int]] = {}
    for t in tasks:
        children.setdefault(t.parent_id, []).append(t.id)

    found: set[int] = set()
    pending = list(children.get(task_id, []))
    while pending:
        tid = pending.pop()
        if tid in found or tid == task_id:
            continue
        found.add(tid)
        pending.extend(children.get(tid, []))
    return found


def depth_map(tasks: Sequence[Task]) -> dict[int, int]:
    """Nesting depth per task id; orphans and top-level tasks are at depth 0."""
    parents = {t.id: t.parent_id for t in tasks}
    depths: dict[int, int] = {}
    for t in tasks:
        depth = 0
        seen = {t.id}
        pid = t.parent_id
        while pid is not None and pid in parents and pid not in seen:
            seen.add(pid)
            depth += 1
            pid = parents[pid]
        depths[t.id] = depth
    return depths


def check_flat_invariant(tasks: Sequence[Task]) -> list[str]:
    """Return a list of layout problems (empty when the sequence is valid).

    A task is in place when its parent is on the chain of open ancestors at
    its position. Tasks whose parent id is absent from the list are left
    where they are.
    """
    problems: list[str] = []
    ids = [t.id for t in tasks]
    present = set(ids)

    if len(present) != len(ids):
        seen: set[int] = set()
        dupes: set[int] = set()
        for i in ids:
            if i in seen:
                dupes.add(i)
            seen.add(i)
        problems.append(f"Duplicate task id(s): {', '.join(map(str, sorted(dupes)))}")

    stack: list[int] = []
    for idx, t in enumerate(tasks):
        if t.parent_id == t.id:
            problems.append(f"Task {t.id} is its own parent")
            stack = [t.id]
            continue

        if t.parent_id is None:
            stack = [t.id]
        elif t.parent_id not in present:
            stack.append(t.id)
        elif t.parent_id in stack:
            while stack[-1] != t.parent_id:
                stack.pop()
            stack.append(t.id)
        else:
            problems.append(
                f"Task {t.id} at position {idx} is outside the block of its parent {t.parent_id}"
            )
            stack.append(t.id)
    return problems
