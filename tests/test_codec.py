"""Tests for wikigantt.codec: the flat XML task-list format."""

from __future__ import annotations

import random
from datetime import date

import pytest

from wikigantt.codec import XML_DECLARATION, decode, encode, encode_chart, encode_document
from wikigantt.config import DEFAULT_COLOR
from wikigantt.errors import MalformedTaskError
from wikigantt.tasks.model import Chart, Prefs, Task
from wikigantt.tasks.tree import apply_placement, insert_at_correct_position

SAMPLE = """
<task>
  <pID>1</pID>
  <pName>Design</pName>
  <pColor>ff0000</pColor>
  <pGroup>1</pGroup>
</task>
<task>
  <pID>2</pID>
  <pName>Sketch</pName>
  <pStart>2024-03-04</pStart>
  <pEnd>2024-03-05</pEnd>
  <pRes>Ann, Bob</pRes>
  <pComp>40</pComp>
  <pParent>1</pParent>
  <pDur>2</pDur>
</task>
<task>
  <pID>3</pID>
  <pName>Review</pName>
  <pStart>2024-03-06</pStart>
  <pMile>1</pMile>
  <pParent>1</pParent>
  <pDepend>2</pDepend>
</task>
<prefs><defcolor>00ff00</defcolor></prefs>
"""


# ═══════════════════════════════════════════════════════════════════
#  decode
# ═══════════════════════════════════════════════════════════════════


class TestDecode:
    def test_fragment(self):
        chart = decode(SAMPLE)
        assert chart.ids() == [1, 2, 3]
        assert chart.options is None
        assert chart.prefs.default_color == "00ff00"

        design, sketch, review = chart.tasks
        assert design.is_group and design.color == "ff0000" and design.start is None
        assert sketch.start == date(2024, 3, 4)
        assert sketch.end == date(2024, 3, 5)
        assert sketch.resources == "Ann, Bob"
        assert sketch.percent_complete == 40
        assert sketch.parent_id == 1
        assert sketch.duration == 2
        assert review.is_milestone and review.end == review.start
        assert review.depends_on == (2,)

    def test_document_with_declaration(self):
        text = (
            f'{XML_DECLARATION}\n<jsgantt option-caption-type="Duration" autolink="0">'
            "<task><pID>1</pID><pName>A</pName></task></jsgantt>"
        )
        chart = decode(text)
        assert chart.ids() == [1]
        assert chart.options == {"option-caption-type": "Duration", "autolink": "0"}

    def test_default_color_when_no_prefs(self):
        assert decode("<task><pID>1</pID><pName>A</pName></task>").prefs.default_color == DEFAULT_COLOR
        assert decode("", default_color="123456").prefs.default_color == "123456"

    def test_empty_input(self):
        chart = decode("")
        assert chart.tasks == []

    def test_zero_parent_and_duration_are_absent(self):
        chart = decode("<task><pID>1</pID><pName>A</pName><pParent>0</pParent><pDur>0</pDur></task>")
        assert chart.tasks[0].parent_id is None
        assert chart.tasks[0].duration is None

    def test_comma_joined_dependencies(self):
        chart = decode("<task><pID>5</pID><pName>A</pName><pDepend>1, 2,3</pDepend></task>")
        assert chart.tasks[0].depends_on == (1, 2, 3)

    def test_bad_optional_field_is_skipped(self, capsys):
        chart = decode("<task><pID>1</pID><pName>A</pName><pStart>soon</pStart><pComp>x</pComp></task>")
        t = chart.tasks[0]
        assert t.start is None
        assert t.percent_complete == 0
        assert "pStart" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "text, message",
        [
            ("<task><pName>A</pName></task>", "task #1: missing <pID>"),
            ("<task><pID>x</pID><pName>A</pName></task>", "not an integer"),
            ("<task><pID>1</pID></task>", "no <pName>"),
            ("<task><pID>1</pID><pName> </pName></task>", "no <pName>"),
            ("<task><pID>1</pID><pName>A</pName></task><task><pID>1</pID><pName>B</pName></task>",
             "task #2: duplicate <pID> 1"),
            ("<task><pID>1</pID>", "not well-formed"),
        ],
    )
    def test_malformed(self, text, message):
        with pytest.raises(MalformedTaskError, match=message):
            decode(text)

    def test_malformed_position(self):
        text = "<task><pID>1</pID><pName>A</pName></task><task><pID>2</pID></task>"
        with pytest.raises(MalformedTaskError) as info:
            decode(text)
        assert info.value.position == 2


# ═══════════════════════════════════════════════════════════════════
#  encode
# ═══════════════════════════════════════════════════════════════════


class TestEncode:
    def test_field_order_and_omissions(self):
        t = Task(id=2, name="Sketch", start=date(2024, 3, 4), end=date(2024, 3, 5), duration=2,
                 color="ff0000", percent_complete=40, parent_id=1, depends_on=(1, 3), resources="Ann")
        text = encode([t], Prefs("00ff00"))
        tags = [line.strip().split(">")[0] + ">" for line in text.splitlines() if line.strip().startswith("<p")]
        assert tags == [
            "<pID>", "<pName>", "<pColor>", "<pStart>", "<pEnd>", "<pRes>", "<pComp>",
            "<pParent>", "<pDepend>", "<pDur>", "<prefs>",
        ]
        assert "<pDepend>1, 3</pDepend>" in text
        assert "<pGroup>" not in text
        assert text.rstrip().endswith("</prefs>")

    def test_group_and_milestone_flags(self):
        text = encode([Task(id=1, name="G", is_group=True), Task(id=2, name="M", start=date(2024, 3, 4),
                                                                 is_milestone=True)])
        assert "<pGroup>1</pGroup>" in text
        assert "<pMile>1</pMile>" in text

    def test_names_are_escaped(self):
        text = encode([Task(id=1, name="R&D <core>")])
        assert "R&amp;D &lt;core&gt;" in text
        assert decode(text).tasks[0].name == "R&D <core>"

    def test_document(self):
        chart = Chart(tasks=[Task(id=1, name="A")], options={"autolink": "0"})
        text = encode_document(chart)
        assert text.startswith(XML_DECLARATION)
        assert '<jsgantt autolink="0">' in text
        assert "\n  <task>" in text

    def test_document_without_declaration_is_compact(self):
        text = encode_document(Chart(tasks=[Task(id=1, name="A")], options={}), declaration=False, pretty=False)
        assert not text.startswith("<?xml")
        assert text.count("\n") == 1

    def test_encode_chart_keeps_shape(self):
        fragment = Chart(tasks=[Task(id=1, name="A")])
        assert encode_chart(fragment).startswith("<task>")
        document = Chart(tasks=[Task(id=1, name="A")], options={"autolink": "0"})
        assert "<jsgantt" in encode_chart(document)


# ═══════════════════════════════════════════════════════════════════
#  Round trip
# ═══════════════════════════════════════════════════════════════════


def _random_chart(rng: random.Random, size: int) -> list[Task]:
    tasks: list[Task] = []
    for task_id in range(1, size + 1):
        groups = [t.id for t in tasks if t.is_group]
        parent = rng.choice(groups + [None]) if groups else None
        start = date(2024, rng.randint(1, 12), rng.randint(1, 28))
        kind = rng.random()
        task = Task(
            id=task_id,
            name=f"Task {task_id} & co",
            start=start,
            end=start,
            duration=rng.randint(1, 5),
            color=rng.choice([None, "8cb6ce", "FF00AA"]),
            percent_complete=rng.randint(0, 100),
            is_group=kind < 0.3,
            is_milestone=0.3 <= kind < 0.4,
            parent_id=parent,
            depends_on=tuple(sorted(rng.sample(range(1, task_id), min(task_id - 1, rng.randint(0, 2))))),
            resources=rng.choice([None, "Ann", "Ann, Bob"]),
        )
        tasks = apply_placement(insert_at_correct_position(tasks, task))
    return tasks


class TestRoundTrip:
    def test_sample(self):
        chart = decode(SAMPLE)
        again = decode(encode(chart.tasks, chart.prefs))
        assert again.tasks == chart.tasks
        assert again.prefs == chart.prefs

    def test_padded_text(self):
        tasks = [Task(id=1, name=" Kickoff ", resources=" Ann"), Task(id=2, name="Review\t", resources="  ")]
        assert decode(encode(tasks)).tasks == tasks
        assert [t.name for t in tasks] == ["Kickoff", "Review"]

    @pytest.mark.parametrize("seed", range(10))
    def test_random_lists(self, seed):
        tasks = _random_chart(random.Random(seed), 25)
        prefs = Prefs("abcdef")
        chart = decode(encode(tasks, prefs))
        assert chart.tasks == tasks
        assert chart.prefs == prefs

    def test_document(self):
        chart = Chart(tasks=_random_chart(random.Random(99), 10), options={"option-caption-type": "None"})
        again = decode(encode_document(chart))
        assert again.tasks == chart.tasks
        assert again.options == chart.options
