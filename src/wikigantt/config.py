"""Configuration defaults, env vars, and runtime options for wikigantt."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from wikigantt.calendar import OffDayCalendar


VERSION = "1.0.0"

DEFAULT_COLOR = "8CB6CE"
DEFAULT_OUTPUT = "wikiGantt.xml"

ORPHAN_POLICIES = ("keep", "adopt", "promote", "cascade")
CAPTION_TYPES = ("None", "Resource", "Duration", "Complete")

_HEX_COLOR = re.compile(r"^[0-9A-Fa-f]{6}$")


def normalize_color(value: str | None) -> str | None:
    """Strip a leading ``#`` and surrounding blanks; empty becomes ``None``."""
    if value is None:
        return None
    value = value.strip().lstrip("#")
    return value or None


def is_hex_color(value: str) -> bool:
    return bool(_HEX_COLOR.match(value))


@dataclass
class Config:
    """Per-session options owned by a plan or a conversion run."""

    # Chart
    default_color: str = ""
    off_weekdays: frozenset[int] = field(default_factory=lambda: frozenset({5, 6}))

    # Editing
    orphan_policy: str = "adopt"
    strict_references: bool = True

    # Conversion
    adjust_duration: bool = True
    skip_declaration: bool = False

    # Misc
    verbose: bool = False

    def __post_init__(self) -> None:
        if not self.default_color:
            self.default_color = os.environ.get("WIKIGANTT_DEFAULT_COLOR") or DEFAULT_COLOR
        self.default_color = normalize_color(self.default_color) or DEFAULT_COLOR
        if not is_hex_color(self.default_color):
            raise ValueError(f"Default color must be a 6-digit hex value: {self.default_color!r}")
        if self.orphan_policy not in ORPHAN_POLICIES:
            raise ValueError(
                f"Unknown orphan policy: {self.orphan_policy}. "
                f"Valid policies: {', '.join(ORPHAN_POLICIES)}."
            )
        self.off_weekdays = frozenset(self.off_weekdays)

    def calendar(self) -> OffDayCalendar:
        """Weekly off-day pattern used to derive end dates of edited tasks."""
        return OffDayCalendar(off_weekdays=self.off_weekdays)
