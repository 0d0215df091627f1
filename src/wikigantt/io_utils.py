"""Text file I/O for task lists and project files (UTF-8, newline-terminated)."""

from __future__ import annotations

from pathlib import Path

PathLike = Path | str


def _as_path(path: PathLike) -> Path:
    return path if isinstance(path, Path) else Path(path)


def read_text(path: PathLike) -> str:
    """Read *path* as UTF-8, dropping a byte-order mark if present."""
    return _as_path(path).read_text(encoding="utf-8-sig")


def write_text(path: PathLike, text: str) -> None:
    """Write *text* as UTF-8, ensuring it ends with a newline.

    The file is written to a sibling temp file first and renamed over the
    target so a failed write never leaves a truncated task list behind.
    """
    p = _as_path(path)
    if text and not text.endswith("\n"):
        text += "\n"
    tmp = p.with_name(f".{p.name}.tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(p)
