"""Tagged console messages for the wikigantt commands.

``info`` and ``success`` report progress on stdout. ``warn``, ``error`` and
the verbose-only ``debug`` go to stderr; the codec and the converter warn
there about skipped fields, and the positional engine traces its moves.
"""

from __future__ import annotations

from rich.console import Console

console = Console(highlight=False)
_err_console = Console(highlight=False, stderr=True)

_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def info(msg: str) -> None:
    console.print(f"[cyan]\\[info][/cyan] {msg}")


def success(msg: str) -> None:
    console.print(f"[green]\\[done][/green] {msg}")


def warn(msg: str) -> None:
    _err_console.print(f"[yellow]\\[warn][/yellow] {msg}")


def error(msg: str) -> None:
    _err_console.print(f"[red]\\[error][/red] {msg}")


def debug(msg: str) -> None:
    if _verbose:
        _err_console.print(f"[dim]\\[debug] {msg}[/dim]")
