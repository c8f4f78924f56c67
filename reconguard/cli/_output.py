"""
Terminal rows shared by the reconguard commands.

    Outcome             ✅  Allowed
    Reason                  roh 0.1 -> 0.35 exceeds ceiling 0.3
"""

import sys

import click

BAR_HEAVY = "═" * 58
LABEL_WIDTH = 16


class _Color:
    """ANSI styling, off unless stdout is a TTY and --no-color is absent."""
    _on: bool = True

    _CODES = {"green": "32", "red": "31", "yellow": "33", "bold": "1", "dim": "2"}

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def _wrap(cls, code: str, s: str) -> str:
        return f"\033[{cls._CODES[code]}m{s}\033[0m" if cls._on else s

    @classmethod
    def green(cls, s: str) -> str:
        return cls._wrap("green", s)

    @classmethod
    def red(cls, s: str) -> str:
        return cls._wrap("red", s)

    @classmethod
    def yellow(cls, s: str) -> str:
        return cls._wrap("yellow", s)

    @classmethod
    def bold(cls, s: str) -> str:
        return cls._wrap("bold", s)

    @classmethod
    def dim(cls, s: str) -> str:
        return cls._wrap("dim", s)


def _row(label: str, mark: str, value: str) -> str:
    return f"  {_Color.dim(label.ljust(LABEL_WIDTH))}  {mark}  {value}"


def row_ok(label: str, value: str) -> str:
    return _row(label, _Color.green("✅"), value)


def row_fail(label: str, value: str) -> str:
    return _row(label, _Color.red("❌"), value)


def row_warn(label: str, value: str) -> str:
    return _row(label, _Color.yellow("⚠️"), value)


def row_info(label: str, value: str) -> str:
    return _row(label, " ", _Color.dim(value))


def banner(title: str) -> None:
    click.echo()
    for line in (BAR_HEAVY, f"ReconGuard  ·  {title}", BAR_HEAVY):
        click.echo(_Color.bold(f"  {line}"))
    click.echo()
