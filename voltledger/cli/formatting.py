"""
Report layout for the voltledger commands.

Every report is a banner, a column of labelled rows, and a closing
verdict line. Styling goes through click.style; click.echo drops the
escape codes on its own when the stream is not a terminal, and
set_color(False) turns them off everywhere.
"""

from typing import List, Optional

import click

LABEL_WIDTH = 16
RULE_WIDTH  = 68

_color = True


def set_color(enabled: bool) -> None:
    global _color
    _color = enabled


def paint(text: str, **style) -> str:
    """click.style(text, **style), or text unchanged with color off."""
    return click.style(text, **style) if _color else text


def rule(heavy: bool = False) -> str:
    return "  " + ("═" if heavy else "─") * RULE_WIDTH


def banner(title: str) -> List[str]:
    bar = paint(rule(heavy=True), bold=True)
    return ["", bar, paint(f"  VoltLedger  ·  {title}", bold=True), bar, ""]


def row(label: str, value: str, passed: Optional[bool] = None) -> str:
    """
    One report line. passed=None is a plain info row, True/False
    prefixes an OK/FAIL mark.
    """
    if passed is None:
        mark = " " * 6
    elif passed:
        mark = paint("OK", fg="green") + " " * 4
    else:
        mark = paint("FAIL", fg="red") + "  "
    return f"  {paint(f'{label:<{LABEL_WIDTH}}', dim=True)}  {mark}{value}"


def verdict(ok: bool, text: str) -> List[str]:
    line = paint(f"  {text}", fg="green" if ok else "red", bold=True)
    return [rule(), line, rule(), ""]


def error(message: str) -> None:
    click.echo(paint(f"ERROR: {message}", fg="red"), err=True)
