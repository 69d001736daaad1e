"""Quoted data values.

Numbers, booleans and strings are plain Python values. Symbols, the empty
list and cons cells get their own frozen dataclasses so that a quoted string
and a quoted symbol never compare equal.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Symbol:
    """A symbol, either read from source or quoted."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class EmptySExp:
    """The empty list `()`."""


@dataclass(frozen=True)
class CompoundSExp:
    """A cons cell."""

    val1: SExpValue
    val2: SExpValue


type SExpValue = int | float | bool | str | Symbol | EmptySExp | CompoundSExp


def make_list(items: Sequence[SExpValue], tail: SExpValue | None = None) -> SExpValue:
    """Chain `items` into cons cells ending in `tail` (the empty list by default)."""
    result: SExpValue = EmptySExp() if tail is None else tail
    for item in reversed(items):
        result = CompoundSExp(item, result)
    return result


def format_number(value: float) -> str:
    """Render a number without a trailing `.0` for integral floats."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def quote_string(value: str) -> str:
    """Render a string literal, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def value_to_string(value: SExpValue) -> str:
    """Render a quoted value in surface syntax."""
    match value:
        case bool():
            return "#t" if value else "#f"
        case int() | float():
            return format_number(value)
        case str():
            return quote_string(value)
        case Symbol(name=name):
            return name
        case EmptySExp():
            return "()"
        case CompoundSExp():
            return f"({_compound_to_string(value)})"
    msg = f"Unknown quoted value: {value!r}"
    raise TypeError(msg)


def _compound_to_string(cell: CompoundSExp) -> str:
    parts = [value_to_string(cell.val1)]
    rest = cell.val2
    while isinstance(rest, CompoundSExp):
        parts.append(value_to_string(rest.val1))
        rest = rest.val2
    if not isinstance(rest, EmptySExp):
        parts.extend([".", value_to_string(rest)])
    return " ".join(parts)
