"""Type environments.

A type environment maps variable names to type expressions:

    <tenv> ::= <empty-tenv> | <extend-tenv>
    <extend-tenv> ::= (vars: tuple[str, ...], texps: tuple[TExp, ...], tenv)

Frames are immutable. Extending shares the enclosing chain instead of
copying it, so an environment can be reused after it has been extended.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from l5check.errors import L5TypeError
from l5check.texp import TExp, is_contained_tvar


@dataclass(frozen=True)
class EmptyTEnv:
    """The terminal environment."""


@dataclass(frozen=True)
class ExtendTEnv:
    """One frame of bindings chained onto an enclosing environment."""

    vars: tuple[str, ...]
    texps: tuple[TExp, ...]
    tenv: TEnv


type TEnv = EmptyTEnv | ExtendTEnv


def make_empty_tenv() -> EmptyTEnv:
    """Create the terminal environment."""
    return EmptyTEnv()


def make_extend_tenv(
    vars: Sequence[str],  # noqa: A002
    texps: Sequence[TExp],
    tenv: TEnv,
) -> ExtendTEnv:
    """Create a frame binding `vars[i]` to `texps[i]` on top of `tenv`.

    The two sequences must have the same length.
    """
    return ExtendTEnv(tuple(vars), tuple(texps), tenv)


def lookup_tenv(tenv: TEnv, name: str) -> TExp | None:
    """Return the nearest binding of `name`, or None if there is none."""
    while isinstance(tenv, ExtendTEnv):
        if name in tenv.vars:
            return tenv.texps[tenv.vars.index(name)]
        tenv = tenv.tenv
    return None


def apply_tenv(tenv: TEnv, name: str) -> TExp:
    """Return the type bound to `name` in the nearest frame that binds it.

    Raises:
        L5TypeError: If no frame binds `name`.

    """
    if (te := lookup_tenv(tenv, name)) is None:
        msg = f"Unbound variable: {name}"
        raise L5TypeError(msg)
    return te


def combine_envs(first: TEnv, second: TEnv) -> TEnv:
    """Fold the top frame of `second` into `first`.

    Bindings already resolvable in `first` win: their counterparts in
    `second` are dropped, not shadowed. If either side is empty the other one
    is returned unchanged.

    Raises:
        L5TypeError: If a variable in `second` has a type that mentions a
            type variable of the same name.

    """
    match first, second:
        case EmptyTEnv(), _:
            return second
        case _, EmptyTEnv():
            return first
        case _, ExtendTEnv(vars=names, texps=texps):
            for name, te in zip(names, texps, strict=True):
                if is_contained_tvar(name, te):
                    msg = f"Variable {name} is defined recursively"
                    raise L5TypeError(msg)
            kept = [
                (name, te)
                for name, te in zip(names, texps, strict=True)
                if lookup_tenv(first, name) is None
            ]
            return make_extend_tenv(
                [name for name, _ in kept],
                [te for _, te in kept],
                first,
            )
    msg = f"Not a type environment: {first!r}, {second!r}"
    raise TypeError(msg)
