"""Type expressions for L5.

A type expression is one of a closed set of frozen dataclasses. Equality is
plain dataclass equality, so two type expressions are equal exactly when they
have the same shape all the way down, however each was built.

Surface syntax handled by `parse_te` / `unparse_texp`:

    number | boolean | string | void | Empty
    <identifier>                  type variable, e.g. T, T1, literal
    (t1 * t2 * ... -> r)          procedure; `(Empty -> r)` takes no arguments
    (Pair t1 t2)                  pair
"""

from __future__ import annotations

from dataclasses import dataclass, field

from l5check.errors import ParseError
from l5check.sexp import SExp, read, sexp_to_string
from l5check.values import Symbol


@dataclass(frozen=True)
class NumTExp:
    """The type of numbers."""


@dataclass(frozen=True)
class BoolTExp:
    """The type of booleans."""


@dataclass(frozen=True)
class StrTExp:
    """The type of strings."""


@dataclass(frozen=True)
class VoidTExp:
    """The type of statements such as `define` and `display`."""


@dataclass(frozen=True)
class EmptyTupleTExp:
    """The `Empty` marker: no parameters, or a quoted empty list."""


@dataclass(frozen=True)
class TVar:
    """A named type variable. Matched by name, never unified."""

    name: str


@dataclass(frozen=True)
class ProcTExp:
    """A procedure type `(t1 * ... * tn -> r)`."""

    param_tes: tuple[TExp, ...]
    return_te: TExp


@dataclass(frozen=True)
class PairTExp:
    """A pair type `(Pair first second)`."""

    first: TExp
    second: TExp


type AtomicTExp = NumTExp | BoolTExp | StrTExp | VoidTExp | EmptyTupleTExp
type TExp = AtomicTExp | TVar | ProcTExp | PairTExp
"""Union type for type expressions."""

# For isinstance checks, which cannot take the `TExp` alias.
TEXP_CLASSES = (
    NumTExp,
    BoolTExp,
    StrTExp,
    VoidTExp,
    EmptyTupleTExp,
    TVar,
    ProcTExp,
    PairTExp,
)


_ATOMIC_NAMES: dict[str, AtomicTExp] = {
    "number": NumTExp(),
    "boolean": BoolTExp(),
    "string": StrTExp(),
    "void": VoidTExp(),
    "Empty": EmptyTupleTExp(),
}

_ARROW = Symbol("->")
_STAR = Symbol("*")
_PAIR = Symbol("Pair")
_EMPTY = Symbol("Empty")
_RESERVED = frozenset({"->", "*", "Pair", ":", "."})


# =============================================================================
# Parsing: SExp -> TExp
# =============================================================================


def parse_texp(sexp: SExp) -> TExp:
    """Convert a reader tree holding a type annotation into a TExp.

    Raises:
        ParseError: If the tree is not a valid type annotation.

    """
    match sexp:
        case Symbol(name=name) if name in _ATOMIC_NAMES:
            return _ATOMIC_NAMES[name]
        case Symbol(name=name) if name not in _RESERVED:
            return TVar(name)
        case (Symbol(name="Pair"), first, second):
            return PairTExp(parse_texp(first), parse_texp(second))
        case tuple() if _ARROW in sexp:
            return _parse_proc_texp(sexp)
    msg = f"Bad type expression: {sexp_to_string(sexp)}"
    raise ParseError(msg)


def _parse_proc_texp(sexp: tuple[SExp, ...]) -> ProcTExp:
    pos = sexp.index(_ARROW)
    if pos != len(sexp) - 2:
        msg = f"Procedure type needs exactly one return type: {sexp_to_string(sexp)}"
        raise ParseError(msg)
    return ProcTExp(_parse_param_texps(sexp[:pos], sexp), parse_texp(sexp[-1]))


def _parse_param_texps(
    params: tuple[SExp, ...],
    whole: tuple[SExp, ...],
) -> tuple[TExp, ...]:
    if params == (_EMPTY,):
        return ()
    separators = params[1::2]
    texps = params[0::2]
    if (
        not params
        or len(params) % 2 == 0
        or any(s != _STAR for s in separators)
        or _STAR in texps
    ):
        msg = f"Parameter types must be separated by '*': {sexp_to_string(whole)}"
        raise ParseError(msg)
    return tuple(parse_texp(t) for t in texps)


def parse_te(text: str) -> TExp:
    """Parse a type expression from its surface text."""
    return parse_texp(read(text))


# =============================================================================
# Rendering: TExp -> str
# =============================================================================


def unparse_texp(te: TExp) -> str:
    """Render a TExp in the syntax accepted by `parse_te`."""
    match te:
        case NumTExp():
            return "number"
        case BoolTExp():
            return "boolean"
        case StrTExp():
            return "string"
        case VoidTExp():
            return "void"
        case EmptyTupleTExp():
            return "Empty"
        case TVar(name=name):
            return name
        case ProcTExp(param_tes=(), return_te=ret):
            return f"(Empty -> {unparse_texp(ret)})"
        case ProcTExp(param_tes=params, return_te=ret):
            params_str = " * ".join(unparse_texp(p) for p in params)
            return f"({params_str} -> {unparse_texp(ret)})"
        case PairTExp(first=first, second=second):
            return f"(Pair {unparse_texp(first)} {unparse_texp(second)})"
    msg = f"Not a type expression: {te!r}"
    raise TypeError(msg)


# =============================================================================
# Type variables
# =============================================================================


def is_contained_tvar(name: str, te: TExp) -> bool:
    """Check whether the type variable `name` occurs anywhere in `te`."""
    match te:
        case TVar(name=n):
            return n == name
        case ProcTExp(param_tes=params, return_te=ret):
            return any(is_contained_tvar(name, p) for p in params) or is_contained_tvar(
                name,
                ret,
            )
        case PairTExp(first=first, second=second):
            return is_contained_tvar(name, first) or is_contained_tvar(name, second)
        case _:
            return False


def tvar_names(te: TExp) -> set[str]:
    """Collect the names of every type variable occurring in `te`."""
    match te:
        case TVar(name=name):
            return {name}
        case ProcTExp(param_tes=params, return_te=ret):
            return set().union(*(tvar_names(p) for p in params), tvar_names(ret))
        case PairTExp(first=first, second=second):
            return tvar_names(first) | tvar_names(second)
        case _:
            return set()


@dataclass
class TVarFactory:
    """Hands out type variable names that are unique within one check.

    Names in `reserved` (typically those written in the program's own
    annotations) are never handed out.
    """

    reserved: frozenset[str] = frozenset()
    _next_id: int = 1

    def fresh(self, base: str = "T") -> TVar:
        """Create a fresh type variable named after `base`."""
        name = f"{base}_{self._next_id}"
        while name in self.reserved:
            self._next_id += 1
            name = f"{base}_{self._next_id}"
        self._next_id += 1
        return TVar(name)


@dataclass
class _Renamer:
    factory: TVarFactory
    mapping: dict[str, TVar] = field(default_factory=dict)

    def rename(self, te: TExp) -> TExp:
        match te:
            case TVar(name=name):
                if name not in self.mapping:
                    self.mapping[name] = self.factory.fresh(name)
                return self.mapping[name]
            case ProcTExp(param_tes=params, return_te=ret):
                return ProcTExp(tuple(self.rename(p) for p in params), self.rename(ret))
            case PairTExp(first=first, second=second):
                return PairTExp(self.rename(first), self.rename(second))
            case _:
                return te


def rename_tvars(te: TExp, factory: TVarFactory) -> TExp:
    """Replace every type variable in `te` with a fresh one.

    Occurrences of the same name map to the same fresh variable, so
    `(T1 * T2 -> (Pair T1 T2))` keeps its shape.
    """
    return _Renamer(factory).rename(te)
