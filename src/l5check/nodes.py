"""L5 AST nodes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, dataclass_transform

from l5check.texp import TExp
from l5check.values import SExpValue


@dataclass(frozen=True)
@dataclass_transform(frozen_default=True)
class Node:
    """Base for AST nodes. Subclasses become frozen dataclasses."""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Make every node subclass a frozen dataclass."""
        super().__init_subclass__(**kwargs)
        dataclass(frozen=True)(cls)


# =============================================================================
# Atomic expressions
# =============================================================================


class NumExp(Node):
    val: int | float


class BoolExp(Node):
    val: bool


class StrExp(Node):
    val: str


class PrimOp(Node):
    """Reference to a primitive operator such as `+` or `car`."""

    op: str


class VarRef(Node):
    var: str


# =============================================================================
# Compound expressions
# =============================================================================


class VarDecl(Node):
    """A declaration `(var : texp)`."""

    var: str
    texp: TExp


class Binding(Node):
    """One `((var : texp) val)` entry of a `let` or `letrec`."""

    var: VarDecl
    val: CExp


class IfExp(Node):
    test: CExp
    then: CExp
    alt: CExp


class ProcExp(Node):
    """`(lambda (decl ...) : return_te body ...)`."""

    args: tuple[VarDecl, ...]
    return_te: TExp
    body: tuple[CExp, ...]


class AppExp(Node):
    rator: CExp
    rands: tuple[CExp, ...]


class LetExp(Node):
    bindings: tuple[Binding, ...]
    body: tuple[CExp, ...]


class LetrecExp(Node):
    bindings: tuple[Binding, ...]
    body: tuple[CExp, ...]


class LitExp(Node):
    """A quoted datum."""

    val: SExpValue


class DefineExp(Node):
    var: VarDecl
    val: CExp


class Program(Node):
    """The top-level `(L5 exp ...)` wrapper."""

    exps: tuple[Exp, ...]


type AtomicExp = NumExp | BoolExp | StrExp | PrimOp | VarRef
type CompoundExp = IfExp | ProcExp | AppExp | LetExp | LetrecExp | LitExp
type CExp = AtomicExp | CompoundExp
type Exp = DefineExp | CExp
type Parsed = Exp | Program
