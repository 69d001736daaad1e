"""Render AST nodes back to L5 surface syntax.

Used for diagnostics: type errors quote the offending sub-expression.
"""

from __future__ import annotations

from collections.abc import Iterable

from l5check.nodes import (
    AppExp,
    Binding,
    BoolExp,
    DefineExp,
    IfExp,
    LetExp,
    LetrecExp,
    LitExp,
    Node,
    NumExp,
    PrimOp,
    ProcExp,
    Program,
    StrExp,
    VarDecl,
    VarRef,
)
from l5check.texp import unparse_texp
from l5check.values import format_number, quote_string, value_to_string


def _join(nodes: Iterable[Node]) -> str:
    return " ".join(unparse(n) for n in nodes)


def unparse(node: Node) -> str:
    """Render an AST node as L5 source text."""
    match node:
        case BoolExp(val=val):
            return "#t" if val else "#f"
        case NumExp(val=val):
            return format_number(val)
        case StrExp(val=val):
            return quote_string(val)
        case PrimOp(op=op):
            return op
        case VarRef(var=var):
            return var
        case VarDecl(var=var, texp=texp):
            return f"({var} : {unparse_texp(texp)})"
        case Binding(var=decl, val=val):
            return f"({unparse(decl)} {unparse(val)})"
        case IfExp(test=test, then=then, alt=alt):
            return f"(if {unparse(test)} {unparse(then)} {unparse(alt)})"
        case ProcExp(args=args, return_te=return_te, body=body):
            return f"(lambda ({_join(args)}) : {unparse_texp(return_te)} {_join(body)})"
        case AppExp(rator=rator, rands=()):
            return f"({unparse(rator)})"
        case AppExp(rator=rator, rands=rands):
            return f"({unparse(rator)} {_join(rands)})"
        case LetExp(bindings=bindings, body=body):
            return f"(let ({_join(bindings)}) {_join(body)})"
        case LetrecExp(bindings=bindings, body=body):
            return f"(letrec ({_join(bindings)}) {_join(body)})"
        case LitExp(val=val):
            return f"'{value_to_string(val)}"
        case DefineExp(var=decl, val=val):
            return f"(define {unparse(decl)} {unparse(val)})"
        case Program(exps=exps):
            return f"(L5 {_join(exps)})"
    msg = f"Unknown node: {node!r}"
    raise TypeError(msg)
