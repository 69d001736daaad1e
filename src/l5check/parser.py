"""AST builder: reader trees to L5 AST nodes.

    <program> ::= (L5 <exp>+)
    <exp>     ::= <define> | <cexp>
    <define>  ::= (define <var-decl> <cexp>)
    <cexp>    ::= <number> | <boolean> | <string> | <prim-op> | <var-ref>
                | (if <cexp> <cexp> <cexp>)
                | (lambda (<var-decl>*) : <texp> <cexp>+)
                | (let (<binding>*) <cexp>+)
                | (letrec (<binding>*) <cexp>+)
                | (quote <datum>) | '<datum>
                | (<cexp> <cexp>*)
    <var-decl> ::= (<var> : <texp>)
    <binding>  ::= (<var-decl> <cexp>)
"""

from __future__ import annotations

from collections.abc import Callable

from l5check.errors import ParseError
from l5check.nodes import (
    AppExp,
    Binding,
    BoolExp,
    CExp,
    DefineExp,
    Exp,
    IfExp,
    LetExp,
    LetrecExp,
    LitExp,
    NumExp,
    PrimOp,
    ProcExp,
    Program,
    StrExp,
    VarDecl,
    VarRef,
)
from l5check.sexp import DOT, SExp, read, sexp_to_string
from l5check.texp import parse_texp
from l5check.values import SExpValue, Symbol, make_list

PRIMITIVE_OPS = frozenset(
    {
        "+", "-", "*", "/", ">", "<", "=",
        "not", "and", "or", "eq?", "string=?",
        "cons", "car", "cdr", "list",
        "pair?", "list?", "number?", "boolean?", "symbol?", "string?",
        "display", "newline",
    },
)  # fmt: skip

KEYWORDS = frozenset({"L5", "define", "if", "lambda", "let", "letrec", "quote"})

_COLON = Symbol(":")


def _fail(message: str, sexp: SExp) -> ParseError:
    return ParseError(f"{message}: {sexp_to_string(sexp)}")


# =============================================================================
# Entry points
# =============================================================================


def parse_l5_program(sexp: SExp) -> Program:
    """Build a Program from `(L5 exp ...)`.

    Raises:
        ParseError: If the tree is not a non-empty L5 program.

    """
    match sexp:
        case (Symbol(name="L5"), *exps) if exps:
            return Program(tuple(parse_l5_exp(e) for e in exps))
        case (Symbol(name="L5"),):
            raise _fail("Program cannot be empty", sexp)
    raise _fail("Program must be of the form (L5 <exp>+)", sexp)


def parse_l5_exp(sexp: SExp) -> Exp:
    """Build an expression, allowing a top-level `define`."""
    match sexp:
        case (Symbol(name="define"), *_):
            return _parse_define(sexp)
    return parse_l5_cexp(sexp)


def parse_l5_cexp(sexp: SExp) -> CExp:
    """Build a non-define expression."""
    if isinstance(sexp, tuple):
        return _parse_compound(sexp)
    return _parse_atomic(sexp)


def parse_l5(text: str) -> Exp:
    """Read and build a single expression from source text."""
    return parse_l5_exp(read(text))


def parse_l5_program_text(text: str) -> Program:
    """Read and build a program from source text."""
    return parse_l5_program(read(text))


# =============================================================================
# Atomic expressions
# =============================================================================


def _parse_atomic(sexp: SExp) -> CExp:
    match sexp:
        case bool():
            return BoolExp(sexp)
        case int() | float():
            return NumExp(sexp)
        case str():
            return StrExp(sexp)
        case Symbol(name=name) if name in PRIMITIVE_OPS:
            return PrimOp(name)
        case Symbol(name=name) if name in KEYWORDS or sexp == DOT:
            raise _fail("Unexpected keyword", sexp)
        case Symbol(name=name):
            return VarRef(name)
    raise _fail("Unexpected atom", sexp)


def _parse_var_decl(sexp: SExp) -> VarDecl:
    match sexp:
        case (Symbol(name=name), Symbol(name=":"), texp):
            if name in KEYWORDS or name in PRIMITIVE_OPS or name == DOT.name:
                raise _fail("Bad variable name", sexp)
            return VarDecl(name, parse_texp(texp))
    raise _fail("Variable declaration must be of the form (<var> : <texp>)", sexp)


# =============================================================================
# Compound expressions
# =============================================================================


def _parse_compound(sexp: tuple[SExp, ...]) -> CExp:
    match sexp:
        case ():
            raise _fail("Empty expression", sexp)
        case (Symbol(name="define"), *_):
            raise _fail("define is only allowed at the top level", sexp)
        case (Symbol(name=name), *_) if name in _SPECIAL_FORMS:
            return _SPECIAL_FORMS[name](sexp)
        case (rator, *rands):
            return AppExp(parse_l5_cexp(rator), tuple(parse_l5_cexp(r) for r in rands))
    raise _fail("Bad expression", sexp)


def _parse_define(sexp: tuple[SExp, ...]) -> DefineExp:
    match sexp:
        case (_, decl, val):
            return DefineExp(_parse_var_decl(decl), parse_l5_cexp(val))
    raise _fail("define must be of the form (define (<var> : <texp>) <cexp>)", sexp)


def _parse_if(sexp: tuple[SExp, ...]) -> IfExp:
    match sexp:
        case (_, test, then, alt):
            return IfExp(parse_l5_cexp(test), parse_l5_cexp(then), parse_l5_cexp(alt))
    raise _fail("Expression not of the form (if <cexp> <cexp> <cexp>)", sexp)


def _parse_body(body: list[SExp], whole: tuple[SExp, ...]) -> tuple[CExp, ...]:
    if not body:
        raise _fail("Body cannot be empty", whole)
    return tuple(parse_l5_cexp(e) for e in body)


def _parse_proc(sexp: tuple[SExp, ...]) -> ProcExp:
    match sexp:
        case (_, tuple() as params, colon, return_te, *body) if colon == _COLON:
            return ProcExp(
                tuple(_parse_var_decl(p) for p in params),
                parse_texp(return_te),
                _parse_body(body, sexp),
            )
    raise _fail(
        "lambda must be of the form (lambda (<var-decl>*) : <texp> <cexp>+)",
        sexp,
    )


def _parse_bindings(bindings: tuple[SExp, ...]) -> tuple[Binding, ...]:
    result = []
    for binding in bindings:
        match binding:
            case (decl, val):
                result.append(Binding(_parse_var_decl(decl), parse_l5_cexp(val)))
            case _:
                raise _fail("Binding must be of the form (<var-decl> <cexp>)", binding)
    return tuple(result)


def _parse_let(sexp: tuple[SExp, ...]) -> LetExp:
    match sexp:
        case (_, tuple() as bindings, *body):
            return LetExp(_parse_bindings(bindings), _parse_body(body, sexp))
    raise _fail("let must be of the form (let (<binding>*) <cexp>+)", sexp)


def _parse_letrec(sexp: tuple[SExp, ...]) -> LetrecExp:
    match sexp:
        case (_, tuple() as bindings, *body):
            return LetrecExp(_parse_bindings(bindings), _parse_body(body, sexp))
    raise _fail("letrec must be of the form (letrec (<binding>*) <cexp>+)", sexp)


def _parse_quote(sexp: tuple[SExp, ...]) -> LitExp:
    match sexp:
        case (_, datum):
            return LitExp(sexp_to_value(datum))
    raise _fail("quote takes exactly one datum", sexp)


_SPECIAL_FORMS: dict[str, Callable[[tuple[SExp, ...]], CExp]] = {
    "if": _parse_if,
    "lambda": _parse_proc,
    "let": _parse_let,
    "letrec": _parse_letrec,
    "quote": _parse_quote,
}


# =============================================================================
# Quoted data
# =============================================================================


def sexp_to_value(sexp: SExp) -> SExpValue:
    """Convert a quoted reader tree into a value, building cons cells for lists."""
    match sexp:
        case (*items, dot, tail) if dot == DOT:
            return make_list([sexp_to_value(i) for i in items], sexp_to_value(tail))
        case tuple():
            return make_list([sexp_to_value(i) for i in sexp])
        case Symbol() if sexp == DOT:
            raise _fail("Unexpected dot", sexp)
    return sexp
