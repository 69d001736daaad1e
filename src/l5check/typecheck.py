"""Type checking for fully-annotated L5 programs.

The checker computes the type of an AST node from its structure and the
annotations it carries; nothing is inferred. Type variables are compared by
name like any other type, so `(T -> T)` only accepts an argument whose type
is literally `T`.

Checking is fail-fast: every typing rule raises `L5TypeError` on the first
violated constraint and the error propagates unchanged to the caller.

Example usage:
    from l5check import check_program_type

    result = check_program_type("(L5 (define (x : number) 5) (+ x 1))")
    assert result.type_str == "number"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import fields

from l5check.errors import L5Error, L5TypeError, TypeCheckResult
from l5check.nodes import (
    AppExp,
    BoolExp,
    DefineExp,
    Exp,
    IfExp,
    LetExp,
    LetrecExp,
    LitExp,
    Node,
    NumExp,
    Parsed,
    PrimOp,
    ProcExp,
    Program,
    StrExp,
    VarRef,
)
from l5check.parser import parse_l5, parse_l5_program_text
from l5check.tenv import (
    ExtendTEnv,
    TEnv,
    apply_tenv,
    combine_envs,
    make_empty_tenv,
    make_extend_tenv,
)
from l5check.texp import (
    TEXP_CLASSES,
    BoolTExp,
    EmptyTupleTExp,
    NumTExp,
    PairTExp,
    ProcTExp,
    StrTExp,
    TExp,
    TVar,
    TVarFactory,
    VoidTExp,
    parse_te,
    rename_tvars,
    tvar_names,
    unparse_texp,
)
from l5check.unparse import unparse
from l5check.values import CompoundSExp, EmptySExp, SExpValue, Symbol

logger = logging.getLogger(__name__)

LITERAL_TVAR = TVar("literal")


def check_equal_type(te1: TExp, te2: TExp, exp: Node) -> bool:
    """Check that two type expressions are structurally equal.

    `exp` is only used to describe where a mismatch happened.

    Raises:
        L5TypeError: If the types differ.

    """
    if te1 == te2:
        return True
    msg = (
        f"Incompatible types: {unparse_texp(te1)} and {unparse_texp(te2)} "
        f"in {unparse(exp)}"
    )
    raise L5TypeError(msg)


# =============================================================================
# Primitive operators
# =============================================================================

_NUM_OP = parse_te("(number * number -> number)")
_NUM_COMP = parse_te("(number * number -> boolean)")
_BOOL_OP = parse_te("(boolean * boolean -> boolean)")
_PREDICATE = parse_te("(T -> boolean)")
_BINARY_PREDICATE = parse_te("(T1 * T2 -> boolean)")

PRIMITIVE_TYPES: dict[str, TExp] = {
    "+": _NUM_OP,
    "-": _NUM_OP,
    "*": _NUM_OP,
    "/": _NUM_OP,
    ">": _NUM_COMP,
    "<": _NUM_COMP,
    "=": _NUM_COMP,
    "and": _BOOL_OP,
    "or": _BOOL_OP,
    "number?": _PREDICATE,
    "boolean?": _PREDICATE,
    "string?": _PREDICATE,
    "list?": _PREDICATE,
    "pair?": _PREDICATE,
    "symbol?": _PREDICATE,
    "not": parse_te("(boolean -> boolean)"),
    "eq?": _BINARY_PREDICATE,
    "string=?": _BINARY_PREDICATE,
    "display": parse_te("(T -> void)"),
    "newline": parse_te("(Empty -> void)"),
    "cons": parse_te("(T1 * T2 -> (Pair T1 T2))"),
    "car": parse_te("((Pair T1 T2) -> T1)"),
    "cdr": parse_te("((Pair T1 T2) -> T2)"),
}


# =============================================================================
# Checker
# =============================================================================


class TypeChecker:
    """Computes the type of L5 expressions.

    An instance carries only the factory used to give each reference to a
    polymorphic primitive its own type variable names, avoiding `reserved`
    ones. Use one instance per check so results do not depend on earlier calls.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        """Initialize a new type checker.

        Args:
            reserved: Type variable names that fresh names must avoid.

        """
        self._tvars = TVarFactory(frozenset(reserved))

    def typeof_exp(self, exp: Parsed, tenv: TEnv) -> TExp:
        """Compute the type of an expression or program in `tenv`."""
        match exp:
            case NumExp():
                return NumTExp()
            case BoolExp():
                return BoolTExp()
            case StrExp():
                return StrTExp()
            case PrimOp():
                return self.typeof_prim(exp)
            case VarRef(var=var):
                return apply_tenv(tenv, var)
            case IfExp():
                return self.typeof_if(exp, tenv)
            case ProcExp():
                return self.typeof_proc(exp, tenv)
            case AppExp():
                return self.typeof_app(exp, tenv)
            case LetExp():
                return self.typeof_let(exp, tenv)
            case LetrecExp():
                return self.typeof_letrec(exp, tenv)
            case DefineExp():
                return self.typeof_define(exp, tenv)
            case LitExp():
                return typeof_lit(exp)
            case Program():
                return self.typeof_program(exp, tenv)
        msg = f"Unknown expression: {exp!r}"
        raise L5TypeError(msg)

    def typeof_exps(self, exps: Sequence[Exp], tenv: TEnv) -> TExp:
        """Type every expression in `tenv` and return the type of the last."""
        if not exps:
            msg = "Unexpected empty list of expressions"
            raise L5TypeError(msg)
        for exp in exps[:-1]:
            self.typeof_exp(exp, tenv)
        return self.typeof_exp(exps[-1], tenv)

    def typeof_prim(self, p: PrimOp) -> TExp:
        """Look up a primitive's signature, with fresh type variables."""
        if (te := PRIMITIVE_TYPES.get(p.op)) is None:
            msg = f"Operator not supported: {p.op}"
            raise L5TypeError(msg)
        return rename_tvars(te, self._tvars)

    # Typing rule:
    #   if type<test>(tenv) = boolean
    #      type<then>(tenv) = t1
    #      type<else>(tenv) = t1
    #   then type<(if test then else)>(tenv) = t1
    def typeof_if(self, if_exp: IfExp, tenv: TEnv) -> TExp:
        """Compute the type of an if-expression."""
        test_te = self.typeof_exp(if_exp.test, tenv)
        check_equal_type(test_te, BoolTExp(), if_exp)
        then_te = self.typeof_exp(if_exp.then, tenv)
        alt_te = self.typeof_exp(if_exp.alt, tenv)
        check_equal_type(then_te, alt_te, if_exp)
        return then_te

    # Typing rule:
    #   if type<body>(extend-tenv(x1=t1,...,xn=tn; tenv)) = t
    #   then type<(lambda ((x1 : t1) ... (xn : tn)) : t body)>(tenv) = (t1 * ... * tn -> t)
    def typeof_proc(self, proc: ProcExp, tenv: TEnv) -> ProcTExp:
        """Compute the type of a lambda from its annotations, checking its body."""
        arg_tes = tuple(decl.texp for decl in proc.args)
        ext_tenv = make_extend_tenv([decl.var for decl in proc.args], arg_tes, tenv)
        body_te = self.typeof_exps(proc.body, ext_tenv)
        check_equal_type(body_te, proc.return_te, proc)
        return ProcTExp(arg_tes, proc.return_te)

    def typeof_app(self, app: AppExp, tenv: TEnv) -> TExp:
        """Compute the type of an application.

        `car`, `cdr` and `cons` get their own rules since their signatures
        only make sense once the pair components are known. Every other
        operator must have a procedure type whose parameter types equal the
        argument types exactly.
        """
        match app.rator:
            case PrimOp(op="car" | "cdr" as op):
                return self._typeof_pair_access(op, app, tenv)
            case PrimOp(op="cons"):
                if len(app.rands) != 2:  # noqa: PLR2004
                    msg = f"cons expects exactly 2 arguments: {unparse(app)}"
                    raise L5TypeError(msg)
                first, second = app.rands
                return PairTExp(self.typeof_exp(first, tenv), self.typeof_exp(second, tenv))

        rator_te = self.typeof_exp(app.rator, tenv)
        if not isinstance(rator_te, ProcTExp):
            msg = (
                f"Application of non-procedure: {unparse_texp(rator_te)} "
                f"in {unparse(app)}"
            )
            raise L5TypeError(msg)
        if len(app.rands) != len(rator_te.param_tes):
            msg = f"Wrong parameter numbers passed to proc: {unparse(app)}"
            raise L5TypeError(msg)
        for rand, param_te in zip(app.rands, rator_te.param_tes, strict=True):
            check_equal_type(self.typeof_exp(rand, tenv), param_te, app)
        return rator_te.return_te

    def _typeof_pair_access(self, op: str, app: AppExp, tenv: TEnv) -> TExp:
        if len(app.rands) != 1:
            msg = f"{op} expects exactly 1 argument: {unparse(app)}"
            raise L5TypeError(msg)
        match self.typeof_exp(app.rands[0], tenv):
            case PairTExp(first=first, second=second):
                return first if op == "car" else second
            case other:
                msg = (
                    f"{op} expected a pair, got {unparse_texp(other)} "
                    f"in {unparse(app)}"
                )
                raise L5TypeError(msg)

    # Typing rule:
    #   if type<val1>(tenv) = t1 ... type<valn>(tenv) = tn
    #      type<body>(extend-tenv(var1=t1,..,varn=tn; tenv)) = t
    #   then type<(let ((var1 val1) .. (varn valn)) body)>(tenv) = t
    def typeof_let(self, exp: LetExp, tenv: TEnv) -> TExp:
        """Compute the type of a let-expression.

        Values are typed in the outer environment, so bindings see neither
        each other nor themselves.
        """
        for binding in exp.bindings:
            val_te = self.typeof_exp(binding.val, tenv)
            check_equal_type(binding.var.texp, val_te, exp)
        body_tenv = make_extend_tenv(
            [b.var.var for b in exp.bindings],
            [b.var.texp for b in exp.bindings],
            tenv,
        )
        return self.typeof_exps(exp.body, body_tenv)

    # Typing rule:
    #   (letrec ((p1 (lambda (x11 ... x1n1) body1)) ...) body)
    #   tenv-body = extend-tenv(p1=(t11*..*t1n1->t1)....; tenv)
    #   tenvi = extend-tenv(xi1=ti1,..,xini=tini; tenv-body)
    #   if type<bodyi>(tenvi) = ti for every i
    #      type<body>(tenv-body) = t
    #   then type<(letrec ...)>(tenv) = t
    def typeof_letrec(self, exp: LetrecExp, tenv: TEnv) -> TExp:
        """Compute the type of a letrec-expression.

        Only procedures may be bound. Each one sees every name bound by the
        letrec, including its own.
        """
        procs = [b.val for b in exp.bindings if isinstance(b.val, ProcExp)]
        if len(procs) != len(exp.bindings):
            msg = f"letrec - only support binding of procedures - {unparse(exp)}"
            raise L5TypeError(msg)
        proc_tes = [ProcTExp(tuple(d.texp for d in p.args), p.return_te) for p in procs]
        tenv_body = make_extend_tenv([b.var.var for b in exp.bindings], proc_tes, tenv)
        for proc, proc_te in zip(procs, proc_tes, strict=True):
            tenv_i = make_extend_tenv(
                [decl.var for decl in proc.args],
                proc_te.param_tes,
                tenv_body,
            )
            check_equal_type(self.typeof_exps(proc.body, tenv_i), proc_te.return_te, exp)
        return self.typeof_exps(exp.body, tenv_body)

    # Typing rule:
    #   if type<val>(tenv) = texp
    #   then type<(define (var : texp) val)>(tenv) = void
    def typeof_define(self, exp: DefineExp, tenv: TEnv) -> VoidTExp:
        """Check a define against its annotation. A define has type void."""
        val_te = self.typeof_exp(exp.val, tenv)
        check_equal_type(exp.var.texp, val_te, exp)
        return VoidTExp()

    def typeof_program(self, program: Program, tenv: TEnv) -> TExp:
        """Compute the type of a program."""
        return self.typeof_sequence(program.exps, tenv)

    def typeof_sequence(self, exps: Sequence[Exp], tenv: TEnv) -> TExp:
        """Type a top-level sequence, letting each define scope over the rest.

        A name that is already bound keeps its first binding when it is
        defined again. The result is the type of the last form.
        """
        if not exps:
            msg = "Empty sequence"
            raise L5TypeError(msg)
        result: TExp = VoidTExp()
        for exp in exps:
            result = self.typeof_exp(exp, tenv)
            if isinstance(exp, DefineExp):
                defined = make_extend_tenv([exp.var.var], [exp.var.texp], tenv)
                tenv = combine_envs(tenv, defined)
        return result


# =============================================================================
# Quoted literals
# =============================================================================


def typeof_sexp_value(val: SExpValue) -> TExp:
    """Classify a quoted value found inside a compound datum."""
    match val:
        case bool():
            return BoolTExp()
        case int() | float():
            return NumTExp()
        case str():
            return StrTExp()
        case Symbol():
            return LITERAL_TVAR
        case EmptySExp():
            return EmptyTupleTExp()
        case CompoundSExp(val1=val1, val2=val2):
            return PairTExp(typeof_sexp_value(val1), typeof_sexp_value(val2))
    msg = f"Unknown SExp value: {val!r}"
    raise L5TypeError(msg)


def typeof_lit(exp: LitExp) -> TExp:
    """Compute the type of a quoted literal.

    Compound data become nested pair types. Any other quoted datum has the
    type variable `literal`.
    """
    if isinstance(exp.val, CompoundSExp):
        return typeof_sexp_value(exp.val)
    return LITERAL_TVAR


# =============================================================================
# Entry points
# =============================================================================


def annotation_tvars(node: Node) -> set[str]:
    """Collect the type variable names written in the annotations under `node`."""
    names: set[str] = set()
    for f in fields(node):
        value = getattr(node, f.name)
        for item in value if isinstance(value, tuple) else (value,):
            if isinstance(item, Node):
                names |= annotation_tvars(item)
            elif isinstance(item, TEXP_CLASSES):
                names |= tvar_names(item)
    return names


def _tenv_tvars(tenv: TEnv) -> set[str]:
    names: set[str] = set()
    while isinstance(tenv, ExtendTEnv):
        for te in tenv.texps:
            names |= tvar_names(te)
        tenv = tenv.tenv
    return names


def typeof_exp(exp: Parsed, tenv: TEnv | None = None) -> TExp:
    """Compute the type of an AST node, in the empty environment by default.

    Fresh type variables never reuse a name that appears in `exp`'s
    annotations or in `tenv`.
    """
    tenv = make_empty_tenv() if tenv is None else tenv
    checker = TypeChecker(reserved=annotation_tvars(exp) | _tenv_tvars(tenv))
    return checker.typeof_exp(exp, tenv)


def l5_typeof(source: str) -> str:
    """Type a single expression given as source text.

    Raises:
        L5Error: On the first reader, parser or type error.

    """
    logger.debug("Typing expression %s", source)
    return unparse_texp(typeof_exp(parse_l5(source)))


def l5_program_typeof(source: str) -> str:
    """Type an `(L5 ...)` program given as source text.

    Raises:
        L5Error: On the first reader, parser or type error.

    """
    logger.debug("Typing program %s", source)
    return unparse_texp(typeof_exp(parse_l5_program_text(source)))


def check_expression_type(source: str) -> TypeCheckResult:
    """Type a single expression, reporting failure as a result value."""
    try:
        return TypeCheckResult.ok(l5_typeof(source))
    except L5Error as err:
        logger.debug("Type check failed: %s", err)
        return TypeCheckResult.failure(err)


def check_program_type(source: str) -> TypeCheckResult:
    """Type an `(L5 ...)` program, reporting failure as a result value."""
    try:
        return TypeCheckResult.ok(l5_program_typeof(source))
    except L5Error as err:
        logger.debug("Type check failed: %s", err)
        return TypeCheckResult.failure(err)
