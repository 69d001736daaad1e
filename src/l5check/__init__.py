"""l5check - static type checker for the fully-annotated L5 language."""

from l5check.errors import (
    L5Error,
    L5TypeError,
    ParseError,
    ReaderError,
    TypeCheckResult,
)
from l5check.nodes import (
    CExp,
    Exp,
    Node,
    Parsed,
    Program,
)
from l5check.parser import (
    parse_l5,
    parse_l5_exp,
    parse_l5_program,
    parse_l5_program_text,
)
from l5check.sexp import (
    read,
    read_all,
)
from l5check.tenv import (
    EmptyTEnv,
    ExtendTEnv,
    TEnv,
    apply_tenv,
    combine_envs,
    make_empty_tenv,
    make_extend_tenv,
)
from l5check.texp import (
    BoolTExp,
    EmptyTupleTExp,
    NumTExp,
    PairTExp,
    ProcTExp,
    StrTExp,
    TExp,
    TVar,
    VoidTExp,
    parse_te,
    unparse_texp,
)
from l5check.typecheck import (
    TypeChecker,
    check_equal_type,
    check_expression_type,
    check_program_type,
    l5_program_typeof,
    l5_typeof,
    typeof_exp,
)
from l5check.unparse import unparse

__all__ = [
    # Type expressions
    "BoolTExp",
    # AST
    "CExp",
    "EmptyTEnv",
    "EmptyTupleTExp",
    "Exp",
    "ExtendTEnv",
    # Errors
    "L5Error",
    "L5TypeError",
    "Node",
    "NumTExp",
    "PairTExp",
    "ParseError",
    "Parsed",
    "ProcTExp",
    "Program",
    "ReaderError",
    "StrTExp",
    # Type environments
    "TEnv",
    "TExp",
    "TVar",
    # Type checking
    "TypeCheckResult",
    "TypeChecker",
    "VoidTExp",
    "apply_tenv",
    "check_equal_type",
    "check_expression_type",
    "check_program_type",
    "combine_envs",
    "l5_program_typeof",
    "l5_typeof",
    "make_empty_tenv",
    "make_extend_tenv",
    # Parsing
    "parse_l5",
    "parse_l5_exp",
    "parse_l5_program",
    "parse_l5_program_text",
    "parse_te",
    "read",
    "read_all",
    "typeof_exp",
    "unparse",
    "unparse_texp",
]
