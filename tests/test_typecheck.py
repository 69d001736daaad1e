"""Tests for the L5 type checker."""

import pytest

from l5check.errors import L5TypeError, ParseError, ReaderError
from l5check.nodes import AppExp, NumExp, PrimOp
from l5check.parser import parse_l5
from l5check.tenv import make_empty_tenv, make_extend_tenv
from l5check.texp import BoolTExp, NumTExp, PairTExp, ProcTExp, TVar, parse_te
from l5check.typecheck import (
    TypeChecker,
    annotation_tvars,
    check_equal_type,
    check_expression_type,
    check_program_type,
    l5_program_typeof,
    l5_typeof,
    typeof_exp,
)


def type_of(source: str) -> str | None:
    """Type an expression, returning None on failure."""
    return check_expression_type(source).type_str


def type_of_program(source: str) -> str | None:
    """Type a program, returning None on failure."""
    return check_program_type(source).type_str


class TestCheckEqualType:
    """Tests for the structural equality check."""

    def test_equal_types(self) -> None:
        """Test that equal types pass the check."""
        exp = NumExp(1)
        assert check_equal_type(NumTExp(), NumTExp(), exp) is True

    def test_parsed_and_derived_types_are_equal(self) -> None:
        """Test that parsed and computed types compare equal."""
        derived = typeof_exp(parse_l5("(lambda ((x : number)) : boolean (> x 1))"))
        assert check_equal_type(derived, parse_te("(number -> boolean)"), NumExp(1))

    def test_mismatch_message_names_types_and_expression(self) -> None:
        """Test that a mismatch names both types and the expression."""
        exp = parse_l5("(if (> 1 2) #t #f)")
        with pytest.raises(L5TypeError) as info:
            check_equal_type(NumTExp(), BoolTExp(), exp)
        assert str(info.value) == (
            "Incompatible types: number and boolean in (if (> 1 2) #t #f)"
        )


class TestDefinitions:
    """Well-typed definitions have type void."""

    @pytest.mark.parametrize(
        "source",
        [
            "(define (x : boolean) (if (> 1 2) #t #f))",
            "(define (x : number) 5)",
            '(define (s : string) "hello")',
            "(define (x : (number -> number)) (lambda ((x : number)) : number (+ 1 x)))",
            "(define (x : (T -> T)) (lambda ((x : T)) : T x))",
            "(define (foo : (number * number -> number))"
            " (lambda ((x : number) (y : number)) : number (+ x y)))",
            "(define (x : (Empty -> number)) (lambda () : number 1))",
        ],
    )
    def test_well_typed_definition(self, source: str) -> None:
        """Test typing a well-typed definition."""
        assert type_of(source) == "void"

    @pytest.mark.parametrize(
        "source",
        [
            "(define (x : number) #t)",
            "(define (x : boolean) 5)",
            "(define (x : (number -> boolean)) (lambda ((x : number)) : number (+ 1 x)))",
            "(define (x : (number -> number)) (lambda () : number 1))",
            "(define (x : number) (let (((y : number) #t)) y))",
            "(define (x : boolean) (let (((y : number) 5)) y))",
            "(define (x : number) (let (((y : boolean) #t)) (+ y 1)))",
        ],
    )
    def test_ill_typed_definition(self, source: str) -> None:
        """Test that a definition with the wrong value type fails."""
        result = check_expression_type(source)
        assert not result.success
        assert result.type_str is None
        assert result.message


class TestAtomsAndPrimitives:
    """Tests for literals, variables and primitive operators."""

    def test_literals(self) -> None:
        """Test typing literal atoms."""
        assert type_of("5") == "number"
        assert type_of("#f") == "boolean"
        assert type_of('"s"') == "string"

    def test_arithmetic_primitive(self) -> None:
        """Test the signatures of monomorphic primitives."""
        assert type_of("+") == "(number * number -> number)"
        assert type_of("<") == "(number * number -> boolean)"
        assert type_of("and") == "(boolean * boolean -> boolean)"
        assert type_of("newline") == "(Empty -> void)"

    def test_unbound_variable(self) -> None:
        """Test that an unbound variable is reported."""
        with pytest.raises(L5TypeError, match="Unbound variable: x"):
            l5_typeof("x")

    def test_unsupported_operator(self) -> None:
        """Test that list is rejected as unsupported."""
        with pytest.raises(L5TypeError, match="Operator not supported: list"):
            l5_typeof("(list 1 2)")

    def test_polymorphic_primitive_gets_fresh_names(self) -> None:
        """Test that each primitive reference gets fresh names."""
        checker = TypeChecker()
        first = checker.typeof_exp(PrimOp("eq?"), make_empty_tenv())
        second = checker.typeof_exp(PrimOp("eq?"), make_empty_tenv())
        assert isinstance(first, ProcTExp)
        assert isinstance(second, ProcTExp)
        assert first != second
        assert first.param_tes[0] != first.param_tes[1]

    def test_type_variables_are_not_unified(self) -> None:
        """Test that `(T -> T)` rejects a number, since variables match by name."""
        source = "(L5 (define (id : (T -> T)) (lambda ((x : T)) : T x)) (id 5))"
        assert type_of_program(source) is None

    def test_nullary_application(self) -> None:
        """Test applying a procedure of no arguments."""
        assert type_of("(newline)") == "void"

    def test_results_are_deterministic(self) -> None:
        """Test that results do not depend on earlier checks."""
        assert type_of("eq?") == type_of("eq?")
        assert type_of("cons") == "(T1_1 * T2_2 -> (Pair T1_1 T2_2))"

    def test_fresh_names_avoid_annotation_names(self) -> None:
        """Test that `number?` rejects `x : T_1` although `T_1` looks generated."""
        assert type_of("(lambda ((x : T_1)) : boolean (number? x))") is None
        assert type_of("(lambda ((x : T_2)) : boolean (number? x))") is None

    def test_fresh_names_avoid_environment_names(self) -> None:
        """Test that fresh names avoid type variables in the environment."""
        tenv = make_extend_tenv(["x"], [TVar("T_1")], make_empty_tenv())
        app = parse_l5("(number? x)")
        with pytest.raises(L5TypeError, match="Incompatible types"):
            typeof_exp(app, tenv)

    def test_annotation_tvars_walks_nested_nodes(self) -> None:
        """Test that annotation type variables are collected from nested nodes."""
        exp = parse_l5(
            "(let (((f : (A -> number)) (lambda ((x : A)) : number 1))) "
            "(lambda ((p : (Pair B number))) : C p))",
        )
        assert annotation_tvars(exp) == {"A", "B", "C"}


class TestIf:
    """Tests for conditionals."""

    def test_if(self) -> None:
        """Test typing a conditional."""
        assert type_of("(if #t 1 2)") == "number"

    def test_test_must_be_boolean(self) -> None:
        """Test that the if test must be boolean."""
        with pytest.raises(L5TypeError, match="number and boolean"):
            l5_typeof("(if 1 2 3)")

    def test_branches_must_agree(self) -> None:
        """Test that both if branches must have the same type."""
        with pytest.raises(L5TypeError, match="number and string"):
            l5_typeof('(if #t 1 "no")')


class TestApplication:
    """Tests for procedure application."""

    def test_application(self) -> None:
        """Test applying a lambda directly."""
        assert type_of("((lambda ((x : number)) : boolean (> x 0)) 3)") == "boolean"

    def test_wrong_argument_count(self) -> None:
        """Test that the argument count must match."""
        with pytest.raises(L5TypeError, match="Wrong parameter numbers"):
            l5_typeof("(+ 1)")

    def test_wrong_argument_type(self) -> None:
        """Test that argument types must match."""
        with pytest.raises(L5TypeError, match="Incompatible types: boolean and number"):
            l5_typeof("(+ #t 1)")

    def test_non_procedure(self) -> None:
        """Test that applying a non-procedure fails."""
        with pytest.raises(L5TypeError, match="Application of non-procedure: number"):
            l5_typeof("(5 1)")

    def test_application_in_environment(self) -> None:
        """Test applying a procedure bound in the environment."""
        tenv = make_extend_tenv(["f"], [parse_te("(number -> boolean)")], make_empty_tenv())
        exp = AppExp(parse_l5("f"), (NumExp(1),))
        assert typeof_exp(exp, tenv) == BoolTExp()


class TestPairs:
    """Tests for cons, car and cdr."""

    def test_pair_definition(self) -> None:
        """Test defining a pair."""
        assert type_of("(define (p : (Pair number boolean)) (cons 5 #t))") == "void"

    def test_car_and_cdr(self) -> None:
        """Test that car and cdr return the pair components."""
        prog = "(L5 (define (p : (Pair number boolean)) (cons 5 #t)) ({} p))"
        assert type_of_program(prog.format("car")) == "number"
        assert type_of_program(prog.format("cdr")) == "boolean"

    def test_pair_holding_procedure(self) -> None:
        """Test a pair whose component is a procedure."""
        source = (
            "(define (p : (Pair (number -> number) boolean))"
            " (cons (lambda ((x : number)) : number (* x 2)) #t))"
        )
        assert type_of(source) == "void"

    def test_nested_pair(self) -> None:
        """Test typing a nested pair."""
        source = (
            "(L5 (define (p : (Pair number (Pair string boolean)))"
            ' (cons 5 (cons "hello" #t))) (car (cdr p)))'
        )
        assert type_of_program(source) == "string"

    def test_polymorphic_swap(self) -> None:
        """Test a polymorphic pair swap."""
        source = (
            "(define (swap : ((Pair T1 T2) -> (Pair T2 T1)))"
            " (lambda ((p : (Pair T1 T2))) : (Pair T2 T1) (cons (cdr p) (car p))))"
        )
        assert type_of(source) == "void"

    def test_component_mismatch(self) -> None:
        """Test that a pair component mismatch is reported."""
        assert type_of("(define (p : (Pair number boolean)) (cons #t 5))") is None

    def test_misused_components(self) -> None:
        """Test that pair components are used at their own types."""
        base = "(L5 (define (p : (Pair number boolean)) (cons 5 #t)) {})"
        assert type_of_program(base.format("(+ (cdr p) 1)")) is None
        assert type_of_program(base.format("(if (car p) #t #f)")) is None

    @pytest.mark.parametrize("op", ["car", "cdr"])
    def test_access_requires_pair(self, op: str) -> None:
        """Test that car and cdr reject a non-pair argument."""
        with pytest.raises(L5TypeError, match=f"{op} expected a pair"):
            l5_typeof(f"({op} 5)")

    @pytest.mark.parametrize("op", ["car", "cdr"])
    def test_access_requires_one_argument(self, op: str) -> None:
        """Test that car and cdr take exactly one argument."""
        with pytest.raises(L5TypeError, match=f"{op} expects exactly 1 argument"):
            l5_typeof(f"({op} (cons 1 2) (cons 1 2))")

    def test_cons_requires_two_arguments(self) -> None:
        """Test that cons takes exactly two arguments."""
        with pytest.raises(L5TypeError, match="cons expects exactly 2 arguments"):
            l5_typeof("(cons 1)")


class TestLet:
    """Tests for let and letrec."""

    def test_let(self) -> None:
        """Test typing a let expression."""
        assert type_of("(let (((x : number) 1) ((y : boolean) #t)) (if y x 0))") == "number"

    def test_bindings_do_not_see_each_other(self) -> None:
        """Test that let bindings are typed in the outer environment."""
        with pytest.raises(L5TypeError, match="Unbound variable: x"):
            l5_typeof("(let (((x : number) 1) ((y : number) x)) y)")

    def test_let_shadowing_is_local(self) -> None:
        """Test that let shadowing does not escape the body."""
        source = (
            "(L5 (define (x : number) 5)"
            " (define (b : boolean) (let (((x : boolean) #t)) x))"
            " (+ x 1))"
        )
        assert type_of_program(source) == "number"

    def test_letrec_recursion(self) -> None:
        """Test typing a recursive letrec binding."""
        source = (
            "(letrec (((fact : (number -> number))"
            " (lambda ((n : number)) : number (if (= n 0) 1 (* n (fact (- n 1)))))))"
            " (fact 5))"
        )
        assert type_of(source) == "number"

    def test_letrec_mutual_recursion(self) -> None:
        """Test typing mutually recursive letrec bindings."""
        source = (
            "(letrec (((even : (number -> boolean))"
            " (lambda ((n : number)) : boolean (if (= n 0) #t (odd (- n 1)))))"
            " ((odd : (number -> boolean))"
            " (lambda ((n : number)) : boolean (if (= n 0) #f (even (- n 1))))))"
            " (even 4))"
        )
        assert type_of(source) == "boolean"

    @pytest.mark.parametrize("binding", ["5", "f", "(cons 1 2)"])
    def test_letrec_rejects_non_procedures(self, binding: str) -> None:
        """Test that letrec only binds procedures."""
        source = f"(letrec (((f : number) {binding})) 1)"
        with pytest.raises(L5TypeError, match="letrec - only support binding of procedures"):
            l5_typeof(source)

    def test_letrec_body_must_match_return_type(self) -> None:
        """Test that a letrec procedure body must match its return type."""
        source = "(letrec (((f : (number -> number)) (lambda ((n : number)) : number #t))) 1)"
        assert type_of(source) is None


class TestPrograms:
    """Tests for top-level sequences."""

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("(L5 (define (x : number) 5) (+ x 1))", "number"),
            ("(L5 (define (x : boolean) #t) x)", "boolean"),
            ("(L5 (define (x : (Empty -> number)) (lambda () : number 1)) (x))", "number"),
            ("(L5 (define (x : number) 5) (define (y : number) 6) (+ x y))", "number"),
            (
                "(L5 (define (x : (number -> number))"
                " (lambda ((n : number)) : number (+ n 1))) (x 5))",
                "number",
            ),
            (
                "(L5 (define (x : number) (let (((y : number) 5)) (- 0 y))) (+ 7 x))",
                "number",
            ),
        ],
    )
    def test_program(self, source: str, expected: str) -> None:
        """Test typing full programs."""
        assert type_of_program(source) == expected

    def test_later_forms_do_not_leak_backwards(self) -> None:
        """Test that later definitions are not visible to earlier forms."""
        assert type_of_program("(L5 (+ x 1) (define (x : number) 5) x)") is None

    def test_trailing_define_is_void(self) -> None:
        """Test that a program ending in define has type void."""
        assert type_of_program("(L5 (define (x : number) 5))") == "void"

    def test_redefinition_keeps_first_binding(self) -> None:
        """Test that a redefinition keeps the first binding."""
        source = "(L5 (define (x : number) 5) (define (x : boolean) #t) x)"
        assert type_of_program(source) == "number"

    def test_self_referencing_type_is_rejected(self) -> None:
        """Test that a type mentioning its own name is rejected."""
        source = (
            "(L5 (define (y : number) 1)"
            " (define (x : (x -> x)) (lambda ((a : x)) : x a)) 1)"
        )
        with pytest.raises(L5TypeError, match="Variable x is defined recursively"):
            l5_program_typeof(source)

    def test_empty_sequence(self) -> None:
        """Test that an empty sequence is rejected."""
        with pytest.raises(L5TypeError, match="Empty sequence"):
            TypeChecker().typeof_sequence((), make_empty_tenv())


class TestQuotedLiterals:
    """Tests for quoted data."""

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("(L5 (quote (4 . 7)))", "(Pair number number)"),
            ("(L5 '(4 . 7))", "(Pair number number)"),
            ("(L5 '5)", "literal"),
            ("(L5 '(#t . #f))", "(Pair boolean boolean)"),
            ("(L5 '(#t . 10))", "(Pair boolean number)"),
            ("(L5 '(4 . abc))", "(Pair number literal)"),
            ('(L5 \'("a" . 1))', "(Pair string number)"),
            ("(L5 '(1 2))", "(Pair number (Pair number Empty))"),
        ],
    )
    def test_quoted(self, source: str, expected: str) -> None:
        """Test typing quoted data."""
        assert type_of_program(source) == expected

    def test_quoted_atom_is_not_number(self) -> None:
        """Test that a quoted number is a literal, not a number."""
        assert typeof_exp(parse_l5("'5")) == TVar("literal")

    def test_quoted_pair_structure(self) -> None:
        """Test that quoted pairs are typed structurally."""
        assert typeof_exp(parse_l5("'(1 . #t)")) == PairTExp(NumTExp(), BoolTExp())


class TestEntryPoints:
    """Tests for error propagation through the entry points."""

    def test_reader_errors_pass_through(self) -> None:
        """Test that reader errors surface unchanged."""
        with pytest.raises(ReaderError):
            l5_typeof("(+ 1 2")
        result = check_expression_type("(+ 1 2")
        assert not result
        assert "missing right parenthesis" in (result.message or "")

    def test_parse_errors_pass_through(self) -> None:
        """Test that parse errors surface unchanged."""
        with pytest.raises(ParseError):
            l5_program_typeof("(L5)")

    def test_repeated_checks_agree(self) -> None:
        """Test that repeated checks give the same result."""
        source = "(L5 (define (p : (Pair number boolean)) (cons 5 #t)) (car p))"
        assert check_program_type(source) == check_program_type(source)
