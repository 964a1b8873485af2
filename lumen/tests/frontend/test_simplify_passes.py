# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from lumen.lumenc.parser import ast as A
from lumen.lumenc.parser.parser import parse_module_source
from lumen.lumenc.simplify import desugar_module, simplify_module


def _body(source: str, *, level: int) -> list:
	mod = parse_module_source(source)
	mod = simplify_module(desugar_module(mod), opt_level=level)
	return mod.functions[0].body.statements


def test_o1_folds_literal_arithmetic():
	stmts = _body("fn f() -> Int { return 1 + 2 * 3; }", level=1)
	assert isinstance(stmts[0].value, A.IntLit)
	assert stmts[0].value.value == 7


def test_o0_leaves_expressions_alone():
	stmts = _body("fn f() -> Int { return 1 + 2; }", level=0)
	assert isinstance(stmts[0].value, A.Binary)


def test_folding_wraps_like_64_bit_integers():
	stmts = _body("fn f() -> Int { return 9223372036854775807 + 1; }", level=1)
	assert stmts[0].value.value == -(2**63)


def test_division_by_zero_is_never_folded():
	stmts = _body("fn f() -> Int { return 7 / 0; }", level=2)
	assert isinstance(stmts[0].value, A.Binary)
	assert stmts[0].value.op == "/"


def test_division_truncates_toward_zero():
	stmts = _body("fn f() -> Int { let a = -7 / 2; let b = -7 % 2; return a; }", level=1)
	assert stmts[0].value.value == -3
	assert stmts[1].value.value == -1


def test_short_circuit_folds_only_on_constant_left_side():
	stmts = _body("fn f(x: Bool) -> Bool { let a = false && x; let b = true && x; let c = x && false; return a; }", level=1)
	assert isinstance(stmts[0].value, A.BoolLit) and stmts[0].value.value is False
	assert isinstance(stmts[1].value, A.Name)
	assert isinstance(stmts[2].value, A.Binary)


def test_constant_conditions_fold_if_and_while():
	stmts = _body(
		"fn f() -> Int { if 1 > 2 { return 1; } while false { return 2; } if true { return 3; } else { return 4; } }",
		level=1,
	)
	assert len(stmts) == 1
	only = stmts[0]
	assert isinstance(only, A.IfStmt)
	assert isinstance(only.condition, A.BoolLit) and only.condition.value is True
	assert only.else_block is None
	assert only.then_block.statements[0].value.value == 3


def test_o2_drops_statements_after_return():
	source = "fn f() -> Int { return 1; return 2; }"
	assert len(_body(source, level=1)) == 2
	assert len(_body(source, level=2)) == 1


def test_compound_assignment_is_desugared():
	stmts = _body("fn f() -> Int { var x = 1; x *= 5; return x; }", level=0)
	assign = stmts[1]
	assert isinstance(assign, A.AssignStmt)
	assert isinstance(assign.value, A.Binary) and assign.value.op == "*"
	assert isinstance(assign.value.left, A.Name) and assign.value.left.ident == "x"
