# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Desugaring and optimization-level simplification over the checked AST.

desugar (always):
  - `x op= e`  ->  `x = x op e`

simplify by level:
  - O0: nothing
  - O1: fold literal arithmetic/comparisons/boolean operators (with 64-bit
        wraparound, never folding a division that would trap or overflow) and
        fold `if`/`while` on constant conditions
  - O2: O1 plus dropping statements that follow an unconditional `return`

A constant-true `if` is kept as `if true { ... }` rather than spliced into the
enclosing block so the bindings it introduces stay scoped.
"""

from __future__ import annotations

from typing import List, Optional

from lumen.lumenc.checker import BOOL, INT
from lumen.lumenc.parser import ast as A

_I64_MIN = -(2**63)


def _wrap(value: int) -> int:
	value &= 2**64 - 1
	return value - 2**64 if value >= 2**63 else value


def _sdiv(a: int, b: int) -> int:
	q = abs(a) // abs(b)
	return q if (a >= 0) == (b >= 0) else -q


def desugar_module(module: A.Module) -> A.Module:
	for fn in module.functions:
		if fn.body is not None:
			_desugar_block(fn.body)
	return module


def _desugar_block(block: A.Block) -> None:
	out: List[A.Stmt] = []
	for stmt in block.statements:
		if isinstance(stmt, A.AugAssignStmt):
			current = A.Name(loc=stmt.loc, ident=stmt.name, ty=INT)
			value = A.Binary(loc=stmt.loc, op=stmt.op, left=current, right=stmt.value, ty=INT)
			stmt = A.AssignStmt(loc=stmt.loc, name=stmt.name, value=value)
		elif isinstance(stmt, A.IfStmt):
			_desugar_block(stmt.then_block)
			if stmt.else_block is not None:
				_desugar_block(stmt.else_block)
		elif isinstance(stmt, A.WhileStmt):
			_desugar_block(stmt.body)
		out.append(stmt)
	block.statements = out


def simplify_module(module: A.Module, *, opt_level: int) -> A.Module:
	if opt_level <= 0:
		return module
	for fn in module.functions:
		if fn.body is not None:
			fn.body = _simplify_block(fn.body, opt_level)
	return module


def _simplify_block(block: A.Block, level: int) -> A.Block:
	out: List[A.Stmt] = []
	for stmt in block.statements:
		folded = _simplify_stmt(stmt, level)
		if folded is None:
			continue
		out.append(folded)
		if level >= 2 and isinstance(folded, A.ReturnStmt):
			break
	return A.Block(statements=out)


def _simplify_stmt(stmt: A.Stmt, level: int) -> Optional[A.Stmt]:
	if isinstance(stmt, A.LetStmt):
		stmt.value = fold_expr(stmt.value)
	elif isinstance(stmt, A.AssignStmt):
		stmt.value = fold_expr(stmt.value)
	elif isinstance(stmt, A.ReturnStmt):
		stmt.value = fold_expr(stmt.value)
	elif isinstance(stmt, A.ExprStmt):
		stmt.expr = fold_expr(stmt.expr)
	elif isinstance(stmt, A.WhileStmt):
		stmt.condition = fold_expr(stmt.condition)
		if isinstance(stmt.condition, A.BoolLit) and not stmt.condition.value:
			return None
		stmt.body = _simplify_block(stmt.body, level)
	elif isinstance(stmt, A.IfStmt):
		cond = fold_expr(stmt.condition)
		then_block = _simplify_block(stmt.then_block, level)
		else_block = _simplify_block(stmt.else_block, level) if stmt.else_block is not None else None
		if isinstance(cond, A.BoolLit):
			taken = then_block if cond.value else else_block
			if taken is None:
				return None
			return A.IfStmt(loc=stmt.loc, condition=A.BoolLit(loc=cond.loc, value=True, ty=BOOL), then_block=taken)
		stmt.condition = cond
		stmt.then_block = then_block
		stmt.else_block = else_block
	return stmt


def fold_expr(expr: A.Expr) -> A.Expr:
	"""Fold literal subexpressions of a checked expression."""
	if isinstance(expr, A.Unary):
		expr.operand = fold_expr(expr.operand)
		operand = expr.operand
		if expr.op == "-" and isinstance(operand, A.IntLit):
			return A.IntLit(loc=expr.loc, value=_wrap(-operand.value), ty=INT)
		if expr.op == "!" and isinstance(operand, A.BoolLit):
			return A.BoolLit(loc=expr.loc, value=not operand.value, ty=BOOL)
		return expr
	if isinstance(expr, A.Call):
		expr.args = [fold_expr(a) for a in expr.args]
		return expr
	if not isinstance(expr, A.Binary):
		return expr
	expr.left = fold_expr(expr.left)
	expr.right = fold_expr(expr.right)
	left, right = expr.left, expr.right
	if expr.op in ("&&", "||") and isinstance(left, A.BoolLit):
		# Left operand is evaluated first, so a constant left side decides
		# whether the right side runs at all.
		if expr.op == "&&":
			return right if left.value else left
		return left if left.value else right
	if isinstance(left, A.IntLit) and isinstance(right, A.IntLit):
		return _fold_int(expr, left.value, right.value)
	if isinstance(left, A.BoolLit) and isinstance(right, A.BoolLit) and expr.op in ("==", "!="):
		same = left.value == right.value
		return A.BoolLit(loc=expr.loc, value=same if expr.op == "==" else not same, ty=BOOL)
	return expr


def _fold_int(expr: A.Binary, a: int, b: int) -> A.Expr:
	op = expr.op
	if op in ("/", "%"):
		if b == 0 or (a == _I64_MIN and b == -1):
			return expr
		q = _sdiv(a, b)
		value = q if op == "/" else a - b * q
		return A.IntLit(loc=expr.loc, value=value, ty=INT)
	if op == "+":
		return A.IntLit(loc=expr.loc, value=_wrap(a + b), ty=INT)
	if op == "-":
		return A.IntLit(loc=expr.loc, value=_wrap(a - b), ty=INT)
	if op == "*":
		return A.IntLit(loc=expr.loc, value=_wrap(a * b), ty=INT)
	result = {
		"<": a < b,
		"<=": a <= b,
		">": a > b,
		">=": a >= b,
		"==": a == b,
		"!=": a != b,
	}.get(op)
	if result is None:
		return expr
	return A.BoolLit(loc=expr.loc, value=result, ty=BOOL)


__all__ = ["desugar_module", "simplify_module", "fold_expr"]
