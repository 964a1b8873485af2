# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Surface AST for Lumen modules.

Expression nodes carry a `ty` slot that the checker fills in; calls also get
their resolved link `symbol`. Later stages (desugar, simplify, lower) rely on
those annotations and never re-resolve names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Located:
	line: int
	column: int


@dataclass
class TypeRef:
	name: str
	loc: Located


@dataclass
class Param:
	name: str
	type_ref: TypeRef
	loc: Located


@dataclass
class Import:
	module: str
	alias: str
	loc: Located


class Expr:
	loc: Located
	ty: Optional[str]


@dataclass
class IntLit(Expr):
	loc: Located
	value: int
	ty: Optional[str] = None


@dataclass
class BoolLit(Expr):
	loc: Located
	value: bool
	ty: Optional[str] = None


@dataclass
class Name(Expr):
	loc: Located
	ident: str
	ty: Optional[str] = None


@dataclass
class Unary(Expr):
	loc: Located
	op: str  # "-" | "!"
	operand: Expr
	ty: Optional[str] = None


@dataclass
class Binary(Expr):
	loc: Located
	op: str
	left: Expr
	right: Expr
	ty: Optional[str] = None


@dataclass
class Call(Expr):
	loc: Located
	func: str
	args: List[Expr]
	# Import alias for `alias.func(...)`; None for local calls.
	alias: Optional[str] = None
	ty: Optional[str] = None
	symbol: Optional[str] = None
	param_types: List[str] = field(default_factory=list)


class Stmt:
	loc: Located


@dataclass
class Block:
	statements: List[Stmt]


@dataclass
class LetStmt(Stmt):
	loc: Located
	name: str
	type_ref: Optional[TypeRef]
	value: Expr
	mutable: bool = False


@dataclass
class AssignStmt(Stmt):
	loc: Located
	name: str
	value: Expr


@dataclass
class AugAssignStmt(Stmt):
	"""`x op= e`; rewritten to `x = x op e` by the desugar stage."""

	loc: Located
	name: str
	op: str  # binary operator without the trailing "="
	value: Expr


@dataclass
class IfStmt(Stmt):
	loc: Located
	condition: Expr
	then_block: Block
	else_block: Optional[Block] = None


@dataclass
class WhileStmt(Stmt):
	loc: Located
	condition: Expr
	body: Block


@dataclass
class ReturnStmt(Stmt):
	loc: Located
	value: Expr


@dataclass
class ExprStmt(Stmt):
	loc: Located
	expr: Expr


@dataclass
class FunctionDef:
	name: str
	params: List[Param]
	ret: TypeRef
	body: Optional[Block]
	loc: Located
	is_pub: bool = False


@dataclass
class Module:
	name: Optional[str]
	name_loc: Optional[Located]
	imports: List[Import]
	functions: List[FunctionDef]


__all__ = [
	"Located",
	"TypeRef",
	"Param",
	"Import",
	"Expr",
	"IntLit",
	"BoolLit",
	"Name",
	"Unary",
	"Binary",
	"Call",
	"Stmt",
	"Block",
	"LetStmt",
	"AssignStmt",
	"AugAssignStmt",
	"IfStmt",
	"WhileStmt",
	"ReturnStmt",
	"ExprStmt",
	"FunctionDef",
	"Module",
]
