# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lark-based parser producing the Lumen surface AST.

The grammar lives in `grammar.lark` next to this file. Tree-to-AST conversion
is a set of small `_build_*` helpers keyed by rule name.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree

from .ast import (
	AssignStmt,
	AugAssignStmt,
	Binary,
	Block,
	BoolLit,
	Call,
	Expr,
	ExprStmt,
	FunctionDef,
	IfStmt,
	Import,
	IntLit,
	LetStmt,
	Located,
	Module,
	Name,
	Param,
	ReturnStmt,
	Stmt,
	TypeRef,
	Unary,
	WhileStmt,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text(encoding="utf-8")

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)

# Rule alias -> surface operator.
_BINARY_OPS = {
	"or_op": "||",
	"and_op": "&&",
	"lt": "<",
	"le": "<=",
	"gt": ">",
	"ge": ">=",
	"eq": "==",
	"ne": "!=",
	"add": "+",
	"sub": "-",
	"mul": "*",
	"div": "/",
	"mod": "%",
}


def parse_module_source(source: str) -> Module:
	"""Parse one module; raises `lark.exceptions.UnexpectedInput` on syntax errors."""
	tree = _PARSER.parse(source)
	return _build_module(tree)


def _name(tree: Tree) -> str:
	return str(tree.data)


def _loc(node: object) -> Located:
	"""
	Best-effort location of a tree or token.

	Trees whose meta is empty (all children filtered) fall back to the first
	positioned child.
	"""
	if isinstance(node, Token):
		return Located(line=node.line or 0, column=node.column or 0)
	if isinstance(node, Tree):
		if not node.meta.empty:
			return Located(line=node.meta.line, column=node.meta.column)
		for child in node.children:
			if isinstance(child, (Tree, Token)):
				return _loc(child)
	return Located(line=0, column=0)


def _subtrees(tree: Tree, rule: str) -> List[Tree]:
	return [c for c in tree.children if isinstance(c, Tree) and _name(c) == rule]


def _tokens(tree: Tree, kind: str) -> List[Token]:
	return [c for c in tree.children if isinstance(c, Token) and c.type == kind]


def _build_module(tree: Tree) -> Module:
	name: Optional[str] = None
	name_loc: Optional[Located] = None
	imports: List[Import] = []
	functions: List[FunctionDef] = []
	for child in tree.children:
		kind = _name(child)
		if kind == "module_decl":
			dotted = _subtrees(child, "dotted_name")[0]
			name = _dotted(dotted)
			name_loc = _loc(dotted)
		elif kind == "import_decl":
			imports.append(_build_import(child))
		elif kind == "fn_item":
			functions.append(_build_fn(child))
	return Module(name=name, name_loc=name_loc, imports=imports, functions=functions)


def _dotted(tree: Tree) -> str:
	return ".".join(str(tok) for tok in _tokens(tree, "NAME"))


def _build_import(tree: Tree) -> Import:
	dotted = _subtrees(tree, "dotted_name")[0]
	module = _dotted(dotted)
	alias_toks = _tokens(tree, "NAME")
	alias = str(alias_toks[0]) if alias_toks else module.rsplit(".", 1)[-1]
	return Import(module=module, alias=alias, loc=_loc(tree))


def _build_type(tree: Tree) -> TypeRef:
	tok = _tokens(tree, "NAME")[0]
	return TypeRef(name=str(tok), loc=_loc(tok))


def _build_fn(tree: Tree) -> FunctionDef:
	is_pub = bool(_tokens(tree, "PUB"))
	name_tok = _tokens(tree, "NAME")[0]
	params: List[Param] = []
	for params_node in _subtrees(tree, "params"):
		for p in _subtrees(params_node, "param"):
			p_name = _tokens(p, "NAME")[0]
			params.append(Param(name=str(p_name), type_ref=_build_type(_subtrees(p, "type_ref")[0]), loc=_loc(p_name)))
	ret = _build_type(_subtrees(tree, "type_ref")[0])
	tail = tree.children[-1]
	body = _build_block(tail) if isinstance(tail, Tree) and _name(tail) == "block" else None
	return FunctionDef(name=str(name_tok), params=params, ret=ret, body=body, loc=_loc(name_tok), is_pub=is_pub)


def _build_block(tree: Tree) -> Block:
	return Block(statements=[_build_stmt(c) for c in tree.children if isinstance(c, Tree)])


def _build_stmt(tree: Tree) -> Stmt:
	kind = _name(tree)
	loc = _loc(tree)
	if kind == "let_stmt":
		mutable = bool(_tokens(tree, "VAR"))
		name_tok = _tokens(tree, "NAME")[0]
		type_nodes = _subtrees(tree, "type_ref")
		type_ref = _build_type(type_nodes[0]) if type_nodes else None
		return LetStmt(loc=loc, name=str(name_tok), type_ref=type_ref, value=_build_expr(tree.children[-1]), mutable=mutable)
	if kind == "assign_stmt":
		return AssignStmt(loc=loc, name=str(tree.children[0]), value=_build_expr(tree.children[1]))
	if kind == "aug_assign_stmt":
		op_tok = _tokens(tree, "AUG_OP")[0]
		return AugAssignStmt(loc=loc, name=str(tree.children[0]), op=str(op_tok)[:-1], value=_build_expr(tree.children[2]))
	if kind == "if_stmt":
		exprs = [c for c in tree.children if not isinstance(c, Token)]
		cond = _build_expr(exprs[0])
		then_block = _build_block(exprs[1])
		else_block: Optional[Block] = None
		if len(exprs) > 2:
			tail = exprs[2]
			if _name(tail) == "block":
				else_block = _build_block(tail)
			else:
				# `else if` is an else block holding a single nested if.
				else_block = Block(statements=[_build_stmt(tail)])
		return IfStmt(loc=loc, condition=cond, then_block=then_block, else_block=else_block)
	if kind == "while_stmt":
		exprs = [c for c in tree.children if not isinstance(c, Token)]
		return WhileStmt(loc=loc, condition=_build_expr(exprs[0]), body=_build_block(exprs[1]))
	if kind == "return_stmt":
		return ReturnStmt(loc=loc, value=_build_expr(tree.children[-1]))
	if kind == "expr_stmt":
		return ExprStmt(loc=loc, expr=_build_expr(tree.children[0]))
	raise ValueError(f"unexpected statement node '{kind}'")


def _build_args(tree: Tree) -> List[Expr]:
	out: List[Expr] = []
	for args_node in _subtrees(tree, "args"):
		out.extend(_build_expr(c) for c in args_node.children)
	return out


def _build_expr(node: object) -> Expr:
	if isinstance(node, Token):
		# Inlined single-token alternatives never reach here; a bare token means a
		# grammar change forgot to add an alias.
		raise ValueError(f"unexpected token {node.type} in expression position")
	assert isinstance(node, Tree)
	kind = _name(node)
	loc = _loc(node)
	if kind == "int_lit":
		return IntLit(loc=loc, value=int(str(node.children[0])))
	if kind == "true_lit":
		return BoolLit(loc=loc, value=True)
	if kind == "false_lit":
		return BoolLit(loc=loc, value=False)
	if kind == "name":
		return Name(loc=loc, ident=str(node.children[0]))
	if kind == "neg":
		return Unary(loc=loc, op="-", operand=_build_expr(node.children[0]))
	if kind == "not_":
		return Unary(loc=loc, op="!", operand=_build_expr(node.children[0]))
	if kind == "call":
		return Call(loc=loc, func=str(node.children[0]), args=_build_args(node))
	if kind == "qualified_call":
		names = _tokens(node, "NAME")
		return Call(loc=loc, func=str(names[1]), args=_build_args(node), alias=str(names[0]))
	op = _BINARY_OPS.get(kind)
	if op is not None:
		return Binary(loc=loc, op=op, left=_build_expr(node.children[0]), right=_build_expr(node.children[1]))
	raise ValueError(f"unexpected expression node '{kind}'")


__all__ = ["parse_module_source"]
