# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Name and type resolution for one Lumen module.

The checker annotates the AST in place (`Expr.ty`, `Call.symbol`,
`Call.param_types`) and builds the module's public interface. Imported
modules are known only through their interfaces, which the caller supplies
from the build session.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from lumen.lumenc.core.diagnostics import Diagnostic
from lumen.lumenc.core.span import Span
from lumen.lumenc.module_interface import KIND_STUB, FnSig, ModuleInterface, link_symbol
from lumen.lumenc.parser import ast as A

INT = "Int"
BOOL = "Bool"
KNOWN_TYPES = frozenset({INT, BOOL})
INT_MAX = 2**63 - 1

_ARITH_OPS = frozenset({"+", "-", "*", "/", "%"})
_ORDER_OPS = frozenset({"<", "<=", ">", ">="})
_EQ_OPS = frozenset({"==", "!="})
_LOGIC_OPS = frozenset({"&&", "||"})


class _Scope:
	def __init__(self, parent: Optional["_Scope"] = None) -> None:
		self.parent = parent
		self.bindings: Dict[str, Tuple[str, bool]] = {}

	def lookup(self, name: str) -> Optional[Tuple[str, bool]]:
		scope: Optional[_Scope] = self
		while scope is not None:
			hit = scope.bindings.get(name)
			if hit is not None:
				return hit
			scope = scope.parent
		return None


class Checker:
	"""
	Checks one parsed module.

	Args:
	  module_name: resolved module name (from the module root layout).
	  kind: "normal" or "stub".
	  path: source file (diagnostic spans).
	  imported: interfaces of every module this module imports, by module name.
	"""

	def __init__(
		self,
		*,
		module_name: str,
		kind: str,
		path: Path,
		imported: Mapping[str, ModuleInterface],
	) -> None:
		self.module_name = module_name
		self.kind = kind
		self.path = path
		self.imported = imported
		self.diagnostics: List[Diagnostic] = []
		self._aliases: Dict[str, ModuleInterface] = {}
		self._local: Dict[str, FnSig] = {}
		self._ret: str = INT

	def _error(self, message: str, loc: object | None) -> None:
		self.diagnostics.append(Diagnostic(message=message, phase="checker", span=Span.from_loc(loc, file=str(self.path))))

	def check(self, module: A.Module) -> ModuleInterface:
		if module.name is not None and module.name != self.module_name:
			self._error(f"module header declares '{module.name}' but the file resolves to module '{self.module_name}'", module.name_loc)

		for imp in module.imports:
			if imp.alias in self._aliases:
				self._error(f"duplicate import alias '{imp.alias}'", imp.loc)
				continue
			iface = self.imported.get(imp.module)
			if iface is None:
				self._error(f"module '{imp.module}' is not available", imp.loc)
				continue
			self._aliases[imp.alias] = iface

		interface = ModuleInterface(module=self.module_name, kind=self.kind)
		for fn in module.functions:
			if fn.name in self._local:
				self._error(f"duplicate function '{fn.name}'", fn.loc)
				continue
			params = tuple(self._check_type(p.type_ref) for p in fn.params)
			ret = self._check_type(fn.ret)
			sig = FnSig(params=params, ret=ret, symbol=link_symbol(self.module_name, fn.name, kind=self.kind))
			self._local[fn.name] = sig
			if fn.is_pub:
				interface.functions[fn.name] = sig

		for fn in module.functions:
			if self.kind == KIND_STUB:
				if fn.body is not None:
					self._error(f"function '{fn.name}' has a body; interface files may only declare functions", fn.loc)
				continue
			if fn.body is None:
				self._error(f"function '{fn.name}' has no body", fn.loc)
				continue
			self._check_fn(fn)
		return interface

	def _check_type(self, ref: A.TypeRef) -> str:
		if ref.name not in KNOWN_TYPES:
			self._error(f"unknown type '{ref.name}'", ref.loc)
			return INT
		return ref.name

	def _check_fn(self, fn: A.FunctionDef) -> None:
		assert fn.body is not None
		if fn.name == "main" and (fn.params or fn.ret.name != INT):
			self._error("'main' must take no parameters and return Int", fn.loc)
		scope = _Scope()
		for p in fn.params:
			if p.name in scope.bindings:
				self._error(f"duplicate parameter '{p.name}'", p.loc)
				continue
			scope.bindings[p.name] = (p.type_ref.name if p.type_ref.name in KNOWN_TYPES else INT, False)
		self._ret = fn.ret.name if fn.ret.name in KNOWN_TYPES else INT
		self._check_block(fn.body, scope)
		if not _always_returns(fn.body):
			self._error(f"function '{fn.name}' may finish without returning a value", fn.loc)

	def _check_block(self, block: A.Block, scope: _Scope) -> None:
		for stmt in block.statements:
			self._check_stmt(stmt, scope)

	def _check_stmt(self, stmt: A.Stmt, scope: _Scope) -> None:
		if isinstance(stmt, A.LetStmt):
			ty = self._check_expr(stmt.value, scope)
			if stmt.type_ref is not None:
				declared = self._check_type(stmt.type_ref)
				if ty is not None and ty != declared:
					self._error(f"binding '{stmt.name}' declared {declared} but initialized with {ty}", stmt.loc)
				ty = declared
			if stmt.name in scope.bindings:
				self._error(f"duplicate binding '{stmt.name}' in the same block", stmt.loc)
			scope.bindings[stmt.name] = (ty or INT, stmt.mutable)
		elif isinstance(stmt, (A.AssignStmt, A.AugAssignStmt)):
			binding = scope.lookup(stmt.name)
			ty = self._check_expr(stmt.value, scope)
			if binding is None:
				self._error(f"unknown name '{stmt.name}'", stmt.loc)
				return
			target_ty, mutable = binding
			if not mutable:
				self._error(f"cannot assign to immutable binding '{stmt.name}' (declare it with 'var')", stmt.loc)
			if isinstance(stmt, A.AugAssignStmt):
				if target_ty != INT or (ty is not None and ty != INT):
					self._error(f"operator '{stmt.op}=' requires Int operands", stmt.loc)
			elif ty is not None and ty != target_ty:
				self._error(f"cannot assign {ty} to '{stmt.name}' of type {target_ty}", stmt.loc)
		elif isinstance(stmt, A.IfStmt):
			self._expect(stmt.condition, BOOL, scope, what="if condition")
			self._check_block(stmt.then_block, _Scope(scope))
			if stmt.else_block is not None:
				self._check_block(stmt.else_block, _Scope(scope))
		elif isinstance(stmt, A.WhileStmt):
			self._expect(stmt.condition, BOOL, scope, what="while condition")
			self._check_block(stmt.body, _Scope(scope))
		elif isinstance(stmt, A.ReturnStmt):
			self._expect(stmt.value, self._ret, scope, what="return value")
		elif isinstance(stmt, A.ExprStmt):
			self._check_expr(stmt.expr, scope)

	def _expect(self, expr: A.Expr, ty: str, scope: _Scope, *, what: str) -> None:
		got = self._check_expr(expr, scope)
		if got is not None and got != ty:
			self._error(f"{what} must be {ty}, found {got}", expr.loc)

	def _check_expr(self, expr: A.Expr, scope: _Scope) -> Optional[str]:
		"""Annotate `expr` and return its type (None after an error)."""
		ty: Optional[str] = None
		if isinstance(expr, A.IntLit):
			if expr.value > INT_MAX:
				self._error(f"integer literal {expr.value} does not fit in Int", expr.loc)
			ty = INT
		elif isinstance(expr, A.BoolLit):
			ty = BOOL
		elif isinstance(expr, A.Name):
			binding = scope.lookup(expr.ident)
			if binding is None:
				self._error(f"unknown name '{expr.ident}'", expr.loc)
			else:
				ty = binding[0]
		elif isinstance(expr, A.Unary):
			operand = self._check_expr(expr.operand, scope)
			want = INT if expr.op == "-" else BOOL
			if operand is not None and operand != want:
				self._error(f"operator '{expr.op}' requires {want}, found {operand}", expr.loc)
			ty = want
		elif isinstance(expr, A.Binary):
			ty = self._check_binary(expr, scope)
		elif isinstance(expr, A.Call):
			ty = self._check_call(expr, scope)
		expr.ty = ty
		return ty

	def _check_binary(self, expr: A.Binary, scope: _Scope) -> Optional[str]:
		left = self._check_expr(expr.left, scope)
		right = self._check_expr(expr.right, scope)
		if expr.op in _ARITH_OPS or expr.op in _ORDER_OPS:
			operand_ty = INT
		elif expr.op in _LOGIC_OPS:
			operand_ty = BOOL
		else:
			if left is not None and right is not None and left != right:
				self._error(f"cannot compare {left} with {right}", expr.loc)
			return BOOL
		for side in (left, right):
			if side is not None and side != operand_ty:
				self._error(f"operator '{expr.op}' requires {operand_ty} operands, found {side}", expr.loc)
				break
		return INT if expr.op in _ARITH_OPS else BOOL

	def _check_call(self, call: A.Call, scope: _Scope) -> Optional[str]:
		arg_types = [self._check_expr(arg, scope) for arg in call.args]
		sig: Optional[FnSig]
		if call.alias is None:
			sig = self._local.get(call.func)
			if sig is None:
				self._error(f"unknown function '{call.func}'", call.loc)
				return None
			display = call.func
		else:
			iface = self._aliases.get(call.alias)
			if iface is None:
				self._error(f"unknown module alias '{call.alias}'", call.loc)
				return None
			sig = iface.functions.get(call.func)
			if sig is None:
				self._error(f"module '{iface.module}' has no public function '{call.func}'", call.loc)
				return None
			display = f"{call.alias}.{call.func}"
		if len(arg_types) != len(sig.params):
			self._error(f"'{display}' expects {len(sig.params)} argument(s), got {len(arg_types)}", call.loc)
		else:
			for idx, (got, want) in enumerate(zip(arg_types, sig.params)):
				if got is not None and got != want:
					self._error(f"argument {idx + 1} of '{display}' must be {want}, found {got}", call.args[idx].loc)
		call.symbol = sig.symbol
		call.param_types = list(sig.params)
		return sig.ret


def _always_returns(block: A.Block) -> bool:
	for stmt in block.statements:
		if isinstance(stmt, A.ReturnStmt):
			return True
		if isinstance(stmt, A.IfStmt) and stmt.else_block is not None:
			if _always_returns(stmt.then_block) and _always_returns(stmt.else_block):
				return True
	return False


def check_module(
	module: A.Module,
	*,
	module_name: str,
	kind: str,
	path: Path,
	imported: Mapping[str, ModuleInterface],
) -> Tuple[ModuleInterface, List[Diagnostic]]:
	checker = Checker(module_name=module_name, kind=kind, path=path, imported=imported)
	interface = checker.check(module)
	return interface, checker.diagnostics


__all__ = ["Checker", "check_module", "INT", "BOOL", "INT_MAX"]
