# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lowering from the checked, simplified AST to the pre-codegen form.

The lowered form is a per-function list of labelled basic blocks. Each block
holds simple typed instructions over numbered temporaries and ends in exactly
one terminator. Named bindings live in stack slots (one per `let`/`var`/param);
the backend maps them to allocas. Short-circuit operators are lowered to
explicit control flow here, so the backend never sees `&&`/`||`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from lumen.lumenc.checker import BOOL, INT
from lumen.lumenc.module_interface import FnSig, ModuleInterface, link_symbol
from lumen.lumenc.parser import ast as A


@dataclass(frozen=True)
class LConst:
	dst: int
	ty: str
	value: Union[int, bool]


@dataclass(frozen=True)
class LLoad:
	dst: int
	ty: str
	slot: int


@dataclass(frozen=True)
class LStore:
	slot: int
	src: int


@dataclass(frozen=True)
class LUnary:
	dst: int
	ty: str
	op: str
	src: int


@dataclass(frozen=True)
class LBinary:
	dst: int
	ty: str
	op: str
	lhs: int
	rhs: int
	operand_ty: str


@dataclass(frozen=True)
class LCall:
	dst: int
	ty: str
	symbol: str
	args: Tuple[int, ...]
	# Self call whose result is returned directly.
	tail_candidate: bool = False


Instr = Union[LConst, LLoad, LStore, LUnary, LBinary, LCall]


@dataclass(frozen=True)
class LJump:
	target: str


@dataclass(frozen=True)
class LBranch:
	cond: int
	then: str
	otherwise: str


@dataclass(frozen=True)
class LReturn:
	value: int


@dataclass(frozen=True)
class LUnreachable:
	pass


Terminator = Union[LJump, LBranch, LReturn, LUnreachable]


@dataclass
class LBlock:
	label: str
	instrs: List[Instr] = field(default_factory=list)
	terminator: Optional[Terminator] = None


@dataclass(frozen=True)
class LSlot:
	index: int
	name: str
	ty: str


@dataclass
class LoweredFunction:
	name: str
	symbol: str
	params: List[Tuple[str, str]]
	ret: str
	slots: List[LSlot]
	blocks: List[LBlock]


@dataclass(frozen=True)
class LExtern:
	symbol: str
	sig: FnSig


@dataclass
class LoweredModule:
	"""Pre-codegen representation handed to the backend service."""

	name: str
	kind: str
	interface: ModuleInterface
	imports: List[str]
	externs: List[LExtern] = field(default_factory=list)
	functions: List[LoweredFunction] = field(default_factory=list)


class _FunctionLowerer:
	def __init__(self, fn: A.FunctionDef, symbol: str) -> None:
		self.fn = fn
		self.symbol = symbol
		self.slots: List[LSlot] = []
		self.blocks: List[LBlock] = []
		self.scopes: List[Dict[str, int]] = [{}]
		self._temps = 0
		self._labels = 0
		self.calls: List[A.Call] = []
		self.current = self._new_block("entry", numbered=False)

	def _new_block(self, stem: str, *, numbered: bool = True) -> LBlock:
		label = stem
		if numbered:
			self._labels += 1
			label = f"{stem}.{self._labels}"
		block = LBlock(label=label)
		self.blocks.append(block)
		return block

	def _temp(self) -> int:
		self._temps += 1
		return self._temps

	def _slot(self, name: str, ty: str) -> int:
		idx = len(self.slots)
		self.slots.append(LSlot(index=idx, name=name, ty=ty))
		return idx

	def _emit(self, instr: Instr) -> None:
		if self.current.terminator is not None:
			# Code after a return/branch: give it an unreachable home block.
			self.current = self._new_block("dead")
		self.current.instrs.append(instr)

	def _terminate(self, term: Terminator) -> None:
		if self.current.terminator is None:
			self.current.terminator = term

	def _lookup(self, name: str) -> int:
		for scope in reversed(self.scopes):
			if name in scope:
				return scope[name]
		raise KeyError(f"unbound name '{name}' reached lowering")

	def lower(self) -> LoweredFunction:
		params: List[Tuple[str, str]] = []
		for p in self.fn.params:
			params.append((p.name, p.type_ref.name))
			self.scopes[-1][p.name] = self._slot(p.name, p.type_ref.name)
		assert self.fn.body is not None
		self._lower_block(self.fn.body)
		self._terminate(LUnreachable())
		for block in self.blocks:
			if block.terminator is None:
				block.terminator = LUnreachable()
		return LoweredFunction(
			name=self.fn.name,
			symbol=self.symbol,
			params=params,
			ret=self.fn.ret.name,
			slots=self.slots,
			blocks=self.blocks,
		)

	def _lower_block(self, block: A.Block) -> None:
		self.scopes.append({})
		for stmt in block.statements:
			self._lower_stmt(stmt)
		self.scopes.pop()

	def _lower_stmt(self, stmt: A.Stmt) -> None:
		if isinstance(stmt, A.LetStmt):
			value = self._lower_expr(stmt.value)
			ty = stmt.type_ref.name if stmt.type_ref is not None else (stmt.value.ty or INT)
			slot = self._slot(stmt.name, ty)
			self._emit(LStore(slot=slot, src=value))
			self.scopes[-1][stmt.name] = slot
		elif isinstance(stmt, A.AssignStmt):
			value = self._lower_expr(stmt.value)
			self._emit(LStore(slot=self._lookup(stmt.name), src=value))
		elif isinstance(stmt, A.ReturnStmt):
			value = self._lower_expr(stmt.value, returned=True)
			if self.current.terminator is not None:
				self.current = self._new_block("dead")
			self._terminate(LReturn(value=value))
		elif isinstance(stmt, A.ExprStmt):
			self._lower_expr(stmt.expr)
		elif isinstance(stmt, A.IfStmt):
			self._lower_if(stmt)
		elif isinstance(stmt, A.WhileStmt):
			self._lower_while(stmt)
		else:
			raise TypeError(f"unsupported statement {type(stmt).__name__} reached lowering")

	def _lower_if(self, stmt: A.IfStmt) -> None:
		if isinstance(stmt.condition, A.BoolLit) and stmt.condition.value and stmt.else_block is None:
			self._lower_block(stmt.then_block)
			return
		cond = self._lower_expr(stmt.condition)
		then_b = self._new_block("then")
		else_b = self._new_block("else") if stmt.else_block is not None else None
		end_b = self._new_block("endif")
		self._terminate(LBranch(cond=cond, then=then_b.label, otherwise=(else_b or end_b).label))
		self.current = then_b
		self._lower_block(stmt.then_block)
		self._terminate(LJump(target=end_b.label))
		if else_b is not None:
			assert stmt.else_block is not None
			self.current = else_b
			self._lower_block(stmt.else_block)
			self._terminate(LJump(target=end_b.label))
		self.current = end_b

	def _lower_while(self, stmt: A.WhileStmt) -> None:
		cond_b = self._new_block("while.cond")
		body_b = self._new_block("while.body")
		end_b = self._new_block("while.end")
		self._terminate(LJump(target=cond_b.label))
		self.current = cond_b
		cond = self._lower_expr(stmt.condition)
		self._terminate(LBranch(cond=cond, then=body_b.label, otherwise=end_b.label))
		self.current = body_b
		self._lower_block(stmt.body)
		self._terminate(LJump(target=cond_b.label))
		self.current = end_b

	def _lower_expr(self, expr: A.Expr, *, returned: bool = False) -> int:
		if isinstance(expr, A.IntLit):
			dst = self._temp()
			self._emit(LConst(dst=dst, ty=INT, value=expr.value))
			return dst
		if isinstance(expr, A.BoolLit):
			dst = self._temp()
			self._emit(LConst(dst=dst, ty=BOOL, value=expr.value))
			return dst
		if isinstance(expr, A.Name):
			slot = self._lookup(expr.ident)
			dst = self._temp()
			self._emit(LLoad(dst=dst, ty=self.slots[slot].ty, slot=slot))
			return dst
		if isinstance(expr, A.Unary):
			src = self._lower_expr(expr.operand)
			dst = self._temp()
			self._emit(LUnary(dst=dst, ty=expr.ty or INT, op=expr.op, src=src))
			return dst
		if isinstance(expr, A.Binary):
			if expr.op in ("&&", "||"):
				return self._lower_short_circuit(expr)
			lhs = self._lower_expr(expr.left)
			rhs = self._lower_expr(expr.right)
			dst = self._temp()
			self._emit(LBinary(dst=dst, ty=expr.ty or INT, op=expr.op, lhs=lhs, rhs=rhs, operand_ty=expr.left.ty or INT))
			return dst
		if isinstance(expr, A.Call):
			args = tuple(self._lower_expr(a) for a in expr.args)
			assert expr.symbol is not None, "call reached lowering without a resolved symbol"
			dst = self._temp()
			self.calls.append(expr)
			self._emit(
				LCall(
					dst=dst,
					ty=expr.ty or INT,
					symbol=expr.symbol,
					args=args,
					tail_candidate=returned and expr.symbol == self.symbol,
				)
			)
			return dst
		raise TypeError(f"unsupported expression {type(expr).__name__} reached lowering")

	def _lower_short_circuit(self, expr: A.Binary) -> int:
		left = self._lower_expr(expr.left)
		slot = self._slot("and.tmp" if expr.op == "&&" else "or.tmp", BOOL)
		self._emit(LStore(slot=slot, src=left))
		rhs_b = self._new_block("sc.rhs")
		end_b = self._new_block("sc.end")
		if expr.op == "&&":
			self._terminate(LBranch(cond=left, then=rhs_b.label, otherwise=end_b.label))
		else:
			self._terminate(LBranch(cond=left, then=end_b.label, otherwise=rhs_b.label))
		self.current = rhs_b
		right = self._lower_expr(expr.right)
		self._emit(LStore(slot=slot, src=right))
		self._terminate(LJump(target=end_b.label))
		self.current = end_b
		dst = self._temp()
		self._emit(LLoad(dst=dst, ty=BOOL, slot=slot))
		return dst


def lower_module(module: A.Module, *, name: str, kind: str, interface: ModuleInterface) -> LoweredModule:
	"""Lower a checked module. Stub modules lower to an interface with no functions."""
	lowered = LoweredModule(name=name, kind=kind, interface=interface, imports=sorted({imp.module for imp in module.imports}))
	defined: Dict[str, FnSig] = {}
	bodies: List[Tuple[A.FunctionDef, str]] = []
	for fn in module.functions:
		if fn.body is None:
			continue
		symbol = link_symbol(name, fn.name, kind=kind)
		defined[symbol] = FnSig(params=tuple(p.type_ref.name for p in fn.params), ret=fn.ret.name, symbol=symbol)
		bodies.append((fn, symbol))

	externs: Dict[str, LExtern] = {}
	for fn, symbol in bodies:
		lowerer = _FunctionLowerer(fn, symbol)
		lowered.functions.append(lowerer.lower())
		for call in lowerer.calls:
			assert call.symbol is not None
			if call.symbol in defined or call.symbol in externs:
				continue
			externs[call.symbol] = LExtern(
				symbol=call.symbol,
				sig=FnSig(params=tuple(call.param_types), ret=call.ty or INT, symbol=call.symbol),
			)
	lowered.externs = [externs[s] for s in sorted(externs)]
	return lowered


__all__ = [
	"LConst",
	"LLoad",
	"LStore",
	"LUnary",
	"LBinary",
	"LCall",
	"LJump",
	"LBranch",
	"LReturn",
	"LUnreachable",
	"LBlock",
	"LSlot",
	"LoweredFunction",
	"LExtern",
	"LoweredModule",
	"lower_module",
]
