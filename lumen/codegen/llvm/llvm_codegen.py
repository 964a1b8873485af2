# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lowered module -> LLVM IR text (the backend service).

Type mapping: Int is i64, Bool is i1. Every stack slot of a lowered function
becomes an alloca in the entry block; temporaries map 1:1 to SSA values.

Flags:
  - tce: self calls whose result is returned directly are emitted as `tail`
    calls.
  - unsafe: skip the divide/remainder-by-zero `llvm.trap` guards.

Output is deterministic: same lowered module and flags give byte-identical
text (no timestamps, no host-derived triple).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from llvmlite import ir

from lumen.lumenc.lower import (
	LBinary,
	LBranch,
	LCall,
	LConst,
	LJump,
	LLoad,
	LoweredFunction,
	LoweredModule,
	LReturn,
	LStore,
	LUnary,
	LUnreachable,
)
from lumen.lumenc.module_interface import FnSig

I64 = ir.IntType(64)
I32 = ir.IntType(32)
I1 = ir.IntType(1)

_LLVM_TYPES = {"Int": I64, "Bool": I1}

_ARITH = {"+": "add", "-": "sub", "*": "mul", "/": "sdiv", "%": "srem"}
_COMPARE = frozenset({"<", "<=", ">", ">=", "==", "!="})


class CodegenError(ValueError):
	"""Lowered input the backend cannot translate (internal compiler error)."""


@dataclass(frozen=True)
class BackendFlags:
	tce: bool = False
	unsafe: bool = False


def _llvm_type(name: str) -> ir.Type:
	ty = _LLVM_TYPES.get(name)
	if ty is None:
		raise CodegenError(f"no LLVM type for '{name}'")
	return ty


def _fn_type(sig: FnSig) -> ir.FunctionType:
	return ir.FunctionType(_llvm_type(sig.ret), [_llvm_type(p) for p in sig.params])


class _ModuleEmitter:
	def __init__(self, lowered: LoweredModule, module_name: str, flags: BackendFlags) -> None:
		self.lowered = lowered
		self.flags = flags
		self.module = ir.Module(name=module_name)
		self.functions: Dict[str, ir.Function] = {}
		self._trap: Optional[ir.Function] = None

	def emit(self) -> str:
		for ext in self.lowered.externs:
			self.functions[ext.symbol] = ir.Function(self.module, _fn_type(ext.sig), name=ext.symbol)
		for fn in self.lowered.functions:
			sig = FnSig(params=tuple(t for _, t in fn.params), ret=fn.ret, symbol=fn.symbol)
			llvm_fn = ir.Function(self.module, _fn_type(sig), name=fn.symbol)
			if fn.name not in self.lowered.interface.functions:
				llvm_fn.linkage = "internal"
			self.functions[fn.symbol] = llvm_fn
		for fn in self.lowered.functions:
			self._emit_function(fn)
		main = next((fn for fn in self.lowered.functions if fn.name == "main"), None)
		if main is not None:
			self._emit_entry_wrapper(main)
		return str(self.module)

	def _trap_fn(self) -> ir.Function:
		if self._trap is None:
			self._trap = self.module.declare_intrinsic("llvm.trap", fnty=ir.FunctionType(ir.VoidType(), []))
		return self._trap

	def _emit_function(self, fn: LoweredFunction) -> None:
		llvm_fn = self.functions[fn.symbol]
		blocks: Dict[str, ir.Block] = {}
		for block in fn.blocks:
			blocks[block.label] = llvm_fn.append_basic_block(name=block.label)

		builder = ir.IRBuilder(blocks[fn.blocks[0].label])
		slots = [builder.alloca(_llvm_type(slot.ty), name=f"{slot.name}.addr") for slot in fn.slots]
		for idx, (arg, (pname, _pty)) in enumerate(zip(llvm_fn.args, fn.params)):
			arg.name = pname
			builder.store(arg, slots[idx])

		temps: Dict[int, ir.Value] = {}
		for block in fn.blocks:
			if block.label != fn.blocks[0].label:
				builder.position_at_end(blocks[block.label])
			for instr in block.instrs:
				self._emit_instr(builder, instr, temps, slots)
			term = block.terminator
			if isinstance(term, LJump):
				builder.branch(blocks[term.target])
			elif isinstance(term, LBranch):
				builder.cbranch(temps[term.cond], blocks[term.then], blocks[term.otherwise])
			elif isinstance(term, LReturn):
				builder.ret(temps[term.value])
			elif isinstance(term, LUnreachable) or term is None:
				builder.unreachable()
			else:
				raise CodegenError(f"unknown terminator {term!r}")

	def _emit_instr(self, builder: ir.IRBuilder, instr: object, temps: Dict[int, ir.Value], slots: list) -> None:
		if isinstance(instr, LConst):
			temps[instr.dst] = ir.Constant(_llvm_type(instr.ty), int(instr.value))
		elif isinstance(instr, LLoad):
			temps[instr.dst] = builder.load(slots[instr.slot])
		elif isinstance(instr, LStore):
			builder.store(temps[instr.src], slots[instr.slot])
		elif isinstance(instr, LUnary):
			src = temps[instr.src]
			temps[instr.dst] = builder.neg(src) if instr.op == "-" else builder.not_(src)
		elif isinstance(instr, LBinary):
			temps[instr.dst] = self._emit_binary(builder, instr, temps[instr.lhs], temps[instr.rhs])
		elif isinstance(instr, LCall):
			callee = self.functions.get(instr.symbol)
			if callee is None:
				raise CodegenError(f"call to undeclared symbol '{instr.symbol}'")
			tail = self.flags.tce and instr.tail_candidate
			temps[instr.dst] = builder.call(callee, [temps[a] for a in instr.args], tail=tail)
		else:
			raise CodegenError(f"unknown instruction {instr!r}")

	def _emit_binary(self, builder: ir.IRBuilder, instr: LBinary, lhs: ir.Value, rhs: ir.Value) -> ir.Value:
		if instr.op in _COMPARE:
			if instr.operand_ty == "Bool":
				return builder.icmp_unsigned(instr.op, lhs, rhs)
			return builder.icmp_signed(instr.op, lhs, rhs)
		method = _ARITH.get(instr.op)
		if method is None:
			raise CodegenError(f"unknown binary operator '{instr.op}'")
		if method in ("sdiv", "srem") and not self.flags.unsafe:
			is_zero = builder.icmp_signed("==", rhs, ir.Constant(I64, 0))
			with builder.if_then(is_zero, likely=False):
				builder.call(self._trap_fn(), [])
		return getattr(builder, method)(lhs, rhs)

	def _emit_entry_wrapper(self, main: LoweredFunction) -> None:
		"""C entry point `i32 main()` forwarding to the module's `main`."""
		wrapper = ir.Function(self.module, ir.FunctionType(I32, []), name="main")
		builder = ir.IRBuilder(wrapper.append_basic_block(name="entry"))
		result = builder.call(self.functions[main.symbol], [])
		builder.ret(builder.trunc(result, I32))


class LLVMBackend:
	"""The backend service: deterministic LLVM IR text per lowered module."""

	def generate(self, lowered: LoweredModule, module_name: str, flags: BackendFlags) -> str:
		return _ModuleEmitter(lowered, module_name, flags).emit()


__all__ = ["BackendFlags", "CodegenError", "LLVMBackend"]
