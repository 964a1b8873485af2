# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Module interfaces: the public shape of a compiled module.

An interface lists every `pub` function with its signature and link symbol.
It is what importing modules are checked against, and it is persisted in each
artifact header so provisioned library modules can be imported without their
sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

KIND_NORMAL = "normal"
KIND_STUB = "stub"


def link_symbol(module_name: str, fn_name: str, *, kind: str) -> str:
	"""
	Link symbol for `fn_name` defined in `module_name`.

	Stub (interface-only) modules describe externally provided code, so their
	functions bind to the bare name.
	"""
	if kind == KIND_STUB:
		return fn_name
	return f"{module_name}.{fn_name}"


@dataclass(frozen=True)
class FnSig:
	params: Tuple[str, ...]
	ret: str
	symbol: str

	def to_json(self) -> dict[str, Any]:
		return {"params": list(self.params), "ret": self.ret, "symbol": self.symbol}

	@staticmethod
	def from_json(obj: Mapping[str, Any]) -> "FnSig":
		if not isinstance(obj, Mapping):
			raise ValueError("interface entry must be an object")
		params = obj.get("params")
		ret = obj.get("ret")
		symbol = obj.get("symbol")
		if not isinstance(params, list) or not all(isinstance(p, str) for p in params):
			raise ValueError("interface params must be a list of type names")
		if not isinstance(ret, str) or not isinstance(symbol, str) or not symbol:
			raise ValueError("interface entry is missing ret/symbol")
		return FnSig(params=tuple(params), ret=ret, symbol=symbol)


@dataclass
class ModuleInterface:
	module: str
	kind: str = KIND_NORMAL
	functions: Dict[str, FnSig] = field(default_factory=dict)

	def to_json(self) -> dict[str, Any]:
		return {name: sig.to_json() for name, sig in sorted(self.functions.items())}

	@staticmethod
	def from_json(module: str, kind: str, obj: Mapping[str, Any]) -> "ModuleInterface":
		if not isinstance(obj, Mapping):
			raise ValueError("interface must be an object")
		return ModuleInterface(
			module=module,
			kind=kind,
			functions={str(name): FnSig.from_json(raw) for name, raw in obj.items()},
		)


__all__ = ["KIND_NORMAL", "KIND_STUB", "FnSig", "ModuleInterface", "link_symbol"]
