# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Frontend service: source module -> lowered module.

Pipeline per module:

  parse -> check -> desugar -> simplify (by opt level) -> lower

Each stage returns its value plus a diagnostic list; the first stage that
reports an error stops the pipeline and its diagnostics are returned to the
caller. Nothing here raises for user errors.

`FrontendSession` is the explicit build session threaded through every module
compilation: it accumulates the interfaces of modules already compiled (and of
provisioned library modules) so later modules can be checked against them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from lumen.lumenc.checker import check_module
from lumen.lumenc.core.diagnostics import Diagnostic, has_errors
from lumen.lumenc.core.span import Span
from lumen.lumenc.lower import LoweredModule, lower_module
from lumen.lumenc.module_interface import ModuleInterface
from lumen.lumenc.parser import ast as A
from lumen.lumenc.parser import parse_module
from lumen.lumenc.simplify import desugar_module, simplify_module


@dataclass(frozen=True)
class FrontendFlags:
	"""Frontend pass-through flags from the build configuration."""

	opt_level: int = 1


@dataclass(frozen=True)
class ModuleHeader:
	"""What dependency planning needs from a module: its declared name and imports."""

	path: Path
	declared_name: Optional[str]
	imports: Tuple[str, ...]


class FrontendSession:
	"""Interfaces visible to the module currently being compiled."""

	def __init__(self) -> None:
		self._interfaces: Dict[str, ModuleInterface] = {}

	def add_interface(self, interface: ModuleInterface) -> None:
		self._interfaces[interface.module] = interface

	def interface(self, module: str) -> Optional[ModuleInterface]:
		return self._interfaces.get(module)

	def interfaces_for(self, modules: List[str]) -> Mapping[str, ModuleInterface]:
		return {m: self._interfaces[m] for m in modules if m in self._interfaces}

	def __contains__(self, module: str) -> bool:
		return module in self._interfaces


class Frontend:
	"""
	The frontend service.

	Parsed ASTs from `scan` are kept until the same file is compiled so each
	source is parsed once per build.
	"""

	def __init__(self) -> None:
		self._parsed: Dict[Path, A.Module] = {}

	def scan(self, path: Path) -> Tuple[Optional[ModuleHeader], List[Diagnostic]]:
		try:
			source = path.read_text(encoding="utf-8")
		except OSError as err:
			return None, [Diagnostic(message=f"cannot read module source: {err.strerror or err}", phase="parser", span=Span(file=str(path)))]
		module, diags = parse_module(path, source)
		if module is None:
			return None, diags
		self._parsed[path] = module
		header = ModuleHeader(path=path, declared_name=module.name, imports=tuple(imp.module for imp in module.imports))
		return header, diags

	def compile(
		self,
		session: FrontendSession,
		*,
		name: str,
		kind: str,
		path: Path,
		flags: FrontendFlags,
	) -> Tuple[Optional[LoweredModule], List[Diagnostic]]:
		"""
		Compile one module against the session.

		On success the module's interface is added to the session so modules
		compiled later can import it.
		"""
		module = self._parsed.pop(path, None)
		if module is None:
			module, diags = parse_module(path)
			if module is None:
				return None, diags

		imported = session.interfaces_for([imp.module for imp in module.imports])
		interface, diags = check_module(module, module_name=name, kind=kind, path=path, imported=imported)
		if has_errors(diags):
			return None, diags

		module = desugar_module(module)
		module = simplify_module(module, opt_level=flags.opt_level)
		lowered = lower_module(module, name=name, kind=kind, interface=interface)
		session.add_interface(interface)
		return lowered, diags


__all__ = ["Frontend", "FrontendFlags", "FrontendSession", "ModuleHeader"]
