# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dependency planning.

Given the root files of an invocation, discover every module they transitively
import and produce an explicit build plan:

- `modules`: every required module, by name
- `graph`: module -> direct imports
- `order`: a compilation order in which every module follows its imports
- `roots`: the root files with the module name each one resolved to

Module names map to files under module roots: `a.b` is `<root>/a/b.lm` (a
normal module) or `<root>/a/b.lmi` (a stub-only module). A name no module root
provides is looked up in the provisioned standard-library store; such library
modules are never recompiled, their artifacts only contribute interfaces and
link bodies.

Order is deterministic: depth-first post-order following imports in source
order, starting from the roots in command-line order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from lumen.lumenc.artifacts import Artifact, ArtifactStore
from lumen.lumenc.core.diagnostics import has_errors
from lumen.lumenc.errors import DependencyError, FrontendError, MissingArtifactError
from lumen.lumenc.frontend import Frontend, ModuleHeader
from lumen.lumenc.module_interface import KIND_NORMAL, KIND_STUB
from lumen.lumenc.version import STUB_EXTENSION, SUPPORTED_EXTENSIONS

ORIGIN_SOURCE = "source"
ORIGIN_LIBRARY = "library"

_NORMAL_EXT = SUPPORTED_EXTENSIONS[0]


@dataclass(frozen=True)
class Module:
	name: str
	kind: str
	source_path: Optional[Path]
	origin: str = ORIGIN_SOURCE

	@property
	def is_stub(self) -> bool:
		return self.kind == KIND_STUB

	@property
	def is_library(self) -> bool:
		return self.origin == ORIGIN_LIBRARY


@dataclass
class DependencyGraph:
	"""Module name -> names of the modules it imports directly."""

	edges: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

	def deps_of(self, name: str) -> Tuple[str, ...]:
		return self.edges.get(name, ())

	def reachable_from(self, name: str) -> Set[str]:
		seen: Set[str] = set()
		stack = [name]
		while stack:
			cur = stack.pop()
			if cur in seen:
				continue
			seen.add(cur)
			stack.extend(self.deps_of(cur))
		return seen


@dataclass(frozen=True)
class CompilationOrder:
	modules: Tuple[Module, ...]

	def __iter__(self) -> Iterator[Module]:
		return iter(self.modules)

	def __len__(self) -> int:
		return len(self.modules)

	def names(self) -> List[str]:
		return [m.name for m in self.modules]

	def index(self, name: str) -> int:
		return self.names().index(name)


@dataclass(frozen=True)
class RootTarget:
	path: Path
	module: str


@dataclass
class BuildPlan:
	roots: List[RootTarget]
	modules: Dict[str, Module]
	graph: DependencyGraph
	order: CompilationOrder
	# Artifacts of library modules, read once during planning.
	library_artifacts: Dict[str, Artifact] = field(default_factory=dict)

	def reachable_from_root(self, root_module: str) -> List[Module]:
		"""Modules reachable from `root_module`, in compilation order."""
		reachable = self.graph.reachable_from(root_module)
		return [m for m in self.order if m.name in reachable]


def _module_name_for(path: Path, root: Path) -> Optional[str]:
	try:
		rel = path.relative_to(root)
	except ValueError:
		return None
	parts = rel.with_suffix("").parts
	if not parts:
		return None
	return ".".join(parts)


def _kind_for(path: Path) -> str:
	return KIND_STUB if path.suffix == STUB_EXTENSION else KIND_NORMAL


class DependencyPlanner:
	"""
	Computes the build plan for a set of root files.

	Args:
	  frontend: frontend service used to read each module's imports.
	  module_roots: explicit module roots (`-M`), searched in order. The
	    directory a root file resolves from is always added as a root too.
	  library_store: provisioned standard-library artifacts, consulted for
	    names no module root provides.
	"""

	def __init__(
		self,
		frontend: Frontend,
		*,
		module_roots: Sequence[Path] = (),
		library_store: Optional[ArtifactStore] = None,
	) -> None:
		self.frontend = frontend
		self.module_roots: List[Path] = []
		for root in module_roots:
			self._add_root(root)
		self.library_store = library_store
		self._modules: Dict[str, Module] = {}
		self._headers: Dict[str, ModuleHeader] = {}
		self._library: Dict[str, Artifact] = {}

	def _add_root(self, root: Path) -> None:
		root = root.resolve()
		if root not in self.module_roots:
			self.module_roots.append(root)

	def plan(self, root_files: Sequence[Path]) -> BuildPlan:
		roots: List[RootTarget] = []
		for path in root_files:
			roots.append(self._register_root(path))

		graph = DependencyGraph()
		order: List[Module] = []
		done: Set[str] = set()
		for target in roots:
			self._visit(target.module, [], graph, order, done)

		return BuildPlan(
			roots=roots,
			modules=dict(self._modules),
			graph=graph,
			order=CompilationOrder(tuple(order)),
			library_artifacts=dict(self._library),
		)

	def _register_root(self, path: Path) -> RootTarget:
		path = path.resolve()
		if not path.is_file():
			raise DependencyError(message=f"root file not found: {path}", path=str(path))
		header = self._scan(path, module=path.stem)
		name = self._root_module_name(path, header)
		existing = self._modules.get(name)
		if existing is not None and existing.source_path != path:
			raise DependencyError(
				message=f"roots {existing.source_path} and {path} both define module '{name}'",
				module=name,
				path=str(path),
			)
		self._modules[name] = Module(name=name, kind=_kind_for(path), source_path=path)
		self._headers[name] = header
		return RootTarget(path=path, module=name)

	def _root_module_name(self, path: Path, header: ModuleHeader) -> str:
		for root in self.module_roots:
			name = _module_name_for(path, root)
			if name is not None:
				return name
		declared = header.declared_name
		if declared:
			parts = declared.split(".")
			stem_parts = path.with_suffix("").parts
			if len(stem_parts) > len(parts) and list(stem_parts[-len(parts):]) == parts:
				self._add_root(path.parents[len(parts) - 1])
				return declared
		self._add_root(path.parent)
		return path.stem

	def _scan(self, path: Path, *, module: str) -> ModuleHeader:
		header, diags = self.frontend.scan(path)
		if header is None or has_errors(diags):
			raise FrontendError(
				message=f"cannot read imports of module '{module}'",
				module=module,
				path=str(path),
				diagnostics=diags,
			)
		return header

	def _visit(
		self,
		name: str,
		stack: List[str],
		graph: DependencyGraph,
		order: List[Module],
		done: Set[str],
	) -> None:
		if name in done:
			return
		if name in stack:
			cycle = " -> ".join([*stack[stack.index(name):], name])
			raise DependencyError(message=f"import cycle: {cycle}", module=name)
		module = self._modules.get(name)
		if module is None:
			module = self._resolve(name, importer=stack[-1] if stack else None)
		deps = self._deps_of(module)
		graph.edges[name] = deps
		stack.append(name)
		for dep in deps:
			self._visit(dep, stack, graph, order, done)
		stack.pop()
		done.add(name)
		order.append(module)

	def _deps_of(self, module: Module) -> Tuple[str, ...]:
		if module.is_library:
			return tuple(self._library[module.name].deps)
		header = self._headers.get(module.name)
		if header is None:
			assert module.source_path is not None
			header = self._scan(module.source_path, module=module.name)
			self._headers[module.name] = header
		deps: List[str] = []
		for imp in header.imports:
			if imp not in deps:
				deps.append(imp)
		return tuple(deps)

	def _resolve(self, name: str, *, importer: Optional[str]) -> Module:
		importer_is_library = importer is not None and self._modules[importer].is_library
		hits: List[Path] = []
		if not importer_is_library:
			rel = Path(*name.split("."))
			for root in self.module_roots:
				for ext in (_NORMAL_EXT, STUB_EXTENSION):
					candidate = root / rel.with_suffix(ext)
					if candidate.is_file() and candidate not in hits:
						hits.append(candidate)
		if len(hits) > 1:
			listing = ", ".join(str(h) for h in hits)
			raise DependencyError(message=f"module '{name}' is ambiguous: {listing}", module=name)
		if hits:
			module = Module(name=name, kind=_kind_for(hits[0]), source_path=hits[0])
		else:
			module = self._resolve_library(name, importer=importer)
		self._modules[name] = module
		return module

	def _resolve_library(self, name: str, *, importer: Optional[str]) -> Module:
		store = self.library_store
		if store is None or not store.exists(name):
			where = f" (imported by '{importer}')" if importer else ""
			raise DependencyError(message=f"module '{name}' not found{where}", module=name)
		try:
			artifact = store.read(name)
		except MissingArtifactError as err:
			raise DependencyError(message=f"library module '{name}' is unusable: {err.message}", module=name, path=err.path) from err
		self._library[name] = artifact
		return Module(name=name, kind=artifact.kind, source_path=None, origin=ORIGIN_LIBRARY)


__all__ = [
	"ORIGIN_SOURCE",
	"ORIGIN_LIBRARY",
	"Module",
	"DependencyGraph",
	"CompilationOrder",
	"RootTarget",
	"BuildPlan",
	"DependencyPlanner",
]
