# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-module translation into the artifact store.

Modules are processed strictly in compilation order on one thread: each
module is checked against the interfaces its imports left in the shared
`FrontendSession`, so a module can only be compiled after its imports.

Per module:
  1. frontend service -> lowered module (or `FrontendError`, build stops)
  2. stub-only modules skip the backend; their artifact carries only the
     interface
  3. backend service -> LLVM IR text (any failure is a `BackendError`)
  4. progress line, then atomic write of the artifact (overwriting a stale
     one)

Library modules were compiled when the standard library was provisioned; they
only seed the session with their interfaces.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lumen.codegen.llvm import BackendFlags, LLVMBackend
from lumen.lumenc.artifacts import Artifact, ArtifactStore
from lumen.lumenc.core.diagnostics import has_errors
from lumen.lumenc.errors import BackendError, FrontendError
from lumen.lumenc.frontend import Frontend, FrontendFlags, FrontendSession
from lumen.lumenc.planner import BuildPlan, Module
from lumen.lumenc.report import Reporter


class ModuleCompiler:
	def __init__(
		self,
		*,
		frontend: Frontend,
		backend: LLVMBackend,
		store: ArtifactStore,
		frontend_flags: FrontendFlags,
		backend_flags: BackendFlags,
		session: Optional[FrontendSession] = None,
		reporter: Optional[Reporter] = None,
	) -> None:
		self.frontend = frontend
		self.backend = backend
		self.store = store
		self.frontend_flags = frontend_flags
		self.backend_flags = backend_flags
		self.session = session if session is not None else FrontendSession()
		self.reporter = reporter if reporter is not None else Reporter(quiet=True)

	def compile_plan(self, plan: BuildPlan) -> List[Path]:
		"""Compile every source module of `plan`; return the artifacts written."""
		for artifact in plan.library_artifacts.values():
			self.session.add_interface(artifact.interface)
		written: List[Path] = []
		for module in plan.order:
			if module.is_library:
				continue
			written.append(self.compile_module(module, deps=plan.graph.deps_of(module.name)))
		return written

	def compile_module(self, module: Module, *, deps: tuple[str, ...] = ()) -> Path:
		assert module.source_path is not None
		lowered, diags = self.frontend.compile(
			self.session,
			name=module.name,
			kind=module.kind,
			path=module.source_path,
			flags=self.frontend_flags,
		)
		if lowered is None or has_errors(diags):
			raise FrontendError(
				message=f"module '{module.name}' failed to compile",
				module=module.name,
				path=str(module.source_path),
				diagnostics=diags,
			)

		body = ""
		if not module.is_stub:
			try:
				body = self.backend.generate(lowered, module.name, self.backend_flags)
			except Exception as err:
				raise BackendError(
					message=f"code generation failed: {err}",
					module=module.name,
					path=str(module.source_path),
				) from err

		artifact = Artifact(
			module=module.name,
			kind=module.kind,
			deps=tuple(deps),
			interface=lowered.interface,
			body=body,
		)
		if module.is_stub:
			self.reporter.info(f"Skipping stub {module.name}")
		else:
			self.reporter.info(f"Compiling {module.name} into {self.store.path_for(module.name)}")
		return self.store.write(artifact)


__all__ = ["ModuleCompiler"]
