# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Linking per root.

For one root: read the artifact of every module reachable from it (in
compilation order), parse each body with LLVM, link them into one module,
verify it and write the result to the root's output path.

All artifacts are read and the merged module is verified before anything is
written, and the output is renamed into place from a temp file, so a failed
link never leaves a truncated file under the output name.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Tuple

from llvmlite import binding as llvm

from lumen.lumenc.artifacts import Artifact, ArtifactStore
from lumen.lumenc.errors import LinkError
from lumen.lumenc.planner import BuildPlan, RootTarget
from lumen.lumenc.report import Reporter


class Linker:
	def __init__(self, store: ArtifactStore, *, reporter: Optional[Reporter] = None) -> None:
		self.store = store
		self.reporter = reporter if reporter is not None else Reporter(quiet=True)

	def gather(self, plan: BuildPlan, root: RootTarget) -> List[Artifact]:
		"""Artifacts of every module reachable from `root`; raises on the first missing one."""
		artifacts: List[Artifact] = []
		for module in plan.reachable_from_root(root.module):
			if module.is_library:
				artifacts.append(plan.library_artifacts[module.name])
			else:
				artifacts.append(self.store.read(module.name))
		return artifacts

	def link_text(self, root: RootTarget, artifacts: List[Artifact]) -> str:
		merged: Optional[llvm.ModuleRef] = None
		for artifact in artifacts:
			if not artifact.body:
				continue
			try:
				parsed = llvm.parse_assembly(artifact.body)
			except RuntimeError as err:
				raise LinkError(
					message=f"artifact body does not parse as LLVM IR: {err}",
					module=artifact.module,
					path=str(self.store.path_for(artifact.module)),
				) from err
			if merged is None:
				parsed.name = root.module
				merged = parsed
				continue
			try:
				merged.link_in(parsed)
			except RuntimeError as err:
				raise LinkError(message=f"cannot link module '{artifact.module}': {err}", module=artifact.module) from err
		if merged is None:
			return ""
		try:
			merged.verify()
		except RuntimeError as err:
			raise LinkError(message=f"linked program is invalid: {err}", module=root.module, path=str(root.path)) from err
		return str(merged)

	def link(self, plan: BuildPlan, root: RootTarget, output: Path) -> Tuple[Path, List[str]]:
		"""Link `root` into `output`; return the output path and the linked module names."""
		self.reporter.info(f"Linking {output}")
		artifacts = self.gather(plan, root)
		text = self.link_text(root, artifacts)
		output.parent.mkdir(parents=True, exist_ok=True)
		tmp = output.with_name(output.name + f".tmp.{os.getpid()}")
		try:
			tmp.write_text(text, encoding="utf-8")
			os.replace(tmp, output)
		finally:
			if tmp.exists():
				tmp.unlink()
		return output, [a.module for a in artifacts]


__all__ = ["Linker"]
