# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
lumenc: the Lumen build driver.

  argument gate -> (fallback toolchain, terminal)
                -> toolchain check -> plan -> compile each module -> link each
                   root -> external optimizer per root (optional)

Any stage failure is a `LumencError`; it is reported (human text on stderr or
JSON on stdout) and the driver exits non-zero. Nothing is retried.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from lumen.codegen.llvm import LLVMBackend
from lumen.lumenc.args import ArgGate, Delegate, InfoQuery
from lumen.lumenc.artifacts import ArtifactStore
from lumen.lumenc.compiler import ModuleCompiler
from lumen.lumenc.config import BuildConfig
from lumen.lumenc.errors import LumencError
from lumen.lumenc.frontend import Frontend, FrontendSession
from lumen.lumenc.linker import Linker
from lumen.lumenc.optimizer import ExternalOptimizerRunner
from lumen.lumenc.planner import BuildPlan, DependencyPlanner
from lumen.lumenc.report import Reporter
from lumen.lumenc.toolchain import run_fallback


@dataclass
class BuildResult:
	plan: BuildPlan
	artifacts: List[Path] = field(default_factory=list)
	outputs: List[Path] = field(default_factory=list)


def run_build(
	config: BuildConfig,
	*,
	reporter: Optional[Reporter] = None,
	frontend: Optional[Frontend] = None,
	backend: Optional[LLVMBackend] = None,
) -> BuildResult:
	"""Run the pipeline for an already validated configuration."""
	reporter = reporter if reporter is not None else Reporter(quiet=config.quiet, json_output=config.json)
	frontend = frontend if frontend is not None else Frontend()
	backend = backend if backend is not None else LLVMBackend()
	store = ArtifactStore(config.artifact_dir)
	library_store = ArtifactStore(config.stdlib_dir)

	planner = DependencyPlanner(frontend, module_roots=config.module_roots, library_store=library_store)
	plan = planner.plan(config.roots)

	compiler = ModuleCompiler(
		frontend=frontend,
		backend=backend,
		store=store,
		frontend_flags=config.frontend_flags,
		backend_flags=config.backend_flags,
		session=FrontendSession(),
		reporter=reporter,
	)
	result = BuildResult(plan=plan, artifacts=compiler.compile_plan(plan))
	if not config.perform_link:
		return result

	linker = Linker(store, reporter=reporter)
	for root in plan.roots:
		output, _ = linker.link(plan, root, config.output_for(root.path))
		result.outputs.append(output)

	if config.optimizer:
		runner = ExternalOptimizerRunner(config.optimizer, reporter=reporter)
		for output in result.outputs:
			runner.run(output)
	return result


def main(argv: list[str] | None = None) -> int:
	argv = list(sys.argv[1:] if argv is None else argv)
	reporter = Reporter(json_output="--json" in argv)
	gate = ArgGate()
	try:
		decision = gate.classify(argv)
		if isinstance(decision, InfoQuery):
			print(decision.text)
			return 0
		if isinstance(decision, Delegate):
			return run_fallback(decision.toolchain, decision.argv)
		config = decision.config
		reporter = Reporter(quiet=config.quiet, json_output=config.json)
		gate.check_preconditions(config)
		run_build(config, reporter=reporter)
	except LumencError as err:
		return reporter.failure(err)
	return reporter.success()


__all__ = ["BuildResult", "main", "run_build"]
