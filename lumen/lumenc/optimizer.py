# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
External whole-program optimizer step.

The linked file is passed to the optimizer as a positional argument and the
optimizer's stdout is captured in a side file next to it (`<file>.opt`). Only
after a zero exit is the side file renamed over the linked file, so the output
name always holds either the pre-optimization or the complete optimized
program.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional

from lumen.lumenc.errors import ExternalToolError
from lumen.lumenc.report import Reporter

OPTIMIZER_FLAGS = (
	"-S",
	"-emit-llvm",
	"-O3",
	"-Wno-override-module",
	"-Wno-unused-command-line-argument",
	"-x",
	"ir",
	"-o",
	"-",
)
SIDE_SUFFIX = ".opt"
SPAWN_FAILED_EXIT = 127


def optimizer_argv(optimizer: str, target: Path) -> List[str]:
	return [optimizer, *OPTIMIZER_FLAGS, str(target)]


class ExternalOptimizerRunner:
	def __init__(self, optimizer: str, *, reporter: Optional[Reporter] = None) -> None:
		self.optimizer = optimizer
		self.reporter = reporter if reporter is not None else Reporter(quiet=True)

	def side_path(self, target: Path) -> Path:
		return target.with_name(target.name + SIDE_SUFFIX)

	def run(self, target: Path) -> Path:
		"""Optimize `target` in place; on any failure `target` is left as it was."""
		self.reporter.info(f"Running the external optimizer on {target}...")
		side = self.side_path(target)
		argv = optimizer_argv(self.optimizer, target)
		try:
			with side.open("wb") as out:
				try:
					proc = subprocess.Popen(argv, stdout=out)
				except OSError as err:
					raise ExternalToolError(
						message=f"external optimizer '{self.optimizer}' could not be started: {err.strerror or err}",
						path=str(target),
						exit_code=SPAWN_FAILED_EXIT,
						tool_exit_code=SPAWN_FAILED_EXIT,
					) from err
				try:
					code = proc.wait()
				except KeyboardInterrupt:
					proc.kill()
					proc.wait()
					raise
			if code != 0:
				raise ExternalToolError(
					message=f"external optimizer exited with status {code}",
					path=str(target),
					exit_code=code if code > 0 else 1,
					tool_exit_code=code,
				)
			side.replace(target)
		finally:
			if side.exists():
				side.unlink()
		return target


__all__ = ["ExternalOptimizerRunner", "OPTIMIZER_FLAGS", "optimizer_argv"]
