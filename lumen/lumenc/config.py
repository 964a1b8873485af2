# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build configuration for one invocation.

`BuildConfig` is constructed once by the argument gate and then only read.
Every path that used to come from the process environment (module roots, the
standard-library store) is an explicit field here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from lumen.codegen.llvm import BackendFlags
from lumen.lumenc.frontend import FrontendFlags

OUTPUT_SUFFIX = ".ll"
DEFAULT_ARTIFACT_DIR = Path("build") / "lumen" / "mods"


@dataclass(frozen=True)
class BuildConfig:
	roots: Tuple[Path, ...]
	artifact_dir: Path
	stdlib_dir: Path
	module_roots: Tuple[Path, ...] = ()
	output: Optional[Path] = None
	out_dir: Optional[Path] = None
	perform_link: bool = True
	optimizer: Optional[str] = None
	frontend_flags: FrontendFlags = field(default_factory=FrontendFlags)
	backend_flags: BackendFlags = field(default_factory=BackendFlags)
	libinstall: bool = False
	unbooted: bool = False
	json: bool = False
	quiet: bool = False

	def output_for(self, root: Path) -> Path:
		"""Output path of the linked program for `root`."""
		if self.output is not None:
			return self.output
		if self.out_dir is not None:
			return self.out_dir / (root.stem + OUTPUT_SUFFIX)
		return root.with_suffix(OUTPUT_SUFFIX)


__all__ = ["BuildConfig", "DEFAULT_ARTIFACT_DIR", "OUTPUT_SUFFIX"]
