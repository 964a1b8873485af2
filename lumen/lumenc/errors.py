# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build driver error taxonomy.

Every failure of an invocation is a `LumencError`. Errors are structured and
serializable: a stable `reason_code`, the pipeline `stage` that failed, and
(where applicable) the module and file involved. No error is retried; the
driver reports it and exits non-zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from lumen.lumenc.core.diagnostics import Diagnostic
from lumen.lumenc.core.span import Span


@dataclass(eq=False)
class LumencError(Exception):
	"""Base class for all driver failures."""

	message: str
	module: str | None = None
	path: str | None = None
	exit_code: int = 1
	diagnostics: list[Diagnostic] = field(default_factory=list)

	reason_code: ClassVar[str] = "error"
	stage: ClassVar[str] = "driver"

	def __post_init__(self) -> None:
		super().__init__(self.message)

	def __str__(self) -> str:
		return self.format_human()

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.module:
			parts.append(f"module={self.module}")
		return " ".join(parts)

	def to_diagnostics(self) -> list[dict[str, Any]]:
		"""
		Render the error as JSON diagnostics.

		Frontend errors carry the service's own diagnostics; every other error is
		a single driver-level diagnostic anchored at `path` (when known).
		"""
		if self.diagnostics:
			out = []
			for diag in self.diagnostics:
				obj = diag.to_json(default_phase=self.stage)
				obj["module"] = self.module
				out.append(obj)
			return out
		return [
			{
				"phase": self.stage,
				"message": f"[{self.reason_code}] {self.message}",
				"severity": "error",
				"file": self.path,
				"line": None,
				"column": None,
				"notes": [],
				"module": self.module,
			}
		]

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"stage": self.stage,
			"message": self.message,
			"module": self.module,
			"path": self.path,
			"exit_code": self.exit_code,
		}

	def human_lines(self) -> list[str]:
		if self.diagnostics:
			return [f"{d.span.short()}: {d.severity}: [{self.reason_code}] {d.message}" for d in self.diagnostics]
		where = Span(file=self.path or self.module or "lumenc").short()
		return [f"{where}: error: {self.format_human()}"]


@dataclass(eq=False)
class ConfigError(LumencError):
	"""Bad or contradictory command-line options."""

	reason_code: ClassVar[str] = "config"
	stage: ClassVar[str] = "args"


@dataclass(eq=False)
class ToolchainMismatchError(LumencError):
	"""The provisioned standard library was built by a different toolchain."""

	reason_code: ClassVar[str] = "toolchain-mismatch"
	stage: ClassVar[str] = "args"


@dataclass(eq=False)
class DependencyError(LumencError):
	"""Unresolvable, ambiguous or cyclic module reference."""

	reason_code: ClassVar[str] = "dependency"
	stage: ClassVar[str] = "plan"


@dataclass(eq=False)
class FrontendError(LumencError):
	"""Syntax, name or type error reported by the frontend service."""

	reason_code: ClassVar[str] = "frontend"
	stage: ClassVar[str] = "frontend"


@dataclass(eq=False)
class BackendError(LumencError):
	"""Internal code generation failure."""

	reason_code: ClassVar[str] = "backend"
	stage: ClassVar[str] = "backend"


@dataclass(eq=False)
class MissingArtifactError(LumencError):
	"""A module artifact required for linking is absent or unreadable."""

	# "missing" | "corrupt"
	reason: str = "missing"

	reason_code: ClassVar[str] = "missing-artifact"
	stage: ClassVar[str] = "link"


@dataclass(eq=False)
class LinkError(LumencError):
	"""The IR linker rejected the merged program (e.g. duplicate definitions)."""

	reason_code: ClassVar[str] = "link"
	stage: ClassVar[str] = "link"


@dataclass(eq=False)
class ExternalToolError(LumencError):
	"""The external optimizer exited non-zero or could not be started."""

	tool_exit_code: int | None = None

	reason_code: ClassVar[str] = "external-tool"
	stage: ClassVar[str] = "optimize"


__all__ = [
	"LumencError",
	"ConfigError",
	"ToolchainMismatchError",
	"DependencyError",
	"FrontendError",
	"BackendError",
	"MissingArtifactError",
	"LinkError",
	"ExternalToolError",
]
