# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for frontend stages and the driver.

Every frontend stage returns its result together with a list of diagnostics;
the stage pipeline stops at the first stage that produced an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .span import Span


@dataclass
class Diagnostic:
	"""Represents a compiler diagnostic (error/warning/etc.)."""

	message: str
	code: str | None = None
	# Stage that produced the diagnostic ("parser", "checker", "lower", ...).
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	def to_json(self, *, default_phase: str | None = None) -> dict:
		return {
			"phase": self.phase or default_phase,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"notes": list(self.notes),
		}

	def format_human(self) -> str:
		return f"{self.span.short()}: {self.severity}: {self.message}"


def has_errors(diagnostics: list[Diagnostic]) -> bool:
	return any(d.severity == "error" for d in diagnostics)


__all__ = ["Diagnostic", "has_errors"]
