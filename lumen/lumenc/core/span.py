# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lightweight source span representation used by diagnostics.

A Span carries best-effort file/line/column info. Parser tokens and AST
locations are converted with `Span.from_loc` so every stage reports positions
the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: str | None = None) -> "Span":
		"""
		Construct a Span from a parser/location object.

		If `loc` is already a Span it is returned unchanged (with `file` filled
		in when the span did not carry one).
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			if loc.file is None and file is not None:
				return cls(file=file, line=loc.line, column=loc.column)
			return loc
		return cls(
			file=file or getattr(loc, "file", None),
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
		)

	def short(self) -> str:
		"""Render as `file:line:col` with `?` for unknown parts."""
		file = self.file or "?"
		line = self.line if self.line is not None else "?"
		column = self.column if self.column is not None else "?"
		return f"{file}:{line}:{column}"


__all__ = ["Span"]
