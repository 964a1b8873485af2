# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parser entrypoints used by the frontend.

`parse_module` converts lark syntax errors into parser-phase diagnostics so
callers only ever see a (module, diagnostics) pair.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from lumen.lumenc.core.diagnostics import Diagnostic
from lumen.lumenc.core.span import Span

from . import ast
from .parser import parse_module_source


def _syntax_message(err: UnexpectedInput) -> str:
	if isinstance(err, UnexpectedToken):
		tok = err.token
		if tok.type == "$END":
			return "unexpected end of file"
		expected = ", ".join(sorted(err.expected)) if err.expected else "?"
		return f"unexpected token '{tok}' (expected one of: {expected})"
	if isinstance(err, UnexpectedCharacters):
		return f"unexpected character '{err.char}'"
	return "syntax error"


def parse_module(path: Path, source: Optional[str] = None) -> Tuple[Optional[ast.Module], List[Diagnostic]]:
	"""
	Parse the module file at `path`.

	Returns `(module, [])` on success and `(None, diagnostics)` on a syntax
	error. `source` may be passed when the caller already read the file.
	"""
	if source is None:
		source = path.read_text(encoding="utf-8")
	try:
		return parse_module_source(source), []
	except UnexpectedInput as err:
		span = Span(file=str(path), line=getattr(err, "line", None), column=getattr(err, "column", None))
		return None, [Diagnostic(message=_syntax_message(err), phase="parser", span=span)]


__all__ = ["ast", "parse_module", "parse_module_source"]
