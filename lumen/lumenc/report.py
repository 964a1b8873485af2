# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Progress and failure reporting for the driver.

Progress lines go to stderr unless quiet. Failures are printed as one
`file:line:col: error: ...` line per diagnostic, or with `--json` as a single
JSON object on stdout:

  {"exit_code": n, "diagnostics": [{phase, message, severity, file, line,
  column, notes, module}, ...]}
"""

from __future__ import annotations

import json
import sys

from lumen.lumenc.errors import LumencError


class Reporter:
	def __init__(self, *, quiet: bool = False, json_output: bool = False) -> None:
		self.quiet = quiet
		self.json_output = json_output

	def info(self, message: str) -> None:
		if self.quiet or self.json_output:
			return
		print(message, file=sys.stderr)

	def success(self) -> int:
		if self.json_output:
			print(json.dumps({"exit_code": 0, "diagnostics": []}))
		return 0

	def failure(self, err: LumencError) -> int:
		"""Report `err` and return the process exit code for it."""
		if self.json_output:
			payload = {"exit_code": err.exit_code, "diagnostics": err.to_diagnostics()}
			print(json.dumps(payload))
		else:
			for line in err.human_lines():
				print(line, file=sys.stderr)
		return err.exit_code


__all__ = ["Reporter"]
