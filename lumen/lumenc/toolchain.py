# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Toolchain consistency and fallback delegation.

The provisioned standard-library store carries a `VERSION` stamp naming the
toolchain that built it. A normal build refuses to run against a store stamped
by a different toolchain (or not stamped at all) unless `--unbooted` is given.

Inputs this pipeline does not understand are handed, with the whole
invocation, to a fallback toolchain subprocess whose exit status becomes ours.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path
from typing import Sequence

from lumen.lumenc.errors import ConfigError, ToolchainMismatchError
from lumen.lumenc.version import TOOLCHAIN_VERSION

STAMP_NAME = "VERSION"
REBOOT_MSG = "lumenc needs to be rebooted; please run lumen-boot"
DEFAULT_FALLBACK_TOOLCHAIN = "clang"


def default_stdlib_dir() -> Path:
	return Path.home() / ".lumen" / "stdlib"


def read_stamp(stdlib_dir: Path) -> str | None:
	try:
		return (stdlib_dir / STAMP_NAME).read_text(encoding="utf-8").strip()
	except FileNotFoundError:
		return None


def needs_reboot(stdlib_dir: Path, *, version: str = TOOLCHAIN_VERSION) -> bool:
	return read_stamp(stdlib_dir) != version


def write_stamp(stdlib_dir: Path, *, version: str = TOOLCHAIN_VERSION) -> None:
	stdlib_dir.mkdir(parents=True, exist_ok=True)
	path = stdlib_dir / STAMP_NAME
	tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
	tmp.write_text(version + "\n", encoding="utf-8")
	os.replace(tmp, path)


def check_toolchain(stdlib_dir: Path, *, unbooted: bool) -> None:
	"""Raise `ToolchainMismatchError` unless the stdlib store matches this toolchain."""
	if unbooted:
		return
	if needs_reboot(stdlib_dir):
		raise ToolchainMismatchError(message=REBOOT_MSG, path=str(stdlib_dir))


def run_fallback(command: str, argv: Sequence[str]) -> int:
	"""Run the fallback toolchain with `argv` and return its exit status."""
	cmd = [*shlex.split(command), *argv]
	try:
		proc = subprocess.run(cmd)
	except OSError as err:
		raise ConfigError(
			message=f"fallback toolchain '{command}' could not be started: {err.strerror or err}",
			exit_code=127,
		) from err
	return proc.returncode


__all__ = [
	"STAMP_NAME",
	"REBOOT_MSG",
	"DEFAULT_FALLBACK_TOOLCHAIN",
	"default_stdlib_dir",
	"read_stamp",
	"needs_reboot",
	"write_stamp",
	"check_toolchain",
	"run_fallback",
]
