# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import stat
from pathlib import Path
from typing import Callable

import pytest

from lumen.lumenc.toolchain import write_stamp


@pytest.fixture
def write_file() -> Callable[[Path, str], Path]:
	def _write(path: Path, text: str) -> Path:
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(text, encoding="utf-8")
		return path

	return _write


@pytest.fixture
def stdlib_dir(tmp_path: Path) -> Path:
	"""An empty standard-library store stamped by the running toolchain."""
	path = tmp_path / "stdlib"
	write_stamp(path)
	return path


@pytest.fixture
def make_script(tmp_path: Path) -> Callable[[str, str], Path]:
	"""Write an executable /bin/sh script standing in for an external tool."""

	def _make(name: str, body: str) -> Path:
		path = tmp_path / "bin" / name
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
		path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
		return path

	return _make
