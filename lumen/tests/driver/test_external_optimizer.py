# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from lumen.lumenc import optimizer as optimizer_mod
from lumen.lumenc.errors import ExternalToolError
from lumen.lumenc.optimizer import OPTIMIZER_FLAGS, ExternalOptimizerRunner


def _linked(tmp_path: Path) -> Path:
	path = tmp_path / "app.ll"
	path.write_text("; linked\n", encoding="utf-8")
	return path


def test_success_replaces_output_with_captured_stdout(tmp_path: Path, make_script):
	args_file = tmp_path / "args.txt"
	tool = make_script(
		"opt",
		f'printf "%s\\n" "$@" > "{args_file}"\n'
		'for a in "$@"; do last="$a"; done\n'
		'echo "; optimized"\n'
		'cat "$last"\n',
	)
	target = _linked(tmp_path)

	ExternalOptimizerRunner(str(tool)).run(target)

	assert target.read_text(encoding="utf-8") == "; optimized\n; linked\n"
	assert args_file.read_text(encoding="utf-8").splitlines() == [*OPTIMIZER_FLAGS, str(target)]
	assert not (tmp_path / "app.ll.opt").exists()


def test_nonzero_exit_keeps_original(tmp_path: Path, make_script):
	tool = make_script("opt", 'echo "half written"\nexit 3\n')
	target = _linked(tmp_path)

	with pytest.raises(ExternalToolError) as excinfo:
		ExternalOptimizerRunner(str(tool)).run(target)

	assert excinfo.value.tool_exit_code == 3
	assert excinfo.value.exit_code == 3
	assert target.read_text(encoding="utf-8") == "; linked\n"
	assert not (tmp_path / "app.ll.opt").exists()


def test_missing_optimizer_exits_127(tmp_path: Path):
	target = _linked(tmp_path)

	with pytest.raises(ExternalToolError) as excinfo:
		ExternalOptimizerRunner(str(tmp_path / "no-such-opt")).run(target)

	assert excinfo.value.exit_code == 127
	assert target.read_text(encoding="utf-8") == "; linked\n"
	assert not (tmp_path / "app.ll.opt").exists()


def test_interrupt_kills_child_and_keeps_original(tmp_path: Path, monkeypatch):
	events: list[str] = []

	class FakeProc:
		def __init__(self, argv, stdout):
			stdout.write(b"partial")
			self.waits = 0

		def wait(self):
			self.waits += 1
			if self.waits == 1:
				raise KeyboardInterrupt
			events.append("reaped")
			return -9

		def kill(self):
			events.append("killed")

	monkeypatch.setattr(optimizer_mod.subprocess, "Popen", FakeProc)
	target = _linked(tmp_path)

	with pytest.raises(KeyboardInterrupt):
		ExternalOptimizerRunner("opt").run(target)

	assert events == ["killed", "reaped"]
	assert target.read_text(encoding="utf-8") == "; linked\n"
	assert not (tmp_path / "app.ll.opt").exists()
