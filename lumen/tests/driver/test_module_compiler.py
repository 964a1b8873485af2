# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from lumen.codegen.llvm import BackendFlags, LLVMBackend
from lumen.lumenc.artifacts import ArtifactStore
from lumen.lumenc.compiler import ModuleCompiler
from lumen.lumenc.errors import BackendError, FrontendError
from lumen.lumenc.frontend import Frontend, FrontendFlags
from lumen.lumenc.module_interface import KIND_STUB
from lumen.lumenc.planner import DependencyPlanner
from lumen.lumenc.report import Reporter


class CountingFrontend(Frontend):
	def __init__(self) -> None:
		super().__init__()
		self.compiled: list[str] = []

	def compile(self, session, *, name, kind, path, flags):
		self.compiled.append(name)
		return super().compile(session, name=name, kind=kind, path=path, flags=flags)


class CountingBackend(LLVMBackend):
	def __init__(self) -> None:
		self.generated: list[str] = []

	def generate(self, lowered, module_name, flags):
		self.generated.append(module_name)
		return super().generate(lowered, module_name, flags)


class ExplodingBackend(LLVMBackend):
	def generate(self, lowered, module_name, flags):
		raise RuntimeError("boom")


def _compile(tmp_path: Path, roots: list[Path], *, backend=None, reporter=None):
	frontend = CountingFrontend()
	backend = backend if backend is not None else CountingBackend()
	store = ArtifactStore(tmp_path / "mods")
	plan = DependencyPlanner(frontend).plan(roots)
	compiler = ModuleCompiler(
		frontend=frontend,
		backend=backend,
		store=store,
		frontend_flags=FrontendFlags(),
		backend_flags=BackendFlags(),
		reporter=reporter,
	)
	written = compiler.compile_plan(plan)
	return frontend, backend, store, written


def test_stub_dependency_gets_interface_artifact_without_backend_call(tmp_path: Path, write_file):
	src = tmp_path / "src"
	write_file(src / "a.lm", "import b;\nfn main() -> Int { return b.ext(1); }\n")
	write_file(src / "b.lmi", "pub fn ext(x: Int) -> Int;\n")

	frontend, backend, store, written = _compile(tmp_path, [src / "a.lm"])

	assert frontend.compiled == ["b", "a"]
	assert backend.generated == ["a"]
	assert written == [store.path_for("b"), store.path_for("a")]
	stub = store.read("b")
	assert stub.kind == KIND_STUB
	assert stub.body == ""
	assert stub.interface.functions["ext"].symbol == "ext"
	assert "call i64 @\"ext\"" in store.read("a").body


def test_progress_lines_name_each_module(tmp_path: Path, write_file, capsys):
	src = tmp_path / "src"
	write_file(src / "a.lm", "import b;\nfn main() -> Int { return b.ext(1); }\n")
	write_file(src / "b.lmi", "pub fn ext(x: Int) -> Int;\n")

	_, _, store, _ = _compile(tmp_path, [src / "a.lm"], reporter=Reporter())

	err = capsys.readouterr().err.splitlines()
	assert err == ["Skipping stub b", f"Compiling a into {store.path_for('a')}"]


def test_recompiling_unchanged_sources_is_byte_identical(tmp_path: Path, write_file):
	src = tmp_path / "src"
	write_file(src / "a.lm", "import c;\nfn main() -> Int { return c.f(2) / 2; }\n")
	write_file(src / "c.lm", "pub fn f(x: Int) -> Int { if x > 1 { return x * 3; } return 0; }\n")

	_, _, store, _ = _compile(tmp_path, [src / "a.lm"])
	first = {name: store.path_for(name).read_bytes() for name in ("a", "c")}
	_, _, store, _ = _compile(tmp_path, [src / "a.lm"])
	second = {name: store.path_for(name).read_bytes() for name in ("a", "c")}

	assert first == second


def test_frontend_error_stops_at_failing_module(tmp_path: Path, write_file):
	src = tmp_path / "src"
	write_file(src / "a.lm", "import b;\nimport c;\nfn main() -> Int { return 0; }\n")
	write_file(src / "b.lm", "pub fn f() -> Int { return true; }\n")
	write_file(src / "c.lm", "pub fn g() -> Int { return 1; }\n")
	frontend = CountingFrontend()
	store = ArtifactStore(tmp_path / "mods")
	plan = DependencyPlanner(frontend).plan([src / "a.lm"])
	compiler = ModuleCompiler(
		frontend=frontend,
		backend=CountingBackend(),
		store=store,
		frontend_flags=FrontendFlags(),
		backend_flags=BackendFlags(),
	)

	with pytest.raises(FrontendError) as excinfo:
		compiler.compile_plan(plan)

	assert excinfo.value.module == "b"
	assert [d.message for d in excinfo.value.diagnostics] == ["return value must be Int, found Bool"]
	assert frontend.compiled == ["b"]
	assert not store.exists("b")
	assert not store.exists("c")
	assert not store.exists("a")


def test_backend_failure_is_wrapped(tmp_path: Path, write_file):
	src = tmp_path / "src"
	write_file(src / "a.lm", "fn main() -> Int { return 0; }\n")

	with pytest.raises(BackendError) as excinfo:
		_compile(tmp_path, [src / "a.lm"], backend=ExplodingBackend())
	assert excinfo.value.module == "a"
	assert "boom" in excinfo.value.message


def test_stale_artifact_is_overwritten(tmp_path: Path, write_file):
	src = tmp_path / "src"
	path = write_file(src / "a.lm", "fn main() -> Int { return 1; }\n")
	_, _, store, _ = _compile(tmp_path, [path])
	before = store.read("a").body

	write_file(path, "fn main() -> Int { return 2; }\n")
	_, _, store, _ = _compile(tmp_path, [path])

	assert store.read("a").body != before
	assert "ret i64 2" in store.read("a").body


def test_failing_module_prints_no_progress_line(tmp_path: Path, write_file, capsys):
	src = tmp_path / "src"
	write_file(src / "a.lm", "import b;\nfn main() -> Int { return b.f(); }\n")
	write_file(src / "b.lm", "pub fn f() -> Int { return true; }\n")

	with pytest.raises(FrontendError):
		_compile(tmp_path, [src / "a.lm"], reporter=Reporter())

	assert "Compiling" not in capsys.readouterr().err
