# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest
from llvmlite import binding as llvm

from lumen.codegen.llvm import BackendFlags, LLVMBackend
from lumen.lumenc.artifacts import ArtifactStore
from lumen.lumenc.compiler import ModuleCompiler
from lumen.lumenc.errors import LinkError, MissingArtifactError
from lumen.lumenc.frontend import Frontend, FrontendFlags
from lumen.lumenc.linker import Linker
from lumen.lumenc.planner import DependencyPlanner


def _build(tmp_path: Path, roots: list[Path]):
	frontend = Frontend()
	store = ArtifactStore(tmp_path / "mods")
	plan = DependencyPlanner(frontend).plan(roots)
	ModuleCompiler(
		frontend=frontend,
		backend=LLVMBackend(),
		store=store,
		frontend_flags=FrontendFlags(),
		backend_flags=BackendFlags(),
	).compile_plan(plan)
	return plan, store


def _project(tmp_path: Path, write_file) -> Path:
	src = tmp_path / "src"
	write_file(src / "app.lm", "import util;\nimport rt;\nfn main() -> Int { return util.twice(rt.ext(2)); }\n")
	write_file(src / "util.lm", "pub fn twice(x: Int) -> Int { return x + x; }\n")
	write_file(src / "rt.lmi", "pub fn ext(x: Int) -> Int;\n")
	write_file(src / "other.lm", "fn main() -> Int { return 7; }\n")
	return src


def test_link_merges_exactly_the_reachable_modules(tmp_path: Path, write_file):
	src = _project(tmp_path, write_file)
	plan, store = _build(tmp_path, [src / "app.lm", src / "other.lm"])
	out = tmp_path / "out" / "app.ll"

	path, linked = Linker(store).link(plan, plan.roots[0], out)

	assert path == out
	assert linked == ["util", "rt", "app"]
	text = out.read_text(encoding="utf-8")
	mod = llvm.parse_assembly(text)
	mod.verify()
	defined = {fn.name for fn in mod.functions if not fn.is_declaration}
	assert "util.twice" in defined
	assert "app.main" in defined
	assert "main" in defined
	assert "other.main" not in {fn.name for fn in mod.functions}
	declared = {fn.name for fn in mod.functions if fn.is_declaration}
	assert "ext" in declared


def test_missing_artifact_fails_without_writing_output(tmp_path: Path, write_file):
	src = _project(tmp_path, write_file)
	plan, store = _build(tmp_path, [src / "app.lm"])
	store.path_for("util").unlink()
	out = tmp_path / "app.ll"

	with pytest.raises(MissingArtifactError) as excinfo:
		Linker(store).link(plan, plan.roots[0], out)

	assert excinfo.value.module == "util"
	assert not out.exists()


def test_failed_link_leaves_previous_output_untouched(tmp_path: Path, write_file):
	src = _project(tmp_path, write_file)
	plan, store = _build(tmp_path, [src / "app.lm"])
	out = tmp_path / "app.ll"
	out.write_text("previous\n", encoding="utf-8")
	path = store.path_for("util")
	path.write_bytes(path.read_bytes()[:-3])

	with pytest.raises(MissingArtifactError):
		Linker(store).link(plan, plan.roots[0], out)

	assert out.read_text(encoding="utf-8") == "previous\n"
	assert sorted(p.name for p in tmp_path.iterdir() if p.name.startswith("app.ll")) == ["app.ll"]


def test_duplicate_entry_points_are_a_link_error(tmp_path: Path, write_file):
	src = tmp_path / "src"
	write_file(src / "app.lm", "import tool;\nfn main() -> Int { return tool.run(); }\n")
	write_file(src / "tool.lm", "pub fn run() -> Int { return 1; }\nfn main() -> Int { return 2; }\n")
	plan, store = _build(tmp_path, [src / "app.lm"])
	out = tmp_path / "app.ll"

	with pytest.raises(LinkError):
		Linker(store).link(plan, plan.roots[0], out)
	assert not out.exists()
