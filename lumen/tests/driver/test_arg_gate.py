# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from lumen.lumenc.args import ArgGate, Build, Delegate, InfoQuery, expand_aliases
from lumen.lumenc.config import DEFAULT_ARTIFACT_DIR
from lumen.lumenc.errors import ConfigError, ToolchainMismatchError
from lumen.lumenc.toolchain import REBOOT_MSG, write_stamp
from lumen.lumenc.version import LUMEN_VERSION


def _classify(argv: list[str]):
	return ArgGate().classify(argv)


def test_information_queries_short_circuit_in_fixed_order():
	decision = _classify(["--version", "--numeric-version", "main.lm"])
	assert isinstance(decision, InfoQuery)
	assert decision.kind == "numeric_version"
	assert decision.text == LUMEN_VERSION

	decision = _classify(["--supported-languages", "--version"])
	assert isinstance(decision, InfoQuery) and decision.kind == "version"
	assert LUMEN_VERSION in decision.text


def test_info_lists_key_value_pairs():
	decision = _classify(["--info", "--stdlib-dir", "/opt/lumen/std"])
	assert isinstance(decision, InfoQuery)
	assert f'("Project version","{LUMEN_VERSION}")' in decision.text
	assert '"/opt/lumen/std"' in decision.text


def test_supported_extensions():
	decision = _classify(["--supported-extensions"])
	assert isinstance(decision, InfoQuery)
	assert decision.text.splitlines() == [".lm"]


def test_unsupported_extension_delegates_whole_invocation():
	decision = _classify(["-c", "-O2", "main.lm", "--artifact-dir", "x", "helper.c", "-o", "out.o", "--tce"])
	assert isinstance(decision, Delegate)
	assert decision.toolchain == "clang"
	assert list(decision.argv) == ["-c", "-O2", "main.lm", "helper.c", "-o", "out.o"]


def test_delegation_keeps_original_order_and_foreign_options():
	argv = ["-Wall", "-I", "inc", "helper.c", "-O1", "--opt-all", "main.lm", "-lm", "-O3", "-o", "a.out"]
	decision = _classify(argv)
	assert isinstance(decision, Delegate)
	assert list(decision.argv) == ["-Wall", "-I", "inc", "helper.c", "-O1", "-O2", "main.lm", "-lm", "-O3", "-o", "a.out"]


def test_delegation_drops_attached_pipeline_option_values():
	decision = _classify(["--artifact-dir=mods", "-Mlib", "--json", "x.s", "-q", "--stdlib-dir", "std"])
	assert isinstance(decision, Delegate)
	assert list(decision.argv) == ["x.s"]


def test_foreign_options_without_fallback_input_are_config_errors():
	with pytest.raises(ConfigError) as excinfo:
		_classify(["-Wall", "main.lm"])
	assert "-Wall" in excinfo.value.message


def test_delegation_uses_configured_toolchain():
	decision = _classify(["--fallback-toolchain", "/usr/bin/cc", "lib.o", "main.lm"])
	assert isinstance(decision, Delegate)
	assert decision.toolchain == "/usr/bin/cc"
	assert list(decision.argv) == ["lib.o", "main.lm"]


def test_aliases_expand_before_parsing():
	assert expand_aliases(["--opt-all", "a.lm"]) == ["-O2", "--tce", "a.lm"]
	assert expand_aliases(["--opt-all-unsafe"]) == ["-O2", "--tce", "--unsafe"]

	decision = _classify(["--opt-all-unsafe", "a.lm"])
	assert isinstance(decision, Build)
	cfg = decision.config
	assert cfg.frontend_flags.opt_level == 2
	assert cfg.backend_flags.tce is True
	assert cfg.backend_flags.unsafe is True


def test_build_config_defaults():
	decision = _classify(["app/main.lm"])
	assert isinstance(decision, Build)
	cfg = decision.config
	assert cfg.roots == (Path("app/main.lm"),)
	assert cfg.perform_link is True
	assert cfg.optimizer is None
	assert cfg.artifact_dir == DEFAULT_ARTIFACT_DIR
	assert cfg.frontend_flags.opt_level == 1
	assert cfg.backend_flags.tce is False
	assert cfg.output_for(Path("app/main.lm")) == Path("app/main.ll")


def test_output_naming_options():
	cfg = _classify(["-o", "prog.ll", "a.lm"]).config
	assert cfg.output_for(Path("a.lm")) == Path("prog.ll")

	cfg = _classify(["--out-dir", "dist", "src/a.lm", "src/b.lm"]).config
	assert cfg.output_for(Path("src/b.lm")) == Path("dist/b.ll")


def test_options_may_follow_inputs():
	cfg = _classify(["a.lm", "-c", "b.lm", "-M", "lib", "-M", "vendor"]).config
	assert cfg.roots == (Path("a.lm"), Path("b.lm"))
	assert cfg.perform_link is False
	assert cfg.module_roots == (Path("lib"), Path("vendor"))


def test_libinstall_writes_into_stdlib_store():
	cfg = _classify(["--libinstall", "--stdlib-dir", "/tmp/std", "-c", "a.lm"]).config
	assert cfg.artifact_dir == Path("/tmp/std")


@pytest.mark.parametrize(
	"argv",
	[
		[],
		["a.lm", "b.lm", "-o", "x.ll"],
		["-o", "x.ll", "--out-dir", "d", "a.lm"],
		["iface.lmi"],
		["notes.txt"],
		["--no-such-flag", "a.lm"],
		["--libinstall", "--artifact-dir", "d", "a.lm"],
	],
)
def test_config_errors(argv):
	with pytest.raises(ConfigError):
		_classify(argv)


def test_help_exits_zero(capsys):
	with pytest.raises(SystemExit) as excinfo:
		_classify(["--help"])
	assert excinfo.value.code == 0
	assert "--opt-all" in capsys.readouterr().out


def test_toolchain_mismatch_requires_reboot(tmp_path: Path):
	gate = ArgGate()
	stdlib = tmp_path / "stdlib"
	write_stamp(stdlib, version="lumenc-0.0.1")
	cfg = gate.classify(["--stdlib-dir", str(stdlib), "a.lm"]).config

	with pytest.raises(ToolchainMismatchError) as excinfo:
		gate.check_preconditions(cfg)
	assert excinfo.value.message == REBOOT_MSG


def test_unbooted_overrides_toolchain_check(tmp_path: Path):
	gate = ArgGate()
	cfg = gate.classify(["--stdlib-dir", str(tmp_path / "empty"), "--unbooted", "a.lm"]).config
	gate.check_preconditions(cfg)


def test_matching_stamp_passes(tmp_path: Path, stdlib_dir: Path):
	gate = ArgGate()
	cfg = gate.classify(["--stdlib-dir", str(stdlib_dir), "a.lm"]).config
	gate.check_preconditions(cfg)
