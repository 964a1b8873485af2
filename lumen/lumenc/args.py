# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Argument gate.

Classifies an invocation as exactly one of:

- `InfoQuery`: print a piece of toolchain information and stop
- `Delegate`: some input has an extension this pipeline does not handle, so
  the whole invocation goes to the fallback toolchain
- `Build`: run the pipeline with a `BuildConfig`

The argparse parser is built from the single `OPTIONS` table below. A
delegated invocation passes the original arguments on in order, minus the
table entries marked as pipeline-only (`forward=False`) and their values.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from lumen.codegen.llvm import BackendFlags
from lumen.lumenc.config import DEFAULT_ARTIFACT_DIR, BuildConfig
from lumen.lumenc.errors import ConfigError
from lumen.lumenc.frontend import FrontendFlags
from lumen.lumenc.toolchain import DEFAULT_FALLBACK_TOOLCHAIN, check_toolchain, default_stdlib_dir
from lumen.lumenc.version import (
	LUMEN_VERSION,
	STUB_EXTENSION,
	SUPPORTED_EXTENSIONS,
	SUPPORTED_LANGUAGES,
	TOOLCHAIN_VERSION,
	llvm_version,
	version_banner,
)

FALLBACK_EXTENSIONS = frozenset({".c", ".s", ".ll", ".o", ".a"})
DEFAULT_OPT_LEVEL = 1


@dataclass(frozen=True)
class OptionSpec:
	"""
	One command-line option.

	kind:
	  - "flag": boolean switch
	  - "value": takes one argument
	  - "append": takes one argument, repeatable
	  - "const": stores `const` into `dest` (several options share a dest)
	  - "alias": expands to `expands_to` before parsing
	"""

	flags: Tuple[str, ...]
	dest: str
	kind: str = "flag"
	help: str = ""
	forward: bool = False
	metavar: Optional[str] = None
	const: Any = None
	expands_to: Tuple[str, ...] = ()
	query: bool = False


OPTIONS: Tuple[OptionSpec, ...] = (
	# Information queries, in precedence order.
	OptionSpec(("--numeric-version",), "numeric_version", query=True, help="Print the version number and exit"),
	OptionSpec(("--info",), "info", query=True, help="Print toolchain information and exit"),
	OptionSpec(("--version",), "version", query=True, help="Print the version banner and exit"),
	OptionSpec(("--supported-extensions",), "supported_extensions", query=True, help="List supported source extensions and exit"),
	OptionSpec(("--supported-languages",), "supported_languages", query=True, help="List supported languages and exit"),
	# Pipeline options.
	OptionSpec(("-c",), "compile_only", forward=True, help="Compile modules only; do not link"),
	OptionSpec(("-o",), "output", kind="value", forward=True, metavar="FILE", help="Output path (exactly one root)"),
	OptionSpec(("--out-dir",), "out_dir", kind="value", metavar="DIR", help="Directory for linked outputs"),
	OptionSpec(("-O0",), "opt_level", kind="const", const=0, forward=True, help="No frontend simplification"),
	OptionSpec(("-O1",), "opt_level", kind="const", const=1, forward=True, help="Constant folding (default)"),
	OptionSpec(("-O2",), "opt_level", kind="const", const=2, forward=True, help="-O1 plus dead code after return"),
	OptionSpec(("--opt-all",), "opt_all", kind="alias", expands_to=("-O2", "--tce"), help="Same as -O2 --tce"),
	OptionSpec(
		("--opt-all-unsafe",),
		"opt_all_unsafe",
		kind="alias",
		expands_to=("-O2", "--tce", "--unsafe"),
		help="Same as -O2 --tce --unsafe",
	),
	OptionSpec(("--tce",), "tce", help="Emit self tail calls as tail calls"),
	OptionSpec(("--unsafe",), "unsafe", help="Omit division-by-zero traps"),
	OptionSpec(("-M", "--module-path"), "module_paths", kind="append", metavar="DIR", help="Module root directory (repeatable)"),
	OptionSpec(("--artifact-dir",), "artifact_dir", kind="value", metavar="DIR", help="Module artifact store (default: ./build/lumen/mods)"),
	OptionSpec(("--stdlib-dir",), "stdlib_dir", kind="value", metavar="DIR", help="Provisioned standard library (default: ~/.lumen/stdlib)"),
	OptionSpec(("--optimizer",), "optimizer", kind="value", metavar="PATH", help="External whole-program optimizer"),
	OptionSpec(
		("--fallback-toolchain",),
		"fallback_toolchain",
		kind="value",
		metavar="CMD",
		help=f"Toolchain for unsupported inputs (default: {DEFAULT_FALLBACK_TOOLCHAIN})",
	),
	OptionSpec(("--libinstall",), "libinstall", help="Write artifacts into the standard-library store"),
	OptionSpec(("--unbooted",), "unbooted", help="Skip the standard-library version check"),
	OptionSpec(("--json",), "json", help="Emit diagnostics as JSON on stdout"),
	OptionSpec(("-q", "--quiet"), "quiet", help="Suppress progress output"),
)

_ALIASES = {flag: spec.expands_to for spec in OPTIONS if spec.kind == "alias" for flag in spec.flags}
_BY_FLAG = {flag: spec for spec in OPTIONS if spec.kind != "alias" for flag in spec.flags}
_TAKES_VALUE = ("value", "append")


class _GateParser(argparse.ArgumentParser):
	def error(self, message: str) -> None:  # type: ignore[override]
		raise ConfigError(message=message)


def build_parser() -> argparse.ArgumentParser:
	parser = _GateParser(prog="lumenc", description="Lumen compiler driver", allow_abbrev=False)
	parser.add_argument("inputs", nargs="*", help="Root source files")
	for spec in OPTIONS:
		if spec.kind in ("flag", "alias"):
			parser.add_argument(*spec.flags, dest=spec.dest, action="store_true", help=spec.help)
		elif spec.kind == "value":
			parser.add_argument(*spec.flags, dest=spec.dest, metavar=spec.metavar, help=spec.help)
		elif spec.kind == "append":
			parser.add_argument(*spec.flags, dest=spec.dest, action="append", metavar=spec.metavar, help=spec.help)
		elif spec.kind == "const":
			parser.add_argument(*spec.flags, dest=spec.dest, action="store_const", const=spec.const, help=spec.help)
	return parser


def expand_aliases(argv: Sequence[str]) -> List[str]:
	out: List[str] = []
	for arg in argv:
		out.extend(_ALIASES.get(arg, (arg,)))
	return out


def _lookup(arg: str) -> Tuple[Optional[OptionSpec], bool]:
	"""Table entry for `arg` and whether its value is attached (`--x=v`, `-Mdir`)."""
	spec = _BY_FLAG.get(arg)
	if spec is not None:
		return spec, False
	if arg.startswith("--") and "=" in arg:
		spec = _BY_FLAG.get(arg.split("=", 1)[0])
	elif arg.startswith("-") and not arg.startswith("--") and len(arg) > 2:
		spec = _BY_FLAG.get(arg[:2])
	if spec is not None and spec.kind in _TAKES_VALUE:
		return spec, True
	return None, False


def forwarded_argv(argv: Sequence[str]) -> List[str]:
	"""
	The original argument list for the fallback toolchain.

	Arguments keep their order; aliases are expanded first so their forwarded
	parts survive. Only pipeline options (entries with `forward=False`) and their
	values are dropped. Anything the table does not know is passed through.
	"""
	out: List[str] = []
	args = iter(expand_aliases(argv))
	for arg in args:
		if arg == "--":
			out.append(arg)
			out.extend(args)
			break
		spec, attached = _lookup(arg)
		takes_value = spec is not None and spec.kind in _TAKES_VALUE and not attached
		if spec is None or spec.forward:
			out.append(arg)
			if takes_value:
				value = next(args, None)
				if value is not None:
					out.append(value)
		elif takes_value:
			next(args, None)
	return out


@dataclass(frozen=True)
class InfoQuery:
	kind: str
	text: str


@dataclass(frozen=True)
class Delegate:
	toolchain: str
	argv: Tuple[str, ...]


@dataclass(frozen=True)
class Build:
	config: BuildConfig


Decision = Union[InfoQuery, Delegate, Build]


def _stdlib_dir(ns: argparse.Namespace) -> Path:
	return Path(ns.stdlib_dir) if ns.stdlib_dir else default_stdlib_dir()


def _info_text(kind: str, ns: argparse.Namespace) -> str:
	if kind == "numeric_version":
		return LUMEN_VERSION
	if kind == "version":
		return version_banner()
	if kind == "supported_extensions":
		return "\n".join(SUPPORTED_EXTENSIONS)
	if kind == "supported_languages":
		return "\n".join(SUPPORTED_LANGUAGES)
	pairs = [
		("Project name", "The Lumen Compiler"),
		("Project version", LUMEN_VERSION),
		("Toolchain", TOOLCHAIN_VERSION),
		("LLVM version", llvm_version()),
		("Artifact directory", str(Path(ns.artifact_dir) if ns.artifact_dir else DEFAULT_ARTIFACT_DIR)),
		("Standard library directory", str(_stdlib_dir(ns))),
		("Source extensions", " ".join(SUPPORTED_EXTENSIONS)),
		("Stub extension", STUB_EXTENSION),
		("Fallback extensions", " ".join(sorted(FALLBACK_EXTENSIONS))),
	]
	rows = [f"({json.dumps(k)},{json.dumps(v)})" for k, v in pairs]
	return " [" + "\n ,".join(rows) + "\n ]"


class ArgGate:
	"""Turns the raw argument list into exactly one `Decision`."""

	def __init__(self) -> None:
		self.parser = build_parser()

	def classify(self, argv: Sequence[str]) -> Decision:
		ns, unknown = self.parser.parse_known_intermixed_args(expand_aliases(argv))

		for spec in OPTIONS:
			if spec.query and getattr(ns, spec.dest):
				return InfoQuery(kind=spec.dest, text=_info_text(spec.dest, ns))

		# Unknown options may belong to the fallback toolchain; they are only an
		# error for a pipeline build.
		inputs = [Path(p) for p in ns.inputs]
		candidates = [*inputs, *(Path(a) for a in unknown if not a.startswith("-"))]
		if any(p.suffix in FALLBACK_EXTENSIONS for p in candidates):
			toolchain = ns.fallback_toolchain or DEFAULT_FALLBACK_TOOLCHAIN
			return Delegate(toolchain=toolchain, argv=tuple(forwarded_argv(argv)))

		if unknown:
			raise ConfigError(message=f"unrecognized arguments: {' '.join(unknown)}")
		return Build(config=self._build_config(ns, inputs))

	def _build_config(self, ns: argparse.Namespace, inputs: List[Path]) -> BuildConfig:
		if not inputs:
			raise ConfigError(message="no input files")
		for path in inputs:
			if path.suffix not in SUPPORTED_EXTENSIONS:
				raise ConfigError(message=f"unsupported input file '{path}' (expected {', '.join(SUPPORTED_EXTENSIONS)})", path=str(path))
		if ns.output is not None and len(inputs) > 1:
			raise ConfigError(message="-o requires exactly one input file")
		if ns.output is not None and ns.out_dir is not None:
			raise ConfigError(message="-o and --out-dir are mutually exclusive")

		stdlib_dir = _stdlib_dir(ns)
		artifact_dir = Path(ns.artifact_dir) if ns.artifact_dir else DEFAULT_ARTIFACT_DIR
		if ns.libinstall:
			if ns.artifact_dir:
				raise ConfigError(message="--libinstall writes to the standard-library store; drop --artifact-dir")
			artifact_dir = stdlib_dir
		opt_level = ns.opt_level if ns.opt_level is not None else DEFAULT_OPT_LEVEL
		return BuildConfig(
			roots=tuple(inputs),
			artifact_dir=artifact_dir,
			stdlib_dir=stdlib_dir,
			module_roots=tuple(Path(p) for p in ns.module_paths or []),
			output=Path(ns.output) if ns.output is not None else None,
			out_dir=Path(ns.out_dir) if ns.out_dir is not None else None,
			perform_link=not ns.compile_only,
			optimizer=ns.optimizer,
			frontend_flags=FrontendFlags(opt_level=opt_level),
			backend_flags=BackendFlags(tce=ns.tce, unsafe=ns.unsafe),
			libinstall=ns.libinstall,
			unbooted=ns.unbooted,
			json=ns.json,
			quiet=ns.quiet,
		)

	def check_preconditions(self, config: BuildConfig) -> None:
		"""Toolchain consistency: refuse a stale standard library unless `--unbooted`."""
		check_toolchain(config.stdlib_dir, unbooted=config.unbooted)


__all__ = [
	"ArgGate",
	"Build",
	"Decision",
	"Delegate",
	"FALLBACK_EXTENSIONS",
	"InfoQuery",
	"OPTIONS",
	"OptionSpec",
	"build_parser",
	"expand_aliases",
	"forwarded_argv",
]
