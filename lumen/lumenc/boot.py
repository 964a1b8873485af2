# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
lumen-boot: provision the standard-library store.

Compiles the bundled `lumen/stdlib` sources into the store with
`lumenc --libinstall --unbooted -c` and writes the store's version stamp last,
so an interrupted boot still reads as needing a reboot.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from lumen.lumenc.artifacts import ArtifactStore
from lumen.lumenc.lumenc import main as lumenc_main
from lumen.lumenc.toolchain import STAMP_NAME, default_stdlib_dir, write_stamp

BUNDLED_STDLIB = Path(__file__).resolve().parents[1] / "stdlib"


def bundled_roots(source_dir: Path = BUNDLED_STDLIB) -> List[Path]:
	return sorted(source_dir.rglob("*.lm"))


def main(argv: list[str] | None = None) -> int:
	parser = argparse.ArgumentParser(prog="lumen-boot", description="Provision the Lumen standard library")
	parser.add_argument("--stdlib-dir", type=Path, default=None, help="Standard-library store (default: ~/.lumen/stdlib)")
	parser.add_argument("--force", action="store_true", help="Remove existing artifacts before provisioning")
	parser.add_argument("-q", "--quiet", action="store_true", help="Suppress progress output")
	args = parser.parse_args(argv)

	stdlib_dir: Path = args.stdlib_dir or default_stdlib_dir()
	stamp = stdlib_dir / STAMP_NAME
	if stamp.exists():
		stamp.unlink()
	if args.force:
		ArtifactStore(stdlib_dir).clear()

	build_argv = ["--libinstall", "--unbooted", "-c", "--stdlib-dir", str(stdlib_dir), "-M", str(BUNDLED_STDLIB)]
	if args.quiet:
		build_argv.append("-q")
	build_argv.extend(str(p) for p in bundled_roots())
	code = lumenc_main(build_argv)
	if code != 0:
		print(f"lumen-boot: provisioning {stdlib_dir} failed", file=sys.stderr)
		return code
	write_stamp(stdlib_dir)
	if not args.quiet:
		print(f"Standard library provisioned in {stdlib_dir}", file=sys.stderr)
	return 0


if __name__ == "__main__":
	sys.exit(main())
