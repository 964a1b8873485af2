# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Toolchain identity.

`TOOLCHAIN_VERSION` is stamped into every artifact and into the provisioned
standard-library store; a store stamped with a different value must be
re-provisioned before normal builds can use it.
"""

from __future__ import annotations

from llvmlite import binding as llvm

LUMEN_VERSION = "0.3.0"
TOOLCHAIN_VERSION = f"lumenc-{LUMEN_VERSION}"

SUPPORTED_EXTENSIONS = (".lm",)
STUB_EXTENSION = ".lmi"
SUPPORTED_LANGUAGES = ("Lumen",)


def llvm_version() -> str:
	return ".".join(str(part) for part in llvm.llvm_version_info)


def version_banner() -> str:
	return f"The Lumen Compiler, version {LUMEN_VERSION} (LLVM {llvm_version()})"


__all__ = [
	"LUMEN_VERSION",
	"TOOLCHAIN_VERSION",
	"SUPPORTED_EXTENSIONS",
	"STUB_EXTENSION",
	"SUPPORTED_LANGUAGES",
	"llvm_version",
	"version_banner",
]
