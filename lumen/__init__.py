# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lumen toolchain.

The compiler driver lives under `lumen.lumenc`; the LLVM backend under
`lumen.codegen.llvm`.
"""

__all__ = []
