# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
LLVM backend (llvmlite).

`LLVMBackend.generate` turns a `LoweredModule` into LLVM IR text; the driver
persists that text as the module's artifact.
"""

from .llvm_codegen import BackendFlags, CodegenError, LLVMBackend

__all__ = ["BackendFlags", "CodegenError", "LLVMBackend"]
