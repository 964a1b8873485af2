# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lumen compiler driver package (`lumenc`).

The CLI entrypoint is `lumen.lumenc.lumenc:main`.
"""

__all__ = []
