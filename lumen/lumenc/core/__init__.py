# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Shared compiler data structures (spans, diagnostics)."""
