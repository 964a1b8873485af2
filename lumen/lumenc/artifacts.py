# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Per-module artifact store.

Layout: one file per module, `<store>/<module>.lmo`.

File format (v0):

  ;lumen-artifact {canonical JSON header}\n
  <body>

The header records the module name, kind, direct imports, public interface,
the writing toolchain and the sha256 of the body. The body is the module's
LLVM IR text (empty for stub modules). Headers are rendered canonically and
carry no timestamps, so identical inputs give byte-identical files.

Writes go to a temp file in the same directory and are renamed over the final
name, so a reader never observes a partially written artifact. A file whose
header does not parse or whose body hash does not match is reported as
corrupt, never treated as valid.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Tuple

from lumen.lumenc.errors import MissingArtifactError
from lumen.lumenc.module_interface import KIND_NORMAL, KIND_STUB, ModuleInterface
from lumen.lumenc.version import TOOLCHAIN_VERSION

ARTIFACT_SUFFIX = ".lmo"
HEADER_PREFIX = ";lumen-artifact "
FORMAT = "lumen-artifact"
FORMAT_VERSION = 0


def canonical_json_bytes(obj: Any) -> bytes:
	"""Render JSON deterministically (UTF-8, sorted keys, no whitespace)."""
	return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def sha256_hex(data: bytes) -> str:
	return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class Artifact:
	"""Persisted translation result of one module."""

	module: str
	kind: str
	deps: Tuple[str, ...]
	interface: ModuleInterface = field(compare=False)
	body: str = ""
	toolchain: str = TOOLCHAIN_VERSION

	def header(self) -> dict[str, Any]:
		return {
			"format": FORMAT,
			"version": FORMAT_VERSION,
			"module": self.module,
			"kind": self.kind,
			"deps": sorted(self.deps),
			"interface": self.interface.to_json(),
			"toolchain": self.toolchain,
			"body_sha256": sha256_hex(self.body.encode("utf-8")),
		}

	def to_bytes(self) -> bytes:
		return HEADER_PREFIX.encode("utf-8") + canonical_json_bytes(self.header()) + b"\n" + self.body.encode("utf-8")


def _corrupt(name: str, path: Path, why: str) -> MissingArtifactError:
	return MissingArtifactError(
		message=f"artifact for module '{name}' is corrupt ({why}): {path}",
		module=name,
		path=str(path),
		reason="corrupt",
	)


def decode_artifact(name: str, path: Path, data: bytes) -> Artifact:
	"""Decode and verify artifact bytes read from `path` for module `name`."""
	first, sep, rest = data.partition(b"\n")
	prefix = HEADER_PREFIX.encode("utf-8")
	if not sep or not first.startswith(prefix):
		raise _corrupt(name, path, "missing header")
	try:
		header = json.loads(first[len(prefix):].decode("utf-8"))
	except (UnicodeDecodeError, ValueError) as err:
		raise _corrupt(name, path, f"unreadable header: {err}") from err
	if not isinstance(header, dict):
		raise _corrupt(name, path, "header is not an object")
	if header.get("format") != FORMAT or header.get("version") != FORMAT_VERSION:
		raise _corrupt(name, path, "unsupported format/version")
	if header.get("module") != name:
		raise _corrupt(name, path, f"header names module '{header.get('module')}'")
	kind = header.get("kind")
	if kind not in (KIND_NORMAL, KIND_STUB):
		raise _corrupt(name, path, f"unknown kind '{kind}'")
	if header.get("body_sha256") != sha256_hex(rest):
		raise _corrupt(name, path, "body hash mismatch")
	deps = header.get("deps")
	if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
		raise _corrupt(name, path, "deps must be a list of module names")
	try:
		interface = ModuleInterface.from_json(name, kind, header.get("interface"))
		body = rest.decode("utf-8")
	except (UnicodeDecodeError, ValueError) as err:
		raise _corrupt(name, path, str(err)) from err
	return Artifact(
		module=name,
		kind=kind,
		deps=tuple(deps),
		interface=interface,
		body=body,
		toolchain=str(header.get("toolchain")),
	)


class ArtifactStore:
	"""A directory of module artifacts keyed by module name."""

	def __init__(self, root: Path) -> None:
		self.root = Path(root)

	def path_for(self, module: str) -> Path:
		return self.root / f"{module}{ARTIFACT_SUFFIX}"

	def exists(self, module: str) -> bool:
		return self.path_for(module).is_file()

	def write(self, artifact: Artifact) -> Path:
		path = self.path_for(artifact.module)
		path.parent.mkdir(parents=True, exist_ok=True)
		tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
		try:
			tmp.write_bytes(artifact.to_bytes())
			os.replace(tmp, path)
		finally:
			if tmp.exists():
				tmp.unlink()
		return path

	def read(self, module: str) -> Artifact:
		path = self.path_for(module)
		try:
			data = path.read_bytes()
		except FileNotFoundError:
			raise MissingArtifactError(
				message=f"no artifact for module '{module}' in {self.root}",
				module=module,
				path=str(path),
				reason="missing",
			) from None
		return decode_artifact(module, path, data)

	def clear(self) -> None:
		"""Remove every artifact (and stray temp file) from the store."""
		if not self.root.is_dir():
			return
		for entry in self.root.iterdir():
			if entry.is_file() and (entry.name.endswith(ARTIFACT_SUFFIX) or f"{ARTIFACT_SUFFIX}.tmp." in entry.name):
				entry.unlink()


__all__ = [
	"ARTIFACT_SUFFIX",
	"Artifact",
	"ArtifactStore",
	"canonical_json_bytes",
	"decode_artifact",
	"sha256_hex",
]
