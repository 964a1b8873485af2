# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path
from typing import Mapping

from lumen.lumenc.checker import check_module
from lumen.lumenc.module_interface import KIND_NORMAL, KIND_STUB, FnSig, ModuleInterface
from lumen.lumenc.parser import ast as A
from lumen.lumenc.parser.parser import parse_module_source


def _check(
	source: str,
	*,
	name: str = "app",
	kind: str = KIND_NORMAL,
	imported: Mapping[str, ModuleInterface] | None = None,
) -> tuple[ModuleInterface, list[str]]:
	mod = parse_module_source(source)
	iface, diags = check_module(mod, module_name=name, kind=kind, path=Path(f"{name}.lm"), imported=imported or {})
	return iface, [d.message for d in diags]


def _math_iface() -> ModuleInterface:
	return ModuleInterface(
		module="util.math",
		functions={"add": FnSig(params=("Int", "Int"), ret="Int", symbol="util.math.add")},
	)


def test_interface_lists_public_functions_with_link_symbols():
	iface, errors = _check(
		"""
module app;
pub fn square(x: Int) -> Int { return x * x; }
fn helper() -> Bool { return true; }
fn main() -> Int { return square(2); }
"""
	)
	assert errors == []
	assert sorted(iface.functions) == ["square"]
	assert iface.functions["square"] == FnSig(params=("Int",), ret="Int", symbol="app.square")


def test_stub_interface_binds_bare_symbols():
	iface, errors = _check("pub fn putchar(c: Int) -> Int;", name="std.rt", kind=KIND_STUB)
	assert errors == []
	assert iface.kind == KIND_STUB
	assert iface.functions["putchar"].symbol == "putchar"


def test_stub_module_rejects_bodies():
	_, errors = _check("pub fn f() -> Int { return 1; }", name="std.rt", kind=KIND_STUB)
	assert any("interface files may only declare functions" in e for e in errors)


def test_normal_module_requires_bodies():
	_, errors = _check("pub fn f() -> Int;")
	assert errors == ["function 'f' has no body"]


def test_module_header_must_match_resolved_name():
	_, errors = _check("module other;\nfn main() -> Int { return 0; }", name="app")
	assert len(errors) == 1
	assert "declares 'other'" in errors[0]


def test_calls_through_import_alias_are_annotated():
	mod = parse_module_source("import util.math as m;\nfn main() -> Int { return m.add(1, 2); }")
	iface, diags = check_module(mod, module_name="app", kind=KIND_NORMAL, path=Path("app.lm"), imported={"util.math": _math_iface()})
	assert diags == []
	ret = mod.functions[0].body.statements[0]
	assert isinstance(ret, A.ReturnStmt) and isinstance(ret.value, A.Call)
	assert ret.value.symbol == "util.math.add"
	assert ret.value.param_types == ["Int", "Int"]
	assert ret.value.ty == "Int"


def test_missing_import_interface_is_reported():
	_, errors = _check("import util.math;\nfn main() -> Int { return 0; }")
	assert errors == ["module 'util.math' is not available"]


def test_non_public_function_of_import_is_rejected():
	_, errors = _check("import util.math;\nfn main() -> Int { return math.sub(1, 2); }", imported={"util.math": _math_iface()})
	assert errors == ["module 'util.math' has no public function 'sub'"]


def test_arity_and_argument_type_mismatch():
	_, errors = _check(
		"import util.math;\nfn main() -> Int { let a = math.add(1); return math.add(1, true); }",
		imported={"util.math": _math_iface()},
	)
	assert "'math.add' expects 2 argument(s), got 1" in errors
	assert "argument 2 of 'math.add' must be Int, found Bool" in errors


def test_assignment_to_let_binding_is_rejected():
	_, errors = _check("fn main() -> Int { let x = 1; x = 2; return x; }")
	assert len(errors) == 1
	assert "immutable binding 'x'" in errors[0]


def test_condition_and_return_types_are_checked():
	_, errors = _check("fn f(x: Int) -> Bool { if x { return 1; } return false; }")
	assert "if condition must be Bool, found Int" in errors
	assert "return value must be Bool, found Int" in errors


def test_missing_return_on_some_path():
	_, errors = _check("fn f(x: Int) -> Int { if x > 0 { return 1; } }")
	assert errors == ["function 'f' may finish without returning a value"]


def test_if_else_returning_on_both_paths_is_complete():
	_, errors = _check("fn f(x: Int) -> Int { if x > 0 { return 1; } else { return 2; } }")
	assert errors == []


def test_duplicates_and_unknown_names():
	_, errors = _check(
		"""
fn f(a: Int, a: Int) -> Int { return b; }
fn f() -> Int { return 0; }
fn g() -> Int { return nope(); }
"""
	)
	assert "duplicate parameter 'a'" in errors
	assert "duplicate function 'f'" in errors
	assert "unknown name 'b'" in errors
	assert "unknown function 'nope'" in errors


def test_main_signature_is_enforced():
	_, errors = _check("fn main(x: Int) -> Int { return x; }")
	assert errors == ["'main' must take no parameters and return Int"]


def test_unknown_type_is_reported():
	_, errors = _check("fn f(x: Str) -> Int { return 0; }")
	assert errors == ["unknown type 'Str'"]
