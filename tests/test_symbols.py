import pytest

from jblang.errors import CompilerError
from jblang.symbols import SymbolTable, Variable
from jblang.typesystem import BaseType, Function, Type


def test_starts_in_global_scope():
    table = SymbolTable()
    assert table.is_global_scope()
    table.enter_scope()
    assert not table.is_global_scope()
    table.exit_scope()
    assert table.is_global_scope()


def test_indent_grows_with_scopes():
    table = SymbolTable()
    outer = table.indent()
    assert outer.strip() == ""
    table.enter_scope()
    assert table.indent() == outer * 2


def test_lookup_prefers_inner_scope():
    table = SymbolTable()
    table.add_symbol("x", Type(BaseType.INT))
    table.enter_scope()
    table.add_symbol("x", Type(BaseType.INT, is_pointer=True))
    assert table.lookup("x").type.is_pointer
    table.exit_scope()
    assert not table.lookup("x").type.is_pointer


def test_lookup_missing_returns_none():
    assert SymbolTable().lookup("nothing") is None


def test_lookup_falls_back_to_params():
    table = SymbolTable()
    param_type = Type(BaseType.BOOL)
    table.current_func = Function(name="f", params=[("flag", param_type)])
    assert table.lookup("flag") == Variable("flag", param_type)


def test_current_scope_symbols_sorted():
    table = SymbolTable()
    table.enter_scope()
    for name in ("b", "c", "a"):
        table.add_symbol(name, Type(BaseType.INT))
    assert list(table.current_scope_symbols()) == ["a", "b", "c"]


def test_add_symbol_keeps_struct_and_field():
    table = SymbolTable()
    table.add_symbol("p", Type(BaseType.INT, is_pointer=True), "Node", "next")
    found = table.lookup("p")
    assert (found.struct_name, found.field_name) == ("Node", "next")


def test_add_without_scope_raises():
    table = SymbolTable()
    table.exit_scope()
    assert table.current_scope_symbols() == {}
    with pytest.raises(CompilerError, match="No active scope"):
        table.add_symbol("x", Type(BaseType.INT))