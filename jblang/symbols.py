"""Scoped symbol table used during translation."""

from __future__ import annotations

from dataclasses import dataclass, field

from jblang.errors import CompilerError
from jblang.typesystem import Function, Type


@dataclass
class Variable:
    """A named, typed symbol; struct and field names locate its header."""

    name: str = ""
    type: Type = field(default_factory=Type)
    struct_name: str = ""
    field_name: str = ""


class SymbolTable:
    """A stack of scopes, the innermost last."""

    def __init__(self) -> None:
        self._scopes: list[dict[str, Variable]] = [{}]
        self.global_vars: list[tuple[str, Type]] = []
        self.current_func: Function | None = None

    def enter_scope(self) -> None:
        self._scopes.append({})

    def exit_scope(self) -> None:
        if self._scopes:
            self._scopes.pop()

    def indent(self) -> str:
        """Four spaces per open scope."""
        return " " * (4 * len(self._scopes))

    def add_symbol(
        self, name: str, type_: Type, struct_name: str = "", field_name: str = ""
    ) -> None:
        if not self._scopes:
            raise CompilerError("No active scope")
        self._scopes[-1][name] = Variable(name, type_, struct_name, field_name)

    def lookup(self, name: str) -> Variable | None:
        """Find a symbol, innermost scope first, then the current function's parameters."""
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        if self.current_func is not None:
            for param_name, param_type in self.current_func.params:
                if param_name == name:
                    return Variable(name, param_type)
        return None

    def current_scope_symbols(self) -> dict[str, Variable]:
        """Symbols of the innermost scope, ordered by name."""
        if not self._scopes:
            return {}
        scope = self._scopes[-1]
        return {name: scope[name] for name in sorted(scope)}

    def is_global_scope(self) -> bool:
        return len(self._scopes) == 1