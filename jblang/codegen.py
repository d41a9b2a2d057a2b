"""Emitters of target code fragments."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

from jblang.errors import CompilerError, ErrorType
from jblang.symbols import Variable
from jblang.typesystem import Function, Type


def _declaration(type_: Type, name: str) -> str:
    if type_.is_array:
        return str(type_)
    return f"{type_} {name}"


class CodeGenerator(ABC):
    """Interface of a back end producing source text."""

    @abstractmethod
    def function_decl(self, func: Function) -> str: ...

    @abstractmethod
    def var_decl(self, name: str, type_: Type, initializer: str = "") -> str: ...

    @abstractmethod
    def struct_decl(self, name: str, type_: Type, initializer: str = "") -> str: ...

    @abstractmethod
    def typedef(self, name: str, type_: Type) -> str: ...

    @abstractmethod
    def function_call(self, name: str, args: Iterable[str]) -> str: ...

    @abstractmethod
    def return_stmt(self, value: str, type_: Type | None = None) -> str: ...

    @abstractmethod
    def scope_entry(self) -> str: ...

    @abstractmethod
    def scope_exit(self, scope_vars: Mapping[str, Variable]) -> str: ...

    @abstractmethod
    def inc_ref(self, var: Variable, other: str = "NULL") -> str: ...

    @abstractmethod
    def dec_ref(self, var: Variable) -> str: ...

    @abstractmethod
    def alloc(self, type_: Type) -> str: ...


class CCodeGenerator(CodeGenerator):
    """Emits C, optionally with reference-count bookkeeping calls."""

    def __init__(self, use_ref_counts: bool) -> None:
        self.use_ref_counts = use_ref_counts

    def function_decl(self, func: Function | None) -> str:
        if func is None:
            raise CompilerError("Cannot generate declaration for null function")
        return func.signature()

    def var_decl(self, name: str, type_: Type, initializer: str = "") -> str:
        return f"{_declaration(type_, name)}{initializer};\n"

    def struct_decl(self, name: str, type_: Type, initializer: str = "") -> str:
        lines = [f"struct {name} {{\n"]
        for member_name, member_type in type_.struct_members:
            if member_type.is_array:
                if member_type.is_struct:
                    base = f"struct {member_type.struct_name}"
                else:
                    base = Type.base_type_to_string(member_type.base)
                if member_type.is_pointer:
                    base += "*"
                dims = "".join(f"[{size}]" for size in member_type.array_sizes)
                lines.append(f"\t{base} {member_name}{dims};\n")
            else:
                lines.append(f"\t{member_type} {member_name};\n")
        lines.append("}")
        return "".join(lines)

    def typedef(self, name: str, type_: Type) -> str:
        body = self.struct_decl(type_.struct_name, type_) if type_.is_struct else str(type_)
        return f"typedef {body} {name};\n"

    def function_call(self, name: str, args: Iterable[str]) -> str:
        return f"{name}({', '.join(args)})"

    def return_stmt(self, value: str, type_: Type | None = None) -> str:
        return f"return {value};\n"

    def scope_entry(self) -> str:
        return "{\n"

    def scope_exit(self, scope_vars: Mapping[str, Variable]) -> str:
        """Close a block; the enclosing scope's symbols must all be variables.

        Releasing references is emitted by the caller before the block closes,
        so nothing beyond the closing brace is written here.
        """
        for name, var in scope_vars.items():
            if not isinstance(var, Variable):
                raise CompilerError(
                    f"Scope entry is not a variable: {name}", ErrorType.REFERENCE_ERROR
                )
        return "}\n"

    def alloc(self, type_: Type) -> str:
        return f"runtime_alloc(sizeof({type_}))"

    def inc_ref(self, var: Variable, other: str = "NULL") -> str:
        if not self.use_ref_counts:
            return ""
        return f"runtime_inc_ref_count({var.name}, {other});\n"

    def dec_ref(self, var: Variable) -> str:
        if not self.use_ref_counts:
            return ""
        if var.field_name:
            offset = f"offsetof({var.struct_name}, {var.field_name})"
        else:
            offset = "0"
        return f"runtime_dec_ref_count({var.name}, {offset});\n"