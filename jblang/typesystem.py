"""Types, functions and the registry that resolves type names."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum, auto

from jblang.errors import CompilerError, ErrorType

_UNSIZED_ARRAY_NAME = "unsized"


class BaseType(Enum):
    """The primitive kind a type is built on."""

    VOID = auto()
    INT = auto()
    STRING = auto()
    BOOL = auto()
    STRUCT = auto()
    NO_TYPE = auto()


_BASE_NAMES = {
    BaseType.VOID: "void",
    BaseType.INT: "int",
    BaseType.STRING: "char*",
    BaseType.BOOL: "bool",
    BaseType.STRUCT: "struct",
}


@dataclass
class ArrayInfo:
    """Array shape attached to a type."""

    is_array: bool = False
    sizes: list[int] = field(default_factory=list)
    name: str = ""


@dataclass
class Type:
    """A source-language type and how it is spelled in C."""

    base: BaseType = BaseType.VOID
    is_pointer: bool = False
    is_const: bool = False
    struct_name: str = ""
    struct_members: list[tuple[str, "Type"]] = field(default_factory=list)
    array_info: ArrayInfo = field(default_factory=ArrayInfo)

    @property
    def is_array(self) -> bool:
        return self.array_info.is_array

    @property
    def is_struct(self) -> bool:
        return self.base is BaseType.STRUCT

    @property
    def array_name(self) -> str:
        return self.array_info.name

    @property
    def array_sizes(self) -> list[int]:
        return self.array_info.sizes

    @staticmethod
    def base_type_to_string(base: BaseType) -> str:
        """Return the C spelling of a base type."""
        try:
            return _BASE_NAMES[base]
        except KeyError:
            raise CompilerError("unknown base type", ErrorType.TYPE_ERROR) from None

    def set_array(self, name: str, sizes) -> None:
        """Mark this type as an array variable with the given dimensions."""
        self.array_info = ArrayInfo(True, list(sizes), name)

    def __str__(self) -> str:
        if self.is_struct:
            text = f"struct {self.struct_name}"
        else:
            text = self.base_type_to_string(self.base)
        if self.array_info.is_array:
            text += " " + self.array_info.name
            text += "".join(f"[{size}]" for size in self.array_info.sizes)
        if self.is_pointer:
            text += "*"
        return text


def _declaration(type_: Type, name: str) -> str:
    if type_.is_array:
        return str(type_)
    return f"{type_} {name}"


@dataclass
class Function:
    """A declared function: name, parameters and return type."""

    name: str = ""
    params: list[tuple[str, Type]] = field(default_factory=list)
    return_type: Type = field(default_factory=lambda: Type(BaseType.VOID))
    is_static: bool = False
    block: object = None

    def signature(self) -> str:
        """Return the C prototype; ``main`` is renamed to ``main_``."""
        name = "main_" if self.name == "main" else self.name
        params = ", ".join(_declaration(ptype, pname) for pname, ptype in self.params)
        return f"{self.return_type} {name}({params})"


_VALUELESS = (BaseType.VOID, BaseType.NO_TYPE)


class TypeSystem:
    """Registry of structs, typedefs, functions and defines."""

    def __init__(self) -> None:
        self.typedefs: dict[str, Type] = {}
        self.structs: dict[str, Type] = {}
        self.functions: dict[str, Function] = {}
        self.defines: dict[str, str] = {}

    def resolve_type(self, type_str: str) -> Type:
        """Translate a source type spelling such as ``int*`` or ``Point``."""
        array_start = type_str.find("[")
        is_array = array_start != -1
        base_name = type_str[:array_start] if is_array else type_str

        star = type_str.find("*")
        is_pointer = star != -1
        if is_pointer:
            base_name = type_str[:star]

        if base_name == "void":
            resolved = Type(BaseType.VOID)
        elif base_name == "int":
            resolved = Type(BaseType.INT)
        elif base_name == "string":
            resolved = Type(BaseType.STRING, is_pointer=True)
        elif base_name == "bool":
            resolved = Type(BaseType.BOOL)
        elif base_name in self.typedefs:
            resolved = copy.deepcopy(self.typedefs[base_name])
        elif base_name in self.structs:
            resolved = copy.deepcopy(self.structs[base_name])
        else:
            raise CompilerError(f"Unknown type: {type_str}", ErrorType.TYPE_ERROR)

        if is_pointer:
            resolved.is_pointer = True

        if is_array:
            array_end = type_str.find("]")
            if array_end == -1:
                raise CompilerError(f"Invalid array type: {type_str}", ErrorType.TYPE_ERROR)
            size_text = type_str[array_start + 1 : array_end]
            if size_text:
                try:
                    int(size_text)
                except ValueError:
                    raise CompilerError(
                        f"Invalid array type: {type_str}", ErrorType.TYPE_ERROR
                    ) from None
            resolved.set_array(_UNSIZED_ARRAY_NAME, [-1])

        return resolved

    def register_struct(self, name: str) -> Type:
        """Register an empty struct type and return a copy of it."""
        struct_type = Type(BaseType.STRUCT, struct_name=name)
        self.structs[name] = struct_type
        return copy.deepcopy(struct_type)

    def set_struct_members(self, name: str, members) -> Type:
        """Attach members to a registered struct and return a copy of it."""
        try:
            struct_type = self.structs[name]
        except KeyError:
            raise CompilerError(f"Struct not found: {name}", ErrorType.TYPE_ERROR) from None
        struct_type.struct_members = list(members)
        return copy.deepcopy(struct_type)

    def register_typedef(self, name: str, type_: Type) -> None:
        self.typedefs[name] = copy.deepcopy(type_)

    def register_function(self, func: Function | None) -> None:
        if func is None:
            raise CompilerError("Cannot register null function", ErrorType.OTHER)
        self.functions[func.name] = func

    def get_define_value(self, key: str) -> str:
        """Return the value of a define, or an empty string if unknown."""
        return self.defines.get(key, "")

    def register_define(self, key: str, value: str) -> None:
        self.defines[key] = value

    def is_compatible(self, source: Type, target: Type) -> bool:
        """Whether a value of ``source`` may be used where ``target`` is expected.

        No implicit conversions exist: only value-carrying types spelled
        identically in C are compatible.
        """
        if source.base in _VALUELESS or target.base in _VALUELESS:
            return False
        return str(source) == str(target)

    def common_type(self, first: Type, second: Type) -> Type:
        """Return the type two operands are evaluated in: a copy of the first."""
        return copy.deepcopy(first)