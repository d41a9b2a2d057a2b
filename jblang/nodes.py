"""Syntax tree of a source program, as handed to the transpiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass
class TypeSpec:
    """A written type: a name, optionally prefixed by ``struct`` and followed by ``*``."""

    name: str
    struct: bool = False
    pointer: bool = False


@dataclass
class ArraySize:
    """One array dimension: an integer, or the name of a define holding one."""

    value: Union[int, str]


@dataclass
class ArrayDecl:
    """An array declarator such as ``int grid[N][4]``."""

    type_spec: TypeSpec
    name: str
    sizes: list[ArraySize] = field(default_factory=list)


@dataclass
class Param:
    """A function parameter, either plain or an array."""

    type_spec: Optional[TypeSpec] = None
    name: str = ""
    array: Optional[ArrayDecl] = None


@dataclass
class PreprocessorDirective:
    """A ``#`` line; ``define`` directives carry a name and a value."""

    directive: str
    name: str = ""
    value: str = ""


@dataclass
class Identifier:
    name: str


@dataclass
class Literal:
    """An integer, string (with its quotes) or boolean literal, as written."""

    text: str


@dataclass
class Paren:
    expression: "Expression"


@dataclass
class MemberExpr:
    expression: "Expression"
    member: str


@dataclass
class PointerMemberExpr:
    expression: "Expression"
    member: str


@dataclass
class FunctionCall:
    name: str
    args: list["Expression"] = field(default_factory=list)


@dataclass
class BinaryExpr:
    """Arithmetic or comparison: ``left op right``."""

    left: "Expression"
    op: str
    right: "Expression"


@dataclass
class AssignExpr:
    target: "Expression"
    value: "Expression"


@dataclass
class AddressOfExpr:
    expression: "Expression"


@dataclass
class DereferenceExpr:
    expression: "Expression"


@dataclass
class ArrayAccessExpr:
    array: "Expression"
    index: "Expression"


@dataclass
class NewExpr:
    """Heap allocation of one value of the given type."""

    type_spec: TypeSpec


@dataclass
class Initializer:
    """One ``.name = expression`` entry of a struct initializer."""

    name: str
    expression: "Expression"


@dataclass
class StructInitExpr:
    initializers: list[Initializer] = field(default_factory=list)


@dataclass
class IncDecExpr:
    """``++`` or ``--`` applied before (prefix) or after the operand."""

    expression: "Expression"
    op: str
    prefix: bool = False


Expression = Union[
    Identifier,
    Literal,
    Paren,
    MemberExpr,
    PointerMemberExpr,
    FunctionCall,
    BinaryExpr,
    AssignExpr,
    AddressOfExpr,
    DereferenceExpr,
    ArrayAccessExpr,
    NewExpr,
    StructInitExpr,
    IncDecExpr,
]


@dataclass
class Block:
    statements: list["Statement"] = field(default_factory=list)


@dataclass
class VarDecl:
    """A variable declaration, plain or array, with an optional initial value."""

    type_spec: Optional[TypeSpec] = None
    name: str = ""
    init: Optional[Expression] = None
    array: Optional[ArrayDecl] = None


@dataclass
class FunctionDecl:
    name: str
    params: list[Param] = field(default_factory=list)
    return_type: Optional[TypeSpec] = None
    body: Block = field(default_factory=Block)


@dataclass
class StructMember:
    type_spec: Optional[TypeSpec] = None
    name: str = ""
    array: Optional[ArrayDecl] = None


@dataclass
class StructDecl:
    name: str
    members: list[StructMember] = field(default_factory=list)


@dataclass
class TypedefDecl:
    """A typedef of either a written type or an inline struct declaration."""

    name: str
    type_spec: Optional[TypeSpec] = None
    struct: Optional[StructDecl] = None


@dataclass
class SpawnStmt:
    expression: Expression


@dataclass
class ReturnStmt:
    expression: Expression


@dataclass
class ExprStmt:
    expression: Expression


@dataclass
class IfStmt:
    condition: Expression
    then: "Statement"
    otherwise: Optional["Statement"] = None


@dataclass
class WhileStmt:
    condition: Expression
    body: "Statement"


@dataclass
class ForStmt:
    init: Optional[Union[VarDecl, ExprStmt]] = None
    condition: Optional[Expression] = None
    update: Optional[Expression] = None
    body: "Statement" = field(default_factory=Block)


Statement = Union[
    VarDecl,
    FunctionDecl,
    StructDecl,
    TypedefDecl,
    ArrayDecl,
    Block,
    SpawnStmt,
    ReturnStmt,
    ExprStmt,
    IfStmt,
    WhileStmt,
    ForStmt,
]


@dataclass
class Program:
    directives: list[PreprocessorDirective] = field(default_factory=list)
    statements: list[Statement] = field(default_factory=list)


def source_text(node) -> str:
    """Return the node's tokens concatenated without whitespace."""
    match node:
        case TypeSpec(name, is_struct, pointer):
            return ("struct" if is_struct else "") + name + ("*" if pointer else "")
        case ArraySize(value):
            return str(value)
        case ArrayDecl(type_spec, name, sizes):
            dims = "".join(f"[{source_text(size)}]" for size in sizes)
            return source_text(type_spec) + name + dims
        case PreprocessorDirective(directive, name, value):
            return f"#{directive}{name}{value}"
        case Identifier(name):
            return name
        case Literal(text):
            return text
        case Paren(inner):
            return f"({source_text(inner)})"
        case MemberExpr(inner, member):
            return f"{source_text(inner)}.{member}"
        case PointerMemberExpr(inner, member):
            return f"{source_text(inner)}->{member}"
        case FunctionCall(name, args):
            return f"{name}({','.join(source_text(arg) for arg in args)})"
        case BinaryExpr(left, op, right):
            return source_text(left) + op + source_text(right)
        case AssignExpr(target, value):
            return f"{source_text(target)}={source_text(value)}"
        case AddressOfExpr(inner):
            return "&" + source_text(inner)
        case DereferenceExpr(inner):
            return "*" + source_text(inner)
        case ArrayAccessExpr(array, index):
            return f"{source_text(array)}[{source_text(index)}]"
        case NewExpr(type_spec):
            return "new" + source_text(type_spec)
        case Initializer(name, expression):
            return f".{name}={source_text(expression)}"
        case StructInitExpr(initializers):
            return "{" + ",".join(source_text(item) for item in initializers) + "}"
        case IncDecExpr(inner, op, prefix):
            text = source_text(inner)
            return op + text if prefix else text + op
        case _:
            raise TypeError(f"no source text for {type(node).__name__}")