"""Translation of a syntax tree into C source."""

from __future__ import annotations

import itertools
from contextlib import contextmanager
from typing import Iterator

from jblang.codegen import CCodeGenerator, CodeGenerator
from jblang.errors import CompilerError, ErrorType
from jblang.nodes import (
    AddressOfExpr,
    ArrayAccessExpr,
    ArrayDecl,
    AssignExpr,
    BinaryExpr,
    Block,
    DereferenceExpr,
    ExprStmt,
    ForStmt,
    FunctionCall,
    FunctionDecl,
    Identifier,
    IfStmt,
    IncDecExpr,
    Literal,
    MemberExpr,
    NewExpr,
    Paren,
    PointerMemberExpr,
    PreprocessorDirective,
    Program,
    ReturnStmt,
    SpawnStmt,
    StructDecl,
    StructInitExpr,
    TypedefDecl,
    TypeSpec,
    VarDecl,
    WhileStmt,
    source_text,
)
from jblang.symbols import SymbolTable, Variable
from jblang.typesystem import BaseType, Function, Type, TypeSystem


class Transpiler:
    """Walks one program and accumulates the generated C text."""

    def __init__(self, generator: CodeGenerator) -> None:
        self.generator = generator
        self.symbols = SymbolTable()
        self.types = TypeSystem()
        self._out: list[str] = []
        self._spawn_ids = itertools.count()
        self._ref_counting = True
        self._handlers = {
            Program: self._program,
            PreprocessorDirective: self._directive,
            FunctionDecl: self._function_decl,
            VarDecl: self._var_decl,
            StructDecl: self._struct_decl,
            TypedefDecl: self._typedef_decl,
            ArrayDecl: self._array_decl,
            Block: self._block,
            SpawnStmt: self._spawn,
            ReturnStmt: self._return,
            ExprStmt: self._expr_stmt,
            IfStmt: self._if,
            WhileStmt: self._while,
            ForStmt: self._for,
            Identifier: lambda node: node.name,
            Literal: lambda node: node.text,
            Paren: lambda node: f"({self.visit(node.expression)})",
            MemberExpr: lambda node: f"{self.visit(node.expression)}.{node.member}",
            PointerMemberExpr: lambda node: f"{self.visit(node.expression)}->{node.member}",
            FunctionCall: self._function_call,
            BinaryExpr: self._binary,
            AssignExpr: self._assign,
            AddressOfExpr: lambda node: "&" + self.visit(node.expression),
            DereferenceExpr: lambda node: "*" + self.visit(node.expression),
            ArrayAccessExpr: lambda node: f"{self.visit(node.array)}[{self.visit(node.index)}]",
            NewExpr: lambda node: self.generator.alloc(self._resolve(node.type_spec)),
            StructInitExpr: self._struct_init,
            IncDecExpr: self._inc_dec,
        }

    def transpile(self, program: Program) -> str:
        """Translate a whole program and return the C text."""
        return self._program(program)

    def visit(self, node):
        """Translate one node; expressions return their C text, statements write output."""
        handler = self._handlers.get(type(node))
        if handler is None:
            raise TypeError(f"cannot translate {type(node).__name__}")
        return handler(node)

    def array_type(self, decl: ArrayDecl) -> Type:
        """Resolve an array declarator, looking up defines used as sizes."""
        array = self._resolve(decl.type_spec)
        sizes = []
        for size in decl.sizes:
            if isinstance(size.value, str):
                value = self.types.get_define_value(size.value)
                try:
                    sizes.append(int(value))
                except ValueError:
                    raise CompilerError(
                        f"Invalid array size: {size.value}", ErrorType.NAME_ERROR
                    ) from None
            else:
                sizes.append(int(size.value))
        array.set_array(decl.name, sizes)
        return array

    def struct_type(self, decl: StructDecl) -> Type:
        """Register a struct and its members, returning its type."""
        self.types.register_struct(decl.name)
        members = [self._declared(member) for member in decl.members]
        return self.types.set_struct_members(decl.name, members)

    # helpers

    def _emit(self, *parts: str) -> None:
        self._out.extend(parts)

    @contextmanager
    def _without_ref_counts(self) -> Iterator[None]:
        self._ref_counting = False
        try:
            yield
        finally:
            self._ref_counting = True

    def _resolve(self, spec: TypeSpec | None) -> Type:
        if spec is None:
            return Type(BaseType.VOID)
        text = source_text(spec)
        if text.startswith("struct"):
            name = text[len("struct"):]
            is_pointer = name.endswith("*")
            if is_pointer:
                name = name[:-1]
            resolved = self.types.resolve_type(name)
            if is_pointer:
                resolved.is_pointer = True
            return resolved
        return self.types.resolve_type(text)

    def _declared(self, decl) -> tuple[str, Type]:
        if decl.array is not None:
            array = self.array_type(decl.array)
            return array.array_name, array
        return decl.name, self._resolve(decl.type_spec)

    def _pointer_symbol(self, text: str) -> Variable | None:
        var = self.symbols.lookup(text)
        return var if var is not None and var.type.is_pointer else None

    def _release_scope(self, indent: str) -> None:
        for var in self.symbols.current_scope_symbols().values():
            if var.type.is_pointer:
                self._emit(indent, self.generator.dec_ref(var))

    # declarations

    def _program(self, program: Program) -> str:
        self._emit('#include "runtime.h"\n')
        for directive in program.directives:
            self.visit(directive)
            self._emit("\n")
        for statement in program.statements:
            self.visit(statement)
            self._emit("\n")
        self._emit("int main() {\n    runtime_init();\n")
        for name, _ in self.symbols.global_vars:
            self._emit(f"    runtime_register_root(&{name});\n")
        self._emit("    main_();\n    runtime_shutdown();\n}\n")
        return "".join(self._out)

    def _directive(self, directive: PreprocessorDirective) -> None:
        if source_text(directive).startswith("#define"):
            self.types.register_define(directive.name, directive.value)
            self._emit(f"#define {directive.name} {directive.value}\n")
        else:
            self._emit(source_text(directive))

    def _function_decl(self, decl: FunctionDecl) -> None:
        func = Function(name=decl.name)
        func.params = [self._declared(param) for param in decl.params]
        func.return_type = self._resolve(decl.return_type)
        self.types.register_function(func)
        self.symbols.current_func = func
        self._emit(self.generator.function_decl(func))
        self.visit(decl.body)
        self.symbols.current_func = None

    def _var_decl(self, decl: VarDecl) -> None:
        indent = self.symbols.indent()
        name, var_type = self._declared(decl)
        if self.symbols.is_global_scope() and var_type.is_pointer:
            self.symbols.global_vars.append((name, var_type))
        if decl.init is not None:
            init = self.visit(decl.init)
            source = self._pointer_symbol(init)
            if source is not None:
                self._emit(indent, self.generator.inc_ref(source))
            self._emit(indent, self.generator.var_decl(name, var_type, " = " + init))
        else:
            self._emit(indent, self.generator.var_decl(name, var_type))
        self.symbols.add_symbol(name, var_type)

    def _struct_decl(self, decl: StructDecl) -> None:
        struct = self.struct_type(decl)
        self._emit(self.generator.struct_decl(struct.struct_name, struct))

    def _typedef_decl(self, decl: TypedefDecl) -> None:
        if decl.struct is not None:
            aliased = self.struct_type(decl.struct)
        else:
            aliased = self._resolve(decl.type_spec)
        self.types.register_typedef(decl.name, aliased)
        self._emit(self.generator.typedef(decl.name, aliased))

    def _array_decl(self, decl: ArrayDecl) -> None:
        self._emit(str(self.array_type(decl)))

    # statements

    def _block(self, block: Block) -> None:
        self.symbols.enter_scope()
        self._emit(self.generator.scope_entry())
        indent = self.symbols.indent()
        for statement in block.statements:
            self.visit(statement)
        self._release_scope(indent)
        self.symbols.exit_scope()
        self._emit(indent, self.generator.scope_exit(self.symbols.current_scope_symbols()))

    def _spawn(self, stmt: SpawnStmt) -> None:
        if not isinstance(stmt.expression, FunctionCall):
            raise CompilerError("Can only spawn function calls")
        wrapper = f"{stmt.expression.name}_wrapper_{next(self._spawn_ids)}"
        self._emit(self.symbols.indent(), f"runtime_spawn({wrapper}, NULL);\n")

    def _return(self, stmt: ReturnStmt) -> None:
        with self._without_ref_counts():
            value = self.visit(stmt.expression)
        returned = self._pointer_symbol(value)
        if returned is not None:
            self._emit(self.symbols.indent(), self.generator.inc_ref(returned))
        indent = self.symbols.indent()
        self._release_scope(indent)
        self._emit(indent, self.generator.return_stmt(value, Type(BaseType.NO_TYPE)))

    def _expr_stmt(self, stmt: ExprStmt) -> None:
        self._emit(self.symbols.indent())
        self._emit(self.visit(stmt.expression), ";\n")

    def _if(self, stmt: IfStmt) -> None:
        with self._without_ref_counts():
            self._emit(self.symbols.indent(), "if (")
            self._emit(self.visit(stmt.condition), ") {\n")
        self.visit(stmt.then)
        self._emit("}\n")
        if stmt.otherwise is not None:
            self._emit(self.symbols.indent(), "else {\n")
            self.visit(stmt.otherwise)
            self._emit("}\n")

    def _while(self, stmt: WhileStmt) -> None:
        with self._without_ref_counts():
            self._emit(self.symbols.indent(), "while (")
            self._emit(self.visit(stmt.condition), ") {\n")
        self.visit(stmt.body)
        self._emit("}\n")

    def _for(self, stmt: ForStmt) -> None:
        indent = self.symbols.indent()
        self._emit(indent, "for (")
        if isinstance(stmt.init, VarDecl):
            name, var_type = self._declared(stmt.init)
            self._emit(f"{var_type} {name}")
            if stmt.init.init is not None:
                init = self.visit(stmt.init.init)
                self._emit(" = " + init)
            self.symbols.add_symbol(name, var_type)
        elif isinstance(stmt.init, ExprStmt):
            self._emit(self.visit(stmt.init.expression))
        self._emit("; ")
        if stmt.condition is not None:
            with self._without_ref_counts():
                self._emit(self.visit(stmt.condition))
        self._emit("; ")
        if stmt.update is not None:
            self._emit(self.visit(stmt.update))
        self._emit(") ")
        if isinstance(stmt.body, Block):
            self.visit(stmt.body)
        else:
            self._emit("{\n")
            self.visit(stmt.body)
            self._emit(indent, "}\n")

    # expressions

    def _binary(self, expr: BinaryExpr) -> str:
        left = self.visit(expr.left)
        right = self.visit(expr.right)
        return f"{left} {expr.op} {right}"

    def _assign(self, expr: AssignExpr) -> str:
        left = self.visit(expr.target)
        right = self.visit(expr.value)
        indent = self.symbols.indent()
        source = self._pointer_symbol(right)
        if source is not None:
            arrow = left.find("->")
            if arrow != -1:
                owner = self._pointer_symbol(left[:arrow])
                if owner is not None:
                    self._emit(indent, self.generator.inc_ref(source, owner.name))
            else:
                self._emit(indent, self.generator.inc_ref(source))
        target = self._pointer_symbol(left)
        if target is not None:
            self._emit(indent, self.generator.dec_ref(target))
        return f"{left} = {right}"

    def _function_call(self, call: FunctionCall) -> str:
        indent = self.symbols.indent()
        args = []
        pointer_args = False
        for arg in call.args:
            text = self.visit(arg)
            source = self._pointer_symbol(text)
            if self._ref_counting and source is not None:
                pointer_args = True
                self._emit(indent, self.generator.inc_ref(source))
            args.append(text)

        code = indent + self.generator.function_call(call.name, args)
        if pointer_args:
            code += ";\n"

        if self._ref_counting:
            for arg in call.args:
                source = self._pointer_symbol(self.visit(arg))
                if source is not None:
                    code += indent + self.generator.dec_ref(source)
        return code

    def _struct_init(self, expr: StructInitExpr) -> str:
        indent = self.symbols.indent()
        lines = ["{\n"]
        for item in expr.initializers:
            value = source_text(item.expression)
            source = self._pointer_symbol(value)
            if source is not None:
                self._emit(indent + self.generator.inc_ref(source))
            lines.append(f"{indent}.{item.name} = {value},\n")
        return "".join(lines) + indent + "}"

    def _inc_dec(self, expr: IncDecExpr) -> str:
        operand = self.visit(expr.expression)
        return expr.op + operand if expr.prefix else operand + expr.op


def transpile(program: Program, use_ref_counts: bool = True) -> str:
    """Translate a program to C with a fresh transpiler and C generator."""
    return Transpiler(CCodeGenerator(use_ref_counts)).transpile(program)