# jblang

`jblang` turns JBLang programs into C source. JBLang is a small C-like
language. It has structs, typedefs, arrays, pointers, `#define` constants
and heap allocation through `new`. The generated C calls into a runtime
that is declared in `runtime.h` (`runtime_init`, `runtime_alloc`,
`runtime_register_root`, `runtime_shutdown`, and so on). When reference
counting is on, the generated code calls `runtime_inc_ref_count` and
`runtime_dec_ref_count` for pointer values. It does this when they are
assigned, passed to functions or returned, and when they go out of scope.

## Modules

- `jblang.typesystem` provides `BaseType`, `ArrayInfo`, `Type`, `Function`
  and `TypeSystem`.
  - `TypeSystem.resolve_type` resolves type spellings such as `int`, `bool`,
    `void`, `string` (a `char*`), `int*`, and registered struct and typedef
    names.
  - The registry also keeps functions and `#define` values.
- `jblang.symbols` provides `Variable` and `SymbolTable`.
  - The table is a stack of scopes, with lookup falling back to the current
    function's parameters.
  - It records global pointer variables and gives the indentation for the
    current nesting depth.
- `jblang.codegen` provides `CodeGenerator`, which is the abstract interface,
  and `CCodeGenerator`.
  - These produce the C text for declarations, structs, typedefs, calls,
    returns, allocations and reference-count operations.
  - `CCodeGenerator(False)` leaves out the reference-count calls.
- `jblang.nodes` holds dataclasses for the syntax tree:
  - `Program`, `PreprocessorDirective`, `FunctionDecl` and `VarDecl`;
  - `StructDecl`, `TypedefDecl`, `ArrayDecl` and `Block`;
  - the statement classes and the expression classes.

  It also provides `source_text(node)`, which returns the node's tokens with
  no whitespace between them.
- `jblang.transpiler` provides `Transpiler`, which walks a `Program` and
  returns the complete C translation unit. It also provides the
  `transpile(program, use_ref_counts=True)` shortcut.
- `jblang.errors` provides `CompilerError`, a `RuntimeError`, and
  `ErrorType`.

## Resolving types

```python
from jblang.typesystem import TypeSystem

types = TypeSystem()
print(types.resolve_type("int*"))              # int*
print(types.resolve_type("string").is_pointer) # True
```

Unknown names raise `CompilerError` with `ErrorType.TYPE_ERROR`.

## Generating C fragments

```python
from jblang.codegen import CCodeGenerator
from jblang.typesystem import TypeSystem

types = TypeSystem()
gen = CCodeGenerator(False)

gen.var_decl("x", types.resolve_type("int"), " = 1")   # 'int x = 1;\n'
gen.alloc(types.resolve_type("int"))                   # 'runtime_alloc(sizeof(int))'
gen.function_call("printf", ['"hello"'])               # 'printf("hello")'
```

## Translating a whole program

Build a `Program` from the node classes and pass it to `transpile`:

```python
from jblang.nodes import (
    Block, FunctionDecl, Literal, NewExpr, Program, ReturnStmt, TypeSpec, VarDecl,
)
from jblang.transpiler import transpile

program = Program(statements=[
    FunctionDecl(
        name="main",
        return_type=TypeSpec("int"),
        body=Block([
            VarDecl(type_spec=TypeSpec("int", pointer=True), name="p",
                    init=NewExpr(TypeSpec("int"))),
            ReturnStmt(Literal("0")),
        ]),
    ),
])

c_source = transpile(program, True)
```

The returned text has three parts, in this order:

1. It begins with `#include "runtime.h"`.
2. Next come the translated directives and declarations. The program's own
   `main` is renamed to `main_`.
3. Last comes a C `main`. This `main` calls `runtime_init()`, then registers
   every global pointer variable with `runtime_register_root`, then calls
   `main_()`, and finally calls `runtime_shutdown()`.

Errors in the program are raised as `CompilerError`. Each one carries an
`error_type` and, where known, a `line` and a `column`. Two cases raise it:

- a `spawn` of anything other than a function call;
- an array size that names an undefined `#define`.

## What the package does not do

- **No parsing.** It does not read JBLang source text. Programs must be
  built as `jblang.nodes` trees.
- **No runtime and no C compiler.** It does not ship the runtime library
  that the generated C links against. It does not call a C compiler. The
  output is C text only.
- **`spawn` is incomplete.** A `spawn` statement emits a
  `runtime_spawn(<name>_wrapper_<n>, NULL)` call, but no wrapper function is
  generated for it.