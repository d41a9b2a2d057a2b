import pytest

from jblang.codegen import CCodeGenerator
from jblang.errors import CompilerError
from jblang.nodes import (
    ArrayDecl,
    ArraySize,
    AssignExpr,
    BinaryExpr,
    Block,
    ExprStmt,
    ForStmt,
    FunctionCall,
    FunctionDecl,
    Identifier,
    IfStmt,
    IncDecExpr,
    Initializer,
    Literal,
    NewExpr,
    PointerMemberExpr,
    PreprocessorDirective,
    Program,
    ReturnStmt,
    SpawnStmt,
    StructDecl,
    StructInitExpr,
    StructMember,
    TypedefDecl,
    TypeSpec,
    VarDecl,
)
from jblang.transpiler import Transpiler, transpile

INT = TypeSpec("int")
INT_PTR = TypeSpec("int", pointer=True)


def _main(*statements):
    return FunctionDecl("main", [], INT, Block(list(statements)))


def _new_int_ptr(name):
    return VarDecl(INT_PTR, name, NewExpr(INT))


def test_empty_program_wraps_main():
    out = transpile(Program())
    assert out == (
        '#include "runtime.h"\n'
        "int main() {\n    runtime_init();\n"
        "    main_();\n    runtime_shutdown();\n}\n"
    )


def test_global_pointer_is_registered_as_root():
    out = transpile(Program(statements=[VarDecl(INT_PTR, "g"), VarDecl(INT, "n")]))
    assert "int* g;\n" in out
    assert "    runtime_register_root(&g);\n" in out
    assert "runtime_register_root(&n)" not in out


def test_define_supplies_array_size():
    program = Program(
        directives=[PreprocessorDirective("define", "N", "4")],
        statements=[VarDecl(array=ArrayDecl(INT, "buf", [ArraySize("N")]))],
    )
    out = transpile(program)
    assert "#define N 4\n" in out
    assert "int buf[4];" in out


def test_undefined_array_size_raises():
    with pytest.raises(CompilerError):
        transpile(Program(statements=[VarDecl(array=ArrayDecl(INT, "buf", [ArraySize("M")]))]))


def test_main_is_renamed():
    out = transpile(Program(statements=[_main(ReturnStmt(Literal("0")))]))
    assert "int main_()" in out
    assert "return 0;\n" in out


def test_pointer_locals_released_only_with_ref_counts():
    program = Program(statements=[_main(_new_int_ptr("p"))])
    counted = transpile(program, use_ref_counts=True)
    assert "runtime_alloc(sizeof(int))" in counted
    assert "runtime_dec_ref_count(p, 0);" in counted
    plain = transpile(program, use_ref_counts=False)
    assert "runtime_dec_ref_count" not in plain
    assert "runtime_alloc(sizeof(int))" in plain


def test_pointer_assignment_increments_source_and_releases_target():
    out = transpile(
        Program(
            statements=[
                _main(
                    _new_int_ptr("p"),
                    _new_int_ptr("q"),
                    ExprStmt(AssignExpr(Identifier("p"), Identifier("q"))),
                )
            ]
        )
    )
    inc = out.index("runtime_inc_ref_count(q, NULL);")
    dec = out.index("runtime_dec_ref_count(p, 0);")
    assign = out.index("p = q;")
    assert inc < dec < assign


def test_member_assignment_records_owner():
    node_ptr = TypeSpec("Node", struct=True, pointer=True)
    node = TypeSpec("Node", struct=True)
    out = transpile(
        Program(
            statements=[
                StructDecl("Node", [StructMember(node_ptr, "next")]),
                _main(
                    VarDecl(node_ptr, "a", NewExpr(node)),
                    VarDecl(node_ptr, "b", NewExpr(node)),
                    ExprStmt(AssignExpr(PointerMemberExpr(Identifier("a"), "next"), Identifier("b"))),
                ),
            ]
        )
    )
    assert "struct Node {\n\tstruct Node* next;\n}" in out
    assert "runtime_alloc(sizeof(struct Node))" in out
    assert "runtime_inc_ref_count(b, a);" in out
    assert "a->next = b;" in out


def test_call_arguments_are_counted_around_the_call():
    out = transpile(
        Program(
            statements=[_main(_new_int_ptr("p"), ExprStmt(FunctionCall("f", [Identifier("p")])))]
        )
    )
    inc = out.index("runtime_inc_ref_count(p, NULL);")
    call = out.index("f(p);")
    first_dec = out.index("runtime_dec_ref_count(p, 0);")
    assert inc < call < first_dec
    assert out.count("runtime_dec_ref_count(p, 0);") == 2


def test_if_condition_is_not_ref_counted():
    out = transpile(
        Program(
            statements=[
                _main(_new_int_ptr("p"), IfStmt(FunctionCall("check", [Identifier("p")]), Block([])))
            ]
        )
    )
    assert "runtime_inc_ref_count" not in out
    assert "check(p)) {" in out


def test_returned_pointer_is_retained_before_release():
    out = transpile(
        Program(
            statements=[
                FunctionDecl("make", [], INT_PTR, Block([_new_int_ptr("p"), ReturnStmt(Identifier("p"))]))
            ]
        )
    )
    inc = out.index("runtime_inc_ref_count(p, NULL);")
    dec = out.index("runtime_dec_ref_count(p, 0);")
    ret = out.index("return p;")
    assert inc < dec < ret


def test_for_loop_header():
    loop = ForStmt(
        VarDecl(INT, "i", Literal("0")),
        BinaryExpr(Identifier("i"), "<", Literal("10")),
        IncDecExpr(Identifier("i"), "++"),
        ExprStmt(FunctionCall("tick", [])),
    )
    out = transpile(Program(statements=[_main(loop)]))
    assert "for (int i = 0; i < 10; i++) {" in out


def test_typedef_of_struct_is_usable_as_type():
    point = StructDecl("Point", [StructMember(INT, "x"), StructMember(INT, "y")])
    out = transpile(
        Program(statements=[TypedefDecl("Point", struct=point), VarDecl(TypeSpec("Point"), "pt")])
    )
    assert "typedef struct Point {\n\tint x;\n\tint y;\n} Point;\n" in out
    assert "struct Point pt;" in out


def test_struct_initializer_lists_fields():
    out = transpile(
        Program(
            statements=[
                StructDecl("P", [StructMember(INT, "x")]),
                VarDecl(TypeSpec("P", struct=True), "v", StructInitExpr([Initializer("x", Literal("1"))])),
            ]
        )
    )
    assert ".x = 1,\n" in out


def test_spawn_numbers_wrappers():
    call = FunctionCall("work", [])
    out = transpile(Program(statements=[_main(SpawnStmt(call), SpawnStmt(call))]))
    assert "runtime_spawn(work_wrapper_0, NULL);" in out
    assert "runtime_spawn(work_wrapper_1, NULL);" in out


def test_spawn_of_non_call_raises():
    with pytest.raises(CompilerError):
        transpile(Program(statements=[_main(SpawnStmt(Identifier("x")))]))


def test_unknown_type_raises():
    with pytest.raises(CompilerError):
        transpile(Program(statements=[VarDecl(TypeSpec("float"), "f")]))


def test_array_type_sizes_and_name():
    translator = Transpiler(CCodeGenerator(False))
    array = translator.array_type(ArrayDecl(INT, "m", [ArraySize(2), ArraySize(3)]))
    assert array.array_sizes == [2, 3]
    assert array.array_name == "m"
    assert str(array).startswith("int m")


def test_struct_type_registers_members():
    translator = Transpiler(CCodeGenerator(False))
    struct = translator.struct_type(StructDecl("Pair", [StructMember(INT, "a"), StructMember(INT, "b")]))
    assert struct.is_struct
    assert [name for name, _ in struct.struct_members] == ["a", "b"]
    assert translator.types.resolve_type("Pair").struct_name == "Pair"


def test_visit_rejects_unknown_node():
    with pytest.raises(TypeError):
        Transpiler(CCodeGenerator(True)).visit(object())