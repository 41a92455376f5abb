import io

import pytest

from gust.chunk import Chunk
from gust.compiler import Compiler
from gust.errors import GustCompileError
from gust.opcodes import OpCode
from gust.parser import Parser
from gust.value import Environment, Symbol, describe, to_string
from gust.vm import VM, InterpretResult


def read(source):
    parser = Parser()
    parser.feed(source.encode("utf-8") + b"\n")
    return parser.extract_form()


def evaluate(vm, source):
    function = Compiler(vm.env).compile(read(source))
    result = vm.run(function)
    assert result == InterpretResult.INTERPRET_OK, (vm.crash, vm.ret)
    return vm.ret


def run_failing(vm, source):
    function = Compiler(vm.env).compile(read(source))
    assert vm.run(function) == InterpretResult.INTERPRET_RUNTIME_ERROR
    return vm


@pytest.mark.parametrize("source, expected", [
    ("(+ 1 2 3)", 6),
    ("(+)", 0),
    ("(- 5)", -5),
    ("(- 10 1 2)", 7),
    ("(* 2 3.5)", 7.0),
    ("(/ 1 2)", 0.5),
    ("(/ 4)", 0.25),
    ("(% 7 3)", 1),
    ("(< 1 2 3)", True),
    ("(>= 3 3 4)", False),
    ("(= 1 1 1)", True),
    ("(= 1 true)", False),
    ("(= \"a\" \"a\")", True),
    ("(not nil)", True),
    ("(not 0)", False),
    ("(if (< 1 2) \"yes\" \"no\")", "yes"),
    ("(if false 1)", None),
    ("(if nil 1 2)", 2),
    ("(do 1 2 3)", 3),
    ("(do)", None),
    ("(str \"a\" 1 nil)", "a1nil"),
    ("(length [1 2 3])", 3),
    ("(get [1 2] 1)", 2),
    ("(get [1 2] 5)", None),
    ("(push [1] 2)", [1, 2]),
    ("(type 1.5)", "real"),
    ("(describe \"q\")", "\"q\""),
    ("[1 (+ 1 1) 3]", [1, 2, 3]),
    ("(tuple 1 2)", (1, 2)),
    ("'(a b)", (Symbol("a"), Symbol("b"))),
    ("'nil", None),
    ("((fn [x y] (- x y)) 10 4)", 6),
])
def test_expressions(vm, source, expected):
    assert evaluate(vm, source) == expected


def test_def_returns_value_and_binds_globally(vm):
    assert evaluate(vm, "(def answer 42)") == 42
    assert vm.get("answer") == 42
    assert evaluate(vm, "answer") == 42


def test_recursion(vm):
    evaluate(vm, "(def fact (fn [n] (if (<= n 1) 1 (* n (fact (- n 1))))))")
    assert evaluate(vm, "(fact 10)") == 3628800


def test_named_fn_can_call_itself(vm):
    assert evaluate(vm, "((fn count [n] (if (= n 0) \"done\" (count (- n 1)))) 5)") == "done"


def test_closures_capture_their_scope(vm):
    evaluate(vm, "(def make-adder (fn [n] (fn [x] (+ x n))))")
    evaluate(vm, "(def add2 (make-adder 2))")
    assert evaluate(vm, "(add2 40)") == 42


def test_def_inside_fn_is_local(vm):
    evaluate(vm, "(def f (fn [] (def inner 3) (+ inner 1)))")
    assert evaluate(vm, "(f)") == 4
    assert "inner" not in vm.env


def test_while_and_set(vm):
    source = ("(do (def i 0) (def total 0)"
              " (while (< i 5) (set total (+ total i)) (set i (+ i 1)))"
              " total)")
    assert evaluate(vm, source) == 10


def test_while_returns_nil(vm):
    evaluate(vm, "(def n 3)")
    assert evaluate(vm, "(while (> n 0) (set n (- n 1)))") is None
    assert vm.get("n") == 0


def test_print_writes_to_vm_stdout(vm, output):
    assert evaluate(vm, "(print \"a\" 1 [2])") is None
    assert output.getvalue() == "a 1 [2]\n"


def test_error_value(vm):
    run_failing(vm, "(error \"boom\")")
    assert vm.ret == "boom"
    assert vm.crash is None


def test_native_type_error(vm):
    run_failing(vm, "(+ 1 \"a\")")
    assert vm.ret == "+ expected number, got string"


def test_division_by_zero(vm):
    run_failing(vm, "(/ 1 0)")
    assert vm.ret == "division by zero"


def test_wrong_arity(vm):
    run_failing(vm, "((fn [x] x))")
    assert vm.ret == "<function anonymous> expects 1 arguments, got 0"


def test_calling_a_non_function(vm):
    run_failing(vm, "(1 2)")
    assert vm.ret == "cannot call 1"


def test_stack_overflow_is_a_crash(vm):
    evaluate(vm, "(def loop (fn [] (loop)))")
    run_failing(vm, "(loop)")
    assert vm.crash == "stack overflow"
    assert vm.ret is None


def test_vm_is_reusable_after_failure(vm):
    run_failing(vm, "(error 1)")
    assert evaluate(vm, "(+ 1 1)") == 2
    assert vm.crash is None


@pytest.mark.parametrize("source, message", [
    ("missing", "unknown symbol missing"),
    ("(if)", "if expects 2 or 3 arguments"),
    ("(def 1 2)", "expected symbol, got 1"),
    ("(set nothing 1)", "cannot set undefined symbol nothing"),
    ("(fn x)", "fn expects a parameter array"),
    ("(fn [1] 1)", "expected symbol parameter, got 1"),
    ("(quote)", "quote expects 1 argument"),
    ("(while)", "while expects a condition"),
])
def test_compile_errors(vm, source, message):
    with pytest.raises(GustCompileError) as excinfo:
        Compiler(vm.env).compile(read(source))
    assert excinfo.value.message == message


def test_too_many_constants(vm):
    source = "(do %s)" % " ".join('"s%d"' % i for i in range(300))
    with pytest.raises(GustCompileError) as excinfo:
        Compiler(vm.env).compile(read(source))
    assert excinfo.value.message == "Too many constants in one chunk."


def test_compiled_chunk_records_line(vm):
    function = Compiler(vm.env).compile(read("(+ 1 2)"), line=3)
    assert function.chunk.lines[0] == 3
    assert function.chunk.code[-1] == OpCode.OP_RETURN


def test_deinit_releases_environment():
    with VM() as vm:
        vm.load_stdlib()
        vm.put("x", 1)
        assert "x" in vm.env
    assert "x" not in vm.env
    assert "+" not in vm.env


def test_describe():
    assert describe(None) == "nil"
    assert describe(False) == "false"
    assert describe(1.5) == "1.5"
    assert describe('a"b\n') == '"a\\"b\\n"'
    assert describe([1, (2, Symbol("x"))]) == "[1 (2 x)]"
    assert to_string("plain") == "plain"
    assert to_string(Symbol("sym")) == "sym"


def test_environment_chain():
    outer = Environment()
    outer.define("a", 1)
    inner = Environment(outer)
    assert inner.get("a") == 1
    inner.assign("a", 2)
    assert outer.get("a") == 2
    with pytest.raises(KeyError):
        inner.get("b")


def test_chunk_tracks_line_per_byte():
    chunk = Chunk()
    for byte, line in [(OpCode.OP_NIL, 1), (OpCode.OP_POP, 1), (OpCode.OP_TRUE, 2)]:
        chunk.write_chunk(byte, line)
    assert chunk.lines == [1, 1, 2]
    assert chunk.line_at(2) == 2
    assert chunk.line_at(3) == -1


def test_disassemble(vm):
    function = Compiler(vm.env).compile(read("(if true (print 1) nil)"))
    out = io.StringIO()
    function.chunk.disassemble("test chunk", out)
    listing = out.getvalue()
    assert listing.startswith("== test chunk ==\n")
    assert "OP_JUMP_IF_FALSE" in listing
    assert "OP_GET_NAME" in listing
    assert "'print'" in listing
    assert "OP_CALL" in listing


def test_chunk_constants():
    chunk = Chunk()
    assert chunk.add_constant(1.5) == 0
    assert chunk.add_constant("x") == 1
    assert chunk.constants[1] == "x"
    assert repr(chunk) == "<Chunk of 0 bytes>"


def test_division_overflow_is_an_error_value(vm):
    run_failing(vm, "(/ 1%s 1)" % ("0" * 400))
    assert vm.ret == "division result too large"
    assert vm.crash is None


def test_python_fault_in_a_native_is_a_crash(vm):
    evaluate(vm, "(def a [1])")
    evaluate(vm, "(push a a)")
    evaluate(vm, "(def b [1])")
    evaluate(vm, "(push b b)")
    run_failing(vm, "(= a b)")
    assert vm.crash.startswith("RecursionError: ")
    assert vm.ret is None
    assert evaluate(vm, "(+ 1 1)") == 2


def test_describe_cyclic_values():
    items = [1]
    items.append(items)
    assert describe(items) == "[1 [...]]"
    assert describe((items, items)) == "([1 [...]] [1 [...]])"


def test_describe_integer_too_long_for_decimal():
    big = 10 ** 8192
    assert describe(big) == "<integer of %d bits>" % big.bit_length()


def test_print_cyclic_array(vm, output):
    evaluate(vm, "(def a [1])")
    evaluate(vm, "(push a a)")
    evaluate(vm, "(print a)")
    assert output.getvalue() == "[1 [...]]\n"


@pytest.mark.parametrize("depth", [Compiler.MAX_DEPTH + 1, 400])
def test_deeply_nested_form(vm, depth):
    source = "(do " * depth + "1" + ")" * depth
    with pytest.raises(GustCompileError) as excinfo:
        Compiler(vm.env).compile(read(source))
    assert excinfo.value.message == "Form nested too deeply."


def test_nesting_within_limit_compiles(vm):
    depth = Compiler.MAX_DEPTH - 1
    assert evaluate(vm, "(do " * depth + "7" + ")" * depth) == 7
