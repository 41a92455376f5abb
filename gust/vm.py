import sys

from gust.debug import debug, disassemble_instruction
from gust.errors import GustRuntimeError, VMCrash
from gust.opcodes import OpCode
from gust.stdlib import load_stdlib
from gust.value import Closure, Environment, NativeFunction, describe, is_truthy


class InterpretResult:
    """

    """

    INTERPRET_OK = 0
    INTERPRET_COMPILE_ERROR = 1
    INTERPRET_RUNTIME_ERROR = 2


InterpretResultToName = {getattr(InterpretResult, op): op
                         for op in dir(InterpretResult) if op.startswith('INTERPRET_')}


class CallFrame(object):
    """One active function call: its code position, scope and stack base."""

    def __init__(self, closure, env, base):
        self.closure = closure
        self.chunk = closure.function.chunk
        self.env = env
        self.base = base
        # Instruction Pointer (or Program Counter)
        # points to the next instruction to be executed
        self.ip = 0


class VM(object):
    """
    A stack machine executing compiled functions against a global
    environment that lives as long as the VM.

    After ``run`` returns, ``ret`` holds the result value (or the error
    value on a runtime error) and ``crash`` holds a diagnostic if the
    machine itself failed.

    Use as a context manager to make sure ``deinit`` runs.
    """

    STACK_MAX_SIZE = 4096
    FRAMES_MAX = 256

    stack = None
    stack_top = 0

    def __init__(self, debug=False, stdout=None):
        self.debug_trace = debug
        self.stdout = stdout or sys.stdout
        self.env = Environment()
        self.frames = []
        self.ret = None
        self.crash = None
        self._reset_stack()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.deinit()

    def deinit(self):
        debug("tearing down vm")
        self.env = Environment()
        self.frames = []
        self.ret = None
        self.crash = None
        self._reset_stack()

    def load_stdlib(self):
        load_stdlib(self)

    def put(self, name, value):
        self.env.define(name, value)

    def get(self, name):
        return self.env.get(name)

    @staticmethod
    def describe(value):
        return describe(value)

    def _reset_stack(self):
        self.stack = [None] * self.STACK_MAX_SIZE
        self.stack_top = 0

    def _stack_push(self, value):
        if self.stack_top >= self.STACK_MAX_SIZE:
            raise VMCrash("stack overflow")
        self.stack[self.stack_top] = value
        self.stack_top += 1

    def _stack_pop(self):
        assert self.stack_top > 0
        self.stack_top -= 1
        return self.stack[self.stack_top]

    def _stack_peek(self, distance=0):
        return self.stack[self.stack_top - 1 - distance]

    def run(self, function):
        """
        Execute a compiled top-level function.

        :return: an InterpretResult code
        """
        self._reset_stack()
        self.frames = []
        self.crash = None
        try:
            closure = Closure(function, self.env)
            self._stack_push(closure)
            # top-level code defines straight into the global environment
            self.frames.append(CallFrame(closure, self.env, 0))
            self.ret = self._run()
            return InterpretResult.INTERPRET_OK
        except GustRuntimeError as e:
            self.ret = e.value
            return InterpretResult.INTERPRET_RUNTIME_ERROR
        except VMCrash as e:
            self.ret = None
            self.crash = e.message
            return InterpretResult.INTERPRET_RUNTIME_ERROR
        except Exception as e:
            # any other fault in a native or the dispatch loop
            debug("vm fault: %r" % e)
            self.ret = None
            self.crash = "%s: %s" % (type(e).__name__, e)
            return InterpretResult.INTERPRET_RUNTIME_ERROR
        finally:
            self.frames = []
            self.stack_top = 0

    def _call(self, callee, argc):
        if isinstance(callee, Closure):
            function = callee.function
            if argc != function.arity:
                raise GustRuntimeError("%s expects %d arguments, got %d"
                                       % (describe(callee), function.arity, argc))
            if len(self.frames) >= self.FRAMES_MAX:
                raise VMCrash("stack overflow")
            base = self.stack_top - argc - 1
            env = Environment(callee.env)
            if function.name is not None:
                env.define(function.name, callee)
            for i, name in enumerate(function.params):
                env.define(name, self.stack[base + 1 + i])
            self.frames.append(CallFrame(callee, env, base))
        elif isinstance(callee, NativeFunction):
            args = self.stack[self.stack_top - argc:self.stack_top]
            result = callee(self, args)
            self.stack_top -= argc + 1
            self._stack_push(result)
        else:
            raise GustRuntimeError("cannot call %s" % describe(callee))

    def _run(self):
        while True:
            frame = self.frames[-1]

            if self.debug_trace:
                self._print_stack()
                disassemble_instruction(frame.chunk, frame.ip)
            instruction = self._read_byte(frame)

            if instruction == OpCode.OP_RETURN:
                result = self._stack_pop()
                self.frames.pop()
                self.stack_top = frame.base
                if not self.frames:
                    return result
                self._stack_push(result)
            elif instruction == OpCode.OP_CONSTANT:
                self._stack_push(self._read_constant(frame))
            elif instruction == OpCode.OP_NIL:
                self._stack_push(None)
            elif instruction == OpCode.OP_TRUE:
                self._stack_push(True)
            elif instruction == OpCode.OP_FALSE:
                self._stack_push(False)
            elif instruction == OpCode.OP_POP:
                self._stack_pop()
            elif instruction == OpCode.OP_GET_NAME:
                name = self._read_constant(frame)
                try:
                    self._stack_push(frame.env.get(name))
                except KeyError:
                    raise GustRuntimeError("unknown symbol %s" % name)
            elif instruction == OpCode.OP_DEFINE_NAME:
                frame.env.define(self._read_constant(frame), self._stack_peek())
            elif instruction == OpCode.OP_SET_NAME:
                name = self._read_constant(frame)
                try:
                    frame.env.assign(name, self._stack_peek())
                except KeyError:
                    raise GustRuntimeError("cannot set undefined symbol %s" % name)
            elif instruction == OpCode.OP_JUMP:
                offset = self._read_short(frame)
                frame.ip += offset
            elif instruction == OpCode.OP_JUMP_IF_FALSE:
                offset = self._read_short(frame)
                if not is_truthy(self._stack_pop()):
                    frame.ip += offset
            elif instruction == OpCode.OP_LOOP:
                offset = self._read_short(frame)
                frame.ip -= offset
            elif instruction == OpCode.OP_CALL:
                argc = self._read_byte(frame)
                self._call(self._stack_peek(argc), argc)
            elif instruction == OpCode.OP_CLOSURE:
                self._stack_push(Closure(self._read_constant(frame), frame.env))
            elif instruction == OpCode.OP_ARRAY:
                count = self._read_byte(frame)
                items = self.stack[self.stack_top - count:self.stack_top]
                self.stack_top -= count
                self._stack_push(items)
            else:
                raise VMCrash("unknown opcode %s" % instruction)

    def _print_stack(self):
        cells = ["[ %s ]" % describe(self.stack[i]) for i in range(self.stack_top)]
        print("         ", " ".join(cells) or "[]", file=sys.stderr)

    def _read_byte(self, frame):
        try:
            instruction = frame.chunk.code[frame.ip]
        except IndexError:
            raise VMCrash("instruction pointer out of range: %d" % frame.ip)
        frame.ip += 1
        return instruction

    def _read_short(self, frame):
        high = self._read_byte(frame)
        low = self._read_byte(frame)
        return (high << 8) | low

    def _read_constant(self, frame):
        constant_index = self._read_byte(frame)
        return frame.chunk.constants[constant_index]
