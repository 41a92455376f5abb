from gust.chunk import Chunk
from gust.debug import debug
from gust.errors import GustCompileError
from gust.opcodes import OpCode
from gust.value import Function, Symbol, describe


class FunctionState(object):
    """
    Bookkeeping for the function currently being compiled:
    its chunk and the names bound in its scope.
    """

    def __init__(self, name, params, enclosing=None):
        self.function = Function(name, params, Chunk())
        self.names = set(params)
        self.enclosing = enclosing


class Compiler(object):
    """
    Compiles one top-level form into a zero argument Function.

    Forms come straight from the parser: tuples are calls or special
    forms, lists are array literals, Symbols are names, anything else
    is a literal.

    Names are resolved at compile time against the scopes of the
    enclosing ``fn`` forms and the global environment ``env``.
    """

    MAX_CONSTANTS = 256
    MAX_ARGS = 255
    MAX_DEPTH = 128

    def __init__(self, env, debugging=False):
        self.env = env
        self.state = None
        self.line = 1
        self.depth = 0
        # globals declared by a ``def`` inside the form being compiled
        self.declared = set()
        self.DEBUG_PRINT_CODE = debugging

        self.special_forms = {
            'quote': self.quote,
            'if': self.if_form,
            'do': self.do_form,
            'def': self.def_form,
            'set': self.set_form,
            'fn': self.fn_form,
            'while': self.while_form,
        }

    def compile(self, form, line=1):
        """
        :return: the compiled Function
        :raises GustCompileError: if the form cannot be compiled
        """
        self.line = line
        self.declared = set()
        self.depth = 0
        self.state = FunctionState(None, [])
        try:
            self.expression(form)
        except RecursionError:
            self.error("Form nested too deeply.", form)
        self.end_compiler()
        debug("compiled form from line %d" % line)
        return self.state.function

    def error(self, msg, form=None):
        raise GustCompileError(msg, form)

    def end_compiler(self):
        self._emit_return()

        if self.DEBUG_PRINT_CODE:
            self.current_chunk().disassemble(self.state.function.name or "code")

    def current_chunk(self):
        return self.state.function.chunk

    def make_constant(self, value):
        chunk = self.current_chunk()
        if isinstance(value, Symbol):
            try:
                return chunk.constants.index(value)
            except ValueError:
                pass
        constant = chunk.add_constant(value)
        if constant >= self.MAX_CONSTANTS:
            self.error("Too many constants in one chunk.")
        return constant

    def emit_byte(self, byte):
        self.current_chunk().write_chunk(byte, self.line)

    def emit_bytes(self, byte_a, byte_b):
        self.emit_byte(byte_a)
        self.emit_byte(byte_b)

    def _emit_constant(self, value):
        self.emit_bytes(OpCode.OP_CONSTANT, self.make_constant(value))

    def _emit_return(self):
        self.emit_byte(OpCode.OP_RETURN)

    def emit_jump(self, instruction):
        self.emit_byte(instruction)
        self.emit_bytes(0xff, 0xff)
        return len(self.current_chunk()) - 2

    def patch_jump(self, offset):
        code = self.current_chunk().code
        jump = len(code) - offset - 2
        if jump > 0xffff:
            self.error("Too much code to jump over.")
        code[offset] = (jump >> 8) & 0xff
        code[offset + 1] = jump & 0xff

    def emit_loop(self, loop_start):
        self.emit_byte(OpCode.OP_LOOP)
        offset = len(self.current_chunk()) - loop_start + 2
        if offset > 0xffff:
            self.error("Loop body too large.")
        self.emit_bytes((offset >> 8) & 0xff, offset & 0xff)

    def resolve(self, name):
        state = self.state
        while state is not None:
            if name in state.names:
                return True
            state = state.enclosing
        return name in self.declared or name in self.env

    def declare(self, name):
        if self.state.enclosing is None:
            self.declared.add(name)
        else:
            self.state.names.add(name)

    def expression(self, form):
        self.depth += 1
        try:
            self._expression(form)
        finally:
            self.depth -= 1

    def _expression(self, form):
        if self.depth > self.MAX_DEPTH:
            self.error("Form nested too deeply.", form)
        if isinstance(form, Symbol):
            self.symbol(form)
        elif isinstance(form, tuple):
            self.compound(form)
        elif isinstance(form, list):
            self.array(form)
        elif form is None:
            self.emit_byte(OpCode.OP_NIL)
        elif form is True:
            self.emit_byte(OpCode.OP_TRUE)
        elif form is False:
            self.emit_byte(OpCode.OP_FALSE)
        else:
            self._emit_constant(form)

    def symbol(self, name):
        if not self.resolve(name):
            self.error("unknown symbol %s" % name, name)
        self.emit_bytes(OpCode.OP_GET_NAME, self.make_constant(name))

    def array(self, form):
        if len(form) > self.MAX_ARGS:
            self.error("Too many elements in array literal.", form)
        for item in form:
            self.expression(item)
        self.emit_bytes(OpCode.OP_ARRAY, len(form))

    def compound(self, form):
        if not form:
            self._emit_constant(form)
            return
        head = form[0]
        if isinstance(head, Symbol) and head in self.special_forms:
            self.special_forms[head](form)
        else:
            self.call(form)

    def call(self, form):
        args = form[1:]
        if len(args) > self.MAX_ARGS:
            self.error("Can't have more than %d arguments." % self.MAX_ARGS, form)
        self.expression(form[0])
        for arg in args:
            self.expression(arg)
        self.emit_bytes(OpCode.OP_CALL, len(args))

    def body(self, forms):
        # A sequence of expressions leaving only the last value
        if not forms:
            self.emit_byte(OpCode.OP_NIL)
            return
        for i, form in enumerate(forms):
            if i > 0:
                self.emit_byte(OpCode.OP_POP)
            self.expression(form)

    def quote(self, form):
        if len(form) != 2:
            self.error("quote expects 1 argument", form)
        value = form[1]
        if value is None:
            self.emit_byte(OpCode.OP_NIL)
        else:
            self._emit_constant(value)

    def if_form(self, form):
        if len(form) not in (3, 4):
            self.error("if expects 2 or 3 arguments", form)
        self.expression(form[1])
        then_jump = self.emit_jump(OpCode.OP_JUMP_IF_FALSE)
        self.expression(form[2])
        else_jump = self.emit_jump(OpCode.OP_JUMP)
        self.patch_jump(then_jump)
        if len(form) == 4:
            self.expression(form[3])
        else:
            self.emit_byte(OpCode.OP_NIL)
        self.patch_jump(else_jump)

    def do_form(self, form):
        self.body(form[1:])

    def _name_operand(self, form):
        if len(form) != 3:
            self.error("%s expects 2 arguments" % form[0], form)
        name = form[1]
        if not isinstance(name, Symbol):
            self.error("expected symbol, got %s" % describe(name), form)
        return name

    def def_form(self, form):
        name = self._name_operand(form)
        # Declared first so the value can refer to itself
        self.declare(name)
        self.expression(form[2])
        self.emit_bytes(OpCode.OP_DEFINE_NAME, self.make_constant(name))

    def set_form(self, form):
        name = self._name_operand(form)
        if not self.resolve(name):
            self.error("cannot set undefined symbol %s" % name, form)
        self.expression(form[2])
        self.emit_bytes(OpCode.OP_SET_NAME, self.make_constant(name))

    def fn_form(self, form):
        rest = list(form[1:])
        name = None
        if rest and isinstance(rest[0], Symbol):
            name = rest.pop(0)
        if not rest or not isinstance(rest[0], list):
            self.error("fn expects a parameter array", form)
        params = rest.pop(0)
        for param in params:
            if not isinstance(param, Symbol):
                self.error("expected symbol parameter, got %s" % describe(param), form)
        if len(params) > self.MAX_ARGS:
            self.error("Can't have more than %d parameters." % self.MAX_ARGS, form)

        self.state = FunctionState(name, list(params), self.state)
        if name is not None:
            self.state.names.add(name)
        self.body(rest)
        self.end_compiler()
        function = self.state.function
        self.state = self.state.enclosing

        self.emit_bytes(OpCode.OP_CLOSURE, self.make_constant(function))

    def while_form(self, form):
        if len(form) < 2:
            self.error("while expects a condition", form)
        loop_start = len(self.current_chunk())
        self.expression(form[1])
        exit_jump = self.emit_jump(OpCode.OP_JUMP_IF_FALSE)
        self.body(form[2:])
        self.emit_byte(OpCode.OP_POP)
        self.emit_loop(loop_start)
        self.patch_jump(exit_jump)
        self.emit_byte(OpCode.OP_NIL)
