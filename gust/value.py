

class Symbol(str):
    """
    An identifier. Symbols compare equal to plain strings with the
    same name but keep their own type so the compiler can tell them apart.
    """

    def __repr__(self):
        return "Symbol(%s)" % str.__repr__(self)


class Function(object):
    """
    A compiled function prototype: the bytecode produced by the
    compiler for one ``fn`` form, or for a whole top-level form.
    """

    def __init__(self, name, params, chunk):
        self.name = name
        self.params = params
        self.chunk = chunk

    @property
    def arity(self):
        return len(self.params)

    def __repr__(self):
        return "<Function %s/%d>" % (self.name or "anonymous", self.arity)


class Closure(object):
    """A function prototype paired with the environment it was created in."""

    def __init__(self, function, env):
        self.function = function
        self.env = env

    @property
    def name(self):
        return self.function.name


class NativeFunction(object):
    """
    A function implemented in python.
    ``fn`` is called with the vm and a list of arguments.
    """

    def __init__(self, name, fn):
        self.name = name
        self.fn = fn

    def __call__(self, vm, args):
        return self.fn(vm, args)


class Environment(object):
    """
    Name to value bindings with an optional enclosing environment.
    The VM's global environment is the root of every chain.
    """

    def __init__(self, parent=None):
        self.values = {}
        self.parent = parent

    def __contains__(self, name):
        env = self
        while env is not None:
            if name in env.values:
                return True
            env = env.parent
        return False

    def get(self, name):
        env = self
        while env is not None:
            if name in env.values:
                return env.values[name]
            env = env.parent
        raise KeyError(name)

    def define(self, name, value):
        self.values[name] = value

    def assign(self, name, value):
        env = self
        while env is not None:
            if name in env.values:
                env.values[name] = value
                return
            env = env.parent
        raise KeyError(name)


class ValueArray(object):
    def __init__(self):
        self.values = []

    def __getitem__(self, item):
        return self.values[item]

    def __len__(self):
        return len(self.values)

    def index(self, item):
        # Return the index of an item in the array
        for i, value in enumerate(self.values):
            if type(value) is type(item) and value == item:
                return i
        raise ValueError("Not found")

    def append(self, value):
        """

        :param value:
        :return: The index of the added constant/value
        """
        self.values.append(value)
        return len(self.values) - 1


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value):
    return value is not None and value is not False


def values_equal(a, b):
    # 1 == True in python, but not here
    if isinstance(a, bool) or isinstance(b, bool):
        return a is b
    if is_number(a) and is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def type_name(value):
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "real"
    if isinstance(value, Symbol):
        return "symbol"
    if isinstance(value, str):
        return "string"
    if isinstance(value, tuple):
        return "tuple"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Closure):
        return "function"
    if isinstance(value, NativeFunction):
        return "cfunction"
    return "userdata"


_STRING_ESCAPES = {
    '"': '\\"',
    '\\': '\\\\',
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
    '\0': '\\0',
    '\x1b': '\\e',
}


def _quote_string(value):
    chars = []
    for char in value:
        if char in _STRING_ESCAPES:
            chars.append(_STRING_ESCAPES[char])
        elif ord(char) < 0x20:
            chars.append("\\x%02x" % ord(char))
        else:
            chars.append(char)
    return '"' + "".join(chars) + '"'


def describe(value, _seen=None):
    """
    Render a value the way the REPL displays it.

    An array or tuple met again inside itself renders as ``[...]`` or
    ``(...)``. Integers too long for decimal conversion render by size.
    """
    if value is None:
        return "nil"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, Symbol):
        return str(value)
    if isinstance(value, str):
        return _quote_string(value)
    if isinstance(value, (int, float)):
        try:
            return repr(value)
        except ValueError:
            return "<integer of %d bits>" % value.bit_length()
    if isinstance(value, (tuple, list)):
        opening, closing = ("(", ")") if isinstance(value, tuple) else ("[", "]")
        if _seen is None:
            _seen = set()
        if id(value) in _seen:
            return opening + "..." + closing
        _seen.add(id(value))
        try:
            return opening + " ".join(describe(item, _seen) for item in value) + closing
        finally:
            _seen.discard(id(value))
    if isinstance(value, Closure):
        return "<function %s>" % (value.name or "anonymous")
    if isinstance(value, NativeFunction):
        return "<cfunction %s>" % value.name
    return "<%s>" % type(value).__name__


def to_string(value):
    """Like describe, but strings are emitted without quotes."""
    if isinstance(value, str) and not isinstance(value, Symbol):
        return value
    return describe(value)
