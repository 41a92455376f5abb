"""
Native functions available in every VM.

Each native takes the vm and a list of argument values. Natives report
bad input by raising GustRuntimeError with an error value, which the
running program sees as a normal error rather than a crash.
"""
import operator

from gust.errors import GustRuntimeError
from gust.value import (NativeFunction, describe, is_number, to_string,
                        type_name, values_equal)


def _expect_numbers(name, args):
    for arg in args:
        if not is_number(arg):
            raise GustRuntimeError("%s expected number, got %s" % (name, type_name(arg)))


def _expect_arity(name, args, low, high=None):
    high = low if high is None else high
    if not low <= len(args) <= high:
        if low == high:
            expected = "%d" % low
        else:
            expected = "%d to %d" % (low, high)
        raise GustRuntimeError("%s expects %s arguments, got %d" % (name, expected, len(args)))


def native_add(vm, args):
    _expect_numbers("+", args)
    return sum(args, 0)


def native_subtract(vm, args):
    _expect_numbers("-", args)
    if not args:
        return 0
    if len(args) == 1:
        return -args[0]
    result = args[0]
    for arg in args[1:]:
        result -= arg
    return result


def native_multiply(vm, args):
    _expect_numbers("*", args)
    result = 1
    for arg in args:
        result *= arg
    return result


def native_divide(vm, args):
    _expect_numbers("/", args)
    if not args:
        raise GustRuntimeError("/ expects at least 1 argument")
    if len(args) == 1:
        args = [1] + list(args)
    result = args[0]
    for arg in args[1:]:
        if arg == 0:
            raise GustRuntimeError("division by zero")
        try:
            result /= arg
        except OverflowError:
            raise GustRuntimeError("division result too large")
    return result


def native_modulo(vm, args):
    _expect_arity("%", args, 2)
    _expect_numbers("%", args)
    if args[1] == 0:
        raise GustRuntimeError("division by zero")
    return args[0] % args[1]


def native_equal(vm, args):
    return all(values_equal(a, b) for a, b in zip(args, args[1:]))


def _make_comparison(name, op):
    def compare(vm, args):
        _expect_numbers(name, args)
        return all(op(a, b) for a, b in zip(args, args[1:]))
    return compare


def native_not(vm, args):
    _expect_arity("not", args, 1)
    return args[0] is None or args[0] is False


def native_print(vm, args):
    vm.stdout.write(" ".join(to_string(arg) for arg in args) + "\n")
    return None


def native_str(vm, args):
    return "".join(to_string(arg) for arg in args)


def native_describe(vm, args):
    _expect_arity("describe", args, 1)
    return describe(args[0])


def native_length(vm, args):
    _expect_arity("length", args, 1)
    value = args[0]
    if not isinstance(value, (str, tuple, list)):
        raise GustRuntimeError("length expected sequence, got %s" % type_name(value))
    return len(value)


def native_get(vm, args):
    _expect_arity("get", args, 2)
    sequence, index = args
    if not isinstance(sequence, (str, tuple, list)):
        raise GustRuntimeError("get expected sequence, got %s" % type_name(sequence))
    if not isinstance(index, int) or isinstance(index, bool):
        raise GustRuntimeError("get expected integer index, got %s" % type_name(index))
    if 0 <= index < len(sequence):
        return sequence[index]
    return None


def native_push(vm, args):
    _expect_arity("push", args, 2)
    array, value = args
    if not isinstance(array, list):
        raise GustRuntimeError("push expected array, got %s" % type_name(array))
    array.append(value)
    return array


def native_array(vm, args):
    return list(args)


def native_tuple(vm, args):
    return tuple(args)


def native_type(vm, args):
    _expect_arity("type", args, 1)
    return type_name(args[0])


def native_error(vm, args):
    _expect_arity("error", args, 0, 1)
    raise GustRuntimeError(args[0] if args else None)


NATIVES = {
    '+': native_add,
    '-': native_subtract,
    '*': native_multiply,
    '/': native_divide,
    '%': native_modulo,
    '=': native_equal,
    '<': _make_comparison('<', operator.lt),
    '>': _make_comparison('>', operator.gt),
    '<=': _make_comparison('<=', operator.le),
    '>=': _make_comparison('>=', operator.ge),
    'not': native_not,
    'print': native_print,
    'str': native_str,
    'describe': native_describe,
    'length': native_length,
    'get': native_get,
    'push': native_push,
    'array': native_array,
    'tuple': native_tuple,
    'type': native_type,
    'error': native_error,
}


def load_stdlib(vm):
    for name, fn in NATIVES.items():
        vm.put(name, NativeFunction(name, fn))
