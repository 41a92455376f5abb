import sys

from gust.opcodes import OpCode
from gust.value import describe

OpCodeToInstructionName = {getattr(OpCode, op): op
                           for op in dir(OpCode) if op.startswith('OP_')}

DEBUGGING_MESSAGES = False


def set_debugging(enabled):
    global DEBUGGING_MESSAGES
    DEBUGGING_MESSAGES = enabled


def debug(msg):
    if DEBUGGING_MESSAGES:
        print("debug:", msg, file=sys.stderr)


def leftpad_string(string, width, char=" "):
    l = len(string)
    if l > width:
        return string
    return char * (width - l) + string


def rightpad_string(string, width, char=" "):
    l = len(string)
    if l > width:
        return string
    return string + char * (width - l)


def simple_instruction(name, offset, out):
    print("", file=out)
    return offset + 1


def constant_instruction(name, chunk, offset, out):
    constant = chunk.code[offset + 1]
    print("(%s)" % leftpad_string("%d" % constant, 2, '0'), end=" ", file=out)
    print("%s" % leftpad_string("'%s'" % describe(chunk.constants[constant]), 8), file=out)
    return offset + 2


def byte_instruction(name, chunk, offset, out):
    print("%d" % chunk.code[offset + 1], file=out)
    return offset + 2


def jump_instruction(name, sign, chunk, offset, out):
    jump = (chunk.code[offset + 1] << 8) | chunk.code[offset + 2]
    print("%d -> %d" % (offset, offset + 3 + sign * jump), file=out)
    return offset + 3


def disassemble_instruction(chunk, offset, out=None):
    out = out or sys.stderr
    print(leftpad_string("%d" % offset, 4, '0'), end=" ", file=out)

    instruction = chunk.code[offset]
    if instruction not in OpCodeToInstructionName:
        print("Unknown opcode %s" % instruction, file=out)
        return offset + 1

    line = chunk.line_at(offset)
    if offset > 0 and line == chunk.line_at(offset - 1):
        print("   | ", end=" ", file=out)
    else:
        print(leftpad_string(str(line), 4), end=" ", file=out)

    # Print the opcode's name
    instruction_name = OpCodeToInstructionName[instruction]
    print(rightpad_string("%s " % instruction_name, 16), end=" ", file=out)

    # Now the opcode specific output
    if instruction in OpCode.ConstantOps:
        return constant_instruction(instruction_name, chunk, offset, out)
    if instruction in OpCode.JumpOps:
        return jump_instruction(instruction_name, OpCode.JumpOps[instruction],
                                chunk, offset, out)
    if instruction in OpCode.ByteOps:
        return byte_instruction(instruction_name, chunk, offset, out)

    return simple_instruction(instruction_name, offset, out)
