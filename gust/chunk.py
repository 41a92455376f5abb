import sys

from gust.debug import disassemble_instruction
from gust.value import ValueArray


class Chunk(object):
    """
    Bytecode for one function: the code bytes, the source line each byte
    came from, and the constants the code refers to by index.
    """

    def __init__(self):
        self.code = []
        self.lines = []
        self.constants = ValueArray()

    def write_chunk(self, byte, line):
        self.code.append(byte)
        self.lines.append(line)

    def line_at(self, offset):
        if 0 <= offset < len(self.lines):
            return self.lines[offset]
        return -1

    def __repr__(self):
        return "<Chunk of %d bytes>" % (len(self.code))

    def __len__(self):
        return len(self.code)

    def disassemble(self, name, out=None):
        out = out or sys.stderr
        print("== %s ==" % name, file=out)
        offset = 0
        while offset < len(self.code):
            offset = disassemble_instruction(self, offset, out)

    def add_constant(self, value):
        return self.constants.append(value)
