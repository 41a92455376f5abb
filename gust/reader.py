"""
Byte sources for the parser.

A cursor either has bytes left at its current offset, or is exhausted and
must be refilled. Once ``refill`` reports the end of its source it keeps
doing so.
"""
from gust.debug import debug
from gust.errors import GustIOError

LINE_BUFFER_LENGTH = 100
BLOCK_SIZE = 2048


def read_line(stream, initial_size=LINE_BUFFER_LENGTH):
    """
    Read a single line from a binary stream, however long it is.

    The buffer starts at ``initial_size`` bytes and doubles each time it
    fills up before a newline is seen. The newline is kept.

    :return: the line as bytes, or None at end of stream with nothing read
    """
    capacity = initial_size
    line = bytearray()
    try:
        while True:
            piece = stream.readline(capacity - len(line))
            if not piece:
                break
            line += piece
            if line.endswith(b"\n"):
                break
            if len(line) >= capacity:
                capacity *= 2
    except MemoryError:
        raise GustIOError("out of memory while reading a line")
    except OSError as e:
        raise GustIOError("could not read input: %s" % e)
    if not line:
        return None
    return bytes(line)


class InputCursor(object):
    """A read position within the current buffer of a byte source."""

    def __init__(self):
        self.buffer = b""
        self.offset = 0
        self.at_end = False

    def exhausted(self):
        return self.offset >= len(self.buffer)

    def remaining(self):
        return memoryview(self.buffer)[self.offset:]

    def advance(self, count):
        self.offset += count

    def discard(self):
        """Drop whatever is left of the current buffer."""
        self.buffer = b""
        self.offset = 0

    def refill(self):
        """
        Replace the buffer with the next bytes of the source.

        :return: False when the source has nothing more to give
        """
        if self.at_end:
            return False
        data = self._read()
        if not data:
            self.at_end = True
            self.discard()
            return False
        self.buffer = data
        self.offset = 0
        return True

    def _read(self):
        raise NotImplementedError


class FileCursor(InputCursor):
    """Reads a file in fixed size blocks."""

    def __init__(self, file, block_size=BLOCK_SIZE):
        super().__init__()
        self.file = file
        self.block_size = block_size

    def _read(self):
        try:
            data = self.file.read(self.block_size)
        except OSError as e:
            raise GustIOError("could not read file: %s" % e)
        debug("read block of %d bytes" % len(data))
        return data


class LineCursor(InputCursor):
    """
    Reads an interactive stream one line at a time, calling ``prompt``
    before each read.
    """

    def __init__(self, stream, prompt=None):
        super().__init__()
        self.stream = stream
        self.prompt = prompt

    def _read(self):
        if self.prompt is not None:
            self.prompt()
        return read_line(self.stream)
