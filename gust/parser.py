"""
An incremental parser.

Bytes are pushed in with ``feed`` in chunks of any size; the parser keeps
all partial state (open lists, half read tokens, string escapes) between
calls, so splitting the input differently never changes the forms it
produces. ``feed`` stops consuming as soon as a top-level form is complete
or an error is found.
"""
import re

from gust.value import Symbol


class ParserStatus:
    PENDING = 0     # mid-form, needs more bytes
    FULL = 1        # a top-level form is ready to extract
    ROOT = 2        # clean boundary, nothing pending
    ERROR = 3       # malformed input


ParserStatusToName = {getattr(ParserStatus, name): name
                      for name in dir(ParserStatus) if not name.startswith('_')}


_WHITESPACE = frozenset(b" \t\r\n\f\v")
_OPENERS = {ord('('): ord(')'), ord('['): ord(']')}
_CLOSERS = frozenset(b")]")
_NOT_AFTER_ATOM = frozenset(b"([\"'")
_QUOTE = ord("'")
_STRING = ord('"')
_COMMENT = ord('#')
_BACKSLASH = ord('\\')
_NEWLINE = ord('\n')

_ESCAPES = {
    ord('n'): b'\n',
    ord('t'): b'\t',
    ord('r'): b'\r',
    ord('0'): b'\0',
    ord('e'): b'\x1b',
    ord('"'): b'"',
    ord('\\'): b'\\',
}
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")

_INTEGER = re.compile(r"[-+]?[0-9]+\Z")
_REAL = re.compile(r"[-+]?([0-9]+\.[0-9]*|\.[0-9]+|[0-9]+)([eE][-+]?[0-9]+)?\Z")


class Parser(object):

    def __init__(self):
        self.status = ParserStatus.ROOT
        self.error = None
        self.line = 1
        self.column = 0
        # line on which the current top-level form started
        self.form_line = 1

        # open containers: [closing byte or None for a quote, items]
        self._frames = []
        self._token = bytearray()
        self._hex = bytearray()
        self._form = None
        self._state = self._state_root

    def feed(self, data):
        """
        Consume bytes from ``data``.

        :return: the number of bytes consumed, which may be fewer than
            offered (or zero) once a form completes or an error occurs.
        """
        if self.status in (ParserStatus.FULL, ParserStatus.ERROR):
            return 0
        consumed = 0
        for byte in data:
            if not self._state(byte):
                break
            consumed += 1
            if byte == _NEWLINE:
                self.line += 1
                self.column = 0
            else:
                self.column += 1
            if self.status in (ParserStatus.FULL, ParserStatus.ERROR):
                break
            if self._frames or self._state != self._state_root:
                self.status = ParserStatus.PENDING
            else:
                self.status = ParserStatus.ROOT
        return consumed

    def extract_form(self):
        """Return the completed form and start accumulating the next one."""
        if self.status != ParserStatus.FULL:
            raise ValueError("no completed form (status %s)"
                             % ParserStatusToName[self.status])
        form = self._form
        self._form = None
        self.status = ParserStatus.ROOT
        return form

    def _fail(self, message):
        self.status = ParserStatus.ERROR
        self.error = "%s at line %d, column %d" % (message, self.line, self.column + 1)
        return True

    def _deliver(self, value):
        while self._frames and self._frames[-1][0] is None:
            self._frames.pop()
            value = (Symbol("quote"), value)
        if self._frames:
            self._frames[-1][1].append(value)
        else:
            self._form = value
            self.status = ParserStatus.FULL

    def _begin(self):
        if not self._frames:
            self.form_line = self.line

    # Each state handles one byte and returns whether it was consumed.

    def _state_root(self, byte):
        if byte in _WHITESPACE:
            return True
        if byte == _COMMENT:
            self._state = self._state_comment
            return True
        if byte in _CLOSERS:
            return self._close(byte)
        self._begin()
        if byte in _OPENERS:
            self._frames.append([_OPENERS[byte], []])
        elif byte == _QUOTE:
            self._frames.append([None, None])
        elif byte == _STRING:
            del self._token[:]
            self._state = self._state_string
        else:
            del self._token[:]
            self._token.append(byte)
            self._state = self._state_atom
        return True

    def _state_comment(self, byte):
        if byte == _NEWLINE:
            self._state = self._state_root
        return True

    def _state_atom(self, byte):
        if byte in _WHITESPACE or byte in _CLOSERS or byte == _COMMENT:
            value = self._atom_value()
            if self.status == ParserStatus.ERROR:
                return True
            self._state = self._state_root
            self._deliver(value)
            if self.status == ParserStatus.FULL:
                # leave the terminator for the next form
                return False
            return self._state_root(byte)
        if byte in _NOT_AFTER_ATOM:
            return self._fail("unexpected character %r after %r"
                              % (chr(byte), self._token.decode('utf-8', 'replace')))
        self._token.append(byte)
        return True

    def _state_string(self, byte):
        if byte == _BACKSLASH:
            self._state = self._state_escape
        elif byte == _STRING:
            try:
                value = self._token.decode('utf-8')
            except UnicodeDecodeError:
                return self._fail("invalid utf-8 in string")
            self._state = self._state_root
            self._deliver(value)
        else:
            self._token.append(byte)
        return True

    def _state_escape(self, byte):
        if byte == ord('x'):
            del self._hex[:]
            self._state = self._state_hex
            return True
        if byte not in _ESCAPES:
            return self._fail("unknown string escape \\%s" % chr(byte))
        self._token += _ESCAPES[byte]
        self._state = self._state_string
        return True

    def _state_hex(self, byte):
        if byte not in _HEX_DIGITS:
            return self._fail("invalid hex digit %r in string escape" % chr(byte))
        self._hex.append(byte)
        if len(self._hex) == 2:
            self._token.append(int(self._hex.decode('ascii'), 16))
            self._state = self._state_string
        return True

    def _close(self, byte):
        if not self._frames or self._frames[-1][0] is None:
            return self._fail("unexpected closing delimiter %r" % chr(byte))
        closer, items = self._frames.pop()
        if byte != closer:
            return self._fail("mismatched delimiter, expected %r but got %r"
                              % (chr(closer), chr(byte)))
        self._deliver(tuple(items) if closer == ord(')') else items)
        return True

    def _atom_value(self):
        try:
            text = self._token.decode('utf-8')
        except UnicodeDecodeError:
            self._fail("invalid utf-8 in symbol")
            return None
        if text == "nil":
            return None
        if text == "true":
            return True
        if text == "false":
            return False
        try:
            if _INTEGER.match(text):
                return int(text)
            if _REAL.match(text):
                return float(text)
        except ValueError:
            # past the interpreter's integer digit limit
            pass
        if text[0].isdigit() or _INTEGER.match(text):
            if len(text) > 32:
                text = text[:32] + "..."
            self._fail("malformed number %r" % text)
            return None
        return Symbol(text)
