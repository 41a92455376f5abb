"""
The command line front-end: runs files and/or an interactive repl.

Source is pushed through the incremental parser one top-level form at a
time; each form is compiled and run before the next one is read, and the
value of the last successful form is visible to the next as ``_``.
"""
import argparse
import sys
from collections import namedtuple

from gust import __version__
from gust.compiler import Compiler
from gust.debug import debug, set_debugging
from gust.errors import (GustCompileError, GustIOError, GustParseError,
                         UnexpectedEndOfSource)
from gust.parser import Parser, ParserStatus, ParserStatusToName
from gust.reader import FileCursor, LineCursor
from gust.value import to_string, type_name
from gust.vm import VM, InterpretResult, InterpretResultToName

EX_IOERR = 74

USAGE = ("Usage:\n"
         "%s -opts --fullopt1 --fullopt2 file1 file2...\n"
         "\n"
         "  -h      --help     : Shows this information.\n"
         "  -V      --verbose  : Show more output.\n"
         "  -r      --repl     : Launch a repl after all files are processed.\n"
         "  -c      --nocolor  : Don't use VT100 color codes in the repl.\n"
         "  -v      --version  : Print the version number and exit.\n\n")

PROMPT = ">>>"
CONTINUATION_PROMPT = "..."

Flags = namedtuple("Flags", "help version verbose repl nocolor unknown")


class _UsageError(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):

    def error(self, message):
        # Unknown or malformed options show the usage instead of exiting 2
        raise _UsageError(message)


def _build_argument_parser():
    parser = _ArgumentParser(add_help=False, allow_abbrev=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("-v", "--version", action="store_true")
    parser.add_argument("-V", "--verbose", action="store_true")
    parser.add_argument("-r", "--repl", action="store_true")
    parser.add_argument("-c", "--nocolor", action="store_true")
    parser.add_argument("files", nargs="*")
    return parser


def parse_args(args):
    """
    Parse command line arguments (without the program name).

    :return: a (Flags, files) pair
    """
    # a bare "--" is not an option terminator here, and a lone "-" is ignored
    if "--" in args:
        debug("bad arguments: unexpected '--'")
        return Flags(False, False, False, False, False, True), []
    args = [arg for arg in args if arg != "-"]
    try:
        namespace, extras = _build_argument_parser().parse_known_intermixed_args(args)
    except _UsageError as e:
        debug("bad arguments: %s" % e)
        return Flags(False, False, False, False, False, True), []
    unknown = any(extra.startswith("-") for extra in extras)
    files = list(namespace.files) + [extra for extra in extras if not extra.startswith("-")]
    flags = Flags(
        help=namespace.help,
        version=namespace.version,
        verbose=namespace.verbose,
        repl=namespace.repl,
        nocolor=namespace.nocolor,
        unknown=unknown,
    )
    return flags, files


def feed_and_drain(parser, cursor):
    """
    Push bytes from ``cursor`` into ``parser`` until a form is complete.

    Bytes the parser did not consume stay in the cursor for the next call.

    :return: True if a form is ready to extract, False if the source ended
        cleanly between forms
    :raises GustParseError: on malformed input
    :raises UnexpectedEndOfSource: if the source ended inside a form
    """
    while parser.status not in (ParserStatus.ERROR, ParserStatus.FULL):
        if not cursor.exhausted():
            cursor.advance(parser.feed(cursor.remaining()))
            continue
        if cursor.refill():
            continue
        # A trailing form may only be terminated by the end of its line
        if parser.status == ParserStatus.PENDING:
            parser.feed(b"\n")
        if parser.status == ParserStatus.ROOT:
            return False
        if parser.status == ParserStatus.PENDING:
            raise UnexpectedEndOfSource()
    if parser.status == ParserStatus.ERROR:
        raise GustParseError(parser.error)
    debug("form ready, parser %s" % ParserStatusToName[parser.status])
    return True


class Client(object):
    """
    Drives one VM through any number of files and repl sessions.

    ``last`` is the value of the most recent successful form.
    """

    def __init__(self, vm, flags, stdout):
        self.vm = vm
        self.flags = flags
        self.stdout = stdout
        self.last = None
        self._session = None

    def write(self, text):
        self.stdout.write(text)
        self.stdout.flush()

    def _render(self, render, value):
        try:
            return render(value)
        except (RecursionError, ValueError) as e:
            debug("render failed: %r" % e)
            return "<unprintable %s: %s>" % (type_name(value), e)

    def compile_and_run(self, form, line=1):
        """
        Compile a form with ``_`` bound to the previous result and run it.

        :return: an InterpretResult code
        """
        self.vm.put("_", self.last)
        compiler = Compiler(self.vm.env, debugging=self.flags.verbose)
        try:
            function = compiler.compile(form, line)
        except GustCompileError as e:
            self.write("Compiler error: %s\n" % e.message)
            return InterpretResult.INTERPRET_COMPILE_ERROR

        result = self.vm.run(function)
        debug(InterpretResultToName[result])
        if result != InterpretResult.INTERPRET_OK:
            if self.vm.crash is not None:
                self.write("VM crash: %s\n" % self.vm.crash)
            else:
                self.write("VM error: %s\n" % self._render(to_string, self.vm.ret))
            return result

        self.last = self.vm.ret
        return result

    def run_path(self, path):
        debug("run_path called with: " + path)
        try:
            file = open(path, "rb")
        except OSError as e:
            self.write("Could not open file %s: %s\n" % (path, e.strerror or e))
            return EX_IOERR
        with file:
            return self.run_file(file)

    def run_file(self, stream):
        """
        Run every form of a binary stream, stopping at the first failure.

        :return: 0 if the whole stream ran, 1 otherwise
        """
        cursor = FileCursor(stream)
        parser = Parser()
        while True:
            try:
                if not feed_and_drain(parser, cursor):
                    return 0
            except UnexpectedEndOfSource as e:
                self.write("%s\n" % e)
                return 1
            except GustParseError as e:
                self.write("Parse error: %s\n" % e)
                return 1
            except GustIOError as e:
                self.write("I/O error: %s\n" % e)
                return 1

            line = parser.form_line
            if self.compile_and_run(parser.extract_form(), line) != InterpretResult.INTERPRET_OK:
                return 1

    def _prompt(self):
        pending = self._session is not None and self._session.status == ParserStatus.PENDING
        text = CONTINUATION_PROMPT if pending else PROMPT
        if self.flags.nocolor:
            self.write("%s " % text)
        else:
            self.write("\x1B[33m%s\x1B[0m " % text)

    def repl(self, stdin):
        """
        Read, evaluate and print forms from a binary stream until it ends.

        Errors are reported and the repl carries on with a fresh parser.

        :return: 0
        """
        cursor = LineCursor(stdin, self._prompt)
        while True:
            self._session = parser = Parser()
            try:
                if not feed_and_drain(parser, cursor):
                    return 0
            except UnexpectedEndOfSource as e:
                self.write("%s\n" % e)
                continue
            except GustParseError as e:
                self.write("Parse error: %s\n" % e)
                cursor.discard()
                continue
            except GustIOError as e:
                self.write("I/O error: %s\n" % e)
                cursor.discard()
                continue

            if self.compile_and_run(parser.extract_form()) == InterpretResult.INTERPRET_OK:
                text = self._render(self.vm.describe, self.last)
                if self.flags.nocolor:
                    self.write("%s\n" % text)
                else:
                    self.write("\x1B[36m%s\x1B[0m\n" % text)


def main(argv=None, stdin=None, stdout=None):
    argv = sys.argv if argv is None else argv
    stdin = sys.stdin.buffer if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout

    flags, files = parse_args(argv[1:])
    if flags.help or flags.unknown:
        stdout.write(USAGE % argv[0])
        return 0
    if flags.version:
        stdout.write("%s\n" % __version__)
        return 0

    set_debugging(flags.verbose)
    status = 0
    with VM(stdout=stdout) as vm:
        vm.load_stdlib()
        client = Client(vm, flags, stdout)
        for path in files:
            status = client.run_path(path)
        if not files or flags.repl:
            debug("Entering gust repl")
            status = client.repl(stdin)
    return status


def entry_point():
    sys.exit(main())
