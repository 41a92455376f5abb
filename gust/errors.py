"""
Everything that can go wrong between reading a byte and printing a result.

All errors derive from GustError so the mode drivers in gust.client can catch
them at a single boundary and turn them into console diagnostics.
"""


class GustError(Exception):
    pass


class GustIOError(GustError):
    """A source could not be opened, read, or buffered."""


class GustParseError(GustError):
    """Malformed input; the parser session that produced it is unusable."""


class UnexpectedEndOfSource(GustParseError):
    """The source ran out while a form was still open."""

    def __init__(self, message="Unexpected end of source"):
        super().__init__(message)


class GustCompileError(GustError):
    """
    A structured compiler diagnostic.

    :param message: human readable description
    :param form: the (sub)form being compiled when the error was found
    """

    def __init__(self, message, form=None):
        super().__init__(message)
        self.message = message
        self.form = form


class GustRuntimeError(GustError):
    """
    An error value raised by a running program, e.g. via ``(error x)``.
    The VM catches it and exposes ``value`` as its return value.
    """

    def __init__(self, value):
        super().__init__(value)
        self.value = value


class VMCrash(GustError):
    """An unrecoverable fault of the VM itself."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message
