"""Error handling for the minicaml pipeline. Every stage raises a subclass of GenericException internally and converts
it into its structured result at its entry point, so only GenericExceptions should ever reach ErrorHandler: if another
type of error makes it all the way there, it is assumed to be an internal issue.

Taxonomy:
    LexicalError    - malformed token (unterminated string/char/backtick/comment, bad number, unknown character)
    ParseError      - unexpected token or missing keyword/symbol, recovered by resynchronization
    SemanticError   - duplicate declaration, undeclared name, type mismatch, applying a non-function
    EvaluationError - division/modulo by zero, runtime type error, applying a non-function, no matching case
"""

import sys

from termcolor import colored


class GenericException(Exception):
    """Templates an error/warning message. msg may contain '{}' placeholders, which are filled with exprs (the offending
    source snippets). exprs[0] is also used to size the caret underline in ErrorHandler.diagnose.
    """
    stage = "error"

    def __init__(self, msg, exprs=None, line=0, column=0, internal=False):
        if exprs is None:
            exprs = []
        if isinstance(exprs, str):
            exprs = [exprs]

        self.template = msg
        self.exprs = [str(expr) for expr in exprs]
        self.msg = msg.format(*self.exprs)

        self.line = line
        self.column = column
        self.internal = internal

        super().__init__(str(self))

    @property
    def message(self):
        return self.msg

    @classmethod
    def at(cls, node, msg, exprs=None):
        """Builds the error positioned at node (a Token or an AST node)."""
        return cls(msg, exprs, line=node.line, column=node.column)

    def __str__(self):
        if self.line:
            return f"line {self.line}, column {self.column}: {self.msg}"
        return self.msg

    def __eq__(self, other):
        return isinstance(other, type(self)) and str(other) == str(self)

    def __hash__(self):
        return hash(str(self))


class LexicalError(GenericException):
    stage = "lexical error"


class ParseError(GenericException):
    stage = "syntax error"


class SemanticError(GenericException):
    stage = "semantic error"


class SemanticWarning(GenericException):
    stage = "warning"


class EvaluationError(GenericException):
    stage = "runtime error"


class ErrorHandler:
    """Context manager that will silently suppress Python errors and print minicaml errors/warnings instead."""
    ERROR = "red"
    WARNING = "magenta"

    def __init__(self, fatal=True):
        self.fatal = fatal
        self.path = "<in>"
        self.lines = []

    def register_source(self, path, source):
        """Registers the text currently being run so that diagnostics can quote it."""
        self.path = path
        self.lines = source.splitlines()

    def diagnose(self, error, warning=False):
        """Returns the offending source line with the offending part highlighted and underlined."""
        if not 0 < error.line <= len(self.lines):
            return None

        color = ErrorHandler.WARNING if warning else ErrorHandler.ERROR
        line = self.lines[error.line - 1].expandtabs(1)
        start = max(error.column - 1, 0)

        width = 1
        if error.exprs and line.startswith(error.exprs[0], start):
            width = max(len(error.exprs[0]), 1)
        end = min(start + width, max(len(line), start + 1))

        diagnosis = "  " + line[:start]
        diagnosis += colored(line[start:end], color, attrs=["bold"])
        diagnosis += line[end:] + "\n"

        diagnosis += "  " + " " * start
        diagnosis += colored("^" + "~" * (end - start - 1), color, attrs=["bold"])

        return diagnosis

    def display(self, error, warning=False):
        """Prints error (or warning) with its location and, when the source is known, a caret diagnosis."""
        color = ErrorHandler.WARNING if warning else ErrorHandler.ERROR
        msg = error.template.format(*(colored(expr, attrs=["bold"]) for expr in error.exprs))

        location = f"{self.path}:{error.line}:{error.column}: " if error.line else f"{self.path}: "
        error_msg = colored(location, attrs=["bold"])
        if error.internal:
            error_msg += colored("[internal] ", color, attrs=["bold"])
        error_msg += colored(f"{error.stage}: ", color, attrs=["bold"]) + msg
        print(error_msg)

        diagnosis = None if error.internal else self.diagnose(error, warning)
        if diagnosis:
            print(diagnosis)

    def warn(self, warning):
        """Prints a warning. Never fatal."""
        self.display(warning, warning=True)

    def throw(self, error):
        """Prints error, then exits if this handler is fatal."""
        self.display(error)
        if self.fatal:
            sys.exit(1)

    def report(self, errors):
        """Prints every error in errors, then exits if this handler is fatal and there were any."""
        for error in errors:
            self.display(error)
        if errors and self.fatal:
            sys.exit(1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(EvaluationError("maximum recursion depth exceeded"))
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException("unknown error: '{}'", f"{exc_type.__name__}: {exc_val}", internal=True))
            do_exit = True

        return not do_exit
