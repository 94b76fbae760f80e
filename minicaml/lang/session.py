"""Session control for minicaml. Drives the pipeline (tokens -> Program -> Analysis -> results), either over a whole file
or, in command-line mode, over one shell input at a time.
"""

import sys
from dataclasses import dataclass, field

from minicaml.lang.error import EvaluationError, GenericException
from minicaml.lang.evaluator import Evaluator
from minicaml.lang.semantic import Analysis, SemanticAnalyzer
from minicaml.syntax.lexical import TokenKind, tokenize
from minicaml.syntax.parser import Parser


@dataclass
class Run:
    """Everything one pass of the pipeline produced. A stage that reported errors stops the pipeline, so later fields
    keep their defaults.
    """
    tokens: list = field(default_factory=list)
    program: object = None
    syntax_errors: list = field(default_factory=list)
    analysis: Analysis = None
    results: list = field(default_factory=list)  # of Result | EvaluationError
    env: dict = field(default_factory=dict)       # global environment after evaluation

    @property
    def runtime_errors(self):
        return [result for result in self.results if isinstance(result, EvaluationError)]

    @property
    def errors(self):
        semantic_errors = self.analysis.errors if self.analysis else []
        return self.syntax_errors + semantic_errors + self.runtime_errors

    @property
    def ok(self):
        return not self.errors


def run_pipeline(source, types=None, values=None, recursion_limit=None):
    """Runs source through every stage. types/values seed the analyzer and the global environment with the bindings of
    earlier runs; neither is modified. Never raises for bad input.
    """
    run = Run(tokens=tokenize(source))

    run.program, run.syntax_errors = Parser(run.tokens).parse()
    if run.syntax_errors or run.program is None:
        return run

    run.analysis = SemanticAnalyzer().analyze(run.program, types)
    if run.analysis.errors:
        return run

    run.env = dict(values or {})
    run.results = Evaluator(recursion_limit).evaluate(run.program, run.env)
    return run


class Session:
    """Governs a minicaml session, keeping the bindings of successful runs when in command-line mode."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path, cmd_line, show_tokens=False, show_ast=False, recursion_limit=None):
        self.error_handler = error_handler

        self.path = path                        # used for error messages
        self.cmd_line = cmd_line                # whether or not in command-line mode
        self.show_tokens = show_tokens          # print the token stream before parsing
        self.show_ast = show_ast                # print the tree before analysis
        self.recursion_limit = recursion_limit

        self.source = ""
        self.types = {}   # name: Type of every binding made by previous runs
        self.values = {}  # name: runtime value of every binding made by previous runs

        if self.cmd_line:
            self.error_handler.fatal = False

        if path != Session.SH_FILE:
            try:
                with open(path, "r") as file:
                    self.source = file.read()
            except OSError:
                raise GenericException("'{}' could not be opened", path)

        elif not cmd_line:
            raise GenericException("'<in>' is a reserved filename")

    @staticmethod
    def preprocess_line(line, pending=""):
        """Appends line to the pending input. Returns the updated input and whether it still needs more lines, i.e. it
        does not end with ';;' yet. Blank input never needs more.
        """
        source = pending + line + "\n" if pending or line.strip() else ""
        return source, bool(source.strip()) and not source.rstrip().endswith(";;")

    def run(self, source=None):
        """Runs source (the file's contents if None), printing diagnostics through the error handler and one line per
        result. In command-line mode, bindings of declarations that evaluated successfully become visible to later
        runs. Returns the Run.
        """
        source = self.source if source is None else source
        self.error_handler.register_source(self.path, source)

        run = run_pipeline(source, self.types, self.values, self.recursion_limit)

        if self.show_tokens:
            for token in run.tokens:
                if token.kind is not TokenKind.END_OF_INPUT:
                    print(token)
        if self.show_ast and run.program is not None:
            print(run.program.display())

        if run.syntax_errors:
            self.error_handler.report(run.syntax_errors)
            return run

        if run.analysis is not None:
            for warning in run.analysis.warnings:
                self.error_handler.warn(warning)
            if run.analysis.errors:
                self.error_handler.report(run.analysis.errors)
                return run

        for result in run.results:
            if isinstance(result, EvaluationError):
                self.error_handler.display(result)
            else:
                print(result)

        if self.cmd_line and run.analysis is not None:
            evaluated = {result.name for result in run.results if not isinstance(result, EvaluationError)}
            self.types.update((name, type_) for name, type_ in run.analysis.bindings
                              if name in evaluated and name in run.env)
            self.values.update((name, value) for name, value in run.env.items() if name in evaluated)

        if run.runtime_errors and self.error_handler.fatal:
            sys.exit(1)
        return run
