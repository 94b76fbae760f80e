"""Runs minicaml files or the interactive toplevel. Also uses the error handling context manager. Called from the minicaml
console script.

Python version must be >=3.10, because the AST relies on keyword-only dataclass fields.
"""

import argparse
import sys

from minicaml.lang.error import ErrorHandler
from minicaml.lang.evaluator import Evaluator
from minicaml.lang.session import Session
from minicaml.lang.shell import Shell


def main(argv=None):
    """Runs the minicaml interpreter. Called from the minicaml console script."""
    assert sys.version_info >= (3, 10), "minicaml cannot be run with python < 3.10"

    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(prog="minicaml", description="Interpreter for a small subset of OCaml.")
        parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
        parser.add_argument("--tokens", action="store_true", help="print the token stream of every input")
        parser.add_argument("--ast", action="store_true", help="print the syntax tree of every input")
        parser.add_argument("--recursion-limit", type=int, default=Evaluator.RECURSION_LIMIT, metavar="N",
                            help="maximum depth of nested function applications (default: %(default)s)")
        args = parser.parse_args(argv)

        if args.recursion_limit < 1:
            parser.error("--recursion-limit must be positive")

        options = {"show_tokens": args.tokens, "show_ast": args.ast, "recursion_limit": args.recursion_limit}
        if args.file is not None:
            Session(error_handler, args.file, cmd_line=False, **options).run()
        else:
            Shell(Session(error_handler, Session.SH_FILE, cmd_line=True, **options)).cmdloop()


if __name__ == "__main__":
    main()
