"""Handles interactive/command-line mode for the minicaml interpreter. Uses cmd as backend."""

import cmd


class Shell(cmd.Cmd):
    """minicaml toplevel shell. An input runs once it ends with ';;' and may span several lines."""
    intro = "minicaml toplevel :: Python backend\nType 'help' for more information, 'exit' or Ctrl-D to quit."
    prompt = "# "
    secondary_prompt = "  "  # used for line continuations
    _tmp_prompt = "# "       # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess

        self._tmp_line = ""

    def default(self, line):
        """Executes arbitrary minicaml input."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            source, add_to_prev = self.sess.preprocess_line(line, self._tmp_line)

            if add_to_prev:
                self._tmp_line = source
                self.prompt = self.secondary_prompt
            else:
                self._tmp_line = ""
                self.prompt = self._tmp_prompt

                if source:
                    self.sess.run(source)

    def onecmd(self, line):
        """Continuation lines and inputs ending with ';;' are never commands, even if they start with 'exit'."""
        if self._tmp_line or line.rstrip().endswith(";;"):
            return self.default(line)
        return super().onecmd(line)

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        print("Welcome to the minicaml toplevel!\n\n"
              "minicaml is a small subset of OCaml: let bindings, functions (curried, with partial \n"
              "application), let rec, if/then/else, match with '_' and name patterns, and Int, Float, \n"
              "String and Char values. Booleans are Ints: comparisons give 1 or 0.\n\n"
              "End every input with ';;'. Try 'let add a b = a + b;;', then 'add 2 3;;'. Bindings \n"
              "stay available in later inputs and may be redefined.")

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return ""

    def do_EOF(self, arg):
        """Exits interpreter."""
        print()
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        return True
