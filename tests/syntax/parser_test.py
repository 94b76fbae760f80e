import unittest

from minicaml.lang.error import LexicalError, ParseError
from minicaml.syntax.parser import ParseResult, parse
from minicaml.syntax.tree import (Apply, Bind, BinaryOp, ExprStmt, FunDecl, Identifier, If, IntLiteral, Lambda,
                                  LetDecl, LetIn, Match, StringLiteral, UnaryOp, Wildcard)

class ParserTestCase(unittest.TestCase):

    def single(self, source):
        program, errors = parse(source)
        self.assertEqual([], errors, source)
        self.assertEqual(1, len(program.body), source)
        return program.body[0]

    def test_declarations(self):
        a, b = Identifier("a"), Identifier("b")
        cases = {
            "let x = 1;;": LetDecl("x", IntLiteral(1)),
            "let add a b = a + b;;": FunDecl("add", ("a", "b"), BinaryOp("+", a, b)),
            "let rec f n = f n;;": FunDecl("f", ("n",), Apply(Identifier("f"), Identifier("n")), True),
            "let rec f = fun a b -> a;;": FunDecl("f", ("a", "b"), a, True),
            "let s = \"hi\"": LetDecl("s", StringLiteral("hi")),
            "a;;": ExprStmt(a),
            "let x = 1 in x;;": ExprStmt(LetIn("x", IntLiteral(1), Identifier("x"))),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.single(case), case)

    def test_precedence(self):
        one, two, three = IntLiteral(1), IntLiteral(2), IntLiteral(3)
        x, y = Identifier("x"), Identifier("y")
        cases = {
            "1 + 2 * 3": BinaryOp("+", one, BinaryOp("*", two, three)),
            "(1 + 2) * 3": BinaryOp("*", BinaryOp("+", one, two), three),
            "1 - 2 - 3": BinaryOp("-", BinaryOp("-", one, two), three),
            "1 < 2 == 1": BinaryOp("==", BinaryOp("<", one, two), one),
            "x || y && x": BinaryOp("||", x, BinaryOp("&&", y, x)),
            "x or y": BinaryOp("||", x, y),
            "x mod 2 + 1": BinaryOp("+", BinaryOp("mod", x, two), one),
            "-x * 2": BinaryOp("*", UnaryOp("-", x), two),
            "- -x": UnaryOp("-", UnaryOp("-", x)),
            "x + f y": BinaryOp("+", x, Apply(Identifier("f"), y)),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.single(case).expr, case)

    def test_application(self):
        f, x, y = Identifier("f"), Identifier("x"), Identifier("y")
        cases = {
            "f x": Apply(f, x),
            "f x y": Apply(Apply(f, x), y),
            "(f x) y": Apply(Apply(f, x), y),
            "f (x y)": Apply(f, Apply(x, y)),
            "f 1 \"a\"": Apply(Apply(f, IntLiteral(1)), StringLiteral("a")),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.single(case).expr, case)

    def test_keyword_forms(self):
        a, b, x = Identifier("a"), Identifier("b"), Identifier("x")
        cases = {
            "fun a b -> a": Lambda("a", Lambda("b", a)),
            "if a then 1 else 2": If(a, IntLiteral(1), IntLiteral(2)),
            "let f a = a in f 1": LetIn("f", Lambda("a", a), Apply(Identifier("f"), IntLiteral(1))),
            "match x with | _ -> 0 | b -> b": Match(x, ((Wildcard(), IntLiteral(0)), (Bind("b"), b))),
            "if a then fun x -> x else b": If(a, Lambda("x", x), b),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.single(case).expr, case)

    def test_declaration_boundaries(self):
        program, errors = parse("let x = 1 let y = 2 ;; ;; x")
        self.assertEqual([], errors)
        self.assertEqual(["x", "y", "-"], [decl.name for decl in program.body])

    def test_positions(self):
        program, __ = parse("let x = 1;;\n  x + 1;;")
        self.assertEqual((1, 1), (program.body[0].line, program.body[0].column))
        self.assertEqual((2, 3), (program.body[1].line, program.body[1].column))
        self.assertEqual((2, 7), (program.body[1].expr.right.line, program.body[1].expr.right.column))

    def test_errors(self):
        cases = {
            "let = 5;;": "line 1, column 5: expected an identifier after 'let' but found '='",
            "let x 1;;": "line 1, column 7: expected '=' after 'x' but found '1'",
            "(1 + 2": "line 1, column 7: expected ')' to close the '(' at line 1, column 1 but found end of input",
            "if 1 then 2": "line 1, column 12: expected 'else' after the 'then' branch but found end of input",
            "fun -> 1": "line 1, column 5: expected a parameter after 'fun' but found '->'",
            "match x with 1": "line 1, column 14: expected '|' to start a case but found '1'",
            "let f a a = a": "line 1, column 9: parameter 'a' is bound several times",
            "let rec x = 1": "line 1, column 9: 'let rec' can only bind a function, 'x' is not one",
            "1 )": "line 1, column 3: expected ';;' or the end of the declaration but found ')'",
        }
        for case, message in cases.items():
            program, errors = parse(case)
            self.assertEqual([message], [str(error) for error in errors], case)
            self.assertIsInstance(errors[0], ParseError, case)

    def test_lexical_errors(self):
        program, errors = parse("let s = \"abc")
        self.assertIsNone(program)
        self.assertEqual(1, len(errors))
        self.assertIsInstance(errors[0], LexicalError)
        self.assertEqual("line 1, column 9: unterminated string literal: '\"abc'", str(errors[0]))

    def test_recovery(self):
        program, errors = parse("let = 1;;\nlet y = ;;\nlet z = 3;;")
        self.assertEqual(["line 1, column 5: expected an identifier after 'let' but found '='",
                          "line 2, column 9: expected an expression but found ';;'"], [str(error) for error in errors])
        self.assertEqual((LetDecl("z", IntLiteral(3)),), program.body)

    def test_recovery_at_keyword(self):
        program, errors = parse("1 + ) let x = 2")
        self.assertEqual(1, len(errors))
        self.assertEqual((LetDecl("x", IntLiteral(2)),), program.body)

    def test_always_terminates(self):
        should_fail = [") ) ) in in ;; ;; then", "let let let", "match with | | ->", "else", "-> -> ;;", "((((("]
        for case in should_fail:
            program, errors = parse(case)
            self.assertTrue(errors, case)
            self.assertIsNone(program, case)

    def test_empty(self):
        should_pass = ["", ";;", "(* nothing *)", "  \n ;; ;;"]
        for case in should_pass:
            self.assertEqual(ParseResult(None, []), parse(case), case)

    def test_deep_nesting(self):
        program, errors = parse("(" * 5000 + "1" + ")" * 5000)
        self.assertIsNone(program)
        self.assertEqual(["line 1, column 1: expression is nested too deeply"], [str(error) for error in errors])


if __name__ == '__main__':
    unittest.main()
