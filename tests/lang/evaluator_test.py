import unittest

from minicaml.lang.error import EvaluationError
from minicaml.lang.evaluator import Char, Closure, Evaluator, Result, evaluate, kind_of, show
from minicaml.syntax.parser import parse

class EvaluatorTestCase(unittest.TestCase):

    def evaluate(self, source, evaluator=None, env=None):
        program, errors = parse(source)
        self.assertEqual([], errors, source)
        return (evaluator or Evaluator()).evaluate(program, env)

    def value(self, source):
        results = self.evaluate(source)
        self.assertIsInstance(results[-1], Result, source)
        return results[-1].value

    def test_arithmetic(self):
        cases = {
            "1 + 2 * 3": 7,
            "10 / 3": 3,
            "-7 / 2": -4,
            "7 / 2.0": 3.5,
            "7 mod 3": 1,
            "-7 mod 2": -1,
            "7 mod -2": 1,
            "7.5 mod 2.0": 1.5,
            "1 + 2.5": 3.5,
            "1.5 +. 2": 3.5,
            "3 *. 2": 6.0,
            "1.0 /. 4.0": 0.25,
            "-(3)": -3,
            "-. 2": -2.0,
        }
        for case, expected in cases.items():
            value = self.value(case)
            self.assertEqual(expected, value, case)
            self.assertIs(type(expected), type(value), case)

    def test_booleans_are_ints(self):
        cases = {
            "3 > 2": 1,
            "2 = 3": 0,
            "2 == 2": 1,
            "1 <> 2": 1,
            "2 <= 1": 0,
            "1.5 >= 1.5": 1,
            "1 && 0": 0,
            "0 || 2": 1,
            "if 2 then 10 else 20": 10,
            "if 1 > 2 then 10 else 20": 20,
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.value(case), case)

    def test_short_circuit(self):
        should_pass = ["0 && (1 / 0)", "1 || (1 / 0)"]
        for case in should_pass:
            self.assertIsInstance(self.evaluate(case)[0], Result, case)

    def test_division_by_zero(self):
        cases = {
            "5 / 0": "line 1, column 1: division by zero",
            "5 mod 0": "line 1, column 1: modulo by zero",
            "1.0 /. 0.0": "line 1, column 1: division by zero",
        }
        for case, message in cases.items():
            results = self.evaluate(case)
            self.assertIsInstance(results[0], EvaluationError, case)
            self.assertEqual(message, str(results[0]), case)

    def test_errors_do_not_stop_evaluation(self):
        results = self.evaluate("let a = 1;;\nlet b = 5 / 0;;\nlet c = a + 1;;")
        self.assertEqual(["a : Int = 1", "line 2, column 9: division by zero", "c : Int = 2"],
                         [str(result) for result in results])

    def test_runtime_type_errors(self):
        cases = {
            "\"a\" + 1": "line 1, column 1: operator '+' expects numeric operands, found String",
            "let f x = x 1;; f 2": "line 1, column 11: applied a non-function value of kind Int",
            "if \"a\" then 1 else 2": "line 1, column 4: condition of 'if' must be a boolean (Int), found String",
            "x": "line 1, column 1: undefined variable 'x'",
        }
        for case, message in cases.items():
            results = self.evaluate(case)
            self.assertIsInstance(results[-1], EvaluationError, case)
            self.assertEqual(message, str(results[-1]), case)

    def test_currying(self):
        results = self.evaluate("let add3 a b c = a + b + c;;\nlet r1 = add3 1 2 3;;\nlet r2 = (add3 1) 2 3;;\n"
                                "let add1 = add3 1;;\nlet r3 = add1 2 3;;")
        self.assertEqual(["add3 : Function = <fun>", "r1 : Int = 6", "r2 : Int = 6", "add1 : Function = <fun>",
                          "r3 : Int = 6"], [str(result) for result in results])

    def test_lambda(self):
        cases = {
            "(fun x -> x * 2) 21": 42,
            "let twice f x = f (f x) in twice (fun y -> y + 3) 0": 6,
            "let compose = fun f g x -> f (g x);; compose (fun a -> a * 2) (fun b -> b + 1) 4": 10,
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.value(case), case)

    def test_recursion(self):
        cases = {
            "let rec fact n = if n <= 1 then 1 else n * fact (n - 1);; fact 10": 3628800,
            "let rec fib = fun n -> if n < 2 then n else fib (n - 1) + fib (n - 2);; fib 15": 610,
            "let rec even n = if n == 0 then 1 else if n == 1 then 0 else even (n - 2) in even 10": 1,
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.value(case), case)

    def test_closure_snapshot(self):
        results = self.evaluate("let x = 1;;\nlet f y = x + y;;\nlet x = 100;;\nf 1;;")
        self.assertEqual(2, results[-1].value)

    def test_match(self):
        cases = {
            "match 5 with | n -> n * 2": 10,
            "match 5 with | _ -> 0 | n -> n": 0,
            "let n = 1;; match 7 with | n -> n + 1": 8,
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.value(case), case)

    def test_scoping(self):
        results = self.evaluate("let x = 1;;\nlet y = let x = 5 in x * 2;;\nx;;")
        self.assertEqual(["x : Int = 1", "y : Int = 10", "- : Int = 1"], [str(result) for result in results])

    def test_stack_overflow(self):
        results = self.evaluate("let rec loop n = loop n;;\nloop 1;;\nlet after = 1;;", Evaluator(recursion_limit=50))
        self.assertIsInstance(results[1], EvaluationError)
        self.assertEqual("line 1, column 18: stack overflow: more than 50 nested applications", str(results[1]))
        self.assertEqual("after : Int = 1", str(results[2]))

    def test_env(self):
        env = {"seeded": 41}
        self.evaluate("let answer = seeded + 1;;", env=env)
        self.assertEqual({"seeded": 41, "answer": 42}, env)

    def test_deterministic(self):
        program, __ = parse("let add a b = a + b;;\nlet r = add 2 3;;\nlet s = 10 / 0;;\n\"done\";;")
        first = [str(result) for result in evaluate(program)]
        second = [str(result) for result in evaluate(program)]
        self.assertEqual(first, second)

    def test_empty(self):
        self.assertEqual([], evaluate(None))


class ValueTestCase(unittest.TestCase):

    def test_show(self):
        cases = {
            42: "42",
            -1.5: "-1.5",
            "hi\n": "\"hi\\n\"",
            "say \"x\"": "\"say \\\"x\\\"\"",
            Char("a"): "'a'",
            Char("'"): "'\\''",
            Closure("x", None, {}): "<fun>",
        }
        for value, expected in cases.items():
            self.assertEqual(expected, show(value), value)

    def test_kind_of(self):
        cases = [(1, "Int"), (1.0, "Float"), ("s", "String"), (Char("c"), "Char"), (Closure("x", None, {}), "Function")]
        for value, expected in cases:
            self.assertEqual(expected, kind_of(value), value)

    def test_result(self):
        self.assertEqual("s : String = \"a\\tb\"", str(Result("s", "String", "a\tb")))
        self.assertEqual("- : Char = 'z'", str(Result("-", "Char", Char("z"))))


if __name__ == '__main__':
    unittest.main()
