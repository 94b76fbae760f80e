"""Tree-walking evaluator for minicaml. Evaluates the top-level declarations of a (semantically valid) Program in order.

Runtime values are plain Python values, tagged by type:

```
Int      -> int
Float    -> float
String   -> str
Char     -> Char (a one-character str subclass, so it stays distinguishable from String)
Function -> Closure
```

Booleans are Ints: comparisons produce 1 or 0, and any nonzero Int is true. A Closure carries a private copy of the
environment it was created in, so rebinding a name later never changes an existing closure. Applying a closure copies
that environment once more and adds the single parameter binding, which makes `f 1 2` and `(f 1) 2` the same thing:
partial application is just a closure returning a closure.

Each declaration is isolated: a runtime error is recorded in place of that declaration's result and evaluation carries
on with the next one.
"""

import math
import sys
from dataclasses import dataclass, field

from minicaml.lang.error import EvaluationError
from minicaml.syntax.tree import (Apply, Bind, BinaryOp, CharLiteral, ExprStmt, FloatLiteral, FunDecl, Identifier, If,
                                  IntLiteral, Lambda, LetDecl, LetIn, Match, StringLiteral, UnaryOp, Wildcard, curry)


class Char(str):
    """One-character string tagged as a Char value."""


@dataclass(frozen=True)
class Closure:
    param: str
    body: object
    env: dict = field(repr=False, compare=False)

    def __str__(self):
        return "<fun>"


ESCAPES = {"\n": "\\n", "\t": "\\t", "\r": "\\r", "\\": "\\\\"}


def kind_of(value):
    """Runtime kind of value, as reported in result lines."""
    if isinstance(value, Closure):
        return "Function"
    elif isinstance(value, Char):
        return "Char"
    elif isinstance(value, str):
        return "String"
    elif isinstance(value, float):
        return "Float"
    return "Int"


def show(value):
    """OCaml-toplevel-like rendering of value: strings and chars quoted and escaped, closures as <fun>."""
    if isinstance(value, str):
        quote = "'" if isinstance(value, Char) else "\""
        escaped = "".join(ESCAPES.get(char, "\\" + char if char == quote else char) for char in value)
        return quote + escaped + quote
    return str(value)


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Result:
    """Successful evaluation of one declaration."""
    name: str
    kind: str
    value: object

    def __str__(self):
        return f"{self.name} : {self.kind} = {show(self.value)}"


class Evaluator:
    """Evaluates Programs. RECURSION_LIMIT bounds the depth of nested closure applications."""
    RECURSION_LIMIT = 1000
    FRAMES_PER_APPLICATION = 10  # python frames used by one nested closure application, with room for its body

    COMPARISONS = {
        "<": lambda a, b: a < b,
        ">": lambda a, b: a > b,
        "<=": lambda a, b: a <= b,
        ">=": lambda a, b: a >= b,
        "=": lambda a, b: a == b,
        "==": lambda a, b: a == b,
        "<>": lambda a, b: a != b,
    }
    ARITHMETIC = {
        "+": lambda a, b: a + b,
        "-": lambda a, b: a - b,
        "*": lambda a, b: a * b,
        "+.": lambda a, b: float(a) + float(b),
        "-.": lambda a, b: float(a) - float(b),
        "*.": lambda a, b: float(a) * float(b),
    }

    def __init__(self, recursion_limit=None):
        self.recursion_limit = recursion_limit if recursion_limit is not None else Evaluator.RECURSION_LIMIT
        self.depth = 0

        self.rules = {
            LetDecl: self._let_decl,
            FunDecl: self._fun_decl,
            ExprStmt: lambda node, env: self.eval(node.expr, env),
            LetIn: self._let_in,
            If: self._if,
            Match: self._match,
            Lambda: lambda node, env: Closure(node.param, node.body, dict(env)),
            Apply: self._apply,
            BinaryOp: self._binary_op,
            UnaryOp: self._unary_op,
            IntLiteral: lambda node, env: node.value,
            FloatLiteral: lambda node, env: node.value,
            StringLiteral: lambda node, env: node.value,
            CharLiteral: lambda node, env: Char(node.value),
            Identifier: self._identifier,
        }

    def evaluate(self, program, env=None):
        """Evaluates every declaration of program in env, the global environment, which is updated in place (a fresh
        one is used if None). Returns one Result or EvaluationError per declaration, in order.
        """
        env = {} if env is None else env
        if program is None:
            return []

        results = []
        previous_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(previous_limit + self.recursion_limit * Evaluator.FRAMES_PER_APPLICATION)
        try:
            for decl in program.body:
                results.append(self._evaluate_decl(decl, env))
        finally:
            sys.setrecursionlimit(previous_limit)
        return results

    def _evaluate_decl(self, decl, env):
        self.depth = 0
        try:
            value = self.eval(decl, env)
        except EvaluationError as error:
            return error
        except RecursionError:
            return EvaluationError.at(decl, "stack overflow while evaluating '{}'", decl.name)
        except ArithmeticError as error:
            return EvaluationError.at(decl, "arithmetic error while evaluating '{}': {}", [decl.name, error])
        return Result(decl.name, kind_of(value), value)

    def eval(self, node, env):
        """Returns the value of node in env, raising EvaluationError on failure."""
        rule = self.rules.get(type(node))
        if rule is None:
            raise EvaluationError.at(node, "cannot evaluate '{}' nodes", type(node).__name__)
        return rule(node, env)

    def apply(self, closure, argument):
        """Applies closure to argument: evaluates its body in a copy of its captured environment plus the parameter."""
        call_env = dict(closure.env)
        call_env[closure.param] = argument

        self.depth += 1
        try:
            return self.eval(closure.body, call_env)
        finally:
            self.depth -= 1

    def _let_decl(self, node, env):
        env[node.name] = self.eval(node.value, env)
        return env[node.name]

    def _fun_decl(self, node, env):
        first, *rest = node.params
        closure = Closure(first, curry(rest, node.body, node.line, node.column), dict(env))
        if node.recursive:
            closure.env[node.name] = closure
        env[node.name] = closure
        return closure

    def _let_in(self, node, env):
        if node.recursive:
            value = Closure(node.value.param, node.value.body, dict(env))
            value.env[node.name] = value
        else:
            value = self.eval(node.value, env)
        return self.eval(node.body, {**env, node.name: value})

    def _if(self, node, env):
        condition = self.eval(node.condition, env)
        if not is_number(condition):
            raise EvaluationError.at(node.condition, "condition of 'if' must be a boolean (Int), found {}",
                                     kind_of(condition))
        if condition != 0:
            return self.eval(node.then_branch, env)
        return self.eval(node.else_branch, env)

    def _match(self, node, env):
        value = self.eval(node.scrutinee, env)
        for pattern, body in node.cases:
            if isinstance(pattern, Wildcard):
                return self.eval(body, env)
            elif isinstance(pattern, Bind):
                return self.eval(body, {**env, pattern.name: value})
        raise EvaluationError.at(node, "match failure: no case matches {}", show(value))

    def _apply(self, node, env):
        callee = self.eval(node.callee, env)
        if not isinstance(callee, Closure):
            raise EvaluationError.at(node, "applied a non-function value of kind {1}", ["", kind_of(callee)])
        argument = self.eval(node.argument, env)

        if self.depth >= self.recursion_limit:
            raise EvaluationError.at(node, "stack overflow: more than {1} nested applications",
                                     ["", self.recursion_limit])
        return self.apply(callee, argument)

    def _binary_op(self, node, env):
        operator = node.operator
        left = self._number(node.left, env, operator)

        if operator == "&&":
            return int(left != 0 and self._number(node.right, env, operator) != 0)
        elif operator == "||":
            return int(left != 0 or self._number(node.right, env, operator) != 0)

        right = self._number(node.right, env, operator)
        if operator in Evaluator.COMPARISONS:
            return int(Evaluator.COMPARISONS[operator](left, right))
        elif operator in Evaluator.ARITHMETIC:
            return Evaluator.ARITHMETIC[operator](left, right)

        if right == 0:
            raise EvaluationError.at(node, "{} by zero", "modulo" if operator == "mod" else "division")
        elif operator == "/" and isinstance(left, int) and isinstance(right, int):
            return left // right
        elif operator in ("/", "/."):
            return float(left) / float(right)
        elif operator == "mod":  # sign of the dividend, as in OCaml
            if isinstance(left, int) and isinstance(right, int):
                return abs(left) % abs(right) * (-1 if left < 0 else 1)
            return math.fmod(left, right)
        raise EvaluationError.at(node, "unknown operator '{}'", operator)

    def _unary_op(self, node, env):
        operand = self._number(node.operand, env, node.operator)
        return -float(operand) if node.operator == "-." else -operand

    def _identifier(self, node, env):
        try:
            return env[node.name]
        except KeyError:
            raise EvaluationError.at(node, "undefined variable '{}'", node.name)

    def _number(self, node, env, operator):
        value = self.eval(node, env)
        if not is_number(value):
            raise EvaluationError.at(node, "operator '{1}' expects numeric operands, found {2}",
                                     ["", operator, kind_of(value)])
        return value


def evaluate(program, env=None):
    """Convenience wrapper: evaluates program with a fresh Evaluator."""
    return Evaluator().evaluate(program, env)
