"""Semantic analysis for minicaml: scoped name resolution and structural type checking over a parsed Program. The AST is
never modified.

The type model is small: Int, Float, String, Char, Function and Unknown. Booleans are Ints (comparisons
produce Int, `if` conditions must be Int). Parameters and match-bound names carry no annotations, so they are Unknown,
and Unknown is compatible with every other type. A Function type remembers what applying it yields (`returns`), which is
how `add 2 3` comes out as Int when `add = fun a b -> a + b`.

Each top-level declaration is checked fail-fast (the first violation aborts that declaration), but every declaration is
checked, so one run reports at most one error per failing declaration.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field

from minicaml.lang.error import SemanticError, SemanticWarning
from minicaml.syntax.tree import (Apply, Bind, BinaryOp, CharLiteral, ExprStmt, FloatLiteral, FunDecl, Identifier, If,
                                  IntLiteral, Lambda, LetDecl, LetIn, Match, StringLiteral, UnaryOp, Wildcard)


@dataclass(frozen=True)
class Type:
    name: str
    returns: "Type" = field(default=None, compare=False)  # result of applying a Function

    def __str__(self):
        return self.name


INT = Type("Int")
FLOAT = Type("Float")
STRING = Type("String")
CHAR = Type("Char")
UNKNOWN = Type("Unknown")


def function(returns=UNKNOWN):
    return Type("Function", returns)


FUNCTION = function()
NUMERIC = (INT, FLOAT, UNKNOWN)


def compatible(a, b):
    """Whether a and b could be the same type. Unknown is compatible with everything."""
    return a == UNKNOWN or b == UNKNOWN or a == b


def unify(a, b):
    """The more informative of two compatible types."""
    return b if a == UNKNOWN else a


@dataclass
class Analysis:
    """Result of analyzing one Program. type is the type of the last declaration (None if nothing was analyzed),
    bindings the (name, Type) of each successfully analyzed declaration in order.
    """
    type: Type = None
    bindings: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    @property
    def ok(self):
        return not self.errors


class Context:
    """Per-run analysis state: the scope stack (innermost frame last) and the warnings found so far."""

    def __init__(self, seed=None):
        self.frames = [dict(seed)] if seed else []
        self.frames.append({})
        self.warnings = []

    @contextmanager
    def frame(self):
        """Pushes a fresh frame for the duration of the with block, popping it on every exit path."""
        self.frames.append({})
        try:
            yield self.frames[-1]
        finally:
            self.frames.pop()

    def declare(self, name, type_, node):
        """Binds name in the innermost frame. Redeclaring in the same frame is an error, shadowing an outer one is not.
        '_' binds nothing.
        """
        if name == "_":
            return
        if name in self.frames[-1]:
            raise SemanticError.at(node, "'{}' is already declared in this scope", name)
        self.frames[-1][name] = type_

    def lookup(self, name, node):
        for frame in reversed(self.frames):
            if name in frame:
                return frame[name]
        raise SemanticError.at(node, "undeclared variable '{}'", name)

    def warn(self, node, msg, exprs=None):
        self.warnings.append(SemanticWarning.at(node, msg, exprs))


class SemanticAnalyzer:
    """Stateless checker: every call to analyze builds its own Context, so runs never observe each other."""
    ARITHMETIC = ("+", "-", "*", "/", "mod")
    FLOAT_ARITHMETIC = ("+.", "-.", "*.", "/.")
    COMPARISON = ("<", ">", "<=", ">=", "==", "<>", "=")
    LOGICAL = ("&&", "||")

    def __init__(self):
        self.rules = {
            LetDecl: self._let_decl,
            FunDecl: self._fun_decl,
            ExprStmt: self._expr_stmt,
            LetIn: self._let_in,
            If: self._if,
            Match: self._match,
            Lambda: self._lambda,
            Apply: self._apply,
            BinaryOp: self._binary_op,
            UnaryOp: self._unary_op,
            IntLiteral: lambda node, ctx: INT,
            FloatLiteral: lambda node, ctx: FLOAT,
            StringLiteral: lambda node, ctx: STRING,
            CharLiteral: lambda node, ctx: CHAR,
            Identifier: lambda node, ctx: ctx.lookup(node.name, node),
        }

    def analyze(self, program, seed=None):
        """Analyzes every declaration of program. seed maps names bound by earlier runs (e.g. previous shell inputs) to
        their types; they live in an outer frame, so redeclaring them here is shadowing rather than an error.
        """
        analysis = Analysis()
        if program is None:
            return analysis

        ctx = Context(seed)
        for decl in program.body:
            try:
                type_ = self.infer(decl, ctx)
            except SemanticError as error:
                analysis.errors.append(error)
            except RecursionError:
                analysis.errors.append(SemanticError.at(decl, "expression is nested too deeply"))
            else:
                analysis.bindings.append((decl.name, type_))
                analysis.type = type_

        analysis.warnings = ctx.warnings
        return analysis

    def infer(self, node, ctx):
        """Returns the type of node, raising SemanticError at the first violation."""
        rule = self.rules.get(type(node))
        if rule is None:
            raise SemanticError.at(node, "cannot analyze '{}' nodes", type(node).__name__)
        return rule(node, ctx)

    def _let_decl(self, node, ctx):
        type_ = self.infer(node.value, ctx)
        ctx.declare(node.name, type_, node)
        return type_

    def _fun_decl(self, node, ctx):
        with ctx.frame() as own:
            if node.recursive:
                own[node.name] = FUNCTION  # visible to the body only, until the body checks
            with ctx.frame():
                for param in node.params:
                    ctx.declare(param, UNKNOWN, node)
                type_ = self.infer(node.body, ctx)

        for __ in node.params:
            type_ = function(type_)

        ctx.declare(node.name, type_, node)
        return type_

    def _expr_stmt(self, node, ctx):
        return self.infer(node.expr, ctx)

    def _let_in(self, node, ctx):
        with ctx.frame() as frame:
            if node.recursive:
                ctx.declare(node.name, FUNCTION, node)
                frame[node.name] = self.infer(node.value, ctx)
            else:
                value = self.infer(node.value, ctx)
                ctx.declare(node.name, value, node)
            return self.infer(node.body, ctx)

    def _if(self, node, ctx):
        condition = self.infer(node.condition, ctx)
        if not compatible(condition, INT):
            raise SemanticError.at(node.condition, "condition of 'if' must be a boolean (Int), found {1}",
                                   [_snippet(node.condition), condition])

        then_type = self.infer(node.then_branch, ctx)
        else_type = self.infer(node.else_branch, ctx)
        if not compatible(then_type, else_type):
            raise SemanticError.at(node, "type mismatch between 'then' and 'else' branches: {1} vs {2}",
                                   ["if", then_type, else_type])
        return unify(then_type, else_type)

    def _match(self, node, ctx):
        self.infer(node.scrutinee, ctx)

        result = None
        exhausted = None
        for pattern, body in node.cases:
            if exhausted is not None:
                ctx.warn(pattern, "this match case is unused: the case at line {1} already matches everything",
                         ["|", exhausted.line])

            with ctx.frame():
                if isinstance(pattern, Bind):
                    ctx.declare(pattern.name, UNKNOWN, pattern)
                type_ = self.infer(body, ctx)

            if result is None:
                result = type_
            elif not compatible(result, type_):
                raise SemanticError.at(body, "type mismatch between match cases: {1} vs {2}",
                                       ["", result, type_])
            else:
                result = unify(result, type_)

            if exhausted is None and isinstance(pattern, (Wildcard, Bind)):
                exhausted = pattern

        return result

    def _lambda(self, node, ctx):
        with ctx.frame():
            ctx.declare(node.param, UNKNOWN, node)
            return function(self.infer(node.body, ctx))

    def _apply(self, node, ctx):
        callee = self.infer(node.callee, ctx)
        self.infer(node.argument, ctx)

        if callee.name == "Function":
            return callee.returns or UNKNOWN
        elif callee == UNKNOWN:
            return UNKNOWN
        raise SemanticError.at(node, "applied a non-function: this expression has type {1}",
                               [_snippet(node.callee), callee])

    def _binary_op(self, node, ctx):
        left = self.infer(node.left, ctx)
        right = self.infer(node.right, ctx)
        operator = node.operator

        if operator in SemanticAnalyzer.LOGICAL:
            for operand, type_ in ((node.left, left), (node.right, right)):
                if not compatible(type_, INT):
                    raise SemanticError.at(operand, "operator '{1}' expects boolean (Int) operands, found {2}",
                                           [_snippet(operand), operator, type_])
            return INT

        if operator in SemanticAnalyzer.FLOAT_ARITHMETIC:
            for operand, type_ in ((node.left, left), (node.right, right)):
                if not compatible(type_, FLOAT):
                    raise SemanticError.at(operand, "operator '{1}' expects Float operands, found {2}",
                                           [_snippet(operand), operator, type_])
            return FLOAT

        for operand, type_ in ((node.left, left), (node.right, right)):
            if type_ not in NUMERIC:
                raise SemanticError.at(operand, "operator '{1}' expects numeric operands, found {2}",
                                       [_snippet(operand), operator, type_])
        if not compatible(left, right):
            raise SemanticError.at(node, "type mismatch between operands of '{1}': {2} vs {3}",
                                   ["", operator, left, right])

        if operator in SemanticAnalyzer.COMPARISON:
            return INT
        elif operator in SemanticAnalyzer.ARITHMETIC:
            return FLOAT if FLOAT in (left, right) else INT
        raise SemanticError.at(node, "unknown operator '{}'", operator)

    def _unary_op(self, node, ctx):
        operand = self.infer(node.operand, ctx)
        if node.operator == "-.":
            if not compatible(operand, FLOAT):
                raise SemanticError.at(node, "operator '{0}' expects a Float operand, found {1}",
                                       [node.operator, operand])
            return FLOAT
        if operand not in NUMERIC:
            raise SemanticError.at(node, "operator '{0}' expects a numeric operand, found {1}",
                                   [node.operator, operand])
        return INT if operand == UNKNOWN else operand


def _snippet(node):
    """Source-like text of simple nodes, used to size caret underlines in diagnostics."""
    if isinstance(node, Identifier):
        return node.name
    elif isinstance(node, (IntLiteral, FloatLiteral)):
        return str(node.value)
    return ""


def analyze(program, seed=None):
    """Convenience wrapper: analyzes program with a fresh SemanticAnalyzer."""
    return SemanticAnalyzer().analyze(program, seed)
