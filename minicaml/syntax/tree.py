"""minicaml abstract syntax tree. The node set is closed: every stage dispatches over exactly these classes, so adding a
node means teaching the parser, the analyzer and the evaluator about it.

```
<program>  ::= <decl>*
<decl>     ::= LetDecl(name, value) | FunDecl(name, params, body, recursive) | ExprStmt(expr)
<expr>     ::= LetIn(name, value, body) | If(condition, then_branch, else_branch) | Match(scrutinee, cases)
             | Lambda(param, body)       ; single parameter, `fun a b -> e` is Lambda(a, Lambda(b, e))
             | Apply(callee, argument)   ; single argument, `f x y` is Apply(Apply(f, x), y)
             | BinaryOp(operator, left, right) | UnaryOp(operator, operand)
             | IntLiteral | FloatLiteral | StringLiteral | CharLiteral | Identifier(name)
<case>     ::= (<pattern>, <expr>)
<pattern>  ::= Wildcard | Bind(name)
```

Nodes are frozen and their sequences are tuples, so a tree cannot change once built. Positions are excluded from
equality: two trees that differ only in where they were written compare equal.
"""

from dataclasses import dataclass, field, fields


@dataclass(frozen=True)
class Node:
    """Superclass of every AST node. line/column are the 1-based position of the node's first token."""
    line: int = field(default=0, kw_only=True, compare=False)
    column: int = field(default=0, kw_only=True, compare=False)

    @property
    def _cls(self):
        return type(self).__name__

    def attributes(self):
        """Yields (name, value) for every non-position field."""
        for node_field in fields(self):
            if node_field.name not in ("line", "column"):
                yield node_field.name, getattr(self, node_field.name)

    def display(self, indents=0):
        """Recursively displays the tree in a readable format.

        Format:
        <Node>(<attr>=<value>, nodes=[
            <Node>(<attr>=<value>, nodes=[
                ...
                <Node>(<attr>=<value>)  # <-- if the node has no children
            ])
        ])
        """
        attrs, nodes = [], []
        for name, value in self.attributes():
            children = _children(value)
            if children:
                nodes += children
            else:
                attrs.append(f"{name}={value!r}")

        result = f"{'    ' * indents}{self._cls}({', '.join(attrs)}"
        if nodes:
            result += ", nodes=[" if attrs else "nodes=["
            for node in nodes:
                result += "\n" + node.display(indents + 1) + ","
            result = result[:-1] + f"\n{'    ' * indents}]"
        return result + ")"


def _children(value):
    if isinstance(value, Node):
        return [value]
    elif isinstance(value, tuple):
        return [child for item in value for child in _children(item)]
    return []


# patterns

@dataclass(frozen=True)
class Wildcard(Node):
    pass


@dataclass(frozen=True)
class Bind(Node):
    name: str


# declarations

@dataclass(frozen=True)
class Program(Node):
    body: tuple = ()


@dataclass(frozen=True)
class LetDecl(Node):
    name: str
    value: Node


@dataclass(frozen=True)
class FunDecl(Node):
    name: str
    params: tuple
    body: Node
    recursive: bool = False


@dataclass(frozen=True)
class ExprStmt(Node):
    """Top-level expression. Reported under the name '-', as the OCaml toplevel does."""
    expr: Node

    name = "-"


# expressions

@dataclass(frozen=True)
class LetIn(Node):
    name: str
    value: Node
    body: Node
    recursive: bool = False


@dataclass(frozen=True)
class If(Node):
    condition: Node
    then_branch: Node
    else_branch: Node


@dataclass(frozen=True)
class Match(Node):
    scrutinee: Node
    cases: tuple  # of (pattern, expr)


@dataclass(frozen=True)
class Lambda(Node):
    param: str
    body: Node


@dataclass(frozen=True)
class Apply(Node):
    callee: Node
    argument: Node


@dataclass(frozen=True)
class BinaryOp(Node):
    operator: str
    left: Node
    right: Node


@dataclass(frozen=True)
class UnaryOp(Node):
    operator: str
    operand: Node


@dataclass(frozen=True)
class IntLiteral(Node):
    value: int


@dataclass(frozen=True)
class FloatLiteral(Node):
    value: float


@dataclass(frozen=True)
class StringLiteral(Node):
    value: str


@dataclass(frozen=True)
class CharLiteral(Node):
    value: str


@dataclass(frozen=True)
class Identifier(Node):
    name: str


LITERALS = (IntLiteral, FloatLiteral, StringLiteral, CharLiteral)


def curry(params, body, line=0, column=0):
    """Right-folds params into nested single-parameter Lambdas: (a, b), e -> Lambda(a, Lambda(b, e))."""
    for param in reversed(params):
        body = Lambda(param, body, line=line, column=column)
    return body
