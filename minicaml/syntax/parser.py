"""Recursive-descent parser for minicaml. Consumes the lexer's token list and produces a Program plus every syntax
diagnostic found along the way.

Grammar, lowest to highest precedence (every binary level is left-associative):

```
<program>     ::= (<decl> ";;"*)* EOF
<decl>        ::= "let" ["rec"] <ident> <ident>* "=" <expr>          ; LetDecl, or FunDecl if there are params
                | "let" ["rec"] <ident> <ident>* "=" <expr> "in" <expr>
                | <expr>                                             ; ExprStmt
<expr>        ::= "let" ["rec"] <ident> <ident>* "=" <expr> "in" <expr>
                | "if" <expr> "then" <expr> "else" <expr>
                | "fun" <ident>+ "->" <expr>                         ; curried into nested Lambdas
                | "match" <expr> "with" ("|" <pattern> "->" <expr>)+
                | <or>
<or>          ::= <and> (("||" | "or") <and>)*
<and>         ::= <equality> ("&&" <equality>)*
<equality>    ::= <comparison> (("==" | "<>" | "=") <comparison>)*
<comparison>  ::= <additive> (("<" | ">" | "<=" | ">=") <additive>)*
<additive>    ::= <mult> (("+" | "-" | "+." | "-.") <mult>)*
<mult>        ::= <unary> (("*" | "/" | "*." | "/." | "mod") <unary>)*
<unary>       ::= ("-" | "-.") <unary> | <application>
<application> ::= <primary> <primary>*                              ; juxtaposition: f x y = (f x) y
<primary>     ::= <int> | <float> | <string> | <char> | <ident> | <backtick> | "(" <expr> ")"
<pattern>     ::= "_" | <ident>
```

Errors are raised as ParseError/LexicalError inside a declaration and collected at the top level, after which the parser
resynchronizes: it skips to just past the next ";;" or to the next keyword that can start an expression, and carries on
with the next declaration.
"""

from dataclasses import dataclass, field

from minicaml.lang.error import LexicalError, ParseError
from minicaml.syntax.lexical import Token, TokenKind, tokenize
from minicaml.syntax.tree import (Apply, Bind, BinaryOp, CharLiteral, ExprStmt, FloatLiteral, FunDecl, Identifier, If,
                                  IntLiteral, Lambda, LetDecl, LetIn, Match, Program, StringLiteral, UnaryOp, Wildcard,
                                  curry)


@dataclass
class ParseResult:
    """program is None only if no declaration could be recovered. Unpacks as (program, errors)."""
    program: Program = None
    errors: list = field(default_factory=list)

    def __iter__(self):
        return iter((self.program, self.errors))


class Parser:
    """Single-use parser over one token list."""
    BINARY_LEVELS = [
        ("||", "or"),
        ("&&",),
        ("==", "<>", "="),
        ("<", ">", "<=", ">="),
        ("+", "-", "+.", "-."),
        ("*", "/", "*.", "/.", "mod"),
    ]
    ALIASES = {"or": "||"}

    PRIMARY_STARTS = (TokenKind.INT, TokenKind.FLOAT, TokenKind.STRING, TokenKind.CHAR, TokenKind.IDENTIFIER,
                      TokenKind.BACKTICK_IDENT)
    SYNC_KEYWORDS = ("let", "if", "fun", "match")

    def __init__(self, tokens):
        self.tokens = [token for token in tokens if token.kind is not TokenKind.COMMENT]
        if not self.tokens or self.tokens[-1].kind is not TokenKind.END_OF_INPUT:
            last = self.tokens[-1] if self.tokens else Token(TokenKind.END_OF_INPUT, "", 1, 1)
            self.tokens.append(Token(TokenKind.END_OF_INPUT, "", last.line, last.column))

        self.current = 0
        self.errors = []

    def parse(self):
        """Parses every top-level declaration. Never raises: all diagnostics end up in the returned ParseResult."""
        body = []
        while not self._at_end():
            if self._accept(TokenKind.DELIMITER, ";;"):
                continue

            start = self.current
            try:
                body.append(self.declaration())
            except (LexicalError, ParseError) as error:
                self.errors.append(error)
                self._synchronize(start)
            except RecursionError:
                self.errors.append(ParseError.at(self.tokens[start], "expression is nested too deeply"))
                self._synchronize(start)

        program = Program(tuple(body), line=body[0].line, column=body[0].column) if body else None
        return ParseResult(program, self.errors)

    def declaration(self):
        """Parses one top-level declaration, including its optional ';;' terminator."""
        token = self._peek()
        if self._accept(TokenKind.KEYWORD, "let"):
            recursive, name, params, value = self._binding(token)
            if self._accept(TokenKind.KEYWORD, "in"):
                let_in = LetIn(name.lexeme, curry(params, value, token.line, token.column), self.expression(),
                               recursive, line=token.line, column=token.column)
                self._end_declaration()
                return ExprStmt(let_in, line=token.line, column=token.column)

            self._end_declaration()
            if params:
                return FunDecl(name.lexeme, tuple(params), value, recursive, line=token.line, column=token.column)
            elif recursive:
                params, body = _uncurry(value)
                return FunDecl(name.lexeme, params, body, True, line=token.line, column=token.column)
            return LetDecl(name.lexeme, value, line=token.line, column=token.column)

        expr = self.expression()
        self._end_declaration()
        return ExprStmt(expr, line=token.line, column=token.column)

    def expression(self):
        """Parses the keyword-dispatched forms, or falls through to the operator precedence chain."""
        token = self._peek()
        if self._accept(TokenKind.KEYWORD, "let"):
            recursive, name, params, value = self._binding(token)
            self._expect(TokenKind.KEYWORD, "in", "'in'")
            body = self.expression()
            value = curry(params, value, token.line, token.column)
            return LetIn(name.lexeme, value, body, recursive, line=token.line, column=token.column)

        elif self._accept(TokenKind.KEYWORD, "if"):
            condition = self.expression()
            self._expect(TokenKind.KEYWORD, "then", "'then' after the condition")
            then_branch = self.expression()
            self._expect(TokenKind.KEYWORD, "else", "'else' after the 'then' branch")
            else_branch = self.expression()
            return If(condition, then_branch, else_branch, line=token.line, column=token.column)

        elif self._accept(TokenKind.KEYWORD, "fun"):
            params = self._params()
            if not params:
                self._fail("a parameter after 'fun'")
            self._expect(TokenKind.OPERATOR, "->", "'->' after the parameters")
            return curry(params, self.expression(), token.line, token.column)

        elif self._accept(TokenKind.KEYWORD, "match"):
            scrutinee = self.expression()
            self._expect(TokenKind.KEYWORD, "with", "'with' after the matched expression")

            cases = []
            while not cases or self._check(TokenKind.DELIMITER, "|"):
                self._expect(TokenKind.DELIMITER, "|", "'|' to start a case")
                pattern = self._pattern()
                self._expect(TokenKind.OPERATOR, "->", "'->' after the pattern")
                cases.append((pattern, self.expression()))

            return Match(scrutinee, tuple(cases), line=token.line, column=token.column)

        return self._binary(0)

    def _binding(self, let_token):
        """Parses `["rec"] name params "="  value` after a 'let'."""
        recursive = self._accept(TokenKind.KEYWORD, "rec")
        if not self._check(TokenKind.IDENTIFIER):
            self._fail("an identifier after '{}'".format("let rec" if recursive else let_token.lexeme))
        name = self._advance()
        params = self._params()
        self._expect(TokenKind.OPERATOR, "=", "'=' after '{}'".format(" ".join([name.lexeme] + params)))

        value = self.expression()
        if recursive and not params and not isinstance(value, Lambda):
            raise ParseError.at(name, "'let rec' can only bind a function, '{}' is not one", name.lexeme)
        return recursive, name, params, value

    def _params(self):
        params = []
        while self._check(TokenKind.IDENTIFIER):
            token = self._advance()
            if token.lexeme in params and token.lexeme != "_":
                raise ParseError.at(token, "parameter '{}' is bound several times", token.lexeme)
            params.append(token.lexeme)
        return params

    def _pattern(self):
        token = self._peek()
        if self._accept(TokenKind.IDENTIFIER, "_"):
            return Wildcard(line=token.line, column=token.column)
        elif self._accept(TokenKind.IDENTIFIER):
            return Bind(token.lexeme, line=token.line, column=token.column)
        self._fail("a pattern ('_' or an identifier)")

    def _binary(self, level):
        if level == len(Parser.BINARY_LEVELS):
            return self._unary()

        left = self._binary(level + 1)
        while self._peek().kind in (TokenKind.OPERATOR, TokenKind.KEYWORD) and \
                self._peek().lexeme in Parser.BINARY_LEVELS[level]:
            operator = self._advance().lexeme
            right = self._binary(level + 1)
            left = BinaryOp(Parser.ALIASES.get(operator, operator), left, right, line=left.line, column=left.column)
        return left

    def _unary(self):
        token = self._peek()
        if self._accept(TokenKind.OPERATOR, "-") or self._accept(TokenKind.OPERATOR, "-."):
            return UnaryOp(token.lexeme, self._unary(), line=token.line, column=token.column)
        return self._application()

    def _application(self):
        expr = self._primary()
        while self._starts_primary():
            expr = Apply(expr, self._primary(), line=expr.line, column=expr.column)
        return expr

    def _primary(self):
        token = self._peek()
        position = {"line": token.line, "column": token.column}

        if self._accept(TokenKind.INT):
            try:
                return IntLiteral(int(token.lexeme), **position)
            except ValueError:
                raise ParseError.at(token, "integer literal '{}' is too large", token.lexeme)
        elif self._accept(TokenKind.FLOAT):
            return FloatLiteral(float(token.lexeme), **position)
        elif self._accept(TokenKind.STRING):
            return StringLiteral(token.lexeme, **position)
        elif self._accept(TokenKind.CHAR):
            return CharLiteral(token.lexeme, **position)
        elif self._accept(TokenKind.IDENTIFIER) or self._accept(TokenKind.BACKTICK_IDENT):
            return Identifier(token.lexeme, **position)
        elif self._accept(TokenKind.DELIMITER, "("):
            expr = self.expression()
            self._expect(TokenKind.DELIMITER, ")", "')' to close the '(' at line {}, column {}".format(
                token.line, token.column))
            return expr

        self._fail("an expression")

    def _starts_primary(self):
        token = self._peek()
        return token.kind in Parser.PRIMARY_STARTS or token.is_(TokenKind.DELIMITER, "(")

    def _end_declaration(self):
        """A declaration must be followed by ';;', the end of input, or the next 'let'."""
        if self._accept(TokenKind.DELIMITER, ";;"):
            while self._accept(TokenKind.DELIMITER, ";;"):
                pass
        elif not (self._at_end() or self._check(TokenKind.KEYWORD, "let")):
            self._fail("';;' or the end of the declaration")

    def _synchronize(self, start):
        """Skips tokens until just past a ';;' or up to the next keyword that can start an expression. Always moves
        past the token the failed declaration started at, so repeated failures still make progress.
        """
        if self.current == start:
            self._advance()

        while not self._at_end():
            if self.current > 0 and self.tokens[self.current - 1].is_(TokenKind.DELIMITER, ";;"):
                return
            elif self._peek().kind is TokenKind.KEYWORD and self._peek().lexeme in Parser.SYNC_KEYWORDS:
                return
            self._advance()

    def _fail(self, expected):
        """Raises the diagnostic for the current token. An Error token is reported as the lexical error it is."""
        token = self._peek()
        if token.kind is TokenKind.ERROR:
            raise LexicalError.at(token, "{1}: '{0}'", [token.lexeme, token.message])
        elif token.kind is TokenKind.END_OF_INPUT:
            raise ParseError.at(token, "expected {1} but found end of input", ["", expected])
        raise ParseError.at(token, "expected {1} but found '{0}'", [token.lexeme, expected])

    def _expect(self, kind, lexeme, expected):
        if self._check(kind, lexeme):
            return self._advance()
        self._fail(expected)

    def _accept(self, kind, lexeme=None):
        if self._check(kind, lexeme):
            self._advance()
            return True
        return False

    def _check(self, kind, lexeme=None):
        return self._peek().is_(kind, lexeme)

    def _advance(self):
        token = self._peek()
        if not self._at_end():
            self.current += 1
        return token

    def _peek(self):
        return self.tokens[self.current]

    def _at_end(self):
        return self._peek().kind is TokenKind.END_OF_INPUT


def _uncurry(expr):
    """Inverse of curry: Lambda(a, Lambda(b, e)) -> ((a, b), e)."""
    params = []
    while isinstance(expr, Lambda):
        params.append(expr.param)
        expr = expr.body
    return tuple(params), expr


def parse(source):
    """Tokenizes and parses source (or an already tokenized list) with a fresh Parser."""
    tokens = tokenize(source) if isinstance(source, str) else source
    return Parser(tokens).parse()
