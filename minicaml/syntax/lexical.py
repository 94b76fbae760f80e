"""Lexical analysis for minicaml: turns raw source text into a flat, positioned token list.

Token classes (first matching rule wins):

```
<comment>   ::= "(*" ... "*)"                       ; nested, depth counted
<string>    ::= '"' (<char> | <escape>)* '"'        ; no raw newlines
<char>      ::= "'" (<char> | <escape>) "'"
<backtick>  ::= "`" <anything but `>+ "`"
<number>    ::= <digit>+ ["." <digit>+] [("e"|"E") ["+"|"-"] <digit>+]
<ident>     ::= (<letter> | "_") (<letter> | <digit> | "_" | "'")*
<symbol>    ::= longest match in SYMBOLS
<escape>    ::= "\\" ("n" | "t" | "r" | "\\" | '"' | "'" | <any>)   ; unknown escapes pass through literally
```

Anything malformed becomes a single Error token covering the malformed span, and scanning resumes right after it. The
one exception is an unterminated block comment: it swallows the rest of the input, so the stream halts after its Error
token. Every loop iteration consumes at least one character, so tokenizing always terminates.
"""

from dataclasses import dataclass, field
from enum import Enum


class TokenKind(Enum):
    KEYWORD = "Keyword"
    IDENTIFIER = "Identifier"
    BACKTICK_IDENT = "BacktickIdent"
    INT = "Int"
    FLOAT = "Float"
    STRING = "String"
    CHAR = "Char"
    OPERATOR = "Operator"
    DELIMITER = "Delimiter"
    COMMENT = "Comment"
    ERROR = "Error"
    END_OF_INPUT = "EndOfInput"

    def __str__(self):
        return self.value


KEYWORDS = frozenset([
    "let", "in", "match", "with", "fun", "type", "if", "then", "else", "rec", "module", "open", "and", "or",
    "exception", "try"
])
OPERATOR_WORDS = frozenset(["mod"])  # infix operators spelled like identifiers

# ordered longest-first so that no symbol is shadowed by one of its prefixes
SYMBOLS = [
    ";;", "->", ":=", "::", "==", "<>", "<=", ">=", "&&", "||", "|>", "@@", "+.", "-.", "*.", "/.",
    "+", "-", "*", "/", "=", "<", ">", "|", ":", ";", ".", ",", "(", ")", "[", "]", "{", "}"
]
DELIMITERS = frozenset([";;", ";", ",", ":", "|", "(", ")", "[", "]", "{", "}"])

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "\"": "\"", "'": "'"}


def is_digit(char):
    """ASCII digits only: str.isdigit also accepts superscripts and other scripts' digits."""
    return len(char) == 1 and "0" <= char <= "9"


@dataclass(frozen=True)
class Token:
    """A classified lexeme and the 1-based position of its first character. message explains Error tokens."""
    kind: TokenKind
    lexeme: str
    line: int
    column: int
    message: str = field(default=None, compare=False)

    def is_(self, kind, lexeme=None):
        """Whether or not this token is of kind (and, if given, spelled lexeme)."""
        return self.kind is kind and (lexeme is None or self.lexeme == lexeme)

    def __str__(self):
        return f"{self.kind} '{self.lexeme}' ({self.line}:{self.column})"


class Lexer:
    """Single-use scanner over one source string."""

    def __init__(self, source):
        self.source = source
        self.index = 0
        self.line = 1
        self.column = 1

    def tokenize(self):
        """Returns the full token list, always terminated by an EndOfInput token."""
        return list(self.tokens())

    def tokens(self):
        """Lazily yields tokens. See module docstring for the classification rules."""
        while True:
            self._skip_whitespace()
            if self._at_end():
                break

            char = self._peek()
            if self.source.startswith("(*", self.index):
                token = self._read_comment()
                yield token
                if token.kind is TokenKind.ERROR:  # unterminated comment halts the stream
                    break
            elif char == "\"":
                yield self._read_string()
            elif char == "'":
                yield self._read_char()
            elif char == "`":
                yield self._read_backtick()
            elif is_digit(char):
                yield self._read_number()
            elif char.isalpha() or char == "_":
                yield self._read_identifier()
            else:
                yield self._read_symbol()

        yield Token(TokenKind.END_OF_INPUT, "", self.line, self.column)

    def _read_comment(self):
        line, column, start = self.line, self.column, self.index
        self._advance(2)

        depth = 1
        while not self._at_end():
            if self.source.startswith("(*", self.index):
                depth += 1
                self._advance(2)
            elif self.source.startswith("*)", self.index):
                depth -= 1
                self._advance(2)
                if depth == 0:
                    return Token(TokenKind.COMMENT, self.source[start:self.index], line, column)
            else:
                self._advance()

        return self._error(start, line, column, "unterminated comment")

    def _read_string(self):
        line, column, start = self.line, self.column, self.index
        self._advance()

        chars = []
        while not self._at_end():
            char = self._peek()
            if char == "\"":
                self._advance()
                return Token(TokenKind.STRING, "".join(chars), line, column)
            elif char == "\n":
                break
            elif char == "\\":
                self._advance()
                if self._at_end():
                    break
                chars.append(ESCAPES.get(self._peek(), self._peek()))
            else:
                chars.append(char)
            self._advance()

        return self._error(start, line, column, "unterminated string literal")

    def _read_char(self):
        line, column, start = self.line, self.column, self.index
        self._advance()

        if self._at_end() or self._peek() == "\n":
            return self._error(start, line, column, "unterminated character literal")
        elif self._peek() == "'":
            self._advance()
            return self._error(start, line, column, "empty character literal")

        char = self._peek()
        self._advance()
        if char == "\\":
            if self._at_end():
                return self._error(start, line, column, "unterminated character literal")
            char = ESCAPES.get(self._peek(), self._peek())
            self._advance()

        if self._at_end() or self._peek() != "'":
            return self._error(start, line, column, "unterminated character literal")

        self._advance()
        return Token(TokenKind.CHAR, char, line, column)

    def _read_backtick(self):
        line, column, start = self.line, self.column, self.index
        self._advance()

        while not self._at_end() and self._peek() != "`":
            self._advance()

        if self._at_end():
            return self._error(start, line, column, "unterminated backtick identifier")

        self._advance()
        if self.index - start == 2:
            return self._error(start, line, column, "empty backtick identifier")
        return Token(TokenKind.BACKTICK_IDENT, self.source[start + 1:self.index - 1], line, column)

    def _read_number(self):
        line, column, start = self.line, self.column, self.index
        self._read_digits()

        kind = TokenKind.INT
        if self._peek() == ".":
            kind = TokenKind.FLOAT
            self._advance()
            if not is_digit(self._peek()):
                return self._error(start, line, column, "expected a digit after '.'")
            self._read_digits()

        if self._peek() in ("e", "E"):
            kind = TokenKind.FLOAT
            self._advance()
            if self._peek() in ("+", "-"):
                self._advance()
            if not is_digit(self._peek()):
                return self._error(start, line, column, "expected a digit in exponent")
            self._read_digits()

        return Token(kind, self.source[start:self.index], line, column)

    def _read_identifier(self):
        line, column, start = self.line, self.column, self.index
        while not self._at_end() and (self._peek().isalpha() or is_digit(self._peek()) or self._peek() in ("_", "'")):
            self._advance()

        word = self.source[start:self.index]
        if word in KEYWORDS:
            return Token(TokenKind.KEYWORD, word, line, column)
        elif word in OPERATOR_WORDS:
            return Token(TokenKind.OPERATOR, word, line, column)
        return Token(TokenKind.IDENTIFIER, word, line, column)

    def _read_symbol(self):
        line, column, start = self.line, self.column, self.index
        for symbol in SYMBOLS:
            if self.source.startswith(symbol, self.index):
                self._advance(len(symbol))
                kind = TokenKind.DELIMITER if symbol in DELIMITERS else TokenKind.OPERATOR
                return Token(kind, symbol, line, column)

        self._advance()
        return self._error(start, line, column, "unexpected character '{}'".format(self.source[start]))

    def _read_digits(self):
        while is_digit(self._peek()):
            self._advance()

    def _error(self, start, line, column, message):
        return Token(TokenKind.ERROR, self.source[start:self.index], line, column, message)

    def _skip_whitespace(self):
        while not self._at_end() and self._peek().isspace():
            self._advance()

    def _peek(self):
        """Current character, or "" at end of input."""
        return self.source[self.index] if self.index < len(self.source) else ""

    def _advance(self, count=1):
        for __ in range(count):
            if self._at_end():
                return
            if self.source[self.index] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.index += 1

    def _at_end(self):
        return self.index >= len(self.source)


def tokenize(source):
    """Convenience wrapper: tokenizes source with a fresh Lexer."""
    return Lexer(source).tokenize()
