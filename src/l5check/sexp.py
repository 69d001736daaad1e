"""Reader: source text to s-expression trees.

Reading happens in two phases. `Scanner` turns text into a flat token list,
then `TokenParser` folds the tokens into nested tuples by recursive descent.

Atoms come out as Python values (`int`, `float`, `bool`, `str` for string
literals) or `Symbol`. `'x` is read as `(quote x)`. A dotted list keeps the
`DOT` symbol in second-to-last position so the AST builder can turn it into a
cons cell.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, NoReturn

from l5check.errors import ReaderError
from l5check.values import Symbol, format_number, quote_string

type SExp = int | float | bool | str | Symbol | tuple[SExp, ...]

QUOTE = Symbol("quote")
DOT = Symbol(".")

_NUMBER_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@enum.unique
class TokenTag(enum.Enum):
    LEFT_PAREN = enum.auto()
    RIGHT_PAREN = enum.auto()
    QUOTE = enum.auto()
    DOT = enum.auto()
    SYMBOL = enum.auto()
    STRING = enum.auto()
    NUMBER = enum.auto()
    BOOLEAN = enum.auto()


@dataclass(frozen=True)
class Token:
    """A lexeme with its 0-based line and decoded literal."""

    tag: TokenTag
    line: int
    lexeme: str
    literal: Any = None


# =============================================================================
# Scanner: str -> list[Token]
# =============================================================================


@dataclass
class Scanner:
    """Single-pass scanner over one source string."""

    _invalid_chars: ClassVar[frozenset[str]] = frozenset('{}",`|\\')
    _escapes: ClassVar[dict[str, str]] = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}

    source: str
    _start: int = 0
    _current: int = 0
    _line: int = 0
    _tokens: list[Token] = field(default_factory=list)

    def scan(self) -> list[Token]:
        """Scan the whole source.

        Raises:
            ReaderError: On an unterminated string, a bad escape or malformed atom.

        """
        while not self._is_at_end():
            self._scan_one_token()
            self._start = self._current
        return self._tokens

    def _scan_one_token(self) -> None:
        c = self._advance()
        match c:
            case "(" | "[":
                self._add_token(TokenTag.LEFT_PAREN)
            case ")" | "]":
                self._add_token(TokenTag.RIGHT_PAREN)
            case "'":
                self._scan_quote()
            case '"':
                self._scan_string()
            case ";":
                self._skip_comment()
            case "\n":
                self._line += 1
            case "." if self._is_at_end() or self._can_terminate_atom(self._peek()):
                self._add_token(TokenTag.DOT)
            case _ if not c.isspace():
                self._scan_atom()

    def _is_at_end(self) -> bool:
        return self._current >= len(self.source)

    def _advance(self) -> str:
        c = self.source[self._current]
        self._current += 1
        return c

    def _peek(self) -> str:
        return self.source[self._current]

    def _add_token(self, tag: TokenTag, literal: Any = None) -> None:
        lexeme = self.source[self._start : self._current]
        self._tokens.append(Token(tag, self._line, lexeme, literal))

    def _scan_quote(self) -> None:
        if self._is_at_end() or self._peek().isspace():
            self._error("quote must be followed by a datum")
        self._add_token(TokenTag.QUOTE, QUOTE)

    def _scan_string(self) -> None:
        chars: list[str] = []
        while not self._is_at_end() and self._peek() != '"':
            c = self._advance()
            if c == "\n":
                self._line += 1
            elif c == "\\":
                if self._is_at_end():
                    break
                c = self._advance()
                if c not in self._escapes:
                    self._error(f"invalid escape sequence: \\{c}")
                c = self._escapes[c]
            chars.append(c)
        if self._is_at_end():
            self._error(f"unterminated string: {self.source[self._start : self._current]}")
        self._advance()  # closing quote
        self._add_token(TokenTag.STRING, "".join(chars))

    def _skip_comment(self) -> None:
        while not self._is_at_end() and self._peek() != "\n":
            self._advance()

    def _scan_atom(self) -> None:
        while not self._is_at_end() and not self._can_terminate_atom(self._peek()):
            if self._advance() in self._invalid_chars:
                self._error(f"invalid atom: {self.source[self._start : self._current]}")
        text = self.source[self._start : self._current]
        if text.startswith("#"):
            if text not in ("#t", "#f"):
                self._error(f"invalid boolean: {text}")
            self._add_token(TokenTag.BOOLEAN, text == "#t")
        elif _NUMBER_RE.fullmatch(text):
            self._add_token(TokenTag.NUMBER, _to_number(text))
        else:
            self._add_token(TokenTag.SYMBOL, Symbol(text))

    def _error(self, message: str) -> NoReturn:
        raise ReaderError(message, self._line)

    @staticmethod
    def _can_terminate_atom(c: str) -> bool:
        return c.isspace() or c in "()[];"


def _to_number(text: str) -> int | float:
    value = float(text)
    if value.is_integer() and "." not in text and "e" not in text.lower():
        return int(text)
    return value


# =============================================================================
# Token parser: list[Token] -> SExp
# =============================================================================


@dataclass
class TokenParser:
    """Recursive-descent folding of tokens into nested tuples.

    datum -> atom | QUOTE datum | LEFT_PAREN datum* RIGHT_PAREN
    """

    tokens: list[Token]
    _current: int = 0

    def parse_all(self) -> list[SExp]:
        """Read every top-level datum."""
        data: list[SExp] = []
        while not self._is_at_end():
            data.append(self._parse_datum())
        return data

    def _parse_datum(self) -> SExp:
        token = self._advance()
        match token.tag:
            case TokenTag.QUOTE:
                if self._is_at_end() or self._peek().tag is TokenTag.RIGHT_PAREN:
                    raise ReaderError("quote must be followed by a datum", token.line)
                return (QUOTE, self._parse_datum())
            case TokenTag.LEFT_PAREN:
                return self._parse_list(token)
            case TokenTag.RIGHT_PAREN:
                raise ReaderError("unmatched right parenthesis", token.line)
            case TokenTag.DOT:
                return DOT
            case _:
                return token.literal

    def _parse_list(self, opening: Token) -> tuple[SExp, ...]:
        items: list[SExp] = []
        while not self._is_at_end() and self._peek().tag is not TokenTag.RIGHT_PAREN:
            items.append(self._parse_datum())
        if self._is_at_end():
            raise ReaderError("list missing right parenthesis", opening.line)
        self._advance()
        dots = [i for i, item in enumerate(items) if item == DOT]
        if len(dots) > 1:
            raise ReaderError("a list can contain at most one dot", opening.line)
        if dots and (dots[0] != len(items) - 2 or dots[0] == 0):
            raise ReaderError("dot must be second to last in a list", opening.line)
        return tuple(items)

    def _is_at_end(self) -> bool:
        return self._current >= len(self.tokens)

    def _advance(self) -> Token:
        token = self.tokens[self._current]
        self._current += 1
        return token

    def _peek(self) -> Token:
        return self.tokens[self._current]


def read_all(source: str) -> list[SExp]:
    """Read every top-level datum from `source`."""
    return TokenParser(Scanner(source).scan()).parse_all()


def read(source: str) -> SExp:
    """Read exactly one datum from `source`.

    Raises:
        ReaderError: If the text is malformed or holds zero or several data.

    """
    data = read_all(source)
    if len(data) != 1:
        msg = f"expected exactly one expression, found {len(data)}"
        raise ReaderError(msg)
    return data[0]


def sexp_to_string(sexp: SExp) -> str:
    """Render a reader tree back to text."""
    match sexp:
        case tuple():
            return "(" + " ".join(sexp_to_string(s) for s in sexp) + ")"
        case bool():
            return "#t" if sexp else "#f"
        case int() | float():
            return format_number(sexp)
        case str():
            return quote_string(sexp)
        case Symbol(name=name):
            return name
    msg = f"Not an s-expression: {sexp!r}"
    raise TypeError(msg)
