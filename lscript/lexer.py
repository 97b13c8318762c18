"""
lscript Lexer
=============
Tokenizes L-system script source into a stream of typed tokens.
Handles keywords, identifiers, unsigned numbers, random ranges (`0.5..1`),
operators, structural glyphs, and punctuation. Whitespace, newlines and
`#` comments are dropped; statements are terminated by `;`.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

from .errors import LexError


class TokenType(Enum):
    """All token types in the script language."""
    # Keywords
    KW_LSYSTEM   = auto()
    KW_AXIOM     = auto()
    KW_LET       = auto()
    KW_REPLACE   = auto()
    KW_BY        = auto()
    KW_WHEN      = auto()
    KW_INTERPRET = auto()
    KW_AS        = auto()
    KW_IGNORE    = auto()

    # Literals
    IDENTIFIER  = auto()   # names, and runs of symbol letters in words
    NUMBER      = auto()   # 42, 3.14
    RANGE       = auto()   # 0.5..1.5

    # Operators (also symbols when they appear in a word)
    PLUS        = auto()   # +
    MINUS       = auto()   # -
    STAR        = auto()   # *
    SLASH       = auto()   # /
    PERCENT     = auto()   # %
    CARET       = auto()   # ^
    LT          = auto()   # <
    GT          = auto()   # >
    EQ          = auto()   # =
    BANG        = auto()   # !
    AMP         = auto()   # &
    PIPE        = auto()   # |
    LTE         = auto()   # <=
    GTE         = auto()   # >=
    NEQ         = auto()   # !=
    BACKSLASH   = auto()   # \
    DOT         = auto()   # .

    # Punctuation
    LPAREN      = auto()   # (
    RPAREN      = auto()   # )
    LBRACKET    = auto()   # [
    RBRACKET    = auto()   # ]
    LBRACE      = auto()   # {
    RBRACE      = auto()   # }
    SEMICOLON   = auto()   # ;
    COMMA       = auto()   # ,
    COLON       = auto()   # :

    EOF         = auto()


@dataclass
class Token:
    """A single token from the script source."""
    type: TokenType
    value: str
    line: int
    col: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.col})"


SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "^": TokenType.CARET,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "=": TokenType.EQ,
    "!": TokenType.BANG,
    "&": TokenType.AMP,
    "|": TokenType.PIPE,
    "\\": TokenType.BACKSLASH,
    ".": TokenType.DOT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
}

TWO_CHAR_TOKENS = {
    "<=": TokenType.LTE,
    ">=": TokenType.GTE,
    "!=": TokenType.NEQ,
}

KEYWORDS = {
    "lsystem": TokenType.KW_LSYSTEM,
    "axiom": TokenType.KW_AXIOM,
    "let": TokenType.KW_LET,
    "replace": TokenType.KW_REPLACE,
    "by": TokenType.KW_BY,
    "when": TokenType.KW_WHEN,
    "interpret": TokenType.KW_INTERPRET,
    "as": TokenType.KW_AS,
    "ignore": TokenType.KW_IGNORE,
}


class Lexer:
    """
    Tokenizes script source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1

    def _current(self) -> str | None:
        if self.pos >= len(self.source):
            return None
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> str | None:
        idx = self.pos + offset
        if idx >= len(self.source):
            return None
        return self.source[idx]

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _skip_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos].isspace():
            self._advance()

    def _skip_comment(self):
        while self.pos < len(self.source) and self._current() != "\n":
            self._advance()

    def _is_digit(self, ch: str | None) -> bool:
        return ch is not None and ch.isascii() and ch.isdigit()

    def _read_digits(self) -> str:
        """Read an unsigned decimal: digits with at most one fractional part."""
        chars = []
        while self._is_digit(self._current()):
            chars.append(self._advance())
        # A dot only belongs to the number when a digit follows it,
        # so `1..2` and a trailing `.` symbol are left alone.
        if self._current() == "." and self._is_digit(self._peek()):
            chars.append(self._advance())
            while self._is_digit(self._current()):
                chars.append(self._advance())
        return "".join(chars)

    def _read_number(self) -> Token:
        """Read a numeric literal, or a `low..high` random range."""
        start_line, start_col = self.line, self.col
        low = self._read_digits()
        if (self._current() == "." and self._peek() == "."
                and self._is_digit(self._peek(2))):
            self._advance()
            self._advance()
            high = self._read_digits()
            return Token(TokenType.RANGE, f"{low}..{high}", start_line, start_col)
        return Token(TokenType.NUMBER, low, start_line, start_col)

    def _read_identifier(self) -> Token:
        """Read an identifier or keyword."""
        start_line, start_col = self.line, self.col
        chars = []
        while self.pos < len(self.source):
            ch = self._current()
            if ch is not None and ch.isascii() and (ch.isalnum() or ch == "_"):
                chars.append(self._advance())
            else:
                break
        word = "".join(chars)
        token_type = KEYWORDS.get(word, TokenType.IDENTIFIER)
        return Token(token_type, word, start_line, start_col)

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source into a list of tokens ending in EOF."""
        tokens = list(self._iter_tokens())
        tokens.append(Token(TokenType.EOF, "", self.line, self.col))
        return tokens

    def _iter_tokens(self) -> Iterator[Token]:
        """Generate tokens one at a time."""
        while self.pos < len(self.source):
            self._skip_whitespace()

            if self.pos >= len(self.source):
                break

            ch = self._current()

            if ch == "#":
                self._skip_comment()
                continue

            if self._is_digit(ch):
                yield self._read_number()
                continue

            if ch.isascii() and (ch.isalpha() or ch == "_"):
                yield self._read_identifier()
                continue

            pair = ch + (self._peek() or "")
            if pair in TWO_CHAR_TOKENS:
                line, col = self.line, self.col
                self._advance()
                self._advance()
                yield Token(TWO_CHAR_TOKENS[pair], pair, line, col)
                continue

            if ch in SINGLE_CHAR_TOKENS:
                yield Token(SINGLE_CHAR_TOKENS[ch], ch, self.line, self.col)
                self._advance()
                continue

            raise LexError(f"Unrecognized character {ch!r}", self.line, self.col)
