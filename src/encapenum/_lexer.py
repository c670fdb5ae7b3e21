"""Tokenizer for declaration text.

Converts declaration source into a flat list of tokens. The matcher works on
token shapes only; this module never decides what a declaration means.
"""

import re
from dataclasses import dataclass
from enum import StrEnum, auto

from ._errors import LexError


class TokenKind(StrEnum):
    """Token types of the declaration language."""

    IDENT = auto()
    INT = auto()
    ATTR = auto()  # #[...] with the bracket contents as value
    DOC = auto()  # /// doc comment with the text as value

    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    SEMI = auto()
    COLON = auto()
    PATHSEP = auto()  # ::
    EQ = auto()
    BANG = auto()

    PIPE = auto()
    PLUS = auto()
    AMP = auto()
    CARET = auto()
    SLASH = auto()
    STAR = auto()
    SHL = auto()
    SHR = auto()
    MINUS = auto()

    EOF = auto()


@dataclass(frozen=True, slots=True)
class Token:
    """A single token with its 1-based source position."""

    kind: TokenKind
    value: str
    line: int
    column: int

    def is_keyword(self, word: str) -> bool:
        return self.kind == TokenKind.IDENT and self.value == word


# Longest symbols first so that "::" wins over ":" and "<<" over "<".
_SYMBOLS: tuple[tuple[str, TokenKind], ...] = (
    ("::", TokenKind.PATHSEP),
    ("<<", TokenKind.SHL),
    (">>", TokenKind.SHR),
    ("{", TokenKind.LBRACE),
    ("}", TokenKind.RBRACE),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
    ("[", TokenKind.LBRACKET),
    ("]", TokenKind.RBRACKET),
    (",", TokenKind.COMMA),
    (";", TokenKind.SEMI),
    (":", TokenKind.COLON),
    ("=", TokenKind.EQ),
    ("!", TokenKind.BANG),
    ("|", TokenKind.PIPE),
    ("+", TokenKind.PLUS),
    ("&", TokenKind.AMP),
    ("^", TokenKind.CARET),
    ("/", TokenKind.SLASH),
    ("*", TokenKind.STAR),
    ("-", TokenKind.MINUS),
)

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
# Integer literal with optional radix prefix, digit separators and type suffix.
_INT_RE = re.compile(
    r"(?:0x[0-9A-Fa-f_]+|0o[0-7_]+|0b[01_]+|[0-9][0-9_]*)(?:[iu](?:8|16|32|64|128|size))?",
)
_FLOAT_RE = re.compile(r"[0-9][0-9_]*(?:\.[0-9]|[eE][+-]?[0-9]|f32|f64)")


class _Cursor:
    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.line_start = 0

    @property
    def column(self) -> int:
        return self.pos - self.line_start + 1

    def advance(self, count: int) -> None:
        for _ in range(count):
            if self.source[self.pos] == "\n":
                self.line += 1
                self.line_start = self.pos + 1
            self.pos += 1

    def startswith(self, text: str) -> bool:
        return self.source.startswith(text, self.pos)


def _skip_block_comment(cur: _Cursor) -> None:
    line, column = cur.line, cur.column
    depth = 0
    while cur.pos < len(cur.source):
        if cur.startswith("/*"):
            depth += 1
            cur.advance(2)
        elif cur.startswith("*/"):
            depth -= 1
            cur.advance(2)
            if depth == 0:
                return
        else:
            cur.advance(1)
    msg = "unterminated block comment"
    raise LexError(msg, line=line, column=column)


def _read_attribute(cur: _Cursor) -> str:
    """Read ``#[...]`` (or ``#![...]``) and return the text inside the brackets."""
    line, column = cur.line, cur.column
    cur.advance(2 if cur.startswith("#[") else 3)
    start = cur.pos
    depth = 1
    while cur.pos < len(cur.source):
        c = cur.source[cur.pos]
        if c == '"':
            cur.advance(1)
            while cur.pos < len(cur.source) and cur.source[cur.pos] != '"':
                cur.advance(2 if cur.source[cur.pos] == "\\" else 1)
        elif c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth == 0:
                text = cur.source[start : cur.pos]
                cur.advance(1)
                return text.strip()
        cur.advance(1)
    msg = "unterminated attribute"
    raise LexError(msg, line=line, column=column)


def tokenize(source: str) -> list[Token]:
    """Tokenize declaration text into a list of tokens ending with EOF.

    Plain ``//`` and ``/* */`` comments are dropped; ``///`` doc comments are
    kept as DOC tokens so that they can be passed through to the output.

    Raises:
        LexError: On characters or literals outside the declaration language.

    """
    tokens: list[Token] = []
    cur = _Cursor(source)
    n = len(source)

    while cur.pos < n:
        c = source[cur.pos]
        line, column = cur.line, cur.column

        if c in " \t\r\n":
            cur.advance(1)
            continue

        if cur.startswith("///") and not cur.startswith("////"):
            end = source.find("\n", cur.pos)
            end = n if end == -1 else end
            text = source[cur.pos + 3 : end].strip()
            cur.advance(end - cur.pos)
            tokens.append(Token(TokenKind.DOC, text, line, column))
            continue

        if cur.startswith("//"):
            end = source.find("\n", cur.pos)
            cur.advance((n if end == -1 else end) - cur.pos)
            continue

        if cur.startswith("/*"):
            _skip_block_comment(cur)
            continue

        if cur.startswith("#[") or cur.startswith("#!["):
            tokens.append(Token(TokenKind.ATTR, _read_attribute(cur), line, column))
            continue

        m = _INT_RE.match(source, cur.pos)
        if m:
            if _FLOAT_RE.match(source, cur.pos):
                msg = "floating-point literals are not supported"
                raise LexError(msg, line=line, column=column)
            cur.advance(m.end() - m.start())
            tokens.append(Token(TokenKind.INT, m.group(0), line, column))
            continue

        m = _IDENT_RE.match(source, cur.pos)
        if m:
            cur.advance(m.end() - m.start())
            tokens.append(Token(TokenKind.IDENT, m.group(0), line, column))
            continue

        for text, kind in _SYMBOLS:
            if cur.startswith(text):
                cur.advance(len(text))
                tokens.append(Token(kind, text, line, column))
                break
        else:
            msg = f"unexpected character {c!r}"
            raise LexError(msg, line=line, column=column)

    tokens.append(Token(TokenKind.EOF, "", cur.line, cur.column))
    return tokens
