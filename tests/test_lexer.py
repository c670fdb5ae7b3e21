"""Tests for the declaration tokenizer."""

import pytest

from encapenum._errors import LexError
from encapenum._lexer import TokenKind, tokenize


def kinds(source: str) -> list[TokenKind]:
    return [t.kind for t in tokenize(source)]


class TestTokenize:
    """Tests for tokenize."""

    def test_simple_declaration(self) -> None:
        assert kinds("enum A { X = 1 }") == [
            TokenKind.IDENT,
            TokenKind.IDENT,
            TokenKind.LBRACE,
            TokenKind.IDENT,
            TokenKind.EQ,
            TokenKind.INT,
            TokenKind.RBRACE,
            TokenKind.EOF,
        ]

    def test_multi_character_symbols(self) -> None:
        assert kinds(":: << >> :") == [
            TokenKind.PATHSEP,
            TokenKind.SHL,
            TokenKind.SHR,
            TokenKind.COLON,
            TokenKind.EOF,
        ]

    def test_integer_literal_forms(self) -> None:
        tokens = tokenize("0xFF 0b1010 0o17 1_000 7u8 42isize")
        assert [t.value for t in tokens[:-1]] == ["0xFF", "0b1010", "0o17", "1_000", "7u8", "42isize"]
        assert all(t.kind == TokenKind.INT for t in tokens[:-1])

    def test_positions_are_one_based(self) -> None:
        tokens = tokenize("enum\n  A")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (2, 3)

    def test_comments_are_skipped(self) -> None:
        source = "// line comment\nenum /* block /* nested */ still */ A"
        assert [t.value for t in tokenize(source)[:-1]] == ["enum", "A"]

    def test_doc_comment_is_kept(self) -> None:
        tokens = tokenize("/// Some docs\nenum A")
        assert tokens[0].kind == TokenKind.DOC
        assert tokens[0].value == "Some docs"

    def test_attribute_is_one_token(self) -> None:
        tokens = tokenize('#[derive(Debug, Clone)] #[doc = "a ] b"] enum')
        assert tokens[0].kind == TokenKind.ATTR
        assert tokens[0].value == "derive(Debug, Clone)"
        assert tokens[1].value == 'doc = "a ] b"'
        assert tokens[2].value == "enum"

    def test_float_literal_rejected(self) -> None:
        with pytest.raises(LexError, match="floating-point"):
            tokenize("enum A { X = 1.5 }")

    def test_unexpected_character(self) -> None:
        with pytest.raises(LexError, match="unexpected character") as exc_info:
            tokenize("enum A {\n  X = $ }")
        assert exc_info.value.line == 2
        assert exc_info.value.column == 7

    def test_non_ascii_digit_rejected(self) -> None:
        with pytest.raises(LexError, match="unexpected character"):
            tokenize("enum A { X = ٣ }")

    def test_unterminated_block_comment(self) -> None:
        with pytest.raises(LexError, match="unterminated block comment"):
            tokenize("enum /* A")
