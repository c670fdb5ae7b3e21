"""Tests for the variant value expression parser."""

import pytest

from encapenum._ast import (
    BinaryOp,
    BinaryOperator,
    EnumAnnotation,
    ExternalReference,
    LegacyAnnotation,
    Literal,
    SelfReference,
    TypeAnnotation,
    UnaryNegate,
)
from encapenum._errors import ShapeMismatchError
from encapenum._expr_parser import parse_expression, parse_int_literal
from encapenum._int_types import U8, U32
from encapenum._lexer import tokenize


def parse(text: str):  # noqa: ANN201
    return parse_expression(tokenize(text)[:-1], "V")


class TestParseIntLiteral:
    """Tests for parse_int_literal."""

    @pytest.mark.parametrize(
        ("text", "value"),
        [
            ("0", 0),
            ("42", 42),
            ("0xFF", 255),
            ("0b1010", 10),
            ("0o17", 15),
            ("1_000", 1000),
            ("0x_10", 16),
        ],
    )
    def test_radix_and_separators(self, text: str, value: int) -> None:
        assert parse_int_literal(text) == Literal(value)

    def test_type_suffix(self) -> None:
        assert parse_int_literal("7u8") == Literal(7, U8)
        assert parse_int_literal("0x10u32") == Literal(16, U32)


class TestOperands:
    """Tests for the individual operand forms."""

    def test_literal(self) -> None:
        assert parse("5") == Literal(5)

    def test_negative_literal(self) -> None:
        assert parse("-5") == Literal(-5)

    def test_self_reference(self) -> None:
        assert parse("A") == SelfReference("A")

    def test_negation(self) -> None:
        assert parse("(-A)") == UnaryNegate(SelfReference("A"))

    def test_negated_literal_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="negation only applies"):
            parse("(-1)")

    def test_enum_annotation(self) -> None:
        assert parse("(enum Other) X") == ExternalReference("X", EnumAnnotation("Other"))

    def test_qualified_enum_annotation(self) -> None:
        assert parse("(enum m::Other) X") == ExternalReference("X", EnumAnnotation("m::Other"))

    def test_type_annotation(self) -> None:
        assert parse("(u32) VALUE") == ExternalReference("VALUE", TypeAnnotation(U32))

    def test_float_annotation_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="floating-point"):
            parse("(f32) VALUE")

    def test_unknown_annotation_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="unknown type annotation"):
            parse("(word) VALUE")

    def test_legacy_reference(self) -> None:
        assert parse("::VALUE") == ExternalReference("VALUE", LegacyAnnotation())


class TestGroups:
    """Tests for operator grouping."""

    def test_subtraction_chain(self) -> None:
        assert parse("A - B - 1") == BinaryOp(
            BinaryOperator.SUB,
            SelfReference("A"),
            (SelfReference("B"), Literal(1)),
        )

    def test_groups_nest_left_to_right(self) -> None:
        assert parse("A | B + 1") == BinaryOp(
            BinaryOperator.ADD,
            BinaryOp(BinaryOperator.OR, SelfReference("A"), (SelfReference("B"),)),
            (Literal(1),),
        )

    def test_subtraction_applies_before_groups(self) -> None:
        assert parse("1 - 3 * 2") == BinaryOp(
            BinaryOperator.MUL,
            BinaryOp(BinaryOperator.SUB, Literal(1), (Literal(3),)),
            (Literal(2),),
        )

    def test_negation_operand_in_group(self) -> None:
        assert parse("(-A) * 3") == BinaryOp(
            BinaryOperator.MUL,
            UnaryNegate(SelfReference("A")),
            (Literal(3),),
        )

    def test_shift_groups(self) -> None:
        node = parse("A << 2 >> 1")
        assert isinstance(node, BinaryOp)
        assert node.op is BinaryOperator.SHR
        assert node.left == BinaryOp(BinaryOperator.SHL, SelfReference("A"), (Literal(2),))

    def test_out_of_order_group_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="out of group order"):
            parse("A + 1 | B")

    def test_repeated_group_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="out of group order"):
            parse("A | B + 1 | C")

    def test_late_subtraction_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="must directly follow"):
            parse("A | B - 1")

    def test_legacy_with_operators_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="sole initializer"):
            parse("::VALUE + 1")

    def test_legacy_inside_chain_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="cannot be combined"):
            parse("1 + ::VALUE")

    def test_errors_name_the_variant(self) -> None:
        with pytest.raises(ShapeMismatchError, match="variant 'V'"):
            parse("A +")
