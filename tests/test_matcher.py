"""Tests for declaration shape matching."""

import re

import pytest

from encapenum._ast import Access, DeclarationShape, Visibility
from encapenum._errors import FIELDLESS_WITHOUT_MODULE, AttributePlacementError, ShapeMismatchError
from encapenum._int_types import ISIZE, U8, U32
from encapenum._lexer import tokenize
from encapenum._matcher import match_declaration, split_blocks


def match(text: str):  # noqa: ANN201
    blocks = split_blocks(tokenize(text))
    assert len(blocks) == 1
    return match_declaration(blocks[0])


class TestSplitBlocks:
    """Tests for split_blocks."""

    def test_bare_text_is_one_block(self) -> None:
        assert len(split_blocks(tokenize("enum A { X = 1 } enum B { Y = 1 }"))) == 1

    def test_invocations(self) -> None:
        source = """
encap_enum! { enum A { X = 1 } }
encap_enum!(enum B { Y = 2 });
encap_enum! [ enum C { Z = 3 } ]
"""
        blocks = split_blocks(tokenize(source))
        assert len(blocks) == 3
        assert [match_declaration(b).enums[0].name for b in blocks] == ["A", "B", "C"]

    def test_text_outside_invocation_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="expected 'encap_enum!'"):
            split_blocks(tokenize("encap_enum! { enum A { X = 1 } } stray"))

    def test_unclosed_invocation(self) -> None:
        with pytest.raises(ShapeMismatchError, match="unclosed"):
            split_blocks(tokenize("encap_enum! { enum A { X = 1 }"))


class TestValuedShape:
    """Tests for valued declarations at block scope."""

    def test_defaults(self) -> None:
        declaration = match("enum A { X = 1 }")
        assert declaration.shape is DeclarationShape.VALUED
        spec = declaration.enums[0]
        assert spec.underlying_type == ISIZE
        assert not spec.explicit_type
        assert spec.type_visibility.is_private
        assert spec.field_visibility.is_private
        assert spec.module_group is None

    def test_visibilities_and_type(self) -> None:
        spec = match("pub enum Flags: pub(crate) u32 { A = 1, B = 2 }").enums[0]
        assert spec.type_visibility == Access(Visibility.PUBLIC)
        assert spec.field_visibility == Access(Visibility.CRATE)
        assert spec.underlying_type == U32
        assert spec.explicit_type

    def test_restricted_visibility(self) -> None:
        spec = match("pub(in crate::io) enum A: pub(super) u8 { X = 1 }").enums[0]
        assert spec.type_visibility == Access(Visibility.RESTRICTED, "crate::io")
        assert str(spec.type_visibility) == "pub(in crate::io)"
        assert spec.field_visibility.level is Visibility.SUPER

    def test_pub_self_is_private(self) -> None:
        spec = match("pub(self) enum A { X = 1 }").enums[0]
        assert spec.type_visibility.is_private

    def test_several_enums(self) -> None:
        declaration = match("enum A { X = 1 } pub enum B: u8 { Y = 2 }")
        assert [e.name for e in declaration.enums] == ["A", "B"]

    @pytest.mark.parametrize("text", ["enum A { X = 1, Y = 2 }", "enum A { X = 1, Y = 2, }"])
    def test_final_comma_optional(self, text: str) -> None:
        assert [v.name for v in match(text).enums[0].variants] == ["X", "Y"]

    def test_missing_comma_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="unexpected token 'Y'"):
            match("enum A { X = 1 Y = 2 }")

    def test_float_type_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="floating-point"):
            match("enum A: f64 { X = 1 }")

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="unsupported underlying type"):
            match("enum A: word { X = 1 }")

    def test_empty_enum_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="at least one variant"):
            match("enum A { }")

    def test_mixed_variants_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="mixes valued and fieldless"):
            match("mod m { enum A { X = 1, Y } }")


class TestFieldlessShapes:
    """Tests for fieldless enumerations and module wrappers."""

    def test_bare_fieldless_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match=re.escape(FIELDLESS_WITHOUT_MODULE)):
            match("enum Color { Red, Green }")

    def test_typed_fieldless(self) -> None:
        declaration = match("pub mod colors { pub enum Color: u8 { Red, Green, Blue } }")
        assert declaration.shape is DeclarationShape.TYPED_FIELDLESS
        assert declaration.module_name == "colors"
        assert declaration.module_visibility.level is Visibility.PUBLIC
        spec = declaration.enums[0]
        assert spec.underlying_type == U8
        assert spec.is_fieldless
        assert spec.qualified_name == "colors::Color"

    def test_module_group(self) -> None:
        declaration = match("mod m { enum A { X = 1 } enum B { Y, Z } }")
        assert declaration.shape is DeclarationShape.MODULE_GROUP
        assert [e.module_group for e in declaration.enums] == ["m", "m"]

    def test_untyped_fieldless_module_is_group(self) -> None:
        assert match("mod m { enum A { X, Y } }").shape is DeclarationShape.MODULE_GROUP

    def test_module_must_be_alone(self) -> None:
        with pytest.raises(ShapeMismatchError, match="only item"):
            match("mod m { enum A { X, Y } } enum B { Z = 1 }")

    def test_empty_module_rejected(self) -> None:
        with pytest.raises(ShapeMismatchError, match="at least one enum"):
            match("mod m { }")


class TestMetadata:
    """Tests for attribute and doc comment placement."""

    def test_outer_attributes_kept(self) -> None:
        spec = match('/// Flags.\n#[derive(Debug)]\nenum A { X = 1 }').enums[0]
        assert spec.attributes == ("doc = 'Flags.'", "derive(Debug)")

    def test_metadata_attaches_to_preceding_variant(self) -> None:
        spec = match("enum A { X = 1, /// about X\n Y = 2, #[allow(unused)] }").enums[0]
        assert spec.variants[0].doc_attributes == ("doc = 'about X'",)
        assert spec.variants[1].doc_attributes == ("allow(unused)",)

    def test_leading_metadata_rejected(self) -> None:
        with pytest.raises(AttributePlacementError, match="before the first variant"):
            match('enum A { #[doc = "x"] X = 1 }')

    def test_leading_doc_comment_rejected(self) -> None:
        with pytest.raises(AttributePlacementError):
            match("enum A {\n /// x\n X = 1 }")

    def test_placement_error_is_shape_error(self) -> None:
        assert issubclass(AttributePlacementError, ShapeMismatchError)
