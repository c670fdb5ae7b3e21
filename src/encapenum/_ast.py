"""Syntax tree produced by the matcher.

These are pure, immutable data structures. They describe what was declared,
not what the values are; value computation happens in the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto

from ._int_types import DEFAULT_TYPE, IntegerType


class Visibility(StrEnum):
    """Access level of a type or of its wrapped raw field."""

    PRIVATE = auto()
    PUBLIC = auto()
    CRATE = auto()
    SUPER = auto()
    RESTRICTED = auto()  # pub(in path)

    @property
    def is_private(self) -> bool:
        return self is Visibility.PRIVATE


@dataclass(frozen=True, slots=True)
class Access:
    """A visibility level together with the path of ``pub(in path)``."""

    level: Visibility = Visibility.PRIVATE
    path: str | None = None

    @property
    def is_private(self) -> bool:
        return self.level.is_private

    def __str__(self) -> str:
        match self.level:
            case Visibility.PRIVATE:
                return ""
            case Visibility.PUBLIC:
                return "pub"
            case Visibility.RESTRICTED:
                return f"pub(in {self.path})"
            case _:
                return f"pub({self.level})"


PRIVATE = Access()


class BinaryOperator(StrEnum):
    """Operators usable in a variant value expression."""

    OR = "|"
    ADD = "+"
    AND = "&"
    XOR = "^"
    DIV = "/"
    MUL = "*"
    SHL = "<<"
    SHR = ">>"
    SUB = "-"


# Fixed application order of the homogeneous suffix groups. The leading
# operand's "-" chain is applied before all of them.
GROUP_ORDER: tuple[BinaryOperator, ...] = (
    BinaryOperator.OR,
    BinaryOperator.ADD,
    BinaryOperator.AND,
    BinaryOperator.XOR,
    BinaryOperator.DIV,
    BinaryOperator.MUL,
    BinaryOperator.SHL,
    BinaryOperator.SHR,
)


@dataclass(frozen=True, slots=True)
class EnumAnnotation:
    """``(enum Path) NAME``: a variant of another enumeration."""

    enum_path: str


@dataclass(frozen=True, slots=True)
class TypeAnnotation:
    """``(u32) NAME``: an external constant treated as the given integer type."""

    integer_type: IntegerType


@dataclass(frozen=True, slots=True)
class LegacyAnnotation:
    """``::NAME``: an unannotated external constant, sole initializer only."""


Annotation = EnumAnnotation | TypeAnnotation | LegacyAnnotation


@dataclass(frozen=True, slots=True)
class Literal:
    value: int
    suffix: IntegerType | None = None


@dataclass(frozen=True, slots=True)
class SelfReference:
    name: str


@dataclass(frozen=True, slots=True)
class ExternalReference:
    name: str
    annotation: Annotation


@dataclass(frozen=True, slots=True)
class UnaryNegate:
    operand: SelfReference


@dataclass(frozen=True, slots=True)
class BinaryOp:
    """``left op r1 op r2 ...``, folded left to right."""

    op: BinaryOperator
    left: ExpressionNode
    rights: tuple[Operand, ...]


Operand = Literal | SelfReference | ExternalReference | UnaryNegate
ExpressionNode = Operand | BinaryOp


@dataclass(frozen=True, slots=True)
class SourcePosition:
    line: int
    column: int


@dataclass(frozen=True, slots=True)
class VariantSpec:
    """One named constant of an enumeration.

    ``value_expr`` is None for fieldless variants, whose value is their
    0-based ordinal.
    """

    name: str
    value_expr: ExpressionNode | None
    doc_attributes: tuple[str, ...] = ()
    position: SourcePosition | None = None

    @property
    def is_fieldless(self) -> bool:
        return self.value_expr is None


@dataclass(frozen=True, slots=True)
class EnumSpec:
    """One declared enumeration type.

    Attributes:
        name: Type name.
        underlying_type: Integer type of the wrapped raw value.
        type_visibility: Visibility of the generated type.
        field_visibility: Visibility of the wrapped raw value.
        variants: Variants in declaration order (also dependency order).
        module_group: Name of the enclosing module wrapper, if any.
        attributes: Outer attributes and doc lines, passed through untouched.
        explicit_type: Whether the underlying type was written out.
        position: Where the declaration starts.

    """

    name: str
    underlying_type: IntegerType = DEFAULT_TYPE
    type_visibility: Access = PRIVATE
    field_visibility: Access = PRIVATE
    variants: tuple[VariantSpec, ...] = ()
    module_group: str | None = None
    attributes: tuple[str, ...] = ()
    explicit_type: bool = False
    position: SourcePosition | None = None

    @property
    def is_fieldless(self) -> bool:
        return all(v.is_fieldless for v in self.variants)

    @property
    def qualified_name(self) -> str:
        if self.module_group is None:
            return self.name
        return f"{self.module_group}::{self.name}"


class DeclarationShape(StrEnum):
    """The recognized declaration forms."""

    VALUED = auto()  # one or more valued enums at block scope
    MODULE_GROUP = auto()  # enums grouped under a `mod` wrapper
    TYPED_FIELDLESS = auto()  # a module holding one explicitly typed fieldless enum


@dataclass(frozen=True, slots=True)
class Declaration:
    """A matched declaration block."""

    shape: DeclarationShape
    enums: tuple[EnumSpec, ...]
    module_name: str | None = None
    module_visibility: Access = field(default=PRIVATE)
    module_attributes: tuple[str, ...] = ()
