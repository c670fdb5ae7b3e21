"""Runtime support for modules generated by encapenum.

Generated wrapper classes import this module and nothing else from the
package, so it must stay independent of the compiler.
"""

from typing import Any

from ._int_types import INTEGER_TYPES, IntegerType, get_integer_type

__all__ = [
    "INTEGER_TYPES",
    "IntegerType",
    "VariantConstant",
    "const_cast",
    "const_op",
    "div",
    "get_integer_type",
    "invert",
    "rem",
    "shl",
    "shr",
    "wrap",
]


def wrap(value: int, ty: IntegerType) -> int:
    """Wrap ``value`` into the range of ``ty``."""
    return ty.wrap(value)


def _trunc_div(left: int, right: int) -> int:
    if right == 0:
        msg = "attempt to divide by zero"
        raise ZeroDivisionError(msg)
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def div(left: int, right: int, ty: IntegerType) -> int:
    """Divide, truncating toward zero like a fixed-width integer."""
    return ty.wrap(_trunc_div(left, right))


def rem(left: int, right: int, ty: IntegerType) -> int:
    """Remainder with the sign of the dividend."""
    return ty.wrap(left - right * _trunc_div(left, right))


def _check_shift(amount: int, ty: IntegerType) -> None:
    if not 0 <= amount < ty.bits:
        msg = f"shift amount {amount} out of range for {ty} ({ty.bits} bits)"
        raise OverflowError(msg)


def shl(value: int, amount: int, ty: IntegerType) -> int:
    _check_shift(amount, ty)
    return ty.wrap(value << amount)


def shr(value: int, amount: int, ty: IntegerType) -> int:
    # Values are kept in range, so >> is arithmetic for signed types and
    # logical for unsigned ones.
    _check_shift(amount, ty)
    return ty.wrap(value >> amount)


def invert(value: int, ty: IntegerType) -> int:
    return ty.wrap(~value)


# --- checked arithmetic for variant initializers ---
#
# Variant values never wrap: any intermediate result outside the underlying
# type is an error. The compiler folds known values with these functions and
# emits calls to them for values that depend on symbols only known when the
# generated module is imported.


def _checked(value: int, ty: IntegerType, what: str) -> int:
    if not ty.contains(value):
        msg = f"{what} overflows {ty} (result {value}, range {ty.min}..={ty.max})"
        raise OverflowError(msg)
    return value


def const_cast(value: int, source: IntegerType, target: IntegerType) -> int:
    """Check that ``value`` fits both its declared type and the target type."""
    _checked(value, source, "constant")
    return _checked(value, target, "constant")


def const_op(op: str, left: int, right: int, ty: IntegerType) -> int:
    """Apply one initializer operator with overflow checking.

    Raises:
        OverflowError: If the result does not fit ``ty`` or a shift amount
            is out of range.
        ZeroDivisionError: On division by zero.
        ValueError: On an unknown operator.

    """
    match op:
        case "|":
            result = left | right
        case "&":
            result = left & right
        case "^":
            result = left ^ right
        case "+":
            result = left + right
        case "-":
            result = left - right
        case "*":
            result = left * right
        case "/":
            result = _trunc_div(left, right)
        case "%":
            result = left - right * _trunc_div(left, right)
        case "<<":
            _check_shift(right, ty)
            result = left << right
        case ">>":
            _check_shift(right, ty)
            result = left >> right
        case _:
            msg = f"unknown operator {op!r}"
            raise ValueError(msg)
    return _checked(result, ty, f"'{left} {op} {right}'")


class VariantConstant:
    """Class-level descriptor for a variant.

    Every attribute access builds a fresh wrapper instance, so in-place
    operators applied to the result never alter the constant itself.
    """

    __slots__ = ("name", "raw")

    def __init__(self, raw: int) -> None:
        self.raw = raw
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: object, owner: type | None = None) -> Any:
        if owner is None:
            owner = type(instance)
        return owner(self.raw)

    def __repr__(self) -> str:
        return f"VariantConstant({self.name}={self.raw})"
