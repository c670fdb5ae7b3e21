"""Fixed-width integer types used as the underlying representation of wrappers."""

import sys
from dataclasses import dataclass

# Width of the interpreter's native signed word (64 on current platforms).
NATIVE_WORD_BITS = sys.maxsize.bit_length() + 1


@dataclass(frozen=True, slots=True)
class IntegerType:
    """A fixed-width two's complement integer type.

    Attributes:
        name: The type name as written in declarations (e.g. ``u32``).
        bits: Width in bits.
        signed: Whether the type is signed.

    """

    name: str
    bits: int
    signed: bool

    @property
    def min(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def contains(self, value: int) -> bool:
        """Check whether ``value`` is representable without wrapping."""
        return self.min <= value <= self.max

    def wrap(self, value: int) -> int:
        """Reduce ``value`` modulo 2**bits into the representable range.

        Examples:
            >>> U8.wrap(256)
            0
            >>> I8.wrap(128)
            -128

        """
        mask = (1 << self.bits) - 1
        value &= mask
        if self.signed and value > self.max:
            value -= 1 << self.bits
        return value

    def __str__(self) -> str:
        return self.name


U8 = IntegerType("u8", 8, signed=False)
U16 = IntegerType("u16", 16, signed=False)
U32 = IntegerType("u32", 32, signed=False)
U64 = IntegerType("u64", 64, signed=False)
U128 = IntegerType("u128", 128, signed=False)
USIZE = IntegerType("usize", NATIVE_WORD_BITS, signed=False)
I8 = IntegerType("i8", 8, signed=True)
I16 = IntegerType("i16", 16, signed=True)
I32 = IntegerType("i32", 32, signed=True)
I64 = IntegerType("i64", 64, signed=True)
I128 = IntegerType("i128", 128, signed=True)
ISIZE = IntegerType("isize", NATIVE_WORD_BITS, signed=True)

INTEGER_TYPES: dict[str, IntegerType] = {
    t.name: t for t in (U8, U16, U32, U64, U128, USIZE, I8, I16, I32, I64, I128, ISIZE)
}

DEFAULT_TYPE = ISIZE

FLOAT_TYPE_NAMES = frozenset({"f32", "f64"})


def get_integer_type(name: str) -> IntegerType:
    """Look up an integer type by name.

    Raises:
        KeyError: If ``name`` is not an integer type.

    """
    try:
        return INTEGER_TYPES[name]
    except KeyError:
        msg = f"Unknown integer type: {name!r}"
        raise KeyError(msg) from None

