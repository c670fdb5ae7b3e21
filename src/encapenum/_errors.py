"""Exceptions raised while compiling declarations.

Every error is fatal for the declaration block being compiled; there are no
partial results.
"""

FIELDLESS_WITHOUT_MODULE = "fieldless enumerations must be declared inside a module wrapper"


class EncapEnumError(Exception):
    """Base class for all compilation errors."""

    def __init__(self, message: str, *, line: int | None = None, column: int | None = None) -> None:
        self.message = message
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.column}: {self.message}"


class LexError(EncapEnumError):
    """The declaration text contains characters that cannot be tokenized."""


class ShapeMismatchError(EncapEnumError):
    """The declaration matches none of the recognized shapes."""


class AttributePlacementError(ShapeMismatchError):
    """Metadata was placed before the first variant."""


class ResolutionError(EncapEnumError):
    """A variant value could not be resolved."""


class CollisionError(EncapEnumError):
    """Two items in the same scope share a name."""
