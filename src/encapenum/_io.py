"""Reading external symbol tables and writing type descriptions."""

import logging
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ._compiler import CompiledUnit
from ._emitter import GeneratedType

logger = logging.getLogger(__name__)


class ExternalsFileError(Exception):
    """An externals file is missing, malformed or fails validation."""


class ExternalSymbols(BaseModel):
    """Contents of an externals TOML file.

    Example file::

        [constants]
        VALUE = 56
        OTHER = 72

        [enums.Access]
        READ = 1
        WRITE = 2

    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    constants: dict[str, int] = Field(default_factory=dict)
    enums: dict[str, dict[str, int]] = Field(default_factory=dict)

    def merged(self, constants: dict[str, int]) -> "ExternalSymbols":
        """Return a copy where ``constants`` override the file's constants."""
        return ExternalSymbols(constants={**self.constants, **constants}, enums=self.enums)


def load_externals(path: Path) -> ExternalSymbols:
    """Load and validate an externals TOML file.

    Raises:
        ExternalsFileError: If the file cannot be read or is invalid.

    """
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        msg = f"Cannot read externals file {path}: {e}"
        raise ExternalsFileError(msg) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ExternalsFileError(msg) from e

    try:
        symbols = ExternalSymbols.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid externals file {path}: {e}"
        raise ExternalsFileError(msg) from e
    logger.debug(f"Loaded {len(symbols.constants)} constant(s) and {len(symbols.enums)} enum table(s) from {path}")
    return symbols


class VariantDescription(BaseModel):
    name: str
    value: int | None = None


class TypeDescription(BaseModel):
    """Public surface of one generated wrapper type."""

    name: str
    qualified_name: str
    underlying_type: str
    type_visibility: str
    field_visibility: str
    field_name: str
    variants: list[VariantDescription]
    operators: list[str]
    iteration_type: str
    has_get_bit: bool
    has_new: bool
    companion_name: str | None = None

    @classmethod
    def from_generated(cls, generated: GeneratedType) -> "TypeDescription":
        return cls(
            name=generated.name,
            qualified_name=generated.qualified_name,
            underlying_type=generated.underlying_type,
            type_visibility=generated.type_visibility,
            field_visibility=generated.field_visibility,
            field_name=generated.field_name,
            variants=[
                VariantDescription(name=name, value=value)
                for name, value in zip(generated.variant_names, generated.variant_values, strict=True)
            ],
            operators=list(generated.operators),
            iteration_type=generated.iteration_type,
            has_get_bit=generated.has_get_bit,
            has_new=generated.has_new,
            companion_name=generated.companion_name,
        )


class UnitDescription(BaseModel):
    """Everything a compiled unit exposes."""

    source: str | None = None
    types: list[TypeDescription]
    symbols: list[str] = Field(default_factory=list)

    @classmethod
    def from_unit(cls, unit: CompiledUnit, source: str | None = None) -> "UnitDescription":
        return cls(
            source=source,
            types=[TypeDescription.from_generated(t) for t in unit.types],
            symbols=sorted(unit.symbols),
        )


def _drop_none(value: Any) -> Any:
    """Recursively remove None values, which TOML cannot represent."""
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value]
    return value


def dump_description(description: UnitDescription, path: Path, *, indent: int = 2) -> None:
    """Write a unit description as JSON or, for a ``.toml`` path, as TOML."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".toml":
        data = _drop_none(description.model_dump(mode="python"))
        with path.open("wb") as f:
            tomli_w.dump(data, f)
    else:
        path.write_text(description.model_dump_json(indent=indent) + "\n", encoding="utf-8")
    logger.debug(f"Wrote description of {len(description.types)} type(s) to {path}")
