"""Compiler for compact bitmask and enumeration declarations."""

__all__ = [
    "AttributePlacementError",
    "CollisionError",
    "CompiledUnit",
    "Declaration",
    "DeclarationShape",
    "EncapEnumError",
    "EnumSpec",
    "ExternalEnvironment",
    "ExternalSymbols",
    "GeneratedType",
    "IntegerType",
    "LexError",
    "ResolutionError",
    "ResolvedEnum",
    "ResolvedVariant",
    "ShapeMismatchError",
    "VariantSpec",
    "Visibility",
    "compile_file",
    "compile_source",
    "load_externals",
    "load_module",
    "resolve_unit",
]

from ._ast import Declaration, DeclarationShape, EnumSpec, VariantSpec, Visibility
from ._compiler import CompiledUnit, compile_file, compile_source, load_module
from ._emitter import GeneratedType
from ._errors import (
    AttributePlacementError,
    CollisionError,
    EncapEnumError,
    LexError,
    ResolutionError,
    ShapeMismatchError,
)
from ._int_types import IntegerType
from ._io import ExternalSymbols, load_externals
from ._resolver import ExternalEnvironment, ResolvedEnum, ResolvedVariant, resolve_unit
