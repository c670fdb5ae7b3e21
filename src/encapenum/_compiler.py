"""Compiler facade: declaration text in, Python module out."""

from __future__ import annotations

import keyword
import logging
import sys
import types
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ._emitter import (
    COMPANION_PREFIX,
    GENERATED_MEMBERS,
    ORDINAL_TABLE_RESERVED,
    SCOPE_NAMES,
    GeneratedType,
    render_module,
)
from ._errors import CollisionError, ShapeMismatchError
from ._lexer import tokenize
from ._matcher import match_declaration, split_blocks
from ._resolver import ExternalEnvironment, ResolvedEnum, resolve_unit

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ._ast import Declaration, EnumSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompiledUnit:
    """Result of compiling one declaration text.

    Attributes:
        declarations: Matched declaration blocks in source order.
        resolved: Resolved enumerations in declaration order.
        types: Generated type descriptions in declaration order.
        source: Text of the generated Python module.
        symbols: External constants the module needs at import time.

    """

    declarations: tuple[Declaration, ...]
    resolved: tuple[ResolvedEnum, ...]
    types: tuple[GeneratedType, ...]
    source: str
    symbols: frozenset[str] = field(default_factory=frozenset)

    def get_type(self, name: str) -> GeneratedType:
        """Get a generated type by name or dotted qualified name.

        Raises:
            KeyError: If no type matches, or a bare name is ambiguous.

        """
        for generated in self.types:
            if generated.qualified_name == name:
                return generated
        matches = [t for t in self.types if t.name == name]
        if len(matches) == 1:
            return matches[0]
        if matches:
            candidates = ", ".join(t.qualified_name for t in matches)
            msg = f"Ambiguous type name '{name}' (candidates: {candidates})"
            raise KeyError(msg)
        msg = f"Type '{name}' not found"
        raise KeyError(msg)


def _check_identifier(name: str, what: str, position: tuple[int | None, int | None]) -> None:
    if keyword.iskeyword(name) or name.startswith("__"):
        msg = f"{what} '{name}' cannot be used as a name in generated Python code"
        raise ShapeMismatchError(msg, line=position[0], column=position[1])


def _check_scope_name(
    name: str,
    what: str,
    position: tuple[int | None, int | None],
    label: str | None = None,
) -> None:
    if name in SCOPE_NAMES:
        msg = f"{what} '{label or name}' collides with a name the generated code relies on"
        raise CollisionError(msg, line=position[0], column=position[1])


def _position(spec: EnumSpec) -> tuple[int | None, int | None]:
    if spec.position is None:
        return None, None
    return spec.position.line, spec.position.column


def check_collisions(declarations: Sequence[Declaration]) -> None:
    """Reject names that would silently rebind in the generated module.

    Raises:
        CollisionError: On duplicate variant, enumeration or module names in
            one scope, variants named like generated members, or names that
            clash with a companion table.
        ShapeMismatchError: On names that are not usable Python identifiers.

    """
    top_level: dict[str, str] = {}

    def claim(scope: dict[str, str], name: str, what: str, spec: EnumSpec | None = None) -> None:
        if name in scope:
            line, column = _position(spec) if spec is not None else (None, None)
            msg = f"{what} '{name}' collides with {scope[name]} of the same name"
            raise CollisionError(msg, line=line, column=column)
        scope[name] = what

    for declaration in declarations:
        module = declaration.module_name
        if module is not None:
            _check_identifier(module, "module", (None, None))
            _check_scope_name(module, "module", (None, None))
            if module.startswith(COMPANION_PREFIX):
                msg = f"module '{module}' uses the reserved prefix '{COMPANION_PREFIX}'"
                raise CollisionError(msg)
            claim(top_level, module, "module")
        scope = top_level if module is None else {}

        for spec in declaration.enums:
            position = _position(spec)
            _check_identifier(spec.name, "enum", position)
            _check_scope_name(spec.name, "enum", position)
            if spec.name.startswith(COMPANION_PREFIX):
                msg = f"enum '{spec.name}' uses the reserved prefix '{COMPANION_PREFIX}'"
                raise CollisionError(msg, line=position[0], column=position[1])
            claim(scope, spec.name, "enum", spec)

            variants: dict[str, str] = {}
            for variant in spec.variants:
                line = variant.position.line if variant.position else None
                column = variant.position.column if variant.position else None
                _check_identifier(variant.name, "variant", (line, column))
                if variant.name in GENERATED_MEMBERS:
                    msg = f"variant '{spec.name}::{variant.name}' collides with a generated member"
                    raise CollisionError(msg, line=line, column=column)
                _check_scope_name(variant.name, "variant", (line, column), f"{spec.name}::{variant.name}")
                if variant.name.startswith(COMPANION_PREFIX):
                    msg = f"variant '{spec.name}::{variant.name}' uses the reserved prefix '{COMPANION_PREFIX}'"
                    raise CollisionError(msg, line=line, column=column)
                if variant.is_fieldless and (
                    (variant.name.startswith("_") and variant.name.endswith("_"))
                    or variant.name in ORDINAL_TABLE_RESERVED
                ):
                    msg = f"variant '{spec.name}::{variant.name}' collides with a reserved ordinal table name"
                    raise CollisionError(msg, line=line, column=column)
                if variant.name in variants:
                    msg = f"duplicate variant '{variant.name}' in enum '{spec.name}'"
                    raise CollisionError(msg, line=line, column=column)
                variants[variant.name] = "variant"


def check_symbol_collisions(declarations: Sequence[Declaration], resolved: Sequence[ResolvedEnum]) -> None:
    """Reject external constants shadowed by names of the generated module.

    Symbolic values refer to external constants by name when the generated
    class body runs, where earlier variants and module-level names win.

    Raises:
        CollisionError: If an external constant shares such a name.

    """
    module_names = set(SCOPE_NAMES)
    for declaration in declarations:
        if declaration.module_name is None:
            module_names.update(spec.name for spec in declaration.enums)
        else:
            module_names.update((declaration.module_name, f"{COMPANION_PREFIX}{declaration.module_name}"))

    for enum in resolved:
        variant_names = {v.name for v in enum.variants}
        for symbol in sorted(enum.symbols):
            if symbol in variant_names or symbol in module_names:
                line, column = _position(enum.spec)
                msg = f"external constant '{symbol}' used by enum '{enum.spec.qualified_name}' is shadowed by a generated name"
                raise CollisionError(msg, line=line, column=column)


def compile_source(
    text: str,
    *,
    externals: Mapping[str, int] | None = None,
    external_enums: Mapping[str, Mapping[str, int]] | None = None,
    strict_externals: bool = False,
    module_name: str | None = None,
    preamble: Sequence[str] = (),
) -> CompiledUnit:
    """Compile declaration text into a Python module.

    Args:
        text: Declaration text, either bare declarations or one or more
            ``encap_enum! { ... }`` invocations.
        externals: Values of external constants.
        external_enums: Variant tables of external enumerations.
        strict_externals: Fail instead of emitting symbolic values when an
            external constant is missing.
        module_name: Name of the source, used in the module docstring.
        preamble: Lines inserted after the imports of the generated module.

    Returns:
        The compiled unit. Compilation is all or nothing.

    Raises:
        EncapEnumError: Any lexing, shape, resolution or collision error.

    Example:
        >>> unit = compile_source("pub enum Flags: pub u8 { A = 1, B = A << 1 }")
        >>> unit.get_type("Flags").variant_values
        (1, 2)

    """
    tokens = tokenize(text)
    blocks = split_blocks(tokens)
    logger.debug(f"Found {len(blocks)} declaration block(s)")
    declarations = tuple(match_declaration(block) for block in blocks)
    check_collisions(declarations)

    env = ExternalEnvironment(
        constants=dict(externals or {}),
        enums={name: dict(table) for name, table in (external_enums or {}).items()},
        strict=strict_externals,
    )
    resolved = resolve_unit(declarations, env)
    check_symbol_collisions(declarations, resolved)
    by_name = {r.spec.qualified_name: r for r in resolved}
    source, generated = render_module(declarations, by_name, module_name=module_name, preamble=preamble)

    symbols = frozenset().union(*(r.symbols for r in resolved))
    if symbols:
        logger.info(f"Values depending on external constants resolved at import time: {sorted(symbols)}")
    return CompiledUnit(
        declarations=declarations,
        resolved=tuple(resolved),
        types=tuple(generated),
        source=source,
        symbols=symbols,
    )


def compile_file(path: Path | str, **kwargs: object) -> CompiledUnit:
    """Compile a declaration file.

    Keyword arguments are passed on to :func:`compile_source`.
    """
    path = Path(path)
    logger.debug(f"Compiling {path}")
    text = path.read_text(encoding="utf-8")
    kwargs.setdefault("module_name", path.name)
    return compile_source(text, **kwargs)  # type: ignore[arg-type]


def load_module(
    unit: CompiledUnit,
    name: str = "encapenum_generated",
    symbols: Mapping[str, int] | None = None,
    *,
    register: bool = False,
) -> types.ModuleType:
    """Execute the generated source in a fresh module object.

    The module sits in ``sys.modules`` while its body runs, as it would
    during a regular import. Unless ``register`` is set, the previous entry
    is restored afterwards.

    Args:
        unit: The compiled unit.
        name: Name of the new module.
        symbols: Values for external constants left symbolic at compile time.
        register: Keep the module in ``sys.modules``.

    Raises:
        NameError: If a symbolic value refers to a constant that is neither
            supplied nor defined by the preamble.
        OverflowError: If a symbolic value does not fit its type.

    """
    module = types.ModuleType(name)
    module.__dict__.update(symbols or {})
    # Compile with this interpreter's defaults, not this module's __future__ flags
    code = compile(unit.source, f"<encapenum:{name}>", "exec", dont_inherit=True)

    previous = sys.modules.get(name)
    sys.modules[name] = module
    try:
        exec(code, module.__dict__)  # noqa: S102
    except BaseException:
        _restore_module(name, previous)
        raise
    if not register:
        _restore_module(name, previous)
    logger.debug(f"Loaded generated module {name}")
    return module


def _restore_module(name: str, previous: types.ModuleType | None) -> None:
    if previous is None:
        sys.modules.pop(name, None)
    else:
        sys.modules[name] = previous
