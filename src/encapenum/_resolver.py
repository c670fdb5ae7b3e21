"""Expression resolver.

Computes the value of every variant. Known values are folded to integers
with the same checked arithmetic the generated code uses; values that depend
on external constants missing at compile time become self-contained Python
expressions evaluated when the generated module is imported.

Enumerations of one compilation unit may refer to each other through
``(enum T) NAME``. Those references form a dependency graph that must be
acyclic; enumerations are resolved in topological order.
"""

from __future__ import annotations

import keyword
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from . import runtime
from ._ast import (
    BinaryOp,
    EnumAnnotation,
    ExternalReference,
    LegacyAnnotation,
    Literal,
    SelfReference,
    TypeAnnotation,
    UnaryNegate,
)
from ._errors import ResolutionError
from ._graph import CycleError, DependencyGraph

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence

    from ._ast import Declaration, EnumSpec, ExpressionNode, VariantSpec
    from ._int_types import IntegerType

logger = logging.getLogger(__name__)

# Name under which generated modules import encapenum.runtime.
RUNTIME_ALIAS = "_rt"


def type_expression(ty: IntegerType) -> str:
    """Python expression evaluating to ``ty`` inside a generated module."""
    return f"{RUNTIME_ALIAS}.INTEGER_TYPES[{ty.name!r}]"


@dataclass(frozen=True, slots=True)
class ExternalEnvironment:
    """Symbols defined outside the declarations being compiled.

    Attributes:
        constants: External integer constants by name.
        enums: External enumeration tables, ``{"Path": {"VARIANT": value}}``.
        strict: Treat a missing external constant as an error instead of
            leaving the value symbolic.

    """

    constants: Mapping[str, int] = field(default_factory=dict)
    enums: Mapping[str, Mapping[str, int]] = field(default_factory=dict)
    strict: bool = False


@dataclass(frozen=True, slots=True)
class _Value:
    known: int | None
    expr: str
    symbols: frozenset[str] = frozenset()

    @classmethod
    def constant(cls, value: int) -> _Value:
        return cls(value, repr(value))


@dataclass(frozen=True, slots=True)
class ResolvedVariant:
    """The resolved value of one variant.

    Attributes:
        name: Variant name.
        value: The integer value, or None when it depends on an external
            constant that was not supplied at compile time.
        expression: Python expression producing the value in generated code.
        ordinal: 0-based position for fieldless variants, else None.
        doc_attributes: Passthrough metadata.
        symbols: External constant names the expression depends on.

    """

    name: str
    value: int | None
    expression: str
    ordinal: int | None = None
    doc_attributes: tuple[str, ...] = ()
    symbols: frozenset[str] = frozenset()

    @property
    def is_symbolic(self) -> bool:
        return self.value is None


@dataclass(frozen=True, slots=True)
class ResolvedEnum:
    """An enumeration with every variant resolved, in declaration order."""

    spec: EnumSpec
    variants: tuple[ResolvedVariant, ...]
    dependencies: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def values(self) -> tuple[int | None, ...]:
        return tuple(v.value for v in self.variants)

    @property
    def symbols(self) -> frozenset[str]:
        return frozenset().union(*(v.symbols for v in self.variants))

    def variant(self, name: str) -> ResolvedVariant:
        """Get a variant by name.

        Raises:
            KeyError: If the enumeration has no such variant.

        """
        for v in self.variants:
            if v.name == name:
                return v
        msg = f"Enum '{self.spec.qualified_name}' has no variant '{name}'"
        raise KeyError(msg)


def iter_enum_references(node: ExpressionNode) -> Iterator[str]:
    """Yield the enumeration paths of every ``(enum T)`` reference in ``node``."""
    match node:
        case ExternalReference(_, EnumAnnotation(path)):
            yield path
        case BinaryOp(_, left, rights):
            yield from iter_enum_references(left)
            for right in rights:
                yield from iter_enum_references(right)
        case _:
            return


class _EnumIndex:
    def __init__(self, specs: Sequence[EnumSpec]) -> None:
        self.by_qualified: dict[str, EnumSpec] = {s.qualified_name: s for s in specs}
        self.by_bare: dict[str, list[EnumSpec]] = {}
        for spec in specs:
            self.by_bare.setdefault(spec.name, []).append(spec)

    def find(self, path: str, module: str | None) -> EnumSpec | None:
        """Find the enumeration a path refers to from inside ``module``.

        Qualified paths must match exactly. A bare name prefers the same
        module, then the block scope, then a unique match anywhere.
        """
        if "::" in path:
            return self.by_qualified.get(path)
        if module is not None and f"{module}::{path}" in self.by_qualified:
            return self.by_qualified[f"{module}::{path}"]
        if path in self.by_qualified:
            return self.by_qualified[path]
        candidates = self.by_bare.get(path, [])
        if len(candidates) > 1:
            names = ", ".join(s.qualified_name for s in candidates)
            msg = f"ambiguous enumeration reference '{path}' (candidates: {names})"
            raise ResolutionError(msg)
        return candidates[0] if candidates else None


class _EnumResolver:
    def __init__(
        self,
        spec: EnumSpec,
        env: ExternalEnvironment,
        find_enum: Callable[[str], ResolvedEnum | None],
    ) -> None:
        self.spec = spec
        self.ty = spec.underlying_type
        self.env = env
        self.find_enum = find_enum
        self.declared = {v.name for v in spec.variants}
        self.bound: dict[str, _Value] = {}
        self.dependencies: list[str] = []
        self.current: VariantSpec | None = None

    def _error(self, message: str) -> ResolutionError:
        variant = self.current
        where = f"{self.spec.qualified_name}::{variant.name}" if variant else self.spec.qualified_name
        msg = f"{where}: {message}"
        position = variant.position if variant and variant.position else self.spec.position
        if position is None:
            return ResolutionError(msg)
        return ResolutionError(msg, line=position.line, column=position.column)

    def resolve(self) -> ResolvedEnum:
        variants: list[ResolvedVariant] = []
        for index, variant in enumerate(self.spec.variants):
            self.current = variant
            ordinal = None
            if variant.value_expr is None:
                ordinal = index
                if not self.ty.contains(index):
                    raise self._error(f"ordinal {index} does not fit {self.ty}")
                value = _Value.constant(index)
            else:
                value = self._eval(variant.value_expr)
            self.bound[variant.name] = value
            variants.append(
                ResolvedVariant(
                    name=variant.name,
                    value=value.known,
                    expression=value.expr,
                    ordinal=ordinal,
                    doc_attributes=variant.doc_attributes,
                    symbols=value.symbols,
                ),
            )
            logger.debug(f"  {self.spec.qualified_name}::{variant.name} = {value.expr}")
        self.current = None
        return ResolvedEnum(
            spec=self.spec,
            variants=tuple(variants),
            dependencies=tuple(dict.fromkeys(self.dependencies)),
        )

    def _eval(self, node: ExpressionNode) -> _Value:
        match node:
            case Literal(value, suffix):
                if suffix is not None and not suffix.contains(value):
                    raise self._error(f"literal {value} out of range for {suffix}")
                if not self.ty.contains(value):
                    raise self._error(f"literal {value} out of range for {self.ty}")
                return _Value.constant(value)
            case SelfReference(name):
                return self._self_reference(name)
            case UnaryNegate(SelfReference(name)):
                if not self.ty.signed:
                    msg = f"cannot negate '{name}': underlying type {self.ty} is unsigned"
                    raise self._error(msg)
                return self._apply("-", _Value.constant(0), self._self_reference(name))
            case ExternalReference(name, EnumAnnotation(path)):
                return self._enum_reference(path, name)
            case ExternalReference(name, TypeAnnotation(source)):
                return self._constant_reference(name, source)
            case ExternalReference(name, LegacyAnnotation()):
                return self._constant_reference(name, self.ty)
            case BinaryOp(op, left, rights):
                acc = self._eval(left)
                for right in rights:
                    acc = self._apply(str(op), acc, self._eval(right))
                return acc
            case _:
                msg = f"unsupported expression node: {node!r}"
                raise TypeError(msg)

    def _apply(self, op: str, left: _Value, right: _Value) -> _Value:
        if left.known is not None and right.known is not None:
            try:
                return _Value.constant(runtime.const_op(op, left.known, right.known, self.ty))
            except ArithmeticError as e:
                raise self._error(str(e)) from e
        return _Value(
            None,
            f"{RUNTIME_ALIAS}.const_op({op!r}, {left.expr}, {right.expr}, {type_expression(self.ty)})",
            left.symbols | right.symbols,
        )

    def _cast(self, value: _Value, source: IntegerType) -> _Value:
        if value.known is not None:
            try:
                runtime.const_cast(value.known, source, self.ty)
            except OverflowError as e:
                raise self._error(str(e)) from e
            return value
        if source == self.ty and value.expr.startswith(f"{RUNTIME_ALIAS}.const_"):
            return value
        return _Value(
            None,
            f"{RUNTIME_ALIAS}.const_cast({value.expr}, {type_expression(source)}, {type_expression(self.ty)})",
            value.symbols,
        )

    def _self_reference(self, name: str) -> _Value:
        if name in self.bound:
            return self.bound[name]
        if self.current is not None and name == self.current.name:
            raise self._error(f"variant '{name}' cannot refer to itself")
        if name in self.declared:
            raise self._error(f"'{name}' is declared later; variants may only refer to earlier variants")
        msg = f"unknown variant '{name}' (annotate external constants, e.g. '({self.ty}) {name}')"
        raise self._error(msg)

    def _constant_reference(self, name: str, source: IntegerType) -> _Value:
        if name in self.env.constants:
            return self._cast(_Value.constant(self.env.constants[name]), source)
        if self.env.strict:
            raise self._error(f"external constant '{name}' is not defined")
        if keyword.iskeyword(name):
            raise self._error(f"external constant '{name}' is a reserved word in Python")
        return self._cast(_Value(None, name, frozenset({name})), source)

    def _enum_reference(self, path: str, name: str) -> _Value:
        if path in (self.spec.name, self.spec.qualified_name):
            return self._self_reference(name)

        target = self.find_enum(path)
        if target is not None:
            self.dependencies.append(target.spec.qualified_name)
            try:
                variant = target.variant(name)
            except KeyError as e:
                raise self._error(f"enumeration '{path}' has no variant '{name}'") from e
            value = _Value(variant.value, variant.expression, variant.symbols)
            return self._cast(value, target.spec.underlying_type)

        table = self.env.enums.get(path)
        if table is None:
            raise self._error(f"unknown enumeration '{path}'")
        if name not in table:
            raise self._error(f"enumeration '{path}' has no variant '{name}'")
        return self._cast(_Value.constant(table[name]), self.ty)


def resolve_enum(
    spec: EnumSpec,
    env: ExternalEnvironment | None = None,
    find_enum: Callable[[str], ResolvedEnum | None] | None = None,
) -> ResolvedEnum:
    """Resolve every variant of a single enumeration.

    Args:
        spec: The enumeration to resolve.
        env: External constants and enumeration tables.
        find_enum: Lookup for other enumerations of the same unit.

    Raises:
        ResolutionError: On unknown, forward or self references, missing or
            out-of-range external values, negation of an unsigned variant,
            division by zero or overflow of the underlying type.

    """
    resolver = _EnumResolver(spec, env or ExternalEnvironment(), find_enum or (lambda _path: None))
    return resolver.resolve()


def resolve_unit(
    declarations: Sequence[Declaration],
    env: ExternalEnvironment | None = None,
) -> list[ResolvedEnum]:
    """Resolve all enumerations of a compilation unit.

    Returns:
        Resolved enumerations in declaration order.

    Raises:
        ResolutionError: If a variant cannot be resolved or enumerations
            refer to each other in a cycle.

    """
    env = env or ExternalEnvironment()
    specs = [spec for declaration in declarations for spec in declaration.enums]
    index = _EnumIndex(specs)

    edges: list[tuple[str, str]] = []
    for spec in specs:
        for variant in spec.variants:
            if variant.value_expr is None:
                continue
            for path in iter_enum_references(variant.value_expr):
                target = index.find(path, spec.module_group)
                if target is not None and target is not spec:
                    edges.append((target.qualified_name, spec.qualified_name))

    graph = DependencyGraph.from_edges([s.qualified_name for s in specs], edges)
    try:
        order = graph.topological_order()
    except CycleError as e:
        members = ", ".join(str(m) for m in e.members)
        msg = f"circular references between enumerations: {members}"
        raise ResolutionError(msg) from e
    logger.debug(f"Resolution order: {order}")

    resolved: dict[str, ResolvedEnum] = {}
    for qualified_name in order:
        spec = index.by_qualified[qualified_name]

        def find_enum(path: str, module: str | None = spec.module_group) -> ResolvedEnum | None:
            target = index.find(path, module)
            return resolved.get(target.qualified_name) if target is not None else None

        resolved[qualified_name] = resolve_enum(spec, env, find_enum)

    return [resolved[s.qualified_name] for s in specs]
