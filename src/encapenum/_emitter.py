"""Python source emitter.

Renders resolved enumerations as a Python module. Every enumeration becomes a
slotted dataclass wrapping one integer field, with variant constants, the
fixed operator set and the iteration accessor. Module wrappers become
namespace classes; fieldless enumerations take their constants from a private
companion table of ordinals.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._resolver import RUNTIME_ALIAS

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ._ast import Declaration, EnumSpec
    from ._resolver import ResolvedEnum

logger = logging.getLogger(__name__)

INDENT = "    "
COMPANION_PREFIX = "_encap_enum_"

# (operator, dunder stem, raw expression template)
_BINARY_OPERATORS: tuple[tuple[str, str, str], ...] = (
    ("|", "or", "{rt}.wrap({a} | {b}, {ty})"),
    ("&", "and", "{rt}.wrap({a} & {b}, {ty})"),
    ("^", "xor", "{rt}.wrap({a} ^ {b}, {ty})"),
    ("+", "add", "{rt}.wrap({a} + {b}, {ty})"),
    ("-", "sub", "{rt}.wrap({a} - {b}, {ty})"),
    ("*", "mul", "{rt}.wrap({a} * {b}, {ty})"),
    ("/", "truediv", "{rt}.div({a}, {b}, {ty})"),
    ("/", "floordiv", "{rt}.div({a}, {b}, {ty})"),
    ("%", "mod", "{rt}.rem({a}, {b}, {ty})"),
    ("<<", "lshift", "{rt}.shl({a}, {b}, {ty})"),
    (">>", "rshift", "{rt}.shr({a}, {b}, {ty})"),
)

BINARY_OPERATORS: tuple[str, ...] = tuple(dict.fromkeys(op for op, _, _ in _BINARY_OPERATORS))
INPLACE_OPERATORS: tuple[str, ...] = tuple(f"{op}=" for op in BINARY_OPERATORS)

# Members every wrapper defines; variants cannot reuse these names.
GENERATED_MEMBERS = frozenset(
    {
        "raw",
        "_raw",
        "new",
        "iter",
        "get_bit",
        "from_raw",
        "_VALUES",
        "_NAMES",
    },
)

# Names the generated code looks up at module scope or inside class bodies,
# where a declared name of the same spelling would take their place.
SCOPE_NAMES = frozenset(
    {
        "_dc",
        "_enum",
        RUNTIME_ALIAS,
        "bool",
        "classmethod",
        "int",
        "iter",
        "type",
        "NotImplemented",
        "OverflowError",
    },
)

# Valid identifiers the IntEnum functional API refuses as member names.
ORDINAL_TABLE_RESERVED = frozenset({"mro"})

_DOC_RE = re.compile(r"^doc\s*=\s*(?P<literal>(?:\"|').*)$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class GeneratedType:
    """Description of the public surface of one generated wrapper.

    Attributes:
        name: Type name.
        qualified_name: Dotted name inside the generated module.
        underlying_type: Name of the wrapped integer type.
        type_visibility: Declared visibility of the type.
        field_visibility: Declared visibility of the raw field.
        field_name: Attribute holding the raw value.
        variant_names: Variant names in declaration order.
        variant_values: Variant values, None where only known at import time.
        operators: Operators the type supports.
        iteration_type: Element type produced by ``iter()``.
        has_get_bit: Whether ``get_bit`` is generated.
        has_new: Whether ``new`` is generated.
        companion_name: Dotted name of the companion ordinal table, if any.

    """

    name: str
    qualified_name: str
    underlying_type: str
    type_visibility: str
    field_visibility: str
    field_name: str
    variant_names: tuple[str, ...]
    variant_values: tuple[int | None, ...]
    operators: tuple[str, ...]
    iteration_type: str
    has_get_bit: bool
    has_new: bool
    companion_name: str | None = None
    module_group: str | None = None

    @property
    def is_public(self) -> bool:
        return self.type_visibility != "private"


def companion_namespace(module: str) -> str:
    """Name of the private namespace holding a module's ordinal tables."""
    return f"{COMPANION_PREFIX}{module}"


def operators_for(spec: EnumSpec) -> tuple[str, ...]:
    unary = ("~", "-x") if spec.underlying_type.signed else ("~",)
    return (*BINARY_OPERATORS, *INPLACE_OPERATORS, *unary, "from_raw")


def _doc_text(attribute: str) -> str | None:
    """Return the text of a ``doc = "..."`` attribute, None for other attributes."""
    match = _DOC_RE.match(attribute.strip())
    if match is None:
        return None
    literal = match.group("literal")
    try:
        value = ast.literal_eval(literal)
    except (ValueError, SyntaxError):
        return literal.strip("\"'")
    return value if isinstance(value, str) else None


def _docstring(lines: Sequence[str], indent: str) -> list[str]:
    text = "\n".join(line.strip() for line in lines)
    text = text.replace("\\", "\\\\").replace('"', '\\"')
    if "\n" not in text:
        return [f'{indent}"""{text}"""']
    body = [f"{indent}{line}" if line else "" for line in text.split("\n")]
    return [f'{indent}"""{body[0].strip()}', *body[1:], f'{indent}"""']


def _metadata(attributes: Sequence[str], indent: str) -> tuple[list[str], list[str]]:
    """Split metadata into doc lines and attribute comments."""
    docs: list[str] = []
    comments: list[str] = []
    for attribute in attributes:
        text = _doc_text(attribute)
        if text is None:
            flattened = " ".join(attribute.split())
            comments.append(f"{indent}# #[{flattened}]")
        else:
            docs.append(text)
    return docs, comments


def _binary_methods(field: str, indent: str) -> list[str]:
    lines: list[str] = []
    for _, stem, template in _BINARY_OPERATORS:
        raw = template.format(
            rt=RUNTIME_ALIAS,
            a=f"self.{field}",
            b=f"other.{field}",
            ty="self.__underlying_type__",
        )
        lines += [
            f"{indent}def __{stem}__(self, other):",
            f"{indent}{INDENT}if type(other) is not type(self):",
            f"{indent}{INDENT}{INDENT}return NotImplemented",
            f"{indent}{INDENT}return type(self)({raw})",
            "",
            f"{indent}def __i{stem}__(self, other):",
            f"{indent}{INDENT}if type(other) is not type(self):",
            f"{indent}{INDENT}{INDENT}return NotImplemented",
            f"{indent}{INDENT}self.{field} = {raw}",
            f"{indent}{INDENT}return self",
            "",
        ]
    return lines


def render_enum(
    resolved: ResolvedEnum,
    indent: str = "",
    companion: str | None = None,
) -> tuple[GeneratedType, list[str]]:
    """Render one wrapper class.

    Args:
        resolved: The resolved enumeration.
        indent: Indentation of the ``class`` line.
        companion: Dotted name of the companion ordinal table for fieldless
            enumerations inside a module.

    Returns:
        The description of the generated type and its source lines.

    """
    spec = resolved.spec
    ty = spec.underlying_type
    public_field = not spec.field_visibility.is_private
    field = "raw" if public_field else "_raw"
    body = indent + INDENT
    method = body + INDENT

    docs, comments = _metadata(spec.attributes, indent)
    lines = [
        *comments,
        f"{indent}@_dc.dataclass(order=True, unsafe_hash=True, slots=True)",
        f"{indent}class {spec.name}:",
    ]
    if docs:
        lines += _docstring(docs, body)
        lines.append("")

    lines += [
        f"{body}{field}: int",
        "",
        f"{body}__underlying_type__ = {RUNTIME_ALIAS}.INTEGER_TYPES[{ty.name!r}]",
        f"{body}__type_visibility__ = {str(spec.type_visibility) or 'private'!r}",
        f"{body}__field_visibility__ = {str(spec.field_visibility) or 'private'!r}",
        "",
    ]

    for variant in resolved.variants:
        variant_docs, variant_comments = _metadata(variant.doc_attributes, body)
        lines += variant_comments
        lines += [f"{body}#: {line}" for doc in variant_docs for line in doc.splitlines() or [""]]
        if variant.ordinal is not None and companion is not None:
            value = f"{companion}.{spec.name}.{variant.name}.value"
        else:
            value = variant.expression
        lines.append(f"{body}{variant.name} = {RUNTIME_ALIAS}.VariantConstant({value})")

    names = ", ".join(repr(v.name) for v in resolved.variants)
    raws = ", ".join(f"{v.name}.raw" for v in resolved.variants)
    lines += [
        "",
        f"{body}_NAMES = ({names},)",
        f"{body}_VALUES = ({raws},)",
        "",
        f"{body}def __post_init__(self):",
        f"{method}if not self.__underlying_type__.contains(self.{field}):",
        f"{method}{INDENT}msg = f'{{self.{field}}} out of range for {ty.name}'",
        f"{method}{INDENT}raise OverflowError(msg)",
        "",
        f"{body}@classmethod",
        f"{body}def from_raw(cls, raw: int):",
        f'{method}"""Build a value from any integer, wrapping it to {ty.name}."""',
        f"{method}return cls({RUNTIME_ALIAS}.wrap(raw, cls.__underlying_type__))",
        "",
        f"{body}@classmethod",
        f"{body}def iter(cls):",
        f'{method}"""Iterate over the raw value of every variant in declaration order."""',
        f"{method}return iter(cls._VALUES)",
        "",
    ]
    if public_field:
        lines += [
            f"{body}@classmethod",
            f"{body}def new(cls, raw: int):",
            f"{method}return cls(raw)",
            "",
            f"{body}def get_bit(self, index: int) -> bool:",
            f"{method}return (self.{field} & (1 << index)) != 0",
            "",
        ]

    lines += _binary_methods(field, body)
    lines += [
        f"{body}def __invert__(self):",
        f"{method}return type(self)({RUNTIME_ALIAS}.invert(self.{field}, self.__underlying_type__))",
    ]
    if ty.signed:
        lines += [
            "",
            f"{body}def __neg__(self):",
            f"{method}return type(self)({RUNTIME_ALIAS}.wrap(0 - self.{field}, self.__underlying_type__))",
        ]

    qualified_name = spec.name if spec.module_group is None else f"{spec.module_group}.{spec.name}"
    generated = GeneratedType(
        name=spec.name,
        qualified_name=qualified_name,
        underlying_type=ty.name,
        type_visibility=spec.type_visibility.level.value,
        field_visibility=spec.field_visibility.level.value,
        field_name=field,
        variant_names=tuple(v.name for v in resolved.variants),
        variant_values=resolved.values,
        operators=operators_for(spec),
        iteration_type=ty.name,
        has_get_bit=public_field,
        has_new=public_field,
        companion_name=f"{companion}.{spec.name}" if companion is not None else None,
        module_group=spec.module_group,
    )
    logger.debug(f"Emitted {qualified_name} ({len(lines)} lines)")
    return generated, lines


def _render_companion(module: str, fieldless: Sequence[ResolvedEnum]) -> list[str]:
    lines = [f"class {companion_namespace(module)}:"]
    for resolved in fieldless:
        names = ", ".join(repr(v.name) for v in resolved.variants)
        lines.append(
            f"{INDENT}{resolved.spec.name} = _enum.IntEnum({resolved.spec.name!r}, [{names}], start=0)",
        )
    return lines


def _render_declaration(
    declaration: Declaration,
    resolved: Mapping[str, ResolvedEnum],
) -> tuple[list[GeneratedType], list[str], list[str]]:
    """Render one declaration block, returning its types, lines and public names."""
    types: list[GeneratedType] = []
    lines: list[str] = []
    exported: list[str] = []

    if declaration.module_name is None:
        for spec in declaration.enums:
            generated, enum_lines = render_enum(resolved[spec.qualified_name])
            types.append(generated)
            lines += ["", "", *enum_lines]
            if generated.is_public:
                exported.append(spec.name)
        return types, lines, exported

    module = declaration.module_name
    members = [resolved[spec.qualified_name] for spec in declaration.enums]
    fieldless = [r for r in members if r.spec.is_fieldless]
    companion = companion_namespace(module) if fieldless else None
    if fieldless:
        lines += ["", "", *_render_companion(module, fieldless)]

    docs, comments = _metadata(declaration.module_attributes, "")
    lines += ["", "", *comments, f"class {module}:"]
    if docs:
        lines += _docstring(docs, INDENT)
    else:
        lines.append(f'{INDENT}"""Namespace of module {module}."""')
    for member in members:
        generated, enum_lines = render_enum(
            member,
            indent=INDENT,
            companion=companion if member.spec.is_fieldless else None,
        )
        types.append(generated)
        lines += ["", *enum_lines]

    if not declaration.module_visibility.is_private:
        exported.append(module)
    return types, lines, exported


def render_module(
    declarations: Sequence[Declaration],
    resolved: Mapping[str, ResolvedEnum],
    *,
    module_name: str | None = None,
    preamble: Sequence[str] = (),
) -> tuple[str, list[GeneratedType]]:
    """Render a whole compilation unit as the text of one Python module.

    Args:
        declarations: Matched declaration blocks in source order.
        resolved: Resolved enumerations keyed by qualified name.
        module_name: Name mentioned in the module docstring.
        preamble: Extra lines placed after the imports, e.g. imports of
            external constants used by symbolic values.

    Returns:
        The module source and the generated types in declaration order.

    """
    types: list[GeneratedType] = []
    body: list[str] = []
    exported: list[str] = []
    for declaration in declarations:
        block_types, block_lines, block_exports = _render_declaration(declaration, resolved)
        types += block_types
        body += block_lines
        exported += block_exports

    needs_enum = any(t.companion_name is not None for t in types)
    origin = f" from {module_name}" if module_name else ""
    header = [
        f'"""Generated by encapenum{origin}. Do not edit."""',
        "",
        "import dataclasses as _dc",
        *(["import enum as _enum"] if needs_enum else []),
        "",
        f"import encapenum.runtime as {RUNTIME_ALIAS}",
    ]
    if preamble:
        header += ["", *preamble]
    header += ["", f"__all__ = [{', '.join(repr(name) for name in exported)}]"]

    source = "\n".join([*header, *body]) + "\n"
    logger.debug(f"Rendered {len(types)} type(s), {source.count(chr(10))} lines")
    return source, types
