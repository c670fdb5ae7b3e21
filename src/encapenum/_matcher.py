"""Declaration matcher.

A small recursive-descent parser that recognizes which declaration shape a
block has and builds the corresponding :class:`Declaration`.
"""

import logging
from collections.abc import Sequence

from ._ast import (
    PRIVATE,
    Access,
    Declaration,
    DeclarationShape,
    EnumSpec,
    SourcePosition,
    VariantSpec,
    Visibility,
)
from ._errors import FIELDLESS_WITHOUT_MODULE, AttributePlacementError, ShapeMismatchError
from ._expr_parser import parse_expression
from ._int_types import DEFAULT_TYPE, FLOAT_TYPE_NAMES, INTEGER_TYPES, IntegerType
from ._lexer import Token, TokenKind

logger = logging.getLogger(__name__)

INVOCATION_NAME = "encap_enum"

_CLOSERS = {
    TokenKind.LBRACE: TokenKind.RBRACE,
    TokenKind.LPAREN: TokenKind.RPAREN,
    TokenKind.LBRACKET: TokenKind.RBRACKET,
}


def split_blocks(tokens: Sequence[Token]) -> list[list[Token]]:
    """Split a token stream into declaration blocks.

    Blocks are the bodies of ``encap_enum! { ... }`` (or ``( ... )`` /
    ``[ ... ]``) invocations. A stream without any invocation is a single
    block. Each returned block ends with an EOF token.

    Raises:
        ShapeMismatchError: If tokens appear outside an invocation, or an
            invocation is not closed.

    """
    body = [t for t in tokens if t.kind != TokenKind.EOF]
    eof = tokens[-1] if tokens and tokens[-1].kind == TokenKind.EOF else None
    has_invocation = any(
        t.is_keyword(INVOCATION_NAME) and i + 1 < len(body) and body[i + 1].kind == TokenKind.BANG
        for i, t in enumerate(body)
    )
    if not has_invocation:
        return [[*body, eof or _eof_after(body)]]

    blocks: list[list[Token]] = []
    i = 0
    while i < len(body):
        token = body[i]
        if not (token.is_keyword(INVOCATION_NAME) and i + 1 < len(body) and body[i + 1].kind == TokenKind.BANG):
            msg = f"expected '{INVOCATION_NAME}!' invocation, found {token.value!r}"
            raise ShapeMismatchError(msg, line=token.line, column=token.column)
        i += 2
        if i >= len(body) or body[i].kind not in _CLOSERS:
            msg = f"expected '{{' after '{INVOCATION_NAME}!'"
            raise ShapeMismatchError(msg, line=token.line, column=token.column)
        opener = body[i]
        closer = _CLOSERS[opener.kind]
        depth = 0
        start = i + 1
        while i < len(body):
            if body[i].kind == opener.kind:
                depth += 1
            elif body[i].kind == closer:
                depth -= 1
                if depth == 0:
                    break
            i += 1
        else:
            msg = f"unclosed '{opener.value}' in '{INVOCATION_NAME}!' invocation"
            raise ShapeMismatchError(msg, line=opener.line, column=opener.column)
        inner = body[start:i]
        blocks.append([*inner, _eof_after(inner, fallback=body[i])])
        i += 1
        if i < len(body) and body[i].kind == TokenKind.SEMI:
            i += 1
    return blocks


def _eof_after(tokens: Sequence[Token], fallback: Token | None = None) -> Token:
    last = tokens[-1] if tokens else fallback
    if last is None:
        return Token(TokenKind.EOF, "", 1, 1)
    return Token(TokenKind.EOF, "", last.line, last.column + len(last.value))


class _Matcher:
    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    # --- token helpers ---

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _next(self) -> Token:
        token = self._peek()
        if token.kind != TokenKind.EOF:
            self.pos += 1
        return token

    def _at(self, kind: TokenKind, offset: int = 0) -> bool:
        return self._peek(offset).kind == kind

    def _error(self, message: str, token: Token | None = None) -> ShapeMismatchError:
        token = token or self._peek()
        return ShapeMismatchError(message, line=token.line, column=token.column)

    def _expect(self, kind: TokenKind, what: str) -> Token:
        token = self._peek()
        if token.kind != kind:
            found = "end of block" if token.kind == TokenKind.EOF else repr(token.value)
            raise self._error(f"expected {what}, found {found}")
        return self._next()

    def _expect_keyword(self, word: str) -> Token:
        token = self._peek()
        if not token.is_keyword(word):
            raise self._error(f"expected '{word}'")
        return self._next()

    # --- grammar ---

    def _metadata(self) -> tuple[str, ...]:
        items: list[str] = []
        while self._peek().kind in (TokenKind.ATTR, TokenKind.DOC):
            token = self._next()
            items.append(f"doc = {token.value!r}" if token.kind == TokenKind.DOC else token.value)
        return tuple(items)

    def _visibility(self) -> Access:
        token = self._peek()
        if token.is_keyword("crate") and not self._at(TokenKind.PATHSEP, 1):
            self._next()
            return Access(Visibility.CRATE)
        if not token.is_keyword("pub"):
            return PRIVATE
        self._next()
        if not self._at(TokenKind.LPAREN):
            return Access(Visibility.PUBLIC)
        self._next()
        scope = self._expect(TokenKind.IDENT, "visibility scope")
        access: Access
        match scope.value:
            case "crate":
                access = Access(Visibility.CRATE)
            case "super":
                access = Access(Visibility.SUPER)
            case "self":
                access = PRIVATE
            case "in":
                segments = [self._expect(TokenKind.IDENT, "module path").value]
                while self._at(TokenKind.PATHSEP):
                    self._next()
                    segments.append(self._expect(TokenKind.IDENT, "module path").value)
                access = Access(Visibility.RESTRICTED, "::".join(segments))
            case _:
                raise self._error(f"unknown visibility scope {scope.value!r}", scope)
        self._expect(TokenKind.RPAREN, "')'")
        return access

    def _underlying_type(self) -> tuple[Access, IntegerType]:
        field_visibility = self._visibility()
        type_token = self._expect(TokenKind.IDENT, "underlying integer type")
        if type_token.value in FLOAT_TYPE_NAMES:
            raise self._error("floating-point underlying types are not supported", type_token)
        if type_token.value not in INTEGER_TYPES:
            raise self._error(f"unsupported underlying type {type_token.value!r}", type_token)
        return field_visibility, INTEGER_TYPES[type_token.value]

    def match_enum(self, module_group: str | None) -> EnumSpec:
        attributes = self._metadata()
        type_visibility = self._visibility()
        start = self._expect_keyword("enum")
        name = self._expect(TokenKind.IDENT, "enumeration name")

        field_visibility = PRIVATE
        underlying_type = DEFAULT_TYPE
        explicit_type = False
        if self._at(TokenKind.COLON):
            self._next()
            field_visibility, underlying_type = self._underlying_type()
            explicit_type = True

        self._expect(TokenKind.LBRACE, "'{'")
        if self._peek().kind in (TokenKind.ATTR, TokenKind.DOC):
            token = self._peek()
            msg = f"enum '{name.value}': attributes cannot be placed before the first variant"
            raise AttributePlacementError(msg, line=token.line, column=token.column)
        variants = self._variants(name.value)
        self._expect(TokenKind.RBRACE, "'}'")

        spec = EnumSpec(
            name=name.value,
            underlying_type=underlying_type,
            type_visibility=type_visibility,
            field_visibility=field_visibility,
            variants=variants,
            module_group=module_group,
            attributes=attributes,
            explicit_type=explicit_type,
            position=SourcePosition(start.line, start.column),
        )
        fieldless = [v.is_fieldless for v in variants]
        if any(fieldless) and not all(fieldless):
            msg = f"enum '{spec.name}' mixes valued and fieldless variants"
            raise ShapeMismatchError(msg, line=start.line, column=start.column)
        logger.debug(f"Matched enum {spec.qualified_name} with {len(variants)} variants")
        return spec

    def _variants(self, enum_name: str) -> tuple[VariantSpec, ...]:
        variants: list[VariantSpec] = []
        while not self._at(TokenKind.RBRACE):
            name = self._expect(TokenKind.IDENT, "variant name")
            value_expr = None
            if self._at(TokenKind.EQ):
                self._next()
                value_expr = parse_expression(self._value_tokens(), name.value)
            doc_attributes: tuple[str, ...] = ()
            if self._at(TokenKind.COMMA):
                self._next()
                # Metadata after a comma belongs to the variant it follows.
                doc_attributes = self._metadata()
            elif not self._at(TokenKind.RBRACE):
                raise self._error(f"expected ',' after variant '{name.value}'")
            variants.append(
                VariantSpec(
                    name=name.value,
                    value_expr=value_expr,
                    doc_attributes=doc_attributes,
                    position=SourcePosition(name.line, name.column),
                ),
            )
        if not variants:
            raise self._error(f"enum '{enum_name}' must declare at least one variant")
        return tuple(variants)

    def _value_tokens(self) -> list[Token]:
        collected: list[Token] = []
        depth = 0
        while True:
            token = self._peek()
            if token.kind == TokenKind.EOF:
                break
            if depth == 0 and token.kind in (TokenKind.COMMA, TokenKind.RBRACE):
                break
            if token.kind == TokenKind.LPAREN:
                depth += 1
            elif token.kind == TokenKind.RPAREN:
                depth -= 1
            collected.append(self._next())
        return collected

    def match_module(self, attributes: tuple[str, ...], visibility: Access) -> Declaration:
        self._expect_keyword("mod")
        name = self._expect(TokenKind.IDENT, "module name")
        self._expect(TokenKind.LBRACE, "'{'")
        enums: list[EnumSpec] = []
        while not self._at(TokenKind.RBRACE):
            if self._at(TokenKind.EOF):
                raise self._error(f"unclosed module '{name.value}'")
            enums.append(self.match_enum(module_group=name.value))
        self._next()
        if not enums:
            raise self._error(f"module '{name.value}' must contain at least one enum", name)

        shape = DeclarationShape.MODULE_GROUP
        if len(enums) == 1 and enums[0].is_fieldless and enums[0].explicit_type:
            shape = DeclarationShape.TYPED_FIELDLESS
        return Declaration(
            shape=shape,
            enums=tuple(enums),
            module_name=name.value,
            module_visibility=visibility,
            module_attributes=attributes,
        )

    def match(self) -> Declaration:
        if self._at(TokenKind.EOF):
            raise self._error("empty declaration block")

        # Look past leading metadata and visibility to decide the shape.
        mark = self.pos
        attributes = self._metadata()
        visibility = self._visibility()
        if self._peek().is_keyword("mod"):
            declaration = self.match_module(attributes, visibility)
            if self._at(TokenKind.SEMI):
                self._next()
            if not self._at(TokenKind.EOF):
                raise self._error("a module wrapper must be the only item of its block")
            return declaration

        self.pos = mark
        enums: list[EnumSpec] = []
        while not self._at(TokenKind.EOF):
            spec = self.match_enum(module_group=None)
            if spec.is_fieldless:
                raise ShapeMismatchError(
                    FIELDLESS_WITHOUT_MODULE,
                    line=spec.position.line if spec.position else None,
                    column=spec.position.column if spec.position else None,
                )
            enums.append(spec)
        return Declaration(shape=DeclarationShape.VALUED, enums=tuple(enums))


def match_declaration(tokens: Sequence[Token]) -> Declaration:
    """Recognize the shape of one declaration block.

    Args:
        tokens: The block's tokens, ending with EOF.

    Returns:
        The matched declaration with defaults filled in: missing visibilities
        are private and a missing underlying type is ``isize``.

    Raises:
        ShapeMismatchError: If the block matches no recognized shape. A bare
            fieldless enum reports ``FIELDLESS_WITHOUT_MODULE``.
        AttributePlacementError: If metadata precedes the first variant.

    """
    declaration = _Matcher(tokens).match()
    logger.debug(f"Matched {declaration.shape} declaration with {len(declaration.enums)} enum(s)")
    return declaration
