"""Parser for variant value expressions.

The grammar has no operator precedence. Each operator owns one homogeneous
suffix group; groups are applied in the fixed order ``| + & ^ / * << >>``,
with the leading operand's trailing ``-`` chain applied first::

    expr      := operand ("-" operand)* group*
    group     := (OP operand)+          one OP per group
    operand   := literal | IDENT | "(" "-" IDENT ")"
               | "(" "enum" PATH ")" IDENT | "(" INTTYPE ")" IDENT
    legacy    := "::" IDENT             only as the sole initializer
"""

from collections.abc import Sequence

from ._ast import (
    GROUP_ORDER,
    BinaryOp,
    BinaryOperator,
    EnumAnnotation,
    ExpressionNode,
    ExternalReference,
    LegacyAnnotation,
    Literal,
    Operand,
    SelfReference,
    TypeAnnotation,
    UnaryNegate,
)
from ._errors import ShapeMismatchError
from ._int_types import FLOAT_TYPE_NAMES, INTEGER_TYPES
from ._lexer import Token, TokenKind

_OPERATOR_TOKENS: dict[TokenKind, BinaryOperator] = {
    TokenKind.PIPE: BinaryOperator.OR,
    TokenKind.PLUS: BinaryOperator.ADD,
    TokenKind.AMP: BinaryOperator.AND,
    TokenKind.CARET: BinaryOperator.XOR,
    TokenKind.SLASH: BinaryOperator.DIV,
    TokenKind.STAR: BinaryOperator.MUL,
    TokenKind.SHL: BinaryOperator.SHL,
    TokenKind.SHR: BinaryOperator.SHR,
    TokenKind.MINUS: BinaryOperator.SUB,
}

_RADIX_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


def parse_int_literal(text: str) -> Literal:
    """Parse an integer literal token such as ``0xFF``, ``1_000`` or ``4u8``.

    Examples:
        >>> parse_int_literal("0x1_0").value
        16
        >>> parse_int_literal("7u8").suffix.name
        'u8'

    """
    suffix = None
    for name in INTEGER_TYPES:
        # Hex digits never contain 'i' or 'u', so a suffix match is unambiguous.
        if text.endswith(name) and len(text) > len(name):
            suffix = INTEGER_TYPES[name]
            text = text[: -len(name)]
            break
    base = 10
    digits = text
    prefix = text[:2].lower()
    if prefix in _RADIX_PREFIXES:
        base = _RADIX_PREFIXES[prefix]
        digits = text[2:]
    digits = digits.replace("_", "")
    if not digits:
        msg = f"invalid integer literal {text!r}"
        raise ShapeMismatchError(msg)
    return Literal(value=int(digits, base), suffix=suffix)


class _ExpressionParser:
    def __init__(self, tokens: Sequence[Token], variant: str) -> None:
        self.tokens = tokens
        self.pos = 0
        self.variant = variant

    def _error(self, message: str, token: Token | None = None) -> ShapeMismatchError:
        token = token if token is not None else self._peek()
        msg = f"variant '{self.variant}': {message}"
        if token is None:
            last = self.tokens[-1] if self.tokens else None
            return ShapeMismatchError(
                msg,
                line=last.line if last else None,
                column=last.column if last else None,
            )
        return ShapeMismatchError(msg, line=token.line, column=token.column)

    def _peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise self._error("unexpected end of expression")
        self.pos += 1
        return token

    def _expect(self, kind: TokenKind, what: str) -> Token:
        token = self._peek()
        if token is None or token.kind != kind:
            raise self._error(f"expected {what}")
        self.pos += 1
        return token

    def _at(self, kind: TokenKind, offset: int = 0) -> bool:
        token = self._peek(offset)
        return token is not None and token.kind == kind

    def parse(self) -> ExpressionNode:
        if not self.tokens:
            raise self._error("missing value after '='")

        if self._at(TokenKind.PATHSEP):
            return self._parse_legacy()

        node: ExpressionNode = self._parse_operand()

        subtrahends: list[Operand] = []
        while self._at(TokenKind.MINUS):
            self._next()
            subtrahends.append(self._parse_operand())
        if subtrahends:
            node = BinaryOp(BinaryOperator.SUB, node, tuple(subtrahends))

        next_group = 0
        while (token := self._peek()) is not None:
            op = _OPERATOR_TOKENS.get(token.kind)
            if op is None:
                raise self._error(f"unexpected token {token.value!r}")
            if op is BinaryOperator.SUB:
                raise self._error("'-' terms must directly follow the leading operand")
            group = GROUP_ORDER.index(op)
            if group < next_group:
                order = " ".join(str(o) for o in GROUP_ORDER)
                raise self._error(f"operator '{op}' is out of group order ({order})")
            rights: list[Operand] = []
            while self._at(token.kind):
                self._next()
                rights.append(self._parse_operand())
            node = BinaryOp(op, node, tuple(rights))
            next_group = group + 1

        return node

    def _parse_legacy(self) -> ExpressionNode:
        self._next()
        name = self._expect(TokenKind.IDENT, "constant name after '::'")
        if self._peek() is not None:
            raise self._error("a '::NAME' reference must be the sole initializer; use '(TYPE) NAME' with operators")
        return ExternalReference(name.value, LegacyAnnotation())

    def _parse_operand(self) -> Operand:
        token = self._next()
        match token.kind:
            case TokenKind.INT:
                return parse_int_literal(token.value)
            case TokenKind.MINUS:
                literal = self._expect(TokenKind.INT, "integer literal after '-'")
                parsed = parse_int_literal(literal.value)
                return Literal(-parsed.value, parsed.suffix)
            case TokenKind.IDENT:
                return SelfReference(token.value)
            case TokenKind.LPAREN:
                return self._parse_parenthesized(token)
            case TokenKind.PATHSEP:
                raise self._error(
                    "a '::NAME' reference cannot be combined with operators; use '(TYPE) NAME'",
                    token,
                )
            case _:
                raise self._error(f"unexpected token {token.value!r}", token)

    def _parse_parenthesized(self, open_paren: Token) -> Operand:
        if self._at(TokenKind.MINUS):
            self._next()
            if self._at(TokenKind.INT):
                raise self._error("negation only applies to variant names; write a signed literal instead")
            name = self._expect(TokenKind.IDENT, "variant name after '(-'")
            self._expect(TokenKind.RPAREN, "')'")
            return UnaryNegate(SelfReference(name.value))

        head = self._expect(TokenKind.IDENT, "'enum' or an integer type")
        if head.value == "enum":
            path = [self._expect(TokenKind.IDENT, "enumeration name").value]
            while self._at(TokenKind.PATHSEP):
                self._next()
                path.append(self._expect(TokenKind.IDENT, "path segment").value)
            self._expect(TokenKind.RPAREN, "')'")
            name = self._expect(TokenKind.IDENT, "variant name after the annotation")
            return ExternalReference(name.value, EnumAnnotation("::".join(path)))

        if head.value in FLOAT_TYPE_NAMES:
            raise self._error("floating-point values are not supported", head)
        if head.value not in INTEGER_TYPES:
            raise self._error(f"unknown type annotation {head.value!r}", open_paren)
        self._expect(TokenKind.RPAREN, "')'")
        name = self._expect(TokenKind.IDENT, "constant name after the annotation")
        return ExternalReference(name.value, TypeAnnotation(INTEGER_TYPES[head.value]))


def parse_expression(tokens: Sequence[Token], variant: str) -> ExpressionNode:
    """Build the expression tree of one variant from its value tokens.

    Args:
        tokens: Tokens between ``=`` and the variant's terminating comma.
        variant: Variant name, for diagnostics.

    Raises:
        ShapeMismatchError: If the tokens do not form a valid expression.

    """
    return _ExpressionParser(tokens, variant).parse()
