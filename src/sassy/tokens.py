"""Token model for the stylesheet lexer.

A token is immutable once the lexer produces it. The classification
predicates let the parser choose a branch without re-deriving the rules
inline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TokenKind(Enum):
    UNKNOWN = "unknown"
    INDENT = "indent"
    OUTDENT = "outdent"
    END_OF_INPUT = "EOS"
    SEMICOLON = "semicolon"
    CARAT = "carat"
    NEWLINE = "newline"
    LEFT_SQUARE_BRACE = "left square brace"
    RIGHT_SQUARE_BRACE = "right square brace"
    LEFT_CURLY_BRACE = "left curly brace"
    RIGHT_CURLY_BRACE = "right curly brace"
    LEFT_ROUND_BRACE = "left round brace"
    RIGHT_ROUND_BRACE = "right round brace"
    COLOR = "color"
    STRING = "string"
    UNIT = "unit"
    BOOLEAN = "boolean"
    REF = "ref"
    OPERATOR = "operator"
    SPACE = "space"
    SELECTOR = "selector"


WHITESPACE_KINDS = frozenset(
    {TokenKind.INDENT, TokenKind.OUTDENT, TokenKind.NEWLINE, TokenKind.SPACE}
)

SELECTOR_KINDS = frozenset(
    {
        TokenKind.REF,
        TokenKind.CARAT,
        TokenKind.LEFT_SQUARE_BRACE,
        TokenKind.RIGHT_SQUARE_BRACE,
        TokenKind.SELECTOR,
        TokenKind.NEWLINE,
        TokenKind.SPACE,
        TokenKind.OPERATOR,
    }
)

VARIABLE_KINDS = frozenset({TokenKind.INDENT, TokenKind.SPACE, TokenKind.REF})

EXPRESSION_KINDS = frozenset(
    {
        TokenKind.UNIT,
        TokenKind.SPACE,
        TokenKind.LEFT_ROUND_BRACE,
        TokenKind.RIGHT_ROUND_BRACE,
        TokenKind.OPERATOR,
    }
)

DELIMITER_KINDS = frozenset({TokenKind.LEFT_CURLY_BRACE, TokenKind.INDENT})


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any = None
    line: int = -1
    text: str = ""  # source span the token was matched from

    @property
    def description(self) -> str:
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value} {self.value!r}"

    def __str__(self) -> str:
        return self.description

    def value_equals(self, value: Any) -> bool:
        return self.value is not None and self.value == value

    def is_whitespace(self) -> bool:
        return self.kind in WHITESPACE_KINDS

    def is_possibly_selector_start(self) -> bool:
        return (
            self.kind in SELECTOR_KINDS
            or self.value_equals(":")
            or self.value_equals(",")
        )

    def is_possibly_variable_start(self) -> bool:
        return self.kind in VARIABLE_KINDS or self.value_equals("=")

    def is_possibly_expression_part(self) -> bool:
        return self.kind in EXPRESSION_KINDS

    def is_possibly_block_delimiter(self) -> bool:
        return self.kind in DELIMITER_KINDS


@dataclass(frozen=True)
class UnitToken(Token):
    """Numeric token with an optional `px`, `pt` or `%` suffix."""

    raw_value: str = ""
    suffix: str | None = None
