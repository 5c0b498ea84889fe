"""Lexer for the indentation-sensitive stylesheet language.

Token production tries a fixed, ordered list of matchers and the first one
that succeeds wins. Several matchers share prefixes (a reference and a
selector can both start with a letter), so the order is significant:

    end-of-input, `;`, `^`, comments, newline/indentation, `[]`, `{}`, `()`,
    color, string, unit, boolean, reference, operator, spaces, selector

Indentation is tracked on a stack of widths. Dedenting past several levels
queues one Outdent per level. The first indented line fixes whether tabs or
spaces are used for the rest of the input.

Errors are sticky: once `error` is set the lexer stops producing tokens and
`peek`/`next` return None. The parser decides when to raise it.
"""

import logging
import re
from collections.abc import Callable, Iterator
from typing import Any

from .colors import from_hex
from .errors import LexError
from .tokens import Token, TokenKind, UnitToken

log = logging.getLogger(__name__)

UNIT_SUFFIXES = ("px", "pt", "%")

LINE_ENDINGS = re.compile(r"\r\n?")

# returned by matchers that consume input (comments, blank lines) but produce no token
_SKIP = object()


def normalize_source(source: str) -> str:
    """Unify line endings and end the input with exactly one newline."""
    return LINE_ENDINGS.sub("\n", source).rstrip() + "\n"


class Lexer:
    """Pull-based tokenizer with a look-ahead buffer."""

    SEMICOLON = re.compile(r";[ \t]*")
    CARAT = re.compile(r"\^[ \t]*")
    LINE_COMMENT = re.compile(r"//[^\n]*")
    BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
    # whitespace-only and comment-only lines
    BLANK_LINE = re.compile(r"\n[ \t]*(?://[^\n]*)?(?=\n)")
    # tabs are tried first; whichever captures indentation first is locked in
    INDENT_PATTERNS = (re.compile(r"\n(\t*)"), re.compile(r"\n( *)"))
    COLOR_PATTERNS = (
        re.compile(r"#([a-fA-F0-9]{8})[ \t]*"),
        re.compile(r"#([a-fA-F0-9]{6})[ \t]*"),
        re.compile(r"#([a-fA-F0-9]{3})[ \t]*"),
    )
    STRING = re.compile(r"(\"[^\"\n]*\"|'[^'\n]*')[ \t]*")
    UNIT = re.compile(
        r"(-)?(\d+\.\d+|\d+|\.\d+)(" + "|".join(map(re.escape, UNIT_SUFFIXES)) + r")?[ \t]*"
    )
    BOOLEAN = re.compile(r"(true|false|YES|NO)\b[ \t]*")
    REF = re.compile(r"(@)?(-*[_a-zA-Z$][-\w$]*)")
    OPERATOR = re.compile(
        r"(\.{2,3}|&&|\|\||[!<>=?:]=|\*\*|[-+*/%]=?|[,=?:!~<>&\[\]])([ \t]*)"
    )
    SPACE = re.compile(r"[ \t]+")
    SELECTOR = re.compile(r".*?(?=//|[ \t,\n{])")

    def __init__(
        self,
        source: str,
        color_materializer: Callable[[str], Any] = from_hex,
    ):
        self.source = normalize_source(source)
        self.pos = 0
        self.line = 1
        self.error: LexError | None = None
        self.color_materializer = color_materializer
        self._buffer: list[Token] = []  # look-ahead
        self._pending: list[Token] = []  # queued outdents
        self._indents: list[int] = []
        self._indent_pattern: re.Pattern | None = None
        self._matchers: tuple[Callable[[], Token | None], ...] = (
            self._end_of_input,
            self._separator,
            self._carat,
            self._comment,
            self._newline,
            self._square_brace,
            self._curly_brace,
            self._round_brace,
            self._color,
            self._string,
            self._unit,
            self._boolean,
            self._ref,
            self._operator,
            self._space,
            self._selector,
        )

    def __len__(self) -> int:
        """Number of characters not yet tokenized."""
        return len(self.source) - self.pos

    def __iter__(self) -> Iterator[Token]:
        while (token := self.next()) is not None:
            yield token
            if token.kind == TokenKind.END_OF_INPUT:
                return

    def tokenize(self) -> list[Token]:
        """Lex the whole input, ending with END_OF_INPUT. Raises on error."""
        tokens = list(self)
        if self.error is not None:
            raise self.error
        return tokens

    def peek(self, n: int = 1) -> Token | None:
        """The n-th unconsumed token (1-based), without consuming it."""
        if n < 1:
            raise ValueError(f"peek position must be at least 1, got {n}")
        while len(self._buffer) < n:
            token = self._advance()
            if token is None:
                return None
            self._buffer.append(token)
        return self._buffer[n - 1]

    def next(self) -> Token | None:
        if self._buffer:
            return self._buffer.pop(0)
        return self._advance()

    def _advance(self) -> Token | None:
        while self.error is None:
            if self._pending:
                return self._pending.pop(0)

            for matcher in self._matchers:
                token = matcher()
                if token is _SKIP:
                    # input consumed without a token; start over from the top
                    break
                if token is not None or self.error is not None:
                    return token
            else:
                self._fail("Invalid style string", "Could not determine token")
        return None

    def _fail(self, title: str, description: str) -> None:
        self.error = LexError(title, description, self.line)
        log.debug("Lexer stopped at line %d: %s", self.line, self.error)

    def _startswith(self, text: str) -> bool:
        return self.source.startswith(text, self.pos)

    def _match(
        self,
        kind: TokenKind,
        patterns: tuple[re.Pattern, ...],
        transform: Callable[[re.Match], Any] | None = None,
    ) -> Token | None:
        for pattern in patterns:
            match = pattern.match(self.source, self.pos)
            if match is None:
                continue
            value = transform(match) if transform else None
            self.pos = match.end()
            return Token(kind, value, self.line, match.group(0))
        return None

    # -- matchers, in priority order ----------------------------------------

    def _end_of_input(self) -> Token | None:
        if self.pos < len(self.source):
            return None
        if self._indents:
            self._indents.pop()
            return Token(TokenKind.OUTDENT, line=self.line)
        return Token(TokenKind.END_OF_INPUT, line=self.line)

    def _separator(self) -> Token | None:
        return self._match(TokenKind.SEMICOLON, (self.SEMICOLON,), lambda m: ";")

    def _carat(self) -> Token | None:
        return self._match(TokenKind.CARAT, (self.CARAT,), lambda m: "^")

    def _comment(self) -> Token | None:
        if self._startswith("//"):
            match = self.LINE_COMMENT.match(self.source, self.pos)
            self.pos = match.end()
            return _SKIP

        if self._startswith("/*"):
            match = self.BLOCK_COMMENT.match(self.source, self.pos)
            if match is None:
                self._fail("Invalid comment", "Multi-line comment is never closed")
                return None
            self.line += match.group(0).count("\n")
            self.pos = match.end()
            return _SKIP

        return None

    def _newline(self) -> Token | None:
        if not self._startswith("\n"):
            return None

        blank = self.BLANK_LINE.match(self.source, self.pos)
        if blank is not None:
            self.line += 1
            self.pos = blank.end()
            return _SKIP

        if self._indent_pattern is not None:
            match = self._indent_pattern.match(self.source, self.pos)
        else:
            for pattern in self.INDENT_PATTERNS:
                match = pattern.match(self.source, self.pos)
                if match.group(1):
                    self._indent_pattern = pattern
                    break

        self.pos = match.end()
        self.line += 1

        if self._startswith(" ") or self._startswith("\t"):
            self._fail(
                "Invalid indentation",
                "You can use tabs or spaces to indent, but not both.",
            )
            return None

        text = match.group(0)
        depth = len(match.group(1))
        top = self._indents[-1] if self._indents else 0

        if depth < top:
            while self._indents and self._indents[-1] > depth:
                self._indents.pop()
                self._pending.append(Token(TokenKind.OUTDENT, line=self.line))
            # dedent to a width that was never opened starts a new level
            if depth > 0 and depth != (self._indents[-1] if self._indents else 0):
                self._indents.append(depth)
                self._pending.append(Token(TokenKind.INDENT, line=self.line, text=text))
            return _SKIP

        if depth > 0 and depth != top:
            self._indents.append(depth)
            return Token(TokenKind.INDENT, line=self.line, text=text)

        return Token(TokenKind.NEWLINE, line=self.line, text=text)

    def _brace(self, left: str, left_kind: TokenKind, right: str, right_kind: TokenKind) -> Token | None:
        for char, kind in ((left, left_kind), (right, right_kind)):
            if self._startswith(char):
                self.pos += 1
                return Token(kind, char, self.line, char)
        return None

    def _square_brace(self) -> Token | None:
        return self._brace(
            "[", TokenKind.LEFT_SQUARE_BRACE, "]", TokenKind.RIGHT_SQUARE_BRACE
        )

    def _curly_brace(self) -> Token | None:
        return self._brace(
            "{", TokenKind.LEFT_CURLY_BRACE, "}", TokenKind.RIGHT_CURLY_BRACE
        )

    def _round_brace(self) -> Token | None:
        return self._brace(
            "(", TokenKind.LEFT_ROUND_BRACE, ")", TokenKind.RIGHT_ROUND_BRACE
        )

    def _color(self) -> Token | None:
        return self._match(
            TokenKind.COLOR,
            self.COLOR_PATTERNS,
            lambda m: self.color_materializer(m.group(1)),
        )

    def _string(self) -> Token | None:
        return self._match(TokenKind.STRING, (self.STRING,), lambda m: m.group(1)[1:-1])

    def _unit(self) -> Token | None:
        match = self.UNIT.match(self.source, self.pos)
        if match is None:
            return None
        sign, number, suffix = match.groups()
        raw_value = (sign or "") + number
        self.pos = match.end()
        return UnitToken(
            TokenKind.UNIT,
            float(raw_value),
            self.line,
            match.group(0),
            raw_value=raw_value,
            suffix=suffix,
        )

    def _boolean(self) -> Token | None:
        return self._match(
            TokenKind.BOOLEAN,
            (self.BOOLEAN,),
            lambda m: m.group(1).lower() in ("true", "yes"),
        )

    def _ref(self) -> Token | None:
        return self._match(TokenKind.REF, (self.REF,), lambda m: m.group(0))

    def _operator(self) -> Token | None:
        return self._match(TokenKind.OPERATOR, (self.OPERATOR,), lambda m: m.group(1))

    def _space(self) -> Token | None:
        return self._match(TokenKind.SPACE, (self.SPACE,), lambda m: m.group(0))

    def _selector(self) -> Token | None:
        match = self.SELECTOR.match(self.source, self.pos)
        if match is None or not match.group(0):
            return None
        self.pos = match.end()
        return Token(TokenKind.SELECTOR, match.group(0), self.line, match.group(0))
