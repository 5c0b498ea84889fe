"""Parser for indentation-sensitive stylesheets.

Grammar (simplified):
    sheet       = (import | variable | media | block | property | close)*
    import      = "@import" filename (NEWLINE | ";")
    variable    = "$name" "=" value                   (outside selector blocks)
    media       = "@media" item ("and" item)* open
    item        = "phone" | "pad" | "version" OP number
    block       = selector ("," selector)* open
    selector    = ["^"] [class] ["." style] ["[" key ":" value, ... "]"]
                  ((" " | ">") selector)?
    property    = name [":"] value | name ":" open      (inside selector blocks)
    open        = INDENT | "{" [INDENT]
    close       = OUTDENT | "}"

Blocks are either indented or braced. Every INDENT the parser consumes is
remembered together with the block it opened (or None), so an OUTDENT
closes exactly that block and `}` closes the innermost braced block.

Imports are parsed synchronously by a fresh Parser seeded with the current
variable table; its nodes and bindings are merged back when it finishes.
"""

import copy
import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

from .config import ParserOptions
from .errors import IoError, ParseError, StyleError, UnsupportedSyntaxError
from .lexer import Lexer
from .loader import FileLoader, FileSystemLoader
from .nodes import (
    DEVICE_IDIOMS,
    VERSION_OPERATORS,
    DeviceItem,
    DeviceSelector,
    StyleNode,
    StyleProperty,
    StyleSelector,
)
from .tokens import Token, TokenKind

log = logging.getLogger(__name__)

# tokens that end a property or variable value
VALUE_TERMINATORS = frozenset(
    {
        TokenKind.NEWLINE,
        TokenKind.SEMICOLON,
        TokenKind.END_OF_INPUT,
        TokenKind.OUTDENT,
        TokenKind.INDENT,
        TokenKind.LEFT_CURLY_BRACE,
        TokenKind.RIGHT_CURLY_BRACE,
    }
)

IMPORT_TERMINATORS = frozenset(
    {
        TokenKind.NEWLINE,
        TokenKind.SEMICOLON,
        TokenKind.END_OF_INPUT,
        TokenKind.OUTDENT,
        TokenKind.INDENT,
    }
)

ARITHMETIC_OPERATORS = {"+", "-", "*", "/", "%", "**"}

SELECTOR_SEGMENT = re.compile(
    r"^(\^)?([A-Za-z_][\w-]*|\*)?(?:\.([\w-]+))?(?:\[([^\]]*)\])?$"
)
SELECTOR_SEPARATOR = re.compile(r",(?![^\[]*\])")
SELECTOR_ARGUMENTS = re.compile(r"\[[^\]]*\]")
CHILD_COMBINATOR = re.compile(r"\s*>\s*")


@dataclass
class ParseResult:
    """Nodes in opening order, the variable table, and every imported file name."""

    nodes: list[StyleNode] = field(default_factory=list)
    variables: dict[str, StyleProperty] = field(default_factory=dict)
    imported_files: list[str] = field(default_factory=list)


@dataclass(eq=False)
class _Block:
    target: list[StyleNode] | StyleProperty | DeviceSelector
    braced: bool

    def describe(self) -> str:
        if isinstance(self.target, StyleProperty):
            return self.target.name
        if isinstance(self.target, DeviceSelector):
            return f"@media {self.target.text}"
        return ", ".join(node.selector.text for node in self.target)


def _canonical(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


def _token_text(token: Token) -> str:
    if token.kind == TokenKind.STRING:
        return str(token.value)
    return token.text.strip()


class Parser:
    """Recursive descent parser driving a Lexer through peek/next."""

    def __init__(
        self,
        path: str = "",
        variables: dict[str, StyleProperty] | None = None,
        options: ParserOptions | None = None,
        loader: FileLoader | None = None,
        import_chain: tuple[str, ...] = (),
    ):
        self.path = path
        self.variables: dict[str, StyleProperty] = dict(variables or {})
        self.options = options or ParserOptions()
        self.loader = loader or FileSystemLoader()
        self.import_chain = import_chain
        self._chain: tuple[str, ...] = import_chain  # rebuilt with this file on each parse
        self.imported_files: list[str] = []
        self.lexer: Lexer | None = None
        self.nodes: list[StyleNode] = []
        self.node_stack: list[list[StyleNode]] = []
        self.property_stack: list[StyleProperty] = []
        self.media_stack: list[DeviceSelector] = []
        self._blocks: list[_Block] = []
        self._indents: list[_Block | None] = []

    # -- entry points ---------------------------------------------------------

    def parse_file(self) -> ParseResult:
        """Load `self.path` through the loader and parse it."""
        data = self.loader.load(self.path)
        try:
            contents = data.decode(self.options.encoding)
        except UnicodeDecodeError as e:
            raise IoError(f"Could not decode file: '{self.path}'", str(e)) from e

        if not contents.strip():
            raise ParseError(f"Could not parse file: '{self.path}'", "File is empty")

        return self.parse(contents)

    def parse(self, source: str) -> ParseResult:
        """Parse stylesheet text into nodes and variable bindings."""
        log.debug("Parsing %s", self.path or "<string>")
        self._chain = self.import_chain
        if self.path:
            self._chain = (*self.import_chain, _canonical(self.path))

        self.lexer = Lexer(source)
        self.imported_files = []
        self.nodes = []
        self.node_stack = []
        self.property_stack = []
        self.media_stack = []
        self._blocks = []
        self._indents = []

        while self._peek().kind != TokenKind.END_OF_INPUT:
            if self.lexer.error is not None:
                raise self.lexer.error

            if (
                self._import()
                or self._variable()
                or self._media_block()
                or self._selector_block()
                or self._property()
                or self._block_closing()
            ):
                continue

            token = self._next()
            raise ParseError(
                f"Unexpected token {token.description}",
                "Token does not belong in current context",
                token.line,
            )

        if self._blocks:
            block = self._blocks[-1]
            raise ParseError(
                "Unclosed block",
                f"'{block.describe()}' is missing a closing '}}'",
                self._peek().line,
            )

        return ParseResult(
            nodes=self.nodes,
            variables=self.variables,
            imported_files=self.imported_files,
        )

    # -- token helpers --------------------------------------------------------

    def _peek(self, n: int = 1) -> Token:
        token = self.lexer.peek(n)
        if token is None:
            raise self.lexer.error
        return token

    def _next(self) -> Token:
        token = self.lexer.next()
        if token is None:
            raise self.lexer.error
        return token

    def _skip_spaces_from(self, n: int) -> int:
        while self._peek(n).kind == TokenKind.SPACE:
            n += 1
        return n

    def _consume_matching(self, predicate) -> bool:
        matched = False
        while predicate(self._peek()):
            matched = True
            self._next()
        return matched

    def _value_tokens(self) -> list[Token]:
        tokens = []
        while self._peek().kind not in VALUE_TERMINATORS:
            tokens.append(self._next())
        while tokens and tokens[0].kind == TokenKind.SPACE:
            tokens.pop(0)
        while tokens and tokens[-1].kind == TokenKind.SPACE:
            tokens.pop()
        return tokens

    def _in_selector(self) -> bool:
        return bool(self.node_stack or self.property_stack)

    # -- @import --------------------------------------------------------------

    def _import(self) -> bool:
        token = self._peek()
        if not (token.kind == TokenKind.REF and token.value == "@import"):
            return False

        if self._in_selector():
            raise ParseError("@import cannot be used inside style selectors", line=token.line)

        self._next()
        self._consume_matching(lambda t: t.kind == TokenKind.SPACE)

        components = []
        while self._peek().kind not in IMPORT_TERMINATORS:
            components.append(_token_text(self._next()))
        filename = "".join(components)

        if filename.startswith("$"):
            bound = self.variables.get(filename)
            if bound is None:
                raise ParseError(f"Unknown variable {filename}", "Used as @import file name", token.line)
            filename = "".join(_token_text(t) for t in bound.value_tokens if not t.is_whitespace())

        if not filename:
            raise ParseError("@import does not specify file to import", line=token.line)

        self._import_file(filename, token.line)
        self._consume_matching(
            lambda t: t.kind in (TokenKind.NEWLINE, TokenKind.SEMICOLON)
        )
        return True

    def _import_file(self, filename: str, line: int) -> None:
        path = self.loader.resolve(self.path, filename)
        self.imported_files.append(filename)

        if self.options.detect_import_cycles and _canonical(path) in self._chain:
            chain = " -> ".join((*self._chain, _canonical(path)))
            raise ParseError("Circular @import", f"'{filename}' imports itself: {chain}", line)

        log.debug("Importing %s into %s", path, self.path or "<string>")
        child = Parser(
            path,
            variables=self.variables,
            options=self.options,
            loader=self.loader,
            import_chain=self._chain,
        )
        try:
            result = child.parse_file()
        except StyleError as e:
            raise e.with_context(f"@import '{filename}' in {self.path or '<string>'}") from e

        if self.media_stack:
            # an @import inside @media applies the device selector to what it brings in
            device = self.media_stack[-1]
            result.nodes = [
                replace(node, device_selector=device) if node.device_selector is None else node
                for node in result.nodes
            ]
        self.nodes.extend(result.nodes)
        self._merge_variables(result.variables, filename, line)
        self.imported_files.extend(result.imported_files)

    def _merge_variables(self, imported: dict[str, StyleProperty], filename: str, line: int) -> None:
        policy = self.options.variable_conflict
        for name, prop in imported.items():
            current = self.variables.get(name)
            if current is prop:
                continue
            if current is not None:
                if policy == "error":
                    raise ParseError(
                        "Variable conflict",
                        f"{name} is redefined by @import '{filename}'",
                        line,
                    )
                if policy == "keep":
                    continue
                log.warning("@import '%s' overwrites variable %s", filename, name)
            self.variables[name] = prop

    # -- variables ------------------------------------------------------------

    def _next_variable(self) -> StyleProperty | None:
        """`$name = value`, or None when the tokens ahead are not a declaration."""
        name = self._peek()
        if not (name.kind == TokenKind.REF and str(name.value).startswith("$")):
            return None

        assign = self._peek(self._skip_spaces_from(2))
        if not (assign.is_possibly_variable_start() and assign.value_equals("=")):
            return None

        if self._in_selector():
            raise ParseError(
                "Variables cannot be declared inside style selectors",
                f"Variable: {name.value}",
                name.line,
            )

        self._next()
        self._consume_matching(lambda t: t.kind == TokenKind.SPACE)
        self._next()  # =
        values = self._value_tokens()
        if not values:
            raise ParseError("Invalid variable", f"{name.value} has no value", name.line)
        return StyleProperty(name, self._substitute(values))

    def _variable(self) -> bool:
        variable = self._next_variable()
        if variable is None:
            return False

        self._check_expressions(variable)
        self.variables[variable.name_token.value] = variable
        log.debug("Bound %s = %s", variable.name_token.value, variable.text)
        self._consume_matching(
            lambda t: t.kind in (TokenKind.SPACE, TokenKind.SEMICOLON)
        )
        return True

    def _substitute(self, tokens: list[Token]) -> list[Token]:
        """Replace `$name` references with the bound value tokens."""
        result = []
        for token in tokens:
            if token.kind == TokenKind.REF and str(token.value).startswith("$"):
                bound = self.variables.get(token.value)
                if bound is None:
                    raise ParseError(f"Unknown variable {token.value}", line=token.line)
                result.extend(bound.value_tokens)
            else:
                result.append(token)
        return result

    def _expression(self, tokens: list[Token]) -> list[Token] | None:
        """Arithmetic between numeric operands, e.g. `10 + 5`."""
        significant = [t for t in tokens if t.kind != TokenKind.SPACE]
        for i, token in enumerate(significant[1:-1], start=1):
            if not (token.kind == TokenKind.OPERATOR and token.value in ARITHMETIC_OPERATORS):
                continue
            left, right = significant[i - 1], significant[i + 1]
            if (
                left.is_possibly_expression_part()
                and right.is_possibly_expression_part()
                and left.kind in (TokenKind.UNIT, TokenKind.RIGHT_ROUND_BRACE)
                and right.kind in (TokenKind.UNIT, TokenKind.LEFT_ROUND_BRACE)
            ):
                return significant
        return None

    def _check_expressions(self, prop: StyleProperty) -> None:
        if self._expression(prop.value_tokens) is not None:
            raise UnsupportedSyntaxError(
                "Expressions are",
                f"{prop.name_token.value}: {prop.text}",
                prop.name_token.line,
            )

    # -- blocks ---------------------------------------------------------------

    def _open_block(self, target: list[StyleNode] | StyleProperty | DeviceSelector) -> None:
        delimiter = self._next()
        block = _Block(target, braced=delimiter.kind == TokenKind.LEFT_CURLY_BRACE)
        self._blocks.append(block)

        if isinstance(target, StyleProperty):
            self.property_stack.append(target)
        elif isinstance(target, DeviceSelector):
            self.media_stack.append(target)
        else:
            self.node_stack.append(target)

        if not block.braced:
            self._indents.append(block)
            return

        # an indent right after `{` belongs to the brace block
        self._consume_matching(lambda t: t.kind == TokenKind.SPACE)
        if self._peek().kind == TokenKind.INDENT:
            self._next()
            self._indents.append(None)

    def _close_block(self) -> None:
        block = self._blocks.pop()
        target = block.target
        if isinstance(target, StyleProperty):
            self.property_stack.pop()
        elif isinstance(target, DeviceSelector):
            self.media_stack.pop()
        else:
            self.node_stack.pop()
            # every selector of a comma group gets its own copy of the properties
            first, *rest = target
            for node in rest:
                node.properties = copy.deepcopy(first.properties)

    def _outdent(self, token: Token) -> None:
        if not self._indents:
            raise ParseError("Unexpected outdent", line=token.line)
        block = self._indents.pop()
        if block is None:
            return
        if self._blocks[-1] is not block:
            # a braced block opened inside `block` is still open
            raise ParseError(
                "Unclosed block",
                f"'{self._blocks[-1].describe()}' is missing a closing '}}'",
                token.line,
            )
        self._close_block()

    def _close_brace(self, token: Token) -> None:
        if not self._blocks:
            raise ParseError(
                f"Unexpected token {token.description}",
                "No open block to close",
                token.line,
            )
        block = self._blocks[-1]
        if not block.braced:
            raise ParseError(
                "Mismatched block delimiters",
                f"Indented block '{block.describe()}' closed with '}}'",
                token.line,
            )
        self._close_block()

    def _block_closing(self) -> bool:
        matched = False
        while True:
            token = self._peek()
            if token.kind == TokenKind.OUTDENT:
                self._next()
                self._outdent(token)
            elif token.kind == TokenKind.RIGHT_CURLY_BRACE:
                self._next()
                self._close_brace(token)
            elif token.kind == TokenKind.INDENT:
                self._next()
                self._indents.append(None)
            elif token.is_whitespace() or token.kind == TokenKind.SEMICOLON:
                self._next()
            else:
                return matched
            matched = True

    # -- @media ---------------------------------------------------------------

    def _media_block(self) -> bool:
        token = self._peek()
        if not (token.kind == TokenKind.REF and token.value == "@media"):
            return False

        if self._in_selector():
            raise ParseError("@media cannot be used inside style selectors", line=token.line)

        self._next()
        condition = []
        while not self._peek().is_possibly_block_delimiter():
            ahead = self._peek()
            if ahead.kind in VALUE_TERMINATORS:
                raise ParseError("Invalid @media", "Expected a block after the condition", ahead.line)
            self._next()
            if ahead.kind != TokenKind.SPACE:
                condition.append(ahead)

        selector = DeviceSelector(tuple(self._device_items(condition, token.line)))
        log.debug("Opening @media %s", selector.text)
        self._open_block(selector)
        return True

    def _device_items(self, tokens: list[Token], line: int) -> list[DeviceItem]:
        text = " ".join(_token_text(t) for t in tokens)
        items = []
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token.kind == TokenKind.REF and token.value in DEVICE_IDIOMS:
                items.append(DeviceItem(idiom=token.value))
                i += 1
            elif (
                token.kind == TokenKind.REF
                and token.value == "version"
                and i + 2 < len(tokens)
                and tokens[i + 1].kind == TokenKind.OPERATOR
                and tokens[i + 1].value in VERSION_OPERATORS
                and tokens[i + 2].kind == TokenKind.UNIT
            ):
                items.append(
                    DeviceItem(operator=tokens[i + 1].value, version=tokens[i + 2].raw_value)
                )
                i += 3
            else:
                raise ParseError("Invalid @media", f"Unknown condition '{text}'", line)

            if i < len(tokens):
                if not (tokens[i].kind == TokenKind.REF and tokens[i].value == "and"):
                    raise ParseError("Invalid @media", f"Expected 'and' in '{text}'", line)
                i += 1
                if i == len(tokens):
                    raise ParseError("Invalid @media", f"Dangling 'and' in '{text}'", line)

        if not items:
            raise ParseError("Invalid @media", "Missing condition", line)
        return items

    # -- selector blocks ------------------------------------------------------

    def _selector_block(self) -> bool:
        first = self._peek()
        if not first.is_possibly_selector_start() or first.kind in (
            TokenKind.SPACE,
            TokenKind.NEWLINE,
        ):
            return False
        if first.kind == TokenKind.REF and str(first.value).startswith(("$", "@")):
            return False

        # look ahead for a block delimiter at the end of the selector run
        n = 1
        depth = 0
        previous = None
        while not (ahead := self._peek(n)).is_possibly_block_delimiter():
            if not ahead.is_possibly_selector_start():
                return False
            if ahead.kind == TokenKind.NEWLINE and not (previous and previous.value_equals(",")):
                return False
            if ahead.kind == TokenKind.LEFT_SQUARE_BRACE:
                depth += 1
            elif ahead.kind == TokenKind.RIGHT_SQUARE_BRACE:
                depth -= 1
            elif ahead.value_equals(":") and depth == 0:
                return False
            if ahead.kind not in (TokenKind.SPACE, TokenKind.NEWLINE):
                previous = ahead
            n += 1

        if self.property_stack:
            raise ParseError(
                "Style selectors cannot be nested inside properties",
                f"Property: {self.property_stack[-1].name}",
                first.line,
            )

        text = "".join(self._next().text for _ in range(n - 1))
        parents = self.node_stack[-1] if self.node_stack else None
        device = self.media_stack[-1] if self.media_stack else None

        nodes = []
        for selector, immediate in self._parse_selectors(text, first.line):
            if parents is None:
                if immediate:
                    raise ParseError("Invalid selector", f"'{text.strip()}' starts with '>'", first.line)
                nodes.append(StyleNode(selector, device))
            else:
                for parent in parents:
                    chained = selector.descendant_of(parent.selector, immediate)
                    nodes.append(StyleNode(chained, device))

        for node in nodes:
            log.debug("Opening style node %s", node.selector.text)
        self.nodes.extend(nodes)
        self._open_block(nodes)
        return True

    def _parse_selectors(self, text: str, line: int) -> list[tuple[StyleSelector, bool]]:
        """Split a selector line on commas; the flag marks a leading `>`."""
        text = SELECTOR_ARGUMENTS.sub(lambda m: re.sub(r"\s+", "", m.group(0)), text)
        selectors = []
        for part in SELECTOR_SEPARATOR.split(text):
            pieces = CHILD_COMBINATOR.sub(" > ", part).split()
            selector = None
            leading = immediate = False
            for piece in pieces:
                if piece == ">":
                    if immediate or (selector is None and leading):
                        raise ParseError("Invalid selector", f"Repeated '>' in '{part.strip()}'", line)
                    if selector is None:
                        leading = True
                    else:
                        immediate = True
                    continue

                match = SELECTOR_SEGMENT.match(piece)
                if match is None or not (match.group(2) or match.group(3)):
                    raise ParseError("Invalid selector", f"'{piece}' in '{part.strip()}'", line)
                subclasses, object_class, style_class, arguments = match.groups()
                selector = StyleSelector(
                    object_class=object_class,
                    style_class=style_class,
                    arguments=self._selector_arguments(arguments, line),
                    select_subclasses=bool(subclasses),
                    parent=selector,
                    immediate_parent=immediate,
                )
                immediate = False

            if selector is None or immediate:
                raise ParseError("Invalid selector", f"'{part.strip()}'", line)
            selectors.append((selector, leading))
        return selectors

    def _selector_arguments(self, text: str | None, line: int) -> tuple[tuple[str, str], ...]:
        if not text:
            return ()
        arguments = []
        for pair in text.split(","):
            key, sep, value = pair.partition(":")
            if not sep or not key or not value:
                raise ParseError("Invalid selector argument", f"'{pair}' should be key:value", line)
            arguments.append((key, value))
        return tuple(arguments)

    # -- properties -----------------------------------------------------------

    def _next_property(self) -> tuple[StyleProperty, bool] | None:
        """A property declaration and whether it opens a block of child properties."""
        name = self._peek()
        if name.kind != TokenKind.REF or str(name.value).startswith(("$", "@")):
            return None

        n = self._skip_spaces_from(2)
        colon = self._peek(n)
        has_colon = colon.kind == TokenKind.OPERATOR and colon.value == ":"
        if has_colon:
            n = self._skip_spaces_from(n + 1)
        ahead = self._peek(n)

        if has_colon and ahead.is_possibly_block_delimiter():
            for _ in range(n - 1):
                self._next()
            return StyleProperty(name), True

        if ahead.kind in VALUE_TERMINATORS:
            if has_colon:
                raise ParseError("Invalid style property", f"{name.value} has no value", name.line)
            return None

        self._next()
        self._consume_matching(lambda t: t.kind == TokenKind.SPACE)
        if has_colon:
            self._next()
        values = self._value_tokens()

        end = self._peek()
        if end.is_possibly_block_delimiter():
            raise ParseError(
                "Unexpected block",
                f"{name.value} has a value and a nested block",
                end.line,
            )
        return StyleProperty(name, self._substitute(values)), False

    def _property(self) -> bool:
        match = self._next_property()
        if match is None:
            return False

        prop, is_parent = match
        if not self.node_stack:
            raise ParseError(
                "Invalid style property",
                "Needs to be within a style node",
                prop.name_token.line,
            )

        self._check_expressions(prop)
        if self.property_stack:
            self.property_stack[-1].add_child_property(prop)
        else:
            self.node_stack[-1][0].add_property(prop)

        if is_parent:
            self._open_block(prop)
        return True


def parse(
    source: str,
    path: str = "",
    variables: dict[str, StyleProperty] | None = None,
    options: ParserOptions | None = None,
    loader: FileLoader | None = None,
) -> ParseResult:
    """Parse stylesheet text. `path` anchors relative imports."""
    return Parser(path, variables, options, loader).parse(source)


def parse_file(
    path: str | Path,
    variables: dict[str, StyleProperty] | None = None,
    options: ParserOptions | None = None,
    loader: FileLoader | None = None,
) -> ParseResult:
    """Load and parse a stylesheet file, seeding it with `variables`."""
    return Parser(str(path), variables, options, loader).parse_file()
