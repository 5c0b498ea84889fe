"""Sassy: lexer and parser for indentation-sensitive stylesheets.

Pipeline: stylesheet text -> Lexer (tokens) -> Parser (style nodes + variables).

Example:
    from sassy import parse, TokenKind

    result = parse(".btn\\n  color: #ff0000\\n")
    node = result.nodes[0]
    color = node.properties[0].first_value_of_kind(TokenKind.COLOR)
"""

__version__ = "0.1.0"

from .casing import dash_to_camel_case
from .colors import Color, from_hex
from .config import ParserOptions, load_options
from .errors import (
    IoError,
    LexError,
    ParseError,
    StyleError,
    UnsupportedSyntaxError,
)
from .lexer import Lexer
from .loader import FileLoader, FileSystemLoader, MemoryLoader
from .nodes import (
    DeviceItem,
    DeviceSelector,
    StyleNode,
    StyleProperty,
    StyleSelector,
)
from .parser import ParseResult, Parser, parse, parse_file
from .tokens import Token, TokenKind, UnitToken

__all__ = [
    # Parse
    "parse",
    "parse_file",
    "Parser",
    "ParseResult",
    "Lexer",
    # Tokens
    "Token",
    "TokenKind",
    "UnitToken",
    # Tree
    "StyleNode",
    "StyleProperty",
    "StyleSelector",
    "DeviceSelector",
    "DeviceItem",
    # Errors
    "StyleError",
    "LexError",
    "ParseError",
    "UnsupportedSyntaxError",
    "IoError",
    # Collaborators
    "Color",
    "from_hex",
    "dash_to_camel_case",
    "FileLoader",
    "FileSystemLoader",
    "MemoryLoader",
    # Config
    "ParserOptions",
    "load_options",
]
