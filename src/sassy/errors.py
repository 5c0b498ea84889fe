"""Error taxonomy for the stylesheet front end.

Every failure carries a short title plus an optional long-form description.
All of them are fatal to the parse that raised them.
"""


class StyleError(Exception):
    def __init__(self, title: str, description: str = "", line: int | None = None):
        self.title = title
        self.description = description
        self.line = line
        message = title if not description else f"{title}: {description}"
        if line is not None and line >= 0:
            message = f"line {line}: {message}"
        super().__init__(message)

    def with_context(self, context: str) -> "StyleError":
        """Copy of this error with `context` prepended to the description."""
        description = f"{context}: {self.description}" if self.description else context
        return type(self)(self.title, description, self.line)


class LexError(StyleError):
    """No matcher accepted the input, or indentation mixed tabs and spaces."""


class ParseError(StyleError):
    """Structural violation in the token stream."""


class UnsupportedSyntaxError(ParseError):
    """Recognised grammar that the front end does not implement."""

    def __init__(self, title: str, description: str = "", line: int | None = None):
        if not title.endswith("not yet supported"):
            title = f"{title} not yet supported"
        super().__init__(title, description, line)


class IoError(StyleError):
    """An imported or top-level file is missing or unreadable."""
