"""Parsed style tree: selector blocks, properties and their selectors.

The property model knows nothing about platform types. Value
materializers pull typed values out of a property through
`consecutive_values_of_kind` and `first_value_of_kind`.
"""

import operator
from dataclasses import dataclass, field, replace
from typing import Any

from .casing import dash_to_camel_case
from .tokens import Token, TokenKind


@dataclass
class StyleProperty:
    """One `name: value` declaration, optionally with nested child properties."""

    name_token: Token
    value_tokens: list[Token] = field(default_factory=list)
    child_properties: list["StyleProperty"] | None = None

    @property
    def name(self) -> str:
        return dash_to_camel_case(str(self.name_token.value))

    @property
    def values(self) -> list[Any]:
        """Values of the non-whitespace value tokens, in order."""
        return [
            t.value
            for t in self.value_tokens
            if t.value is not None and not t.is_whitespace()
        ]

    @property
    def text(self) -> str:
        """Value tokens rendered back to source text."""
        return "".join(t.text for t in self.value_tokens).strip()

    def consecutive_values_of_kind(self, kind: TokenKind) -> list[Token]:
        """First run of `kind` tokens; whitespace and commas don't break the run."""
        run: list[Token] = []
        for token in self.value_tokens:
            if token.kind == kind:
                run.append(token)
            elif run and not token.is_whitespace() and not token.value_equals(","):
                return run
        return run

    def first_value_of_kind(self, kind: TokenKind) -> Any:
        for token in self.value_tokens:
            if token.kind == kind:
                return token.value
        return None

    def add_child_property(self, prop: "StyleProperty") -> None:
        if self.child_properties is None:
            self.child_properties = []
        self.child_properties.append(prop)

    def __repr__(self) -> str:
        children = f", children={len(self.child_properties)}" if self.child_properties else ""
        return f"StyleProperty({self.name!r}, {self.text!r}{children})"


@dataclass(frozen=True)
class StyleSelector:
    """A selector such as `UIView > ^UIButton.primary[state:selected]`."""

    object_class: str | None = None
    style_class: str | None = None
    arguments: tuple[tuple[str, str], ...] = ()
    select_subclasses: bool = False  # `^` prefix
    parent: "StyleSelector | None" = None
    immediate_parent: bool = False  # `>` combinator to `parent`

    @property
    def text(self) -> str:
        own = ("^" if self.select_subclasses else "") + (self.object_class or "")
        if self.style_class:
            own += f".{self.style_class}"
        if self.arguments:
            own += "[" + ", ".join(f"{k}:{v}" for k, v in self.arguments) + "]"
        if self.parent is None:
            return own
        separator = " > " if self.immediate_parent else " "
        return f"{self.parent.text}{separator}{own}"

    def descendant_of(self, ancestor: "StyleSelector", immediate: bool = False) -> "StyleSelector":
        """Chain the outermost segment of this selector to `ancestor`."""
        if self.parent is None:
            return replace(self, parent=ancestor, immediate_parent=immediate)
        return replace(self, parent=self.parent.descendant_of(ancestor, immediate))

    def __str__(self) -> str:
        return self.text


VERSION_OPERATORS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
}

DEVICE_IDIOMS = {"phone", "pad"}


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = [int(p) for p in str(version).split(".") if p]
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


@dataclass(frozen=True)
class DeviceItem:
    """Either an idiom (`phone`, `pad`) or a version constraint (`version >= 7`)."""

    idiom: str | None = None
    operator: str | None = None
    version: str | None = None

    @property
    def text(self) -> str:
        if self.idiom is not None:
            return self.idiom
        return f"version {self.operator} {self.version}"

    def matches(self, idiom: str, version: str) -> bool:
        if self.idiom is not None:
            return self.idiom == idiom
        compare = VERSION_OPERATORS[self.operator]
        return compare(_version_tuple(version), _version_tuple(self.version))


@dataclass(frozen=True)
class DeviceSelector:
    """`@media` condition; every item must hold."""

    items: tuple[DeviceItem, ...] = ()

    @property
    def text(self) -> str:
        return " and ".join(item.text for item in self.items)

    def matches(self, idiom: str, version: str) -> bool:
        return all(item.matches(idiom, version) for item in self.items)


@dataclass
class StyleNode:
    """One selector block and the properties declared in it."""

    selector: StyleSelector
    device_selector: DeviceSelector | None = None
    properties: list[StyleProperty] = field(default_factory=list)
    invocations: list[Any] = field(default_factory=list)  # filled by value materializers

    def add_property(self, prop: StyleProperty) -> None:
        self.properties.append(prop)

    def property_named(self, name: str) -> StyleProperty | None:
        """Last property declared under `name` (camel-cased or dashed)."""
        name = dash_to_camel_case(name)
        for prop in reversed(self.properties):
            if prop.name == name:
                return prop
        return None

    def __repr__(self) -> str:
        return f"StyleNode({self.selector.text!r}, properties={self.properties!r})"
