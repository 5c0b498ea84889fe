"""Hex color literals.

`from_hex` is the default color materializer the lexer hands `#rrggbb`
literals to. It accepts `#RGB`, `#RRGGBB` and `#RRGGBBAA`, with or without
a leading `#` or `0x`.
"""

import re

from pydantic import BaseModel, ConfigDict, Field

HEX_DIGITS = re.compile(r"^[0-9a-fA-F]+$")


class Color(BaseModel):
    """RGBA color with components in the 0..1 range."""

    model_config = ConfigDict(frozen=True)

    red: float = Field(ge=0.0, le=1.0)
    green: float = Field(ge=0.0, le=1.0)
    blue: float = Field(ge=0.0, le=1.0)
    alpha: float = Field(default=1.0, ge=0.0, le=1.0)

    def to_hex(self) -> str:
        parts = [self.red, self.green, self.blue, self.alpha]
        return "#" + "".join(f"{round(p * 255):02x}" for p in parts)


def from_hex(text: str) -> Color | None:
    """Parse a hex color. Returns None on a malformed literal."""
    hex_ = text.strip()
    if hex_.startswith("#"):
        hex_ = hex_[1:]
    elif hex_.lower().startswith("0x"):
        hex_ = hex_[2:]

    if len(hex_) not in (3, 6, 8) or not HEX_DIGITS.match(hex_):
        return None

    # Normalise to rrggbbaa
    if len(hex_) == 3:
        r, g, b = hex_
        hex_ = f"{r}{r}{g}{g}{b}{b}ff"
    elif len(hex_) == 6:
        hex_ = f"{hex_}ff"

    red, green, blue, alpha = (int(hex_[i : i + 2], 16) / 255.0 for i in range(0, 8, 2))
    return Color(red=red, green=green, blue=blue, alpha=alpha)
