"""Tests for the style tree, tokens and value helpers."""

import pytest

from sassy import (
    Color,
    DeviceItem,
    DeviceSelector,
    StyleProperty,
    StyleSelector,
    Token,
    TokenKind,
    dash_to_camel_case,
    from_hex,
    parse,
)


def unit(value: float) -> Token:
    return Token(TokenKind.UNIT, value)


class TestCasing:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("border-top-width", "borderTopWidth"),
            ("font-size", "fontSize"),
            ("color", "color"),
            ("", ""),
        ],
    )
    def test_dash_to_camel_case(self, text, expected):
        assert dash_to_camel_case(text) == expected


class TestColors:
    def test_short_form(self):
        assert from_hex("#fff") == Color(red=1.0, green=1.0, blue=1.0, alpha=1.0)

    def test_0x_prefix_with_alpha(self):
        color = from_hex("0xFF000080")
        assert color.red == 1.0
        assert color.alpha == pytest.approx(128 / 255)

    def test_without_prefix(self):
        assert from_hex("00ff00") == Color(red=0.0, green=1.0, blue=0.0)

    @pytest.mark.parametrize("text", ["#ff", "#ffff", "#gggggg", "", "#1234567"])
    def test_malformed(self, text):
        assert from_hex(text) is None

    def test_to_hex(self):
        assert from_hex("#336699").to_hex() == "#336699ff"

    def test_components_are_bounded(self):
        with pytest.raises(ValueError):
            Color(red=2.0, green=0.0, blue=0.0)


class TestTokens:
    def test_description(self):
        assert Token(TokenKind.INDENT).description == "indent"
        assert Token(TokenKind.REF, "color").description == "ref 'color'"

    def test_value_equals_ignores_missing_value(self):
        assert not Token(TokenKind.NEWLINE).value_equals(None)
        assert Token(TokenKind.OPERATOR, ":").value_equals(":")

    def test_selector_start(self):
        assert Token(TokenKind.SELECTOR, ".btn").is_possibly_selector_start()
        assert Token(TokenKind.OPERATOR, ":").is_possibly_selector_start()
        assert not Token(TokenKind.UNIT, 1.0).is_possibly_selector_start()
        assert not Token(TokenKind.LEFT_CURLY_BRACE, "{").is_possibly_selector_start()

    def test_variable_start(self):
        assert Token(TokenKind.OPERATOR, "=").is_possibly_variable_start()
        assert not Token(TokenKind.OPERATOR, ":").is_possibly_variable_start()

    def test_block_delimiter(self):
        assert Token(TokenKind.INDENT).is_possibly_block_delimiter()
        assert Token(TokenKind.LEFT_CURLY_BRACE, "{").is_possibly_block_delimiter()
        assert not Token(TokenKind.NEWLINE).is_possibly_block_delimiter()

    def test_tokens_are_immutable(self):
        token = Token(TokenKind.REF, "a")
        with pytest.raises(AttributeError):
            token.value = "b"


class TestStyleProperty:
    def prop(self, source: str):
        return parse(f"UIView\n  {source}\n").nodes[0].properties[0]

    def test_values_skip_whitespace(self):
        assert self.prop("font: 'Helvetica' 12").values == ["Helvetica", 12.0]

    def test_text(self):
        assert self.prop("margin: 1px 2px").text == "1px 2px"

    def test_consecutive_values_stop_at_other_kind(self):
        prop = self.prop("shadow: 1 2 #000 3")
        units = prop.consecutive_values_of_kind(TokenKind.UNIT)
        assert [t.value for t in units] == [1.0, 2.0]

    def test_consecutive_values_skip_leading_tokens(self):
        prop = self.prop("shadow: #000 1 2")
        units = prop.consecutive_values_of_kind(TokenKind.UNIT)
        assert [t.value for t in units] == [1.0, 2.0]

    def test_consecutive_values_from_raw_tokens(self):
        prop = StyleProperty(
            Token(TokenKind.REF, "frame"),
            [unit(10.0), Token(TokenKind.SPACE, " "), unit(20.0), Token(TokenKind.OPERATOR, ","), unit(30.0)],
        )
        assert [t.value for t in prop.consecutive_values_of_kind(TokenKind.UNIT)] == [10.0, 20.0, 30.0]

        prop = StyleProperty(Token(TokenKind.REF, "frame"), [unit(10.0), Token(TokenKind.REF, "x"), unit(20.0)])
        assert [t.value for t in prop.consecutive_values_of_kind(TokenKind.UNIT)] == [10.0]

    def test_child_properties_allocated_lazily(self):
        prop = StyleProperty(Token(TokenKind.REF, "title-label"))
        assert prop.child_properties is None
        prop.add_child_property(StyleProperty(Token(TokenKind.REF, "color")))
        assert [c.name for c in prop.child_properties] == ["color"]

    def test_first_value_of_missing_kind(self):
        assert self.prop("color: red").first_value_of_kind(TokenKind.COLOR) is None

    def test_property_named_returns_last(self):
        node = parse("UIView\n  background-color: red\n  background-color: blue\n").nodes[0]
        assert node.property_named("background-color").values == ["blue"]
        assert node.property_named("backgroundColor").values == ["blue"]
        assert node.property_named("width") is None


class TestSelectors:
    def test_text_with_arguments(self):
        selector = StyleSelector(object_class="UIButton", arguments=(("a", "1"), ("b", "2")))
        assert selector.text == "UIButton[a:1, b:2]"

    def test_descendant_of_chains_outermost(self):
        selector = StyleSelector(object_class="B", parent=StyleSelector(object_class="A"))
        chained = selector.descendant_of(StyleSelector(object_class="Root"), immediate=True)
        assert chained.text == "Root > A B"
        assert selector.text == "A B"

    def test_selectors_are_hashable(self):
        a = StyleSelector(object_class="UIView", style_class="card")
        b = StyleSelector(object_class="UIView", style_class="card")
        assert {a, b} == {a}


class TestDeviceSelector:
    @pytest.mark.parametrize(
        "operator,version,current,expected",
        [
            ("==", "7", "7.0.0", True),
            ("<", "7", "6.1", True),
            ("<", "7", "7.0", False),
            ("<=", "7.1", "7.1", True),
            (">", "7", "7.0.1", True),
        ],
    )
    def test_version_items(self, operator, version, current, expected):
        item = DeviceItem(operator=operator, version=version)
        assert item.matches("phone", current) is expected

    def test_all_items_must_hold(self):
        selector = DeviceSelector((DeviceItem(idiom="pad"), DeviceItem(operator=">=", version="8")))
        assert selector.text == "pad and version >= 8"
        assert selector.matches("pad", "8.1")
        assert not selector.matches("phone", "8.1")
        assert not selector.matches("pad", "7.9")
