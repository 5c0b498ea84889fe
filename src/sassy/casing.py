"""Identifier casing helpers used for property-name normalisation."""


def capitalize_first(text: str) -> str:
    if not text:
        return text
    return text[0].upper() + text[1:]


def dash_to_camel_case(text: str) -> str:
    """Convert `border-top-width` to `borderTopWidth`.

    A single segment is returned unchanged.
    """
    components = text.split("-")
    if len(components) <= 1:
        return text
    return components[0] + "".join(capitalize_first(c) for c in components[1:])
