"""Parse stylesheets from the command line and print their outline.

Usage:
    sassy-parse theme.sas
    sassy-parse theme.sas buttons.sas --var '$accent=#ff0000' -v
    sassy-parse theme.sas --config sassy.yaml
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_options
from .errors import StyleError
from .nodes import StyleProperty
from .parser import parse, parse_file


def _seed_variables(assignments: list[str]) -> dict[str, StyleProperty]:
    """Turn `$name=value` pairs into bindings by parsing them as declarations."""
    variables: dict[str, StyleProperty] = {}
    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        if not sep:
            raise SystemExit(f"--var expects NAME=VALUE, got {assignment!r}")
        name = name.strip()
        if not name.startswith("$"):
            name = f"${name}"
        variables.update(parse(f"{name} = {value}", variables=variables).variables)
    return variables


def _print_property(prop: StyleProperty, indent: str) -> None:
    print(f"{indent}{prop.name}: {prop.text}")
    for child in prop.child_properties or []:
        _print_property(child, indent + "  ")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Parse stylesheet files and print their nodes")
    parser.add_argument("files", nargs="+", type=Path, help="Stylesheets to parse")
    parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Seed a variable before parsing (repeatable)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with parser options",
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        options = load_options(args.config)
        variables = _seed_variables(args.var)
    except StyleError as e:
        print(f"  FAIL  {e}")
        sys.exit(1)

    failures = 0
    for path in args.files:
        try:
            result = parse_file(path, variables=variables, options=options)
        except StyleError as e:
            failures += 1
            print(f"  FAIL  {path}: {e}")
            continue

        print(f"  OK    {path}: {len(result.nodes)} nodes, {len(result.variables)} variables")
        for node in result.nodes:
            media = f" @media {node.device_selector.text}" if node.device_selector else ""
            print(f"    {node.selector.text}{media}")
            for prop in node.properties:
                _print_property(prop, "      ")

    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
