"""Tests for @import handling, file loading and parser options."""

import pytest

from sassy import (
    IoError,
    MemoryLoader,
    ParseError,
    Parser,
    ParserOptions,
    TokenKind,
    load_options,
    parse,
    parse_file,
)


class TestImportForms:
    files = {"theme.sas": "$accent = #ff0000\n"}

    def check(self, main: str):
        loader = MemoryLoader({**self.files, "main.sas": main})
        result = parse_file("main.sas", loader=loader)
        assert "$accent" in result.variables
        assert result.imported_files == ["theme.sas"]
        return result

    def test_quoted(self):
        self.check('@import "theme.sas"\n')

    def test_unquoted(self):
        self.check("@import theme.sas\n")

    def test_semicolon_terminated(self):
        self.check("@import 'theme.sas';\n")

    def test_file_name_from_variable(self):
        result = self.check('$file = "theme.sas"\n@import $file\n')
        assert "$file" in result.variables

    def test_imported_variables_are_visible(self):
        result = self.check('@import "theme.sas"\n.btn\n  color: $accent\n')
        prop = result.nodes[0].properties[0]
        assert prop.first_value_of_kind(TokenKind.COLOR).red == 1.0

    def test_imported_nodes_come_first(self):
        loader = MemoryLoader(
            {
                "base.sas": "UIView\n  color: red\n",
                "main.sas": '@import "base.sas"\nUILabel\n  color: blue\n',
            }
        )
        result = parse_file("main.sas", loader=loader)
        assert [n.selector.text for n in result.nodes] == ["UIView", "UILabel"]

    def test_importer_variables_seed_import(self):
        loader = MemoryLoader(
            {
                "buttons.sas": ".btn\n  color: $accent\n",
                "main.sas": '$accent = #ff0000\n@import "buttons.sas"\n',
            }
        )
        result = parse_file("main.sas", loader=loader)
        assert result.nodes[0].properties[0].first_value_of_kind(TokenKind.COLOR).red == 1.0


class TestImportInMedia:
    def test_imported_nodes_take_device_selector(self):
        loader = MemoryLoader({"x.sas": "UILabel\n  color: red\n"})
        result = parse('@media pad\n  @import "x.sas"\n', loader=loader)
        assert result.nodes[0].selector.text == "UILabel"
        assert result.nodes[0].device_selector.text == "pad"

    def test_imported_media_is_kept(self):
        loader = MemoryLoader({"x.sas": "@media phone\n  UILabel\n    color: red\nUIView\n  color: blue\n"})
        result = parse('@media pad {\n  @import "x.sas"\n}\n', loader=loader)
        assert [n.device_selector.text for n in result.nodes] == ["phone", "pad"]

    def test_nodes_after_media_block_have_no_device(self):
        loader = MemoryLoader({"x.sas": "UILabel\n  color: red\n"})
        result = parse('@media pad\n  @import "x.sas"\n@import "x.sas"\n', loader=loader)
        assert result.nodes[0].device_selector.text == "pad"
        assert result.nodes[1].device_selector is None


class TestImportErrors:
    def test_unknown_file_variable(self):
        with pytest.raises(ParseError, match=r"Unknown variable \$file"):
            parse("@import $file\n", loader=MemoryLoader({}))

    def test_missing_file_name(self):
        with pytest.raises(ParseError, match="does not specify file"):
            parse("@import\n", loader=MemoryLoader({}))

    def test_missing_file_in_memory(self):
        with pytest.raises(IoError, match="missing.sas"):
            parse('@import "missing.sas"\n', loader=MemoryLoader({}))

    def test_missing_file_on_disk(self, tmp_path):
        main = tmp_path / "main.sas"
        main.write_text('@import "missing.sas"\n')
        with pytest.raises(IoError, match="missing.sas") as exc_info:
            parse_file(main)
        assert isinstance(exc_info.value.__cause__, IoError)
        assert isinstance(exc_info.value.__cause__.__cause__, OSError)

    def test_circular_import(self):
        loader = MemoryLoader({"a.sas": '@import "b.sas"\n', "b.sas": '@import "a.sas"\n'})
        with pytest.raises(ParseError, match="Circular"):
            parse_file("a.sas", loader=loader)

    def test_parser_can_parse_twice(self):
        loader = MemoryLoader(
            {
                "theme.sas": "$accent = #ff0000\n",
                "main.sas": '@import "theme.sas"\n.btn\n  color: $accent\n',
            }
        )
        parser = Parser("main.sas", loader=loader)
        first = parser.parse_file()
        second = parser.parse_file()
        assert parser.import_chain == ()
        assert second.imported_files == first.imported_files == ["theme.sas"]
        assert len(second.nodes) == 1

    def test_self_import(self):
        loader = MemoryLoader({"a.sas": '@import "a.sas"\n'})
        with pytest.raises(ParseError, match="Circular"):
            parse_file("a.sas", loader=loader)

    def test_diamond_import_is_allowed(self):
        loader = MemoryLoader(
            {
                "c.sas": "$x = 1\n",
                "a.sas": '@import "c.sas"\n',
                "b.sas": '@import "c.sas"\n',
                "main.sas": '@import "a.sas"\n@import "b.sas"\n',
            }
        )
        result = parse_file("main.sas", loader=loader)
        assert result.imported_files == ["a.sas", "c.sas", "b.sas", "c.sas"]
        assert result.variables["$x"].values == [1.0]

    def test_error_in_import_names_the_import(self):
        loader = MemoryLoader(
            {
                "theme.sas": ".btn\n  color: $nope\n",
                "main.sas": '@import "theme.sas"\n',
            }
        )
        with pytest.raises(ParseError, match="@import 'theme.sas' in main.sas") as exc_info:
            parse_file("main.sas", loader=loader)
        assert exc_info.value.title == "Unknown variable $nope"
        assert exc_info.value.line == 2

    def test_empty_import(self):
        loader = MemoryLoader({"theme.sas": "  \n", "main.sas": '@import "theme.sas"\n'})
        with pytest.raises(ParseError, match="File is empty"):
            parse_file("main.sas", loader=loader)

    def test_empty_top_level_file(self, tmp_path):
        path = tmp_path / "empty.sas"
        path.write_text("")
        with pytest.raises(ParseError, match="File is empty"):
            parse_file(path)

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "latin.sas"
        path.write_bytes(b"UIView\n  font: '\xff'\n")
        with pytest.raises(IoError, match="Could not decode"):
            parse_file(path)

    def test_encoding_option(self, tmp_path):
        path = tmp_path / "latin.sas"
        path.write_bytes(b"UIView\n  font: '\xe9'\n")
        result = parse_file(path, options=ParserOptions(encoding="latin-1"))
        assert result.nodes[0].properties[0].values == ["\xe9"]


class TestVariableConflicts:
    files = {
        "theme.sas": "$color = blue\n",
        "main.sas": '$color = red\n@import "theme.sas"\n',
    }

    def run(self, policy: str):
        options = ParserOptions(variable_conflict=policy)
        return parse_file("main.sas", options=options, loader=MemoryLoader(self.files))

    def test_overwrite(self):
        assert self.run("overwrite").variables["$color"].values == ["blue"]

    def test_keep(self):
        assert self.run("keep").variables["$color"].values == ["red"]

    def test_error(self):
        with pytest.raises(ParseError, match="Variable conflict"):
            self.run("error")

    def test_untouched_seed_is_not_a_conflict(self):
        files = {"theme.sas": "$other = 1\n", "main.sas": '$color = red\n@import "theme.sas"\n'}
        options = ParserOptions(variable_conflict="error")
        result = parse_file("main.sas", options=options, loader=MemoryLoader(files))
        assert set(result.variables) == {"$color", "$other"}


class TestLoaders:
    def test_relative_paths(self):
        loader = MemoryLoader(
            {
                "styles/main.sas": '@import "parts/buttons.sas"\n',
                "styles/parts/buttons.sas": '@import "colors.sas"\n.btn\n  color: $accent\n',
                "styles/parts/colors.sas": "$accent = #00ff00\n",
            }
        )
        result = parse_file("styles/main.sas", loader=loader)
        assert result.imported_files == ["parts/buttons.sas", "colors.sas"]
        assert result.nodes[0].selector.text == ".btn"

    def test_filesystem_relative_to_importer(self, tmp_path):
        (tmp_path / "parts").mkdir()
        (tmp_path / "parts" / "theme.sas").write_text("$accent = #ff0000\n")
        main = tmp_path / "main.sas"
        main.write_text('@import "parts/theme.sas"\n.btn\n  color: $accent\n')
        result = parse_file(main)
        assert result.nodes[0].properties[0].first_value_of_kind(TokenKind.COLOR).red == 1.0


class TestOptions:
    def test_defaults(self):
        options = load_options(None)
        assert options.variable_conflict == "overwrite"
        assert options.detect_import_cycles
        assert options.encoding == "utf-8"

    def test_load(self, tmp_path):
        path = tmp_path / "sassy.yaml"
        path.write_text("variable_conflict: keep\nencoding: latin-1\n")
        options = load_options(path)
        assert options.variable_conflict == "keep"
        assert options.encoding == "latin-1"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "sassy.yaml"
        path.write_text("")
        assert load_options(path) == ParserOptions()

    @pytest.mark.parametrize(
        "contents",
        ["variable_conflict: merge\n", "colour: red\n", "variable_conflict: [1\n"],
    )
    def test_invalid(self, tmp_path, contents):
        path = tmp_path / "sassy.yaml"
        path.write_text(contents)
        with pytest.raises(ParseError, match="Invalid options file"):
            load_options(path)

    def test_missing(self, tmp_path):
        with pytest.raises(IoError):
            load_options(tmp_path / "nope.yaml")
