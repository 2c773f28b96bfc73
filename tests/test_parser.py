"""
Tests for the module header parser.
"""

import textwrap
from pathlib import Path

from provisioner.core.registry.parser import (
    name_from_filename,
    parse_descriptor,
    read_descriptor,
)


class TestNameFromFilename:
    def test_strips_ordering_prefix(self):
        assert name_from_filename("02-python.sh") == "python"

    def test_keeps_inner_hyphens(self):
        assert name_from_filename("/x/01-system-deps.sh") == "system-deps"

    def test_no_prefix(self):
        assert name_from_filename("nodejs.sh") == "nodejs"


class TestParseDescriptor:
    def test_full_header(self):
        text = textwrap.dedent("""\
            #!/usr/bin/env bash
            MODULE_NAME="python"
            MODULE_VERSION="1.0.0"
            MODULE_DESCRIPTION="Python 3.9+ runtime and package management"
            MODULE_DEPS=("system-deps")
        """)
        result = parse_descriptor(text)
        assert result.ok
        d = result.descriptor
        assert d.name == "python"
        assert d.version == "1.0.0"
        assert d.description == "Python 3.9+ runtime and package management"
        assert d.dependencies == ("system-deps",)

    def test_bare_words_and_several_deps(self):
        text = "MODULE_NAME=tools\nMODULE_DEPS=(python 'nodejs' \"system-deps\")\n"
        result = parse_descriptor(text)
        assert result.descriptor.dependencies == ("python", "nodejs", "system-deps")

    def test_multiline_deps(self):
        text = textwrap.dedent("""\
            MODULE_NAME="full"
            MODULE_DEPS=(
                "a"
                "b"
            )
        """)
        result = parse_descriptor(text)
        assert result.ok
        assert result.descriptor.dependencies == ("a", "b")

    def test_empty_deps(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS=()\n')
        assert result.descriptor.dependencies == ()

    def test_scalar_deps_is_single_dependency(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS="b"\n')
        assert result.descriptor.dependencies == ("b",)

    def test_trailing_comment_after_array(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS=("b")  # needs b\n')
        assert result.ok
        assert result.descriptor.dependencies == ("b",)

    def test_duplicate_deps_collapsed_in_order(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS=("c" "b" "c")\n')
        assert result.descriptor.dependencies == ("c", "b")

    def test_missing_name_uses_fallback(self):
        result = parse_descriptor('MODULE_VERSION="2.0"\n', fallback_name="nodejs")
        assert result.ok
        assert result.descriptor.name == "nodejs"

    def test_missing_version_defaults(self):
        result = parse_descriptor('MODULE_NAME="a"\n')
        assert result.descriptor.version == "0.0.0"

    def test_first_assignment_wins(self):
        text = 'MODULE_NAME="first"\nMODULE_NAME="second"\n'
        assert parse_descriptor(text).descriptor.name == "first"

    def test_indented_assignments_ignored(self):
        text = 'MODULE_NAME="a"\n    MODULE_DEPS=("b")\n'
        assert parse_descriptor(text).descriptor.dependencies == ()

    def test_body_is_not_executed(self):
        text = 'MODULE_NAME="a"\nMODULE_DESCRIPTION="$(rm -rf /)"\n'
        result = parse_descriptor(text)
        assert result.descriptor.description == "$(rm -rf /)"


class TestParseErrors:
    def test_no_name_and_no_fallback(self):
        result = parse_descriptor('MODULE_VERSION="1"\n', source="x.sh")
        assert not result.ok
        assert "no MODULE_NAME" in result.error
        assert "x.sh" in result.error

    def test_invalid_name(self):
        result = parse_descriptor('MODULE_NAME="bad name!"\n')
        assert not result.ok
        assert "invalid module name" in result.error

    def test_name_too_long(self):
        result = parse_descriptor(f'MODULE_NAME="{"a" * 51}"\n')
        assert not result.ok

    def test_invalid_dependency(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS=("ok" "not/ok")\n')
        assert not result.ok
        assert "not/ok" in result.error

    def test_unclosed_array(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS=("b"\n')
        assert not result.ok

    def test_unbalanced_quote(self):
        result = parse_descriptor('MODULE_NAME="a\n')
        assert not result.ok

    def test_two_word_scalar(self):
        result = parse_descriptor("MODULE_NAME=a b\n")
        assert not result.ok
        assert "single value" in result.error

    def test_text_after_array(self):
        result = parse_descriptor('MODULE_NAME="a"\nMODULE_DEPS=("b") extra\n')
        assert not result.ok


class TestReadDescriptor:
    def test_reads_file_and_falls_back_to_filename(self, tmp_path: Path):
        path = tmp_path / "07-openclaw-env.sh"
        path.write_text('MODULE_DEPS=("nodejs")\n', encoding="utf-8")
        result = read_descriptor(path)
        assert result.ok
        assert result.descriptor.name == "openclaw-env"
        assert result.source == str(path)

    def test_missing_file(self, tmp_path: Path):
        result = read_descriptor(tmp_path / "nope.sh")
        assert not result.ok
        assert "Cannot read" in result.error
