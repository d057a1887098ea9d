from __future__ import annotations

import datetime as dt

import pytest

from snapsite.errors import MalformedFrontmatterError, MetadataParseError
from snapsite.frontmatter import coerce_metadata, parse_metadata_block, split_frontmatter


@pytest.mark.parametrize(
    ("raw", "content", "metadata"),
    [
        (b"", b"", None),
        (b"hi\na/file.html\nbye\n", b"hi\na/file.html\nbye\n", None),
        (b"---\nkey: value\n---\nbody", b"body", {"key": "value"}),
        (b"---\nkey: [value]\n---\nblah\nblah", b"blah\nblah", {"key": ["value"]}),
        (b"---\nkey:\n - value\n---\nblah\nblah", b"blah\nblah", {"key": ["value"]}),
        (b"---\nkey:\n inner: value\n---\nblah\nblah", b"blah\nblah", {"key": {"inner": "value"}}),
        (b"---\nkey:\n - inner: value\n---\nblah\nblah", b"blah\nblah", {"key": [{"inner": "value"}]}),
        (b"---\ndraft: true\ncount: 3\nratio: 0.5\n---\n", b"", {"draft": True, "count": 3, "ratio": 0.5}),
    ],
)
def test_split_frontmatter(raw: bytes, content: bytes, metadata: dict | None) -> None:
    result_content, result_metadata = split_frontmatter(raw)
    assert result_content == content
    assert result_metadata == metadata


def test_without_leading_delimiter_bytes_are_returned_unchanged() -> None:
    raw = b"title: nope\n---\nbody"
    content, metadata = split_frontmatter(raw)
    assert content is raw
    assert metadata is None


def test_delimiter_must_be_first_line_exactly() -> None:
    content, metadata = split_frontmatter(b"----\nkey: value\n---\nbody")
    assert metadata is None
    assert content == b"----\nkey: value\n---\nbody"


def test_empty_block_yields_empty_mapping() -> None:
    content, metadata = split_frontmatter(b"---\n---\nbody")
    assert content == b"body"
    assert metadata == {}


def test_only_first_closing_delimiter_ends_the_block() -> None:
    content, metadata = split_frontmatter(b"---\na: 1\n---\nfirst\n---\nsecond")
    assert metadata == {"a": 1}
    assert content == b"first\n---\nsecond"


class TestMalformedFrontmatter:
    def test_missing_closing_delimiter(self) -> None:
        with pytest.raises(MalformedFrontmatterError) as excinfo:
            split_frontmatter(b"---\nkey: value\nbody", path="/site/page.html")
        assert excinfo.value.path == "/site/page.html"
        assert "/site/page.html" in str(excinfo.value)

    def test_closing_delimiter_without_trailing_newline(self) -> None:
        with pytest.raises(MalformedFrontmatterError):
            split_frontmatter(b"---\nkey: value\n---")


class TestMetadataParseErrors:
    def test_invalid_yaml_wraps_parser_error(self) -> None:
        with pytest.raises(MetadataParseError) as excinfo:
            split_frontmatter(b"---\nkey: [unclosed\n---\nbody", path="broken.md")
        assert excinfo.value.path == "broken.md"
        assert excinfo.value.__cause__ is not None

    def test_non_mapping_block(self) -> None:
        with pytest.raises(MetadataParseError, match="must be a mapping"):
            split_frontmatter(b"---\n- a\n- b\n---\nbody")

    def test_non_utf8_block(self) -> None:
        with pytest.raises(MetadataParseError, match="UTF-8"):
            split_frontmatter(b"---\nkey: \xff\xfe\n---\nbody")


class TestCoerceMetadata:
    def test_dates_become_iso_strings(self) -> None:
        assert coerce_metadata({"published": dt.date(2024, 5, 1)}) == {"published": "2024-05-01"}

    def test_non_string_keys_are_stringified(self) -> None:
        assert coerce_metadata({1: "one", False: "no"}) == {"1": "one", "False": "no"}

    def test_nested_values(self) -> None:
        assert coerce_metadata({"a": ({"b": None},)}) == {"a": [{"b": None}]}

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError):
            coerce_metadata({"a": {1, 2}})

    def test_parse_block_converts_yaml_dates(self) -> None:
        assert parse_metadata_block(b"date: 2024-05-01") == {"date": "2024-05-01"}

    def test_parse_block_rejects_unsupported_yaml_types(self) -> None:
        with pytest.raises(MetadataParseError):
            parse_metadata_block(b"data: !!binary aGVsbG8=")

    def test_self_referencing_anchor_is_rejected(self) -> None:
        with pytest.raises(MetadataParseError, match="recursive") as excinfo:
            split_frontmatter(b"---\na: &x [*x]\n---\nbody", path="loop.md")
        assert excinfo.value.path == "loop.md"

    def test_shared_anchor_is_not_recursion(self) -> None:
        content, metadata = split_frontmatter(b"---\na: &x [1, 2]\nb: *x\n---\nbody")
        assert metadata == {"a": [1, 2], "b": [1, 2]}
        assert content == b"body"
