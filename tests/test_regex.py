"""Tests for msgmap._internal.regex — embedding requirement patterns."""

import re

from msgmap._internal.regex import embeddable, has_captures, remove_captures, strip_anchors


class TestHasCaptures:
    def test_plain_group(self) -> None:
        assert has_captures(re.compile(r"(\d+)"))

    def test_named_group(self) -> None:
        assert has_captures(re.compile(r"(?P<n>\d+)"))

    def test_non_capturing(self) -> None:
        assert not has_captures(re.compile(r"(?:\d+)"))

    def test_escaped_paren(self) -> None:
        assert not has_captures(re.compile(r"\(\d+\)"))


class TestRemoveCaptures:
    def test_plain_group(self) -> None:
        assert remove_captures(r"(\d+)-(\w+)") == r"(?:\d+)-(?:\w+)"

    def test_named_group(self) -> None:
        assert remove_captures(r"(?P<year>\d{4})") == r"(?:\d{4})"

    def test_keeps_non_capturing_and_lookahead(self) -> None:
        assert remove_captures(r"(?:a)(?=b)(?!c)") == r"(?:a)(?=b)(?!c)"

    def test_escaped_paren_untouched(self) -> None:
        assert remove_captures(r"\(x\)") == r"\(x\)"

    def test_double_backslash_before_group(self) -> None:
        assert remove_captures(r"\\(x)") == r"\\(?:x)"

    def test_paren_inside_class_untouched(self) -> None:
        assert remove_captures(r"[(]x[)]") == r"[(]x[)]"

    def test_bracket_first_in_class(self) -> None:
        assert remove_captures(r"[]()](y)") == r"[]()](?:y)"

    def test_result_compiles_without_groups(self) -> None:
        source = remove_captures(r"^<?(\w+)(?P<tail>!)?>?$")
        assert re.compile(source).groups == 0


class TestStripAnchors:
    def test_both(self) -> None:
        assert strip_anchors(r"^\d+$") == r"\d+"

    def test_none(self) -> None:
        assert strip_anchors(r"\d+") == r"\d+"

    def test_escaped_dollar_kept(self) -> None:
        assert strip_anchors(r"^\d+\$") == r"\d+\$"

    def test_escaped_backslash_then_dollar(self) -> None:
        assert strip_anchors(r"a\\$") == r"a\\"


class TestEmbeddable:
    def test_plain(self) -> None:
        assert embeddable(re.compile(r"^(\d+)$")) == r"(?:\d+)"

    def test_ignorecase_scoped(self) -> None:
        fragment = embeddable(re.compile(r"^(yes|no)$", re.IGNORECASE))
        assert fragment == r"(?i:(?:yes|no))"
        assert re.fullmatch(fragment, "YES")

    def test_leading_inline_flags_folded(self) -> None:
        fragment = embeddable(re.compile(r"(?i)^(yes|no)$"))
        assert fragment == r"(?i:(?:yes|no))"
        assert re.fullmatch(fragment, "No")

    def test_several_inline_flag_groups(self) -> None:
        fragment = embeddable(re.compile(r"(?i)(?s)^a.b$"))
        assert fragment == r"(?is:a.b)"
        assert re.fullmatch(fragment, "A\nB")

    def test_ascii_flag_scoped(self) -> None:
        assert embeddable(re.compile(r"^\w+$", re.ASCII)) == r"(?a:\w+)"
