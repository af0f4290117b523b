"""
Tests for translator/proofreader comment splitting and merging.
"""

from poprako_backend.comments import merge_comments, split_comment


class TestSplitComment:
    """Tests for split_comment."""

    def test_split_both_roles(self):
        assert split_comment("【翻译】foo\n【校对】bar") == ("foo", "bar")

    def test_unprefixed_comment_goes_to_translator(self):
        assert split_comment("plain note") == ("plain note", None)

    def test_empty_comment_yields_nothing(self):
        assert split_comment("") == (None, None)
        assert split_comment(None) == (None, None)

    def test_unprefixed_lines_continue_open_role(self):
        """Lines without a marker continue whichever role was opened last."""
        text = "【翻译】line one\nline two\n【校对】check\nmore check"
        assert split_comment(text) == ("line one\nline two", "check\nmore check")

    def test_only_proofreader(self):
        assert split_comment("【校对】only me") == (None, "only me")

    def test_lines_before_first_marker_go_to_translator(self):
        assert split_comment("intro\n【校对】p") == ("intro", "p")

    def test_repeated_marker_appends(self):
        assert split_comment("【翻译】a\n【校对】b\n【翻译】c") == ("a\nc", "b")


class TestMergeComments:
    """Tests for merge_comments and its inverse relationship with split_comment."""

    def test_merge_prefixes_each_role(self):
        assert merge_comments("foo", "bar") == "【翻译】foo\n【校对】bar"

    def test_merge_skips_empty_parts(self):
        assert merge_comments(None, "bar") == "【校对】bar"
        assert merge_comments("", None) == ""

    def test_merge_then_split_is_identity(self):
        for translator, proofreader in [
            ("foo", "bar"),
            ("multi\nline", None),
            (None, "only\nproofreader"),
            (None, None),
        ]:
            merged = merge_comments(translator, proofreader)
            assert split_comment(merged) == (translator, proofreader)
