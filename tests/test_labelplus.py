"""
Tests for the LabelPlus parser.

Tests cover:
- Header validation and error reporting
- Page and unit scanning
- Main text / comment buffering
- Input decoding (bytes, streams, CRLF, BOM)
"""

from io import BytesIO

import pytest

from poprako_backend.errors import LabelPlusFormatError, ProjectFormatError
from poprako_backend.labelplus import parse_labelplus

HEADER = "1,0\n-\n框内\n框外\n-\nsome generator\n\n"


class TestHeaderValidation:
    """Tests for the fixed 7-line header."""

    def test_valid_header_without_pages(self):
        assert parse_labelplus(HEADER) == []

    def test_wrong_third_line_reports_line_three(self):
        text = "1,0\n-\n框外\n框外\n-\ngen\n\n"
        with pytest.raises(LabelPlusFormatError) as info:
            parse_labelplus(text)
        assert info.value.line_number == 3
        assert info.value.expected == "框内"
        assert info.value.actual == "框外"

    def test_wrong_version_line(self):
        with pytest.raises(LabelPlusFormatError) as info:
            parse_labelplus("2,0\n-\n框内\n框外\n-\ngen\n\n")
        assert info.value.line_number == 1

    def test_truncated_header(self):
        with pytest.raises(LabelPlusFormatError) as info:
            parse_labelplus("1,0\n-\n框内\n")
        assert info.value.line_number == 4
        assert info.value.actual is None

    def test_missing_generator_line(self):
        with pytest.raises(LabelPlusFormatError) as info:
            parse_labelplus("1,0\n-\n框内\n框外\n-\n")
        assert info.value.line_number == 6

    def test_seventh_line_must_be_empty(self):
        with pytest.raises(LabelPlusFormatError) as info:
            parse_labelplus("1,0\n-\n框内\n框外\n-\ngen\nnot empty\n")
        assert info.value.line_number == 7
        assert info.value.actual == "not empty"

    def test_generator_line_is_free_form(self):
        assert parse_labelplus("1,0\n-\n框内\n框外\n-\n\n\n") == []


class TestScanning:
    """Tests for page/unit scanning."""

    def test_single_unit(self):
        text = HEADER + (
            "\n\n>>>>>>>>[page_1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[10.0000,20.0000,1]\n"
            "hi\n\n"
        )
        pages = parse_labelplus(text)
        assert len(pages) == 1
        [unit] = pages[0].units
        assert unit.index == 1
        assert unit.x == 10.0
        assert unit.y == 20.0
        assert unit.is_in_box is True
        assert unit.main_text == "hi"
        assert unit.translator_comment is None
        assert unit.proofreader_comment is None

    def test_out_of_box_group(self):
        text = HEADER + (
            ">>>>>>>>[a.png]<<<<<<<<\n"
            "----------------[1]----------------[-1.5000,0.2500,2]\n"
        )
        [page] = parse_labelplus(text)
        [unit] = page.units
        assert unit.is_in_box is False
        assert unit.x == -1.5
        assert unit.main_text is None

    def test_multiple_pages_and_units_keep_file_order(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[2]----------------[1,1,1]\n"
            "second\n"
            "----------------[1]----------------[2,2,1]\n"
            "first\n"
            ">>>>>>>>[p2.jpg]<<<<<<<<\n"
            ">>>>>>>>[p3.jpg]<<<<<<<<\n"
            "----------------[1]----------------[3,3,2]\n"
            "third\n"
        )
        pages = parse_labelplus(text)
        assert [len(p.units) for p in pages] == [2, 0, 1]
        assert [u.index for u in pages[0].units] == [2, 1]
        assert [u.main_text for u in pages[0].units] == ["second", "first"]
        assert pages[2].units[0].main_text == "third"

    def test_multiline_text_drops_blank_lines(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1,1,1]\n"
            "line one\n"
            "\n"
            "line two\n"
        )
        [page] = parse_labelplus(text)
        assert page.units[0].main_text == "line one\nline two"

    def test_comment_block_is_split_by_role(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1,1,1]\n"
            "text\n"
            "\n"
            "#[翻校注释]：【翻译】translator note\n"
            "【校对】proofreader note\n"
            "\n"
        )
        [page] = parse_labelplus(text)
        unit = page.units[0]
        assert unit.main_text == "text"
        assert unit.translator_comment == "translator note"
        assert unit.proofreader_comment == "proofreader note"

    def test_comment_mode_never_reverts_to_main_text(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1,1,1]\n"
            "main\n"
            "#[翻校注释]：note\n"
            "still comment\n"
        )
        [page] = parse_labelplus(text)
        unit = page.units[0]
        assert unit.main_text == "main"
        assert unit.translator_comment == "note\nstill comment"

    def test_comment_mode_is_per_unit(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1,1,1]\n"
            "#[翻校注释]：note\n"
            "----------------[2]----------------[1,1,1]\n"
            "next main\n"
        )
        [page] = parse_labelplus(text)
        assert page.units[0].main_text is None
        assert page.units[0].translator_comment == "note"
        assert page.units[1].main_text == "next main"
        assert page.units[1].translator_comment is None

    def test_text_outside_units_is_ignored(self):
        text = HEADER + (
            "stray line before pages\n"
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "stray line before units\n"
            "#[翻校注释]：stray comment\n"
            "----------------[1]----------------[1,1,1]\n"
            "kept\n"
        )
        [page] = parse_labelplus(text)
        [unit] = page.units
        assert unit.main_text == "kept"
        assert unit.translator_comment is None

    def test_malformed_unit_header_is_plain_text(self):
        """Only exact dash counts form a unit header."""
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1,1,1]\n"
            "---------------[2]----------------[1,1,1]\n"
        )
        [page] = parse_labelplus(text)
        assert len(page.units) == 1
        assert page.units[0].main_text == "---------------[2]----------------[1,1,1]"

    def test_fullwidth_digits_do_not_form_a_unit_header(self):
        """Unit headers use ASCII digits only."""
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[１]----------------[１０,２０,1]\n"
            "hi\n"
        )
        [page] = parse_labelplus(text)
        assert page.units == []

    def test_fullwidth_digits_are_body_text_of_open_unit(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1,1,1]\n"
            "----------------[２]----------------[1,1,1]\n"
        )
        [page] = parse_labelplus(text)
        [unit] = page.units
        assert unit.main_text == "----------------[２]----------------[1,1,1]"

    def test_unparsable_coordinate_reports_line(self):
        text = HEADER + (
            ">>>>>>>>[p1.jpg]<<<<<<<<\n"
            "----------------[1]----------------[1.2.3,1,1]\n"
        )
        with pytest.raises(LabelPlusFormatError) as info:
            parse_labelplus(text)
        assert info.value.line_number == 9
        assert info.value.actual == "1.2.3"

    def test_unit_before_first_page_is_rejected(self):
        text = HEADER + "----------------[1]----------------[1,1,1]\n"
        with pytest.raises(LabelPlusFormatError):
            parse_labelplus(text)


class TestDecoding:
    """Tests for input handling."""

    def test_bytes_and_stream_input(self):
        text = HEADER + ">>>>>>>>[p1.jpg]<<<<<<<<\n----------------[1]----------------[1,1,1]\n你好\n"
        from_bytes = parse_labelplus(text.encode("utf-8"))
        from_stream = parse_labelplus(BytesIO(text.encode("utf-8")))
        assert from_bytes == from_stream
        assert from_bytes[0].units[0].main_text == "你好"

    def test_crlf_line_endings(self):
        text = HEADER + ">>>>>>>>[p1.jpg]<<<<<<<<\n----------------[1]----------------[1,1,1]\nhi\n"
        pages = parse_labelplus(text.replace("\n", "\r\n").encode("utf-8"))
        assert pages[0].units[0].main_text == "hi"

    def test_utf8_bom_is_tolerated(self):
        assert parse_labelplus(b"\xef\xbb\xbf" + HEADER.encode("utf-8")) == []

    def test_invalid_utf8_is_a_format_error(self):
        with pytest.raises(ProjectFormatError):
            parse_labelplus(b"1,0\n\xff\xfe\n")
