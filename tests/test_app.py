"""Tests for the editor shell helpers."""

from jdeep.app import commit_inspection, describe_layers, find_string_at, mode_label, render_diff_summary
from jdeep.diff import DiffRange, DiffType
from jdeep.scheme import detect_and_decode
from jdeep.transforms import TransformMode


class TestFindStringAt:
    """커서 행에서 문자열 값 찾기."""

    def test_value_after_key(self):
        assert find_string_at('  "a": "x",') == (7, 10, "x")

    def test_escaped_content(self):
        line = r'  "k": "{\"b\":1}"'
        start, end, content = find_string_at(line)
        assert content == '{"b":1}'
        assert line[start:end] == r'"{\"b\":1}"'

    def test_cursor_picks_array_element(self):
        line = '  "p", "q"'
        assert find_string_at(line, 8) == (7, 10, "q")
        assert find_string_at(line, 0) == (2, 5, "p")

    def test_key_only_line(self):
        assert find_string_at('  "obj": {') is None

    def test_non_string_value(self):
        assert find_string_at('  "n": 1,') is None


class TestStatusLine:
    def test_no_changes(self):
        text = render_diff_summary([])
        assert "RAW" in text.plain
        assert "no changes" in text.plain

    def test_counts(self):
        ranges = [DiffRange(DiffType.ADD, 1, 1), DiffRange(DiffType.MODIFY, 4, 5)]
        text = render_diff_summary(ranges, TransformMode.DEEP_FORMAT, dirty=True)
        assert "EXPANDED" in text.plain
        assert "[+]" in text.plain
        assert "+1" in text.plain
        assert "~1" in text.plain
        assert "-" not in text.plain.split("[+]")[1]

    def test_mode_labels(self):
        assert mode_label(TransformMode.NONE) == "RAW"
        assert mode_label(TransformMode.DEEP_FORMAT) == "EXPANDED"
        assert mode_label(TransformMode.CN_TO_UNICODE) == "CN TO UNICODE"
        assert "MINIFY" in render_diff_summary([], TransformMode.MINIFY).plain


class TestInspection:
    def test_describe(self):
        assert describe_layers(detect_and_decode("plain")) == "no encoding"
        assert describe_layers(detect_and_decode("%7B%22x%22%3A1%7D")) == "URL Decode"

    def test_commit_compacts_and_reencodes(self):
        result = detect_and_decode("eyJoZWxsbyI6IndvcmxkIn0=")
        edited = '{\n  "hello": "world"\n}'
        assert commit_inspection(edited, result) == "eyJoZWxsbyI6IndvcmxkIn0="

    def test_commit_invalid_json_is_encoded_as_text(self):
        result = detect_and_decode("%7B%22x%22%3A1%7D")
        assert commit_inspection("{x", result) == "%7Bx"
