"""Tests for transform steps and string codecs."""

import pytest

from jdeep.errors import InversionMismatch, ParseFailure
from jdeep.steps import (
    StepKind,
    TransformStep,
    apply_inverse,
    base64_decode,
    base64_encode,
    base64_style,
    escape,
    json_encode,
    json_layout,
    unescape,
    unicode_decode,
    unicode_encode,
    unicode_escape_style,
    url_decode,
    url_encode,
)


class TestUnicode:
    """\\uXXXX 이스케이프 처리."""

    def test_decode_bmp(self):
        assert unicode_decode("\\u4e2d\\u6587") == "中文"

    def test_decode_surrogate_pair(self):
        assert unicode_decode("\\ud83d\\ude00") == "😀"

    def test_encode_surrogate_pair(self):
        assert unicode_encode("😀") == "\\ud83d\\ude00"

    def test_encode_leaves_ascii(self):
        assert unicode_encode('{"a":"中"}') == '{"a":"\\u4e2d"}'

    def test_style_upper_hex(self):
        assert unicode_escape_style("\\u4E2D")["upper"] is True
        assert unicode_encode("中", upper=True) == "\\u4E2D"

    def test_style_records_escaped_codepoints(self):
        style = unicode_escape_style("caf\\u00e9 \\u0041")
        assert style["before"] == "caf\\u00e9 \\u0041"
        assert style["escaped"] == [0x41, 0xE9]
        assert style["above"] == 0x7F
        assert unicode_encode("café A", codepoints=style["escaped"]) == "caf\\u00e9 \\u0041"

    def test_codepoints_limit_what_is_escaped(self):
        assert unicode_encode("<b>中</b>", codepoints={0x3C, 0x3E}, above=None) == "\\u003cb\\u003e中\\u003c/b\\u003e"

    def test_default_leaves_latin1(self):
        assert unicode_encode("café 中") == "café \\u4e2d"


class TestPercent:
    def test_encode_component(self):
        assert url_encode("a b/中") == "a%20b%2F%E4%B8%AD"

    def test_decode(self):
        assert url_decode("%7B%22x%22%3A1%7D") == '{"x":1}'

    def test_malformed_sequence_is_left_alone(self):
        assert url_decode("%FF") == "%FF"


class TestBase64:
    def test_decode_unpadded(self):
        assert base64_decode("eyJhIjoxfQ") == '{"a":1}'

    def test_decode_urlsafe(self):
        assert base64_decode(base64_encode("??>>", urlsafe=True)) == "??>>"

    def test_style_roundtrip(self):
        raw = "eyJhIjoxfQ"
        assert base64_encode(base64_decode(raw), **base64_style(raw)) == raw

    def test_invalid_raises(self):
        with pytest.raises(ParseFailure):
            base64_decode("!!!")

    def test_non_utf8_raises(self):
        with pytest.raises(ParseFailure):
            base64_decode("//4=")


_ROUND_TRIP_TEXTS = ["", "&=%+/?", "a=1&b=2", "中文 텍스트", "😀 emoji", "  \t\n  ", '{"k":"v"}']


class TestRoundTrip:
    """디코드(인코드(x)) == x."""

    @pytest.mark.parametrize("text", _ROUND_TRIP_TEXTS)
    @pytest.mark.parametrize("padded", [True, False])
    @pytest.mark.parametrize("urlsafe", [True, False])
    def test_base64(self, text, padded, urlsafe):
        assert base64_decode(base64_encode(text, padded=padded, urlsafe=urlsafe)) == text

    @pytest.mark.parametrize("text", _ROUND_TRIP_TEXTS)
    def test_percent(self, text):
        assert url_decode(url_encode(text)) == text

    @pytest.mark.parametrize("text", _ROUND_TRIP_TEXTS + ['"quoted" \\ back'])
    def test_unicode(self, text):
        assert unicode_decode(unicode_encode(text)) == text

    @pytest.mark.parametrize("escaped", ["\\u0041", "\\u003cb\\u003e", "x\\u0022y", "\\u00E9\\u00e9"])
    def test_unicode_inverse_keeps_ascii_escapes(self, escaped):
        step = TransformStep(StepKind.UNICODE_DECODE, unicode_escape_style(escaped))
        assert apply_inverse(unicode_decode(escaped), step) == escaped


class TestEscape:
    def test_escape_unescape(self):
        text = 'say "hi"\n'
        assert escape(text) == 'say \\"hi\\"\\n'
        assert unescape(escape(text)) == text

    def test_unescape_invalid(self):
        with pytest.raises(ParseFailure):
            unescape("\\x")


class TestJsonLayout:
    """내부 JSON 문자열의 원래 모양을 기록."""

    def test_compact(self):
        assert json_layout('{"a":1}', {"a": 1}) == {}

    def test_python_style_separators(self):
        meta = json_layout('{"a": 1, "b": 2}', {"a": 1, "b": 2})
        assert json_encode({"a": 1, "b": 2}, meta) == '{"a": 1, "b": 2}'

    def test_indented(self):
        text = '{\n    "a": 1\n}'
        meta = json_layout(text, {"a": 1})
        assert meta == {"indent": "    "}
        assert json_encode({"a": 1}, meta) == text

    def test_unrecognized_layout_falls_back_to_compact(self):
        assert json_layout('{ "a" :1 }', {"a": 1}) == {}


class TestApplyInverse:
    def test_json_decode(self):
        step = TransformStep(StepKind.JSON_DECODE)
        assert apply_inverse({"b": 2}, step) == '{"b":2}'

    def test_json_decode_rejects_scalar(self):
        with pytest.raises(InversionMismatch):
            apply_inverse("hello", TransformStep(StepKind.JSON_DECODE))

    def test_url_decode_rejects_number(self):
        with pytest.raises(InversionMismatch):
            apply_inverse(5, TransformStep(StepKind.URL_DECODE))

    def test_base64_decode_uses_metadata(self):
        step = TransformStep(StepKind.BASE64_DECODE, {"padded": False, "urlsafe": False})
        assert apply_inverse('{"a":1}', step) == "eyJhIjoxfQ"

    def test_unicode_decode_uses_metadata(self):
        step = TransformStep(StepKind.UNICODE_DECODE, {"upper": True})
        assert apply_inverse("中", step) == "\\u4E2D"

    def test_unicode_decode_returns_recorded_text(self):
        """ASCII 이스케이프도 편집이 없으면 원래 표기 그대로."""
        step = TransformStep(StepKind.UNICODE_DECODE, unicode_escape_style("\\u0041\\u0042"))
        assert apply_inverse("AB", step) == "\\u0041\\u0042"

    def test_unicode_decode_edited_value_reescapes_same_codepoints(self):
        step = TransformStep(StepKind.UNICODE_DECODE, unicode_escape_style('{"h":"\\u003cb\\u003e"}'))
        assert apply_inverse('{"h":"<i>"}', step) == '{"h":"\\u003ci\\u003e"}'

    def test_json_decode_returns_recorded_source(self):
        step = TransformStep(StepKind.JSON_DECODE, {"source": '{"n":"\\u0022"}'})
        assert apply_inverse({"n": '"'}, step) == '{"n":"\\u0022"}'
        assert apply_inverse({"n": "x"}, step) == '{"n":"x"}'

    def test_escape_pair(self):
        assert apply_inverse('a\\"b', TransformStep(StepKind.ESCAPE)) == 'a"b'
        assert apply_inverse('a"b', TransformStep(StepKind.UNESCAPE)) == 'a\\"b'
