"""Tests for editor transform modes."""

import pytest

from jdeep.transforms import (
    TransformMode,
    format_json,
    minify_json,
    perform_inverse_transform,
    perform_transform,
    unescape_text,
    validate_json,
)

NESTED = r'{"a":"{\"b\":1}"}'


class TestValidate:
    def test_empty_is_valid(self):
        assert validate_json("   ").is_valid

    def test_valid(self):
        assert validate_json('{"a": [1]}').is_valid

    def test_invalid_reports_position(self):
        result = validate_json('{"a": }')
        assert not result.is_valid
        assert "line 1" in result.error


class TestFormatting:
    def test_format(self):
        assert format_json('{"a":1}') == '{\n  "a": 1\n}'

    def test_minify(self):
        assert minify_json('{\n  "a": [1, 2]\n}') == '{"a":[1,2]}'

    def test_invalid_left_alone(self):
        assert format_json("nope") == "nope"
        assert minify_json("nope") == "nope"

    def test_unescape_quoted_literal(self):
        assert unescape_text('"{\\"a\\":1}"') == '{"a":1}'


class TestPerformTransform:
    """모드별 정방향/역방향 변환."""

    def test_empty_input(self):
        assert perform_transform("", TransformMode.DEEP_FORMAT).output == ""
        assert perform_inverse_transform("", TransformMode.FORMAT) == ""

    def test_deep_format_with_context(self):
        result = perform_transform(NESTED, TransformMode.DEEP_FORMAT)
        assert result.context is not None
        edited = result.output.replace('"b": 1', '"b": 3')
        out = perform_inverse_transform(edited, TransformMode.DEEP_FORMAT, context=result.context)
        assert out == r'{"a":"{\"b\":3}"}'

    def test_deep_format_merge_fallback(self):
        result = perform_transform(NESTED, TransformMode.DEEP_FORMAT)
        out = perform_inverse_transform(result.output, TransformMode.DEEP_FORMAT, original_input=NESTED)
        assert out == NESTED

    def test_deep_format_minify_fallback(self):
        out = perform_inverse_transform('{\n  "a": {"b": 1}\n}', TransformMode.DEEP_FORMAT)
        assert out == '{"a":{"b":1}}'

    @pytest.mark.parametrize(
        "mode",
        [
            TransformMode.ESCAPE,
            TransformMode.UNICODE_TO_CN,
            TransformMode.CN_TO_UNICODE,
            TransformMode.NONE,
        ],
    )
    def test_inverse_restores_input(self, mode):
        text = '{"name":"\\u4e2d"}' if mode is TransformMode.UNICODE_TO_CN else '{"name":"中"}'
        output = perform_transform(text, mode).output
        assert perform_inverse_transform(output, mode) == text

    def test_unicode_to_cn(self):
        assert perform_transform("\\u4e2d\\u6587", TransformMode.UNICODE_TO_CN).output == "中文"

    def test_cn_to_unicode(self):
        assert perform_transform("中", TransformMode.CN_TO_UNICODE).output == "\\u4e2d"

    def test_only_deep_format_has_context(self):
        assert perform_transform('{"a":1}', TransformMode.FORMAT).context is None

    def test_format_inverse_keeps_original_layout(self):
        original = '{\n    "a": 1\n}\n'
        out = perform_inverse_transform('{\n  "a": 2\n}', TransformMode.FORMAT, original_input=original)
        assert out == '{\n    "a": 2\n}\n'

    def test_minify_inverse_keeps_original_layout(self):
        original = '{"a": [1, 2]}'
        out = perform_inverse_transform('{"a":[1,3]}', TransformMode.MINIFY, original_input=original)
        assert out == '{"a": [1, 3]}'

    def test_format_inverse_without_original_minifies(self):
        assert perform_inverse_transform('{\n  "a": 1\n}', TransformMode.FORMAT) == '{"a":1}'
