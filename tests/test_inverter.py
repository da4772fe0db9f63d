"""Round-trip tests: decode, edit, invert."""

import json

import pytest

from jdeep._value import Key
from jdeep.context import TransformContext
from jdeep.inverter import invert
from jdeep.walker import decode


def _roundtrip(raw):
    expanded, context = decode(raw)
    return invert(expanded, context)


class TestRoundTrip:
    """편집 없이 되돌리면 원본과 바이트 단위로 같아야 한다."""

    @pytest.mark.parametrize(
        "raw",
        [
            r'{"a":"{\"b\":1}"}',
            '{\n  "a": "{\\"b\\":1}",\n  "c": 3\n}',
            '{\n\t"a": "[1,2,3]"\n}\n',
            '{\r\n    "a": "{\\"b\\": 1, \\"c\\": 2}"\r\n}\r\n',
            r'{"a":"{\"n\":\"\\u4E2D\"}"}',
            r'{"a":"caf\\u00e9"}',
            r'{"a":"\\u0041"}',
            r'{"a":"{\"h\":\"\\u003cb\\u003e\"}"}',
            r'{"a":"{\"n\":\"\\u0022\"}"}',
            r'{"a":"{\"p\":\"C:\\u005cdir\"}"}',
            '[]',
            '"just a string"',
            '{"x":"{\\"y\\":\\"{\\\\\\"z\\\\\\":[true,null]}\\"}"}',
        ],
    )
    def test_unchanged_roundtrip(self, raw):
        assert _roundtrip(raw) == raw

    def test_spaced_single_line_document(self):
        """json.dumps 기본 구분자를 쓴 한 줄 문서."""
        raw = '{"a": "{\\"b\\":1}", "c": 2}'
        assert _roundtrip(raw) == raw
        expanded, context = decode(raw)
        edited = expanded.replace('"c": 2', '"c": 3')
        assert invert(edited, context) == '{"a": "{\\"b\\":1}", "c": 3}'

    def test_indented_inner_json(self):
        inner = json.dumps({"b": 1, "c": [1]}, indent=4)
        raw = json.dumps({"a": inner}, separators=(",", ":"))
        assert _roundtrip(raw) == raw


class TestEdits:
    def test_edit_nested_value(self):
        expanded, context = decode(r'{"a":"{\"b\":1}"}')
        edited = expanded.replace('"b": 1', '"b": 2')
        assert invert(edited, context) == r'{"a":"{\"b\":2}"}'

    def test_add_member_to_nested_object(self):
        expanded, context = decode(r'{"a":"{\"b\":1}"}')
        data = json.loads(expanded)
        data["a"]["c"] = "new"
        assert invert(json.dumps(data), context) == r'{"a":"{\"b\":1,\"c\":\"new\"}"}'

    def test_new_top_level_member_is_plain(self):
        expanded, context = decode(r'{"a":"{\"b\":1}"}')
        data = json.loads(expanded)
        data["z"] = {"k": 1}
        result = json.loads(invert(json.dumps(data), context))
        assert result["z"] == {"k": 1}
        assert result["a"] == '{"b":1}'

    def test_reshaped_node_is_kept(self):
        """펼쳐진 객체를 문자열로 바꾸면 그 값 그대로 유지."""
        expanded, context = decode(r'{"a":"{\"b\":1}"}')
        data = json.loads(expanded)
        data["a"] = "hello"
        assert invert(json.dumps(data), context) == '{"a":"hello"}'

    def test_unicode_reencoded_after_edit(self):
        expanded, context = decode(r'{"a":"{\"n\":\"\\u4E2D\"}"}')
        edited = expanded.replace("中", "文")
        assert invert(edited, context) == r'{"a":"{\"n\":\"\\u6587\"}"}'

    def test_html_escapes_kept_after_edit(self):
        expanded, context = decode(r'{"a":"{\"h\":\"\\u003cb\\u003e\"}"}')
        edited = expanded.replace("<b>", "<i>")
        assert invert(edited, context) == r'{"a":"{\"h\":\"\\u003ci\\u003e\"}"}'

    def test_escaped_quote_edit_stays_valid_json(self):
        expanded, context = decode(r'{"a":"{\"n\":\"\\u0022\",\"m\":1}"}')
        edited = expanded.replace('"m": 1', '"m": 2')
        inner = json.loads(json.loads(invert(edited, context))["a"])
        assert inner == {"n": '"', "m": 2}

    def test_invalid_edit_returned_as_is(self):
        _, context = decode(r'{"a":"{\"b\":1}"}')
        assert invert("{broken", context) == "{broken"

    def test_empty_context_reformats_with_layout(self):
        context = TransformContext.from_layout(decode('{\n    "a": 1\n}')[1].layout)
        assert invert('{"a": 2}', context) == '{\n    "a": 2\n}'


class TestContext:
    def test_records_are_read_only(self):
        _, context = decode(r'{"a":"{\"b\":1}"}')
        with pytest.raises(TypeError):
            context.records[(Key("x"),)] = None

    def test_record_lookup_by_path(self):
        _, context = decode(r'{"a":"{\"b\":1}"}')
        assert context.record_at((Key("a"),)) is context.record_at("$.a")
        assert context.record_at("$.missing") is None
