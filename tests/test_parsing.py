"""Unit tests for lenient decoding of backend responses."""

import pytest

from nutrilog.services.estimation.parsing import ParseMode, parse_json_response


class TestParseJsonResponse:
    """Tests for parse_json_response."""

    def test_strict_object(self):
        """Test valid JSON objects decode strictly."""
        parsed = parse_json_response('{"items": [{"name": "apple"}]}')

        assert parsed is not None
        assert parsed.mode == ParseMode.STRICT
        assert parsed.data == {"items": [{"name": "apple"}]}

    def test_strict_array_is_wrapped(self):
        """Test a bare array becomes the item list."""
        parsed = parse_json_response('[{"name": "apple"}]')

        assert parsed.mode == ParseMode.STRICT
        assert parsed.get("items") == [{"name": "apple"}]

    def test_object_inside_prose(self):
        """Test an object wrapped in prose and code fences is recovered."""
        raw = 'Here you go:\n```json\n{"is_food": true, "reason": "meal"}\n```\nEnjoy!'
        parsed = parse_json_response(raw)

        assert parsed.mode == ParseMode.BRACKET
        assert parsed.get("is_food") is True

    def test_array_inside_prose(self):
        parsed = parse_json_response('Items: [{"name": "rice"}] done')

        assert parsed.mode == ParseMode.BRACKET
        assert parsed.get("items") == [{"name": "rice"}]

    def test_earliest_bracket_wins(self):
        """Test an array that opens before an object is decoded as the array."""
        parsed = parse_json_response('result [{"name": "rice"}, {"name": "beans"}] end')

        assert [item["name"] for item in parsed.get("items")] == ["rice", "beans"]

    def test_falls_back_to_other_bracket(self):
        """Test a broken object span does not hide a valid array span."""
        parsed = parse_json_response('{ broken [{"name": "tea"}]')

        assert parsed.get("items") == [{"name": "tea"}]

    @pytest.mark.parametrize("raw", [None, "", "   ", "no json here", "{not: valid}", "42", '"text"'])
    def test_no_result(self, raw):
        """Test unusable payloads yield None."""
        assert parse_json_response(raw) is None
