"""
Unit tests for message body decoding.

Includes property-based testing with hypothesis: decode() must return a
Record for any input.
"""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.core.decode import decode, fallback_record, parse_record, safe_json_parse
from src.core.models import Record


class TestSafeJsonParse:
    """Tests for safe_json_parse"""

    def test_valid_json(self):
        assert safe_json_parse('{"a": 1}') == {"a": 1}

    def test_bytes(self):
        assert safe_json_parse(b"[1, 2]") == [1, 2]

    @pytest.mark.parametrize("raw", [None, "", b"", "not json", "{", "\x00"])
    def test_invalid_returns_default(self, raw):
        assert safe_json_parse(raw, default="fallback") == "fallback"

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity", "[1, NaN]", "{\"a\": -Infinity}"])
    def test_non_standard_constants_rejected(self, raw):
        assert safe_json_parse(raw, default="fallback") == "fallback"


class TestParseRecord:
    """Tests for parse_record"""

    def test_full_record(self):
        record = parse_record(
            {"id": "r-1", "createdAt": "2025-01-01T00:00:00.000Z", "requestId": "req", "data": {"k": "v"}}
        )

        assert record == Record(
            id="r-1", created_at="2025-01-01T00:00:00.000Z", request_id="req", data={"k": "v"}
        )

    def test_numeric_id_coerced_to_string(self):
        assert parse_record({"id": 42}).id == "42"

    def test_missing_created_at_defaults(self):
        record = parse_record({"id": "r-1"})
        assert record.created_at
        assert record.data is None

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "string",
            42,
            [1, 2],
            {},
            {"id": ""},
            {"id": None},
            {"id": True},
            {"id": {"nested": 1}},
            {"id": "r-1", "createdAt": 123},
            {"id": "r-1", "requestId": ["x"]},
        ],
    )
    def test_not_record_shaped(self, payload):
        """Test values that are not Record-shaped yield None"""
        assert parse_record(payload) is None


class TestDecode:
    """Tests for decode"""

    def test_decodes_valid_body(self):
        body = json.dumps({"id": "a", "createdAt": "2025-01-01T00:00:00.000Z", "data": {"n": 1}})
        record = decode(body, "m1")

        assert record.id == "a"
        assert record.data == {"n": 1}

    def test_invalid_json_falls_back_to_raw_body(self):
        """Test undecodable body is stored verbatim under the delivery id"""
        record = decode("not json {", "m1")

        assert record.id == "m1"
        assert record.data == "not json {"
        assert record.request_id is None
        assert record.created_at

    def test_json_without_id_falls_back(self):
        record = decode('{"data": 1}', "m7")
        assert record.id == "m7"
        assert record.data == '{"data": 1}'

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_standard_constant_falls_back(self, constant):
        """Test a body using NaN or Infinity is stored raw under the delivery id"""
        body = f'{{"id": "a", "data": {constant}}}'
        record = decode(body, "m1")

        assert record.id == "m1"
        assert record.data == body
        assert json.loads(json.dumps(record.data)) == body

    def test_empty_body_falls_back(self):
        record = decode("", "m1")
        assert record.id == "m1"
        assert record.data == ""

    def test_fallback_logs_warning(self, test_logger, log_buffer):
        decode("garbage", "m9", logger=test_logger)

        events = log_buffer.find("Undecodable body, storing as raw string")
        assert len(events) == 1
        assert events[0]["level"] == "WARNING"
        assert events[0]["deliveryId"] == "m9"

    def test_valid_body_does_not_log(self, test_logger, log_buffer):
        decode('{"id": "a"}', "m1", logger=test_logger)
        assert log_buffer.events == []

    def test_fallback_record_helper(self):
        record = fallback_record("m1", "raw")
        assert (record.id, record.data, record.request_id) == ("m1", "raw", None)

    @given(st.text())
    def test_decode_is_total(self, raw):
        """Test decode returns a Record for any text"""
        record = decode(raw, "delivery-1")
        assert isinstance(record, Record)
        assert record.id

    @given(
        st.recursive(
            st.none() | st.booleans() | st.integers() | st.text(),
            lambda children: st.lists(children) | st.dictionaries(st.text(), children),
            max_leaves=10,
        )
    )
    def test_decode_any_json_value(self, value):
        """Test decode returns a Record for any JSON value"""
        record = decode(json.dumps(value), "delivery-1")
        assert isinstance(record, Record)
