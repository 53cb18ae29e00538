"""Tests for flag record parsing."""

import pytest
from ffms.records import (
    FlagRecord,
    parse_flag_message,
    parse_flag_record,
    validate_api_response,
)


class TestParseFlagRecord:
    """Tests for parse_flag_record."""

    def test_well_formed(self):
        assert parse_flag_record({"name": "a", "state": True}) == FlagRecord("a", True)
        assert parse_flag_record({"name": "b", "state": False, "extra": 1}) == FlagRecord("b", False)

    @pytest.mark.parametrize(
        "data",
        [
            {"malformed": 1},
            {"name": "a"},
            {"state": True},
            {"name": "", "state": True},
            {"name": 5, "state": True},
            {"name": "a", "state": 1},
            {"name": "a", "state": 0},
            {"name": "a", "state": "true"},
            {"name": "a", "state": None},
            ["a", True],
            "a",
            None,
        ],
    )
    def test_malformed(self, data):
        assert parse_flag_record(data) is None

    def test_to_dict(self):
        assert FlagRecord("a", True).to_dict() == {"name": "a", "state": True}


class TestParseFlagMessage:
    """Tests for parse_flag_message."""

    def test_text_payload(self):
        assert parse_flag_message('{"name": "a", "state": false}') == FlagRecord("a", False)

    def test_bytes_payload(self):
        assert parse_flag_message(b'{"name": "a", "state": true}') == FlagRecord("a", True)

    def test_invalid_json_logged(self, caplog):
        assert parse_flag_message("{not json") is None
        assert "Failed to parse channel message" in caplog.text

    def test_invalid_record_logged(self, caplog):
        assert parse_flag_message('{"name": "a"}') is None
        assert "Invalid channel message" in caplog.text


class TestValidateApiResponse:
    """Tests for validate_api_response."""

    def test_valid_payload(self):
        assert validate_api_response([{"name": "a", "state": True}, {"name": "b", "state": False}])

    def test_empty_list(self):
        assert validate_api_response([])

    def test_not_a_list(self, caplog):
        assert validate_api_response({"flags": []}) is False
        assert "Expected an array" in caplog.text

    def test_any_bad_entry_fails(self, caplog):
        assert validate_api_response([{"name": "a", "state": True}, {"malformed": 1}]) is False
        assert "Invalid flag object" in caplog.text
