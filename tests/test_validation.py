import pytest

from shared.errors import InputInvalid
from shared.validation import normalize_user_id, parse_referrer_payload, validate_required_fields


class TestNormalizeUserId:

    def test_int_and_string_ids_are_equal(self):
        assert normalize_user_id(100) == "100"
        assert normalize_user_id(" 100 ") == "100"
        assert normalize_user_id("0100") == "100"

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "12a", "-5", True])
    def test_invalid_ids_raise(self, value):
        with pytest.raises(InputInvalid):
            normalize_user_id(value)


class TestParseReferrerPayload:

    def test_bare_id(self):
        assert parse_referrer_payload("555", "100") == "555"

    def test_ref_prefix(self):
        assert parse_referrer_payload("ref_555", "100") == "555"

    def test_self_referral_ignored(self):
        assert parse_referrer_payload("100", "100") is None

    def test_garbage_ignored(self):
        assert parse_referrer_payload("promo2024", "100") is None
        assert parse_referrer_payload("", "100") is None
        assert parse_referrer_payload(None, "100") is None


def test_validate_required_fields_reports_missing():
    valid, error = validate_required_fields({"name": "Rahim", "age": "", "district": None}, ("name", "age", "district"))

    assert valid is False
    assert "age" in error
    assert "district" in error
    assert "name" not in error


def test_validate_required_fields_ok():
    assert validate_required_fields({"name": "Rahim", "age": 21}, ("name", "age")) == (True, "")
