"""Tests for the data models and sentinel helpers."""

import pytest
from pydantic import ValidationError

from lead_research.models import (
    UNKNOWN,
    CompanyProfile,
    CRMRecord,
    coerce_list,
    coerce_scalar,
    is_unknown,
    known_or_none,
)


class TestSentinels:
    @pytest.mark.parametrize("value", [None, "", "  ", "Unknown", "unknown", [], {}])
    def test_unknown_values(self, value):
        assert is_unknown(value)
        assert known_or_none(value) is None

    @pytest.mark.parametrize("value", ["$5M", 0, ["x"], "Unknown Industries Ltd"])
    def test_known_values(self, value):
        assert not is_unknown(value)
        assert known_or_none(value) == value

    def test_coerce_scalar(self):
        assert coerce_scalar(None) == UNKNOWN
        assert coerce_scalar(False) == "no"
        assert coerce_scalar(3.5) == "3.5"
        assert coerce_scalar(["a", None, "b"]) == "a, b"
        assert coerce_scalar({"amount": 5}) == '{"amount": 5}'

    def test_coerce_list(self):
        assert coerce_list(None) == []
        assert coerce_list("Unknown") == []
        assert coerce_list(" one ") == ["one"]
        assert coerce_list([1, "", "two"]) == ["1", "two"]


class TestCompanyProfile:
    def test_sanitizes_text_fields(self):
        profile = CompanyProfile(
            company_name="  <Acme> Co ",
            industry="Retail",
            location="Austin onload=x, TX",
            notes="javascript:alert(1)",
        )
        assert profile.company_name == "Acme Co"
        assert profile.location == "Austin x, TX"
        assert profile.notes == "alert(1)"

    def test_name_over_limit_rejected(self):
        with pytest.raises(ValidationError):
            CompanyProfile(company_name="a" * 201, industry="Retail", location="Austin")

    def test_blank_location_rejected(self):
        with pytest.raises(ValidationError):
            CompanyProfile(company_name="Acme", industry="Retail", location="  ")

    def test_unknown_industry_rejected(self):
        with pytest.raises(ValidationError):
            CompanyProfile(company_name="Acme", industry="Crypto", location="Austin")

    def test_custom_industry_label(self):
        profile = CompanyProfile(
            company_name="Acme", industry="Other", custom_industry="Pet Care", location="Austin",
        )
        assert profile.industry_label == "Pet Care"
        payload = profile.to_payload()
        assert payload["industry"] == "Pet Care"
        assert "customIndustry" not in payload

    def test_accepts_camel_case(self):
        profile = CompanyProfile.model_validate({
            "companyName": "Acme", "industry": "Retail", "location": "Austin",
            "socialMedia": {"instagram": "@acme", "<x>": "", "": "dropped"},
        })
        assert profile.social_media == {"instagram": "@acme", "x": ""}


def test_crm_record_fills_every_field():
    crm = CRMRecord.model_validate({"tier": "Hot"})
    payload = crm.to_payload()
    assert len(payload) == 15
    assert payload["tier"] == "Hot"
    assert all(v == UNKNOWN for k, v in payload.items() if k != "tier")
