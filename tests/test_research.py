"""Tests for the primary research query."""

import json

import pytest

from lead_research.analysis.research import ResearchEngine, normalize_research, validate_research_input
from lead_research.errors import InvalidInput, UpstreamUnavailable
from lead_research.models import UNKNOWN, ParseFailure, ResearchResult

from tests.conftest import FakeLLM, fenced


class TestNormalizeResearch:
    def test_missing_sections_and_leaves_become_sentinels(self):
        result = normalize_research({"funding": {"totalFunding": "$5M"}})
        assert result.funding.total_funding == "$5M"
        assert result.funding.last_round == UNKNOWN
        assert result.people.linkedin_profiles == []
        assert result.news.company_updates == UNKNOWN

    def test_every_leaf_is_value_sentinel_or_list(self):
        result = normalize_research({"hiring": None, "news": "nothing", "extra": {"x": 1}})
        for path, value in result.leaves().items():
            assert isinstance(value, (str, list)), path
            if isinstance(value, str):
                assert value.strip(), path

    def test_values_are_not_reinterpreted(self):
        result = normalize_research({
            "revenue": {"annualRevenue": 1200000},
            "hiring": {"isHiring": True, "openRoles": ["Designer", None, 3]},
            "people": {"linkedinProfiles": "https://linkedin.com/in/x"},
            "funding": {"fundingRounds": ["Seed", "Series A"]},
        })
        assert result.revenue.annual_revenue == "1200000"
        assert result.hiring.is_hiring == "yes"
        assert result.hiring.open_roles == ["Designer", "3"]
        assert result.people.linkedin_profiles == ["https://linkedin.com/in/x"]
        assert result.funding.funding_rounds == "Seed, Series A"

    def test_null_and_blank_become_sentinel(self):
        result = normalize_research({"agency": {"currentAgency": None, "agencyRelationship": "  "}})
        assert result.agency.current_agency == UNKNOWN
        assert result.agency.agency_relationship == UNKNOWN

    def test_payload_is_camel_case(self):
        payload = ResearchResult().to_payload()
        assert payload["funding"]["totalFunding"] == UNKNOWN
        assert payload["hiring"]["openRoles"] == []


class TestValidateResearchInput:
    def test_sanitizes_name_and_website(self):
        assert validate_research_input("  <Acme> ", "acme.test") == ("Acme", "acme.test")

    def test_empty_name_rejected(self):
        with pytest.raises(InvalidInput):
            validate_research_input("<>", None)

    def test_bad_website_rejected(self):
        with pytest.raises(InvalidInput):
            validate_research_input("Acme", "http://localhost")

    def test_website_optional(self):
        assert validate_research_input("Acme", "") == ("Acme", None)


class TestResearchEngine:
    @pytest.mark.asyncio
    async def test_fenced_json_is_parsed(self, config, research_payload):
        llm = FakeLLM(research=fenced(research_payload))
        result = await ResearchEngine(llm, config).research("Acme Co", "https://acme.test")

        assert isinstance(result, ResearchResult)
        assert result.funding.total_funding == "$12M"
        assert result.people.ceo == "Jane Doe"
        assert "Acme Co website: https://acme.test" in llm.research_prompts[0]

    @pytest.mark.asyncio
    async def test_prose_returns_parse_failure_with_raw_text(self, config):
        prose = "Acme Co appears to be a small retailer; I found no reliable figures."
        result = await ResearchEngine(FakeLLM(research=prose), config).research("Acme Co")

        assert isinstance(result, ParseFailure)
        assert result.raw_response == prose

    @pytest.mark.asyncio
    async def test_json_without_sections_is_parse_failure(self, config):
        text = json.dumps({"company": "Acme", "summary": "retailer"})
        result = await ResearchEngine(FakeLLM(research=text), config).research("Acme Co")

        assert isinstance(result, ParseFailure)
        assert result.raw_response == text

    @pytest.mark.asyncio
    async def test_invalid_input_makes_no_call(self, config):
        llm = FakeLLM(research="{}")
        with pytest.raises(InvalidInput):
            await ResearchEngine(llm, config).research("", None)
        assert llm.research_prompts == []

    @pytest.mark.asyncio
    async def test_upstream_errors_propagate(self, config):
        llm = FakeLLM(research=UpstreamUnavailable("perplexity call timed out after 60s"))
        with pytest.raises(UpstreamUnavailable):
            await ResearchEngine(llm, config).research("Acme Co")
