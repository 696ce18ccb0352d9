"""Shared fixtures: config, profiles, canned model answers and a scripted LLM."""

from __future__ import annotations

import json

import pytest

from lead_research.config import Config
from lead_research.models import AuditStatus, CompanyProfile, SavedCRM


RESEARCH_PAYLOAD = {
    "funding": {"totalFunding": "$12M", "lastRound": "Series A", "fundingRounds": "2"},
    "revenue": {"annualRevenue": "Unknown", "revenueRange": "$5M-$10M"},
    "people": {
        "ceo": "Jane Doe",
        "keyDecisionMaker": "CMO",
        "linkedinProfiles": ["https://linkedin.com/in/janedoe"],
    },
    "hiring": {"isHiring": "Unknown", "openRoles": [], "hiringSignals": "Unknown"},
    "agency": {"currentAgency": "Unknown", "agencyRelationship": "Unknown"},
    "news": {"recentAnnouncements": [], "companyUpdates": "Opened a second store"},
}

CRM_PAYLOAD = {
    "estimatedFundingTotal": "$12M",
    "lastFundingRound": "Series A",
    "estimatedAnnualRevenue": "Unknown",
    "adSpendLevel": "Unknown",
    "estimatedCreativeMarketingBudget": "Unknown",
    "primaryDecisionMaker": "Jane Doe",
    "roleTitle": "CMO",
    "linkedinProfile": "https://linkedin.com/in/janedoe",
    "email": "Unknown",
    "phone": "Unknown",
    "currentAgency": "Unknown",
    "whetherTheyreHiringForGrowth": "Unknown",
    "keyOpenRoles": "Unknown",
    "leadScore": "55",
    "tier": "Warm",
}

AUDIT_PAYLOAD = {
    "companyOverview": {"profile": "Regional retailer", "industry": "Retail", "location": "Austin, TX"},
    "fundingGrowthStage": {
        "fundingStatus": "Series A",
        "growthIndicators": "Second store",
        "investmentReadiness": "Moderate",
    },
    "leadershipTeamStructure": {
        "decisionMakerProfile": "Jane Doe, CEO",
        "outreachReadiness": "High",
        "teamStructure": "Lean",
    },
    "marketingAgencyPresence": {
        "currentAgency": "None found",
        "adSpendPatterns": "Low",
        "marketingMaturity": "Early",
    },
    "creativeStrategyGaps": {
        "croOpportunities": "Checkout friction",
        "messagingGaps": "No clear value proposition",
        "contentCadence": "Irregular",
        "adFatigue": "n/a",
        "landingAlignment": "Weak",
        "emailBasics": "No welcome flow",
    },
    "industryOpportunities": {"formats": "Short video", "hooks": "Local pride", "platformShifts": "TikTok Shop"},
    "competitiveBenchmark": {
        "topCompetitors": [{"name": "Rival Co", "socialCadence": "Daily"}],
        "competitiveAdvantage": "Community",
    },
    "hiringTalentStrategy": {"growthStaffing": "Contract", "talentGaps": "Paid social", "hiringSignals": "None"},
    "immediateROIMoves": [
        {"action": "Add a welcome email", "owner": "Marketing", "steps": "Write 3 emails",
         "expectedLift": "5%", "metric": "Repeat purchase rate"},
    ],
    "auditSummary": {"executiveSummary": "Solid base, weak funnel", "priorityLevel": "High", "estimatedValue": "$50K"},
}


def fenced(payload: dict) -> str:
    return f"Here is what I found:\n```json\n{json.dumps(payload, indent=2)}\n```\nLet me know!"


# ---------------------------------------------------------------------------
# Scripted LLM
# ---------------------------------------------------------------------------

class FakeLLM:
    """Stands in for LLMClient. Answers are strings, exceptions, or callables of the prompt."""

    def __init__(self, research=None, analysis=None, gaps=None):
        self.research_answer = research
        self.analysis_answers = list(analysis or [])
        self.gap_answers = gaps or {}
        self.research_prompts: list[str] = []
        self.analysis_prompts: list[str] = []
        self.closed = False

    @staticmethod
    def _resolve(answer, prompt: str) -> str:
        if isinstance(answer, BaseException):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer

    async def research_complete(self, prompt, *, max_tokens, temperature, timeout):
        self.research_prompts.append(prompt)
        if prompt.startswith("Analyze company:"):
            return self._resolve(self.research_answer, prompt)
        for marker, answer in self.gap_answers.items():
            if marker in prompt:
                return self._resolve(answer, prompt)
        return '{"unrelated": true}'

    async def analysis_complete(self, prompt, *, max_tokens, temperature, timeout, json_mode=True):
        self.analysis_prompts.append(prompt)
        if not self.analysis_answers:
            raise AssertionError("unexpected analysis call")
        return self._resolve(self.analysis_answers.pop(0), prompt)

    async def aclose(self):
        self.closed = True


class FakeGateway:
    """In-memory PersistenceGateway. ``fail_with`` makes every write raise."""

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.saved_crm = []
        self.saved_audits = []
        self.closed = False

    async def save_company_profile(self, profile):
        return "company-1"

    async def save_crm_record(self, profile, crm, research, official_name=None, notes=None):
        if self.fail_with:
            raise self.fail_with
        self.saved_crm.append((profile, crm, research, official_name, notes))
        return SavedCRM(company_id="company-1", crm_id=f"crm-{len(self.saved_crm)}")

    async def save_audit(self, profile, crm, audit, status=AuditStatus.DRAFT):
        if self.fail_with:
            raise self.fail_with
        self.saved_audits.append((audit, status))
        return f"audit-{len(self.saved_audits)}"

    async def get_history(self, company_name):
        return [{"company_name": company_name}]

    def close(self):
        self.closed = True


# Substrings identifying each gap prompt
GAP_MARKERS = {
    "revenue": "ONLY the annual revenue",
    "hiring": "is currently hiring",
    "agency": "marketing/advertising agencies",
    "news": "most recent news",
}


def gap_answers(**answers) -> dict:
    return {GAP_MARKERS[gap]: answer for gap, answer in answers.items()}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config():
    return Config(
        perplexity_api_key="pplx-test",
        openai_api_key="sk-test",
        rate_limit_per_second=1000.0,
        rate_limit_burst=100,
        db_path=":memory:",
    )


@pytest.fixture
def profile():
    return CompanyProfile(
        company_name="Acme Co",
        website="https://acme.test",
        industry="Retail",
        location="Austin, TX",
        notes="Met at a trade show",
    )


@pytest.fixture
def research_payload():
    return json.loads(json.dumps(RESEARCH_PAYLOAD))


@pytest.fixture
def crm_payload():
    return dict(CRM_PAYLOAD)


@pytest.fixture
def audit_payload():
    return json.loads(json.dumps(AUDIT_PAYLOAD))
