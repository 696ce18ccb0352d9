"""Prompt templates for company research, gap filling, CRM synthesis and audits."""

from __future__ import annotations

import json

# ---------------------------------------------------------------------------
# PROMPT 1: Company research (Perplexity)
# Six fixed sections; every key must be present.
# ---------------------------------------------------------------------------

RESEARCH_PROMPT = """Analyze company: {company_name}{website_clause}.

CRITICAL: Return ONLY valid JSON with ALL keys present. NO explanations, NO extra text, NO markdown.
If information is not found, use "Unknown" as the value. Use [] for lists with nothing found.

{{
  "funding": {{
    "totalFunding": "exact amount found or 'Unknown'",
    "lastRound": "exact funding round details or 'Unknown'",
    "fundingRounds": "exact number or 'Unknown'"
  }},
  "revenue": {{
    "annualRevenue": "exact revenue estimate or 'Unknown'",
    "revenueRange": "exact revenue range or 'Unknown'"
  }},
  "people": {{
    "ceo": "exact CEO name or 'Unknown'",
    "keyDecisionMaker": "exact decision maker name and title or 'Unknown'",
    "linkedinProfiles": ["exact LinkedIn URLs found or empty array"]
  }},
  "hiring": {{
    "isHiring": "yes/no/Unknown based on job postings found",
    "openRoles": ["exact job titles found or empty array"],
    "hiringSignals": "exact hiring details or 'Unknown'"
  }},
  "agency": {{
    "currentAgency": "exact agency name or 'Unknown'",
    "agencyRelationship": "exact agency relationship details or 'Unknown'"
  }},
  "news": {{
    "recentAnnouncements": ["exact recent news items or empty array"],
    "companyUpdates": "exact company updates or 'Unknown'"
  }}
}}"""


def build_research_prompt(company_name: str, website: str | None = None) -> str:
    website_clause = f" website: {website}" if website else ""
    return RESEARCH_PROMPT.format(company_name=company_name, website_clause=website_clause)


# ---------------------------------------------------------------------------
# PROMPT 2: Narrow gap-filling queries (Perplexity)
# Each asks for a single named value so the answer can be picked out of prose.
# ---------------------------------------------------------------------------

GAP_PROMPTS: dict[str, str] = {
    "revenue": (
        "Find ONLY the annual revenue for {company_name}{website_clause}.\n"
        "Search for: financial reports, revenue numbers, annual results, company filings.\n"
        'Return ONLY: {{"revenue": "exact amount found or \'Unknown\'"}}'
    ),
    "hiring": (
        "Check if {company_name}{website_clause} is currently hiring.\n"
        "Search for: job postings, careers page, hiring announcements, open positions.\n"
        'Return ONLY: {{"hiring": "yes" or "no" or "Unknown"}}'
    ),
    "agency": (
        "Find if {company_name}{website_clause} works with any marketing/advertising agencies.\n"
        "Search for: agency partnerships, marketing agencies, advertising relationships.\n"
        'Return ONLY: {{"agency": "agency name found or \'Unknown\'"}}'
    ),
    "news": (
        "Find the most recent news announcements for {company_name}{website_clause} "
        "from the last 12 months.\n"
        "Search for: press releases, product launches, funding news, partnerships.\n"
        'Return ONLY: {{"news": ["short headline with date", ...]}} or {{"news": []}} if none found'
    ),
}


def build_gap_prompt(gap: str, company_name: str, website: str | None = None) -> str:
    website_clause = f" ({website})" if website else ""
    return GAP_PROMPTS[gap].format(company_name=company_name, website_clause=website_clause)


# ---------------------------------------------------------------------------
# PROMPT 3: CRM insight synthesis (OpenAI / Anthropic)
# Verbatim path mapping; lead score from data availability.
# ---------------------------------------------------------------------------

SYNTHESIS_PROMPT = """You are a CRM data assistant. Analyze the company and generate CRM insights based ONLY on the provided company data and research results.

Generate the following fields using EXACT values from the research results. If no data is found in the research results JSON, return "Unknown". NEVER guess or make up information.

The research results contain data in this structure:
- funding.totalFunding, funding.lastRound, funding.fundingRounds
- revenue.annualRevenue, revenue.revenueRange
- people.ceo, people.keyDecisionMaker, people.linkedinProfiles
- hiring.isHiring, hiring.openRoles, hiring.hiringSignals
- agency.currentAgency, agency.agencyRelationship
- news.recentAnnouncements, news.companyUpdates

Map these to the required fields:

{{
  "estimatedFundingTotal": "research.funding.totalFunding or 'Unknown'",
  "lastFundingRound": "research.funding.lastRound or 'Unknown'",
  "estimatedAnnualRevenue": "research.revenue.annualRevenue or 'Unknown'",
  "adSpendLevel": "use research.hiring.hiringSignals to estimate if they're spending on growth, or 'Unknown'",
  "estimatedCreativeMarketingBudget": "use research.hiring.hiringSignals to estimate if they're hiring marketing roles, or 'Unknown'",
  "primaryDecisionMaker": "research.people.ceo or 'Unknown'",
  "roleTitle": "research.people.keyDecisionMaker or 'Unknown'",
  "linkedinProfile": "research.people.linkedinProfiles[0] or 'Unknown'",
  "email": "exact email from the research results or 'Unknown'",
  "phone": "exact phone from the research results or 'Unknown'",
  "currentAgency": "research.agency.currentAgency or 'Unknown'",
  "whetherTheyreHiringForGrowth": "research.hiring.isHiring or 'Unknown'",
  "keyOpenRoles": "research.hiring.openRoles filtered to marketing/content roles, comma separated, or 'Unknown'",
  "leadScore": "integer 0-100 based on data availability and specificity",
  "tier": "Cold/Warm/Hot/Red-hot based on the lead score"
}}

COMPANY DATA:
{company_data}

RESEARCH RESULTS:
{research_data}

DATA AVAILABILITY:
{availability}

CRITICAL RULES:
- Use ONLY exact values from the research results JSON
- Map the nested fields exactly as listed (e.g., funding.totalFunding -> estimatedFundingTotal)
- If a field is "Unknown" or missing in the research results, return "Unknown"
- NEVER guess, estimate, or make up information
- NEVER use industry patterns or assumptions
- For keyOpenRoles: ONLY include marketing, content, creative, or digital marketing roles
- Filter out non-marketing jobs like engineers, developers, sales, HR, etc.
- More resolved and more specific fields mean a higher leadScore; choose the tier from the score
- Every key above must be present and every value must be a string
- Output ONLY valid JSON matching the structure above"""


def build_synthesis_prompt(
    company_data: dict,
    research_data: dict,
    availability: str,
) -> str:
    return SYNTHESIS_PROMPT.format(
        company_data=json.dumps(company_data, indent=2, ensure_ascii=False),
        research_data=json.dumps(research_data, indent=2, ensure_ascii=False),
        availability=availability,
    )


# ---------------------------------------------------------------------------
# PROMPT 4: Marketing audit
# ---------------------------------------------------------------------------

AUDIT_PROMPT = """You are a senior marketing consultant conducting a comprehensive company audit.

Generate a detailed audit report based on the following company data:

COMPANY FORM DATA:
{company_data}

CRM INSIGHTS:
{crm_data}

Where a CRM insight is "Unknown", say that the information is not available instead of inventing it.

Create a comprehensive audit with the following structure:

{{
  "companyOverview": {{
    "profile": "Quick profile summary from base company info",
    "industry": "Industry analysis and positioning",
    "location": "Geographic market analysis"
  }},
  "fundingGrowthStage": {{
    "fundingStatus": "Current funding stage and amount",
    "growthIndicators": "Revenue trends, hiring signals, expansion plans",
    "investmentReadiness": "Assessment of investment readiness"
  }},
  "leadershipTeamStructure": {{
    "decisionMakerProfile": "Key decision maker analysis",
    "outreachReadiness": "Best approach for outreach",
    "teamStructure": "Current team composition and gaps"
  }},
  "marketingAgencyPresence": {{
    "currentAgency": "Current agency relationships",
    "adSpendPatterns": "Advertising spend analysis",
    "marketingMaturity": "Overall marketing sophistication level"
  }},
  "creativeStrategyGaps": {{
    "croOpportunities": "Conversion rate optimization gaps",
    "messagingGaps": "Brand messaging and positioning issues",
    "contentCadence": "Content strategy and frequency analysis",
    "adFatigue": "Potential ad fatigue indicators",
    "landingAlignment": "Landing page and funnel alignment",
    "emailBasics": "Email marketing foundation assessment"
  }},
  "industryOpportunities": {{
    "formats": "Relevant content formats for their industry",
    "hooks": "Effective messaging hooks and angles",
    "platformShifts": "Emerging platform opportunities"
  }},
  "competitiveBenchmark": {{
    "topCompetitors": [
      {{
        "name": "Competitor name",
        "socialCadence": "Social media posting frequency",
        "adVariants": "Number of ad variations",
        "siteSpeed": "Website performance assessment",
        "proofDensity": "Social proof and testimonials"
      }}
    ],
    "competitiveAdvantage": "How they can differentiate"
  }},
  "hiringTalentStrategy": {{
    "growthStaffing": "Is growth being staffed effectively",
    "talentGaps": "Key talent needs and gaps",
    "hiringSignals": "Current hiring status and plans"
  }},
  "immediateROIMoves": [
    {{
      "action": "Specific action to take",
      "owner": "Who should own this",
      "steps": "Step-by-step implementation",
      "expectedLift": "Expected performance improvement",
      "metric": "How to measure success"
    }}
  ],
  "auditSummary": {{
    "executiveSummary": "Client-friendly summary",
    "priorityLevel": "High/Medium/Low priority client",
    "estimatedValue": "Potential client value estimate"
  }}
}}

Return ONLY valid JSON. No explanations or extra text."""


def build_audit_prompt(company_data: dict, crm_data: dict) -> str:
    return AUDIT_PROMPT.format(
        company_data=json.dumps(company_data, indent=2, ensure_ascii=False),
        crm_data=json.dumps(crm_data, indent=2, ensure_ascii=False),
    )


# ---------------------------------------------------------------------------
# PROMPT 5: Audit enhancement
# ---------------------------------------------------------------------------

ENHANCE_PROMPT = """You are a senior marketing consultant. Take this existing audit and make it MUCH deeper, more detailed, and more actionable.

EXISTING AUDIT:
{audit_data}

Enhance this audit by:
1. Adding 3-5 more specific, actionable recommendations
2. Including detailed implementation steps for each ROI move
3. Adding specific metrics and KPIs to track
4. Including industry-specific insights and benchmarks
5. Adding risk assessments and mitigation strategies
6. Including timeline estimates for each recommendation
7. Adding budget estimates where applicable
8. Including success case studies or examples

Keep every existing top-level section and key; you may add keys inside sections.
Make the audit significantly more comprehensive and actionable. Return ONLY the enhanced JSON structure."""


def build_enhance_prompt(audit_data: dict) -> str:
    return ENHANCE_PROMPT.format(
        audit_data=json.dumps(audit_data, indent=2, ensure_ascii=False),
    )
