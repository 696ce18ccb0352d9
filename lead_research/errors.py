"""Error taxonomy for the enrichment pipeline."""

from __future__ import annotations


class LeadResearchError(Exception):
    """Base error with a stable code for API responses."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, raw_response: str | None = None):
        self.message = message
        self.raw_response = raw_response
        super().__init__(message)


class InvalidInput(LeadResearchError):
    """Input rejected by sanitization/validation before any network call."""

    code = "INVALID_INPUT"


class UpstreamUnavailable(LeadResearchError):
    """Timeout or connection failure talking to a website or AI provider."""

    code = "UPSTREAM_UNAVAILABLE"


class UpstreamRejected(LeadResearchError):
    """Upstream answered with a 4xx/5xx status."""

    code = "UPSTREAM_REJECTED"

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseFailureError(LeadResearchError):
    """AI response did not match the expected JSON contract."""

    code = "PARSE_FAILURE"


class ResearchParseFailed(ParseFailureError):
    code = "RESEARCH_PARSE_FAILED"


class SynthesisFailed(ParseFailureError):
    code = "SYNTHESIS_FAILED"


class AuditGenerationFailed(ParseFailureError):
    code = "AUDIT_GENERATION_FAILED"


class AuditEnhanceFailed(ParseFailureError):
    code = "AUDIT_ENHANCE_FAILED"


class PersistenceFailure(LeadResearchError):
    """A storage write or read failed. Never retried automatically."""

    code = "PERSISTENCE_FAILURE"
