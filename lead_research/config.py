"""Configuration management via environment variables and .env file."""

from __future__ import annotations

import os
import sys
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel


class Config(BaseModel):
    """Application configuration loaded from environment."""

    # API keys (Perplexity required; OpenAI or Anthropic for synthesis/audit)
    perplexity_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    google_search_engine_id: str = ""

    # Research provider (Perplexity, OpenAI-compatible API)
    perplexity_base_url: str = "https://api.perplexity.ai"
    research_model: str = "sonar"
    research_max_tokens: int = 1500
    research_temperature: float = 0.1
    research_timeout: float = 60.0

    # Narrow per-gap fallback queries
    fallback_max_tokens: int = 500
    fallback_timeout: float = 15.0

    # Synthesis / audit provider
    analysis_provider: Literal["openai", "anthropic"] = "openai"
    openai_analysis_model: str = "gpt-4o-mini"
    anthropic_analysis_model: str = "claude-sonnet-4-20250514"
    synthesis_max_tokens: int = 1500
    synthesis_temperature: float = 0.1
    synthesis_timeout: float = 60.0
    audit_max_tokens: int = 3000
    enhance_max_tokens: int = 4000
    audit_temperature: float = 0.2
    audit_timeout: float = 90.0

    # Rate limiting (token bucket per provider)
    rate_limit_per_second: float = 1.0
    rate_limit_burst: int = 1

    # Website metadata fetch
    website_timeout: float = 8.0
    website_max_redirects: int = 3

    # Persistence (Supabase when configured, SQLite otherwise)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    db_path: str = ".lead_research.db"

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8000

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def load_config() -> Config:
    """Load configuration from .env file and environment variables.

    Environment variables override .env values.
    Exits with an error message if required keys are missing.
    """
    load_dotenv()

    perplexity_key = os.getenv("PERPLEXITY_API_KEY", "")
    openai_key = os.getenv("OPENAI_API_KEY", "")
    anthropic_key = os.getenv("ANTHROPIC_API_KEY", "")
    analysis_provider = os.getenv("ANALYSIS_PROVIDER", "openai").lower()

    errors = []
    if not perplexity_key:
        errors.append("PERPLEXITY_API_KEY is required for company research")
    if analysis_provider not in ("openai", "anthropic"):
        errors.append(f"ANALYSIS_PROVIDER must be 'openai' or 'anthropic', got '{analysis_provider}'")
    elif analysis_provider == "openai" and not openai_key:
        errors.append("OPENAI_API_KEY is required when ANALYSIS_PROVIDER=openai")
    elif analysis_provider == "anthropic" and not anthropic_key:
        errors.append("ANTHROPIC_API_KEY is required when ANALYSIS_PROVIDER=anthropic")

    if errors:
        print("Configuration error:", file=sys.stderr)
        for e in errors:
            print(f"  - {e}", file=sys.stderr)
        print("\nSet these in a .env file or as environment variables.", file=sys.stderr)
        sys.exit(1)

    # Warn about optional integrations (non-fatal)
    if not os.getenv("GOOGLE_API_KEY"):
        print("  Note: GOOGLE_API_KEY not set, /api/search disabled", file=sys.stderr)

    return Config(
        perplexity_api_key=perplexity_key,
        openai_api_key=openai_key,
        anthropic_api_key=anthropic_key,
        google_api_key=os.getenv("GOOGLE_API_KEY", ""),
        google_search_engine_id=os.getenv("GOOGLE_SEARCH_ENGINE_ID", ""),
        perplexity_base_url=os.getenv("PERPLEXITY_BASE_URL", "https://api.perplexity.ai"),
        research_model=os.getenv("RESEARCH_MODEL", "sonar"),
        analysis_provider=analysis_provider,
        openai_analysis_model=os.getenv("OPENAI_ANALYSIS_MODEL", "gpt-4o-mini"),
        anthropic_analysis_model=os.getenv("ANTHROPIC_ANALYSIS_MODEL", "claude-sonnet-4-20250514"),
        synthesis_timeout=float(os.getenv("SYNTHESIS_TIMEOUT", "60")),
        audit_timeout=float(os.getenv("AUDIT_TIMEOUT", "90")),
        rate_limit_per_second=float(os.getenv("RATE_LIMIT_PER_SECOND", "1.0")),
        website_timeout=float(os.getenv("WEBSITE_TIMEOUT", "8")),
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        db_path=os.getenv("DB_PATH", ".lead_research.db"),
        web_host=os.getenv("WEB_HOST", "0.0.0.0"),
        web_port=int(os.getenv("WEB_PORT", "8000")),
    )
