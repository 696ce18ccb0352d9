"""Tests for environment-driven configuration."""

import pytest

from lead_research.config import Config, load_config

_KEYS = (
    "PERPLEXITY_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "ANALYSIS_PROVIDER",
    "GOOGLE_API_KEY", "SUPABASE_URL", "SUPABASE_ANON_KEY", "RATE_LIMIT_PER_SECOND", "DB_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep a developer's .env out of the way
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("lead_research.config.load_dotenv", lambda *a, **kw: False)


class TestLoadConfig:
    def test_missing_perplexity_key_exits(self, monkeypatch, capsys):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        with pytest.raises(SystemExit) as exc_info:
            load_config()
        assert exc_info.value.code == 1
        assert "PERPLEXITY_API_KEY" in capsys.readouterr().err

    def test_missing_analysis_key_exits(self, monkeypatch, capsys):
        monkeypatch.setenv("PERPLEXITY_API_KEY", "pplx")
        monkeypatch.setenv("ANALYSIS_PROVIDER", "anthropic")
        with pytest.raises(SystemExit):
            load_config()
        assert "ANTHROPIC_API_KEY" in capsys.readouterr().err

    def test_unknown_provider_exits(self, monkeypatch):
        monkeypatch.setenv("PERPLEXITY_API_KEY", "pplx")
        monkeypatch.setenv("ANALYSIS_PROVIDER", "gemini")
        with pytest.raises(SystemExit):
            load_config()

    def test_loads_values(self, monkeypatch):
        monkeypatch.setenv("PERPLEXITY_API_KEY", "pplx")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("RATE_LIMIT_PER_SECOND", "2.5")
        monkeypatch.setenv("DB_PATH", "data/leads.db")

        config = load_config()
        assert config.perplexity_api_key == "pplx"
        assert config.analysis_provider == "openai"
        assert config.rate_limit_per_second == 2.5
        assert config.db_path == "data/leads.db"
        assert config.research_model == "sonar"
        assert not config.use_supabase

    def test_google_key_note_is_not_fatal(self, monkeypatch, capsys):
        monkeypatch.setenv("PERPLEXITY_API_KEY", "pplx")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        load_config()
        assert "GOOGLE_API_KEY" in capsys.readouterr().err


def test_use_supabase_needs_url_and_key():
    assert not Config(supabase_url="https://x.supabase.co").use_supabase
    assert Config(supabase_url="https://x.supabase.co", supabase_anon_key="anon").use_supabase
