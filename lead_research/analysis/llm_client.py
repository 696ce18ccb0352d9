"""Unified LLM client: Perplexity for research, OpenAI or Anthropic for analysis."""

from __future__ import annotations

import asyncio
import logging

from lead_research.analysis.rate_limit import RateLimiter
from lead_research.config import Config
from lead_research.errors import UpstreamRejected, UpstreamUnavailable

logger = logging.getLogger(__name__)

PERPLEXITY = "perplexity"
OPENAI = "openai"
ANTHROPIC = "anthropic"


class LLMClient:
    """Text-in/text-out access to the AI providers.

    Every call acquires the provider's rate-limit token first, is bounded by
    ``asyncio.wait_for`` and is attempted exactly once. Transport problems are
    raised as UpstreamUnavailable, HTTP error statuses as UpstreamRejected.
    """

    def __init__(self, config: Config, limiter: RateLimiter | None = None):
        self.config = config
        self.limiter = limiter or RateLimiter(
            rate=config.rate_limit_per_second, burst=config.rate_limit_burst,
        )
        self._perplexity = None
        self._openai = None
        self._anthropic = None

    @property
    def analysis_provider(self) -> str:
        return self.config.analysis_provider

    async def research_complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        """Send a research prompt to Perplexity and return the completion text."""
        from openai import AsyncOpenAI

        if self._perplexity is None:
            self._perplexity = AsyncOpenAI(
                api_key=self.config.perplexity_api_key,
                base_url=self.config.perplexity_base_url,
                max_retries=0,
            )
        return await self._dispatch(
            PERPLEXITY,
            self._chat_completion(
                self._perplexity, self.config.research_model, prompt,
                max_tokens, temperature, json_mode=False,
            ),
            timeout,
        )

    async def analysis_complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        timeout: float,
        json_mode: bool = True,
    ) -> str:
        """Send a synthesis/audit prompt to the configured analysis provider."""
        if self.analysis_provider == ANTHROPIC:
            call = self._call_anthropic(prompt, max_tokens, temperature)
        else:
            from openai import AsyncOpenAI

            if self._openai is None:
                self._openai = AsyncOpenAI(api_key=self.config.openai_api_key, max_retries=0)
            call = self._chat_completion(
                self._openai, self.config.openai_analysis_model, prompt,
                max_tokens, temperature, json_mode=json_mode,
            )
        return await self._dispatch(self.analysis_provider, call, timeout)

    async def aclose(self) -> None:
        for client in (self._perplexity, self._openai, self._anthropic):
            if client is not None:
                await client.close()
        self._perplexity = self._openai = self._anthropic = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _dispatch(self, provider: str, call, timeout: float) -> str:
        await self.limiter.acquire(provider)
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("%s call timed out after %.0fs", provider, timeout)
            raise UpstreamUnavailable(f"{provider} call timed out after {timeout:.0f}s") from e

    async def _chat_completion(
        self,
        client,
        model: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        import openai

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = await client.chat.completions.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except openai.APIStatusError as e:
            logger.error("%s returned HTTP %s: %s", model, e.status_code, e)
            raise UpstreamRejected(
                f"{model} request failed: {e.message}", status_code=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise UpstreamUnavailable(f"{model} unreachable: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def _call_anthropic(self, prompt: str, max_tokens: int, temperature: float) -> str:
        import anthropic

        if self._anthropic is None:
            self._anthropic = anthropic.AsyncAnthropic(
                api_key=self.config.anthropic_api_key, max_retries=0,
            )
        try:
            response = await self._anthropic.messages.create(
                model=self.config.anthropic_analysis_model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as e:
            logger.error("Anthropic returned HTTP %s: %s", e.status_code, e)
            raise UpstreamRejected(
                f"Anthropic request failed: {e.message}", status_code=e.status_code,
            ) from e
        except anthropic.APIConnectionError as e:
            raise UpstreamUnavailable(f"Anthropic unreachable: {e}") from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
