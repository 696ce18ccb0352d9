"""Async enrichment pipeline: website name -> research -> gap filling -> CRM insights.

Audit generation, enhancement and every save are separate user-initiated
steps on the same PipelineRun. No stage retries on its own.
"""

from __future__ import annotations

import logging
from typing import Callable

from rich.console import Console

from lead_research.analysis.audit import AuditGenerator, approve
from lead_research.analysis.fallback import FallbackController, identify_gaps
from lead_research.analysis.llm_client import LLMClient
from lead_research.analysis.research import ResearchEngine
from lead_research.analysis.synthesis import InsightSynthesizer
from lead_research.config import Config
from lead_research.db.gateway import PersistenceGateway, build_gateway
from lead_research.errors import InvalidInput, ResearchParseFailed, SynthesisFailed
from lead_research.input.sanitizer import NAME_MAX_LENGTH, sanitize_text
from lead_research.models import (
    AuditRecord,
    AuditStatus,
    CompanyProfile,
    CRMRecord,
    ParseFailure,
    PipelineRun,
    SavedCRM,
    WebsiteMetadata,
)
from lead_research.scrape.extractor import fetch_metadata

logger = logging.getLogger(__name__)
console = Console(stderr=True)

ProgressCallback = Callable[[int, str], None]
# (form_name, site_name) -> True to use the site name
ConfirmName = Callable[[str, str], bool]


class EnrichmentPipeline:
    """Runs the enrichment stages for one company profile at a time.

    Collaborators are built from ``config`` unless passed in, so tests can
    hand in fakes for the LLM client and the storage gateway.
    """

    def __init__(
        self,
        config: Config,
        llm: LLMClient | None = None,
        gateway: PersistenceGateway | None = None,
        http_transport=None,
    ):
        self.config = config
        self.llm = llm or LLMClient(config)
        self._gateway = gateway
        self.http_transport = http_transport

        self.research_engine = ResearchEngine(self.llm, config)
        self.fallback = FallbackController(self.llm, config)
        self.synthesizer = InsightSynthesizer(self.llm, config)
        self.auditor = AuditGenerator(self.llm, config)

    @property
    def gateway(self) -> PersistenceGateway:
        if self._gateway is None:
            self._gateway = build_gateway(self.config)
        return self._gateway

    async def aclose(self) -> None:
        if hasattr(self.llm, "aclose"):
            await self.llm.aclose()
        if self._gateway is not None:
            self._gateway.close()

    # ------------------------------------------------------------------
    # Stage 1: official name
    # ------------------------------------------------------------------

    async def resolve_name(
        self,
        profile: CompanyProfile,
        confirm_name: ConfirmName | None = None,
    ) -> tuple[str, WebsiteMetadata | None]:
        """Pick the name to research. Website problems never abort the run.

        A site name that differs from the form name is only used when
        ``confirm_name`` agrees; without a callback the form name wins.
        """
        if not profile.website:
            return profile.company_name, None

        metadata = await fetch_metadata(
            profile.website,
            timeout=self.config.website_timeout,
            max_redirects=self.config.website_max_redirects,
            transport=self.http_transport,
        )
        if not metadata.ok or not metadata.company_name:
            return profile.company_name, metadata

        site_name = sanitize_text(metadata.company_name, max_length=NAME_MAX_LENGTH)
        if not site_name or site_name.lower() == profile.company_name.lower():
            return profile.company_name, metadata

        if confirm_name is not None and confirm_name(profile.company_name, site_name):
            logger.info("Using website name %r instead of %r", site_name, profile.company_name)
            return site_name, metadata
        return profile.company_name, metadata

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(
        self,
        profile: CompanyProfile,
        confirm_name: ConfirmName | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> PipelineRun:
        """Name -> research -> gap filling -> CRM insights.

        Raises ResearchParseFailed when the research answer is not JSON, in
        which case neither gap filling nor synthesis runs. A synthesis failure
        is recorded on the returned run so the research can be reused by
        regenerate_insights().
        """
        def _report(pct: int, msg: str):
            if progress_callback:
                try:
                    progress_callback(pct, msg)
                except Exception as e:
                    logger.debug("Progress callback failed: %s", e)

        if profile.website:
            _report(5, "Fetching website info...")
        official_name, metadata = await self.resolve_name(profile, confirm_name)
        run = PipelineRun(profile=profile, official_name=official_name, metadata=metadata)

        if metadata is not None and metadata.failure is not None:
            run.notices.append(
                f"{metadata.failure.message} Using '{official_name}' from the form."
            )
            console.print(f"  [yellow]{metadata.failure.message}[/yellow]")

        _report(20, f"Researching {official_name}...")
        console.print(f"[bold]Researching {official_name}...[/bold]")
        result = await self.research_engine.research(official_name, profile.website or None)
        if isinstance(result, ParseFailure):
            console.print(f"  [red]Research failed: {result.error}[/red]")
            raise ResearchParseFailed(result.error, raw_response=result.raw_response)

        gaps = identify_gaps(result)
        if gaps:
            _report(45, f"Filling {len(gaps)} missing fields...")
            result = await self.fallback.enrich(result, official_name, profile.website or None)
            run.filled_gaps = sorted(g.value for g in gaps - identify_gaps(result))
            console.print(
                f"  Gap filling: {len(run.filled_gaps)}/{len(gaps)} filled"
                + (f" ({', '.join(run.filled_gaps)})" if run.filled_gaps else "")
            )
        run.research = result

        _report(70, "Generating CRM insights...")
        try:
            await self.regenerate_insights(run)
        except SynthesisFailed as e:
            run.synthesis_error = e.message
            run.notices.append(e.message)
            console.print(f"  [red]{e.message}[/red]")
            _report(100, "Research complete; insight generation failed")
            return run

        console.print(
            f"  [green]CRM insights ready: score {run.crm.lead_score}, tier {run.crm.tier}[/green]"
        )
        _report(100, "Complete")
        return run

    # ------------------------------------------------------------------
    # User-initiated stage actions
    # ------------------------------------------------------------------

    async def regenerate_insights(self, run: PipelineRun) -> CRMRecord:
        """Re-run synthesis over the run's research. Raises SynthesisFailed."""
        if run.research is None:
            raise InvalidInput("Run research before generating insights")
        crm = await self.synthesizer.synthesize(run.research, run.profile)
        run.crm = crm
        run.synthesis_error = None
        run.saved = None
        return crm

    async def confirm(self, run: PipelineRun) -> SavedCRM:
        """Persist the profile and CRM record. Raises PersistenceFailure."""
        if run.crm is None or run.research is None:
            raise InvalidInput("Generate CRM insights before saving")
        saved = await self.gateway.save_crm_record(
            run.profile, run.crm, run.research, run.official_name, run.profile.notes or None,
        )
        run.saved = saved
        return saved

    async def generate_audit(self, run: PipelineRun) -> AuditRecord:
        if run.crm is None:
            raise InvalidInput("Generate CRM insights before the audit")
        run.audit = await self.auditor.generate(run.profile, run.crm)
        run.audit_id = None
        return run.audit

    async def enhance_audit(self, run: PipelineRun) -> AuditRecord:
        """Deepen the current audit. On AuditEnhanceFailed ``run.audit`` is untouched."""
        if run.audit is None:
            raise InvalidInput("Generate an audit before enhancing it")
        enhanced = await self.auditor.enhance(run.audit)
        run.audit = enhanced
        run.audit_id = None
        return enhanced

    async def save_audit(self, run: PipelineRun) -> str:
        """Store the audit as Approved; the in-memory copy flips only after the write."""
        if run.audit is None or run.crm is None:
            raise InvalidInput("Generate an audit before saving it")
        approved = approve(run.audit)
        audit_id = await self.gateway.save_audit(
            run.profile, run.crm, approved, AuditStatus.APPROVED,
        )
        run.audit = approved
        run.audit_id = audit_id
        return audit_id

    async def history(self, company_name: str) -> list[dict]:
        name = sanitize_text(company_name, max_length=NAME_MAX_LENGTH)
        if not name:
            raise InvalidInput("Company name is required")
        return await self.gateway.get_history(name)
