"""CLI entry point for the lead research tool."""

from __future__ import annotations

import asyncio
import io
import json
import logging
import os
import sys

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from lead_research.config import load_config
from lead_research.errors import (
    AuditEnhanceFailed,
    AuditGenerationFailed,
    LeadResearchError,
    PersistenceFailure,
)
from lead_research.models import DEFAULT_INDUSTRIES, OTHER_INDUSTRY, CompanyProfile, PipelineRun
from lead_research.pipeline import EnrichmentPipeline

# Fix Windows console encoding for Unicode output
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

console = Console(force_terminal=True)

CRM_LABELS = {
    "estimatedFundingTotal": "Estimated funding total",
    "lastFundingRound": "Last funding round",
    "estimatedAnnualRevenue": "Estimated annual revenue",
    "adSpendLevel": "Ad spend level",
    "estimatedCreativeMarketingBudget": "Creative/marketing budget",
    "primaryDecisionMaker": "Primary decision maker",
    "roleTitle": "Role / title",
    "linkedinProfile": "LinkedIn",
    "email": "Email",
    "phone": "Phone",
    "currentAgency": "Current agency",
    "whetherTheyreHiringForGrowth": "Hiring for growth",
    "keyOpenRoles": "Key open roles",
    "leadScore": "Lead score",
    "tier": "Tier",
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
    )


def _parse_socials(values: tuple[str, ...]) -> dict[str, str]:
    socials = {}
    for value in values:
        platform, sep, handle = value.partition("=")
        if not sep:
            raise click.BadParameter(f"expected PLATFORM=HANDLE, got '{value}'", param_hint="--social")
        socials[platform.strip().lower()] = handle.strip()
    return socials


def _print_crm(run: PipelineRun) -> None:
    table = Table(title=f"CRM insights: {run.official_name}", show_lines=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in run.crm.to_payload().items():
        table.add_row(CRM_LABELS.get(key, key), value)
    console.print(table)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Company lead research: AI research, CRM insights and marketing audits."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)


@cli.command()
@click.argument("company_name")
@click.option("--website", "-w", default="", help="Company website (scheme optional)")
@click.option(
    "--industry", "-i",
    type=click.Choice(DEFAULT_INDUSTRIES + [OTHER_INDUSTRY]),
    required=True,
    help="Industry from the standard list, or 'Other' with --custom-industry",
)
@click.option("--custom-industry", default="", help="Industry name when --industry is Other")
@click.option("--location", "-l", required=True, help="Company location")
@click.option("--notes", default="", help="Free-text notes stored with the result")
@click.option("--social", multiple=True, help="Social handle as PLATFORM=HANDLE (repeatable)")
@click.option("--use-site-name", is_flag=True, help="Use the website's company name without asking")
@click.option("--save", is_flag=True, help="Save the CRM record after research")
@click.option("--audit", is_flag=True, help="Generate a marketing audit")
@click.option("--enhance", is_flag=True, help="Enhance the generated audit (implies --audit)")
@click.option("--json", "as_json", is_flag=True, help="Print the run as JSON")
def research(
    company_name: str,
    website: str,
    industry: str,
    custom_industry: str,
    location: str,
    notes: str,
    social: tuple[str, ...],
    use_site_name: bool,
    save: bool,
    audit: bool,
    enhance: bool,
    as_json: bool,
) -> None:
    """Research COMPANY_NAME and generate CRM insights.

    Example: lead-research research "Acme Co" -w acme.com -i Retail -l "Austin, TX" --save
    """
    try:
        profile = CompanyProfile(
            company_name=company_name,
            website=website,
            industry=industry,
            custom_industry=custom_industry,
            location=location,
            notes=notes,
            social_media=_parse_socials(social),
        )
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {e.errors()[0]['msg']}")
        sys.exit(1)

    def confirm_name(form_name: str, site_name: str) -> bool:
        if use_site_name:
            return True
        if as_json or not sys.stdin.isatty():
            return False
        return click.confirm(
            f"Website identifies the company as '{site_name}'. Use it instead of '{form_name}'?",
            default=False,
        )

    config = load_config()
    console.print(f"\n[bold green]Lead Research[/bold green]: {profile.company_name}\n")

    try:
        run = asyncio.run(
            _research(config, profile, confirm_name, save, audit or enhance, enhance)
        )
    except LeadResearchError as e:
        console.print(f"[red]{type(e).__name__}: {e.message}[/red]")
        if e.raw_response:
            console.print(f"[dim]Raw response: {e.raw_response[:300]}[/dim]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(run.model_dump(mode="json", by_alias=True), indent=2))
    else:
        for notice in run.notices:
            console.print(f"[yellow]Note:[/yellow] {notice}")
        if run.crm is not None:
            _print_crm(run)
        if run.saved:
            console.print(f"[green]Saved CRM record {run.saved.crm_id}[/green]")
        if run.audit is not None:
            summary = run.audit.audit_summary
            console.print(
                f"\n[bold]Audit v{run.audit.audit_metadata.audit_version}[/bold] "
                f"({run.audit.status})"
            )
            if summary is not None:
                console.print(str(summary.executive_summary))
        if run.audit_id:
            console.print(f"[green]Saved audit {run.audit_id}[/green]")

    if run.crm is None:
        sys.exit(1)


async def _research(config, profile, confirm_name, save, audit, enhance) -> PipelineRun:
    """Run the pipeline, then the requested follow-up stages.

    A failing follow-up stage is reported as a notice on the run; the CRM
    record and anything else already produced is still returned.
    """
    pipeline = EnrichmentPipeline(config)
    try:
        run = await pipeline.run(profile, confirm_name=confirm_name)
        if run.crm is None:
            return run
        if save:
            try:
                await pipeline.confirm(run)
            except PersistenceFailure as e:
                run.notices.append(e.message)
        if not audit:
            return run

        try:
            await pipeline.generate_audit(run)
        except AuditGenerationFailed as e:
            run.notices.append(e.message)
            return run
        if enhance:
            try:
                await pipeline.enhance_audit(run)
            except AuditEnhanceFailed as e:
                run.notices.append(f"{e.message}; keeping the original audit")
        if save:
            try:
                await pipeline.save_audit(run)
            except PersistenceFailure as e:
                run.notices.append(e.message)
        return run
    finally:
        await pipeline.aclose()


@cli.command()
@click.argument("company_name")
@click.option("--json", "as_json", is_flag=True, help="Print history as JSON")
def history(company_name: str, as_json: bool) -> None:
    """Show saved CRM results for COMPANY_NAME, newest first."""
    config = load_config()

    async def _history():
        pipeline = EnrichmentPipeline(config)
        try:
            return await pipeline.history(company_name)
        finally:
            await pipeline.aclose()

    try:
        rows = asyncio.run(_history())
    except LeadResearchError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(rows, indent=2, default=str))
        return
    if not rows:
        console.print(f"No saved results for {company_name}")
        return

    table = Table(title=f"History: {company_name}")
    table.add_column("Saved")
    table.add_column("Official name")
    table.add_column("Score")
    table.add_column("Tier")
    for row in rows:
        insights = row.get("ai_insights") or {}
        table.add_row(
            str(row.get("created_at", "")),
            str(row.get("official_company_name") or row.get("company_name", "")),
            str(insights.get("leadScore", "")),
            str(insights.get("tier", "")),
        )
    console.print(table)


@cli.command()
@click.option("--host", default=None, help="Bind address (default: WEB_HOST or 0.0.0.0)")
@click.option("--port", default=None, type=int, help="Port (default: WEB_PORT or 8000)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    config = load_config()
    uvicorn.run(
        "lead_research.web.app:app",
        host=host or config.web_host,
        port=port or config.web_port,
        reload=reload,
    )


if __name__ == "__main__":
    cli()
