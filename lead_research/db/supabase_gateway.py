"""Supabase-backed persistence (tables companies, crm_results, company_audits)."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from supabase import Client, create_client

from lead_research.config import Config
from lead_research.db.gateway import audit_row, company_row, crm_row
from lead_research.errors import PersistenceFailure
from lead_research.models import (
    AuditRecord,
    AuditStatus,
    CompanyProfile,
    CRMRecord,
    ResearchResult,
    SavedCRM,
)

logger = logging.getLogger(__name__)


def _like_literal(value: str) -> str:
    """Escape LIKE wildcards so ilike matches the whole name, ignoring case."""
    return re.sub(r"([\\%_])", r"\\\1", value)


class SupabaseGateway:
    """supabase-py is synchronous, so each request runs in a worker thread."""

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_config(cls, config: Config) -> SupabaseGateway:
        return cls(create_client(config.supabase_url, config.supabase_anon_key))

    def close(self) -> None:
        pass

    def _insert_sync(self, table: str, row: dict) -> str:
        result = self.client.table(table).insert(row).execute()
        if not result.data:
            raise PersistenceFailure(f"Insert into {table} returned no rows")
        return str(result.data[0]["id"])

    async def _insert(self, table: str, row: dict, action: str) -> str:
        try:
            return await asyncio.to_thread(self._insert_sync, table, row)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.error("Supabase %s failed: %s", action, e)
            raise PersistenceFailure(f"Failed to {action}: {e}") from e

    async def save_company_profile(self, profile: CompanyProfile) -> str:
        return await self._insert("companies", company_row(profile), "save company profile")

    async def save_crm_record(
        self,
        profile: CompanyProfile,
        crm: CRMRecord,
        research: ResearchResult,
        official_name: str | None = None,
        notes: str | None = None,
    ) -> SavedCRM:
        company_id = await self._insert(
            "companies", company_row(profile, official_name, notes), "save final results",
        )
        crm_id = await self._insert(
            "crm_results",
            crm_row(profile, crm, research, official_name, notes, company_id),
            "save final results",
        )
        logger.info("Saved CRM record %s for %s", crm_id, profile.company_name)
        return SavedCRM(company_id=company_id, crm_id=crm_id)

    async def save_audit(
        self,
        profile: CompanyProfile,
        crm: CRMRecord,
        audit: AuditRecord,
        status: AuditStatus | str = AuditStatus.DRAFT,
    ) -> str:
        return await self._insert(
            "company_audits", audit_row(profile, crm, audit, status), "save audit",
        )

    async def get_history(self, company_name: str) -> list[dict[str, Any]]:
        def _query() -> list[dict[str, Any]]:
            result = (
                self.client.table("crm_results")
                .select("*")
                .ilike("company_name", _like_literal(company_name))
                .order("created_at", desc=True)
                .execute()
            )
            return result.data

        try:
            return await asyncio.to_thread(_query)
        except Exception as e:
            logger.error("Supabase history query failed: %s", e)
            raise PersistenceFailure(f"Failed to get search history: {e}") from e
