"""Persistence gateway: the storage operations the pipeline depends on.

Two implementations share the row layout built here: SQLiteGateway (local
file, default) and SupabaseGateway (hosted Postgres). Any storage error is
raised as PersistenceFailure and never retried; callers keep their
in-memory records so the user can save again.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from lead_research.config import Config
from lead_research.db.database import Database
from lead_research.db.migrations import run_migrations
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


class PersistenceGateway(Protocol):
    async def save_company_profile(self, profile: CompanyProfile) -> str: ...

    async def save_crm_record(
        self,
        profile: CompanyProfile,
        crm: CRMRecord,
        research: ResearchResult,
        official_name: str | None = None,
        notes: str | None = None,
    ) -> SavedCRM: ...

    async def save_audit(
        self,
        profile: CompanyProfile,
        crm: CRMRecord,
        audit: AuditRecord,
        status: AuditStatus | str = AuditStatus.DRAFT,
    ) -> str: ...

    async def get_history(self, company_name: str) -> list[dict[str, Any]]: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Row builders (shared by both stores)
# ---------------------------------------------------------------------------

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def company_row(profile: CompanyProfile, official_name: str | None = None, notes: str | None = None) -> dict:
    ts = _now()
    return {
        "company_name": profile.company_name,
        "official_company_name": official_name or profile.company_name,
        "website": profile.website or None,
        "industry": profile.industry_label,
        "location": profile.location,
        "social_media": profile.social_media,
        "notes": notes or profile.notes or None,
        "created_at": ts,
        "updated_at": ts,
    }


def crm_row(
    profile: CompanyProfile,
    crm: CRMRecord,
    research: ResearchResult,
    official_name: str | None,
    notes: str | None,
    company_id: str,
) -> dict:
    ts = _now()
    return {
        "company_id": company_id,
        "company_name": profile.company_name,
        "website": profile.website or None,
        "official_company_name": official_name or profile.company_name,
        "ai_insights": crm.to_payload(),
        "raw_search_data": research.to_payload(),
        "search_sources": {"research": True, "ai_analysis": True},
        "user_notes": notes or profile.notes or None,
        "created_at": ts,
        "updated_at": ts,
    }


def audit_row(
    profile: CompanyProfile,
    crm: CRMRecord,
    audit: AuditRecord,
    status: AuditStatus | str,
) -> dict:
    ts = _now()
    return {
        "company_name": profile.company_name,
        "website": profile.website or None,
        "company_data": profile.to_payload(),
        "crm_data": crm.to_payload(),
        "audit_data": audit.to_payload(),
        "audit_status": AuditStatus(status).value,
        "audit_version": audit.audit_metadata.audit_version,
        "created_at": ts,
        "updated_at": ts,
    }


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

_JSON_COLUMNS = ("social_media", "ai_insights", "raw_search_data", "search_sources")


def _insert(db: Database, table: str, row: dict) -> str:
    row_id = str(uuid.uuid4())
    values = {"id": row_id}
    for key, value in row.items():
        values[key] = json.dumps(value, ensure_ascii=False) if isinstance(value, (dict, list)) else value
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    db.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(values.values()))
    return row_id


def _decode(row: sqlite3.Row) -> dict[str, Any]:
    out = dict(row)
    for key in _JSON_COLUMNS:
        if isinstance(out.get(key), str):
            out[key] = json.loads(out[key])
    return out


class SQLiteGateway:
    """Local SQLite store. Schema comes from db/migrations/*.sql."""

    def __init__(self, db: Database):
        self.db = db

    @classmethod
    def open(cls, db_path: str) -> SQLiteGateway:
        db = Database(db_path)
        try:
            db.connect()
            applied = run_migrations(db)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to open database {db_path}: {e}") from e
        if applied:
            logger.info("Database %s migrated (%d migrations)", db_path, applied)
        return cls(db)

    def close(self) -> None:
        self.db.close()

    async def save_company_profile(self, profile: CompanyProfile) -> str:
        try:
            with self.db.transaction() as db:
                return _insert(db, "companies", company_row(profile))
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to save company profile: {e}") from e

    async def save_crm_record(
        self,
        profile: CompanyProfile,
        crm: CRMRecord,
        research: ResearchResult,
        official_name: str | None = None,
        notes: str | None = None,
    ) -> SavedCRM:
        try:
            with self.db.transaction() as db:
                company_id = _insert(db, "companies", company_row(profile, official_name, notes))
                crm_id = _insert(
                    db, "crm_results",
                    crm_row(profile, crm, research, official_name, notes, company_id),
                )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to save final results: {e}") from e
        logger.info("Saved CRM record %s for %s", crm_id, profile.company_name)
        return SavedCRM(company_id=company_id, crm_id=crm_id)

    async def save_audit(
        self,
        profile: CompanyProfile,
        crm: CRMRecord,
        audit: AuditRecord,
        status: AuditStatus | str = AuditStatus.DRAFT,
    ) -> str:
        try:
            with self.db.transaction() as db:
                audit_id = _insert(db, "company_audits", audit_row(profile, crm, audit, status))
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to save audit: {e}") from e
        logger.info("Saved audit %s for %s", audit_id, profile.company_name)
        return audit_id

    async def get_history(self, company_name: str) -> list[dict[str, Any]]:
        try:
            rows = self.db.fetchall(
                "SELECT * FROM crm_results WHERE company_name = ? COLLATE NOCASE "
                "ORDER BY created_at DESC, rowid DESC",
                (company_name,),
            )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to get search history: {e}") from e
        return [_decode(r) for r in rows]


def build_gateway(config: Config) -> PersistenceGateway:
    """Supabase when its URL and key are configured, SQLite otherwise."""
    if config.use_supabase:
        from lead_research.db.supabase_gateway import SupabaseGateway

        logger.info("Using Supabase storage at %s", config.supabase_url)
        return SupabaseGateway.from_config(config)
    logger.info("Using SQLite storage at %s", config.db_path)
    return SQLiteGateway.open(config.db_path)
