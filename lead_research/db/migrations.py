"""Sequential SQL migration runner for the SQLite store."""

from __future__ import annotations

import logging
from pathlib import Path

from lead_research.db.database import Database

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def pending_migrations(db: Database, migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    applied = {
        row["filename"]
        for row in db.fetchall("SELECT filename FROM _migrations")
    }
    return [mf for mf in sorted(migrations_dir.glob("*.sql")) if mf.name not in applied]


def run_migrations(db: Database, migrations_dir: Path = MIGRATIONS_DIR) -> int:
    """Apply pending migrations in filename order. Returns how many ran."""
    db.executescript("""
        CREATE TABLE IF NOT EXISTS _migrations (
            id INTEGER PRIMARY KEY,
            filename TEXT NOT NULL UNIQUE,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    """)

    pending = pending_migrations(db, migrations_dir)
    for mf in pending:
        logger.info("Applying migration: %s", mf.name)
        db.executescript(mf.read_text(encoding="utf-8"))
        db.execute("INSERT INTO _migrations (filename) VALUES (?)", (mf.name,))
        db.commit()
    return len(pending)
