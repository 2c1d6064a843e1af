"""
startup.py — Database Startup Migrations (Idempotent)

Tables and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). This file only adds the
PostgreSQL CHECK constraints that keep ledger statuses and confidence
scores in range. Alembic (alembic/versions) is the source of truth for
deployed schemas; this keeps a fresh dev database usable without it.

Called by: main.py lifespan
Depends on: database.py (engine), models (Base)
"""

import os

from loguru import logger
from sqlalchemy import text as sqltext

from .database import engine

_CHECK_CONSTRAINTS = (
    (
        "inbound_events",
        "ck_inbound_events_status",
        "status IN ('received', 'processing', 'completed', 'failed')",
    ),
    ("party_contacts", "ck_party_contacts_confidence", "confidence BETWEEN 0 AND 1"),
    ("party_addresses", "ck_party_addresses_confidence", "confidence_score BETWEEN 0 AND 1"),
    ("party_enrichments", "ck_party_enrichments_quality", "quality_score BETWEEN 0 AND 1"),
    ("party_financials", "ck_party_financials_risk", "risk_score BETWEEN 0 AND 1"),
)


def run_startup_migrations() -> None:
    """Execute all idempotent startup operations. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        logger.info("TESTING mode — skipping startup migrations")
        return

    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("ORM schema sync complete (create_all checkfirst=True)")

    if engine.dialect.name != "postgresql":
        return
    with engine.connect() as conn:
        _add_check_constraints(conn)
    logger.info("Startup migrations complete")


def _exec(conn, stmt: str) -> None:
    """Execute a single DDL statement with rollback on failure."""
    try:
        conn.execute(sqltext(stmt))
        conn.commit()
    except Exception as e:
        logger.warning("DDL failed: {}", e)
        conn.rollback()


def _add_check_constraints(conn) -> None:
    for table, name, expr in _CHECK_CONSTRAINTS:
        exists = conn.execute(
            sqltext("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": name},
        ).first()
        if exists:
            continue
        _exec(conn, f"ALTER TABLE {table} ADD CONSTRAINT {name} CHECK ({expr})")
