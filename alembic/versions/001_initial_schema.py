"""initial schema - event ledger and canonical party tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates inbound_events, parties, party_contacts, addresses,
party_addresses, party_enrichments and party_financials.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "inbound_events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("lead_id", sa.String(100), nullable=False),
        sa.Column("occurred_at", sa.DateTime, nullable=False),
        sa.Column("action_kind", sa.String(50)),
        sa.Column("raw_payload", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="received"),
        sa.Column("error", sa.Text),
        sa.Column("received_at", sa.DateTime),
        sa.Column("processed_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
        sa.UniqueConstraint("lead_id", "occurred_at", name="uq_inbound_events_lead_occurred"),
        sa.CheckConstraint(
            "status IN ('received', 'processing', 'completed', 'failed')",
            name="ck_inbound_events_status",
        ),
    )
    op.create_index("ix_inbound_events_status", "inbound_events", ["status"])

    op.create_table(
        "parties",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("kind", sa.String(20), nullable=False, server_default="person"),
        sa.Column("national_id", sa.String(20), nullable=False),
        sa.Column("display_name", sa.String(255)),
        sa.Column("normalized_name", sa.String(255)),
        sa.Column("birth_date", sa.Date),
        sa.Column("sex", sa.String(1)),
        sa.Column("mother_name", sa.String(255)),
        sa.Column("enriched", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
    )
    op.create_index("ix_parties_national_id", "parties", ["national_id"])
    op.create_index("ix_parties_national_id_updated", "parties", ["national_id", "updated_at"])

    op.create_table(
        "party_contacts",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("party_id", sa.Integer, sa.ForeignKey("parties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contact_type", sa.String(20), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("is_primary", sa.Boolean),
        sa.Column("is_verified", sa.Boolean),
        sa.Column("confidence", sa.Float),
        sa.Column("source", sa.String(50)),
        sa.Column("created_at", sa.DateTime),
        sa.UniqueConstraint("party_id", "contact_type", "value", name="uq_party_contacts_type_value"),
        sa.CheckConstraint("confidence BETWEEN 0 AND 1", name="ck_party_contacts_confidence"),
    )
    op.create_index("ix_party_contacts_value", "party_contacts", ["value"])

    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("fingerprint", sa.String(64), nullable=False, unique=True),
        sa.Column("street_type", sa.String(50)),
        sa.Column("street", sa.String(255)),
        sa.Column("number", sa.String(50)),
        sa.Column("complement", sa.String(255)),
        sa.Column("neighborhood", sa.String(255)),
        sa.Column("city", sa.String(255)),
        sa.Column("state", sa.String(2)),
        sa.Column("postal_code", sa.String(8)),
        sa.Column("created_at", sa.DateTime),
    )

    op.create_table(
        "party_addresses",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("party_id", sa.Integer, sa.ForeignKey("parties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("address_id", sa.Integer, sa.ForeignKey("addresses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_primary", sa.Boolean),
        sa.Column("relationship_hint", sa.String(50)),
        sa.Column("confidence_score", sa.Float, nullable=False),
        sa.Column("created_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
        sa.UniqueConstraint("party_id", "address_id", name="uq_party_addresses_party_address"),
        sa.CheckConstraint("confidence_score BETWEEN 0 AND 1", name="ck_party_addresses_confidence"),
    )

    op.create_table(
        "party_enrichments",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "party_id",
            sa.Integer,
            sa.ForeignKey("parties.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("raw_payload", sa.JSON, nullable=False),
        sa.Column("quality_score", sa.Float, nullable=False),
        sa.Column("enriched_at", sa.DateTime),
        sa.CheckConstraint("quality_score BETWEEN 0 AND 1", name="ck_party_enrichments_quality"),
    )

    op.create_table(
        "party_financials",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "party_id",
            sa.Integer,
            sa.ForeignKey("parties.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("reported_income", sa.Float),
        sa.Column("credit_score", sa.Integer),
        sa.Column("risk_label", sa.String(50)),
        sa.Column("risk_score", sa.Float),
        sa.Column("created_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
        sa.CheckConstraint("risk_score BETWEEN 0 AND 1", name="ck_party_financials_risk"),
    )


def downgrade() -> None:
    """Drop all tables. ⚠️ DESTRUCTIVE — only for dev/test environments."""
    op.drop_table("party_financials")
    op.drop_table("party_enrichments")
    op.drop_table("party_addresses")
    op.drop_table("addresses")
    op.drop_index("ix_party_contacts_value", table_name="party_contacts")
    op.drop_table("party_contacts")
    op.drop_index("ix_parties_national_id_updated", table_name="parties")
    op.drop_index("ix_parties_national_id", table_name="parties")
    op.drop_table("parties")
    op.drop_index("ix_inbound_events_status", table_name="inbound_events")
    op.drop_table("inbound_events")
