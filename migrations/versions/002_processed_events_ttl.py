"""Purge function for expired processed_events rows.

The postgres idempotency backend only needs recent status ids; rows older
than the retention window can be dropped by a scheduled
`SELECT purge_processed_events(interval '1 day')`.

Revision ID: 002_processed_events_ttl
Revises: 001_vendor_locations
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op

revision = "002_processed_events_ttl"
down_revision = "001_vendor_locations"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION purge_processed_events(retention INTERVAL)
        RETURNS INTEGER
        LANGUAGE plpgsql
        AS $$
        DECLARE
            deleted INTEGER;
        BEGIN
            DELETE FROM processed_events WHERE created_at < now() - retention;
            GET DIAGNOSTICS deleted = ROW_COUNT;
            RETURN deleted;
        END;
        $$
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS purge_processed_events(INTERVAL)")
