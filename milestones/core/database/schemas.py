"""
Database Schemas - CREATE TABLE statements.

schedules.db holds one payment schedule per proposal and the milestone rows
that allocate the proposal's contract value. Milestone rows are never
deleted; removal sets is_archived.
"""

import logging

logger = logging.getLogger(__name__)


SCHEDULES_SCHEMA = """
-- One schedule per proposal
CREATE TABLE IF NOT EXISTS payment_schedules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id TEXT NOT NULL,
    proposal_id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Milestone rows. The allocation mode is not stored: percent_of_contract set
-- means percentage, fixed_amount set means fixed, both NULL means remaining.
CREATE TABLE IF NOT EXISTS payment_schedule_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    payment_schedule_id INTEGER NOT NULL REFERENCES payment_schedules(id),
    title TEXT NOT NULL DEFAULT '',
    due_on TEXT,
    percent_of_contract REAL,
    fixed_amount REAL,
    scheduled_amount REAL NOT NULL DEFAULT 0,
    sort_order INTEGER NOT NULL DEFAULT 0,
    is_archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_schedule_items_schedule
    ON payment_schedule_items(payment_schedule_id, is_archived, sort_order);
"""


async def init_schedules_schema(db):
    """Initialize schedules database schema."""
    await db.executescript(SCHEDULES_SCHEMA)
    await db.commit()
    logger.debug("Schedules schema initialized")
