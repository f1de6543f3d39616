"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). alembic/env.py asserts the
registered models match ALL_TABLE_NAMES.
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "artists",
    "client_services",
    "proposal_batches",
    "proposals",
    "audit_logs",
    "push_tokens",
)

# Tables cleared when resetting dispatch state (TRUNCATE). Children first for FKs.
DISPATCH_TABLE_NAMES = (
    "proposals",
    "proposal_batches",
    "audit_logs",
    "client_services",
)
