#!/usr/bin/env python3
"""
Clear dispatch state (proposals, proposal_batches, audit_logs, client_services). Artists and push tokens stay.

Prints per-table row counts first. Refuses while any batch is OPEN (artists could still be answering)
unless --force. --dry-run only prints the counts.
Run with backend stopped to avoid locks: cd backend && python scripts/clear_dispatch_tables.py [--force] [--dry-run]
"""
import argparse
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from artist_dispatch.core.enums import BatchState
from artist_dispatch.db.tables import DISPATCH_TABLE_NAMES


def table_counts(conn) -> dict[str, int]:
    return {t: conn.execute(text(f"SELECT COUNT(*) FROM {t}")).scalar() or 0 for t in DISPATCH_TABLE_NAMES}


def open_batch_ids(conn) -> list[int]:
    rows = conn.execute(
        text("SELECT id FROM proposal_batches WHERE state = :state ORDER BY id"),
        {"state": BatchState.OPEN.value},
    )
    return [r[0] for r in rows]


def clear_tables(conn) -> None:
    """TRUNCATE on Postgres; plain DELETE (children first) elsewhere."""
    if conn.dialect.name == "postgresql":
        conn.execute(text(f"TRUNCATE TABLE {', '.join(DISPATCH_TABLE_NAMES)} RESTART IDENTITY CASCADE"))
    else:
        for table in DISPATCH_TABLE_NAMES:
            conn.execute(text(f"DELETE FROM {table}"))
    conn.commit()


def run(conn, *, force: bool = False, dry_run: bool = False) -> int:
    """Returns the process exit code: 0 cleared or dry run, 1 refused."""
    counts = table_counts(conn)
    for table, n in counts.items():
        print(f"  {table:<18} {n}")
    open_ids = open_batch_ids(conn)
    if open_ids:
        print(f"{len(open_ids)} OPEN batch(es): {open_ids[:10]}{' ...' if len(open_ids) > 10 else ''}")
    if dry_run:
        print("Dry run; nothing deleted.")
        return 0
    if open_ids and not force:
        print("Refusing to clear while batches are OPEN. Wait for the sweep or pass --force.")
        return 1
    clear_tables(conn)
    print(f"Done. Removed {sum(counts.values())} rows; board webhooks will recreate records.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Clear dispatch tables (artists and push tokens are kept).")
    parser.add_argument("--force", action="store_true", help="clear even while batches are OPEN")
    parser.add_argument("--dry-run", action="store_true", help="only print row counts")
    args = parser.parse_args(argv)

    from artist_dispatch.db.session import engine

    print(f"Connecting to DB ({engine.url.render_as_string(hide_password=True)}) ...")
    with engine.connect() as conn:
        return run(conn, force=args.force, dry_run=args.dry_run)


if __name__ == "__main__":
    sys.exit(main())
