#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  python scripts/check_backend.py
"""
import os
import socket
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []
    warnings = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Copy from backend/.env.example and set DATABASE_URL, MONDAY_*, etc.")
    else:
        print("OK  .env exists")

    # 2) DB connection and tables
    try:
        from sqlalchemy import inspect, text

        from artist_dispatch.db.session import engine
        from artist_dispatch.db.tables import ALL_TABLE_NAMES

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = sorted(set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names()))
        if missing:
            errors.append(f"Tables missing: {', '.join(missing)}. Run: alembic upgrade head")
            print("FAIL Tables missing:", ", ".join(missing))
        else:
            print("OK  All tables present")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) Board configuration (webhooks and automations need it)
    from artist_dispatch.config import settings

    if not settings.monday_api_token:
        warnings.append("MONDAY_API_TOKEN not set: board reads and email automations will fail.")
    if not settings.monday_clients_board_id:
        warnings.append("MONDAY_CLIENTS_BOARD_ID not set: client sync disabled.")
    if not settings.monday_email_automation_column_id:
        warnings.append("MONDAY_EMAIL_AUTOMATION_COLUMN_ID not set: expired batches cannot email clients.")
    if not (settings.apns_key_id and settings.apns_team_id and settings.apns_bundle_id):
        warnings.append("APNS_* not set: artist pushes are skipped.")

    # 4) App import (catches missing deps, bad imports)
    try:
        from artist_dispatch.main import app  # noqa: F401
        print("OK  App import (artist_dispatch.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)
        print("\nFix the above, then run:")
        print("  cd backend && uvicorn artist_dispatch.main:app --reload --host 0.0.0.0 --port 8000")
        return 1

    # 5) Port 8000
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 8000))
        print("OK  Port 8000 is free")
    except OSError:
        errors.append("Port 8000 is in use. Stop the other process or use another port (e.g. --port 8001).")
        print("FAIL Port 8000 is in use")

    for w in warnings:
        print("WARN", w)
    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: cd backend && uvicorn artist_dispatch.main:app --reload")
    return 0


if __name__ == "__main__":
    sys.exit(main())
