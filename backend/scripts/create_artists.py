#!/usr/bin/env python3
"""
Provision artists from a JSON file (list of objects):
  [{"email": "ana@example.com", "category": "MUA", "tier": 1, "name": "Ana", "monday_item_id": "123"}, ...]

  cd backend && python scripts/create_artists.py artists.json

Existing emails are skipped, so the file can be re-run.
"""
import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from artist_dispatch.core.errors import ConflictError, ValidationError
from artist_dispatch.db.session import SessionLocal
from artist_dispatch.services.artist_directory import create_artist


def main():
    parser = argparse.ArgumentParser(description="Create artists from a JSON file")
    parser.add_argument("path", type=Path)
    parser.add_argument("--actor", default="script:create_artists")
    args = parser.parse_args()

    rows = json.loads(args.path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        print("Expected a JSON list of artists")
        return 1
    created = skipped = failed = 0
    db = SessionLocal()
    try:
        for row in rows:
            try:
                artist = create_artist(
                    db,
                    email=row.get("email", ""),
                    category=row.get("category", ""),
                    tier=row.get("tier", 3),
                    name=row.get("name"),
                    user_id=row.get("user_id"),
                    monday_item_id=row.get("monday_item_id"),
                    actor=args.actor,
                )
                created += 1
                print(f"created  {artist.id:>5}  {artist.category:<3}  tier {artist.tier}  {artist.email}")
            except ConflictError:
                skipped += 1
                print(f"exists          {row.get('email')}")
            except ValidationError as e:
                failed += 1
                print(f"invalid         {row.get('email')}: {e}")
    finally:
        db.close()
    print(f"\nCreated {created}, skipped {skipped}, invalid {failed}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
