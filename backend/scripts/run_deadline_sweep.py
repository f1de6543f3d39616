#!/usr/bin/env python3
"""
Run one deadline sweep now (same as the scheduled job) and print the result.
  cd backend && python scripts/run_deadline_sweep.py
"""
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from artist_dispatch.scheduler.deadline_job import run_deadline_sweep_job


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    result = run_deadline_sweep_job()
    if result is None:
        print("Sweep failed; see log above.")
        return 1
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
