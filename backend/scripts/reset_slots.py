#!/usr/bin/env python3
"""
Zero one day's slot usage counters and fragility flags (admin reset; holds are not touched).
Run: cd backend && python scripts/reset_slots.py YYYY-MM-DD
"""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from shuttle.db.session import SessionLocal
from shuttle.services.slots import reset_slots_for_date


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        return 2
    day = date.fromisoformat(sys.argv[1])
    db = SessionLocal()
    try:
        count = reset_slots_for_date(db, day)
        print(f"Done. {count} slots reset for {day}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
