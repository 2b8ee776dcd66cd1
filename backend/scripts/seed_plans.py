#!/usr/bin/env python3
"""
Insert the default subscription plans (light / standard / premium) if missing.
Run after migrations: cd backend && python scripts/seed_plans.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from shuttle.db.session import SessionLocal
from shuttle.services.subscriptions import seed_plans


def main():
    db = SessionLocal()
    try:
        seed_plans(db)
        print("Done. Subscription plans seeded.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
