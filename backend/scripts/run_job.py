#!/usr/bin/env python3
"""
Run one scheduler job once, outside the app (cron, debugging).
Run: cd backend && python scripts/run_job.py {expire-holds,expand-schedules,monthly-reset,load-analysis} [--date YYYY-MM-DD]
"""
import argparse
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from shuttle.scheduler.hold_expiry_job import run_hold_expiry_job
from shuttle.scheduler.load_analysis_job import run_load_analysis_job
from shuttle.scheduler.monthly_reset_job import run_monthly_reset_job
from shuttle.scheduler.schedule_expansion_job import run_schedule_expansion_job

JOBS = {
    "expire-holds": run_hold_expiry_job,
    "expand-schedules": run_schedule_expansion_job,
    "monthly-reset": run_monthly_reset_job,
}


def main():
    parser = argparse.ArgumentParser(description="Run one shuttle batch job once")
    sub = parser.add_subparsers(dest="job", required=True)
    for name in JOBS:
        sub.add_parser(name)
    load = sub.add_parser("load-analysis", help="Analyze one day's rides (default: tomorrow)")
    load.add_argument("--date", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    args = parser.parse_args()

    if args.job == "load-analysis":
        run_load_analysis_job(args.date)
        print(f"Done. load-analysis day={args.date or 'tomorrow'}")
        return 0
    result = JOBS[args.job]()
    print(f"Done. {args.job}: {result}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
