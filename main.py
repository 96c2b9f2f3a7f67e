"""
JobHunter - CLI Entry Point.

Runs one discovery pass and prints the jobs found.
"""

import argparse
import asyncio
import json

from dotenv import load_dotenv

load_dotenv()

from jobhunter.config import configure_logging
from jobhunter.discovery import JobDiscoveryService, SearchPreferences


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discover jobs across public job sources.")
    parser.add_argument("title", help="Job title keywords, e.g. 'forklift operator'")
    parser.add_argument("--location", default="", help="Location substring the job must match")
    parser.add_argument("--country", action="append", default=[], help="Country code (repeatable)")
    parser.add_argument("--category", action="append", default=[], help="Job category (repeatable)")
    parser.add_argument("--board", action="append", default=[], help="Job board group (repeatable)")
    parser.add_argument("--remote", action="store_true", help="Only remote jobs")
    parser.add_argument("--posted-after", type=int, default=None, help="Max posting age in days")
    parser.add_argument("--experience", type=int, default=None, help="Minimum years of experience")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--log-level", default=None, help="Override JOBHUNTER_LOG_LEVEL")
    return parser


def main():
    """Run the discovery CLI."""
    args = build_parser().parse_args()
    configure_logging(args.log_level)

    preferences = SearchPreferences(
        title_query=args.title,
        location=args.location,
        countries=args.country,
        categories=args.category,
        selected_boards=args.board or ["all"],
        remote_only=args.remote,
        posted_after_days=args.posted_after,
        experience_floor=args.experience,
    )

    service = JobDiscoveryService()
    jobs = asyncio.run(service.discover(preferences))

    if args.json:
        print(json.dumps([job.model_dump(mode="json") for job in jobs], indent=2))
        return

    print(f"JobHunter: {len(jobs)} jobs for '{args.title}'")
    print("=" * 40)
    for job in jobs:
        marker = " [sample]" if job.is_synthetic else ""
        print(f"{job.title} @ {job.company}{marker}")
        details = [job.location, job.salary or "", job.source_name]
        print("  " + " | ".join(d for d in details if d))
        print(f"  {job.url}")


if __name__ == "__main__":
    main()
