"""
Placeholder jobs for demos.

Only served when `allow_synthetic_fallback` is on and the pipeline failed
outright. Every record is flagged `is_synthetic`.
"""

from datetime import UTC, datetime

from jobhunter.discovery.models import JobRecord, SearchPreferences, SourceType

SAMPLE_JOBS = [
    ("Janitor", "ABC Cleaning Services", "$15 - $20 per hour", 1),
    ("Custodian", "City Maintenance Corp", "$16 - $22 per hour", None),
    ("Building Cleaner", "Metro Cleaning Solutions", "$14 - $19 per hour", None),
    ("Office Cleaner", "Professional Cleaning Inc", "$17 - $21 per hour", 1),
    ("Maintenance Worker", "Building Services LLC", "$18 - $23 per hour", 2),
]


def synthetic_jobs(preferences: SearchPreferences, now: datetime | None = None) -> list[JobRecord]:
    now = now or datetime.now(UTC)
    return [
        JobRecord(
            id=f"synthetic_{i}",
            title=preferences.title_query or title,
            company=company,
            location=preferences.location or "New York, NY",
            url=f"https://example.com/job{i}",
            salary=salary,
            experience_years=experience,
            source_name="Sample Data",
            source_type=SourceType.NICHE,
            country="US",
            categories=("blue-collar",),
            posted_date=now,
            is_synthetic=True,
        )
        for i, (title, company, salary, experience) in enumerate(SAMPLE_JOBS, start=1)
    ]
