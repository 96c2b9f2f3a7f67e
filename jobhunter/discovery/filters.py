"""Final preference filter applied to a run's accumulated records."""

from datetime import UTC, datetime, timedelta

from jobhunter.discovery.models import JobRecord, SearchPreferences
from jobhunter.utils.parser import mentions_remote


def matches_preferences(record: JobRecord, preferences: SearchPreferences, now: datetime) -> bool:
    if preferences.posted_after_days is not None:
        cutoff = now - timedelta(days=preferences.posted_after_days)
        if record.posted_date < cutoff:
            return False

    if preferences.experience_floor is not None and record.experience_years is not None:
        if record.experience_years < preferences.experience_floor:
            return False

    if preferences.remote_only and not mentions_remote(record.location):
        return False

    if preferences.location and preferences.location.lower() not in record.location.lower():
        return False

    return True


def filter_records(
    records: list[JobRecord],
    preferences: SearchPreferences,
    cap: int,
    now: datetime | None = None,
) -> list[JobRecord]:
    """Drop records that miss the preferences and keep at most `cap`, in order."""
    now = now or datetime.now(UTC)
    kept = [r for r in records if matches_preferences(r, preferences, now)]
    return kept[:cap]
