"""
Job discovery pipeline.

- sources: catalog of job sources (catalog.json)
- selector: preferences to in-scope sources, split by tier
- fetcher: HTTP with retries, backoff and user-agent rotation
- extractor: HTML / RSS / JSON payloads to job candidates
- orchestrator: tiered scheduling under a run deadline
"""

from jobhunter.discovery.errors import (
    CatalogError,
    DiscoveryError,
    ExtractionError,
    FetchError,
    FetchErrorKind,
    RunTimeoutError,
)
from jobhunter.discovery.models import JobRecord, SearchPreferences, SourceDefinition, SourceType, Tier
from jobhunter.discovery.orchestrator import JobDiscoveryService
from jobhunter.discovery.sources import SourceRegistry, get_registry

__all__ = [
    "CatalogError",
    "DiscoveryError",
    "ExtractionError",
    "FetchError",
    "FetchErrorKind",
    "JobDiscoveryService",
    "JobRecord",
    "RunTimeoutError",
    "SearchPreferences",
    "SourceDefinition",
    "SourceRegistry",
    "SourceType",
    "Tier",
    "get_registry",
]
