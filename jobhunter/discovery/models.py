"""
Discovery data models.

Sources, preferences and job records are immutable pydantic models; only the
per-run accumulator (DiscoveryRun) mutates.
"""

import re
from datetime import datetime
from enum import Enum
from urllib.parse import quote_plus

from pydantic import BaseModel, Field, field_validator


class SourceType(str, Enum):
    GOVERNMENT = "government"
    GIG = "gig"
    ATS = "ats"
    NICHE = "niche"
    REGIONAL = "regional"
    COMPANY = "company"


class ContentKind(str, Enum):
    HTML = "html"
    RSS = "rss"
    JSON = "json"


class Tier(str, Enum):
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class ExtractionTemplate(BaseModel):
    """
    Where the job fields live inside a source's payload.

    CSS selectors for HTML sources, dotted paths for JSON sources.
    """

    items: str = ""
    title: str = ""
    company: str = ""
    location: str = ""
    salary: str = ""
    url: str = ""
    posted: str = ""
    company_name: str = ""  # literal employer when the page has no company element

    class Config:
        frozen = True


class SourceDefinition(BaseModel):
    """One job source from the catalog."""

    name: str
    group: str = ""
    base_url: str
    search_url: str = ""
    source_type: SourceType
    country: str
    categories: frozenset[str] = frozenset()
    content_kind: ContentKind = ContentKind.HTML
    template: ExtractionTemplate | None = None
    assume_relevant: bool = False  # feed is already filtered server-side (location feeds)
    default_location: str = ""

    class Config:
        frozen = True

    @property
    def tier(self) -> Tier:
        if self.content_kind == ContentKind.HTML:
            return Tier.SLOW
        if self.content_kind == ContentKind.JSON and self.source_type == SourceType.GOVERNMENT:
            return Tier.MEDIUM
        return Tier.FAST

    @property
    def slug(self) -> str:
        return re.sub(r"[^a-z0-9]+", "_", self.name.lower()).strip("_")

    def build_url(self, preferences: "SearchPreferences") -> str:
        """Fill the {query}/{location} placeholders of the search URL."""
        url = self.search_url or self.base_url
        return url.replace("{query}", quote_plus(preferences.title_query)).replace(
            "{location}", quote_plus(preferences.location)
        )


class SourceGroup(BaseModel):
    """A catalog section; the unit the selector caps and gates on."""

    key: str
    name: str
    source_type: SourceType
    requires_country: str = ""
    requires_categories: frozenset[str] = frozenset()
    sources: tuple[SourceDefinition, ...] = ()

    class Config:
        frozen = True


def _first_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = re.search(r"\d+", str(value))
    return int(match.group()) if match else None


def _token_set(value, upper: bool = False) -> frozenset[str]:
    if not value:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    tokens = (str(v).strip() for v in value)
    return frozenset((t.upper() if upper else t.lower()) for t in tokens if t)


def _token_list(value) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    tokens = (str(v).strip().lower() for v in value)
    return tuple(dict.fromkeys(t for t in tokens if t))


class SearchPreferences(BaseModel):
    """What the caller is looking for. Accepts the camelCase names of the web layer."""

    title_query: str = Field(default="", alias="title")
    location: str = ""
    experience_floor: int | None = Field(default=None, alias="experience")
    posted_after_days: int | None = Field(default=None, alias="postedAfter")
    selected_boards: tuple[str, ...] = Field(default=(), alias="jobBoards")
    remote_only: bool = Field(default=False, alias="remote")
    categories: frozenset[str] = frozenset()
    countries: frozenset[str] = frozenset()

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("title_query", "location", mode="before")
    @classmethod
    def _strip(cls, v):
        return (v or "").strip()

    @field_validator("experience_floor", "posted_after_days", mode="before")
    @classmethod
    def _parse_int(cls, v):
        return _first_int(v)

    @field_validator("selected_boards", mode="before")
    @classmethod
    def _parse_boards(cls, v):
        # order matters: boards resolve to groups in the order given
        return _token_list(v)

    @field_validator("categories", mode="before")
    @classmethod
    def _parse_tokens(cls, v):
        return _token_set(v)

    @field_validator("countries", mode="before")
    @classmethod
    def _parse_countries(cls, v):
        return _token_set(v, upper=True)

    @property
    def wants_all_boards(self) -> bool:
        return not self.selected_boards or bool({"all", "comprehensive"} & set(self.selected_boards))


class RawFetchResult(BaseModel):
    source_name: str
    payload: str
    content_kind: ContentKind
    fetched_at: datetime


class JobCandidate(BaseModel):
    """Extractor output before it becomes a JobRecord."""

    title: str = ""
    company: str = ""
    location: str = ""
    salary: str | None = None
    url: str = ""
    description: str = ""
    experience_years: int | None = None
    posted_date: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.title.strip() and self.url.strip())


class JobRecord(BaseModel):
    """Canonical job posting."""

    id: str
    title: str = Field(min_length=1)
    company: str
    location: str
    url: str = Field(min_length=1)
    salary: str | None = None
    experience_years: int | None = None
    source_name: str
    source_type: SourceType
    country: str
    categories: tuple[str, ...] = ()
    posted_date: datetime
    description: str = ""
    is_synthetic: bool = False

    class Config:
        frozen = True


class DiscoveryRun:
    """Accumulator for one discover() call."""

    def __init__(self):
        self.records: list[JobRecord] = []
        self.failures: list[tuple[str, str]] = []  # (source name, reason)
        self.sources_attempted = 0
        self.timed_out = False
        self.used_fallback = False
        self._seen: set[str] = set()

    @property
    def count(self) -> int:
        return len(self.records)

    def is_full(self, cap: int) -> bool:
        return self.count >= cap

    def add(self, records: list[JobRecord]) -> int:
        """Append records whose URL is not seen yet. Returns how many were kept."""
        added = 0
        for record in records:
            key = record.url.lower().rstrip("/")
            if key in self._seen:
                continue
            self._seen.add(key)
            self.records.append(record)
            added += 1
        return added

    def record_failure(self, source_name: str, reason: str) -> None:
        self.failures.append((source_name, reason))

    def summary(self) -> dict:
        return {
            "records": self.count,
            "sources_attempted": self.sources_attempted,
            "failures": len(self.failures),
            "timed_out": self.timed_out,
            "used_fallback": self.used_fallback,
        }
