"""API request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from jobhunter.discovery.models import SearchPreferences


# Discovery schemas
class DiscoverRequest(BaseModel):
    """Search preferences as sent by the web client (camelCase)."""

    title: str = Field(default="", description="Job title keywords")
    location: str = ""
    experience: int | str | None = Field(default=None, description='Years, e.g. 3 or "3+ years"')
    postedAfter: int | str | None = Field(default=None, description="Max posting age in days")
    jobBoards: list[str] = Field(default_factory=lambda: ["all"])
    remote: bool = False
    categories: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list, description="ISO codes; empty means US, UK, CA")

    def to_preferences(self) -> SearchPreferences:
        return SearchPreferences.model_validate(self.model_dump())


class JobResponse(BaseModel):
    id: str
    title: str
    company: str
    location: str
    url: str
    salary: str | None
    experience_years: int | None
    source_name: str
    source_type: str
    country: str
    categories: list[str]
    posted_date: datetime
    description: str
    is_synthetic: bool

    class Config:
        from_attributes = True


class DiscoverResponse(BaseModel):
    count: int
    synthetic: bool
    jobs: list[JobResponse]


# Source catalog schemas
class CategoriesResponse(BaseModel):
    categories: list[str]


class CountriesResponse(BaseModel):
    countries: list[str]


class SourceStatsResponse(BaseModel):
    total_sources: int
    by_country: dict[str, int]
    by_category: dict[str, int]
    by_type: dict[str, int]
    by_tier: dict[str, int]
