"""Job discovery endpoints."""

import logging

from fastapi import APIRouter, Depends, Request

from jobhunter.api.limiter import limiter
from jobhunter.api.schemas import (
    CategoriesResponse,
    CountriesResponse,
    DiscoverRequest,
    DiscoverResponse,
    JobResponse,
    SourceStatsResponse,
)
from jobhunter.discovery.orchestrator import JobDiscoveryService

logger = logging.getLogger(__name__)

router = APIRouter()

_service: JobDiscoveryService | None = None


def get_discovery_service() -> JobDiscoveryService:
    """Process-wide discovery service (overridden in tests)."""
    global _service
    if _service is None:
        _service = JobDiscoveryService()
    return _service


@router.post("/discover", response_model=DiscoverResponse)
@limiter.limit("10/minute")
async def discover_jobs(
    request: Request,
    data: DiscoverRequest,
    service: JobDiscoveryService = Depends(get_discovery_service),
):
    """Run one discovery pass and return the matching jobs."""
    records = await service.discover(data.to_preferences())
    return DiscoverResponse(
        count=len(records),
        synthetic=any(r.is_synthetic for r in records),
        jobs=[JobResponse.model_validate(r.model_dump(mode="json")) for r in records],
    )


@router.get("/sources/categories", response_model=CategoriesResponse)
def list_categories(service: JobDiscoveryService = Depends(get_discovery_service)):
    """Job categories covered by the source catalog."""
    return CategoriesResponse(categories=service.available_categories())


@router.get("/sources/countries", response_model=CountriesResponse)
def list_countries(service: JobDiscoveryService = Depends(get_discovery_service)):
    """Countries covered by the source catalog."""
    return CountriesResponse(countries=service.available_countries())


@router.get("/sources/stats", response_model=SourceStatsResponse)
def source_stats(service: JobDiscoveryService = Depends(get_discovery_service)):
    """Source counts by country, category, type and tier."""
    return SourceStatsResponse(**service.source_statistics())
