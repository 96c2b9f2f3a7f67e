import asyncio
import json
import time

import httpx
import pytest

from jobhunter.config import Settings
from jobhunter.discovery.errors import FetchError, FetchErrorKind, RunTimeoutError
from jobhunter.discovery.fetcher import Fetcher
from jobhunter.discovery.models import ContentKind, ExtractionTemplate, SearchPreferences, SourceGroup, SourceType
from jobhunter.discovery.orchestrator import JobDiscoveryService
from jobhunter.discovery.sources import SourceRegistry

FEED_URL = "https://feeds.example.com/jobs.rss"
OTHER_FEED_URL = "https://feeds.example.com/more.rss"
API_URL = "https://api.example.gov/search"
PAGE_URL = "https://jobs.example.com/search"

US_ONLY = SearchPreferences(title="driver", countries=["US"])


@pytest.fixture
def feed_source(make_source):
    def factory(name="Local Feed", url=FEED_URL):
        return make_source(
            name=name,
            content_kind=ContentKind.RSS,
            search_url=url,
            template=None,
            assume_relevant=True,
        )

    return factory


@pytest.fixture
def tiered_sources(make_source, feed_source):
    """One source per tier: RSS (fast), government JSON (medium), HTML (slow)."""
    return (
        feed_source(),
        make_source(
            name="Gov API",
            source_type=SourceType.GOVERNMENT,
            content_kind=ContentKind.JSON,
            search_url=API_URL,
        ),
        make_source(name="Html Board", search_url=PAGE_URL),
    )


def feed_of(feed_xml, count, prefix="Driver", base="https://feeds.example.com/jobs"):
    return feed_xml(*[(f"{prefix} {i}", f"{base}/{i}", "") for i in range(count)])


def make_service(settings, registry, fetcher, sleeps):
    return JobDiscoveryService(settings=settings, registry=registry, fetcher=fetcher, sleep=sleeps)


def test_end_to_end_single_blue_collar_source(settings, sleeps, make_source, listing_page):
    source = make_source(
        name="Driver Board",
        base_url="https://drivers.example.com",
        search_url="https://drivers.example.com/search?q={query}",
    )
    registry = SourceRegistry.from_groups(
        [
            SourceGroup(
                key="blue_collar_boards",
                name="Blue Collar Job Boards",
                source_type=SourceType.NICHE,
                requires_categories=frozenset({"blue-collar"}),
                sources=(source,),
            )
        ]
    )
    page = listing_page(("Delivery Driver", "/jobs/1"), ("Truck Driver", "/jobs/2"))

    def handler(request):
        if request.url.path == "/search" and request.url.params.get("q") == "driver":
            return httpx.Response(200, text=page)
        return httpx.Response(404)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = Fetcher(settings, client=client, sleep=sleeps)
            service = make_service(settings, registry, fetcher, sleeps)
            prefs = SearchPreferences(
                title="driver", countries=["US"], jobBoards=["all"], categories=["blue-collar"]
            )
            return await service.discover(prefs)

    jobs = asyncio.run(go())

    assert len(jobs) == 2
    assert {j.url for j in jobs} == {"https://drivers.example.com/jobs/1", "https://drivers.example.com/jobs/2"}
    assert all(j.title and j.url for j in jobs)
    assert all(j.country == "US" and "blue-collar" in j.categories for j in jobs)
    assert all(j.source_name == "Driver Board" and not j.is_synthetic for j in jobs)


def test_full_fast_tier_skips_later_tiers(
    settings, sleeps, tiered_sources, make_registry, fake_fetcher, feed_xml, monkeypatch
):
    settings = Settings(max_results=2)
    fetcher = fake_fetcher({FEED_URL: feed_of(feed_xml, 3)})
    service = make_service(settings, make_registry(*tiered_sources), fetcher, sleeps)
    later_tiers = []

    async def should_not_run(*args):
        later_tiers.append(args)

    monkeypatch.setattr(service, "_run_medium_tier", should_not_run)
    monkeypatch.setattr(service, "_run_slow_tier", should_not_run)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert len(jobs) == 2
    assert later_tiers == []
    assert [url for url, _ in fetcher.calls] == [FEED_URL]


def test_tier_policies_reach_the_fetcher(settings, sleeps, tiered_sources, make_registry, fake_fetcher, feed_xml):
    fetcher = fake_fetcher(
        {FEED_URL: feed_of(feed_xml, 1), API_URL: json.dumps({}), PAGE_URL: "<html></html>"}
    )
    service = make_service(settings, make_registry(*tiered_sources), fetcher, sleeps)

    asyncio.run(service.discover(US_ONLY))

    policies = {url: (kw["timeout"], kw["retries"]) for url, kw in fetcher.calls}
    assert policies == {FEED_URL: (5.0, 1), API_URL: (5.0, 1), PAGE_URL: (20.0, 3)}
    accepts = {url: kw["accept"] for url, kw in fetcher.calls}
    assert "rss" in accepts[FEED_URL]
    assert accepts[API_URL] == "application/json"
    base_delays = {url: kw["base_delay"] for url, kw in fetcher.calls}
    assert base_delays[API_URL] == 3.0
    assert base_delays[PAGE_URL] == 2.0


def test_failing_sources_are_isolated(settings, sleeps, feed_source, make_registry, fake_fetcher, feed_xml):
    sources = (
        feed_source("Good Feed", FEED_URL),
        feed_source("Down Feed", "https://down.example.com/rss"),
        feed_source("Weird Feed", "https://weird.example.com/rss"),
    )
    fetcher = fake_fetcher(
        {
            FEED_URL: feed_of(feed_xml, 2),
            "https://down.example.com/rss": FetchError(FetchErrorKind.NETWORK, "https://down.example.com/rss"),
            "https://weird.example.com/rss": RuntimeError("decoder exploded"),
        }
    )
    service = make_service(settings, make_registry(*sources), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert len(jobs) == 2
    assert {j.source_name for j in jobs} == {"Good Feed"}


def test_sequential_tier_continues_after_a_failure(
    settings, sleeps, make_source, make_registry, fake_fetcher, listing_page
):
    sources = (
        make_source(name="Missing Board", search_url="https://gone.example.com/search"),
        make_source(name="Html Board", search_url=PAGE_URL),
    )
    fetcher = fake_fetcher({PAGE_URL: listing_page(("Bus Driver", "/jobs/5"))})
    service = make_service(settings, make_registry(*sources), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert [j.title for j in jobs] == ["Bus Driver"]
    # politeness pause between the two slow sources
    assert sleeps.calls == [0.0]


def test_duplicate_postings_are_merged(settings, sleeps, feed_source, make_registry, fake_fetcher, feed_xml):
    sources = (feed_source("Feed A", FEED_URL), feed_source("Feed B", OTHER_FEED_URL))
    fetcher = fake_fetcher(
        {
            FEED_URL: feed_xml(
                ("Driver 1", "https://jobs.example.com/1", ""), ("Driver 2", "https://jobs.example.com/2", "")
            ),
            OTHER_FEED_URL: feed_xml(
                ("Driver Two", "https://jobs.example.com/2/", ""), ("Driver 3", "https://jobs.example.com/3", "")
            ),
        }
    )
    service = make_service(settings, make_registry(*sources), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert len(jobs) == 3
    assert {j.url.rstrip("/") for j in jobs} == {
        "https://jobs.example.com/1",
        "https://jobs.example.com/2",
        "https://jobs.example.com/3",
    }


def test_same_title_postings_at_different_urls_are_kept(
    settings, sleeps, feed_source, make_registry, fake_fetcher, feed_xml
):
    feed = feed_xml(
        ("Delivery Driver", "https://newyork.craigslist.org/jobs/111", ""),
        ("Delivery Driver", "https://newyork.craigslist.org/jobs/222", ""),
        ("Delivery Driver", "https://newyork.craigslist.org/jobs/333", ""),
    )
    fetcher = fake_fetcher({FEED_URL: feed})
    service = make_service(settings, make_registry(feed_source()), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert sorted(j.url for j in jobs) == [
        "https://newyork.craigslist.org/jobs/111",
        "https://newyork.craigslist.org/jobs/222",
        "https://newyork.craigslist.org/jobs/333",
    ]
    # No company in the feed, so every record carries the source name
    assert {j.company for j in jobs} == {"Local Feed"}


def test_same_title_cards_without_company_are_kept(
    settings, sleeps, make_source, make_registry, fake_fetcher, listing_page
):
    page = listing_page(("Delivery Driver", "/jobs/1", ""), ("Delivery Driver", "/jobs/2", ""))
    fetcher = fake_fetcher({PAGE_URL: page})
    service = make_service(settings, make_registry(make_source(search_url=PAGE_URL)), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert len(jobs) == 2
    assert {j.url for j in jobs} == {"https://jobs.example.com/jobs/1", "https://jobs.example.com/jobs/2"}


def test_fast_tier_concurrency_is_bounded(sleeps, feed_source, make_registry, fake_fetcher, feed_xml):
    settings = Settings(run_timeout=5.0, fast_tier_concurrency=2)
    in_flight = {"now": 0, "peak": 0}

    def slow_feed(payload):
        async def respond():
            in_flight["now"] += 1
            in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
            await asyncio.sleep(0.02)
            in_flight["now"] -= 1
            return payload

        return respond

    urls = [f"https://feeds.example.com/{i}.rss" for i in range(5)]
    sources = [feed_source(f"Feed {i}", url) for i, url in enumerate(urls)]
    fetcher = fake_fetcher(
        {url: slow_feed(feed_of(feed_xml, 1, base=f"https://feeds.example.com/{i}")) for i, url in enumerate(urls)}
    )
    service = make_service(settings, make_registry(*sources), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert len(jobs) == 5
    assert in_flight["peak"] == 2


def test_full_medium_tier_skips_slow_tier(sleeps, make_source, feed_source, make_registry, fake_fetcher):
    settings = Settings(max_results=2, medium_tier_delay=0.0, slow_tier_delay=0.0)
    sources = (
        feed_source(),
        make_source(
            name="Gov API",
            source_type=SourceType.GOVERNMENT,
            content_kind=ContentKind.JSON,
            search_url=API_URL,
            template=ExtractionTemplate(items="jobs", title="title", url="url"),
        ),
        make_source(name="Html Board", search_url=PAGE_URL),
    )
    api_payload = json.dumps(
        {
            "jobs": [
                {"title": "Driver I", "url": "https://api.example.gov/jobs/1"},
                {"title": "Driver II", "url": "https://api.example.gov/jobs/2"},
            ]
        }
    )
    # The fast feed is missing, so the medium tier alone fills the run
    fetcher = fake_fetcher({API_URL: api_payload, PAGE_URL: "<html></html>"})
    service = make_service(settings, make_registry(*sources), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert [j.title for j in jobs] == ["Driver I", "Driver II"]
    assert [url for url, _ in fetcher.calls] == [FEED_URL, API_URL]


def test_deadline_keeps_partial_results(sleeps, tiered_sources, make_registry, fake_fetcher, feed_xml):
    settings = Settings(run_timeout=0.3, medium_tier_delay=0.0, slow_tier_delay=0.0)

    async def hang():
        await asyncio.sleep(5)
        return "<html></html>"

    fetcher = fake_fetcher({FEED_URL: feed_of(feed_xml, 2), API_URL: json.dumps({}), PAGE_URL: hang})
    service = make_service(settings, make_registry(*tiered_sources), fetcher, sleeps)

    started = time.monotonic()
    jobs = asyncio.run(service.discover(US_ONLY))

    assert time.monotonic() - started < 3
    assert len(jobs) == 2


def test_run_timeout_from_fetcher_ends_collection(
    settings, sleeps, tiered_sources, make_registry, fake_fetcher, feed_xml
):
    fetcher = fake_fetcher(
        {FEED_URL: feed_of(feed_xml, 2), API_URL: RunTimeoutError("budget exhausted"), PAGE_URL: "<html></html>"}
    )
    service = make_service(settings, make_registry(*tiered_sources), fetcher, sleeps)

    jobs = asyncio.run(service.discover(US_ONLY))

    assert len(jobs) == 2
    assert PAGE_URL not in [url for url, _ in fetcher.calls]


class BrokenSelector:
    def __init__(self, registry):
        self.registry = registry

    def select_sources(self, preferences):
        raise RuntimeError("selector exploded")


def test_pipeline_failure_returns_empty_by_default(settings, sleeps, make_source, make_registry, fake_fetcher):
    registry = make_registry(make_source())
    service = JobDiscoveryService(
        settings=settings, selector=BrokenSelector(registry), fetcher=fake_fetcher({}), sleep=sleeps
    )

    assert asyncio.run(service.discover(US_ONLY)) == []


def test_pipeline_failure_serves_flagged_samples_when_enabled(sleeps, make_source, make_registry, fake_fetcher):
    settings = Settings(allow_synthetic_fallback=True)
    registry = make_registry(make_source())
    service = JobDiscoveryService(
        settings=settings, selector=BrokenSelector(registry), fetcher=fake_fetcher({}), sleep=sleeps
    )

    jobs = service.discover_sync(SearchPreferences(title="Night Porter"))

    assert len(jobs) == 5
    assert all(j.is_synthetic for j in jobs)
    assert all(j.title == "Night Porter" for j in jobs)


def test_filters_apply_after_collection(settings, sleeps, feed_source, make_registry, fake_fetcher, feed_xml):
    fetcher = fake_fetcher({FEED_URL: feed_of(feed_xml, 3)})
    service = make_service(settings, make_registry(feed_source()), fetcher, sleeps)

    # Feed items carry no location, so they fall back to "Various"
    jobs = asyncio.run(service.discover(SearchPreferences(title="driver", countries=["US"], location="Boston")))

    assert jobs == []


def test_catalog_passthroughs(settings, sleeps, make_source, make_registry, fake_fetcher):
    registry = make_registry(
        make_source(name="A", categories=frozenset({"admin"})),
        make_source(name="B", country="CA", categories=frozenset({"blue-collar", "admin"})),
    )
    service = make_service(settings, registry, fake_fetcher({}), sleeps)

    assert service.available_categories() == ["admin", "blue-collar"]
    assert service.available_countries() == ["CA", "US"]
    assert service.source_statistics()["total_sources"] == 2
