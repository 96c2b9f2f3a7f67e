"""Shared fixtures: sources, feeds and fakes for the discovery pipeline."""

import pytest

from jobhunter.config import Settings
from jobhunter.discovery.errors import FetchError, FetchErrorKind
from jobhunter.discovery.models import (
    ContentKind,
    ExtractionTemplate,
    SourceDefinition,
    SourceGroup,
    SourceType,
)
from jobhunter.discovery.sources import SourceRegistry

CARD_TEMPLATE = ExtractionTemplate(
    items=".job-listing",
    title=".job-title",
    company=".company-name",
    location=".job-location",
    salary=".salary-info",
    url="a.job-link",
)


@pytest.fixture
def settings():
    return Settings(
        run_timeout=5.0,
        aggressive_delay=10.0,
        medium_tier_delay=0.0,
        slow_tier_delay=0.0,
        allow_synthetic_fallback=False,
    )


@pytest.fixture
def sleeps():
    """Async sleep stand-in that records requested durations."""
    calls = []

    async def fake_sleep(seconds):
        calls.append(seconds)

    fake_sleep.calls = calls
    return fake_sleep


@pytest.fixture
def make_source():
    def factory(name="Test Board", **overrides):
        fields = {
            "name": name,
            "group": "test_group",
            "base_url": "https://jobs.example.com",
            "search_url": "https://jobs.example.com/search",
            "source_type": SourceType.NICHE,
            "country": "US",
            "categories": frozenset({"blue-collar"}),
            "content_kind": ContentKind.HTML,
            "template": CARD_TEMPLATE,
        }
        fields.update(overrides)
        return SourceDefinition(**fields)

    return factory


@pytest.fixture
def make_registry():
    def factory(*sources, key="test_group", source_type=SourceType.NICHE, **group_fields):
        group = SourceGroup(
            key=key,
            name=key.replace("_", " ").title(),
            source_type=source_type,
            sources=tuple(sources),
            **group_fields,
        )
        return SourceRegistry.from_groups([group], boards={"test": [key]})

    return factory


def _card(title, href, company="Acme Logistics", location="Newark, NJ", salary=""):
    salary_html = f'<span class="salary-info">{salary}</span>' if salary else ""
    return (
        '<div class="job-listing">'
        f'<a class="job-link" href="{href}"><h3 class="job-title">{title}</h3></a>'
        f'<span class="company-name">{company}</span>'
        f'<span class="job-location">{location}</span>'
        f"{salary_html}"
        "</div>"
    )


@pytest.fixture
def listing_page():
    """HTML page with job cards: listing_page(("Title", "/jobs/1"), ...)."""

    def factory(*cards):
        body = "".join(_card(*card) for card in cards)
        return f"<html><body><main>{body}</main></body></html>"

    return factory


@pytest.fixture
def feed_xml():
    """RSS document: feed_xml(("title", "link", "description"), ...)."""

    def factory(*items):
        entries = "".join(
            "<item>"
            f"<title><![CDATA[{title}]]></title>"
            f"<link>{link}</link>"
            f"<description><![CDATA[{description}]]></description>"
            "<pubDate>Mon, 05 Oct 2026 10:00:00 GMT</pubDate>"
            "</item>"
            for title, link, description in items
        )
        return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Jobs</title>{entries}</channel></rss>'

    return factory


class FakeFetcher:
    """Fetcher stand-in: maps URL to a payload, an exception, or a coroutine factory."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def fetch(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.responses.get(url)
        if response is None:
            raise FetchError(FetchErrorKind.NOT_FOUND, url, "HTTP 404")
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return await response()
        return response


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
