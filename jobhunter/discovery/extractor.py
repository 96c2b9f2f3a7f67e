"""
Turn fetched payloads into job candidates.

HTML pages go through the source's declared template first and a cascade of
generic strategies when the template no longer matches. RSS feeds are parsed
by pattern; JSON APIs are read through dotted paths from the template.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime

from bs4 import BeautifulSoup, Tag

from jobhunter.config import Settings, settings as default_settings
from jobhunter.discovery.errors import ExtractionError
from jobhunter.discovery.feeds import parse_feed
from jobhunter.discovery.models import (
    ContentKind,
    ExtractionTemplate,
    JobCandidate,
    JobRecord,
    SourceDefinition,
)
from jobhunter.utils.parser import (
    clean_text,
    extract_company_from_title,
    normalize_url,
    parse_experience_years,
    parse_posted_date,
    parse_salary,
)

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 500


# Element-finding strategies, tried in order; the first non-empty result wins
def _job_cards(soup: BeautifulSoup) -> list[Tag]:
    return soup.select(".job-listing, .job-card, .position, .career-opportunity, .job-item")


def _job_links(soup: BeautifulSoup) -> list[Tag]:
    return soup.select('a[href*="/jobs/"], a[href*="/careers/"], a[href*="/positions/"]')


def _job_classes(soup: BeautifulSoup) -> list[Tag]:
    return soup.select('[class*="job"], [class*="position"], [class*="career"]')


def _job_list_items(soup: BeautifulSoup) -> list[Tag]:
    return soup.select('li:has(a[href*="/jobs/"]), li:has(a[href*="/careers/"])')


FALLBACK_STRATEGIES: tuple[Callable[[BeautifulSoup], list[Tag]], ...] = (
    _job_cards,
    _job_links,
    _job_classes,
    _job_list_items,
)

TITLE_SELECTORS = (".job-title", ".position-title", ".title", "h3", "h4", '[class*="title"]', "a", "span")
COMPANY_SELECTORS = (".company", ".employer", ".organization", '[class*="company"]', '[class*="employer"]')
LOCATION_SELECTORS = (".location", ".place", '[class*="location"]', ".job-location")
SALARY_SELECTORS = (".salary", '[class*="salary"]', '[class*="pay"]')
URL_SELECTORS = ("a[href]", ".job-link", '[class*="link"]')


def _select_text(element: Tag, selectors) -> str:
    for selector in selectors:
        if not selector:
            continue
        found = element.select_one(selector)
        if found is not None:
            text = found.get_text(" ", strip=True)
            if text:
                return text
    return ""


def _select_href(element: Tag, selectors) -> str:
    for selector in selectors:
        if not selector:
            continue
        found = element.select_one(selector)
        if found is None:
            continue
        href = found.get("href")
        if not href and found.name != "a":
            inner = found.select_one("a[href]")
            href = inner.get("href") if inner is not None else None
        if href:
            return href
    return ""


def _dig(data, path: str):
    """Follow a dotted path ("a.b.0.c") through dicts and lists; None when missing."""
    if not path:
        return data
    current = data
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
        if current is None:
            return None
    return current


def _as_text(value) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return clean_text(str(value))


class Extractor:
    """Payload → JobCandidate list, per content kind."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def extract(
        self,
        payload: str,
        content_kind: ContentKind,
        source: SourceDefinition,
        query: str | None = None,
    ) -> list[JobCandidate]:
        """Extract, post-process and relevance-filter candidates. Never raises on bad input."""
        try:
            if content_kind == ContentKind.RSS:
                candidates = self._from_feed(payload, source, query)
            elif content_kind == ContentKind.JSON:
                candidates = self._from_json(payload, source, query)
            else:
                candidates = self._from_html(payload, source, query)
        except ExtractionError as e:
            logger.warning(f"Could not decode payload from {source.name}: {e}")
            return []

        logger.debug(f"{source.name}: {len(candidates)} candidates")
        return candidates

    # HTML

    def _from_html(self, payload: str, source: SourceDefinition, query: str | None) -> list[JobCandidate]:
        if not payload:
            return []
        soup = BeautifulSoup(payload, "html.parser")
        template = source.template

        elements: list[Tag] = []
        if template and template.items:
            elements = soup.select(template.items)
            if not elements:
                logger.warning(
                    f"Template selector '{template.items}' matched nothing on {source.name}, "
                    f"trying generic strategies"
                )
        if not elements:
            for strategy in FALLBACK_STRATEGIES:
                elements = strategy(soup)
                if elements:
                    logger.debug(f"{source.name}: {len(elements)} elements via {strategy.__name__}")
                    break

        candidates = []
        for element in elements:
            candidate = self._candidate_from_element(element, template, source)
            if candidate is None:
                continue
            if not self._title_matches(candidate, query):
                continue
            candidates.append(candidate)
        return candidates

    def _candidate_from_element(
        self, element: Tag, template: ExtractionTemplate | None, source: SourceDefinition
    ) -> JobCandidate | None:
        template = template or ExtractionTemplate()
        is_anchor = element.name == "a"

        title = _select_text(element, (template.title, *TITLE_SELECTORS))
        if not title and is_anchor:
            title = element.get_text(" ", strip=True)

        href = _select_href(element, (template.url, *URL_SELECTORS))
        if not href and is_anchor:
            href = element.get("href") or ""

        url = normalize_url(href, source.base_url)
        if not title or not url:
            return None

        text = element.get_text(" ", strip=True)
        salary_text = _select_text(element, (template.salary, *SALARY_SELECTORS))
        candidate = JobCandidate(
            title=title,
            company=_select_text(element, (template.company, *COMPANY_SELECTORS)),
            location=_select_text(element, (template.location, *LOCATION_SELECTORS)),
            salary=salary_text or None,
            url=url,
            description=text[:DESCRIPTION_LIMIT],
            posted_date=parse_posted_date(_select_text(element, (template.posted,))),
        )
        return self._finish(candidate, source, context=text)

    # RSS

    def _from_feed(self, payload: str, source: SourceDefinition, query: str | None) -> list[JobCandidate]:
        candidates = []
        for item in parse_feed(payload):
            if len(candidates) >= self.settings.max_feed_items:
                break
            title = item["title"]
            url = normalize_url(item["link"], source.base_url)
            if not title or not url:
                continue
            if not (source.assume_relevant or self._feed_item_matches(item, query)):
                continue

            candidate = JobCandidate(
                title=title,
                company=extract_company_from_title(title),
                url=url,
                description=item["description"][:DESCRIPTION_LIMIT],
                posted_date=parse_posted_date(item["pub_date"]),
            )
            candidates.append(self._finish(candidate, source, context=item["description"]))
        return candidates

    @staticmethod
    def _feed_item_matches(item: dict[str, str], query: str | None) -> bool:
        if not query:
            return True
        needle = query.lower()
        return needle in item["title"].lower() or needle in item["description"].lower()

    # JSON

    def _from_json(self, payload: str, source: SourceDefinition, query: str | None) -> list[JobCandidate]:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise ExtractionError(f"invalid JSON: {e}") from e

        template = source.template or ExtractionTemplate()
        items = _dig(data, template.items)
        if not isinstance(items, list):
            return []

        # Sources with a {query} placeholder are filtered by the API itself
        server_filtered = "{query}" in source.search_url
        candidates = []
        for item in items:
            if len(candidates) >= self.settings.max_api_items:
                break
            if not isinstance(item, dict):
                continue
            title = _as_text(_dig(item, template.title))
            url = normalize_url(_as_text(_dig(item, template.url)), source.base_url)
            if not title or not url:
                continue

            candidate = JobCandidate(
                title=title,
                company=_as_text(_dig(item, template.company)),
                location=_as_text(_dig(item, template.location)),
                salary=_as_text(_dig(item, template.salary)) or None,
                url=url,
                posted_date=parse_posted_date(_dig(item, template.posted)),
            )
            if not (server_filtered or self._title_matches(candidate, query)):
                continue
            candidates.append(self._finish(candidate, source, context=""))
        return candidates

    # Shared

    def _title_matches(self, candidate: JobCandidate, query: str | None) -> bool:
        return not query or query.lower() in candidate.title.lower()

    def _finish(self, candidate: JobCandidate, source: SourceDefinition, context: str) -> JobCandidate:
        """Fill derived fields and defaults."""
        updates = {}
        if candidate.experience_years is None:
            updates["experience_years"] = parse_experience_years(f"{candidate.title} {context}")
        if not candidate.salary:
            updates["salary"] = parse_salary(candidate.title) or parse_salary(context)
        if not candidate.location:
            updates["location"] = source.default_location or "Various"
        if not candidate.company:
            template_company = source.template.company_name if source.template else ""
            updates["company"] = template_company or source.name
        return candidate.model_copy(update=updates)

    def build_records(
        self, candidates: list[JobCandidate], source: SourceDefinition, fetched_at: datetime
    ) -> list[JobRecord]:
        """Promote complete candidates to JobRecords tagged with their source."""
        stamp = int(fetched_at.timestamp() * 1000)
        records = []
        for candidate in candidates:
            if not candidate.is_complete:
                continue
            records.append(
                JobRecord(
                    id=f"{source.slug}_{len(records)}_{stamp}",
                    title=candidate.title.strip(),
                    company=candidate.company,
                    location=candidate.location,
                    url=candidate.url.strip(),
                    salary=candidate.salary,
                    experience_years=candidate.experience_years,
                    source_name=source.name,
                    source_type=source.source_type,
                    country=source.country,
                    categories=tuple(sorted(source.categories)),
                    posted_date=candidate.posted_date or fetched_at,
                    description=candidate.description,
                )
            )
        return records
