"""
Free-text parsing helpers for scraped job data.

Handles the loose formats job boards use:
- Experience requirements ("3+ years", "2-4 yrs", "5-year")
- Salary snippets ("$18-$22/hr", "£30,000 - £35,000 per annum", "50k yearly")
- Company names embedded in feed titles ("Driver at Acme", "Acme: Driver")
- Relative links and assorted date formats
"""

import html
import re
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from urllib.parse import urljoin

EXPERIENCE_PATTERN = re.compile(
    r"\b(\d{1,2})\s*\+?\s*(?:(?:-|–|to)\s*\d{1,2}\s*\+?\s*)?-?\s*(?:years?|yrs?)\b",
    re.IGNORECASE,
)

_AMOUNT = r"\d[\d,]*(?:\.\d+)?\s*[kK]?"
_PERIOD = r"(?:hr|hour|yr|year|annum|week|wk|month|mo)"

SALARY_PATTERNS = [
    # $18-$22/hr, £30,000 - £35,000 per annum, $50k
    re.compile(
        rf"[$£€]\s?{_AMOUNT}(?:\s*(?:-|–|to)\s*[$£€]?\s?{_AMOUNT})?(?:\s*(?:/|per|an?)\s*{_PERIOD}\b)?",
        re.IGNORECASE,
    ),
    # 25/hr, 25 per hour
    re.compile(r"\b\d{1,3}(?:\.\d{1,2})?\s*(?:/\s*|per\s+|an\s+)(?:hr|hour)\b", re.IGNORECASE),
    # 50k yearly, 50k salary
    re.compile(r"\b\d{1,3}[kK]\s*(?:per\s+year|yearly|annual(?:ly)?|salary|pay)\b", re.IGNORECASE),
]

COMPANY_PATTERNS = [
    # WeWorkRemotely style: "Acme Corp: Senior Driver"
    re.compile(r"^([^:]{2,60}):\s+\S"),
    # "Driver at Acme Corp", "Driver @ Acme"
    re.compile(r"\b(?:at|@)\s+([A-Z][A-Za-z0-9&.' ]+)"),
    re.compile(r"\bwith\s+([A-Z][A-Za-z0-9&.' ]+)"),
]

_TAG = re.compile(r"<[^>]+>")
_SPACE = re.compile(r"\s+")


def clean_text(text: str | None) -> str:
    """Unescape entities, drop tags, collapse whitespace."""
    if not text:
        return ""
    text = _TAG.sub(" ", html.unescape(str(text)))
    return _SPACE.sub(" ", text).strip()


def parse_experience_years(text: str | None) -> int | None:
    """First "<N> years"-style requirement in the text (lower bound of a range)."""
    if not text:
        return None
    match = EXPERIENCE_PATTERN.search(text)
    return int(match.group(1)) if match else None


def parse_salary(text: str | None) -> str | None:
    """First salary-looking snippet in the text, as written."""
    if not text:
        return None
    for pattern in SALARY_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip().rstrip(",.;")
    return None


def extract_company_from_title(title: str | None) -> str:
    """Company name embedded in a posting title, or "" when there is none."""
    if not title:
        return ""
    for pattern in COMPANY_PATTERNS:
        match = pattern.search(title)
        if match:
            company = match.group(1).strip(" .,-")
            if company:
                return company
    return ""


def normalize_url(url: str | None, base_url: str) -> str:
    """Make a link absolute against the source's base URL. Non-web links give ""."""
    if not url:
        return ""
    url = url.strip()
    if url.startswith("#") or url.lower().startswith(("javascript:", "mailto:", "tel:")):
        return ""
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    try:
        return urljoin(base_url if base_url.endswith("/") else base_url + "/", url)
    except ValueError:
        return url


def parse_posted_date(value) -> datetime | None:
    """
    Parse the date formats sources hand out.

    Handles ISO-8601, RFC-822 (RSS pubDate) and epoch seconds/milliseconds.
    Naive results are taken as UTC.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    parsed: datetime | None = None
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
        stamp = float(value)
        if stamp > 1e11:  # milliseconds
            stamp /= 1000
        try:
            parsed = datetime.fromtimestamp(stamp, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError, IndexError):
                return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def mentions_remote(text: str | None) -> bool:
    return bool(text) and "remote" in text.lower()
