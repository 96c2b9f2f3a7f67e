"""
Tolerant RSS item parsing.

Job feeds are frequently not well-formed XML (stray ampersands, HTML in
descriptions), so items are located by pattern instead of an XML parser.
"""

import re

from jobhunter.utils.parser import clean_text

ITEM_PATTERN = re.compile(r"<item\b[^>]*>([\s\S]*?)</item>", re.IGNORECASE)
CDATA_PATTERN = re.compile(r"<!\[CDATA\[([\s\S]*?)\]\]>")

FEED_FIELDS = {
    "title": "title",
    "link": "link",
    "description": "description",
    "pub_date": "pubDate",
}


def _tag_text(block: str, tag: str) -> str:
    match = re.search(rf"<{tag}\b[^>]*>([\s\S]*?)</{tag}>", block, re.IGNORECASE)
    if not match:
        return ""
    return clean_text(CDATA_PATTERN.sub(r"\1", match.group(1)))


def parse_feed(xml: str) -> list[dict[str, str]]:
    """Items of an RSS document as dicts of title/link/description/pub_date."""
    if not xml:
        return []
    items = []
    for match in ITEM_PATTERN.finditer(xml):
        block = match.group(1)
        items.append({key: _tag_text(block, tag) for key, tag in FEED_FIELDS.items()})
    return items
