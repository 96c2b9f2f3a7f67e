"""
Source registry.

The catalog of job sources lives in catalog.json next to this module. Adding a
source is a data change: declare it under a group, point it at a named
template (or inline one) and it is picked up on the next start.
"""

import json
import logging
from collections import Counter
from pathlib import Path

from pydantic import ValidationError

from jobhunter.config import settings
from jobhunter.discovery.errors import CatalogError
from jobhunter.discovery.models import (
    ExtractionTemplate,
    SourceDefinition,
    SourceGroup,
    SourceType,
)

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).resolve().parent / "catalog.json"


class SourceRegistry:
    """Read-only view over the source catalog."""

    def __init__(self, groups: list[SourceGroup], boards: dict[str, list[str]] | None = None):
        self._groups: dict[str, SourceGroup] = {g.key: g for g in groups}
        self._boards = {k.lower(): list(v) for k, v in (boards or {}).items()}

    @classmethod
    def load(cls, path: str | Path | None = None) -> "SourceRegistry":
        """Parse a catalog file (the bundled one by default)."""
        path = Path(path) if path else CATALOG_PATH
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Cannot read source catalog {path}: {e}") from e

        templates = data.get("templates", {})
        groups = [_parse_group(raw, templates) for raw in data.get("groups", [])]
        registry = cls(groups, boards=data.get("boards", {}))

        for token, keys in registry._boards.items():
            unknown = [k for k in keys if k not in registry._groups]
            if unknown:
                raise CatalogError(f"Board '{token}' maps to unknown groups: {unknown}")

        logger.info(f"Loaded {registry.source_count} sources in {len(groups)} groups from {path.name}")
        return registry

    @classmethod
    def from_groups(cls, groups: list[SourceGroup], boards: dict[str, list[str]] | None = None) -> "SourceRegistry":
        """Build a registry from in-memory groups."""
        return cls(groups, boards=boards)

    @property
    def source_count(self) -> int:
        return sum(len(g.sources) for g in self._groups.values())

    def groups(self) -> list[SourceGroup]:
        return list(self._groups.values())

    def group(self, key: str) -> SourceGroup | None:
        return self._groups.get(key)

    def board_groups(self, token: str) -> list[str]:
        """Group keys a job-board token expands to ([] when unknown)."""
        return list(self._boards.get(token.lower(), []))

    def all_sources(self) -> list[SourceDefinition]:
        return [s for g in self._groups.values() for s in g.sources]

    def list_sources(self, source_type: SourceType | str) -> list[SourceDefinition]:
        """All sources of one type; an unknown type gives an empty list."""
        try:
            wanted = SourceType(source_type)
        except ValueError:
            return []
        return [s for s in self.all_sources() if s.source_type == wanted]

    def all_categories(self) -> set[str]:
        return {c for s in self.all_sources() for c in s.categories}

    def all_countries(self) -> set[str]:
        return {s.country for s in self.all_sources()}

    def statistics(self) -> dict:
        """Source counts by country, category, type and tier."""
        sources = self.all_sources()
        by_category: Counter[str] = Counter()
        for s in sources:
            by_category.update(s.categories)
        return {
            "total_sources": len(sources),
            "by_country": dict(Counter(s.country for s in sources)),
            "by_category": dict(by_category),
            "by_type": dict(Counter(s.source_type.value for s in sources)),
            "by_tier": dict(Counter(s.tier.value for s in sources)),
        }


def _resolve_template(raw, templates: dict, company_name: str, where: str) -> ExtractionTemplate | None:
    if raw is None and not company_name:
        return None
    if isinstance(raw, str):
        if raw not in templates:
            raise CatalogError(f"{where}: unknown template '{raw}'")
        fields = dict(templates[raw])
    else:
        fields = dict(raw or {})
    if company_name:
        fields["company_name"] = company_name
    return ExtractionTemplate(**fields)


def _parse_group(raw: dict, templates: dict) -> SourceGroup:
    key = raw.get("key", "?")
    try:
        source_type = SourceType(raw["source_type"])
        sources = []
        for entry in raw.get("sources", []):
            entry = dict(entry)
            where = f"{key}/{entry.get('name', '?')}"
            template = _resolve_template(
                entry.pop("template", None), templates, entry.pop("company_name", ""), where
            )
            entry.setdefault("source_type", source_type)
            sources.append(SourceDefinition(group=key, template=template, **entry))
        return SourceGroup(
            key=key,
            name=raw.get("name", key),
            source_type=source_type,
            requires_country=raw.get("requires_country", ""),
            requires_categories=frozenset(raw.get("requires_categories", [])),
            sources=tuple(sources),
        )
    except (KeyError, ValueError, ValidationError) as e:
        raise CatalogError(f"Invalid catalog group '{key}': {e}") from e


# Loaded lazily so importing the package never touches the filesystem
_registry: SourceRegistry | None = None


def get_registry() -> SourceRegistry:
    """Get or load the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = SourceRegistry.load(settings.catalog_path or None)
    return _registry
