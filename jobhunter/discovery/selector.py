"""
Source selection.

Turns search preferences into the list of sources a run will visit, grouped
by tier. Both caps (sources per group, groups per run) trade recall for
latency.
"""

import logging

from pydantic import BaseModel

from jobhunter.config import Settings, settings as default_settings
from jobhunter.discovery.models import SearchPreferences, SourceDefinition, SourceGroup, Tier
from jobhunter.discovery.sources import SourceRegistry, get_registry

logger = logging.getLogger(__name__)


class SelectedSources(BaseModel):
    """Selector output: chosen group keys plus their sources split by tier."""

    groups: tuple[str, ...] = ()
    fast: tuple[SourceDefinition, ...] = ()
    medium: tuple[SourceDefinition, ...] = ()
    slow: tuple[SourceDefinition, ...] = ()

    def all(self) -> list[SourceDefinition]:
        return [*self.fast, *self.medium, *self.slow]

    def for_tier(self, tier: Tier) -> tuple[SourceDefinition, ...]:
        return {Tier.FAST: self.fast, Tier.MEDIUM: self.medium, Tier.SLOW: self.slow}[tier]

    @property
    def total(self) -> int:
        return len(self.fast) + len(self.medium) + len(self.slow)


class SourceSelector:
    """Decides which catalog sources are in scope for one request."""

    def __init__(self, registry: SourceRegistry | None = None, settings: Settings | None = None):
        self.registry = registry or get_registry()
        self.settings = settings or default_settings

    def countries_for(self, preferences: SearchPreferences) -> frozenset[str]:
        return preferences.countries or frozenset(self.settings.default_countries)

    def categories_for(self, preferences: SearchPreferences) -> frozenset[str]:
        if preferences.remote_only:
            return preferences.categories | {"remote"}
        return preferences.categories

    def resolve_groups(self, preferences: SearchPreferences) -> list[SourceGroup]:
        """Groups in scope, deduplicated, in resolution order (before caps)."""
        keys: list[str] = []

        if preferences.wants_all_boards:
            countries = self.countries_for(preferences)
            categories = self.categories_for(preferences)
            for group in self.registry.groups():
                if group.requires_country and group.requires_country not in countries:
                    continue
                if group.requires_categories and not (group.requires_categories & categories):
                    continue
                keys.append(group.key)
        else:
            for board in preferences.selected_boards:
                mapped = self.registry.board_groups(board)
                if not mapped:
                    logger.debug(f"Unknown job board '{board}', skipping")
                keys.extend(mapped)

        # Ordered dedupe
        unique = list(dict.fromkeys(keys))
        return [g for g in (self.registry.group(k) for k in unique) if g is not None]

    def sources_in_group(self, group: SourceGroup, preferences: SearchPreferences) -> list[SourceDefinition]:
        """Country/category filter plus the per-group cap."""
        countries = self.countries_for(preferences)
        categories = self.categories_for(preferences)
        picked = []
        for source in group.sources:
            if source.country not in countries:
                continue
            if categories and not (source.categories & categories):
                continue
            picked.append(source)
            if len(picked) >= self.settings.max_sources_per_group:
                break
        return picked

    def select_sources(self, preferences: SearchPreferences) -> SelectedSources:
        group_keys: list[str] = []
        chosen: list[SourceDefinition] = []
        seen: set[str] = set()

        for group in self.resolve_groups(preferences):
            if len(group_keys) >= self.settings.max_source_groups:
                break
            sources = [s for s in self.sources_in_group(group, preferences) if s.name not in seen]
            if not sources:
                # Empty groups do not use up a slot
                continue
            group_keys.append(group.key)
            for source in sources:
                seen.add(source.name)
                chosen.append(source)

        selected = SelectedSources(
            groups=tuple(group_keys),
            fast=tuple(s for s in chosen if s.tier == Tier.FAST),
            medium=tuple(s for s in chosen if s.tier == Tier.MEDIUM),
            slow=tuple(s for s in chosen if s.tier == Tier.SLOW),
        )
        logger.info(
            f"Selected {selected.total} sources from groups {list(selected.groups)} "
            f"(fast={len(selected.fast)}, medium={len(selected.medium)}, slow={len(selected.slow)})"
        )
        return selected
