"""
Tiered job discovery.

Sources are visited cheapest first: feeds and public APIs concurrently (fast
tier), government APIs one by one (medium tier), then HTML scraping with the
full retry policy (slow tier). The run stops early once enough jobs are in
hand and never outlives its deadline; whatever was collected by then is kept.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from jobhunter.config import Settings, settings as default_settings
from jobhunter.discovery.deadline import Deadline
from jobhunter.discovery.errors import FetchError, RunTimeoutError
from jobhunter.discovery.extractor import Extractor
from jobhunter.discovery.fetcher import DEFAULT_ACCEPT, Fetcher
from jobhunter.discovery.filters import filter_records
from jobhunter.discovery.models import (
    ContentKind,
    DiscoveryRun,
    JobRecord,
    RawFetchResult,
    SearchPreferences,
    SourceDefinition,
    Tier,
)
from jobhunter.discovery.samples import synthetic_jobs
from jobhunter.discovery.selector import SelectedSources, SourceSelector
from jobhunter.discovery.sources import SourceRegistry, get_registry

logger = logging.getLogger(__name__)

ACCEPT_HEADERS = {
    ContentKind.HTML: DEFAULT_ACCEPT,
    ContentKind.RSS: "application/rss+xml, application/xml;q=0.9, text/xml;q=0.8, */*;q=0.5",
    ContentKind.JSON: "application/json",
}

# (records, failure reason or None)
SourceOutcome = tuple[list[JobRecord], str | None]


class JobDiscoveryService:
    """Runs one discovery per call: select, fetch by tier, extract, filter."""

    def __init__(
        self,
        settings: Settings | None = None,
        registry: SourceRegistry | None = None,
        selector: SourceSelector | None = None,
        fetcher: Fetcher | None = None,
        extractor: Extractor | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        if registry is None:
            registry = selector.registry if selector is not None else get_registry()
        self.registry = registry
        self.selector = selector or SourceSelector(self.registry, self.settings)
        self.fetcher = fetcher or Fetcher(self.settings, sleep=sleep)
        self.extractor = extractor or Extractor(self.settings)
        self._sleep = sleep

    async def discover(self, preferences: SearchPreferences) -> list[JobRecord]:
        """
        Find jobs matching the preferences.

        Never raises: per-source failures are logged and skipped, a deadline
        keeps partial results, and a pipeline failure yields [] (or sample
        jobs when synthetic fallback is enabled).
        """
        logger.info(
            f"Discovering jobs for '{preferences.title_query}' "
            f"(boards={list(preferences.selected_boards) or ['all']}, "
            f"countries={sorted(preferences.countries)}, categories={sorted(preferences.categories)})"
        )
        run = DiscoveryRun()
        try:
            selected = self.selector.select_sources(preferences)
            await self._collect(selected, preferences, run)
            results = filter_records(run.records, preferences, self.settings.max_results)
        except Exception as e:
            logger.error(f"Job discovery failed: {e}", exc_info=True)
            results = self._fallback(preferences, run)

        logger.info(f"Discovery finished with {len(results)} jobs: {run.summary()}")
        return results

    def discover_sync(self, preferences: SearchPreferences) -> list[JobRecord]:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.discover(preferences))

    async def _collect(self, selected: SelectedSources, preferences: SearchPreferences, run: DiscoveryRun) -> None:
        deadline = Deadline(self.settings.run_timeout)
        tiers = (
            (Tier.FAST, self._run_fast_tier),
            (Tier.MEDIUM, self._run_medium_tier),
            (Tier.SLOW, self._run_slow_tier),
        )
        try:
            async with asyncio.timeout(self.settings.run_timeout):
                for tier, run_tier in tiers:
                    sources = selected.for_tier(tier)
                    if not sources:
                        continue
                    if run.is_full(self.settings.max_results):
                        logger.info(f"Have {run.count} jobs, skipping {tier.value} tier and beyond")
                        break
                    await run_tier(sources, preferences, run, deadline)
                    logger.info(f"{tier.value} tier done: {run.count} jobs so far")
        except (TimeoutError, RunTimeoutError):
            run.timed_out = True
            logger.warning(
                f"Discovery deadline of {self.settings.run_timeout:.0f}s reached, "
                f"keeping {run.count} jobs collected so far"
            )

    async def _run_fast_tier(
        self,
        sources: tuple[SourceDefinition, ...],
        preferences: SearchPreferences,
        run: DiscoveryRun,
        deadline: Deadline,
    ) -> None:
        semaphore = asyncio.Semaphore(self.settings.fast_tier_concurrency)

        async def bounded(source: SourceDefinition) -> tuple[SourceDefinition, SourceOutcome]:
            async with semaphore:
                return source, await self._collect_source(source, preferences, Tier.FAST, deadline)

        tasks = [asyncio.create_task(bounded(source)) for source in sources]
        try:
            # Single consumer: results are merged as each fetch completes
            for next_done in asyncio.as_completed(tasks):
                source, outcome = await next_done
                self._merge(run, source, outcome)
                if run.is_full(self.settings.max_results):
                    logger.info(f"Have {run.count} jobs, cancelling remaining fast sources")
                    break
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_medium_tier(
        self,
        sources: tuple[SourceDefinition, ...],
        preferences: SearchPreferences,
        run: DiscoveryRun,
        deadline: Deadline,
    ) -> None:
        await self._run_sequential(
            sources, preferences, run, deadline, Tier.MEDIUM, self.settings.medium_tier_delay
        )

    async def _run_slow_tier(
        self,
        sources: tuple[SourceDefinition, ...],
        preferences: SearchPreferences,
        run: DiscoveryRun,
        deadline: Deadline,
    ) -> None:
        await self._run_sequential(
            sources, preferences, run, deadline, Tier.SLOW, self.settings.slow_tier_delay
        )

    async def _run_sequential(
        self,
        sources: tuple[SourceDefinition, ...],
        preferences: SearchPreferences,
        run: DiscoveryRun,
        deadline: Deadline,
        tier: Tier,
        delay: float,
    ) -> None:
        for index, source in enumerate(sources):
            if index:
                await self._sleep(deadline.clamp(delay))
                deadline.check()
            outcome = await self._collect_source(source, preferences, tier, deadline)
            self._merge(run, source, outcome)
            if run.is_full(self.settings.max_results):
                logger.info(f"Have {run.count} jobs, stopping {tier.value} tier early")
                break

    def _tier_policy(self, tier: Tier) -> tuple[float, int]:
        """(timeout, attempts) for a tier."""
        s = self.settings
        return {
            Tier.FAST: (s.fast_tier_timeout, s.fast_tier_retries),
            Tier.MEDIUM: (s.medium_tier_timeout, s.medium_tier_retries),
            Tier.SLOW: (s.slow_tier_timeout, s.slow_tier_retries),
        }[tier]

    async def _collect_source(
        self,
        source: SourceDefinition,
        preferences: SearchPreferences,
        tier: Tier,
        deadline: Deadline,
    ) -> SourceOutcome:
        """Fetch and extract one source. Only a passed deadline escapes."""
        url = source.build_url(preferences)
        timeout, retries = self._tier_policy(tier)
        try:
            payload = await self.fetcher.fetch(
                url,
                timeout=timeout,
                retries=retries,
                base_delay=self.settings.delay_for(source.source_type.value),
                accept=ACCEPT_HEADERS[source.content_kind],
                deadline=deadline,
            )
            raw = RawFetchResult(
                source_name=source.name,
                payload=payload,
                content_kind=source.content_kind,
                fetched_at=datetime.now(UTC),
            )
            candidates = self.extractor.extract(raw.payload, raw.content_kind, source, preferences.title_query)
            records = self.extractor.build_records(candidates, source, raw.fetched_at)
        except RunTimeoutError:
            raise
        except FetchError as e:
            logger.warning(f"Source {source.name} failed ({e.kind.value}) for {e.url}: {e.message}")
            return [], e.kind.value
        except Exception as e:
            logger.warning(f"Source {source.name} failed unexpectedly for {url}: {e}")
            return [], str(e) or type(e).__name__

        logger.info(f"{source.name}: {len(records)} jobs")
        return records, None

    @staticmethod
    def _merge(run: DiscoveryRun, source: SourceDefinition, outcome: SourceOutcome) -> None:
        records, failure = outcome
        run.sources_attempted += 1
        if failure is not None:
            run.record_failure(source.name, failure)
            return
        added = run.add(records)
        if added < len(records):
            logger.debug(f"{source.name}: dropped {len(records) - added} duplicates")

    def _fallback(self, preferences: SearchPreferences, run: DiscoveryRun) -> list[JobRecord]:
        if not self.settings.allow_synthetic_fallback:
            return []
        run.used_fallback = True
        logger.warning("Serving synthetic sample jobs (synthetic fallback is enabled)")
        return synthetic_jobs(preferences)

    def available_categories(self) -> list[str]:
        return sorted(self.registry.all_categories())

    def available_countries(self) -> list[str]:
        return sorted(self.registry.all_countries())

    def source_statistics(self) -> dict:
        return self.registry.statistics()
