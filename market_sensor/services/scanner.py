import logging
from typing import Awaitable, Callable, List, Optional

from market_sensor.db.repo import Store
from market_sensor.models.schemas import CompetitorConfig, ScanOutcome, Snapshot, utcnow
from market_sensor.services.analyzer import analyze_drift
from market_sensor.services.fetcher import Fetcher
from market_sensor.services.scraper import scrape_competitor_page

logger = logging.getLogger(__name__)

ScrapeFn = Callable[[Fetcher, str, str], Awaitable[Snapshot]]


class Scanner:
    """Sequential scan driver: scrape, store, diff against baseline.

    A failure for one competitor is logged and recorded in its ScanOutcome;
    the batch carries on with the next competitor.
    """

    def __init__(self, store: Store, scrape: ScrapeFn = scrape_competitor_page,
                 fetcher_factory: Callable[[], Fetcher] = Fetcher):
        self.store = store
        self.scrape = scrape
        self.fetcher_factory = fetcher_factory

    async def _scan(self, fetcher: Fetcher, config: CompetitorConfig) -> ScanOutcome:
        current = await self.scrape(fetcher, config.url, config.name)
        self.store.save_snapshot(current)

        analysis = None
        baseline = self.store.get_baseline_snapshot(config.url)
        if baseline is not None and baseline.id != current.id:
            analysis = analyze_drift(baseline, current)
            self.store.save_drift_analysis(analysis)

        self.store.update_competitor(config.url, last_scanned=utcnow())
        return ScanOutcome(competitor=config.name, success=True, snapshot=current, drift_analysis=analysis)

    async def scan_competitor(self, config: CompetitorConfig, fetcher: Optional[Fetcher] = None) -> ScanOutcome:
        own = fetcher is None
        fetcher = fetcher or self.fetcher_factory()
        try:
            return await self._scan(fetcher, config)
        except Exception as e:
            logger.exception("Error scanning %s", config.name)
            return ScanOutcome(competitor=config.name, success=False, error=str(e))
        finally:
            if own:
                await fetcher.close()

    async def scan_all(self) -> List[ScanOutcome]:
        active = [c for c in self.store.get_competitors() if c.active]
        fetcher = self.fetcher_factory()
        try:
            results = [await self.scan_competitor(c, fetcher) for c in active]
        finally:
            await fetcher.close()
        logger.info("Scanned %d/%d competitors", sum(r.success for r in results), len(active))
        return results
