"""
Listing Scraper - main orchestration for one search query

Flow:
1. Render the search page and snapshot it
2. Capture and score API templates from intercepted JSON traffic
3. Extract and emit the first page
4. Continue with API replay when a template was retained, else by scrolling
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .api_template import TemplateSlot, capture_template
from .block_detect import detect_interstitial
from .browser_fetcher import BrowserFetcher
from .config import ScraperSettings, SearchQuery
from .dedup_sink import DedupSink
from .errors import BrowserSessionError
from .listing_extractor import ListingExtractor, response_label
from .models import ExtractionResult, InterceptedResponse, ListingRecord, PageSnapshot
from .pagination_driver import (
    STOP_CANCELLED,
    STOP_SERVER_TOTAL,
    STOP_STALLED,
    STOP_TARGET_REACHED,
    PaginationDriver,
)
from .replay_executor import ReplayExecutor

logger = logging.getLogger(__name__)

STRATEGY_API_REPLAY = 'api_replay'
STRATEGY_SCROLL = 'scroll'
STRATEGY_SINGLE_PAGE = 'single_page'

STOP_NO_CONTINUATION = 'no_continuation'
STOP_BROWSER_ERROR = 'browser_error'


class ListingScraper:
    """
    Scrapes one search query end to end

    All per-query state (template slot, dedup sets, pagination counters)
    lives on the instance, so concurrent queries never share it.
    """

    def __init__(
        self,
        query: SearchQuery,
        settings: Optional[ScraperSettings] = None,
        sink=None,
        cancel_event: Optional[asyncio.Event] = None,
        fetcher_factory: Optional[Callable[[ScraperSettings], Any]] = None,
        executor_factory: Optional[Callable[[List[Dict[str, Any]]], Any]] = None
    ):
        """
        Args:
            query: What to search for and how many results are wanted
            settings: Browser, extraction and pagination tunables
            sink: Object with ``async persist(ListingRecord)``
            cancel_event: Set it to stop between pages or scrolls
            fetcher_factory: Builds the rendering collaborator (defaults to BrowserFetcher)
            executor_factory: Builds the replay collaborator from browser cookies
        """
        self.query = query
        self.settings = settings or ScraperSettings()
        self.cancel_event = cancel_event or asyncio.Event()
        self.fetcher_factory = fetcher_factory or BrowserFetcher
        self.executor_factory = executor_factory or self._default_executor

        self.extractor = ListingExtractor(
            site_origin=self.settings.site_origin,
            max_depth=self.settings.max_depth,
            max_detail_items=self.settings.max_detail_items,
            dom_fallback=self.settings.dom_fallback,
        )
        self.slot = TemplateSlot()
        self.dedup = DedupSink(sink, limit=query.results_wanted)

    def _default_executor(self, cookies: List[Dict[str, Any]]) -> ReplayExecutor:
        return ReplayExecutor(
            user_agent=self.settings.user_agent,
            cookies=cookies,
            proxy_config=self.settings.proxy,
            timeout=self.settings.replay_timeout_s,
        )

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def capture_templates(self, responses: List[InterceptedResponse]) -> None:
        """Score every RPC-style response seen so far; the slot keeps the best"""
        for response in responses:
            if response.status >= 400:
                continue
            template = capture_template(
                response.url,
                response.method,
                response.request_body,
                response.request_headers,
            )
            if template is None:
                continue
            extracted, detail = self.extractor.measure(response.body, f"response:{response_label(response)}")
            self.slot.consider(template, extracted, detail)

    async def emit(self, records: List[ListingRecord]) -> int:
        new = 0
        for record in records:
            if self.dedup.is_full:
                break
            if await self.dedup.try_emit(record):
                new += 1
        return new

    async def run(self) -> Dict[str, Any]:
        """
        Scrape the query

        Returns:
            QueryReport dict: search_url, emitted, strategy, stop_reason,
            pages, reported_total, interstitial
        """
        search_url = self.query.search_url(self.settings.site_origin)
        report: Dict[str, Any] = {
            'search_url': search_url,
            'emitted': 0,
            'strategy': STRATEGY_SINGLE_PAGE,
            'stop_reason': STOP_NO_CONTINUATION,
            'pages': 1,
            'reported_total': None,
            'interstitial': False,
        }

        async with self.fetcher_factory(self.settings) as fetcher:
            status, snapshot = await self._first_snapshot(fetcher, search_url)
            if snapshot is None:
                report['stop_reason'] = STOP_BROWSER_ERROR
            else:
                await self._first_page(fetcher, snapshot, status, report)

        report['emitted'] = self.dedup.emitted
        logger.info(
            f" Query finished: {report['emitted']} listings via {report['strategy']} "
            f"({report['stop_reason']}, {report['pages']} page(s))"
        )
        return report

    async def _first_snapshot(self, fetcher, search_url: str) -> Tuple[int, Optional[PageSnapshot]]:
        """Open the search page; a failed navigation still snapshots whatever loaded"""
        status = 0
        try:
            status = await fetcher.open(search_url)
        except BrowserSessionError as e:
            logger.warning(f" {e} - extracting whatever loaded")
        try:
            return status, await fetcher.snapshot()
        except BrowserSessionError as e:
            logger.warning(f" Extraction miss on the first page: {e}")
            return status, None

    async def _first_page(self, fetcher, snapshot: PageSnapshot, status: int, report: Dict[str, Any]) -> None:
        if detect_interstitial(snapshot.html, status):
            report['interstitial'] = True

        self.capture_templates(snapshot.responses)
        first = self.extractor.extract_page(snapshot)
        await self.emit(first.records)
        logger.info(f" First page: {self.dedup.emitted}/{self.query.results_wanted} listings emitted")

        if first.winner.total_reported:
            report['reported_total'] = first.total_count

        if self.cancelled:
            report['stop_reason'] = STOP_CANCELLED
        elif self.dedup.is_full:
            report['stop_reason'] = STOP_TARGET_REACHED
        elif self.slot.has_template:
            report['strategy'] = STRATEGY_API_REPLAY
            await self._replay(fetcher, first, report)
        elif self.settings.max_scrolls > 0:
            report['strategy'] = STRATEGY_SCROLL
            await self._scroll(fetcher, first, report)

    async def _replay(self, fetcher, first: ExtractionResult, report: Dict[str, Any]) -> None:
        executor = self.executor_factory(await fetcher.cookies())
        driver = PaginationDriver(
            template=self.slot.template,
            executor=executor,
            extractor=self.extractor,
            dedup=self.dedup,
            results_wanted=self.query.results_wanted,
            stall_threshold=self.settings.stall_threshold,
            page_ceiling_factor=self.settings.page_ceiling_factor,
            default_page_size=self.settings.default_page_size,
            auxiliary=first.fragments,
            cancel_event=self.cancel_event,
        )
        try:
            outcome = await driver.run(first)
        finally:
            if hasattr(executor, 'close'):
                executor.close()

        report['stop_reason'] = outcome.stop_reason
        report['pages'] = 1 + outcome.pages_fetched
        if driver.server_total:
            report['reported_total'] = driver.server_total

    async def _scroll(self, fetcher, first: ExtractionResult, report: Dict[str, Any]) -> None:
        """Scroll and re-extract until no scroll in ``max_scrolls`` attempts adds a record"""
        reported_total = report['reported_total']
        idle_scrolls = 0
        scrolls = 0

        while True:
            if self.cancelled:
                reason = STOP_CANCELLED
                break
            if self.dedup.is_full:
                reason = STOP_TARGET_REACHED
                break
            if reported_total and self.dedup.emitted >= reported_total:
                reason = STOP_SERVER_TOTAL
                break
            if idle_scrolls >= self.settings.max_scrolls:
                reason = STOP_STALLED
                break

            try:
                await fetcher.scroll_to_bottom()
                scrolls += 1
                snapshot = await fetcher.snapshot()
            except BrowserSessionError as e:
                logger.warning(f" Browser failed after {scrolls} scroll(s), keeping {self.dedup.emitted} listings: {e}")
                reason = STOP_BROWSER_ERROR
                break
            result = self.extractor.extract_page(snapshot, auxiliary=first.fragments)
            new = await self.emit(result.records)

            if result.winner.total_reported and result.total_count > (reported_total or 0):
                reported_total = result.total_count

            idle_scrolls = 0 if new else idle_scrolls + 1
            logger.info(f" Scroll {scrolls}: {new} new ({self.dedup.emitted}/{self.query.results_wanted})")

        report['stop_reason'] = reason
        report['pages'] = 1 + scrolls
        report['reported_total'] = reported_total


async def scrape_listings(
    query: SearchQuery,
    settings: Optional[ScraperSettings] = None,
    sink=None,
    cancel_event: Optional[asyncio.Event] = None
) -> Dict[str, Any]:
    """
    Convenience function for a single query

    Returns:
        QueryReport dict
    """
    scraper = ListingScraper(query, settings=settings, sink=sink, cancel_event=cancel_event)
    return await scraper.run()
