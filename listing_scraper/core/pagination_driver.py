"""
Pagination Driver

Replays the captured listings query page by page:
build request -> execute -> extract -> dedupe/emit -> decide continue/stop.

Every failure ends pagination with a stop reason; records already
emitted are never discarded.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Optional

from .errors import PaginationInferenceError, ReplayTransportError
from .dedup_sink import DedupSink
from .listing_extractor import ListingExtractor
from .models import ApiTemplate, ExtractionResult, PaginationOutcome, RequestDescriptor
from .pagination_params import build_request_for_page, derive_page_size

logger = logging.getLogger(__name__)

STOP_CANCELLED = 'cancelled'
STOP_TARGET_REACHED = 'target_reached'
STOP_STALLED = 'stalled'
STOP_SERVER_TOTAL = 'server_total_reached'
STOP_SHORT_PAGE = 'short_page'
STOP_NO_PAGINATION_PARAMETER = 'no_pagination_parameter'
STOP_PAGE_CEILING = 'page_ceiling'
STOP_TRANSPORT_ERROR = 'transport_error'


class PaginationDriver:
    """
    Bounded API-replay pagination for one query

    Owns the per-query pagination state (tracked page size, stall
    counter, page index). The template, dedup sets and executor are
    handed in by the query that owns them.
    """

    def __init__(
        self,
        template: ApiTemplate,
        executor,
        extractor: ListingExtractor,
        dedup: DedupSink,
        results_wanted: int,
        stall_threshold: int = 2,
        page_ceiling_factor: int = 2,
        default_page_size: int = 20,
        auxiliary: Optional[List[Dict[str, Any]]] = None,
        cancel_event=None,
        request_builder: Callable[[ApiTemplate, int, int], RequestDescriptor] = build_request_for_page
    ):
        """
        Args:
            template: Best API template captured on the first page
            executor: Object with ``async execute(RequestDescriptor) -> ReplayResponse``
            extractor: Extraction pipeline used on every replayed response
            dedup: Dedup sink shared with the first page
            results_wanted: Requested number of records for the whole query
            stall_threshold: Consecutive pages without new records before stopping
            page_ceiling_factor: Safety multiplier on the expected page count
            default_page_size: Page size assumed when neither template nor first page tell
            auxiliary: Fragments from the first page added to every reconciliation pass
            cancel_event: Anything with ``is_set()``; checked before every page
            request_builder: Builds the request for a page (raises PaginationInferenceError)
        """
        self.template = template
        self.executor = executor
        self.extractor = extractor
        self.dedup = dedup
        self.results_wanted = max(1, int(results_wanted))
        self.stall_threshold = max(1, int(stall_threshold))
        self.page_ceiling_factor = max(1, int(page_ceiling_factor))
        self.default_page_size = max(1, int(default_page_size))
        self.auxiliary = list(auxiliary or [])
        self.cancel_event = cancel_event
        self.request_builder = request_builder

        self.page_size = self.default_page_size
        self.server_total = 0
        self.page_ceiling = 0
        self.pages_fetched = 0
        self.stalls = 0

    @property
    def label(self) -> str:
        return self.template.operation_name or 'replay'

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _resolve_page_size(self, first_page: ExtractionResult) -> int:
        first_count = first_page.returned_count
        page_size = derive_page_size(
            self.template.variables,
            fallback=first_count or self.default_page_size,
            query_params=self.template.query_params,
        )
        if 0 < first_count < page_size:
            logger.info(f" Server returned {first_count} of {page_size} requested on page 1; tracking page size {first_count}")
            page_size = first_count
        return page_size

    def _finish(self, reason: str) -> PaginationOutcome:
        log = logger.warning if reason in (STOP_TRANSPORT_ERROR, STOP_NO_PAGINATION_PARAMETER) else logger.info
        log(f" Pagination stopped: {reason} after {self.pages_fetched} replayed page(s), {self.dedup.emitted} emitted")
        return PaginationOutcome(
            stop_reason=reason,
            pages_fetched=self.pages_fetched,
            emitted=self.dedup.emitted,
            page_size=self.page_size,
        )

    async def run(self, first_page: ExtractionResult) -> PaginationOutcome:
        """
        Replay pages 2..N until a stop condition holds

        Args:
            first_page: Extraction result already emitted for page 1

        Returns:
            PaginationOutcome with the stop reason
        """
        self.page_size = self._resolve_page_size(first_page)
        if first_page.winner.total_reported:
            self.server_total = first_page.total_count
        self.page_ceiling = max(2, math.ceil(self.results_wanted / self.page_size) * self.page_ceiling_factor + 1)

        logger.info(
            f" Replaying {self.label}: page size {self.page_size}, "
            f"reported total {self.server_total or 'unknown'}, ceiling {self.page_ceiling} pages"
        )

        page = 2
        while True:
            if self._cancelled():
                return self._finish(STOP_CANCELLED)
            if self.dedup.emitted >= self.results_wanted:
                return self._finish(STOP_TARGET_REACHED)
            if self.server_total and (page - 1) * self.page_size >= self.server_total:
                return self._finish(STOP_SERVER_TOTAL)
            if page > self.page_ceiling:
                return self._finish(STOP_PAGE_CEILING)

            try:
                request = self.request_builder(self.template, page, self.page_size)
            except PaginationInferenceError as e:
                logger.warning(f" Cannot build page {page}: {e}")
                return self._finish(STOP_NO_PAGINATION_PARAMETER)

            try:
                response = await self.executor.execute(request)
            except ReplayTransportError as e:
                logger.warning(f" Page {page} request failed: {e}")
                return self._finish(STOP_TRANSPORT_ERROR)

            if not response.ok:
                logger.warning(f" Page {page} returned HTTP {response.status}")
                return self._finish(STOP_TRANSPORT_ERROR)

            try:
                body = response.json()
            except ValueError as e:
                logger.warning(f" Page {page} body is not JSON: {e}")
                return self._finish(STOP_TRANSPORT_ERROR)

            self.pages_fetched += 1
            result = self.extractor.extract_response(body, self.label, auxiliary=self.auxiliary)

            new = 0
            for record in result.records:
                if await self.dedup.try_emit(record):
                    new += 1

            returned = result.returned_count
            if result.winner.total_reported and result.total_count > self.server_total:
                self.server_total = result.total_count

            self.stalls = self.stalls + 1 if new == 0 else 0
            logger.info(f" Page {page}: {returned} returned, {new} new ({self.dedup.emitted}/{self.results_wanted})")

            if self.dedup.emitted >= self.results_wanted:
                return self._finish(STOP_TARGET_REACHED)
            if self.stalls >= self.stall_threshold:
                return self._finish(STOP_STALLED)
            if self.server_total and (page - 1) * self.page_size + returned >= self.server_total:
                return self._finish(STOP_SERVER_TOTAL)
            if returned < self.page_size:
                return self._finish(STOP_SHORT_PAGE)

            if returned > self.page_size:
                logger.info(f" Server returned {returned} records; tracking page size {returned}")
                self.page_size = returned

            page += 1
