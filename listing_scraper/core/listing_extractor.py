"""
Listing Extractor - one extraction pass over every source seen so far

Sources (hydration namespaces, intercepted responses, replayed responses)
go through known-path probing, then a full-tree fallback when nothing was
found, then DOM cards when configured. The best candidate wins and each
of its records is completed from the reconciliation index.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from .api_template import capture_template
from .candidate_selector import CandidateSelector
from .models import CandidateCollection, ExtractionResult, InterceptedResponse, PageSnapshot
from .reconciliation import ReconciliationIndex
from .record_classifier import RecordClassifier
from .tree_scanner import TreeScanner
from .url_normalizer import DEFAULT_SITE_ORIGIN, canonical_listing_url

logger = logging.getLogger(__name__)

Source = Tuple[str, Any]


def response_label(response: InterceptedResponse) -> str:
    """Short provenance label for an intercepted response"""
    template = capture_template(response.url, response.method, response.request_body)
    if template and template.operation_name:
        return template.operation_name
    return urlparse(response.url).path or response.url


class ListingExtractor:
    """Runs the classifier/scanner/selector/index pipeline over a set of sources"""

    def __init__(
        self,
        site_origin: str = DEFAULT_SITE_ORIGIN,
        max_depth: int = 6,
        max_detail_items: int = 600,
        dom_fallback: bool = False,
        synthesize_urls: bool = True
    ):
        self.site_origin = site_origin
        self.classifier = RecordClassifier(site_origin)
        self.scanner = TreeScanner(self.classifier, max_depth=max_depth, max_items=max_detail_items)
        self.selector = CandidateSelector(self.classifier)
        self.max_detail_items = max_detail_items
        self.dom_fallback = dom_fallback
        self.synthesize_urls = synthesize_urls

    def snapshot_sources(self, snapshot: PageSnapshot) -> List[Source]:
        sources: List[Source] = []
        for namespace, data in snapshot.namespaces.items():
            if data is not None:
                sources.append((f"state:{namespace}", data))
        for response in snapshot.responses:
            if response.body is not None:
                sources.append((f"response:{response_label(response)}", response.body))
        return sources

    def extract_page(self, snapshot: PageSnapshot, auxiliary: Optional[List[Dict[str, Any]]] = None) -> ExtractionResult:
        """Extraction pass over everything the rendered page exposed"""
        dom_cards = snapshot.dom_cards if self.dom_fallback else []
        return self.extract_sources(self.snapshot_sources(snapshot), auxiliary=auxiliary, dom_cards=dom_cards)

    def extract_response(
        self,
        body: Any,
        label: str = 'replay',
        auxiliary: Optional[List[Dict[str, Any]]] = None
    ) -> ExtractionResult:
        """Extraction pass over a single replayed API response"""
        if isinstance(body, list) and body and all(isinstance(part, dict) for part in body):
            # batched response: one result per operation
            sources = [(f"replay:{label}", part) for part in body]
        else:
            sources = [(f"replay:{label}", body)]
        return self.extract_sources(sources, auxiliary=auxiliary)

    def measure(self, data: Any, source_tag: str = '') -> Tuple[int, int]:
        """(listing count of the best collection, detail item count) for one source"""
        candidates = self.scanner.scan(data, source_tag)
        if not candidates:
            fallback = self.scanner.scan_fallback_collection(data, source_tag)
            candidates = [fallback] if fallback else []
        best = self.selector.select_best(candidates) if candidates else CandidateCollection()
        return len(best.records), len(self.scanner.collect_detail_items(data))

    def extract_sources(
        self,
        sources: Iterable[Source],
        auxiliary: Optional[List[Dict[str, Any]]] = None,
        dom_cards: Optional[List[Dict[str, Any]]] = None
    ) -> ExtractionResult:
        sources = list(sources)

        candidates: List[CandidateCollection] = []
        for tag, data in sources:
            candidates.extend(self.scanner.scan(data, tag))

        if not candidates:
            logger.info(" No listings at known paths, scanning full trees...")
            for tag, data in sources:
                collection = self.scanner.scan_fallback_collection(data, tag)
                if collection:
                    candidates.append(collection)

        if not candidates and dom_cards:
            cards = [card for card in dom_cards if self.classifier.is_listing(card)]
            if cards:
                logger.info(f" Falling back to {len(cards)} DOM cards")
                candidates.append(CandidateCollection(records=cards, total_count=len(cards), source_tag='dom'))

        winner = self.selector.select_best(candidates)
        if winner.is_empty:
            logger.warning(" Extraction miss: no listing collection found in this pass")
            return ExtractionResult(records=[], winner=winner, candidates=candidates, fragments=[])

        fragments = self._gather_fragments(sources, winner, auxiliary, dom_cards)
        index = ReconciliationIndex.build(fragments, self.classifier)

        records = []
        for raw in winner.records:
            record = index.reconcile(raw)
            if record.name is None:
                continue
            if record.url is None and self.synthesize_urls and record.identity and record.identity.isdigit():
                record.url = canonical_listing_url(record.identity, self.site_origin)
            records.append(record)

        logger.info(f" Extracted {len(records)} listings from {winner.source_tag} ({len(fragments)} fragments indexed)")
        return ExtractionResult(records=records, winner=winner, candidates=candidates, fragments=fragments)

    def _gather_fragments(
        self,
        sources: List[Source],
        winner: CandidateCollection,
        auxiliary: Optional[List[Dict[str, Any]]],
        dom_cards: Optional[List[Dict[str, Any]]]
    ) -> List[Dict[str, Any]]:
        fragments: List[Dict[str, Any]] = []
        budget = self.max_detail_items
        for _tag, data in sources:
            if budget <= 0:
                break
            items = self.scanner.collect_detail_items(data, limit=budget)
            fragments.extend(items)
            budget -= len(items)

        fragments.extend(dom_cards or [])
        fragments.extend(auxiliary or [])
        fragments.extend(winner.records)
        return fragments
