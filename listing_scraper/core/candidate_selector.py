"""
Candidate Scorer & Selector

Picks the authoritative result set among all collections found on a page.
Score = completeness + length bonus + source bonus, with deterministic
tie-breaking.
"""

import logging
from typing import List, Optional, Tuple

from .models import CandidateCollection
from .record_classifier import RecordClassifier
from .weights import (
    COMPLETENESS_WEIGHTS,
    DECOY_PATTERN,
    LENGTH_BONUS_SATURATION,
    SEARCH_PATTERN,
    SOURCE_WEIGHTS,
)

logger = logging.getLogger(__name__)


class CandidateSelector:
    """Scores candidate collections and selects the best one"""

    def __init__(self, classifier: Optional[RecordClassifier] = None):
        self.classifier = classifier or RecordClassifier()

    def completeness(self, collection: CandidateCollection) -> float:
        """Weighted field coverage across the collection, roughly 0..10"""
        if not collection.records:
            return 0.0

        c = self.classifier
        points = 0
        for record in collection.records:
            if c.url(record) is not None:
                points += COMPLETENESS_WEIGHTS['url']
            if c.rating(record) is not None:
                points += COMPLETENESS_WEIGHTS['rating']
            if c.review_count(record) is not None:
                points += COMPLETENESS_WEIGHTS['review_count']
            if c.image_url(record) is not None:
                points += COMPLETENESS_WEIGHTS['image']
            if c.name(record) is not None:
                points += COMPLETENESS_WEIGHTS['name']

        return points / len(collection.records)

    @staticmethod
    def length_bonus(collection: CandidateCollection) -> float:
        return min(len(collection.records), LENGTH_BONUS_SATURATION) / LENGTH_BONUS_SATURATION

    @staticmethod
    def source_bonus(collection: CandidateCollection) -> float:
        """Decoy provenance is penalized even if it also looks search-like"""
        tag = collection.source_tag or ''
        if DECOY_PATTERN.search(tag):
            return SOURCE_WEIGHTS['decoy_penalty']
        if SEARCH_PATTERN.search(tag):
            return SOURCE_WEIGHTS['search_bonus']
        return 0.0

    def score(self, collection: CandidateCollection) -> float:
        return self.completeness(collection) + self.length_bonus(collection) + self.source_bonus(collection)

    def _rank_key(self, collection: CandidateCollection) -> Tuple[float, int, int, str]:
        # source tag only breaks full ties so input order never decides
        return (
            self.score(collection),
            len(collection.records),
            collection.total_count,
            collection.source_tag,
        )

    def select_best(self, collections: List[CandidateCollection]) -> CandidateCollection:
        """
        Return the highest-ranked non-empty collection

        An explicit empty collection is returned when nothing qualifies;
        callers treat that as "no data this pass".
        """
        non_empty = [c for c in collections if c.records]
        if not non_empty:
            logger.debug(" No non-empty candidate collections")
            return CandidateCollection(records=[], total_count=0, source_tag='')

        for collection in non_empty:
            logger.debug(
                f"   Candidate {collection.source_tag}: {len(collection.records)} records, "
                f"score={self.score(collection):.2f}"
            )

        best = max(non_empty, key=self._rank_key)
        logger.info(f" Selected {best.source_tag} ({len(best.records)} records, total {best.total_count})")
        return best
