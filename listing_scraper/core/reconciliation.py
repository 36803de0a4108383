"""
Reconciliation Index & Merge

The same restaurant can show up as a terse API record (id + name) in one
place and as a rich state-tree fragment in another. The index keys every
fragment seen in a pass by identity, slug, exact name and normalized name
so a primary record can be completed from its best complement.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

from .models import ListingRecord
from .record_classifier import RecordClassifier, normalize_name_key
from .weights import COMPLEMENT_WEIGHTS

logger = logging.getLogger(__name__)

# Shortest normalized name allowed to take part in substring matching
MIN_SUBSTRING_KEY_LENGTH = 4


class ReconciliationIndex:
    """
    Multi-key lookup over listing fragments

    Each key holds at most ``max_per_key`` fragments in insertion order;
    the oldest is evicted first.
    """

    MAX_PER_KEY = 8

    def __init__(self, classifier: Optional[RecordClassifier] = None, max_per_key: int = MAX_PER_KEY):
        self.classifier = classifier or RecordClassifier()
        self.max_per_key = max_per_key
        self.by_identity: Dict[str, Deque[Dict[str, Any]]] = {}
        self.by_slug: Dict[str, Deque[Dict[str, Any]]] = {}
        self.by_name: Dict[str, Deque[Dict[str, Any]]] = {}
        self.by_name_key: Dict[str, Deque[Dict[str, Any]]] = {}

    @classmethod
    def build(
        cls,
        fragments: Iterable[Dict[str, Any]],
        classifier: Optional[RecordClassifier] = None
    ) -> 'ReconciliationIndex':
        index = cls(classifier)
        count = 0
        for fragment in fragments:
            index.add(fragment)
            count += 1
        logger.debug(f" Reconciliation index built from {count} fragments")
        return index

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.by_name_key.values())

    def add(self, fragment: Dict[str, Any]) -> None:
        c = self.classifier
        name = c.name(fragment)
        self._insert(self.by_identity, c.identity(fragment), fragment)
        self._insert(self.by_slug, c.slug(fragment), fragment)
        self._insert(self.by_name, name, fragment)
        self._insert(self.by_name_key, normalize_name_key(name), fragment)

    def _insert(self, table: Dict[str, Deque[Dict[str, Any]]], key: Optional[str], fragment: Dict[str, Any]) -> None:
        if not key:
            return
        bucket = table.get(key)
        if bucket is None:
            bucket = table[key] = deque(maxlen=self.max_per_key)
        bucket.append(fragment)

    def candidates_for(self, primary: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Fragments that may describe the same listing, in lookup order:
        identity, slug, exact name, normalized name, then substring match
        on normalized names when nothing else matched.
        """
        c = self.classifier
        name = c.name(primary)
        name_key = normalize_name_key(name)

        lookups = [
            (self.by_identity, c.identity(primary)),
            (self.by_slug, c.slug(primary)),
            (self.by_name, name),
            (self.by_name_key, name_key),
        ]

        found: List[Dict[str, Any]] = []
        seen = {id(primary)}
        for table, key in lookups:
            if key:
                self._collect(table.get(key, ()), found, seen)

        if not found and name_key and len(name_key) >= MIN_SUBSTRING_KEY_LENGTH:
            for other_key, bucket in self.by_name_key.items():
                shorter = min(len(other_key), len(name_key))
                if shorter >= MIN_SUBSTRING_KEY_LENGTH and (name_key in other_key or other_key in name_key):
                    self._collect(bucket, found, seen)

        return found

    @staticmethod
    def _collect(bucket: Iterable[Dict[str, Any]], found: List[Dict[str, Any]], seen: set) -> None:
        for fragment in bucket:
            if id(fragment) not in seen:
                seen.add(id(fragment))
                found.append(fragment)

    def complement_score(self, primary: ListingRecord, candidate: Dict[str, Any]) -> int:
        """Points for every field the candidate can fill in on the primary"""
        c = self.classifier
        score = 0
        if primary.url is None and c.url(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['url']
        if primary.image_url is None and c.image_url(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['image']
        if primary.rating is None and c.rating(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['rating']
        if primary.review_count is None and c.review_count(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['review_count']
        if primary.city is None and c.city(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['city']
        if primary.neighborhood is None and c.neighborhood(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['neighborhood']
        if primary.price_tier is None and c.price_tier(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['price']
        if primary.cuisine is None and c.category(candidate) is not None:
            score += COMPLEMENT_WEIGHTS['category']
        return score

    def conflicts(self, primary: ListingRecord, candidate: Dict[str, Any]) -> bool:
        """True when both sides carry an identity or slug and they differ"""
        c = self.classifier
        identity = c.identity(candidate)
        if primary.identity and identity and identity != primary.identity:
            return True
        slug = c.slug(candidate)
        return bool(primary.slug and slug and slug != primary.slug)

    def find_complement(self, primary: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Return the candidate that fills the most gaps, or None if none helps

        Name matches that belong to a different listing (same name, other
        identity or slug, e.g. two branches of a chain) are never used.
        """
        record = self.classifier.to_record(primary)
        best = None
        best_score = 0
        for candidate in self.candidates_for(primary):
            if self.conflicts(record, candidate):
                continue
            score = self.complement_score(record, candidate)
            if score > best_score:
                best, best_score = candidate, score
        return best

    def merge(self, primary: Dict[str, Any], complement: Optional[Dict[str, Any]]) -> ListingRecord:
        """Field-level merge: the primary's values always win"""
        return merge_records(
            self.classifier.to_record(primary),
            self.classifier.to_record(complement) if complement is not None else None,
        )

    def reconcile(self, primary: Dict[str, Any]) -> ListingRecord:
        return self.merge(primary, self.find_complement(primary))


def merge_records(primary: ListingRecord, complement: Optional[ListingRecord]) -> ListingRecord:
    """Fill every empty field of ``primary`` from ``complement``"""
    if complement is None:
        return primary

    def pick(mine, theirs):
        return mine if mine is not None else theirs

    return ListingRecord(
        name=pick(primary.name, complement.name),
        identity=pick(primary.identity, complement.identity),
        slug=pick(primary.slug, complement.slug),
        url=pick(primary.url, complement.url),
        image_url=pick(primary.image_url, complement.image_url),
        rating=pick(primary.rating, complement.rating),
        review_count=pick(primary.review_count, complement.review_count),
        cuisine=pick(primary.cuisine, complement.cuisine),
        price_tier=pick(primary.price_tier, complement.price_tier),
        neighborhood=pick(primary.neighborhood, complement.neighborhood),
        city=pick(primary.city, complement.city),
        booking_slots=list(primary.booking_slots or complement.booking_slots),
    )
