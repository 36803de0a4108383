"""
Deduplicating Sink Adapter

Guarantees each logical listing reaches the sink at most once per query,
even when different pages expose it under different keys.
"""

import logging
from typing import Optional, Set

from .models import ListingRecord
from .record_classifier import normalize_name_key

logger = logging.getLogger(__name__)


class DedupSink:
    """
    Three-tier dedup in front of a persisting sink

    A record is a duplicate when its identity was seen; without identity,
    when its url was seen; without both, when its normalized name was
    seen. Every key an emitted record resolves is remembered.
    """

    def __init__(self, sink=None, limit: Optional[int] = None):
        """
        Args:
            sink: Object with ``async persist(record)``; None keeps records in memory only
            limit: Stop admitting once this many records were emitted
        """
        self.sink = sink
        self.limit = limit
        self.seen_identities: Set[str] = set()
        self.seen_urls: Set[str] = set()
        self.seen_names: Set[str] = set()
        self.emitted = 0

    @property
    def is_full(self) -> bool:
        return self.limit is not None and self.emitted >= self.limit

    def is_duplicate(self, record: ListingRecord) -> bool:
        if record.identity:
            return record.identity in self.seen_identities
        if record.url:
            return record.url in self.seen_urls
        name_key = normalize_name_key(record.name)
        return name_key is None or name_key in self.seen_names

    def admit(self, record: ListingRecord) -> bool:
        """Decide whether ``record`` is new and remember its keys if so"""
        if not record.name or self.is_full or self.is_duplicate(record):
            return False

        if record.identity:
            self.seen_identities.add(record.identity)
        if record.url:
            self.seen_urls.add(record.url)
        name_key = normalize_name_key(record.name)
        if name_key:
            self.seen_names.add(name_key)

        self.emitted += 1
        return True

    async def try_emit(self, record: ListingRecord) -> bool:
        """Persist ``record`` unless it was already emitted; returns True if persisted"""
        if not self.admit(record):
            return False
        if self.sink is not None:
            await self.sink.persist(record)
        return True
