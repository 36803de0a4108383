"""
Tree Scanner - finds listing collections inside arbitrary nested data

Two modes:
1. Known-path probing: cheap lookups of the places listings usually live
2. Fallback search: bounded, cycle-safe walk of the whole tree that keeps
   the array with the most listing-shaped elements

A third, lower-bar walk gathers detail fragments used only for
reconciliation.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .models import CandidateCollection
from .record_classifier import RecordClassifier
from .weights import RICHNESS_WEIGHTS

logger = logging.getLogger(__name__)


class TreeScanner:
    """
    Locates candidate listing collections in hydration state, client
    cache graphs and API responses.
    """

    # (items path, total-count paths) in probing order
    KNOWN_PATHS: List[Tuple[str, List[str]]] = [
        ('lolzViewAll.searchResults.restaurants', ['lolzViewAll.searchResults.totalRestaurantCount']),
        ('search.results', ['search.totalResults', 'search.totalRestaurantCount']),
        ('search.restaurants', ['search.totalResults', 'search.totalRestaurantCount']),
        ('search.searchResults.restaurants', ['search.searchResults.totalRestaurantCount']),
        ('data.search.results', ['data.search.totalResults', 'data.search.totalRestaurantCount']),
        ('data.search.restaurants', ['data.search.totalResults', 'data.search.totalRestaurantCount']),
        ('data.search.searchResults.restaurants', ['data.search.searchResults.totalRestaurantCount']),
        ('data.availability.restaurants', ['data.availability.totalRestaurantCount']),
        ('data.restaurantsAvailability', []),
        ('discovery.restaurants', []),
        ('availability.restaurants', []),
        ('props.pageProps.searchResults.restaurants', ['props.pageProps.searchResults.totalRestaurantCount']),
        ('props.pageProps.restaurants', []),
        ('data.restaurants', ['data.totalResults', 'data.totalCount']),
        ('restaurants', ['totalResults', 'totalCount']),
        ('results', ['totalResults', 'totalCount']),
    ]

    # Keys next to a listing array that usually hold the reported total
    SIBLING_TOTAL_KEYS = ('totalRestaurantCount', 'totalResults', 'totalCount', 'total', 'resultCount')

    def __init__(
        self,
        classifier: Optional[RecordClassifier] = None,
        max_depth: int = 6,
        max_items: int = 600
    ):
        self.classifier = classifier or RecordClassifier()
        self.max_depth = max_depth
        self.max_items = max_items

    def scan(
        self,
        root: Any,
        source_tag: str = '',
        known_paths: Optional[List[Tuple[str, List[str]]]] = None
    ) -> List[CandidateCollection]:
        """
        Probe known paths and return one collection per non-empty hit

        Args:
            root: Parsed JSON / hydration namespace
            source_tag: Provenance prefix for the returned collections
            known_paths: Override of the default probing list

        Returns:
            Candidate collections in probing order (possibly empty)
        """
        collections = []
        seen_arrays = set()

        for items_path, total_paths in (known_paths or self.KNOWN_PATHS):
            array = get_path(root, items_path)
            if not isinstance(array, list) or id(array) in seen_arrays:
                continue
            seen_arrays.add(id(array))

            records = self._filter_listings(array, root)
            if not records:
                continue

            reported = self._reported_total(root, items_path, total_paths)
            total = reported or len(records)
            tag = f"{source_tag}:{items_path}" if source_tag else items_path
            collections.append(CandidateCollection(
                records=records, total_count=total, source_tag=tag, total_reported=bool(reported)
            ))
            logger.debug(f" Known path {tag}: {len(records)} listings (total {total})")

        return collections

    def scan_fallback(self, root: Any) -> List[Dict[str, Any]]:
        """Full-tree search; returns the best listing array found (may be empty)"""
        _, records = self._fallback_search(root)
        return records

    def scan_fallback_collection(self, root: Any, source_tag: str = '') -> Optional[CandidateCollection]:
        """Fallback search wrapped as a candidate collection"""
        found_path, records = self._fallback_search(root)
        if not records:
            return None

        parent = get_path(root, found_path.rsplit('.', 1)[0]) if '.' in found_path else root
        reported = self._sibling_total(parent)
        total = reported or len(records)
        tag = f"{source_tag}:fallback:{found_path}" if source_tag else f"fallback:{found_path}"
        logger.debug(f" Fallback scan {tag}: {len(records)} listings")
        return CandidateCollection(
            records=records, total_count=total, source_tag=tag, total_reported=bool(reported)
        )

    def collect_detail_items(self, root: Any, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Gather every object with a name and at least one of url, rating,
        review count or image, anywhere in the tree.
        """
        limit = self.max_items if limit is None else limit
        items: List[Dict[str, Any]] = []
        if limit <= 0:
            return items

        for node, _depth, _path in self._walk(root):
            if isinstance(node, dict) and self.classifier.is_detail_item(node):
                items.append(node)
                if len(items) >= limit:
                    break

        return items

    def _fallback_search(self, root: Any) -> Tuple[str, List[Dict[str, Any]]]:
        best_path = ''
        best_records: List[Dict[str, Any]] = []
        best_key = (0, 0)

        for node, _depth, node_path in self._walk(root):
            if not isinstance(node, list) or not node:
                continue

            records = self._filter_listings(node[:self.max_items], root)
            if not records:
                continue

            key = (len(records), sum(self._richness(r) for r in records))
            if key > best_key:
                best_key = key
                best_path = node_path
                best_records = records

        return best_path, best_records

    def _walk(self, root: Any):
        """Depth-bounded, cycle-safe pre-order traversal yielding (node, depth, path)"""
        visited = set()
        stack = [(root, 0, '')]

        while stack:
            node, depth, node_path = stack.pop()
            if not isinstance(node, (dict, list)) or id(node) in visited:
                continue
            visited.add(id(node))
            yield node, depth, node_path

            if depth >= self.max_depth:
                continue

            if isinstance(node, dict):
                children = [(v, f"{node_path}.{k}" if node_path else str(k)) for k, v in node.items()]
            else:
                children = [(v, f"{node_path}.{i}" if node_path else str(i)) for i, v in enumerate(node)]

            for child, child_path in reversed(children):
                if isinstance(child, (dict, list)):
                    stack.append((child, depth + 1, child_path))

    def _filter_listings(self, array: List[Any], root: Any) -> List[Dict[str, Any]]:
        records = []
        for element in array:
            listing = self.classifier.unwrap(_deref(element, root))
            if listing is not None:
                records.append(listing)
        return records

    def _richness(self, obj: Dict[str, Any]) -> int:
        c = self.classifier
        score = 0
        if c.name(obj) is not None:
            score += RICHNESS_WEIGHTS['name']
        if c.identity(obj) is not None:
            score += RICHNESS_WEIGHTS['identity']
        if c.url(obj) is not None or c.slug(obj) is not None:
            score += RICHNESS_WEIGHTS['url_or_slug']
        if c.price_tier(obj) is not None:
            score += RICHNESS_WEIGHTS['price']
        if c.rating(obj) is not None:
            score += RICHNESS_WEIGHTS['rating']
        if c.category(obj) is not None:
            score += RICHNESS_WEIGHTS['category']
        return score

    def _reported_total(self, root: Any, items_path: str, total_paths: List[str]) -> int:
        for total_path in total_paths:
            total = _as_total(get_path(root, total_path))
            if total:
                return total

        parent = get_path(root, items_path.rsplit('.', 1)[0]) if '.' in items_path else root
        return self._sibling_total(parent)

    def _sibling_total(self, parent: Any) -> int:
        if not isinstance(parent, dict):
            return 0
        for key in self.SIBLING_TOTAL_KEYS:
            total = _as_total(parent.get(key))
            if total:
                return total
        return 0


def get_path(obj: Any, dotted: str) -> Any:
    """Read a dot-separated path; numeric segments index lists"""
    if not dotted:
        return obj

    value = obj
    for key in dotted.split('.'):
        if isinstance(value, dict):
            value = value.get(key)
        elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
            value = value[int(key)]
        else:
            return None
        if value is None:
            return None
    return value


def _as_total(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _deref(element: Any, root: Any) -> Any:
    """Resolve a client-cache reference like {"__ref": "Restaurant:1"}"""
    if isinstance(element, dict) and isinstance(root, dict):
        ref = element.get('__ref')
        if isinstance(ref, str) and len(element) == 1:
            return root.get(ref, element)
    return element
