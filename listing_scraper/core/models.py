"""
Data model shared by the extraction and pagination engine
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ListingRecord:
    """Normalized listing emitted to the sink"""
    name: Optional[str] = None
    identity: Optional[str] = None
    slug: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    cuisine: Optional[str] = None
    price_tier: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    booking_slots: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Output row in the dataset layout"""
        return {
            'name': self.name,
            'cuisine': self.cuisine,
            'price_range': self.price_tier,
            'rating': self.rating,
            'reviews_count': self.review_count,
            'neighborhood': self.neighborhood,
            'city': self.city,
            'booking_slots': list(self.booking_slots),
            'url': self.url,
            'image_url': self.image_url,
            'restaurant_id': self.identity,
            'slug': self.slug,
        }


@dataclass
class CandidateCollection:
    """One array of raw fragments found in one place"""
    records: List[Dict[str, Any]] = field(default_factory=list)
    total_count: int = 0
    source_tag: str = ''
    total_reported: bool = False

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records


@dataclass
class ApiTemplate:
    """Structural description of an observed API call"""
    base_url: str
    method: str = 'GET'
    query_params: Dict[str, str] = field(default_factory=dict)
    variables: Optional[Dict[str, Any]] = None
    extensions: Optional[Dict[str, Any]] = None
    operation_name: Optional[str] = None
    body: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    # the browser sent a JSON list of operations; replays keep that shape
    batched: bool = False

    @property
    def shape_key(self) -> str:
        """Identifies a distinct call shape (method, endpoint, operation)"""
        return f"{self.method}:{self.base_url}:{self.operation_name or ''}"


@dataclass
class RequestDescriptor:
    """A fully built request, ready for the HTTP collaborator"""
    url: str
    method: str = 'GET'
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    page: int = 1


@dataclass
class ReplayResponse:
    """Status and raw body returned by the HTTP collaborator"""
    status: int
    body: str = ''

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class InterceptedResponse:
    """A JSON response observed while the page was rendering"""
    url: str
    method: str = 'GET'
    request_body: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)
    status: int = 200
    content_type: str = 'application/json'
    body: Any = None


@dataclass
class PageSnapshot:
    """Everything the rendering collaborator knows about the current page"""
    url: str
    html: str = ''
    namespaces: Dict[str, Any] = field(default_factory=dict)
    responses: List[InterceptedResponse] = field(default_factory=list)
    dom_cards: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ExtractionResult:
    """Outcome of one extraction pass"""
    records: List[ListingRecord] = field(default_factory=list)
    winner: CandidateCollection = field(default_factory=CandidateCollection)
    candidates: List[CandidateCollection] = field(default_factory=list)
    fragments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return self.winner.total_count

    @property
    def returned_count(self) -> int:
        return len(self.winner.records)


@dataclass
class PaginationOutcome:
    """Terminal state of one pagination run"""
    stop_reason: str
    pages_fetched: int = 0
    emitted: int = 0
    page_size: int = 0
