"""
Record Classifier - decides whether an object is a listing

Listings arrive in many shapes (hydration state, client cache entries,
GraphQL responses, scraped DOM cards). Every semantic field is read
through an ordered list of accessor rules; the first rule whose value
survives normalization wins.
"""

import math
import re
from typing import Any, Callable, Dict, List, Optional

from .models import ListingRecord
from .url_normalizer import DEFAULT_SITE_ORIGIN, normalize_image_url, normalize_url

Rule = Callable[[Dict[str, Any]], Any]


def path(*keys) -> Rule:
    """Rule reading a nested value; integer keys index into lists"""
    def read(obj: Dict[str, Any]) -> Any:
        value: Any = obj
        for key in keys:
            if isinstance(key, int):
                if not isinstance(value, list) or len(value) <= key:
                    return None
                value = value[key]
            elif isinstance(value, dict):
                value = value.get(key)
            else:
                return None
            if value is None:
                return None
        return value
    return read


_PROFILE_SLUG = re.compile(r'^(?:https?://[^/]+)?/r/([^/?#]+)', re.IGNORECASE)


def _slug_from_profile_link(obj: Dict[str, Any]) -> Optional[str]:
    link = obj.get('profileLink')
    if not isinstance(link, str):
        return None
    match = _PROFILE_SLUG.match(link.strip())
    if match and not match.group(1).isdigit():
        return match.group(1)
    return None


def normalize_name_key(name: Optional[str]) -> Optional[str]:
    """Loose name key: lower-cased, '&' spelled out, punctuation collapsed"""
    if not name:
        return None
    key = name.lower().replace('&', ' and ')
    key = re.sub(r'[\W_]+', ' ', key).strip()
    return key or None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _text_only(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _identity(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().replace(',', ''))
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value) and value >= 0:
        return float(value)
    return None


def _count(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None:
        return None
    return int(number)


class RecordClassifier:
    """
    Pure, side-effect free listing classifier and field accessor set
    """

    NAME_RULES: List[Rule] = [
        path('name'),
        path('restaurantName'),
        path('title'),
        path('displayName'),
        path('listingName'),
    ]

    IDENTITY_RULES: List[Rule] = [
        path('rid'),
        path('restaurantId'),
        path('restaurantID'),
        path('restaurant_id'),
        path('id'),
        path('listingId'),
        path('venueId'),
        path('businessId'),
        path('legacyId'),
    ]

    SLUG_RULES: List[Rule] = [
        path('slug'),
        path('urlSlug'),
        path('profileSlug'),
        path('seoSlug'),
        path('restaurantSlug'),
        path('urls', 'slug'),
        path('profile', 'slug'),
        _slug_from_profile_link,
    ]

    URL_RULES: List[Rule] = [
        path('profileLink'),
        path('urls', 'profileLink', 'link'),
        path('urls', 'profileLink'),
        path('profileUrl'),
        path('restaurantUrl'),
        path('profile', 'url'),
        path('url'),
        path('link'),
        path('href'),
        path('links', 'profile'),
        path('canonicalUrl'),
        path('webUrl'),
    ]

    RATING_RULES: List[Rule] = [
        path('starRating'),
        path('rating'),
        path('rating', 'value'),
        path('averageRating'),
        path('overallRating'),
        path('statistics', 'reviews', 'ratings', 'overall', 'rating'),
        path('reviews', 'rating'),
        path('ratings', 'overall'),
        path('aggregateRating', 'ratingValue'),
        path('reviewSummary', 'rating'),
    ]

    REVIEW_COUNT_RULES: List[Rule] = [
        path('reviewCount'),
        path('numberOfReviews'),
        path('reviewsCount'),
        path('totalReviews'),
        path('statistics', 'reviews', 'allTimeTextReviewCount'),
        path('statistics', 'reviews', 'totalNumberOfReviews'),
        path('reviewSummary', 'totalReviews'),
        path('reviews', 'count'),
        path('aggregateRating', 'reviewCount'),
        path('ratingCount'),
    ]

    IMAGE_RULES: List[Rule] = [
        path('primaryPhoto', 'uri'),
        path('primaryPhoto', 'url'),
        path('photo', 'uri'),
        path('photo'),
        path('imageUrl'),
        path('image', 'url'),
        path('image'),
        path('mainPhoto', 'url'),
        path('profilePhoto', 'uri'),
        path('thumbnailUrl'),
        path('photos', 0, 'uri'),
        path('photos', 0, 'url'),
        path('photos', 0),
    ]

    CATEGORY_RULES: List[Rule] = [
        path('cuisine', 'name'),
        path('cuisine'),
        path('primaryCuisine', 'name'),
        path('primaryCuisine'),
        path('cuisineType'),
        path('category', 'name'),
        path('category'),
        path('cuisines', 0, 'name'),
        path('categories', 0),
    ]

    PRICE_RULES: List[Rule] = [
        path('priceBand', 'name'),
        path('priceBand'),
        path('priceRange'),
        path('priceTier'),
        path('priceLevel'),
        path('price'),
        path('priceBandId'),
    ]

    NEIGHBORHOOD_RULES: List[Rule] = [
        path('neighborhood', 'name'),
        path('neighborhood'),
        path('location', 'neighborhood'),
        path('neighborhoodName'),
        path('address', 'neighborhood'),
    ]

    CITY_RULES: List[Rule] = [
        path('city', 'name'),
        path('city'),
        path('location', 'city'),
        path('address', 'city'),
    ]

    BOOKING_SLOT_RULES: List[Rule] = [
        path('availabilitySlots'),
        path('timeslots'),
        path('slots'),
        path('availability', 'slots'),
        path('availability', 'timeslots'),
    ]

    # Sub-fields checked when an array element is a wrapper around the listing
    UNWRAP_KEYS = ('node', 'restaurant', 'listing', 'item', 'result')

    def __init__(self, site_origin: str = DEFAULT_SITE_ORIGIN):
        self.site_origin = site_origin

    @staticmethod
    def _first(obj: Any, rules: List[Rule], normalize: Callable[[Any], Any]) -> Any:
        if not isinstance(obj, dict):
            return None
        for rule in rules:
            value = normalize(rule(obj))
            if value is not None:
                return value
        return None

    def name(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.NAME_RULES, _text_only)

    def identity(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.IDENTITY_RULES, _identity)

    def slug(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.SLUG_RULES, _text_only)

    def url(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.URL_RULES, lambda v: normalize_url(v, self.site_origin))

    def image_url(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.IMAGE_RULES, lambda v: normalize_image_url(v, self.site_origin))

    def rating(self, obj: Any) -> Optional[float]:
        return self._first(obj, self.RATING_RULES, _number)

    def review_count(self, obj: Any) -> Optional[int]:
        return self._first(obj, self.REVIEW_COUNT_RULES, _count)

    def category(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.CATEGORY_RULES, _text_only)

    def price_tier(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.PRICE_RULES, _text)

    def neighborhood(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.NEIGHBORHOOD_RULES, _text_only)

    def city(self, obj: Any) -> Optional[str]:
        return self._first(obj, self.CITY_RULES, _text_only)

    def booking_slots(self, obj: Any) -> List[Any]:
        slots = self._first(obj, self.BOOKING_SLOT_RULES, lambda v: v if isinstance(v, list) and v else None)
        return list(slots) if slots else []

    def has_listing_metadata(self, obj: Any) -> bool:
        """True if the object carries at least one listing-specific signal"""
        return (
            self.price_tier(obj) is not None
            or self.rating(obj) is not None
            or self.review_count(obj) is not None
            or self.category(obj) is not None
        )

    def is_listing(self, obj: Any) -> bool:
        """A listing has a name and either a resolvable url or listing metadata"""
        if not isinstance(obj, dict) or self.name(obj) is None:
            return False
        return self.url(obj) is not None or self.has_listing_metadata(obj)

    def is_detail_item(self, obj: Any) -> bool:
        """Lower bar used to gather auxiliary fragments for reconciliation"""
        if not isinstance(obj, dict) or self.name(obj) is None:
            return False
        return (
            self.url(obj) is not None
            or self.rating(obj) is not None
            or self.review_count(obj) is not None
            or self.image_url(obj) is not None
        )

    def unwrap(self, obj: Any, predicate: Optional[Callable[[Any], bool]] = None) -> Optional[Dict[str, Any]]:
        """
        Return the listing an element describes, looking one level into
        wrapper keys such as ``node`` or ``restaurant``.
        """
        predicate = predicate or self.is_listing
        if not isinstance(obj, dict):
            return None
        if predicate(obj):
            return obj
        for key in self.UNWRAP_KEYS:
            inner = obj.get(key)
            if isinstance(inner, dict) and predicate(inner):
                return inner
        return None

    def to_record(self, obj: Dict[str, Any]) -> ListingRecord:
        """Normalize a single fragment into a ListingRecord"""
        return ListingRecord(
            name=self.name(obj),
            identity=self.identity(obj),
            slug=self.slug(obj),
            url=self.url(obj),
            image_url=self.image_url(obj),
            rating=self.rating(obj),
            review_count=self.review_count(obj),
            cuisine=self.category(obj),
            price_tier=self.price_tier(obj),
            neighborhood=self.neighborhood(obj),
            city=self.city(obj),
            booking_slots=self.booking_slots(obj),
        )

