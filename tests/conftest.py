import sys
from pathlib import Path

import pytest

# Ensure the package is importable when running pytest from a source checkout.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from listing_scraper.core.listing_extractor import ListingExtractor  # noqa: E402
from listing_scraper.core.record_classifier import RecordClassifier  # noqa: E402


@pytest.fixture
def classifier():
    return RecordClassifier()


@pytest.fixture
def extractor():
    return ListingExtractor()


@pytest.fixture
def make_listing():
    """Factory for API-style listing objects with a numeric id and profile link"""
    def build(i, **extra):
        listing = {
            'rid': i,
            'name': f'Restaurant {i}',
            'profileLink': f'/r/restaurant-{i}-chicago',
        }
        listing.update(extra)
        return listing
    return build


@pytest.fixture
def availability_body():
    """Wraps listings the way the availability RPC returns them"""
    def build(listings, total=None):
        block = {'restaurants': listings}
        if total is not None:
            block['totalRestaurantCount'] = total
        return {'data': {'availability': block}}
    return build
