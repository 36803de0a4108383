"""Core scraping modules"""

from .scraper import ListingScraper, scrape_listings
from .config import ScraperSettings, SearchQuery
from .listing_extractor import ListingExtractor
from .pagination_driver import PaginationDriver
from .dedup_sink import DedupSink
from .models import ListingRecord, PageSnapshot

__all__ = [
    "ListingScraper",
    "scrape_listings",
    "ScraperSettings",
    "SearchQuery",
    "ListingExtractor",
    "PaginationDriver",
    "DedupSink",
    "ListingRecord",
    "PageSnapshot"
]
