"""
Listing Scraper
Collects restaurant search listings by replaying the site's own listings API
"""

__version__ = "1.0.0"

from .core.scraper import ListingScraper, scrape_listings
from .core.config import ScraperSettings, SearchQuery

__all__ = ["ListingScraper", "scrape_listings", "ScraperSettings", "SearchQuery"]
