"""
Basic Usage Example
Collect one search's listings with Listing Scraper
"""

import asyncio
import logging

from listing_scraper import ScraperSettings, SearchQuery, scrape_listings
from listing_scraper.core.sinks import MemorySink


async def main():
    query = SearchQuery(
        location='Chicago',
        date='2026-11-20',
        time='19:30',
        covers=2,
        results_wanted=40
    )
    sink = MemorySink()

    report = await scrape_listings(query, settings=ScraperSettings(), sink=sink)

    print(f"\n✅ Collected {report['emitted']} listings")
    print(f"📊 Strategy: {report['strategy']} ({report['stop_reason']}, {report['pages']} pages)")

    # Display first few listings
    for i, row in enumerate(sink.rows[:5], 1):
        print(f"\nListing {i}:")
        for field, value in row.items():
            print(f"  {field}: {value}")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    asyncio.run(main())
