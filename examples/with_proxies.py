"""
Proxy Usage Example
Routing both the browser and the API replay through a proxy
"""

import asyncio

from listing_scraper import ScraperSettings, SearchQuery, scrape_listings
from listing_scraper.core.sinks import MemorySink

# Proxy configuration (example with BrightData)
PROXY_CONFIG = {
    'server': 'http://brd.superproxy.io:22225',
    'username': 'your-username-zone-residential',
    'password': 'your-password'
}


async def main():
    settings = ScraperSettings(
        proxy=PROXY_CONFIG,  # used by the browser and the replay session
        browser_type='firefox'
    )
    sink = MemorySink()

    report = await scrape_listings(SearchQuery(location='New York', results_wanted=20), settings=settings, sink=sink)

    print(f"\n✅ Collected {report['emitted']} listings with proxy")
    for i, row in enumerate(sink.rows[:3], 1):
        print(f"\nListing {i}: {row['name']} - {row['url']}")


if __name__ == '__main__':
    # Note: Replace PROXY_CONFIG with your actual proxy credentials
    print("⚠️  Update PROXY_CONFIG with your proxy credentials before running")
    # asyncio.run(main())
