"""
Batch Scraping Example
Several searches at once; each query keeps its own template and dedup state
"""

import asyncio
import json
import logging

from listing_scraper import ListingScraper, ScraperSettings, SearchQuery
from listing_scraper.core.sinks import JsonlSink


async def main():
    locations = ['Chicago', 'Boston', 'Seattle']

    scrapers = [
        ListingScraper(
            SearchQuery(location=location, date='2026-11-20', results_wanted=60),
            settings=ScraperSettings(),
            sink=JsonlSink(f"results/{location.lower()}.jsonl")
        )
        for location in locations
    ]

    reports = await asyncio.gather(*(scraper.run() for scraper in scrapers))

    print(f"\n📊 Batch Scraping Results:")
    for location, report in zip(locations, reports):
        print(f"   {location}: {report['emitted']} listings via {report['strategy']} ({report['stop_reason']})")

    with open('results/summary.json', 'w') as f:
        json.dump(dict(zip(locations, reports)), f, indent=2)

    print(f"\n💾 Summary saved to results/summary.json")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    asyncio.run(main())
