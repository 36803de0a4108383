"""
Command Line Interface for Listing Scraper
"""

import argparse
import asyncio
import json
import logging
import sys

from .core.config import ScraperSettings, SearchQuery
from .core.errors import BrowserUnavailableError, ConfigError
from .core.scraper import ListingScraper
from .core.sinks import JsonlSink, MemorySink


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Listing Scraper - restaurant search results via captured API replay'
    )

    # Query
    parser.add_argument('--start-url', type=str, help='Search page URL (overrides the other query flags)')
    parser.add_argument('--location', type=str, help='Search term, e.g. a city or neighborhood')
    parser.add_argument('--date', type=str, help='Reservation date (YYYY-MM-DD)')
    parser.add_argument('--time', type=str, help='Reservation time (HH:MM, default 19:00)')
    parser.add_argument('--covers', type=int, default=2, help='Party size (default: 2)')
    parser.add_argument(
        '--results-wanted',
        type=int,
        default=20,
        help='Number of listings to collect (default: 20)'
    )

    # Browser
    parser.add_argument(
        '--browser',
        type=str,
        choices=['firefox', 'chromium', 'webkit'],
        default='firefox',
        help='Browser engine (default: firefox)'
    )
    parser.add_argument('--headful', action='store_true', help='Show the browser window')
    parser.add_argument('--dom-fallback', action='store_true', help='Scrape listing cards from HTML when no JSON is found')
    parser.add_argument(
        '--max-scrolls',
        type=int,
        default=20,
        help='Scrolls without new listings before giving up (default: 20)'
    )

    # Proxy
    parser.add_argument('--proxy-server', type=str, help='Proxy server URL')
    parser.add_argument('--proxy-username', type=str, help='Proxy username')
    parser.add_argument('--proxy-password', type=str, help='Proxy password')

    # Output
    parser.add_argument('--output', type=str, help='JSON lines output file (prints JSON to stdout otherwise)')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')
    return parser


def write_rows(sink) -> None:
    """Print collected rows, or point at the JSON lines file"""
    if isinstance(sink, MemorySink):
        print(json.dumps(sink.rows, indent=2, ensure_ascii=False))
    else:
        print(f"💾 Saved to {sink.output_path} (JSON lines)", file=sys.stderr)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if not args.start_url and not args.location:
        parser.error('Either --start-url or --location is required')

    proxy_config = None
    if args.proxy_server:
        proxy_config = {
            'server': args.proxy_server,
            'username': args.proxy_username or '',
            'password': args.proxy_password or ''
        }

    try:
        query = SearchQuery(
            start_url=args.start_url,
            location=args.location,
            date=args.date,
            time=args.time,
            covers=args.covers,
            results_wanted=args.results_wanted,
        )
        settings = ScraperSettings(
            headless=not args.headful,
            browser_type=args.browser,
            dom_fallback=args.dom_fallback,
            max_scrolls=max(0, args.max_scrolls),
            proxy=proxy_config,
        )
    except ConfigError as e:
        parser.error(str(e))

    sink = JsonlSink(args.output) if args.output else MemorySink()
    scraper = ListingScraper(query, settings=settings, sink=sink)

    try:
        report = asyncio.run(scraper.run())
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user", file=sys.stderr)
        write_rows(sink)
        sys.exit(1)
    except BrowserUnavailableError as e:
        print(f"\n❌ Browser unavailable: {e}")
        sys.exit(1)

    write_rows(sink)

    print(f"\n✅ Scraping complete!", file=sys.stderr)
    print(f"   Listings: {report['emitted']}", file=sys.stderr)
    print(f"   Strategy: {report['strategy']} ({report['stop_reason']})", file=sys.stderr)
    return report


if __name__ == '__main__':
    main()
