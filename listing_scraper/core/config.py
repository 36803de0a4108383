"""
Query input and scraper settings
"""

import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from .errors import ConfigError
from .url_normalizer import DEFAULT_SITE_ORIGIN

DEFAULT_RESULTS_WANTED = 20
DEFAULT_TIME = '19:00'

_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_TIME_PATTERN = re.compile(r'^\d{1,2}:\d{2}$')

# Desktop Firefox user agents
USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:147.0) Gecko/20100101 Firefox/147.0',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 15.7; rv:147.0) Gecko/20100101 Firefox/147.0',
    'Mozilla/5.0 (X11; Linux x86_64; rv:147.0) Gecko/20100101 Firefox/147.0',
]


def _results_wanted(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RESULTS_WANTED
    if number != number or number in (float('inf'), float('-inf')):
        return DEFAULT_RESULTS_WANTED
    return max(1, int(number))


@dataclass
class SearchQuery:
    """What to search for and how many results are wanted"""
    start_url: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    covers: int = 2
    results_wanted: int = DEFAULT_RESULTS_WANTED

    def __post_init__(self):
        if self.date and not _DATE_PATTERN.match(self.date):
            raise ConfigError(f"date must be YYYY-MM-DD, got {self.date!r}")
        if self.time and not _TIME_PATTERN.match(self.time):
            raise ConfigError(f"time must be HH:MM, got {self.time!r}")
        try:
            self.covers = int(self.covers)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"covers must be a number, got {self.covers!r}") from e
        if self.covers < 1:
            raise ConfigError("covers must be at least 1")
        self.results_wanted = _results_wanted(self.results_wanted)

    @classmethod
    def from_actor_input(cls, actor_input: Dict[str, Any]) -> 'SearchQuery':
        return cls(
            start_url=actor_input.get('start_url') or None,
            location=actor_input.get('location') or None,
            date=actor_input.get('date') or None,
            time=actor_input.get('time') or None,
            covers=actor_input.get('covers', 2) or 2,
            results_wanted=actor_input.get('results_wanted', DEFAULT_RESULTS_WANTED),
        )

    def search_url(self, site_origin: str = DEFAULT_SITE_ORIGIN) -> str:
        """Initial search page URL"""
        if self.start_url:
            return self.start_url

        params = {}
        if self.date:
            params['dateTime'] = f"{self.date}T{self.time or DEFAULT_TIME}:00"
        if self.covers:
            params['covers'] = str(self.covers)
        if self.location:
            params['term'] = self.location

        url = f"{site_origin.rstrip('/')}/s"
        return f"{url}?{urlencode(params)}" if params else url


@dataclass
class ScraperSettings:
    """Tunables for the browser, extraction and pagination"""
    site_origin: str = DEFAULT_SITE_ORIGIN
    headless: bool = True
    browser_type: str = 'firefox'
    navigation_timeout_ms: int = 60000
    content_ready_timeout_ms: int = 30000
    settle_ms: int = 2000
    replay_timeout_s: float = 30
    block_resources: bool = True
    dom_fallback: bool = False
    max_scrolls: int = 20
    scroll_pause_ms: int = 1500
    stall_threshold: int = 2
    page_ceiling_factor: int = 2
    default_page_size: int = 20
    max_depth: int = 6
    max_detail_items: int = 600
    proxy: Optional[Dict[str, str]] = None
    user_agent: str = field(default_factory=lambda: random.choice(USER_AGENTS))

    def __post_init__(self):
        if self.browser_type not in ('firefox', 'chromium', 'webkit'):
            raise ConfigError(f"Unsupported browser type: {self.browser_type}")
        if self.stall_threshold < 1:
            raise ConfigError("stall_threshold must be at least 1")
        if self.max_depth < 1:
            raise ConfigError("max_depth must be at least 1")

    @classmethod
    def from_actor_input(cls, actor_input: Dict[str, Any], proxy: Optional[Dict[str, str]] = None) -> 'ScraperSettings':
        settings = cls(proxy=proxy)
        if 'headless' in actor_input:
            settings.headless = bool(actor_input['headless'])
        if 'domFallback' in actor_input:
            settings.dom_fallback = bool(actor_input['domFallback'])
        if 'maxScrolls' in actor_input:
            try:
                settings.max_scrolls = max(0, int(actor_input['maxScrolls']))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"maxScrolls must be a number, got {actor_input['maxScrolls']!r}") from e
        return settings
