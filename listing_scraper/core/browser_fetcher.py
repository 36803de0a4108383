"""
Browser Fetcher using Playwright (Async)
Renders search pages, captures JSON API traffic and hydration state
"""

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import ScraperSettings
from .errors import BrowserSessionError, BrowserUnavailableError
from .html_cards import extract_dom_cards
from .models import InterceptedResponse, PageSnapshot

logger = logging.getLogger(__name__)

HYDRATION_NAMESPACES = [
    '__INITIAL_STATE__',
    '__APOLLO_STATE__',
    '__NEXT_DATA__',
    '__PRELOADED_STATE__',
]

BLOCKED_RESOURCE_TYPES = {'image', 'font', 'media'}
BLOCKED_HOSTS = [
    'google-analytics',
    'googletagmanager',
    'facebook',
    'doubleclick',
    'adsense',
    'hotjar',
]

# Each namespace is copied through JSON so only plain data leaves the page
_SNAPSHOT_SCRIPT = """
(names) => {
    const out = {};
    for (const name of names) {
        try {
            const value = window[name];
            if (value !== undefined) out[name] = JSON.parse(JSON.stringify(value));
        } catch (e) {}
    }
    return out;
}
"""


class BrowserFetcher:
    """
    Renders one search page at a time and records everything the
    extractor can use: hydration namespaces, JSON responses and HTML
    """

    def __init__(self, settings: Optional[ScraperSettings] = None):
        """
        Args:
            settings: Browser type, headless flag, proxy, timeouts and user agent
        """
        self.settings = settings or ScraperSettings()
        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None
        self.responses: List[InterceptedResponse] = []
        self.last_status: int = 0
        self._pending: List[asyncio.Task] = []

    async def __aenter__(self):
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {'headless': self.settings.headless}

        proxy_config = self.settings.proxy
        if proxy_config and proxy_config.get('server'):
            proxy_server = proxy_config['server']
            if not proxy_server.startswith('http'):
                proxy_server = f"http://{proxy_server}"
            options['proxy'] = {'server': proxy_server}
            if proxy_config.get('username') and proxy_config.get('password'):
                options['proxy']['username'] = proxy_config['username']
                options['proxy']['password'] = proxy_config['password']
            logger.info(f" Using proxy: {proxy_server}")

        return options

    async def launch(self) -> None:
        """Start Playwright, the browser and a fresh context"""
        browser_type = self.settings.browser_type
        logger.info(f" Launching {browser_type} browser...")

        try:
            self.playwright = await async_playwright().start()
            launcher = getattr(self.playwright, browser_type)
            self.browser = await launcher.launch(**self._launch_options())
            self.context = await self.browser.new_context(
                ignore_https_errors=True,
                viewport={
                    'width': random.choice([1920, 1366, 1536, 1440]),
                    'height': random.choice([1080, 768, 864, 900])
                },
                user_agent=self.settings.user_agent,
                locale='en-US',
            )
            if self.settings.block_resources:
                await self.context.route('**/*', self._route)
            self.page = await self.context.new_page()
        except PlaywrightError as e:
            logger.error(f" Failed to launch browser: {e}")
            await self.close()
            raise BrowserUnavailableError(f"Could not launch {browser_type}: {e}") from e

        self.page.on('response', self._on_response)
        logger.info(" Browser launched successfully")

    async def _route(self, route) -> None:
        request = route.request
        host = urlparse(request.url).netloc.lower()
        if request.resource_type in BLOCKED_RESOURCE_TYPES or any(blocked in host for blocked in BLOCKED_HOSTS):
            await route.abort()
        else:
            await route.continue_()

    def _on_response(self, response) -> None:
        content_type = response.headers.get('content-type', '').lower()
        if 'json' not in content_type:
            return
        self._pending.append(asyncio.ensure_future(self._capture(response, content_type)))

    async def _capture(self, response, content_type: str) -> None:
        request = response.request
        try:
            body = await response.json()
        except (PlaywrightError, ValueError) as e:
            logger.debug(f" Skipping unparsable JSON response {response.url[:100]}: {e}")
            return

        try:
            headers = await request.all_headers()
        except PlaywrightError:
            headers = dict(request.headers)

        self.responses.append(InterceptedResponse(
            url=response.url,
            method=request.method,
            request_body=request.post_data,
            request_headers=headers,
            status=response.status,
            content_type=content_type,
            body=body,
        ))
        logger.debug(f" Captured API response: {request.method} {response.url[:100]}")

    async def _drain(self) -> None:
        """Wait for response captures still in flight"""
        while self._pending:
            pending, self._pending = self._pending, []
            await asyncio.gather(*pending, return_exceptions=True)

    async def open(self, url: str) -> int:
        """
        Navigate and wait for the listing data to settle

        A navigation timeout is not fatal: whatever has rendered so far
        is still snapshotted.

        Returns:
            HTTP status of the main document (0 when unknown)

        Raises:
            BrowserSessionError: navigation failed outright
        """
        if self.page is None:
            await self.launch()

        logger.info(f" Navigating to: {url}")
        try:
            response = await self.page.goto(
                url,
                timeout=self.settings.navigation_timeout_ms,
                wait_until='domcontentloaded'
            )
            self.last_status = response.status if response is not None else 0
            logger.info(f" DOM content loaded (HTTP {self.last_status})")
        except PlaywrightTimeoutError:
            self.last_status = 0
            logger.warning(f" Navigation timeout after {self.settings.navigation_timeout_ms}ms - continuing with partial page")
        except PlaywrightError as e:
            raise BrowserSessionError(f"Navigation to {url} failed: {e}") from e

        try:
            await self.page.wait_for_load_state('networkidle', timeout=self.settings.content_ready_timeout_ms)
            logger.info(" Network idle reached")
        except PlaywrightTimeoutError:
            logger.info(" Network idle timeout - continuing")

        await asyncio.sleep(self.settings.settle_ms / 1000)
        return self.last_status

    async def snapshot(self) -> PageSnapshot:
        """Everything currently visible to the extractor"""
        await self._drain()
        try:
            namespaces = await self.page.evaluate(_SNAPSHOT_SCRIPT, HYDRATION_NAMESPACES)
            html = await self.page.content()
        except PlaywrightError as e:
            raise BrowserSessionError(f"Snapshot failed: {e}") from e

        dom_cards = extract_dom_cards(html, self.settings.site_origin) if self.settings.dom_fallback else []

        logger.info(
            f" Snapshot: {len(html)} bytes, {len(namespaces or {})} state namespaces, "
            f"{len(self.responses)} JSON responses"
        )
        return PageSnapshot(
            url=self.page.url,
            html=html,
            namespaces=namespaces or {},
            responses=list(self.responses),
            dom_cards=dom_cards,
        )

    async def scroll_to_bottom(self) -> None:
        """One smooth scroll, then wait for lazy content"""
        try:
            await self.page.evaluate("window.scrollTo({top: document.body.scrollHeight, behavior: 'smooth'})")
        except PlaywrightError as e:
            raise BrowserSessionError(f"Scroll failed: {e}") from e
        await asyncio.sleep(self.settings.scroll_pause_ms / 1000)
        await self._drain()

    async def cookies(self) -> List[Dict[str, Any]]:
        if self.context is None:
            return []
        try:
            return await self.context.cookies()
        except PlaywrightError as e:
            logger.warning(f" Could not read browser cookies: {e}")
            return []

    async def close(self) -> None:
        """Clean up browser resources"""
        for task in self._pending:
            task.cancel()
        self._pending = []

        if self.browser:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                logger.debug(f" Browser close failed: {e}")
            self.browser = None

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

        self.context = None
        self.page = None
        logger.info(" Browser closed")
