"""
Replay Executor - runs synthesized API requests over HTTP

No retries and no caching: a failure simply ends pagination.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from .errors import ReplayTransportError
from .models import ReplayResponse, RequestDescriptor

logger = logging.getLogger(__name__)


class ReplayExecutor:
    """Executes RequestDescriptors with a requests.Session that carries the browser's cookies"""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        cookies: Optional[List[Dict[str, Any]]] = None,
        proxy_config: Optional[Dict[str, str]] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Args:
            user_agent: User agent the browser used
            cookies: Playwright-style cookie dicts (name, value, domain, path)
            proxy_config: Dict with 'server', 'username', 'password' keys
            timeout: Per-request timeout in seconds
            session: Pre-built session (mainly for tests)
        """
        self.timeout = timeout
        self.session = session or requests.Session()

        if user_agent:
            self.session.headers['User-Agent'] = user_agent
        self.session.headers.setdefault('Accept', 'application/json')

        for cookie in cookies or []:
            self.session.cookies.set(
                cookie['name'],
                cookie['value'],
                domain=cookie.get('domain'),
                path=cookie.get('path', '/'),
            )

        if proxy_config and proxy_config.get('server'):
            self.session.proxies.update(self._proxy_urls(proxy_config))

    @staticmethod
    def _proxy_urls(proxy_config: Dict[str, str]) -> Dict[str, str]:
        server = proxy_config['server']
        if '://' not in server:
            server = f"http://{server}"
        scheme, rest = server.split('://', 1)
        if proxy_config.get('username') and proxy_config.get('password'):
            server = f"{scheme}://{proxy_config['username']}:{proxy_config['password']}@{rest}"
        return {'http': server, 'https': server}

    def execute_sync(self, request: RequestDescriptor) -> ReplayResponse:
        logger.debug(f" Replaying page {request.page}: {request.method} {request.url[:120]}")
        try:
            response = self.session.request(
                request.method,
                request.url,
                headers=request.headers,
                json=request.body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ReplayTransportError(f"{request.method} {request.url} failed: {e}") from e

        return ReplayResponse(status=response.status_code, body=response.text)

    async def execute(self, request: RequestDescriptor) -> ReplayResponse:
        """Run the blocking request in the event loop's default executor"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.execute_sync, request)

    def close(self) -> None:
        self.session.close()
