from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote
import asyncio
import logging

import requests

from perp_liquidity.config import HTTP_RETRY_COUNT, HTTP_RETRY_DELAY_SECONDS
from perp_liquidity.errors import UpstreamError

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Thin JSON transport shared by all venue connectors.

    Requests run through a `requests.Session` on a worker thread so the event
    loop keeps servicing other venues while one is waiting on the network.
    Throttling (429) and server errors (5xx) get `retries` extra attempts after
    a short pause; anything else surfaces as UpstreamError.
    """

    def __init__(self, session: requests.Session = None, timeout: float = 10.0,
                 proxy_prefix: Optional[str] = None, retries: int = HTTP_RETRY_COUNT,
                 retry_delay: float = HTTP_RETRY_DELAY_SECONDS):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.proxy_prefix = proxy_prefix
        self.retries = retries
        self.retry_delay = retry_delay

    def with_proxy(self, url: str) -> str:
        if not self.proxy_prefix:
            return url
        return f"{self.proxy_prefix}{quote(url, safe='')}"

    def build_target(self, method: str, url: str,
                     params: Optional[Dict[str, Any]]) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Final (url, params) pair for a request. Behind a proxy the query string
        must travel inside the encoded target, not on the proxy URL.
        """
        if not self.proxy_prefix:
            return url, params
        target = requests.Request(method, url, params=params).prepare().url
        return self.with_proxy(target), None

    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]],
              json_body: Optional[Dict[str, Any]]) -> requests.Response:
        headers = {"accept": "application/json"}
        if json_body is not None:
            headers["Content-Type"] = "application/json"
        target_url, target_params = self.build_target(method, url, params)
        return self.session.request(
            method,
            target_url,
            params=target_params,
            json=json_body,
            headers=headers,
            timeout=self.timeout
        )

    async def request_json(self, method: str, url: str, params: Dict[str, Any] = None,
                           json_body: Dict[str, Any] = None) -> Any:
        attempts_left = self.retries
        while True:
            try:
                response = await asyncio.to_thread(self._send, method, url, params, json_body)
            except requests.RequestException as e:
                raise UpstreamError(f"Request to {url} failed: {e}", url=url) from e

            if response.ok:
                try:
                    return response.json()
                except ValueError as e:
                    raise UpstreamError(f"Invalid JSON from {url}", status_code=response.status_code, url=url) from e

            can_retry = response.status_code == 429 or response.status_code >= 500
            if can_retry and attempts_left > 0:
                attempts_left -= 1
                logger.debug("HTTP %s from %s, retrying in %.2fs", response.status_code, url, self.retry_delay)
                await asyncio.sleep(self.retry_delay)
                continue

            raise UpstreamError(f"HTTP {response.status_code} from {url}", status_code=response.status_code, url=url)

    async def get_json(self, url: str, params: Dict[str, Any] = None) -> Any:
        return await self.request_json("GET", url, params=params)

    async def post_json(self, url: str, body: Dict[str, Any]) -> Any:
        return await self.request_json("POST", url, json_body=body)

    def close(self) -> None:
        self.session.close()
