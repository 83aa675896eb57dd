"""async subgraph client with a fixed minimum delay per request"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import backoff
import httpx

from .config import MAX_TRIES, HarvestConfig
from .errors import GraphQLResponseError
from .pagination import Cursor
from .streams import StreamSpec

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)
RETRY_WAIT = 5.0


def _giveup(e: Exception) -> bool:
    """only rate limits, 5xx and transport errors are worth another try"""
    if isinstance(e, httpx.HTTPStatusError):
        return e.response.status_code not in RETRYABLE_STATUS
    return False


def _parse_retry_after_seconds(header_value: Optional[str]) -> float:
    if not header_value:
        return RETRY_WAIT
    try:
        return max(0.0, float(header_value))
    except ValueError:
        return RETRY_WAIT


class SubgraphHttpClient:
    """posts graphql documents to the gateway subgraph url

    Every call to `post` takes at least `config.request_delay` seconds,
    whether it succeeds or fails, to stay under the gateway rate limit.
    """

    def __init__(self, config: HarvestConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.url = config.subgraph_url
        self.headers = {
            "Content-Type": "application/json",
            "Origin": config.origin,
        }
        self.client = client or httpx.AsyncClient(http2=True, timeout=config.timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "SubgraphHttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @backoff.on_exception(
        backoff.expo,
        (httpx.HTTPStatusError, httpx.RequestError),
        max_tries=MAX_TRIES,
        giveup=_giveup,
        jitter=backoff.full_jitter,
    )
    async def _send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(self.url, headers=self.headers, json=payload)
        if response.status_code == 429:
            wait = _parse_retry_after_seconds(response.headers.get("Retry-After"))
            logger.warning(
                f"rate limited (429). waiting {wait:.1f}s before retry...")
            await asyncio.sleep(wait)
        response.raise_for_status()
        return response.json()

    async def _hold(self, started: float) -> None:
        remaining = self.config.request_delay - (time.monotonic() - started)
        if remaining > 0:
            await asyncio.sleep(remaining)

    async def post(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """send one query and return its data, raising on graphql errors"""
        started = time.monotonic()
        try:
            body = await self._send({"query": query, "variables": variables})
        except Exception:
            await self._hold(started)
            raise
        await self._hold(started)

        errors = body.get("errors")
        if errors:
            logger.error(f"graphql errors: {errors}")
            raise GraphQLResponseError(
                errors if isinstance(errors, list) else [errors])
        data = body.get("data")
        if not isinstance(data, dict):
            logger.error(f"response without data: {body}")
            raise GraphQLResponseError([{"message": "response has no data"}])
        return data

    async def fetch_page(self, stream: StreamSpec, cursor: Cursor) -> List[Dict[str, Any]]:
        """fetch the raw entities of one page for a stream"""
        logger.debug(
            f"{stream.name}: requesting fromBlock={cursor.from_block} skip={cursor.skip}")
        data = await self.post(stream.build_query(self.config.page_size), cursor.variables())
        rows = data.get(stream.entity)
        if not isinstance(rows, list):
            raise GraphQLResponseError(
                [{"message": f"response has no {stream.entity} list"}])
        return rows
