"""paginated harvest loop for the stake and unstake streams"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Dict, List, Optional, Sequence

import httpx

from .client import SubgraphHttpClient
from .config import HarvestConfig
from .exporter import OperationCSVExporter
from .operations import normalize_page
from .pagination import (
    Cursor, PageState, advance, fresh_operations, should_query_more)
from .streams import STREAMS, StreamSpec
from .tokens import TokenRegistry

logger = logging.getLogger(__name__)


@dataclass
class StreamResult:
    """outcome of one stream; failures are carried here instead of raised"""
    stream: str
    pages: int = 0
    rows: int = 0
    cursor: Optional[Cursor] = None
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


async def harvest_stream(client: SubgraphHttpClient, stream: StreamSpec,
                         exporter: OperationCSVExporter, registry: TokenRegistry,
                         from_block: int = 0, result: Optional[StreamResult] = None) -> StreamResult:
    """walk one stream from from_block until a short page, appending to the csv

    `result` is updated in place after every page, so a caller that cancels
    the task still sees how far the stream got.
    """
    config = client.config
    result = result or StreamResult(stream=stream.name)
    state = PageState.initial(from_block)
    logger.info(f"{stream.name}: starting at block {from_block}")

    try:
        while True:
            result.cursor = state.cursor
            raws = await client.fetch_page(stream, state.cursor)
            operations = normalize_page(raws, config.chain_id, registry)
            fresh = fresh_operations(state, operations)
            result.rows += exporter.append(fresh)
            result.pages += 1
            logger.debug(
                f"{stream.name}: page {result.pages} had {len(operations)} entities, {len(fresh)} new")
            if not should_query_more(operations, config.page_size):
                break
            state = advance(
                state, operations, config.page_size, config.max_skip, stream.name)
    except Exception as e:
        logger.error(
            f"{stream.name}: stopped at fromBlock={state.cursor.from_block} skip={state.cursor.skip}: {e}")
        logger.debug(f"{stream.name}: failure details", exc_info=True)
        result.error = e
        return result

    logger.info(
        f"{stream.name}: done after {result.pages} pages, {result.rows} rows written")
    return result


async def run_streams(jobs: Dict[str, Awaitable[StreamResult]],
                      progress: Optional[Dict[str, StreamResult]] = None) -> List[StreamResult]:
    """await stream jobs together, cancelling the rest as soon as one fails

    `progress` holds the results the jobs update in place; a cancelled or
    crashed job reports from it instead of an empty result.
    """
    progress = progress or {}

    def _partial(name: str) -> StreamResult:
        return progress.get(name) or StreamResult(stream=name)

    tasks = {asyncio.ensure_future(job): name for name, job in jobs.items()}
    results: Dict[asyncio.Future, StreamResult] = {}
    pending = set(tasks)

    while pending:
        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        failed = False
        for task in done:
            if task.cancelled():
                results[task] = _partial(tasks[task])
                results[task].cancelled = True
            elif task.exception() is not None:
                results[task] = _partial(tasks[task])
                results[task].error = task.exception()
            else:
                results[task] = task.result()
            failed = failed or not results[task].ok

        if failed and pending:
            for task in pending:
                logger.warning(f"{tasks[task]}: cancelled after sibling stream failed")
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                results[task] = _partial(tasks[task])
                results[task].cancelled = True
            pending = set()

    return [results[task] for task in tasks]


async def harvest(config: HarvestConfig, exporter: OperationCSVExporter,
                  registry: TokenRegistry, from_block: int = 0,
                  streams: Sequence[StreamSpec] = STREAMS,
                  http_client: Optional[httpx.AsyncClient] = None) -> List[StreamResult]:
    """create the csv header, then run every stream concurrently"""
    exporter.create()
    async with SubgraphHttpClient(config, client=http_client) as client:
        progress = {stream.name: StreamResult(stream=stream.name) for stream in streams}
        jobs = {
            stream.name: harvest_stream(
                client, stream, exporter, registry, from_block, result=progress[stream.name])
            for stream in streams
        }
        return await run_streams(jobs, progress)


def exit_code(results: Sequence[StreamResult]) -> int:
    return 0 if all(r.ok for r in results) else 1


def resume_block(results: Sequence[StreamResult], from_block: int = 0) -> Optional[int]:
    """lowest block every unfinished stream can be re-run from, None if all finished"""
    blocks = [
        r.cursor.from_block if r.cursor is not None else from_block
        for r in results if not r.ok
    ]
    return min(blocks) if blocks else None
