"""skip/fromBlock cursor handling for graph-node offset pagination

graph-node has no cursor pagination and caps `skip` at 5000, so pages are
walked with `skip` inside a `blockNumber_gte: fromBlock` window and the window
is moved to the last seen block once `skip` reaches the ceiling. Moving the
window re-requests part of the block range, which is why each page is
deduplicated against the page before it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from .config import MAX_SKIP, PAGE_SIZE
from .errors import PaginationStalledError
from .operations import Operation, remove_duplicates


@dataclass(frozen=True)
class Cursor:
    from_block: int = 0
    skip: int = 0

    def variables(self) -> dict:
        # BigInt variables are sent as strings
        return {"fromBlock": str(self.from_block), "skip": self.skip}


@dataclass(frozen=True)
class PageState:
    """cursor for the next request plus the raw page used for the duplicate check"""
    cursor: Cursor
    previous: List[Operation] = field(default_factory=list)

    @classmethod
    def initial(cls, from_block: int = 0) -> "PageState":
        return cls(cursor=Cursor(from_block=int(from_block), skip=0), previous=[])


def should_query_more(operations: Sequence[Operation], page_size: int = PAGE_SIZE) -> bool:
    """a full page means there may be more entities after it"""
    return len(operations) == page_size


def next_cursor(cursor: Cursor, operations: Sequence[Operation],
                page_size: int = PAGE_SIZE, max_skip: int = MAX_SKIP,
                stream: str = "") -> Cursor:
    """advance skip, or move fromBlock to the last block once skip hits max_skip"""
    if cursor.skip + page_size <= max_skip:
        return Cursor(from_block=cursor.from_block, skip=cursor.skip + page_size)
    if not operations:
        return Cursor(from_block=cursor.from_block, skip=0)
    last_block = operations[-1].block_number
    if last_block <= cursor.from_block and len(operations) == page_size:
        raise PaginationStalledError(stream, cursor.from_block)
    return Cursor(from_block=last_block, skip=0)


def fresh_operations(state: PageState, operations: Sequence[Operation]) -> List[Operation]:
    """the page without entities already returned by the previous page

    Only the immediately preceding page is checked.
    """
    return remove_duplicates(state.previous, operations)


def advance(state: PageState, operations: Sequence[Operation],
            page_size: int = PAGE_SIZE, max_skip: int = MAX_SKIP,
            stream: str = "") -> PageState:
    """state for the next request

    The unfiltered page is carried forward so the next comparison always
    sees what the server actually returned. Call this after the fresh rows
    of the page are exported; it raises PaginationStalledError when the
    cursor cannot move.
    """
    cursor = next_cursor(state.cursor, operations, page_size, max_skip, stream)
    return PageState(cursor=cursor, previous=list(operations))
