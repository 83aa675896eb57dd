"""exception types raised while harvesting"""

from __future__ import annotations

from typing import Any, List


class HarvestError(Exception):
    """base class for harvest failures"""


class ConfigurationError(HarvestError):
    """missing or invalid run configuration, raised before any network call"""


class GraphQLResponseError(HarvestError):
    """the subgraph answered with a non-empty errors field"""

    def __init__(self, errors: List[Any]):
        self.errors = errors
        messages = ", ".join(
            str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
        super().__init__(f"Failed to fetch: {messages}")


class PaginationStalledError(HarvestError):
    """skip rollover could not move fromBlock forward"""

    def __init__(self, stream: str, from_block: int):
        self.stream = stream
        self.from_block = from_block
        super().__init__(
            f"{stream}: more entities in block {from_block} than skip pagination can reach")
