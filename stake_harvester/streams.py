"""per-stream field mapping and the shared graphql query template"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .config import PAGE_SIZE

STREAM_QUERY_TEMPLATE = """
query {operation} ($fromBlock: BigInt, $skip: Int!) {{
  {entity}(first: {first}, orderBy: blockNumber, orderDirection: asc, skip: $skip, where: {{ blockNumber_gte: $fromBlock }}) {{
    amount
    blockNumber
    blockTimestamp
    {account_field}
    token
    transactionHash
  }}
}}
"""


@dataclass(frozen=True)
class StreamSpec:
    """how one operation stream maps onto the subgraph schema"""
    name: str
    operation: str
    entity: str
    account_field: str

    def build_query(self, first: int = PAGE_SIZE) -> str:
        return STREAM_QUERY_TEMPLATE.format(
            operation=self.operation,
            entity=self.entity,
            account_field=self.account_field,
            first=first,
        )


STAKE = StreamSpec(name="stake", operation="Stake",
                   entity="deposits", account_field="depositor")
UNSTAKE = StreamSpec(name="unstake", operation="Unstake",
                     entity="withdraws", account_field="withdrawer")

STREAMS: Tuple[StreamSpec, ...] = (STAKE, UNSTAKE)
STREAMS_BY_NAME: Dict[str, StreamSpec] = {s.name: s for s in STREAMS}
