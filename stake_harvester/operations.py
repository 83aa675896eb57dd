"""canonical stake operation records, normalization and page deduplication"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from eth_utils import keccak, remove_0x_prefix, to_checksum_address

from .tokens import TokenRegistry

DEPOSIT = "deposit"
WITHDRAWAL = "withdrawal"

# csv column order
CSV_COLUMNS = [
    "account",
    "amount",
    "blockNumber",
    "blockTimestamp",
    "tokenAddress",
    "tokenDecimals",
    "tokenSymbol",
    "transactionHash",
    "type",
]


@dataclass(frozen=True)
class Operation:
    """a normalized deposit or withdrawal"""
    account: str
    amount: int
    block_number: int
    block_timestamp: str
    token_address: str
    transaction_hash: str
    type: str
    token_decimals: Optional[int] = None
    token_symbol: Optional[str] = None

    def to_csv_row(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "amount": self.amount,
            "blockNumber": self.block_number,
            "blockTimestamp": self.block_timestamp,
            "tokenAddress": self.token_address,
            "tokenDecimals": self.token_decimals,
            "tokenSymbol": self.token_symbol,
            "transactionHash": self.transaction_hash,
            "type": self.type,
        }


def to_checksum_hex(value: str) -> str:
    """mixed-case checksum of any hex string, e.g. a transaction hash

    Casing follows EIP-55 over the first 40 hex digits, so for a 20 byte
    address the result equals to_checksum_address.
    """
    body = remove_0x_prefix(value).lower()
    digest = keccak(text=body).hex()
    chars = [
        c.upper() if i < 40 and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(body)
    ]
    return "0x" + "".join(chars)


def to_iso_timestamp(unix_seconds: Any) -> str:
    """unix seconds to ISO-8601 UTC with millisecond precision"""
    dt = datetime.fromtimestamp(int(unix_seconds), tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_operation(raw: Dict[str, Any], chain_id: int, registry: TokenRegistry) -> Operation:
    """map a raw subgraph deposit or withdraw entity to an Operation"""
    depositor = raw.get("depositor")
    withdrawer = raw.get("withdrawer")
    account = depositor or withdrawer
    if not account:
        raise ValueError(
            f"entity {raw.get('transactionHash')} has neither depositor nor withdrawer")

    token_address = to_checksum_address(raw["token"])
    token = registry.lookup(token_address, chain_id)

    return Operation(
        account=to_checksum_address(account),
        amount=int(raw["amount"]),
        block_number=int(raw["blockNumber"]),
        block_timestamp=to_iso_timestamp(raw["blockTimestamp"]),
        token_address=token_address,
        transaction_hash=to_checksum_hex(raw["transactionHash"]),
        type=DEPOSIT if depositor else WITHDRAWAL,
        token_decimals=token.decimals if token else None,
        token_symbol=token.symbol if token else None,
    )


def normalize_page(raws: Iterable[Dict[str, Any]], chain_id: int, registry: TokenRegistry) -> List[Operation]:
    return [normalize_operation(raw, chain_id, registry) for raw in raws]


def remove_duplicates(previous: Sequence[Operation], operations: Sequence[Operation]) -> List[Operation]:
    """drop operations whose transaction hash already appears in previous"""
    seen = {op.transaction_hash for op in previous}
    return [op for op in operations if op.transaction_hash not in seen]
