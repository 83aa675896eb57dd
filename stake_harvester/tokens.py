"""static token metadata registry keyed by (address, chain id)"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

BUNDLED_TOKEN_LIST = Path(__file__).resolve().parent / "data" / "token_list.json"


@dataclass(frozen=True)
class TokenInfo:
    address: str
    chain_id: int
    decimals: Optional[int]
    symbol: Optional[str]
    name: Optional[str] = None


class TokenRegistry:
    """lookup table built from a token-list document"""

    def __init__(self, tokens: Iterable[TokenInfo] = ()):
        self._tokens: Dict[Tuple[str, int], TokenInfo] = {}
        for token in tokens:
            # first entry wins, like a linear find over the list
            self._tokens.setdefault(
                (token.address.lower(), token.chain_id), token)

    def __len__(self) -> int:
        return len(self._tokens)

    def lookup(self, address: Optional[str], chain_id: int) -> Optional[TokenInfo]:
        """return token metadata for the address on the chain, or None"""
        if not address:
            return None
        return self._tokens.get((address.lower(), chain_id))

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "TokenRegistry":
        entries: List[TokenInfo] = []
        for raw in document.get("tokens", []) or []:
            try:
                entries.append(TokenInfo(
                    address=str(raw["address"]),
                    chain_id=int(raw["chainId"]),
                    decimals=raw.get("decimals"),
                    symbol=raw.get("symbol"),
                    name=raw.get("name"),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed token list entry {raw!r}: {e}")
        return cls(entries)

    @classmethod
    def fetch(cls, url: str, client: Optional[httpx.Client] = None, timeout: float = 30) -> "TokenRegistry":
        """download a published token list once"""
        owns_client = client is None
        client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        try:
            response = client.get(url)
            response.raise_for_status()
            registry = cls.from_document(response.json())
        finally:
            if owns_client:
                client.close()
        logger.info(f"Loaded {len(registry)} tokens from {url}")
        return registry

    @classmethod
    def load(cls, path: Optional[str | Path] = None) -> "TokenRegistry":
        """load a token list from a json file or an http(s) url; defaults to the bundled list"""
        if isinstance(path, str) and path.startswith(("http://", "https://")):
            return cls.fetch(path)
        token_path = Path(path) if path else BUNDLED_TOKEN_LIST
        with open(token_path, "r", encoding="utf-8") as f:
            registry = cls.from_document(json.load(f))
        logger.debug(f"Loaded {len(registry)} tokens from {token_path}")
        return registry
