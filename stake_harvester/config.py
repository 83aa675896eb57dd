"""api endpoints, subgraph ids and harvest limits"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

_THIS_DIR = Path(__file__).resolve().parent


def detect_project_root() -> Path:
    """detect project root by walking upward for a requirements marker"""
    for candidate in [_THIS_DIR, *_THIS_DIR.parents]:
        if (candidate / "requirements.txt").exists():
            return candidate
    return _THIS_DIR.parent


PROJECT_ROOT = detect_project_root()

# load .env or env from detected project root
for _env_name in (".env", "env"):
    _env_path = PROJECT_ROOT / _env_name
    if _env_path.exists():
        load_dotenv(dotenv_path=str(_env_path), override=False)
        break

API_URL = os.getenv("SUBGRAPH_API_URL", "https://gateway.thegraph.com/api")
ORIGIN = os.getenv("SUBGRAPH_ORIGIN", "https://app.hemi.xyz")

SUBGRAPH_IDS = {
    "mainnet": "7qiewFZ7UyDpj3gyNaCDUk55NqHLdbjWQLduS5dcYfQ4",
    "testnet": "DNdeC2WA2bYLJx3qAv2VXG2qmW7AsgVT5byGnPjzAnY5",
}

# hemi and hemi sepolia
CHAIN_IDS = {
    "mainnet": 43111,
    "testnet": 743111,
}

# graph-node returns at most 100 entities per query and rejects skip > 5000
PAGE_SIZE = 100
MAX_SKIP = 4900

REQUEST_DELAY_SECONDS = 3.0
REQUEST_TIMEOUT = 60
MAX_TRIES = 3


def resolve_network(chain: Optional[str]) -> str:
    """map the --chain value to a network name; anything but mainnet is testnet"""
    return "mainnet" if (chain or "mainnet") == "mainnet" else "testnet"


@dataclass(frozen=True)
class HarvestConfig:
    """resolved settings for one harvest run"""
    api_key: str
    network: str = "mainnet"
    api_url: str = API_URL
    origin: str = ORIGIN
    page_size: int = PAGE_SIZE
    max_skip: int = MAX_SKIP
    request_delay: float = REQUEST_DELAY_SECONDS
    timeout: float = REQUEST_TIMEOUT

    @property
    def subgraph_id(self) -> str:
        return SUBGRAPH_IDS[self.network]

    @property
    def chain_id(self) -> int:
        return CHAIN_IDS[self.network]

    @property
    def subgraph_url(self) -> str:
        return f"{self.api_url}/{self.api_key}/subgraphs/id/{self.subgraph_id}"


def get_config(api_key: Optional[str], chain: Optional[str] = "mainnet", **overrides) -> HarvestConfig:
    """build a HarvestConfig, failing before any network activity on a bad key"""
    key = api_key if api_key is not None else os.getenv("SUBGRAPH_API_KEY")
    if not key or not isinstance(key, str):
        raise ConfigurationError("Missing subgraph api key")
    return HarvestConfig(api_key=key, network=resolve_network(chain), **overrides)
