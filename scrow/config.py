"""
SCROW - Configuration Management

Network registry and engine configuration.
Configuration never carries private keys; those are supplied per call.
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from embit.networks import NETWORKS as EMBIT_NETWORKS

from .constants import (
    MAINNET_API_URL, TESTNET4_API_URL, SIGNET_API_URL, MUTINYNET_API_URL,
    MAINNET_EXPLORER_URL, TESTNET4_EXPLORER_URL, SIGNET_EXPLORER_URL,
    MUTINYNET_EXPLORER_URL,
)
from .errors import InvalidConfigError


class FeePriority(Enum):
    """Fee tiers as named by the fee-recommendation endpoint."""
    FASTEST = "fastestFee"      # Next block
    HALF_HOUR = "halfHourFee"   # ~3 blocks
    HOUR = "hourFee"            # ~6 blocks
    ECONOMY = "economyFee"
    MINIMUM = "minimumFee"


def get_fee_priority(value: Union[str, FeePriority]) -> FeePriority:
    """
    Resolve a fee tier by its endpoint name ("hourFee") or enum name ("hour").

    Raises:
        InvalidConfigError: If the tier is unknown.
    """
    if isinstance(value, FeePriority):
        return value
    text = str(value).strip()
    for priority in FeePriority:
        if text == priority.value or text.upper() == priority.name:
            return priority
    raise InvalidConfigError(
        f"Unknown fee priority: {value}",
        {"supported": [p.value for p in FeePriority]}
    )


@dataclass(frozen=True)
class Network:
    """
    A Bitcoin network the engine can target.

    block_interval_seconds is only used for timelock conversion; params_key
    selects the address/WIF prefixes from embit's network table.
    """
    name: str
    block_interval_seconds: int
    params_key: str
    api_base_url: str
    explorer_url: str

    @property
    def params(self) -> dict:
        """embit network parameters (bech32 hrp, base58 versions, WIF prefix)."""
        return EMBIT_NETWORKS[self.params_key]

    @property
    def bech32_hrp(self) -> str:
        return self.params["bech32"]

    def __str__(self) -> str:
        return self.name


MAINNET = Network("Mainnet", 600, "main", MAINNET_API_URL, MAINNET_EXPLORER_URL)
TESTNET4 = Network("Testnet4", 600, "test", TESTNET4_API_URL, TESTNET4_EXPLORER_URL)
SIGNET = Network("Signet", 600, "test", SIGNET_API_URL, SIGNET_EXPLORER_URL)
MUTINYNET = Network("Mutinynet", 30, "test", MUTINYNET_API_URL, MUTINYNET_EXPLORER_URL)

NETWORKS = {
    "mainnet": MAINNET,
    "bitcoin": MAINNET,
    "testnet": TESTNET4,
    "testnet4": TESTNET4,
    "signet": SIGNET,
    "mutinynet": MUTINYNET,
}


def get_network(value: Union[str, Network]) -> Network:
    """
    Resolve a network by name (case-insensitive) or pass one through.

    Raises:
        InvalidConfigError: If the name is unknown.
    """
    if isinstance(value, Network):
        return value
    network = NETWORKS.get(str(value).strip().lower())
    if network is None:
        raise InvalidConfigError(
            f"Unknown network: {value}",
            {"supported": sorted(NETWORKS)}
        )
    return network


@dataclass
class EscrowConfig:
    """
    Engine configuration (PUBLIC).

    Safe to commit to version control or share: it contains no key material.
    """
    network: Network = MAINNET
    api_base_url: Optional[str] = None
    timeout: int = 30
    fee_priority: FeePriority = FeePriority.HALF_HOUR

    def __post_init__(self):
        self.network = get_network(self.network)
        self.fee_priority = get_fee_priority(self.fee_priority)
        if not self.api_base_url:
            self.api_base_url = self.network.api_base_url
        if self.timeout <= 0:
            raise InvalidConfigError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_dict(cls, data: dict) -> "EscrowConfig":
        """
        Build configuration from a dictionary.

        Example:
            {"network": "signet", "timeout": 10, "fee_priority": "hourFee"}
        """
        if "network" not in data:
            raise InvalidConfigError("Missing required key: network")
        try:
            timeout = int(data.get("timeout", 30))
        except (TypeError, ValueError):
            raise InvalidConfigError(f"Invalid timeout: {data.get('timeout')}")
        return cls(
            network=get_network(data["network"]),
            api_base_url=data.get("api_base_url"),
            timeout=timeout,
            fee_priority=data.get("fee_priority", FeePriority.HALF_HOUR),
        )

    @classmethod
    def from_file(cls, path: str) -> "EscrowConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(config_path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidConfigError(f"Invalid JSON in {path}: {e}")

        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "EscrowConfig":
        """Load configuration from SCROW_* environment variables."""
        data = {"network": os.environ.get("SCROW_NETWORK", "mainnet")}
        if os.environ.get("SCROW_API_URL"):
            data["api_base_url"] = os.environ["SCROW_API_URL"]
        if os.environ.get("SCROW_TIMEOUT"):
            data["timeout"] = os.environ["SCROW_TIMEOUT"]
        if os.environ.get("SCROW_FEE_PRIORITY"):
            data["fee_priority"] = os.environ["SCROW_FEE_PRIORITY"]
        return cls.from_dict(data)
