"""
SCROW - Esplora API Client

Fee recommendations, funding lookup and broadcast against a
mempool.space-style Esplora API. This sits outside the engine: the engine
only consumes fee tiers and produces transaction hex.
"""

import requests
from typing import Optional, Dict

from ..config import Network, MAINNET
from ..errors import APIError, BroadcastRejected, FundingLookupError
from ..models import TransactionResult


class EsploraAPI:
    """
    Client for Esplora's REST API.

    Example:
        api = EsploraAPI(network=get_network("signet"))
        tiers = api.get_fee_recommendations()
        result = api.broadcast(signed_hex)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        network: Network = MAINNET,
        timeout: int = 30
    ):
        """
        Initialize API client.

        Args:
            base_url: Custom API base URL. Defaults to the network's.
            network: Network the client talks to.
            timeout: Request timeout in seconds.
        """
        self.base_url = (base_url or network.api_base_url).rstrip("/")
        self.network = network
        self.session = requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "EsploraAPI":
        """Create from an EscrowConfig."""
        return cls(base_url=config.api_base_url, network=config.network, timeout=config.timeout)

    def _get(self, endpoint: str):
        """Make GET request to API and decode JSON."""
        url = f"{self.base_url}/{endpoint}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            raise APIError(
                f"API request failed: {e}",
                status_code=e.response.status_code if e.response is not None else None,
                endpoint=endpoint
            )
        except (requests.RequestException, ValueError) as e:
            raise APIError(f"API request failed: {e}", endpoint=endpoint)

    def _post(self, endpoint: str, data: str) -> requests.Response:
        """Make POST request to API; the caller interprets the status."""
        url = f"{self.base_url}/{endpoint}"
        try:
            return self.session.post(
                url,
                headers={"Content-Type": "text/plain"},
                data=data,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise APIError(f"API request failed: {e}", endpoint=endpoint)

    # =========================================================================
    # Fees
    # =========================================================================

    def get_fee_recommendations(self) -> Dict[str, float]:
        """
        Named fee tiers in sat/vbyte.

        Returns:
            e.g. {"fastestFee": 12, "halfHourFee": 8, "hourFee": 6,
                  "economyFee": 3, "minimumFee": 1}
        """
        data = self._get("v1/fees/recommended")
        if not isinstance(data, dict):
            raise APIError("Unexpected fee recommendation payload", endpoint="v1/fees/recommended")
        try:
            return {name: float(rate) for name, rate in data.items()}
        except (TypeError, ValueError):
            raise APIError("Unexpected fee recommendation payload", endpoint="v1/fees/recommended")

    # =========================================================================
    # Address Operations
    # =========================================================================

    def get_balance(self, address: str) -> int:
        """Confirmed balance of an address in satoshis."""
        endpoint = f"address/{address}"
        data = self._get(endpoint)
        stats = data.get("chain_stats") if isinstance(data, dict) else None
        if not isinstance(stats, dict):
            raise APIError("Unexpected address payload", endpoint=endpoint)
        funded, spent = stats.get("funded_txo_sum", 0), stats.get("spent_txo_sum", 0)
        if not isinstance(funded, int) or not isinstance(spent, int):
            raise APIError("Unexpected address payload", endpoint=endpoint)
        return funded - spent

    def get_funding_txid(self, address: str) -> str:
        """
        Txid of the single transaction that funded a fresh escrow address.

        Raises:
            FundingLookupError: The address has zero or several transactions.
            APIError: The response is not a list of transactions.
        """
        endpoint = f"address/{address}/txs"
        txs = self._get(endpoint)
        if not isinstance(txs, list):
            raise APIError("Unexpected transaction list payload", endpoint=endpoint)
        if len(txs) != 1:
            raise FundingLookupError(address, len(txs))
        txid = txs[0].get("txid") if isinstance(txs[0], dict) else None
        if not isinstance(txid, str):
            raise APIError("Transaction entry has no txid", endpoint=endpoint)
        return txid

    # =========================================================================
    # Transaction Operations
    # =========================================================================

    def broadcast(self, tx_hex: str) -> TransactionResult:
        """
        Broadcast a raw transaction.

        Raises:
            BroadcastRejected: The node refused it; the reason is verbatim.
        """
        response = self._post("tx", tx_hex)
        result = response.text.strip()

        if response.ok and len(result) == 64 and all(c in "0123456789abcdef" for c in result):
            return TransactionResult(success=True, txid=result, raw_hex=tx_hex)
        raise BroadcastRejected(result, tx_hex)

    def get_tx_status(self, txid: str) -> dict:
        """Confirmation status: {"confirmed": bool, "block_height": int, ...}."""
        return self._get(f"tx/{txid}/status")
