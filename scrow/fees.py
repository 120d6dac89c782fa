"""
SCROW - Fee Estimation

Sizes an escrow spend from its witness layout and prices it with the
named fee tiers of a mempool.space-style API.
"""

import math
from typing import Optional, Sequence
from dataclasses import dataclass

from embit.script import address_to_scriptpubkey

from .config import FeePriority
from .constants import MAX_SIGNATURE_SIZE, MIN_RELAY_FEE_RATE
from .infra.api import EsploraAPI
from .models import LockingScript, SpendingPath


@dataclass
class FeeEstimate:
    """Fee estimation result."""
    sat_per_vbyte: float
    vbytes: int
    total_sats: int
    priority: FeePriority

    @property
    def total_btc(self) -> float:
        return self.total_sats / 100_000_000


# P2WPKH/P2TR output script size upper bound
DEFAULT_OUTPUT_SCRIPT_SIZE = 34


def _varint_size(n: int) -> int:
    if n < 0xFD:
        return 1
    if n <= 0xFFFF:
        return 3
    return 5


def estimate_spend_vsize(
    script: LockingScript,
    path: SpendingPath,
    output_script_sizes: Sequence[int] = (DEFAULT_OUTPUT_SCRIPT_SIZE, DEFAULT_OUTPUT_SCRIPT_SIZE)
) -> int:
    """
    Virtual size of a single-input escrow spend.

    Signatures are counted at their maximum size so the fee never falls
    short of the rate.
    """
    # version + input count + outpoint + empty scriptSig + sequence + output count + locktime
    base = 4 + 1 + 36 + 1 + 4 + _varint_size(len(output_script_sizes)) + 4
    base += sum(8 + _varint_size(size) + size for size in output_script_sizes)

    items = [b"", b"\x00" * MAX_SIGNATURE_SIZE, b"\x00" * MAX_SIGNATURE_SIZE]
    if path is SpendingPath.DISPUTE_COLLABORATIVE:
        items.append(b"\x01")
    elif path is SpendingPath.DISPUTE_ARBITRATED:
        items.append(b"")
    items.append(script.raw)
    # segwit marker + flag, then the witness stack
    witness = 2 + _varint_size(len(items)) + sum(_varint_size(len(i)) + len(i) for i in items)

    return math.ceil((base * 4 + witness) / 4)


class FeeEstimator:
    """
    Estimates resolution transaction fees.

    With an EsploraAPI the live fee tiers are used; otherwise static
    defaults that are reasonable for a quiet mempool.
    """

    DEFAULT_RATES = {
        FeePriority.FASTEST: 10.0,
        FeePriority.HALF_HOUR: 5.0,
        FeePriority.HOUR: 3.0,
        FeePriority.ECONOMY: 2.0,
        FeePriority.MINIMUM: 1.0,
    }

    def __init__(
        self,
        api: Optional[EsploraAPI] = None,
        priority: FeePriority = FeePriority.HALF_HOUR
    ):
        """
        Args:
            api: Optional EsploraAPI for live fee tiers.
            priority: Tier used when a call does not name one.
        """
        self.api = api
        self.priority = priority

    @classmethod
    def from_config(cls, config, online: bool = True) -> "FeeEstimator":
        """Create from an EscrowConfig; offline estimators use the static rates."""
        api = EsploraAPI.from_config(config) if online else None
        return cls(api=api, priority=config.fee_priority)

    def get_rate(self, priority: Optional[FeePriority] = None) -> float:
        """sat/vbyte for a tier, never below the minimum relay rate."""
        priority = priority or self.priority
        rate = self.DEFAULT_RATES[priority]
        if self.api is not None:
            rate = self.api.get_fee_recommendations().get(priority.value, rate)
        return max(float(rate), MIN_RELAY_FEE_RATE)

    def estimate(
        self,
        script: LockingScript,
        path: SpendingPath,
        priority: Optional[FeePriority] = None,
        outputs: Optional[Sequence[str]] = None
    ) -> FeeEstimate:
        """
        Estimate the fee of spending an escrow output.

        Args:
            script: Locking script being spent.
            path: Spending path (decides the witness layout).
            priority: Fee tier; the estimator's own if None.
            outputs: Destination addresses; two P2TR-sized outputs if None.
        """
        if outputs is None:
            sizes = [DEFAULT_OUTPUT_SCRIPT_SIZE, DEFAULT_OUTPUT_SCRIPT_SIZE]
        else:
            sizes = [len(address_to_scriptpubkey(a).data) for a in outputs]
        vbytes = estimate_spend_vsize(script, path, sizes)
        priority = priority or self.priority
        rate = self.get_rate(priority)

        return FeeEstimate(
            sat_per_vbyte=rate,
            vbytes=vbytes,
            total_sats=math.ceil(vbytes * rate),
            priority=priority,
        )

    def estimate_for_size(
        self,
        vbytes: int,
        priority: Optional[FeePriority] = None
    ) -> FeeEstimate:
        """Estimate the fee of a transaction of known size."""
        priority = priority or self.priority
        rate = self.get_rate(priority)
        return FeeEstimate(
            sat_per_vbyte=rate,
            vbytes=vbytes,
            total_sats=math.ceil(vbytes * rate),
            priority=priority,
        )
