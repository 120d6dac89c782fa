"""
SCROW - Transaction Builder

Assembles the unsigned escrow-to-resolution transaction: one input spending
the funding outpoint (vout 0) and one or two payouts, fee subtracted first.

The funding-to-escrow leg is paid from the parties' own wallets; the engine
only supplies its destination address (see ScriptBuilder).
"""

import string
from typing import List, Optional, Sequence

from embit import base58
from embit.networks import NETWORKS as EMBIT_NETWORKS
from embit.script import address_to_scriptpubkey
from embit.transaction import Transaction

from ..config import Network
from ..constants import SEQUENCE_FINAL, FUNDING_VOUT
from ..errors import (
    AmountUnderflow, InvalidOutpoint, InvalidAddress, InvalidTransaction, NetworkMismatch,
)
from ..models import (
    EscrowRole, LockingScript, ScriptKind, SpendingPath, Outpoint, Payout, UnsignedTransaction,
)


# =============================================================================
# Validation helpers
# =============================================================================

def parse_outpoint(txid: str, vout: int = FUNDING_VOUT) -> Outpoint:
    """
    Validate a funding outpoint.

    Raises:
        InvalidOutpoint: Malformed txid or vout other than 0.
    """
    if not isinstance(txid, str) or len(txid) != 64 or any(c not in string.hexdigits for c in txid):
        raise InvalidOutpoint(str(txid), vout, "Funding txid must be 64 hex characters")
    if vout != FUNDING_VOUT:
        raise InvalidOutpoint(txid, vout, f"Funding output index must be {FUNDING_VOUT}, got {vout}")
    return Outpoint(txid=txid.lower(), vout=vout)


def check_address(address: str, network: Network) -> bytes:
    """
    Check that an address decodes and belongs to the network.

    Returns:
        The address's scriptPubKey bytes.

    Raises:
        NetworkMismatch: Address of another network.
        InvalidAddress: Address cannot be decoded.
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddress(str(address))
    address = address.strip()
    params = network.params

    hrp, sep, _ = address.lower().rpartition("1")
    known_hrps = {net["bech32"] for net in EMBIT_NETWORKS.values()}
    if sep and hrp in known_hrps:
        if hrp != params["bech32"]:
            raise NetworkMismatch(network.name, hrp, f"Address {address} is not a {network.name} address")
    else:
        try:
            payload = base58.decode_check(address)
        except Exception as e:
            raise InvalidAddress(address) from e
        if payload[:1] not in (params["p2pkh"], params["p2sh"]):
            raise NetworkMismatch(
                network.name, payload[:1].hex(), f"Address {address} is not a {network.name} address"
            )

    try:
        return address_to_scriptpubkey(address).data
    except Exception as e:
        raise InvalidAddress(address) from e


def decode_transaction(tx_hex: str) -> Transaction:
    """
    Parse a raw transaction hex.

    Raises:
        InvalidTransaction: Hex or serialization is malformed.
    """
    try:
        return Transaction.parse(bytes.fromhex(tx_hex.strip()))
    except Exception as e:
        raise InvalidTransaction(f"Cannot decode transaction: {e}") from e


def split_payouts(
    amount: int,
    fee: int,
    dest_a: str,
    dest_b: Optional[str] = None,
    amount_a: Optional[int] = None
) -> List[Payout]:
    """
    Split amount - fee between two destinations.

    Without amount_a the split is even and the odd satoshi goes to dest_a.
    Zero-value payouts are omitted; with no dest_b everything goes to dest_a.

    Raises:
        AmountUnderflow: fee >= amount, or amount_a exceeds what is left.
    """
    if amount <= 0 or fee < 0 or fee >= amount:
        raise AmountUnderflow(amount, fee)
    available = amount - fee

    if dest_b is None:
        share_a = available
    elif amount_a is None:
        share_a = available - available // 2
    else:
        if amount_a < 0 or amount_a > available:
            raise AmountUnderflow(
                amount, fee,
                f"Payout of {amount_a} sats exceeds {available} sats available after fee"
            )
        share_a = amount_a

    payouts = [Payout(dest_a, share_a, EscrowRole.PARTY_A)]
    if dest_b is not None:
        payouts.append(Payout(dest_b, available - share_a, EscrowRole.PARTY_B))
    return [p for p in payouts if p.amount > 0]


# =============================================================================
# Builder
# =============================================================================

class TransactionBuilder:
    """
    Builds unsigned resolution transactions for one network.

    Output order and amounts are the caller's decision; the builder only
    encodes them and enforces amount conservation.
    """

    def __init__(self, network: Network):
        self.network = network

    def build_spend(
        self,
        script: LockingScript,
        funding_txid: str,
        amount: int,
        payouts: Sequence[Payout],
        fee: int,
        sequence: int = SEQUENCE_FINAL,
        vout: int = FUNDING_VOUT
    ) -> UnsignedTransaction:
        """
        Build the escrow-to-resolution transaction.

        Args:
            script: Locking script of the escrow output being spent.
            funding_txid: Funding transaction id.
            amount: Escrowed amount (sats); not queried from the chain.
            payouts: Ordered outputs.
            fee: Absolute fee (sats).
            sequence: Input sequence (timelock for the arbitrated branch).
            vout: Funding output index; anything but 0 is rejected.

        Raises:
            InvalidOutpoint, AmountUnderflow, NetworkMismatch, InvalidAddress,
            InvalidTransaction
        """
        outpoint = parse_outpoint(funding_txid, vout)
        if amount <= 0 or fee < 0 or fee >= amount:
            raise AmountUnderflow(amount, fee)
        if not payouts:
            raise InvalidTransaction("At least one payout is required")

        total = 0
        for payout in payouts:
            if payout.amount <= 0:
                raise InvalidTransaction(f"Payout to {payout.address} must be positive")
            check_address(payout.address, self.network)
            total += payout.amount
        if total > amount - fee:
            raise AmountUnderflow(
                amount, fee, f"Payouts of {total} sats exceed {amount - fee} sats available after fee"
            )

        return UnsignedTransaction(
            outpoint=outpoint,
            amount=amount,
            script=script,
            outputs=tuple(payouts),
            fee=fee,
            sequence=sequence,
        )

    def build_collab(
        self,
        script: LockingScript,
        funding_txid: str,
        amount: int,
        dest_a: str,
        dest_b: Optional[str],
        fee: int,
        amount_a: Optional[int] = None
    ) -> UnsignedTransaction:
        """Resolution of a collaborative escrow (no timelock)."""
        if script.kind is not ScriptKind.COLLABORATIVE:
            raise InvalidTransaction("Expected a collaborative locking script")
        payouts = split_payouts(amount, fee, dest_a, dest_b, amount_a)
        return self.build_spend(script, funding_txid, amount, payouts, fee)

    def build_dispute(
        self,
        script: LockingScript,
        funding_txid: str,
        amount: int,
        dest_a: str,
        dest_b: Optional[str],
        fee: int,
        amount_a: Optional[int] = None,
        path: SpendingPath = SpendingPath.DISPUTE_ARBITRATED
    ) -> UnsignedTransaction:
        """
        Resolution of a dispute escrow.

        The arbitrated path sets the input sequence to the script's timelock;
        the collaborative path keeps it final so parties can settle at once.
        """
        if script.kind is not ScriptKind.DISPUTE:
            raise InvalidTransaction("Expected a dispute locking script")
        if path is SpendingPath.DISPUTE_ARBITRATED:
            sequence = script.timelock_blocks
        elif path is SpendingPath.DISPUTE_COLLABORATIVE:
            sequence = SEQUENCE_FINAL
        else:
            raise InvalidTransaction(f"Spending path {path.value} does not apply to a dispute script")
        payouts = split_payouts(amount, fee, dest_a, dest_b, amount_a)
        return self.build_spend(script, funding_txid, amount, payouts, fee, sequence=sequence)
