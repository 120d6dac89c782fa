"""
SCROW - Escrow Engine

Main entry point. EscrowEngine is an explicitly constructed context that
wires the core components for one network and logs every operation; it
keeps no keys and no caches between calls.

Usage:
    from scrow import EscrowEngine

    engine = EscrowEngine("signet")
    escrow = engine.build_dispute_address(npub_a, npub_b, npub_arbiter, 144)
    print(f"Fund: {escrow.address}")

    unsigned = engine.build_dispute_tx(npub_a, npub_b, npub_arbiter, 100_000,
                                       addr_a, addr_b, funding_txid, 500, 144)
    sig_a = engine.sign(unsigned, 0, nsec_a, 100_000, escrow.script.hex)   # on A's machine
    sig_b = engine.sign(unsigned, 0, nsec_b, 100_000, escrow.script.hex)   # on B's machine
    signed = engine.combine_dispute_collab(unsigned, 0, [sig_a, sig_b],
                                           [npub_a, npub_b], escrow.script, 100_000)

The module-level functions below expose the same operations with plain
strings in and out, each using a throwaway engine.
"""

from typing import Optional, Sequence, Union

from .config import Network, get_network
from .core.keys import (
    SigningKey, PublicKeyLike, validate_identity_key as _validate_identity_key,
)
from .core.scripts import ScriptBuilder
from .core.signer import Signer
from .core.timelock import hours_to_blocks as _hours_to_blocks, days_to_blocks as _days_to_blocks
from .core.transaction import TransactionBuilder, decode_transaction
from .core.witness import SignatureCombiner
from .logging import StructuredLogger
from .models import (
    EscrowRole, EscrowAddress, LockingScript, SpendingPath, UnsignedTransaction, PartialSignature,
    CombinedTransaction,
)


ScriptLike = Union[str, bytes, LockingScript]


class EscrowEngine:
    """
    Escrow transaction engine for one network.

    Every method is a pure function of its arguments; engines can be shared
    between threads.
    """

    def __init__(self, network: Union[str, Network], logger: Optional[StructuredLogger] = None):
        """
        Args:
            network: Network or network name ("mainnet", "testnet4", "signet", "mutinynet").
            logger: Structured logger; a default "scrow" logger if None.
        """
        self.network = get_network(network)
        self.logger = (logger or StructuredLogger(component="scrow")).bind(network=self.network.name)
        self.transactions = TransactionBuilder(self.network)
        self.signer = Signer(self.network)
        self.combiner = SignatureCombiner()

    def __repr__(self) -> str:
        return f"EscrowEngine(network={self.network.name})"

    # =========================================================================
    # Addresses
    # =========================================================================

    def build_collab_address(self, key_a: PublicKeyLike, key_b: PublicKeyLike) -> EscrowAddress:
        """2-of-2 escrow address; independent of key argument order."""
        with self.logger.operation("build_collab_address") as op:
            script = ScriptBuilder.collaborative([key_a, key_b])
            escrow = ScriptBuilder.address(script, self.network)
            op.add_detail("address", escrow.address)
            return escrow

    def build_dispute_address(
        self,
        key_a: PublicKeyLike,
        key_b: PublicKeyLike,
        key_arbiter: PublicKeyLike,
        timelock_blocks: int
    ) -> EscrowAddress:
        """Dispute escrow address: parties now, or one party plus arbiter after the timelock."""
        with self.logger.operation("build_dispute_address") as op:
            script = ScriptBuilder.dispute([key_a, key_b], key_arbiter, timelock_blocks)
            escrow = ScriptBuilder.address(script, self.network)
            op.add_detail("address", escrow.address)
            op.add_detail("timelock_blocks", timelock_blocks)
            return escrow

    # =========================================================================
    # Unsigned transactions
    # =========================================================================

    def build_collab_tx(
        self,
        key_a: PublicKeyLike,
        key_b: PublicKeyLike,
        amount: int,
        dest_a: str,
        dest_b: Optional[str],
        funding_txid: str,
        fee: int,
        amount_a: Optional[int] = None
    ) -> UnsignedTransaction:
        """
        Resolution transaction for a collaborative escrow.

        Args:
            amount: Escrowed amount (sats).
            dest_a: Party A payout address.
            dest_b: Party B payout address (receives the remainder).
            funding_txid: Funding transaction id (output 0).
            fee: Absolute fee (sats).
            amount_a: Party A's payout; even split if None.
        """
        with self.logger.operation("build_collab_tx") as op:
            script = ScriptBuilder.collaborative([key_a, key_b])
            unsigned = self.transactions.build_collab(
                script, funding_txid, amount, dest_a, dest_b, fee, amount_a
            )
            op.add_detail("amount", amount)
            op.add_detail("fee", fee)
            op.add_detail("payout_a", unsigned.payout_for(EscrowRole.PARTY_A))
            op.add_detail("payout_b", unsigned.payout_for(EscrowRole.PARTY_B))
            return unsigned

    def build_dispute_tx(
        self,
        key_a: PublicKeyLike,
        key_b: PublicKeyLike,
        key_arbiter: PublicKeyLike,
        amount: int,
        dest_a: str,
        dest_b: Optional[str],
        funding_txid: str,
        fee: int,
        timelock_blocks: int,
        amount_a: Optional[int] = None,
        path: SpendingPath = SpendingPath.DISPUTE_ARBITRATED
    ) -> UnsignedTransaction:
        """
        Resolution transaction for a dispute escrow.

        The arbitrated path sets the input sequence to timelock_blocks; pass
        path=SpendingPath.DISPUTE_COLLABORATIVE to settle before it matures.
        """
        with self.logger.operation("build_dispute_tx") as op:
            script = ScriptBuilder.dispute([key_a, key_b], key_arbiter, timelock_blocks)
            unsigned = self.transactions.build_dispute(
                script, funding_txid, amount, dest_a, dest_b, fee, amount_a, path
            )
            op.add_detail("amount", amount)
            op.add_detail("fee", fee)
            op.add_detail("path", path.value)
            op.add_detail("payout_a", unsigned.payout_for(EscrowRole.PARTY_A))
            op.add_detail("payout_b", unsigned.payout_for(EscrowRole.PARTY_B))
            return unsigned

    # =========================================================================
    # Signing and combination
    # =========================================================================

    def sign(
        self,
        tx: Union[str, UnsignedTransaction],
        input_index: int,
        private_key: Union[str, SigningKey],
        amount: int,
        script: ScriptLike
    ) -> PartialSignature:
        """
        Sign one input with an nsec or WIF key.

        The key is used for this call only.
        """
        with self.logger.operation("sign") as op:
            tx_hex = tx.to_hex() if isinstance(tx, UnsignedTransaction) else tx
            locking_script = ScriptBuilder.parse(script)
            partial = self.signer.sign(
                decode_transaction(tx_hex), input_index, private_key, amount, locking_script
            )
            op.add_detail("pubkey", partial.pubkey.hex())
            return partial

    def combine(
        self,
        path: SpendingPath,
        tx: Union[str, UnsignedTransaction],
        input_index: int,
        signatures: Sequence[Union[str, PartialSignature]],
        pubkeys: Sequence[PublicKeyLike],
        script: ScriptLike,
        amount: int
    ) -> CombinedTransaction:
        """Verify signatures and build the witness for one spending path."""
        with self.logger.operation(f"combine_{path.value}") as op:
            tx_hex = tx.to_hex() if isinstance(tx, UnsignedTransaction) else tx
            combined = self.combiner.combine(
                path, tx_hex, input_index, signatures, pubkeys, script, amount
            )
            op.set_txid(combined.txid)
            return combined

    def combine_collab(self, tx, input_index, signatures, pubkeys, script, amount) -> CombinedTransaction:
        return self.combine(SpendingPath.COLLABORATIVE, tx, input_index, signatures, pubkeys, script, amount)

    def combine_dispute_collab(self, tx, input_index, signatures, pubkeys, script, amount) -> CombinedTransaction:
        return self.combine(
            SpendingPath.DISPUTE_COLLABORATIVE, tx, input_index, signatures, pubkeys, script, amount
        )

    def combine_dispute_arbitrated(self, tx, input_index, signatures, pubkeys, script, amount) -> CombinedTransaction:
        return self.combine(
            SpendingPath.DISPUTE_ARBITRATED, tx, input_index, signatures, pubkeys, script, amount
        )

    # =========================================================================
    # Timelocks
    # =========================================================================

    def hours_to_blocks(self, hours: int) -> int:
        return _hours_to_blocks(hours, self.network)

    def days_to_blocks(self, days: int) -> int:
        return _days_to_blocks(days, self.network)


# =============================================================================
# Function-level interface (strings in, strings out)
# =============================================================================

def build_collab_address(key_a, key_b, network) -> str:
    return EscrowEngine(network).build_collab_address(key_a, key_b).address


def build_dispute_address(key_a, key_b, key_arbiter, timelock_blocks, network) -> str:
    return EscrowEngine(network).build_dispute_address(key_a, key_b, key_arbiter, timelock_blocks).address


def build_collab_script(key_a, key_b) -> str:
    """Hex witness script of a collaborative escrow (needed for signing)."""
    return ScriptBuilder.collaborative([key_a, key_b]).hex


def build_dispute_script(key_a, key_b, key_arbiter, timelock_blocks) -> str:
    """Hex witness script of a dispute escrow (needed for signing)."""
    return ScriptBuilder.dispute([key_a, key_b], key_arbiter, timelock_blocks).hex


def build_collab_tx(key_a, key_b, amount, dest_a, dest_b, funding_txid, fee, network, amount_a=None) -> str:
    engine = EscrowEngine(network)
    return engine.build_collab_tx(key_a, key_b, amount, dest_a, dest_b, funding_txid, fee, amount_a).to_hex()


def build_dispute_tx(
    key_a, key_b, key_arbiter, amount, dest_a, dest_b, funding_txid, fee, timelock_blocks, network,
    amount_a=None, path=SpendingPath.DISPUTE_ARBITRATED
) -> str:
    engine = EscrowEngine(network)
    return engine.build_dispute_tx(
        key_a, key_b, key_arbiter, amount, dest_a, dest_b, funding_txid, fee, timelock_blocks,
        amount_a, path
    ).to_hex()


def sign(tx_hex, input_index, private_key, amount, locking_script, network) -> str:
    return EscrowEngine(network).sign(tx_hex, input_index, private_key, amount, locking_script).to_hex()


def combine_collab(tx_hex, input_index, signatures, pubkeys, locking_script, amount) -> str:
    return SignatureCombiner().combine_collab(
        tx_hex, input_index, signatures, pubkeys, locking_script, amount
    ).hex


def combine_dispute_collab(tx_hex, input_index, signatures, pubkeys, locking_script, amount) -> str:
    return SignatureCombiner().combine_dispute_collab(
        tx_hex, input_index, signatures, pubkeys, locking_script, amount
    ).hex


def combine_dispute_arbitrated(tx_hex, input_index, signatures, pubkeys, locking_script, amount) -> str:
    return SignatureCombiner().combine_dispute_arbitrated(
        tx_hex, input_index, signatures, pubkeys, locking_script, amount
    ).hex


def hours_to_blocks(hours, network) -> int:
    return _hours_to_blocks(hours, get_network(network))


def days_to_blocks(days, network) -> int:
    return _days_to_blocks(days, get_network(network))


def validate_identity_key(value) -> bool:
    return _validate_identity_key(value)
