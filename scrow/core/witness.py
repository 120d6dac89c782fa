"""
SCROW - Signature Combiner

Assembles independently produced signatures into the witness stack for
the spending path in force and returns the finalized transaction.

Witness stacks (bottom to top):
    collaborative:          <> <sig0> <sig1> <script>
    dispute, collaborative: <> <sig0> <sig1> 0x01 <script>
    dispute, arbitrated:    <> <sig0> <sig1> <> <script>

<> is the dummy element consumed by OP_CHECKMULTISIG; signatures follow
the order of their keys in the script.
"""

from typing import List, Sequence, Union

from embit.script import Witness

from ..constants import DISPUTE_COLLAB_SELECTOR, DISPUTE_ARBITRATED_SELECTOR, TX_VERSION
from ..errors import (
    SignatureCountMismatch, SignatureMismatch, InvalidScript, InvalidInputIndex,
    InvalidTransaction, KeyNotInScript,
)
from ..models import LockingScript, ScriptKind, SpendingPath, PartialSignature, CombinedTransaction
from .keys import parse_public_key, PublicKeyLike
from .scripts import ScriptBuilder
from .signer import Signer
from .transaction import decode_transaction


SignatureLike = Union[str, PartialSignature]

REQUIRED_SIGNATURES = 2


class SignatureCombiner:
    """
    Combines two partial signatures into a spendable transaction.

    Every signature is verified against the recomputed sighash before any
    witness is produced.
    """

    def combine(
        self,
        path: SpendingPath,
        tx_hex: str,
        input_index: int,
        signatures: Sequence[SignatureLike],
        pubkeys: Sequence[PublicKeyLike],
        script: Union[str, bytes, LockingScript],
        amount: int
    ) -> CombinedTransaction:
        """
        Build the witness for one spending path.

        Args:
            path: Spending path the signatures are meant for.
            tx_hex: Unsigned transaction both parties signed.
            input_index: Escrow input.
            signatures: Witness-form signature hex (or PartialSignature), any order.
            pubkeys: Public key of each signature, same order as signatures.
            script: Locking script being satisfied.
            amount: Escrowed amount in sats.

        Raises:
            SignatureCountMismatch: Not two signatures, or not one per distinct key.
            KeyNotInScript: A key is not part of the branch being satisfied.
            SignatureMismatch: A signature does not verify.
            InvalidScript: Script kind does not fit the path.
            InvalidInputIndex, InvalidTransaction
        """
        script = ScriptBuilder.parse(script)
        expected_kind = ScriptKind.COLLABORATIVE if path is SpendingPath.COLLABORATIVE else ScriptKind.DISPUTE
        if script.kind is not expected_kind:
            raise InvalidScript(
                f"{path.value} spending needs a {expected_kind.value} script, got {script.kind.value}"
            )

        if len(signatures) != len(pubkeys):
            raise SignatureCountMismatch(
                len(pubkeys), len(signatures), "Each signature needs exactly one public key"
            )
        if len(signatures) != REQUIRED_SIGNATURES:
            raise SignatureCountMismatch(REQUIRED_SIGNATURES, len(signatures))
        keys = [parse_public_key(k).sec() for k in pubkeys]
        if len(set(keys)) != REQUIRED_SIGNATURES:
            raise SignatureCountMismatch(
                REQUIRED_SIGNATURES, len(set(keys)), "Signatures must come from distinct keys"
            )

        tx = decode_transaction(tx_hex)
        if not 0 <= input_index < len(tx.vin):
            raise InvalidInputIndex(input_index, len(tx.vin))

        arbitrated = path is SpendingPath.DISPUTE_ARBITRATED
        if arbitrated:
            self._check_arbitrated_keys(script, keys)
            if tx.version < TX_VERSION:
                raise InvalidTransaction(
                    f"Relative timelocks need transaction version {TX_VERSION}, got {tx.version}"
                )
            # Must be set before the sighash is computed
            tx.vin[input_index].sequence = script.timelock_blocks
        else:
            for key in keys:
                if key not in script.party_keys:
                    raise KeyNotInScript(key.hex())

        partials = [self._to_partial(sig, key) for sig, key in zip(signatures, keys)]
        for partial in partials:
            Signer.verify(partial, tx, input_index, script, amount)

        partials.sort(key=lambda p: ScriptBuilder.key_position(script, p.pubkey, arbitrated))
        items = [b""] + [p.to_bytes() for p in partials]
        if path is SpendingPath.DISPUTE_COLLABORATIVE:
            items.append(DISPUTE_COLLAB_SELECTOR)
        elif arbitrated:
            items.append(DISPUTE_ARBITRATED_SELECTOR)
        items.append(script.raw)

        tx.vin[input_index].witness = Witness(items)
        return CombinedTransaction(
            hex=tx.serialize().hex(),
            txid=tx.txid().hex(),
            path=path,
            witness=tuple(items),
        )

    def combine_collab(self, tx_hex, input_index, signatures, pubkeys, script, amount) -> CombinedTransaction:
        return self.combine(SpendingPath.COLLABORATIVE, tx_hex, input_index, signatures, pubkeys, script, amount)

    def combine_dispute_collab(self, tx_hex, input_index, signatures, pubkeys, script, amount) -> CombinedTransaction:
        return self.combine(
            SpendingPath.DISPUTE_COLLABORATIVE, tx_hex, input_index, signatures, pubkeys, script, amount
        )

    def combine_dispute_arbitrated(self, tx_hex, input_index, signatures, pubkeys, script, amount) -> CombinedTransaction:
        """Arbitrated branch; sets the input sequence to the script's timelock."""
        return self.combine(
            SpendingPath.DISPUTE_ARBITRATED, tx_hex, input_index, signatures, pubkeys, script, amount
        )

    @staticmethod
    def _check_arbitrated_keys(script: LockingScript, keys: List[bytes]) -> None:
        """Exactly one party key plus the arbiter key."""
        if script.arbiter_key not in keys:
            raise KeyNotInScript(
                script.arbiter_key.hex(), "Arbitrated spending needs the arbiter's signature"
            )
        for key in keys:
            if key != script.arbiter_key and key not in script.party_keys:
                raise KeyNotInScript(key.hex())

    @staticmethod
    def _to_partial(signature: SignatureLike, key: bytes) -> PartialSignature:
        if isinstance(signature, PartialSignature):
            if signature.pubkey != key:
                raise SignatureMismatch(
                    "Signature is paired with a different public key", signature.pubkey.hex()
                )
            return signature
        return PartialSignature.from_hex(key, signature)
