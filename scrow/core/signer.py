"""
SCROW - Signer

BIP-143 segwit sighash over one input, signed with deterministic-nonce
(RFC 6979) ECDSA. Signatures are DER with SIGHASH_ALL appended.
"""

from typing import Union

from embit import ec
from embit.transaction import Transaction, SIGHASH

from ..config import Network
from ..errors import InvalidInputIndex, SignatureMismatch
from ..models import LockingScript, PartialSignature
from .keys import SigningKey


class Signer:
    """
    Produces and checks one party's signature over an escrow input.

    Holds no key material; the private key is passed to each call.
    """

    def __init__(self, network: Network):
        self.network = network

    @staticmethod
    def sighash(tx: Transaction, input_index: int, script: LockingScript, amount: int) -> bytes:
        """
        Segwit v0 signature hash of one input.

        The scriptCode is the witness script itself, and the amount is the
        escrowed value being spent.

        Raises:
            InvalidInputIndex: Index is not an input of tx.
        """
        if not 0 <= input_index < len(tx.vin):
            raise InvalidInputIndex(input_index, len(tx.vin))
        return tx.sighash_segwit(input_index, script.embit_script(), amount, SIGHASH.ALL)

    def sign(
        self,
        tx: Transaction,
        input_index: int,
        private_key: Union[str, SigningKey],
        amount: int,
        script: LockingScript
    ) -> PartialSignature:
        """
        Sign one input.

        Args:
            tx: Unsigned transaction, exactly as both parties will sign it.
            input_index: Input to sign.
            private_key: nsec/WIF string or SigningKey.
            amount: Escrowed amount in sats.
            script: Locking script being satisfied.

        Returns:
            PartialSignature for the script key the secret controls.
        """
        if not isinstance(private_key, SigningKey):
            private_key = SigningKey.from_encoded(private_key, self.network)
        key = private_key.for_script(script.all_keys)

        digest = self.sighash(tx, input_index, script, amount)
        signature = key.sign(digest)
        return PartialSignature(
            pubkey=key.get_public_key().sec(),
            der=signature.serialize(),
        )

    @staticmethod
    def verify(
        partial: PartialSignature,
        tx: Transaction,
        input_index: int,
        script: LockingScript,
        amount: int
    ) -> None:
        """
        Check a signature against its key and the recomputed sighash.

        Raises:
            SignatureMismatch: Signature is malformed or does not verify.
        """
        digest = Signer.sighash(tx, input_index, script, amount)
        try:
            pubkey = ec.PublicKey.parse(partial.pubkey)
            signature = ec.Signature.parse(partial.der)
        except Exception as e:
            raise SignatureMismatch(f"Malformed signature or key: {e}", partial.pubkey.hex()) from e
        if not pubkey.verify(signature, digest):
            raise SignatureMismatch(
                "Signature does not match the transaction sighash",
                partial.pubkey.hex()
            )
