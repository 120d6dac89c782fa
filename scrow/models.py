"""
SCROW - Data Models

Core data structures passed between the engine components.
All of them are immutable once built, except TransactionResult.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum

from embit.script import Script, address_to_scriptpubkey, p2wsh
from embit.transaction import Transaction, TransactionInput, TransactionOutput

from .config import Network
from .constants import SIGHASH_ALL, SEQUENCE_FINAL, TX_VERSION, TX_LOCKTIME, FUNDING_VOUT
from .errors import InvalidTransaction, SignatureMismatch


class EscrowRole(Enum):
    """Escrow participants."""
    PARTY_A = "party_a"
    PARTY_B = "party_b"
    ARBITER = "arbiter"


class ScriptKind(Enum):
    """Locking script variants."""
    COLLABORATIVE = "collaborative"
    DISPUTE = "dispute"


class SpendingPath(Enum):
    """Ways to spend an escrow output."""
    COLLABORATIVE = "collaborative"                  # 2-of-2 on a collaborative script
    DISPUTE_COLLABORATIVE = "dispute_collaborative"  # parties agree, no timelock
    DISPUTE_ARBITRATED = "dispute_arbitrated"        # one party + arbiter, after timelock


@dataclass(frozen=True)
class LockingScript:
    """
    Tagged escrow script.

    party_keys are the two participant keys in canonical order (33-byte SEC).
    arbiter_key and timelock_blocks are only set for DISPUTE scripts.
    """
    kind: ScriptKind
    party_keys: Tuple[bytes, bytes]
    raw: bytes
    arbiter_key: Optional[bytes] = None
    timelock_blocks: Optional[int] = None

    @property
    def witness_program(self) -> bytes:
        """SHA-256 of the witness script."""
        return self.script_pubkey[2:]

    @property
    def script_pubkey(self) -> bytes:
        """P2WSH output script: OP_0 <32-byte program>."""
        return p2wsh(self.embit_script()).data

    @property
    def hex(self) -> str:
        return self.raw.hex()

    @property
    def all_keys(self) -> Tuple[bytes, ...]:
        """Every key committed to by the script, sorted."""
        keys = list(self.party_keys)
        if self.arbiter_key is not None:
            keys.append(self.arbiter_key)
        return tuple(sorted(keys))

    def address(self, network: Network) -> str:
        return Script(self.script_pubkey).address(network.params)

    def embit_script(self) -> Script:
        """Witness script as an embit Script (scriptCode for BIP-143)."""
        return Script(self.raw)


@dataclass(frozen=True)
class EscrowAddress:
    """Shared escrow address; a pure function of keys, timelock and network."""
    script: LockingScript
    witness_program: bytes
    address: str
    network: Network

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class Outpoint:
    """Funding output reference. vout is always 0."""
    txid: str
    vout: int = FUNDING_VOUT

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class Payout:
    """Resolution output, tagged with the party it pays when known."""
    address: str
    amount: int  # satoshis
    role: Optional[EscrowRole] = None


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    Escrow-to-resolution transaction before any witness is attached.

    Invariant: sum(outputs) + fee == amount.
    """
    outpoint: Outpoint
    amount: int
    script: LockingScript
    outputs: Tuple[Payout, ...]
    fee: int
    sequence: int = SEQUENCE_FINAL
    version: int = TX_VERSION
    locktime: int = TX_LOCKTIME

    def __post_init__(self):
        total = sum(p.amount for p in self.outputs)
        if total + self.fee != self.amount:
            raise InvalidTransaction(
                "Outputs plus fee must equal the input amount",
                {"outputs": total, "fee": self.fee, "amount": self.amount}
            )

    def payout_for(self, role: EscrowRole) -> int:
        """Total sats paid to a party (0 if it gets nothing)."""
        return sum(p.amount for p in self.outputs if p.role is role)

    def to_transaction(self) -> Transaction:
        """Build the embit Transaction (no witness)."""
        vin = [TransactionInput(
            bytes.fromhex(self.outpoint.txid),
            self.outpoint.vout,
            sequence=self.sequence
        )]
        vout = [
            TransactionOutput(p.amount, address_to_scriptpubkey(p.address))
            for p in self.outputs
        ]
        return Transaction(version=self.version, vin=vin, vout=vout, locktime=self.locktime)

    def to_hex(self) -> str:
        return self.to_transaction().serialize().hex()


@dataclass(frozen=True)
class PartialSignature:
    """One signer's signature over one input."""
    pubkey: bytes
    der: bytes
    sighash_type: int = SIGHASH_ALL

    def to_bytes(self) -> bytes:
        """DER signature with the sighash byte appended (witness form)."""
        return self.der + bytes([self.sighash_type])

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, pubkey: bytes, signature_hex: str) -> "PartialSignature":
        """
        Parse a witness-form signature.

        Raises:
            SignatureMismatch: If the hex is malformed or the sighash type is not ALL.
        """
        try:
            data = bytes.fromhex(signature_hex)
        except (TypeError, ValueError):
            raise SignatureMismatch("Signature is not valid hex", pubkey.hex())
        if len(data) < 9:
            raise SignatureMismatch("Signature is too short", pubkey.hex())
        if data[-1] != SIGHASH_ALL:
            raise SignatureMismatch(
                f"Unsupported sighash type 0x{data[-1]:02x}", pubkey.hex()
            )
        return cls(pubkey=pubkey, der=data[:-1], sighash_type=data[-1])


@dataclass(frozen=True)
class CombinedTransaction:
    """Fully witnessed transaction, ready for broadcast."""
    hex: str
    txid: str
    path: SpendingPath
    witness: Tuple[bytes, ...] = field(default_factory=tuple)


@dataclass
class TransactionResult:
    """Result of a broadcast."""
    success: bool
    txid: Optional[str] = None
    error: Optional[str] = None
    raw_hex: Optional[str] = None

    @property
    def explorer_url(self) -> Optional[str]:
        """Path fragment for a block explorer (prepend Network.explorer_url)."""
        if self.txid:
            return f"/tx/{self.txid}"
        return None
