"""
SCROW - Non-custodial Bitcoin Escrow Engine

Builds 2-of-2 and arbitrated dispute escrows on P2WSH, signs resolution
transactions party by party and combines the signatures.

Usage:
    from scrow import EscrowEngine

    engine = EscrowEngine("testnet4")
    escrow = engine.build_collab_address(npub_a, npub_b)
    print(f"Fund escrow: {escrow.address}")

    unsigned = engine.build_collab_tx(npub_a, npub_b, 50_000, addr_a, addr_b, funding_txid, 300)
    sig_a = engine.sign(unsigned, 0, nsec_a, 50_000, escrow.script)
    sig_b = engine.sign(unsigned, 0, nsec_b, 50_000, escrow.script)
    signed = engine.combine_collab(unsigned, 0, [sig_a, sig_b], [npub_a, npub_b], escrow.script, 50_000)

Function-level interface (hex strings in and out):
    from scrow import build_collab_address, sign, combine_collab
"""

__version__ = "0.1.0"

from .escrow import (
    EscrowEngine,
    build_collab_address,
    build_dispute_address,
    build_collab_script,
    build_dispute_script,
    build_collab_tx,
    build_dispute_tx,
    sign,
    combine_collab,
    combine_dispute_collab,
    combine_dispute_arbitrated,
    hours_to_blocks,
    days_to_blocks,
    validate_identity_key,
)
from .config import Network, EscrowConfig, get_network, MAINNET, TESTNET4, SIGNET, MUTINYNET
from .models import (
    EscrowRole, ScriptKind, SpendingPath, LockingScript, EscrowAddress, Outpoint, Payout,
    UnsignedTransaction, PartialSignature, CombinedTransaction, TransactionResult,
)
from .core.keys import (
    SigningKey, decode_public_key, encode_public_key, parse_public_key,
    decode_private_key, encode_private_key, derive_public_key,
)
from .core.scripts import ScriptBuilder
from .core.transaction import TransactionBuilder
from .core.signer import Signer
from .core.witness import SignatureCombiner
from .core.timelock import days_hours_to_blocks, blocks_to_seconds
from .fees import FeeEstimator, FeeEstimate, FeePriority
from .infra.api import EsploraAPI
from .logging import StructuredLogger, LogLevel, create_file_logger
from .errors import (
    EscrowError,
    ConfigurationError,
    InvalidConfigError,
    InvalidKeyEncoding,
    NetworkMismatch,
    ScriptError,
    InvalidKeyCount,
    TimelockOutOfRange,
    InvalidScript,
    TransactionError,
    InvalidInputIndex,
    AmountUnderflow,
    InvalidOutpoint,
    InvalidAddress,
    InvalidTransaction,
    SignatureError,
    SignatureCountMismatch,
    SignatureMismatch,
    KeyNotInScript,
    NetworkError,
    APIError,
    BroadcastRejected,
    FundingLookupError,
)

__all__ = [
    # Engine
    "EscrowEngine",
    "build_collab_address",
    "build_dispute_address",
    "build_collab_script",
    "build_dispute_script",
    "build_collab_tx",
    "build_dispute_tx",
    "sign",
    "combine_collab",
    "combine_dispute_collab",
    "combine_dispute_arbitrated",
    "hours_to_blocks",
    "days_to_blocks",
    "days_hours_to_blocks",
    "blocks_to_seconds",
    "validate_identity_key",

    # Config
    "Network",
    "EscrowConfig",
    "get_network",
    "MAINNET",
    "TESTNET4",
    "SIGNET",
    "MUTINYNET",

    # Models
    "EscrowRole",
    "ScriptKind",
    "SpendingPath",
    "LockingScript",
    "EscrowAddress",
    "Outpoint",
    "Payout",
    "UnsignedTransaction",
    "PartialSignature",
    "CombinedTransaction",
    "TransactionResult",

    # Components
    "SigningKey",
    "decode_public_key",
    "encode_public_key",
    "parse_public_key",
    "decode_private_key",
    "encode_private_key",
    "derive_public_key",
    "ScriptBuilder",
    "TransactionBuilder",
    "Signer",
    "SignatureCombiner",
    "FeeEstimator",
    "FeeEstimate",
    "FeePriority",
    "EsploraAPI",
    "StructuredLogger",
    "LogLevel",
    "create_file_logger",

    # Errors
    "EscrowError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidKeyEncoding",
    "NetworkMismatch",
    "ScriptError",
    "InvalidKeyCount",
    "TimelockOutOfRange",
    "InvalidScript",
    "TransactionError",
    "InvalidInputIndex",
    "AmountUnderflow",
    "InvalidOutpoint",
    "InvalidAddress",
    "InvalidTransaction",
    "SignatureError",
    "SignatureCountMismatch",
    "SignatureMismatch",
    "KeyNotInScript",
    "NetworkError",
    "APIError",
    "BroadcastRejected",
    "FundingLookupError",
]
