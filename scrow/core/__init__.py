"""Core escrow engine: keys, scripts, transactions, signing, combination."""

from .keys import SigningKey
from .scripts import ScriptBuilder
from .transaction import TransactionBuilder
from .signer import Signer
from .witness import SignatureCombiner

__all__ = ["SigningKey", "ScriptBuilder", "TransactionBuilder", "Signer", "SignatureCombiner"]
