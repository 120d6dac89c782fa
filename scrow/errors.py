"""
SCROW - Error Types

Specific exception classes for every failure the escrow engine can report.
"""

from typing import Optional


class EscrowError(Exception):
    """Base exception for all escrow engine errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(EscrowError):
    """Error in engine configuration."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""
    pass


# =============================================================================
# Key Errors
# =============================================================================

class InvalidKeyEncoding(EscrowError):
    """Key encoding is malformed (checksum, length, prefix or curve point)."""

    def __init__(self, message: str, encoding: Optional[str] = None):
        super().__init__(message, {"encoding": encoding} if encoding else None)
        self.encoding = encoding


class NetworkMismatch(EscrowError):
    """Encoded key or address belongs to a different network."""

    def __init__(self, expected: str, found: Optional[str] = None, message: Optional[str] = None):
        msg = message or f"Network mismatch: expected {expected}"
        super().__init__(msg, {"expected": expected, "found": found})
        self.expected = expected
        self.found = found


# =============================================================================
# Script Errors
# =============================================================================

class ScriptError(EscrowError):
    """Error building or parsing a locking script."""
    pass


class InvalidKeyCount(ScriptError):
    """Wrong number of (distinct) keys for the script variant."""

    def __init__(self, expected: int, got: int, message: Optional[str] = None):
        msg = message or f"Expected {expected} distinct keys, got {got}"
        super().__init__(msg, {"expected": expected, "got": got})
        self.expected = expected
        self.got = got


class TimelockOutOfRange(ScriptError):
    """Timelock (or duration) is outside the supported range."""

    def __init__(self, value, message: Optional[str] = None):
        msg = message or f"Timelock out of range: {value}"
        super().__init__(msg, {"value": value})
        self.value = value


class InvalidScript(ScriptError):
    """Serialized script is not one of the escrow script variants."""
    pass


# =============================================================================
# Transaction Errors
# =============================================================================

class TransactionError(EscrowError):
    """Error during transaction construction."""
    pass


class InvalidInputIndex(TransactionError):
    """Input index does not exist in the transaction."""

    def __init__(self, index: int, input_count: int):
        super().__init__(
            f"Input index {index} out of range for {input_count} input(s)",
            {"index": index, "input_count": input_count}
        )
        self.index = index
        self.input_count = input_count


class AmountUnderflow(TransactionError):
    """Fee or payouts exceed the escrowed amount."""

    def __init__(self, amount: int, fee: int, message: Optional[str] = None):
        msg = message or f"Fee {fee} sats is not below input amount {amount} sats"
        super().__init__(msg, {"amount": amount, "fee": fee})
        self.amount = amount
        self.fee = fee


class InvalidOutpoint(TransactionError):
    """Funding outpoint is malformed or uses an output index other than 0."""

    def __init__(self, txid: str, vout: int, message: Optional[str] = None):
        msg = message or f"Invalid funding outpoint: {txid}:{vout}"
        super().__init__(msg, {"txid": txid, "vout": vout})
        self.txid = txid
        self.vout = vout


class InvalidAddress(TransactionError):
    """Destination address cannot be decoded."""

    def __init__(self, address: str, message: Optional[str] = None):
        super().__init__(message or f"Invalid address: {address}", {"address": address})
        self.address = address


class InvalidTransaction(TransactionError):
    """Transaction hex cannot be decoded or violates an engine invariant."""
    pass


# =============================================================================
# Signature Errors
# =============================================================================

class SignatureError(EscrowError):
    """Error during signature creation, verification or combination."""
    pass


class SignatureCountMismatch(SignatureError):
    """Wrong number of signatures for the spending policy."""

    def __init__(self, expected: int, got: int, message: Optional[str] = None):
        msg = message or f"Expected {expected} signatures, got {got}"
        super().__init__(msg, {"expected": expected, "got": got})
        self.expected = expected
        self.got = got


class SignatureMismatch(SignatureError):
    """Signature does not verify against its public key and the sighash."""

    def __init__(self, message: str = "Signature verification failed", pubkey: Optional[str] = None):
        super().__init__(message, {"pubkey": pubkey} if pubkey else None)
        self.pubkey = pubkey


class KeyNotInScript(SignatureMismatch):
    """Key is not one of the keys of the branch being satisfied."""

    def __init__(self, pubkey: str, message: Optional[str] = None):
        super().__init__(message or f"Key {pubkey} is not part of the locking script", pubkey)


# =============================================================================
# Network Errors (external collaborators only)
# =============================================================================

class NetworkError(EscrowError):
    """Error communicating with an external block explorer."""
    pass


class APIError(NetworkError):
    """Block explorer API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, endpoint: Optional[str] = None):
        super().__init__(message, {"status_code": status_code, "endpoint": endpoint})
        self.status_code = status_code
        self.endpoint = endpoint


class BroadcastRejected(NetworkError):
    """Broadcast endpoint rejected the transaction; reason is passed through verbatim."""

    def __init__(self, reason: str, tx_hex: Optional[str] = None):
        super().__init__(reason, {"tx_hex_length": len(tx_hex) if tx_hex else 0})
        self.reason = reason
        self.tx_hex = tx_hex


class FundingLookupError(NetworkError):
    """Escrow address does not have exactly one funding transaction."""

    def __init__(self, address: str, tx_count: int):
        super().__init__(
            f"Expected one funding transaction for {address}, found {tx_count}",
            {"address": address, "tx_count": tx_count}
        )
        self.address = address
        self.tx_count = tx_count
