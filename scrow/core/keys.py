"""
SCROW - Key Codec

Converts between identity encodings (npub/nsec, bech32) and secp256k1 key
material, plus WIF private keys and raw compressed public keys.

SECURITY NOTE: private material is wrapped in SigningKey, which is scoped
to a single call. It is never cached, pickled or printed.
"""

from typing import Union, Iterable

from bech32 import bech32_decode, bech32_encode, convertbits
from embit import base58, ec

from ..config import Network
from ..constants import (
    NPUB_HRP, NSEC_HRP, IDENTITY_KEY_LENGTH, BECH32_CHARSET, CURVE_ORDER,
)
from ..errors import InvalidKeyEncoding, NetworkMismatch, KeyNotInScript


PublicKeyLike = Union[str, bytes, ec.PublicKey]


def _decode_bech32_payload(value: str, hrp: str) -> bytes:
    """Decode a bech32 string with the given hrp into a 32-byte payload."""
    if not isinstance(value, str):
        raise InvalidKeyEncoding(f"Expected a {hrp} string")
    found_hrp, data = bech32_decode(value.strip())
    if found_hrp is None or data is None:
        raise InvalidKeyEncoding(f"Malformed {hrp} encoding (bad checksum or characters)", hrp)
    if found_hrp != hrp:
        raise InvalidKeyEncoding(f"Expected prefix '{hrp}', got '{found_hrp}'", hrp)
    payload = convertbits(data, 5, 8, False)
    if payload is None or len(payload) != 32:
        raise InvalidKeyEncoding(f"{hrp} payload must be exactly 32 bytes", hrp)
    return bytes(payload)


def _check_scalar(secret: bytes) -> None:
    value = int.from_bytes(secret, "big")
    if not 0 < value < CURVE_ORDER:
        raise InvalidKeyEncoding("Private key is outside the curve order")


# =============================================================================
# Public Keys
# =============================================================================

def decode_public_key(npub: str) -> ec.PublicKey:
    """
    Decode an npub into a compressed public key.

    The npub carries an x-only key; the even-Y point is used.

    Raises:
        InvalidKeyEncoding: On bad checksum, prefix, length or off-curve x.
    """
    xonly = _decode_bech32_payload(npub, NPUB_HRP)
    try:
        return ec.PublicKey.parse(b"\x02" + xonly)
    except Exception as e:
        raise InvalidKeyEncoding("npub is not a valid curve point", NPUB_HRP) from e


def encode_public_key(pubkey: PublicKeyLike) -> str:
    """Encode a public key as an npub (x-only, parity is dropped)."""
    key = parse_public_key(pubkey)
    return bech32_encode(NPUB_HRP, convertbits(key.xonly(), 8, 5))


def parse_public_key(value: PublicKeyLike) -> ec.PublicKey:
    """
    Accept an npub, a 66-char hex compressed key, raw SEC bytes or an
    ec.PublicKey and return an ec.PublicKey.
    """
    if isinstance(value, ec.PublicKey):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(NPUB_HRP + "1"):
            return decode_public_key(text)
        try:
            value = bytes.fromhex(text)
        except ValueError:
            raise InvalidKeyEncoding("Public key is neither an npub nor hex")
    if not isinstance(value, bytes) or len(value) != 33 or value[0] not in (2, 3):
        raise InvalidKeyEncoding("Public key must be 33-byte compressed SEC")
    try:
        return ec.PublicKey.parse(value)
    except Exception as e:
        raise InvalidKeyEncoding("Public key is not a valid curve point") from e


def validate_identity_key(value: str) -> bool:
    """
    Cheap syntactic check of an npub (prefix, length, charset, checksum).

    Does not lift the key onto the curve.
    """
    if not isinstance(value, str):
        return False
    text = value.strip()
    if len(text) != IDENTITY_KEY_LENGTH:
        return False
    if text != text.lower() and text != text.upper():
        return False
    text = text.lower()
    if not text.startswith(NPUB_HRP + "1"):
        return False
    if any(c not in BECH32_CHARSET for c in text[len(NPUB_HRP) + 1:]):
        return False
    hrp, _ = bech32_decode(text)
    return hrp == NPUB_HRP


# =============================================================================
# Private Keys
# =============================================================================

def decode_private_key(value: str, network: Network) -> bytes:
    """
    Decode an nsec or a WIF key into a 32-byte secret.

    nsec carries no network tag and is valid everywhere; WIF must match
    the network's version byte.

    Raises:
        InvalidKeyEncoding: Malformed encoding or out-of-range scalar.
        NetworkMismatch: WIF for another network.
    """
    if not isinstance(value, str):
        raise InvalidKeyEncoding("Expected an nsec or WIF string")
    text = value.strip()
    if text.lower().startswith(NSEC_HRP + "1"):
        secret = _decode_bech32_payload(text, NSEC_HRP)
        _check_scalar(secret)
        return secret

    try:
        payload = base58.decode_check(text)
    except Exception as e:
        raise InvalidKeyEncoding("Private key is neither an nsec nor a valid WIF") from e
    if len(payload) not in (33, 34) or (len(payload) == 34 and payload[-1] != 0x01):
        raise InvalidKeyEncoding("WIF payload has the wrong length")
    if payload[:1] != network.params["wif"]:
        raise NetworkMismatch(
            network.name,
            payload[:1].hex(),
            f"WIF key does not belong to {network.name}"
        )
    secret = payload[1:33]
    _check_scalar(secret)
    return secret


def encode_private_key(secret: bytes) -> str:
    """Encode a 32-byte secret as an nsec."""
    if len(secret) != 32:
        raise InvalidKeyEncoding("Private key must be 32 bytes")
    _check_scalar(secret)
    return bech32_encode(NSEC_HRP, convertbits(secret, 8, 5))


def derive_public_key(private_key: Union[str, bytes], network: Network = None) -> ec.PublicKey:
    """
    Derive the identity public key of a private key.

    The identity key is the even-Y point, so an nsec always maps to the
    same key as its npub.
    """
    if isinstance(private_key, str):
        if network is None and not private_key.strip().lower().startswith(NSEC_HRP + "1"):
            raise InvalidKeyEncoding("A network is required to decode a WIF key")
        private_key = decode_private_key(private_key, network)
    _check_scalar(private_key)
    point = ec.PrivateKey(private_key).get_public_key()
    return ec.PublicKey.parse(b"\x02" + point.xonly())


# =============================================================================
# Call-scoped signing key
# =============================================================================

class SigningKey:
    """
    Private key wrapper used for the duration of one signing call.

    SECURITY: no property exposes the secret; pickling is refused and the
    representation only shows a public key prefix.
    """

    __slots__ = ('_secret', '_public_key')

    def __init__(self, secret: bytes):
        _check_scalar(secret)
        self._secret = secret
        self._public_key = ec.PrivateKey(secret).get_public_key().sec()

    @classmethod
    def from_encoded(cls, value: str, network: Network) -> "SigningKey":
        """Create from an nsec or WIF string."""
        return cls(decode_private_key(value, network))

    @property
    def public_key(self) -> bytes:
        """Compressed public key of the secret as given (either parity)."""
        return self._public_key

    def for_script(self, script_keys: Iterable[bytes]) -> ec.PrivateKey:
        """
        Return the private key whose public key appears in script_keys.

        Identity keys are committed as their even-Y point, so an odd-Y
        secret signs with its negation.

        Raises:
            KeyNotInScript: Neither parity of the key is in the script.
        """
        keys = set(script_keys)
        if self._public_key in keys:
            return ec.PrivateKey(self._secret)
        negated = (CURVE_ORDER - int.from_bytes(self._secret, "big")).to_bytes(32, "big")
        candidate = ec.PrivateKey(negated)
        if candidate.get_public_key().sec() in keys:
            return candidate
        raise KeyNotInScript(self._public_key.hex())

    def __repr__(self) -> str:
        return f"SigningKey(public_key={self._public_key.hex()[:16]}...)"

    def __str__(self) -> str:
        return self.__repr__()

    def __getstate__(self):
        raise TypeError("SigningKey cannot be pickled (contains secret material)")

    def __reduce__(self):
        raise TypeError("SigningKey cannot be pickled (contains secret material)")
