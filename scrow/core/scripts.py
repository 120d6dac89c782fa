"""
SCROW - Script Builder

Builds the collaborative and dispute witness scripts, parses them back,
and derives their P2WSH addresses.

Collaborative:
    OP_2 <k0> <k1> OP_2 OP_CHECKMULTISIG

Dispute:
    OP_IF
        OP_2 <p0> <p1> OP_2 OP_CHECKMULTISIG
    OP_ELSE
        OP_2 <s0> <s1> <s2> OP_3 OP_CHECKMULTISIG
        <timelock> OP_CHECKSEQUENCEVERIFY OP_DROP
    OP_ENDIF

Keys inside each multisig are sorted by their compressed SEC bytes, so
both parties derive the same script whatever order they pass keys in.
"""

from typing import List, Sequence

from embit import ec
from embit.script import multisig

from ..config import Network
from ..constants import (
    OP_1, OP_2, OP_16, OP_IF, OP_ELSE, OP_ENDIF, OP_DROP,
    OP_CHECKSEQUENCEVERIFY,
    MIN_TIMELOCK_BLOCKS, MAX_TIMELOCK_BLOCKS,
)
from ..errors import (
    InvalidKeyCount, TimelockOutOfRange, InvalidScript, KeyNotInScript, InvalidKeyEncoding,
)
from ..models import LockingScript, ScriptKind, EscrowAddress
from .keys import parse_public_key, PublicKeyLike


COLLAB_SCRIPT_SIZE = 71


def sort_public_keys(keys: Sequence[PublicKeyLike]) -> List[bytes]:
    """Canonical key order: ascending compressed SEC bytes."""
    return sorted(parse_public_key(k).sec() for k in keys)


def push_script_number(n: int) -> bytes:
    """Minimal push of a positive script number (OP_1..OP_16 for small values)."""
    if 1 <= n <= 16:
        return bytes([OP_1 - 1 + n])
    data = n.to_bytes((n.bit_length() + 7) // 8, "little")
    if data[-1] & 0x80:
        data += b"\x00"
    return bytes([len(data)]) + data


def _multisig(threshold: int, keys: Sequence[bytes]) -> bytes:
    return multisig(threshold, [ec.PublicKey.parse(k) for k in keys]).data


def _check_distinct(keys: Sequence[bytes], expected: int) -> None:
    if len(set(keys)) != expected:
        raise InvalidKeyCount(expected, len(set(keys)))


def _check_timelock(blocks) -> None:
    if not isinstance(blocks, int) or isinstance(blocks, bool):
        raise TimelockOutOfRange(blocks, f"Timelock must be an integer block count, got {blocks!r}")
    if not MIN_TIMELOCK_BLOCKS <= blocks <= MAX_TIMELOCK_BLOCKS:
        raise TimelockOutOfRange(
            blocks,
            f"Timelock must be between {MIN_TIMELOCK_BLOCKS} and {MAX_TIMELOCK_BLOCKS} blocks, got {blocks}"
        )


class ScriptBuilder:
    """
    Builds escrow locking scripts.

    Stateless; every method is a pure function of its arguments.
    """

    @staticmethod
    def collaborative(keys: Sequence[PublicKeyLike]) -> LockingScript:
        """
        2-of-2 between the two parties.

        Raises:
            InvalidKeyCount: Not exactly two distinct keys.
        """
        if len(keys) != 2:
            raise InvalidKeyCount(2, len(keys))
        sorted_keys = sort_public_keys(keys)
        _check_distinct(sorted_keys, 2)
        return LockingScript(
            kind=ScriptKind.COLLABORATIVE,
            party_keys=tuple(sorted_keys),
            raw=_multisig(2, sorted_keys),
        )

    @staticmethod
    def dispute(
        party_keys: Sequence[PublicKeyLike],
        arbiter_key: PublicKeyLike,
        timelock_blocks: int
    ) -> LockingScript:
        """
        Two-branch dispute script.

        Args:
            party_keys: The two participant keys (any order).
            arbiter_key: Arbiter key, usable only after the timelock.
            timelock_blocks: Relative timelock in blocks (1..65535).

        Raises:
            InvalidKeyCount: Not two party keys, or any key repeated.
            TimelockOutOfRange: Timelock outside 1..65535.
        """
        if len(party_keys) != 2:
            raise InvalidKeyCount(2, len(party_keys))
        _check_timelock(timelock_blocks)

        parties = sort_public_keys(party_keys)
        arbiter = parse_public_key(arbiter_key).sec()
        everyone = sorted(parties + [arbiter])
        _check_distinct(everyone, 3)

        raw = (
            bytes([OP_IF])
            + _multisig(2, parties)
            + bytes([OP_ELSE])
            + _multisig(2, everyone)
            + push_script_number(timelock_blocks)
            + bytes([OP_CHECKSEQUENCEVERIFY, OP_DROP, OP_ENDIF])
        )
        return LockingScript(
            kind=ScriptKind.DISPUTE,
            party_keys=tuple(parties),
            raw=raw,
            arbiter_key=arbiter,
            timelock_blocks=timelock_blocks,
        )

    @staticmethod
    def address(script: LockingScript, network: Network) -> EscrowAddress:
        """witness script -> SHA-256 -> bech32 segwit v0 address."""
        return EscrowAddress(
            script=script,
            witness_program=script.witness_program,
            address=script.address(network),
            network=network,
        )

    @classmethod
    def parse(cls, raw) -> LockingScript:
        """
        Recover a LockingScript from its serialized form (bytes or hex).

        Only accepts scripts that re-serialize byte-identically.

        Raises:
            InvalidScript: Not one of the escrow script variants.
        """
        if isinstance(raw, LockingScript):
            return raw
        if isinstance(raw, str):
            try:
                raw = bytes.fromhex(raw)
            except ValueError:
                raise InvalidScript("Locking script is not valid hex")
        if not raw:
            raise InvalidScript("Locking script is empty")

        try:
            if raw[0] == OP_2 and len(raw) == COLLAB_SCRIPT_SIZE:
                rebuilt = cls.collaborative([raw[2:35], raw[36:69]])
            elif raw[0] == OP_IF:
                parties = [raw[3:36], raw[37:70]]
                everyone = [raw[75:108], raw[109:142], raw[143:176]]
                arbiters = [k for k in everyone if k not in parties]
                if len(arbiters) != 1:
                    raise InvalidScript("Dispute script does not name exactly one arbiter")
                rebuilt = cls.dispute(parties, arbiters[0], cls._read_timelock(raw, 178))
            else:
                raise InvalidScript("Unknown locking script template")
        except InvalidScript:
            raise
        except (InvalidKeyCount, TimelockOutOfRange, IndexError, ValueError) as e:
            raise InvalidScript(f"Malformed locking script: {e}")
        except InvalidKeyEncoding as e:
            raise InvalidScript(f"Locking script holds an invalid key: {e}")

        if rebuilt.raw != raw:
            raise InvalidScript("Locking script does not match the escrow template")
        return rebuilt

    @staticmethod
    def _read_timelock(raw: bytes, offset: int) -> int:
        op = raw[offset]
        if OP_1 <= op <= OP_16:
            return op - OP_1 + 1
        if not 1 <= op <= 3:
            raise InvalidScript("Timelock push is not a minimal script number")
        return int.from_bytes(raw[offset + 1:offset + 1 + op], "little")

    @staticmethod
    def key_position(script: LockingScript, key: bytes, arbitrated: bool = False) -> int:
        """
        Index of a key in the multisig being satisfied.

        Args:
            arbitrated: Look in the timelocked (three-key) branch instead of
                the parties' branch.

        Raises:
            KeyNotInScript: Key is not in that branch.
        """
        keys = script.all_keys if arbitrated else script.party_keys
        try:
            return list(keys).index(key)
        except ValueError:
            raise KeyNotInScript(key.hex())


# Convenience functions

def build_collaborative_script(key_a: PublicKeyLike, key_b: PublicKeyLike) -> LockingScript:
    return ScriptBuilder.collaborative([key_a, key_b])


def build_dispute_script(
    key_a: PublicKeyLike,
    key_b: PublicKeyLike,
    arbiter_key: PublicKeyLike,
    timelock_blocks: int
) -> LockingScript:
    return ScriptBuilder.dispute([key_a, key_b], arbiter_key, timelock_blocks)
