"""
SCROW - End-to-end escrow flows through the function-level interface.

Each party computes the address and unsigned transaction independently,
signs on its own, and one of them combines.
"""

import hashlib

import pytest
from embit import ec

from conftest import (
    KEY_A, KEY_B, KEY_C, COLLAB_ADDRESS_TESTNET, DISPUTE_ADDRESS_TESTNET,
    PUBKEY_1, NPUB_1, NSEC_1, PUBKEY_2, PUBKEY_3_IDENTITY, NSEC_3,
    FUNDING_TXID, DEST_A, DEST_B, TIMELOCK, ESCROW_AMOUNT, FEE,
)


def _check_witness_against_script(signed_hex, amount):
    """
    Verify the witness of input 0 the way OP_CHECKMULTISIG would: the last
    item is the witness script, the signatures verify in key order.
    """
    from scrow.core.scripts import ScriptBuilder
    from scrow.core.signer import Signer
    from scrow.core.transaction import decode_transaction
    from scrow.models import ScriptKind

    tx = decode_transaction(signed_hex)
    items = tx.vin[0].witness.items
    script = ScriptBuilder.parse(items[-1])
    assert items[0] == b""

    if script.kind is ScriptKind.COLLABORATIVE:
        keys = list(script.party_keys)
    elif items[3] == b"\x01":
        keys = list(script.party_keys)
    else:
        keys = list(script.all_keys)

    digest = Signer.sighash(tx, 0, script, amount)
    sigs = [items[1], items[2]]
    # Each signature must match a later key than the previous one
    position = 0
    for sig in sigs:
        signature = ec.Signature.parse(sig[:-1])
        while position < len(keys) and not ec.PublicKey.parse(keys[position]).verify(signature, digest):
            position += 1
        assert position < len(keys)
        position += 1
    return script


class TestAddresses:

    @pytest.mark.unit
    def test_collab_address_vector(self):
        from scrow import build_collab_address

        assert build_collab_address(KEY_A, KEY_B, "testnet4") == COLLAB_ADDRESS_TESTNET

    @pytest.mark.unit
    def test_collab_address_argument_order(self):
        """Test that swapping the keys gives the same address."""
        from scrow import build_collab_address

        assert build_collab_address(KEY_B, KEY_A, "testnet4") == COLLAB_ADDRESS_TESTNET
        assert build_collab_address(KEY_A, KEY_B, "signet") == build_collab_address(KEY_B, KEY_A, "signet")

    @pytest.mark.unit
    def test_dispute_address_vector(self):
        from scrow import build_dispute_address

        assert build_dispute_address(KEY_A, KEY_B, KEY_C, TIMELOCK, "testnet4") == DISPUTE_ADDRESS_TESTNET
        assert build_dispute_address(KEY_B, KEY_A, KEY_C, TIMELOCK, "testnet4") == DISPUTE_ADDRESS_TESTNET

    @pytest.mark.unit
    def test_address_commits_to_script(self):
        from scrow import build_collab_address, build_collab_script
        from scrow.core.transaction import check_address
        from scrow.config import TESTNET4

        address = build_collab_address(NPUB_1, PUBKEY_2, "testnet4")
        script = bytes.fromhex(build_collab_script(NPUB_1, PUBKEY_2))
        assert check_address(address, TESTNET4) == b"\x00\x20" + hashlib.sha256(script).digest()


class TestCollaborativeFlow:

    @pytest.mark.unit
    def test_round_trip(self, nsec_2):
        from scrow import build_collab_tx, build_collab_script, sign, combine_collab

        # Both parties build the same unsigned tx independently
        unsigned_a = build_collab_tx(NPUB_1, PUBKEY_2, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE, "testnet4")
        unsigned_b = build_collab_tx(PUBKEY_2, NPUB_1, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE, "testnet4")
        assert unsigned_a == unsigned_b

        script = build_collab_script(PUBKEY_2, NPUB_1)
        sig_a = sign(unsigned_a, 0, NSEC_1, ESCROW_AMOUNT, script, "testnet4")
        sig_b = sign(unsigned_b, 0, nsec_2, ESCROW_AMOUNT, script, "testnet4")

        signed = combine_collab(unsigned_a, 0, [sig_a, sig_b], [NPUB_1, PUBKEY_2], script, ESCROW_AMOUNT)
        _check_witness_against_script(signed, ESCROW_AMOUNT)

    @pytest.mark.unit
    def test_one_satoshi_tamper(self, nsec_2):
        """Test that signatures over one split do not combine into another."""
        from scrow import build_collab_tx, build_collab_script, sign, combine_collab
        from scrow.errors import SignatureMismatch

        script = build_collab_script(PUBKEY_1, PUBKEY_2)
        agreed = build_collab_tx(
            PUBKEY_1, PUBKEY_2, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE, "testnet4", amount_a=60_000
        )
        tampered = build_collab_tx(
            PUBKEY_1, PUBKEY_2, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE, "testnet4", amount_a=60_001
        )
        assert agreed != tampered

        sig_a = sign(agreed, 0, NSEC_1, ESCROW_AMOUNT, script, "testnet4")
        sig_b = sign(agreed, 0, nsec_2, ESCROW_AMOUNT, script, "testnet4")

        combine_collab(agreed, 0, [sig_a, sig_b], [PUBKEY_1, PUBKEY_2], script, ESCROW_AMOUNT)
        with pytest.raises(SignatureMismatch):
            combine_collab(tampered, 0, [sig_a, sig_b], [PUBKEY_1, PUBKEY_2], script, ESCROW_AMOUNT)

    @pytest.mark.unit
    def test_fee_underflow(self):
        from scrow import build_collab_tx
        from scrow.errors import AmountUnderflow

        with pytest.raises(AmountUnderflow):
            build_collab_tx(PUBKEY_1, PUBKEY_2, 1_000, DEST_A, DEST_B, FUNDING_TXID, 1_000, "testnet4")


class TestDisputeFlow:

    @pytest.mark.unit
    def test_parties_settle_before_timelock(self, nsec_2):
        from scrow import build_dispute_tx, build_dispute_script, sign, combine_dispute_collab
        from scrow.models import SpendingPath

        script = build_dispute_script(PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, TIMELOCK)
        unsigned = build_dispute_tx(
            PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE,
            TIMELOCK, "testnet4", path=SpendingPath.DISPUTE_COLLABORATIVE
        )
        sig_a = sign(unsigned, 0, NSEC_1, ESCROW_AMOUNT, script, "testnet4")
        sig_b = sign(unsigned, 0, nsec_2, ESCROW_AMOUNT, script, "testnet4")

        signed = combine_dispute_collab(unsigned, 0, [sig_b, sig_a], [PUBKEY_2, PUBKEY_1], script, ESCROW_AMOUNT)
        _check_witness_against_script(signed, ESCROW_AMOUNT)

    @pytest.mark.unit
    def test_arbiter_resolves_after_timelock(self):
        from scrow import build_dispute_tx, build_dispute_script, sign, combine_dispute_arbitrated
        from scrow.core.transaction import decode_transaction

        script = build_dispute_script(PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, TIMELOCK)
        unsigned = build_dispute_tx(
            PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE,
            TIMELOCK, "testnet4", amount_a=ESCROW_AMOUNT - FEE
        )
        sig_party = sign(unsigned, 0, NSEC_1, ESCROW_AMOUNT, script, "testnet4")
        sig_arbiter = sign(unsigned, 0, NSEC_3, ESCROW_AMOUNT, script, "testnet4")

        signed = combine_dispute_arbitrated(
            unsigned, 0, [sig_party, sig_arbiter], [PUBKEY_1, PUBKEY_3_IDENTITY], script, ESCROW_AMOUNT
        )
        _check_witness_against_script(signed, ESCROW_AMOUNT)

        tx = decode_transaction(signed)
        assert tx.vin[0].sequence == TIMELOCK
        assert len(tx.vout) == 1

    @pytest.mark.unit
    def test_arbitrated_needs_mature_sequence(self):
        """Test that signatures made without the timelock sequence are rejected."""
        from scrow import build_dispute_tx, build_dispute_script, sign, combine_dispute_arbitrated
        from scrow.models import SpendingPath
        from scrow.errors import SignatureMismatch

        script = build_dispute_script(PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, TIMELOCK)
        early = build_dispute_tx(
            PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE,
            TIMELOCK, "testnet4", path=SpendingPath.DISPUTE_COLLABORATIVE
        )
        sig_party = sign(early, 0, NSEC_1, ESCROW_AMOUNT, script, "testnet4")
        sig_arbiter = sign(early, 0, NSEC_3, ESCROW_AMOUNT, script, "testnet4")

        with pytest.raises(SignatureMismatch):
            combine_dispute_arbitrated(
                early, 0, [sig_party, sig_arbiter], [PUBKEY_1, PUBKEY_3_IDENTITY], script, ESCROW_AMOUNT
            )


class TestHelpers:

    @pytest.mark.unit
    def test_timelock_helpers(self):
        from scrow import hours_to_blocks, days_to_blocks

        assert hours_to_blocks(1, "mainnet") == 6
        assert days_to_blocks(1, "mainnet") == 144
        assert hours_to_blocks(1, "mutinynet") == 120

    @pytest.mark.unit
    def test_validate_identity_key(self):
        from scrow import validate_identity_key

        assert validate_identity_key(NPUB_1)
        assert not validate_identity_key(NSEC_1)

    @pytest.mark.unit
    def test_engine_logs_operations(self):
        from scrow import EscrowEngine
        from scrow.logging import create_callback_logger

        entries = []
        engine = EscrowEngine("testnet4", logger=create_callback_logger(entries.append, "scrow-test-engine"))
        engine.build_collab_address(KEY_A, KEY_B)

        assert entries[-1]["message"] == "Completed build_collab_address"
        assert entries[-1]["details"]["address"] == COLLAB_ADDRESS_TESTNET
        assert entries[-1]["details"]["network"] == "Testnet4"

        engine.build_collab_tx(KEY_A, KEY_B, ESCROW_AMOUNT, DEST_A, DEST_B, FUNDING_TXID, FEE, amount_a=70_000)
        assert entries[-1]["details"]["payout_a"] == 70_000
        assert entries[-1]["details"]["payout_b"] == ESCROW_AMOUNT - FEE - 70_000
