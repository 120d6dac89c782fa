#!/usr/bin/env python3
"""
SCROW - Usage Example

Walks through a dispute escrow on signet: three fresh identities, the
escrow address, a fee estimate, and both ways of releasing the funds.
Nothing is broadcast; the funding txid is a placeholder.
"""

import os
import secrets

from embit import ec
from embit.script import p2wpkh

from scrow import EscrowEngine, EscrowConfig, FeeEstimator, SpendingPath
from scrow.core.keys import encode_private_key, encode_public_key, derive_public_key


def new_identity():
    secret = secrets.token_bytes(32)
    return encode_private_key(secret), encode_public_key(derive_public_key(secret))


def payout_address(network):
    key = ec.PrivateKey(secrets.token_bytes(32)).get_public_key()
    return p2wpkh(key).address(network.params)


def main():
    print("=" * 60)
    print("SCROW Example")
    print("=" * 60)

    config = EscrowConfig.from_env() if os.environ.get("SCROW_NETWORK") else EscrowConfig(network="signet")
    engine = EscrowEngine(config.network)
    print(f"Network: {config.network.name}")

    nsec_a, npub_a = new_identity()
    nsec_b, npub_b = new_identity()
    nsec_arbiter, npub_arbiter = new_identity()
    timelock = engine.days_to_blocks(1)

    print("\n=== Escrow Address ===")
    escrow = engine.build_dispute_address(npub_a, npub_b, npub_arbiter, timelock)
    print(f"Address:  {escrow.address}")
    print(f"Timelock: {timelock} blocks")
    print(f"Script:   {escrow.script.hex[:40]}...")

    print(f"\n=== Fee Estimate ({config.fee_priority.value}, offline defaults) ===")
    estimator = FeeEstimator.from_config(config, online=False)
    estimate = estimator.estimate(escrow.script, SpendingPath.DISPUTE_COLLABORATIVE)
    print(f"{estimate.vbytes} vB at {estimate.sat_per_vbyte} sat/vB = {estimate.total_sats} sats")

    amount = 100_000
    funding_txid = "00" * 32
    dest_a = payout_address(config.network)
    dest_b = payout_address(config.network)

    print("\n=== Parties Settle ===")
    unsigned = engine.build_dispute_tx(
        npub_a, npub_b, npub_arbiter, amount, dest_a, dest_b, funding_txid,
        estimate.total_sats, timelock, path=SpendingPath.DISPUTE_COLLABORATIVE
    )
    sig_a = engine.sign(unsigned, 0, nsec_a, amount, escrow.script)
    sig_b = engine.sign(unsigned, 0, nsec_b, amount, escrow.script)
    signed = engine.combine_dispute_collab(
        unsigned, 0, [sig_a.to_hex(), sig_b.to_hex()], [npub_a, npub_b], escrow.script, amount
    )
    print(f"TXID: {signed.txid}")

    print("\n=== Arbiter Resolves for A ===")
    unsigned = engine.build_dispute_tx(
        npub_a, npub_b, npub_arbiter, amount, dest_a, dest_b, funding_txid,
        estimate.total_sats, timelock, amount_a=amount - estimate.total_sats
    )
    sig_a = engine.sign(unsigned, 0, nsec_a, amount, escrow.script)
    sig_arbiter = engine.sign(unsigned, 0, nsec_arbiter, amount, escrow.script)
    signed = engine.combine_dispute_arbitrated(
        unsigned, 0, [sig_a, sig_arbiter], [npub_a, npub_arbiter], escrow.script, amount
    )
    print(f"TXID: {signed.txid}")
    print(f"Valid after {timelock} confirmations of the funding transaction")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
