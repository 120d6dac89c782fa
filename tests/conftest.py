"""
SCROW Test Configuration

Shared fixtures and test vectors.
"""

import pytest
from unittest.mock import Mock
from pathlib import Path
import sys

# Ensure scrow is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from scrow.config import MAINNET, TESTNET4, MUTINYNET
from scrow.models import TransactionResult


# =============================================================================
# Test Keys (DO NOT USE IN PRODUCTION)
# =============================================================================

# Script vectors (public keys only)
KEY_A = "038f47dcd43ba6d97fc9ed2e3bba09b175a45fac55f0683e8cf771e8ced4572354"
KEY_B = "028bde91b10013e08949a318018fedbd896534a549a278e220169ee2a36517c7aa"
KEY_C = "032b8324c93575034047a52e9bca05a46d8347046b91a032eff07d5de8d3f2730b"

COLLAB_ADDRESS_TESTNET = "tb1q256vxujwapp655r3cdk30aq3unxacln2hmq2qtfyyd92ntu6yeasfknjse"
DISPUTE_ADDRESS_TESTNET = "tb1q2g57akwgzmhmrrfseafr3nre4fs0l0a7hsf7nsj3wqeltcqehycskvfxtr"

# Signing vectors
SECRET_1 = "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"
PUBKEY_1 = "027e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"
NPUB_1 = "npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg"
NSEC_1 = "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"

SECRET_2 = "30e8a8ea9f4402731d43ebc0aa34bb2812d5f255324e1fc6773a87f40af50aa4"
PUBKEY_2 = "021e0081633de90cc312d507416a6f1f056980cfb131b3ae64a0c953017f0f494f"

# Odd-Y secret: its identity (npub) key is the even-Y point
SECRET_3 = "7c77a37bb1d16c5a0eeb6ce8ea6cd06850400473241ab65f3adbf29a1b822b75"
PUBKEY_3 = "032d7b3d8028c474251676708ec41f12100685b200ccbb394e5e782d73b233a8eb"
PUBKEY_3_IDENTITY = "022d7b3d8028c474251676708ec41f12100685b200ccbb394e5e782d73b233a8eb"
NSEC_3 = "nsec103m6x7a369k95rhtdn5w5mxsdpgyqprnysdtvhe6m0ef5xuz9d6s6emzda"

FUNDING_TXID = "bf8053a5db5b9d64b9ae49569ddd84c476f711e2971ed519eea777525acc8f09"
DEST_A = "tb1q8tpam3snku72xz9sx3rxerrcqmqd2ljdq95k8j"
DEST_B = "tb1qnvcs444fr6tr56zy9tjqz6mw2whgs9f76gpt2hkw3fjwh4twlzhsc3lukl"

ESCROW_AMOUNT = 100_000
FEE = 1_000
TIMELOCK = 100


def to_nsec(secret_hex: str) -> str:
    from scrow.core.keys import encode_private_key
    return encode_private_key(bytes.fromhex(secret_hex))


def to_wif(secret_hex: str, version: bytes) -> str:
    from embit import base58
    return base58.encode_check(version + bytes.fromhex(secret_hex) + b"\x01")


def mainnet_address() -> str:
    from embit.networks import NETWORKS
    from embit.script import Script
    return Script(b"\x00\x14" + b"\x11" * 20).address(NETWORKS["main"])


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def testnet():
    return TESTNET4


@pytest.fixture
def mainnet():
    return MAINNET


@pytest.fixture
def mutinynet():
    return MUTINYNET


@pytest.fixture
def nsec_1():
    return NSEC_1


@pytest.fixture
def nsec_2():
    return to_nsec(SECRET_2)


@pytest.fixture
def nsec_3():
    return NSEC_3


@pytest.fixture
def engine(testnet):
    """EscrowEngine on Testnet4 with a quiet logger."""
    from scrow import EscrowEngine
    from scrow.logging import StructuredLogger
    import logging

    quiet = logging.getLogger("scrow-tests")
    quiet.addHandler(logging.NullHandler())
    quiet.propagate = False
    return EscrowEngine(testnet, logger=StructuredLogger(component="scrow-tests", logger=quiet))


@pytest.fixture
def collab_escrow(engine):
    return engine.build_collab_address(PUBKEY_1, PUBKEY_2)


@pytest.fixture
def dispute_escrow(engine):
    """Parties 1 and 2, arbiter is the identity key of the odd-Y secret."""
    return engine.build_dispute_address(PUBKEY_1, PUBKEY_2, PUBKEY_3_IDENTITY, TIMELOCK)


@pytest.fixture
def mock_api():
    """Mock EsploraAPI for isolated testing."""
    api = Mock()
    api.get_fee_recommendations.return_value = {
        "fastestFee": 20.0,
        "halfHourFee": 12.0,
        "hourFee": 8.0,
        "economyFee": 4.0,
        "minimumFee": 1.0,
    }
    api.broadcast.return_value = TransactionResult(success=True, txid="b" * 64)
    return api


# =============================================================================
# Marker Helpers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (mocked services)")
    config.addinivalue_line("markers", "security: Security-focused tests")
