"""
SCROW - Constants

Centralized protocol constants for the escrow engine.
"""

# =============================================================================
# Transaction Fields
# =============================================================================

# Relative timelocks (BIP-68) need version 2
TX_VERSION = 2
TX_LOCKTIME = 0

# Final sequence: no relative timelock on the input
SEQUENCE_FINAL = 0xFFFFFFFF

# Funding output index by protocol convention
FUNDING_VOUT = 0

SIGHASH_ALL = 0x01


# =============================================================================
# Timelocks
# =============================================================================

# BIP-68 block-based relative locks use the low 16 bits of the sequence
MIN_TIMELOCK_BLOCKS = 1
MAX_TIMELOCK_BLOCKS = 0xFFFF

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


# =============================================================================
# Script Opcodes
# =============================================================================

OP_1 = 0x51
OP_2 = 0x52
OP_16 = 0x60
OP_IF = 0x63
OP_ELSE = 0x67
OP_ENDIF = 0x68
OP_DROP = 0x75
OP_CHECKSEQUENCEVERIFY = 0xB2

# Branch selectors pushed in the dispute witness
DISPUTE_COLLAB_SELECTOR = b"\x01"
DISPUTE_ARBITRATED_SELECTOR = b""


# =============================================================================
# Identity Key Encodings
# =============================================================================

NPUB_HRP = "npub"
NSEC_HRP = "nsec"

# hrp + "1" + 52 data chars + 6 checksum chars
IDENTITY_KEY_LENGTH = 63

BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

# secp256k1 group order
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


# =============================================================================
# Fees
# =============================================================================

# Worst-case DER signature plus sighash byte
MAX_SIGNATURE_SIZE = 72

# Minimum relay fee rate (sat/vbyte)
MIN_RELAY_FEE_RATE = 1.0


# =============================================================================
# Network URLs
# =============================================================================

MAINNET_API_URL = "https://mempool.space/api"
TESTNET4_API_URL = "https://mempool.space/testnet4/api"
SIGNET_API_URL = "https://mempool.space/signet/api"
MUTINYNET_API_URL = "https://mutinynet.com/api"

MAINNET_EXPLORER_URL = "https://mempool.space"
TESTNET4_EXPLORER_URL = "https://mempool.space/testnet4"
SIGNET_EXPLORER_URL = "https://mempool.space/signet"
MUTINYNET_EXPLORER_URL = "https://mutinynet.com"
