"""
Unit tests for the key codec and SigningKey.
"""

import pytest
import pickle

from bech32 import bech32_encode, convertbits

from conftest import (
    SECRET_1, PUBKEY_1, NPUB_1, NSEC_1, SECRET_2, PUBKEY_2,
    SECRET_3, PUBKEY_3, PUBKEY_3_IDENTITY, NSEC_3, to_wif,
)


class TestPublicKeyDecoding:
    """npub and hex public key decoding."""

    @pytest.mark.unit
    def test_npub_decodes_to_even_y_key(self):
        """Test that an npub decodes to 02 || x."""
        from scrow.core.keys import decode_public_key

        assert decode_public_key(NPUB_1).sec().hex() == PUBKEY_1

    @pytest.mark.unit
    def test_npub_xonly_payload(self):
        """Test the x-only payload of a second npub."""
        from scrow.core.keys import decode_public_key

        key = decode_public_key("npub1tv7hxxwtw4gcz4n6fpduads7lsmynh5pjedgfhvdctnulrz9rsksjx28xe")
        assert key.xonly().hex() == "5b3d7319cb755181567a485bceb61efc3649de81965a84dd8dc2e7cf8c451c2d"

    @pytest.mark.unit
    def test_encode_public_key_matches_npub(self):
        """Test that encoding the key gives back the npub."""
        from scrow.core.keys import encode_public_key

        assert encode_public_key(PUBKEY_1) == NPUB_1

    @pytest.mark.unit
    def test_bad_checksum_rejected(self):
        """Test that a corrupted checksum is rejected."""
        from scrow.core.keys import decode_public_key
        from scrow.errors import InvalidKeyEncoding

        corrupted = NPUB_1[:-1] + ("q" if NPUB_1[-1] != "q" else "p")
        with pytest.raises(InvalidKeyEncoding):
            decode_public_key(corrupted)

    @pytest.mark.unit
    def test_wrong_prefix_rejected(self):
        """Test that an nsec is not accepted as a public key."""
        from scrow.core.keys import decode_public_key
        from scrow.errors import InvalidKeyEncoding

        with pytest.raises(InvalidKeyEncoding):
            decode_public_key(NSEC_1)

    @pytest.mark.unit
    def test_short_payload_rejected(self):
        """Test that a 31-byte payload is not padded."""
        from scrow.core.keys import decode_public_key
        from scrow.errors import InvalidKeyEncoding

        short = bech32_encode("npub", convertbits(b"\x01" * 31, 8, 5))
        with pytest.raises(InvalidKeyEncoding):
            decode_public_key(short)

    @pytest.mark.unit
    def test_parse_public_key_accepts_hex_and_npub(self):
        """Test that hex and npub forms of one key agree."""
        from scrow.core.keys import parse_public_key

        assert parse_public_key(PUBKEY_1).sec() == parse_public_key(NPUB_1).sec()
        assert parse_public_key(bytes.fromhex(PUBKEY_3)).sec().hex() == PUBKEY_3

    @pytest.mark.unit
    def test_parse_public_key_rejects_uncompressed_length(self):
        """Test that only 33-byte keys are accepted."""
        from scrow.core.keys import parse_public_key
        from scrow.errors import InvalidKeyEncoding

        with pytest.raises(InvalidKeyEncoding):
            parse_public_key("04" + "11" * 64)
        with pytest.raises(InvalidKeyEncoding):
            parse_public_key("not a key")


class TestIdentityKeyValidation:
    """Cheap npub syntax check."""

    @pytest.mark.unit
    def test_valid_npubs(self):
        from scrow.core.keys import validate_identity_key

        assert validate_identity_key(NPUB_1)
        assert validate_identity_key("npub1tv7hxxwtw4gcz4n6fpduads7lsmynh5pjedgfhvdctnulrz9rsksjx28xe")
        assert validate_identity_key(NPUB_1.upper())

    @pytest.mark.unit
    def test_invalid_npubs(self):
        from scrow.core.keys import validate_identity_key

        assert not validate_identity_key("")
        assert not validate_identity_key(NSEC_1)
        assert not validate_identity_key(NPUB_1[:-1])
        assert not validate_identity_key(NPUB_1[:-1] + ("q" if NPUB_1[-1] != "q" else "p"))
        assert not validate_identity_key(NPUB_1[:10] + "b" + NPUB_1[11:])
        assert not validate_identity_key(None)


class TestPrivateKeyDecoding:
    """nsec and WIF decoding."""

    @pytest.mark.unit
    def test_nsec_vectors(self, mainnet):
        """Test known nsec vectors."""
        from scrow.core.keys import decode_private_key

        assert decode_private_key(NSEC_1, mainnet).hex() == SECRET_1
        assert decode_private_key(NSEC_3, mainnet).hex() == SECRET_3
        assert decode_private_key(
            "nsec1ezmlpxvhhjnqt9wf60tmshkye7xlwsf37dl0qlmrjuxeq7p3zahs2tukgx", mainnet
        ).hex() == "c8b7f09997bca60595c9d3d7b85ec4cf8df74131f37ef07f63970d907831176f"

    @pytest.mark.unit
    def test_nsec_is_network_independent(self, mainnet, testnet, mutinynet):
        from scrow.core.keys import decode_private_key

        assert decode_private_key(NSEC_1, mainnet) == decode_private_key(NSEC_1, testnet)
        assert decode_private_key(NSEC_1, mutinynet).hex() == SECRET_1

    @pytest.mark.unit
    def test_encode_private_key_roundtrip(self, mainnet):
        from scrow.core.keys import encode_private_key

        assert encode_private_key(bytes.fromhex(SECRET_1)) == NSEC_1

    @pytest.mark.unit
    def test_wif_for_matching_network(self, testnet):
        """Test that a testnet WIF decodes on Testnet4."""
        from scrow.core.keys import decode_private_key

        wif = to_wif(SECRET_2, testnet.params["wif"])
        assert decode_private_key(wif, testnet).hex() == SECRET_2

    @pytest.mark.unit
    def test_wif_for_other_network(self, mainnet, testnet):
        """Test that a mainnet WIF is refused on Testnet4."""
        from scrow.core.keys import decode_private_key
        from scrow.errors import NetworkMismatch

        wif = to_wif(SECRET_2, mainnet.params["wif"])
        with pytest.raises(NetworkMismatch):
            decode_private_key(wif, testnet)

    @pytest.mark.unit
    def test_garbage_private_key(self, testnet):
        from scrow.core.keys import decode_private_key
        from scrow.errors import InvalidKeyEncoding

        with pytest.raises(InvalidKeyEncoding):
            decode_private_key("definitely-not-a-key", testnet)

    @pytest.mark.unit
    def test_zero_scalar_rejected(self, testnet):
        """Test that an all-zero nsec is rejected."""
        from scrow.core.keys import decode_private_key
        from scrow.errors import InvalidKeyEncoding

        zero = bech32_encode("nsec", convertbits(b"\x00" * 32, 8, 5))
        with pytest.raises(InvalidKeyEncoding):
            decode_private_key(zero, testnet)


class TestPublicKeyDerivation:
    """Identity key derivation."""

    @pytest.mark.unit
    def test_even_key(self):
        from scrow.core.keys import derive_public_key

        assert derive_public_key(bytes.fromhex(SECRET_1)).sec().hex() == PUBKEY_1
        assert derive_public_key(bytes.fromhex(SECRET_2)).sec().hex() == PUBKEY_2

    @pytest.mark.unit
    def test_odd_key_maps_to_even_identity(self):
        """Test that an odd-Y secret derives its even-Y identity key."""
        from scrow.core.keys import derive_public_key

        assert derive_public_key(NSEC_3).sec().hex() == PUBKEY_3_IDENTITY

    @pytest.mark.unit
    def test_private_key_one(self):
        from scrow.core.keys import derive_public_key

        secret = (1).to_bytes(32, "big")
        assert derive_public_key(secret).sec().hex() == (
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )


class TestSigningKey:
    """Call-scoped signing key."""

    @pytest.mark.unit
    def test_public_key_keeps_parity(self):
        from scrow.core.keys import SigningKey

        assert SigningKey(bytes.fromhex(SECRET_3)).public_key.hex() == PUBKEY_3

    @pytest.mark.unit
    def test_for_script_uses_actual_key(self):
        from scrow.core.keys import SigningKey

        key = SigningKey(bytes.fromhex(SECRET_3)).for_script([bytes.fromhex(PUBKEY_3)])
        assert key.get_public_key().sec().hex() == PUBKEY_3

    @pytest.mark.unit
    def test_for_script_negates_for_identity_key(self):
        """Test that an odd-Y secret signs for its even-Y identity key."""
        from scrow.core.keys import SigningKey

        key = SigningKey(bytes.fromhex(SECRET_3)).for_script([bytes.fromhex(PUBKEY_3_IDENTITY)])
        assert key.get_public_key().sec().hex() == PUBKEY_3_IDENTITY

    @pytest.mark.unit
    def test_for_script_unknown_key(self):
        from scrow.core.keys import SigningKey
        from scrow.errors import KeyNotInScript

        with pytest.raises(KeyNotInScript):
            SigningKey(bytes.fromhex(SECRET_1)).for_script([bytes.fromhex(PUBKEY_2)])


class TestSigningKeySecurity:
    """Security: private material must not leak."""

    @pytest.mark.security
    def test_cannot_pickle(self):
        """Test that SigningKey refuses pickling."""
        from scrow.core.keys import SigningKey

        key = SigningKey(bytes.fromhex(SECRET_1))
        with pytest.raises(TypeError):
            pickle.dumps(key)

    @pytest.mark.security
    def test_repr_hides_secret(self):
        from scrow.core.keys import SigningKey

        key = SigningKey(bytes.fromhex(SECRET_1))
        assert SECRET_1 not in repr(key)
        assert SECRET_1 not in str(key)
        assert "SigningKey" in repr(key)

    @pytest.mark.security
    def test_no_instance_dict(self):
        from scrow.core.keys import SigningKey

        key = SigningKey(bytes.fromhex(SECRET_1))
        assert not hasattr(key, "__dict__")
