"""
Tests for Signature Schemes

Tests ECDSA-secp256k1 and BLS12-381 adapters behind the common interface.
"""

import pytest
from crypto.scheme import SchemeIdentifier, SignatureScheme, get_scheme, ensure_same_scheme
from crypto.ecdsa import ECDSAScheme, CURVE_ORDER
from crypto.bls import BLSScheme, PUBLIC_KEY_SIZE, SIGNATURE_SIZE
from crypto.errors import (
    DeserializationError,
    SchemeMismatchError,
    SerializationError,
    UnsupportedSchemeError,
)


def flip_byte(data: bytes, index: int) -> bytes:
    tampered = bytearray(data)
    tampered[index] ^= 0x01
    return bytes(tampered)


class TestECDSAScheme:
    """Test ECDSA-secp256k1 adapter."""

    def test_generate_key_pair(self, ecdsa):
        """Should generate distinct key pairs with compressed public keys."""
        sk1, pk1 = ecdsa.generate_keypair()
        sk2, pk2 = ecdsa.generate_keypair()

        assert sk1 != sk2
        assert pk1 != pk2
        assert sk1.public_key() == pk1
        assert len(ecdsa.serialize_public_key(pk1)) == 33
        assert ecdsa.serialize_public_key(pk1)[0] in (0x02, 0x03)

    def test_sign_and_verify(self, ecdsa):
        """Signature should verify correctly."""
        sk, pk = ecdsa.generate_keypair()
        signature = ecdsa.sign(sk, b"test message to sign")

        assert ecdsa.verify(pk, b"test message to sign", signature) is True

    def test_empty_message(self, ecdsa):
        """Any byte string is a valid message, including the empty one."""
        sk, pk = ecdsa.generate_keypair()
        assert ecdsa.verify(pk, b"", ecdsa.sign(sk, b"")) is True

    def test_wrong_data_fails_verification(self, ecdsa):
        """Wrong data should fail verification."""
        sk, pk = ecdsa.generate_keypair()
        signature = ecdsa.sign(sk, b"original message")

        assert ecdsa.verify(pk, b"different message", signature) is False

    def test_wrong_key_fails_verification(self, ecdsa):
        """Another key's public key should not verify."""
        sk, _ = ecdsa.generate_keypair()
        _, other_pk = ecdsa.generate_keypair()
        signature = ecdsa.sign(sk, b"message")

        assert ecdsa.verify(other_pk, b"message", signature) is False

    def test_tampered_signature_fails(self, ecdsa):
        """Flipping the last byte keeps the DER valid but breaks the signature."""
        sk, pk = ecdsa.generate_keypair()
        data = ecdsa.serialize_signature(ecdsa.sign(sk, b"message"))

        tampered = ecdsa.deserialize_signature(flip_byte(data, len(data) - 1))
        assert ecdsa.verify(pk, b"message", tampered) is False

    def test_round_trip(self, ecdsa):
        """deserialize(serialize(x)) == x for keys and signatures."""
        sk, pk = ecdsa.generate_keypair()
        signature = ecdsa.sign(sk, b"hello")

        assert ecdsa.deserialize_private_key(ecdsa.serialize_private_key(sk)) == sk
        assert ecdsa.deserialize_public_key(ecdsa.serialize_public_key(pk)) == pk
        assert ecdsa.deserialize_signature(ecdsa.serialize_signature(signature)) == signature

    def test_restored_private_key_signs(self, ecdsa):
        """A restored private key should sign for the original public key."""
        sk, pk = ecdsa.generate_keypair()
        restored = ecdsa.deserialize_private_key(ecdsa.serialize_private_key(sk))

        assert ecdsa.verify(pk, b"data", ecdsa.sign(restored, b"data")) is True

    def test_private_key_length_rejected(self, ecdsa):
        with pytest.raises(DeserializationError, match="expected 32 bytes"):
            ecdsa.deserialize_private_key(b"\x01" * 31)

    def test_private_key_out_of_range_rejected(self, ecdsa):
        with pytest.raises(DeserializationError):
            ecdsa.deserialize_private_key(b"\x00" * 32)
        with pytest.raises(DeserializationError):
            ecdsa.deserialize_private_key(CURVE_ORDER.to_bytes(32, "big"))

    def test_uncompressed_public_key_rejected(self, ecdsa):
        """Only the compressed encoding is canonical."""
        with pytest.raises(DeserializationError):
            ecdsa.deserialize_public_key(b"\x04" + b"\x01" * 64)

    def test_off_curve_public_key_rejected(self, ecdsa):
        # x is larger than the field prime
        with pytest.raises(DeserializationError):
            ecdsa.deserialize_public_key(b"\x02" + b"\xff" * 32)

    def test_signature_trailing_bytes_rejected(self, ecdsa):
        sk, _ = ecdsa.generate_keypair()
        data = ecdsa.serialize_signature(ecdsa.sign(sk, b"message"))

        with pytest.raises(DeserializationError):
            ecdsa.deserialize_signature(data + b"\x00")

    def test_signature_garbage_rejected(self, ecdsa):
        with pytest.raises(DeserializationError):
            ecdsa.deserialize_signature(b"not a signature")

    def test_sign_does_not_mutate_key(self, ecdsa):
        sk, _ = ecdsa.generate_keypair()
        before = ecdsa.serialize_private_key(sk)
        ecdsa.sign(sk, b"message")

        assert ecdsa.serialize_private_key(sk) == before

    def test_message_must_be_bytes(self, ecdsa):
        sk, _ = ecdsa.generate_keypair()
        with pytest.raises(TypeError):
            ecdsa.sign(sk, "hello")


class TestBLSScheme:
    """Test BLS12-381 adapter."""

    def test_key_sizes(self, bls, bls_keypairs):
        sk, pk = bls_keypairs[0]

        assert len(bls.serialize_private_key(sk)) == 32
        assert len(bls.serialize_public_key(pk)) == PUBLIC_KEY_SIZE

    def test_sign_and_verify(self, bls, bls_keypairs, vote_signatures):
        """Signature should verify correctly."""
        _, pk = bls_keypairs[0]

        assert len(bls.serialize_signature(vote_signatures[0])) == SIGNATURE_SIZE
        assert bls.verify(pk, b"vote:yes", vote_signatures[0]) is True

    def test_signing_is_deterministic(self, bls, bls_keypairs, vote_signatures):
        sk, _ = bls_keypairs[0]
        assert bls.sign(sk, b"vote:yes") == vote_signatures[0]

    def test_wrong_data_fails_verification(self, bls, bls_keypairs, vote_signatures):
        _, pk = bls_keypairs[0]
        assert bls.verify(pk, b"vote:no", vote_signatures[0]) is False

    def test_wrong_key_fails_verification(self, bls, bls_keypairs, vote_signatures):
        _, other_pk = bls_keypairs[1]
        assert bls.verify(other_pk, b"vote:yes", vote_signatures[0]) is False

    def test_tampered_signature_fails(self, bls, bls_keypairs, vote_signatures):
        """A flipped byte is either rejected as malformed or fails verification."""
        _, pk = bls_keypairs[0]
        tampered = flip_byte(bls.serialize_signature(vote_signatures[0]), 50)

        try:
            signature = bls.deserialize_signature(tampered)
        except DeserializationError:
            return
        assert bls.verify(pk, b"vote:yes", signature) is False

    def test_round_trip(self, bls, bls_keypairs, vote_signatures):
        """deserialize(serialize(x)) == x for keys and signatures."""
        sk, pk = bls_keypairs[0]
        signature = vote_signatures[0]

        assert bls.deserialize_private_key(bls.serialize_private_key(sk)) == sk
        assert bls.deserialize_public_key(bls.serialize_public_key(pk)) == pk
        assert bls.deserialize_signature(bls.serialize_signature(signature)) == signature

    def test_public_key_length_rejected(self, bls, bls_keypairs):
        data = bls.serialize_public_key(bls_keypairs[0][1])
        with pytest.raises(DeserializationError, match="expected 48 bytes"):
            bls.deserialize_public_key(data[:-1])

    def test_identity_public_key_rejected(self, bls):
        """The compressed point at infinity is not a usable public key."""
        with pytest.raises(DeserializationError):
            bls.deserialize_public_key(b"\xc0" + b"\x00" * 47)

    def test_signature_length_rejected(self, bls, vote_signatures):
        data = bls.serialize_signature(vote_signatures[0])
        with pytest.raises(DeserializationError, match="expected 96 bytes"):
            bls.deserialize_signature(data + b"\x00")

    def test_private_key_out_of_range_rejected(self, bls):
        with pytest.raises(DeserializationError):
            bls.deserialize_private_key(b"\x00" * 32)
        with pytest.raises(DeserializationError):
            bls.deserialize_private_key(b"\xff" * 32)

    def test_malformed_bytes_in_verify_bytes(self, bls, bls_keypairs):
        pk_bytes = bls.serialize_public_key(bls_keypairs[0][1])
        with pytest.raises(DeserializationError):
            bls.verify_bytes(pk_bytes, b"vote:yes", b"\x00" * 96)


class TestSchemeIsolation:
    """Values of one scheme never pass for another."""

    def test_ecdsa_signature_fails_bls_deserializer(self, ecdsa, bls):
        sk, _ = ecdsa.generate_keypair()
        data = ecdsa.serialize_signature(ecdsa.sign(sk, b"hello"))

        with pytest.raises(DeserializationError):
            bls.deserialize_signature(data)

    def test_bls_signature_fails_ecdsa_deserializer(self, ecdsa, bls, vote_signatures):
        data = bls.serialize_signature(vote_signatures[0])

        with pytest.raises(DeserializationError):
            ecdsa.deserialize_signature(data)

    def test_public_keys_do_not_cross(self, ecdsa, bls, bls_keypairs):
        _, ecdsa_pk = ecdsa.generate_keypair()

        with pytest.raises(DeserializationError):
            bls.deserialize_public_key(ecdsa.serialize_public_key(ecdsa_pk))
        with pytest.raises(DeserializationError):
            ecdsa.deserialize_public_key(bls.serialize_public_key(bls_keypairs[0][1]))

    def test_foreign_values_rejected(self, ecdsa, bls, bls_keypairs):
        bls_sk, bls_pk = bls_keypairs[0]

        with pytest.raises(SerializationError):
            ecdsa.serialize_public_key(bls_pk)
        with pytest.raises(SchemeMismatchError):
            ecdsa.sign(bls_sk, b"hello")

    def test_ensure_same_scheme(self):
        ensure_same_scheme(SchemeIdentifier.BLS12_381, SchemeIdentifier.BLS12_381)

        with pytest.raises(SchemeMismatchError, match="mismatch"):
            ensure_same_scheme(
                SchemeIdentifier.ECDSA_SECP256K1,
                SchemeIdentifier.BLS12_381,
                key_name="alice",
            )


class TestGetScheme:
    """Test the scheme factory function."""

    def test_get_ecdsa_scheme(self):
        scheme = get_scheme(SchemeIdentifier.ECDSA_SECP256K1)

        assert isinstance(scheme, ECDSAScheme)
        assert isinstance(scheme, SignatureScheme)
        assert scheme.scheme_id == SchemeIdentifier.ECDSA_SECP256K1

    def test_get_scheme_by_string(self):
        assert isinstance(get_scheme("BLS12-381-min-pk"), BLSScheme)

    def test_aggregated_identifier_uses_bls(self):
        assert isinstance(get_scheme(SchemeIdentifier.BLS12_381_AGGREGATED), BLSScheme)

    def test_unknown_scheme(self):
        with pytest.raises(UnsupportedSchemeError):
            get_scheme("RSA-2048")

    def test_aliases(self):
        assert SchemeIdentifier.from_alias("ecdsa") == SchemeIdentifier.ECDSA_SECP256K1
        assert SchemeIdentifier.from_alias("BLS") == SchemeIdentifier.BLS12_381
        with pytest.raises(UnsupportedSchemeError):
            SchemeIdentifier.from_alias("ed25519")


class TestScenarios:
    """End-to-end flows through the common interface."""

    @pytest.mark.parametrize("identifier", [
        SchemeIdentifier.ECDSA_SECP256K1,
        SchemeIdentifier.BLS12_381,
    ])
    def test_sign_verify_through_bytes(self, identifier):
        """Serialized values verify after a full encode/decode cycle."""
        scheme = get_scheme(identifier)
        sk, pk = scheme.generate_keypair()
        signature = scheme.serialize_signature(scheme.sign(sk, b"hello"))
        pk_bytes = scheme.serialize_public_key(pk)

        assert scheme.verify_bytes(pk_bytes, b"hello", signature) is True
        assert scheme.verify_bytes(pk_bytes, b"hello!", signature) is False
