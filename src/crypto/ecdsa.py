"""
ECDSA over secp256k1

Delegates all curve arithmetic to the cryptography library. Encodings:
- private key: 32-byte big-endian scalar
- public key: 33-byte SEC1 compressed point
- signature: strict DER SEQUENCE { r, s }
"""

from dataclasses import dataclass
from typing import Tuple
import structlog

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from .errors import (
    DeserializationError,
    KeyGenerationError,
    SchemeMismatchError,
    SigningError,
)
from .scheme import SchemeIdentifier, SignatureScheme, require_message

logger = structlog.get_logger()

# Order of the secp256k1 base point
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
PRIVATE_KEY_SIZE = 32
PUBLIC_KEY_SIZE = 33


class ECDSAPrivateKey:
    """secp256k1 private key. Equal keys have equal scalars."""

    __slots__ = ("_key",)

    def __init__(self, key: ec.EllipticCurvePrivateKey):
        self._key = key

    @property
    def secret(self) -> int:
        return self._key.private_numbers().private_value

    def public_key(self) -> "ECDSAPublicKey":
        return ECDSAPublicKey(self._key.public_key())

    def __eq__(self, other) -> bool:
        if not isinstance(other, ECDSAPrivateKey):
            return NotImplemented
        return self.secret == other.secret

    def __hash__(self) -> int:
        return hash(self.secret)

    def __repr__(self) -> str:
        return "ECDSAPrivateKey(<redacted>)"


class ECDSAPublicKey:
    """secp256k1 public key. Equal keys have equal compressed encodings."""

    __slots__ = ("_key",)

    def __init__(self, key: ec.EllipticCurvePublicKey):
        self._key = key

    def to_bytes(self) -> bytes:
        return self._key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.CompressedPoint,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, ECDSAPublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"ECDSAPublicKey({self.to_bytes().hex()})"


@dataclass(frozen=True)
class ECDSASignature:
    """An ECDSA signature as its (r, s) integer pair."""
    r: int
    s: int


class ECDSAScheme(SignatureScheme):
    """ECDSA-secp256k1 with SHA-256 message hashing."""

    _CURVE = ec.SECP256K1()
    _HASH = hashes.SHA256

    @property
    def scheme_id(self) -> SchemeIdentifier:
        return SchemeIdentifier.ECDSA_SECP256K1

    def generate_keypair(self) -> Tuple[ECDSAPrivateKey, ECDSAPublicKey]:
        try:
            key = ec.generate_private_key(self._CURVE)
        except Exception as e:
            raise KeyGenerationError(
                f"Failed to generate ECDSA key: {e}",
                scheme=self.scheme_id,
                operation="keygen",
            ) from e

        private_key = ECDSAPrivateKey(key)
        return private_key, private_key.public_key()

    def sign(self, private_key: ECDSAPrivateKey, message: bytes) -> ECDSASignature:
        message = require_message(message)
        self._check_type(private_key, ECDSAPrivateKey, "sign", SchemeMismatchError)

        try:
            der = private_key._key.sign(message, ec.ECDSA(self._HASH()))
            r, s = decode_dss_signature(der)
        except Exception as e:
            raise SigningError(
                f"ECDSA signing failed: {e}",
                scheme=self.scheme_id,
                operation="sign",
            ) from e

        return ECDSASignature(r=r, s=s)

    def verify(self, public_key: ECDSAPublicKey, message: bytes, signature: ECDSASignature) -> bool:
        message = require_message(message)
        self._check_type(public_key, ECDSAPublicKey, "verify", SchemeMismatchError)
        self._check_type(signature, ECDSASignature, "verify", SchemeMismatchError)

        try:
            public_key._key.verify(
                encode_dss_signature(signature.r, signature.s),
                message,
                ec.ECDSA(self._HASH()),
            )
            return True
        except InvalidSignature:
            return False

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize_private_key(self, private_key: ECDSAPrivateKey) -> bytes:
        self._check_type(private_key, ECDSAPrivateKey, "serialize_private_key")
        return private_key.secret.to_bytes(PRIVATE_KEY_SIZE, "big")

    def serialize_public_key(self, public_key: ECDSAPublicKey) -> bytes:
        self._check_type(public_key, ECDSAPublicKey, "serialize_public_key")
        return public_key.to_bytes()

    def serialize_signature(self, signature: ECDSASignature) -> bytes:
        self._check_type(signature, ECDSASignature, "serialize_signature")
        return encode_dss_signature(signature.r, signature.s)

    def deserialize_private_key(self, data: bytes) -> ECDSAPrivateKey:
        data = self._require_bytes(data, "private key", "deserialize_private_key")
        if len(data) != PRIVATE_KEY_SIZE:
            raise self._deserialization_error(
                f"Invalid private key length: expected {PRIVATE_KEY_SIZE} bytes, got {len(data)}",
                "deserialize_private_key",
            )

        secret = int.from_bytes(data, "big")
        if not 0 < secret < CURVE_ORDER:
            raise self._deserialization_error(
                "Private key scalar out of range", "deserialize_private_key"
            )

        try:
            key = ec.derive_private_key(secret, self._CURVE)
        except ValueError as e:
            raise self._deserialization_error(str(e), "deserialize_private_key") from e

        return ECDSAPrivateKey(key)

    def deserialize_public_key(self, data: bytes) -> ECDSAPublicKey:
        data = self._require_bytes(data, "public key", "deserialize_public_key")
        if len(data) != PUBLIC_KEY_SIZE or data[0] not in (0x02, 0x03):
            raise self._deserialization_error(
                f"Expected a {PUBLIC_KEY_SIZE}-byte compressed point, got {len(data)} bytes",
                "deserialize_public_key",
            )

        try:
            key = ec.EllipticCurvePublicKey.from_encoded_point(self._CURVE, data)
        except ValueError as e:
            raise self._deserialization_error(
                f"Invalid secp256k1 point: {e}", "deserialize_public_key"
            ) from e

        return ECDSAPublicKey(key)

    def deserialize_signature(self, data: bytes) -> ECDSASignature:
        data = self._require_bytes(data, "signature", "deserialize_signature")

        try:
            r, s = decode_dss_signature(data)
        except ValueError as e:
            raise self._deserialization_error(
                f"Invalid DER signature: {e}", "deserialize_signature"
            ) from e

        # Re-encoding rejects trailing bytes and non-minimal integers
        if encode_dss_signature(r, s) != data:
            raise self._deserialization_error(
                "Signature is not canonical DER", "deserialize_signature"
            )
        if not (0 < r < CURVE_ORDER and 0 < s < CURVE_ORDER):
            raise self._deserialization_error(
                "Signature component out of range", "deserialize_signature"
            )

        return ECDSASignature(r=r, s=s)

    def _deserialization_error(self, message: str, operation: str) -> DeserializationError:
        logger.debug("ecdsa_deserialization_failed", operation=operation, error=message)
        return DeserializationError(message, scheme=self.scheme_id, operation=operation)
