"""
BLS Signatures over BLS12-381 (minimal public key size)

Public keys live in G1 (48 bytes compressed), signatures in G2 (96 bytes
compressed). Curve, hash-to-curve and pairing arithmetic come from py_ecc;
this module pins the ciphersuite and domain-separation tag and adds the
aggregation extension.

Aggregate verification comes in two flavours, each a single batched
pairing check:

- same message, many signers:
      e(pk_1 + ... + pk_n, H(m)) == e(g1, sig)
- distinct messages, many signers:
      e(pk_1, H(m_1)) * ... * e(pk_n, H(m_n)) == e(g1, sig)

The basic ciphersuite only protects against rogue-key attacks when messages
are distinct. Same-message verification is therefore only meaningful for
public keys the verifier already trusts, such as keys held in the local
key store.
"""

import os
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple
import structlog

from py_ecc.bls import G2Basic
from py_ecc.bls.g2_primitives import (
    G1_to_pubkey,
    pubkey_to_G1,
    signature_to_G2,
    subgroup_check,
)
from py_ecc.optimized_bls12_381 import Z1, add, curve_order

from .errors import (
    AggregationError,
    DeserializationError,
    KeyGenerationError,
    SchemeMismatchError,
    SigningError,
    VerificationError,
)
from .scheme import SchemeIdentifier, SignatureScheme, require_message

logger = structlog.get_logger()

DOMAIN_SEPARATION_TAG = b"BLS_SIG_BLS12381G2_XMD:SHA-256_SSWU_RO_NUL_SIGTOOL_"

PRIVATE_KEY_SIZE = 32
PUBLIC_KEY_SIZE = 48
SIGNATURE_SIZE = 96
IKM_SIZE = 32


class SigToolCiphersuite(G2Basic):
    """The IETF basic scheme bound to this application's tag."""
    DST = DOMAIN_SEPARATION_TAG


@dataclass(frozen=True)
class BLSPrivateKey:
    secret: int = field(repr=False)

    def __repr__(self) -> str:
        return "BLSPrivateKey(<redacted>)"


@dataclass(frozen=True)
class BLSPublicKey:
    data: bytes

    def __repr__(self) -> str:
        return f"BLSPublicKey({self.data.hex()})"


@dataclass(frozen=True)
class BLSSignature:
    data: bytes

    def __repr__(self) -> str:
        return f"BLSSignature({self.data.hex()[:24]}...)"


class BLSScheme(SignatureScheme):
    """BLS12-381 min-pk signatures with aggregation support."""

    @property
    def scheme_id(self) -> SchemeIdentifier:
        return SchemeIdentifier.BLS12_381

    def generate_keypair(self) -> Tuple[BLSPrivateKey, BLSPublicKey]:
        try:
            secret = SigToolCiphersuite.KeyGen(os.urandom(IKM_SIZE))
            public = SigToolCiphersuite.SkToPk(secret)
        except Exception as e:
            raise KeyGenerationError(
                f"Failed to generate BLS key: {e}",
                scheme=self.scheme_id,
                operation="keygen",
            ) from e

        return BLSPrivateKey(secret), BLSPublicKey(bytes(public))

    def sign(self, private_key: BLSPrivateKey, message: bytes) -> BLSSignature:
        message = require_message(message)
        self._check_type(private_key, BLSPrivateKey, "sign", SchemeMismatchError)

        try:
            signature = SigToolCiphersuite.Sign(private_key.secret, message)
        except Exception as e:
            raise SigningError(
                f"BLS signing failed: {e}",
                scheme=self.scheme_id,
                operation="sign",
            ) from e

        return BLSSignature(bytes(signature))

    def verify(self, public_key: BLSPublicKey, message: bytes, signature: BLSSignature) -> bool:
        message = require_message(message)
        self._check_type(public_key, BLSPublicKey, "verify", SchemeMismatchError)
        self._check_type(signature, BLSSignature, "verify", SchemeMismatchError)

        # py_ecc reports every pairing mismatch as False
        return bool(SigToolCiphersuite.Verify(public_key.data, message, signature.data))

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate(self, signatures: Sequence[BLSSignature]) -> BLSSignature:
        """
        Combine signatures by G2 point addition, in input order.

        An aggregate of nothing is not a signature, so an empty input fails
        instead of returning the identity point.
        """
        signatures = list(signatures)
        if not signatures:
            raise AggregationError(
                "Cannot aggregate empty signature list",
                scheme=self.scheme_id,
                operation="aggregate",
            )
        for signature in signatures:
            self._check_type(signature, BLSSignature, "aggregate", AggregationError)

        try:
            aggregated = SigToolCiphersuite.Aggregate([s.data for s in signatures])
        except Exception as e:
            raise AggregationError(
                f"Failed to add signature to aggregate: {e}",
                scheme=self.scheme_id,
                operation="aggregate",
            ) from e

        logger.debug("signatures_aggregated", count=len(signatures))
        return BLSSignature(bytes(aggregated))

    def verify_aggregate_same_message(
        self,
        public_keys: Sequence[BLSPublicKey],
        message: bytes,
        signature: BLSSignature,
    ) -> bool:
        """
        Verify an aggregate of signatures by every key over one message.

        Returns False when a signer is missing or extra, or when any signer
        signed something else.
        """
        message = require_message(message)
        keys = self._check_signer_set(public_keys, signature, "verify_aggregate_same_message")

        try:
            point = Z1
            for key in keys:
                point = add(point, pubkey_to_G1(key.data))
            aggregated_key = G1_to_pubkey(point)
        except Exception as e:
            raise VerificationError(
                f"Failed to aggregate public keys: {e}",
                scheme=self.scheme_id,
                operation="verify_aggregate_same_message",
            ) from e

        return bool(SigToolCiphersuite.Verify(aggregated_key, message, signature.data))

    def verify_aggregate(
        self,
        public_keys: Sequence[BLSPublicKey],
        messages: Sequence[bytes],
        signature: BLSSignature,
    ) -> bool:
        """
        Verify an aggregate of signatures over distinct messages.

        public_keys[i] must have signed messages[i]. Repeated messages give
        False; use verify_aggregate_same_message for a shared message.
        """
        keys = self._check_signer_set(public_keys, signature, "verify_aggregate")
        messages = [require_message(m) for m in messages]
        if len(messages) != len(keys):
            raise VerificationError(
                f"Got {len(keys)} public keys but {len(messages)} messages",
                scheme=self.scheme_id,
                operation="verify_aggregate",
            )

        return bool(SigToolCiphersuite.AggregateVerify(
            [k.data for k in keys],
            messages,
            signature.data,
        ))

    def _check_signer_set(
        self,
        public_keys: Sequence[BLSPublicKey],
        signature: BLSSignature,
        operation: str,
    ) -> List[BLSPublicKey]:
        keys = list(public_keys)
        self._check_type(signature, BLSSignature, operation, SchemeMismatchError)
        for key in keys:
            self._check_type(key, BLSPublicKey, operation, SchemeMismatchError)

        if not keys:
            raise VerificationError(
                "At least one public key is required",
                scheme=self.scheme_id,
                operation=operation,
            )
        if len(set(keys)) != len(keys):
            raise VerificationError(
                "Duplicate signer in public key set",
                scheme=self.scheme_id,
                operation=operation,
            )
        return keys

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize_private_key(self, private_key: BLSPrivateKey) -> bytes:
        self._check_type(private_key, BLSPrivateKey, "serialize_private_key")
        return private_key.secret.to_bytes(PRIVATE_KEY_SIZE, "big")

    def serialize_public_key(self, public_key: BLSPublicKey) -> bytes:
        self._check_type(public_key, BLSPublicKey, "serialize_public_key")
        return public_key.data

    def serialize_signature(self, signature: BLSSignature) -> bytes:
        self._check_type(signature, BLSSignature, "serialize_signature")
        return signature.data

    def deserialize_private_key(self, data: bytes) -> BLSPrivateKey:
        data = self._require_bytes(data, "private key", "deserialize_private_key")
        self._check_length(data, PRIVATE_KEY_SIZE, "deserialize_private_key")

        secret = int.from_bytes(data, "big")
        if not 0 < secret < curve_order:
            raise self._deserialization_error(
                "Private key scalar out of range", "deserialize_private_key"
            )
        return BLSPrivateKey(secret)

    def deserialize_public_key(self, data: bytes) -> BLSPublicKey:
        data = self._require_bytes(data, "public key", "deserialize_public_key")
        self._check_length(data, PUBLIC_KEY_SIZE, "deserialize_public_key")

        # On curve, in the prime-order subgroup and not the identity
        if not SigToolCiphersuite.KeyValidate(data):
            raise self._deserialization_error(
                "Invalid BLS public key", "deserialize_public_key"
            )
        return BLSPublicKey(data)

    def deserialize_signature(self, data: bytes) -> BLSSignature:
        data = self._require_bytes(data, "signature", "deserialize_signature")
        self._check_length(data, SIGNATURE_SIZE, "deserialize_signature")

        try:
            point = signature_to_G2(data)
        except Exception as e:
            raise self._deserialization_error(
                f"Invalid BLS signature: {e}", "deserialize_signature"
            ) from e

        if not subgroup_check(point):
            raise self._deserialization_error(
                "BLS signature is not in the G2 subgroup", "deserialize_signature"
            )
        return BLSSignature(data)

    def _check_length(self, data: bytes, expected: int, operation: str) -> None:
        if len(data) != expected:
            raise self._deserialization_error(
                f"Invalid length: expected {expected} bytes, got {len(data)}",
                operation,
            )

    def _deserialization_error(self, message: str, operation: str) -> DeserializationError:
        logger.debug("bls_deserialization_failed", operation=operation, error=message)
        return DeserializationError(message, scheme=self.scheme_id, operation=operation)
