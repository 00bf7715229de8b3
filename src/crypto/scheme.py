"""
Signature Scheme Interface

Every scheme (ECDSA over secp256k1, BLS over BLS12-381) implements the same
six operations plus key generation. Calling code only ever selects a scheme
through its SchemeIdentifier; the key and signature values of different
schemes are distinct types and never mix.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Tuple, Union

from .errors import (
    DeserializationError,
    SchemeMismatchError,
    SerializationError,
    UnsupportedSchemeError,
)


class SchemeIdentifier(Enum):
    """Identifiers persisted alongside every key and signature."""
    ECDSA_SECP256K1 = "ECDSA-secp256k1"
    BLS12_381 = "BLS12-381-min-pk"
    BLS12_381_AGGREGATED = "BLS12-381-min-pk-aggregated"

    @property
    def base(self) -> "SchemeIdentifier":
        """The scheme whose adapter handles values with this identifier."""
        if self is SchemeIdentifier.BLS12_381_AGGREGATED:
            return SchemeIdentifier.BLS12_381
        return self

    @property
    def is_aggregate(self) -> bool:
        return self is SchemeIdentifier.BLS12_381_AGGREGATED

    @classmethod
    def parse(cls, value: Union[str, "SchemeIdentifier"]) -> "SchemeIdentifier":
        """Parse a persisted identifier, raising UnsupportedSchemeError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedSchemeError(f"Unsupported signature scheme: {value!r}")

    @classmethod
    def from_alias(cls, alias: str) -> "SchemeIdentifier":
        """Map a command-line short name ("ecdsa", "bls") to an identifier."""
        aliases = {
            "ecdsa": cls.ECDSA_SECP256K1,
            "bls": cls.BLS12_381,
        }
        scheme = aliases.get(alias.lower())
        if scheme is None:
            raise UnsupportedSchemeError(
                f"Unknown scheme alias {alias!r}. Use: {sorted(aliases)}"
            )
        return scheme


class SignatureScheme(ABC):
    """Abstract base class for signature schemes."""

    @property
    @abstractmethod
    def scheme_id(self) -> SchemeIdentifier:
        """Get the identifier persisted with this scheme's keys."""
        pass

    @abstractmethod
    def generate_keypair(self) -> Tuple[Any, Any]:
        """Generate a fresh (private_key, public_key) pair."""
        pass

    @abstractmethod
    def sign(self, private_key: Any, message: bytes) -> Any:
        """Sign a message. Any byte string is a valid message."""
        pass

    @abstractmethod
    def verify(self, public_key: Any, message: bytes, signature: Any) -> bool:
        """Return True iff the signature is valid for this message and key."""
        pass

    @abstractmethod
    def serialize_private_key(self, private_key: Any) -> bytes:
        pass

    @abstractmethod
    def serialize_public_key(self, public_key: Any) -> bytes:
        pass

    @abstractmethod
    def serialize_signature(self, signature: Any) -> bytes:
        pass

    @abstractmethod
    def deserialize_private_key(self, data: bytes) -> Any:
        pass

    @abstractmethod
    def deserialize_public_key(self, data: bytes) -> Any:
        pass

    @abstractmethod
    def deserialize_signature(self, data: bytes) -> Any:
        pass

    def verify_bytes(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        """
        Verify serialized values.

        Malformed key or signature bytes raise DeserializationError; a
        well-formed but invalid signature returns False.
        """
        pk = self.deserialize_public_key(public_key)
        sig = self.deserialize_signature(signature)
        return self.verify(pk, message, sig)

    def _require_bytes(self, data: Any, what: str, operation: str) -> bytes:
        if not isinstance(data, (bytes, bytearray)):
            raise DeserializationError(
                f"{what} must be bytes, got {type(data).__name__}",
                scheme=self.scheme_id,
                operation=operation,
            )
        return bytes(data)

    def _check_type(self, value: Any, expected: type, operation: str, error=SerializationError) -> None:
        """Reject values belonging to another scheme."""
        if not isinstance(value, expected):
            raise error(
                f"Expected {expected.__name__}, got {type(value).__name__}",
                scheme=self.scheme_id,
                operation=operation,
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.scheme_id.value})"


def require_message(message: Any) -> bytes:
    """Messages are raw bytes; text must be encoded by the caller."""
    if not isinstance(message, (bytes, bytearray)):
        raise TypeError(f"message must be bytes, got {type(message).__name__}")
    return bytes(message)


def ensure_same_scheme(
    signature_scheme: SchemeIdentifier,
    key_scheme: SchemeIdentifier,
    key_name: Optional[str] = None,
) -> None:
    """Raise SchemeMismatchError unless both identifiers are equal."""
    if signature_scheme != key_scheme:
        raise SchemeMismatchError(
            f"Signature scheme mismatch: {signature_scheme.value} vs {key_scheme.value}",
            scheme=key_scheme,
            key_name=key_name,
            operation="verify",
        )


def get_scheme(identifier: Union[str, SchemeIdentifier]) -> SignatureScheme:
    """
    Factory function to get the adapter for an identifier.

    The aggregated BLS identifier resolves to the BLS adapter, since an
    aggregate signature has the same encoding as an individual one.

    Args:
        identifier: SchemeIdentifier or its persisted string value

    Returns:
        SignatureScheme instance
    """
    scheme_id = SchemeIdentifier.parse(identifier).base

    if scheme_id == SchemeIdentifier.ECDSA_SECP256K1:
        from .ecdsa import ECDSAScheme
        return ECDSAScheme()

    elif scheme_id == SchemeIdentifier.BLS12_381:
        from .bls import BLSScheme
        return BLSScheme()

    else:
        raise UnsupportedSchemeError(f"Unsupported signature scheme: {scheme_id.value}")
