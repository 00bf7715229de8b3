"""
Signature Schemes and Key Storage for SigTool

Supports:
- ECDSA-secp256k1 - classical discrete-log signatures
- BLS12-381-min-pk - pairing-based signatures with aggregation
"""

from .errors import (
    SigToolError,
    KeyGenerationError,
    SigningError,
    VerificationError,
    SerializationError,
    DeserializationError,
    AggregationError,
    SchemeMismatchError,
    UnsupportedSchemeError,
    KeyStoreError,
    KeyNotFoundError,
    CorruptRecordError,
    DuplicateNameError,
    InvalidKeyNameError,
    InvalidFormatError,
)
from .scheme import SchemeIdentifier, SignatureScheme, get_scheme, ensure_same_scheme
from .ecdsa import ECDSAScheme, ECDSAPrivateKey, ECDSAPublicKey, ECDSASignature
from .bls import BLSScheme, BLSPrivateKey, BLSPublicKey, BLSSignature
from .keys import KeyStore, KeyRecord, KeyMetadata
from .records import (
    SignatureRecord,
    save_signature,
    load_signature,
    aggregate_signature_files,
)

__all__ = [
    "SigToolError",
    "KeyGenerationError",
    "SigningError",
    "VerificationError",
    "SerializationError",
    "DeserializationError",
    "AggregationError",
    "SchemeMismatchError",
    "UnsupportedSchemeError",
    "KeyStoreError",
    "KeyNotFoundError",
    "CorruptRecordError",
    "DuplicateNameError",
    "InvalidKeyNameError",
    "InvalidFormatError",
    "SchemeIdentifier",
    "SignatureScheme",
    "get_scheme",
    "ensure_same_scheme",
    "ECDSAScheme",
    "ECDSAPrivateKey",
    "ECDSAPublicKey",
    "ECDSASignature",
    "BLSScheme",
    "BLSPrivateKey",
    "BLSPublicKey",
    "BLSSignature",
    "KeyStore",
    "KeyRecord",
    "KeyMetadata",
    "SignatureRecord",
    "save_signature",
    "load_signature",
    "aggregate_signature_files",
]
