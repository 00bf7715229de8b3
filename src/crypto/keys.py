"""
Key Management for SigTool

Stores one named key pair per JSON file, with the scheme identifier and
creation time alongside the hex-encoded keys.

Writes are atomic per file; there is no locking across processes, so two
invocations writing the same key name concurrently may race.
"""

import json
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import structlog

from .errors import (
    CorruptRecordError,
    DeserializationError,
    DuplicateNameError,
    InvalidKeyNameError,
    KeyNotFoundError,
    SchemeMismatchError,
    SigToolError,
    UnsupportedSchemeError,
    VerificationError,
)
from .scheme import SchemeIdentifier, ensure_same_scheme, get_scheme, require_message

logger = structlog.get_logger()

DEFAULT_KEYSTORE = "~/.sig-tool"
RECORD_SUFFIX = ".json"


def decode_hex(value: str) -> bytes:
    """Decode hex text, rejecting whitespace and other non-canonical spellings."""
    data = bytes.fromhex(value)
    if data.hex() != value.lower():
        raise ValueError(f"Non-canonical hex: {value!r}")
    return data


def default_storage_path() -> Path:
    """Key store location from SIGTOOL_KEYSTORE, falling back to ~/.sig-tool."""
    return Path(os.environ.get("SIGTOOL_KEYSTORE", DEFAULT_KEYSTORE)).expanduser()


@dataclass(frozen=True)
class KeyMetadata:
    """Public facts about a stored key."""
    name: str
    scheme: SchemeIdentifier
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheme": self.scheme.value,
            "created_at": self.created_at,
            "name": self.name,
        }


@dataclass(frozen=True)
class KeyRecord:
    """A stored key pair with metadata. Keys are hex-encoded."""
    name: str
    scheme: SchemeIdentifier
    created_at: int
    private_key: str
    public_key: str

    @property
    def metadata(self) -> KeyMetadata:
        return KeyMetadata(name=self.name, scheme=self.scheme, created_at=self.created_at)

    @property
    def private_key_bytes(self) -> bytes:
        return decode_hex(self.private_key)

    @property
    def public_key_bytes(self) -> bytes:
        return decode_hex(self.public_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "private_key": self.private_key,
            "public_key": self.public_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyRecord":
        metadata = data["metadata"]
        record = cls(
            name=metadata["name"],
            scheme=SchemeIdentifier(metadata["scheme"]),
            created_at=int(metadata["created_at"]),
            private_key=data["private_key"],
            public_key=data["public_key"],
        )
        if record.scheme.is_aggregate:
            raise ValueError(f"{record.scheme.value} is not a key scheme")
        # Fail early on hex that would only break at signing time
        decode_hex(record.private_key)
        decode_hex(record.public_key)
        return record


class KeyStore:
    """
    Named key pair storage.

    Features:
    - One file per key name, written atomically
    - Scheme dispatch on the stored identifier
    - Explicit overwrite policy (rejects existing names by default)
    """

    def __init__(
        self,
        storage_path: Optional[Union[str, Path]] = None,
        overwrite: bool = False,
    ):
        self.storage_path = Path(storage_path).expanduser() if storage_path else default_storage_path()
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.overwrite = overwrite

    def _key_path(self, name: str) -> Path:
        if not name or name.startswith(".") or any(c in name for c in "/\\\x00"):
            raise InvalidKeyNameError(f"Invalid key name: {name!r}", key_name=name)
        return self.storage_path / f"{name}{RECORD_SUFFIX}"

    def save_keypair(
        self,
        name: str,
        private_key: Any,
        public_key: Any,
        scheme: Union[str, SchemeIdentifier],
    ) -> KeyRecord:
        """
        Persist a key pair under a name.

        Either the whole record becomes visible or the previous file is left
        untouched.
        """
        path = self._key_path(name)
        scheme_id = SchemeIdentifier.parse(scheme)
        if scheme_id.is_aggregate:
            raise UnsupportedSchemeError(
                "Keys cannot be stored under the aggregated identifier",
                scheme=scheme_id,
                key_name=name,
                operation="save_keypair",
            )

        if path.exists() and not self.overwrite:
            raise DuplicateNameError(
                f"Key already exists: {name}",
                scheme=scheme_id,
                key_name=name,
                operation="save_keypair",
            )

        adapter = get_scheme(scheme_id)
        record = KeyRecord(
            name=name,
            scheme=scheme_id,
            created_at=int(time.time()),
            private_key=adapter.serialize_private_key(private_key).hex(),
            public_key=adapter.serialize_public_key(public_key).hex(),
        )

        write_json_atomic(path, record.to_dict())
        logger.info("key_saved", name=name, scheme=scheme_id.value)

        return record

    def generate_key(self, name: str, scheme: Union[str, SchemeIdentifier]) -> KeyRecord:
        """Generate a new key pair and store it under name."""
        # Reject bad names, schemes and duplicates before spending time on key generation
        path = self._key_path(name)
        scheme_id = SchemeIdentifier.parse(scheme)
        if scheme_id.is_aggregate:
            raise UnsupportedSchemeError(
                "Keys cannot be generated under the aggregated identifier",
                scheme=scheme_id,
                key_name=name,
                operation="keygen",
            )
        if path.exists() and not self.overwrite:
            raise DuplicateNameError(f"Key already exists: {name}", key_name=name, operation="keygen")

        adapter = get_scheme(scheme_id)
        private_key, public_key = adapter.generate_keypair()
        record = self.save_keypair(name, private_key, public_key, scheme_id)

        logger.info("key_generated", name=name, scheme=adapter.scheme_id.value)
        return record

    def load_key_entry(self, name: str) -> KeyRecord:
        """Load a key record by name."""
        path = self._key_path(name)

        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise KeyNotFoundError(f"Key not found: {name}", key_name=name, operation="load")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptRecordError(
                f"Unreadable key record: {e}", key_name=name, operation="load"
            ) from e

        try:
            record = KeyRecord.from_dict(json.loads(contents))
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptRecordError(
                f"Corrupt key record: {e}", key_name=name, operation="load"
            ) from e

        if record.name != name:
            raise CorruptRecordError(
                f"Record name {record.name!r} does not match file name",
                key_name=name,
                operation="load",
            )
        return record

    def load_private_key(self, name: str) -> Tuple[SchemeIdentifier, Any]:
        """Load and deserialize the private key stored under name."""
        record = self.load_key_entry(name)
        key = self._deserialize(record, "private")
        return record.scheme, key

    def load_public_key(self, name: str) -> Tuple[SchemeIdentifier, Any]:
        """Load and deserialize the public key stored under name."""
        record = self.load_key_entry(name)
        key = self._deserialize(record, "public")
        return record.scheme, key

    def _deserialize(self, record: KeyRecord, which: str) -> Any:
        adapter = get_scheme(record.scheme)
        try:
            if which == "private":
                return adapter.deserialize_private_key(record.private_key_bytes)
            return adapter.deserialize_public_key(record.public_key_bytes)
        except DeserializationError as e:
            raise CorruptRecordError(
                f"Stored {which} key is invalid: {e.message}",
                scheme=record.scheme,
                key_name=record.name,
                operation="load",
            ) from e

    def list_keys(self) -> List[KeyMetadata]:
        """List metadata of every valid record, skipping unreadable ones."""
        results = []

        for path in sorted(self.storage_path.glob(f"*{RECORD_SUFFIX}")):
            if not path.is_file():
                continue
            try:
                record = self.load_key_entry(path.stem)
            except SigToolError as e:
                logger.warning("key_record_skipped", path=str(path), error=str(e))
                continue
            results.append(record.metadata)

        return results

    def sign_with_key(self, name: str, message: bytes) -> Tuple[SchemeIdentifier, bytes]:
        """Sign with a stored key and return (scheme, signature bytes)."""
        message = require_message(message)
        scheme_id, private_key = self.load_private_key(name)
        adapter = get_scheme(scheme_id)

        signature = adapter.sign(private_key, message)
        logger.info("message_signed", key=name, scheme=scheme_id.value)

        return scheme_id, adapter.serialize_signature(signature)

    def verify_with_key(
        self,
        name: str,
        message: bytes,
        signature_scheme: Union[str, SchemeIdentifier],
        signature: bytes,
    ) -> bool:
        """
        Verify signature bytes against a stored key.

        The signature's scheme must equal the key's; a mismatch raises
        SchemeMismatchError.
        """
        message = require_message(message)
        signature_scheme = SchemeIdentifier.parse(signature_scheme)
        scheme_id, public_key = self.load_public_key(name)
        ensure_same_scheme(signature_scheme, scheme_id, key_name=name)

        adapter = get_scheme(scheme_id)
        is_valid = adapter.verify(public_key, message, adapter.deserialize_signature(signature))

        logger.info("signature_verified", key=name, scheme=scheme_id.value, valid=is_valid)
        return is_valid

    def verify_aggregate_with_keys(
        self,
        names: Sequence[str],
        signature_scheme: Union[str, SchemeIdentifier],
        signature: bytes,
        message: Optional[bytes] = None,
        messages: Optional[Sequence[bytes]] = None,
    ) -> bool:
        """
        Verify an aggregate BLS signature against stored keys.

        Pass message when every key signed the same message, or messages
        (one per name, same order) when each key signed its own.
        """
        from .bls import BLSScheme

        if (message is None) == (messages is None):
            raise VerificationError(
                "Exactly one of message or messages is required",
                operation="verify_aggregate",
            )

        signature_scheme = SchemeIdentifier.parse(signature_scheme)
        if signature_scheme.base != SchemeIdentifier.BLS12_381:
            raise SchemeMismatchError(
                f"Expected a BLS signature, found {signature_scheme.value}",
                scheme=signature_scheme,
                operation="verify_aggregate",
            )

        public_keys = []
        for name in names:
            scheme_id, public_key = self.load_public_key(name)
            ensure_same_scheme(SchemeIdentifier.BLS12_381, scheme_id, key_name=name)
            public_keys.append(public_key)

        scheme = BLSScheme()
        aggregate = scheme.deserialize_signature(signature)
        if message is not None:
            is_valid = scheme.verify_aggregate_same_message(public_keys, message, aggregate)
        else:
            is_valid = scheme.verify_aggregate(public_keys, messages, aggregate)

        logger.info(
            "aggregate_verified",
            keys=list(names),
            mode="same_message" if message is not None else "distinct_messages",
            valid=is_valid,
        )
        return is_valid


def write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """Write JSON to a temp file in the same directory, then rename over path."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
