"""
Signature Records

A signature travels between sign, verify and aggregate as a small JSON
file binding the scheme identifier to the hex-encoded signature bytes.
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple, Union
import structlog

from .bls import BLSScheme
from .errors import AggregationError, InvalidFormatError, UnsupportedSchemeError
from .keys import decode_hex, write_json_atomic
from .scheme import SchemeIdentifier

logger = structlog.get_logger()


@dataclass(frozen=True)
class SignatureRecord:
    """Persisted signature envelope."""
    scheme: SchemeIdentifier
    signature: str  # Hex-encoded
    timestamp: int = field(default_factory=lambda: int(time.time()))

    @property
    def signature_bytes(self) -> bytes:
        return decode_hex(self.signature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheme": self.scheme.value,
            "signature": self.signature,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureRecord":
        if not isinstance(data, dict):
            raise InvalidFormatError("Signature record must be a JSON object")

        missing = [k for k in ("scheme", "signature") if k not in data]
        if missing:
            raise InvalidFormatError(f"Signature record missing fields: {', '.join(missing)}")

        try:
            scheme = SchemeIdentifier.parse(data["scheme"])
        except UnsupportedSchemeError as e:
            raise InvalidFormatError(e.message) from e

        signature = data["signature"]
        try:
            decode_hex(signature)
        except (TypeError, ValueError) as e:
            raise InvalidFormatError(f"Signature is not valid hex: {e}", scheme=scheme) from e

        try:
            timestamp = int(data.get("timestamp", 0))
        except (TypeError, ValueError) as e:
            raise InvalidFormatError(f"Invalid timestamp: {e}", scheme=scheme) from e

        return cls(scheme=scheme, signature=signature, timestamp=timestamp)


def save_signature(
    path: Union[str, Path],
    scheme: Union[str, SchemeIdentifier],
    signature: bytes,
) -> SignatureRecord:
    """Write a signature record to path and return it."""
    record = SignatureRecord(
        scheme=SchemeIdentifier.parse(scheme),
        signature=bytes(signature).hex(),
    )
    write_json_atomic(Path(path), record.to_dict())
    logger.info("signature_saved", path=str(path), scheme=record.scheme.value)
    return record


def load_signature(path: Union[str, Path]) -> Tuple[SchemeIdentifier, bytes]:
    """Read a signature record and return (scheme, signature bytes)."""
    record = read_signature_record(path)
    return record.scheme, record.signature_bytes


def read_signature_record(path: Union[str, Path]) -> SignatureRecord:
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidFormatError(f"Cannot read signature file {path}: {e}", operation="load_signature") from e

    try:
        data = json.loads(contents)
    except ValueError as e:
        raise InvalidFormatError(f"Signature file {path} is not valid JSON: {e}", operation="load_signature") from e

    return SignatureRecord.from_dict(data)


def aggregate_signature_files(
    paths: Sequence[Union[str, Path]],
    output: Union[str, Path],
) -> SignatureRecord:
    """
    Aggregate BLS signature records into one aggregated record at output.

    Every input is loaded and checked before anything is written, so a
    failure leaves no output file behind.
    """
    scheme = BLSScheme()
    signatures = []
    for path in paths:
        scheme_id, data = load_signature(path)
        if scheme_id != SchemeIdentifier.BLS12_381:
            raise AggregationError(
                f"Can only aggregate BLS signatures, found {scheme_id.value} in {path}",
                scheme=scheme_id,
                operation="aggregate",
            )
        signatures.append(scheme.deserialize_signature(data))

    aggregated = scheme.aggregate(signatures)
    record = save_signature(
        output,
        SchemeIdentifier.BLS12_381_AGGREGATED,
        scheme.serialize_signature(aggregated),
    )

    logger.info("aggregate_saved", path=str(output), count=len(signatures))
    return record
