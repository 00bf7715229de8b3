"""
Error Taxonomy for SigTool

Every failure surfaced by the schemes, the key store and the signature
record I/O derives from SigToolError. Each error carries enough context
(scheme, key name, operation) to be diagnosed without inspecting internals.
"""

from typing import Any, Optional


class SigToolError(Exception):
    """Base class for all SigTool errors."""

    def __init__(
        self,
        message: str,
        scheme: Optional[Any] = None,
        key_name: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.scheme = getattr(scheme, "value", scheme)
        self.key_name = key_name
        self.operation = operation

    def __str__(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.scheme:
            context.append(f"scheme={self.scheme}")
        if self.key_name:
            context.append(f"key={self.key_name}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


# ----------------------------------------------------------------------------
# Scheme errors
# ----------------------------------------------------------------------------

class KeyGenerationError(SigToolError):
    """Randomness or key derivation failed."""


class SigningError(SigToolError):
    """The underlying library failed to produce a signature."""


class VerificationError(SigToolError):
    """
    The verification procedure itself could not run.

    An invalid signature is a normal False result, never this error.
    """


class SerializationError(SigToolError):
    """A value could not be encoded (usually a value of another scheme)."""


class DeserializationError(SigToolError):
    """Bytes do not decode to a valid key or signature."""


class AggregationError(SigToolError):
    """Signatures could not be combined."""


class SchemeMismatchError(SigToolError):
    """A signature's scheme identifier disagrees with the key's."""


class UnsupportedSchemeError(SigToolError):
    """No adapter is registered for the identifier."""


# ----------------------------------------------------------------------------
# Storage errors
# ----------------------------------------------------------------------------

class KeyStoreError(SigToolError):
    """Base class for key store failures."""


class KeyNotFoundError(KeyStoreError):
    pass


class CorruptRecordError(KeyStoreError):
    pass


class DuplicateNameError(KeyStoreError):
    pass


class InvalidKeyNameError(KeyStoreError):
    pass


class InvalidFormatError(SigToolError):
    """A signature record file is malformed."""
