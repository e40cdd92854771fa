class KmsSignerError(Exception):
    """Base exception for KMS signer operations."""

    pass


class ConfigurationError(KmsSignerError):
    """Invalid signer configuration."""

    pass


class DecodeError(KmsSignerError):
    """Malformed DER structure returned by KMS."""

    def __init__(self, structure: str, field: str, reason: str):
        self.structure = structure
        self.field = field
        self.reason = reason
        super().__init__(f"Failed to decode {structure} ({field}): {reason}")


class MissingDataError(KmsSignerError):
    """KMS answered without the requested public key or signature."""

    pass


class SigningError(KmsSignerError):
    """Error during signature operations."""

    pass


class RecoveryFailureError(SigningError):
    """No recovery id reproduces the expected address."""

    pass


class AddressMismatchError(SigningError):
    """Declared sender does not match the KMS key address."""

    pass
