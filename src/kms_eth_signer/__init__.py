from kms_eth_signer.config import KmsConfig
from kms_eth_signer.exceptions import (
    AddressMismatchError,
    ConfigurationError,
    DecodeError,
    KmsSignerError,
    MissingDataError,
    RecoveryFailureError,
    SigningError,
)
from kms_eth_signer.kms import KmsProvider
from kms_eth_signer.signer import KmsSigner
from kms_eth_signer.types.ethereum_types import NormalizedSignature

__all__ = [
    "AddressMismatchError",
    "ConfigurationError",
    "DecodeError",
    "KmsConfig",
    "KmsProvider",
    "KmsSigner",
    "KmsSignerError",
    "MissingDataError",
    "NormalizedSignature",
    "RecoveryFailureError",
    "SigningError",
]
