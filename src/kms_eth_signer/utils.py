"""Cryptographic utilities."""

import logging
from collections.abc import Callable
from typing import Literal

from eth_keys import KeyAPI
from eth_keys.exceptions import BadSignature
from eth_typing import ChecksumAddress
from eth_utils import keccak, to_checksum_address

from kms_eth_signer.der import UNCOMPRESSED_POINT_LENGTH, UNCOMPRESSED_POINT_TAG
from kms_eth_signer.exceptions import DecodeError, RecoveryFailureError
from kms_eth_signer.types.ethereum_types import (
    MSG_HASH_LENGTH,
    SECP256K1_HALF_N,
    SECP256K1_N,
    DecodedSignature,
    to_hex,
)

logger = logging.getLogger(__name__)

_keys = KeyAPI()

RECOVERY_IDS: tuple[Literal[27, 28], ...] = (27, 28)
V_OFFSET = 27

Recoverer = Callable[[bytes, int, int, int], str]

__all__ = [
    "RECOVERY_IDS",
    "derive_address",
    "normalize_signature",
    "recover_address",
    "resolve_recovery_id",
    "to_hex",
]


def derive_address(point: bytes, hasher: Callable[[bytes], bytes] = keccak) -> ChecksumAddress:
    """
    Derive the checksummed Ethereum address of an uncompressed public key.

    The ``0x04`` tag is dropped and the last 20 bytes of the keccak-256 hash
    of the remaining ``x || y`` coordinates form the address.

    Args:
        point: 65-byte uncompressed secp256k1 point
        hasher: keccak-256 implementation

    Returns:
        ChecksumAddress: EIP-55 mixed-case address
    """
    if len(point) != UNCOMPRESSED_POINT_LENGTH or point[0] != UNCOMPRESSED_POINT_TAG:
        raise DecodeError("public key", "point", f"expected a {UNCOMPRESSED_POINT_LENGTH}-byte uncompressed point")
    address = to_checksum_address("0x" + hasher(bytes(point[1:]))[-20:].hex())
    logger.debug("Derived address %s from public key", address)
    return address


def normalize_signature(signature: DecodedSignature) -> DecodedSignature:
    """Normalize a signature according to EIP-2 (``s <= n/2``)."""
    if signature.s > SECP256K1_HALF_N:
        return DecodedSignature(r=signature.r, s=SECP256K1_N - signature.s)
    return signature


def recover_address(digest: bytes, r: int, s: int, recovery_index: int) -> ChecksumAddress:
    """Recover the signer address for one recovery index using ``eth_keys``."""
    sig = _keys.Signature(vrs=(recovery_index, r, s))
    return sig.recover_public_key_from_msg_hash(digest).to_checksum_address()


def resolve_recovery_id(
    digest: bytes,
    signature: DecodedSignature,
    expected_address: str,
    recover: Recoverer = recover_address,
) -> Literal[27, 28]:
    """
    Find the ``v`` value (27 or 28) under which ``signature`` recovers ``expected_address``.

    Args:
        digest: 32-byte hash that was signed
        signature: low-s normalized signature
        expected_address: address of the signing key, compared case-insensitively
        recover: public key recovery primitive taking ``(digest, r, s, recovery_index)``

    Raises:
        RecoveryFailureError: If neither candidate recovers the expected address.
    """
    if len(digest) != MSG_HASH_LENGTH:
        msg = f"Digest must be {MSG_HASH_LENGTH} bytes, got {len(digest)}"
        raise ValueError(msg)

    for v in RECOVERY_IDS:
        try:
            recovered = recover(digest, signature.r, signature.s, v - V_OFFSET)
        except BadSignature as e:
            logger.warning("Recovery with v=%d rejected: %s", v, e)
            continue
        if recovered.lower() == expected_address.lower():
            logger.debug("Resolved v=%d for %s", v, expected_address)
            return v

    msg = f"Could not determine correct v value for signature by {expected_address}"
    raise RecoveryFailureError(msg)
