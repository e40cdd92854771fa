"""DER decoding of KMS signatures and public keys.

Signatures follow ``Ecdsa-Sig-Value`` from RFC 3279 section 2.2.3::

    SEQUENCE { r INTEGER, s INTEGER }

Public keys follow ``SubjectPublicKeyInfo`` from RFC 5480 section 2::

    SEQUENCE { SEQUENCE { algorithm OID, namedCurve OID }, subjectPublicKey BIT STRING }
"""

import binascii

from ecdsa import der
from ecdsa.der import UnexpectedDER

from kms_eth_signer.exceptions import DecodeError
from kms_eth_signer.types.ethereum_types import SECP256K1_N, DecodedSignature

SIGNATURE = "signature"
PUBLIC_KEY = "public key"

UNCOMPRESSED_POINT_TAG = 0x04
UNCOMPRESSED_POINT_LENGTH = 65


def _remove(remover, data: bytes, structure: str, field: str, **kwargs):
    if not data:
        raise DecodeError(structure, field, "missing")
    try:
        return remover(data, **kwargs)
    except UnexpectedDER as e:
        raise DecodeError(structure, field, str(e)) from e


def _expect_consumed(rest: bytes, structure: str, field: str) -> None:
    if rest:
        raise DecodeError(structure, field, f"{len(rest)} unexpected trailing bytes")


def decode_signature(blob: bytes) -> DecodedSignature:
    """Decode a DER ECDSA signature into its ``r`` and ``s`` integers.

    Integers whose high bit is set carry a leading zero byte in DER; the
    decoded values are the unsigned magnitudes.

    Raises:
        DecodeError: If the blob is not exactly one well-formed signature sequence
            or either component lies outside ``(0, n)``.
    """
    body, rest = _remove(der.remove_sequence, bytes(blob), SIGNATURE, "sequence")
    _expect_consumed(rest, SIGNATURE, "sequence")

    r, body = _remove(der.remove_integer, body, SIGNATURE, "r")
    s, body = _remove(der.remove_integer, body, SIGNATURE, "s")
    _expect_consumed(body, SIGNATURE, "s")

    for name, value in (("r", r), ("s", s)):
        if not 0 < value < SECP256K1_N:
            raise DecodeError(SIGNATURE, name, "value outside the secp256k1 group order")
    return DecodedSignature(r=r, s=s)


def decode_public_key(blob: bytes) -> bytes:
    """Return the 65-byte ``0x04``-prefixed point from a DER ``SubjectPublicKeyInfo``."""
    body, rest = _remove(der.remove_sequence, bytes(blob), PUBLIC_KEY, "SubjectPublicKeyInfo")
    _expect_consumed(rest, PUBLIC_KEY, "SubjectPublicKeyInfo")

    algorithm, body = _remove(der.remove_sequence, body, PUBLIC_KEY, "algorithm")
    # Identifiers are only checked for presence
    _, algorithm = _remove(der.remove_object, algorithm, PUBLIC_KEY, "algorithm.id")
    _, algorithm = _remove(der.remove_object, algorithm, PUBLIC_KEY, "algorithm.parameters")
    _expect_consumed(algorithm, PUBLIC_KEY, "algorithm")

    point, body = _remove(der.remove_bitstring, body, PUBLIC_KEY, "subjectPublicKey", expect_unused=0)
    _expect_consumed(body, PUBLIC_KEY, "subjectPublicKey")

    if len(point) != UNCOMPRESSED_POINT_LENGTH or point[0] != UNCOMPRESSED_POINT_TAG:
        msg = f"expected a {UNCOMPRESSED_POINT_LENGTH}-byte uncompressed point, got {len(point)} bytes"
        raise DecodeError(PUBLIC_KEY, "subjectPublicKey", msg)
    return bytes(point)


def pem_to_der(pem: str | bytes) -> bytes:
    """Strip PEM armour from a public key as returned by Cloud KMS."""
    try:
        data = der.unpem(pem)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(PUBLIC_KEY, "pem", str(e)) from e
    if not data:
        raise DecodeError(PUBLIC_KEY, "pem", "no base64 payload")
    return data
