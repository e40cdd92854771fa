"""Unit tests for DER decoding."""
import pytest
from ecdsa import der
from ecdsa.util import sigencode_der

from kms_eth_signer.der import decode_public_key, decode_signature, pem_to_der
from kms_eth_signer.exceptions import DecodeError
from kms_eth_signer.types.ethereum_types import SECP256K1_N

EC_PUBLIC_KEY_OID = (1, 2, 840, 10045, 2, 1)
SECP256K1_OID = (1, 3, 132, 0, 10)


def _signature_blob(r: int, s: int) -> bytes:
    return der.encode_sequence(der.encode_integer(r), der.encode_integer(s))


def test_decode_signature():
    """Test decoding r and s from a KMS style signature."""
    r, s = 0x1234, SECP256K1_N - 5
    signature = decode_signature(sigencode_der(r, s, SECP256K1_N))
    assert signature.r == r
    assert signature.s == s


def test_decode_signature_strips_sign_padding():
    """Test that the DER zero pad on high-bit integers is not part of the value."""
    r = 1 << 255
    blob = _signature_blob(r, 1)
    assert blob[4:6] == b"\x00\x80"

    signature = decode_signature(blob)
    assert signature.r == r
    assert signature.s == 1


def test_decode_signature_accepts_memoryview():
    blob = _signature_blob(7, 9)
    assert decode_signature(memoryview(blob)).r == 7


def test_decode_signature_truncated(sign_der, signing_key, test_digest):
    """Test that every truncation of a signature is rejected."""
    blob = sign_der(signing_key, test_digest)
    for length in range(len(blob)):
        with pytest.raises(DecodeError):
            decode_signature(blob[:length])


def test_decode_signature_wrong_tag():
    blob = _signature_blob(7, 9)
    with pytest.raises(DecodeError) as exc_info:
        decode_signature(b"\x31" + blob[1:])
    assert exc_info.value.structure == "signature"
    assert exc_info.value.field == "sequence"


def test_decode_signature_trailing_bytes():
    with pytest.raises(DecodeError, match="trailing"):
        decode_signature(_signature_blob(7, 9) + b"\x00")


def test_decode_signature_missing_s():
    with pytest.raises(DecodeError) as exc_info:
        decode_signature(der.encode_sequence(der.encode_integer(7)))
    assert exc_info.value.field == "s"


def test_decode_signature_negative_integer():
    blob = der.encode_sequence(b"\x02\x01\x80", der.encode_integer(1))
    with pytest.raises(DecodeError) as exc_info:
        decode_signature(blob)
    assert exc_info.value.field == "r"


@pytest.mark.parametrize(("r", "s", "field"), [(0, 1, "r"), (1, 0, "s"), (SECP256K1_N, 1, "r"), (1, SECP256K1_N + 1, "s")])
def test_decode_signature_out_of_range(r, s, field):
    with pytest.raises(DecodeError) as exc_info:
        decode_signature(_signature_blob(r, s))
    assert exc_info.value.field == field


def test_decode_public_key(signing_key, public_key_der):
    """Test extracting the uncompressed point from SubjectPublicKeyInfo."""
    point = decode_public_key(public_key_der)
    assert len(point) == 65
    assert point[0] == 0x04
    assert point[1:] == signing_key.get_verifying_key().to_string()


def test_decode_public_key_truncated(public_key_der):
    """Test that every truncation of a public key is rejected."""
    for length in range(len(public_key_der)):
        with pytest.raises(DecodeError):
            decode_public_key(public_key_der[:length])


def test_decode_public_key_compressed(signing_key):
    """Test that compressed points are rejected."""
    blob = signing_key.get_verifying_key().to_der(point_encoding="compressed")
    with pytest.raises(DecodeError) as exc_info:
        decode_public_key(blob)
    assert exc_info.value.field == "subjectPublicKey"


def test_decode_public_key_missing_bitstring():
    algorithm = der.encode_sequence(der.encode_oid(*EC_PUBLIC_KEY_OID), der.encode_oid(*SECP256K1_OID))
    with pytest.raises(DecodeError) as exc_info:
        decode_public_key(der.encode_sequence(algorithm))
    assert exc_info.value.structure == "public key"
    assert exc_info.value.field == "subjectPublicKey"


def test_decode_public_key_missing_curve_identifier(signing_key):
    algorithm = der.encode_sequence(der.encode_oid(*EC_PUBLIC_KEY_OID))
    point = b"\x04" + signing_key.get_verifying_key().to_string()
    blob = der.encode_sequence(algorithm, der.encode_bitstring(point, unused=0))
    with pytest.raises(DecodeError) as exc_info:
        decode_public_key(blob)
    assert exc_info.value.field == "algorithm.parameters"


def test_decode_public_key_rejects_signature():
    with pytest.raises(DecodeError):
        decode_public_key(_signature_blob(7, 9))


def test_pem_to_der(public_key_pem, public_key_der):
    assert pem_to_der(public_key_pem) == public_key_der
    assert pem_to_der(public_key_pem.encode()) == public_key_der


def test_pem_to_der_empty():
    with pytest.raises(DecodeError, match="pem"):
        pem_to_der("-----BEGIN PUBLIC KEY-----\n-----END PUBLIC KEY-----\n")
