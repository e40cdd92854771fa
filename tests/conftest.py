from unittest.mock import AsyncMock, MagicMock

import pytest
from ecdsa import SECP256k1, SigningKey
from ecdsa.util import sigdecode_der, sigencode_der
from eth_keys import keys
from eth_typing import ChecksumAddress
from eth_utils import keccak
from google.cloud import kms

from kms_eth_signer.config import KmsConfig
from kms_eth_signer.kms import KmsProvider
from kms_eth_signer.signer import KmsSigner

# Test Constants
TEST_PRIVATE_KEY = 0x4C0883A69102937D6231471B5DBB6204FE5129617082792AE468D01A3F362318
TEST_CONFIG = {
    "project_id": "test-project",
    "location_id": "global",
    "key_ring_id": "test-ring",
    "key_id": "test-key",
}
TEST_DIGEST = keccak(text="Hello Ethereum!")


def der_sign(signing_key: SigningKey, digest: bytes, high_s: bool | None = None) -> bytes:
    """DER-sign ``digest`` the way KMS does, optionally forcing the high or low ``s`` representative."""
    order = SECP256k1.order
    r, s = sigdecode_der(signing_key.sign_digest(digest, sigencode=sigencode_der), order)
    if high_s is not None and (s > order // 2) != high_s:
        s = order - s
    return sigencode_der(r, s, order)


@pytest.fixture
def sign_der():
    """Expose ``der_sign`` to test modules."""
    return der_sign


@pytest.fixture
def test_digest() -> bytes:
    return TEST_DIGEST


@pytest.fixture
def signing_key() -> SigningKey:
    """Key standing in for the KMS-held secp256k1 key."""
    return SigningKey.from_secret_exponent(TEST_PRIVATE_KEY, curve=SECP256k1)


@pytest.fixture
def test_address() -> ChecksumAddress:
    return keys.PrivateKey(TEST_PRIVATE_KEY.to_bytes(32, "big")).public_key.to_checksum_address()


@pytest.fixture
def public_key_der(signing_key: SigningKey) -> bytes:
    return signing_key.get_verifying_key().to_der()


@pytest.fixture
def public_key_pem(signing_key: SigningKey) -> str:
    return signing_key.get_verifying_key().to_pem().decode()


@pytest.fixture
def mock_kms_client(signing_key: SigningKey, public_key_pem: str) -> MagicMock:
    """Create a mock KMS client that signs with ``signing_key``."""
    mock_client = MagicMock(spec=kms.KeyManagementServiceAsyncClient)
    mock_client.get_public_key = AsyncMock(return_value=kms.PublicKey(pem=public_key_pem))

    def asymmetric_sign(request):
        signature = der_sign(signing_key, request["digest"]["sha256"])
        return kms.AsymmetricSignResponse(signature=signature)

    mock_client.asymmetric_sign = AsyncMock(side_effect=asymmetric_sign)
    return mock_client


@pytest.fixture
def kms_config() -> KmsConfig:
    return KmsConfig(**TEST_CONFIG)


@pytest.fixture
def kms_provider(kms_config: KmsConfig, mock_kms_client: MagicMock) -> KmsProvider:
    return KmsProvider(kms_config, client=mock_kms_client)


@pytest.fixture
def kms_signer(kms_provider: KmsProvider) -> KmsSigner:
    """Create a KMS signer with mocked client."""
    return KmsSigner(provider=kms_provider)
