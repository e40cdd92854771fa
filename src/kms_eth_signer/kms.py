"""KMS provider implementation."""

import logging

from google.cloud.kms_v1 import KeyManagementServiceAsyncClient

from kms_eth_signer.config import KmsConfig, ServiceAccountFileCredentials, ServiceAccountInfoCredentials
from kms_eth_signer.der import pem_to_der
from kms_eth_signer.exceptions import MissingDataError

logger = logging.getLogger(__name__)


class KmsProvider:
    """Google Cloud KMS provider for a single secp256k1 key version."""

    def __init__(self, config: KmsConfig, client: KeyManagementServiceAsyncClient | None = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> KeyManagementServiceAsyncClient:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> KeyManagementServiceAsyncClient:
        """Create Google Cloud KMS client."""
        credentials = self.config.credentials
        if isinstance(credentials, ServiceAccountInfoCredentials):
            return KeyManagementServiceAsyncClient.from_service_account_info(credentials.info)
        if isinstance(credentials, ServiceAccountFileCredentials):
            return KeyManagementServiceAsyncClient.from_service_account_file(str(credentials.path))
        return KeyManagementServiceAsyncClient()

    async def get_public_key(self) -> bytes:
        """Get the public key in DER format."""
        key_path = self.config.key_version_path
        logger.debug("Fetching public key for %s", key_path)

        response = await self.client.get_public_key(request={"name": key_path})
        if response is None or not response.pem:
            msg = f"Could not get public key from KMS for {key_path}"
            raise MissingDataError(msg)
        return pem_to_der(response.pem)

    async def sign_digest(self, digest: bytes) -> bytes:
        """Sign a pre-hashed 32-byte digest with the KMS key, returning a DER signature."""
        key_path = self.config.key_version_path
        logger.debug("Requesting signature from %s", key_path)

        response = await self.client.asymmetric_sign(request={"name": key_path, "digest": {"sha256": digest}})
        if response is None or not response.signature:
            msg = f"Could not get signature from KMS for {key_path}"
            raise MissingDataError(msg)
        return response.signature
