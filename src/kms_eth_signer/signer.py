import asyncio
import logging
from typing import Any

from eth_account._utils.legacy_transactions import (
    encode_transaction,  # noqa: PLC2701
    serializable_unsigned_transaction_from_dict,  # noqa: PLC2701
)
from eth_account.messages import SignableMessage, _hash_eip191_message, encode_defunct, encode_typed_data
from eth_account.typed_transactions import TypedTransaction
from eth_typing import ChecksumAddress
from eth_utils import is_hex
from hexbytes import HexBytes

from kms_eth_signer.config import KmsConfig
from kms_eth_signer.der import decode_public_key, decode_signature
from kms_eth_signer.exceptions import AddressMismatchError, ConfigurationError
from kms_eth_signer.kms import KmsProvider
from kms_eth_signer.types.ethereum_types import MSG_HASH_LENGTH, NormalizedSignature
from kms_eth_signer.utils import (
    V_OFFSET,
    Recoverer,
    derive_address,
    normalize_signature,
    recover_address,
    resolve_recovery_id,
    to_hex,
)

logger = logging.getLogger(__name__)

# EIP-155: v = recovery_index + 35 + 2 * chain_id
CHAIN_ID_OFFSET = 35


class KmsSigner:
    """Ethereum signer backed by a Google Cloud KMS secp256k1 key."""

    def __init__(
        self,
        config: KmsConfig | None = None,
        provider: KmsProvider | None = None,
        recover: Recoverer = recover_address,
    ):
        """Initialize signer from a KMS configuration (read from the environment when omitted) or a provider."""
        if config is not None and provider is not None:
            msg = "Pass either config or provider, not both"
            raise ConfigurationError(msg)
        if provider is None:
            provider = KmsProvider(config if config is not None else KmsConfig.from_env())
        self.provider = provider
        self._recover = recover
        self._address: ChecksumAddress | None = None

    async def get_address(self) -> ChecksumAddress:
        """Get Ethereum address derived from the KMS public key."""
        # Concurrent first calls may both fetch; the derived value is identical.
        if self._address is None:
            public_key = await self.provider.get_public_key()
            self._address = derive_address(decode_public_key(public_key))
        return self._address

    async def sign_digest(self, digest: bytes | str) -> NormalizedSignature:
        """
        Sign a 32-byte digest with the KMS key.

        Args:
            digest: Digest as bytes or 0x-prefixed hex string

        Returns:
            NormalizedSignature: Low-s ``r``, ``s`` and the recovered ``v``

        Raises:
            MissingDataError: If KMS returns no signature or public key.
            DecodeError: If KMS returns malformed DER.
            RecoveryFailureError: If the signature does not recover the key address.
        """
        msghash = bytes(HexBytes(digest))
        if len(msghash) != MSG_HASH_LENGTH:
            msg = f"Invalid message hash length: {len(msghash)}"
            raise ValueError(msg)

        # On failure the sibling call is not cancelled; its result is discarded.
        der_signature, address = await asyncio.gather(self.provider.sign_digest(msghash), self.get_address())

        signature = normalize_signature(decode_signature(der_signature))
        v = resolve_recovery_id(msghash, signature, address, recover=self._recover)
        return NormalizedSignature(r=to_hex(signature.r), s=to_hex(signature.s), v=v)

    async def sign_message(self, message: str | bytes) -> NormalizedSignature:
        """
        Sign a message following EIP-191.

        Args:
            message: Message to sign (text, 0x-prefixed hex string, or bytes).
                Strings starting with 0x that are not valid hex are signed as text.

        Example:
            >>> signer = KmsSigner()
            >>> signature = await signer.sign_message("Hello Ethereum!")
        """
        if isinstance(message, str):
            if message.startswith("0x") and is_hex(message):
                signable = encode_defunct(hexstr=message)
            else:
                signable = encode_defunct(text=message)
        elif isinstance(message, bytes):
            signable = encode_defunct(primitive=message)
        else:
            raise TypeError(f"Unsupported message type: {type(message)}")
        return await self._sign_signable(signable)

    async def sign_typed_data(
        self,
        domain_data: dict[str, Any],
        message_types: dict[str, Any],
        message_data: dict[str, Any],
    ) -> NormalizedSignature:
        """Sign EIP-712 typed data."""
        signable = encode_typed_data(domain_data=domain_data, message_types=message_types, message_data=message_data)
        return await self._sign_signable(signable)

    async def _sign_signable(self, signable: SignableMessage) -> NormalizedSignature:
        return await self.sign_digest(_hash_eip191_message(signable))

    async def sign_transaction(self, transaction: dict[str, Any]) -> HexBytes:
        """
        Sign a legacy (EIP-155) or typed transaction.

        Args:
            transaction: Transaction fields in web3 naming (``chainId``, ``gasPrice``, ...).
                An optional ``from`` must match the KMS key address.

        Returns:
            HexBytes: The raw signed transaction

        Raises:
            AddressMismatchError: If ``from`` differs from the key address; raised before signing.
        """
        transaction = dict(transaction)
        address = await self.get_address()

        sender = transaction.pop("from", None)
        if sender is not None and str(sender).lower() != address.lower():
            msg = f"Transaction from address mismatch: {sender} != {address}"
            raise AddressMismatchError(msg)

        unsigned_tx = serializable_unsigned_transaction_from_dict(transaction)
        signature = await self.sign_digest(unsigned_tx.hash())
        _, r, s = signature.vrs

        recovery_index = signature.v - V_OFFSET
        if isinstance(unsigned_tx, TypedTransaction):
            v = recovery_index
        elif transaction.get("chainId") is not None:
            v = recovery_index + CHAIN_ID_OFFSET + 2 * transaction["chainId"]
        else:
            v = signature.v

        logger.debug("Signed transaction from %s with v=%d", address, v)
        return HexBytes(encode_transaction(unsigned_tx, vrs=(v, r, s)))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(key={self.provider.config.key_version_path})"

    __str__ = __repr__
