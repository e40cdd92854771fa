from typing import Literal

from eth_typing import HexStr
from pydantic import BaseModel, ConfigDict, Field, field_validator

# secp256k1 curve order
SECP256K1_N: int = int("fffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141", 16)
SECP256K1_HALF_N: int = SECP256K1_N // 2

MSG_HASH_LENGTH: int = 32
SIGNATURE_LENGTH: int = 65


class DecodedSignature(BaseModel):
    """The ``r`` and ``s`` integers of an ECDSA signature."""

    model_config = ConfigDict(frozen=True)

    r: int = Field(..., description="R component of signature")
    s: int = Field(..., description="S component of signature")

    @field_validator("r", "s")
    @classmethod
    def validate_range(cls, v: int) -> int:
        if not 0 < v < SECP256K1_N:
            msg = "Signature component must be in the range (0, n)"
            raise ValueError(msg)
        return v


class NormalizedSignature(BaseModel):
    """Represents a low-s Ethereum signature with v, r, s components."""

    model_config = ConfigDict(frozen=True)

    r: HexStr = Field(..., description="R component of signature")
    s: HexStr = Field(..., description="S component of signature")
    v: Literal[27, 28] = Field(..., description="Recovery identifier")

    @field_validator("r", "s")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        if not v.startswith("0x") or len(v) % 2 != 0 or len(v) <= 2:
            msg = f"Expected a 0x-prefixed even-length hex string, got {v!r}"
            raise ValueError(msg)
        try:
            int(v, 16)
        except ValueError as error:
            msg = "Invalid hex string"
            raise ValueError(msg) from error
        return v

    @field_validator("s")
    @classmethod
    def validate_low_s(cls, v: str) -> str:
        if int(v, 16) > SECP256K1_HALF_N:
            msg = "s must not exceed half the curve order"
            raise ValueError(msg)
        return v

    @property
    def vrs(self) -> tuple[int, int, int]:
        """Integer ``(v, r, s)`` as accepted by ``eth_account`` recovery helpers."""
        return self.v, int(self.r, 16), int(self.s, 16)

    def to_bytes(self) -> bytes:
        """Serialize as the 65-byte ``r || s || v`` form."""
        return int(self.r, 16).to_bytes(32, "big") + int(self.s, 16).to_bytes(32, "big") + bytes([self.v])

    def to_hex(self) -> HexStr:
        """Convert signature to hex string."""
        return HexStr("0x" + self.to_bytes().hex())

    @classmethod
    def from_hex(cls, hex_str: str) -> "NormalizedSignature":
        """Create signature from hex string."""
        if hex_str.startswith("0x"):
            hex_str = hex_str[2:]
        sig_bytes = bytes.fromhex(hex_str)
        if len(sig_bytes) != SIGNATURE_LENGTH:
            msg = f"Invalid signature length: {len(sig_bytes)}"
            raise ValueError(msg)
        r = int.from_bytes(sig_bytes[0:32], "big")
        s = int.from_bytes(sig_bytes[32:64], "big")
        return cls(r=to_hex(r), s=to_hex(s), v=sig_bytes[64])


def to_hex(value: int) -> HexStr:
    """Render an integer as 0x-prefixed hex, padded to an even number of digits."""
    digits = format(value, "x")
    if len(digits) % 2:
        digits = "0" + digits
    return HexStr("0x" + digits)
