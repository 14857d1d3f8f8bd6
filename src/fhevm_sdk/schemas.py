"""
FHEVM SDK data models.

This module defines the value types shared by the encryption, input and
decryption modules.
"""

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ==============================================================================
# Enums
# ==============================================================================


class FheType(str, Enum):
    """Semantic types the FHE runtime can encrypt."""

    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINT128 = "uint128"
    UINT256 = "uint256"
    BOOL = "bool"
    ADDRESS = "address"
    BYTES = "bytes"

    @property
    def is_integer(self) -> bool:
        return self.value.startswith("uint")

    @property
    def bits(self) -> Optional[int]:
        """Bit width for fixed-width types, None for raw bytes."""
        if self.is_integer:
            return int(self.value[4:])
        if self is FheType.BOOL:
            return 1
        if self is FheType.ADDRESS:
            return 160
        return None

    @property
    def max_value(self) -> Optional[int]:
        """Largest plaintext accepted by an unsigned integer type."""
        if not self.is_integer:
            return None
        return (1 << self.bits) - 1

    @classmethod
    def from_bits(cls, bits: int) -> "FheType":
        try:
            return cls(f"uint{bits}")
        except ValueError:
            raise ValueError(f"Unsupported unsigned integer width: {bits}") from None


UINT_TYPES = (
    FheType.UINT8,
    FheType.UINT16,
    FheType.UINT32,
    FheType.UINT64,
    FheType.UINT128,
    FheType.UINT256,
)


class ReadyState(str, Enum):
    """Lifecycle of an FHEVM instance."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


# ==============================================================================
# Values
# ==============================================================================

Handle = Union[int, bytes, str]


class EncryptedValue(BaseModel):
    """A ciphertext tagged with the type it encodes."""

    model_config = ConfigDict(frozen=True)

    fhe_type: FheType = Field(..., description="Semantic type of the plaintext")
    ciphertext: bytes = Field(..., description="Opaque ciphertext produced by the runtime")

    def __bytes__(self) -> bytes:
        return self.ciphertext

    def __len__(self) -> int:
        return len(self.ciphertext)

    def hex(self) -> str:
        return "0x" + self.ciphertext.hex()


class InputEntry(BaseModel):
    """One typed value queued in an encrypted input."""

    model_config = ConfigDict(frozen=True)

    fhe_type: FheType
    value: Union[bool, int, str, bytes]


class EncryptedInputResult(BaseModel):
    """Handles and the proof binding them to one contract/user pair."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handles: List[bytes] = Field(..., description="One handle per added value, in insertion order")
    input_proof: str = Field(..., alias="inputProof", description="Proof covering the whole batch")

    @field_validator("handles", mode="before")
    @classmethod
    def decode_hex_handles(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)):
            return v
        handles = []
        for handle in v:
            if isinstance(handle, str):
                text = handle[2:] if handle.lower().startswith("0x") else handle
                try:
                    handle = bytes.fromhex(text)
                except ValueError:
                    raise ValueError(f"Handle {handle!r} is not hex encoded") from None
            handles.append(handle)
        return handles

    def __len__(self) -> int:
        return len(self.handles)


class DecryptionRequest(BaseModel):
    """What to decrypt and on whose behalf."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    contract_address: str = Field(..., alias="contractAddress")
    handle: Handle
    user_address: str = Field(..., alias="userAddress")


class RuntimeParams(BaseModel):
    """Parameters handed to the runtime loader during init()."""

    model_config = ConfigDict(frozen=True)

    chain_id: int
    public_key: str
    gateway_url: str
    acl_address: Optional[str] = None
    kms_verifier_address: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of a non-raising validation check."""

    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid
