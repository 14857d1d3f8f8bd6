"""
Validation utilities for FHE operations and user input.

The `is_*` / `validate_*` helpers never raise and return a ValidationResult;
the `normalize_*` helpers raise ValidationError and return the canonical form.
"""

import re
from typing import Any, Optional, Union

from eth_utils import to_checksum_address

from .exceptions import ValidationError
from .schemas import FheType, Handle, ValidationResult

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
HANDLE_BYTES = 32


def is_valid_fhe_type(fhe_type: Union[str, FheType]) -> bool:
    """Check that a type tag names a supported FHE type."""
    try:
        FheType(fhe_type)
    except ValueError:
        return False
    return True


def is_valid_address(address: Any) -> bool:
    return isinstance(address, str) and ADDRESS_PATTERN.match(address) is not None


def is_valid_value_for_type(value: Any, fhe_type: Union[str, FheType]) -> bool:
    """Check that a plaintext fits the given FHE type."""
    if not is_valid_fhe_type(fhe_type):
        return False
    fhe_type = FheType(fhe_type)

    if fhe_type is FheType.BOOL:
        return isinstance(value, bool)

    if fhe_type is FheType.ADDRESS:
        return is_valid_address(value)

    if fhe_type is FheType.BYTES:
        return isinstance(value, (bytes, bytearray))

    # bool is an int subclass but never a valid integer plaintext
    if isinstance(value, bool):
        return False
    try:
        number = int(value, 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return 0 <= number <= fhe_type.max_value


def validate_encryption_input(value: Any, fhe_type: Optional[Union[str, FheType]] = None) -> ValidationResult:
    if value is None:
        return ValidationResult(valid=False, error="Value cannot be None")

    if fhe_type is not None and not is_valid_fhe_type(fhe_type):
        return ValidationResult(valid=False, error=f"Invalid FHE type: {fhe_type}")

    if fhe_type is not None and not is_valid_value_for_type(value, fhe_type):
        return ValidationResult(
            valid=False,
            error=f"Value {value!r} is not valid for type {FheType(fhe_type).value}",
        )

    return ValidationResult(valid=True)


def validate_address(address: Any) -> ValidationResult:
    if not address or not isinstance(address, str):
        return ValidationResult(valid=False, error="Address must be a non-empty string")

    if not is_valid_address(address):
        return ValidationResult(valid=False, error="Invalid Ethereum address format")

    return ValidationResult(valid=True)


def validate_chain_id(chain_id: Any) -> ValidationResult:
    if isinstance(chain_id, bool):
        return ValidationResult(valid=False, error="Chain ID must be a positive integer")
    try:
        number = int(chain_id)
    except (TypeError, ValueError):
        return ValidationResult(valid=False, error="Chain ID must be a positive integer")

    if number <= 0 or (isinstance(chain_id, float) and not chain_id.is_integer()):
        return ValidationResult(valid=False, error="Chain ID must be a positive integer")

    return ValidationResult(valid=True)


def normalize_address(address: Any, field: str = "address") -> str:
    """Validate an address and return its EIP-55 checksum form."""
    result = validate_address(address)
    if not result.valid:
        raise ValidationError(f"{field}: {result.error}", details={"field": field})
    return to_checksum_address(address)


def normalize_handle(handle: Handle) -> int:
    """
    Convert a value handle to its integer form.

    Accepts the raw 32-byte handle produced by an encrypted input, a
    0x-prefixed hex string, or an int.
    """
    if isinstance(handle, bool):
        raise ValidationError("Handle must be bytes, hex string or int")

    if isinstance(handle, (bytes, bytearray)):
        if not handle or len(handle) > HANDLE_BYTES:
            raise ValidationError(
                f"Handle must be 1 to {HANDLE_BYTES} bytes long",
                details={"length": len(handle)},
            )
        return int.from_bytes(handle, "big")

    if isinstance(handle, str):
        text = handle[2:] if handle.lower().startswith("0x") else handle
        try:
            number = int(text, 16)
        except ValueError:
            raise ValidationError("Handle string must be hex encoded") from None
    elif isinstance(handle, int):
        number = handle
    else:
        raise ValidationError("Handle must be bytes, hex string or int")

    if number < 0 or number.bit_length() > HANDLE_BYTES * 8:
        raise ValidationError("Handle out of range for a 32-byte value")
    return number


def handle_to_hex(handle: Handle) -> str:
    """Render a handle as a 0x-prefixed, 32-byte hex string."""
    return "0x" + normalize_handle(handle).to_bytes(HANDLE_BYTES, "big").hex()
