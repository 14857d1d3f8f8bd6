"""
FHEVM SDK exceptions.

This module defines all custom exceptions used in the SDK. Every failure
surfaced by an instance is one of InitializationError, EncryptionError or
DecryptionError; lower-level transport errors are wrapped into these.
"""

from typing import Any, Dict, Optional


class FhevmError(Exception):
    """Base exception for FHEVM SDK errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "FHEVM_ERROR"
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InitializationError(FhevmError):
    """Raised when bootstrap fails or an operation runs before init()."""

    def __init__(
        self,
        message: str = "FHEVM SDK not initialized. Call init() first or use create_fhevm().",
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            message=message,
            code="INIT_ERROR",
            details=details,
            cause=cause,
        )


class EncryptionError(FhevmError):
    """Raised when a typed encryption or an input batch fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        code: str = "ENCRYPTION_ERROR",
    ):
        super().__init__(
            message=message,
            code=code,
            details=details,
            cause=cause,
        )


class InputFinalizedError(EncryptionError):
    """Raised when values are added to an already encrypted input."""

    def __init__(self, contract_address: str, user_address: str):
        super().__init__(
            message="Encrypted input already finalized; create a new input to add more values",
            details={
                "contract_address": contract_address,
                "user_address": user_address,
            },
            code="INPUT_FINALIZED",
        )


class DecryptionError(FhevmError):
    """Raised when a decryption or re-encryption request fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        code: str = "DECRYPTION_ERROR",
    ):
        super().__init__(
            message=message,
            code=code,
            details=details,
            cause=cause,
        )


class SignerRequiredError(DecryptionError):
    """Raised when a permission is needed but no signer is configured."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"A signer is required for {operation}; configure one with FhevmConfig(signer=...)",
            details={"operation": operation},
            code="SIGNER_REQUIRED",
        )


class GatewayError(FhevmError):
    """Raised by the gateway client for transport, status or payload failures."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message=message,
            code="GATEWAY_ERROR",
            details=details,
            cause=cause,
        )
        self.status_code = status_code


class ValidationError(FhevmError, ValueError):
    """Raised when caller-supplied input is malformed."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details=details,
        )
