"""
FHEVM SDK configuration.

This module handles environment variables and SDK configuration.
"""

from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from .validation import normalize_address

DEFAULT_GATEWAY_BASE_URL = "https://gateway.zama.ai"


class FhevmConfig(BaseSettings):
    """Configuration for an FHEVM instance. Immutable once created."""

    chain_id: int = Field(
        ...,
        gt=0,
        description="Chain ID of the target network",
    )
    gateway_url: Optional[str] = Field(
        default=None,
        description="Gateway base URL (derived from chain_id if not provided)",
    )
    public_key: Optional[str] = Field(
        default=None,
        description="Known FHE public key (fetched from the gateway if not provided)",
    )
    kms_verifier_url: Optional[str] = Field(
        default=None,
        description="KMS verifier URL",
    )
    kms_verifier_address: Optional[str] = Field(
        default=None,
        description="KMS verifier contract address",
    )
    acl_address: Optional[str] = Field(
        default=None,
        description="ACL contract address",
    )
    signer: Optional[Any] = Field(
        default=None,
        exclude=True,
        repr=False,
        description="External signer used for permission signatures",
    )
    runtime: Optional[str] = Field(
        default=None,
        description="Runtime loader as 'package.module:callable'",
    )
    timeout: Optional[float] = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for gateway, runtime and signer calls (None disables)",
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify SSL certificates when talking to the gateway",
    )
    verify_permissions: bool = Field(
        default=True,
        description="Check that permission signatures recover to the requesting user",
    )

    model_config = {
        "env_prefix": "FHEVM_",
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
    }

    @field_validator("kms_verifier_address", "acl_address")
    @classmethod
    def validate_contract_address(cls, v: Optional[str], info) -> Optional[str]:
        if v is None:
            return v
        return normalize_address(v, field=info.field_name)

    @field_validator("gateway_url")
    @classmethod
    def validate_gateway_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("gateway_url must be an http(s) URL")
        return v.rstrip("/")

    @property
    def resolved_gateway_url(self) -> str:
        """Gateway URL, falling back to the public gateway for chain_id."""
        return self.gateway_url or f"{DEFAULT_GATEWAY_BASE_URL}/{self.chain_id}"

    @property
    def has_signer(self) -> bool:
        return self.signer is not None


def get_config(
    chain_id: Optional[int] = None,
    gateway_url: Optional[str] = None,
    public_key: Optional[str] = None,
    signer: Optional[Any] = None,
    **kwargs,
) -> FhevmConfig:
    """
    Get FHEVM configuration.

    Explicit parameters override environment variables.

    Args:
        chain_id: Chain ID (overrides FHEVM_CHAIN_ID env var)
        gateway_url: Gateway URL (overrides FHEVM_GATEWAY_URL env var)
        public_key: Public key (overrides FHEVM_PUBLIC_KEY env var)
        signer: Signer for permission signatures
        **kwargs: Additional configuration options

    Returns:
        FhevmConfig instance
    """
    overrides = {
        "chain_id": chain_id,
        "gateway_url": gateway_url,
        "public_key": public_key,
        "signer": signer,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    if kwargs:
        valid_fields = set(FhevmConfig.model_fields.keys())
        overrides.update({k: v for k, v in kwargs.items() if k in valid_fields})

    return FhevmConfig(**overrides)
