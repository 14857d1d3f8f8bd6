"""
FHEVM SDK - framework-agnostic client for FHE-enabled smart contracts.

Encrypts typed values, assembles encrypted contract inputs, requests
decryption/re-encryption and manages the gateway public key and EIP-712
permission signatures on top of an external FHE runtime.

Example:
    >>> from fhevm_sdk import create_fhevm, LocalAccountSigner
    >>>
    >>> fhevm = await create_fhevm(
    ...     chain_id=11155111,
    ...     signer=LocalAccountSigner(private_key),
    ...     runtime_loader=load_runtime,
    ... )
    >>>
    >>> # Single values
    >>> encrypted = await fhevm.encrypt.uint8(42)
    >>>
    >>> # Contract call inputs
    >>> result = await (
    ...     fhevm.contract.create_input(contract_address, user_address)
    ...     .add8(5)
    ...     .add16(1000)
    ...     .add_bool(True)
    ...     .encrypt()
    ... )
    >>> result.handles, result.input_proof
    >>>
    >>> # Re-encryption for the user
    >>> value = await fhevm.decrypt.reencrypt(handle, contract_address, user_address)
"""

__version__ = "0.1.0"

# Configuration
from .config import FhevmConfig, get_config

# Exceptions
from .exceptions import (
    DecryptionError,
    EncryptionError,
    FhevmError,
    GatewayError,
    InitializationError,
    InputFinalizedError,
    SignerRequiredError,
    ValidationError,
)

# Factory
from .factory import create_fhevm, create_fhevm_sync

# Gateway
from .gateway import GatewayClient

# Input builder
from .input_builder import EncryptedInputBuilder

# Instance
from .instance import ContractModule, DecryptionModule, EncryptionModule, FHEVMInstance

# Public key cache
from .key_cache import PUBLIC_KEY_TTL_SECONDS, PublicKeyCache, get_default_cache, reset_default_cache

# Logging
from .logging import configure_logging

# Permissions
from .permissions import (
    EIP712Domain,
    JsonRpcSigner,
    LocalAccountSigner,
    Permission,
    PermissionSigner,
    Signer,
    SignerError,
)

# Runtime
from .runtime import FhevmRuntime, RuntimeInput, RuntimeLoader

# Schemas
from .schemas import (
    DecryptionRequest,
    EncryptedInputResult,
    EncryptedValue,
    FheType,
    InputEntry,
    ReadyState,
    RuntimeParams,
    ValidationResult,
)

# Validation
from .validation import (
    is_valid_fhe_type,
    is_valid_value_for_type,
    normalize_address,
    normalize_handle,
    validate_address,
    validate_chain_id,
    validate_encryption_input,
)

__all__ = [
    # Version
    "__version__",
    # Factory
    "create_fhevm",
    "create_fhevm_sync",
    # Instance
    "FHEVMInstance",
    "EncryptionModule",
    "DecryptionModule",
    "ContractModule",
    "EncryptedInputBuilder",
    # Config
    "FhevmConfig",
    "get_config",
    "configure_logging",
    # Collaborators
    "GatewayClient",
    "PublicKeyCache",
    "PUBLIC_KEY_TTL_SECONDS",
    "get_default_cache",
    "reset_default_cache",
    "FhevmRuntime",
    "RuntimeInput",
    "RuntimeLoader",
    # Permissions
    "EIP712Domain",
    "Permission",
    "PermissionSigner",
    "Signer",
    "LocalAccountSigner",
    "JsonRpcSigner",
    "SignerError",
    # Schemas
    "FheType",
    "ReadyState",
    "EncryptedValue",
    "InputEntry",
    "EncryptedInputResult",
    "DecryptionRequest",
    "RuntimeParams",
    "ValidationResult",
    # Validation
    "is_valid_fhe_type",
    "is_valid_value_for_type",
    "validate_encryption_input",
    "validate_address",
    "validate_chain_id",
    "normalize_address",
    "normalize_handle",
    # Exceptions
    "FhevmError",
    "InitializationError",
    "EncryptionError",
    "InputFinalizedError",
    "DecryptionError",
    "SignerRequiredError",
    "GatewayError",
    "ValidationError",
]
