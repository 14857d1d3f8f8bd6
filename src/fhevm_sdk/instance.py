"""
FHEVM SDK instance.

This module provides the FHEVMInstance class, the framework-agnostic façade
over an FHE runtime, and its three sub-modules:

- `instance.encrypt`  typed single-value encryption
- `instance.decrypt`  gateway decryption and user re-encryption
- `instance.contract` encrypted inputs and permission signatures

Every sub-module operation requires a ready instance and raises
InitializationError, with no side effects, when called before init().
"""

import asyncio
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from .config import FhevmConfig, get_config
from .exceptions import (
    DecryptionError,
    EncryptionError,
    InitializationError,
    SignerRequiredError,
    ValidationError,
)
from .gateway import GatewayClient
from .input_builder import EncryptedInputBuilder
from .key_cache import PublicKeyCache, get_default_cache
from .logging import get_logger
from .permissions import PermissionSigner
from .runtime import FhevmRuntime, RuntimeLoader, load_runtime, resolve
from .schemas import (
    DecryptionRequest,
    EncryptedValue,
    FheType,
    Handle,
    ReadyState,
    RuntimeParams,
)
from .validation import normalize_address, normalize_handle

logger = get_logger(__name__)


class EncryptionModule:
    """Typed encryption of single values. Range checks are left to the runtime."""

    def __init__(self, instance: "FHEVMInstance"):
        self._instance = instance

    async def _encrypt(self, fhe_type: FheType, value: Any) -> EncryptedValue:
        runtime = self._instance._require_runtime()
        try:
            ciphertext = await self._instance._run(runtime.encrypt(fhe_type, value))
        except Exception as e:
            raise EncryptionError(
                f"Failed to encrypt {fhe_type.value}: {e}",
                details={"fhe_type": fhe_type.value},
                cause=e,
            ) from e
        return EncryptedValue(fhe_type=fhe_type, ciphertext=bytes(ciphertext))

    async def uint8(self, value: int) -> EncryptedValue:
        return await self._encrypt(FheType.UINT8, value)

    async def uint16(self, value: int) -> EncryptedValue:
        return await self._encrypt(FheType.UINT16, value)

    async def uint32(self, value: int) -> EncryptedValue:
        return await self._encrypt(FheType.UINT32, value)

    async def uint64(self, value: int) -> EncryptedValue:
        return await self._encrypt(FheType.UINT64, value)

    async def uint128(self, value: int) -> EncryptedValue:
        return await self._encrypt(FheType.UINT128, value)

    async def uint256(self, value: int) -> EncryptedValue:
        return await self._encrypt(FheType.UINT256, value)

    async def address(self, address: str) -> EncryptedValue:
        return await self._encrypt(FheType.ADDRESS, address)

    # `bytes` and `bool` shadow the builtins inside this class body, so they
    # are defined last.
    async def bytes(self, data: bytes) -> EncryptedValue:
        return await self._encrypt(FheType.BYTES, data)

    async def bool(self, value: bool) -> EncryptedValue:
        return await self._encrypt(FheType.BOOL, value)


class DecryptionModule:
    """Decryption through the gateway and re-encryption for a user."""

    def __init__(self, instance: "FHEVMInstance"):
        self._instance = instance

    async def request(
        self,
        contract_address: Union[str, DecryptionRequest],
        handle: Optional[Handle] = None,
        user_address: Optional[str] = None,
    ) -> int:
        """
        Ask the gateway/KMS to reveal the plaintext behind a handle.

        Accepts either the three values or a DecryptionRequest.

        Returns:
            Plaintext as an int

        Raises:
            InitializationError: If the instance is not ready
            ValidationError: If an address or the handle is malformed
            DecryptionError: If the gateway request fails
        """
        self._instance._ensure_ready()

        if isinstance(contract_address, DecryptionRequest):
            contract_address, handle, user_address = (
                contract_address.contract_address,
                contract_address.handle,
                contract_address.user_address,
            )
        if handle is None:
            raise ValidationError("handle is required")
        contract = normalize_address(contract_address, "contract_address")
        user = normalize_address(user_address, "user_address")
        normalize_handle(handle)

        gateway = self._instance._gateway_client()
        try:
            return await self._instance._run(gateway.request_decryption(contract, handle, user))
        except Exception as e:
            raise DecryptionError(
                f"Failed to request decryption: {e}",
                details={"contract_address": contract, "user_address": user},
                cause=e,
            ) from e

    async def reencrypt(self, handle: Handle, contract_address: str, user_address: str) -> int:
        """
        Re-encrypt a handle's value for `user_address` and return the plaintext.

        A fresh permission is signed for (contract, user, public key) and,
        unless disabled in configuration, checked to recover to the user
        before it reaches the runtime.

        Raises:
            InitializationError: If the instance is not ready
            SignerRequiredError: If no signer is configured
            ValidationError: If an address or the handle is malformed
            DecryptionError: If signing, verification or the runtime fails
        """
        runtime = self._instance._require_runtime()
        config = self._instance._config
        if config.signer is None:
            raise SignerRequiredError("reencrypt")

        contract = normalize_address(contract_address, "contract_address")
        user = normalize_address(user_address, "user_address")
        handle_value = normalize_handle(handle)
        public_key = self._instance._public_key

        signature = await self._instance.contract.generate_permission(contract, user)

        if config.verify_permissions:
            permissions = self._instance._permission_signer()
            if not permissions.verify(contract, public_key, signature, user):
                raise DecryptionError(
                    "Permission signature was not produced by the requesting user",
                    details={"contract_address": contract, "user_address": user},
                )

        try:
            value = await self._instance._run(
                runtime.reencrypt(handle_value, public_key, signature, contract, user)
            )
        except Exception as e:
            raise DecryptionError(
                f"Failed to reencrypt: {e}",
                details={"contract_address": contract, "user_address": user},
                cause=e,
            ) from e
        return int(value)


class ContractModule:
    """Helpers for preparing contract calls."""

    def __init__(self, instance: "FHEVMInstance"):
        self._instance = instance

    def create_input(self, contract_address: str, user_address: str) -> EncryptedInputBuilder:
        """
        Start an encrypted input batch bound to (contract, user).

        Raises:
            InitializationError: If the instance is not ready
            ValidationError: If an address is malformed
        """
        self._instance._ensure_ready()
        return EncryptedInputBuilder(
            contract_address=normalize_address(contract_address, "contract_address"),
            user_address=normalize_address(user_address, "user_address"),
            instance=self._instance,
        )

    async def generate_permission(self, contract_address: str, user_address: str) -> str:
        """
        Sign a re-encryption permission for (contract, user, public key).

        Returns:
            0x-prefixed EIP-712 signature

        Raises:
            InitializationError: If the instance is not ready
            SignerRequiredError: If no signer is configured
            DecryptionError: If the signer fails
        """
        self._instance._ensure_ready()
        if self._instance._config.signer is None:
            raise SignerRequiredError("generate_permission")

        contract = normalize_address(contract_address, "contract_address")
        user = normalize_address(user_address, "user_address")
        permissions = self._instance._permission_signer()
        try:
            return await self._instance._run(permissions.sign(contract, user, self._instance._public_key))
        except Exception as e:
            raise DecryptionError(
                f"Failed to generate permission: {e}",
                details={"contract_address": contract, "user_address": user},
                cause=e,
            ) from e


class FHEVMInstance:
    """
    Framework-agnostic FHEVM client.

    Owns the runtime handle and the readiness flag. Construct it directly
    and await init(), or use create_fhevm() which does both.

    Example:
        >>> fhevm = FHEVMInstance(chain_id=11155111, runtime_loader=load_my_runtime)
        >>> await fhevm.init()
        >>> encrypted = await fhevm.encrypt.uint8(42)
    """

    def __init__(
        self,
        config: Optional[FhevmConfig] = None,
        *,
        runtime_loader: Optional[RuntimeLoader] = None,
        key_cache: Optional[PublicKeyCache] = None,
        gateway: Optional[GatewayClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **overrides: Any,
    ):
        """
        Initialize an FHEVMInstance.

        Args:
            config: Instance configuration (built from env + overrides if omitted)
            runtime_loader: Callable building the FHE runtime from RuntimeParams
            key_cache: Public key cache (defaults to the process-wide cache)
            gateway: Gateway client to use instead of building one
            transport: httpx transport for the gateway client built internally
            **overrides: FhevmConfig fields overriding `config` / environment

        Raises:
            TypeError: If an override is not an FhevmConfig field
            InitializationError: If the configuration is invalid
        """
        unknown = sorted(set(overrides) - set(FhevmConfig.model_fields))
        if unknown:
            raise TypeError(f"FHEVMInstance() got unexpected keyword arguments: {', '.join(unknown)}")

        try:
            if config is None:
                config = get_config(**overrides)
            elif overrides:
                merged = {**config.model_dump(), "signer": config.signer, **overrides}
                config = FhevmConfig(**merged)
        except PydanticValidationError as e:
            raise InitializationError(f"Invalid FHEVM configuration: {e}", cause=e) from e

        self._config = config
        self._runtime_loader = runtime_loader
        self._key_cache = key_cache if key_cache is not None else get_default_cache()
        self._gateway = gateway
        self._owns_gateway = gateway is None
        self._transport = transport

        self._runtime: Optional[FhevmRuntime] = None
        self._public_key: Optional[str] = None
        self._state = ReadyState.UNINITIALIZED
        self._init_task: Optional[asyncio.Future] = None

        self.encrypt = EncryptionModule(self)
        self.decrypt = DecryptionModule(self)
        self.contract = ContractModule(self)

    async def __aenter__(self) -> "FHEVMInstance":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def init(self) -> None:
        """
        Initialize the instance.

        Idempotent: once ready, further calls return immediately. Concurrent
        callers share a single bootstrap. After a failure the instance stays
        uninitialized and init() may be called again.

        Raises:
            InitializationError: If the public key or the runtime cannot be obtained
        """
        if self._state is ReadyState.READY:
            return
        if self._init_task is None or self._init_task.done():
            self._init_task = asyncio.ensure_future(self._bootstrap())
        await asyncio.shield(self._init_task)

    async def _bootstrap(self) -> None:
        config = self._config
        logger.info("Initializing FHEVM instance", extra={"chain_id": config.chain_id})

        if config.public_key:
            public_key = config.public_key
        else:
            try:
                public_key = await self._key_cache.get(config.chain_id, self._fetch_public_key)
            except Exception as e:
                raise InitializationError(
                    f"Failed to fetch public key from gateway: {e}",
                    details={"chain_id": config.chain_id, "gateway_url": config.resolved_gateway_url},
                    cause=e,
                ) from e

        params = RuntimeParams(
            chain_id=config.chain_id,
            public_key=public_key,
            gateway_url=config.resolved_gateway_url,
            acl_address=config.acl_address,
            kms_verifier_address=config.kms_verifier_address,
        )
        try:
            runtime = await self._run(load_runtime(params, self._runtime_loader, config.runtime))
        except Exception as e:
            raise InitializationError(
                f"Failed to initialize FHEVM: {e}",
                details={"chain_id": config.chain_id},
                cause=e,
            ) from e

        self._runtime = runtime
        self._public_key = public_key
        self._state = ReadyState.READY
        logger.info("FHEVM instance ready", extra={"chain_id": config.chain_id})

    async def _fetch_public_key(self) -> str:
        return await self._run(self._gateway_client().fetch_public_key())

    async def close(self) -> None:
        """Release the gateway HTTP client if this instance created it."""
        if self._gateway is not None and self._owns_gateway:
            await self._gateway.close()
            self._gateway = None

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def is_ready(self) -> bool:
        """Whether init() has completed. Never performs I/O."""
        return self._state is ReadyState.READY

    @property
    def state(self) -> ReadyState:
        return self._state

    @property
    def public_key(self) -> Optional[str]:
        """Public key resolved during init(); None before."""
        return self._public_key

    def get_config(self) -> FhevmConfig:
        """Copy of the configuration; the live configuration cannot be changed through it."""
        return self._config.model_copy()

    def get_runtime(self) -> Optional[FhevmRuntime]:
        """Underlying runtime handle; None before init()."""
        return self._runtime

    # ==========================================================================
    # Internal helpers (used by the sub-modules and the input builder)
    # ==========================================================================

    def _ensure_ready(self) -> None:
        if self._state is not ReadyState.READY or self._runtime is None:
            raise InitializationError()

    def _require_runtime(self) -> FhevmRuntime:
        self._ensure_ready()
        return self._runtime

    def _gateway_client(self) -> GatewayClient:
        if self._gateway is None:
            self._gateway = GatewayClient(
                self._config.resolved_gateway_url,
                timeout=self._config.timeout,
                verify_ssl=self._config.verify_ssl,
                transport=self._transport,
            )
            self._owns_gateway = True
        return self._gateway

    def _permission_signer(self) -> PermissionSigner:
        return PermissionSigner(self._config.signer, self._config.chain_id)

    async def _run(self, result: Any) -> Any:
        """Await a runtime/gateway/signer result within the configured timeout."""
        timeout = self._config.timeout
        if timeout is None:
            return await resolve(result)
        try:
            return await asyncio.wait_for(resolve(result), timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"Operation timed out after {timeout}s") from e

    def __repr__(self) -> str:
        return f"FHEVMInstance(chain_id={self._config.chain_id}, state={self._state.value})"


__all__ = [
    "ContractModule",
    "DecryptionModule",
    "EncryptionModule",
    "FHEVMInstance",
]
