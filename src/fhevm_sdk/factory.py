"""
Factory functions for creating FHEVM instances.

Example:
    >>> # Simple setup (public key fetched from the chain's gateway)
    >>> fhevm = await create_fhevm(chain_id=11155111, runtime_loader=load_runtime)
    >>>
    >>> # With custom config
    >>> fhevm = await create_fhevm(
    ...     FhevmConfig(
    ...         chain_id=11155111,
    ...         gateway_url="https://custom-gateway.example.com",
    ...         public_key="0x...",
    ...         signer=LocalAccountSigner(private_key),
    ...     ),
    ...     runtime_loader=load_runtime,
    ... )
"""

from typing import Any, Optional

from .config import FhevmConfig
from .instance import FHEVMInstance


async def create_fhevm(config: Optional[FhevmConfig] = None, **options: Any) -> FHEVMInstance:
    """
    Create and initialize a new FHEVM instance.

    Args:
        config: Instance configuration (built from env + options if omitted)
        **options: FHEVMInstance keyword arguments (runtime_loader, key_cache,
            transport, ...) and FhevmConfig field overrides

    Returns:
        A ready FHEVMInstance

    Raises:
        InitializationError: If configuration or initialization fails
    """
    instance = FHEVMInstance(config, **options)
    try:
        await instance.init()
    except BaseException:
        await instance.close()
        raise
    return instance


def create_fhevm_sync(config: Optional[FhevmConfig] = None, **options: Any) -> FHEVMInstance:
    """
    Create an FHEVM instance without initializing it.

    Useful when the caller wants to control when init() runs.
    """
    return FHEVMInstance(config, **options)
