"""
FHE runtime interface.

The SDK never implements FHE itself. It drives an external runtime through
the two abstract classes below. Runtime methods may return plain values or
awaitables; the SDK awaits whatever it gets back.

A runtime loader turns RuntimeParams into a ready runtime. It is passed to
the instance directly, or named in configuration as "package.module:callable"
(FHEVM_RUNTIME).
"""

import importlib
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, TypeVar, Union

from .schemas import EncryptedInputResult, FheType, RuntimeParams

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]


class RuntimeInput(ABC):
    """Runtime-side accumulator for one contract call's encrypted inputs."""

    @abstractmethod
    def add(self, fhe_type: FheType, value: Any) -> MaybeAwaitable[None]:
        """Append one typed value."""
        pass

    @abstractmethod
    def encrypt(self) -> MaybeAwaitable[EncryptedInputResult]:
        """Encrypt all values; one handle per value, in order, plus one proof."""
        pass


class FhevmRuntime(ABC):
    """Operations the SDK needs from an FHE runtime."""

    @abstractmethod
    def encrypt(self, fhe_type: FheType, value: Any) -> MaybeAwaitable[bytes]:
        """Encrypt a single value of the given type."""
        pass

    @abstractmethod
    def create_encrypted_input(self, contract_address: str, user_address: str) -> MaybeAwaitable[RuntimeInput]:
        """Open an input batch bound to a contract/user pair."""
        pass

    @abstractmethod
    def reencrypt(
        self,
        handle: int,
        public_key: str,
        signature: str,
        contract_address: str,
        user_address: str,
    ) -> MaybeAwaitable[int]:
        """Re-encrypt the value behind `handle` for `user_address` and return it."""
        pass


RuntimeLoader = Callable[[RuntimeParams], MaybeAwaitable[FhevmRuntime]]


async def resolve(result: MaybeAwaitable[T]) -> T:
    """Await `result` if the runtime handed back an awaitable."""
    if inspect.isawaitable(result):
        return await result
    return result


def import_runtime_loader(path: str) -> RuntimeLoader:
    """
    Import a runtime loader from "package.module:callable".

    Raises:
        ImportError: If the module or attribute cannot be found
        TypeError: If the attribute is not callable
    """
    module_name, sep, attr_path = path.partition(":")
    if not sep or not module_name or not attr_path:
        raise ImportError(f"Runtime path must look like 'package.module:callable', got {path!r}")

    target: Any = importlib.import_module(module_name)
    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise ImportError(f"{module_name!r} has no attribute {attr_path!r}") from None

    if not callable(target):
        raise TypeError(f"Runtime loader {path!r} is not callable")
    return target


async def load_runtime(
    params: RuntimeParams,
    loader: Optional[RuntimeLoader] = None,
    path: Optional[str] = None,
) -> FhevmRuntime:
    """Build the runtime from an explicit loader, else from a dotted path."""
    if loader is None:
        if path is None:
            raise LookupError("No FHE runtime configured; pass runtime_loader= or set FHEVM_RUNTIME")
        loader = import_runtime_loader(path)

    runtime = await resolve(loader(params))
    if runtime is None:
        raise TypeError("Runtime loader returned None")
    return runtime


__all__: List[str] = [
    "FhevmRuntime",
    "RuntimeInput",
    "RuntimeLoader",
    "RuntimeParams",
    "import_runtime_loader",
    "load_runtime",
    "resolve",
]
