"""
FHEVM SDK encrypted input builder.

This module provides the EncryptedInputBuilder class, which batches typed
values for a single contract call.
"""

import asyncio
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from .exceptions import EncryptionError, FhevmError, InputFinalizedError, ValidationError
from .logging import get_logger
from .schemas import EncryptedInputResult, FheType, InputEntry
from .validation import is_valid_value_for_type

if TYPE_CHECKING:
    from .instance import FHEVMInstance

logger = get_logger(__name__)


class EncryptedInputBuilder:
    """
    Chainable accumulator of encrypted inputs for one contract call.

    Every add method appends to the same list and returns the builder
    itself, so chained calls and separate statements build the same batch.
    The batch is bound to one (contract, user) pair and becomes immutable
    once encrypt() succeeds.

    Example:
        >>> builder = fhevm.contract.create_input(contract, user)
        >>> result = await builder.add8(5).add16(1000).add_bool(True).encrypt()
        >>> len(result.handles)
        3
    """

    def __init__(
        self,
        contract_address: str,
        user_address: str,
        instance: "FHEVMInstance",
    ):
        """
        Initialize an EncryptedInputBuilder.

        Args:
            contract_address: Checksummed address of the target contract
            user_address: Checksummed address of the calling user
            instance: Instance whose runtime performs the final encryption
        """
        self._contract_address = contract_address
        self._user_address = user_address
        self._instance = instance
        self._entries: List[InputEntry] = []
        self._result: Optional[EncryptedInputResult] = None
        self._lock = asyncio.Lock()

    @property
    def contract_address(self) -> str:
        return self._contract_address

    @property
    def user_address(self) -> str:
        return self._user_address

    @property
    def entries(self) -> Tuple[InputEntry, ...]:
        """Queued values, in insertion order."""
        return tuple(self._entries)

    @property
    def is_finalized(self) -> bool:
        return self._result is not None

    def __len__(self) -> int:
        return len(self._entries)

    # ==========================================================================
    # Typed additions
    # ==========================================================================

    def add(self, fhe_type: FheType, value: Any) -> "EncryptedInputBuilder":
        """
        Append one typed value.

        Raises:
            InputFinalizedError: If encrypt() already succeeded
            ValidationError: If the value does not fit the type
        """
        if self._result is not None:
            raise InputFinalizedError(self._contract_address, self._user_address)

        fhe_type = FheType(fhe_type)
        if not is_valid_value_for_type(value, fhe_type):
            raise ValidationError(
                f"Value {value!r} is not valid for type {fhe_type.value}",
                details={"fhe_type": fhe_type.value, "index": len(self._entries)},
            )
        if fhe_type.is_integer:
            value = int(value, 0) if isinstance(value, str) else int(value)
        if fhe_type is FheType.BYTES:
            value = bytes(value)

        self._entries.append(InputEntry(fhe_type=fhe_type, value=value))
        return self

    def add8(self, value: int) -> "EncryptedInputBuilder":
        return self.add(FheType.UINT8, value)

    def add16(self, value: int) -> "EncryptedInputBuilder":
        return self.add(FheType.UINT16, value)

    def add32(self, value: int) -> "EncryptedInputBuilder":
        return self.add(FheType.UINT32, value)

    def add64(self, value: int) -> "EncryptedInputBuilder":
        return self.add(FheType.UINT64, value)

    def add128(self, value: int) -> "EncryptedInputBuilder":
        return self.add(FheType.UINT128, value)

    def add256(self, value: int) -> "EncryptedInputBuilder":
        return self.add(FheType.UINT256, value)

    def add_bool(self, value: bool) -> "EncryptedInputBuilder":
        return self.add(FheType.BOOL, value)

    def add_address(self, address: str) -> "EncryptedInputBuilder":
        return self.add(FheType.ADDRESS, address)

    def add_bytes(self, data: bytes) -> "EncryptedInputBuilder":
        return self.add(FheType.BYTES, data)

    # ==========================================================================
    # Finalization
    # ==========================================================================

    async def encrypt(self) -> EncryptedInputResult:
        """
        Encrypt the batch.

        Returns:
            EncryptedInputResult with one handle per added value, in order,
            and one input proof. Repeat calls return the same result.

        Raises:
            InitializationError: If the instance is not ready
            EncryptionError: If the batch is empty or the runtime fails
        """
        if self._result is not None:
            return self._result

        async with self._lock:
            if self._result is not None:
                return self._result

            runtime = self._instance._require_runtime()
            if not self._entries:
                raise EncryptionError("Encrypted input has no values", details=self._diagnostics())

            try:
                runtime_input = await self._instance._run(
                    runtime.create_encrypted_input(self._contract_address, self._user_address)
                )
                for entry in self._entries:
                    await self._instance._run(runtime_input.add(entry.fhe_type, entry.value))
                raw = await self._instance._run(runtime_input.encrypt())
                result = raw if isinstance(raw, EncryptedInputResult) else EncryptedInputResult.model_validate(raw)
            except FhevmError:
                raise
            except Exception as e:
                raise EncryptionError(
                    f"Failed to encrypt input for contract {self._contract_address}: {e}",
                    details=self._diagnostics(),
                    cause=e,
                ) from e

            if len(result.handles) != len(self._entries):
                raise EncryptionError(
                    f"Runtime returned {len(result.handles)} handles for {len(self._entries)} values",
                    details=self._diagnostics(),
                )

            self._result = result
            logger.debug(
                "Encrypted input finalized",
                extra={"contract": self._contract_address, "values": len(self._entries)},
            )
            return result

    def _diagnostics(self) -> dict:
        return {
            "contract_address": self._contract_address,
            "user_address": self._user_address,
            "types": [entry.fhe_type.value for entry in self._entries],
        }

    def __repr__(self) -> str:
        return (
            f"EncryptedInputBuilder(contract={self._contract_address!r}, "
            f"user={self._user_address!r}, values={len(self._entries)}, finalized={self.is_finalized})"
        )
