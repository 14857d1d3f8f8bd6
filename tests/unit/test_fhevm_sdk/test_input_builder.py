"""
Unit tests for the encrypted input builder.
"""

import asyncio

import pytest
from eth_utils import to_checksum_address

from fhevm_sdk.exceptions import EncryptionError, InitializationError, InputFinalizedError, ValidationError
from fhevm_sdk.schemas import FheType

CONTRACT = "0x" + "c0" * 20
USER = "0x" + "0e" * 20
OTHER = "0x" + "7f" * 20


class TestBuilding:
    """Tests for adding values."""

    @pytest.mark.asyncio
    async def test_chained_and_sequential_are_equivalent(self, make_instance):
        """Test that both calling styles build the same batch."""
        fhevm = make_instance()
        await fhevm.init()

        chained = fhevm.contract.create_input(CONTRACT, USER).add8(5).add16(1000).add_bool(True)

        sequential = fhevm.contract.create_input(CONTRACT, USER)
        sequential.add8(5)
        sequential.add16(1000)
        sequential.add_bool(True)

        assert chained.entries == sequential.entries
        assert len(sequential) == 3

    @pytest.mark.asyncio
    async def test_insertion_order_preserved(self, make_instance):
        """Test that entries keep the order they were added in."""
        fhevm = make_instance()
        await fhevm.init()

        builder = (
            fhevm.contract.create_input(CONTRACT, USER)
            .add_bool(False)
            .add256(2**200)
            .add_address(OTHER)
            .add_bytes(b"\x01\x02")
            .add32(7)
            .add64(8)
            .add128(9)
        )

        assert [entry.fhe_type for entry in builder.entries] == [
            FheType.BOOL,
            FheType.UINT256,
            FheType.ADDRESS,
            FheType.BYTES,
            FheType.UINT32,
            FheType.UINT64,
            FheType.UINT128,
        ]

    @pytest.mark.asyncio
    async def test_addresses_are_checksummed(self, make_instance):
        """Test that the bound pair is normalized."""
        fhevm = make_instance()
        await fhevm.init()

        builder = fhevm.contract.create_input(CONTRACT, USER)
        assert builder.contract_address == to_checksum_address(CONTRACT)
        assert builder.user_address == to_checksum_address(USER)

    @pytest.mark.asyncio
    async def test_string_integers_are_parsed(self, make_instance):
        """Test that numeric strings become ints."""
        fhevm = make_instance()
        await fhevm.init()

        builder = fhevm.contract.create_input(CONTRACT, USER).add8("0x10")
        assert builder.entries[0].value == 16

    @pytest.mark.asyncio
    async def test_integral_floats_become_exact_ints(self, make_instance, runtime):
        """Test that integer slots always reach the runtime as int, never bool or float."""
        fhevm = make_instance()
        await fhevm.init()

        builder = fhevm.contract.create_input(CONTRACT, USER).add8(1.0).add16(7.0).add32("5")
        assert [type(entry.value) for entry in builder.entries] == [int, int, int]
        assert [entry.value for entry in builder.entries] == [1, 7, 5]

        await builder.encrypt()
        assert [type(value) for _, value in runtime.inputs[-1].values] == [int, int, int]

    @pytest.mark.parametrize(
        "method,value",
        [
            ("add8", 256),
            ("add16", -1),
            ("add8", True),
            ("add_bool", 1),
            ("add_address", "0x1234"),
            ("add_bytes", "text"),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_values_rejected_at_add(self, make_instance, method, value):
        """Test that out-of-range or mistyped values fail immediately."""
        fhevm = make_instance()
        await fhevm.init()
        builder = fhevm.contract.create_input(CONTRACT, USER)

        with pytest.raises(ValidationError):
            getattr(builder, method)(value)
        assert len(builder) == 0

    @pytest.mark.asyncio
    async def test_create_input_rejects_bad_address(self, make_instance):
        """Test that malformed addresses are rejected."""
        fhevm = make_instance()
        await fhevm.init()

        with pytest.raises(ValidationError):
            fhevm.contract.create_input("0xnope", USER)


class TestEncrypt:
    """Tests for EncryptedInputBuilder.encrypt."""

    @pytest.mark.asyncio
    async def test_one_handle_per_value(self, make_instance, runtime):
        """Test the handle count and runtime binding."""
        fhevm = make_instance()
        await fhevm.init()

        result = await fhevm.contract.create_input(CONTRACT, USER).add8(5).add16(1000).add_bool(True).encrypt()

        assert len(result.handles) == 3
        assert result.input_proof.startswith("0x")
        runtime_input = runtime.inputs[-1]
        assert runtime_input.contract_address == to_checksum_address(CONTRACT)
        assert runtime_input.user_address == to_checksum_address(USER)
        assert [value for _, value in runtime_input.values] == [5, 1000, True]

    @pytest.mark.asyncio
    async def test_raw_dict_result_with_hex_handles(self, make_instance, runtime, monkeypatch):
        """Test a runtime returning a plain dict with 0x handles."""

        class DictInput:
            def add(self, fhe_type, value):
                pass

            def encrypt(self):
                return {"handles": ["0x" + "00" * 31 + "07"], "inputProof": "0xproof"}

        monkeypatch.setattr(runtime, "create_encrypted_input", lambda contract, user: DictInput())
        fhevm = make_instance()
        await fhevm.init()

        result = await fhevm.contract.create_input(CONTRACT, USER).add8(7).encrypt()

        assert result.handles == [bytes(31) + b"\x07"]
        assert result.input_proof == "0xproof"

    @pytest.mark.asyncio
    async def test_encrypt_is_idempotent(self, make_instance, runtime):
        """Test that repeat calls return the same result without re-encrypting."""
        fhevm = make_instance()
        await fhevm.init()
        builder = fhevm.contract.create_input(CONTRACT, USER).add8(1)

        first = await builder.encrypt()
        second = await builder.encrypt()

        assert first is second
        assert len(runtime.inputs) == 1
        assert builder.is_finalized

    @pytest.mark.asyncio
    async def test_concurrent_encrypt_runs_once(self, make_instance, runtime):
        """Test that concurrent finalization shares one runtime call."""
        fhevm = make_instance()
        await fhevm.init()
        builder = fhevm.contract.create_input(CONTRACT, USER).add8(1).add8(2)

        results = await asyncio.gather(builder.encrypt(), builder.encrypt())

        assert results[0] is results[1]
        assert len(runtime.inputs) == 1

    @pytest.mark.asyncio
    async def test_add_after_encrypt_rejected(self, make_instance):
        """Test that a finalized batch is immutable."""
        fhevm = make_instance()
        await fhevm.init()
        builder = fhevm.contract.create_input(CONTRACT, USER).add8(1)
        await builder.encrypt()

        with pytest.raises(InputFinalizedError):
            builder.add8(2)
        assert len(builder) == 1

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, make_instance, runtime):
        """Test that encrypting nothing is an error."""
        fhevm = make_instance()
        await fhevm.init()

        with pytest.raises(EncryptionError, match="no values"):
            await fhevm.contract.create_input(CONTRACT, USER).encrypt()
        assert runtime.inputs == []

    @pytest.mark.asyncio
    async def test_runtime_failure_wrapped_with_diagnostics(self, make_instance, runtime):
        """Test that runtime errors carry contract, user and types."""
        fhevm = make_instance()
        await fhevm.init()
        runtime.fail_inputs = True
        builder = fhevm.contract.create_input(CONTRACT, USER).add8(1).add_bool(True)

        with pytest.raises(EncryptionError) as exc_info:
            await builder.encrypt()

        err = exc_info.value
        assert isinstance(err.cause, RuntimeError)
        assert err.details["contract_address"] == to_checksum_address(CONTRACT)
        assert err.details["user_address"] == to_checksum_address(USER)
        assert err.details["types"] == ["uint8", "bool"]
        assert not builder.is_finalized

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, make_instance, runtime):
        """Test that a failed batch can be encrypted again."""
        fhevm = make_instance()
        await fhevm.init()
        builder = fhevm.contract.create_input(CONTRACT, USER).add8(1)

        runtime.fail_inputs = True
        with pytest.raises(EncryptionError):
            await builder.encrypt()

        runtime.fail_inputs = False
        result = await builder.encrypt()
        assert len(result.handles) == 1

    @pytest.mark.asyncio
    async def test_create_input_requires_init(self, make_instance):
        """Test that inputs cannot be created before init()."""
        fhevm = make_instance()

        with pytest.raises(InitializationError):
            fhevm.contract.create_input(CONTRACT, USER)
