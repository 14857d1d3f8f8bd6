"""
Pytest configuration and fixtures.

This file ensures proper path setup for imports and provides an in-memory
FHE runtime and gateway so the SDK can be exercised without a network.
"""

import hashlib
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from fhevm_sdk.instance import FHEVMInstance  # noqa: E402
from fhevm_sdk.key_cache import PublicKeyCache, reset_default_cache  # noqa: E402
from fhevm_sdk.permissions import LocalAccountSigner  # noqa: E402
from fhevm_sdk.runtime import FhevmRuntime, RuntimeInput  # noqa: E402
from fhevm_sdk.schemas import EncryptedInputResult, FheType  # noqa: E402

CHAIN_ID = 11155111
PUBLIC_KEY = "0x" + "ab" * 64
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


# =============================================================================
# In-memory FHE runtime
# =============================================================================


def _plaintext_as_int(fhe_type, value):
    if fhe_type is FheType.ADDRESS:
        return int(value, 16)
    if fhe_type is FheType.BYTES:
        return int.from_bytes(value, "big")
    return int(value)


class InMemoryInput(RuntimeInput):
    """Records values and derives deterministic handles on encrypt."""

    def __init__(self, runtime, contract_address, user_address):
        self.runtime = runtime
        self.contract_address = contract_address
        self.user_address = user_address
        self.values = []

    def add(self, fhe_type, value):
        self.values.append((fhe_type, value))

    async def encrypt(self):
        if self.runtime.fail_inputs:
            raise RuntimeError("runtime rejected the batch")

        self.runtime.batch_counter += 1
        handles = []
        for index, (fhe_type, value) in enumerate(self.values):
            seed = f"{self.contract_address}:{self.user_address}:{self.runtime.batch_counter}:{index}"
            handle = hashlib.sha256(seed.encode()).digest()
            self.runtime.plaintexts[int.from_bytes(handle, "big")] = _plaintext_as_int(fhe_type, value)
            handles.append(handle)

        proof = hashlib.sha256(b"".join(handles)).hexdigest()
        return EncryptedInputResult(handles=handles, input_proof="0x" + proof)


class InMemoryRuntime(FhevmRuntime):
    """Fake runtime: ciphertexts are tagged plaintexts, handles map to stored values."""

    def __init__(self):
        self.params = None
        self.plaintexts = {}
        self.inputs = []
        self.reencrypt_calls = []
        self.batch_counter = 0
        self.fail_encrypt = False
        self.fail_inputs = False

    def encrypt(self, fhe_type, value):
        if self.fail_encrypt:
            raise RuntimeError("runtime cannot encrypt")
        return f"{fhe_type.value}:{value!r}".encode()

    def create_encrypted_input(self, contract_address, user_address):
        runtime_input = InMemoryInput(self, contract_address, user_address)
        self.inputs.append(runtime_input)
        return runtime_input

    async def reencrypt(self, handle, public_key, signature, contract_address, user_address):
        self.reencrypt_calls.append(
            {
                "handle": handle,
                "public_key": public_key,
                "signature": signature,
                "contract_address": contract_address,
                "user_address": user_address,
            }
        )
        if handle not in self.plaintexts:
            raise KeyError(f"unknown handle {handle:#x}")
        return self.plaintexts[handle]


class RecordingLoader:
    """Runtime loader that records the params it was given."""

    def __init__(self, runtime):
        self.runtime = runtime
        self.calls = []

    async def __call__(self, params):
        self.calls.append(params)
        self.runtime.params = params
        return self.runtime


# =============================================================================
# In-memory gateway
# =============================================================================


class GatewayStub:
    """httpx.MockTransport-backed gateway serving /public-key and /decrypt."""

    def __init__(self, public_key=PUBLIC_KEY):
        self.public_key = public_key
        self.decrypted = {}
        self.requests = []
        self.fail_status = None
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request):
        self.requests.append(request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"error": "unavailable"})

        if request.method == "GET" and request.url.path.endswith("/public-key"):
            return httpx.Response(200, json={"publicKey": self.public_key})

        if request.method == "POST" and request.url.path.endswith("/decrypt"):
            body = json.loads(request.content)
            if body["handle"] not in self.decrypted:
                return httpx.Response(404, json={"error": "unknown handle"})
            return httpx.Response(200, json={"value": self.decrypted[body["handle"]]})

        return httpx.Response(404, json={"error": "not found"})

    @property
    def key_fetches(self):
        return sum(1 for r in self.requests if r.url.path.endswith("/public-key"))


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Clear FHEVM_* variables and the process-wide key cache around each test."""
    for name in [k for k in os.environ if k.startswith("FHEVM_")]:
        monkeypatch.delenv(name, raising=False)
    reset_default_cache()
    yield
    reset_default_cache()


@pytest.fixture
def runtime():
    return InMemoryRuntime()


@pytest.fixture
def runtime_loader(runtime):
    return RecordingLoader(runtime)


@pytest.fixture
def gateway_stub():
    return GatewayStub()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def signer():
    return LocalAccountSigner(TEST_PRIVATE_KEY)


@pytest.fixture
def key_cache():
    return PublicKeyCache()


@pytest.fixture
def make_instance(runtime_loader, gateway_stub, signer, key_cache):
    """Factory for uninitialized instances wired to the in-memory collaborators."""

    def _make(**overrides):
        options = {
            "chain_id": CHAIN_ID,
            "signer": signer,
            "runtime_loader": runtime_loader,
            "transport": gateway_stub.transport,
            "key_cache": key_cache,
        }
        options.update(overrides)
        return FHEVMInstance(**options)

    return _make
