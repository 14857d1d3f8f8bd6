"""
FHEVM SDK permission signatures.

A permission is an EIP-712 signature over the FHE public key, scoped to one
contract (the domain's verifyingContract) and produced by the user the
re-encryption is for. Every call builds a fresh permission; signatures are
never reused across contracts or users.

Usage:
    signer = LocalAccountSigner(private_key)
    permissions = PermissionSigner(signer, chain_id=11155111)

    signature = await permissions.sign(contract_address, signer.address, public_key)
    assert permissions.verify(contract_address, public_key, signature, signer.address)
"""

import base64
import binascii
import json
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data

from .logging import get_logger
from .validation import normalize_address

logger = get_logger(__name__)

PERMISSION_DOMAIN_NAME = "Authorization token"
PERMISSION_DOMAIN_VERSION = "1"
PERMISSION_PRIMARY_TYPE = "Reencrypt"
PERMISSION_TYPES: Dict[str, List[Dict[str, str]]] = {
    PERMISSION_PRIMARY_TYPE: [{"name": "publicKey", "type": "bytes"}],
}
EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ETH_SIGN_TYPED_DATA = "eth_signTypedData_v4"


class SignerError(Exception):
    """Raised by signers when a signature cannot be produced."""

    pass


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class EIP712Domain:
    """EIP-712 domain separator."""

    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to EIP-712 format."""
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True)
class Permission:
    """Typed data authorizing use of a public key for one contract."""

    domain: EIP712Domain
    public_key: bytes

    @property
    def types(self) -> Dict[str, List[Dict[str, str]]]:
        return {name: list(fields) for name, fields in PERMISSION_TYPES.items()}

    @property
    def message(self) -> Dict[str, Any]:
        return {"publicKey": self.public_key}

    def signable(self) -> SignableMessage:
        """EIP-191 version 0x01 message ready for signing or recovery."""
        return encode_typed_data(
            domain_data=self.domain.to_dict(),
            message_types=self.types,
            message_data=self.message,
        )

    def to_typed_data(self) -> Dict[str, Any]:
        """Full JSON typed-data document, as wallets expect for eth_signTypedData_v4."""
        return {
            "types": {"EIP712Domain": list(EIP712_DOMAIN_TYPE), **self.types},
            "primaryType": PERMISSION_PRIMARY_TYPE,
            "domain": self.domain.to_dict(),
            "message": {"publicKey": "0x" + self.public_key.hex()},
        }


def public_key_bytes(public_key: str) -> bytes:
    """
    Decode a gateway public key into the bytes that get signed.

    Hex keys (0x-prefixed) are decoded as hex, anything else as base64.
    """
    if public_key.lower().startswith("0x"):
        return bytes.fromhex(public_key[2:])
    try:
        return base64.b64decode(public_key, validate=True)
    except (binascii.Error, ValueError):
        return public_key.encode("utf-8")


def _signature_hex(signature: bytes) -> str:
    return "0x" + bytes(signature).hex()


def _signature_bytes(signature: str) -> bytes:
    text = signature[2:] if signature.lower().startswith("0x") else signature
    return bytes.fromhex(text)


# =============================================================================
# Signers
# =============================================================================


class Signer(ABC):
    """
    Abstract signer of EIP-712 typed data.

    Implementations sign on behalf of `address` and return the 65-byte
    signature as a 0x-prefixed hex string.
    """

    @abstractmethod
    async def sign_typed_data(self, address: str, permission: Permission) -> str:
        pass


class LocalAccountSigner(Signer):
    """Signs with a private key held in-process (eth-account)."""

    def __init__(self, private_key: Any):
        self._account = Account.from_key(private_key)

    @classmethod
    def create(cls) -> "LocalAccountSigner":
        """Signer for a freshly generated key."""
        return cls("0x" + secrets.token_hex(32))

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, address: str, permission: Permission) -> str:
        if address.lower() != self._account.address.lower():
            raise SignerError(f"Local account {self._account.address} cannot sign for {address}")
        signed = self._account.sign_message(permission.signable())
        return _signature_hex(signed.signature)

    def __repr__(self) -> str:
        return f"LocalAccountSigner(address={self.address!r})"


class JsonRpcSigner(Signer):
    """
    Delegates signing to a wallet or node over JSON-RPC (eth_signTypedData_v4).

    Args:
        rpc_url: JSON-RPC endpoint of the wallet/node holding the account
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._rpc_url = rpc_url
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._next_id = 1

    async def close(self) -> None:
        await self._http_client.aclose()

    async def sign_typed_data(self, address: str, permission: Permission) -> str:
        request_id = self._next_id
        self._next_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": ETH_SIGN_TYPED_DATA,
            "params": [address, json.dumps(permission.to_typed_data())],
        }
        try:
            response = await self._http_client.post(self._rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SignerError(f"{ETH_SIGN_TYPED_DATA} request failed: {e}") from e

        if body.get("error"):
            error = body["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise SignerError(f"{ETH_SIGN_TYPED_DATA} rejected: {message}")

        result = body.get("result")
        if not isinstance(result, str) or not result:
            raise SignerError(f"{ETH_SIGN_TYPED_DATA} returned no signature")
        return result

    def __repr__(self) -> str:
        return f"JsonRpcSigner(rpc_url={self._rpc_url!r})"


# =============================================================================
# PermissionSigner
# =============================================================================


class PermissionSigner:
    """
    Builds and signs re-encryption permissions for one chain.

    Args:
        signer: Signer that holds the user's key
        chain_id: Chain ID placed in the EIP-712 domain
    """

    def __init__(self, signer: Signer, chain_id: int):
        self._signer = signer
        self._chain_id = chain_id

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def build(self, contract_address: str, public_key: str) -> Permission:
        domain = EIP712Domain(
            name=PERMISSION_DOMAIN_NAME,
            version=PERMISSION_DOMAIN_VERSION,
            chain_id=self._chain_id,
            verifying_contract=normalize_address(contract_address, "contract_address"),
        )
        return Permission(domain=domain, public_key=public_key_bytes(public_key))

    async def sign(self, contract_address: str, user_address: str, public_key: str) -> str:
        """Request a fresh signature for (contract, user, public key)."""
        permission = self.build(contract_address, public_key)
        user_address = normalize_address(user_address, "user_address")
        logger.debug(
            "Requesting permission signature",
            extra={"chain_id": self._chain_id, "contract": permission.domain.verifying_contract},
        )
        signature = await self._signer.sign_typed_data(user_address, permission)
        if not isinstance(signature, str) or not signature:
            raise SignerError("Signer returned an empty signature")
        return signature

    def recover(self, contract_address: str, public_key: str, signature: str) -> str:
        """Address that produced `signature` over the permission."""
        permission = self.build(contract_address, public_key)
        return Account.recover_message(permission.signable(), signature=_signature_bytes(signature))

    def verify(self, contract_address: str, public_key: str, signature: str, user_address: str) -> bool:
        """Check that `signature` was made by `user_address` for this permission."""
        try:
            recovered = self.recover(contract_address, public_key, signature)
        except Exception as e:
            logger.warning("Permission signature could not be recovered: %s", e)
            return False
        return recovered.lower() == user_address.lower()
