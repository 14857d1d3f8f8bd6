"""
FHEVM SDK gateway client.

This module provides the GatewayClient class, which talks to the gateway
that serves the network's FHE public key and routes decryption requests to
the KMS.
"""

from typing import Any, Dict, Optional

import httpx

from .exceptions import GatewayError
from .logging import get_logger
from .schemas import Handle
from .validation import handle_to_hex, normalize_address

logger = get_logger(__name__)

USER_AGENT = "fhevm-sdk-python/0.1.0"


class GatewayClient:
    """
    Async HTTP client for an FHEVM gateway.

    No retries are attempted; every failure is raised as GatewayError.

    Example:
        >>> async with GatewayClient("https://gateway.zama.ai/11155111") as gw:
        ...     public_key = await gw.fetch_public_key()
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = 30.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the GatewayClient.

        Args:
            base_url: Gateway base URL
            timeout: Request timeout in seconds (None disables)
            verify_ssl: Verify SSL certificates
            transport: Optional httpx transport (used by tests)
        """
        self._base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
            headers={
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http_client.aclose()

    # ==========================================================================
    # Public API Methods
    # ==========================================================================

    async def fetch_public_key(self) -> str:
        """
        Fetch the network's FHE public key.

        Returns:
            The public key string from the `publicKey` field

        Raises:
            GatewayError: On transport failure, non-2xx status or malformed body
        """
        data = await self._request("GET", "/public-key")
        public_key = data.get("publicKey") if isinstance(data, dict) else None
        if not isinstance(public_key, str) or not public_key:
            raise GatewayError(
                "Gateway response is missing a publicKey string",
                details={"path": "/public-key"},
            )
        return public_key

    async def request_decryption(
        self,
        contract_address: str,
        handle: Handle,
        user_address: str,
    ) -> int:
        """
        Ask the gateway to reveal the plaintext behind a handle.

        Args:
            contract_address: Contract that owns the handle
            handle: Value handle (bytes, hex string or int)
            user_address: Address the decryption is requested for

        Returns:
            Decrypted plaintext as an int (booleans come back as 0/1)

        Raises:
            GatewayError: On transport failure, non-2xx status or malformed body
        """
        payload = {
            "contractAddress": normalize_address(contract_address, "contract_address"),
            "handle": handle_to_hex(handle),
            "userAddress": normalize_address(user_address, "user_address"),
        }
        data = await self._request("POST", "/decrypt", json=payload)
        value = data.get("value") if isinstance(data, dict) else None
        return _parse_plaintext(value)

    # ==========================================================================
    # HTTP Request Handling
    # ==========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._http_client.request(method=method, url=path, json=json)
        except httpx.TimeoutException as e:
            raise GatewayError(f"Gateway request timed out: {method} {path}", cause=e) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Gateway request failed: {method} {path}: {e}", cause=e) from e

        self._check_response(response, path)

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                f"Gateway returned malformed JSON for {path}",
                status_code=response.status_code,
                cause=e,
            ) from e

    def _check_response(self, response: httpx.Response, path: str) -> None:
        if response.is_success:
            return

        logger.warning(
            "Gateway request failed",
            extra={"path": path, "status_code": response.status_code},
        )
        raise GatewayError(
            f"Gateway returned HTTP {response.status_code} for {path}",
            status_code=response.status_code,
            details={"path": path, "body": response.text[:200]},
        )

    def __repr__(self) -> str:
        return f"GatewayClient(base_url={self._base_url!r})"


def _parse_plaintext(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value:
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            pass
    raise GatewayError("Gateway response is missing a decrypted value", details={"path": "/decrypt"})
