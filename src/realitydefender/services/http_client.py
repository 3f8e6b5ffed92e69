"""
HTTP transport for the Reality Defender API.

Wraps httpx.AsyncClient and maps HTTP failures onto SDKError codes.
"""

import json
import time
from typing import Any

import httpx

from realitydefender.errors import ErrorCode, SDKError
from realitydefender.logging_config import get_logger
from realitydefender.metrics import record_request

logger = get_logger(__name__)

FREE_TIER_NOT_ALLOWED = "free-tier-not-allowed"


class HTTPClient:
    """Async HTTP client that authenticates every API call with the API key."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        metrics_enabled: bool = True,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.metrics_enabled = metrics_enabled
        if client is None:
            self._client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    async def aclose(self) -> None:
        """Close the underlying connection pool if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def _record(self, method: str, status: str, start: float) -> None:
        record_request(
            method, status, time.perf_counter() - start, enabled=self.metrics_enabled
        )

    def _headers(self, json_body: bool = False) -> dict[str, str]:
        headers = {
            "X-API-KEY": self.api_key,
            "Accept": "application/json",
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def get(self, endpoint: str, params: dict[str, str] | None = None) -> bytes:
        """
        Perform a GET request against an API endpoint.

        Args:
            endpoint: Path relative to the base URL
            params: Optional query parameters

        Returns:
            Raw response body

        Raises:
            SDKError: On network failure or non-2xx status
        """
        return await self._send(
            "GET",
            f"{self.base_url}{endpoint}",
            headers=self._headers(),
            params=params,
        )

    async def post(self, endpoint: str, payload: dict[str, Any]) -> bytes:
        """Perform a POST request with a JSON body."""
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise SDKError(f"failed to marshal JSON: {e}", ErrorCode.UNKNOWN_ERROR) from e

        return await self._send(
            "POST",
            f"{self.base_url}{endpoint}",
            headers=self._headers(json_body=True),
            content=body,
        )

    async def put(self, url: str, content: bytes) -> None:
        """Upload raw bytes to an absolute (presigned) URL."""
        start = time.perf_counter()
        try:
            response = await self._client.put(
                url,
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPError as e:
            self._record("PUT", "error", start)
            logger.warning(f"PUT to signed URL failed: {e}")
            raise SDKError(f"request failed: {e}", ErrorCode.UPLOAD_FAILED) from e

        self._record("PUT", str(response.status_code), start)
        if not response.is_success:
            raise SDKError(
                f"upload failed with status code {response.status_code}",
                ErrorCode.UPLOAD_FAILED,
            )

    async def _send(self, method: str, url: str, **kwargs: Any) -> bytes:
        start = time.perf_counter()
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            self._record(method, "error", start)
            logger.warning(f"{method} {url} failed: {e}")
            raise SDKError(f"request failed: {e}", ErrorCode.SERVER_ERROR) from e

        self._record(method, str(response.status_code), start)
        logger.debug(f"{method} {url} -> {response.status_code}")
        return handle_response(response)


def handle_response(response: httpx.Response) -> bytes:
    """
    Return the body of a successful response or raise the matching SDKError.

    A JSON body carrying a non-empty "error" field replaces the default message.
    """
    body = response.content
    if response.is_success:
        return body

    status_code = response.status_code
    payload = _decode_json(body)

    if status_code == 400:
        code = ErrorCode.INVALID_REQUEST
        detail = payload.get("response") or payload.get("code") or "Bad request"
        if payload.get("code") == FREE_TIER_NOT_ALLOWED:
            message = f"Free tier not allowed: {detail}"
        else:
            message = f"Invalid request: {detail}"
    elif status_code == 401:
        code = ErrorCode.UNAUTHORIZED
        message = "Unauthorized: Invalid API key"
    elif status_code == 404:
        code = ErrorCode.NOT_FOUND
        message = "Resource not found"
    elif status_code >= 500:
        code = ErrorCode.SERVER_ERROR
        message = "Server error"
    else:
        code = ErrorCode.UNKNOWN_ERROR
        message = f"Unknown error (HTTP {status_code})"

    error_message = payload.get("error")
    if isinstance(error_message, str) and error_message:
        message = error_message

    raise SDKError(message, code)


def _decode_json(body: bytes) -> dict[str, Any]:
    try:
        decoded = json.loads(body)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}
