"""Shared httpx plumbing for the proxy and API network providers."""

import base64
import binascii
import logging
from typing import Any

import httpx

from chain_test_session.errors import NetworkProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpNetworkProvider:
    """Base class holding one ``httpx.AsyncClient`` per provider.

    ``transport`` is forwarded to httpx (tests pass an ``ASGITransport``
    wrapping a mock gateway).
    """

    def __init__(
        self,
        url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.url,
            timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("%s %s%s", method, self.url, path)
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkProviderError(f"{self.url}{path}", str(exc)) from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            raise NetworkProviderError(f"{self.url}{path}", _error_message(body, resp.text), resp.status_code)
        return body

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def _post(self, path: str, payload: Any) -> Any:
        return await self._request("POST", path, json=payload)

    async def _get_proxy_data(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._unwrap(path, await self._get(path, params=params))

    async def _post_proxy_data(self, path: str, payload: Any) -> dict[str, Any]:
        return self._unwrap(path, await self._post(path, payload))

    def _unwrap(self, path: str, body: Any) -> dict[str, Any]:
        """Return ``data`` of a proxy envelope ``{data, error, code}``."""
        if not isinstance(body, dict):
            raise NetworkProviderError(f"{self.url}{path}", "unexpected response body")
        if body.get("code") != "successful":
            raise NetworkProviderError(f"{self.url}{path}", body.get("error") or f"code: {body.get('code')}")
        return body.get("data") or {}

    def _transaction_hash(self, path: str, body: Any) -> str:
        tx_hash = body.get("txHash") if isinstance(body, dict) else None
        if not tx_hash:
            raise NetworkProviderError(f"{self.url}{path}", "response carries no txHash")
        return tx_hash


def _error_message(body: Any, text: str) -> str:
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return text or "empty response"


def decode_text(value: str | None) -> str:
    """Decode a base64 payload to text; values already in ``@``-form pass through."""
    if not value:
        return ""
    if value.startswith("@"):
        return value
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return value


def parse_log_events(logs: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not logs:
        return []
    return [
        {
            "address": e.get("address", ""),
            "identifier": e.get("identifier", ""),
            "topics": list(e.get("topics") or []),
            "data": e.get("data") or "",
        }
        for e in logs.get("events") or []
    ]


def parse_contract_results(results: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    parsed: list[dict[str, Any]] = []
    for item in results or []:
        entry = dict(item)
        entry["data"] = decode_text(item.get("data"))
        entry["log_events"] = parse_log_events(item.get("logs"))
        parsed.append(entry)
    return parsed
