"""HTTP client shared by all probes of a detector."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx

from .config import DetectorConfig
from .errors import DecodeError, TransportError

REQUEST_TIMEOUT_SECONDS = 30.0
AVAILABILITY_TIMEOUT_SECONDS = 5.0
BODY_PREVIEW_LIMIT = 500


def truncate_text(text: str, limit: int = BODY_PREVIEW_LIMIT) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


@dataclass(frozen=True)
class ProbeResponse:
    status_code: int
    text: str
    body: dict[str, Any]


class ProbeClient:
    def __init__(
        self,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self._transport = transport
        self._client = httpx.Client(timeout=timeout, transport=transport, follow_redirects=False)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def post_json(self, config: DetectorConfig, payload: dict[str, Any]) -> ProbeResponse:
        """POST a chat-completion payload and return the decoded JSON object.

        Raises TransportError for network failures and non-2xx statuses and
        DecodeError when the body is not a JSON object. Both carry a
        truncated copy of the body when one was received.
        """
        content = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        try:
            response = self._client.post(
                config.endpoint,
                content=content,
                headers=self._headers(config.api_key),
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"request timed out after {self._client.timeout.read}s: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"request failed: {exc}") from exc

        text = response.text
        if not response.is_success:
            raise TransportError(
                f"unexpected HTTP {response.status_code}, body: {truncate_text(text)}"
            )

        try:
            body = json.loads(text)
        except ValueError as exc:
            raise DecodeError(f"invalid JSON response: {exc}, body: {truncate_text(text)}") from exc
        if not isinstance(body, dict):
            raise DecodeError(f"expected a JSON object, body: {truncate_text(text)}")

        return ProbeResponse(status_code=response.status_code, text=text, body=body)

    def check_endpoint_available(self, endpoint: str) -> bool:
        """True when the endpoint answers a plain GET with any HTTP status."""
        if not endpoint:
            return False
        try:
            with httpx.Client(timeout=AVAILABILITY_TIMEOUT_SECONDS, transport=self._transport) as client:
                client.get(endpoint)
        except (httpx.HTTPError, httpx.InvalidURL):
            return False
        return True
