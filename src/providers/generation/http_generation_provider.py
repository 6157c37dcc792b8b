"""HTTP generation provider.

Posts the reconstructed document text and destination specialty to the
``/generate-response`` endpoint over ``httpx`` and returns the generated
contrarreferencia.  A 429 is surfaced as a
:class:`~src.utils.errors.GenerationProviderError` carrying
``retry_after_seconds``; nothing is retried here.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import structlog

from src.interfaces.generation_provider import IGenerationProvider
from src.utils.errors import GenerationProviderError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 60.0
_DEFAULT_RETRY_AFTER_SECONDS = 30
_RETRY_DELAY_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")


class HttpGenerationProvider(IGenerationProvider):
    """Generation client for the contrarreferencia endpoint.

    Request body: ``{"text_context": ..., "specialty": ...}``.
    Success body: ``{"success": true, "text": ...}``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = _DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def generate(self, text_context: str, specialty: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = await self._client.post(
                f"{self._base_url}/generate-response",
                json={"text_context": text_context, "specialty": specialty},
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise GenerationProviderError(
                message=f"Generation request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        body = _json_or_none(response)

        if response.status_code == 429:
            retry_after = _parse_retry_after(response, body)
            logger.warning("generation_rate_limited", retry_after_seconds=retry_after)
            raise GenerationProviderError(
                message=f"Rate limit exceeded; retry after {retry_after}s",
                status_code=429,
                retry_after_seconds=retry_after,
                provider_name=self.get_provider_name(),
            )

        if not response.is_success:
            detail = _error_detail(body) or f"Server error: {response.status_code}"
            if response.status_code in (401, 403):
                logger.error(
                    "generation_credentials_rejected",
                    status_code=response.status_code,
                    detail=detail,
                )
            elif response.status_code == 503:
                logger.error(
                    "generation_service_unavailable",
                    status_code=response.status_code,
                    detail=detail,
                )
            else:
                logger.warning(
                    "generation_http_error",
                    status_code=response.status_code,
                    detail=detail,
                )
            raise GenerationProviderError(
                message=detail,
                status_code=response.status_code,
                provider_name=self.get_provider_name(),
            )

        text = body.get("text") if isinstance(body, dict) else None
        if not (isinstance(body, dict) and body.get("success")) or not text:
            raise GenerationProviderError(
                message=_error_detail(body) or "Response has no valid content",
                status_code=response.status_code,
                provider_name=self.get_provider_name(),
            )

        generated = str(text).strip()
        logger.info(
            "generation_completed",
            context_length=len(text_context),
            specialty=specialty,
            response_length=len(generated),
        )
        return generated

    def get_provider_name(self) -> str:
        return "generation_endpoint"

    def is_available(self) -> bool:
        return bool(self._base_url)

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_detail(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return str(error.get("message")) if error.get("message") else None
    return str(error) if error else None


def _parse_retry_after(response: httpx.Response, body: Any) -> int:
    """Resolve the retry hint for a 429 response.

    Order: ``Retry-After`` header, then ``retryDelay`` (e.g. ``"30s"``)
    inside the body's ``details`` (a dict or a JSON-encoded string), then
    the default.
    """
    header = response.headers.get("Retry-After")
    if header:
        seconds = _parse_seconds(header)
        if seconds is not None:
            return seconds

    if isinstance(body, dict):
        delay = _find_retry_delay(body.get("details"))
        if delay is not None:
            return delay

    return _DEFAULT_RETRY_AFTER_SECONDS


def _find_retry_delay(details: Any) -> int | None:
    if isinstance(details, str):
        try:
            details = json.loads(details)
        except ValueError:
            return None

    if isinstance(details, dict):
        if "retryDelay" in details:
            return _parse_seconds(str(details["retryDelay"]))
        # Upstream Gemini error envelope: {"error": {"details": [{...}]}}
        inner = details.get("error")
        if isinstance(inner, dict):
            return _find_retry_delay(inner.get("details"))
        return None

    if isinstance(details, list):
        for item in details:
            delay = _find_retry_delay(item)
            if delay is not None:
                return delay
    return None


def _parse_seconds(value: str) -> int | None:
    match = _RETRY_DELAY_RE.match(value)
    if not match:
        return None
    return int(float(match.group(1)))
