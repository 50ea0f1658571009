"""
executor.py — One chat-completion call with client-side retry.

The request carries the whole ``[primary, *fallbacks]`` list in ``models``
so the provider can switch models server-side; the RetryPolicy handles
transport failures and rate limits on this side.

Failure classes:
  • 429 / 5xx / timeout / dropped connection → RetryableRequestError
  • other 4xx, non-JSON or non-object body    → TerminalRequestError
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import REQUEST_DEFAULTS, Settings
from .errors import RetryableRequestError, TerminalRequestError, error_for_status
from .models import CapabilityTag, CompletionResult, ModelSelection, TokenUsage
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


def build_payload(
    selection: ModelSelection,
    messages: List[Dict[str, Any]],
    capability: CapabilityTag,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    effort: Optional[str] = None,
) -> Dict[str, Any]:
    """Chat-completion body with per-capability defaults filled in."""
    defaults = REQUEST_DEFAULTS[capability]
    body: Dict[str, Any] = {
        "model": selection.primary,
        "models": selection.models,
        "messages": messages,
        "temperature": defaults["temperature"] if temperature is None else temperature,
        "max_tokens": defaults["max_tokens"] if max_tokens is None else max_tokens,
    }
    if capability is CapabilityTag.REASONING:
        body["reasoning"] = {"effort": effort or defaults["effort"]}
    return body


def parse_completion(
    data: Any, selection: ModelSelection, capability: CapabilityTag
) -> CompletionResult:
    """Normalise a chat-completion response; missing counters become 0."""
    if not isinstance(data, dict):
        raise TerminalRequestError("Upstream response is not a JSON object", body=data)
    message: Dict[str, Any] = {}
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    reasoning = message.get("reasoning") if isinstance(message, dict) else None
    model_used = data.get("model")
    return CompletionResult(
        content=content if isinstance(content, str) else "",
        model=model_used if isinstance(model_used, str) and model_used else selection.primary,
        capability=capability,
        usage=TokenUsage.from_dict(data.get("usage")),
        reasoning=reasoning if isinstance(reasoning, str) and reasoning else None,
        fallbacks=list(selection.fallbacks),
    )


class RequestExecutor:
    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or Settings()
        self.policy = policy or RetryPolicy.from_settings(self._settings)

    async def complete(
        self,
        selection: ModelSelection,
        messages: List[Dict[str, Any]],
        capability: CapabilityTag,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        effort: Optional[str] = None,
    ) -> CompletionResult:
        self._settings.require_api_key()
        body = build_payload(selection, messages, capability, temperature, max_tokens, effort)
        timeout = self._settings.timeout_for(capability)
        logger.info(
            "%s request using: %s (fallbacks: %s)",
            capability.value.capitalize(),
            selection.primary,
            ", ".join(selection.fallbacks) or "none",
        )

        async def attempt() -> CompletionResult:
            data = await self._post(body, timeout)
            return parse_completion(data, selection, capability)

        return await self.policy.run(attempt)

    async def _post(self, body: Dict[str, Any], timeout: float) -> Any:
        url = f"{self._settings.base_url.rstrip('/')}/chat/completions"
        try:
            r = await self._client.post(
                url, json=body, headers=self._settings.headers(), timeout=timeout
            )
        except httpx.TimeoutException as exc:
            raise RetryableRequestError(f"Upstream timed out: {exc}", cause=exc) from exc
        except httpx.TransportError as exc:
            raise RetryableRequestError(f"Upstream connection failed: {exc}", cause=exc) from exc

        try:
            data = r.json()
        except ValueError:
            data = None

        if r.status_code >= 400:
            raise error_for_status(r.status_code, data if data is not None else r.text)
        if data is None:
            raise TerminalRequestError(
                "Upstream returned a non-JSON body", status_code=r.status_code, body=r.text
            )
        return data
