"""
router.py — Capability-based model router (top-level facade).

Combines:
  • ModelCatalog     — cached upstream model list
  • ModelSelector    — capability → primary + fallbacks
  • RequestExecutor  — chat completion with retry / back-off

Decision flow for every request:

  1.  Fail fast with ConfigurationError if no credential is configured
  2.  Load the catalog if this is the first request in the process
  3.  Select [primary, *fallbacks] for the requested capability
  4.  POST once per attempt with the full model list; retry 429 / 5xx /
      timeouts with exponential back-off; surface the last error on
      exhaustion

Instantiate once per application and share it; tests build isolated
instances with their own Settings and httpx transport.

Dependencies: httpx
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings
from .discovery import ModelCatalog
from .executor import RequestExecutor
from .models import CapabilityTag, CompletionResult, ModelSelection
from .retry import RetryPolicy
from .selector import ModelSelector

logger = logging.getLogger(__name__)


class ModelRouter:
    """
    Entry points: ``vision_request``, ``reasoning_request``, ``default_request``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        self.catalog = ModelCatalog(self.settings, self.client)
        self.selector = ModelSelector(self.catalog, pinned=self.settings.pinned_models())
        self.executor = RequestExecutor(self.client, self.settings, policy)

    # ── Lifecycle ───────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Call once at application startup: validate the key, warm the catalog."""
        self.settings.require_api_key()
        await self.catalog.ensure_loaded()
        for tag, selection in self.selector.select_all().items():
            logger.info(
                "Primary %s model: %s (fallbacks: %s)",
                tag.value,
                selection.primary,
                ", ".join(selection.fallbacks) or "none",
            )

    async def stop(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    # ══════════════════════════════════════════════════════════════════════════
    # Routing entry points
    # ══════════════════════════════════════════════════════════════════════════

    async def resolve(self, capability: CapabilityTag | str) -> ModelSelection:
        """Select models for ``capability``, loading the catalog on first use."""
        await self.catalog.ensure_loaded()
        return self.selector.select(capability)

    async def request(
        self,
        capability: CapabilityTag | str,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        effort: Optional[str] = None,
    ) -> CompletionResult:
        cap = CapabilityTag(capability)
        self.settings.require_api_key()
        selection = await self.resolve(cap)
        return await self.executor.complete(
            selection,
            messages,
            cap,
            temperature=temperature,
            max_tokens=max_tokens,
            effort=effort,
        )

    async def vision_request(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """OCR / image analysis; user turns may embed image_url parts."""
        return await self.request(CapabilityTag.VISION, messages, temperature, max_tokens)

    async def reasoning_request(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        effort: Optional[str] = None,
    ) -> CompletionResult:
        """Deep analysis with a reasoning effort hint (default ``high``)."""
        return await self.request(
            CapabilityTag.REASONING, messages, temperature, max_tokens, effort
        )

    async def default_request(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        return await self.request(CapabilityTag.DEFAULT, messages, temperature, max_tokens)

    # ══════════════════════════════════════════════════════════════════════════
    # Introspection
    # ══════════════════════════════════════════════════════════════════════════

    def get_router_config(self) -> Dict[str, Any]:
        """Current cache state for the system-status panel.  Never fetches."""
        stats = self.catalog.stats()
        return {
            "total_models": stats["total"],
            "vision_models": stats["vision"],
            "reasoning_models": stats["reasoning"],
            "selected": {
                tag.value: selection.to_dict()
                for tag, selection in self.selector.select_all().items()
            },
        }
