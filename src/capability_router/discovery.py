"""
discovery.py — Model catalog cache for the capability router.

Responsibilities:
  • Fetch the upstream model list once, the first time anyone needs it
  • Accept both response shapes: a bare list or {"data": [...]}
  • Discard entries without a usable id
  • Pre-partition models by capability (vision / reasoning / default)
  • Degrade to a loaded-but-empty catalog when the fetch fails, so the
    process falls back to hardcoded defaults instead of re-fetching per request

The catalog is never refreshed for the life of the process.

Dependencies: httpx (async HTTP)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from .classifier import is_reasoning, is_vision
from .config import Settings
from .errors import UpstreamUnavailableError
from .models import CapabilityTag, ModelDescriptor

logger = logging.getLogger(__name__)


def parse_catalog(data: Any) -> List[ModelDescriptor]:
    """Parse a /models response body into descriptors, provider order kept."""
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = data.get("data") or []
        if not isinstance(items, list):
            items = []
    else:
        items = []

    out: List[ModelDescriptor] = []
    for item in items:
        model = ModelDescriptor.from_dict(item)
        if model is not None:
            out.append(model)
    return out


# ══════════════════════════════════════════════════════════════════════════════
# ModelCatalog  — the process-wide cache, owned by ModelRouter
# ══════════════════════════════════════════════════════════════════════════════


class ModelCatalog:
    """
    Memoized view of the models the upstream provider exposes.

    Usage::

        catalog = ModelCatalog(settings, client)
        await catalog.ensure_loaded()          # fetches on first call only
        catalog.model_ids                      # frozenset of ids
        catalog.by_capability[CapabilityTag.VISION]
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client
        self._load_lock = asyncio.Lock()
        # None = never loaded; [] = loaded but empty
        self._models: Optional[List[ModelDescriptor]] = None
        self._by_capability: Dict[CapabilityTag, List[ModelDescriptor]] = {
            tag: [] for tag in CapabilityTag
        }
        self._ids: frozenset = frozenset()

    # ── Public interface ───────────────────────────────────────────────────────

    @property
    def is_loaded(self) -> bool:
        return self._models is not None

    @property
    def all_models(self) -> List[ModelDescriptor]:
        return list(self._models or [])

    @property
    def by_capability(self) -> Dict[CapabilityTag, List[ModelDescriptor]]:
        return self._by_capability

    @property
    def model_ids(self) -> frozenset:
        return self._ids

    def pool(self, capability: CapabilityTag) -> List[ModelDescriptor]:
        return self._by_capability.get(capability, [])

    async def ensure_loaded(self) -> None:
        """Fetch the catalog if it has never been loaded; otherwise no-op.

        Raises ConfigurationError when no credential is configured.  A failed
        fetch is logged and leaves the catalog loaded-but-empty.
        """
        if self._models is not None:
            return
        self._settings.require_api_key()

        async with self._load_lock:
            if self._models is not None:
                return
            try:
                data = await self._fetch()
                models = parse_catalog(data)
            except UpstreamUnavailableError as exc:
                logger.warning(
                    "Model catalog unavailable (%s) — using hardcoded defaults until restart",
                    exc,
                )
                models = []
            self._store(models)

    def load_from(self, data: Any) -> None:
        """Ingest an already-fetched /models payload."""
        self._store(parse_catalog(data))

    def stats(self) -> Dict[str, Any]:
        return {
            "loaded": self.is_loaded,
            "total": len(self._models or []),
            "vision": len(self._by_capability[CapabilityTag.VISION]),
            "reasoning": len(self._by_capability[CapabilityTag.REASONING]),
        }

    # ── Internal ───────────────────────────────────────────────────────────────

    def _store(self, models: List[ModelDescriptor]) -> None:
        self._by_capability = {
            CapabilityTag.VISION: [m for m in models if is_vision(m)],
            CapabilityTag.REASONING: [m for m in models if is_reasoning(m)],
            CapabilityTag.DEFAULT: list(models),
        }
        self._ids = frozenset(m.id for m in models)
        self._models = models
        logger.info(
            "Loaded %d models — vision: %d, reasoning: %d",
            len(models),
            len(self._by_capability[CapabilityTag.VISION]),
            len(self._by_capability[CapabilityTag.REASONING]),
        )

    async def _fetch(self) -> Any:
        url = f"{self._settings.base_url.rstrip('/')}/models"
        logger.info("Fetching model catalog from %s", url)
        try:
            r = await self._client.get(
                url,
                headers=self._settings.headers(),
                timeout=self._settings.catalog_timeout,
            )
            r.raise_for_status()
            return r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(
                f"Failed to fetch model catalog: {exc}", cause=exc
            ) from exc
