"""
selector.py — Capability → ModelSelection.

Precedence, first match wins:

  1.  Pinned override that is present in the catalog.  Fallbacks come from
      the preferred list (pin removed, catalog-filtered, up to the limit);
      if none survive, the hardcoded fallbacks filtered to the catalog.
  2.  Preferred list filtered to the catalog, order preserved.
  3.  Classifier-derived capability pool, in catalog order.
  4.  Hardcoded default selection, verbatim.

Selection is deterministic for a given catalog snapshot and configuration
and never raises.  An unloaded catalog reads as empty.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_SELECTIONS, PREFERRED_MODELS
from .discovery import ModelCatalog
from .models import CapabilityTag, ModelSelection

logger = logging.getLogger(__name__)

MAX_FALLBACKS = 2


class ModelSelector:
    def __init__(
        self,
        catalog: ModelCatalog,
        pinned: Mapping[CapabilityTag, Optional[str]] | None = None,
        preferred: Mapping[CapabilityTag, Sequence[str]] | None = None,
        defaults: Mapping[CapabilityTag, Tuple[str, Sequence[str]]] | None = None,
        max_fallbacks: int = MAX_FALLBACKS,
    ) -> None:
        self.catalog = catalog
        self.pinned: Dict[CapabilityTag, Optional[str]] = dict(pinned or {})
        self.preferred = preferred if preferred is not None else PREFERRED_MODELS
        self.defaults = defaults if defaults is not None else DEFAULT_SELECTIONS
        self.max_fallbacks = max_fallbacks

    def select(self, capability: CapabilityTag | str) -> ModelSelection:
        cap = CapabilityTag(capability)
        available = self.catalog.model_ids
        preferred: List[str] = list(self.preferred.get(cap, ()))
        default_primary, default_fallbacks = self.defaults[cap]

        # 1. Pinned override
        pin = self.pinned.get(cap)
        if pin and pin in available:
            fallbacks = [m for m in preferred if m != pin and m in available]
            fallbacks = fallbacks[: self.max_fallbacks]
            if not fallbacks:
                fallbacks = [m for m in default_fallbacks if m != pin and m in available]
                fallbacks = fallbacks[: self.max_fallbacks]
            return ModelSelection(pin, tuple(fallbacks))
        if pin:
            logger.debug("Pinned %s model %s not in catalog — ignoring", cap.value, pin)

        # 2. Preferred list ∩ catalog
        available_preferred = [m for m in preferred if m in available]
        if available_preferred:
            return ModelSelection(
                available_preferred[0],
                tuple(available_preferred[1 : 1 + self.max_fallbacks]),
            )

        # 3. Classifier pool
        pool = self.catalog.pool(cap)
        if pool:
            return ModelSelection(
                pool[0].id,
                tuple(m.id for m in pool[1 : 1 + self.max_fallbacks]),
            )

        # 4. Hardcoded last resort
        return ModelSelection(default_primary, tuple(default_fallbacks))

    def select_all(self) -> Dict[CapabilityTag, ModelSelection]:
        return {tag: self.select(tag) for tag in CapabilityTag}
