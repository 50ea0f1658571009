"""
classifier.py — Capability classification for catalog models.

Structured metadata (input modalities, supported parameters) is checked
first.  When it is missing the model id / name is matched against keyword
families; that fallback is a heuristic and can produce false positives.

Both predicates are pure so the selector and tests can call them freely.
"""

from __future__ import annotations

import re

from .models import CapabilityTag, ModelDescriptor

# ── Keyword sets for name-based capability inference ──────────────────────────

_VISION_KEYWORDS: frozenset = frozenset(
    [
        "vision",
        "claude-3",
        "gpt-4o",
        "gemini-pro-vision",
        "gemini-1.5",
    ]
)
_REASONING_PATTERN = re.compile(r"reasoning|thinking|\bo1\b|\br1\b")
_REASONING_PARAMETER = "reasoning"


def _input_side(modality: str) -> str:
    # "text+image->text" → "text+image"
    return modality.split("->", 1)[0]


def is_vision(model: ModelDescriptor) -> bool:
    """True if the model accepts image input."""
    if "image" in model.input_modalities:
        return True
    if model.modality:
        if model.modality == "multimodal" or "image" in _input_side(model.modality):
            return True
    mid = model.id.lower()
    return any(k in mid for k in _VISION_KEYWORDS)


def is_reasoning(model: ModelDescriptor) -> bool:
    """True if the model supports step-by-step reasoning output."""
    if _REASONING_PARAMETER in model.supported_parameters:
        return True
    hay = f"{model.id} {model.name or ''}".lower()
    return bool(_REASONING_PATTERN.search(hay))


def classify(model: ModelDescriptor) -> frozenset:
    """Return every CapabilityTag the model qualifies for."""
    tags = {CapabilityTag.DEFAULT}
    if is_vision(model):
        tags.add(CapabilityTag.VISION)
    if is_reasoning(model):
        tags.add(CapabilityTag.REASONING)
    return frozenset(tags)
