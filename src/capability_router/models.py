"""
models.py — Pydantic schemas and runtime dataclasses for the capability router.

Three layers:
  1. Enumerations   (CapabilityTag)
  2. Runtime types  (ModelDescriptor, ModelSelection, CompletionResult)
  3. API request schemas (FastAPI i/o)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════════
# Enumerations
# ══════════════════════════════════════════════════════════════════════════════


class CapabilityTag(str, Enum):
    VISION    = "vision"      # image input (receipt OCR)
    REASONING = "reasoning"   # extended thinking (monthly analysis)
    DEFAULT   = "default"     # general text completion


# ══════════════════════════════════════════════════════════════════════════════
# Runtime types
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ModelDescriptor:
    """A single model as reported by the upstream catalog."""
    id: str
    name: Optional[str] = None
    input_modalities: frozenset = frozenset()
    modality: Optional[str] = None              # e.g. "text+image->text"
    supported_parameters: tuple = ()

    @classmethod
    def from_dict(cls, item: Any) -> Optional["ModelDescriptor"]:
        """Build a descriptor from raw catalog JSON; None if unusable."""
        if not isinstance(item, dict):
            return None
        mid = item.get("id")
        if not isinstance(mid, str) or not mid:
            return None
        arch = item.get("architecture") or {}
        if not isinstance(arch, dict):
            arch = {}
        modalities = arch.get("input_modalities") or []
        params = item.get("supported_parameters") or []
        name = item.get("name")
        modality = arch.get("modality")
        return cls(
            id=mid,
            name=name if isinstance(name, str) else None,
            input_modalities=frozenset(
                m for m in modalities if isinstance(m, str)
            ) if isinstance(modalities, list) else frozenset(),
            modality=modality if isinstance(modality, str) else None,
            supported_parameters=tuple(
                p for p in params if isinstance(p, str)
            ) if isinstance(params, list) else (),
        )


@dataclass(frozen=True)
class ModelSelection:
    """Primary model plus ordered fallbacks for one request."""
    primary: str
    fallbacks: tuple = ()

    def __post_init__(self) -> None:
        seen = {self.primary}
        cleaned = []
        for mid in self.fallbacks:
            if mid not in seen:
                seen.add(mid)
                cleaned.append(mid)
        object.__setattr__(self, "fallbacks", tuple(cleaned))

    @property
    def models(self) -> List[str]:
        """Model list sent upstream so the provider can fail over itself."""
        return [self.primary, *self.fallbacks]

    def to_dict(self) -> Dict[str, Any]:
        return {"primary": self.primary, "fallbacks": list(self.fallbacks)}


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, usage: Any) -> "TokenUsage":
        if not isinstance(usage, dict):
            return cls()
        return cls(
            prompt_tokens=_as_int(usage.get("prompt_tokens")),
            completion_tokens=_as_int(usage.get("completion_tokens")),
            total_tokens=_as_int(usage.get("total_tokens")),
        )


@dataclass
class CompletionResult:
    """Normalised outcome of one chat-completion call."""
    content: str
    model: str                                  # model the provider actually used
    capability: CapabilityTag
    usage: TokenUsage = field(default_factory=TokenUsage)
    reasoning: Optional[str] = None
    fallbacks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "capability": self.capability.value,
            "reasoning": self.reasoning,
            "fallbacks": list(self.fallbacks),
            "usage": {
                "prompt_tokens": self.usage.prompt_tokens,
                "completion_tokens": self.usage.completion_tokens,
                "total_tokens": self.usage.total_tokens,
            },
        }


# ══════════════════════════════════════════════════════════════════════════════
# API request schemas
# ══════════════════════════════════════════════════════════════════════════════


class CompletionRequest(BaseModel):
    messages: List[Dict[str, Any]] = Field(..., min_length=1)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(None, gt=0)
    expect_json: bool = False


class ReasoningRequest(CompletionRequest):
    effort: Optional[str] = Field(None, pattern="^(low|medium|high)$")
