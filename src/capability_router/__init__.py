"""Public package surface for capability_router.

Expose the primary entry points used by consumers of the package.
"""

__version__ = "1.0.0"

from capability_router.config import DEFAULT_SELECTIONS, PREFERRED_MODELS, Settings, load_env_file
from capability_router.errors import (
    ConfigurationError,
    RequestError,
    ResponseParseError,
    RetryableRequestError,
    RouterError,
    TerminalRequestError,
    UpstreamUnavailableError,
)
from capability_router.models import (
    CapabilityTag,
    CompletionResult,
    ModelDescriptor,
    ModelSelection,
    TokenUsage,
)
from capability_router.router import ModelRouter

__all__ = [
    "DEFAULT_SELECTIONS",
    "PREFERRED_MODELS",
    "CapabilityTag",
    "CompletionResult",
    "ConfigurationError",
    "ModelDescriptor",
    "ModelRouter",
    "ModelSelection",
    "RequestError",
    "ResponseParseError",
    "RetryableRequestError",
    "RouterError",
    "Settings",
    "TerminalRequestError",
    "TokenUsage",
    "UpstreamUnavailableError",
    "__version__",
    "load_env_file",
]
