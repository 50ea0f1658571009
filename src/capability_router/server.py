"""
server.py — FastAPI application for the capability router.

Endpoints:
  POST /v1/vision             — image input (receipt / attachment OCR)
  POST /v1/reasoning          — deep analysis with a reasoning effort hint
  POST /v1/chat/completions   — general text completion
  GET  /v1/models             — cached model catalog with capability tags
  GET  /v1/select/{capability} — model list a request would use
  GET  /router/config         — selection state for the system-status panel
  GET  /health                — liveness / readiness probe

``create_app`` builds the application from a Settings object, so CORS and the
router see values loaded from ``.env`` when ``main`` starts the server.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from capability_router.classifier import classify
from capability_router.config import Settings, load_env_file
from capability_router.content import parse_json_content
from capability_router.errors import (
    ConfigurationError,
    ResponseParseError,
    RetryableRequestError,
    TerminalRequestError,
)
from capability_router.models import (
    CapabilityTag,
    CompletionRequest,
    CompletionResult,
    ReasoningRequest,
)
from capability_router.router import ModelRouter

logger = logging.getLogger(__name__)

# ── Singleton router instance ─────────────────────────────────────────────────
_router: ModelRouter | None = None  # pylint: disable=invalid-name


def get_router() -> ModelRouter:
    """Return the singleton ModelRouter instance.

    Raises RuntimeError if the router has not been initialised via the
    FastAPI lifespan manager.
    """
    if _router is None:
        raise RuntimeError("Router not initialised — check lifespan startup")
    return _router


# ══════════════════════════════════════════════════════════════════════════════
# FastAPI lifespan (startup / shutdown)
# ══════════════════════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Create the router (unless one was installed already) and warm its catalog.

    A missing API key makes startup fail so orchestrators see an unready
    service; a catalog fetch failure only degrades selection to defaults.
    """
    # pylint: disable=global-statement
    global _router
    try:
        if _router is None:
            _router = ModelRouter(application.state.settings)
        await _router.start()
        logger.info("Capability router started")
    except Exception:
        logger.exception("Router failed to start during lifespan startup")
        raise

    try:
        yield
    finally:
        try:
            if _router is not None:
                await _router.stop()
                logger.info("Capability router stopped")
        except Exception:
            logger.exception("Error while stopping ModelRouter during shutdown")


def _respond(result: CompletionResult, expect_json: bool) -> dict[str, Any]:
    body = result.to_dict()
    if expect_json:
        body["parsed"] = parse_json_content(result.content)
    return body


# ══════════════════════════════════════════════════════════════════════════════
# Routes
# ══════════════════════════════════════════════════════════════════════════════

api = APIRouter()


@api.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Lightweight health endpoint for probes / browser check."""
    return {"status": "ok", "service": "Capability Router"}


# ── Health ────────────────────────────────────────────────────────────────────


@api.get("/health", tags=["Observability"])
async def health() -> dict[str, Any]:
    """Healthy when the catalog loaded with models; degraded on defaults."""
    r = get_router()
    stats = r.catalog.stats()
    return {
        "status": "healthy" if stats["loaded"] and stats["total"] else "degraded",
        "catalog": stats,
    }


# ── Catalog / status ──────────────────────────────────────────────────────────


@api.get("/v1/models", tags=["Discovery"])
async def list_models() -> dict[str, Any]:
    r = get_router()
    return {
        "object": "list",
        "data": [
            {
                "id": m.id,
                "object": "model",
                "name": m.name,
                "capabilities": sorted(t.value for t in classify(m)),
            }
            for m in r.catalog.all_models
        ],
    }


@api.get("/router/config", tags=["Observability"])
async def router_config() -> dict[str, Any]:
    """Model selection state; reads the cache only, never fetches."""
    r = get_router()
    return {"enabled": r.settings.has_api_key, **r.get_router_config()}


# ── Completions ───────────────────────────────────────────────────────────────


@api.post("/v1/vision", tags=["Completions"])
async def vision(request: CompletionRequest) -> dict[str, Any]:
    r = get_router()
    result = await r.vision_request(request.messages, request.temperature, request.max_tokens)
    return _respond(result, request.expect_json)


@api.post("/v1/reasoning", tags=["Completions"])
async def reasoning(request: ReasoningRequest) -> dict[str, Any]:
    r = get_router()
    result = await r.reasoning_request(
        request.messages, request.temperature, request.max_tokens, request.effort
    )
    return _respond(result, request.expect_json)


@api.post("/v1/chat/completions", tags=["Completions"])
async def chat_completions(request: CompletionRequest) -> dict[str, Any]:
    r = get_router()
    result = await r.default_request(request.messages, request.temperature, request.max_tokens)
    return _respond(result, request.expect_json)


@api.get("/v1/select/{capability}", tags=["Discovery"])
async def select(capability: str) -> dict[str, Any]:
    """Resolve the model list a request for ``capability`` would use."""
    try:
        cap = CapabilityTag(capability)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=f"Unknown capability '{capability}'") from e
    r = get_router()
    selection = await r.resolve(cap)
    return {"capability": cap.value, **selection.to_dict()}


# ══════════════════════════════════════════════════════════════════════════════
# Exception handlers
# ══════════════════════════════════════════════════════════════════════════════


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": str(exc), "type": type(exc).__name__}},
    )


async def configuration_error_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return _error(503, exc)


async def retryable_error_handler(_request: Request, exc: RetryableRequestError) -> JSONResponse:
    logger.warning("Upstream still failing after retries: %s", exc)
    return _error(503, exc)


async def terminal_error_handler(_request: Request, exc: TerminalRequestError) -> JSONResponse:
    logger.warning("Upstream rejected request: %s", exc)
    return _error(502, exc)


async def parse_error_handler(_request: Request, exc: ResponseParseError) -> JSONResponse:
    return _error(422, exc)


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler that returns a short JSON error object."""
    logger.exception("Unhandled exception: %s", exc)
    return _error(500, exc)


# ══════════════════════════════════════════════════════════════════════════════
# App
# ══════════════════════════════════════════════════════════════════════════════


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the application; settings are read from the environment if omitted."""
    app_settings = app_settings or Settings()
    application = FastAPI(
        title="Capability Router",
        version="1.0.0",
        description=(
            "Picks vision, reasoning and default models from the upstream catalog"
            " and forwards chat completions with retry and server-side fallbacks."
        ),
        lifespan=lifespan,
    )
    application.state.settings = app_settings

    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "User-Agent"],
    )
    application.include_router(api)

    application.add_exception_handler(ConfigurationError, configuration_error_handler)
    application.add_exception_handler(RetryableRequestError, retryable_error_handler)
    application.add_exception_handler(TerminalRequestError, terminal_error_handler)
    application.add_exception_handler(ResponseParseError, parse_error_handler)
    application.add_exception_handler(Exception, global_exception_handler)
    return application


def create_app_from_env(env_path: str | os.PathLike[str] | None = None) -> FastAPI:
    """Load ``.env`` first, then build the app from the resulting environment."""
    load_env_file(env_path)
    return create_app(Settings())


app = create_app()


# ══════════════════════════════════════════════════════════════════════════════
# Entry point
# ══════════════════════════════════════════════════════════════════════════════


def main():
    import argparse

    import uvicorn

    load_env_file()
    # Re-read now that .env values are in the environment
    current = Settings()

    parser = argparse.ArgumentParser(description="Start the capability router server.")
    parser.add_argument("--host", default=current.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=current.port, help="Port to bind to")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=current.debug,
        help="Enable reload/debug mode",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, current.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    if args.debug:
        # The reloader imports the factory in a fresh process, which loads .env itself
        uvicorn.run(
            "capability_router.server:create_app_from_env",
            factory=True,
            host=args.host,
            port=args.port,
            reload=True,
            log_level=current.log_level.lower(),
        )
        return

    global _router
    _router = ModelRouter(current)
    uvicorn.run(
        create_app(current),
        host=args.host,
        port=args.port,
        log_level=current.log_level.lower(),
    )


if __name__ == "__main__":
    main()
