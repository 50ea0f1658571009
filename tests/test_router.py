"""End-to-end tests for ModelRouter against a fake upstream."""

import pytest

from capability_router.config import DEFAULT_SELECTIONS
from capability_router.errors import ConfigurationError, TerminalRequestError
from capability_router.models import CapabilityTag
from capability_router.router import ModelRouter

RECEIPT_MESSAGES = [
    {
        "role": "user",
        "content": [
            {"type": "text", "text": "Extract the receipt as JSON."},
            {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAAA"}},
        ],
    }
]


def _router(make_settings, make_policy, fake, **overrides):
    return ModelRouter(make_settings(**overrides), client=fake.client(), policy=make_policy())


class TestRequests:
    @pytest.mark.asyncio
    async def test_vision_request_loads_catalog_then_posts(
        self, make_settings, make_policy, upstream, completion
    ):
        fake = upstream(responses=[(200, completion('{"store_name": "Costco"}'))])
        router = _router(make_settings, make_policy, fake)

        result = await router.vision_request(RECEIPT_MESSAGES)

        assert result.content == '{"store_name": "Costco"}'
        assert result.capability is CapabilityTag.VISION
        assert [r.url.path for r in fake.requests] == [
            "/api/v1/models",
            "/api/v1/chat/completions",
        ]
        (body,) = fake.chat_bodies()
        # preferred list order: claude-3.5-sonnet before gpt-4o
        assert body["model"] == "anthropic/claude-3.5-sonnet"
        assert body["models"] == ["anthropic/claude-3.5-sonnet", "openai/gpt-4o"]
        assert body["messages"] == RECEIPT_MESSAGES
        assert body["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_catalog_fetched_once_across_requests(
        self, make_settings, make_policy, upstream
    ):
        fake = upstream()
        router = _router(make_settings, make_policy, fake)

        await router.default_request([{"role": "user", "content": "a"}])
        await router.default_request([{"role": "user", "content": "b"}])
        await router.vision_request(RECEIPT_MESSAGES)

        assert len(fake.catalog_requests) == 1
        assert len(fake.chat_requests) == 3

    @pytest.mark.asyncio
    async def test_reasoning_request_uses_effort_and_reports_reasoning(
        self, make_settings, make_policy, upstream
    ):
        body = {
            "model": "deepseek/deepseek-r1",
            "choices": [{"message": {"content": "Spending is up 12%.", "reasoning": "step 1..."}}],
            "usage": {"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
        }
        fake = upstream(responses=[(200, body)])
        router = _router(make_settings, make_policy, fake)

        result = await router.reasoning_request([{"role": "user", "content": "analyse"}])

        assert result.model == "deepseek/deepseek-r1"
        assert result.reasoning == "step 1..."
        assert result.usage.total_tokens == 150
        (sent,) = fake.chat_bodies()
        assert sent["reasoning"] == {"effort": "high"}
        assert sent["model"] == "anthropic/claude-3.5-sonnet"
        assert sent["models"] == ["anthropic/claude-3.5-sonnet", "deepseek/deepseek-r1"]

    @pytest.mark.asyncio
    async def test_pinned_model_from_settings(self, make_settings, make_policy, upstream):
        fake = upstream()
        router = _router(make_settings, make_policy, fake, vision_model="openai/gpt-4o")

        await router.vision_request(RECEIPT_MESSAGES)

        (sent,) = fake.chat_bodies()
        assert sent["model"] == "openai/gpt-4o"
        assert sent["models"] == ["openai/gpt-4o", "anthropic/claude-3.5-sonnet"]

    @pytest.mark.asyncio
    async def test_failed_catalog_falls_back_to_defaults(
        self, make_settings, make_policy, upstream
    ):
        fake = upstream(catalog_status=500)
        router = _router(make_settings, make_policy, fake)

        await router.vision_request(RECEIPT_MESSAGES)

        primary, fallbacks = DEFAULT_SELECTIONS[CapabilityTag.VISION]
        (sent,) = fake.chat_bodies()
        assert sent["models"] == [primary, *fallbacks]

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_any_request(
        self, make_settings, make_policy, upstream
    ):
        fake = upstream()
        router = _router(make_settings, make_policy, fake, api_key="")

        with pytest.raises(ConfigurationError):
            await router.vision_request(RECEIPT_MESSAGES)
        with pytest.raises(ConfigurationError):
            await router.start()
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_terminal_error_propagates(self, make_settings, make_policy, upstream, sleeps):
        fake = upstream(responses=[(400, {"error": {"message": "bad messages"}})])
        router = _router(make_settings, make_policy, fake)

        with pytest.raises(TerminalRequestError):
            await router.default_request([{"role": "user", "content": "x"}])
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_resolve_accepts_strings(self, make_settings, make_policy, upstream):
        router = _router(make_settings, make_policy, upstream())
        selection = await router.resolve("reasoning")
        assert selection.primary == "anthropic/claude-3.5-sonnet"


class TestRouterConfig:
    def test_config_before_load_never_fetches(self, make_settings, make_policy, upstream):
        fake = upstream()
        router = _router(make_settings, make_policy, fake)

        config = router.get_router_config()

        assert fake.requests == []
        assert config["total_models"] == 0
        assert config["vision_models"] == 0
        assert config["reasoning_models"] == 0
        primary, fallbacks = DEFAULT_SELECTIONS[CapabilityTag.VISION]
        assert config["selected"]["vision"] == {"primary": primary, "fallbacks": list(fallbacks)}

    @pytest.mark.asyncio
    async def test_config_after_start(self, make_settings, make_policy, upstream):
        fake = upstream()
        router = _router(make_settings, make_policy, fake)
        await router.start()

        config = router.get_router_config()

        assert config["total_models"] == 4
        assert config["vision_models"] == 2
        assert config["reasoning_models"] == 1
        assert set(config["selected"]) == {"vision", "reasoning", "default"}
        assert config["selected"]["vision"]["primary"] == "anthropic/claude-3.5-sonnet"
        assert len(fake.catalog_requests) == 1
