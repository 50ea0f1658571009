from capability_router.classifier import classify, is_reasoning, is_vision
from capability_router.models import CapabilityTag, ModelDescriptor


def _model(mid, **kwargs):
    return ModelDescriptor(id=mid, **kwargs)


class TestVision:
    def test_image_input_modality(self):
        assert is_vision(_model("acme/omni", input_modalities=frozenset({"text", "image"})))

    def test_multimodal_marker(self):
        assert is_vision(_model("acme/omni", modality="multimodal"))

    def test_modality_string_with_image_input(self):
        assert is_vision(_model("acme/omni", modality="text+image->text"))

    def test_image_output_only_is_not_vision(self):
        assert not is_vision(_model("acme/painter", modality="text->image"))

    def test_name_fallback_is_case_insensitive(self):
        assert is_vision(_model("meta-llama/Llama-3.2-11B-Vision-Instruct"))
        assert is_vision(_model("openai/GPT-4o-mini"))
        assert is_vision(_model("anthropic/claude-3-haiku"))
        assert is_vision(_model("google/gemini-1.5-flash"))

    def test_plain_text_model(self):
        assert not is_vision(
            _model("mistralai/mistral-7b-instruct", input_modalities=frozenset({"text"}))
        )


class TestReasoning:
    def test_supported_parameter(self):
        assert is_reasoning(_model("acme/deep", supported_parameters=("temperature", "reasoning")))

    def test_name_patterns(self):
        assert is_reasoning(_model("openai/o1"))
        assert is_reasoning(_model("openai/o1-preview"))
        assert is_reasoning(_model("deepseek/deepseek-r1"))
        assert is_reasoning(_model("qwen/qwen3-thinking"))

    def test_matches_display_name(self):
        assert is_reasoning(_model("acme/x-large", name="X Large (Reasoning)"))

    def test_word_boundary_required(self):
        assert not is_reasoning(_model("acme/pro1-chat"))
        assert not is_reasoning(_model("acme/mr1x"))

    def test_predicates_are_repeatable(self):
        m = _model("openai/gpt-4o", supported_parameters=("reasoning",))
        assert [is_vision(m), is_reasoning(m)] == [is_vision(m), is_reasoning(m)]


def test_classify_always_includes_default():
    tags = classify(_model("acme/plain"))
    assert tags == frozenset({CapabilityTag.DEFAULT})


def test_classify_combines_tags():
    tags = classify(_model("openai/gpt-4o", supported_parameters=("reasoning",)))
    assert tags == frozenset(
        {CapabilityTag.DEFAULT, CapabilityTag.VISION, CapabilityTag.REASONING}
    )
