"""
Tests del enhancer de IA con un cliente OpenAI falso.
"""

from types import SimpleNamespace

import pytest

from sandbox_core.ai_enhancer import AIDataEnhancer, _strip_code_fence
from sandbox_core.llm_client import AIUnavailableError


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


def fake_client(*replies):
    completions = FakeCompletions(replies)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


SCHEMA = {"type": "object", "properties": {"name": {"type": "string"}}}


def test_enhance_parses_json_reply():
    client, completions = fake_client('{"name": "Ada"}')
    enhancer = AIDataEnhancer(client=client)

    data = enhancer.enhance(SCHEMA, {"businessDomain": "e-commerce", "endpoint": "/users", "method": "GET"})

    assert data == {"name": "Ada"}
    call = completions.calls[0]
    assert call["model"] == "gpt-3.5-turbo"
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 2000
    prompt = call["messages"][1]["content"]
    assert "Business domain: e-commerce" in prompt
    assert "API endpoint: /users" in prompt
    assert "HTTP method: GET" in prompt
    assert "Return only valid JSON" in prompt


def test_enhance_accepts_code_fenced_json():
    client, _ = fake_client('```json\n[1, 2]\n```')
    assert AIDataEnhancer(client=client).enhance(SCHEMA) == [1, 2]


@pytest.mark.parametrize("reply", ["", "this is not json"])
def test_enhance_rejects_empty_or_invalid_reply(reply):
    client, _ = fake_client(reply)
    with pytest.raises(ValueError):
        AIDataEnhancer(client=client).enhance(SCHEMA)


def test_enhancer_disabled_without_api_key():
    enhancer = AIDataEnhancer()

    assert enhancer.is_available is False
    with pytest.raises(AIUnavailableError):
        enhancer.enhance(SCHEMA)
    assert enhancer.generate_scenarios(SCHEMA) == []
    assert enhancer.status() == {"available": False, "model": "gpt-3.5-turbo", "features": []}


def test_generate_scenarios_skips_failures():
    client, _ = fake_client('{"name": "a"}', RuntimeError("rate limited"), '{"name": "c"}')
    scenarios = AIDataEnhancer(client=client).generate_scenarios(SCHEMA, count=3)

    assert [s["type"] for s in scenarios] == ["realistic", "stress_test"]
    assert scenarios[1]["data"] == {"name": "c"}
    assert all(s["generatedBy"] == "AI" for s in scenarios)


def test_generate_scenarios_caps_count():
    client, completions = fake_client('{}', '{}', '{}')
    assert len(AIDataEnhancer(client=client).generate_scenarios(SCHEMA, count=10)) == 3
    assert len(completions.calls) == 3


def test_status_when_available():
    client, _ = fake_client()
    status = AIDataEnhancer(client=client).status()
    assert status["available"] is True
    assert "Context-aware data generation" in status["features"]


def test_strip_code_fence():
    assert _strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert _strip_code_fence(' {"a": 1} ') == '{"a": 1}'
