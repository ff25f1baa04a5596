"""
Tests de /api/ai. El enhancer real queda sin API key; los casos con IA usan
un cliente OpenAI falso inyectado con dependency_overrides.
"""

from types import SimpleNamespace

import pytest

from api.dependencies import get_ai_enhancer, get_data_generator
from api.main import app
from sandbox_core.ai_enhancer import AIDataEnhancer
from sandbox_core.data_generator import SmartDataGenerator


def enhancer_replying(content):
    completions = SimpleNamespace(
        create=lambda **kwargs: SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )
    )
    return AIDataEnhancer(client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))


@pytest.fixture
def override_enhancer(client):
    def _override(enhancer):
        app.dependency_overrides[get_ai_enhancer] = lambda: enhancer

    return _override


def test_status_without_api_key(client):
    body = client.get("/api/ai/status").json()
    assert body["available"] is False
    assert body["features"] == []


def test_generate_data_basic(client):
    response = client.post(
        "/api/ai/generate-data",
        json={
            "schema": {"type": "object", "properties": {"name": {"type": "string"}, "age": {"type": "integer"}}},
            "mode": "basic",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == {"name": "string value", "age": 42}
    assert body["generationMode"] == "basic"
    assert body["requestedMode"] == "basic"
    assert body["aiAvailable"] is False


def test_generate_data_ai_mode_falls_back(client):
    response = client.post(
        "/api/ai/generate-data",
        json={"schema": {"type": "object", "properties": {"email": {"type": "string", "format": "email"}}}, "mode": "ai"},
    )

    assert response.status_code == 200
    assert "@" in response.json()["data"]["email"]
    assert response.json()["generationMode"] == "advanced"
    assert response.json()["requestedMode"] == "ai"


def test_generate_data_resolves_refs_from_spec(client, imported_spec):
    response = client.post(
        "/api/ai/generate-data",
        json={"schema": {"$ref": "#/components/schemas/Pet"}, "mode": "basic", "specId": imported_spec["id"]},
    )

    assert response.status_code == 200
    assert set(response.json()["data"]) == {"id", "name", "status", "photoUrls"}
    assert response.json()["data"]["status"] == "available"


def test_generate_data_unknown_spec(client):
    response = client.post("/api/ai/generate-data", json={"schema": {"type": "string"}, "specId": "nope"})
    assert response.status_code == 404


def test_generate_scenarios_requires_input(client):
    assert client.post("/api/ai/generate-scenarios", json={}).status_code == 400


def test_generate_scenarios_for_explicit_endpoints(client):
    response = client.post(
        "/api/ai/generate-scenarios",
        json={
            "endpoints": [{"method": "get", "path": "/users", "schema": {"type": "object", "properties": {"name": {"type": "string"}}}}],
            "count": 3,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["scenarioSetId"] is None
    scenarios = body["endpoints"][0]["scenarios"]
    assert body["endpoints"][0]["method"] == "GET"
    assert [s["type"] for s in scenarios] == ["realistic", "edge_case", "varied"]


def test_generate_scenarios_for_spec_are_saved(client, imported_spec):
    spec_id = imported_spec["id"]

    response = client.post("/api/ai/generate-scenarios", json={"specId": spec_id, "count": 2, "mode": "basic"})

    assert response.status_code == 200
    body = response.json()
    assert len(body["endpoints"]) == 5
    assert body["scenarioSetId"]

    saved = client.get(f"/api/ai/scenarios/{spec_id}").json()
    assert [s["id"] for s in saved] == [body["scenarioSetId"]]
    assert saved[0]["generationMode"] == "basic"
    assert len(saved[0]["endpoints"]) == 5


def test_generate_scenarios_rejects_bad_count(client):
    response = client.post(
        "/api/ai/generate-scenarios",
        json={"endpoints": [{"path": "/x", "schema": {"type": "string"}}], "count": 50},
    )
    assert response.status_code == 422


def test_scenarios_for_unknown_spec(client):
    assert client.get("/api/ai/scenarios/nope").status_code == 404


def test_analyze_spec(client, imported_spec):
    client.post("/api/mock/pet", json={"id": 1, "name": "Rex"})

    body = client.get(f"/api/ai/analyze/{imported_spec['id']}").json()

    assert body["specName"] == "Petstore"
    assert body["totalEndpoints"] == 5
    assert body["totalCalls"] == 1
    assert len(body["uncalledEndpoints"]) == 4
    assert client.get("/api/ai/analyze/nope").status_code == 404


def test_generate_data_accepts_generation_mode_field(client):
    response = client.post(
        "/api/ai/generate-data", json={"schema": {"type": "string"}, "generationMode": "basic"}
    )

    assert response.status_code == 200
    assert response.json()["data"] == "string value"
    assert response.json()["generationMode"] == "basic"


def test_generate_scenarios_accepts_generation_mode_field(client):
    response = client.post(
        "/api/ai/generate-scenarios",
        json={"endpoints": [{"path": "/x", "schema": {"type": "string"}}], "count": 1, "generationMode": "basic"},
    )

    assert response.json()["generationMode"] == "basic"
    assert response.json()["endpoints"][0]["scenarios"][0]["data"] == "string value"


def test_generate_scenarios_ai_mode_uses_model(client):
    enhancer = enhancer_replying('{"name": "Ada"}')
    app.dependency_overrides[get_data_generator] = lambda: SmartDataGenerator(ai_enhancer=enhancer)

    response = client.post(
        "/api/ai/generate-scenarios",
        json={"endpoints": [{"path": "/users", "schema": {"type": "object"}}], "count": 2, "generationMode": "ai"},
    )

    scenarios = response.json()["endpoints"][0]["scenarios"]
    assert [s["id"] for s in scenarios] == [1, 2]
    assert scenarios[0]["generatedBy"] == "AI"
    assert all(s["data"] == {"name": "Ada"} for s in scenarios)


def test_enhance_response_requires_base_response(client):
    response = client.post("/api/ai/enhance-response", json={"schema": {"type": "object"}})
    assert response.status_code == 400


def test_enhance_response_without_ai_uses_advanced(client):
    base = {"message": "ok"}

    response = client.post(
        "/api/ai/enhance-response",
        json={"endpointId": "e-1", "baseResponse": base, "context": {"businessDomain": "retail"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["original"] == base
    assert body["context"] == {"businessDomain": "retail"}
    assert body["generationMode"] == "advanced"
    assert set(body["enhanced"]) == {"message", "data", "timestamp"}
    assert body["enhancedAt"]


def test_enhance_response_with_model(client, override_enhancer):
    override_enhancer(enhancer_replying('```json\n{"name": "Ada"}\n```'))

    response = client.post(
        "/api/ai/enhance-response",
        json={
            "baseResponse": {"name": "x"},
            "schema": {"type": "object", "properties": {"name": {"type": "string"}}},
            "context": {"businessDomain": "hr"},
        },
    )

    assert response.status_code == 200
    assert response.json()["enhanced"] == {"name": "Ada"}
    assert response.json()["original"] == {"name": "x"}
    assert response.json()["generationMode"] == "ai"


def test_enhance_response_invalid_reply(client, override_enhancer):
    override_enhancer(enhancer_replying("not json at all"))

    response = client.post("/api/ai/enhance-response", json={"baseResponse": {"a": 1}})

    assert response.status_code == 502
