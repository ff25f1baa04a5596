"""
Tests de la conversión a Mockoon y del manejo del subproceso (con un Popen falso).
"""

import io
import json
import subprocess

import pytest

from sandbox_core import mockoon as mockoon_module
from sandbox_core.mockoon import (
    MockoonError,
    MockoonManager,
    convert_openapi_to_mockoon,
    mockoon_path,
    schema_template_body,
    stateful_body,
)


class FakeProcess:
    def __init__(self, output):
        self.stdout = io.StringIO(output)
        self.returncode = None
        self.terminated = False
        self.killed = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = 0

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


@pytest.fixture
def manager(tmp_path):
    return MockoonManager(data_dir=tmp_path, cli="mockoon-cli", start_timeout=1)


@pytest.fixture
def environment_file(tmp_path):
    path = tmp_path / "env.json"
    path.write_text("{}", encoding="utf-8")
    return str(path)


def _fake_popen(monkeypatch, output):
    created = []

    def factory(cmd, **kwargs):
        process = FakeProcess(output)
        process.cmd = cmd
        created.append(process)
        return process

    monkeypatch.setattr(mockoon_module.subprocess, "Popen", factory)
    return created


def test_mockoon_path():
    assert mockoon_path("/pet/{petId}") == "pet/:petId"
    assert mockoon_path("/users/{userId}/orders/{orderId}") == "users/:userId/orders/:orderId"


def test_convert_builds_routes_and_buckets(petstore):
    environment = convert_openapi_to_mockoon("spec-1", petstore, port=3200)

    assert environment["port"] == 3200
    assert environment["name"] == "API Sandbox - Petstore"
    assert environment["cors"] is True
    assert environment["headers"] == [{"key": "Content-Type", "value": "application/json"}]
    assert len(environment["routes"]) == 5
    assert len(environment["rootChildren"]) == 5

    by_key = {(r["method"], r["endpoint"]): r for r in environment["routes"]}
    assert by_key[("post", "pet")]["responses"][0]["statusCode"] == 201
    assert by_key[("get", "pet/:petId")]["responses"][0]["statusCode"] == 200
    assert "urlParam 'petId'" in by_key[("get", "pet/:petId")]["responses"][0]["body"]

    assert {bucket["id"] for bucket in environment["data"]} == {"pet", "pets"}


def test_convert_random_port_in_configured_range(petstore):
    environment = convert_openapi_to_mockoon("spec-1", petstore)
    assert 3100 <= environment["port"] < 3100 + 900


def test_convert_without_state_uses_faker_templates(petstore):
    environment = convert_openapi_to_mockoon("spec-1", petstore, stateful=False)
    get_pets = next(r for r in environment["routes"] if r["endpoint"] == "pets")
    body = get_pets["responses"][0]["body"]
    assert body.startswith("[")
    assert "{{faker" in body
    assert environment["data"] == []


def test_schema_template_body_defaults():
    assert "{{now}}" in schema_template_body(None)
    assert "string.uuid" in schema_template_body({"type": "object"})
    body = schema_template_body({"type": "object", "properties": {"email": {"type": "string"}, "age": {"type": "integer"}}})
    assert "internet.email" in body and "number.int" in body


def test_stateful_body_per_method():
    assert stateful_body("GET", "/pets") == "{{data 'pets'}}"
    assert stateful_body("POST", "/pets").startswith("{{setData 'push' 'pets'")
    assert "setData 'del'" in stateful_body("DELETE", "/pets/{id}")


def test_create_environment_from_spec_writes_file(manager, petstore, tmp_path):
    created = manager.create_environment_from_spec("spec-1", petstore, "My pets")

    path = tmp_path / f"{created['environmentId']}.json"
    assert created["environmentFile"] == str(path)
    written = json.loads(path.read_text(encoding="utf-8"))
    assert written["port"] == created["port"]
    assert written["name"] == "API Sandbox - My pets"


def test_start_and_stop_environment(monkeypatch, manager, environment_file):
    created = _fake_popen(monkeypatch, "Mockoon CLI\nServer started on port 3105\n")

    result = manager.start_environment("env-1", environment_file, 3105)

    assert result == {"environmentId": "env-1", "port": 3105, "status": "running"}
    assert created[0].cmd == ["mockoon-cli", "start", "--data", environment_file, "--port", "3105"]
    assert manager.is_running("env-1")
    assert manager.running_instances() == ["env-1"]

    # Arrancar de nuevo no lanza otro proceso
    manager.start_environment("env-1", environment_file, 3105)
    assert len(created) == 1

    assert manager.stop_environment("env-1") is True
    assert created[0].terminated
    assert manager.stop_environment("env-1") is False
    assert manager.running_instances() == []


def test_start_timeout_kills_process(monkeypatch, tmp_path, environment_file):
    created = _fake_popen(monkeypatch, "booting...\n")
    manager = MockoonManager(data_dir=tmp_path, start_timeout=0.2)

    with pytest.raises(MockoonError, match="timeout"):
        manager.start_environment("env-1", environment_file, 3105)

    assert created[0].killed
    assert not manager.is_running("env-1")


def test_start_requires_existing_file(manager, tmp_path):
    with pytest.raises(MockoonError, match="No existe"):
        manager.start_environment("env-1", str(tmp_path / "missing.json"), 3105)


def test_start_with_missing_cli(tmp_path, environment_file):
    manager = MockoonManager(data_dir=tmp_path, cli="mockoon-cli-that-does-not-exist")
    with pytest.raises(MockoonError, match="PATH"):
        manager.start_environment("env-1", environment_file, 3105)


def test_dead_process_is_not_running(monkeypatch, manager, environment_file):
    created = _fake_popen(monkeypatch, "Server started\n")
    manager.start_environment("env-1", environment_file, 3105)

    created[0].returncode = 1

    assert not manager.is_running("env-1")
    assert manager.stop_environment("env-1") is False


def test_restart_environment(monkeypatch, manager, environment_file):
    created = _fake_popen(monkeypatch, "Server started\n")
    manager.start_environment("env-1", environment_file, 3105)

    manager.restart_environment("env-1", environment_file, 3105)

    assert len(created) == 2
    assert created[0].terminated
    assert manager.is_running("env-1")


def test_check_availability(monkeypatch, manager):
    monkeypatch.setattr(
        mockoon_module.subprocess,
        "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout="9.1.0\n", stderr=""),
    )
    assert manager.check_availability() == {"available": True, "version": "9.1.0"}


def test_check_availability_missing_cli(tmp_path):
    manager = MockoonManager(data_dir=tmp_path, cli="mockoon-cli-that-does-not-exist")
    result = manager.check_availability()
    assert result["available"] is False
    assert "PATH" in result["error"]
