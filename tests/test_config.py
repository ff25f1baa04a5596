import pytest

from sandbox_core.config import get_settings


def test_defaults():
    settings = get_settings()
    assert settings.mock_mode == "advanced"
    assert settings.mock_delay_ms == 0
    assert settings.enable_mock_metadata is True
    assert settings.ai_available is False
    assert settings.mockoon_base_port == 3100


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MOCK_DELAY", "250")
    monkeypatch.setenv("MOCK_MODE", "basic")
    monkeypatch.setenv("ENABLE_MOCK_METADATA", "false")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.mock_delay_ms == 250
    assert settings.mock_mode == "basic"
    assert settings.enable_mock_metadata is False
    assert settings.ai_available is True


@pytest.mark.parametrize(
    "name, value",
    [
        ("MOCK_DELAY", "-5"),
        ("MOCK_DELAY", "soon"),
        ("MOCK_MODE", "magic"),
        ("RATE_LIMIT_MAX_REQUESTS", "0"),
        ("RATE_LIMIT_WINDOW_MS", "-1"),
    ],
)
def test_invalid_values_fail(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        get_settings()


def test_rate_limit_settings(monkeypatch):
    monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "20")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.rate_limit_enabled is True
    assert settings.rate_limit_max_requests == 20
    assert settings.rate_limit_window_ms == 900_000
