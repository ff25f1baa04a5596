# sandbox_core/config.py
from dataclasses import dataclass
from functools import lru_cache
import os

from dotenv import load_dotenv

"""
sandbox_core.config
===================

Gestión centralizada de configuración del sandbox.

Este módulo define:
- La estructura de configuración (`Settings`)
- El mecanismo para cargar variables desde entorno (.env)
- Un acceso único y cacheado a la configuración (`get_settings`)

Convenciones
------------
- Las variables de entorno se cargan desde un archivo `.env` si existe.
- Los defaults están pensados para desarrollo local.
- Si falta `OPENAI_API_KEY` NO se falla acá: el enhancer de IA queda
  deshabilitado y los modos de generación caen a "advanced".
- Valores inválidos de `MOCK_DELAY` o `MOCK_MODE` sí fallan al construir
  `Settings`, porque afectan a todas las respuestas mock.
"""

# Cargar variables de entorno desde .env (si existe)
load_dotenv()

MOCK_MODES = ("basic", "advanced", "ai")


@dataclass
class Settings:
    """
    Contenedor tipado de configuración global del sandbox.

    Attributes
    ----------
    openai_api_key:
        API key de OpenAI. Vacía = enhancer de IA deshabilitado.
    openai_model:
        Modelo de chat usado por el enhancer.
    mock_delay_ms:
        Latencia por defecto (ms) aplicada a cada respuesta de /api/mock.
    mock_mode:
        Modo de generación por defecto: "basic" | "advanced" | "ai".
    enable_mock_metadata:
        Si True, las respuestas mock incluyen el bloque `_mock`.
    data_dir:
        Directorio base para datos locales (SQLite, entornos Mockoon).
    mockoon_data_dir:
        Directorio donde se escriben los archivos de entorno de Mockoon.
    mockoon_cli:
        Ejecutable de la CLI de Mockoon.
    mockoon_base_port / mockoon_port_range:
        Rango de puertos asignables a los entornos: [base, base + range).
    mockoon_start_timeout:
        Segundos a esperar el "Server started" de la CLI.
    rate_limit_enabled:
        Si False, no se aplica el límite de requests por IP.
    rate_limit_window_ms / rate_limit_max_requests:
        Máximo de requests por IP dentro de la ventana (ms).
    """

    # OpenAI
    openai_api_key: str
    openai_model: str

    # Mocks
    mock_delay_ms: int = 0
    mock_mode: str = "advanced"
    enable_mock_metadata: bool = True

    # I/O
    data_dir: str = "data"

    # Mockoon
    mockoon_data_dir: str = "data/mockoon"
    mockoon_cli: str = "mockoon-cli"
    mockoon_base_port: int = 3100
    mockoon_port_range: int = 900
    mockoon_start_timeout: float = 10.0

    # Rate limit
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100

    def __post_init__(self) -> None:
        if self.mock_delay_ms < 0:
            raise ValueError("MOCK_DELAY debe ser un número no negativo")
        if self.mock_mode not in MOCK_MODES:
            raise ValueError(f"MOCK_MODE debe ser uno de: {', '.join(MOCK_MODES)}")
        if self.rate_limit_window_ms <= 0 or self.rate_limit_max_requests <= 0:
            raise ValueError("RATE_LIMIT_WINDOW_MS y RATE_LIMIT_MAX_REQUESTS deben ser positivos")

    @property
    def ai_available(self) -> bool:
        return bool(self.openai_api_key.strip())


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} debe ser un entero (recibido: {raw!r})") from e


@lru_cache
def get_settings() -> Settings:
    """
    Devuelve una instancia única y cacheada de `Settings`.

    Variables de entorno utilizadas
    -------------------------------
    - OPENAI_API_KEY
    - OPENAI_MODEL (default: "gpt-3.5-turbo")
    - MOCK_DELAY (default: 0)
    - MOCK_MODE (default: "advanced")
    - ENABLE_MOCK_METADATA (solo el literal "false" lo deshabilita)
    - DATA_DIR (default: "data")
    - MOCKOON_DATA_DIR (default: "<DATA_DIR>/mockoon")
    - MOCKOON_CLI (default: "mockoon-cli")
    - MOCKOON_BASE_PORT (default: 3100)
    - MOCKOON_PORT_RANGE (default: 900)
    - MOCKOON_START_TIMEOUT (default: 10)
    - RATE_LIMIT_ENABLED (solo el literal "false" lo deshabilita)
    - RATE_LIMIT_WINDOW_MS (default: 900000)
    - RATE_LIMIT_MAX_REQUESTS (default: 100)

    En tests se puede invalidar con `get_settings.cache_clear()`.
    """
    data_dir = os.getenv("DATA_DIR", "data")

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),

        mock_delay_ms=_int_env("MOCK_DELAY", 0),
        mock_mode=os.getenv("MOCK_MODE", "advanced"),
        enable_mock_metadata=os.getenv("ENABLE_MOCK_METADATA", "true") != "false",

        data_dir=data_dir,

        mockoon_data_dir=os.getenv("MOCKOON_DATA_DIR", os.path.join(data_dir, "mockoon")),
        mockoon_cli=os.getenv("MOCKOON_CLI", "mockoon-cli"),
        mockoon_base_port=_int_env("MOCKOON_BASE_PORT", 3100),
        mockoon_port_range=_int_env("MOCKOON_PORT_RANGE", 900),
        mockoon_start_timeout=float(os.getenv("MOCKOON_START_TIMEOUT", "10")),

        rate_limit_enabled=os.getenv("RATE_LIMIT_ENABLED", "true") != "false",
        rate_limit_window_ms=_int_env("RATE_LIMIT_WINDOW_MS", 900_000),
        rate_limit_max_requests=_int_env("RATE_LIMIT_MAX_REQUESTS", 100),
    )
