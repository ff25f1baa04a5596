"""
Dependencias de FastAPI.

Los servicios del core se crean una sola vez por proceso y se inyectan con
`Depends`, lo que permite reemplazarlos en tests con
`app.dependency_overrides`.
"""

from functools import lru_cache

from sandbox_core.ai_enhancer import AIDataEnhancer
from sandbox_core.data_generator import SmartDataGenerator
from sandbox_core.mock_service import MockService
from sandbox_core.mockoon import MockoonManager


@lru_cache
def get_ai_enhancer() -> AIDataEnhancer:
    return AIDataEnhancer()


@lru_cache
def get_data_generator() -> SmartDataGenerator:
    return SmartDataGenerator(ai_enhancer=get_ai_enhancer())


@lru_cache
def get_mock_service() -> MockService:
    return MockService(generator=get_data_generator())


@lru_cache
def get_mockoon_manager() -> MockoonManager:
    return MockoonManager()
