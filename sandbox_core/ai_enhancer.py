"""
sandbox_core.ai_enhancer
========================

Enhancer opcional de datos mock usando un modelo hosteado (OpenAI).

Mockoon y el generador "advanced" cubren el mocking estándar; este módulo
solo agrega generación contextual cuando hay API key. El flujo es directo:

1) Armar un prompt con el JSON schema y el contexto (dominio, endpoint, método).
2) Pedir una completion al modelo.
3) Parsear la respuesta como JSON.

Si no hay `OPENAI_API_KEY` el enhancer queda deshabilitado: `enhance()` lanza
`AIUnavailableError` y `generate_scenarios()` devuelve lista vacía.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .config import get_settings
from .llm_client import AIUnavailableError, chat_completion_text, get_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at generating realistic, contextually appropriate mock data for APIs. "
    "Generate JSON data that matches the provided schema and context."
)

REQUIREMENTS = """
Requirements:
- Generate realistic, production-like data
- Follow the exact schema structure
- Use appropriate data types and formats
- Make data contextually relevant
- Return only valid JSON, no explanations
- Include realistic relationships between fields"""

SCENARIO_TYPES = [
    {"type": "realistic", "description": "Typical production data"},
    {"type": "edge_case", "description": "Boundary values and edge cases"},
    {"type": "stress_test", "description": "High-volume or complex data"},
]

FEATURES = [
    "Context-aware data generation",
    "Business domain intelligence",
    "Advanced test scenarios",
    "Realistic data relationships",
]


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class AIDataEnhancer:
    """
    Adaptador sobre chat.completions para generar datos desde un JSON schema.

    Args:
        client: cliente OpenAI ya construido (útil en tests). Si es None se
            crea uno la primera vez que se necesita.
    """

    def __init__(self, client: Optional[OpenAI] = None):
        self._client = client

    @property
    def is_available(self) -> bool:
        return self._client is not None or get_settings().ai_available

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = get_client()
        return self._client

    def build_prompt(self, schema: Dict[str, Any], context: Dict[str, Any] | None = None) -> str:
        context = context or {}
        prompt = f"Generate realistic mock data for this JSON schema:\n\n{json.dumps(schema, indent=2)}\n\n"

        if context.get("businessDomain"):
            prompt += f"Business domain: {context['businessDomain']}\n"
        if context.get("endpoint"):
            prompt += f"API endpoint: {context['endpoint']}\n"
        if context.get("method"):
            prompt += f"HTTP method: {context['method']}\n"

        prompt += REQUIREMENTS
        return prompt

    def enhance(self, schema: Dict[str, Any], context: Dict[str, Any] | None = None) -> Any:
        """
        Genera datos para `schema` usando el modelo.

        Raises:
            AIUnavailableError: si no hay API key configurada
            ValueError: si el modelo no devolvió JSON válido
        """
        if not self.is_available:
            raise AIUnavailableError("AI enhancement no disponible: OPENAI_API_KEY no está configurada")

        raw = chat_completion_text(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(schema, context)},
            ],
            temperature=0.7,
            max_tokens=2000,
            client=self._get_client(),
        )
        if not raw.strip():
            raise ValueError("El modelo no devolvió contenido")

        try:
            return json.loads(_strip_code_fence(raw))
        except json.JSONDecodeError as e:
            raise ValueError(f"El modelo devolvió JSON inválido: {e}") from e

    def generate_scenarios(self, schema: Dict[str, Any], count: int = 3) -> List[Dict[str, Any]]:
        """
        Genera hasta 3 escenarios (realistic, edge_case, stress_test).

        Los escenarios que fallan se omiten; sin IA devuelve [].
        """
        if not self.is_available:
            return []

        scenarios: List[Dict[str, Any]] = []
        for i, scenario_type in enumerate(SCENARIO_TYPES[: max(0, min(count, len(SCENARIO_TYPES)))]):
            try:
                data = self.enhance(
                    schema,
                    {"businessDomain": scenario_type["description"], "scenarioType": scenario_type["type"]},
                )
            except Exception as e:
                logger.warning(f"No se pudo generar el escenario IA {i + 1}: {e}")
                continue

            scenarios.append(
                {
                    "id": i + 1,
                    "name": f"AI Scenario {i + 1}",
                    "description": scenario_type["description"],
                    "type": scenario_type["type"],
                    "data": data,
                    "generatedBy": "AI",
                }
            )
        return scenarios

    def status(self) -> Dict[str, Any]:
        available = self.is_available
        return {
            "available": available,
            "model": get_settings().openai_model,
            "features": list(FEATURES) if available else [],
        }
