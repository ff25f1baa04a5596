from __future__ import annotations

from typing import Dict, List

from openai import OpenAI

from .config import get_settings


class AIUnavailableError(RuntimeError):
    """No hay OPENAI_API_KEY configurada."""


def get_client() -> OpenAI:
    settings = get_settings()
    if not settings.ai_available:
        raise AIUnavailableError("AI enhancement no disponible: OPENAI_API_KEY no está configurada")
    return OpenAI(api_key=settings.openai_api_key)


def chat_completion_text(
    messages: List[Dict[str, str]],
    temperature: float = 0.7,
    max_tokens: int = 2000,
    client: OpenAI | None = None,
) -> str:
    """
    Llama a chat.completions y devuelve el texto de la primera opción.

    Devuelve "" si el modelo no generó contenido.
    """
    settings = get_settings()
    client = client or get_client()

    completion = client.chat.completions.create(
        model=settings.openai_model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )

    return completion.choices[0].message.content or ""
