"""
Fakers específicos por endpoint.

Un faker custom recibe el nombre de la propiedad (y opcionalmente un texto de
contexto) y devuelve un valor, o None para dejar que decida el generador
genérico. Se registran por "MÉTODO /api/mock/<path>".
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from faker import Faker

CustomFaker = Callable[[str, Optional[str]], Any]

_fake = Faker()

DOG_NAMES = ["Buddy", "Bella", "Cooper", "Lucy", "Max", "Luna", "Rocky", "Molly"]
PET_STATUSES = ["available", "pending", "sold"]


def pet_faker(property_name: str, context_info: Optional[str] = None) -> Any:
    lower = property_name.lower()

    if lower == "name":
        return _fake.random_element(DOG_NAMES)

    if lower == "status":
        return _fake.random_element(PET_STATUSES)

    return None


_REGISTRY: Dict[str, List[CustomFaker]] = {
    "POST /api/mock/pet": [pet_faker],
    "PUT /api/mock/pet": [pet_faker],
}


def endpoint_key(method: str, path: str) -> str:
    """Clave del registro para un request a /api/mock (path relativo al mock)."""
    return f"{method.upper()} /api/mock{path}"


def get_custom_fakers(endpoint: str) -> List[CustomFaker]:
    return list(_REGISTRY.get(endpoint, []))


def register_custom_faker(endpoint: str, faker: CustomFaker) -> None:
    _REGISTRY.setdefault(endpoint, []).append(faker)
