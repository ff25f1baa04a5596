"""
sandbox_core.openapi
====================

Utilidades sobre documentos OpenAPI / Swagger.

Este módulo NO valida la spec completa contra el schema oficial: solo se
asegura de que el documento tenga la forma mínima que el sandbox necesita
(`openapi`/`swagger` + `paths`) y expone helpers para:

- parsear texto JSON/YAML o descargar la spec desde una URL,
- listar/contar operaciones,
- encontrar la operación que corresponde a un request (método + path),
- resolver `$ref` locales y elegir el schema de respuesta exitosa.
"""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
import yaml

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head")

# Namespace fijo para que el id de cada endpoint sea estable entre requests
_ENDPOINT_NAMESPACE = uuid.UUID("8f6b1c1e-4c53-4b8e-9d0a-5a4e2f7c9b10")


class SpecParseError(ValueError):
    """La spec no se pudo leer o no tiene la forma mínima esperada."""


@dataclass
class MatchingRoute:
    """Operación de la spec que corresponde a un request concreto."""

    path: str
    """Path tal como figura en la spec (ej: "/pets/{petId}")."""

    method: str
    """Método en mayúsculas."""

    operation: Dict[str, Any]


def _looks_like_yaml(text: str) -> bool:
    head = text.lstrip()
    return head.startswith("openapi:") or head.startswith("swagger:") or head.startswith("---")


def _validate_document(document: Any) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise SpecParseError("La especificación debe ser un objeto JSON/YAML")
    if "openapi" not in document and "swagger" not in document:
        raise SpecParseError("La especificación no declara 'openapi' ni 'swagger'")
    paths = document.get("paths")
    if paths is None:
        document["paths"] = {}
    elif not isinstance(paths, dict):
        raise SpecParseError("'paths' debe ser un objeto")
    return document


def parse_spec_document(raw: Any, is_yaml: bool = False) -> Dict[str, Any]:
    """
    Convierte el contenido recibido en un documento OpenAPI (dict).

    Args:
        raw: dict ya parseado, o string con JSON/YAML
        is_yaml: fuerza el parseo como YAML

    Returns:
        Documento OpenAPI como dict

    Raises:
        SpecParseError: si el contenido no es JSON/YAML válido o no parece OpenAPI
    """
    if raw is None:
        raise SpecParseError("No se recibió contenido de especificación")

    if isinstance(raw, dict):
        return _validate_document(raw)

    if not isinstance(raw, str):
        raise SpecParseError("La especificación debe ser un objeto o un string JSON/YAML")

    if is_yaml or _looks_like_yaml(raw):
        try:
            document = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise SpecParseError(f"YAML inválido: {e}") from e
        return _validate_document(document)

    try:
        document = json.loads(raw)
    except json.JSONDecodeError:
        # JSON es un subconjunto de YAML, así que YAML es el segundo intento
        try:
            document = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise SpecParseError("Formato YAML o JSON inválido en la especificación") from e
    return _validate_document(document)


def fetch_spec_from_url(url: str, timeout: float = 15.0) -> Dict[str, Any]:
    """
    Descarga una spec desde una URL y la parsea.

    El content-type (o un "openapi:" al inicio del cuerpo) decide si se lee
    como YAML; en otro caso se intenta JSON.
    """
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise SpecParseError(f"No se pudo descargar la especificación: {e}") from e

    if not response.ok:
        raise SpecParseError(
            f"No se pudo descargar la especificación desde la URL (HTTP {response.status_code})"
        )

    content_type = response.headers.get("content-type", "")
    is_yaml = "yaml" in content_type or "yml" in content_type
    return parse_spec_document(response.text, is_yaml=is_yaml)


def iter_operations(document: Dict[str, Any]):
    """Itera (path, método en minúsculas, operación) para cada operación HTTP."""
    for path, path_item in (document.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if method.lower() in HTTP_METHODS and isinstance(operation, dict):
                yield path, method.lower(), operation


def count_endpoints(document: Dict[str, Any]) -> int:
    return sum(1 for _ in iter_operations(document))


def endpoint_id(spec_id: str, method: str, path: str) -> str:
    return str(uuid.uuid5(_ENDPOINT_NAMESPACE, f"{spec_id}:{method.upper()} {path}"))


def extract_endpoints(document: Dict[str, Any], spec_id: str = "") -> List[Dict[str, Any]]:
    """
    Lista las operaciones de la spec en el formato que consume el dashboard.
    """
    return [
        {
            "id": endpoint_id(spec_id, method, path),
            "spec_id": spec_id,
            "method": method.upper(),
            "path": path,
            "summary": operation.get("summary", "") or "",
            "description": operation.get("description", "") or "",
        }
        for path, method, operation in iter_operations(document)
    ]


def _path_regex(spec_path: str) -> re.Pattern:
    parts = re.split(r"(\{[^}]+\})", spec_path)
    pattern = "".join("([^/]+)" if p.startswith("{") and p.endswith("}") else re.escape(p) for p in parts)
    return re.compile(f"^{pattern}$")


def find_matching_route(document: Dict[str, Any], method: str, path: str) -> Optional[MatchingRoute]:
    """
    Busca la operación que atiende `method path`.

    Primero intenta match exacto del path y después templates con
    parámetros (ej: "/pets/{petId}" matchea "/pets/123").
    """
    wanted = method.lower()
    paths = document.get("paths") or {}

    exact = paths.get(path)
    if isinstance(exact, dict) and isinstance(exact.get(wanted), dict):
        return MatchingRoute(path=path, method=method.upper(), operation=exact[wanted])

    for spec_path, path_item in paths.items():
        if not isinstance(path_item, dict) or not isinstance(path_item.get(wanted), dict):
            continue
        if "{" in spec_path and _path_regex(spec_path).match(path):
            return MatchingRoute(path=spec_path, method=method.upper(), operation=path_item[wanted])

    return None


def resolve_ref(document: Dict[str, Any], ref: str) -> Optional[Any]:
    """
    Resuelve un `$ref` local ("#/components/schemas/Pet").

    Devuelve None si el ref no es local o no existe.
    """
    if not ref.startswith("#/"):
        return None
    node: Any = document
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and segment in node:
            node = node[segment]
        else:
            return None
    return node


def success_response(operation: Dict[str, Any]) -> tuple[str, Optional[Dict[str, Any]]]:
    """
    Elige la respuesta exitosa de una operación: 200, 201, 204, default o la primera.

    Returns:
        (status_code como string, objeto response o None)
    """
    responses = operation.get("responses") or {}
    for code in ("200", "201", "204", "default"):
        if code in responses:
            return code, responses[code]
    for code, response in responses.items():
        return str(code), response
    return "200", None


def response_schema(operation: Dict[str, Any], document: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """
    Schema JSON de la respuesta exitosa (OpenAPI 3 `content` o Swagger 2 `schema`).
    """
    _, response = success_response(operation)
    if not isinstance(response, dict):
        return None
    if "$ref" in response and document is not None:
        response = resolve_ref(document, response["$ref"]) or {}
    content = response.get("content") or {}
    media = content.get("application/json")
    if media is None and content:
        media = next(iter(content.values()))
    if isinstance(media, dict) and isinstance(media.get("schema"), dict):
        return media["schema"]
    if isinstance(response.get("schema"), dict):
        return response["schema"]
    return None
