"""
sandbox_core.mock_service
=========================

Lógica stateful de /api/mock.

Un request se resuelve así:

1) Se busca, spec por spec (en orden de importación), una operación que
   matchee método + path.
2) La "key" de almacenamiento es el path sin el último segmento si éste es un
   número o un UUID ("/pets/12" → "/pets").
3) Escrituras (POST/PUT/PATCH): se genera la respuesta del schema, se le
   superpone el body y se guarda. POST además agrega el ítem a la colección.
   PUT/PATCH sobre un ítem ("/pets/12") actualizan el ítem y su entrada en
   la colección; sobre la colección reemplazan el recurso entero.
4) GET: se devuelve lo guardado (ítem, colección o recurso base) si existe;
   si no, se genera del schema.
5) DELETE: se borra el ítem y se lo quita de la colección.

Este módulo no conoce FastAPI: recibe una sesión y devuelve un `MockResult`.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .config import get_settings
from .custom_fakers import endpoint_key, get_custom_fakers
from .data_generator import SmartDataGenerator
from .db.helpers import delete_mock_data, get_mock_record, list_specs, set_mock_data
from .db.models import Spec
from .openapi import MatchingRoute, find_matching_route, response_schema

logger = logging.getLogger(__name__)

_TRAILING_UUID = re.compile(r"/[a-f0-9-]{36}$", re.IGNORECASE)
_TRAILING_NUMBER = re.compile(r"/\d+$")

WRITE_METHODS = ("POST", "PUT", "PATCH")

EVENT_BY_METHOD = {
    "POST": "data_created",
    "PUT": "data_updated",
    "PATCH": "data_updated",
    "DELETE": "data_deleted",
}


@dataclass
class MockResult:
    """Resultado de atender un request mock."""

    status_code: int
    payload: Any
    spec_id: Optional[str] = None
    spec_name: str = ""
    operation_path: str = ""
    event: Optional[str] = None
    """Evento de datos a broadcastear (data_created / data_updated / data_deleted)."""


def storage_key(path: str) -> str:
    """
    Key de almacenamiento para un path: sin UUID o número final.

    >>> storage_key("/pets/12")
    '/pets'
    """
    base = _TRAILING_NUMBER.sub("", _TRAILING_UUID.sub("", path))
    return base or path


def trailing_id(path: str) -> Optional[str]:
    """UUID o número al final del path, si lo hay."""
    match = _TRAILING_UUID.search(path) or _TRAILING_NUMBER.search(path)
    return match.group(0)[1:] if match else None


def resource_key(path: str) -> str:
    """Primer segmento del path como key ("/pets/12/photos" → "/pets")."""
    segments = [s for s in path.split("/") if s]
    return f"/{segments[0]}" if segments else "/"


def find_spec_for_request(session: Session, method: str, path: str) -> tuple[Optional[Spec], Optional[MatchingRoute]]:
    for spec in list_specs(session):
        route = find_matching_route(spec.document, method, path)
        if route:
            return spec, route
    return None, None


def not_found_payload(session: Session, method: str, path: str) -> Dict[str, Any]:
    specs = list_specs(session)
    return {
        "error": "Mock endpoint not found",
        "message": f"No mock available for {method} {path}",
        "availableSpecs": [s.id for s in specs],
        "availableSpecNames": [s.name for s in specs],
        "tip": "Make sure you have imported an API specification that includes this endpoint",
    }


def with_metadata(payload: Any, path: str, method: str, spec_name: str, stateful: bool) -> Dict[str, Any]:
    """
    Agrega `_mock` a la respuesta. Los payloads que no son objeto se envuelven
    en {"data": payload} para no perder la lista/valor original.
    """
    body = dict(payload) if isinstance(payload, dict) else {"data": payload}
    body["_mock"] = {
        "endpoint": path,
        "method": method,
        "spec": spec_name or "unknown",
        "timestamp": datetime.now(UTC).isoformat(),
        "stateful": stateful,
    }
    return body


class MockService:
    """
    Atiende requests contra las specs importadas.

    Args:
        generator: generador de datos (se crea uno por defecto)
    """

    def __init__(self, generator: Optional[SmartDataGenerator] = None):
        self.generator = generator or SmartDataGenerator()

    def handle(
        self,
        session: Session,
        method: str,
        path: str,
        body: Any = None,
        generation_mode: Optional[str] = None,
    ) -> MockResult:
        """
        Atiende `method path` y devuelve status + payload.

        Args:
            session: Sesión de base de datos (no se hace commit acá)
            method: Método HTTP
            path: Path relativo a /api/mock, con "/" inicial
            body: Body JSON del request (si hay)
            generation_mode: fuerza un modo de generación
        """
        method = method.upper()
        spec, route = find_spec_for_request(session, method, path)
        if spec is None or route is None:
            logger.info(f"Sin mock para {method} {path}")
            return MockResult(status_code=404, payload=not_found_payload(session, method, path))

        key = storage_key(path)
        document = spec.document

        if method in WRITE_METHODS:
            payload = self._write(session, spec, route, method, path, key, body, generation_mode)
            stateful = True
        elif method == "DELETE":
            payload = self._delete(session, path, key)
            stateful = True
        else:
            payload, stateful = self._read(session, route, method, path, key, document, generation_mode)

        if get_settings().enable_mock_metadata:
            payload = with_metadata(payload, path, method, spec.name, stateful)

        return MockResult(
            status_code=201 if method == "POST" else 200,
            payload=payload,
            spec_id=spec.id,
            spec_name=spec.name,
            operation_path=route.path,
            event=EVENT_BY_METHOD.get(method),
        )

    def generate_response(
        self,
        route: MatchingRoute,
        path: str,
        document: Dict[str, Any],
        generation_mode: Optional[str] = None,
    ) -> Any:
        schema = response_schema(route.operation, document)
        if schema is None:
            return {"message": f"Mock response for {route.method} {path}"}

        context = {"endpoint": path, "method": route.method}
        if generation_mode:
            context["generationMode"] = generation_mode
        return self.generator.generate_from_schema(
            schema,
            context,
            document=document,
            custom_fakers=get_custom_fakers(endpoint_key(route.method, path)),
        )

    # ------------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------------

    def _write(
        self,
        session: Session,
        spec: Spec,
        route: MatchingRoute,
        method: str,
        path: str,
        key: str,
        body: Any,
        generation_mode: Optional[str],
    ) -> Dict[str, Any]:
        generated = self.generate_response(route, path, spec.document, generation_mode)
        generated = generated if isinstance(generated, dict) else {}
        request_body = body if isinstance(body, dict) else {}

        if method != "POST":
            item_id = trailing_id(path)
            if item_id is None and request_body.get("id") is not None and self._holds_collection(session, key):
                # PUT /pets con {"id": ...}: actualiza ese ítem de la colección
                item_id = request_body["id"]
            if item_id is not None:
                return self._update_item(session, spec, method, key, item_id, generated, request_body)

        item_id = request_body.get("id") or generated.get("id") or random.randint(1, 100000)
        now = datetime.now(UTC).isoformat()

        stored = {**generated, **request_body, "id": item_id, "createdAt": now, "updatedAt": now}

        if method == "POST":
            set_mock_data(session, f"{key}/{item_id}", stored, spec_id=spec.id)

            record = get_mock_record(session, key)
            collection = record.data if record else []
            if not isinstance(collection, list):
                collection = [collection]
            collection.append(stored)
            set_mock_data(session, key, collection, spec_id=spec.id)
        else:
            # PUT/PATCH sobre la colección sin id: reemplaza el recurso entero
            set_mock_data(session, key, stored, spec_id=spec.id)

        logger.debug(f"Guardado {method} {key}")
        return stored

    @staticmethod
    def _holds_collection(session: Session, key: str) -> bool:
        record = get_mock_record(session, key)
        return record is not None and isinstance(record.data, list)

    def _update_item(
        self,
        session: Session,
        spec: Spec,
        method: str,
        key: str,
        item_id: Any,
        generated: Dict[str, Any],
        request_body: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Actualiza `{key}/{id}` y la entrada con ese id dentro de la colección.

        PUT reemplaza el ítem (schema + body); PATCH mergea el body sobre lo
        guardado. `id` y `createdAt` del ítem previo se conservan.
        """
        item_key = f"{key}/{item_id}"
        record = get_mock_record(session, item_key)
        previous = record.data if record is not None and isinstance(record.data, dict) else None

        collection_record = get_mock_record(session, key)
        collection = collection_record.data if collection_record is not None else None
        if not isinstance(collection, list):
            collection = None

        if previous is None and collection is not None:
            previous = next(
                (item for item in collection if isinstance(item, dict) and str(item.get("id")) == str(item_id)),
                None,
            )

        now = datetime.now(UTC).isoformat()
        if previous is not None:
            stored_id = previous.get("id", item_id)
            created_at = previous.get("createdAt", now)
        else:
            stored_id = int(item_id) if isinstance(item_id, str) and item_id.isdigit() else item_id
            created_at = now

        base = previous if method == "PATCH" and previous is not None else generated
        stored = {**base, **request_body, "id": stored_id, "createdAt": created_at, "updatedAt": now}
        set_mock_data(session, item_key, stored, spec_id=spec.id)

        if collection is not None:
            matches = [isinstance(item, dict) and str(item.get("id")) == str(item_id) for item in collection]
            updated = [stored if match else item for item, match in zip(collection, matches)]
            if not any(matches):
                updated.append(stored)
            set_mock_data(session, key, updated, spec_id=spec.id)

        logger.debug(f"Actualizado {method} {item_key}")
        return stored

    def _read(
        self,
        session: Session,
        route: MatchingRoute,
        method: str,
        path: str,
        key: str,
        document: Dict[str, Any],
        generation_mode: Optional[str],
    ) -> tuple[Any, bool]:
        if method == "GET":
            # Ítem puntual ("/pets/12"), colección ("/pets") o recurso base
            for candidate in (path, key, resource_key(path)):
                record = get_mock_record(session, candidate)
                if record is not None:
                    return record.data, True

        return self.generate_response(route, path, document, generation_mode), False

    def _delete(self, session: Session, path: str, key: str) -> Dict[str, Any]:
        item_id = trailing_id(path)
        if item_id is None:
            # DELETE sobre la colección entera
            return {"deleted": delete_mock_data(session, key), "id": None}

        deleted = delete_mock_data(session, f"{key}/{item_id}")

        record = get_mock_record(session, key)
        if record is not None and isinstance(record.data, list):
            remaining: List[Any] = [
                item for item in record.data
                if not (isinstance(item, dict) and str(item.get("id")) == item_id)
            ]
            if len(remaining) != len(record.data):
                deleted = True
                set_mock_data(session, key, remaining)

        return {"deleted": deleted, "id": item_id}
