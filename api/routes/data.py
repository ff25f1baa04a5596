"""
Endpoints de consulta sobre datos guardados y el log de llamadas.

- GET /api/data: Datos stateful guardados por /api/mock
- GET /api/data/logs: Log de llamadas (más recientes primero)
- GET /api/data/analytics: Métricas por timeframe (1h, 24h, 7d, 30d)
- GET /api/data/resource/{resource_id}: Datos de un recurso puntual
- GET /api/data/generation-modes: Modos de generación disponibles
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sandbox_core.analytics import compute_analytics, parse_timeframe
from sandbox_core.data_generator import SmartDataGenerator
from sandbox_core.db.database import get_db_session
from sandbox_core.db.helpers import (
    find_mock_records_by_resource,
    get_api_calls_since,
    list_api_calls,
    list_mock_records,
)
from sandbox_core.db.models import ApiCallLog, MockRecord

from ..dependencies import get_data_generator

router = APIRouter(prefix="/api/data", tags=["data"])


def record_to_dict(record: MockRecord) -> dict:
    return {
        "id": record.id,
        "key": record.key,
        "specId": record.spec_id,
        "data": record.data,
        "createdAt": record.created_at.isoformat(),
        "updatedAt": record.updated_at.isoformat(),
    }


def call_to_dict(call: ApiCallLog) -> dict:
    return {
        "id": call.id,
        "specId": call.spec_id,
        "specName": call.spec_name,
        "method": call.method,
        "path": call.path,
        "operationPath": call.operation_path,
        "statusCode": call.status_code,
        "responseTime": call.response_time_ms,
        "request": json.loads(call.request_json or "null"),
        "response": json.loads(call.response_json or "null"),
        "timestamp": call.created_at.isoformat(),
    }


@router.get("")
async def list_stored_data(
    spec_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
):
    with get_db_session() as session:
        records = list_mock_records(session, spec_id=spec_id, limit=limit, offset=offset)
        return {"data": [record_to_dict(r) for r in records], "count": len(records)}


@router.get("/logs")
async def list_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    method: Optional[str] = None,
    status_code: Optional[int] = None,
):
    """
    Lista llamadas a /api/mock, las más recientes primero.

    Args:
        limit / offset: paginación
        method: filtra por método (case-insensitive)
        status_code: filtra por código de respuesta
    """
    with get_db_session() as session:
        calls = list_api_calls(session, limit=limit, offset=offset, method=method, status_code=status_code)
        return {
            "logs": [call_to_dict(c) for c in calls],
            "count": len(calls),
            "limit": limit,
            "offset": offset,
        }


@router.get("/analytics")
async def get_analytics(timeframe: str = "24h", spec_id: Optional[str] = None):
    """
    Métricas de las llamadas dentro del timeframe.

    Raises:
        400: Timeframe desconocido
    """
    try:
        since = parse_timeframe(timeframe)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    with get_db_session() as session:
        calls = get_api_calls_since(session, since, spec_id=spec_id)
        return compute_analytics(calls, timeframe)


@router.get("/resource/{resource_id}")
async def get_resource(resource_id: str):
    """
    Datos guardados cuyo último segmento de key es `resource_id`.

    Raises:
        404: Si no hay datos para ese recurso
    """
    with get_db_session() as session:
        records = find_mock_records_by_resource(session, resource_id)
        if not records:
            raise HTTPException(status_code=404, detail=f"No stored data for resource {resource_id}")
        return {"resourceId": resource_id, "records": [record_to_dict(r) for r in records]}


@router.get("/generation-modes")
async def generation_modes(generator: SmartDataGenerator = Depends(get_data_generator)):
    return {
        "modes": generator.available_modes(),
        "default": generator.default_mode,
        "info": "Data generation modes control how mock responses are created from OpenAPI schemas",
    }
