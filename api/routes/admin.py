"""
Endpoints de administración.

- GET /api/admin/specs: Specs con su documento completo
- GET /api/admin/mocks: Ítems de las colecciones guardadas
- GET/PATCH /api/admin/settings: Settings de mocking (autoMock, defaultDelay)
- DELETE /api/admin/specs/{spec_id}
- DELETE /api/admin/mocks/{mock_id}
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from sandbox_core.db.database import get_db_session
from sandbox_core.db.helpers import (
    delete_mock_data,
    get_app_settings,
    list_mock_records,
    list_specs,
    update_app_settings,
)
from sandbox_core.events import broadcast_update
from sandbox_core.mockoon import MockoonManager

from ..dependencies import get_mockoon_manager
from .specs import remove_spec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def mock_key_from_id(mock_id: str) -> str:
    """
    "/pets_2" → "/pets". Los ids de /mocks son `<key>_<índice>`.
    """
    key, sep, index = mock_id.rpartition("_")
    return key if sep and index.isdigit() else mock_id


@router.get("/specs")
async def admin_list_specs():
    with get_db_session() as session:
        return [
            {
                "id": spec.id,
                "name": spec.name,
                "content": spec.document,
                "createdAt": spec.created_at.isoformat(),
                "updatedAt": spec.updated_at.isoformat(),
            }
            for spec in list_specs(session)
        ]


@router.get("/mocks")
async def admin_list_mocks():
    """
    Aplana las colecciones guardadas: una fila por ítem con id `<key>_<índice>`.
    """
    mocks = []
    with get_db_session() as session:
        for record in list_mock_records(session):
            data = record.data
            if not isinstance(data, list):
                continue
            for index, item in enumerate(data):
                mocks.append(
                    {
                        "id": f"{record.key}_{index}",
                        "specId": record.spec_id or "unknown",
                        "endpoint": record.key,
                        "method": "GET",
                        "response": item,
                        "statusCode": 200,
                        "createdAt": record.created_at.isoformat(),
                        "updatedAt": record.updated_at.isoformat(),
                    }
                )
    return mocks


@router.get("/settings")
async def admin_get_settings():
    with get_db_session() as session:
        return get_app_settings(session)


@router.patch("/settings")
async def admin_update_settings(updates: Dict[str, Any] = Body(...)):
    """
    Mergea los settings recibidos.

    Raises:
        400: Clave desconocida o valor inválido (ej: defaultDelay negativo)
    """
    with get_db_session() as session:
        try:
            settings = update_app_settings(session, updates)
        except ValueError as e:
            session.rollback()
            raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info(f"Settings actualizados: {updates}")
    await broadcast_update("settings_updated", settings)
    return settings


@router.delete("/specs/{spec_id}")
async def admin_delete_spec(spec_id: str, manager: MockoonManager = Depends(get_mockoon_manager)):
    with get_db_session() as session:
        deleted = remove_spec(session, manager, spec_id)

    if deleted:
        await broadcast_update("spec_deleted", {"id": spec_id})
    return {"deleted": deleted}


@router.delete("/mocks/{mock_id:path}")
async def admin_delete_mock(mock_id: str):
    key = mock_key_from_id(mock_id)
    if not key.startswith("/"):
        key = "/" + key
    with get_db_session() as session:
        deleted = delete_mock_data(session, key)
    return {"deleted": deleted}
