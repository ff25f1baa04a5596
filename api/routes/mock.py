"""
API mock stateful servida en proceso.

Cualquier método sobre /api/mock/<path> se resuelve contra las specs
importadas (ver `sandbox_core.mock_service`). Cada llamada queda en el log de
llamadas y se broadcastea por WebSocket.
"""

import asyncio
import json
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from sandbox_core.db.database import get_db_session
from sandbox_core.db.helpers import get_app_settings, record_api_call
from sandbox_core.events import broadcast_update
from sandbox_core.mock_service import MockResult, MockService

from ..dependencies import get_mock_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mock", tags=["mock"])

MOCK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


async def _read_json_body(request: Request):
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Body JSON inválido: {e}") from e


def _serve_and_record(
    service: MockService, method: str, mock_path: str, body, generation_mode, started: float
) -> tuple[MockResult, float]:
    """Resuelve el request y lo deja en el log (corre en el threadpool: puede llamar a OpenAI)."""
    with get_db_session() as session:
        result = service.handle(session, method, mock_path, body=body, generation_mode=generation_mode)
        elapsed_ms = (time.perf_counter() - started) * 1000
        record_api_call(
            session,
            method=method,
            path=mock_path,
            status_code=result.status_code,
            response_time_ms=elapsed_ms,
            spec_id=result.spec_id,
            spec_name=result.spec_name,
            operation_path=result.operation_path,
            request_data=body,
            response_data=result.payload,
        )
    return result, elapsed_ms


@router.api_route("/{path:path}", methods=MOCK_METHODS)
async def handle_mock_request(
    path: str,
    request: Request,
    service: MockService = Depends(get_mock_service),
):
    """
    Atiende un request mock.

    Returns:
        JSON generado o guardado, con `_mock` si ENABLE_MOCK_METADATA

    Raises:
        400: Body JSON inválido
        404: Ninguna spec tiene la operación (con `availableSpecs`)
        503: Mocking deshabilitado desde /api/admin/settings
        500: Error interno
    """
    method = request.method.upper()
    mock_path = "/" + path
    body = await _read_json_body(request)
    logger.info(f"Mock API request: {method} {mock_path}")

    with get_db_session() as session:
        app_settings = get_app_settings(session)

    if not app_settings["autoMock"]:
        raise HTTPException(status_code=503, detail="Mocking is disabled (autoMock=false)")

    started = time.perf_counter()
    if app_settings["defaultDelay"]:
        await asyncio.sleep(app_settings["defaultDelay"] / 1000)

    try:
        result, elapsed_ms = await run_in_threadpool(
            _serve_and_record, service, method, mock_path, body, request.query_params.get("mode"), started
        )
    except Exception as e:
        logger.exception(f"Mock API error en {method} {mock_path}")
        raise HTTPException(
            status_code=500,
            detail=f"Mock API error: {str(e)}"
        ) from e

    await broadcast_update(
        "api_call",
        {
            "method": method,
            "path": mock_path,
            "statusCode": result.status_code,
            "responseTime": round(elapsed_ms, 2),
            "spec": result.spec_name or None,
        },
    )
    if result.event and result.status_code < 400:
        await broadcast_update(result.event, {"path": mock_path, "data": result.payload})

    return JSONResponse(status_code=result.status_code, content=result.payload)
