"""
Endpoints para importar y gestionar especificaciones OpenAPI.

Este módulo maneja:
- POST /api/specs: Importar una spec (objeto, texto JSON/YAML o URL)
- GET /api/specs: Listar specs
- GET /api/specs/{spec_id}: Detalle + endpoints
- DELETE /api/specs/{spec_id}: Borrar spec, sus datos mock y su entorno
- POST /api/specs/{spec_id}/start | /stop: Controlar el entorno de Mockoon
- GET /api/specs/{spec_id}/status: Estado del entorno
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from sandbox_core.db.database import get_db_session
from sandbox_core.db.helpers import (
    create_spec,
    delete_spec,
    get_environment_for_spec,
    get_spec_by_id,
    list_specs,
    save_environment,
)
from sandbox_core.db.models import Spec
from sandbox_core.events import broadcast_update
from sandbox_core.mockoon import MockoonError, MockoonManager
from sandbox_core.openapi import SpecParseError, extract_endpoints, fetch_spec_from_url, parse_spec_document

from ..dependencies import get_mockoon_manager
from ..models.requests import SpecImportRequest, SpecImportResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/specs", tags=["specs"])


def spec_summary(spec: Spec) -> dict:
    return {
        "id": spec.id,
        "name": spec.name,
        "version": spec.version,
        "description": spec.description,
        "created_at": spec.created_at.isoformat(),
        "endpoint_count": spec.endpoint_count,
        "environmentId": spec.environment.id if spec.environment else None,
    }


def remove_spec(session: Session, manager: MockoonManager, spec_id: str) -> bool:
    """
    Detiene el entorno de Mockoon (si corre), borra su archivo y la spec.

    Returns:
        True si la spec existía
    """
    environment = get_environment_for_spec(session, spec_id)
    if environment is not None:
        manager.stop_environment(environment.id)
        Path(environment.environment_file).unlink(missing_ok=True)
    return delete_spec(session, spec_id)


@router.post("", response_model=SpecImportResponse, status_code=201)
async def import_spec(
    request: SpecImportRequest,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Importa una especificación OpenAPI y genera su entorno de Mockoon.

    Args:
        request: nombre + spec (objeto/texto) o URL

    Returns:
        SpecImportResponse con la metadata derivada

    Raises:
        400: Faltan datos o la spec no es válida
        500: Error interno (ej: no se pudo escribir el entorno)
    """
    if not request.name or (request.spec is None and not request.url):
        raise HTTPException(status_code=400, detail="Name and either URL or spec data required")

    try:
        if request.url:
            document = await run_in_threadpool(fetch_spec_from_url, request.url)
        else:
            document = parse_spec_document(request.spec, is_yaml=request.is_yaml)
    except SpecParseError as e:
        raise HTTPException(status_code=400, detail=f"Failed to import specification: {e}") from e

    with get_db_session() as session:
        try:
            previous_file = None
            if request.spec_id:
                previous = get_environment_for_spec(session, request.spec_id)
                if previous is not None:
                    manager.stop_environment(previous.id)
                    previous_file = previous.environment_file

            spec = create_spec(session, request.name, document, spec_id=request.spec_id)

            environment = manager.create_environment_from_spec(spec.id, document, request.name)
            save_environment(
                session,
                spec_id=spec.id,
                environment_id=environment["environmentId"],
                name=environment["name"],
                port=environment["port"],
                environment_file=environment["environmentFile"],
            )
            if previous_file and previous_file != environment["environmentFile"]:
                Path(previous_file).unlink(missing_ok=True)

            response = SpecImportResponse(
                id=spec.id,
                name=spec.name,
                version=spec.version,
                description=spec.description,
                endpointCount=spec.endpoint_count,
                environmentId=environment["environmentId"],
                message="API specification imported successfully",
            )
        except OSError as e:
            session.rollback()
            logger.error(f"No se pudo escribir el entorno de Mockoon: {e}")
            raise HTTPException(
                status_code=500,
                detail=f"Error interno: {str(e)}"
            ) from e

    logger.info(f"Spec importada: {response.name} ({response.id}), {response.endpointCount} endpoints")
    await broadcast_update(
        "spec_imported",
        {"id": response.id, "name": response.name, "endpointCount": response.endpointCount},
    )
    return response


@router.get("")
async def list_specs_endpoint():
    """Lista las specs importadas (sin el documento completo)."""
    with get_db_session() as session:
        return [spec_summary(spec) for spec in list_specs(session)]


@router.get("/{spec_id}")
async def get_spec(spec_id: str):
    """
    Devuelve la spec con su documento y la lista de endpoints.

    Raises:
        404: Si la spec no existe
    """
    with get_db_session() as session:
        spec = get_spec_by_id(session, spec_id)
        if not spec:
            raise HTTPException(status_code=404, detail="Specification not found")

        document = spec.document
        return {
            **spec_summary(spec),
            "spec_data": document,
            "endpoints": extract_endpoints(document, spec.id),
        }


@router.delete("/{spec_id}")
async def delete_spec_endpoint(
    spec_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Borra la spec, sus datos mock, escenarios y entorno de Mockoon.

    Raises:
        404: Si la spec no existe
    """
    with get_db_session() as session:
        if not remove_spec(session, manager, spec_id):
            raise HTTPException(status_code=404, detail="Specification not found")

    await broadcast_update("spec_deleted", {"id": spec_id})
    return {"message": "Specification deleted successfully"}


@router.post("/{spec_id}/start")
def start_spec_environment(
    spec_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Arranca el entorno de Mockoon de la spec.

    Raises:
        404: Spec o entorno inexistente
        500: La CLI de Mockoon no arrancó
    """
    with get_db_session() as session:
        if not get_spec_by_id(session, spec_id):
            raise HTTPException(status_code=404, detail="Specification not found")
        environment = get_environment_for_spec(session, spec_id)
        if not environment:
            raise HTTPException(status_code=404, detail="Environment not found")
        environment_id, environment_file, port = environment.id, environment.environment_file, environment.port

    try:
        manager.start_environment(environment_id, environment_file, port)
    except MockoonError as e:
        logger.error(f"Error arrancando Mockoon para {spec_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start Mockoon environment: {str(e)}"
        ) from e

    return {
        "message": "Mockoon environment started successfully",
        "port": port,
        "environmentId": environment_id,
    }


@router.post("/{spec_id}/stop")
def stop_spec_environment(
    spec_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Detiene el entorno de Mockoon de la spec (si estaba corriendo).

    Raises:
        404: Si la spec no tiene entorno
    """
    with get_db_session() as session:
        environment = get_environment_for_spec(session, spec_id)
        if not environment:
            raise HTTPException(status_code=404, detail="Environment not found")
        environment_id = environment.id

    stopped = manager.stop_environment(environment_id)
    return {
        "message": "Mockoon environment stopped" if stopped else "Mockoon environment was not running",
        "environmentId": environment_id,
        "stopped": stopped,
    }


@router.get("/{spec_id}/status")
def spec_environment_status(
    spec_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    with get_db_session() as session:
        environment = get_environment_for_spec(session, spec_id)
        if not environment:
            raise HTTPException(status_code=404, detail="Environment not found")

        return {
            "environmentId": environment.id,
            "port": environment.port,
            "status": "running" if manager.is_running(environment.id) else "stopped",
        }
