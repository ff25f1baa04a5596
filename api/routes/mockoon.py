"""
Endpoints para controlar entornos de Mockoon.

- GET /api/mockoon/status: ¿Está la CLI? ¿Qué instancias corren?
- GET /api/mockoon/environments: Entornos registrados
- POST /api/mockoon/environments: (Re)generar el entorno de una spec
- GET /api/mockoon/environments/{environment_id}: Detalle de un entorno
- DELETE /api/mockoon/environments/{environment_id}: Detener un entorno
- POST /api/mockoon/environments/{environment_id}/restart: Reiniciar
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from sandbox_core.db.database import get_db_session
from sandbox_core.db.helpers import (
    get_environment_by_id,
    get_environment_for_spec,
    get_spec_by_id,
    list_environments,
    save_environment,
)
from sandbox_core.db.models import MockoonEnvironment
from sandbox_core.mockoon import MockoonError, MockoonManager

from ..dependencies import get_mockoon_manager
from ..models.requests import MockoonEnvironmentRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mockoon", tags=["mockoon"])


def environment_to_dict(environment: MockoonEnvironment, manager: MockoonManager) -> dict:
    return {
        "id": environment.id,
        "specId": environment.spec_id,
        "name": environment.name,
        "port": environment.port,
        "environmentFile": environment.environment_file,
        "status": "running" if manager.is_running(environment.id) else "stopped",
        "createdAt": environment.created_at.isoformat(),
    }


@router.get("/status")
def mockoon_status(manager: MockoonManager = Depends(get_mockoon_manager)):
    availability = manager.check_availability()
    instances = manager.running_instances()
    return {**availability, "runningInstances": len(instances), "instances": instances}


@router.get("/environments")
def list_environments_endpoint(manager: MockoonManager = Depends(get_mockoon_manager)):
    with get_db_session() as session:
        return [environment_to_dict(env, manager) for env in list_environments(session)]


@router.post("/environments", status_code=201)
def create_environment(
    request: MockoonEnvironmentRequest,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Regenera el archivo de entorno de una spec (detiene el anterior si corría).

    Raises:
        404: La spec no existe
    """
    with get_db_session() as session:
        spec = get_spec_by_id(session, request.spec_id)
        if not spec:
            raise HTTPException(status_code=404, detail="Specification not found")

        previous = get_environment_for_spec(session, spec.id)
        previous_file = None
        if previous is not None:
            manager.stop_environment(previous.id)
            previous_file = previous.environment_file

        try:
            created = manager.create_environment_from_spec(spec.id, spec.document, spec.name)
        except OSError as e:
            raise HTTPException(
                status_code=500,
                detail=f"Error interno: {str(e)}"
            ) from e

        environment = save_environment(
            session,
            spec_id=spec.id,
            environment_id=created["environmentId"],
            name=created["name"],
            port=created["port"],
            environment_file=created["environmentFile"],
        )
        if previous_file and previous_file != created["environmentFile"]:
            Path(previous_file).unlink(missing_ok=True)
        return environment_to_dict(environment, manager)


@router.get("/environments/{environment_id}")
def get_environment(
    environment_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    with get_db_session() as session:
        environment = get_environment_by_id(session, environment_id)
        if not environment:
            raise HTTPException(status_code=404, detail="Mockoon environment not found")
        return environment_to_dict(environment, manager)


@router.delete("/environments/{environment_id}")
def stop_environment(
    environment_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Detiene la instancia del entorno.

    Raises:
        404: El entorno no estaba corriendo
    """
    if not manager.stop_environment(environment_id):
        raise HTTPException(status_code=404, detail="Mockoon environment not found or already stopped")
    return {"message": "Mockoon environment stopped successfully", "environmentId": environment_id}


@router.post("/environments/{environment_id}/restart")
def restart_environment(
    environment_id: str,
    manager: MockoonManager = Depends(get_mockoon_manager),
):
    """
    Reinicia (o arranca) el entorno.

    Raises:
        404: El entorno no existe
        500: La CLI no arrancó
    """
    with get_db_session() as session:
        environment = get_environment_by_id(session, environment_id)
        if not environment:
            raise HTTPException(status_code=404, detail="Mockoon environment not found")
        environment_file, port = environment.environment_file, environment.port

    try:
        result = manager.restart_environment(environment_id, environment_file, port)
    except MockoonError as e:
        logger.error(f"Error reiniciando Mockoon {environment_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to restart Mockoon environment: {str(e)}"
        ) from e

    return {"message": "Mockoon environment restarted", **result}
