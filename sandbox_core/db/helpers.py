"""
Funciones helper para trabajar con los modelos del sandbox.

Estas funciones encapsulan el acceso a la base para:
- Specs importadas
- Datos stateful de /api/mock
- Entornos de Mockoon
- Log de llamadas y escenarios generados
- Settings de admin

Ninguna hace commit: eso lo decide quien abre la sesión (`get_db_session`).
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..openapi import count_endpoints
from .models import ApiCallLog, AppSetting, MockoonEnvironment, MockRecord, ScenarioSet, Spec, utcnow


# ============================================================================
# Specs
# ============================================================================

def create_spec(
    session: Session,
    name: str,
    document: Dict[str, Any],
    spec_id: str | None = None,
) -> Spec:
    """
    Crea (o sobrescribe, si `spec_id` ya existe) una spec importada.

    Args:
        session: Sesión de base de datos
        name: Nombre elegido por el usuario
        document: Documento OpenAPI ya parseado
        spec_id: ID explícito (opcional). Si existe, se reemplaza el contenido.

    Returns:
        Spec creada o actualizada
    """
    info = document.get("info") or {}

    spec = session.get(Spec, spec_id) if spec_id else None
    if spec is None:
        spec = Spec(name=name)
        if spec_id:
            spec.id = spec_id
        session.add(spec)

    spec.name = name
    spec.version = str(info.get("version") or "1.0.0")
    spec.description = str(info.get("description") or "")
    spec.spec_json = json.dumps(document)
    spec.endpoint_count = count_endpoints(document)
    spec.updated_at = utcnow()

    session.flush()  # Para obtener el ID
    return spec


def get_spec_by_id(session: Session, spec_id: str) -> Optional[Spec]:
    return session.get(Spec, spec_id)


def list_specs(session: Session) -> List[Spec]:
    stmt = select(Spec).order_by(Spec.created_at)
    return list(session.execute(stmt).scalars().all())


def delete_spec(session: Session, spec_id: str) -> bool:
    """
    Elimina una spec junto con sus datos mock, entorno y escenarios.

    Returns:
        True si existía, False si no
    """
    spec = session.get(Spec, spec_id)
    if not spec:
        return False
    session.delete(spec)
    session.flush()
    return True


# ============================================================================
# Datos stateful de mocks
# ============================================================================

def get_mock_record(session: Session, key: str) -> Optional[MockRecord]:
    stmt = select(MockRecord).where(MockRecord.key == key)
    return session.execute(stmt).scalars().first()


def set_mock_data(session: Session, key: str, data: Any, spec_id: str | None = None) -> MockRecord:
    """
    Guarda (upsert) el dato asociado a `key`.

    Args:
        session: Sesión de base de datos
        key: Path del recurso (ej: "/pets" o "/pets/12")
        data: Objeto o lista serializable a JSON
        spec_id: Spec que atendió el request (para borrar en cascada)
    """
    record = get_mock_record(session, key)
    if record is None:
        record = MockRecord(key=key, spec_id=spec_id)
        session.add(record)
    elif spec_id:
        record.spec_id = spec_id

    record.data_json = json.dumps(data)
    record.updated_at = utcnow()
    session.flush()
    return record


def delete_mock_data(session: Session, key: str) -> bool:
    record = get_mock_record(session, key)
    if not record:
        return False
    session.delete(record)
    session.flush()
    return True


def list_mock_records(
    session: Session,
    spec_id: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> List[MockRecord]:
    stmt = select(MockRecord).order_by(MockRecord.key)
    if spec_id:
        stmt = stmt.where(MockRecord.spec_id == spec_id)
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars().all())


def find_mock_records_by_resource(session: Session, resource_id: str) -> List[MockRecord]:
    """Registros cuyo último segmento de key es `resource_id` (ej: "/pets/12")."""
    escaped = resource_id.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    stmt = (
        select(MockRecord)
        .where(MockRecord.key.like(f"%/{escaped}", escape="\\"))
        .order_by(MockRecord.key)
    )
    return list(session.execute(stmt).scalars().all())


# ============================================================================
# Entornos de Mockoon
# ============================================================================

def save_environment(
    session: Session,
    spec_id: str,
    environment_id: str,
    name: str,
    port: int,
    environment_file: str,
) -> MockoonEnvironment:
    """
    Registra el entorno de Mockoon de una spec (reemplaza el anterior si había).
    """
    existing = get_environment_for_spec(session, spec_id)
    if existing is not None:
        session.delete(existing)
        session.flush()

    environment = MockoonEnvironment(
        id=environment_id,
        spec_id=spec_id,
        name=name,
        port=port,
        environment_file=environment_file,
    )
    session.add(environment)
    session.flush()
    return environment


def get_environment_by_id(session: Session, environment_id: str) -> Optional[MockoonEnvironment]:
    return session.get(MockoonEnvironment, environment_id)


def get_environment_for_spec(session: Session, spec_id: str) -> Optional[MockoonEnvironment]:
    stmt = select(MockoonEnvironment).where(MockoonEnvironment.spec_id == spec_id)
    return session.execute(stmt).scalars().first()


def list_environments(session: Session) -> List[MockoonEnvironment]:
    stmt = select(MockoonEnvironment).order_by(MockoonEnvironment.created_at)
    return list(session.execute(stmt).scalars().all())


# ============================================================================
# Log de llamadas
# ============================================================================

def record_api_call(
    session: Session,
    method: str,
    path: str,
    status_code: int,
    response_time_ms: float,
    spec_id: str | None = None,
    spec_name: str = "",
    operation_path: str = "",
    request_data: Any = None,
    response_data: Any = None,
) -> ApiCallLog:
    """
    Guarda una llamada atendida por /api/mock.
    """
    log = ApiCallLog(
        method=method.upper(),
        path=path,
        status_code=status_code,
        response_time_ms=float(response_time_ms),
        spec_id=spec_id,
        spec_name=spec_name,
        operation_path=operation_path,
        request_json=json.dumps(request_data, default=str),
        response_json=json.dumps(response_data, default=str),
    )
    session.add(log)
    session.flush()
    return log


def list_api_calls(
    session: Session,
    limit: int = 100,
    offset: int = 0,
    method: str | None = None,
    status_code: int | None = None,
) -> List[ApiCallLog]:
    """
    Lista llamadas, las más recientes primero.
    """
    stmt = select(ApiCallLog).order_by(ApiCallLog.created_at.desc())
    if method:
        stmt = stmt.where(ApiCallLog.method == method.upper())
    if status_code is not None:
        stmt = stmt.where(ApiCallLog.status_code == status_code)
    stmt = stmt.offset(offset).limit(limit)
    return list(session.execute(stmt).scalars().all())


def get_api_calls_since(
    session: Session,
    since: datetime,
    spec_id: str | None = None,
) -> List[ApiCallLog]:
    stmt = select(ApiCallLog).where(ApiCallLog.created_at >= since).order_by(ApiCallLog.created_at)
    if spec_id:
        stmt = stmt.where(ApiCallLog.spec_id == spec_id)
    return list(session.execute(stmt).scalars().all())


def get_api_calls_for_spec(session: Session, spec_id: str) -> List[ApiCallLog]:
    stmt = select(ApiCallLog).where(ApiCallLog.spec_id == spec_id).order_by(ApiCallLog.created_at)
    return list(session.execute(stmt).scalars().all())


# ============================================================================
# Escenarios
# ============================================================================

def save_scenario_set(
    session: Session,
    spec_id: str,
    generation_mode: str,
    scenarios: List[Dict[str, Any]],
) -> ScenarioSet:
    scenario_set = ScenarioSet(
        spec_id=spec_id,
        generation_mode=generation_mode,
        scenarios_json=json.dumps(scenarios, default=str),
    )
    session.add(scenario_set)
    session.flush()
    return scenario_set


def list_scenario_sets(session: Session, spec_id: str) -> List[ScenarioSet]:
    stmt = (
        select(ScenarioSet)
        .where(ScenarioSet.spec_id == spec_id)
        .order_by(ScenarioSet.created_at.desc())
    )
    return list(session.execute(stmt).scalars().all())


# ============================================================================
# Settings de admin
# ============================================================================

def default_app_settings() -> Dict[str, Any]:
    return {
        "autoMock": True,
        "defaultDelay": get_settings().mock_delay_ms,
    }


def get_app_settings(session: Session) -> Dict[str, Any]:
    """
    Devuelve los settings de admin: defaults + lo que se haya guardado.
    """
    values = default_app_settings()
    for row in session.execute(select(AppSetting)).scalars().all():
        if row.key in values:
            values[row.key] = json.loads(row.value_json)
    return values


def update_app_settings(session: Session, updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mergea `updates` sobre los settings actuales.

    Raises:
        ValueError: si hay claves desconocidas o valores inválidos
    """
    known = default_app_settings()
    unknown = set(updates) - set(known)
    if unknown:
        raise ValueError(f"Settings desconocidos: {', '.join(sorted(unknown))}")

    if "defaultDelay" in updates:
        delay = updates["defaultDelay"]
        if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
            raise ValueError("defaultDelay debe ser un entero no negativo")
    if "autoMock" in updates and not isinstance(updates["autoMock"], bool):
        raise ValueError("autoMock debe ser booleano")

    for key, value in updates.items():
        row = session.get(AppSetting, key)
        if row is None:
            row = AppSetting(key=key)
            session.add(row)
        row.value_json = json.dumps(value)
    session.flush()

    return get_app_settings(session)
