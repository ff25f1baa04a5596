"""
Modelos ORM del sandbox.

Cada tabla es un registro simple: los documentos (specs, datos de mocks,
escenarios) se guardan como JSON serializado en columnas Text, igual que la
metadata flexible del resto del proyecto.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, UTC
from typing import Any, Optional

from sqlalchemy import String, DateTime, ForeignKey, Text, Integer, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Fecha actual en UTC, sin tzinfo (SQLite no guarda zonas horarias)."""
    return datetime.now(UTC).replace(tzinfo=None)


class Spec(Base):
    """
    Especificación OpenAPI importada por un usuario.

    El documento se guarda tal cual (ya parseado a JSON) en `spec_json`;
    name/version/description/endpoint_count son metadata derivada al importar.
    """
    __tablename__ = "specs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200))
    version: Mapped[str] = mapped_column(String(50), default="1.0.0")
    description: Mapped[str] = mapped_column(Text, default="")

    # Documento OpenAPI completo (JSON)
    spec_json: Mapped[str] = mapped_column(Text, default="{}")
    endpoint_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relaciones
    mock_records: Mapped[list["MockRecord"]] = relationship(
        back_populates="spec", cascade="all, delete-orphan", passive_deletes=True
    )
    environment: Mapped[Optional["MockoonEnvironment"]] = relationship(
        back_populates="spec", cascade="all, delete-orphan", passive_deletes=True, uselist=False
    )
    scenario_sets: Mapped[list["ScenarioSet"]] = relationship(
        back_populates="spec", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def document(self) -> dict[str, Any]:
        return json.loads(self.spec_json or "{}")


class MockRecord(Base):
    """
    Dato stateful guardado por /api/mock.

    `key` es el path del recurso (ej: "/pets" para la colección, "/pets/12"
    para un ítem). `data_json` puede ser un objeto o una lista.
    """
    __tablename__ = "mock_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    spec_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("specs.id", ondelete="CASCADE"), nullable=True, index=True
    )
    key: Mapped[str] = mapped_column(String(500), unique=True, index=True)
    data_json: Mapped[str] = mapped_column(Text, default="null")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    spec: Mapped[Optional["Spec"]] = relationship(back_populates="mock_records")

    @property
    def data(self) -> Any:
        return json.loads(self.data_json or "null")


class MockoonEnvironment(Base):
    """
    Entorno de Mockoon generado a partir de una spec.

    El ciclo de vida del proceso lo maneja la CLI de Mockoon; acá solo se
    registra dónde quedó el archivo y qué puerto se le asignó.
    """
    __tablename__ = "mockoon_environments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    spec_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("specs.id", ondelete="CASCADE"), unique=True, index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    port: Mapped[int] = mapped_column(Integer)
    environment_file: Mapped[str] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    spec: Mapped["Spec"] = relationship(back_populates="environment")


class ApiCallLog(Base):
    """
    Registro de una llamada atendida por /api/mock.

    Base de /api/data/logs y /api/data/analytics. Si la spec se borra, el
    registro queda con spec_id NULL pero conserva `spec_name`.
    """
    __tablename__ = "api_call_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    spec_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("specs.id", ondelete="SET NULL"), nullable=True, index=True
    )
    spec_name: Mapped[str] = mapped_column(String(200), default="")

    method: Mapped[str] = mapped_column(String(10), index=True)
    path: Mapped[str] = mapped_column(String(500))
    # Path de la operación en la spec (ej: "/pets/{petId}"), vacío si no hubo match
    operation_path: Mapped[str] = mapped_column(String(500), default="")
    status_code: Mapped[int] = mapped_column(Integer, index=True)
    response_time_ms: Mapped[float] = mapped_column(Float, default=0.0)

    request_json: Mapped[str] = mapped_column(Text, default="null")
    response_json: Mapped[str] = mapped_column(Text, default="null")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class ScenarioSet(Base):
    """Conjunto de escenarios de prueba generados para una spec."""
    __tablename__ = "scenario_sets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    spec_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("specs.id", ondelete="CASCADE"), index=True
    )
    generation_mode: Mapped[str] = mapped_column(String(20), default="advanced")
    scenarios_json: Mapped[str] = mapped_column(Text, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    spec: Mapped["Spec"] = relationship(back_populates="scenario_sets")


class AppSetting(Base):
    """Settings editables desde /api/admin/settings (clave → valor JSON)."""
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, default="null")
