"""
Modelos de request para la API.

Estos modelos definen la estructura esperada de los requests HTTP,
validando tipos antes de pasarlos al core.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerationMode(str, Enum):
    """Modo de generación de datos mock."""

    BASIC = "basic"
    ADVANCED = "advanced"
    AI = "ai"


class SpecImportRequest(BaseModel):
    """
    Request para importar una especificación OpenAPI.

    Se requiere `name` y uno de `spec` (objeto o texto JSON/YAML) o `url`.
    La validación de "uno de los dos" la hace el endpoint para responder 400.
    """

    name: Optional[str] = Field(default=None, description="Nombre visible de la spec")
    spec: Optional[Any] = Field(default=None, description="Documento OpenAPI (objeto o string JSON/YAML)")
    url: Optional[str] = Field(default=None, description="URL desde donde descargar la spec")
    is_yaml: bool = Field(default=False, description="Forzar parseo YAML cuando `spec` es texto")
    spec_id: Optional[str] = Field(default=None, description="ID a sobrescribir (reimportación)")


class SpecImportResponse(BaseModel):
    id: str
    name: str
    version: str
    description: str
    endpointCount: int
    environmentId: Optional[str] = None
    message: str


class GenerateDataRequest(BaseModel):
    """
    Request para generar datos a partir de un JSON schema.

    El dashboard manda el modo como `generationMode`; `mode` se acepta también.
    """

    model_config = ConfigDict(populate_by_name=True)

    schema_: Dict[str, Any] = Field(..., alias="schema", description="JSON schema")
    context: Dict[str, Any] = Field(default_factory=dict)
    mode: Optional[GenerationMode] = Field(
        default=None, alias="generationMode", description="Modo de generación (default: MOCK_MODE)"
    )
    specId: Optional[str] = Field(default=None, description="Spec contra la que resolver `$ref`")


class EndpointSelection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    method: str = "GET"
    path: str
    schema_: Optional[Dict[str, Any]] = Field(default=None, alias="schema")


class GenerateScenariosRequest(BaseModel):
    """
    Request para generar escenarios de prueba.

    Con `specId`, el schema de cada endpoint sale de su respuesta exitosa y el
    conjunto generado se guarda para esa spec.
    """

    model_config = ConfigDict(populate_by_name=True)

    endpoints: List[EndpointSelection] = Field(default_factory=list)
    specId: Optional[str] = None
    count: int = Field(default=5, ge=1, le=20)
    mode: GenerationMode = Field(default=GenerationMode.ADVANCED, alias="generationMode")


class EnhanceResponseRequest(BaseModel):
    """
    Request para mejorar una respuesta existente.

    `baseResponse` es obligatorio (el endpoint responde 400 si falta); sin
    `schema` se usa un objeto genérico {message, data, timestamp}.
    """

    model_config = ConfigDict(populate_by_name=True)

    baseResponse: Optional[Any] = None
    schema_: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    context: Dict[str, Any] = Field(default_factory=dict)
    endpointId: Optional[str] = None


class MockoonEnvironmentRequest(BaseModel):
    spec_id: str = Field(..., description="Spec desde la que generar el entorno")
