"""
Endpoints de generación de datos y escenarios (con o sin IA).

Este módulo maneja:
- POST /api/ai/generate-data: Datos desde un JSON schema
- POST /api/ai/generate-scenarios: Escenarios de prueba por endpoint
- GET /api/ai/scenarios/{spec_id}: Escenarios guardados de una spec
- GET /api/ai/analyze/{spec_id}: Análisis de uso de una spec
- POST /api/ai/enhance-response: Versión mejorada de una respuesta (IA o "advanced")
- GET /api/ai/status: Disponibilidad del enhancer
"""

import json
import logging
from datetime import datetime, UTC

from fastapi import APIRouter, Depends, HTTPException

from sandbox_core.ai_enhancer import AIDataEnhancer
from sandbox_core.analytics import analyze_spec_usage
from sandbox_core.data_generator import SmartDataGenerator
from sandbox_core.db.database import get_db_session
from sandbox_core.db.helpers import get_api_calls_for_spec, get_spec_by_id, list_scenario_sets, save_scenario_set
from sandbox_core.openapi import find_matching_route, iter_operations, response_schema

from ..dependencies import get_ai_enhancer, get_data_generator
from ..models.requests import EnhanceResponseRequest, EndpointSelection, GenerateDataRequest, GenerateScenariosRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

DEFAULT_ENHANCE_SCHEMA = {
    "type": "object",
    "properties": {
        "message": {"type": "string"},
        "data": {"type": "object"},
        "timestamp": {"type": "string"},
    },
}


def _load_document(spec_id: str) -> dict:
    with get_db_session() as session:
        spec = get_spec_by_id(session, spec_id)
        if not spec:
            raise HTTPException(status_code=404, detail="Specification not found")
        return spec.document


@router.post("/generate-data")
def generate_data(
    request: GenerateDataRequest,
    generator: SmartDataGenerator = Depends(get_data_generator),
):
    """
    Genera datos para un schema en el modo pedido (default: MOCK_MODE).

    Con modo "ai" y sin IA disponible, se usa "advanced" y la respuesta lo
    informa en `generationMode` (el pedido queda en `requestedMode`).
    """
    document = _load_document(request.specId) if request.specId else None
    requested_mode = request.mode.value if request.mode else generator.default_mode
    ai_available = generator.ai_enhancer.is_available

    mode = requested_mode
    if mode == "ai" and not ai_available:
        logger.warning("Se pidió generación con IA sin OPENAI_API_KEY: se usa 'advanced'")
        mode = "advanced"

    data = generator.generate_from_schema(
        request.schema_,
        {**request.context, "generationMode": mode},
        document=document,
    )
    return {
        "data": data,
        "generationMode": mode,
        "requestedMode": requested_mode,
        "aiAvailable": ai_available,
        "context": request.context,
        "generatedAt": datetime.now(UTC).isoformat(),
    }


@router.post("/generate-scenarios")
def generate_scenarios(
    request: GenerateScenariosRequest,
    generator: SmartDataGenerator = Depends(get_data_generator),
):
    """
    Genera `count` escenarios por endpoint.

    Sin `specId` cada endpoint debe traer su `schema`. Con `specId`, si la
    lista de endpoints está vacía se usan todas las operaciones de la spec.
    En modo "ai" con IA disponible los escenarios los arma el enhancer.

    Raises:
        400: No hay endpoints ni specId
        404: La spec no existe
    """
    if not request.endpoints and not request.specId:
        raise HTTPException(status_code=400, detail="Either endpoints or specId is required")

    document = _load_document(request.specId) if request.specId else None
    endpoints = list(request.endpoints)
    if document is not None and not endpoints:
        endpoints = [EndpointSelection(method=m.upper(), path=p) for p, m, _ in iter_operations(document)]

    mode = request.mode.value
    results = []
    for endpoint in endpoints:
        schema = endpoint.schema_
        if schema is None and document is not None:
            route = find_matching_route(document, endpoint.method, endpoint.path)
            schema = response_schema(route.operation, document) if route else None

        results.append(
            {
                "method": endpoint.method.upper(),
                "path": endpoint.path,
                "scenarios": generator.generate_test_scenarios(
                    schema or {"type": "object"}, count=request.count, mode=mode, document=document
                ),
            }
        )

    scenario_set_id = None
    if request.specId:
        with get_db_session() as session:
            scenario_set_id = save_scenario_set(session, request.specId, mode, results).id

    return {
        "specId": request.specId,
        "generationMode": mode,
        "scenarioSetId": scenario_set_id,
        "endpoints": results,
        "generatedAt": datetime.now(UTC).isoformat(),
    }


@router.get("/scenarios/{spec_id}")
async def get_saved_scenarios(spec_id: str):
    with get_db_session() as session:
        if not get_spec_by_id(session, spec_id):
            raise HTTPException(status_code=404, detail="Specification not found")

        return [
            {
                "id": s.id,
                "specId": s.spec_id,
                "generationMode": s.generation_mode,
                "endpoints": json.loads(s.scenarios_json or "[]"),
                "createdAt": s.created_at.isoformat(),
            }
            for s in list_scenario_sets(session, spec_id)
        ]


@router.get("/analyze/{spec_id}")
async def analyze_spec(spec_id: str):
    """
    Análisis de uso de la spec a partir del log de llamadas.

    Raises:
        404: La spec no existe
    """
    with get_db_session() as session:
        spec = get_spec_by_id(session, spec_id)
        if not spec:
            raise HTTPException(status_code=404, detail="Specification not found")

        analysis = analyze_spec_usage(spec.document, get_api_calls_for_spec(session, spec_id))
        return {"specId": spec_id, "specName": spec.name, **analysis}


@router.post("/enhance-response")
def enhance_response(
    request: EnhanceResponseRequest,
    enhancer: AIDataEnhancer = Depends(get_ai_enhancer),
    generator: SmartDataGenerator = Depends(get_data_generator),
):
    """
    Genera una versión "mejorada" de `baseResponse`.

    Usa el modelo si hay IA configurada; si no, el modo "advanced". Sin
    `schema` se genera un objeto genérico {message, data, timestamp}.

    Raises:
        400: Falta `baseResponse`
        502: El modelo devolvió una respuesta inválida
        500: Error llamando al proveedor
    """
    if request.baseResponse is None:
        raise HTTPException(status_code=400, detail="Base response is required")

    schema = request.schema_ or DEFAULT_ENHANCE_SCHEMA

    if enhancer.is_available:
        mode = "ai"
        try:
            enhanced = enhancer.enhance(schema, request.context)
        except ValueError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e
        except Exception as e:
            logger.error(f"Error llamando al modelo: {e}")
            raise HTTPException(
                status_code=500,
                detail=f"Error interno: {str(e)}"
            ) from e
    else:
        mode = "advanced"
        enhanced = generator.generate_from_schema(schema, {**request.context, "generationMode": mode})

    return {
        "original": request.baseResponse,
        "enhanced": enhanced,
        "context": request.context,
        "generationMode": mode,
        "enhancedAt": datetime.now(UTC).isoformat(),
        "message": "Response enhanced - consider using Mockoon templating for dynamic responses",
    }


@router.get("/status")
async def ai_status(enhancer: AIDataEnhancer = Depends(get_ai_enhancer)):
    return enhancer.status()
