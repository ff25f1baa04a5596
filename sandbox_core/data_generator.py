"""
sandbox_core.data_generator
===========================

Generación de datos mock a partir de JSON schemas (OpenAPI).

Modos
-----
- "basic":    valores fijos y predecibles (42, "string value", true...). Útil
              para tests y para respuestas estables.
- "advanced": Faker + heurísticas por nombre de propiedad (email, name, price,
              createdAt...). Respeta example/default/const/enum, allOf/oneOf/
              anyOf, min/max y `$ref` locales contra el documento de la spec.
- "ai":       delega en `AIDataEnhancer`; si no hay IA o falla, cae a
              "advanced".

Cualquier error inesperado durante la generación devuelve el payload de
fallback en lugar de propagar: una respuesta mock nunca debe romper por un
schema raro.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Sequence

from faker import Faker

from .ai_enhancer import AIDataEnhancer
from .config import MOCK_MODES, get_settings
from .custom_fakers import CustomFaker
from .openapi import resolve_ref

logger = logging.getLogger(__name__)

MAX_DEPTH = 8


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def fallback_generation(schema: Any) -> Dict[str, Any]:
    if isinstance(schema, dict) and schema.get("type") == "object":
        return {"message": "Generated mock data", "timestamp": _now_iso()}
    return {"data": "mock value"}


def merge_schemas(schemas: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Combina los schemas de un `allOf` en un único objeto."""
    merged: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}
    for schema in schemas:
        if not isinstance(schema, dict):
            continue
        merged["properties"].update(schema.get("properties") or {})
        for name in schema.get("required") or []:
            if name not in merged["required"]:
                merged["required"].append(name)
        for key, value in schema.items():
            if key not in ("properties", "required", "type"):
                merged[key] = value
    return merged


class SmartDataGenerator:
    """
    Punto de entrada único para generar datos desde un schema.

    Args:
        ai_enhancer: enhancer de IA (se crea uno por defecto)
        default_mode: modo a usar cuando el contexto no indica uno
            (default: settings.mock_mode)
        fake: instancia de Faker (inyectable para tests con seed)
    """

    def __init__(
        self,
        ai_enhancer: Optional[AIDataEnhancer] = None,
        default_mode: Optional[str] = None,
        fake: Optional[Faker] = None,
    ):
        self.ai_enhancer = ai_enhancer or AIDataEnhancer()
        self.default_mode = default_mode or get_settings().mock_mode
        self.fake = fake or Faker()

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def generate_from_schema(
        self,
        schema: Any,
        context: Optional[Dict[str, Any]] = None,
        document: Optional[Dict[str, Any]] = None,
        custom_fakers: Sequence[CustomFaker] = (),
    ) -> Any:
        """
        Genera un valor para `schema` según el modo pedido en el contexto.

        Args:
            schema: JSON schema (puede tener `$ref` locales)
            context: dict con `generationMode`, `endpoint`, `method`,
                `businessDomain`, `scenarioType`
            document: documento OpenAPI para resolver `$ref`
            custom_fakers: fakers del endpoint, consultados para las
                propiedades del objeto raíz
        """
        context = context or {}
        mode = context.get("generationMode") or self.default_mode

        try:
            if mode == "ai":
                if self.ai_enhancer.is_available:
                    try:
                        return self.ai_enhancer.enhance(self._inline_refs(schema, document), context)
                    except Exception as e:
                        logger.warning(f"Falló la generación con IA, se usa 'advanced': {e}")
                return self.generate_advanced(schema, document, custom_fakers=custom_fakers)

            if mode == "basic":
                return self.generate_basic(schema, document)

            return self.generate_advanced(schema, document, custom_fakers=custom_fakers)
        except Exception as e:
            logger.error(f"Error generando datos ({mode}): {e}")
            return fallback_generation(schema)

    def generate_test_scenarios(
        self,
        schema: Any,
        count: int = 5,
        mode: str = "advanced",
        document: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Genera `count` escenarios: el primero "realistic", el segundo
        "edge_case" y el resto "varied".

        En modo "ai" con IA disponible, los primeros (hasta 3) los arma el
        enhancer (realistic, edge_case, stress_test) y el resto se completa
        con el generador local.
        """
        scenarios: List[Dict[str, Any]] = []
        if mode == "ai" and self.ai_enhancer.is_available:
            scenarios = self.ai_enhancer.generate_scenarios(self._inline_refs(schema, document), count)[:count]
            for i, scenario in enumerate(scenarios):
                scenario["id"] = i + 1
                scenario.setdefault("generatedAt", _now_iso())

        for i in range(len(scenarios), count):
            scenario_type = "realistic" if i == 0 else "edge_case" if i == 1 else "varied"
            context = {"generationMode": mode, "scenarioType": scenario_type}
            try:
                data = self.generate_from_schema(schema, context, document)
            except Exception as e:
                logger.error(f"Error generando escenario {i + 1}: {e}")
                data = fallback_generation(schema)
                scenario_type = "fallback"

            scenarios.append(
                {
                    "id": i + 1,
                    "name": f"Scenario {i + 1}",
                    "data": data,
                    "type": scenario_type,
                    "generatedAt": _now_iso(),
                }
            )
        return scenarios

    def available_modes(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": "basic",
                "name": "Basic Generation",
                "description": "Predictable placeholder values derived from the schema types",
                "available": True,
            },
            {
                "id": "advanced",
                "name": "Advanced Generation",
                "description": "Enhanced mock data with Faker and smart property-name patterns",
                "available": True,
            },
            {
                "id": "ai",
                "name": "AI-Powered Generation",
                "description": "Intelligent data generation using OpenAI",
                "available": self.ai_enhancer.is_available,
            },
        ]

    def set_default_mode(self, mode: str) -> None:
        if mode in MOCK_MODES:
            self.default_mode = mode

    # ------------------------------------------------------------------
    # Modo basic
    # ------------------------------------------------------------------

    def generate_basic(self, schema: Any, document: Optional[Dict[str, Any]] = None, depth: int = 0) -> Any:
        if not isinstance(schema, dict) or depth > MAX_DEPTH:
            return None

        if "$ref" in schema:
            resolved = resolve_ref(document or {}, schema["$ref"])
            return self.generate_basic(resolved, document, depth + 1) if resolved is not None else {}

        if "example" in schema:
            return schema["example"]

        schema_type = schema.get("type")
        if schema_type == "string":
            fmt = schema.get("format")
            if fmt == "email":
                return "user@example.com"
            if fmt == "date-time":
                return _now_iso()
            if fmt == "uuid":
                return str(uuid.uuid4())
            return schema["enum"][0] if schema.get("enum") else "string value"
        if schema_type in ("number", "integer"):
            return schema["enum"][0] if schema.get("enum") else 42
        if schema_type == "boolean":
            return True
        if schema_type == "array":
            items = schema.get("items")
            return [self.generate_basic(items, document, depth + 1)] if items else []
        if schema_type == "object" or "properties" in schema:
            return {
                key: self.generate_basic(prop, document, depth + 1)
                for key, prop in (schema.get("properties") or {}).items()
            }
        return None

    # ------------------------------------------------------------------
    # Modo advanced
    # ------------------------------------------------------------------

    def generate_advanced(
        self,
        schema: Any,
        document: Optional[Dict[str, Any]] = None,
        property_name: str = "",
        depth: int = 0,
        custom_fakers: Sequence[CustomFaker] = (),
    ) -> Any:
        if not isinstance(schema, dict):
            return {}
        if depth > MAX_DEPTH:
            return None

        if "$ref" in schema:
            resolved = resolve_ref(document or {}, schema["$ref"])
            if resolved is None:
                # Ref externo o inexistente: un objeto genérico en lugar de fallar
                return {"id": self.fake.random_int(1, 1000), "name": "Mock Item", "status": "active"}
            return self.generate_advanced(resolved, document, property_name, depth + 1, custom_fakers)

        if schema.get("allOf"):
            merged = merge_schemas(
                [self._resolve(s, document) for s in schema["allOf"]]
            )
            return self.generate_advanced(merged, document, property_name, depth + 1, custom_fakers)

        options = schema.get("oneOf") or schema.get("anyOf")
        if options:
            chosen = self.fake.random_element(options)
            return self.generate_advanced(chosen, document, property_name, depth + 1, custom_fakers)

        if "const" in schema:
            return schema["const"]
        if "default" in schema:
            return schema["default"]
        if "example" in schema:
            return schema["example"]
        examples = schema.get("examples")
        if isinstance(examples, list) and examples:
            return self.fake.random_element(examples)
        if isinstance(schema.get("enum"), list) and schema["enum"]:
            return self.fake.random_element(schema["enum"])

        schema_type = schema.get("type")

        if schema_type == "object" or "properties" in schema:
            return self._generate_object(schema, document, depth, custom_fakers)

        if schema_type == "array":
            return self._generate_array(schema, document, property_name, depth)

        if schema_type == "string":
            return self._generate_string(schema, property_name)

        if schema_type in ("integer", "number"):
            return self._generate_number(schema, property_name)

        if schema_type == "boolean":
            return self.fake.pybool()

        if property_name:
            return self.contextual_string(property_name)
        return self.fake.word()

    def _resolve(self, schema: Any, document: Optional[Dict[str, Any]]) -> Any:
        if isinstance(schema, dict) and "$ref" in schema:
            return resolve_ref(document or {}, schema["$ref"]) or {}
        return schema

    def _inline_refs(self, schema: Any, document: Optional[Dict[str, Any]], depth: int = 0) -> Any:
        """Copia del schema con los `$ref` locales reemplazados (para el prompt de IA)."""
        if depth > MAX_DEPTH:
            return {}
        if isinstance(schema, dict):
            if "$ref" in schema:
                resolved = resolve_ref(document or {}, schema["$ref"])
                return self._inline_refs(resolved, document, depth + 1) if resolved is not None else {}
            return {k: self._inline_refs(v, document, depth + 1) for k, v in schema.items()}
        if isinstance(schema, list):
            return [self._inline_refs(v, document, depth + 1) for v in schema]
        return schema

    def _generate_object(
        self,
        schema: Dict[str, Any],
        document: Optional[Dict[str, Any]],
        depth: int,
        custom_fakers: Sequence[CustomFaker],
    ) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, prop in (schema.get("properties") or {}).items():
            value = None
            for custom in custom_fakers:
                value = custom(key, None)
                if value is not None:
                    break
            if value is None:
                value = self.generate_advanced(prop, document, key, depth + 1)
            result[key] = value

        # Objeto raíz sin propiedades: algo reconocible en lugar de {}
        if not result and depth == 0:
            result = {"id": self.fake.random_int(1, 1000), "name": "Mock Item", "status": "active"}
        return result

    def _generate_array(
        self,
        schema: Dict[str, Any],
        document: Optional[Dict[str, Any]],
        property_name: str,
        depth: int,
    ) -> List[Any]:
        items_schema = schema.get("items")
        if not isinstance(items_schema, dict):
            return []

        min_items = int(schema.get("minItems", 1))
        max_items = max(min_items, int(schema.get("maxItems", 3)))
        count = self.fake.random_int(min_items, max_items)

        items = [self.generate_advanced(items_schema, document, property_name, depth + 1) for _ in range(count)]

        if schema.get("uniqueItems"):
            unique: List[Any] = []
            for item in items:
                if item not in unique:
                    unique.append(item)
            items = unique
        return items

    def _generate_string(self, schema: Dict[str, Any], property_name: str) -> str:
        fmt = schema.get("format")
        if fmt == "email":
            value = self.fake.email()
        elif fmt == "date-time":
            value = self.fake.date_time_this_year().isoformat()
        elif fmt == "date":
            value = self.fake.date()
        elif fmt == "uuid":
            value = self.fake.uuid4()
        elif fmt in ("uri", "url"):
            value = self.fake.url()
        elif fmt == "ipv4":
            value = self.fake.ipv4()
        elif fmt == "hostname":
            value = self.fake.domain_name()
        elif property_name:
            value = str(self.contextual_string(property_name))
        else:
            value = " ".join(self.fake.words(nb=self.fake.random_int(1, 2)))

        max_length = schema.get("maxLength")
        if isinstance(max_length, int) and max_length >= 0:
            value = value[:max_length]
        min_length = schema.get("minLength")
        if isinstance(min_length, int) and len(value) < min_length:
            value = value.ljust(min_length, "x")
        return value

    def _generate_number(self, schema: Dict[str, Any], property_name: str) -> int | float:
        minimum = schema.get("minimum")
        maximum = schema.get("maximum")
        is_integer = schema.get("type") == "integer"

        if minimum is not None or maximum is not None:
            low = minimum if minimum is not None else 0
            high = maximum if maximum is not None else low + 1000
            if high <= low:
                return int(low) if is_integer else low
            if is_integer:
                return self.fake.random_int(int(low), int(high))
            return round(self.fake.pyfloat(min_value=low, max_value=high, right_digits=2), 2)

        name = property_name.lower()
        if "id" in name and (name.endswith("id") or name.startswith("id")):
            return self.fake.random_int(1, 100000)
        if "age" in name:
            return self.fake.random_int(1, 100)
        if any(token in name for token in ("price", "cost", "amount", "fee")):
            price = round(self.fake.pyfloat(min_value=1, max_value=1000, right_digits=2), 2)
            return int(price) if is_integer else price
        if "rating" in name or "score" in name:
            rating = round(self.fake.pyfloat(min_value=1, max_value=5, right_digits=1), 1)
            return int(rating) if is_integer else rating
        if any(token in name for token in ("count", "quantity", "total")):
            return self.fake.random_int(1, 100)
        return self.fake.random_int(1, 1000)

    def contextual_string(self, property_name: str) -> str:
        """
        Valor verosímil según el nombre de la propiedad (sirve para cualquier API).
        """
        fake = self.fake
        name = property_name.lower()

        if "url" in name or "link" in name or "uri" in name:
            if any(token in name for token in ("photo", "image", "avatar", "picture")):
                return fake.image_url(width=400, height=300)
            if "video" in name:
                return f"{fake.url()}video/{fake.file_name(extension='mp4')}"
            if "api" in name or "endpoint" in name:
                return f"{fake.url()}api/v1/{fake.word()}"
            return fake.url()

        if "email" in name:
            return fake.email()
        if "phone" in name or "mobile" in name or name.startswith("tel"):
            return fake.phone_number()

        if "address" in name:
            return fake.street_address()
        if "city" in name:
            return fake.city()
        if "country" in name:
            return fake.country()
        if "zip" in name or "postal" in name:
            return fake.postcode()

        if "username" in name or "handle" in name:
            return fake.user_name()

        if "name" in name:
            if "first" in name or "given" in name:
                return fake.first_name()
            if "last" in name or "family" in name or "surname" in name:
                return fake.last_name()
            if any(token in name for token in ("company", "organization", "business")):
                return fake.company()
            if "product" in name or "item" in name:
                return f"{fake.color_name()} {fake.word().capitalize()}"
            if "tag" in name:
                return fake.word()
            if "category" in name:
                return fake.word().capitalize()
            return fake.name()

        if "uuid" in name or "guid" in name:
            return fake.uuid4()
        if name == "id" or name.endswith("id") or name.endswith("_id"):
            return str(fake.random_int(1, 100000))

        if "status" in name or name == "state":
            return fake.random_element(["active", "inactive", "pending", "completed", "draft", "published", "archived"])

        if any(token in name for token in ("description", "summary", "content", "bio")):
            return fake.paragraph()
        if "title" in name or "heading" in name:
            return fake.sentence()

        if any(token in name for token in ("price", "cost", "amount", "fee")):
            return f"{fake.pyfloat(min_value=1, max_value=1000, right_digits=2):.2f}"

        if "date" in name or "time" in name or name.endswith("_at") or name.endswith("edat"):
            if "birth" in name or "born" in name:
                return fake.date_of_birth().isoformat()
            if "created" in name or "start" in name:
                return fake.past_datetime().isoformat()
            if any(token in name for token in ("future", "end", "expire")):
                return fake.future_datetime().isoformat()
            return fake.date_time_this_month().isoformat()

        if "color" in name or "colour" in name:
            return fake.color_name()
        if "category" in name:
            return fake.word().capitalize()
        if "company" in name:
            return fake.company()

        return " ".join(fake.words(nb=fake.random_int(1, 3)))
