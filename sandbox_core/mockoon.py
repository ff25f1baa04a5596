"""
sandbox_core.mockoon
====================

Delegación de los mock servers "reales" a la CLI de Mockoon.

- `convert_openapi_to_mockoon()` arma el JSON de entorno (rutas, headers,
  data buckets) a partir de una spec.
- `MockoonManager` escribe ese JSON en `MOCKOON_DATA_DIR` y lanza/detiene
  `mockoon-cli start --data <archivo> --port <puerto>` como subproceso.

El ciclo de vida real (servir, loguear, persistir buckets) es de Mockoon; acá
solo se lanza el proceso, se espera el mensaje de arranque y se reporta estado.
"""

from __future__ import annotations

import json
import logging
import random
import re
import subprocess
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_settings
from .openapi import iter_operations, response_schema

logger = logging.getLogger(__name__)

MOCKOON_LAST_MIGRATION = 32
STARTED_MARKERS = ("Server started", "listening")
STATEFUL_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


class MockoonError(RuntimeError):
    """Error lanzando o controlando la CLI de Mockoon."""


# ============================================================================
# Conversión OpenAPI → entorno Mockoon
# ============================================================================

def mockoon_path(path: str) -> str:
    """"/pets/{petId}" → "pets/:petId" (Mockoon no usa "/" inicial)."""
    return re.sub(r"\{([^}]+)\}", r":\1", path).lstrip("/")


def _first_path_param(path: str) -> Optional[str]:
    match = re.search(r"\{([^}]+)\}", path)
    return match.group(1) if match else None


def _bucket_id(path: str) -> str:
    segments = [s for s in path.split("/") if s and not s.startswith("{")]
    return segments[0] if segments else "resources"


def _faker_template(name: str, schema: Dict[str, Any]) -> str:
    lower = name.lower()
    schema_type = schema.get("type")
    if schema_type == "string":
        if schema.get("enum"):
            return json.dumps(schema["enum"][0])
        if "email" in lower or schema.get("format") == "email":
            return "\"{{faker 'internet.email'}}\""
        if "name" in lower:
            return "\"{{faker 'person.fullName'}}\""
        if "id" in lower or schema.get("format") == "uuid":
            return "\"{{faker 'string.uuid'}}\""
        if schema.get("format") == "date-time":
            return '"{{now}}"'
        return "\"{{faker 'lorem.words'}}\""
    if schema_type in ("integer", "number"):
        return "{{faker 'number.int'}}"
    if schema_type == "boolean":
        return "{{faker 'datatype.boolean'}}"
    return "\"{{faker 'lorem.word'}}\""


def schema_template_body(schema: Optional[Dict[str, Any]]) -> str:
    """
    Body con templating de Mockoon (helpers `faker`/`now`) para un schema.
    """
    if not isinstance(schema, dict):
        return '{"message": "Success", "timestamp": "{{now}}"}'

    if schema.get("type") == "array":
        return f"[{schema_template_body(schema.get('items') or {})}]"

    properties = schema.get("properties")
    if not properties:
        return "{\"id\": \"{{faker 'string.uuid'}}\", \"createdAt\": \"{{now}}\"}"

    fields = [f'"{key}": {_faker_template(key, prop or {})}' for key, prop in properties.items()]
    return "{" + ", ".join(fields) + "}"


def stateful_body(method: str, path: str) -> str:
    """
    Body que usa data buckets de Mockoon para simular CRUD.

    Se usa un bucket por recurso (primer segmento del path).
    """
    bucket = _bucket_id(path)
    param = _first_path_param(path)

    if method == "GET":
        if param:
            return f"{{{{data '{bucket}' (urlParam '{param}')}}}}"
        return f"{{{{data '{bucket}'}}}}"
    if method == "POST":
        return f"{{{{setData 'push' '{bucket}' '' (bodyRaw)}}}}{{{{bodyRaw}}}}"
    if method in ("PUT", "PATCH"):
        target = f"(urlParam '{param}')" if param else "''"
        return f"{{{{setData 'merge' '{bucket}' {target} (bodyRaw)}}}}{{{{bodyRaw}}}}"
    if method == "DELETE" and param:
        return f"{{{{setData 'del' '{bucket}' (urlParam '{param}')}}}}"
    return "{}"


def convert_openapi_to_mockoon(
    spec_id: str,
    document: Dict[str, Any],
    name: Optional[str] = None,
    port: Optional[int] = None,
    stateful: bool = True,
) -> Dict[str, Any]:
    """
    Convierte un documento OpenAPI en un entorno de Mockoon.

    Args:
        spec_id: ID de la spec (se usa como nombre si no hay título)
        document: Documento OpenAPI
        name: Nombre visible del entorno
        port: Puerto fijo. Si es None se elige uno al azar en
            [MOCKOON_BASE_PORT, MOCKOON_BASE_PORT + MOCKOON_PORT_RANGE)
        stateful: usar data buckets para GET/POST/PUT/PATCH/DELETE

    Returns:
        Dict listo para serializar como archivo de entorno
    """
    settings = get_settings()
    if port is None:
        port = settings.mockoon_base_port + random.randrange(max(1, settings.mockoon_port_range))

    title = name or (document.get("info") or {}).get("title") or spec_id

    environment: Dict[str, Any] = {
        "uuid": str(uuid.uuid4()),
        "lastMigration": MOCKOON_LAST_MIGRATION,
        "name": f"API Sandbox - {title}",
        "endpointPrefix": "",
        "latency": 0,
        "port": port,
        "hostname": "",
        "folders": [],
        "routes": [],
        "rootChildren": [],
        "proxyMode": False,
        "proxyHost": "",
        "proxyRemovePrefix": False,
        "tlsOptions": {"enabled": False},
        "cors": True,
        "headers": [{"key": "Content-Type", "value": "application/json"}],
        "proxyReqHeaders": [],
        "proxyResHeaders": [],
        "data": [],
        "callbacks": [],
    }

    buckets: Dict[str, Dict[str, Any]] = {}

    for path, method, operation in iter_operations(document):
        upper = method.upper()
        if stateful and upper in STATEFUL_METHODS:
            body = stateful_body(upper, path)
            bucket = _bucket_id(path)
            buckets.setdefault(
                bucket,
                {
                    "uuid": str(uuid.uuid4()),
                    "id": bucket,
                    "name": f"{bucket} data",
                    "documentation": f"Stateful storage for /{bucket}",
                    "value": "[]",
                },
            )
        else:
            body = schema_template_body(response_schema(operation, document))

        route = {
            "uuid": str(uuid.uuid4()),
            "type": "http",
            "documentation": operation.get("summary") or operation.get("description") or f"{upper} {path}",
            "method": method,
            "endpoint": mockoon_path(path),
            "responses": [
                {
                    "uuid": str(uuid.uuid4()),
                    "body": body,
                    "latency": 0,
                    "statusCode": 201 if upper == "POST" else 200,
                    "label": operation.get("summary") or "Success",
                    "headers": [],
                    "bodyType": "INLINE",
                    "filePath": "",
                    "databucketID": "",
                    "sendFileAsBody": False,
                    "rules": [],
                    "rulesOperator": "OR",
                    "disableTemplating": False,
                    "fallbackTo404": False,
                    "default": True,
                    "crudKey": "id",
                    "callbacks": [],
                }
            ],
            "responseMode": None,
        }
        environment["routes"].append(route)
        environment["rootChildren"].append({"type": "route", "uuid": route["uuid"]})

    environment["data"] = list(buckets.values())
    return environment


# ============================================================================
# Manager de procesos
# ============================================================================

class MockoonManager:
    """
    Lanza y controla instancias de `mockoon-cli`, una por entorno.

    Args:
        data_dir: directorio de archivos de entorno (default: MOCKOON_DATA_DIR)
        cli: ejecutable de la CLI (default: MOCKOON_CLI)
        start_timeout: segundos a esperar el mensaje de arranque
    """

    def __init__(
        self,
        data_dir: str | Path | None = None,
        cli: Optional[str] = None,
        start_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.data_dir = Path(data_dir or settings.mockoon_data_dir)
        self.cli = cli or settings.mockoon_cli
        self.start_timeout = start_timeout if start_timeout is not None else settings.mockoon_start_timeout
        self._instances: Dict[str, subprocess.Popen] = {}
        self._lock = threading.Lock()

    def create_environment_from_spec(
        self,
        spec_id: str,
        document: Dict[str, Any],
        name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Genera y escribe `<environment_id>.json` para la spec.

        Returns:
            {"environmentId", "environmentFile", "port", "name"}
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)

        environment_id = str(uuid.uuid4())
        environment = convert_openapi_to_mockoon(spec_id, document, name)
        environment_file = self.data_dir / f"{environment_id}.json"
        environment_file.write_text(json.dumps(environment, indent=2), encoding="utf-8")

        logger.info(f"Entorno Mockoon {environment_id} creado en {environment_file} (puerto {environment['port']})")
        return {
            "environmentId": environment_id,
            "environmentFile": str(environment_file),
            "port": environment["port"],
            "name": environment["name"],
        }

    def _spawn(self, environment_file: str, port: int) -> subprocess.Popen:
        cmd = [self.cli, "start", "--data", environment_file, "--port", str(port)]
        try:
            return subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as e:
            raise MockoonError(
                f"No se encontró '{self.cli}' en el PATH. Instalalo (npm i -g @mockoon/cli) y reintentá."
            ) from e

    def start_environment(self, environment_id: str, environment_file: str, port: int) -> Dict[str, Any]:
        """
        Lanza la CLI y espera a que informe que el servidor arrancó.

        Si el entorno ya estaba corriendo no se lanza otro proceso.

        Raises:
            MockoonError: si la CLI no existe, termina antes de arrancar o no
                arranca dentro de `start_timeout`
        """
        if self.is_running(environment_id):
            return {"environmentId": environment_id, "port": port, "status": "running"}

        if not Path(environment_file).exists():
            raise MockoonError(f"No existe el archivo de entorno: {environment_file}")

        process = self._spawn(environment_file, port)
        started = threading.Event()
        output: List[str] = []

        def _read_output() -> None:
            for line in process.stdout:
                output.append(line)
                logger.debug(f"[mockoon {environment_id}] {line.rstrip()}")
                if any(marker in line for marker in STARTED_MARKERS):
                    started.set()

        reader = threading.Thread(target=_read_output, daemon=True)
        reader.start()

        if not started.wait(self.start_timeout):
            process.kill()
            details = "".join(output[-10:]).strip()
            raise MockoonError(
                "Mockoon no arrancó dentro del timeout" + (f":\n{details}" if details else "")
            )

        with self._lock:
            self._instances[environment_id] = process

        logger.info(f"Entorno Mockoon {environment_id} corriendo en el puerto {port}")
        return {"environmentId": environment_id, "port": port, "status": "running"}

    def stop_environment(self, environment_id: str) -> bool:
        """
        Detiene el proceso del entorno.

        Returns:
            True si estaba corriendo, False si no
        """
        with self._lock:
            process = self._instances.pop(environment_id, None)
        if process is None:
            return False

        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
        logger.info(f"Entorno Mockoon {environment_id} detenido")
        return True

    def restart_environment(self, environment_id: str, environment_file: str, port: int) -> Dict[str, Any]:
        self.stop_environment(environment_id)
        return self.start_environment(environment_id, environment_file, port)

    def is_running(self, environment_id: str) -> bool:
        with self._lock:
            process = self._instances.get(environment_id)
            if process is None:
                return False
            if process.poll() is not None:
                # Murió por su cuenta
                del self._instances[environment_id]
                return False
            return True

    def running_instances(self) -> List[str]:
        with self._lock:
            ids = list(self._instances)
        return [environment_id for environment_id in ids if self.is_running(environment_id)]

    def check_availability(self) -> Dict[str, Any]:
        """
        Ejecuta `<cli> --version`.

        Returns:
            {"available": True, "version": "..."} o {"available": False, "error": "..."}
        """
        try:
            result = subprocess.run(
                [self.cli, "--version"],
                check=True,
                capture_output=True,
                text=True,
                timeout=30,
            )
        except FileNotFoundError:
            return {"available": False, "error": f"'{self.cli}' no está en el PATH"}
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Mockoon CLI no disponible: {e}")
            return {"available": False, "error": str(e)}

        return {"available": True, "version": result.stdout.strip()}

    def stop_all(self) -> None:
        with self._lock:
            ids = list(self._instances)
        for environment_id in ids:
            self.stop_environment(environment_id)
