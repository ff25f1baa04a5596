"""
Fixtures compartidas.

La base y el directorio de Mockoon apuntan a un directorio temporal ANTES de
importar el core (DATABASE_URL se lee al importar `sandbox_core.db.database`).
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="api-sandbox-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.sqlite"
os.environ["DATA_DIR"] = _TMP_DIR
os.environ["MOCKOON_DATA_DIR"] = os.path.join(_TMP_DIR, "mockoon")
os.environ["OPENAI_API_KEY"] = ""
os.environ["MOCK_DELAY"] = "0"
os.environ["MOCK_MODE"] = "advanced"
os.environ["ENABLE_MOCK_METADATA"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import copy  # noqa: E402

import pytest  # noqa: E402

from sandbox_core.config import get_settings  # noqa: E402
from sandbox_core.db.database import Base, get_db_engine, get_db_session, init_db  # noqa: E402


PETSTORE = {
    "openapi": "3.0.3",
    "info": {"title": "Petstore", "version": "1.0.7", "description": "Sample pet store"},
    "paths": {
        "/pet": {
            "post": {
                "summary": "Add a new pet",
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                    }
                },
            },
            "put": {
                "summary": "Update an existing pet",
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                    }
                },
            },
        },
        "/pet/{petId}": {
            "get": {
                "summary": "Find pet by ID",
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                    }
                },
            },
            "delete": {
                "summary": "Deletes a pet",
                "responses": {"200": {"description": "deleted"}},
            },
        },
        "/pets": {
            "get": {
                "summary": "List pets",
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {
                            "application/json": {
                                "schema": {"type": "array", "items": {"$ref": "#/components/schemas/Pet"}}
                            }
                        },
                    }
                },
            }
        },
    },
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "id": {"type": "integer"},
                    "name": {"type": "string"},
                    "status": {"type": "string", "enum": ["available", "pending", "sold"]},
                    "photoUrls": {"type": "array", "items": {"type": "string"}},
                },
            }
        }
    },
}


@pytest.fixture(autouse=True)
def fresh_database():
    """Recrea las tablas y limpia la config cacheada en cada test."""
    get_settings.cache_clear()
    init_db()
    engine = get_db_engine(echo=False)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    get_settings.cache_clear()


@pytest.fixture
def session():
    """Fixture que proporciona una sesión de base de datos para los tests.

    Usa get_db_session() que maneja commit/rollback automáticamente.
    """
    with get_db_session() as db_session:
        yield db_session


@pytest.fixture
def petstore():
    return copy.deepcopy(PETSTORE)


@pytest.fixture
def mockoon_manager(tmp_path):
    """Manager real con una CLI inexistente: arrancar falla salvo que se parchee Popen."""
    from sandbox_core.mockoon import MockoonManager

    return MockoonManager(data_dir=tmp_path / "mockoon", cli="mockoon-cli-that-does-not-exist", start_timeout=1)


@pytest.fixture
def client(mockoon_manager):
    from fastapi.testclient import TestClient

    from api.dependencies import get_mockoon_manager
    from api.main import app

    app.dependency_overrides[get_mockoon_manager] = lambda: mockoon_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def imported_spec(client, petstore):
    response = client.post("/api/specs", json={"name": "Petstore", "spec": petstore})
    assert response.status_code == 201
    return response.json()
