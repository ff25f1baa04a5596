"""
API HTTP principal del API Sandbox.

Esta aplicación FastAPI expone los endpoints REST del sandbox: importación de
specs OpenAPI, mocks stateful en /api/mock, control de entornos de Mockoon,
generación de datos (con IA opcional), analytics y administración. Los
eventos se publican por WebSocket en /ws.

Uso:
    uvicorn api.main:app --reload --port 3001
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, UTC

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from sandbox_core.config import get_settings
from sandbox_core.db.database import init_db

from .dependencies import get_mockoon_manager
from .routes import admin, ai, data, mock, mockoon, realtime, specs

# Cargar variables de entorno
load_dotenv()

VERSION = "1.0.0"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Resource-Policy": "same-origin",
}

# Determinar ambiente
ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Configurar logging según ambiente
log_level = getattr(logging, LOG_LEVEL, logging.INFO)
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)
logger.info(f"🚀 Iniciando API Sandbox en ambiente: {ENVIRONMENT}")


def configure_rate_limit(app: FastAPI, max_requests: int, window_ms: int, enabled: bool = True) -> Limiter:
    """
    Limita los requests por IP: `max_requests` por ventana de `window_ms`.

    Al superarlo se responde 429 con el handler de slowapi.
    """
    window_seconds = max(1, window_ms // 1000)
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[f"{max_requests} per {window_seconds} second"],
        enabled=enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("📦 Base de datos lista")
    yield
    # Las instancias de Mockoon son procesos hijos: no dejarlas huérfanas
    get_mockoon_manager().stop_all()


app = FastAPI(
    title="API Sandbox",
    description="Sandbox de APIs a partir de especificaciones OpenAPI, con mocks stateful y Mockoon",
    version=VERSION,
    lifespan=lifespan,
)

# CORS: configurar según ambiente
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
cors_origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]

logger.info(f"🌐 CORS origins configurados: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

settings = get_settings()
configure_rate_limit(
    app,
    settings.rate_limit_max_requests,
    settings.rate_limit_window_ms,
    enabled=settings.rate_limit_enabled,
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Error no manejado en {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": str(exc) or "Something went wrong!"})


# Registrar rutas
app.include_router(specs.router)
app.include_router(mock.router)
app.include_router(mockoon.router)
app.include_router(data.router)
app.include_router(ai.router)
app.include_router(admin.router)
app.include_router(realtime.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "api-sandbox"}


@app.get("/health")
async def health():
    """Health check detallado."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": VERSION,
    }
