#!/usr/bin/env python3
"""
Script de verificación para diagnosticar problemas con la API.

Ejecutar: python tools/check_api.py
"""

import sys
from pathlib import Path

# Agregar raíz del proyecto al path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

print("🔍 Verificando dependencias y estructura del API Sandbox...\n")

# 1) Verificar dependencias
print("1. Verificando dependencias:")
for module_name in ("fastapi", "pydantic", "uvicorn", "sqlalchemy", "yaml", "faker", "openai", "slowapi"):
    try:
        module = __import__(module_name)
        print(f"   ✅ {module_name} {getattr(module, '__version__', '')}")
    except ImportError as e:
        print(f"   ❌ {module_name} no instalado: {e}")
        sys.exit(1)

# 2) Verificar configuración del core
print("\n2. Verificando configuración:")
try:
    from sandbox_core.config import get_settings
    settings = get_settings()
    print(f"   ✅ MOCK_MODE={settings.mock_mode}, MOCK_DELAY={settings.mock_delay_ms}ms")
    print(f"   {'✅' if settings.ai_available else '⚠️ '} IA {'habilitada' if settings.ai_available else 'deshabilitada (sin OPENAI_API_KEY)'}")
except ValueError as e:
    print(f"   ❌ Configuración inválida: {e}")
    sys.exit(1)

# 3) Verificar la CLI de Mockoon
print("\n3. Verificando Mockoon CLI:")
from sandbox_core.mockoon import MockoonManager  # noqa: E402

availability = MockoonManager().check_availability()
if availability["available"]:
    print(f"   ✅ {settings.mockoon_cli} {availability['version']}")
else:
    print(f"   ⚠️  Mockoon CLI no disponible ({availability['error']}). /api/mock sigue funcionando.")

# 4) Verificar que se puede crear la app
print("\n4. Verificando creación de la app FastAPI:")
try:
    from api.main import app
    print("   ✅ App FastAPI creada correctamente")
    print(f"   ✅ Título: {app.title}")
    print(f"   ✅ Versión: {app.version}")
except Exception as e:
    print(f"   ❌ Error creando app: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)

print("\n✅ Todas las verificaciones pasaron. La API debería funcionar correctamente.")
print("\nPara levantar el servidor:")
print("   python run_api.py")
