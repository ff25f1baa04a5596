#!/usr/bin/env python3
"""
Script helper para ejecutar el API Sandbox.
Ejecuta desde la raíz del proyecto para asegurar que Python encuentre 'api' y 'sandbox_core'.

Variables:
    PORT (default: 3001), HOST (default: 0.0.0.0), RELOAD ("true" para autoreload)
"""

import os
import sys
from pathlib import Path

# Asegurar que el directorio raíz esté en el PYTHONPATH
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3001"))

    print(f"🚀 API Sandbox en http://localhost:{port}")
    print(f"📖 Documentación disponible en http://localhost:{port}/docs")
    print(f"🔌 WebSocket en ws://localhost:{port}/ws")
    uvicorn.run("api.main:app", host=host, port=port, reload=os.getenv("RELOAD", "false") == "true")
