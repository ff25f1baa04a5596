"""
Crea las tablas del sandbox en la base configurada por DATABASE_URL.

Ejecutar: python tools/init_db.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sandbox_core.db.database import DATABASE_URL, init_db  # noqa: E402


def main():
    init_db()
    print(f"✅ DB creada/verificada en {DATABASE_URL}")


if __name__ == "__main__":
    main()
