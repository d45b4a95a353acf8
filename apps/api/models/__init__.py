"""
Modelos SQLAlchemy. Importar aquí para que Alembic los detecte en autogenerate.
"""

from models.base import Base
from models.nav_snapshot import NavSnapshot

__all__ = [
    "Base",
    "NavSnapshot",
]
