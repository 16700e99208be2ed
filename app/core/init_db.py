from dotenv import load_dotenv

from app.core.database import Base, get_engine
from app.models.consulta import Consulta  # noqa: F401
from app.models.reclamo import Reclamo, ReclamoArchivo, ReclamoMensaje, ReclamoTimeline  # noqa: F401
from app.models.user import User  # noqa: F401

# =========================================================
# INIT DB
# =========================================================


def create_tables() -> list:
    """
    Crea todas las tablas definidas en los modelos (idempotente).

    Returns:
        Nombres de las tablas registradas
    """
    Base.metadata.create_all(bind=get_engine())
    return sorted(Base.metadata.tables.keys())


def main():
    """
    Inicializa la base de datos para desarrollo local.

    En producción el esquema se gestiona con Alembic (alembic upgrade head).
    """
    load_dotenv()
    tables = create_tables()

    print("✅ Tablas creadas / registradas en SQLAlchemy:")
    for table in tables:
        print(f"   - {table}")

    print(f"\n📊 Total tablas: {len(tables)}")


if __name__ == "__main__":
    main()
