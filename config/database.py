"""
Configuração do banco de dados da aplicação de gestão
- Suporta SQLite para desenvolvimento local
- Suporta PostgreSQL (produção) via DATABASE_URL
"""
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config.settings import DATA_DIR, DATABASE_URL

DATA_DIR.mkdir(parents=True, exist_ok=True)


def build_engine(url: str) -> Engine:
    """
    Cria o engine conforme o tipo de banco.
    """
    if url.startswith("postgresql"):
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            pool_recycle=3600,
        )
    # SQLite (desenvolvimento local)
    return create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite só aplica chaves estrangeiras com o pragma ligado em cada conexão
    module = type(dbapi_connection).__module__
    if module.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base para os modelos
Base = declarative_base()


def init_db(bind: Optional[Engine] = None):
    """
    Cria todas as tabelas definidas nos modelos.
    Deve ser chamada uma vez na inicialização da aplicação.
    """
    # Importa modelos aqui para registrar no metadata
    from models import (  # noqa: F401
        user,
        product,
        stock_movement,
        sale,
        expense,
    )

    Base.metadata.create_all(bind=bind or engine)
