import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base, init_db
from models.stock_movement import ENTRADA
from services.inventory_service import InventoryService
from services.product_service import ProductService


@pytest.fixture
def engine():
    """Banco SQLite em memória, com chaves estrangeiras ligadas, novo a cada teste."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def criar_produto(db):
    """Cria um produto e lança o estoque inicial como entrada."""

    def _criar(nome="Produto", estoque=0, preco_custo="10.00", preco_venda="20.00", categoria="Geral"):
        produto = ProductService.criar_produto(db, nome, preco_custo, preco_venda, categoria)
        if estoque:
            InventoryService.registrar_movimentacao(db, produto.id, ENTRADA, estoque, "Estoque inicial")
            db.refresh(produto)
        return produto

    return _criar
