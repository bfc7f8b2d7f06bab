"""
Seed de produtos fictícios para testes.
O estoque inicial é lançado como movimentação de entrada, para que o
histórico continue batendo com a quantidade em estoque.
"""
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from sqlalchemy import func, select

from config.database import SessionLocal, init_db
from config.logging_config import setup_logging
from models.product import Product
from models.stock_movement import ENTRADA
from services.inventory_service import InventoryService
from services.product_service import ProductService

PRODUTOS = [
    dict(nome="Café Torrado 500g", categoria="Mercearia", preco_custo="14.50", preco_venda="24.90", estoque=40),
    dict(nome="Açúcar Cristal 1kg", categoria="Mercearia", preco_custo="3.80", preco_venda="5.99", estoque=60),
    dict(nome="Arroz Branco 5kg", categoria="Mercearia", preco_custo="21.00", preco_venda="32.90", estoque=25),
    dict(nome="Refrigerante Cola 2L", categoria="Bebidas", preco_custo="6.20", preco_venda="9.99", estoque=48),
    dict(nome="Água Mineral 500ml", categoria="Bebidas", preco_custo="0.90", preco_venda="2.50", estoque=120),
    dict(nome="Suco de Uva 1L", categoria="Bebidas", preco_custo="7.40", preco_venda="12.90", estoque=18),
    dict(nome="Detergente 500ml", categoria="Limpeza", preco_custo="1.70", preco_venda="2.99", estoque=70),
    dict(nome="Sabão em Pó 1kg", categoria="Limpeza", preco_custo="9.50", preco_venda="15.90", estoque=22),
    dict(nome="Papel Toalha 2 rolos", categoria="Limpeza", preco_custo="4.10", preco_venda="6.99", estoque=0),
    dict(nome="Sabonete 90g", categoria="Higiene", preco_custo="1.20", preco_venda="2.49", estoque=90),
    dict(nome="Creme Dental 90g", categoria="Higiene", preco_custo="2.60", preco_venda="4.99", estoque=35),
]


def main() -> None:
    setup_logging()
    init_db()
    db = SessionLocal()
    try:
        criados, existentes = 0, 0
        for data in PRODUTOS:
            ja_existe = db.execute(
                select(Product.id).where(func.lower(Product.nome) == data["nome"].lower())
            ).first()
            if ja_existe:
                existentes += 1
                continue
            produto = ProductService.criar_produto(
                db,
                data["nome"],
                data["preco_custo"],
                data["preco_venda"],
                data["categoria"],
            )
            if data["estoque"]:
                InventoryService.registrar_movimentacao(
                    db, produto.id, ENTRADA, data["estoque"], "Estoque inicial"
                )
            criados += 1
        print(f"Produtos criados: {criados}, já existentes: {existentes}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
