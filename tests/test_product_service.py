from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from models.product import Product
from models.stock_movement import ENTRADA
from services.errors import NotFoundError, PersistenceError, ProductInUseError, ValidationError
from services.inventory_service import InventoryService
from services.product_service import MENSAGEM_VINCULADO, ProductReferences, ProductService
from services.sales_service import SaleLine, SalesService


def test_criar_produto_comeca_sem_estoque(db):
    produto = ProductService.criar_produto(db, "  Caneta  ", "1,50", 3, " Escrita ")
    assert produto.nome == "Caneta"
    assert produto.categoria == "Escrita"
    assert produto.preco_custo == Decimal("1.50")
    assert produto.preco_venda == Decimal("3.00")
    assert produto.quantidade_estoque == 0


@pytest.mark.parametrize(
    "nome, custo, venda, categoria",
    [
        ("", "1.00", "2.00", "Geral"),
        ("Caneta", "1.00", "2.00", ""),
        ("Caneta", "-1.00", "2.00", "Geral"),
        ("Caneta", "abc", "2.00", "Geral"),
        ("Caneta", "1.00", "1e12", "Geral"),
    ],
)
def test_criar_produto_invalido(db, nome, custo, venda, categoria):
    with pytest.raises(ValidationError):
        ProductService.criar_produto(db, nome, custo, venda, categoria)
    assert db.query(Product).count() == 0


def test_atualizar_nao_altera_estoque(db, criar_produto):
    produto = criar_produto("Caneta", estoque=7)
    ProductService.atualizar_produto(db, produto.id, "Caneta Preta", "2.00", "4.00", "Escrita")

    db.expire_all()
    atualizado = db.get(Product, produto.id)
    assert atualizado.nome == "Caneta Preta"
    assert atualizado.preco_venda == Decimal("4.00")
    assert atualizado.quantidade_estoque == 7


def test_listar_busca_por_nome_ou_categoria(db, criar_produto):
    criar_produto("Caneta", categoria="Escrita")
    criar_produto("Grampeador", categoria="Escritório")
    criar_produto("Café", categoria="Copa")

    assert {p.nome for p in ProductService.listar_produtos(db, "escri")} == {"Caneta", "Grampeador"}
    assert [p.nome for p in ProductService.listar_produtos(db, "caf")] == ["Café"]
    assert len(ProductService.listar_produtos(db)) == 3
    assert ProductService.listar_categorias(db) == ["Copa", "Escrita", "Escritório"]


def test_excluir_produto_sem_vinculos(db, criar_produto):
    produto = criar_produto("Avulso")
    ProductService.excluir_produto(db, produto.id)
    assert db.get(Product, produto.id) is None


def test_excluir_produto_inexistente(db):
    with pytest.raises(NotFoundError):
        ProductService.excluir_produto(db, 123)


def test_excluir_produto_com_movimentacao(db, criar_produto):
    produto = criar_produto("Caneta", estoque=2)

    with pytest.raises(ProductInUseError) as erro:
        ProductService.excluir_produto(db, produto.id)

    assert erro.value.has_movements
    assert not erro.value.has_sales
    assert "Movimentações de estoque" in str(erro.value)
    assert "Registros de vendas" not in str(erro.value)
    assert db.get(Product, produto.id) is not None


def test_excluir_produto_com_venda(db, criar_produto):
    produto = criar_produto("Caneta", estoque=2)
    SalesService.registrar_venda(db, date.today(), "PIX", [SaleLine(produto.id, 1, Decimal("3.00"))])

    refs = ProductService.verificar_referencias(db, produto.id)
    assert refs == ProductReferences(has_sales=True, has_movements=True)

    mensagem = ProductService.mensagem_bloqueio(refs)
    assert mensagem.startswith("Este produto não pode ser excluído porque está vinculado a:")
    assert "• Registros de vendas" in mensagem
    assert mensagem.endswith("a exclusão foi bloqueada.")


def test_banco_barra_exclusao_quando_consulta_previa_falha(db, criar_produto, monkeypatch):
    produto = criar_produto("Caneta")
    InventoryService.registrar_movimentacao(db, produto.id, ENTRADA, 1)
    # simula referência criada depois da consulta prévia
    monkeypatch.setattr(
        ProductService, "verificar_referencias", staticmethod(lambda db, produto_id: ProductReferences())
    )

    with pytest.raises(ProductInUseError) as erro:
        ProductService.excluir_produto(db, produto.id)

    assert str(erro.value) == MENSAGEM_VINCULADO
    db.expire_all()
    assert db.get(Product, produto.id) is not None


def test_resumo_estoque(db, criar_produto):
    criar_produto("A", estoque=3, preco_custo="2.00", preco_venda="5.00")
    criar_produto("B", estoque=2, preco_custo="1.50", preco_venda="4.00")
    criar_produto("C")

    resumo = ProductService.resumo_estoque(db)
    assert resumo.total_unidades == 5
    assert resumo.valor_custo == Decimal("9.00")
    assert resumo.valor_venda == Decimal("23.00")
    assert resumo.produtos_sem_estoque == 1


def test_resumo_estoque_vazio(db):
    resumo = ProductService.resumo_estoque(db)
    assert resumo.total_unidades == 0
    assert resumo.valor_custo == Decimal("0.00")
    assert resumo.produtos_sem_estoque == 0


def test_banco_fora_do_ar_na_exclusao(db, criar_produto, monkeypatch):
    produto = criar_produto("Caneta")
    db.refresh(produto)

    def falhar(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(db, "execute", falhar)

    with pytest.raises(PersistenceError) as erro:
        ProductService.excluir_produto(db, produto.id)
    assert str(erro.value) == "Não foi possível verificar os vínculos do produto."

    with pytest.raises(PersistenceError):
        ProductService.listar_produtos(db)

    monkeypatch.undo()
    db.expire_all()
    assert db.get(Product, produto.id) is not None
