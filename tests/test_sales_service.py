from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from models.product import Product
from models.sale import Sale, SaleItem
from models.stock_movement import SAIDA, StockMovement
from services.errors import (
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from services.inventory_service import InventoryService
from services.sales_service import SaleLine, SalesService


def _estoque(db, produto_id):
    db.expire_all()
    return db.get(Product, produto_id).quantidade_estoque


def test_total_da_venda():
    linhas = [
        SaleLine(1, 2, Decimal("10.00")),
        SaleLine(2, 1, Decimal("30.00")),
    ]
    assert SalesService.calcular_total(linhas) == Decimal("50.00")


def test_subtotal_arredonda_centavos():
    assert SalesService.calcular_subtotal(3, "0.335") == Decimal("1.01")
    assert SalesService.calcular_subtotal(1, 19.9) == Decimal("19.90")


def test_validar_linhas():
    with pytest.raises(ValidationError):
        SalesService.validar_linhas([])
    with pytest.raises(ValidationError):
        SalesService.validar_linhas([SaleLine(None, 1, Decimal("1.00"))])
    with pytest.raises(ValidationError):
        SalesService.validar_linhas([SaleLine(1, 0, Decimal("1.00"))])
    with pytest.raises(ValidationError):
        SalesService.validar_linhas([SaleLine(1, 1, Decimal("-1.00"))])


def test_validar_estoque_soma_itens_repetidos():
    linhas = [SaleLine(1, 2, Decimal("5.00")), SaleLine(1, 2, Decimal("5.00"))]
    with pytest.raises(InsufficientStockError) as erro:
        SalesService.validar_estoque(linhas, {1: 3}, {1: "Caneta"})
    assert erro.value.solicitado == 4
    assert erro.value.disponivel == 3


def test_registrar_venda(db, criar_produto):
    a = criar_produto("Produto A", estoque=5, preco_venda="10.00")
    b = criar_produto("Produto B", estoque=5, preco_venda="15.00")

    venda = SalesService.registrar_venda(
        db,
        date(2025, 3, 10),
        "PIX",
        [SaleLine(a.id, 2, Decimal("10.00")), SaleLine(b.id, 2, Decimal("15.00"))],
    )

    assert venda.valor_total == Decimal("50.00")
    assert len(venda.itens) == 2
    assert _estoque(db, a.id) == 3
    assert _estoque(db, b.id) == 3

    saidas = db.query(StockMovement).filter(StockMovement.venda_id == venda.id).all()
    assert {m.produto_id: m.quantidade for m in saidas} == {a.id: 2, b.id: 2}
    assert all(m.tipo == SAIDA and m.motivo == f"Venda #{venda.id}" for m in saidas)
    assert InventoryService.verificar_consistencia(db) == []


def test_venda_recusada_por_falta_de_estoque(db, criar_produto):
    a = criar_produto("Produto A", estoque=1)
    b = criar_produto("Produto B", estoque=5)

    with pytest.raises(InsufficientStockError) as erro:
        SalesService.registrar_venda(
            db,
            date.today(),
            "Dinheiro",
            [SaleLine(a.id, 2, Decimal("10.00")), SaleLine(b.id, 1, Decimal("30.00"))],
        )

    assert "Produto A" in str(erro.value)
    assert db.query(Sale).count() == 0
    assert db.query(SaleItem).count() == 0
    assert _estoque(db, a.id) == 1
    assert _estoque(db, b.id) == 5


def test_itens_repetidos_sao_somados(db, criar_produto):
    a = criar_produto("Produto A", estoque=3)

    with pytest.raises(InsufficientStockError):
        SalesService.registrar_venda(
            db,
            date.today(),
            "Dinheiro",
            [SaleLine(a.id, 2, Decimal("1.00")), SaleLine(a.id, 2, Decimal("1.00"))],
        )
    assert _estoque(db, a.id) == 3

    venda = SalesService.registrar_venda(
        db,
        date.today(),
        "Dinheiro",
        [SaleLine(a.id, 1, Decimal("1.00")), SaleLine(a.id, 2, Decimal("1.00"))],
    )
    assert _estoque(db, a.id) == 0
    saidas = db.query(StockMovement).filter(StockMovement.venda_id == venda.id).all()
    assert [m.quantidade for m in saidas] == [3]


def test_venda_com_produto_inexistente(db, criar_produto):
    a = criar_produto("Produto A", estoque=3)
    with pytest.raises(NotFoundError):
        SalesService.registrar_venda(
            db,
            date.today(),
            "PIX",
            [SaleLine(a.id, 1, Decimal("1.00")), SaleLine(999, 1, Decimal("1.00"))],
        )
    assert db.query(Sale).count() == 0
    assert _estoque(db, a.id) == 3


def test_forma_de_pagamento_obrigatoria(db, criar_produto):
    a = criar_produto("Produto A", estoque=3)
    with pytest.raises(ValidationError):
        SalesService.registrar_venda(db, date.today(), " ", [SaleLine(a.id, 1, Decimal("1.00"))])


def test_excluir_venda_devolve_estoque(db, criar_produto):
    a = criar_produto("Produto A", estoque=5)
    venda = SalesService.registrar_venda(
        db, date.today(), "PIX", [SaleLine(a.id, 4, Decimal("2.50"))]
    )
    assert _estoque(db, a.id) == 1

    SalesService.excluir_venda(db, venda.id)

    assert _estoque(db, a.id) == 5
    assert db.query(Sale).count() == 0
    assert db.query(SaleItem).count() == 0
    assert db.query(StockMovement).filter(StockMovement.venda_id.isnot(None)).count() == 0
    assert InventoryService.verificar_consistencia(db) == []


def test_movimentacao_de_venda_nao_e_editada_pelo_estoque(db, criar_produto):
    a = criar_produto("Produto A", estoque=5)
    venda = SalesService.registrar_venda(
        db, date.today(), "PIX", [SaleLine(a.id, 1, Decimal("2.50"))]
    )
    mov = db.query(StockMovement).filter(StockMovement.venda_id == venda.id).one()

    with pytest.raises(ValidationError):
        InventoryService.editar_movimentacao(db, mov.id, SAIDA, 2)
    with pytest.raises(ValidationError):
        InventoryService.excluir_movimentacao(db, mov.id)
    assert _estoque(db, a.id) == 4


def test_listar_e_obter_vendas(db, criar_produto):
    a = criar_produto("Produto A", estoque=10)
    SalesService.registrar_venda(db, date(2025, 1, 5), "PIX", [SaleLine(a.id, 1, Decimal("3.00"))])
    recente = SalesService.registrar_venda(
        db, date(2025, 2, 7), "Dinheiro", [SaleLine(a.id, 2, Decimal("3.00"))]
    )

    vendas = SalesService.listar_vendas(db)
    assert [v.data_venda for v in vendas] == [date(2025, 2, 7), date(2025, 1, 5)]
    assert [v.forma_pagamento for v in SalesService.listar_vendas(db, "pix")] == ["PIX"]
    assert [v.id for v in SalesService.listar_vendas(db, "07/02/2025")] == [recente.id]

    detalhe = SalesService.obter_venda(db, recente.id)
    assert detalhe.itens[0].produto.nome == "Produto A"
    assert detalhe.itens[0].subtotal == Decimal("6.00")

    with pytest.raises(NotFoundError):
        SalesService.obter_venda(db, 999)

    assert SalesService.total_vendido(db, date(2025, 1, 1), date(2025, 1, 31)) == Decimal("3.00")


def test_falha_do_banco_desfaz_a_venda(db, criar_produto, monkeypatch, caplog):
    a = criar_produto("Produto A", estoque=5)
    b = criar_produto("Produto B", estoque=5)

    def falhar():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", falhar)

    with pytest.raises(PersistenceError) as erro:
        SalesService.registrar_venda(
            db,
            date.today(),
            "PIX",
            [SaleLine(a.id, 2, Decimal("10.00")), SaleLine(b.id, 1, Decimal("30.00"))],
        )

    assert str(erro.value) == "Não foi possível registrar a venda."
    assert "Erro ao salvar venda" in caplog.text
    assert db.query(Sale).count() == 0
    assert db.query(SaleItem).count() == 0
    assert db.query(StockMovement).filter(StockMovement.venda_id.isnot(None)).count() == 0
    assert _estoque(db, a.id) == 5
    assert _estoque(db, b.id) == 5
