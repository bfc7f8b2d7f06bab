from datetime import date
from decimal import Decimal

import pytest

from services import report_service
from services.errors import ValidationError
from services.expense_service import ExpenseService
from services.product_service import ProductService
from services.report_service import ExpenseRecord, SaleRecord
from services.sales_service import SaleLine, SalesService


def test_ano_sem_dados_tem_doze_meses_zerados():
    resumos = report_service.agregar_por_mes([], [], report_service.meses_do_ano(2025))

    assert len(resumos) == 12
    assert [r.rotulo for r in resumos][:3] == ["Jan", "Fev", "Mar"]
    for r in resumos:
        assert r.vendas == r.custos == r.despesas == r.lucro == Decimal("0")
        assert r.margem_bruta == Decimal("0")


def test_agregacao_mensal():
    vendas = [
        SaleRecord(date(2025, 3, 1), Decimal("100.00"), [(2, Decimal("20.00"))]),
        SaleRecord(date(2025, 3, 20), Decimal("50.00"), [(1, Decimal("10.00")), (1, Decimal("5.00"))]),
        SaleRecord(date(2024, 3, 5), Decimal("999.00"), [(1, Decimal("1.00"))]),
    ]
    despesas = [
        ExpenseRecord(date(2025, 3, 31), Decimal("30.00")),
        ExpenseRecord(date(2025, 4, 1), Decimal("10.00")),
    ]

    resumos = report_service.agregar_por_mes(vendas, despesas, report_service.meses_do_ano(2025))
    marco, abril = resumos[2], resumos[3]

    assert marco.vendas == Decimal("150.00")
    assert marco.custos == Decimal("55.00")
    assert marco.despesas == Decimal("30.00")
    assert marco.lucro == Decimal("65.00")
    assert marco.margem_bruta == Decimal("63.33")

    assert abril.vendas == Decimal("0")
    assert abril.lucro == Decimal("-10.00")
    assert abril.margem_bruta == Decimal("0")

    for r in resumos:
        assert r.lucro == r.vendas - r.custos - r.despesas


def test_totalizar():
    resumos = report_service.agregar_por_mes(
        [SaleRecord(date(2025, 1, 2), Decimal("200.00"), [(4, Decimal("25.00"))])],
        [ExpenseRecord(date(2025, 2, 2), Decimal("50.00"))],
        report_service.meses_do_ano(2025),
    )
    totais = report_service.totalizar(resumos)
    assert totais.vendas == Decimal("200.00")
    assert totais.custos == Decimal("100.00")
    assert totais.lucro == Decimal("50.00")
    assert totais.margem_bruta == Decimal("50.00")
    assert totais.margem_liquida == Decimal("25.00")

    vazio = report_service.totalizar([])
    assert vazio.margem_liquida == Decimal("0")


def test_meses_do_intervalo():
    meses = report_service.meses_do_intervalo(date(2024, 11, 15), date(2025, 2, 3))
    assert meses == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]

    resumos = report_service.agregar_por_mes([], [], meses)
    assert [r.rotulo for r in resumos] == ["Nov/24", "Dez/24", "Jan/25", "Fev/25"]

    with pytest.raises(ValidationError):
        report_service.meses_do_intervalo(date(2025, 2, 1), date(2025, 1, 1))


@pytest.mark.parametrize(
    "opcao, esperado",
    [
        ("hoje", (date(2025, 3, 12), date(2025, 3, 12))),
        ("semana_atual", (date(2025, 3, 10), date(2025, 3, 16))),
        ("mes_atual", (date(2025, 3, 1), date(2025, 3, 31))),
        ("mes_passado", (date(2025, 2, 1), date(2025, 2, 28))),
        ("ultimos_30", (date(2025, 2, 10), date(2025, 3, 12))),
        ("ultimos_90", (date(2024, 12, 12), date(2025, 3, 12))),
    ],
)
def test_periodo_rapido(opcao, esperado):
    assert report_service.periodo_rapido(opcao, hoje=date(2025, 3, 12)) == esperado


def test_ultimos_dias_inclui_as_duas_pontas():
    inicio, fim = report_service.periodo_rapido("ultimos_30", hoje=date(2025, 3, 12))
    assert (fim - inicio).days + 1 == 31
    inicio, fim = report_service.periodo_rapido("ultimos_90", hoje=date(2025, 3, 12))
    assert (fim - inicio).days + 1 == 91


def test_periodo_desconhecido():
    with pytest.raises(ValidationError):
        report_service.periodo_rapido("trimestre", hoje=date(2025, 3, 12))


def test_relatorio_anual_do_banco(db, criar_produto):
    produto = criar_produto("Caneta", estoque=10, preco_custo="2.00", preco_venda="5.00")
    SalesService.registrar_venda(db, date(2025, 6, 3), "PIX", [SaleLine(produto.id, 4, Decimal("5.00"))])
    ExpenseService.criar_despesa(db, "Frete", "3.00", date(2025, 6, 20))
    ExpenseService.criar_despesa(db, "Frete", "9.00", date(2026, 1, 5))

    junho = report_service.relatorio_anual(db, 2025)[5]
    assert junho.vendas == Decimal("20.00")
    assert junho.custos == Decimal("8.00")
    assert junho.despesas == Decimal("3.00")
    assert junho.lucro == Decimal("9.00")

    periodo = report_service.relatorio_periodo(db, date(2025, 6, 1), date(2025, 6, 30))
    assert len(periodo) == 1
    assert periodo[0].lucro == Decimal("9.00")


def test_custo_usa_preco_de_custo_atual(db, criar_produto):
    produto = criar_produto("Caneta", estoque=10, preco_custo="2.00")
    SalesService.registrar_venda(db, date(2025, 6, 3), "PIX", [SaleLine(produto.id, 2, Decimal("5.00"))])
    ProductService.atualizar_produto(db, produto.id, "Caneta", "3.00", "5.00", "Geral")

    junho = report_service.relatorio_anual(db, 2025)[5]
    assert junho.custos == Decimal("6.00")
