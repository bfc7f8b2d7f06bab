"""
Relatórios: agrega vendas, custos e despesas por mês.

A agregação é uma redução pura sobre os registros carregados; as funções
carregar_* apenas convertem linhas do banco nesses registros.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from models.expense import Expense
from models.sale import Sale, SaleItem
from services.errors import ValidationError, leitura
from utils.validators import CENTAVOS

MESES = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

PERIODOS_RAPIDOS = {
    "hoje": "Hoje",
    "semana_atual": "Esta semana",
    "mes_atual": "Este mês",
    "mes_passado": "Mês passado",
    "ultimos_30": "Últimos 30 dias",
    "ultimos_90": "Últimos 90 dias",
}

ZERO = Decimal("0.00")

MonthKey = Tuple[int, int]


@dataclass
class SaleRecord:
    data: date
    valor_total: Decimal
    # (quantidade, preço de custo unitário) de cada item
    itens: List[Tuple[int, Decimal]] = field(default_factory=list)


@dataclass
class ExpenseRecord:
    data: date
    valor: Decimal


@dataclass
class MonthlySummary:
    ano: int
    mes: int
    rotulo: str
    vendas: Decimal = ZERO
    custos: Decimal = ZERO
    despesas: Decimal = ZERO
    lucro: Decimal = ZERO
    margem_bruta: Decimal = ZERO


@dataclass
class PeriodTotals:
    vendas: Decimal
    custos: Decimal
    despesas: Decimal
    lucro: Decimal
    margem_bruta: Decimal
    margem_liquida: Decimal


def _dec(valor) -> Decimal:
    return Decimal(str(valor or 0))


def percentual(parte: Decimal, total: Decimal) -> Decimal:
    """parte / total * 100, definido como 0 quando total é 0."""
    if not total:
        return ZERO
    return (parte / total * 100).quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def meses_do_ano(ano: int) -> List[MonthKey]:
    return [(ano, mes) for mes in range(1, 13)]


def meses_do_intervalo(inicio: date, fim: date) -> List[MonthKey]:
    if fim < inicio:
        raise ValidationError("A data final deve ser igual ou posterior à data inicial.")
    meses = []
    atual = inicio.replace(day=1)
    while atual <= fim:
        meses.append((atual.year, atual.month))
        atual += relativedelta(months=1)
    return meses


def rotulo_mes(chave: MonthKey, com_ano: bool = False) -> str:
    ano, mes = chave
    if com_ano:
        return f"{MESES[mes - 1]}/{ano % 100:02d}"
    return MESES[mes - 1]


def agregar_por_mes(
    vendas: Iterable[SaleRecord],
    despesas: Iterable[ExpenseRecord],
    meses: Sequence[MonthKey],
) -> List[MonthlySummary]:
    """
    Um resumo por mês pedido, na mesma ordem. Registros fora desses meses são ignorados.
    """
    com_ano = len({ano for ano, _ in meses}) > 1
    buckets: Dict[MonthKey, MonthlySummary] = {
        chave: MonthlySummary(ano=chave[0], mes=chave[1], rotulo=rotulo_mes(chave, com_ano))
        for chave in meses
    }

    for venda in vendas:
        resumo = buckets.get((venda.data.year, venda.data.month))
        if resumo is None:
            continue
        resumo.vendas += _dec(venda.valor_total)
        for quantidade, custo in venda.itens:
            resumo.custos += _dec(custo) * quantidade

    for despesa in despesas:
        resumo = buckets.get((despesa.data.year, despesa.data.month))
        if resumo is None:
            continue
        resumo.despesas += _dec(despesa.valor)

    for resumo in buckets.values():
        resumo.lucro = resumo.vendas - resumo.custos - resumo.despesas
        resumo.margem_bruta = percentual(resumo.vendas - resumo.custos, resumo.vendas)

    return [buckets[chave] for chave in meses]


def totalizar(resumos: Iterable[MonthlySummary]) -> PeriodTotals:
    resumos = list(resumos)
    vendas = sum((r.vendas for r in resumos), ZERO)
    custos = sum((r.custos for r in resumos), ZERO)
    despesas = sum((r.despesas for r in resumos), ZERO)
    lucro = vendas - custos - despesas
    return PeriodTotals(
        vendas=vendas,
        custos=custos,
        despesas=despesas,
        lucro=lucro,
        margem_bruta=percentual(vendas - custos, vendas),
        margem_liquida=percentual(lucro, vendas),
    )


def periodo_rapido(opcao: str, hoje: Optional[date] = None) -> Tuple[date, date]:
    """
    Retorna (inicio, fim), ambos inclusivos.
    "ultimos_30" vai de hoje menos 30 dias até hoje: 31 dias ao todo.
    "ultimos_90" segue a mesma regra e cobre 91 dias.
    """
    hoje = hoje or date.today()
    if opcao == "hoje":
        return hoje, hoje
    if opcao == "semana_atual":
        inicio = hoje - timedelta(days=hoje.weekday())
        return inicio, inicio + timedelta(days=6)
    if opcao == "mes_atual":
        return hoje.replace(day=1), hoje + relativedelta(day=31)
    if opcao == "mes_passado":
        inicio = hoje.replace(day=1) - relativedelta(months=1)
        return inicio, inicio + relativedelta(day=31)
    if opcao == "ultimos_30":
        return hoje - timedelta(days=30), hoje
    if opcao == "ultimos_90":
        return hoje - timedelta(days=90), hoje
    raise ValidationError(f"Período desconhecido: {opcao}")


# ----- Carga a partir do banco -----


@leitura("Não foi possível carregar as vendas do período.")
def carregar_vendas(db: Session, inicio: date, fim: date) -> List[SaleRecord]:
    """
    Vendas do período com o custo atual de cada produto vendido.
    """
    vendas = db.execute(
        select(Sale)
        .options(selectinload(Sale.itens).joinedload(SaleItem.produto))
        .where(Sale.data_venda >= inicio)
        .where(Sale.data_venda <= fim)
    ).scalars().all()
    return [
        SaleRecord(
            data=v.data_venda,
            valor_total=_dec(v.valor_total),
            itens=[
                (item.quantidade, _dec(item.produto.preco_custo if item.produto else 0))
                for item in v.itens
            ],
        )
        for v in vendas
    ]


@leitura("Não foi possível carregar as despesas do período.")
def carregar_despesas(db: Session, inicio: date, fim: date) -> List[ExpenseRecord]:
    despesas = db.execute(
        select(Expense)
        .where(Expense.data_despesa >= inicio)
        .where(Expense.data_despesa <= fim)
    ).scalars().all()
    return [ExpenseRecord(data=d.data_despesa, valor=_dec(d.valor)) for d in despesas]


def relatorio_anual(db: Session, ano: int) -> List[MonthlySummary]:
    inicio, fim = date(ano, 1, 1), date(ano, 12, 31)
    return agregar_por_mes(
        carregar_vendas(db, inicio, fim),
        carregar_despesas(db, inicio, fim),
        meses_do_ano(ano),
    )


def relatorio_periodo(db: Session, inicio: date, fim: date) -> List[MonthlySummary]:
    meses = meses_do_intervalo(inicio, fim)
    return agregar_por_mes(
        carregar_vendas(db, inicio, fim),
        carregar_despesas(db, inicio, fim),
        meses,
    )
