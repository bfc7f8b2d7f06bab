from datetime import date, datetime
from decimal import Decimal


def format_currency(value) -> str:
    """
    Formata um número como moeda em reais (R$ 1.234,56).
    """
    value = Decimal(str(value or 0))
    return f"R$ {value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def format_date(d: date | datetime) -> str:
    """
    Formata datas no padrão brasileiro.
    """
    if isinstance(d, datetime):
        return d.strftime("%d/%m/%Y %H:%M")
    return d.strftime("%d/%m/%Y")


def format_percent(value) -> str:
    return f"{Decimal(str(value or 0)):.1f}%".replace(".", ",")


def format_tipo_movimentacao(tipo: str) -> str:
    return "Entrada" if tipo == "entrada" else "Saída"
