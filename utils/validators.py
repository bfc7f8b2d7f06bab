"""
Validações de formulário usadas pelos serviços antes de acessar o banco.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from services.errors import ValidationError

CENTAVOS = Decimal("0.01")

# Limite das colunas Numeric(12, 2)
VALOR_MAXIMO = Decimal("1e10")


def to_decimal(value, campo: str = "Valor") -> Decimal:
    """
    Converte número/texto para Decimal com duas casas.
    Floats passam por str() para não herdar a imprecisão binária.
    """
    if value is None or value == "":
        raise ValidationError(f"{campo} é obrigatório.")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        numero = Decimal(str(value))
        if not numero.is_finite() or abs(numero) >= VALOR_MAXIMO:
            raise ValidationError(f"{campo} inválido.")
        return numero.quantize(CENTAVOS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{campo} inválido.") from exc


def positive_int(value, campo: str = "A quantidade") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{campo} deve ser um número inteiro.")
    if isinstance(value, str):
        texto = value.strip()
        # int() aceita dígitos unicode; só algarismos ASCII contam aqui
        if not texto.isascii():
            raise ValidationError(f"{campo} deve ser um número inteiro.")
        try:
            value = int(texto)
        except ValueError as exc:
            raise ValidationError(f"{campo} deve ser um número inteiro.") from exc
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{campo} deve ser um número inteiro.")
        value = int(value)
    elif not isinstance(value, int):
        raise ValidationError(f"{campo} deve ser um número inteiro.")
    if value <= 0:
        raise ValidationError(f"{campo} deve ser maior que zero.")
    return value


def required_text(value, campo: str) -> str:
    texto = (value or "").strip()
    if not texto:
        raise ValidationError(f"Preencha {campo}.")
    return texto
