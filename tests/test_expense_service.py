from datetime import date
from decimal import Decimal

import pytest

from models.expense import Expense
from services.errors import NotFoundError, ValidationError
from services.expense_service import ExpenseService


def test_crud_de_despesa(db):
    despesa = ExpenseService.criar_despesa(db, " Aluguel ", "1500,00", date(2025, 5, 1))
    assert despesa.descricao == "Aluguel"
    assert despesa.valor == Decimal("1500.00")

    ExpenseService.atualizar_despesa(db, despesa.id, "Aluguel maio", 1450.5, date(2025, 5, 2))
    db.expire_all()
    atualizada = db.get(Expense, despesa.id)
    assert atualizada.descricao == "Aluguel maio"
    assert atualizada.valor == Decimal("1450.50")
    assert atualizada.data_despesa == date(2025, 5, 2)

    ExpenseService.excluir_despesa(db, despesa.id)
    assert db.query(Expense).count() == 0


@pytest.mark.parametrize(
    "descricao, valor, data_despesa",
    [
        ("", "10.00", date(2025, 1, 1)),
        ("Energia", "0", date(2025, 1, 1)),
        ("Energia", "-5", date(2025, 1, 1)),
        ("Energia", "10.00", None),
        ("Energia", 1e30, date(2025, 1, 1)),
    ],
)
def test_despesa_invalida(db, descricao, valor, data_despesa):
    with pytest.raises(ValidationError):
        ExpenseService.criar_despesa(db, descricao, valor, data_despesa)


def test_despesa_inexistente(db):
    with pytest.raises(NotFoundError):
        ExpenseService.excluir_despesa(db, 7)
    with pytest.raises(NotFoundError):
        ExpenseService.atualizar_despesa(db, 7, "X", "1.00", date.today())


def test_listar_e_totalizar(db):
    ExpenseService.criar_despesa(db, "Energia", "200.10", date(2025, 1, 10))
    ExpenseService.criar_despesa(db, "Internet", "99.90", date(2025, 2, 10))
    ExpenseService.criar_despesa(db, "Energia", "180.00", date(2025, 2, 10))

    despesas = ExpenseService.listar_despesas(db)
    assert [d.data_despesa for d in despesas] == [date(2025, 2, 10), date(2025, 2, 10), date(2025, 1, 10)]
    assert ExpenseService.total(despesas) == Decimal("480.00")

    energia = ExpenseService.listar_despesas(db, "energia")
    assert len(energia) == 2
    assert ExpenseService.total(energia) == Decimal("380.10")
    assert ExpenseService.total([]) == Decimal("0.00")
