import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.expense import Expense
from services.errors import (
    BusinessError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    leitura,
)
from utils.validators import required_text, to_decimal

logger = logging.getLogger(__name__)


class ExpenseService:
    """
    Cadastro de despesas.
    """

    @staticmethod
    def _validar(descricao, valor, data_despesa):
        descricao = required_text(descricao, "a descrição")
        valor = to_decimal(valor, "Valor")
        if valor <= 0:
            raise ValidationError("O valor da despesa deve ser maior que zero.")
        if not isinstance(data_despesa, date):
            raise ValidationError("Informe a data da despesa.")
        return descricao, valor, data_despesa

    @staticmethod
    @leitura("Não foi possível carregar a despesa.")
    def obter_despesa(db: Session, despesa_id: int) -> Expense:
        despesa = db.get(Expense, despesa_id)
        if despesa is None:
            raise NotFoundError("Despesa não encontrada.")
        return despesa

    @staticmethod
    def criar_despesa(db: Session, descricao: str, valor, data_despesa: date) -> Expense:
        descricao, valor, data_despesa = ExpenseService._validar(descricao, valor, data_despesa)
        despesa = Expense(descricao=descricao, valor=valor, data_despesa=data_despesa)
        try:
            db.add(despesa)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao salvar despesa")
            raise PersistenceError("Não foi possível salvar a despesa.") from exc
        db.refresh(despesa)
        return despesa

    @staticmethod
    def atualizar_despesa(
        db: Session, despesa_id: int, descricao: str, valor, data_despesa: date
    ) -> Expense:
        descricao, valor, data_despesa = ExpenseService._validar(descricao, valor, data_despesa)
        try:
            despesa = ExpenseService.obter_despesa(db, despesa_id)
            despesa.descricao = descricao
            despesa.valor = valor
            despesa.data_despesa = data_despesa
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao atualizar despesa %s", despesa_id)
            raise PersistenceError("Não foi possível salvar a despesa.") from exc
        db.refresh(despesa)
        return despesa

    @staticmethod
    def excluir_despesa(db: Session, despesa_id: int) -> None:
        try:
            despesa = ExpenseService.obter_despesa(db, despesa_id)
            db.delete(despesa)
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao excluir despesa %s", despesa_id)
            raise PersistenceError("Não foi possível excluir a despesa.") from exc

    @staticmethod
    @leitura("Não foi possível carregar as despesas.")
    def listar_despesas(db: Session, busca: Optional[str] = None) -> List[Expense]:
        query = select(Expense).order_by(Expense.data_despesa.desc(), Expense.id.desc())
        termo = (busca or "").strip()
        if termo:
            query = query.where(Expense.descricao.ilike(f"%{termo}%"))
        return db.execute(query).scalars().all()

    @staticmethod
    def total(despesas: Iterable[Expense]) -> Decimal:
        return sum((Decimal(str(d.valor)) for d in despesas), Decimal("0.00"))
