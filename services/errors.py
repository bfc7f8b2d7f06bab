"""
Erros de negócio da aplicação.
A mensagem (str(erro)) é sempre apresentável ao usuário.
"""
import functools
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

FOREIGN_KEY_VIOLATION = "23503"


class BusinessError(Exception):
    """Erro recuperável no ponto da ação do usuário."""


class ValidationError(BusinessError):
    """Dado inválido, detectado antes de qualquer acesso ao banco."""


class InsufficientStockError(ValidationError):
    def __init__(self, nome: str, solicitado: int, disponivel: int):
        self.nome = nome
        self.solicitado = solicitado
        self.disponivel = disponivel
        super().__init__(
            f"Estoque insuficiente para {nome}. "
            f"Solicitado: {solicitado}, disponível: {disponivel} unidades."
        )


class NotFoundError(BusinessError):
    pass


class ProductInUseError(BusinessError):
    """Produto referenciado por vendas e/ou movimentações."""

    def __init__(self, message: str, has_sales: bool = False, has_movements: bool = False):
        self.has_sales = has_sales
        self.has_movements = has_movements
        super().__init__(message)


class PersistenceError(BusinessError):
    """Falha do banco de dados; a operação foi desfeita."""


def is_foreign_key_violation(exc: Exception) -> bool:
    """
    Reconhece violação de chave estrangeira no PostgreSQL (SQLSTATE 23503)
    e no SQLite.
    """
    if not isinstance(exc, IntegrityError):
        return False
    orig = exc.orig
    if getattr(orig, "pgcode", None) == FOREIGN_KEY_VIOLATION:
        return True
    if getattr(orig, "sqlstate", None) == FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY constraint failed" in str(orig)


def leitura(mensagem: str):
    """
    Decora consultas: falha do banco vira PersistenceError com a mensagem dada.
    A sessão recebida como primeiro argumento é desfeita.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as exc:
                db = args[0] if args else kwargs.get("db")
                if isinstance(db, Session):
                    db.rollback()
                logger.exception("Erro de leitura em %s", func.__qualname__)
                raise PersistenceError(mensagem) from exc

        return wrapper

    return decorator
