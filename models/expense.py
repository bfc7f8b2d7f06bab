from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer, Numeric, String

from config.database import Base


class Expense(Base):
    """
    Despesas da loja.
    """

    __tablename__ = "despesas"
    __table_args__ = (
        CheckConstraint("valor > 0", name="ck_despesas_valor_positivo"),
    )

    id = Column(Integer, primary_key=True, index=True)
    descricao = Column(String(255), nullable=False)
    valor = Column(Numeric(12, 2), nullable=False)
    data_despesa = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
