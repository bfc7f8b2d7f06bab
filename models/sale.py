from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from config.database import Base


class Sale(Base):
    """
    Venda (cabeçalho).
    """

    __tablename__ = "vendas"

    id = Column(Integer, primary_key=True, index=True)
    data_venda = Column(Date, nullable=False, index=True)
    valor_total = Column(Numeric(12, 2), nullable=False, default=0)
    forma_pagamento = Column(String(50), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    itens = relationship(
        "SaleItem",
        back_populates="venda",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    movimentacoes = relationship(
        "StockMovement",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SaleItem(Base):
    """
    Itens de venda.
    """

    __tablename__ = "itens_venda"
    __table_args__ = (
        CheckConstraint("quantidade > 0", name="ck_itens_venda_quantidade_positiva"),
    )

    id = Column(Integer, primary_key=True, index=True)
    venda_id = Column(Integer, ForeignKey("vendas.id", ondelete="CASCADE"), nullable=False, index=True)
    produto_id = Column(Integer, ForeignKey("produtos.id"), nullable=False, index=True)
    quantidade = Column(Integer, nullable=False)
    preco_unitario = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)

    venda = relationship("Sale", back_populates="itens")
    produto = relationship("Product", lazy="joined")
