"""
Movimentação de estoque: único registro das alterações de quantidade de um produto.
"""
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from config.database import Base

ENTRADA = "entrada"
SAIDA = "saida"
TIPOS_MOVIMENTACAO = (ENTRADA, SAIDA)


class StockMovement(Base):
    """
    Entrada ou saída de estoque de um produto.
    Movimentações geradas por uma venda guardam o venda_id.
    """

    __tablename__ = "movimentacoes_estoque"
    __table_args__ = (
        CheckConstraint("quantidade > 0", name="ck_movimentacoes_quantidade_positiva"),
        CheckConstraint("tipo IN ('entrada', 'saida')", name="ck_movimentacoes_tipo"),
    )

    id = Column(Integer, primary_key=True, index=True)
    produto_id = Column(Integer, ForeignKey("produtos.id"), nullable=False, index=True)
    tipo = Column(String(10), nullable=False)  # entrada | saida
    quantidade = Column(Integer, nullable=False)
    motivo = Column(String(255), nullable=True)
    data_movimentacao = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    venda_id = Column(Integer, ForeignKey("vendas.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    produto = relationship("Product", lazy="joined")
