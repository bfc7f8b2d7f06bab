from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String

from config.database import Base


class Product(Base):
    """
    Produtos cadastrados.
    A quantidade em estoque é mantida pelas movimentações de estoque; nunca é
    editada diretamente pelo cadastro.
    """

    __tablename__ = "produtos"
    __table_args__ = (
        CheckConstraint("quantidade_estoque >= 0", name="ck_produtos_estoque_nao_negativo"),
    )

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(200), nullable=False)
    preco_custo = Column(Numeric(12, 2), nullable=False, default=0)
    preco_venda = Column(Numeric(12, 2), nullable=False, default=0)
    # Texto livre (sem tabela de categorias)
    categoria = Column(String(100), nullable=False, default="")
    quantidade_estoque = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
