"""
Serviço de produtos: cadastro e exclusão protegida por referências.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.product import Product
from models.sale import SaleItem
from models.stock_movement import StockMovement
from services.errors import (
    BusinessError,
    NotFoundError,
    PersistenceError,
    ProductInUseError,
    ValidationError,
    is_foreign_key_violation,
    leitura,
)
from utils.validators import required_text, to_decimal

logger = logging.getLogger(__name__)

MENSAGEM_VINCULADO = (
    "Este produto não pode ser excluído porque está vinculado a registros existentes.\n\n"
    "Para manter a integridade dos dados históricos, a exclusão foi bloqueada."
)


@dataclass
class ProductReferences:
    has_sales: bool = False
    has_movements: bool = False

    @property
    def blocked(self) -> bool:
        return self.has_sales or self.has_movements


@dataclass
class StockSummary:
    total_unidades: int
    valor_custo: Decimal
    valor_venda: Decimal
    produtos_sem_estoque: int


class ProductService:
    @staticmethod
    def _validar(nome, preco_custo, preco_venda, categoria):
        nome = required_text(nome, "o nome do produto")
        categoria = required_text(categoria, "a categoria")
        custo = to_decimal(preco_custo, "Preço de custo")
        venda = to_decimal(preco_venda, "Preço de venda")
        if custo < 0 or venda < 0:
            raise ValidationError("Os preços não podem ser negativos.")
        return nome, custo, venda, categoria

    @staticmethod
    @leitura("Não foi possível carregar o produto.")
    def obter_produto(db: Session, produto_id: int) -> Product:
        produto = db.get(Product, produto_id)
        if produto is None:
            raise NotFoundError("Produto não encontrado.")
        return produto

    @staticmethod
    def criar_produto(db: Session, nome: str, preco_custo, preco_venda, categoria: str) -> Product:
        """
        Novos produtos sempre começam com estoque zero; o estoque entra por movimentação.
        """
        nome, custo, venda, categoria = ProductService._validar(
            nome, preco_custo, preco_venda, categoria
        )
        produto = Product(
            nome=nome,
            preco_custo=custo,
            preco_venda=venda,
            categoria=categoria,
            quantidade_estoque=0,
        )
        try:
            db.add(produto)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao salvar produto")
            raise PersistenceError("Não foi possível salvar o produto.") from exc
        db.refresh(produto)
        logger.info("Produto %s cadastrado: %s", produto.id, produto.nome)
        return produto

    @staticmethod
    def atualizar_produto(
        db: Session, produto_id: int, nome: str, preco_custo, preco_venda, categoria: str
    ) -> Product:
        """Atualiza apenas os dados cadastrais; o estoque não é alterado aqui."""
        nome, custo, venda, categoria = ProductService._validar(
            nome, preco_custo, preco_venda, categoria
        )
        try:
            produto = ProductService.obter_produto(db, produto_id)
            produto.nome = nome
            produto.preco_custo = custo
            produto.preco_venda = venda
            produto.categoria = categoria
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao atualizar produto %s", produto_id)
            raise PersistenceError("Não foi possível salvar o produto.") from exc
        db.refresh(produto)
        return produto

    @staticmethod
    @leitura("Não foi possível carregar os produtos.")
    def listar_produtos(db: Session, busca: Optional[str] = None) -> List[Product]:
        query = select(Product).order_by(Product.created_at.desc(), Product.id.desc())
        termo = (busca or "").strip()
        if termo:
            padrao = f"%{termo}%"
            query = query.where(or_(Product.nome.ilike(padrao), Product.categoria.ilike(padrao)))
        return db.execute(query).scalars().all()

    @staticmethod
    @leitura("Não foi possível carregar as categorias.")
    def listar_categorias(db: Session) -> List[str]:
        categorias = db.execute(
            select(Product.categoria).where(Product.categoria != "").distinct()
        ).scalars().all()
        return sorted({c.strip() for c in categorias if c and c.strip()}, key=str.lower)

    @staticmethod
    @leitura("Não foi possível verificar os vínculos do produto.")
    def verificar_referencias(db: Session, produto_id: int) -> ProductReferences:
        """
        Consulta prévia (apenas informativa): a restrição do banco é quem decide.
        """
        tem_vendas = db.execute(
            select(SaleItem.id).where(SaleItem.produto_id == produto_id).limit(1)
        ).first()
        tem_movimentacoes = db.execute(
            select(StockMovement.id).where(StockMovement.produto_id == produto_id).limit(1)
        ).first()
        return ProductReferences(
            has_sales=tem_vendas is not None,
            has_movements=tem_movimentacoes is not None,
        )

    @staticmethod
    def mensagem_bloqueio(refs: ProductReferences) -> str:
        linhas = ["Este produto não pode ser excluído porque está vinculado a:"]
        if refs.has_sales:
            linhas.append("• Registros de vendas")
        if refs.has_movements:
            linhas.append("• Movimentações de estoque")
        linhas.append("")
        linhas.append("Para manter a integridade dos dados históricos, a exclusão foi bloqueada.")
        return "\n".join(linhas)

    @staticmethod
    def excluir_produto(db: Session, produto_id: int) -> None:
        try:
            produto = ProductService.obter_produto(db, produto_id)
            refs = ProductService.verificar_referencias(db, produto_id)
            if refs.blocked:
                raise ProductInUseError(
                    ProductService.mensagem_bloqueio(refs),
                    has_sales=refs.has_sales,
                    has_movements=refs.has_movements,
                )
            db.delete(produto)
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            if is_foreign_key_violation(exc):
                # referência criada entre a consulta prévia e a exclusão
                logger.warning("Exclusão do produto %s barrada pelo banco", produto_id)
                raise ProductInUseError(MENSAGEM_VINCULADO) from exc
            logger.exception("Erro ao excluir produto %s", produto_id)
            raise PersistenceError("Não foi possível excluir o produto.") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao excluir produto %s", produto_id)
            raise PersistenceError("Não foi possível excluir o produto.") from exc

        logger.info("Produto %s excluído", produto_id)

    @staticmethod
    @leitura("Não foi possível carregar o resumo do estoque.")
    def resumo_estoque(db: Session) -> StockSummary:
        unidades, custo, venda, zerados = db.execute(
            select(
                func.coalesce(func.sum(Product.quantidade_estoque), 0),
                func.coalesce(func.sum(Product.preco_custo * Product.quantidade_estoque), 0),
                func.coalesce(func.sum(Product.preco_venda * Product.quantidade_estoque), 0),
                func.coalesce(func.sum(case((Product.quantidade_estoque <= 0, 1), else_=0)), 0),
            )
        ).one()
        return StockSummary(
            total_unidades=int(unidades or 0),
            valor_custo=to_decimal(custo or 0),
            valor_venda=to_decimal(venda or 0),
            produtos_sem_estoque=int(zerados or 0),
        )
