"""
Serviço de estoque: regras de consistência das movimentações.

A quantidade em estoque do produto é um valor em cache do histórico de
movimentações. Toda escrita que altera o estoque grava a movimentação e
atualiza o produto na mesma transação.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.product import Product
from models.stock_movement import ENTRADA, SAIDA, TIPOS_MOVIMENTACAO, StockMovement
from services.errors import (
    BusinessError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    leitura,
)
from utils.validators import positive_int

logger = logging.getLogger(__name__)


@dataclass
class StockDivergence:
    produto_id: int
    nome: str
    estoque_registrado: int
    estoque_calculado: int


class InventoryService:
    """
    Entradas e saídas de estoque.
    """

    # ----- Regras puras -----

    @staticmethod
    def validar_quantidade(valor) -> int:
        return positive_int(valor, "A quantidade")

    @staticmethod
    def validar_tipo(tipo: str) -> str:
        if tipo not in TIPOS_MOVIMENTACAO:
            raise ValidationError("Selecione o tipo da movimentação (entrada ou saída).")
        return tipo

    @staticmethod
    def efeito(tipo: str, quantidade: int) -> int:
        """Variação do estoque provocada pela movimentação."""
        return quantidade if tipo == ENTRADA else -quantidade

    @staticmethod
    def aplicar(estoque: int, tipo: str, quantidade: int, nome: str = "o produto") -> int:
        """
        Retorna o novo estoque após a movimentação.
        Saída maior que o estoque disponível é recusada.
        """
        if tipo == SAIDA and quantidade > estoque:
            raise InsufficientStockError(nome, quantidade, estoque)
        return estoque + InventoryService.efeito(tipo, quantidade)

    # ----- Operações no banco -----

    @staticmethod
    def _produto_para_atualizar(db: Session, produto_id: int) -> Product:
        produto = db.execute(
            select(Product).where(Product.id == produto_id).with_for_update()
        ).scalar_one_or_none()
        if produto is None:
            raise NotFoundError("Produto não encontrado.")
        return produto

    @staticmethod
    def _movimentacao(db: Session, movimentacao_id: int) -> StockMovement:
        mov = db.get(StockMovement, movimentacao_id)
        if mov is None:
            raise NotFoundError("Movimentação não encontrada.")
        return mov

    @staticmethod
    def registrar_movimentacao(
        db: Session,
        produto_id: int,
        tipo: str,
        quantidade,
        motivo: Optional[str] = None,
        data_movimentacao: Optional[datetime] = None,
    ) -> StockMovement:
        tipo = InventoryService.validar_tipo(tipo)
        quantidade = InventoryService.validar_quantidade(quantidade)
        if not produto_id:
            raise ValidationError("Selecione um produto.")

        try:
            produto = InventoryService._produto_para_atualizar(db, produto_id)
            produto.quantidade_estoque = InventoryService.aplicar(
                produto.quantidade_estoque or 0, tipo, quantidade, produto.nome
            )
            mov = StockMovement(
                produto_id=produto.id,
                tipo=tipo,
                quantidade=quantidade,
                motivo=(motivo or "").strip() or None,
                data_movimentacao=data_movimentacao or datetime.utcnow(),
            )
            db.add(mov)
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao registrar movimentação do produto %s", produto_id)
            raise PersistenceError("Não foi possível registrar a movimentação.") from exc

        db.refresh(mov)
        logger.info(
            "Movimentação %s registrada: produto=%s tipo=%s quantidade=%s",
            mov.id, produto_id, tipo, quantidade,
        )
        return mov

    @staticmethod
    def editar_movimentacao(
        db: Session,
        movimentacao_id: int,
        tipo: str,
        quantidade,
        motivo: Optional[str] = None,
    ) -> StockMovement:
        """
        Desfaz o efeito original, valida e aplica o novo efeito numa única transação.
        motivo=None mantém o motivo atual.
        """
        tipo = InventoryService.validar_tipo(tipo)
        quantidade = InventoryService.validar_quantidade(quantidade)

        try:
            mov = InventoryService._movimentacao(db, movimentacao_id)
            if mov.venda_id is not None:
                raise ValidationError(
                    "Esta movimentação foi gerada por uma venda. Exclua ou ajuste a venda."
                )
            produto = InventoryService._produto_para_atualizar(db, mov.produto_id)

            base = (produto.quantidade_estoque or 0) - InventoryService.efeito(mov.tipo, mov.quantidade)
            novo = base + InventoryService.efeito(tipo, quantidade)
            if novo < 0:
                if tipo == SAIDA:
                    raise InsufficientStockError(produto.nome, quantidade, max(base, 0))
                # a entrada original já foi consumida por saídas posteriores
                raise ValidationError(
                    f"A alteração deixaria o estoque de {produto.nome} negativo ({novo})."
                )
            produto.quantidade_estoque = novo

            mov.tipo = tipo
            mov.quantidade = quantidade
            if motivo is not None:
                mov.motivo = motivo.strip() or None
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao editar movimentação %s", movimentacao_id)
            raise PersistenceError("Não foi possível atualizar a movimentação.") from exc

        db.refresh(mov)
        logger.info("Movimentação %s atualizada: tipo=%s quantidade=%s", mov.id, tipo, quantidade)
        return mov

    @staticmethod
    def excluir_movimentacao(db: Session, movimentacao_id: int) -> None:
        """
        Remove a movimentação desfazendo seu efeito no estoque.
        """
        try:
            mov = InventoryService._movimentacao(db, movimentacao_id)
            if mov.venda_id is not None:
                raise ValidationError(
                    "Esta movimentação foi gerada por uma venda. Exclua a venda para devolvê-la ao estoque."
                )
            produto = InventoryService._produto_para_atualizar(db, mov.produto_id)
            reverso = SAIDA if mov.tipo == ENTRADA else ENTRADA
            produto.quantidade_estoque = InventoryService.aplicar(
                produto.quantidade_estoque or 0, reverso, mov.quantidade, produto.nome
            )
            db.delete(mov)
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao excluir movimentação %s", movimentacao_id)
            raise PersistenceError("Não foi possível excluir a movimentação.") from exc

        logger.info("Movimentação %s excluída", movimentacao_id)

    @staticmethod
    @leitura("Não foi possível carregar as movimentações.")
    def listar_movimentacoes(
        db: Session,
        busca: Optional[str] = None,
        tipo: Optional[str] = None,
        limite: Optional[int] = None,
    ) -> List[StockMovement]:
        """
        Movimentações com nome/categoria do produto, mais recentes primeiro.
        """
        query = (
            select(StockMovement)
            .join(Product, Product.id == StockMovement.produto_id)
            .order_by(StockMovement.data_movimentacao.desc(), StockMovement.id.desc())
        )
        if tipo and tipo != "todos":
            query = query.where(StockMovement.tipo == tipo)
        termo = (busca or "").strip()
        if termo:
            padrao = f"%{termo}%"
            query = query.where(
                or_(
                    Product.nome.ilike(padrao),
                    Product.categoria.ilike(padrao),
                    StockMovement.motivo.ilike(padrao),
                )
            )
        if limite:
            query = query.limit(limite)
        return db.execute(query).scalars().all()

    @staticmethod
    @leitura("Não foi possível calcular o estoque pelo histórico.")
    def estoque_pelo_historico(db: Session, produto_id: int) -> int:
        """Estoque recalculado como soma líquida das movimentações."""
        saldo = db.execute(
            select(
                func.coalesce(
                    func.sum(
                        case(
                            (StockMovement.tipo == ENTRADA, StockMovement.quantidade),
                            else_=-StockMovement.quantidade,
                        )
                    ),
                    0,
                )
            ).where(StockMovement.produto_id == produto_id)
        ).scalar()
        return int(saldo or 0)

    @staticmethod
    @leitura("Não foi possível verificar o estoque.")
    def verificar_consistencia(db: Session) -> List[StockDivergence]:
        divergencias = []
        for produto in db.execute(select(Product).order_by(Product.nome)).scalars():
            calculado = InventoryService.estoque_pelo_historico(db, produto.id)
            if calculado != (produto.quantidade_estoque or 0):
                divergencias.append(
                    StockDivergence(
                        produto_id=produto.id,
                        nome=produto.nome,
                        estoque_registrado=produto.quantidade_estoque or 0,
                        estoque_calculado=calculado,
                    )
                )
        return divergencias

    @staticmethod
    def corrigir_estoque(db: Session, produto_id: int) -> int:
        """Regrava o estoque do produto a partir do histórico."""
        try:
            produto = InventoryService._produto_para_atualizar(db, produto_id)
            calculado = InventoryService.estoque_pelo_historico(db, produto_id)
            if calculado < 0:
                raise ValidationError(
                    f"O histórico de {produto.nome} resulta em estoque negativo ({calculado})."
                )
            anterior = produto.quantidade_estoque
            produto.quantidade_estoque = calculado
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao corrigir estoque do produto %s", produto_id)
            raise PersistenceError("Não foi possível corrigir o estoque.") from exc

        logger.warning("Estoque do produto %s corrigido: %s -> %s", produto_id, anterior, calculado)
        return calculado
