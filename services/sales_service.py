"""
Serviço de vendas: composição da venda, validação de estoque e gravação atômica.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from models.product import Product
from models.sale import Sale, SaleItem
from models.stock_movement import ENTRADA, SAIDA, StockMovement
from services.errors import (
    BusinessError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    leitura,
)
from services.inventory_service import InventoryService
from utils.validators import CENTAVOS, positive_int, required_text, to_decimal

logger = logging.getLogger(__name__)

FORMAS_PAGAMENTO = [
    "Dinheiro",
    "Cartão de Débito",
    "Cartão de Crédito",
    "PIX",
    "Transferência",
]


@dataclass
class SaleLine:
    """Linha do carrinho antes de gravar a venda."""

    produto_id: Optional[int]
    quantidade: int = 1
    preco_unitario: Decimal = Decimal("0.00")

    @property
    def subtotal(self) -> Decimal:
        return SalesService.calcular_subtotal(self.quantidade, self.preco_unitario)


class SalesService:
    @staticmethod
    def calcular_subtotal(quantidade: int, preco_unitario) -> Decimal:
        preco = Decimal(str(preco_unitario))
        return (preco * quantidade).quantize(CENTAVOS, rounding=ROUND_HALF_UP)

    @staticmethod
    def calcular_total(linhas: Sequence[SaleLine]) -> Decimal:
        total = sum((linha.subtotal for linha in linhas), Decimal("0.00"))
        return total.quantize(CENTAVOS, rounding=ROUND_HALF_UP)

    @staticmethod
    def validar_linhas(linhas: Sequence[SaleLine]) -> List[SaleLine]:
        if not linhas:
            raise ValidationError("Adicione pelo menos um item à venda.")
        validas = []
        for pos, linha in enumerate(linhas, start=1):
            if not linha.produto_id:
                raise ValidationError(f"Selecione o produto do item {pos}.")
            quantidade = positive_int(linha.quantidade, f"A quantidade do item {pos}")
            preco = to_decimal(linha.preco_unitario, f"Preço do item {pos}")
            if preco < 0:
                raise ValidationError(f"O preço do item {pos} não pode ser negativo.")
            validas.append(SaleLine(linha.produto_id, quantidade, preco))
        return validas

    @staticmethod
    def quantidades_por_produto(linhas: Sequence[SaleLine]) -> Dict[int, int]:
        totais: Dict[int, int] = OrderedDict()
        for linha in linhas:
            totais[linha.produto_id] = totais.get(linha.produto_id, 0) + linha.quantidade
        return totais

    @staticmethod
    def validar_estoque(
        linhas: Sequence[SaleLine],
        estoque: Dict[int, int],
        nomes: Optional[Dict[int, str]] = None,
    ) -> None:
        """
        Compara a quantidade pedida de cada produto (somando itens repetidos)
        com o estoque carregado. Qualquer falta recusa a venda inteira.
        """
        nomes = nomes or {}
        for produto_id, pedido in SalesService.quantidades_por_produto(linhas).items():
            disponivel = estoque.get(produto_id, 0)
            if pedido > disponivel:
                raise InsufficientStockError(
                    nomes.get(produto_id, f"o produto #{produto_id}"), pedido, disponivel
                )

    @staticmethod
    def registrar_venda(
        db: Session,
        data_venda: date,
        forma_pagamento: str,
        linhas: Sequence[SaleLine],
    ) -> Sale:
        """
        Grava venda, itens e saídas de estoque numa única transação.
        """
        if not data_venda:
            raise ValidationError("Informe a data da venda.")
        forma_pagamento = required_text(forma_pagamento, "a forma de pagamento")
        linhas = SalesService.validar_linhas(linhas)
        pedidos = SalesService.quantidades_por_produto(linhas)

        try:
            produtos = {
                p.id: p
                for p in db.execute(
                    select(Product).where(Product.id.in_(list(pedidos))).with_for_update()
                ).scalars()
            }
            faltando = [pid for pid in pedidos if pid not in produtos]
            if faltando:
                raise NotFoundError(f"Produto #{faltando[0]} não encontrado.")

            SalesService.validar_estoque(
                linhas,
                {pid: p.quantidade_estoque or 0 for pid, p in produtos.items()},
                {pid: p.nome for pid, p in produtos.items()},
            )

            venda = Sale(
                data_venda=data_venda,
                valor_total=SalesService.calcular_total(linhas),
                forma_pagamento=forma_pagamento,
            )
            for linha in linhas:
                venda.itens.append(
                    SaleItem(
                        produto_id=linha.produto_id,
                        quantidade=linha.quantidade,
                        preco_unitario=linha.preco_unitario,
                        subtotal=linha.subtotal,
                    )
                )
            db.add(venda)
            db.flush()

            for produto_id, quantidade in pedidos.items():
                produto = produtos[produto_id]
                produto.quantidade_estoque = InventoryService.aplicar(
                    produto.quantidade_estoque or 0, SAIDA, quantidade, produto.nome
                )
                venda.movimentacoes.append(
                    StockMovement(
                        produto_id=produto_id,
                        tipo=SAIDA,
                        quantidade=quantidade,
                        motivo=f"Venda #{venda.id}",
                        venda_id=venda.id,
                    )
                )
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao salvar venda")
            raise PersistenceError("Não foi possível registrar a venda.") from exc

        db.refresh(venda)
        logger.info(
            "Venda %s registrada: %s itens, total %s", venda.id, len(linhas), venda.valor_total
        )
        return venda

    @staticmethod
    @leitura("Não foi possível carregar as vendas.")
    def listar_vendas(db: Session, busca: Optional[str] = None) -> List[Sale]:
        vendas = db.execute(
            select(Sale).order_by(Sale.data_venda.desc(), Sale.id.desc())
        ).scalars().all()
        termo = (busca or "").strip().lower()
        if not termo:
            return vendas
        return [
            v
            for v in vendas
            if termo in (v.forma_pagamento or "").lower()
            or termo in v.data_venda.strftime("%d/%m/%Y")
        ]

    @staticmethod
    @leitura("Não foi possível carregar a venda.")
    def obter_venda(db: Session, venda_id: int) -> Sale:
        venda = db.execute(
            select(Sale)
            .options(selectinload(Sale.itens).joinedload(SaleItem.produto))
            .where(Sale.id == venda_id)
        ).scalar_one_or_none()
        if venda is None:
            raise NotFoundError("Venda não encontrada.")
        return venda

    @staticmethod
    def excluir_venda(db: Session, venda_id: int) -> None:
        """
        Exclui a venda com seus itens e devolve ao estoque as quantidades vendidas.
        """
        try:
            venda = db.get(Sale, venda_id)
            if venda is None:
                raise NotFoundError("Venda não encontrada.")
            for mov in list(venda.movimentacoes):
                produto = db.execute(
                    select(Product).where(Product.id == mov.produto_id).with_for_update()
                ).scalar_one()
                produto.quantidade_estoque = InventoryService.aplicar(
                    produto.quantidade_estoque or 0, ENTRADA, mov.quantidade, produto.nome
                )
            db.delete(venda)
            db.commit()
        except BusinessError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Erro ao excluir venda %s", venda_id)
            raise PersistenceError("Não foi possível excluir a venda.") from exc

        logger.info("Venda %s excluída", venda_id)

    @staticmethod
    @leitura("Não foi possível calcular o total vendido.")
    def total_vendido(db: Session, inicio: date, fim: date) -> Decimal:
        total = db.execute(
            select(func.coalesce(func.sum(Sale.valor_total), 0))
            .where(Sale.data_venda >= inicio)
            .where(Sale.data_venda <= fim)
        ).scalar()
        return Decimal(str(total or 0)).quantize(CENTAVOS)
