import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

from config.database import SessionLocal
from models.stock_movement import ENTRADA, SAIDA
from services.auth_service import AuthService
from services.errors import BusinessError
from services.inventory_service import InventoryService
from services.product_service import ProductService
from utils.formatters import format_currency, format_date, format_tipo_movimentacao
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header, run_action, show_flash


st.set_page_config(page_title="Estoque", page_icon="🔄", layout="wide")

AuthService.require_auth()
show_sidebar()

page_header("Estoque", "🔄", "Entradas e saídas de estoque. Saídas não podem exceder o estoque disponível.")
show_flash()

TIPOS = {"todos": "Todos os tipos", ENTRADA: "Entradas", SAIDA: "Saídas"}

db = SessionLocal()

try:
    resumo = ProductService.resumo_estoque(db)
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Unidades em estoque", resumo.total_unidades)
    with col2:
        st.metric("Valor (custo)", format_currency(resumo.valor_custo))
    with col3:
        st.metric("Valor (venda)", format_currency(resumo.valor_venda))
    with col4:
        st.metric("Produtos sem estoque", resumo.produtos_sem_estoque)

    tab_lista, tab_nova, tab_conferencia = st.tabs(
        ["Movimentações", "Nova movimentação", "Conferência"]
    )

    with tab_nova:
        produtos = ProductService.listar_produtos(db)
        if not produtos:
            st.info("Cadastre produtos em **Produtos** antes de movimentar o estoque.")
        else:
            por_id = {p.id: p for p in sorted(produtos, key=lambda p: p.nome.lower())}
            with st.form("movimentacao_form", clear_on_submit=True):
                produto_id = st.selectbox(
                    "Produto",
                    options=list(por_id),
                    format_func=lambda pid: f"{por_id[pid].nome} • {por_id[pid].categoria} • "
                    f"Estoque: {por_id[pid].quantidade_estoque}",
                )
                col_t, col_q = st.columns(2)
                with col_t:
                    tipo = st.selectbox(
                        "Tipo", options=[ENTRADA, SAIDA], format_func=format_tipo_movimentacao
                    )
                with col_q:
                    quantidade = st.number_input("Quantidade", min_value=1, value=1, step=1)
                motivo = st.text_area("Motivo (opcional)", placeholder="Descreva o motivo da movimentação...")
                salvar = st.form_submit_button("Salvar", type="primary")

            if salvar and run_action(
                lambda: InventoryService.registrar_movimentacao(
                    db, produto_id, tipo, int(quantidade), motivo
                ),
                "Movimentação registrada com sucesso.",
            ):
                st.rerun()

    with tab_lista:
        col_b, col_t = st.columns([3, 1])
        with col_b:
            busca = st.text_input("Buscar (produto, categoria ou motivo)")
        with col_t:
            tipo_filtro = st.selectbox("Tipo", options=list(TIPOS), format_func=TIPOS.get)

        movimentacoes = InventoryService.listar_movimentacoes(db, busca, tipo_filtro)
        if not movimentacoes:
            st.info(
                "Nenhuma movimentação encontrada."
                if busca or tipo_filtro != "todos"
                else "Nenhuma movimentação registrada."
            )
        else:
            st.dataframe(
                [
                    {
                        "Data": format_date(m.data_movimentacao),
                        "Produto": m.produto.nome,
                        "Categoria": m.produto.categoria,
                        "Tipo": format_tipo_movimentacao(m.tipo),
                        "Quantidade": m.quantidade,
                        "Motivo": m.motivo or "",
                    }
                    for m in movimentacoes
                ],
                use_container_width=True,
                hide_index=True,
            )

            editaveis = {m.id: m for m in movimentacoes if m.venda_id is None}
            st.markdown("---")
            st.subheader("Editar ou excluir")
            if not editaveis:
                st.caption("Movimentações geradas por vendas são ajustadas pela página Vendas.")
            else:
                mov_id = st.selectbox(
                    "Movimentação",
                    options=list(editaveis),
                    format_func=lambda i: f"{format_date(editaveis[i].data_movimentacao)} • "
                    f"{editaveis[i].produto.nome} • {format_tipo_movimentacao(editaveis[i].tipo)} "
                    f"{editaveis[i].quantidade}",
                )
                mov = editaveis[mov_id]
                with st.form("editar_movimentacao"):
                    col_t2, col_q2 = st.columns(2)
                    with col_t2:
                        novo_tipo = st.selectbox(
                            "Tipo",
                            options=[ENTRADA, SAIDA],
                            index=0 if mov.tipo == ENTRADA else 1,
                            format_func=format_tipo_movimentacao,
                        )
                    with col_q2:
                        nova_qtd = st.number_input("Quantidade", min_value=1, value=mov.quantidade, step=1)
                    novo_motivo = st.text_input("Motivo", value=mov.motivo or "")
                    col_s, col_x = st.columns(2)
                    with col_s:
                        atualizar = st.form_submit_button("Salvar alterações", type="primary")
                    with col_x:
                        excluir = st.form_submit_button("Excluir movimentação")

                if atualizar and run_action(
                    lambda: InventoryService.editar_movimentacao(
                        db, mov_id, novo_tipo, int(nova_qtd), novo_motivo
                    ),
                    "Movimentação atualizada com sucesso.",
                ):
                    st.rerun()
                if excluir and run_action(
                    lambda: InventoryService.excluir_movimentacao(db, mov_id),
                    "Movimentação excluída com sucesso.",
                ):
                    st.rerun()

    with tab_conferencia:
        st.caption("Compara o estoque de cada produto com a soma das suas movimentações.")
        divergencias = InventoryService.verificar_consistencia(db)
        if not divergencias:
            st.success("Estoque consistente com o histórico de movimentações.")
        else:
            st.warning(f"{len(divergencias)} produto(s) com estoque divergente.")
            st.dataframe(
                [
                    {
                        "Produto": d.nome,
                        "Estoque registrado": d.estoque_registrado,
                        "Pelo histórico": d.estoque_calculado,
                    }
                    for d in divergencias
                ],
                use_container_width=True,
                hide_index=True,
            )
            for d in divergencias:
                if st.button(f"Corrigir {d.nome}", key=f"corrigir_{d.produto_id}"):
                    if run_action(
                        lambda: InventoryService.corrigir_estoque(db, d.produto_id),
                        f"Estoque de {d.nome} corrigido.",
                    ):
                        st.rerun()
except BusinessError as exc:
    st.error(str(exc))
finally:
    db.close()
