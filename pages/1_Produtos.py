import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

from config.database import SessionLocal
from services.auth_service import AuthService
from services.errors import BusinessError, NotFoundError
from services.product_service import ProductService
from utils.formatters import format_currency
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header, run_action, show_flash


st.set_page_config(page_title="Produtos", page_icon="📦", layout="wide")

AuthService.require_auth()
show_sidebar()

page_header(
    "Produtos",
    "📦",
    "Cadastre e edite produtos. O estoque é alterado apenas por movimentações.",
)
show_flash()

if "selected_product_id" not in st.session_state:
    st.session_state.selected_product_id = None

db = SessionLocal()

try:
    col_lista, col_form = st.columns([2, 1])

    with col_lista:
        col_busca, col_novo = st.columns([3, 1])
        with col_busca:
            busca = st.text_input(
                "Buscar produto (nome ou categoria)",
                placeholder="Ex: camiseta, bebidas...",
            )
        with col_novo:
            st.markdown("<div style='height:1.8rem'></div>", unsafe_allow_html=True)
            if st.button("➕ Novo produto", type="primary", use_container_width=True):
                st.session_state.selected_product_id = None
                st.rerun()

        produtos = ProductService.listar_produtos(db, busca)
        if not produtos:
            st.info("Nenhum produto encontrado." if busca else "Nenhum produto cadastrado.")
        else:
            st.dataframe(
                [
                    {
                        "Nome": p.nome,
                        "Categoria": p.categoria,
                        "Preço custo": format_currency(p.preco_custo),
                        "Preço venda": format_currency(p.preco_venda),
                        "Estoque": p.quantidade_estoque,
                        "Alerta": "⚠️ Sem estoque" if p.quantidade_estoque <= 0 else "",
                    }
                    for p in produtos
                ],
                use_container_width=True,
                hide_index=True,
            )

            opcoes = {p.id: f"{p.nome} ({p.categoria})" for p in produtos}
            escolhido = st.selectbox(
                "Selecione um produto",
                options=list(opcoes),
                format_func=lambda pid: opcoes[pid],
            )
            col_e, col_x = st.columns(2)
            with col_e:
                if st.button("Editar", use_container_width=True):
                    st.session_state.selected_product_id = escolhido
                    st.rerun()
            with col_x:
                excluir = st.button("Excluir", use_container_width=True)

            if excluir:
                # Consulta prévia apenas para avisar; a exclusão confirma no banco
                refs = ProductService.verificar_referencias(db, escolhido)
                if refs.blocked:
                    st.error(ProductService.mensagem_bloqueio(refs))
                else:
                    st.session_state.confirm_delete_product = escolhido

            pendente = st.session_state.get("confirm_delete_product")
            if pendente and pendente in opcoes:
                st.warning(f"Excluir **{opcoes[pendente]}**? Esta ação não pode ser desfeita.")
                col_s, col_n = st.columns(2)
                with col_s:
                    if st.button("Confirmar exclusão", type="primary", use_container_width=True):
                        st.session_state.pop("confirm_delete_product", None)
                        if run_action(
                            lambda: ProductService.excluir_produto(db, pendente),
                            "Produto excluído com sucesso.",
                        ):
                            if st.session_state.selected_product_id == pendente:
                                st.session_state.selected_product_id = None
                            st.rerun()
                with col_n:
                    if st.button("Cancelar", use_container_width=True):
                        st.session_state.pop("confirm_delete_product", None)
                        st.rerun()

    with col_form:
        produto_atual = None
        if st.session_state.selected_product_id:
            try:
                produto_atual = ProductService.obter_produto(db, st.session_state.selected_product_id)
            except NotFoundError:
                st.session_state.selected_product_id = None

        st.subheader("Editar produto" if produto_atual else "Novo produto")
        categorias = ProductService.listar_categorias(db)
        with st.form("produto_form", clear_on_submit=produto_atual is None):
            nome = st.text_input("Nome", value=produto_atual.nome if produto_atual else "")
            preco_custo = st.number_input(
                "Preço de custo",
                min_value=0.0,
                step=0.01,
                format="%.2f",
                value=float(produto_atual.preco_custo) if produto_atual else 0.0,
            )
            preco_venda = st.number_input(
                "Preço de venda",
                min_value=0.0,
                step=0.01,
                format="%.2f",
                value=float(produto_atual.preco_venda) if produto_atual else 0.0,
            )
            categoria = st.text_input(
                "Categoria",
                value=produto_atual.categoria if produto_atual else "",
                help="Existentes: " + ", ".join(categorias) if categorias else None,
            )
            if produto_atual:
                st.caption(f"Estoque atual: **{produto_atual.quantidade_estoque}** (altere em Estoque)")
            salvar = st.form_submit_button("Salvar", type="primary", use_container_width=True)

        if salvar:
            if produto_atual:
                ok = run_action(
                    lambda: ProductService.atualizar_produto(
                        db, produto_atual.id, nome, preco_custo, preco_venda, categoria
                    ),
                    "Produto atualizado com sucesso.",
                )
            else:
                ok = run_action(
                    lambda: ProductService.criar_produto(db, nome, preco_custo, preco_venda, categoria),
                    "Produto cadastrado com sucesso.",
                )
            if ok:
                st.session_state.selected_product_id = None
                st.rerun()
except BusinessError as exc:
    st.error(str(exc))
finally:
    db.close()
