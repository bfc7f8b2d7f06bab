import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

from config.database import SessionLocal
from services.auth_service import AuthService
from services.errors import BusinessError
from services.product_service import ProductService
from services.sales_service import FORMAS_PAGAMENTO, SaleLine, SalesService
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header, run_action, show_flash


st.set_page_config(page_title="Vendas", page_icon="🧾", layout="wide")


def _nova_linha(produto=None):
    return {
        "produto_id": produto.id if produto else None,
        "quantidade": 1,
        "preco": float(produto.preco_venda) if produto else 0.0,
    }


def _limpar_carrinho():
    st.session_state.sale_lines = []
    for key in [k for k in st.session_state if str(k).startswith("linha_")]:
        del st.session_state[key]


AuthService.require_auth()
show_sidebar()

page_header("Vendas", "🧾", "Monte a venda com um ou mais itens. O estoque é baixado ao salvar.")
show_flash()

if "sale_lines" not in st.session_state:
    st.session_state.sale_lines = []

db = SessionLocal()

try:
    tab_nova, tab_lista = st.tabs(["Nova venda", "Vendas registradas"])

    with tab_nova:
        produtos = sorted(ProductService.listar_produtos(db), key=lambda p: p.nome.lower())
        if not produtos:
            st.info("Nenhum produto cadastrado. Cadastre produtos em **Produtos** antes de vender.")
        else:
            por_id = {p.id: p for p in produtos}
            col_d, col_f = st.columns(2)
            with col_d:
                data_venda = st.date_input("Data da venda", value=date.today(), format="DD/MM/YYYY")
            with col_f:
                forma_pagamento = st.selectbox("Forma de pagamento", options=FORMAS_PAGAMENTO)

            if not st.session_state.sale_lines:
                st.session_state.sale_lines.append(_nova_linha(produtos[0]))

            st.markdown("**Itens**")
            remover = None
            for i, linha in enumerate(st.session_state.sale_lines):
                c_prod, c_qtd, c_preco, c_sub, c_rm = st.columns([4, 1.2, 1.5, 1.5, 0.6])
                with c_prod:
                    produto_id = st.selectbox(
                        "Produto",
                        options=list(por_id),
                        index=list(por_id).index(linha["produto_id"])
                        if linha["produto_id"] in por_id
                        else 0,
                        format_func=lambda pid: f"{por_id[pid].nome} (estoque: {por_id[pid].quantidade_estoque})",
                        key=f"linha_produto_{i}",
                        label_visibility="collapsed" if i else "visible",
                    )
                    if produto_id != linha["produto_id"]:
                        # Troca de produto traz o preço de venda cadastrado
                        linha["produto_id"] = produto_id
                        linha["preco"] = float(por_id[produto_id].preco_venda)
                        st.session_state[f"linha_preco_{i}"] = linha["preco"]
                with c_qtd:
                    linha["quantidade"] = int(
                        st.number_input(
                            "Qtd.",
                            min_value=1,
                            step=1,
                            value=int(linha["quantidade"]),
                            key=f"linha_qtd_{i}",
                            label_visibility="collapsed" if i else "visible",
                        )
                    )
                with c_preco:
                    linha["preco"] = st.number_input(
                        "Preço unit.",
                        min_value=0.0,
                        step=0.01,
                        format="%.2f",
                        value=float(linha["preco"]),
                        key=f"linha_preco_{i}",
                        label_visibility="collapsed" if i else "visible",
                    )
                with c_sub:
                    if not i:
                        st.caption("Subtotal")
                    subtotal = SalesService.calcular_subtotal(linha["quantidade"], linha["preco"])
                    st.markdown(f"**{format_currency(subtotal)}**")
                with c_rm:
                    if not i:
                        st.caption(" ")
                    if st.button("🗑️", key=f"linha_rm_{i}", help="Remover item"):
                        remover = i

            if remover is not None:
                st.session_state.sale_lines.pop(remover)
                for key in [k for k in st.session_state if str(k).startswith("linha_")]:
                    del st.session_state[key]
                st.rerun()

            if st.button("➕ Adicionar item"):
                st.session_state.sale_lines.append(_nova_linha(produtos[0]))
                st.rerun()

            linhas = [
                SaleLine(item["produto_id"], item["quantidade"], Decimal(str(item["preco"])))
                for item in st.session_state.sale_lines
            ]
            total = SalesService.calcular_total(linhas)
            st.markdown("---")
            st.markdown(f"### Total: {format_currency(total)}")

            # Aviso antecipado com o estoque carregado; a gravação confere de novo
            try:
                SalesService.validar_estoque(
                    linhas,
                    {pid: p.quantidade_estoque for pid, p in por_id.items()},
                    {pid: p.nome for pid, p in por_id.items()},
                )
            except BusinessError as exc:
                st.warning(str(exc))

            col_s, col_c = st.columns(2)
            with col_s:
                salvar = st.button("Salvar venda", type="primary", use_container_width=True)
            with col_c:
                if st.button("Limpar", use_container_width=True):
                    _limpar_carrinho()
                    st.rerun()

            if salvar and run_action(
                lambda: SalesService.registrar_venda(db, data_venda, forma_pagamento, linhas),
                "Venda registrada com sucesso.",
            ):
                _limpar_carrinho()
                st.rerun()

    with tab_lista:
        hoje = date.today()
        st.metric("Vendido hoje", format_currency(SalesService.total_vendido(db, hoje, hoje)))
        busca = st.text_input("Buscar (data dd/mm/aaaa ou forma de pagamento)")
        vendas = SalesService.listar_vendas(db, busca)
        if not vendas:
            st.info("Nenhuma venda encontrada." if busca else "Nenhuma venda registrada.")
        else:
            st.metric(
                "Total listado",
                format_currency(sum((Decimal(str(v.valor_total)) for v in vendas), Decimal("0.00"))),
            )
            st.dataframe(
                [
                    {
                        "Nº": v.id,
                        "Data": format_date(v.data_venda),
                        "Pagamento": v.forma_pagamento,
                        "Itens": len(v.itens),
                        "Total": format_currency(v.valor_total),
                    }
                    for v in vendas
                ],
                use_container_width=True,
                hide_index=True,
            )

            opcoes = {v.id: f"#{v.id} • {format_date(v.data_venda)} • {format_currency(v.valor_total)}" for v in vendas}
            venda_id = st.selectbox("Detalhes da venda", options=list(opcoes), format_func=opcoes.get)
            venda = SalesService.obter_venda(db, venda_id)
            st.dataframe(
                [
                    {
                        "Produto": item.produto.nome if item.produto else f"#{item.produto_id}",
                        "Quantidade": item.quantidade,
                        "Preço unit.": format_currency(item.preco_unitario),
                        "Subtotal": format_currency(item.subtotal),
                    }
                    for item in venda.itens
                ],
                use_container_width=True,
                hide_index=True,
            )

            if st.button("Excluir venda", key="excluir_venda"):
                st.session_state.confirm_delete_sale = venda_id
            if st.session_state.get("confirm_delete_sale") == venda_id:
                st.warning(
                    f"Excluir a venda **#{venda_id}**? As quantidades vendidas voltam ao estoque."
                )
                col_s, col_n = st.columns(2)
                with col_s:
                    if st.button("Confirmar exclusão", type="primary", use_container_width=True):
                        st.session_state.pop("confirm_delete_sale", None)
                        if run_action(
                            lambda: SalesService.excluir_venda(db, venda_id),
                            "Venda excluída e estoque devolvido.",
                        ):
                            st.rerun()
                with col_n:
                    if st.button("Cancelar", use_container_width=True):
                        st.session_state.pop("confirm_delete_sale", None)
                        st.rerun()
except BusinessError as exc:
    st.error(str(exc))
finally:
    db.close()
