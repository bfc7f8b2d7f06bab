import sys
from datetime import date
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

from config.database import SessionLocal
from services.auth_service import AuthService
from services.errors import BusinessError, NotFoundError
from services.expense_service import ExpenseService
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header, run_action, show_flash


st.set_page_config(page_title="Despesas", page_icon="💸", layout="wide")

AuthService.require_auth()
show_sidebar()

page_header("Despesas", "💸", "Registre as despesas do negócio. Elas entram no lucro dos relatórios.")
show_flash()

if "selected_expense_id" not in st.session_state:
    st.session_state.selected_expense_id = None

db = SessionLocal()

try:
    col_form, col_list = st.columns([1, 2])

    with col_form:
        despesa_atual = None
        if st.session_state.selected_expense_id:
            try:
                despesa_atual = ExpenseService.obter_despesa(db, st.session_state.selected_expense_id)
            except NotFoundError:
                st.session_state.selected_expense_id = None

        st.subheader("Editar despesa" if despesa_atual else "Nova despesa")
        with st.form("despesa_form", clear_on_submit=despesa_atual is None):
            descricao = st.text_input(
                "Descrição",
                value=despesa_atual.descricao if despesa_atual else "",
                placeholder="Ex: aluguel, energia, frete...",
            )
            valor = st.number_input(
                "Valor",
                min_value=0.0,
                step=0.01,
                format="%.2f",
                value=float(despesa_atual.valor) if despesa_atual else 0.0,
            )
            data_despesa = st.date_input(
                "Data",
                value=despesa_atual.data_despesa if despesa_atual else date.today(),
                format="DD/MM/YYYY",
            )
            salvar = st.form_submit_button("Salvar despesa", type="primary", use_container_width=True)

        if salvar:
            if despesa_atual:
                ok = run_action(
                    lambda: ExpenseService.atualizar_despesa(
                        db, despesa_atual.id, descricao, valor, data_despesa
                    ),
                    "Despesa atualizada com sucesso.",
                )
            else:
                ok = run_action(
                    lambda: ExpenseService.criar_despesa(db, descricao, valor, data_despesa),
                    "Despesa cadastrada com sucesso.",
                )
            if ok:
                st.session_state.selected_expense_id = None
                st.rerun()

        if despesa_atual and st.button("Cancelar edição", use_container_width=True):
            st.session_state.selected_expense_id = None
            st.rerun()

    with col_list:
        st.subheader("Despesas cadastradas")
        busca = st.text_input("Buscar pela descrição")
        despesas = ExpenseService.listar_despesas(db, busca)
        if not despesas:
            st.info("Nenhuma despesa encontrada." if busca else "Nenhuma despesa cadastrada.")
        else:
            st.metric("Total", format_currency(ExpenseService.total(despesas)))
            st.dataframe(
                [
                    {
                        "Data": format_date(d.data_despesa),
                        "Descrição": d.descricao,
                        "Valor": format_currency(d.valor),
                    }
                    for d in despesas
                ],
                use_container_width=True,
                hide_index=True,
            )

            st.markdown("---")
            opcoes = {
                d.id: f"{format_date(d.data_despesa)} - {d.descricao} ({format_currency(d.valor)})"
                for d in despesas
            }
            escolhida = st.selectbox("Selecione a despesa", options=list(opcoes), format_func=opcoes.get)
            col_e, col_x = st.columns(2)
            with col_e:
                if st.button("Editar", use_container_width=True):
                    st.session_state.selected_expense_id = escolhida
                    st.rerun()
            with col_x:
                if st.button("Excluir", use_container_width=True) and run_action(
                    lambda: ExpenseService.excluir_despesa(db, escolhida),
                    "Despesa excluída com sucesso.",
                ):
                    if st.session_state.selected_expense_id == escolhida:
                        st.session_state.selected_expense_id = None
                    st.rerun()
except BusinessError as exc:
    st.error(str(exc))
finally:
    db.close()
