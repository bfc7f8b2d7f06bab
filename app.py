import sys
from datetime import date
from pathlib import Path

# Garante que o diretório raiz do projeto esteja no path (para rodar de qualquer cwd)
_ROOT = Path(__file__).resolve().parents[0]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import pandas as pd
import streamlit as st

from config.database import SessionLocal, init_db
from config.logging_config import setup_logging
from config.settings import APP_TITLE
from services import report_service
from services.auth_service import AuthService, ensure_default_admin
from services.errors import BusinessError
from services.inventory_service import InventoryService
from services.product_service import ProductService
from utils.formatters import format_currency, format_date, format_percent, format_tipo_movimentacao
from utils.navigation import show_sidebar


st.set_page_config(
    page_title=APP_TITLE,
    page_icon="🏪",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def initialize_app():
    """
    Configura o logging, cria as tabelas e garante o usuário padrão.
    """
    setup_logging()
    init_db()
    ensure_default_admin()


def login_page():
    st.markdown(f"# 🔐 {APP_TITLE}")
    st.caption("Produtos, estoque, vendas e despesas")
    st.markdown("---")

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.subheader("Entrar no sistema")
        with st.form("login_form"):
            email = st.text_input("Email", placeholder="admin@example.com")
            password = st.text_input("Senha", type="password", placeholder="••••••••")
            submit = st.form_submit_button("Entrar", use_container_width=True, type="primary")

        if submit:
            if not email or not password:
                st.error("Por favor, preencha email e senha.")
            else:
                db = SessionLocal()
                try:
                    user = AuthService.authenticate(db, email, password)
                    if user:
                        AuthService.login(user)
                        st.rerun()
                    else:
                        st.error("Email ou senha incorretos.")
                finally:
                    db.close()


def dashboard_page():
    st.markdown("# 📊 Dashboard")
    st.markdown("---")

    col_p, col_ano = st.columns([2, 1])
    with col_p:
        opcao = st.selectbox(
            "Período",
            options=list(report_service.PERIODOS_RAPIDOS),
            index=list(report_service.PERIODOS_RAPIDOS).index("mes_atual"),
            format_func=lambda k: report_service.PERIODOS_RAPIDOS[k],
        )
    with col_ano:
        ano_atual = date.today().year
        ano = st.selectbox("Ano (gráfico mensal)", options=list(range(ano_atual, ano_atual - 5, -1)))

    inicio, fim = report_service.periodo_rapido(opcao)
    st.caption(f"{format_date(inicio)} a {format_date(fim)}")

    db = SessionLocal()
    try:
        periodo = report_service.relatorio_periodo(db, inicio, fim)
        anual = report_service.relatorio_anual(db, ano)
        estoque = ProductService.resumo_estoque(db)
        ultimas = InventoryService.listar_movimentacoes(db, limite=5)
    except BusinessError as exc:
        st.error(str(exc))
        return
    finally:
        db.close()

    totais = report_service.totalizar(periodo)
    col1, col2, col3, col4, col5 = st.columns(5)
    with col1:
        st.metric("Vendas", format_currency(totais.vendas))
    with col2:
        st.metric("Custos", format_currency(totais.custos))
    with col3:
        st.metric("Despesas", format_currency(totais.despesas))
    with col4:
        st.metric("Lucro", format_currency(totais.lucro))
    with col5:
        st.metric("Margem bruta", format_percent(totais.margem_bruta))

    st.metric("Produtos em estoque (unidades)", estoque.total_unidades)

    st.markdown("---")
    st.subheader(f"Resultado mensal - {ano}")
    df = pd.DataFrame(
        [
            {
                "Mês": r.rotulo,
                "Vendas": float(r.vendas),
                "Custos": float(r.custos),
                "Despesas": float(r.despesas),
                "Lucro": float(r.lucro),
            }
            for r in anual
        ]
    ).set_index("Mês")
    st.bar_chart(df[["Vendas", "Custos", "Despesas"]])

    st.markdown("---")
    st.subheader("Últimas movimentações")
    if not ultimas:
        st.info("Nenhuma movimentação registrada.")
    else:
        st.dataframe(
            [
                {
                    "Data": format_date(m.data_movimentacao),
                    "Produto": m.produto.nome,
                    "Tipo": format_tipo_movimentacao(m.tipo),
                    "Quantidade": m.quantidade,
                    "Motivo": m.motivo or "",
                }
                for m in ultimas
            ],
            use_container_width=True,
            hide_index=True,
        )


def main():
    initialize_app()
    AuthService.init_session_state()

    if not AuthService.is_authenticated():
        login_page()
    else:
        show_sidebar()
        dashboard_page()


if __name__ == "__main__":
    main()
