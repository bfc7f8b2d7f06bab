import sys
from datetime import date
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import pandas as pd
import streamlit as st

from config.database import SessionLocal
from services import report_service
from services.auth_service import AuthService
from services.errors import BusinessError
from utils.formatters import format_currency, format_date, format_percent
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header


st.set_page_config(page_title="Relatórios", page_icon="📈", layout="wide")

AuthService.require_auth()
show_sidebar()

page_header("Relatórios", "📈", "Vendas, custos, despesas e lucro mês a mês.")


def _tabela(resumos) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "Mês": r.rotulo,
                "Vendas": format_currency(r.vendas),
                "Custos": format_currency(r.custos),
                "Despesas": format_currency(r.despesas),
                "Lucro": format_currency(r.lucro),
                "Margem bruta": format_percent(r.margem_bruta),
            }
            for r in resumos
        ]
    )
    totais = report_service.totalizar(resumos)
    df.loc[len(df)] = {
        "Mês": "Total",
        "Vendas": format_currency(totais.vendas),
        "Custos": format_currency(totais.custos),
        "Despesas": format_currency(totais.despesas),
        "Lucro": format_currency(totais.lucro),
        "Margem bruta": format_percent(totais.margem_bruta),
    }
    return df


st.subheader("Filtros")
col_modo, col1, col2 = st.columns([1, 1, 1])
with col_modo:
    modo = st.radio("Agrupar", options=["Ano", "Período"], horizontal=True)
if modo == "Ano":
    ano_atual = date.today().year
    with col1:
        ano = st.selectbox("Ano", options=list(range(ano_atual, ano_atual - 5, -1)))
else:
    with col1:
        data_inicio = st.date_input(
            "Data inicial", value=date.today().replace(day=1), format="DD/MM/YYYY"
        )
    with col2:
        data_fim = st.date_input("Data final", value=date.today(), format="DD/MM/YYYY")

st.markdown("---")

db = SessionLocal()

try:
    if modo == "Ano":
        resumos = report_service.relatorio_anual(db, ano)
        titulo = f"Resultado de {ano}"
    else:
        resumos = report_service.relatorio_periodo(db, data_inicio, data_fim)
        titulo = f"Resultado de {format_date(data_inicio)} a {format_date(data_fim)}"
except BusinessError as exc:
    st.error(str(exc))
    st.stop()
finally:
    db.close()

totais = report_service.totalizar(resumos)

st.subheader(titulo)
col1, col2, col3, col4, col5, col6 = st.columns(6)
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
with col6:
    st.metric("Margem líquida", format_percent(totais.margem_liquida))

st.dataframe(_tabela(resumos), use_container_width=True, hide_index=True)

grafico = pd.DataFrame(
    {
        "Vendas": [float(r.vendas) for r in resumos],
        "Lucro": [float(r.lucro) for r in resumos],
    },
    index=[r.rotulo for r in resumos],
)
st.line_chart(grafico)
st.caption("Custos calculados pelo preço de custo atual de cada produto vendido.")
