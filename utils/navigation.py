import streamlit as st

from config.settings import APP_TITLE
from services.auth_service import AuthService


def show_sidebar() -> None:
    """
    Sidebar com o usuário logado e links para as páginas.
    """
    user = AuthService.get_current_user()

    with st.sidebar:
        st.markdown(f"## 🏪 {APP_TITLE}")
        if user:
            st.markdown(f"**{user['nome']}**")
            st.caption(user["email"])

        st.markdown("---")
        st.markdown("### Menu")
        st.page_link("app.py", label="Dashboard", icon="📊")
        st.page_link("pages/1_Produtos.py", label="Produtos", icon="📦")
        st.page_link("pages/2_Estoque.py", label="Estoque", icon="🔄")
        st.page_link("pages/3_Vendas.py", label="Vendas", icon="🧾")
        st.page_link("pages/4_Despesas.py", label="Despesas", icon="💸")
        st.page_link("pages/5_Relatorios.py", label="Relatórios", icon="📈")

        st.markdown("---")
        if st.button("Sair", use_container_width=True):
            AuthService.logout()
            if hasattr(st, "switch_page"):
                st.switch_page("app.py")
            else:
                st.rerun()
