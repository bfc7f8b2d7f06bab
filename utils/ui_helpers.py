"""
Helpers para deixar as telas mais intuitivas e consistentes.
"""
import streamlit as st

from services.errors import BusinessError


def page_header(title: str, icon: str, subtitle: str = ""):
    """Título compacto da página com possível subtítulo."""
    st.markdown(
        f"<p style='margin:0 0 0.25rem 0; font-size:1.25rem;'><strong>{icon} {title}</strong></p>"
        + (f"<p style='margin:0; font-size:0.8rem; color:#666;'>{subtitle}</p>" if subtitle else ""),
        unsafe_allow_html=True,
    )
    st.markdown("---")


def run_action(action, success_message: str | None = None) -> bool:
    """
    Executa uma ação de serviço mostrando o erro de negócio, se houver.
    Retorna True quando a ação foi concluída.
    """
    try:
        action()
    except BusinessError as exc:
        st.error(str(exc))
        return False
    if success_message:
        st.session_state.flash_message = success_message
    return True


def show_flash() -> None:
    """Mostra a mensagem de sucesso guardada antes do st.rerun()."""
    message = st.session_state.pop("flash_message", None)
    if message:
        st.success(message)
