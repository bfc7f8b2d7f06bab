"""
Login da aplicação: usuários com senha bcrypt e a sessão do Streamlit.
"""
import logging
from typing import Optional

import bcrypt
import streamlit as st
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.database import SessionLocal
from config.settings import ADMIN_EMAIL, ADMIN_PASSWORD
from models.user import User
from services.errors import ValidationError
from utils.validators import required_text

logger = logging.getLogger(__name__)

SESSION_KEY = "usuario"


def _normalizar_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthService:
    @staticmethod
    def hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # hash gravado fora do formato bcrypt
            return False

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Optional[User]:
        email = _normalizar_email(email)
        user = db.execute(
            select(User).where(User.email == email).where(User.active.is_(True))
        ).scalar_one_or_none()
        if user is None or not AuthService.verify_password(password or "", user.password_hash):
            logger.warning("Tentativa de login inválida para %s", email)
            return None
        return user

    @staticmethod
    def create_user(db: Session, email: str, nome: str, password: str) -> User:
        email = required_text(_normalizar_email(email), "o email")
        nome = required_text(nome, "o nome")
        if not password:
            raise ValidationError("Preencha a senha.")

        user = User(email=email, nome=nome, password_hash=AuthService.hash_password(password))
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError(f"Já existe um usuário com o email {email}.") from exc
        db.refresh(user)
        return user

    # ----- Sessão do Streamlit -----

    @staticmethod
    def init_session_state() -> None:
        st.session_state.setdefault(SESSION_KEY, None)

    @staticmethod
    def login(user: User) -> None:
        st.session_state[SESSION_KEY] = {"id": user.id, "email": user.email, "nome": user.nome}
        logger.info("Login de %s", user.email)

    @staticmethod
    def logout() -> None:
        st.session_state[SESSION_KEY] = None

    @staticmethod
    def is_authenticated() -> bool:
        return st.session_state.get(SESSION_KEY) is not None

    @staticmethod
    def get_current_user() -> Optional[dict]:
        return st.session_state.get(SESSION_KEY)

    @staticmethod
    def require_auth() -> None:
        """
        Interrompe a página quando não há usuário logado.
        """
        AuthService.init_session_state()
        if not AuthService.is_authenticated():
            st.warning("Faça login para acessar esta página.")
            st.page_link("app.py", label="Ir para o login", icon="🔐")
            st.stop()


def ensure_default_admin(db: Optional[Session] = None) -> None:
    """
    Cria o usuário ADMIN_EMAIL quando ainda não há nenhum usuário.
    """
    own_session = db is None
    db = db or SessionLocal()
    try:
        if db.execute(select(func.count(User.id))).scalar():
            return
        AuthService.create_user(db, ADMIN_EMAIL, "Administrador", ADMIN_PASSWORD)
        logger.info("Usuário padrão criado: %s (altere a senha em produção)", ADMIN_EMAIL)
    finally:
        if own_session:
            db.close()
