"""
Script para inicializar o banco de dados da gestão comercial.
- Cria todas as tabelas
- Garante a existência do usuário padrão (ADMIN_EMAIL)
"""
from config.database import init_db, SessionLocal
from config.logging_config import setup_logging
from config.settings import ADMIN_EMAIL, DATABASE_URL
from models.user import User
from services.auth_service import ensure_default_admin


def main() -> None:
    setup_logging()
    print(f"📦 Inicializando banco de dados ({DATABASE_URL.split('://', 1)[0]})...")
    init_db()
    print("✅ Tabelas criadas (se não existiam).")

    db = SessionLocal()
    try:
        existia = db.query(User).filter(User.email == ADMIN_EMAIL.lower()).first() is not None
        ensure_default_admin(db)
        if existia:
            print("ℹ️ Usuário padrão já existe.")
        elif db.query(User).filter(User.email == ADMIN_EMAIL.lower()).first():
            print(f"✅ Usuário criado: {ADMIN_EMAIL} (altere a senha em produção).")
        else:
            print("ℹ️ Já existem usuários cadastrados; nenhum usuário padrão criado.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
