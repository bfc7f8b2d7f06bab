"""
Script para limpar os dados do negócio e testar do zero.
- Apaga vendas, movimentações, despesas e produtos (via SQL, sem apagar o arquivo)
- Mantém os usuários e garante o usuário padrão

Pode rodar mesmo com o Streamlit aberto.
"""
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.database import init_db, engine
from config.logging_config import setup_logging
from config.settings import DATABASE_URL
from services.auth_service import ensure_default_admin


# Ordem: tabelas filhas primeiro (por causa das chaves estrangeiras)
TABLES_TO_CLEAR = [
    "itens_venda",
    "movimentacoes_estoque",
    "vendas",
    "despesas",
    "produtos",
]


def main() -> None:
    setup_logging()
    print("Limpando dados da gestão...")
    init_db()  # garante que as tabelas existem

    with engine.begin() as conn:
        for table in TABLES_TO_CLEAR:
            conn.execute(text(f"DELETE FROM {table}"))
            print("  Limpo:", table)
        if DATABASE_URL.startswith("sqlite"):
            # Reinicia os contadores de ID (a tabela só existe com AUTOINCREMENT)
            try:
                with conn.begin_nested():
                    conn.execute(text("DELETE FROM sqlite_sequence"))
            except SQLAlchemyError:
                print("  sqlite_sequence ausente (nada a reiniciar).")
    print("  Banco de dados limpo (dados removidos).")

    ensure_default_admin()
    print("\nPronto. Pode testar do zero. (Atualize a página no navegador se o Streamlit estiver aberto.)")


if __name__ == "__main__":
    main()
