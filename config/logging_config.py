import logging

from config.settings import LOG_FILE, LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL, filename: str | None = LOG_FILE) -> None:
    """
    Configura o logging da aplicação (uma vez por processo).
    Sem LOG_FILE, as mensagens vão para o stderr.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        filename=filename,
    )
