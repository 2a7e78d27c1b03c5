# run_dev.py

import argparse
import logging
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit
import sys

from Chessboard_Orcamentos.app.config import settings
from Chessboard_Orcamentos.app.db import init_db, test_connection


# para testar ->    python -m Chessboard_Orcamentos.run_dev --project 1
# dados de exemplo -> python -m Chessboard_Orcamentos.scripts.seed_reference --project "Obra teste"


def _mask_db_uri(uri: str) -> str:
    """Esconde a palavra-passe na URI para logging."""
    try:
        parts = urlsplit(uri)
        if not parts.username:
            return uri
        host_port = parts.hostname or ""
        if parts.port:
            host_port = f"{host_port}:{parts.port}"
        user_part = f"{parts.username}:****@" if parts.username else ""
        netloc = f"{user_part}{host_port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    except ValueError:
        return uri


def _setup_logging() -> Path:
    """Cria logging para consola + ficheiro (junto ao script)."""
    log_path = Path(__file__).resolve().parent / "chessboard_debug.log"
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    handlers = [logging.StreamHandler(sys.stdout)]
    try:
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(logging.Formatter(fmt))
        handlers.append(fh)
    except OSError as exc:
        logging.basicConfig(level=level, format=fmt)
        logging.getLogger(__name__).warning("Nao foi possivel criar ficheiro de log (%s)", exc)
        return log_path

    logging.basicConfig(level=level, format=fmt, handlers=handlers)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging em: %s", log_path)
    logging.getLogger(__name__).info("DB_URI usado: %s", _mask_db_uri(settings.DB_URI))
    return log_path


def main(argv=None):
    parser = argparse.ArgumentParser(description="Mapa de quantidades (chessboard)")
    parser.add_argument("--project", type=int, required=True, help="ID do projeto")
    parser.add_argument("--user", type=int, default=None, help="ID do utilizador (preferencias)")
    args = parser.parse_args(argv)

    from PySide6 import QtWidgets

    log_path = _setup_logging()
    logging.getLogger(__name__).info("Arranque da aplicacao (logs em %s)", log_path)
    app = QtWidgets.QApplication(sys.argv[:1])
    test_connection()
    init_db()

    from Chessboard_Orcamentos.ui.chessboard_window import ChessboardWindow

    window = ChessboardWindow(args.project, user_id=args.user)
    window.showMaximized()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
