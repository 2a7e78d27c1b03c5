import logging
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.exc import SQLAlchemyError
from Chessboard_Orcamentos.app.config import settings

logger = logging.getLogger(__name__)

# Base declarativa do ORM
Base = declarative_base()

# Engine (o driver so liga a BD na primeira utilizacao)
engine = create_engine(settings.DB_URI, pool_pre_ping=True, echo=False)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Cria as tabelas se não existirem via ORM."""
    target = bind if bind is not None else engine
    # Importar modelos para registar as tabelas
    from .models import app_setting, reference, documentation, chessboard  # noqa: F401

    try:
        Base.metadata.create_all(bind=target)
        logger.info("Tabelas criadas/atualizadas com sucesso (ORM).")
    except SQLAlchemyError as e:
        logger.error("Erro ao criar as tabelas (ORM): %s", e)
        raise


def test_connection(bind=None):
    """SELECT 1 na BD configurada; levanta SQLAlchemyError se nao ligar."""
    target = bind if bind is not None else engine
    try:
        with target.connect() as connection:
            res = connection.execute(text("SELECT 1"))
            value = res.scalar()
            logger.info("Ligação à BD OK. Resultado: %s", value)
            return value
    except SQLAlchemyError as e:
        logger.error("Falha na ligação: %s", e)
        raise
