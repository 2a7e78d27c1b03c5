from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from Chessboard_Orcamentos.app.config import settings
from Chessboard_Orcamentos.app.services.chessboard_data import find_server_row
from Chessboard_Orcamentos.app.services.chessboard_persist import (
    PersistStepError,
    RowPersistence,
    RowValidationError,
)
from Chessboard_Orcamentos.app.services.record_store import SqlAlchemyRecordStore

logger = logging.getLogger(__name__)

# filhas primeiro, o registo base por ultimo
DELETE_ORDER: Sequence[str] = (
    "chessboard_mapping",
    "chessboard_floor_mapping",
    "chessboard_nomenclature_mapping",
    "chessboard_documentation_mapping",
    "chessboard_rates_mapping",
)

SessionFactory = Callable[[], Session]


@dataclass
class RowOutcome:
    key: Any
    server_key: Any = None
    ok: bool = False
    error: str = ""
    step_errors: Dict[str, str] = field(default_factory=dict)


def _workers(max_workers: Optional[int], jobs: int) -> int:
    limit = max_workers or settings.BATCH_MAX_WORKERS or 1
    return max(1, min(limit, jobs))


def _save_one(
    session_factory: SessionFactory,
    key: Any,
    row: Mapping[str, Any],
    server_row: Optional[Mapping[str, Any]],
    is_new: bool,
) -> RowOutcome:
    session = session_factory()
    try:
        persistence = RowPersistence(SqlAlchemyRecordStore(session))
        if is_new:
            result = persistence.persist_new(row)
        else:
            result = persistence.persist_edit(key, row, server_row)
        return RowOutcome(
            key=key,
            server_key=result.server_key,
            ok=result.ok,
            error="; ".join(f"{step}: {msg}" for step, msg in result.step_errors.items()),
            step_errors=dict(result.step_errors),
        )
    except (RowValidationError, PersistStepError) as exc:
        logger.warning("Linha %s nao gravada: %s", key, exc)
        return RowOutcome(key=key, error=str(exc))
    except Exception as exc:
        logger.exception("Falha inesperada ao gravar a linha %s", key)
        return RowOutcome(key=key, error=str(exc))
    finally:
        session.close()


def bulk_save(
    session_factory: SessionFactory,
    new_rows: Sequence[Mapping[str, Any]],
    overlays: Mapping[Any, Mapping[str, Any]],
    server_rows: Sequence[Mapping[str, Any]] = (),
    max_workers: Optional[int] = None,
) -> List[RowOutcome]:
    """
    Grava linhas novas e edicoes em paralelo (uma sessao por linha).
    Uma falha numa linha nao cancela nem desfaz as outras.
    Os resultados vem pela ordem de entrada (novas primeiro).
    """
    jobs = [(row["key"], row, None, True) for row in new_rows]
    jobs += [(key, overlay, find_server_row(server_rows, key), False) for key, overlay in overlays.items()]
    if not jobs:
        return []

    with ThreadPoolExecutor(max_workers=_workers(max_workers, len(jobs))) as pool:
        futures = [pool.submit(_save_one, session_factory, *job) for job in jobs]
        outcomes = [f.result() for f in futures]

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info("Gravacao em lote: %d linhas, %d com erro", len(outcomes), failed)
    return outcomes


def _delete_one(session_factory: SessionFactory, key: Any) -> RowOutcome:
    session = session_factory()
    try:
        store = SqlAlchemyRecordStore(session)
        with store.transaction():
            for table in DELETE_ORDER:
                store.delete(table, {"chessboard_id": key})
            store.delete("chessboard", {"id": key})
        return RowOutcome(key=key, server_key=key, ok=True)
    except Exception as exc:
        logger.exception("Falha ao apagar a linha %s", key)
        return RowOutcome(key=key, server_key=key, error=str(exc))
    finally:
        session.close()


def bulk_delete(
    session_factory: SessionFactory,
    keys: Sequence[Any],
    max_workers: Optional[int] = None,
) -> List[RowOutcome]:
    if not keys:
        return []
    with ThreadPoolExecutor(max_workers=_workers(max_workers, len(keys))) as pool:
        futures = [pool.submit(_delete_one, session_factory, key) for key in keys]
        outcomes = [f.result() for f in futures]
    logger.info("Apagadas %d de %d linhas", sum(1 for o in outcomes if o.ok), len(outcomes))
    return outcomes
