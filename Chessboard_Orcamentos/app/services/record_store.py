from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy import delete, inspect, select
from sqlalchemy.orm import Session

from Chessboard_Orcamentos.app.models import (
    Block,
    Chessboard,
    ChessboardDocumentationMapping,
    ChessboardFloorMapping,
    ChessboardMapping,
    ChessboardNomenclatureMapping,
    ChessboardRatesMapping,
    CostCategory,
    CostType,
    Documentation,
    DocumentationTag,
    DocumentationVersion,
    Location,
    Material,
    Nomenclature,
    Rate,
    Unit,
)

logger = logging.getLogger(__name__)

TABLES = {
    "chessboard": Chessboard,
    "chessboard_mapping": ChessboardMapping,
    "chessboard_floor_mapping": ChessboardFloorMapping,
    "chessboard_nomenclature_mapping": ChessboardNomenclatureMapping,
    "chessboard_documentation_mapping": ChessboardDocumentationMapping,
    "chessboard_rates_mapping": ChessboardRatesMapping,
    "materials": Material,
    "units": Unit,
    "blocks": Block,
    "locations": Location,
    "cost_categories": CostCategory,
    "detail_cost_categories": CostType,
    "nomenclature": Nomenclature,
    "rates": Rate,
    "documentation_tags": DocumentationTag,
    "documentations": Documentation,
    "documentation_versions": DocumentationVersion,
}


class RecordStore(Protocol):
    """Contrato minimo de persistencia usado pelo nucleo da tabela."""

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        relations: Sequence[str] = (),
        order_by: Sequence[str] = (),
    ) -> List[Dict[str, Any]]: ...

    def insert(self, table: str, record: Mapping[str, Any]) -> Any: ...

    def upsert(self, table: str, record: Mapping[str, Any], conflict_key: str) -> None: ...

    def delete(self, table: str, filters: Mapping[str, Any]) -> None: ...

    def transaction(self): ...


def get_first_or_self(value: Any) -> Optional[Any]:
    """Relacoes podem vir como objeto ou lista de um; devolve sempre objeto ou None."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _relation_tree(relations: Sequence[str]) -> Dict[str, Dict]:
    tree: Dict[str, Dict] = {}
    for path in relations:
        node = tree
        for name in path.split("."):
            node = node.setdefault(name, {})
    return tree


def _to_dict(obj: Any, tree: Mapping[str, Mapping]) -> Dict[str, Any]:
    mapper = inspect(obj).mapper
    data: Dict[str, Any] = {col.key: getattr(obj, col.key) for col in mapper.column_attrs}
    for name, subtree in tree.items():
        value = getattr(obj, name)
        if value is None:
            data[name] = None
        elif isinstance(value, (list, tuple)):
            data[name] = [_to_dict(child, subtree) for child in value]
        else:
            data[name] = _to_dict(value, subtree)
    return data


class SqlAlchemyRecordStore:
    """RecordStore sobre uma Session SQLAlchemy (uma transacao por passo)."""

    def __init__(self, db: Session):
        self.db = db

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise ValueError(f"Tabela desconhecida: {table}") from None

    def _conditions(self, model, filters: Optional[Mapping[str, Any]]):
        conditions = []
        for field, value in (filters or {}).items():
            column = getattr(model, field)
            if value is None:
                conditions.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)
        return conditions

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        relations: Sequence[str] = (),
        order_by: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        stmt = select(model).where(*self._conditions(model, filters))
        if order_by:
            for field in order_by:
                if field.startswith("-"):
                    stmt = stmt.order_by(getattr(model, field[1:]).desc())
                else:
                    stmt = stmt.order_by(getattr(model, field).asc())
        else:
            stmt = stmt.order_by(*inspect(model).primary_key)
        tree = _relation_tree(relations)
        rows = self.db.execute(stmt).scalars().all()
        return [_to_dict(row, tree) for row in rows]

    def insert(self, table: str, record: Mapping[str, Any]) -> Any:
        model = self._model(table)
        obj = model(**dict(record))
        self.db.add(obj)
        self.db.flush()
        return inspect(obj).identity[0]

    def upsert(self, table: str, record: Mapping[str, Any], conflict_key: str) -> None:
        # substitui a linha existente (todas as colunas enviadas), senao insere
        model = self._model(table)
        body = dict(record)
        if conflict_key not in body:
            raise ValueError(f"upsert em {table} sem a chave {conflict_key}")
        existing = self.db.execute(
            select(model).where(getattr(model, conflict_key) == body[conflict_key])
        ).scalar_one_or_none()
        if existing is None:
            self.db.add(model(**body))
        else:
            for field, value in body.items():
                setattr(existing, field, value)
        self.db.flush()

    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        if not filters:
            raise ValueError(f"delete em {table} sem filtros")
        model = self._model(table)
        self.db.execute(delete(model).where(*self._conditions(model, filters)))
        self.db.flush()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
