import itertools
from collections import defaultdict
from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from Chessboard_Orcamentos.app.db import init_db
from Chessboard_Orcamentos.app.models import (
    Block,
    CostCategory,
    CostType,
    Documentation,
    DocumentationTag,
    DocumentationVersion,
    Location,
    Project,
    Unit,
)
from Chessboard_Orcamentos.app.services.reference_data import (
    CostTypeRef,
    Document,
    DocumentVersion,
    ReferenceData,
    Tag,
)


@pytest.fixture(scope="function")
def db_session():
    """Cria uma DB SQLite em memória e devolve uma Session limpa por teste."""
    engine = create_engine("sqlite:///:memory:")
    init_db(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    sess = Session()
    try:
        yield sess
    finally:
        sess.close()
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    """DB SQLite em ficheiro partilhada por varias threads (uma sessao por job)."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'chessboard.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # cada transacao reserva logo a escrita; evita "database is locked" entre threads
    @event.listens_for(engine, "connect")
    def _no_pysqlite_begin(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    init_db(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False)
    finally:
        engine.dispose()


def seed_project(session):
    """Projeto com um bloco, uma categoria/tipo de custo e um documento com versao 1."""
    project = Project(name="Obra teste")
    other = Project(name="Outra obra")
    unit = Unit(name="m3")
    location = Location(name="Edificio")
    category = CostCategory(number=1, name="Estrutura")
    tag = DocumentationTag(tag_number=3, name="AR")
    session.add_all([project, other, unit, location, category, tag])
    session.flush()

    block = Block(project_id=project.id, name="Bloco A")
    other_block = Block(project_id=other.id, name="Bloco Z")
    cost_type = CostType(cost_category_id=category.id, location_id=location.id, name="Betao armado")
    document = Documentation(project_id=project.id, tag_id=tag.id, code="AR-001", project_name="Arquitetura")
    session.add_all([block, other_block, cost_type, document])
    session.flush()

    version = DocumentationVersion(documentation_id=document.id, version_number=1)
    session.add(version)
    session.commit()
    return SimpleNamespace(
        project_id=project.id,
        other_project_id=other.id,
        unit_id=unit.id,
        location_id=location.id,
        cost_category_id=category.id,
        cost_type_id=cost_type.id,
        block_id=block.id,
        tag_id=tag.id,
        document_id=document.id,
        version_id=version.id,
    )


@pytest.fixture
def seeded(db_session):
    return seed_project(db_session)


@pytest.fixture
def reference():
    """Listas de referencia fixas (sem BD)."""
    return ReferenceData(
        units=[{"id": 1, "name": "m2"}],
        cost_categories=[{"id": 5, "number": 1, "name": "Estrutura"}],
        cost_types=[CostTypeRef(id=7, name="Betao", cost_category_id=5, location_id=9)],
        locations=[{"id": 9, "name": "Edificio"}],
        blocks=[{"id": 2, "name": "Bloco A"}, {"id": 3, "name": "Bloco B"}],
        tags=[Tag(id=1, name="AR", tag_number=3), Tag(id=2, name="EST", tag_number=4)],
        documents=[
            Document(id=10, code="AR-001", tag_id=1, project_name="Arquitetura"),
            Document(id=11, code="AR-002", tag_id=1, project_name="Arquitetura 2"),
            Document(id=20, code="EST-001", tag_id=2, project_name="Estruturas"),
        ],
        versions=[
            DocumentVersion(id=100, document_id=10, version_number=1),
            DocumentVersion(id=101, document_id=10, version_number=2),
            DocumentVersion(id=110, document_id=11, version_number=1),
            DocumentVersion(id=200, document_id=20, version_number=1),
        ],
    )


class RecordingStore:
    """RecordStore em memoria que regista as chamadas e pode falhar em tabelas escolhidas."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.tables = defaultdict(list)
        self.fail_on = set(fail_on)
        self._ids = itertools.count(1)

    def _write(self, op, table):
        self.calls.append((op, table))
        if table in self.fail_on:
            raise RuntimeError(f"falha simulada em {table}")

    @staticmethod
    def _matches(record, filters):
        for name, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                if record.get(name) not in value:
                    return False
            elif record.get(name) != value:
                return False
        return True

    def query(self, table, filters=None, *, relations=(), order_by=()):
        self.calls.append(("query", table))
        return [dict(r) for r in self.tables[table] if self._matches(r, filters)]

    def insert(self, table, record):
        self._write("insert", table)
        stored = dict(record)
        stored.setdefault("id", next(self._ids))
        self.tables[table].append(stored)
        return stored["id"]

    def upsert(self, table, record, conflict_key):
        self._write("upsert", table)
        for existing in self.tables[table]:
            if existing.get(conflict_key) == record[conflict_key]:
                existing.update(record)
                return
        stored = dict(record)
        stored.setdefault("id", next(self._ids))
        self.tables[table].append(stored)

    def delete(self, table, filters):
        self._write("delete", table)
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, filters)]

    @contextmanager
    def transaction(self):
        self.calls.append(("transaction", None))
        yield


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def failing_store():
    """Fabrica de RecordingStore que falha nas tabelas indicadas."""
    return lambda *tables: RecordingStore(fail_on=tables)


@pytest.fixture
def seed():
    return seed_project
