from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from Chessboard_Orcamentos.app.models import (
    Block,
    CostCategory,
    CostType,
    Documentation,
    DocumentationTag,
    DocumentationVersion,
    Location,
    Unit,
)


@dataclass
class Tag:
    id: int
    name: str
    tag_number: Optional[int] = None


@dataclass
class Document:
    id: int
    code: str
    tag_id: Optional[int] = None
    project_name: str = ""


@dataclass
class DocumentVersion:
    id: int
    document_id: int
    version_number: int


@dataclass
class CostTypeRef:
    id: int
    name: str
    cost_category_id: Optional[int] = None
    location_id: Optional[int] = None


@dataclass
class ReferenceData:
    """Listas de referencia (unidades, categorias, documentacao...) por id."""

    units: List[Dict[str, Any]] = field(default_factory=list)
    cost_categories: List[Dict[str, Any]] = field(default_factory=list)
    cost_types: List[CostTypeRef] = field(default_factory=list)
    locations: List[Dict[str, Any]] = field(default_factory=list)
    blocks: List[Dict[str, Any]] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    documents: List[Document] = field(default_factory=list)
    versions: List[DocumentVersion] = field(default_factory=list)

    def tag(self, tag_id: Any) -> Optional[Tag]:
        return next((t for t in self.tags if t.id == tag_id), None)

    def document(self, document_id: Any) -> Optional[Document]:
        return next((d for d in self.documents if d.id == document_id), None)

    def version(self, version_id: Any) -> Optional[DocumentVersion]:
        return next((v for v in self.versions if v.id == version_id), None)

    def cost_type(self, cost_type_id: Any) -> Optional[CostTypeRef]:
        return next((t for t in self.cost_types if t.id == cost_type_id), None)

    def block_name(self, block_id: Any) -> str:
        block = next((b for b in self.blocks if b["id"] == block_id), None)
        return block["name"] if block else ""

    def versions_for(self, document_id: Any) -> List[DocumentVersion]:
        return [v for v in self.versions if v.document_id == document_id]

    def latest_version(self, document_id: Any) -> Optional[DocumentVersion]:
        candidates = self.versions_for(document_id)
        if not candidates:
            return None
        return max(candidates, key=lambda v: v.version_number)


def tag_label(tag: Optional[Tag]) -> str:
    if tag is None:
        return ""
    number = "" if tag.tag_number is None else str(tag.tag_number)
    return f"{number} {tag.name}".strip()


def load_reference_data(db: Session, project_id: Optional[int] = None) -> ReferenceData:
    units = db.execute(select(Unit).order_by(Unit.name)).scalars().all()
    categories = db.execute(
        select(CostCategory).order_by(CostCategory.number, CostCategory.id)
    ).scalars().all()
    cost_types = db.execute(select(CostType).order_by(CostType.id)).scalars().all()
    locations = db.execute(select(Location).order_by(Location.id)).scalars().all()
    tags = db.execute(
        select(DocumentationTag).order_by(DocumentationTag.tag_number, DocumentationTag.id)
    ).scalars().all()

    blocks_stmt = select(Block).order_by(Block.name)
    docs_stmt = select(Documentation).order_by(Documentation.code)
    if project_id is not None:
        blocks_stmt = blocks_stmt.where(or_(Block.project_id == project_id, Block.project_id.is_(None)))
        docs_stmt = docs_stmt.where(
            or_(Documentation.project_id == project_id, Documentation.project_id.is_(None))
        )
    blocks = db.execute(blocks_stmt).scalars().all()
    documents = db.execute(docs_stmt).scalars().all()

    doc_ids = [d.id for d in documents]
    versions = []
    if doc_ids:
        versions = db.execute(
            select(DocumentationVersion)
            .where(DocumentationVersion.documentation_id.in_(doc_ids))
            .order_by(DocumentationVersion.documentation_id, DocumentationVersion.version_number)
        ).scalars().all()

    return ReferenceData(
        units=[{"id": u.id, "name": u.name} for u in units],
        cost_categories=[{"id": c.id, "number": c.number, "name": c.name} for c in categories],
        cost_types=[
            CostTypeRef(id=t.id, name=t.name, cost_category_id=t.cost_category_id, location_id=t.location_id)
            for t in cost_types
        ],
        locations=[{"id": loc.id, "name": loc.name} for loc in locations],
        blocks=[{"id": b.id, "name": b.name} for b in blocks],
        tags=[Tag(id=t.id, name=t.name, tag_number=t.tag_number) for t in tags],
        documents=[
            Document(id=d.id, code=d.code, tag_id=d.tag_id, project_name=d.project_name or "")
            for d in documents
        ],
        versions=[
            DocumentVersion(id=v.id, document_id=v.documentation_id, version_number=v.version_number)
            for v in versions
        ],
    )
