from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db import Base
from .custom_types import BigIntPK


class DocumentationTag(Base):
    """Seccao/tag de documentacao (ex.: "3 AR")."""

    __tablename__ = "documentation_tags"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    tag_number = Column(Integer, nullable=True)
    name = Column(String(255), nullable=False)


class Documentation(Base):
    __tablename__ = "documentations"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    project_id = Column(BigIntPK, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    tag_id = Column(BigIntPK, ForeignKey("documentation_tags.id", ondelete="SET NULL"), nullable=True, index=True)
    code = Column(String(255), nullable=False, index=True)
    project_name = Column(String(512), nullable=True)
    stage = Column(String(8), nullable=True)

    tag = relationship("DocumentationTag")
    versions = relationship("DocumentationVersion", back_populates="document", cascade="all, delete-orphan")


class DocumentationVersion(Base):
    __tablename__ = "documentation_versions"
    __table_args__ = (
        UniqueConstraint("documentation_id", "version_number", name="u_doc_version"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    documentation_id = Column(BigIntPK, ForeignKey("documentations.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    issue_date = Column(Date, nullable=True)
    status = Column(String(32), nullable=False, default="not_filled")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    document = relationship("Documentation", back_populates="versions")
