from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db import Base
from .custom_types import BigIntPK

# quantidades em float: os totais por piso sao somados em Python
Quantity = Numeric(18, 4, asdecimal=False)


class Chessboard(Base):
    """Linha da tabela "xadrez" (material + quantidades)."""

    __tablename__ = "chessboard"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    project_id = Column(BigIntPK, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(BigIntPK, ForeignKey("materials.id", ondelete="SET NULL"), nullable=True)
    material_type = Column(String(16), nullable=True, default="base")
    unit_id = Column(BigIntPK, ForeignKey("units.id", ondelete="SET NULL"), nullable=True)
    color = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    material = relationship("Material")
    unit = relationship("Unit")
    mapping = relationship("ChessboardMapping", uselist=False, cascade="all, delete-orphan")
    floors = relationship("ChessboardFloorMapping", cascade="all, delete-orphan")
    nomenclature_mapping = relationship("ChessboardNomenclatureMapping", cascade="all, delete-orphan")
    documentation_mapping = relationship("ChessboardDocumentationMapping", cascade="all, delete-orphan")
    rates_mapping = relationship("ChessboardRatesMapping", cascade="all, delete-orphan")


class _MappingBase:
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)


class ChessboardMapping(Base, _MappingBase):
    __tablename__ = "chessboard_mapping"

    chessboard_id = Column(BigIntPK, ForeignKey("chessboard.id", ondelete="CASCADE"), nullable=False, unique=True)
    block_id = Column(BigIntPK, ForeignKey("blocks.id", ondelete="SET NULL"), nullable=True)
    cost_category_id = Column(BigIntPK, ForeignKey("cost_categories.id", ondelete="SET NULL"), nullable=True)
    cost_type_id = Column(BigIntPK, ForeignKey("detail_cost_categories.id", ondelete="SET NULL"), nullable=True)
    location_id = Column(BigIntPK, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)

    block = relationship("Block")
    cost_category = relationship("CostCategory")
    cost_type = relationship("CostType")
    location = relationship("Location")


class ChessboardFloorMapping(Base, _MappingBase):
    """Quantidades por piso; floor_number NULL guarda os totais de uma linha sem pisos."""

    __tablename__ = "chessboard_floor_mapping"

    chessboard_id = Column(BigIntPK, ForeignKey("chessboard.id", ondelete="CASCADE"), nullable=False, index=True)
    floor_number = Column(Integer, nullable=True)
    quantity_pd = Column(Quantity, nullable=True)
    quantity_spec = Column(Quantity, nullable=True)
    quantity_rd = Column(Quantity, nullable=True)


class ChessboardNomenclatureMapping(Base, _MappingBase):
    __tablename__ = "chessboard_nomenclature_mapping"

    chessboard_id = Column(BigIntPK, ForeignKey("chessboard.id", ondelete="CASCADE"), nullable=False, index=True)
    nomenclature_id = Column(BigIntPK, ForeignKey("nomenclature.id", ondelete="CASCADE"), nullable=False)
    supplier_name = Column(String(512), nullable=True)

    nomenclature = relationship("Nomenclature")


class ChessboardDocumentationMapping(Base, _MappingBase):
    __tablename__ = "chessboard_documentation_mapping"

    chessboard_id = Column(BigIntPK, ForeignKey("chessboard.id", ondelete="CASCADE"), nullable=False, index=True)
    version_id = Column(BigIntPK, ForeignKey("documentation_versions.id", ondelete="CASCADE"), nullable=False)

    version = relationship("DocumentationVersion")


class ChessboardRatesMapping(Base, _MappingBase):
    __tablename__ = "chessboard_rates_mapping"

    chessboard_id = Column(BigIntPK, ForeignKey("chessboard.id", ondelete="CASCADE"), nullable=False, index=True)
    rate_id = Column(BigIntPK, ForeignKey("rates.id", ondelete="CASCADE"), nullable=False)
    work_set = Column(String(255), nullable=True)

    rate = relationship("Rate")
