from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Numeric, Boolean, Integer
from sqlalchemy.sql import func
from ..db import Base
from .custom_types import BigIntPK


class Project(Base):
    __tablename__ = "projects"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Block(Base):
    """Corpo/bloco de um projeto (edificio)."""

    __tablename__ = "blocks"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    project_id = Column(BigIntPK, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    bottom_underground_floor = Column(Integer, nullable=True)
    top_ground_floor = Column(Integer, nullable=True)


class Unit(Base):
    __tablename__ = "units"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    description = Column(Text, nullable=True)


class Location(Base):
    __tablename__ = "locations"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)


class CostCategory(Base):
    __tablename__ = "cost_categories"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    number = Column(Integer, nullable=True)
    name = Column(String(255), nullable=False)


class CostType(Base):
    """Tipo de custo (detail_cost_categories); tem uma localizacao por omissao."""

    __tablename__ = "detail_cost_categories"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    cost_category_id = Column(BigIntPK, ForeignKey("cost_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(BigIntPK, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)


class Material(Base):
    __tablename__ = "materials"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(512), nullable=False, unique=True)


class Nomenclature(Base):
    __tablename__ = "nomenclature"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(512), nullable=False, index=True)
    material_name = Column(String(512), nullable=True)


class Rate(Base):
    __tablename__ = "rates"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    work_name = Column(String(512), nullable=False, index=True)
    work_set = Column(String(255), nullable=True)
    base_rate = Column(Numeric(14, 2), nullable=False, default=0)
    unit_id = Column(BigIntPK, ForeignKey("units.id", ondelete="SET NULL"), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
