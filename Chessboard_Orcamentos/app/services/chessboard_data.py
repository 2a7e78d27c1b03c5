from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from Chessboard_Orcamentos.app.services.chessboard_context import DEFAULT_MATERIAL_TYPE, FilterContext
from Chessboard_Orcamentos.app.services.floors import (
    QUANTITY_FIELDS,
    aggregate,
    format_floors,
    format_quantity,
)
from Chessboard_Orcamentos.app.services.record_store import RecordStore, get_first_or_self
from Chessboard_Orcamentos.app.services.reference_data import Tag, tag_label

logger = logging.getLogger(__name__)

ROW_RELATIONS: Sequence[str] = (
    "material",
    "unit",
    "mapping.block",
    "floors",
    "nomenclature_mapping.nomenclature",
    "documentation_mapping.version.document.tag",
    "rates_mapping.rate",
)


def _one(value: Any) -> Dict[str, Any]:
    return get_first_or_self(value) or {}


def _floor_values(records: Sequence[Mapping[str, Any]]):
    """Devolve (floors, floor_quantities, totals) a partir das linhas de chessboard_floor_mapping."""
    numbered = [r for r in records if r.get("floor_number") is not None]
    if numbered:
        floor_quantities = {
            int(r["floor_number"]): {field: format_quantity(r.get(field)) for field in QUANTITY_FIELDS}
            for r in numbered
        }
        return format_floors(floor_quantities), floor_quantities, aggregate(floor_quantities)

    loose = next((r for r in records if r.get("floor_number") is None), None)
    totals = {field: format_quantity(loose.get(field)) if loose else "" for field in QUANTITY_FIELDS}
    return "", None, totals


def normalize_server_row(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Converte a linha com relacoes aninhadas (objeto ou lista de um) na forma
    plana usada pela tabela.
    """
    mapping = _one(raw.get("mapping"))
    doc_mapping = _one(raw.get("documentation_mapping"))
    version = _one(doc_mapping.get("version"))
    document = _one(version.get("document"))
    tag = _one(document.get("tag"))
    nomenclature = _one(raw.get("nomenclature_mapping"))
    rate_mapping = _one(raw.get("rates_mapping"))
    rate = _one(rate_mapping.get("rate"))

    floors, floor_quantities, totals = _floor_values(raw.get("floors") or [])

    row: Dict[str, Any] = {
        "key": raw["id"],
        "project_id": raw.get("project_id"),
        "material": _one(raw.get("material")).get("name") or "",
        "material_type": raw.get("material_type") or DEFAULT_MATERIAL_TYPE,
        "unit_id": raw.get("unit_id"),
        "unit": _one(raw.get("unit")).get("name") or "",
        "color": raw.get("color") or "",
        "block_id": mapping.get("block_id"),
        "block": _one(mapping.get("block")).get("name") or "",
        "floors": floors,
        "floor_quantities": floor_quantities,
        "cost_category_id": mapping.get("cost_category_id"),
        "cost_type_id": mapping.get("cost_type_id"),
        "location_id": mapping.get("location_id"),
        "tag_id": tag.get("id"),
        "tag_name": tag_label(Tag(id=tag["id"], name=tag.get("name") or "", tag_number=tag.get("tag_number"))) if tag else "",
        "document_id": document.get("id"),
        "project_code": document.get("code") or "",
        "project_name": document.get("project_name") or "",
        "version_id": version.get("id"),
        "version_number": version.get("version_number"),
        "nomenclature_id": nomenclature.get("nomenclature_id"),
        "nomenclature": _one(nomenclature.get("nomenclature")).get("name") or "",
        "supplier": nomenclature.get("supplier_name") or "",
        "rate_id": rate_mapping.get("rate_id"),
        "work_name": rate.get("work_name") or "",
        "work_set": rate_mapping.get("work_set") or "",
    }
    row.update(totals)
    return row


def _matches(value: Any, selected: Sequence[Any]) -> bool:
    return not selected or value in selected


def apply_filters(rows: Sequence[Mapping[str, Any]], ctx: FilterContext) -> List[Mapping[str, Any]]:
    filtered = []
    for row in rows:
        if not _matches(row.get("block_id"), ctx.block_ids):
            continue
        if not _matches(row.get("cost_category_id"), ctx.cost_category_ids):
            continue
        if not _matches(row.get("cost_type_id"), ctx.cost_type_ids):
            continue
        if not _matches(row.get("tag_id"), ctx.tag_ids):
            continue
        if not _matches(row.get("document_id"), ctx.document_ids):
            continue
        selected_version = ctx.selected_versions.get(row.get("document_id"))
        if selected_version is not None and row.get("version_id") != selected_version:
            continue
        filtered.append(row)
    return filtered


def load_server_rows(store: RecordStore, ctx: FilterContext) -> List[Dict[str, Any]]:
    """Linhas do projeto filtradas, pela ordem do servidor (mais recentes primeiro)."""
    if ctx.project_id is None:
        return []
    raw_rows = store.query(
        "chessboard",
        {"project_id": ctx.project_id},
        relations=ROW_RELATIONS,
        order_by=("-created_at", "-id"),
    )
    rows = [normalize_server_row(raw) for raw in raw_rows]
    filtered = apply_filters(rows, ctx)
    logger.debug("Projeto %s: %d linhas (%d depois dos filtros)", ctx.project_id, len(rows), len(filtered))
    return filtered


def find_server_row(rows: Sequence[Mapping[str, Any]], key: Any) -> Optional[Mapping[str, Any]]:
    return next((r for r in rows if r.get("key") == key), None)


def load_server_row(store: RecordStore, key: Any) -> Optional[Dict[str, Any]]:
    """Estado gravado de uma linha (mesmo formato de load_server_rows), ou None."""
    raw_rows = store.query("chessboard", {"id": key}, relations=ROW_RELATIONS)
    return normalize_server_row(raw_rows[0]) if raw_rows else None
