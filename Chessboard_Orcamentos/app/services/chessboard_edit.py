"""
Estado em memoria da tabela: linhas novas (chave temporaria) e edicoes por
cima das linhas do servidor. Nada aqui escreve na BD; a gravacao e feita por
chessboard_persist / chessboard_batch e o resultado volta por apply_outcomes.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from Chessboard_Orcamentos.app.services.chessboard_context import (
    ROW_COLORS,
    FilterContext,
    KeySequence,
    empty_row,
    is_temp_key,
)
from Chessboard_Orcamentos.app.services.document_versions import (
    as_int,
    document_change_updates,
    missing_values,
    resolve_document,
    tag_change_updates,
    version_change_updates,
)
from Chessboard_Orcamentos.app.services.floors import (
    QUANTITY_FIELDS,
    aggregate,
    distribute,
    empty_floor_entry,
    format_floors,
    parse_floors,
)
from Chessboard_Orcamentos.app.services.preferences import (
    MemoryPreferenceStore,
    PreferenceStore,
    load_selected_versions,
    save_selected_versions,
)
from Chessboard_Orcamentos.app.services.reference_data import ReferenceData
from Chessboard_Orcamentos.app.services.row_merger import MergedRow, merge_rows

logger = logging.getLogger(__name__)

POSITION_START = "start"
POSITION_END = "end"
POSITION_AFTER = "after"


class ChessboardEditor:
    def __init__(
        self,
        reference: ReferenceData,
        filters: FilterContext,
        *,
        keys: Optional[KeySequence] = None,
        preferences: Optional[PreferenceStore] = None,
        user_id: Optional[int] = None,
    ):
        self.reference = reference
        self.filters = filters
        self.keys = keys or KeySequence()
        self.preferences = preferences or MemoryPreferenceStore()
        self.user_id = user_id
        self.new_rows: List[Dict[str, Any]] = []
        self.overlays: Dict[Any, Dict[str, Any]] = {}
        self._editing: Dict[Any, Mapping[str, Any]] = {}
        if filters.project_id is not None and not filters.selected_versions:
            filters.selected_versions.update(load_selected_versions(self.preferences, filters.project_id))

    # ---- linhas novas ----
    def _defaults(self) -> Dict[str, Any]:
        ctx = self.filters
        values: Dict[str, Any] = {"project_id": ctx.project_id}
        if ctx.block_ids:
            values["block_id"] = ctx.block_ids[0]
            values["block"] = self.reference.block_name(ctx.block_ids[0])
        if ctx.cost_category_ids:
            values["cost_category_id"] = ctx.cost_category_ids[0]
        if ctx.cost_type_ids:
            values["cost_type_id"] = ctx.cost_type_ids[0]
            cost_type = self.reference.cost_type(ctx.cost_type_ids[0])
            if cost_type is not None and cost_type.location_id is not None:
                values["location_id"] = cost_type.location_id
        return values

    def _insert_new(self, row: Dict[str, Any], position: str, after_key: Any = None) -> None:
        if position == POSITION_END:
            self.new_rows.append(row)
            return
        if position == POSITION_AFTER:
            for index, existing in enumerate(self.new_rows):
                if existing["key"] == after_key:
                    self.new_rows.insert(index + 1, row)
                    return
        self.new_rows.insert(0, row)

    def add_row(self, position: str = POSITION_START, after_key: Any = None) -> Dict[str, Any]:
        row = empty_row(self.keys.next_key(), **self._defaults())
        row.update(missing_values(row, resolve_document(row, self.filters, self.reference)))
        self._insert_new(row, position, after_key)
        logger.debug("Nova linha %s", row["key"])
        return row

    def copy_row(self, key: Any, server_row: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Duplica uma linha (nova, em edicao ou do servidor) como linha nova."""
        if self._is_new(key) or key in self.overlays:
            source = self.row_data(key)
        elif server_row is not None and server_row.get("key") == key:
            source = dict(server_row)
        else:
            raise KeyError(f"Linha {key} nao encontrada para copiar")

        row = copy.deepcopy(source)
        row["key"] = self.keys.next_key()
        row.setdefault("project_id", self.filters.project_id)
        if self._is_new(key):
            self._insert_new(row, POSITION_AFTER, key)
        else:
            self._insert_new(row, POSITION_START)
        return row

    def remove_new_row(self, key: Any) -> bool:
        before = len(self.new_rows)
        self.new_rows = [r for r in self.new_rows if r["key"] != key]
        return len(self.new_rows) != before

    # ---- edicao de linhas do servidor ----
    def start_editing(self, server_row: Mapping[str, Any]) -> Dict[str, Any]:
        key = server_row["key"]
        if key in self.overlays:
            return self.overlays[key]
        self._editing[key] = server_row
        resolved = resolve_document(server_row, self.filters, self.reference)
        self.overlays[key] = missing_values(server_row, resolved)
        return self.overlays[key]

    def cancel_editing(self, key: Any) -> None:
        self.overlays.pop(key, None)
        self._editing.pop(key, None)

    def is_editing(self, key: Any) -> bool:
        return key in self.overlays

    # ---- acesso ----
    def _is_new(self, key: Any) -> bool:
        return any(r["key"] == key for r in self.new_rows)

    def _new_row(self, key: Any) -> Dict[str, Any]:
        for row in self.new_rows:
            if row["key"] == key:
                return row
        raise KeyError(f"Linha nova {key} nao encontrada")

    def row_data(self, key: Any) -> Dict[str, Any]:
        """Vista atual de uma linha editavel (nova, ou servidor + edicao)."""
        if self._is_new(key):
            return dict(self._new_row(key))
        if key in self.overlays:
            return {**self._editing.get(key, {}), **self.overlays[key]}
        raise KeyError(f"Linha {key} nao esta em edicao")

    def _apply(self, key: Any, updates: Mapping[str, Any]) -> None:
        if self._is_new(key):
            self._new_row(key).update(updates)
        else:
            self.overlays[key].update(updates)

    # ---- alteracoes de celulas ----
    def _floors_updates(self, current: Mapping[str, Any], value: Any) -> Dict[str, Any]:
        floors = parse_floors(value)
        old_map = current.get("floor_quantities") or {}
        if not floors:
            return {"floors": "", "floor_quantities": None}
        updates: Dict[str, Any] = {"floors": format_floors(floors)}
        if not old_map:
            updates["floor_quantities"] = None
            return updates
        new_map = {f: dict(old_map.get(f) or empty_floor_entry()) for f in floors}
        updates["floor_quantities"] = new_map
        updates.update(aggregate(new_map))
        return updates

    def _cell_updates(self, current: Mapping[str, Any], field: str, value: Any) -> Dict[str, Any]:
        if field == "tag_id":
            return tag_change_updates(current, value, self.reference)
        if field == "document_id":
            return document_change_updates(current, value, self.filters, self.reference)
        if field == "version_id":
            return version_change_updates(current, value, self.reference)
        if field == "version_number":
            number = as_int(value)
            if number is None and value not in (None, ""):
                raise ValueError(f"Versao invalida: {value}")
            match = next(
                (
                    v
                    for v in self.reference.versions_for(current.get("document_id"))
                    if v.version_number == number
                ),
                None,
            )
            return {"version_number": number, "version_id": match.id if match else None}
        if field == "floors":
            return self._floors_updates(current, value)
        if field in QUANTITY_FIELDS:
            updates: Dict[str, Any] = {field: "" if value is None else str(value)}
            if parse_floors(current.get("floors")):
                # o total passa a mandar; sera distribuido de novo ao gravar
                updates["floor_quantities"] = None
            return updates
        if field == "color":
            return {"color": self._check_color(value)}
        if field == "cost_type_id":
            updates = {"cost_type_id": value}
            cost_type = self.reference.cost_type(value)
            if cost_type is not None and cost_type.location_id is not None:
                updates["location_id"] = cost_type.location_id
            return updates
        if field == "block_id":
            return {"block_id": value, "block": self.reference.block_name(value)}
        return {field: value}

    def update_cell(self, key: Any, field: str, value: Any) -> Dict[str, Any]:
        current = self.row_data(key)
        updates = self._cell_updates(current, field, value)
        self._apply(key, updates)
        return updates

    def update_floor_quantity(self, key: Any, floor: int, field: str, value: Any) -> Dict[str, Any]:
        if field not in QUANTITY_FIELDS:
            raise ValueError(f"Campo de quantidade invalido: {field}")
        current = self.row_data(key)
        floors = parse_floors(current.get("floors"))
        if int(floor) not in floors:
            raise ValueError(f"Piso {floor} nao pertence a linha {key}")

        floor_map = copy.deepcopy(current.get("floor_quantities") or {})
        if not floor_map:
            floor_map = distribute({f: current.get(f) for f in QUANTITY_FIELDS}, floors)
        entry = floor_map.setdefault(int(floor), empty_floor_entry())
        entry[field] = "" if value is None else str(value)

        updates: Dict[str, Any] = {"floor_quantities": floor_map}
        updates.update(aggregate(floor_map))
        self._apply(key, updates)
        return updates

    @staticmethod
    def _check_color(color: Any) -> str:
        color = color or ""
        if color not in ROW_COLORS:
            raise ValueError(f"Cor invalida: {color}")
        return color

    def set_row_color(self, key: Any, color: Any) -> None:
        self._apply(key, {"color": self._check_color(color)})

    # ---- vista / estado ----
    def rows(self, server_rows: Sequence[Mapping[str, Any]]) -> List[MergedRow]:
        return merge_rows(self.new_rows, self.overlays, server_rows)

    def has_changes(self) -> bool:
        return bool(self.new_rows or self.overlays)

    def reset(self) -> None:
        self.new_rows = []
        self.overlays = {}
        self._editing = {}

    def select_version(self, document_id: int, version_id: Optional[int]) -> None:
        if version_id is None:
            self.filters.selected_versions.pop(document_id, None)
        else:
            self.filters.selected_versions[document_id] = version_id
        save_selected_versions(self.preferences, self.filters.project_id, self.filters.selected_versions)

    def apply_outcomes(self, outcomes: Sequence[Any]) -> List[Any]:
        """
        Atualiza o estado depois de uma gravacao em lote. Linhas novas cujo
        registo base foi criado saem da lista (mesmo com passos em erro, para
        nao duplicar); edicoes so saem quando todos os passos correram bem.
        Devolve os resultados com problemas.
        """
        problems = []
        for outcome in outcomes:
            if is_temp_key(outcome.key):
                if outcome.server_key is not None:
                    self.remove_new_row(outcome.key)
            elif outcome.ok:
                self.cancel_editing(outcome.key)
            if not outcome.ok:
                problems.append(outcome)
        return problems
