from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

TEMP_KEY_PREFIX = "new-"

ROW_FIELDS: Sequence[str] = (
    "project_id",
    "material",
    "material_type",
    "unit_id",
    "color",
    "block_id",
    "floors",
    "floor_quantities",
    "cost_category_id",
    "cost_type_id",
    "location_id",
    "tag_id",
    "tag_name",
    "document_id",
    "project_code",
    "project_name",
    "version_id",
    "version_number",
    "quantity_pd",
    "quantity_spec",
    "quantity_rd",
    "nomenclature_id",
    "supplier",
    "rate_id",
    "work_name",
    "work_set",
)

ROW_COLORS: Sequence[str] = ("", "green", "yellow", "blue", "red")
DEFAULT_MATERIAL_TYPE = "base"


@dataclass
class FilterContext:
    """Estado transitorio dos filtros da tabela (nao e gravado na BD)."""

    project_id: Optional[int] = None
    block_ids: Tuple[int, ...] = ()
    cost_category_ids: Tuple[int, ...] = ()
    cost_type_ids: Tuple[int, ...] = ()
    tag_ids: Tuple[int, ...] = ()
    document_ids: Tuple[int, ...] = ()
    # documento -> versao escolhida (ids)
    selected_versions: Dict[int, int] = field(default_factory=dict)


class KeySequence:
    """Gera chaves temporarias ("new-1", "new-2", ...) para linhas por gravar."""

    def __init__(self, prefix: str = TEMP_KEY_PREFIX, start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def next_key(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


def is_temp_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(TEMP_KEY_PREFIX)


def empty_row(key: str, **values: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {name: None for name in ROW_FIELDS}
    row.update(
        {
            "key": key,
            "material": "",
            "material_type": DEFAULT_MATERIAL_TYPE,
            "color": "",
            "floors": "",
            "tag_name": "",
            "project_code": "",
            "project_name": "",
            "quantity_pd": "",
            "quantity_spec": "",
            "quantity_rd": "",
            "supplier": "",
            "work_name": "",
            "work_set": "",
        }
    )
    row.update(values)
    return row
