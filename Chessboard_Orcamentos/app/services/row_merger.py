from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence


@dataclass(frozen=True)
class MergedRow:
    """Linha pronta a desenhar; so linhas novas ou em edicao sao editaveis."""

    key: Any
    data: Mapping[str, Any]
    editable: bool
    is_new: bool = False


def merge_rows(
    new_rows: Sequence[Mapping[str, Any]],
    edit_overlays: Mapping[Any, Mapping[str, Any]],
    server_rows: Iterable[Mapping[str, Any]],
) -> List[MergedRow]:
    """
    Junta as tres fontes numa unica lista: primeiro as linhas novas (pela ordem
    de insercao), depois as linhas do servidor com as edicoes por cima.
    Nada e alterado in-place; linhas com edicao dao origem a um dict novo.
    """
    merged: List[MergedRow] = [
        MergedRow(key=row["key"], data=row, editable=True, is_new=True) for row in new_rows
    ]
    for row in server_rows:
        key = row["key"]
        overlay = edit_overlays.get(key)
        if overlay is None:
            merged.append(MergedRow(key=key, data=row, editable=False))
            continue
        data: Dict[str, Any] = {**row, **overlay}
        merged.append(MergedRow(key=key, data=data, editable=True))
    return merged
