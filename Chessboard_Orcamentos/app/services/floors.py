from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

QUANTITY_FIELDS = ("quantity_pd", "quantity_spec", "quantity_rd")

# "1-3", "-3-7", "-1--3", "5-2"
_RANGE_RE = re.compile(r"^(-?\d+)-(-?\d+)$")
_SINGLE_RE = re.compile(r"^-?\d+$")


def parse_floors(text: Optional[str]) -> List[int]:
    """
    Converte a string de pisos ("1-5,7") numa lista ordenada e sem repetidos.
    Intervalos invertidos ("5-1") sao aceites; segmentos invalidos sao ignorados.
    """
    if not (text or "").strip():
        return []

    floors = set()
    for part in str(text).split(","):
        part = part.strip()
        if not part:
            continue
        match = _RANGE_RE.match(part)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start > end:
                start, end = end, start
            floors.update(range(start, end + 1))
        elif _SINGLE_RE.match(part):
            floors.add(int(part))
    return sorted(floors)


def has_multiple_floors(text: Optional[str]) -> bool:
    return len(parse_floors(text)) > 1


def format_floors(floors: Iterable[int]) -> str:
    """
    Forma canonica: sequencias de 3 ou mais pisos seguidos -> "a-b",
    pares seguidos -> "a,b", isolados -> "a".
    """
    ordered = sorted(set(int(f) for f in floors))
    if not ordered:
        return ""

    groups: List[List[int]] = [[ordered[0]]]
    for floor in ordered[1:]:
        if floor == groups[-1][-1] + 1:
            groups[-1].append(floor)
        else:
            groups.append([floor])

    parts: List[str] = []
    for group in groups:
        if len(group) >= 3:
            parts.append(f"{group[0]}-{group[-1]}")
        else:
            parts.extend(str(f) for f in group)
    return ",".join(parts)


def to_number(value: Any) -> float:
    """Valor numerico de uma quantidade; vazio ou invalido conta como zero."""
    if value in (None, ""):
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", ".")
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def format_quantity(value: Optional[float]) -> str:
    if value is None:
        return ""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return str(number)


def empty_floor_entry() -> Dict[str, str]:
    return {field: "" for field in QUANTITY_FIELDS}


def aggregate(floor_quantities: Optional[Mapping[int, Mapping[str, Any]]]) -> Dict[str, str]:
    """
    Soma as tres quantidades por todos os pisos.
    Sem pisos devolve "" (sem dados), nunca "0".
    """
    entries = list((floor_quantities or {}).values())
    if not entries:
        return {field: "" for field in QUANTITY_FIELDS}

    totals: Dict[str, str] = {}
    for field in QUANTITY_FIELDS:
        totals[field] = format_quantity(sum(to_number(entry.get(field)) for entry in entries))
    return totals


def distribute(totals: Any, floors: Iterable[int]) -> Dict[int, Dict[str, str]]:
    """
    Divide cada total em partes iguais pelos pisos (total / numero de pisos).
    E uma aproximacao: o utilizador pode corrigir piso a piso depois.
    Um numero simples e tratado como a quantidade de projeto (quantity_pd).
    """
    if not isinstance(totals, Mapping):
        totals = {"quantity_pd": totals}
    floor_list = sorted(set(int(f) for f in floors))
    if not floor_list:
        return {}

    count = len(floor_list)
    per_floor: Dict[str, str] = {}
    for field in QUANTITY_FIELDS:
        raw = totals.get(field)
        if raw in (None, ""):
            per_floor[field] = ""
        else:
            per_floor[field] = format_quantity(to_number(raw) / count)
    return {floor: dict(per_floor) for floor in floor_list}
