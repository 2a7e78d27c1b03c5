"""
Gravacao de uma linha da tabela em passos sequenciais e independentes:

  1. registo base (material, unidade, cor)
  2. categoria/tipo/localizacao (substitui em conflito)
  3. quantidades por piso (apaga e volta a inserir)
  4. nomenclatura/fornecedor (apaga e volta a inserir)
  5. versao do documento (cria a versao se nao existir) e ligacao a linha
  6. preco/trabalho

Os passos 2-6 so correm depois do passo 1. Uma falha no passo 1 aborta tudo;
falhas nos passos seguintes ficam registadas no resultado e nao desfazem os
passos ja gravados (a linha deve ser relida e o passo repetido).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from Chessboard_Orcamentos.app.services.chessboard_context import DEFAULT_MATERIAL_TYPE
from Chessboard_Orcamentos.app.services.chessboard_data import load_server_row
from Chessboard_Orcamentos.app.services.document_versions import as_int
from Chessboard_Orcamentos.app.services.floors import (
    QUANTITY_FIELDS,
    distribute,
    parse_floors,
    to_number,
)
from Chessboard_Orcamentos.app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

STEP_BASE = "base"
STEP_MAPPING = "mapping"
STEP_FLOORS = "floors"
STEP_NOMENCLATURE = "nomenclature"
STEP_DOCUMENTATION = "documentation"
STEP_RATES = "rates"

STEPS: Sequence[str] = (
    STEP_BASE,
    STEP_MAPPING,
    STEP_FLOORS,
    STEP_NOMENCLATURE,
    STEP_DOCUMENTATION,
    STEP_RATES,
)

STEP_FIELDS: Dict[str, Sequence[str]] = {
    STEP_BASE: ("material", "material_type", "unit_id", "color"),
    STEP_MAPPING: ("block_id", "cost_category_id", "cost_type_id", "location_id"),
    STEP_FLOORS: ("floors", "floor_quantities") + QUANTITY_FIELDS,
    STEP_NOMENCLATURE: ("nomenclature_id", "supplier"),
    STEP_DOCUMENTATION: ("tag_id", "document_id", "project_code", "version_id", "version_number"),
    STEP_RATES: ("rate_id", "work_name", "work_set"),
}


class RowValidationError(ValueError):
    """Linha nao gravavel; nenhuma escrita foi feita."""

    def __init__(self, key: Any, problems: Sequence[str]):
        self.key = key
        self.problems = list(problems)
        super().__init__(f"Linha {key}: " + "; ".join(self.problems))


class PersistStepError(RuntimeError):
    def __init__(self, step: str, key: Any, cause: BaseException):
        self.step = step
        self.key = key
        self.cause = cause
        super().__init__(f"Falha no passo '{step}' da linha {key}: {cause}")


@dataclass
class PersistResult:
    key: Any
    server_key: Any = None
    completed_steps: List[str] = field(default_factory=list)
    step_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.step_errors

    def raise_for_errors(self) -> None:
        if self.step_errors:
            step, message = next(iter(self.step_errors.items()))
            raise PersistStepError(step, self.server_key, RuntimeError(message))


def _present(value: Any) -> bool:
    return value not in (None, "")


def _as_id(value: Any) -> Optional[Any]:
    if not _present(value):
        return None
    if isinstance(value, str):
        text = value.strip()
        return int(text) if text.lstrip("-").isdigit() else text
    return value


def _quantity(value: Any) -> Optional[float]:
    if not _present(value):
        return None
    return to_number(value)


def validate_row(row: Mapping[str, Any], *, is_new: bool) -> None:
    problems: List[str] = []
    if is_new and not _present(row.get("project_id")):
        problems.append("projeto em falta")
    if not _present(row.get("cost_category_id")):
        problems.append("categoria de custo em falta")
    if not _present(row.get("cost_type_id")):
        problems.append("tipo de custo em falta")
    has_document = _present(row.get("document_id")) or _present(row.get("project_code"))
    if has_document and as_int(row.get("version_number")) is None:
        problems.append("documento sem versao")
    if problems:
        raise RowValidationError(row.get("key"), problems)


def floor_records(chessboard_id: Any, row: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Linhas de chessboard_floor_mapping para o estado atual da linha."""
    floors = parse_floors(row.get("floors"))
    if floors:
        current = {int(k): v for k, v in (row.get("floor_quantities") or {}).items()}
        if not any(f in current for f in floors):
            current = distribute({f: row.get(f) for f in QUANTITY_FIELDS}, floors)
        records = []
        for floor in floors:
            entry = current.get(floor) or {}
            record = {"chessboard_id": chessboard_id, "floor_number": floor}
            record.update({f: _quantity(entry.get(f)) for f in QUANTITY_FIELDS})
            records.append(record)
        return records

    if any(_present(row.get(f)) for f in QUANTITY_FIELDS):
        record = {"chessboard_id": chessboard_id, "floor_number": None}
        record.update({f: _quantity(row.get(f)) for f in QUANTITY_FIELDS})
        return [record]
    return []


class RowPersistence:
    def __init__(self, store: RecordStore):
        self.store = store
        self._steps: Dict[str, Callable[[Any, Mapping[str, Any]], None]] = {
            STEP_BASE: self._update_base,
            STEP_MAPPING: self._replace_mapping,
            STEP_FLOORS: self._replace_floors,
            STEP_NOMENCLATURE: self._replace_nomenclature,
            STEP_DOCUMENTATION: self._replace_documentation,
            STEP_RATES: self._replace_rates,
        }

    # ---- API ----
    def persist_new(self, row: Mapping[str, Any]) -> PersistResult:
        validate_row(row, is_new=True)
        result = PersistResult(key=row.get("key"))
        try:
            with self.store.transaction():
                result.server_key = self._insert_base(row)
        except Exception as exc:
            logger.exception("Falha ao criar a linha %s", row.get("key"))
            raise PersistStepError(STEP_BASE, row.get("key"), exc) from exc
        result.completed_steps.append(STEP_BASE)

        for step in STEPS[1:]:
            self._run_step(step, result.server_key, row, result)
        self._log_result(result)
        return result

    def persist_edit(
        self,
        key: Any,
        overlay: Mapping[str, Any],
        server_row: Optional[Mapping[str, Any]] = None,
    ) -> PersistResult:
        if server_row is None:
            # sem a linha do ecra: parte do estado gravado para nao apagar campos fora do overlay
            server_row = load_server_row(self.store, key)
            if server_row is None:
                raise PersistStepError(STEP_BASE, key, ValueError(f"Linha {key} nao encontrada"))
        row = {**server_row, **overlay, "key": key}
        validate_row(row, is_new=False)
        result = PersistResult(key=key, server_key=key)
        try:
            with self.store.transaction():
                self._update_base(key, row)
        except Exception as exc:
            logger.exception("Falha ao atualizar a linha %s", key)
            raise PersistStepError(STEP_BASE, key, exc) from exc
        result.completed_steps.append(STEP_BASE)

        touched = set(overlay)
        for step in STEPS[1:]:
            if touched.intersection(STEP_FIELDS[step]):
                self._run_step(step, key, row, result)
        self._log_result(result)
        return result

    def retry_step(self, key: Any, step: str, row: Mapping[str, Any]) -> None:
        """Repete um unico passo (todos sao idempotentes)."""
        if step not in self._steps:
            raise ValueError(f"Passo desconhecido: {step}")
        try:
            with self.store.transaction():
                self._steps[step](key, row)
        except Exception as exc:
            logger.exception("Falha ao repetir o passo %s da linha %s", step, key)
            raise PersistStepError(step, key, exc) from exc

    # ---- execucao ----
    def _run_step(self, step: str, key: Any, row: Mapping[str, Any], result: PersistResult) -> None:
        try:
            with self.store.transaction():
                self._steps[step](key, row)
        except Exception as exc:
            logger.exception("Falha no passo %s da linha %s", step, key)
            result.step_errors[step] = str(exc)
            return
        result.completed_steps.append(step)

    def _log_result(self, result: PersistResult) -> None:
        if result.step_errors:
            logger.warning(
                "Linha %s gravada parcialmente; passos com erro: %s",
                result.server_key,
                ", ".join(result.step_errors),
            )
        else:
            logger.info("Linha %s gravada (%d passos)", result.server_key, len(result.completed_steps))

    # ---- passo 1 ----
    def _material_id(self, name: Any) -> Optional[Any]:
        text = (name or "").strip() if isinstance(name, str) else name
        if not _present(text):
            return None
        found = self.store.query("materials", {"name": text})
        if found:
            return found[0]["id"]
        return self.store.insert("materials", {"name": text})

    def _base_values(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "material_id": self._material_id(row.get("material")),
            "material_type": row.get("material_type") or DEFAULT_MATERIAL_TYPE,
            "unit_id": _as_id(row.get("unit_id")),
            "color": row.get("color") or None,
        }

    def _insert_base(self, row: Mapping[str, Any]) -> Any:
        record = {"project_id": _as_id(row.get("project_id"))}
        record.update(self._base_values(row))
        return self.store.insert("chessboard", record)

    def _update_base(self, key: Any, row: Mapping[str, Any]) -> None:
        if not self.store.query("chessboard", {"id": key}):
            raise ValueError(f"Linha {key} nao encontrada")
        record = {"id": key}
        record.update(self._base_values(row))
        self.store.upsert("chessboard", record, "id")

    # ---- passos 2-6 ----
    def _replace_mapping(self, key: Any, row: Mapping[str, Any]) -> None:
        record = {"chessboard_id": key}
        for name in STEP_FIELDS[STEP_MAPPING]:
            record[name] = _as_id(row.get(name))
        self.store.upsert("chessboard_mapping", record, "chessboard_id")

    def _replace_floors(self, key: Any, row: Mapping[str, Any]) -> None:
        self.store.delete("chessboard_floor_mapping", {"chessboard_id": key})
        for record in floor_records(key, row):
            self.store.insert("chessboard_floor_mapping", record)

    def _replace_nomenclature(self, key: Any, row: Mapping[str, Any]) -> None:
        self.store.delete("chessboard_nomenclature_mapping", {"chessboard_id": key})
        nomenclature_id = _as_id(row.get("nomenclature_id"))
        if nomenclature_id is not None:
            self.store.insert(
                "chessboard_nomenclature_mapping",
                {
                    "chessboard_id": key,
                    "nomenclature_id": nomenclature_id,
                    "supplier_name": row.get("supplier") or None,
                },
            )

    def _document_id(self, row: Mapping[str, Any]) -> Optional[Any]:
        document_id = _as_id(row.get("document_id"))
        if document_id is not None:
            return document_id
        code = (row.get("project_code") or "").strip()
        if not code:
            return None
        found = self.store.query("documentations", {"code": code})
        if not found:
            raise ValueError(f"Documento com o codigo '{code}' nao encontrado")
        return found[0]["id"]

    def _version_id(self, document_id: Any, version_number: Any) -> Any:
        number = as_int(version_number)
        if number is None:
            raise ValueError(f"Versao invalida: {version_number}")
        found = self.store.query(
            "documentation_versions",
            {"documentation_id": document_id, "version_number": number},
        )
        if found:
            return found[0]["id"]
        logger.info("Criada a versao %s do documento %s", number, document_id)
        return self.store.insert(
            "documentation_versions",
            {"documentation_id": document_id, "version_number": number, "status": "not_filled"},
        )

    def _replace_documentation(self, key: Any, row: Mapping[str, Any]) -> None:
        document_id = self._document_id(row)
        version_id = None
        if document_id is not None:
            version_id = self._version_id(document_id, row.get("version_number"))
        self.store.delete("chessboard_documentation_mapping", {"chessboard_id": key})
        if version_id is not None:
            self.store.insert(
                "chessboard_documentation_mapping",
                {"chessboard_id": key, "version_id": version_id},
            )

    def _rate_id(self, row: Mapping[str, Any]) -> Optional[Any]:
        rate_id = _as_id(row.get("rate_id"))
        if rate_id is not None:
            return rate_id
        work_name = (row.get("work_name") or "").strip()
        if not work_name:
            return None
        found = self.store.query("rates", {"work_name": work_name})
        if found:
            return found[0]["id"]
        return self.store.insert(
            "rates",
            {
                "work_name": work_name,
                "work_set": row.get("work_set") or None,
                "base_rate": 0,
                "unit_id": _as_id(row.get("unit_id")),
                "active": True,
            },
        )

    def _replace_rates(self, key: Any, row: Mapping[str, Any]) -> None:
        rate_id = self._rate_id(row)
        self.store.delete("chessboard_rates_mapping", {"chessboard_id": key})
        if rate_id is not None:
            self.store.insert(
                "chessboard_rates_mapping",
                {"chessboard_id": key, "rate_id": rate_id, "work_set": row.get("work_set") or None},
            )
