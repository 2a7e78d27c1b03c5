"""
Resolucao do documento/tag/versao de uma linha da tabela.

Ordem por campo (a primeira que resolver ganha):
  1. valor ja guardado na linha;
  2. selecao nos filtros (a primeira, se houver varias);
  3. para a tag: primeira tag das listas de referencia.
A versao e resolvida a parte: versao guardada (se pertencer ao documento),
versao escolhida para o documento, ou a de numero mais alto.
Nunca levanta excecoes: o que nao resolve fica vazio e a gravacao decide.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from Chessboard_Orcamentos.app.services.chessboard_context import FilterContext
from Chessboard_Orcamentos.app.services.reference_data import ReferenceData, tag_label

logger = logging.getLogger(__name__)


@dataclass
class ResolvedDocument:
    tag_id: Optional[int] = None
    tag_name: str = ""
    document_id: Optional[int] = None
    project_code: str = ""
    project_name: str = ""
    version_id: Optional[int] = None
    version_number: Optional[int] = None

    def as_row_values(self) -> Dict[str, Any]:
        return asdict(self)


def _present(value: Any) -> bool:
    return value not in (None, "")


def as_int(value: Any) -> Optional[int]:
    """Numero inteiro de versao ('2', 2, '2.0'); None se nao for um inteiro."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def _resolve_document_id(row: Mapping[str, Any], ctx: FilterContext, ref: ReferenceData) -> Optional[int]:
    if _present(row.get("document_id")):
        return row.get("document_id")
    candidates = list(ctx.document_ids or ())
    stored_tag = row.get("tag_id")
    if _present(stored_tag):
        # documentos de outra tag nao servem para uma linha com tag definida
        compatible = []
        for doc_id in candidates:
            doc = ref.document(doc_id)
            if doc is None or doc.tag_id in (None, stored_tag):
                compatible.append(doc_id)
        candidates = compatible
    if len(candidates) > 1:
        logger.debug("Varios documentos selecionados %s; usado o primeiro", candidates)
    return candidates[0] if candidates else None


def _resolve_tag_id(
    row: Mapping[str, Any], document_id: Optional[int], ctx: FilterContext, ref: ReferenceData
) -> Optional[int]:
    if _present(row.get("tag_id")):
        return row.get("tag_id")
    document = ref.document(document_id) if document_id is not None else None
    if document is not None and document.tag_id is not None:
        return document.tag_id
    if ctx.tag_ids:
        if len(ctx.tag_ids) > 1:
            logger.debug("Varias tags selecionadas %s; usada a primeira", list(ctx.tag_ids))
        return ctx.tag_ids[0]
    if ref.tags:
        return ref.tags[0].id
    return None


def _resolve_version(
    row: Mapping[str, Any], document_id: Optional[int], ctx: FilterContext, ref: ReferenceData
):
    """Devolve (version_id, version_number)."""
    if document_id is None:
        return None, None

    stored_id = row.get("version_id")
    stored_number = as_int(row.get("version_number"))
    if _present(stored_id):
        version = ref.version(stored_id)
        if version is not None and version.document_id == document_id:
            return version.id, version.version_number
        if version is None and stored_number is not None:
            # versao fora das listas carregadas: confia no que esta na linha
            return stored_id, stored_number
    elif stored_number is not None:
        match = next(
            (v for v in ref.versions_for(document_id) if v.version_number == stored_number),
            None,
        )
        if match is not None:
            return match.id, match.version_number
        return None, stored_number

    selected = ref.version(ctx.selected_versions.get(document_id))
    if selected is not None and selected.document_id == document_id:
        return selected.id, selected.version_number

    latest = ref.latest_version(document_id)
    if latest is not None:
        return latest.id, latest.version_number
    return None, None


def resolve_document(row: Mapping[str, Any], ctx: FilterContext, ref: ReferenceData) -> ResolvedDocument:
    document_id = _resolve_document_id(row, ctx, ref)
    tag_id = _resolve_tag_id(row, document_id, ctx, ref)
    document = ref.document(document_id) if document_id is not None else None
    version_id, version_number = _resolve_version(row, document_id, ctx, ref)

    tag_name = row.get("tag_name") if _present(row.get("tag_name")) else tag_label(ref.tag(tag_id))
    project_code = row.get("project_code")
    if not _present(project_code):
        project_code = document.code if document else ""
    project_name = row.get("project_name")
    if not _present(project_name):
        project_name = document.project_name if document else ""

    return ResolvedDocument(
        tag_id=tag_id,
        tag_name=tag_name or "",
        document_id=document_id,
        project_code=project_code or "",
        project_name=project_name or "",
        version_id=version_id,
        version_number=version_number,
    )


def missing_values(row: Mapping[str, Any], resolved: ResolvedDocument) -> Dict[str, Any]:
    """Campos que a linha nao tem e que a resolucao preencheu."""
    updates: Dict[str, Any] = {}
    for name, value in resolved.as_row_values().items():
        if not _present(row.get(name)) and _present(value):
            updates[name] = value
    return updates


def tag_change_updates(row: Mapping[str, Any], new_tag_id: Any, ref: ReferenceData) -> Dict[str, Any]:
    """
    Alteracoes ao mudar a tag: se for diferente da anterior, documento e versao
    deixam de valer e sao limpos (a mudanca de documento nunca limpa a tag).
    """
    tag_id = new_tag_id if _present(new_tag_id) else None
    updates: Dict[str, Any] = {"tag_id": tag_id, "tag_name": tag_label(ref.tag(tag_id))}
    if tag_id != row.get("tag_id"):
        updates.update(
            {
                "document_id": None,
                "project_code": "",
                "project_name": "",
                "version_id": None,
                "version_number": None,
            }
        )
    return updates


def document_change_updates(
    row: Mapping[str, Any], new_document_id: Any, ctx: FilterContext, ref: ReferenceData
) -> Dict[str, Any]:
    """Ao escolher outro documento: codigo, nome e versao sao resolvidos de novo."""
    document_id = new_document_id if _present(new_document_id) else None
    document = ref.document(document_id) if document_id is not None else None
    version_id, version_number = _resolve_version({}, document_id, ctx, ref)
    updates: Dict[str, Any] = {
        "document_id": document_id,
        "project_code": document.code if document else "",
        "project_name": document.project_name if document else "",
        "version_id": version_id,
        "version_number": version_number,
    }
    if document is not None and document.tag_id is not None and not _present(row.get("tag_id")):
        updates["tag_id"] = document.tag_id
        updates["tag_name"] = tag_label(ref.tag(document.tag_id))
    return updates


def version_change_updates(row: Mapping[str, Any], new_version_id: Any, ref: ReferenceData) -> Dict[str, Any]:
    version = ref.version(new_version_id)
    if version is None or version.document_id != row.get("document_id"):
        return {"version_id": None, "version_number": None}
    return {"version_id": version.id, "version_number": version.version_number}
