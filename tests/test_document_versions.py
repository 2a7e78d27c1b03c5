from Chessboard_Orcamentos.app.services.chessboard_context import FilterContext
from Chessboard_Orcamentos.app.services.document_versions import (
    as_int,
    document_change_updates,
    missing_values,
    resolve_document,
    tag_change_updates,
    version_change_updates,
)


def test_stored_values_win(reference):
    row = {
        "tag_id": 1,
        "document_id": 10,
        "project_code": "AR-001",
        "project_name": "Arquitetura",
        "version_id": 100,
        "version_number": 1,
    }
    ctx = FilterContext(document_ids=(11,), tag_ids=(2,), selected_versions={10: 101})

    resolved = resolve_document(row, ctx, reference)

    assert resolved.document_id == 10
    assert resolved.tag_id == 1
    assert resolved.version_id == 100
    assert resolved.version_number == 1


def test_filter_document_gives_tag_code_and_latest_version(reference):
    resolved = resolve_document({}, FilterContext(document_ids=(10,)), reference)

    assert resolved.document_id == 10
    assert resolved.tag_id == 1
    assert resolved.tag_name == "3 AR"
    assert resolved.project_code == "AR-001"
    assert resolved.project_name == "Arquitetura"
    assert (resolved.version_id, resolved.version_number) == (101, 2)


def test_selected_version_beats_latest(reference):
    ctx = FilterContext(document_ids=(10,), selected_versions={10: 100})
    resolved = resolve_document({}, ctx, reference)
    assert (resolved.version_id, resolved.version_number) == (100, 1)


def test_selected_version_of_another_document_is_ignored(reference):
    ctx = FilterContext(document_ids=(10,), selected_versions={10: 200})
    resolved = resolve_document({}, ctx, reference)
    assert resolved.version_id == 101


def test_first_of_several_filter_documents(reference):
    resolved = resolve_document({}, FilterContext(document_ids=(11, 10)), reference)
    assert resolved.document_id == 11
    assert resolved.version_id == 110


def test_filter_documents_of_other_tag_are_skipped(reference):
    resolved = resolve_document({"tag_id": 2}, FilterContext(document_ids=(10, 20)), reference)
    assert resolved.document_id == 20
    assert resolved.tag_id == 2


def test_tag_from_filter_when_no_document(reference):
    resolved = resolve_document({}, FilterContext(tag_ids=(2, 1)), reference)
    assert resolved.tag_id == 2
    assert resolved.document_id is None
    assert resolved.version_id is None
    assert resolved.version_number is None


def test_tag_falls_back_to_first_reference_tag(reference):
    resolved = resolve_document({}, FilterContext(), reference)
    assert resolved.tag_id == 1
    assert resolved.document_id is None


def test_stored_version_of_other_document_is_replaced(reference):
    resolved = resolve_document({"document_id": 10, "version_id": 200}, FilterContext(), reference)
    assert (resolved.version_id, resolved.version_number) == (101, 2)


def test_stored_version_number_is_matched(reference):
    resolved = resolve_document({"document_id": 10, "version_number": "1"}, FilterContext(), reference)
    assert (resolved.version_id, resolved.version_number) == (100, 1)


def test_unknown_version_number_is_kept_for_creation(reference):
    resolved = resolve_document({"document_id": 10, "version_number": 5}, FilterContext(), reference)
    assert (resolved.version_id, resolved.version_number) == (None, 5)


def test_resolution_never_raises_on_garbage(reference):
    resolved = resolve_document(
        {"document_id": 999, "version_number": "abc", "version_id": "x"},
        FilterContext(document_ids=(10,)),
        reference,
    )
    assert resolved.document_id == 999
    assert resolved.version_id is None


def test_missing_values_only_fills_empty_fields(reference):
    row = {"tag_id": None, "project_code": "MANUAL"}
    resolved = resolve_document(row, FilterContext(document_ids=(10,)), reference)
    updates = missing_values(row, resolved)
    assert "project_code" not in updates
    assert updates["document_id"] == 10
    assert updates["tag_id"] == 1


def test_tag_change_clears_document_and_version(reference):
    row = {"tag_id": 1, "document_id": 10, "project_code": "AR-001", "version_id": 101, "version_number": 2}
    updates = tag_change_updates(row, 2, reference)
    assert updates["tag_id"] == 2
    assert updates["tag_name"] == "4 EST"
    assert updates["document_id"] is None
    assert updates["project_code"] == ""
    assert updates["version_id"] is None
    assert updates["version_number"] is None


def test_same_tag_keeps_document(reference):
    updates = tag_change_updates({"tag_id": 1, "document_id": 10}, 1, reference)
    assert "document_id" not in updates


def test_document_change_resolves_code_and_version(reference):
    ctx = FilterContext(selected_versions={11: 110})
    updates = document_change_updates({"tag_id": 1, "document_id": 10}, 11, ctx, reference)
    assert updates["project_code"] == "AR-002"
    assert updates["version_id"] == 110
    assert "tag_id" not in updates


def test_document_change_sets_missing_tag(reference):
    updates = document_change_updates({}, 20, FilterContext(), reference)
    assert updates["tag_id"] == 2
    assert updates["version_number"] == 1


def test_version_change_checks_document(reference):
    assert version_change_updates({"document_id": 10}, 100, reference) == {"version_id": 100, "version_number": 1}
    assert version_change_updates({"document_id": 10}, 200, reference) == {"version_id": None, "version_number": None}


def test_stored_document_without_version_uses_selection_then_latest(reference):
    row = {"tag_id": 1, "document_id": 10}
    chosen = resolve_document(row, FilterContext(selected_versions={10: 100}), reference)
    assert chosen.version_id == 100
    latest = resolve_document(row, FilterContext(), reference)
    assert latest.version_id == 101


def test_single_tag_and_document_in_filters(reference):
    resolved = resolve_document(
        {"tag_id": None, "document_id": None}, FilterContext(tag_ids=(1,), document_ids=(10,)), reference
    )
    assert (resolved.tag_id, resolved.document_id) == (1, 10)
    assert resolved.version_number == 2


def test_filter_document_tag_wins_over_filter_tag(reference):
    # o documento e resolvido antes da tag: a tag vem do documento, nao do filtro
    resolved = resolve_document({}, FilterContext(tag_ids=(2,), document_ids=(10,)), reference)
    assert resolved.document_id == 10
    assert resolved.tag_id == 1
    assert resolved.tag_name == "3 AR"


def test_as_int():
    assert as_int("2") == 2
    assert as_int(" 2.0 ") == 2
    assert as_int(3) == 3
    assert as_int("2.5") is None
    assert as_int("v2") is None
    assert as_int(None) is None
    assert as_int("") is None
