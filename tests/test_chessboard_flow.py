import pytest

from Chessboard_Orcamentos.app.services.chessboard_context import FilterContext, empty_row
from Chessboard_Orcamentos.app.services.chessboard_data import load_server_row, load_server_rows
from Chessboard_Orcamentos.app.services.chessboard_edit import ChessboardEditor
from Chessboard_Orcamentos.app.services.chessboard_persist import PersistStepError, RowPersistence
from Chessboard_Orcamentos.app.services.record_store import SqlAlchemyRecordStore
from Chessboard_Orcamentos.app.services.reference_data import load_reference_data


def test_floor_quantities_survive_save_and_edit(db_session, seeded):
    """Pisos 1-3 com 30 -> 10 por piso; piso 2 passa a 5 -> total 25."""
    store = SqlAlchemyRecordStore(db_session)
    ctx = FilterContext(
        project_id=seeded.project_id,
        cost_category_ids=(seeded.cost_category_id,),
        cost_type_ids=(seeded.cost_type_id,),
        document_ids=(seeded.document_id,),
    )
    editor = ChessboardEditor(load_reference_data(db_session, seeded.project_id), ctx)
    persistence = RowPersistence(store)

    row = editor.add_row()
    key = row["key"]
    editor.update_cell(key, "material", "Betao C25/30")
    editor.update_cell(key, "floors", "1-3")
    editor.update_cell(key, "quantity_pd", "30")

    result = persistence.persist_new(editor.row_data(key))
    assert result.ok

    rows = load_server_rows(store, ctx)
    assert len(rows) == 1
    saved = rows[0]
    assert saved["key"] == result.server_key
    assert saved["floors"] == "1-3"
    assert saved["quantity_pd"] == "30"
    assert [saved["floor_quantities"][f]["quantity_pd"] for f in (1, 2, 3)] == ["10", "10", "10"]
    assert saved["material"] == "Betao C25/30"
    assert saved["location_id"] == seeded.location_id
    assert saved["project_code"] == "AR-001"
    assert saved["version_id"] == seeded.version_id

    editor.start_editing(saved)
    editor.update_floor_quantity(saved["key"], 2, "quantity_pd", "5")
    assert editor.row_data(saved["key"])["quantity_pd"] == "25"

    edit = persistence.persist_edit(saved["key"], editor.overlays[saved["key"]], saved)
    assert edit.ok

    reloaded = load_server_rows(store, ctx)[0]
    assert reloaded["quantity_pd"] == "25"
    assert reloaded["floor_quantities"][2]["quantity_pd"] == "5"


def test_version_filter_hides_other_versions(db_session, seeded):
    store = SqlAlchemyRecordStore(db_session)
    ctx = FilterContext(
        project_id=seeded.project_id,
        cost_category_ids=(seeded.cost_category_id,),
        cost_type_ids=(seeded.cost_type_id,),
        document_ids=(seeded.document_id,),
    )
    editor = ChessboardEditor(load_reference_data(db_session, seeded.project_id), ctx)
    persistence = RowPersistence(store)

    first = editor.add_row()
    persistence.persist_new(editor.row_data(first["key"]))
    second = editor.add_row()
    editor.update_cell(second["key"], "version_number", 2)
    persistence.persist_new(editor.row_data(second["key"]))

    assert len(load_server_rows(store, ctx)) == 2

    versions = store.query("documentation_versions", {"documentation_id": seeded.document_id}, order_by=("version_number",))
    assert [v["version_number"] for v in versions] == [1, 2]

    editor.select_version(seeded.document_id, versions[1]["id"])
    rows = load_server_rows(store, ctx)
    assert [r["version_number"] for r in rows] == [2]

    other = FilterContext(project_id=seeded.other_project_id)
    assert load_server_rows(store, other) == []


def _saved_green_row(store, seeded):
    row = empty_row(
        "new-1",
        project_id=seeded.project_id,
        material="Betao C25/30",
        unit_id=seeded.unit_id,
        color="green",
        block_id=seeded.block_id,
        location_id=seeded.location_id,
        cost_category_id=seeded.cost_category_id,
        cost_type_id=seeded.cost_type_id,
    )
    result = RowPersistence(store).persist_new(row)
    assert result.ok
    return result.server_key


def test_edit_without_screen_row_keeps_stored_fields(db_session, seeded):
    store = SqlAlchemyRecordStore(db_session)
    key = _saved_green_row(store, seeded)

    edit = RowPersistence(store).persist_edit(key, {"color": "red"})

    assert edit.ok
    reloaded = load_server_row(store, key)
    assert reloaded["color"] == "red"
    assert reloaded["material"] == "Betao C25/30"
    assert reloaded["unit_id"] == seeded.unit_id
    assert reloaded["block_id"] == seeded.block_id
    assert reloaded["location_id"] == seeded.location_id


def test_edit_without_screen_row_rewrites_mapping_from_stored_values(db_session, seeded):
    store = SqlAlchemyRecordStore(db_session)
    key = _saved_green_row(store, seeded)

    edit = RowPersistence(store).persist_edit(
        key, {"color": "red", "cost_category_id": seeded.cost_category_id, "cost_type_id": seeded.cost_type_id}
    )

    assert "mapping" in edit.completed_steps
    reloaded = load_server_row(store, key)
    assert (reloaded["material"], reloaded["unit_id"], reloaded["color"]) == ("Betao C25/30", seeded.unit_id, "red")
    assert reloaded["block_id"] == seeded.block_id
    assert reloaded["location_id"] == seeded.location_id


def test_edit_without_screen_row_of_unknown_key(db_session, seeded):
    store = SqlAlchemyRecordStore(db_session)
    with pytest.raises(PersistStepError) as err:
        RowPersistence(store).persist_edit(999, {"color": "red"})
    assert err.value.step == "base"
    assert load_server_row(store, 999) is None
