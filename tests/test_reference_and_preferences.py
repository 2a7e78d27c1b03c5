from Chessboard_Orcamentos.app.models import DocumentationVersion
from Chessboard_Orcamentos.app.services.preferences import (
    MemoryPreferenceStore,
    SettingsPreferenceStore,
    load_column_settings,
    load_selected_versions,
    save_column_settings,
    save_selected_versions,
)
from Chessboard_Orcamentos.app.services.reference_data import Tag, load_reference_data, tag_label


def test_load_reference_data_for_project(db_session, seeded):
    db_session.add(DocumentationVersion(documentation_id=seeded.document_id, version_number=3))
    db_session.commit()

    ref = load_reference_data(db_session, seeded.project_id)

    assert [b["name"] for b in ref.blocks] == ["Bloco A"]
    assert ref.cost_type(seeded.cost_type_id).location_id == seeded.location_id
    assert ref.document(seeded.document_id).code == "AR-001"
    assert ref.latest_version(seeded.document_id).version_number == 3
    assert tag_label(ref.tag(seeded.tag_id)) == "3 AR"
    assert ref.block_name(seeded.block_id) == "Bloco A"


def test_load_reference_data_without_project(db_session, seeded):
    ref = load_reference_data(db_session)
    assert sorted(b["name"] for b in ref.blocks) == ["Bloco A", "Bloco Z"]


def test_tag_label():
    assert tag_label(Tag(id=1, name="AR", tag_number=3)) == "3 AR"
    assert tag_label(Tag(id=1, name="AR")) == "AR"
    assert tag_label(None) == ""


def test_settings_store_round_trip(db_session):
    store = SettingsPreferenceStore(db_session)
    assert store.get("x", "omissao") == "omissao"
    store.set("x", "1")
    store.set("x", "2")
    assert SettingsPreferenceStore(db_session).get("x") == "2"


def test_column_settings_ignore_unknown_and_append_new():
    store = MemoryPreferenceStore()
    save_column_settings(store, 4, ["floors", "gone", "material"], hidden=["supplier", "gone"])

    prefs = load_column_settings(store, 4, ["material", "floors", "supplier"])

    assert prefs == {"order": ["floors", "material", "supplier"], "hidden": ["supplier"]}
    assert load_column_settings(store, 5, ["material"]) == {"order": ["material"], "hidden": []}


def test_column_settings_with_bad_json():
    store = MemoryPreferenceStore({"chessboard:columns:1": "{nao e json"})
    assert load_column_settings(store, 1, ["a", "b"]) == {"order": ["a", "b"], "hidden": []}


def test_selected_versions_round_trip(db_session):
    store = SettingsPreferenceStore(db_session)
    save_selected_versions(store, 3, {10: 100, 11: 110})
    assert load_selected_versions(store, 3) == {10: 100, 11: 110}
    assert load_selected_versions(store, 4) == {}


def test_selected_versions_skip_invalid_entries():
    store = MemoryPreferenceStore({"chessboard:versions:1": '{"10": 100, "x": 1, "11": "abc"}'})
    assert load_selected_versions(store, 1) == {10: 100}
