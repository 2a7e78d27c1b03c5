from typing import Any, Dict, List, Mapping, Optional, Sequence

from PySide6 import QtCore, QtGui

from Chessboard_Orcamentos.app.services.chessboard_edit import ChessboardEditor
from Chessboard_Orcamentos.app.services.floors import QUANTITY_FIELDS
from Chessboard_Orcamentos.app.services.preferences import load_column_settings, save_column_settings
from Chessboard_Orcamentos.app.services.row_merger import MergedRow

COLUMNS: List[Dict[str, Any]] = [
    {"header": "Material", "attr": "material"},
    {"header": "Tipo", "attr": "material_type"},
    {"header": "Unidade", "attr": "unit", "edit_attr": "unit_id"},
    {"header": "Bloco", "attr": "block", "edit_attr": "block_id"},
    {"header": "Pisos", "attr": "floors"},
    {"header": "Qtd. projeto", "attr": "quantity_pd", "numeric": True},
    {"header": "Qtd. especificacao", "attr": "quantity_spec", "numeric": True},
    {"header": "Qtd. RD", "attr": "quantity_rd", "numeric": True},
    {"header": "Tag", "attr": "tag_name", "edit_attr": "tag_id"},
    {"header": "Codigo", "attr": "project_code", "edit_attr": "document_id"},
    {"header": "Projeto", "attr": "project_name", "editable": False},
    {"header": "Versao", "attr": "version_number"},
    {"header": "Nomenclatura", "attr": "nomenclature", "edit_attr": "nomenclature_id"},
    {"header": "Fornecedor", "attr": "supplier"},
    {"header": "Trabalho", "attr": "work_name"},
    {"header": "Conjunto", "attr": "work_set"},
]

ROW_BACKGROUNDS = {
    "green": "#d4edda",
    "yellow": "#fff3cd",
    "blue": "#d6e9f8",
    "red": "#f8d7da",
}


class ChessboardTableModel(QtCore.QAbstractTableModel):
    """
    Model da tabela: mostra linhas novas, linhas em edicao e linhas do servidor.
    Edicoes passam sempre pelo ChessboardEditor (nunca alteram o dict da linha).
    """

    def __init__(
        self,
        editor: ChessboardEditor,
        columns: Optional[Sequence[Mapping[str, Any]]] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.editor = editor
        self._all_columns = [dict(c) for c in (columns or COLUMNS)]
        self._columns = list(self._all_columns)
        self._server_rows: List[Mapping[str, Any]] = []
        self._rows: List[MergedRow] = []

    # -------- API utilitaria --------
    def set_server_rows(self, rows: Sequence[Mapping[str, Any]]) -> None:
        self._server_rows = list(rows)
        self.refresh()

    def refresh(self) -> None:
        self.beginResetModel()
        self._rows = self.editor.rows(self._server_rows)
        self.endResetModel()

    def get_row(self, row_index: int) -> MergedRow:
        return self._rows[row_index]

    def server_rows(self) -> List[Mapping[str, Any]]:
        return list(self._server_rows)

    def start_editing(self, row_index: int) -> None:
        merged = self._rows[row_index]
        if merged.is_new or merged.editable:
            return
        self.editor.start_editing(merged.data)
        self.refresh()

    def column_keys(self) -> List[str]:
        return [c["attr"] for c in self._columns]

    def apply_column_settings(self, user_id: Optional[int] = None) -> None:
        """Ordem e colunas visiveis guardadas nas preferencias do utilizador."""
        by_attr = {c["attr"]: c for c in self._all_columns}
        prefs = load_column_settings(self.editor.preferences, user_id, list(by_attr))
        self.beginResetModel()
        self._columns = [by_attr[a] for a in prefs["order"] if a not in prefs["hidden"]]
        self.endResetModel()

    def save_column_settings(self, user_id: Optional[int], order: Sequence[str], hidden: Sequence[str] = ()) -> None:
        save_column_settings(self.editor.preferences, user_id, order, hidden)
        self.apply_column_settings(user_id)

    # -------- Qt Model API ----------
    def rowCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._columns)

    def data(self, index: QtCore.QModelIndex, role: int = QtCore.Qt.DisplayRole):
        if not index.isValid():
            return None

        merged = self._rows[index.row()]
        spec = self._columns[index.column()]
        val = merged.data.get(spec["attr"])

        if role in (QtCore.Qt.DisplayRole, QtCore.Qt.EditRole):
            return "" if val is None else str(val)

        if role == QtCore.Qt.BackgroundRole:
            color = ROW_BACKGROUNDS.get(merged.data.get("color") or "")
            return QtGui.QColor(color) if color else None

        if role == QtCore.Qt.TextAlignmentRole and spec.get("numeric"):
            return int(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)

        if role == QtCore.Qt.ToolTipRole and spec["attr"] in QUANTITY_FIELDS:
            floor_map = merged.data.get("floor_quantities") or {}
            if floor_map:
                return "\n".join(
                    f"Piso {floor}: {entry.get(spec['attr']) or '-'}" for floor, entry in sorted(floor_map.items())
                )
            return None

        if role == QtCore.Qt.UserRole:
            return merged.key

        return None

    def setData(self, index: QtCore.QModelIndex, value: Any, role: int = QtCore.Qt.EditRole) -> bool:
        if not index.isValid() or role != QtCore.Qt.EditRole:
            return False
        merged = self._rows[index.row()]
        if not merged.editable:
            return False

        spec = self._columns[index.column()]
        field = spec.get("edit_attr") or spec["attr"]
        if field.endswith("_id") and isinstance(value, str):
            text = value.strip()
            value = int(text) if text.isdigit() else (text or None)
        try:
            self.editor.update_cell(merged.key, field, value)
        except (KeyError, ValueError):
            return False

        # as edicoes podem mexer noutras colunas (totais, documento, versao)
        self._rows[index.row()] = MergedRow(
            key=merged.key,
            data=self.editor.row_data(merged.key),
            editable=True,
            is_new=merged.is_new,
        )
        left = self.index(index.row(), 0)
        right = self.index(index.row(), len(self._columns) - 1)
        self.dataChanged.emit(left, right, [QtCore.Qt.EditRole, QtCore.Qt.DisplayRole])
        return True

    def flags(self, index: QtCore.QModelIndex) -> QtCore.Qt.ItemFlags:
        if not index.isValid():
            return QtCore.Qt.NoItemFlags

        flags = QtCore.Qt.ItemIsEnabled | QtCore.Qt.ItemIsSelectable
        spec = self._columns[index.column()]
        if self._rows[index.row()].editable and spec.get("editable", True):
            flags |= QtCore.Qt.ItemIsEditable
        return flags

    def headerData(self, section: int, orientation: QtCore.Qt.Orientation, role: int = QtCore.Qt.DisplayRole):
        if orientation == QtCore.Qt.Horizontal:
            if section >= len(self._columns):
                return "" if role == QtCore.Qt.DisplayRole else None
            if role == QtCore.Qt.DisplayRole:
                return self._columns[section]["header"]
            return None
        if role == QtCore.Qt.DisplayRole:
            return str(section + 1)
        return None
