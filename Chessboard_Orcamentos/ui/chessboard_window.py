from __future__ import annotations

import logging
from typing import Optional

from PySide6 import QtWidgets

from Chessboard_Orcamentos.app.db import SessionLocal
from Chessboard_Orcamentos.app.services.chessboard_batch import bulk_delete, bulk_save
from Chessboard_Orcamentos.app.services.chessboard_context import FilterContext
from Chessboard_Orcamentos.app.services.chessboard_data import load_server_rows
from Chessboard_Orcamentos.app.services.chessboard_edit import ChessboardEditor
from Chessboard_Orcamentos.app.services.preferences import SettingsPreferenceStore
from Chessboard_Orcamentos.app.services.record_store import SqlAlchemyRecordStore
from Chessboard_Orcamentos.app.services.reference_data import load_reference_data
from Chessboard_Orcamentos.ui.models.chessboard_table import ChessboardTableModel

logger = logging.getLogger(__name__)


class ChessboardWindow(QtWidgets.QMainWindow):
    def __init__(self, project_id: int, user_id: Optional[int] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"Mapa de quantidades - projeto {project_id}")
        self.user_id = user_id
        self.db = SessionLocal()
        self.store = SqlAlchemyRecordStore(self.db)

        filters = FilterContext(project_id=project_id)
        self.editor = ChessboardEditor(
            load_reference_data(self.db, project_id),
            filters,
            preferences=SettingsPreferenceStore(self.db),
            user_id=user_id,
        )
        self.model = ChessboardTableModel(self.editor, parent=self)
        self.model.apply_column_settings(user_id)

        self.table = QtWidgets.QTableView(self)
        self.table.setModel(self.model)
        self.table.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
        self.table.doubleClicked.connect(lambda idx: self.model.start_editing(idx.row()))
        self.setCentralWidget(self.table)

        toolbar = self.addToolBar("Linhas")
        toolbar.addAction("Adicionar", self.on_add)
        toolbar.addAction("Copiar", self.on_copy)
        toolbar.addAction("Gravar", self.on_save)
        toolbar.addAction("Cancelar", self.on_cancel)
        toolbar.addAction("Apagar", self.on_delete)

        self.reload()

    def reload(self) -> None:
        self.db.expire_all()
        self.model.set_server_rows(load_server_rows(self.store, self.editor.filters))

    def _selected_rows(self):
        return sorted({idx.row() for idx in self.table.selectionModel().selectedRows()})

    def on_add(self) -> None:
        self.editor.add_row()
        self.model.refresh()

    def on_copy(self) -> None:
        for row_index in self._selected_rows():
            merged = self.model.get_row(row_index)
            self.editor.copy_row(merged.key, merged.data)
        self.model.refresh()

    def on_cancel(self) -> None:
        self.editor.reset()
        self.model.refresh()

    def on_save(self) -> None:
        outcomes = bulk_save(
            SessionLocal,
            self.editor.new_rows,
            self.editor.overlays,
            self.model.server_rows(),
        )
        problems = self.editor.apply_outcomes(outcomes)
        self.reload()
        if problems:
            text = "\n".join(f"{o.key}: {o.error}" for o in problems)
            QtWidgets.QMessageBox.warning(self, "Gravacao", f"Algumas linhas tiveram erros:\n{text}")

    def on_delete(self) -> None:
        keys = []
        for row_index in self._selected_rows():
            merged = self.model.get_row(row_index)
            if merged.is_new:
                self.editor.remove_new_row(merged.key)
            else:
                keys.append(merged.key)
        if keys:
            answer = QtWidgets.QMessageBox.question(self, "Apagar", f"Apagar {len(keys)} linha(s)?")
            if answer != QtWidgets.QMessageBox.Yes:
                self.model.refresh()
                return
            for outcome in bulk_delete(SessionLocal, keys):
                if outcome.ok:
                    self.editor.cancel_editing(outcome.key)
                else:
                    logger.warning("Linha %s nao apagada: %s", outcome.key, outcome.error)
        self.reload()

    def closeEvent(self, event) -> None:
        self.db.close()
        super().closeEvent(event)
