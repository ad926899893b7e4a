from datetime import datetime

from PySide6.QtCore import Qt
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import (
    QAbstractItemView,
    QDialog,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QMenu,
    QMessageBox,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from ..core.asr.backends import BackendKind
from ..core.errors import StorageError
from ..core.settings.history import HistoryLog
from ..utils.logger import get_logger

logger = get_logger(__name__)

PREVIEW_CHARS = 100


def _format_timestamp(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return timestamp


class HistoryDialog(QDialog):

    def __init__(self, history: HistoryLog, parent=None):
        super().__init__(parent)
        self._history = history
        self.setWindowTitle("Transcription History")
        self.resize(560, 360)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        hint = QLabel("Newest first. Right-click a row to copy it.")
        layout.addWidget(hint)

        self._table = QTableWidget()
        self._table.setColumnCount(3)
        self._table.setHorizontalHeaderLabels(["Time", "Mode", "Text"])

        header = self._table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(1, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(2, QHeaderView.Stretch)

        self._table.setAlternatingRowColors(True)
        self._table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self._table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self._table.verticalHeader().setVisible(False)
        self._table.setWordWrap(True)
        self._table.setContextMenuPolicy(Qt.CustomContextMenu)
        self._table.customContextMenuRequested.connect(self._on_table_menu)
        layout.addWidget(self._table)

        buttons = QHBoxLayout()
        buttons.addStretch()

        clear_button = QPushButton("Clear History")
        clear_button.clicked.connect(self._clear_history)
        buttons.addWidget(clear_button)

        close_button = QPushButton("Close")
        close_button.clicked.connect(self.accept)
        buttons.addWidget(close_button)

        layout.addLayout(buttons)

    @property
    def table(self) -> QTableWidget:
        return self._table

    def refresh_history(self) -> None:
        try:
            records = self._history.recent()
        except StorageError as e:
            logger.error(f"Could not load history: {e}")
            records = []

        self._table.setRowCount(len(records))

        for row, record in enumerate(records):
            kind = BackendKind.parse(record.backend)
            preview = record.text
            if len(preview) > PREVIEW_CHARS:
                preview = preview[:PREVIEW_CHARS] + "..."

            cells = (_format_timestamp(record.timestamp), kind.label if kind else "")
            for column, value in enumerate(cells):
                self._table.setItem(row, column, QTableWidgetItem(value))

            text_cell = QTableWidgetItem(preview)
            text_cell.setData(Qt.UserRole, record.text)
            self._table.setItem(row, 2, text_cell)

        self._table.resizeRowsToContents()

    def full_text(self, row: int) -> str:
        item = self._table.item(row, 2)
        return item.data(Qt.UserRole) if item is not None else ""

    def showEvent(self, event) -> None:
        self.refresh_history()
        super().showEvent(event)

    def _on_table_menu(self, pos) -> None:
        index = self._table.indexAt(pos)
        if not index.isValid():
            return

        text = self.full_text(index.row())
        if not text:
            return

        menu = QMenu(self)
        copy_action = menu.addAction("Copy Text")
        chosen = menu.exec(self._table.viewport().mapToGlobal(pos))
        if chosen == copy_action:
            QGuiApplication.clipboard().setText(text)

    def _clear_history(self) -> None:
        reply = QMessageBox.question(
            self,
            "Clear History",
            "Delete every saved transcription?",
            QMessageBox.Yes | QMessageBox.No,
        )
        if reply != QMessageBox.Yes:
            return

        try:
            self._history.clear()
        except StorageError as e:
            logger.error(f"Could not clear history: {e}")
            QMessageBox.warning(self, "Clear History", str(e))
        self.refresh_history()
