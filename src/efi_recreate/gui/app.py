from __future__ import annotations
import logging

from PySide6.QtCore import Qt
from PySide6.QtGui import QFontDatabase
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QLabel, QListWidget, QListWidgetItem,
    QPushButton, QMessageBox, QHBoxLayout, QTextEdit, QCheckBox
)

from efi_recreate.config import resolve_recipe
from efi_recreate.errors import ConfigError, RecreateError
from efi_recreate.models import ErrorPolicy, RunReport
from efi_recreate.platforms.efibootmgr import Efibootmgr
from efi_recreate.recreator import run_recipe

logger = logging.getLogger(__name__)


class RecreateApp(QWidget):
    def __init__(self, config_path: str | None = None, on_error: str | None = None):
        super().__init__()
        self.setWindowTitle('Recreate UEFI boot entries')
        self.resize(760, 560)

        self.manager = Efibootmgr()
        self.recipe = None
        try:
            self.recipe = resolve_recipe(config_path, on_error)
        except ConfigError as e:
            logger.error('Invalid recipe: %s', e)
            QMessageBox.critical(self, 'Invalid recipe', str(e))

        self._build_ui()
        self.refresh()

    def _build_ui(self):
        layout = QVBoxLayout(self)
        if self.recipe:
            layout.addWidget(QLabel(f'Disk {self.recipe.disk}, partition {self.recipe.partition}, '
                                    f'boot order {self.recipe.boot_order_arg}'))

        layout.addWidget(QLabel('Entries to create'))
        self.list = QListWidget()
        layout.addWidget(self.list)

        layout.addWidget(QLabel('Current entries'))
        self.dump = QTextEdit()
        self.dump.setReadOnly(True)
        self.dump.setFont(QFontDatabase.systemFont(QFontDatabase.FixedFont))
        layout.addWidget(self.dump, 1)

        btn_row = QHBoxLayout()
        self.btn_refresh = QPushButton('Refresh')
        self.btn_apply = QPushButton('Recreate entries')
        self.chk_continue = QCheckBox('Continue on error')
        if self.recipe:
            self.chk_continue.setChecked(self.recipe.on_error is ErrorPolicy.CONTINUE)
        btn_row.addWidget(self.btn_refresh)
        btn_row.addWidget(self.btn_apply)
        btn_row.addWidget(self.chk_continue)
        layout.addLayout(btn_row)

        layout.addWidget(QLabel('Log'))
        self.log = QTextEdit()
        self.log.setReadOnly(True)
        layout.addWidget(self.log, 1)

        self.btn_refresh.clicked.connect(self.refresh)
        self.btn_apply.clicked.connect(self.apply_recipe)

    def log_line(self, text: str):
        self.log.append(text)

    def refresh(self):
        self.list.clear()
        if self.recipe:
            for spec in self.recipe.entries:
                item = QListWidgetItem(f"{spec.label}  [{spec.loader}]" + ("" if spec.parameters else "  (no parameters)"))
                item.setToolTip(spec.parameters or '')
                item.setData(Qt.UserRole, spec)
                self.list.addItem(item)
        if not self.manager.available():
            self.btn_apply.setEnabled(False)
            QMessageBox.warning(self, 'Unavailable', 'efibootmgr was not found. Install it and run as root.')
            return
        try:
            text = self.manager.dump()
        except RecreateError as e:
            self.dump.clear()
            self.log_line('Error: ' + str(e))
            QMessageBox.warning(self, 'Listing failed', str(e))
            return
        self.dump.setPlainText(text)
        self.log_line(f'Found {len(self.manager.list_entries(text))} boot entries')

    def apply_recipe(self):
        if not self.recipe:
            QMessageBox.information(self, 'No recipe', 'Fix the recipe file first.')
            return
        ret = QMessageBox.question(
            self, 'Confirm',
            f'Delete boot entries {", ".join(format(n, "X") for n in self.recipe.delete)} and create '
            f'{len(self.recipe.entries)} new ones? This writes to firmware NVRAM and cannot be undone.')
        if ret != QMessageBox.Yes:
            return
        policy = ErrorPolicy.CONTINUE if self.chk_continue.isChecked() else ErrorPolicy.ABORT
        dumps = []
        try:
            report = run_recipe(self.recipe, self.manager, policy=policy, on_output=dumps.append)
        except RecreateError as e:
            QMessageBox.critical(self, 'Failed', str(e))
            self.log_line('Error: ' + str(e))
            return
        if dumps:
            self.dump.setPlainText(dumps[-1])
        self._show_report(report)

    def _show_report(self, report: RunReport):
        for r in report.results:
            if not r.executed:
                self.log_line(f'Skipped: {r.step.kind.value} {r.step.description}')
            elif r.ok:
                self.log_line(f'OK: {r.step.kind.value} {r.step.description}')
            else:
                self.log_line(f'Error: {r.error}')
        if report.ok:
            QMessageBox.information(self, 'Done', 'Boot entries recreated.')
        else:
            QMessageBox.critical(self, 'Failed', f'{len(report.failures)} step(s) failed. See the log.')
