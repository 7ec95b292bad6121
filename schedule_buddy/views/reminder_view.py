"""Reminder View for Schedule Buddy application.

This module contains the ReminderView class: a small main window listing
upcoming schedules with a form to add, edit, complete and delete them, and
a system tray icon that shows reminder notifications.
"""

import logging
from collections.abc import Callable

from PyQt6.QtCore import QDate, Qt, QTime
from PyQt6.QtGui import QAction, QCloseEvent, QFont
from PyQt6.QtWidgets import (
    QApplication,
    QDateEdit,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMenu,
    QMessageBox,
    QPushButton,
    QStyle,
    QSystemTrayIcon,
    QTimeEdit,
    QVBoxLayout,
    QWidget,
)

from ..models.schedule import DATE_FORMAT, Schedule

NOTIFICATION_TIMEOUT_MS = 10_000


class ReminderView(QMainWindow):
    """Main view class for Schedule Buddy application."""

    def __init__(self, minimize_to_tray: bool = True):
        """Initialize the ReminderView.

        Args:
            minimize_to_tray: Hide the window instead of quitting when it is closed
        """
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.minimize_to_tray = minimize_to_tray
        self._quitting = False
        self._records: dict[str, dict] = {}

        # Callback functions (to be set by presenter)
        self.on_add_schedule: Callable[[dict], None] | None = None
        self.on_update_schedule: Callable[[str, dict], None] | None = None
        self.on_delete_schedule: Callable[[str], None] | None = None
        self.on_complete_schedule: Callable[[str], None] | None = None

        # UI components
        self.schedule_list: QListWidget | None = None
        self.date_edit: QDateEdit | None = None
        self.start_time_edit: QTimeEdit | None = None
        self.end_time_edit: QTimeEdit | None = None
        self.content_edit: QLineEdit | None = None
        self.add_button: QPushButton | None = None
        self.save_button: QPushButton | None = None
        self.complete_button: QPushButton | None = None
        self.delete_button: QPushButton | None = None
        self.tray_icon: QSystemTrayIcon | None = None
        self.add_schedule_action: QAction | None = None

        self._setup_ui()
        self._setup_tray()
        self.logger.info("ReminderView initialized")

    def _setup_ui(self) -> None:
        self.setWindowTitle("Schedule Buddy")
        self.setGeometry(100, 100, 560, 520)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        main_layout = QVBoxLayout(central_widget)
        main_layout.setContentsMargins(15, 15, 15, 15)
        main_layout.setSpacing(10)

        self._create_schedule_list_section(main_layout)
        self._create_form_section(main_layout)
        self._update_button_states()

    def _create_schedule_list_section(self, main_layout: QVBoxLayout) -> None:
        title = QLabel("Upcoming Schedules")
        title.setFont(QFont("System", 13))
        main_layout.addWidget(title)

        self.schedule_list = QListWidget()
        self.schedule_list.setFont(QFont("System", 12))
        self.schedule_list.currentItemChanged.connect(self._on_selection_changed)
        main_layout.addWidget(self.schedule_list)

        actions_layout = QHBoxLayout()
        self.complete_button = QPushButton("Mark Done")
        self.complete_button.clicked.connect(self._on_complete_clicked)
        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self._on_delete_clicked)
        actions_layout.addStretch()
        actions_layout.addWidget(self.complete_button)
        actions_layout.addWidget(self.delete_button)
        main_layout.addLayout(actions_layout)

    def _create_form_section(self, main_layout: QVBoxLayout) -> None:
        form_layout = QFormLayout()

        self.date_edit = QDateEdit(QDate.currentDate())
        self.date_edit.setCalendarPopup(True)
        self.date_edit.setDisplayFormat("yyyy-MM-dd")

        now = QTime.currentTime()
        self.start_time_edit = QTimeEdit(now.addSecs(3600))
        self.start_time_edit.setDisplayFormat("HH:mm")
        self.end_time_edit = QTimeEdit(now.addSecs(7200))
        self.end_time_edit.setDisplayFormat("HH:mm")

        self.content_edit = QLineEdit()
        self.content_edit.setPlaceholderText("What is happening?")

        form_layout.addRow("Date:", self.date_edit)
        form_layout.addRow("Start:", self.start_time_edit)
        form_layout.addRow("End:", self.end_time_edit)
        form_layout.addRow("Content:", self.content_edit)
        main_layout.addLayout(form_layout)

        buttons_layout = QHBoxLayout()
        self.add_button = QPushButton("Add Schedule")
        self.add_button.clicked.connect(self._on_add_clicked)
        self.save_button = QPushButton("Save Changes")
        self.save_button.clicked.connect(self._on_save_clicked)
        buttons_layout.addStretch()
        buttons_layout.addWidget(self.save_button)
        buttons_layout.addWidget(self.add_button)
        main_layout.addLayout(buttons_layout)

    def _setup_tray(self) -> None:
        if not QSystemTrayIcon.isSystemTrayAvailable():
            self.logger.warning("System tray not available; notifications will use the status bar")
            return

        icon = self.style().standardIcon(QStyle.StandardPixmap.SP_MessageBoxInformation)
        self.tray_icon = QSystemTrayIcon(icon, self)
        self.tray_icon.setToolTip("Schedule Buddy")

        menu = QMenu(self)
        show_action = QAction("Show Window", self)
        show_action.triggered.connect(self.show_main_window)
        self.add_schedule_action = QAction("Add Schedule...", self)
        self.add_schedule_action.triggered.connect(self.show_add_form)
        quit_action = QAction("Quit", self)
        quit_action.triggered.connect(self.quit_application)
        menu.addAction(show_action)
        menu.addAction(self.add_schedule_action)
        menu.addSeparator()
        menu.addAction(quit_action)

        self.tray_icon.setContextMenu(menu)
        self.tray_icon.activated.connect(self._on_tray_activated)
        self.tray_icon.messageClicked.connect(self.show_main_window)
        self.tray_icon.show()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self.show_main_window()

    def _form_record(self) -> dict:
        return {
            "date": self.date_edit.date().toString("yyyy-MM-dd"),
            "startTime": self.start_time_edit.time().toString("HH:mm"),
            "endTime": self.end_time_edit.time().toString("HH:mm"),
            "content": self.content_edit.text().strip(),
        }

    def _selected_schedule_id(self) -> str | None:
        item = self.schedule_list.currentItem()
        return None if item is None else item.data(Qt.ItemDataRole.UserRole)

    def _on_add_clicked(self) -> None:
        if self.on_add_schedule:
            self.on_add_schedule(self._form_record())
            self.content_edit.clear()

    def _on_save_clicked(self) -> None:
        schedule_id = self._selected_schedule_id()
        if schedule_id and self.on_update_schedule:
            self.on_update_schedule(schedule_id, self._form_record())

    def _on_complete_clicked(self) -> None:
        schedule_id = self._selected_schedule_id()
        if schedule_id and self.on_complete_schedule:
            self.on_complete_schedule(schedule_id)

    def _on_delete_clicked(self) -> None:
        schedule_id = self._selected_schedule_id()
        if schedule_id and self.on_delete_schedule:
            self.on_delete_schedule(schedule_id)

    def _on_selection_changed(self, current: QListWidgetItem | None, _previous: QListWidgetItem | None) -> None:
        self._update_button_states()
        if current is None:
            return
        record = self._records.get(current.data(Qt.ItemDataRole.UserRole))
        if not record:
            return
        self.date_edit.setDate(QDate.fromString(record["date"], "yyyy-MM-dd"))
        self.start_time_edit.setTime(QTime.fromString(record["startTime"], "HH:mm"))
        self.end_time_edit.setTime(QTime.fromString(record["endTime"], "HH:mm"))
        self.content_edit.setText(record["content"])

    def _update_button_states(self) -> None:
        has_selection = self.schedule_list is not None and self.schedule_list.currentItem() is not None
        for button in (self.save_button, self.complete_button, self.delete_button):
            if button is not None:
                button.setEnabled(has_selection)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        if self.keeps_running_in_tray and not self._quitting:
            event.ignore()
            self.hide()
            self.tray_icon.showMessage("Schedule Buddy", "Still running in the background.")
            return
        super().closeEvent(event)

    # ------------------------------------------------------------------
    # Presenter-facing API
    # ------------------------------------------------------------------

    @property
    def keeps_running_in_tray(self) -> bool:
        """Whether closing the window leaves the app reachable from the tray."""
        return self.minimize_to_tray and self.tray_icon is not None

    def show_main_window(self) -> None:
        self.showNormal()
        self.raise_()
        self.activateWindow()

    def show_add_form(self) -> None:
        self.show_main_window()
        self.schedule_list.setCurrentRow(-1)
        self.content_edit.clear()
        self.content_edit.setFocus()

    def quit_application(self) -> None:
        self._quitting = True
        QApplication.quit()

    def show_notification(self, title: str, body: str, is_repeat: bool) -> None:
        if self.tray_icon is not None:
            icon = QSystemTrayIcon.MessageIcon.Warning if is_repeat else QSystemTrayIcon.MessageIcon.Information
            self.tray_icon.showMessage(title, body, icon, NOTIFICATION_TIMEOUT_MS)
        else:
            self.statusBar().showMessage(f"{title}: {body.splitlines()[0]}", NOTIFICATION_TIMEOUT_MS)
            self.show_main_window()

    def show_upcoming_schedules(self, schedules: list[Schedule]) -> None:
        selected_id = self._selected_schedule_id()
        self.schedule_list.blockSignals(True)
        self.schedule_list.clear()
        self._records = {schedule.id: schedule.to_dict() for schedule in schedules}
        for schedule in schedules:
            item = QListWidgetItem(
                f"{schedule.date.strftime(DATE_FORMAT)}  {schedule.formatted_time_range}  {schedule.content}"
            )
            item.setData(Qt.ItemDataRole.UserRole, schedule.id)
            self.schedule_list.addItem(item)
            if schedule.id == selected_id:
                self.schedule_list.setCurrentItem(item)
        self.schedule_list.blockSignals(False)
        self._update_button_states()

        if self.tray_icon is not None:
            next_up = f"Next: {schedules[0]}" if schedules else "No upcoming schedules"
            self.tray_icon.setToolTip(f"Schedule Buddy\n{next_up}")

    def show_error_message(self, title: str, message: str) -> None:
        QMessageBox.warning(self, title, message)
