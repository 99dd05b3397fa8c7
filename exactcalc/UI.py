# UI.py
"""""PySide6 user interface for the Exact Calculator.

Structure
---------
- Calculator UI: main window with an input line, result display and history
- Settings UI: modal dialog for user preferences

Responsibilities (Calculator)
-----------------------------
- Send expression lines to MathEngine.evaluate_line in a worker thread
- Turn the return button into a cancel button while a calculation runs
- Run '/commands' through commands.CommandExecutor
- Render results and show MathEngine errors as dialogs, pointing at the fault
- Save variables after every successful assignment
- Clipboard integration and optional auto-evaluate after paste

Responsibilities (Settings)
---------------------------
- Load Current Settings and Settings Descriptions via config_manager
- Validate user input (precision range)
- Save and apply theme changes immediately


Threading Note
--------------
Evaluation runs off the UI thread in Worker(QObject). Only one worker runs at a
time and the window leaves the environment alone until it reports back; while
it runs, the window only touches its CancellationToken. Results (or errors)
come back through a Qt signal.
"""""

import logging
import sys
import threading

import pyperclip
from PySide6 import QtWidgets
from PySide6.QtCore import Qt, QObject, Signal

from . import commands
from . import config_manager
from . import error as E
from . import MathEngine
from .Rational import validate_radix

logger = logging.getLogger(__name__)

RETURN_BUTTON = '⏎'
SETTINGS_BUTTON = '⚙️'

# Integer settings that may also be "none"
OPTIONAL_INT_SETTINGS = ("convert_to_radix",)
CANCEL_BUTTON = 'X'


class Worker(QObject):
    """""

    Runs one line through MathEngine.evaluate_line on a separate thread and emits
    job_finished(result, line) when done. evaluate_line never raises for bad
    input, so anything caught here is a bug.

    """""

    job_finished = Signal(object, str)

    def __init__(self, problem, environment, precision, settings=None):
        super().__init__()
        self.data = problem
        self.environment = environment
        self.precision = precision
        self.options = MathEngine.display_options(settings)
        self.cancel_token = MathEngine.CancellationToken()

    def run_Calc(self):
        try:
            result = MathEngine.evaluate_line(self.data, self.environment, self.precision,
                                              self.cancel_token, **self.options)
        except Exception as e:
            logger.exception("Worker crashed")
            result = MathEngine.Error("InternalError", None, f"Unexpected crash: {e}", "9999", self.data)
        self.job_finished.emit(result, self.data)

    def cancel(self):
        self.cancel_token.cancel()


class SettingsDialog(QtWidgets.QDialog):
    """""

    Settings window. Boolean settings become checkboxes, integer settings
    become input fields; labels (with their ranges) come from ui_strings.json.

    """""

    settings_saved = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.widgets = {}

        # --- 1. Window Setup ---
        self.setWindowTitle("Calculator Settings")
        self.setMinimumSize(320, 240)
        main_layout = QtWidgets.QVBoxLayout(self)

        # --- 2. Load Settings ---
        self.setting_value_list = config_manager.load_setting_value("all")
        self.setting_description_list = config_manager.load_setting_description("all")

        # --- 3. Build Widgets ---
        for key_value, value in self.setting_value_list.items():
            description = self.setting_description_list.get(key_value, key_value)

            if isinstance(value, bool):
                checkbox = QtWidgets.QCheckBox(description)
                checkbox.setChecked(value)
                main_layout.addWidget(checkbox)
                self.widgets[key_value] = checkbox

            elif isinstance(value, int) or key_value in OPTIONAL_INT_SETTINGS:
                row_h_layout = QtWidgets.QHBoxLayout()
                main_layout.addLayout(row_h_layout)
                label = QtWidgets.QLabel(f"{description}:")
                input_field = QtWidgets.QLineEdit()
                input_field.setPlaceholderText("none" if value is None else str(value))
                row_h_layout.addWidget(label)
                row_h_layout.addWidget(input_field)
                row_h_layout.setStretch(1, 1)
                self.widgets[key_value] = input_field

        # --- 4. OK / Cancel Buttons ---
        button_box = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        main_layout.addWidget(button_box)
        main_layout.addStretch(1)
        button_box.accepted.connect(self.save_settings)
        button_box.rejected.connect(self.reject)

        self.update_darkmode()

    def save_settings(self):
        new_settings = dict(self.setting_value_list)
        for key_value, widget in self.widgets.items():
            if isinstance(widget, QtWidgets.QCheckBox):
                new_settings[key_value] = widget.isChecked()

            elif isinstance(widget, QtWidgets.QLineEdit):
                new_value_str = widget.text().strip()
                # Blank keeps the old value
                if new_value_str == "":
                    continue
                if key_value in OPTIONAL_INT_SETTINGS and new_value_str.lower() == "none":
                    new_settings[key_value] = None
                    continue
                try:
                    new_value_int = int(new_value_str)
                    if key_value == "precision":
                        MathEngine.PrecisionPolicy.validate(new_value_int)
                    elif key_value in ("radix", "convert_to_radix"):
                        validate_radix(new_value_int)
                except (ValueError, E.ConfigurationError) as e:
                    QtWidgets.QMessageBox.critical(self, "Invalid Input:",
                                                   f"Error in input for '{key_value}':\n\n{e}\n\nPlease correct your input.")
                    return
                new_settings[key_value] = new_value_int

        if config_manager.save_setting(new_settings) != {}:
            self.setting_value_list = new_settings
            self.settings_saved.emit()
            self.accept()
        else:
            QtWidgets.QMessageBox.critical(self, "Error", "Settings could not be saved (error in config_manager).")

    def update_darkmode(self):
        if self.setting_value_list["darkmode"]:
            self.setStyleSheet("""
                        QDialog {background-color: #121212;}
                        QLabel {color: white;}
                        QCheckBox {color: white;}
                        QLineEdit {background-color: #444444;color: white;border: 1px solid #666666;}
                        QDialogButtonBox QPushButton {background-color: #666666;color: white;}""")
        else:
            self.setStyleSheet("")


class CalculatorWindow(QtWidgets.QWidget):

    def __init__(self, persist=True, precision=None, radix=None):
        super().__init__()

        # --- 1. Session State ---
        self.persist = persist
        self.setting_value_list = config_manager.load_setting_value("all") if persist \
            else dict(config_manager.DEFAULT_SETTINGS)
        if radix is not None:
            self.setting_value_list["radix"] = radix
        if persist and self.setting_value_list["persist_variables"]:
            self.environment = config_manager.load_variables()
        else:
            self.environment = MathEngine.Environment()
        self.precision = precision or config_manager.precision_policy_from_settings(self.setting_value_list)
        self.executor = commands.CommandExecutor(self.environment, self.precision,
                                                 self.setting_value_list, persist=persist)
        self.worker = None
        self.calculator_result = ""

        # --- 2. Window Setup ---
        self.setWindowTitle("Exact Calculator")
        self.resize(480, 420)
        main_v_layout = QtWidgets.QVBoxLayout(self)

        # --- 3. History and Display ---
        self.history = QtWidgets.QListWidget()
        self.history.itemDoubleClicked.connect(self.reuse_history_item)
        main_v_layout.addWidget(self.history, 3)

        self.display = QtWidgets.QLineEdit("")
        self.display.setAlignment(Qt.AlignmentFlag.AlignRight)
        self.display.setReadOnly(True)
        font = self.display.font()
        font.setPointSize(18)
        self.display.setFont(font)
        main_v_layout.addWidget(self.display)

        self.input = QtWidgets.QLineEdit()
        self.input.setPlaceholderText("2 + 3 * 4,  $x = sqrt(2),  /help")
        self.input.setFont(font)
        self.input.returnPressed.connect(self.handle_return)
        main_v_layout.addWidget(self.input)

        # --- 4. Buttons ---
        button_row = QtWidgets.QHBoxLayout()
        main_v_layout.addLayout(button_row)
        self.button_objects = {}
        for text, handler in ((SETTINGS_BUTTON, self.open_settings), ('📋', self.copy_result),
                              ('📑', self.paste_input), ('C', self.clear_input),
                              (RETURN_BUTTON, self.handle_return)):
            button = QtWidgets.QPushButton(text)
            button.clicked.connect(handler)
            button_row.addWidget(button)
            self.button_objects[text] = button

        self.update_darkmode()
        self.input.setFocus()

    # --- Calculation ---
    @property
    def thread_active(self):
        return self.worker is not None

    def handle_return(self):
        # While a calculation runs the return button is the cancel button
        if self.thread_active:
            self.worker.cancel()
            return

        problem = self.input.text()
        if not problem.strip():
            return

        if self.executor.is_command(problem):
            self.run_command(problem)
            return

        self.display.setText("...")
        self.worker = Worker(problem, self.environment, self.precision, self.setting_value_list)
        self.worker.job_finished.connect(self.Calc_result)
        self.update_return_button()
        threading.Thread(target=self.worker.run_Calc, daemon=True).start()

    def run_command(self, line):
        try:
            output = self.executor.execute(line)
        except E.MathError as e:
            self.show_error(e.code, e.message, line, e.position)
            return
        self.history.addItem(f"{line}\n{output}")
        self.history.scrollToBottom()
        self.input.clear()
        self.update_darkmode()

    def Calc_result(self, result, equation):
        self.worker = None
        self.update_return_button()

        if isinstance(result, MathEngine.Error):
            self.display.setText("")
            self.show_error(result.code, result.message, equation, result.position)
            return

        output = MathEngine.format_result(result, self.setting_value_list)
        self.display.setText(output)
        if isinstance(result, MathEngine.Cancelled):
            return

        self.calculator_result = result.text
        self.history.addItem(f"{equation}\n{output}")
        self.history.scrollToBottom()
        self.input.clear()

        if result.assigned and self.persist and self.setting_value_list["persist_variables"]:
            try:
                config_manager.save_variables(self.environment)
            except E.ConfigurationError as e:
                self.show_error(e.code, e.message, equation, None)

    def show_error(self, error_code, message, equation, position):
        error_box = QtWidgets.QMessageBox(self)
        error_box.setIcon(QtWidgets.QMessageBox.Critical)
        error_box.setWindowTitle("Calculation error")
        error_box.setText(f"Error {error_code}: {E.describe(error_code)}")
        error_box.setInformativeText(f"Details: {message}\nEquation: {equation}")
        error_box.setStandardButtons(QtWidgets.QMessageBox.Ok)
        error_box.setStyleSheet(self.get_message_box_stylesheet())
        error_box.exec()
        self.input.setText(equation)
        # Point at the offending character
        if position is not None:
            self.input.setSelection(position, 1)
        self.input.setFocus()

    # --- Clipboard ---
    def copy_result(self):
        if self.calculator_result:
            pyperclip.copy(self.calculator_result)

    def paste_input(self):
        clipboard_text = QtWidgets.QApplication.clipboard().text()
        if not clipboard_text:
            return
        self.input.insert(clipboard_text.strip())
        if self.setting_value_list["after_paste_enter"] and not self.thread_active:
            self.handle_return()

    def clear_input(self):
        self.input.clear()
        self.display.setText("")

    def reuse_history_item(self, item):
        self.input.setText(item.text().split("\n", 1)[0])
        self.input.setFocus()

    # --- Look and feel ---
    def update_return_button(self):
        # Settings stay locked while a worker reads the precision
        self.button_objects[SETTINGS_BUTTON].setEnabled(not self.thread_active)
        return_button = self.button_objects[RETURN_BUTTON]
        if self.thread_active:
            return_button.setStyleSheet("background-color: #FF0000; color: white; font-weight: bold;")
            return_button.setText(CANCEL_BUTTON)
        else:
            return_button.setStyleSheet("background-color: #007bff; color: white; font-weight: bold;")
            return_button.setText(RETURN_BUTTON)
        return_button.update()

    def update_darkmode(self):
        if self.setting_value_list["darkmode"]:
            for text, button in self.button_objects.items():
                if text != RETURN_BUTTON:
                    button.setStyleSheet("background-color: #121212; color: white; font-weight: bold;")
            self.setStyleSheet("background-color: #121212; color: white;")
            self.display.setStyleSheet("background-color: #121212; color: white; font-weight: bold;")
        else:
            for text, button in self.button_objects.items():
                if text != RETURN_BUTTON:
                    button.setStyleSheet("font-weight: normal;")
            self.setStyleSheet("")
            self.display.setStyleSheet("font-weight: bold;")
        self.update_return_button()

    def open_settings(self):
        if self.thread_active:
            return
        settings_dialog = SettingsDialog(self)
        settings_dialog.exec()

        # Reload settings after the dialog closes so changes apply immediately
        self.setting_value_list = config_manager.load_setting_value("all")
        self.executor.settings = self.setting_value_list
        new_precision = config_manager.precision_policy_from_settings(self.setting_value_list)
        self.precision.set_precision(new_precision.digits)
        self.update_darkmode()

    def get_message_box_stylesheet(self):
        if self.setting_value_list["darkmode"]:
            return """
                QMessageBox {
                    background-color: #121212;
                    color: white;
                }
                QLabel {
                    color: white;
                }
                QPushButton {
                    background-color: #2e2e2e;
                    color: white;
                    border: 1px solid #444444;
                    padding: 5px 15px;
                }
            """
        else:
            return ""

    def closeEvent(self, event):
        if self.worker is not None:
            self.worker.cancel()
        super().closeEvent(event)


def main(persist=True, precision=None, radix=None):
    # --- Main Application Entry Point ---
    app = QtWidgets.QApplication(sys.argv)
    window = CalculatorWindow(persist=persist, precision=precision, radix=radix)
    window.show()
    return app.exec()
