import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from exactcalc import UI


@pytest.fixture
def window():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    window = UI.CalculatorWindow(persist=False)
    yield window
    window.worker = None
    window.close()
    app.processEvents()


class FakeWorker:
    def cancel(self):
        pass


def test_settings_locked_while_calculating(window, monkeypatch):
    opened = []
    monkeypatch.setattr(UI, "SettingsDialog", lambda parent: opened.append(parent))

    window.worker = FakeWorker()
    window.update_return_button()
    assert not window.button_objects[UI.SETTINGS_BUTTON].isEnabled()
    assert window.button_objects[UI.RETURN_BUTTON].text() == UI.CANCEL_BUTTON

    window.open_settings()
    assert opened == []


def test_settings_unlocked_when_idle(window):
    window.worker = None
    window.update_return_button()
    assert window.button_objects[UI.SETTINGS_BUTTON].isEnabled()
    assert window.button_objects[UI.RETURN_BUTTON].text() == UI.RETURN_BUTTON
