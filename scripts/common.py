import os
import sys
import logging

from PySide6.QtWidgets import (
    QApplication, QVBoxLayout, QDialog, QDialogButtonBox, QLabel, QTextEdit,
)


# Dialog for showing text the user may want to copy (browser output, errors)
class CopyableTextDialog(QDialog):
    def __init__(self, title, message, intro="", parent=None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setMinimumWidth(500)

        layout = QVBoxLayout(self)

        if intro:
            layout.addWidget(QLabel(intro))

        self.text_edit = QTextEdit()
        self.text_edit.setReadOnly(True)
        self.text_edit.setPlainText(message)
        layout.addWidget(self.text_edit)

        button_box = QDialogButtonBox(QDialogButtonBox.StandardButton.Ok)
        button_box.accepted.connect(self.accept)
        layout.addWidget(button_box)


def gui_available() -> bool:
    return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))


def display_text(title, message, intro="", use_gui=True):
    """Shows text in a dialog, or on stderr when there is no display."""
    if not (use_gui and gui_available()):
        print(f"{title}:\n{message}", file=sys.stderr)
        return
    app = QApplication.instance() or QApplication(sys.argv[:1])
    dialog = CopyableTextDialog(title, message, intro=intro)
    dialog.exec()


def display_error(title, message, use_gui=True):
    logging.error(f"{title}: {message}")
    display_text(title, message, intro="The following error occurred:", use_gui=use_gui)
