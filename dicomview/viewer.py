"""
viewer.py - PyQt5 main window: welcome page, image page, zoom and pan.

The window is thin glue. It asks :func:`dicomview.loader.load_image` for a
raster and :func:`dicomview.metadata.extract_metadata` for the overlay,
then hands the raster to a QGraphicsScene. Panning is the view's
hand-drag mode; zooming scales the view transform.
"""

import logging
import sys
from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QImage, QKeySequence, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QFileDialog,
    QGraphicsPixmapItem,
    QGraphicsScene,
    QGraphicsView,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QShortcut,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from dicomview.config import CONFIG, REPO_ROOT
from dicomview.loader import DecodedImage, load_image
from dicomview.metadata import extract_metadata
from dicomview.presentation import FILE_FILTER, error_message, initial_directory, overlay_text

logger = logging.getLogger(__name__)

WELCOME_PAGE = 0
VIEWER_PAGE = 1

_TOOL_BUTTON_STYLE = "padding: 8px 15px; font-weight: bold; border-radius: 4px; background-color: #ecf0f1;"
_BACK_BUTTON_STYLE = "padding: 8px 15px; color: white; background-color: #e74c3c; border-radius: 4px;"
_OPEN_BUTTON_STYLE = (
    "QPushButton { background-color: #3498db; color: white; border-radius: 8px;"
    " font-size: 18px; font-weight: bold; }"
    "QPushButton:hover { background-color: #2980b9; }"
)


def to_qimage(image: DecodedImage) -> QImage:
    """Wrap the raster in a QImage that owns a copy of the pixels."""
    # bytesPerLine = width: rows are not padded to 4 bytes
    view = QImage(image.pixels, image.width, image.height, image.width, QImage.Format_Grayscale8)
    return view.copy()


class ViewerWindow(QMainWindow):
    """Two-page window: a welcome screen and the image viewer."""

    def __init__(self, config: Optional[dict] = None, parent=None):
        super().__init__(parent)
        self.config = config or CONFIG
        self.viewer_cfg = self.config["viewer"]
        self.pixmap_item: Optional[QGraphicsPixmapItem] = None

        self.setWindowTitle(self.viewer_cfg["title"])
        self.setWindowFlags(Qt.Window)

        self.stack = QStackedWidget()
        self.setCentralWidget(self.stack)
        self.stack.addWidget(self._build_welcome_page())
        self.stack.addWidget(self._build_viewer_page())
        self.stack.setCurrentIndex(WELCOME_PAGE)

        self._build_shortcuts()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _build_welcome_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.addStretch()

        logo = QLabel(self.viewer_cfg["title"].split(" - ")[0])
        logo.setStyleSheet("font-size: 48px; font-weight: bold; color: #2c3e50; margin-bottom: 10px;")
        layout.addWidget(logo, 0, Qt.AlignCenter)

        subtitle = QLabel(self.viewer_cfg["subtitle"])
        subtitle.setStyleSheet("font-size: 18px; color: #7f8c8d;")
        layout.addWidget(subtitle, 0, Qt.AlignCenter)

        layout.addSpacing(40)

        self.btn_open = QPushButton("Open DICOM file")
        self.btn_open.setCursor(Qt.PointingHandCursor)
        self.btn_open.setFixedSize(300, 60)
        self.btn_open.setStyleSheet(_OPEN_BUTTON_STYLE)
        self.btn_open.clicked.connect(self.open_dialog)
        layout.addWidget(self.btn_open, 0, Qt.AlignCenter)

        layout.addStretch()
        return page

    def _build_viewer_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self.overlay = QLabel()
        self.overlay.setStyleSheet("color: #f1c40f; background-color: black; padding: 4px; font-family: monospace;")
        self.overlay.setTextInteractionFlags(Qt.TextSelectableByMouse)
        layout.addWidget(self.overlay)

        self.scene = QGraphicsScene()
        self.view = QGraphicsView(self.scene)
        self.view.setDragMode(QGraphicsView.ScrollHandDrag)
        self.view.setBackgroundBrush(Qt.black)
        self.view.setStyleSheet("border: none;")
        layout.addWidget(self.view)

        tools = QHBoxLayout()
        buttons = [
            ("Open another", self.open_dialog, _TOOL_BUTTON_STYLE),
            ("Zoom (+)", lambda: self.zoom(self.viewer_cfg["zoom_in_factor"]), _TOOL_BUTTON_STYLE),
            ("Zoom (-)", lambda: self.zoom(self.viewer_cfg["zoom_out_factor"]), _TOOL_BUTTON_STYLE),
            ("Reset", self.fit_to_view, _TOOL_BUTTON_STYLE),
            ("Back to start", self.go_home, _BACK_BUTTON_STYLE),
        ]
        for index, (text, slot, style) in enumerate(buttons):
            button = QPushButton(text)
            button.setStyleSheet(style)
            button.clicked.connect(slot)
            tools.addWidget(button)
            if index == 0:
                tools.addStretch()
        layout.addLayout(tools)
        return page

    def _build_shortcuts(self) -> None:
        bindings = [
            (QKeySequence("Ctrl+O"), self.open_dialog),
            (QKeySequence(QKeySequence.ZoomIn), lambda: self.zoom(self.viewer_cfg["shortcut_zoom_in_factor"])),
            (QKeySequence(QKeySequence.ZoomOut), lambda: self.zoom(self.viewer_cfg["shortcut_zoom_out_factor"])),
            (QKeySequence("Ctrl+0"), self.reset_and_center),
        ]
        self.shortcuts = []
        for sequence, slot in bindings:
            shortcut = QShortcut(sequence, self)
            shortcut.activated.connect(slot)
            self.shortcuts.append(shortcut)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def open_dialog(self) -> None:
        start_dir = initial_directory(REPO_ROOT, self.config["paths"]["sample_folder"])
        path, _ = QFileDialog.getOpenFileName(self, "Open DICOM", start_dir, FILE_FILTER)
        if path:
            self.open_path(path)

    def open_path(self, path: str) -> bool:
        """Load *path* into the scene. Returns False (and warns the user) on failure."""
        image = load_image(path)
        if image is None:
            logger.warning("Failed to open %s.", path)
            QMessageBox.critical(self, "Error", error_message(path))
            return False

        self.show_image(image)
        self.overlay.setText(overlay_text(extract_metadata(path)))
        self.stack.setCurrentIndex(VIEWER_PAGE)
        return True

    def show_image(self, image: DecodedImage) -> None:
        self.scene.clear()

        # A large scene rect lets the image be dragged well past its edges
        extent = float(self.viewer_cfg["scene_extent"])
        self.scene.setSceneRect(-extent / 2.0, -extent / 2.0, extent, extent)

        self.pixmap_item = self.scene.addPixmap(QPixmap.fromImage(to_qimage(image)))
        # Put the image centre on the scene origin
        self.pixmap_item.setOffset(-image.width / 2.0, -image.height / 2.0)

        self.view.fitInView(self.pixmap_item, Qt.KeepAspectRatio)
        margin = self.viewer_cfg["fit_margin"]
        self.view.scale(margin, margin)
        self.view.centerOn(0, 0)

    def zoom(self, factor: float) -> None:
        self.view.scale(factor, factor)

    def fit_to_view(self) -> None:
        self.view.fitInView(self.scene.itemsBoundingRect(), Qt.KeepAspectRatio)

    def reset_and_center(self) -> None:
        self.fit_to_view()
        self.view.centerOn(0, 0)

    def go_home(self) -> None:
        self.scene.clear()
        self.pixmap_item = None
        self.overlay.clear()
        self.stack.setCurrentIndex(WELCOME_PAGE)


def run(path: Optional[str] = None, config: Optional[dict] = None) -> int:
    """
    Start the Qt event loop with a ViewerWindow.

    Parameters
    ----------
    path : str, optional
        File to open straight away.
    config : dict, optional
        Configuration; defaults to the shared CONFIG.

    Returns
    -------
    int
        The application's exit code.
    """
    app = QApplication.instance() or QApplication(sys.argv)

    window = ViewerWindow(config=config)
    screen = app.primaryScreen()
    if screen is not None:
        window.setGeometry(screen.availableGeometry())
    window.show()

    if path:
        window.open_path(path)

    logger.info("Viewer started.")
    return app.exec_()
