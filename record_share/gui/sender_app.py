import sys
import os
import json
import logging
from PySide6.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout,
                               QHBoxLayout, QPushButton, QLabel, QFileDialog,
                               QSlider, QProgressBar, QSizePolicy, QSpinBox, QMessageBox)
from PySide6.QtCore import Qt, QTimer, Slot
from PySide6.QtGui import QImage, QPixmap, QKeyEvent

from record_share.core.codec import COMPRESSION_PREFIX, PayloadError
from record_share.core.segmenting import DEFAULT_MAX_LENGTH, MINIMUM_BODY_LENGTH, PayloadTooLargeForSegmentSizeError
from record_share.core.sharing import prepare_share
from record_share.core.encoding_qr import segments_to_qr_frames

logger = logging.getLogger(__name__)


class SenderApp(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Record Share - Sender")
        self.setFixedSize(800, 600)

        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        self.layout = QVBoxLayout(self.central_widget)

        # Top controls
        self.top_layout = QHBoxLayout()
        self.btn_select = QPushButton("Select Record")
        self.btn_select.clicked.connect(self.select_file)
        self.lbl_file = QLabel("No record selected")

        self.btn_start = QPushButton("Start Cycling")
        self.btn_start.clicked.connect(self.start_transfer)
        self.btn_start.setEnabled(False)

        self.spin_max_length = QSpinBox()
        self.spin_max_length.setRange(MINIMUM_BODY_LENGTH + 20, 2900)
        self.spin_max_length.setValue(DEFAULT_MAX_LENGTH)
        self.spin_max_length.setSuffix(" chars/QR")
        self.spin_max_length.editingFinished.connect(self.prepare_frames)

        self.top_layout.addWidget(self.btn_select)
        self.top_layout.addWidget(self.btn_start)
        self.top_layout.addWidget(self.spin_max_length)
        self.top_layout.addWidget(self.lbl_file)
        self.layout.addLayout(self.top_layout)

        # Metadata display
        self.meta_layout = QHBoxLayout()
        self.lbl_payload = QLabel("Payload: -")
        self.lbl_compressed = QLabel("Compressed: -")
        self.lbl_total_frames = QLabel("Segments: -")
        self.meta_layout.addWidget(self.lbl_payload)
        self.meta_layout.addWidget(self.lbl_compressed)
        self.meta_layout.addWidget(self.lbl_total_frames)
        self.layout.addLayout(self.meta_layout)

        # QR display
        self.lbl_display = QLabel()
        self.lbl_display.setAlignment(Qt.AlignCenter)
        self.lbl_display.setStyleSheet("background-color: #fff; border: 2px solid #444;")
        self.lbl_display.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.layout.addWidget(self.lbl_display)

        # Playback controls
        self.controls_layout = QHBoxLayout()

        self.btn_prev = QPushButton("<")
        self.btn_prev.setFixedWidth(40)
        self.btn_prev.clicked.connect(self.prev_frame)

        self.btn_next = QPushButton(">")
        self.btn_next.setFixedWidth(40)
        self.btn_next.clicked.connect(self.manual_next_frame)

        # QR sequences are scanned by hand, so the rate stays low
        self.slider_fps = QSlider(Qt.Horizontal)
        self.slider_fps.setRange(1, 5)
        self.slider_fps.setValue(1)
        self.lbl_fps = QLabel("1 per second")
        self.slider_fps.valueChanged.connect(lambda v: self.lbl_fps.setText(f"{v} per second"))

        self.controls_layout.addWidget(self.btn_prev)
        self.controls_layout.addWidget(self.btn_next)
        self.controls_layout.addWidget(QLabel("Speed:"))
        self.controls_layout.addWidget(self.slider_fps)
        self.controls_layout.addWidget(self.lbl_fps)
        self.layout.addLayout(self.controls_layout)

        # Progress
        self.progress_layout = QHBoxLayout()
        self.lbl_counter = QLabel("Segment: 0/0")
        self.progress = QProgressBar()
        self.progress_layout.addWidget(self.lbl_counter)
        self.progress_layout.addWidget(self.progress)
        self.layout.addLayout(self.progress_layout)

        # State
        self.record = None
        self.frames = []  # PIL images, one per segment
        self.timer = QTimer()
        self.timer.timeout.connect(self.next_frame)
        self.current_frame_idx = 0
        self.is_running = False

    @Slot()
    def select_file(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select Record to Share", "", "JSON (*.json)")
        if not path:
            return
        try:
            with open(path, encoding='utf-8') as f:
                self.record = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            QMessageBox.warning(self, "Unreadable Record", str(e))
            return
        self.lbl_file.setText(os.path.basename(path))
        self.prepare_frames()

    @Slot()
    def prepare_frames(self):
        if self.record is None:
            return
        if self.is_running:
            self.start_transfer()  # pause while regenerating
        self.frames = []
        self.lbl_display.setText("Generating QR codes...")
        QApplication.processEvents()

        try:
            bundle = prepare_share(self.record, max_length=self.spin_max_length.value())
        except (PayloadError, PayloadTooLargeForSegmentSizeError) as e:
            logger.warning("Could not package record: %s", e)
            self.btn_start.setEnabled(False)
            self.lbl_display.setText("")
            QMessageBox.warning(self, "QR Packaging Error", str(e))
            return

        for _idx, result in segments_to_qr_frames(bundle.segments):
            self.frames.append(result.to_image(scale=10))

        self.lbl_payload.setText(f"Payload: {len(bundle.encoded_payload)} chars")
        compressed = bundle.encoded_payload.startswith(COMPRESSION_PREFIX)
        self.lbl_compressed.setText(f"Compressed: {'yes' if compressed else 'no'}")
        self.lbl_total_frames.setText(f"Segments: {len(self.frames)}")
        self.progress.setMaximum(len(self.frames))
        self.btn_start.setEnabled(len(self.frames) > 1)

        self.current_frame_idx = 0
        self.display_current_frame()

    @Slot()
    def start_transfer(self):
        if not self.frames:
            return

        if self.is_running:
            self.timer.stop()
            self.btn_start.setText("Resume Cycling")
            self.is_running = False
        else:
            self.timer.start(1000 // self.slider_fps.value())
            self.btn_start.setText("Pause Cycling")
            self.is_running = True

    def _pause(self):
        if self.is_running:
            self.start_transfer()

    @Slot()
    def prev_frame(self):
        if not self.frames: return
        self._pause()
        self.current_frame_idx = (self.current_frame_idx - 1) % len(self.frames)
        self.display_current_frame()

    @Slot()
    def manual_next_frame(self):
        if not self.frames: return
        self._pause()
        self.next_frame()

    @Slot()
    def go_to_first_frame(self):
        if not self.frames: return
        self._pause()
        self.current_frame_idx = 0
        self.display_current_frame()

    @Slot()
    def go_to_last_frame(self):
        if not self.frames: return
        self._pause()
        self.current_frame_idx = len(self.frames) - 1
        self.display_current_frame()

    def display_current_frame(self):
        if not self.frames:
            return
        if self.current_frame_idx >= len(self.frames):
            self.current_frame_idx = 0

        pil_img = self.frames[self.current_frame_idx]

        # Convert PIL to QPixmap
        data = pil_img.convert("RGBA").tobytes("raw", "RGBA")
        qimg = QImage(data, pil_img.width, pil_img.height, QImage.Format_RGBA8888)
        pixmap = QPixmap.fromImage(qimg)

        # QR modules must stay sharp, so no smooth scaling
        scaled_pixmap = pixmap.scaled(self.lbl_display.size(), Qt.KeepAspectRatio, Qt.FastTransformation)
        self.lbl_display.setPixmap(scaled_pixmap)
        self.progress.setValue(self.current_frame_idx + 1)
        self.lbl_counter.setText(f"Segment: {self.current_frame_idx + 1}/{len(self.frames)}")

    def keyPressEvent(self, event: QKeyEvent):
        if event.key() == Qt.Key_Left:
            self.prev_frame()
        elif event.key() == Qt.Key_Right:
            self.manual_next_frame()
        elif event.key() == Qt.Key_Up:
            self.go_to_first_frame()
        elif event.key() == Qt.Key_Down:
            self.go_to_last_frame()
        else:
            super().keyPressEvent(event)

    def next_frame(self):
        if not self.frames:
            return
        self.current_frame_idx = (self.current_frame_idx + 1) % len(self.frames)
        self.display_current_frame()

        # Update timer if rate changed
        self.timer.setInterval(1000 // self.slider_fps.value())

if __name__ == "__main__":
    app = QApplication(sys.argv)
    window = SenderApp()
    window.show()
    sys.exit(app.exec())
