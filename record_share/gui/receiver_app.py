import sys
import json
import logging
import cv2
import numpy as np
from PySide6.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout,
                               QHBoxLayout, QPushButton, QLabel, QProgressBar, QTextEdit,
                               QMessageBox, QFileDialog)
from PySide6.QtCore import Qt, QTimer, Slot
from PySide6.QtGui import QImage, QPixmap
from PIL import Image

from record_share.core.accumulator import Complete, Invalid, Progress, SinglePayload
from record_share.core.decoding_qr import scan_frame, scan_image
from record_share.core.sharing import ReceiveSession

logger = logging.getLogger(__name__)


class ReceiverApp(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Record Share - Receiver")
        self.resize(900, 700)

        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        self.layout = QVBoxLayout(self.central_widget)

        # Video feed
        self.lbl_video = QLabel()
        self.lbl_video.setAlignment(Qt.AlignCenter)
        self.lbl_video.setMinimumSize(640, 480)
        self.lbl_video.setStyleSheet("background-color: #000;")
        self.layout.addWidget(self.lbl_video)

        # Controls
        self.controls_layout = QHBoxLayout()
        self.btn_camera = QPushButton("Start Camera")
        self.btn_camera.clicked.connect(self.toggle_camera)
        self.btn_load = QPushButton("Load Image")
        self.btn_load.clicked.connect(self.load_file_frame)
        self.btn_restart = QPushButton("Restart Scan")
        self.btn_restart.clicked.connect(self.restart_scan)
        self.btn_save = QPushButton("Save Record")
        self.btn_save.clicked.connect(self.save_record)
        self.btn_save.setEnabled(False)
        self.lbl_status = QLabel("Status: Idle")

        self.controls_layout.addWidget(self.btn_camera)
        self.controls_layout.addWidget(self.btn_load)
        self.controls_layout.addWidget(self.btn_restart)
        self.controls_layout.addWidget(self.btn_save)
        self.controls_layout.addWidget(self.lbl_status)
        self.layout.addLayout(self.controls_layout)

        # Progress & Log
        self.progress = QProgressBar()
        self.layout.addWidget(self.progress)
        self.log_view = QTextEdit()
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumHeight(150)
        self.layout.addWidget(self.log_view)

        # State
        self.cap = None
        self.timer = QTimer()
        self.timer.timeout.connect(self.update_frame)
        self.is_camera_active = False
        self.session = ReceiveSession()
        self.result = None
        self._last_text = None

    @Slot()
    def load_file_frame(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select QR Image", "", "Images (*.png *.jpg)")
        if not path:
            return
        qimg = QImage(path)
        self.lbl_video.setPixmap(QPixmap.fromImage(qimg).scaled(self.lbl_video.size(), Qt.KeepAspectRatio))
        with Image.open(path) as pil_img:
            texts = scan_image(pil_img)
        if not texts:
            self.log(f"No QR code found in {path}")
        for text in texts:
            # Loaded images are deliberate, so repeats are fed too
            self.handle_text(text)

    @Slot()
    def toggle_camera(self):
        if self.is_camera_active:
            self.timer.stop()
            if self.cap:
                self.cap.release()
            self.btn_camera.setText("Start Camera")
            self.is_camera_active = False
        else:
            self.cap = cv2.VideoCapture(0)
            if not self.cap.isOpened():
                self.log("Failed to open camera")
                return
            self.timer.start(33)  # ~30 FPS
            self.btn_camera.setText("Stop Camera")
            self.is_camera_active = True

    def update_frame(self):
        ret, frame = self.cap.read()
        if not ret:
            return

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        h, w, ch = rgb_frame.shape
        bytes_per_line = ch * w
        qimg = QImage(rgb_frame.data, w, h, bytes_per_line, QImage.Format_RGB888)
        self.lbl_video.setPixmap(QPixmap.fromImage(qimg).scaled(self.lbl_video.size(), Qt.KeepAspectRatio))

        self.process_frame(frame)

    def process_frame(self, frame_cv: np.ndarray):
        for text in scan_frame(frame_cv):
            # The camera sees the same code many times a second; only react to changes
            if text == self._last_text:
                continue
            self._last_text = text
            self.handle_text(text)

    def handle_text(self, text: str):
        result = self.session.feed(text)
        outcome = result.outcome
        if isinstance(outcome, Progress):
            self.progress.setMaximum(outcome.total_count)
            self.progress.setValue(outcome.collected_count)
            if outcome.is_duplicate:
                self.log(f"Segment {outcome.latest_index} already scanned")
            else:
                self.log(f"Received segment {outcome.latest_index}/{outcome.total_count}")
            nxt = outcome.next_expected_index
            self.lbl_status.setText(f"Received: {outcome.collected_count} / {outcome.total_count}"
                                    + (f" - next: {nxt}" if nxt else ""))
        elif isinstance(outcome, Invalid):
            self.progress.setValue(0)
            self.lbl_status.setText("Status: Restart scan")
            self.log(outcome.message)
        elif isinstance(outcome, (Complete, SinglePayload)):
            self.result = result
            self.progress.setMaximum(1)
            self.progress.setValue(1)
            self.lbl_status.setText("Status: Record received")
            self.log("Record received")
            self.btn_save.setEnabled(True)
            if self.is_camera_active:
                self.toggle_camera()

    @Slot()
    def restart_scan(self):
        self.session.reset()
        self.result = None
        self._last_text = None
        self.btn_save.setEnabled(False)
        self.progress.setValue(0)
        self.lbl_status.setText("Status: Idle")
        self.log("Scan restarted")

    @Slot()
    def save_record(self):
        if self.result is None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save Record", "record.json", "JSON (*.json)")
        if path:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.result.value, f, indent=2, ensure_ascii=False)
            self.log(f"Saved to {path}")
            QMessageBox.information(self, "Success", f"Record saved to {path}")

    def log(self, msg):
        logger.info(msg)
        self.log_view.append(msg)

if __name__ == "__main__":
    app = QApplication(sys.argv)
    window = ReceiverApp()
    window.show()
    sys.exit(app.exec())
