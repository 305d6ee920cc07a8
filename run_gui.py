import sys
import argparse
from PySide6.QtWidgets import QApplication
from record_share.core.logger import setup_logger
from record_share.gui.sender_app import SenderApp
from record_share.gui.receiver_app import ReceiverApp

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('mode', choices=['sender', 'receiver'], help='Mode to run')
    args = parser.parse_args()
    setup_logger()

    app = QApplication(sys.argv)

    if args.mode == 'sender':
        window = SenderApp()
    else:
        window = ReceiverApp()

    window.show()
    sys.exit(app.exec())

if __name__ == '__main__':
    main()
