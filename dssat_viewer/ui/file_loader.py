"""
Background file loading for the viewer

Readers block; the worker runs one on a QThread and hands the result back
through signals.
"""
import logging
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot

from dssat_viewer.data.dssat_io import read_file
from dssat_viewer.data.errors import DssatReadError

logger = logging.getLogger(__name__)


class FileLoadWorker(QObject):
    data_loaded = pyqtSignal(object)   # Table
    error_occurred = pyqtSignal(str)
    finished = pyqtSignal()

    def __init__(self, file_path: str, reader: Optional[Callable] = None):
        super().__init__()
        self.file_path = file_path
        self.reader = reader or read_file

    @pyqtSlot()
    def run(self):
        try:
            table = self.reader(self.file_path)
            logger.info(f"Loaded {table.row_count} rows from {self.file_path}")
            self.data_loaded.emit(table)
        except DssatReadError as e:
            logger.error(f"Error loading {self.file_path}: {e}")
            self.error_occurred.emit(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error loading {self.file_path}")
            self.error_occurred.emit(f"Error loading {self.file_path}: {e}")
        finally:
            self.finished.emit()


def start_worker(worker: FileLoadWorker) -> QThread:
    """Move the worker onto a new thread and start it.

    The caller owns the returned thread and keeps it alive until finished.
    """
    thread = QThread()
    worker.moveToThread(thread)
    thread.started.connect(worker.run)
    worker.finished.connect(thread.quit)
    worker.finished.connect(worker.deleteLater)
    thread.start()
    return thread
