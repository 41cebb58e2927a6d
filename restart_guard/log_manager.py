"""Log output and log file maintenance for the Restart Guard."""

import glob
import logging
import os
import sys
import time
from datetime import datetime
from typing import Callable, Optional

from .utils import rotated_name, rotated_pattern

LOG_FORMAT = '%(asctime)s: %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

logger = logging.getLogger(__name__)


class SafeFileHandler(logging.FileHandler):
    """FileHandler that reports failures to open the file instead of raising."""

    def emit(self, record):
        try:
            super().emit(record)
        except OSError:
            self.handleError(record)


def configure_logging(log_file: str, verbose: bool = False) -> logging.FileHandler:
    """
    Send log records to stdout and append them to the log file.

    A failed file write is reported on stderr by the logging module
    and never propagates to the caller.

    Args:
        log_file: Path of the active log file
        verbose: Enable debug logging

    Returns:
        The file handler, so the rotator can reopen its stream
    """
    file_handler = SafeFileHandler(log_file, mode='a', delay=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=[logging.StreamHandler(sys.stdout), file_handler],
        force=True
    )
    return file_handler


class LogRotator:
    """Rotates the active log file by size and prunes old rotations."""

    def __init__(
        self,
        log_file: str,
        rotate_bytes: int,
        retention: float,
        handler: Optional[logging.FileHandler] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the rotator.

        Args:
            log_file: Path of the active log file
            rotate_bytes: Rotate once the file reaches this size
            retention: Seconds a rotated file is kept
            handler: File handler writing to log_file, if any
            clock: Source of the current time (epoch seconds)
        """
        self.log_file = log_file
        self.rotate_bytes = rotate_bytes
        self.retention = retention
        self.handler = handler
        self.clock = clock

    def needs_rotation(self) -> bool:
        """Check if the active file has reached the rotation size."""
        try:
            return os.path.getsize(self.log_file) >= self.rotate_bytes
        except FileNotFoundError:
            return False

    def maybe_rotate(self) -> bool:
        """
        Rotate the active log file if it is at or above the size limit.

        Returns:
            True if a rotation happened
        """
        if not self.needs_rotation():
            return False

        target = rotated_name(self.log_file, datetime.fromtimestamp(self.clock()))

        if self.handler is not None:
            self.handler.acquire()
        try:
            if self.handler is not None and self.handler.stream:
                self.handler.stream.close()
                self.handler.stream = None
            os.replace(self.log_file, target)
            # Start a fresh, empty active file
            open(self.log_file, 'a').close()
        except OSError as e:
            logger.error(f"Log rotation failed: {e}")
            return False
        finally:
            if self.handler is not None:
                self.handler.release()

        logger.info("Log file was rotated.")
        return True

    def prune_old(self) -> int:
        """
        Delete rotated log files older than the retention window.

        Returns:
            Number of files removed
        """
        directory = os.path.dirname(os.path.abspath(self.log_file))
        cutoff = self.clock() - self.retention
        removed = 0

        for path in glob.glob(os.path.join(directory, rotated_pattern(self.log_file))):
            try:
                if os.path.getmtime(path) >= cutoff:
                    continue
                os.remove(path)
                removed += 1
                logger.debug(f"Removed old log file {path}")
            except OSError as e:
                logger.error(f"Failed to remove old log file {path}: {e}")

        if removed:
            logger.info(f"Old log files cleaned up ({removed} removed).")
        return removed
