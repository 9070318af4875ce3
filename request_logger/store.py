"""Append-only request log file with in-place patching of a single line."""

import logging
import os
import tempfile
import threading
from typing import Callable

from request_logger.errors import LogNotFoundError, LogStoreError

logger = logging.getLogger(__name__)


class LogStore:
    """One log file on disk, guarded by a process-wide re-entrant lock.

    Every mutation (append, patch, clear) holds the lock, so a patch never
    interleaves with an append from another thread.
    """

    def __init__(self, path: str, file_mode: int = 0o644):
        self._path = path
        self._file_mode = file_mode
        self._lock = threading.RLock()

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def size(self) -> int:
        try:
            return os.path.getsize(self._path)
        except OSError:
            return 0

    def _ensure_file(self):
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self._path):
            fd = os.open(self._path, os.O_CREAT | os.O_WRONLY, self._file_mode)
            os.close(fd)
            # os.open honours the umask, chmod pins the exact mode
            os.chmod(self._path, self._file_mode)
            logger.info("Created log file %s (mode %o)", self._path, self._file_mode)

    def append(self, line: str):
        """Add a line at the end of the file, creating the file if needed."""
        with self._lock:
            try:
                self._ensure_file()
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(line if line.endswith("\n") else line + "\n")
            except OSError as e:
                raise LogStoreError(f"Failed to append to {self._path}: {e}") from e

    def read_all(self) -> list[str]:
        """Return every line in file order. Raises LogNotFoundError if absent."""
        try:
            with open(self._path, "r", encoding="utf-8", errors="replace") as f:
                return f.readlines()
        except FileNotFoundError as e:
            raise LogNotFoundError(f"Log file not found: {self._path}") from e
        except OSError as e:
            raise LogStoreError(f"Failed to read {self._path}: {e}") from e

    def _read_existing(self) -> list[str]:
        """Lines for a rewrite, with undecodable bytes and line endings kept as they are."""
        try:
            with open(self._path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
                return f.readlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise LogStoreError(f"Failed to read {self._path}: {e}") from e

    def _rewrite(self, lines: list[str]):
        """Replace the file contents atomically via a temp file in the same directory."""
        directory = os.path.dirname(self._path) or "."
        tmp_path = None
        try:
            tmp_fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(tmp_fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
                f.writelines(lines)
            os.chmod(tmp_path, self._file_mode)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning("Could not remove temp file %s", tmp_path)
            raise LogStoreError(f"Failed to rewrite {self._path}: {e}") from e

    def patch_last_line(self, transform: Callable[[str], str]) -> bool:
        """Apply transform to the last line only. Returns False if there is nothing to patch."""
        with self._lock:
            lines = self._read_existing()
            if not lines:
                return False
            lines[-1] = transform(lines[-1])
            self._rewrite(lines)
            return True

    def patch_line(self, original: str, transform: Callable[[str], str]) -> bool:
        """Apply transform to the most recent line equal to original.

        When no other line was appended after original this is the same as
        patch_last_line. Returns False if the line is no longer in the file.
        """
        with self._lock:
            lines = self._read_existing()
            for index in range(len(lines) - 1, -1, -1):
                if lines[index] == original:
                    lines[index] = transform(lines[index])
                    self._rewrite(lines)
                    return True
            return False

    def clear(self) -> bool:
        """Truncate the file to empty. Returns False if the file does not exist."""
        with self._lock:
            if not os.path.exists(self._path):
                return False
            try:
                with open(self._path, "w", encoding="utf-8"):
                    pass
            except OSError as e:
                raise LogStoreError(f"Failed to clear {self._path}: {e}") from e
            logger.info("Cleared log file %s", self._path)
            return True
