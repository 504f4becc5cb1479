from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coreos_version_checker.repository import ReleaseRepository

DEFAULT_INTERVAL = 300


class Poller:
    """
    Refreshes the repository on a background thread: once at start, then `interval` seconds after
    the previous cycle finished. Cycles never overlap and a failing cycle never stops the thread.
    """

    def __init__(self, repository: ReleaseRepository, interval: float = DEFAULT_INTERVAL, logger: logging.Logger | None = None):
        if interval <= 0:
            raise ValueError("poll interval must be positive")
        self.repository = repository
        self.interval = interval

        if not logger:
            logger = logging.getLogger(self.__class__.__name__)
        self.logger = logger

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.cycles = 0

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            raise RuntimeError("poller is already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="release-poller", daemon=True)
        self._thread.start()
        self.logger.info(f"polling for CoreOS releases every {self.interval} seconds")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Exception | None:
        self.cycles += 1
        try:
            err = self.repository.refresh()
        except Exception as e:
            # refresh() records its own errors, this only guards the thread against the unexpected
            self.logger.exception("unexpected error during refresh cycle")
            self.repository.update_error(e)
            return e

        if err:
            self.logger.warning(f"refresh cycle {self.cycles} failed: {err}")
        else:
            self.logger.debug(f"refresh cycle {self.cycles} completed")
        return err

    def _run(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval)
