from __future__ import annotations

import json
import logging
import threading
from typing import Iterable, Optional

from .interfaces import ContactSource
from .models import ImportResult, RawRecord
from .pipeline import ContactsImporter

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


def fingerprint(records: Iterable[RawRecord]) -> str:
    return json.dumps(
        [
            {"id": record.source_id, "name": record.name, "emailCount": len(record.emails or [])}
            for record in records
        ]
    )


class ContactsChangeListener:
    """
    Polls a contact source and re-runs the import when the address book changes.

    Each tick samples the source, fingerprints it, and runs the importer only
    when the fingerprint differs from the one stored after the last successful
    run. The stored fingerprint starts empty and is cleared on stop, so the
    first tick after every start triggers an import.

    Ticks are driven by daemon ``threading.Timer`` objects; the next timer is
    armed once the current tick finishes. Stopping cancels the pending timer;
    a run already in flight completes but schedules nothing further.
    """

    def __init__(
        self,
        importer: ContactsImporter,
        source: Optional[ContactSource] = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        """
        Args:
            importer: Pipeline to run when a change is detected
            source: Source sampled for fingerprints (default: the importer's source)
            interval_seconds: Delay between ticks (default: 30)
        """
        self.importer = importer
        self.source = source or importer.source
        self.interval_seconds = interval_seconds
        self.last_result: Optional[ImportResult] = None
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._generation = 0
        self._last_fingerprint: Optional[str] = None
        self._lock = threading.Lock()
        self._pass_lock = threading.Lock()

    @property
    def last_fingerprint(self) -> Optional[str]:
        return self._last_fingerprint

    def is_listening(self) -> bool:
        return self._running

    def start_listening(self) -> None:
        with self._lock:
            if self._running:
                logger.debug("Contacts listener already running")
                return
            self._running = True
            self._generation += 1
            self._schedule(self._generation)
        logger.info("Started contacts listener (interval: %ss)", self.interval_seconds)

    def stop_listening(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            if self._timer:
                self._timer.cancel()
                self._timer = None
            self._last_fingerprint = None
        logger.info("Stopped contacts listener")

    def _schedule(self, generation: int) -> None:
        # caller holds self._lock
        timer = threading.Timer(self.interval_seconds, self._tick, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
        try:
            self.check_for_changes()
        finally:
            with self._lock:
                if self._running and generation == self._generation:
                    self._schedule(generation)

    def check_for_changes(self) -> bool:
        """Run one tick. Returns True when an import ran and succeeded."""
        if not self._pass_lock.acquire(blocking=False):
            logger.debug("Import still in flight; skipping this tick")
            return False
        try:
            with self._lock:
                generation = self._generation
            try:
                current = fingerprint(self.source.fetch_all())
            except Exception as exc:
                logger.warning("Could not sample contacts: %s", exc)
                return False

            if current == self._last_fingerprint:
                return False

            logger.info("Contacts changed, triggering re-import")
            try:
                result = self.importer.run_once()
            except Exception:
                logger.exception("Contacts re-import failed; retrying on next tick")
                return False

            self.last_result = result
            with self._lock:
                if generation == self._generation:
                    self._last_fingerprint = current
            logger.info("Re-import completed: %s", result.to_dict())
            return True
        finally:
            self._pass_lock.release()
