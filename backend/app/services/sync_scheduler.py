import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from app.adapters.ghl_client import GHLError
from app.repositories.json_store import JsonStoreError

log = logging.getLogger(__name__)


class SyncScheduler:
    """Runs the GHL product sync right away and then every `interval_seconds`."""

    JOB_ID = "ghl_product_sync"

    def __init__(self, sync_fn: Callable[[], List], interval_seconds: int):
        self.sync_fn = sync_fn
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[BackgroundScheduler] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> None:
        try:
            products = self.sync_fn()
            log.info("Periodic product sync completed (%s products)", len(products))
        except (GHLError, JsonStoreError) as e:
            log.error("Periodic product sync failed: %s", e)

    def start(self) -> None:
        with self._lock:
            if self.running:
                self._scheduler.remove_job(self.JOB_ID)
            else:
                self._scheduler = BackgroundScheduler()
                self._scheduler.start()
            self._scheduler.add_job(
                self.run_once,
                "interval",
                seconds=self.interval_seconds,
                id=self.JOB_ID,
                next_run_time=datetime.now(),
            )
        log.info("Product synchronization service started (every %ss)", self.interval_seconds)

    def stop(self) -> None:
        with self._lock:
            if self._scheduler is not None:
                self._scheduler.shutdown(wait=False)
                self._scheduler = None
                log.info("Product synchronization service stopped")
