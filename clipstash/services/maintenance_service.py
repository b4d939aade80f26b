"""Scheduled history retention and database compaction"""

import threading
from datetime import datetime
from typing import Optional, Dict, Any
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

MAINTENANCE_JOB_ID = 'history_maintenance'


class MaintenanceService:
    """
    Re-applies the retention policy of a ClipboardManager on a fixed
    interval, so entries age out while the application stays open, and
    optionally compacts the database afterwards.
    """

    def __init__(self, clipboard_manager, database_manager=None, interval_seconds: int = 3600):
        """
        Args:
            clipboard_manager: Engine whose history is pruned
            database_manager: Database to VACUUM after each pass, None to skip
            interval_seconds: Seconds between passes
        """
        self.clipboard_manager = clipboard_manager
        self.database_manager = database_manager
        self.interval = interval_seconds
        self.scheduler = None
        self.last_report: Optional[Dict[str, Any]] = None
        self._lock = threading.RLock()

        logger.info(f"MaintenanceService initialized with {interval_seconds}s interval "
                    f"(vacuum={'on' if database_manager else 'off'})")

    def start(self) -> None:
        with self._lock:
            if self.scheduler is not None:
                logger.warning("Maintenance service already running")
                return

            self.scheduler = BackgroundScheduler()
            self.scheduler.add_job(
                func=self.run_now,
                trigger=IntervalTrigger(seconds=self.interval),
                id=MAINTENANCE_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True
            )
            self.scheduler.start()

            logger.info("Maintenance service started")

    def stop(self) -> None:
        with self._lock:
            if self.scheduler is None:
                return

            self.scheduler.shutdown(wait=True)
            self.scheduler = None

            logger.info("Maintenance service stopped")

    def run_now(self) -> Dict[str, Any]:
        """
        Run one maintenance pass

        Returns:
            Report with the number of pruned entries and whether the
            database was compacted
        """
        report = {'pruned': 0, 'vacuumed': False, 'finished_at': None}

        try:
            report['pruned'] = self.clipboard_manager.prune_expired_entries()
        except Exception as e:
            logger.error(f"Retention pass failed: {e}")

        if self.database_manager is not None:
            size_before = self.database_manager.get_size()
            try:
                self.database_manager.vacuum()
                report['vacuumed'] = True
                logger.debug(f"Database size {size_before} -> {self.database_manager.get_size()} bytes")
            except Exception as e:
                logger.error(f"Database compaction failed: {e}")

        report['finished_at'] = datetime.now()
        with self._lock:
            self.last_report = report

        logger.info(f"Maintenance pass removed {report['pruned']} expired entries")
        return report

    @property
    def is_running(self) -> bool:
        return self.scheduler is not None

    def get_next_run(self) -> Optional[datetime]:
        """Next scheduled pass, None when stopped"""
        with self._lock:
            if self.scheduler is None:
                return None
            job = self.scheduler.get_job(MAINTENANCE_JOB_ID)
            return job.next_run_time if job else None
