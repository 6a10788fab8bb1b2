# secureshare/services/sweep_scheduler.py
from __future__ import annotations

import threading
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from secureshare.logger import get_logger
from secureshare.services.slot_service import SlotService

logger = get_logger(__name__)

JOB_ID = "sweep_expired_slots"


class SweepScheduler:
    """
    Tarea recurrente que borra slots vencidos aunque nadie los vuelva a tocar.

    Vive lo que vive la app: start() en el arranque, shutdown() al apagar.
    Las corridas nunca se solapan: el job tiene max_instances=1 y run_once()
    saltea la pasada si otra sigue en curso.
    """

    def __init__(
        self,
        service: SlotService,
        interval_minutes: int = 60,
        orphan_grace: Optional[timedelta] = timedelta(hours=1),
    ) -> None:
        self.service = service
        self.interval_minutes = interval_minutes
        self.orphan_grace = orphan_grace
        self._run_lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(
            func=self.run_once,
            trigger="interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            name="Delete expired slots",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Sweep scheduler started, every %d minutes", self.interval_minutes)

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Sweep scheduler stopped")

    def run_once(self) -> int:
        """
        Una pasada completa del sweep.

        Returns:
            Slots borrados; 0 si se salteó porque otra pasada estaba corriendo.
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Sweep still running, skipping this trigger")
            return 0
        try:
            logger.info("Running cleanup sweep...")
            try:
                deleted = self.service.sweep_expired()
                if self.orphan_grace is not None:
                    self.service.sweep_orphan_blobs(self.orphan_grace)
            except Exception:
                logger.exception("Cleanup sweep failed")
                return 0
            logger.info("Cleanup sweep finished, deleted=%d", deleted)
            return deleted
        finally:
            self._run_lock.release()
