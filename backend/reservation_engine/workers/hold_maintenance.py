"""
Background maintenance: sweeps stale seat holds and refreshes the stored
availability counters.

Neither job is needed for correctness; expiry is enforced on read and
availability is always recomputable. The worker keeps the hold table tidy
and the event rows close to the truth for anything that reads them
directly.
"""

import asyncio
from typing import Optional

from reservation_engine.core.logging import get_logger
from reservation_engine.services.availability import AvailabilityCalculator
from reservation_engine.services.seat_holds import SeatHoldManager

logger = get_logger(__name__)


class HoldMaintenanceWorker:

    def __init__(
        self,
        holds: SeatHoldManager,
        availability: AvailabilityCalculator,
        sweep_interval: float = 180,
        refresh_interval: float = 600,
    ):
        self.holds = holds
        self.availability = availability
        self.sweep_interval = sweep_interval
        self.refresh_interval = refresh_interval
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self._last_refresh: Optional[float] = None

    async def start(self) -> None:
        if self.running:
            logger.warning("maintenance_worker_already_running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info(
            "maintenance_worker_started",
            sweep_interval=self.sweep_interval,
            refresh_interval=self.refresh_interval,
        )

    async def stop(self) -> None:
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("maintenance_worker_stopped")

    async def run_once(self, refresh: bool = True) -> int:
        """One sweep, plus an availability refresh when asked. Returns holds expired."""
        expired = await self.holds.expire_stale_holds()
        if refresh:
            refreshed = await self.availability.refresh_all()
            self._last_refresh = asyncio.get_running_loop().time()
            logger.info("availability_refresh_complete", events=refreshed)
        return expired

    async def _run(self) -> None:
        while self.running:
            try:
                await self.run_once(refresh=self._refresh_due())
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("maintenance_worker_error", error=str(e))
            await asyncio.sleep(self.sweep_interval)

    def _refresh_due(self) -> bool:
        if self._last_refresh is None:
            return True
        return asyncio.get_running_loop().time() - self._last_refresh >= self.refresh_interval
