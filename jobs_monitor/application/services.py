"""
Control Service

Coordinates the run state and the monitor worker.
Provides the start / stop / status API used by the web layer.
"""
import asyncio
import logging
from typing import Optional, Sequence

from jobs_monitor.config import HIRING_LINK_PREFIX
from jobs_monitor.domain.entities import MonitorConfig, RunState, RunStatus
from jobs_monitor.domain.errors import (
    AlreadyRunning,
    InvalidInput,
    NotRunning,
    WorkerFailure,
)
from jobs_monitor.domain.ports import MonitorWorker
from jobs_monitor.infrastructure.logging import get_logger
from .validation import filter_links, filter_positions


class MonitorControlService:
    """
    High-level service for controlling the monitor worker.

    Control requests arrive on the event loop one at a time and none of
    them awaits between checking and updating the run state, so the
    boolean check is enough to keep at most one worker active.
    """

    def __init__(
        self,
        worker: MonitorWorker,
        link_prefix: str = HIRING_LINK_PREFIX,
        refresh_interval_ms: int = 30000,
        profile_selectors: Sequence[str] = ("Profile 11",),
        logger: Optional[logging.Logger] = None,
        worker_logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the control service.

        Args:
            worker: Worker that performs the monitoring
            link_prefix: Accepted hiring-site link prefix
            refresh_interval_ms: Worker polling interval
            profile_selectors: Profiles handed to the worker
            logger: Logger for control messages
            worker_logger: Logger that receives the worker's log lines
        """
        self._worker = worker
        self._link_prefix = link_prefix
        self._refresh_interval_ms = refresh_interval_ms
        self._profile_selectors = tuple(profile_selectors)
        self._logger = logger or get_logger("control")
        self._worker_logger = worker_logger or get_logger("worker")
        self._run_state = RunState()
        self._task: Optional[asyncio.Task] = None

    @property
    def worker(self) -> MonitorWorker:
        return self._worker

    @property
    def is_running(self) -> bool:
        return self._run_state.is_running

    @property
    def current_config(self) -> Optional[MonitorConfig]:
        return self._run_state.config

    async def start(self, links: Sequence[str], positions: Sequence[str]) -> MonitorConfig:
        """
        Start the worker with the first accepted link.

        Returns as soon as the worker task is scheduled; worker failures
        show up later as log lines only.

        Raises:
            AlreadyRunning: If a worker is active
            InvalidInput: If no link or no position survives filtering
        """
        if self._run_state.is_running:
            raise AlreadyRunning()

        job_links = filter_links(links, self._link_prefix)
        target_positions = filter_positions(positions)
        if not job_links or not target_positions:
            raise InvalidInput()

        config = MonitorConfig.build(
            target_url=job_links[0],
            target_positions=target_positions,
            refresh_interval_ms=self._refresh_interval_ms,
            profile_selectors=self._profile_selectors,
        )

        self._logger.info(f"🚀 Starting with job link: {config.target_url}")
        self._logger.info(f"🔍 Looking for positions: {', '.join(config.target_positions)}")

        self._run_state.mark_started(config)
        self._task = asyncio.create_task(self._run_worker(config), name="monitor-worker")
        return config

    async def stop(self) -> None:
        """
        Signal the worker to stop. Does not wait for teardown.

        Raises:
            NotRunning: If no worker is active
        """
        if not self._run_state.is_running:
            raise NotRunning()

        self._worker.stop()
        self._run_state.mark_stopped()
        self._logger.info("🛑 Script stopped")

    def status(self) -> RunStatus:
        """Current run state snapshot."""
        return RunStatus(is_running=self._run_state.is_running)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Stop a running worker and wait for its task before exit."""
        if self._run_state.is_running:
            self._worker.stop()
            self._run_state.mark_stopped()

        task = self._task
        if task is None or task.done():
            return

        done, pending = await asyncio.wait({task}, timeout=timeout)
        for pending_task in pending:
            pending_task.cancel()
            self._logger.warning("Worker did not stop within %.1fs, cancelled", timeout)

    def _log_from_worker(self, message: str) -> None:
        self._worker_logger.info(message)

    async def _run_worker(self, config: MonitorConfig) -> None:
        """Task boundary: worker exceptions become log lines."""
        try:
            await self._worker.start(config, self._log_from_worker)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            failure = WorkerFailure(str(e))
            self._logger.error(f"Monitor jobs error: {failure}")
        finally:
            # A newer run may already own the state
            if self._run_state.config is config:
                self._run_state.mark_stopped()
