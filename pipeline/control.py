import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from core.config_loader import ConfigurationError
from core.utils import utc_now

logger = logging.getLogger(__name__)


class PipelineTrigger:
    """
    Decides, on each incoming request, whether the pipeline is due and
    starts it in the background.

    At most one run is in flight at a time. A run is due when none has
    completed yet or the last one finished at least ``interval_seconds``
    ago. The due-check and the claim of the running flag happen under one
    lock, so concurrent requests start at most one run. The request that
    triggers a run never waits for it.
    """

    def __init__(
        self,
        run_callable: Callable[[], Any],
        interval_seconds: int,
        clock: Callable[[], float] = time.monotonic
    ):
        if interval_seconds is None or interval_seconds <= 0:
            raise ConfigurationError(f"interval_seconds must be > 0, got {interval_seconds}")
        self._run_callable = run_callable
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._lock = threading.Lock()
        self._running = False
        self._last_run: Optional[float] = None
        self._last_run_at: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._future: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pipeline")

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def last_run_at(self) -> Optional[datetime]:
        with self._lock:
            return self._last_run_at

    def is_due(self) -> bool:
        with self._lock:
            return self._is_due_locked()

    def _is_due_locked(self) -> bool:
        if self._running:
            return False
        if self._last_run is None:
            return True
        return self._clock() - self._last_run >= self.interval_seconds

    def maybe_run(self) -> bool:
        """Start a background run if one is due. Returns True when a run was started."""
        with self._lock:
            if not self._is_due_locked():
                return False
            self._running = True
        return self._dispatch()

    def run_now(self) -> bool:
        """Start a run regardless of the interval, unless one is already in flight."""
        with self._lock:
            if self._running:
                return False
            self._running = True
        return self._dispatch()

    def _dispatch(self) -> bool:
        try:
            future = self._executor.submit(self._execute)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Pipeline run not started: {e}")
            with self._lock:
                self._running = False
            return False

        with self._lock:
            self._future = future
        future.add_done_callback(self._on_done)
        logger.info("Pipeline run started in background")
        return True

    def _execute(self) -> Any:
        error: Optional[str] = None
        try:
            result = self._run_callable()
            if getattr(result, "success", True) is False:
                error = getattr(result, "error", None) or "pipeline reported failure"
            return result
        except Exception as e:
            error = str(e)
            raise
        finally:
            with self._lock:
                self._last_run = self._clock()
                self._last_run_at = utc_now()
                self._last_error = error
                self._running = False

    def _on_done(self, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"Background pipeline run failed: {error}", exc_info=error)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run (if any) finishes. Returns False on timeout."""
        with self._lock:
            future = self._future
        if future is None:
            return True
        try:
            future.exception(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "running": self._running,
                "last_run_at": self._last_run_at,
                "last_error": self._last_error,
                "interval_seconds": self.interval_seconds,
            }

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
