import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SamplingLoop:
    """
    Calls sink(sample()) every interval_seconds on the running event loop.

    stop() cancels the pending sleep, so no tick fires after it returns.
    """

    def __init__(
        self,
        interval_seconds: float,
        sample: Callable[[], Any],
        sink: Callable[[Any], None] | None = None,
    ):
        self.interval_seconds = interval_seconds
        self._sample = sample
        self._sink = sink
        self._task: asyncio.Task | None = None
        self.last_sample: Any = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Sampling every %ss", self.interval_seconds)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("Sampling stopped")

    def sample_once(self) -> Any:
        self.last_sample = self._sample()
        if self._sink is not None:
            self._sink(self.last_sample)
        return self.last_sample

    async def _run(self) -> None:
        while True:
            try:
                self.sample_once()
            except Exception:
                logger.exception("Sampling tick failed")
            await asyncio.sleep(self.interval_seconds)
