"""Resilient tailing of a single log file."""

import asyncio
import random
import time
from pathlib import Path
from typing import Optional

from aiofiles import os as aioos

from ..config import TailerSettings
from ..logger import logger
from .models import RawLine, TailState, WatchedFile
from .reader import read_new_lines


def compute_backoff(
    error_count: int,
    base: float = 0.1,
    cap: float = 10.0,
    rng: random.Random | None = None,
) -> float:
    """Capped exponential backoff with multiplicative jitter, in seconds."""
    jitter = (rng or random).uniform(0.5, 1.5)
    return min((2**error_count) * base, cap) * jitter


class LogTailer:
    """Polls one file and pushes every new complete line onto a queue.

    Survives the file being missing, rotated, truncated or temporarily
    unreadable; only ``stop()`` ends the loop.
    """

    def __init__(
        self,
        path: str | Path,
        lines: asyncio.Queue[RawLine],
        poll_interval: float = 1.0,
        max_retries: int = 5,
        base_backoff: float = 0.1,
        max_backoff: float = 10.0,
        truncation_notice_throttle: float = 5.0,
        stop_grace: float = 2.0,
        rng: Optional[random.Random] = None,
    ):
        """Initialize a tailer.

        Args:
            path: Absolute path of the file to tail
            lines: Channel receiving a RawLine per complete line, in file order
            poll_interval: Seconds between poll cycles
            max_retries: Ceiling for the consecutive I/O error counter
            base_backoff: Backoff unit in seconds, doubled per consecutive error
            max_backoff: Upper bound for a single backoff delay in seconds
            truncation_notice_throttle: Minimum seconds between rotation notices
            stop_grace: Seconds ``stop()`` waits before abandoning the loop
            rng: Random source for backoff jitter
        """
        self.watched = WatchedFile(path=str(path))
        self.state = TailState.IDLE

        self._lines = lines
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self.base_backoff = base_backoff
        self.max_backoff = max_backoff
        self.truncation_notice_throttle = truncation_notice_throttle
        self.stop_grace = stop_grace
        self._rng = rng

        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._last_truncation_notice: Optional[float] = None

    @classmethod
    def from_settings(
        cls,
        path: str | Path,
        lines: asyncio.Queue[RawLine],
        poll_interval_ms: int,
        tailer_settings: TailerSettings,
    ) -> "LogTailer":
        return cls(
            path,
            lines,
            poll_interval=poll_interval_ms / 1000,
            max_retries=tailer_settings.max_retries,
            base_backoff=tailer_settings.base_backoff_ms / 1000,
            max_backoff=tailer_settings.max_backoff_ms / 1000,
            truncation_notice_throttle=tailer_settings.truncation_notice_throttle_ms
            / 1000,
            stop_grace=tailer_settings.stop_grace_ms / 1000,
        )

    @property
    def path(self) -> str:
        return self.watched.path

    @property
    def file_name(self) -> str:
        return Path(self.watched.path).name

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            logger.warning(f"Tailer for {self.path} already started")
            return
        self._task = asyncio.create_task(
            self._run(), name=f"tail:{self.file_name}"
        )

    async def stop(self, grace: Optional[float] = None) -> bool:
        """Ask the loop to exit and wait up to ``grace`` seconds for it.

        Returns False if the loop had to be abandoned.
        """
        self._stop_event.set()
        task = self._task
        if task is None or task.done():
            self.state = TailState.STOPPED
            return True

        timeout = self.stop_grace if grace is None else grace
        _, pending = await asyncio.wait({task}, timeout=timeout)
        self.state = TailState.STOPPED
        if pending:
            task.cancel()
            logger.warning(
                f"Tailer for {self.path} did not stop within {timeout:.1f}s, abandoning it"
            )
            return False
        return True

    def compute_backoff(self) -> float:
        return compute_backoff(
            self.watched.error_count,
            base=self.base_backoff,
            cap=self.max_backoff,
            rng=self._rng,
        )

    async def _run(self) -> None:
        self.state = TailState.READING
        logger.info(f"Now tailing: {self.path}")
        try:
            while not self._stop_event.is_set():
                delay = await self.poll_once()
                await self._sleep(delay)
        finally:
            self.state = TailState.STOPPED
            logger.debug(f"Tail loop for {self.path} exited")

    async def _sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early when stop is requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass

    async def poll_once(self) -> float:
        """Run one poll cycle and return the delay before the next one."""
        watched = self.watched
        try:
            if not await aioos.path.exists(watched.path):
                # Not created yet, or between a delete and its replacement
                watched.reset()
                self.state = TailState.READING
                return self.poll_interval

            current_size = (await aioos.stat(watched.path)).st_size

            shrunk = (
                not watched.first_read
                and watched.last_size >= 0
                and current_size < watched.last_size
            )
            if shrunk or watched.offset > current_size:
                watched.offset = 0
                self._notify_truncation()

            if current_size > watched.offset:
                result = await read_new_lines(watched.path, watched.offset)
                for text in result.lines:
                    self._lines.put_nowait(RawLine(watched.path, text))
                watched.offset = result.offset

            watched.last_size = current_size
            watched.first_read = False

            if watched.error_count > 0:
                logger.info(f"Recovered from previous errors on {self.file_name}")
                watched.error_count = 0
            self.state = TailState.READING
            return self.poll_interval

        except FileNotFoundError:
            # Removed between the existence check and the read
            watched.reset()
            self.state = TailState.READING
            return self.poll_interval

        except OSError as e:
            return self._handle_io_error(e)

        except Exception as e:
            logger.exception(f"Unexpected error on {self.file_name}: {e}")
            watched.reset()
            self.state = TailState.BACKOFF
            return self.poll_interval * 2

    def _handle_io_error(self, error: OSError) -> float:
        watched = self.watched
        at_ceiling = watched.error_count >= self.max_retries
        # Cap-and-hold: the counter never exceeds max_retries
        watched.error_count = min(watched.error_count + 1, self.max_retries)
        delay = self.compute_backoff()

        logger.warning(
            f"I/O error on {self.file_name}: {error}. Retrying in {delay * 1000:.0f}ms "
            f"(attempt {watched.error_count} of {self.max_retries})"
        )
        if watched.error_count >= self.max_retries and not at_ceiling:
            logger.warning(
                f"Maximum retries ({self.max_retries}) reached for {self.file_name}, "
                "continuing at the capped retry interval"
            )

        # Force a clean re-read once the file is accessible again
        watched.reset()
        self.state = TailState.BACKOFF
        return delay

    def _notify_truncation(self) -> None:
        now = time.monotonic()
        last = self._last_truncation_notice
        if last is not None and now - last < self.truncation_notice_throttle:
            return
        self._last_truncation_notice = now
        logger.info(
            f"File {self.file_name} was rotated or truncated, restarting from beginning"
        )
