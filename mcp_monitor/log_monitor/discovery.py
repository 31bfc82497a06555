"""Discovery of log files under a root directory using watchfiles."""

import asyncio
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

import anyio
from aiofiles import os as aioos
from asyncer import asyncify
from watchfiles import Change, awatch

from ..logger import logger
from .matching import matches_log_pattern
from .models import WatchedDirectory
from .tailer import LogTailer

TailerFactory = Callable[[str], LogTailer]


def _list_subdirectories(root: Path) -> List[str]:
    return sorted(str(entry) for entry in root.iterdir() if entry.is_dir())


def _find_matching_files(
    directory: str, pattern: str, base_dir: Optional[str] = None
) -> List[str]:
    base_dir = base_dir or directory
    found = []
    for dirpath, _dirnames, filenames in os.walk(directory):
        for filename in filenames:
            candidate = os.path.join(dirpath, filename)
            if matches_log_pattern(candidate, pattern, base_dir):
                found.append(candidate)
    return sorted(found)


class DiscoveryCascade:
    """Finds log files matching a pattern and starts one tailer per file.

    The root is watched non-recursively for new subdirectories. Every
    subdirectory gets its own recursive watcher plus an immediate scan for
    files that already exist. A periodic reconciliation scan catches anything
    the OS notifications missed.
    """

    def __init__(
        self,
        root: str | Path,
        pattern: str,
        tailer_factory: TailerFactory,
        reconcile_interval: float = 5.0,
        watch_debounce_ms: int = 200,
        stop_grace: float = 2.0,
        scan_threads: int = 4,
    ):
        """Initialize discovery.

        Args:
            root: Directory whose subdirectories contain the log files
            pattern: File name or glob the log files must match
            tailer_factory: Creates an unstarted LogTailer for a file path
            reconcile_interval: Seconds between full rescans, 0 disables them
            watch_debounce_ms: Debounce window of the filesystem watchers
            stop_grace: Seconds to wait for watcher tasks on stop
            scan_threads: Worker threads reserved for directory scans
        """
        self.root = Path(root).absolute()
        self.pattern = pattern
        self._tailer_factory = tailer_factory
        self.reconcile_interval = reconcile_interval
        self.watch_debounce_ms = watch_debounce_ms
        self.stop_grace = stop_grace
        self.scan_threads = scan_threads

        self._directories: Dict[str, WatchedDirectory] = {}
        self._watch_tasks: Dict[str, asyncio.Task] = {}
        self._directories_lock = asyncio.Lock()

        self._tailers: Dict[str, LogTailer] = {}
        self._tailers_lock = asyncio.Lock()

        self._stop_event = asyncio.Event()
        self._root_task: Optional[asyncio.Task] = None
        self._reconcile_task: Optional[asyncio.Task] = None
        self._started = False
        # Watchers park on anyio's default thread limiter; scans get their own
        self._scan_limiter: Optional[anyio.CapacityLimiter] = None

    @property
    def tailers(self) -> Dict[str, LogTailer]:
        return dict(self._tailers)

    @property
    def directories(self) -> Dict[str, WatchedDirectory]:
        return dict(self._directories)

    async def start(self) -> bool:
        """Process existing subdirectories and start watching for new ones.

        Returns False if the root directory does not exist.
        """
        if not await aioos.path.isdir(self.root):
            logger.error(f"Log root does not exist: {self.root}")
            return False

        if self._started:
            logger.warning(f"Discovery already running for {self.root}")
            return True

        logger.info(f"Starting monitoring of root directory: {self.root}")
        self._started = True
        self._stop_event.clear()
        await self.reconcile(rescan=False)

        self._root_task = asyncio.create_task(self._watch_root(), name="watch:root")
        if self.reconcile_interval > 0:
            self._reconcile_task = asyncio.create_task(
                self._reconcile_loop(), name="discovery:reconcile"
            )
        logger.info("Root directory watcher enabled")
        return True

    async def stop(self) -> None:
        """Stop every watcher and every tailer."""
        self._stop_event.set()

        tasks = [
            task
            for task in (self._root_task, self._reconcile_task)
            if task is not None
        ]
        async with self._directories_lock:
            tasks.extend(self._watch_tasks.values())
            for directory in self._directories.values():
                directory.active = False
            self._watch_tasks.clear()
            self._directories.clear()

        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=self.stop_grace)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending, timeout=self.stop_grace)
        self._root_task = None
        self._reconcile_task = None
        self._started = False

        async with self._tailers_lock:
            tailers = list(self._tailers.values())
            self._tailers.clear()
        if tailers:
            await asyncio.gather(*(tailer.stop() for tailer in tailers))
        logger.info("Stopped all log monitoring")

    async def reconcile(self, rescan: bool = True) -> None:
        """Process every subdirectory of the root.

        With ``rescan`` already watched directories are scanned again for
        matching files; otherwise they are skipped.
        """
        try:
            subdirectories = await self._run_scan(_list_subdirectories, self.root)
        except FileNotFoundError:
            logger.warning(f"Log root disappeared: {self.root}")
            return

        for subdirectory in subdirectories:
            if self._stop_event.is_set():
                return
            await self.process_directory(subdirectory, rescan=rescan)

    async def process_directory(self, path: str, rescan: bool = False) -> None:
        """Watch ``path`` recursively and tail any matching file already in it."""
        if self._stop_event.is_set():
            return
        key = str(Path(path).absolute())
        async with self._directories_lock:
            directory = self._directories.get(key)
            is_new = directory is None or not directory.active
            if not is_new and not rescan:
                return
            if is_new:
                self._directories[key] = WatchedDirectory(path=key)
                self._watch_tasks[key] = asyncio.create_task(
                    self._watch_directory(key), name=f"watch:{Path(key).name}"
                )

        if is_new:
            logger.info(f"Monitoring subdirectory: {key}")
        await self.scan_directory(key)

    async def scan_directory(self, path: str, base_dir: Optional[str] = None) -> None:
        """Tail every matching file below ``path``.

        Patterns with a path separator are matched relative to ``base_dir``,
        which defaults to ``path`` itself.
        """
        try:
            matches = await self._run_scan(
                _find_matching_files, path, self.pattern, base_dir
            )
        except OSError as e:
            logger.warning(f"Failed to scan {path}: {e}")
            return
        for match in matches:
            await self.start_tailer(match)

    async def start_tailer(self, path: str) -> bool:
        """Start a tailer for ``path`` unless one is already running.

        Returns True if a new tailer was started.
        """
        key = str(Path(path).absolute())
        async with self._tailers_lock:
            if self._stop_event.is_set() or key in self._tailers:
                return False
            tailer = self._tailer_factory(key)
            self._tailers[key] = tailer
            tailer.start()
        return True

    async def _watch_root(self) -> None:
        try:
            async for changes in awatch(
                self.root,
                watch_filter=None,
                recursive=False,
                debounce=self.watch_debounce_ms,
                stop_event=self._stop_event,
            ):
                for change_type, changed_path in changes:
                    if change_type != Change.added:
                        continue
                    if await aioos.path.isdir(changed_path):
                        await self.process_directory(changed_path)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Root directory watcher failed for {self.root}: {e}", exc_info=True)

    async def _watch_directory(self, path: str) -> None:
        try:
            async for changes in awatch(
                path,
                watch_filter=None,
                recursive=True,
                debounce=self.watch_debounce_ms,
                stop_event=self._stop_event,
            ):
                for change_type, changed_path in changes:
                    if change_type != Change.added:
                        continue
                    await self._handle_created(path, changed_path)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Watcher for {path} stopped: {e}")
            async with self._directories_lock:
                directory = self._directories.get(path)
                if directory is not None:
                    directory.active = False
                self._watch_tasks.pop(path, None)

    async def _handle_created(self, watched_dir: str, changed_path: str) -> None:
        if await aioos.path.isfile(changed_path):
            if matches_log_pattern(changed_path, self.pattern, watched_dir):
                await self.start_tailer(changed_path)
        elif await aioos.path.isdir(changed_path):
            # Files may land in a new directory before its OS watch is attached
            await self.scan_directory(changed_path, base_dir=watched_dir)

    async def _reconcile_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.reconcile_interval
                )
                return
            except TimeoutError:
                pass
            try:
                await self.reconcile(rescan=True)
            except Exception as e:
                logger.error(f"Reconciliation scan failed: {e}", exc_info=True)

    async def _run_scan(self, func, *args):
        if self._scan_limiter is None:
            self._scan_limiter = anyio.CapacityLimiter(self.scan_threads)
        return await asyncify(func, limiter=self._scan_limiter)(*args)
