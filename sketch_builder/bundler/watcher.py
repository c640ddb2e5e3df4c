"""Polling file watcher used for source rebuilds and manifest changes."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset({"node_modules", ".git", "__pycache__"})

Snapshot = Dict[str, Tuple[int, int]]


class ChangeType(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True)
class FileChangeEvent:
    change_type: ChangeType
    path: str
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[FileChangeEvent], Awaitable[None]]


class FileWatcher:
    """Detect file changes by comparing periodic snapshots.

    ``paths`` may name files or directories; directories are scanned
    recursively, keeping files whose suffix is in ``extensions`` (all
    files when ``extensions`` is empty) and skipping the directories in
    ``exclude``. Reported paths are relative to ``root``.
    """

    def __init__(
        self,
        paths: Sequence[Path],
        *,
        root: Optional[Path] = None,
        extensions: Iterable[str] = (),
        exclude: Iterable[Path] = (),
        poll_interval: float = 0.25,
        use_executor: bool = True,
    ) -> None:
        self.paths = [Path(path) for path in paths]
        self.root = Path(root) if root else None
        self.extensions = frozenset(extensions)
        self.exclude = frozenset(_normalize(path) for path in exclude)
        self.poll_interval = poll_interval
        self.use_executor = use_executor
        self._handlers: List[EventHandler] = []
        self._last_state: Snapshot = {}
        self._task: Optional[asyncio.Task[None]] = None
        self._initialized = False
        self._polls = 0

    def add_event_handler(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def remove_event_handler(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def initialize(self) -> None:
        self._last_state = await self._snapshot()
        self._initialized = True

    async def poll_once(self) -> Dict[ChangeType, List[str]]:
        """Scan once, dispatch events and return the detected changes."""

        if not self._initialized:
            await self.initialize()
            return {change: [] for change in ChangeType}

        current = await self._snapshot()
        changes = diff_snapshots(self._last_state, current)
        self._last_state = current
        self._polls += 1

        for change_type, paths in changes.items():
            for path in paths:
                await self._dispatch(FileChangeEvent(change_type=change_type, path=path))
        return changes

    async def start(self) -> None:
        if self.is_running:
            return
        if not self._initialized:
            await self.initialize()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_stats(self) -> Dict[str, object]:
        return {
            "is_running": self.is_running,
            "tracked_files": len(self._last_state),
            "polls": self._polls,
            "poll_interval": self.poll_interval,
        }

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.poll_once()

    async def _dispatch(self, event: FileChangeEvent) -> None:
        for handler in list(self._handlers):
            try:
                await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("File watcher handler failed for %s", event.path)

    async def _snapshot(self) -> Snapshot:
        if self.use_executor:
            return await asyncio.to_thread(self._scan)
        return self._scan()

    def _scan(self) -> Snapshot:
        state: Snapshot = {}
        for path in self.paths:
            if path.is_dir():
                for current, dirs, files in os.walk(path):
                    dirs[:] = [name for name in dirs if not self._skip_dir(current, name)]
                    for name in files:
                        if self.extensions and os.path.splitext(name)[1] not in self.extensions:
                            continue
                        self._record(state, Path(current) / name)
            else:
                self._record(state, path)
        return state

    def _skip_dir(self, parent: str, name: str) -> bool:
        if name in IGNORED_DIRS or name.endswith(".sketchplugin"):
            return True
        return bool(self.exclude) and _normalize(os.path.join(parent, name)) in self.exclude

    def _record(self, state: Snapshot, path: Path) -> None:
        try:
            stat = path.stat()
        except OSError:
            return
        state[self._relative(path)] = (stat.st_mtime_ns, stat.st_size)

    def _relative(self, path: Path) -> str:
        if self.root is not None:
            try:
                return path.relative_to(self.root).as_posix()
            except ValueError:
                pass
        return path.as_posix()


def _normalize(path: Union[str, Path]) -> str:
    return os.path.normpath(os.path.abspath(path))


def diff_snapshots(previous: Snapshot, current: Snapshot) -> Dict[ChangeType, List[str]]:
    changes: Dict[ChangeType, List[str]] = {change: [] for change in ChangeType}
    for path, signature in current.items():
        if path not in previous:
            changes[ChangeType.CREATE].append(path)
        elif previous[path] != signature:
            changes[ChangeType.UPDATE].append(path)
    for path in previous:
        if path not in current:
            changes[ChangeType.DELETE].append(path)
    return changes
