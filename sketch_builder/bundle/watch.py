"""Restart the whole build whenever the source manifest changes."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..bundler.base import Bundler
from ..bundler.watcher import FileChangeEvent, FileWatcher
from ..errors import AssetCopyError, BundlerError, ConfigurationError, ManifestError
from ..schemas.project import ProjectConfig
from .orchestrator import BuildOrchestrator, BuildReport

logger = logging.getLogger(__name__)

BundlerFactory = Callable[[ProjectConfig], Bundler]
ConfigLoader = Callable[[], ProjectConfig]


class WatchCoordinator:
    """Owns the live build generation and its watcher handles.

    Rebuilds are serialised: a manifest change closes every handle of the
    current generation before the next generation starts.
    """

    def __init__(
        self,
        config: ProjectConfig,
        bundler_factory: BundlerFactory,
        *,
        quiet: bool = False,
        config_loader: Optional[ConfigLoader] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        self.config = config
        self.bundler_factory = bundler_factory
        self.quiet = quiet
        self.config_loader = config_loader
        self.poll_interval = poll_interval or config.bundler.poll_interval
        self.generation = 0
        self.current: Optional[BuildOrchestrator] = None
        self.last_report: Optional[BuildReport] = None
        self._lock = asyncio.Lock()
        self._fatal: Optional[asyncio.Future[None]] = None
        self._manifest_watcher: Optional[FileWatcher] = None

    async def start(self) -> Optional[BuildReport]:
        """Run the first generation and begin watching the manifest."""

        self._fatal = asyncio.get_running_loop().create_future()
        self._manifest_watcher = FileWatcher(
            [self.config.manifest_path],
            root=self.config.root,
            poll_interval=self.poll_interval,
        )
        await self._manifest_watcher.initialize()

        async with self._lock:
            report = await self._run_generation(self.config)

        self._manifest_watcher.add_event_handler(self._on_manifest_event)
        await self._manifest_watcher.start()
        return report

    async def restart(self) -> Optional[BuildReport]:
        """Tear down the live generation, then build a fresh one."""

        async with self._lock:
            await self._teardown()
            try:
                config = self.config_loader() if self.config_loader else self.config
            except ConfigurationError as exc:
                logger.error("%s", exc)
                return None
            return await self._run_generation(config)

    async def run_forever(self) -> None:
        """Wait until a fatal error occurs; raises it."""

        if self._fatal is None:
            raise RuntimeError("WatchCoordinator.start() must be awaited first")
        await self._fatal

    async def close(self) -> None:
        if self._manifest_watcher is not None:
            await self._manifest_watcher.stop()
            self._manifest_watcher = None
        async with self._lock:
            await self._teardown()

    def fail(self, error: BaseException) -> None:
        if self._fatal is not None and not self._fatal.done():
            self._fatal.set_exception(error)

    async def _on_manifest_event(self, event: FileChangeEvent) -> None:
        logger.debug("Manifest %s (%s), rebuilding", event.path, event.change_type.value)
        await self.restart()

    async def _teardown(self) -> None:
        current, self.current = self.current, None
        if current is not None:
            await current.close()

    async def _run_generation(self, config: ProjectConfig) -> Optional[BuildReport]:
        self.generation += 1
        orchestrator = BuildOrchestrator(
            config,
            self.bundler_factory(config),
            watch=True,
            quiet=self.quiet,
            generation=self.generation,
            on_fatal=self.fail,
        )
        self.current = orchestrator
        try:
            report = await orchestrator.run_generation()
        except ManifestError as exc:
            logger.error("%s", exc)
            return None
        except AssetCopyError as exc:
            # already logged per asset by the orchestrator
            self.fail(exc)
            return None
        except BundlerError as exc:
            logger.error("%s", exc, exc_info=exc)
            if exc.details:
                logger.error("%s", exc.details, extra={"marker": ""})
            self.fail(exc)
            return None
        self.last_report = report
        return report
