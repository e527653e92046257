"""cub-scout service runtime.

Brings the service up in order:
    config -> logging -> snapshot (file, or k8s client + first collection)
           -> REST API -> periodic re-collection

and takes it down in reverse.  Only one SnapshotIndex is ever published at
a time; re-collection builds a fresh index and then replaces the reference.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from cubscout.config import load_config
from cubscout.models.config import CubScoutConfig
from cubscout.observability.logging import get_logger, setup_logging
from cubscout.observability.metrics import snapshot_objects
from cubscout.snapshot.index import SnapshotIndex

if TYPE_CHECKING:
    import structlog
    import uvicorn

    from cubscout.collector import SnapshotCollector

_STOP_TIMEOUT_SECONDS = 15


class StartupError(Exception):
    """A component the service cannot run without failed to come up."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"{component} did not start: {cause}")
        self.component = component
        self.cause = cause


class CubScoutApp:
    """Holds the published snapshot and the tasks that serve and refresh it."""

    def __init__(self, config: CubScoutConfig | None = None) -> None:
        self.config: CubScoutConfig | None = config

        self._index: SnapshotIndex | None = None
        self._client_source: str | None = None
        self._collector: SnapshotCollector | None = None
        self._server: uvicorn.Server | None = None
        self._tasks: list[asyncio.Task[None]] = []

        self._log: structlog.stdlib.BoundLogger | None = None
        self._stopped = asyncio.Event()
        self.running = False

    @property
    def index(self) -> SnapshotIndex | None:
        return self._index

    def swap_index(self, index: SnapshotIndex) -> None:
        """Publish ``index`` as the snapshot every reader sees from now on."""
        self._index = index
        snapshot_objects.set(len(index))

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bring every component up.  Raises StartupError on a fatal failure."""
        if self.config is None:
            self.config = load_config()
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("service_starting", version=_version(), cluster=self.config.cluster)

        if self.config.snapshot_path:
            self._serve_snapshot_file(self.config.snapshot_path)
        else:
            await self._connect()
            await self._first_collection(self.config)

        self._serve_api(self.config)
        if self._collector is not None:
            self._tasks.append(
                asyncio.create_task(
                    self._refresh_every(self.config.collector.refresh_interval_seconds),
                    name="snapshot-refresh",
                )
            )

        self.running = True
        self._stopped.clear()
        self._log.info("service_started", port=self.config.api.port, objects=len(self._index or ()))

    def _serve_snapshot_file(self, path: str) -> None:
        assert self._log is not None
        from cubscout.snapshot import load_snapshot

        try:
            self.swap_index(load_snapshot(path))
        except Exception as exc:
            raise StartupError("snapshot", exc) from exc
        self._log.info("snapshot_file_loaded", path=path)

    async def _connect(self) -> None:
        from cubscout.collector import load_client_config

        try:
            self._client_source = await load_client_config()
        except Exception as exc:
            raise StartupError("k8s_client", exc) from exc

    async def _first_collection(self, config: CubScoutConfig) -> None:
        from cubscout.collector import SnapshotCollector

        collector = SnapshotCollector(config.collector, cluster=config.cluster)
        try:
            self.swap_index(await collector.collect())
        except Exception as exc:
            raise StartupError("collector", exc) from exc
        self._collector = collector

    def _serve_api(self, config: CubScoutConfig) -> None:
        assert self._log is not None
        try:
            import uvicorn

            from cubscout.api import create_app

            server = uvicorn.Server(
                uvicorn.Config(
                    app=create_app(index_provider=lambda: self._index, config=config),
                    host=config.api.host,
                    port=config.api.port,
                    log_config=None,  # structlog owns logging
                    access_log=False,
                )
            )
        except Exception as exc:
            raise StartupError("rest", exc) from exc
        self._server = server
        self._tasks.append(asyncio.create_task(server.serve(), name="rest-server"))
        self._log.info("api_listening", host=config.api.host, port=config.api.port)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def _refresh_every(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.refresh()

    async def refresh(self) -> None:
        """Collect again and publish the result; keep the old snapshot on failure."""
        if self._collector is None:
            return
        log = self._log or get_logger("app")
        try:
            index = await self._collector.collect()
        except Exception as exc:
            log.warning("snapshot_refresh_failed", error=str(exc), kept_objects=len(self._index or ()))
            return
        self.swap_index(index)
        log.debug("snapshot_refreshed", objects=len(index))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop the API and background tasks; each failure is logged, not raised."""
        if self._log is None:
            return
        self._log.info("service_stopping")
        self.running = False

        if self._server is not None:
            self._server.should_exit = True
        for task in self._tasks:
            if task.get_name() != "rest-server":
                task.cancel()

        if self._tasks:
            _done, pending = await asyncio.wait(self._tasks, timeout=_STOP_TIMEOUT_SECONDS)
            for task in pending:
                self._log.warning("task_stop_timeout", task=task.get_name())
                task.cancel()
            for task in self._tasks:
                if task.done() and not task.cancelled() and task.exception() is not None:
                    self._log.error("task_failed", task=task.get_name(), error=str(task.exception()))

        # The collector opens an ApiClient per collection; there is no shared pool to close.
        self._tasks.clear()
        self._server = None
        self._collector = None
        self._client_source = None
        self._stopped.set()
        self._log.info("service_stopped")

    async def wait_stopped(self) -> None:
        await self._stopped.wait()


def _version() -> str:
    from cubscout import __version__

    return __version__


# ---------------------------------------------------------------------------
# Process entrypoint
# ---------------------------------------------------------------------------


async def main(config: CubScoutConfig | None = None) -> None:
    """Run the service until SIGTERM/SIGINT; exit 1 when startup fails.

    Without ``config`` the settings come from CUBSCOUT_* variables.
    """
    app = CubScoutApp(config)
    loop = asyncio.get_running_loop()
    stopping: asyncio.Task[None] | None = None

    def _on_signal() -> None:
        nonlocal stopping
        if stopping is None:
            stopping = asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _on_signal)

    try:
        await app.start()
        await app.wait_stopped()
    except StartupError as exc:
        get_logger("app").critical("startup_failed", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()
