"""One launch attempt: plan, spawn, wait for readiness, report, shut down."""

from __future__ import annotations

import functools
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Mapping, Optional

from dotenv import dotenv_values

from lumina_desktop.config import Config
from lumina_desktop.exceptions import LauncherError, UnexpectedExit
from lumina_desktop.models import (
    LaunchMode,
    LaunchPlan,
    ReadinessResult,
    ReadinessState,
    SupervisedProcess,
)
from lumina_desktop.paths import detect_mode, resolve_launch_paths
from lumina_desktop.presenter import UIPresenter
from lumina_desktop.probe import HttpGet, ReadinessProbe, Scheduler, http_status
from lumina_desktop.runtime import RuntimeDetector, launch_env
from lumina_desktop.scaffold import seed_data_files
from lumina_desktop.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


class LaunchSession:
    """Owns the launch plan, the service process and the readiness state.

    One session per application run. :meth:`launch` may be called again
    through :meth:`retry` after a failure; everything else happens once.
    """

    def __init__(
        self,
        config: Config,
        presenter: UIPresenter,
        mode: Optional[LaunchMode] = None,
        detector: Optional[RuntimeDetector] = None,
        popen: Optional[Callable] = None,
        scheduler: Optional[Scheduler] = None,
        http_get: HttpGet = http_status,
        roots: Optional[list[Optional[str]]] = None,
        exists: Callable[[str], bool] = os.path.exists,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.presenter = presenter
        self.mode = mode or detect_mode()
        if base_env is None:
            base_env = launch_env(self.mode)
        self.base_env = dict(base_env)
        self.detector = detector or RuntimeDetector(
            version_timeout=config.runtime.version_timeout,
            module_timeout=config.runtime.module_timeout,
            env=self.base_env,
        )
        supervisor_kwargs = {"popen": popen} if popen is not None else {}
        self.supervisor = ProcessSupervisor(
            on_exit=self._on_process_exit, base_env=self.base_env, **supervisor_kwargs
        )
        self.scheduler = scheduler
        self.http_get = http_get
        self.roots = roots
        self.exists = exists

        self.plan: Optional[LaunchPlan] = None
        self.probe: Optional[ReadinessProbe] = None
        self.error: Optional[Exception] = None
        self._lock = threading.Lock()
        self._error_reported = False
        self._closed = False
        self._launching = False
        self._settled = threading.Event()

    @property
    def url(self) -> str:
        return self.config.service.url

    @property
    def process(self) -> Optional[SupervisedProcess]:
        return self.supervisor.process

    @property
    def readiness(self) -> ReadinessState:
        return self.probe.state if self.probe else ReadinessState.PENDING

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def prepare(self) -> LaunchPlan:
        """Resolve paths and interpreter into a validated launch plan.

        Raises:
            NotFoundError, NoInterpreterError, MissingDependencyError
        """
        svc = self.config.service
        paths = resolve_launch_paths(
            self.mode,
            server_subdir=svc.server_subdir,
            entry_file=svc.entry_file,
            data_subdir=svc.data_subdir,
            roots=self.roots,
            exists=self.exists,
        )
        seed_data_files(paths.data_dir)

        interpreter = self.detector.detect_interpreter(self.config.runtime.candidates)
        self.detector.require_module(interpreter, svc.module)

        arguments = (
            "-m", svc.module, "run", str(paths.entry_file),
            f"--server.port={svc.port}",
            f"--server.address={svc.host}",
            "--server.headless=true",
            *svc.extra_args,
        )
        self.plan = LaunchPlan(
            entry_file=paths.entry_file,
            data_dir=paths.data_dir,
            working_dir=paths.working_dir,
            interpreter=interpreter,
            arguments=arguments,
            env_overrides=self._env_overrides(paths.working_dir, paths.data_dir),
        )
        logger.info("Launch plan ready: %s", " ".join(self.plan.command))
        return self.plan

    def _env_overrides(self, working_dir: Path, data_dir: Path) -> dict[str, str]:
        svc = self.config.service
        env: dict[str, str] = {}
        # .env values never override the real environment
        for dotenv_path in self._dotenv_paths(working_dir):
            for key, value in dotenv_values(dotenv_path).items():
                if value is not None and key not in self.base_env:
                    env.setdefault(key, value)
            logger.info("Loaded .env from %s", dotenv_path)
        env.update(svc.env)
        env.update(
            {
                "STREAMLIT_APP_DIR": str(working_dir),
                "STREAMLIT_DATA_DIR": str(data_dir),
                "STREAMLIT_SERVER_PORT": str(svc.port),
                "STREAMLIT_SERVER_ADDRESS": svc.host,
                "STREAMLIT_SERVER_HEADLESS": "true",
            }
        )
        return env

    def _dotenv_paths(self, working_dir: Path) -> list[Path]:
        """Configured .env files, relative ones looked up in the app dir then its parent."""
        found: list[Path] = []
        for name in self.config.service.dotenv_files:
            if Path(name).is_absolute():
                options = [Path(name)]
            else:
                options = [working_dir / name, working_dir.parent / name]
            for path in options:
                if path.is_file() and path not in found:
                    found.append(path)
        return found

    # ------------------------------------------------------------------
    # Launch
    # ------------------------------------------------------------------

    def launch(self) -> Optional[ReadinessProbe]:
        """Run setup, spawn the service and start polling.

        Returns the running probe, or None if setup failed (the error has
        already been shown) or another attempt is still being set up.
        """
        with self._lock:
            if self._closed:
                logger.info("Session closed; not launching")
                return None
            if self._launching:
                logger.info("Launch already in progress")
                return None
            self._begin_attempt()
        try:
            return self._launch()
        finally:
            with self._lock:
                self._launching = False

    def retry(self) -> Optional[ReadinessProbe]:
        """User-initiated relaunch from path resolution onward.

        Ignored while the current attempt is still starting up or polling.
        """
        with self._lock:
            if self._closed or self._launching or not self._settled.is_set():
                logger.info("Retry ignored; current attempt has not finished")
                return None
            previous = self.probe
            self._begin_attempt()
        logger.info("Retrying launch")
        try:
            if previous is not None:
                previous.cancel()
            self.supervisor.stop(self.config.shutdown.grace_seconds)
            return self._launch()
        finally:
            with self._lock:
                self._launching = False

    def _begin_attempt(self) -> None:
        # caller holds the lock
        self._launching = True
        self.probe = None
        self._error_reported = False
        self.error = None
        self._settled.clear()

    def _launch(self) -> Optional[ReadinessProbe]:
        self.presenter.show_loading(f"Starting {self.config.app.name}…")
        try:
            plan = self.prepare()
        except LauncherError as exc:
            logger.error("Launch failed: %s", exc)
            self._report_failure(exc)
            return None

        # Created before the spawn so an immediate crash can cancel it
        probe_cfg = self.config.probe
        probe = ReadinessProbe(
            self.url,
            interval=probe_cfg.interval_seconds,
            max_attempts=probe_cfg.max_attempts,
            timeout=probe_cfg.timeout_seconds,
            scheduler=self.scheduler,
            http_get=self.http_get,
        )
        probe.on_settled = functools.partial(self._on_probe_settled, probe)
        self.probe = probe
        try:
            self.supervisor.start(plan)
        except LauncherError as exc:
            logger.error("Launch failed: %s", exc)
            probe.cancel(exc)
            return None
        with self._lock:
            closed = self._closed
        if closed:
            # window closed while we were setting up
            probe.cancel()
            self.supervisor.stop(self.config.shutdown.grace_seconds)
            return None
        probe.start()
        return probe

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until this attempt is ready or has failed."""
        return self._settled.wait(timeout)

    def shutdown(self) -> None:
        """Stop polling and the service. Only the first call has any effect."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.info("Shutting down session")
        if self.probe is not None:
            self.probe.cancel()
        self.supervisor.stop(self.config.shutdown.grace_seconds)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_probe_settled(self, probe: ReadinessProbe, result: ReadinessResult) -> None:
        with self._lock:
            if probe is not self.probe:
                logger.debug("Ignoring result of a superseded probe")
                return
            closed = self._closed
        if result.ready:
            if not closed:
                self.presenter.navigate(self.url)
            self._settled.set()
            return
        if closed:
            self._settled.set()
            return
        self._report_failure(result.reason)

    def _on_process_exit(self, process: SupervisedProcess, event: Optional[UnexpectedExit]) -> None:
        with self._lock:
            if self._closed or process is not self.supervisor.process:
                return
        error = event or UnexpectedExit(process.returncode)
        if self.probe is not None and self.probe.cancel(error):
            # the probe's settle callback reports it
            return
        self._report_failure(error)

    def _report_failure(self, error: Optional[Exception]) -> None:
        with self._lock:
            if self._error_reported or self._closed:
                return
            self._error_reported = True
            self.error = error
        self.presenter.show_error(error or LauncherError("Launch failed"))
        self._settled.set()
