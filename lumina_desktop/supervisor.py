"""Own the service subprocess: spawn, watch, and terminate it."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from typing import IO, Callable, Mapping, Optional

from lumina_desktop.exceptions import LauncherError, SpawnError, UnexpectedExit
from lumina_desktop.models import LaunchPlan, ProcessState, SupervisedProcess

logger = logging.getLogger(__name__)
service_logger = logging.getLogger("lumina_desktop.service")

# How long to wait for the OS to reap the process after a forced kill.
KILL_WAIT_SECONDS = 2.0

ExitCallback = Callable[[SupervisedProcess, Optional[UnexpectedExit]], None]


class ProcessSupervisor:
    """Run one service process at a time.

    State machine::

        NOT_STARTED -> RUNNING -> STOPPING -> STOPPED
                               -> CRASHED_EXIT   (non-zero exit without stop)
                               -> STOPPED        (exit code 0 without stop)

    ``on_exit`` is called from the watcher thread when the process exits
    without :meth:`stop` having been called; its second argument is an
    :class:`UnexpectedExit` for a crash and ``None`` for a clean exit.
    """

    def __init__(
        self,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        on_exit: Optional[ExitCallback] = None,
        base_env: Optional[Mapping[str, str]] = None,
        output_logger: logging.Logger = service_logger,
    ):
        self._popen = popen
        self.on_exit = on_exit
        self._base_env = base_env
        self._output_logger = output_logger
        self._lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._process: Optional[SupervisedProcess] = None
        self._exited = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def process(self) -> Optional[SupervisedProcess]:
        return self._process

    @property
    def state(self) -> ProcessState:
        return self._process.state if self._process else ProcessState.NOT_STARTED

    def start(self, plan: LaunchPlan) -> SupervisedProcess:
        """Spawn the service described by *plan*.

        Raises:
            SpawnError: the OS could not create the process.
            LauncherError: a process is already active.
        """
        with self._lock:
            if self._process is not None and self._process.alive:
                raise LauncherError(
                    f"Service already running (pid {self._process.pid})"
                )

            base = os.environ if self._base_env is None else self._base_env
            env = plan.build_env(base)
            logger.info("Starting service: %s (cwd=%s)", " ".join(plan.command), plan.working_dir)
            try:
                proc = self._popen(
                    plan.command,
                    cwd=str(plan.working_dir),
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except (OSError, ValueError) as exc:
                logger.error("Failed to spawn service: %s", exc)
                raise SpawnError(f"Could not start '{plan.interpreter}': {exc}") from exc

            self._proc = proc
            self._process = SupervisedProcess(pid=proc.pid, state=ProcessState.RUNNING)
            self._exited = threading.Event()
            process = self._process
            exited = self._exited

        self._threads = []
        for stream, level in ((proc.stdout, logging.INFO), (proc.stderr, logging.WARNING)):
            if stream is not None:
                self._spawn_thread(self._pump, stream, level)
        self._spawn_thread(self._watch, proc, process, exited)
        logger.info("Service started (pid %s)", process.pid)
        return process

    def stop(self, timeout: float = 5.0) -> None:
        """Terminate gracefully, then kill after *timeout* seconds.

        Safe to call any number of times; only the first call on a running
        process does anything.
        """
        with self._lock:
            process, proc, exited = self._process, self._proc, self._exited
            if process is None or process.state is not ProcessState.RUNNING:
                logger.debug("stop(): nothing to stop (state=%s)", self.state.value)
                return
            process.state = ProcessState.STOPPING

        logger.info("Stopping service (pid %s)", process.pid)
        try:
            proc.terminate()
        except OSError as exc:
            logger.warning("terminate() failed for pid %s: %s", process.pid, exc)

        if exited.wait(timeout):
            return

        logger.warning("Service did not exit within %.1fs, killing pid %s", timeout, process.pid)
        try:
            proc.kill()
        except OSError as exc:
            logger.error("kill() failed for pid %s: %s", process.pid, exc)
            return
        if not exited.wait(KILL_WAIT_SECONDS):
            logger.error("pid %s still running after kill", process.pid)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current process has exited. True if it has."""
        if self._process is None:
            return True
        return self._exited.wait(timeout)

    # ------------------------------------------------------------------
    # Background threads
    # ------------------------------------------------------------------

    def _spawn_thread(self, target, *args) -> None:
        t = threading.Thread(target=target, args=args, daemon=True)
        t.start()
        self._threads.append(t)

    def _pump(self, stream: IO[bytes], level: int) -> None:
        """Forward one output stream line by line to the service logger."""
        try:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip()
                if line:
                    self._output_logger.log(level, "%s", line)
        except (OSError, ValueError) as exc:
            logger.debug("Output stream closed: %s", exc)
        finally:
            stream.close()

    def _watch(
        self,
        proc: subprocess.Popen,
        process: SupervisedProcess,
        exited: threading.Event,
    ) -> None:
        returncode = proc.wait()
        event: Optional[UnexpectedExit] = None
        with self._lock:
            process.returncode = returncode
            requested = process.state is ProcessState.STOPPING
            if requested:
                process.state = ProcessState.STOPPED
                logger.info("Service stopped (pid %s, code %s)", process.pid, returncode)
            elif returncode == 0:
                process.state = ProcessState.STOPPED
                logger.info("Service exited cleanly (pid %s)", process.pid)
            else:
                process.state = ProcessState.CRASHED_EXIT
                event = UnexpectedExit(returncode)
                logger.error("%s (pid %s)", event, process.pid)
        exited.set()

        if not requested and self.on_exit is not None:
            self.on_exit(process, event)
